# timebank/api/auth.py
"""
Подписанные токены доступа и зависимость текущего пользователя.

Токен: URLSafeTimedSerializer(JWT_SECRET) над {"user_id", "email"}.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Annotated, Any
from uuid import UUID

from fastapi import Depends, Request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from timebank.common.exceptions import UnauthorizedError
from timebank.config import settings

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class AuthUser:
    """Пользователь, извлечённый из токена."""
    user_id: UUID
    email: str


def get_token_serializer(secret: str | None = None, salt: str | None = None) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(
        secret or settings.auth.secret,
        salt=salt or settings.auth.TOKEN_SALT,
        signer_kwargs={"key_derivation": "hmac", "digest_method": hashlib.sha256},
    )


def create_access_token(user_id: UUID | str, email: str) -> str:
    return get_token_serializer().dumps({"user_id": str(user_id), "email": email})


def decode_access_token(token: str, max_age: int | None = None) -> AuthUser | None:
    """Проверяет подпись и срок жизни. None, если токен неверный или просрочен."""
    serializer = get_token_serializer()
    try:
        payload: Any = serializer.loads(token, max_age=max_age or settings.auth.TOKEN_MAX_AGE_SECONDS)
    except (BadSignature, SignatureExpired):
        return None
    if not isinstance(payload, dict):
        return None
    try:
        return AuthUser(user_id=UUID(str(payload["user_id"])), email=str(payload.get("email", "")))
    except (KeyError, ValueError):
        return None


async def get_current_user(request: Request) -> AuthUser:
    """Зависимость: Authorization: Bearer <token>."""
    header = request.headers.get("Authorization")
    if not header or not header.startswith(BEARER_PREFIX):
        raise UnauthorizedError("No token provided")
    user = decode_access_token(header[len(BEARER_PREFIX):].strip())
    if user is None:
        raise UnauthorizedError("Invalid token")
    request.state.user_id = user.user_id
    return user


async def get_current_user_id(user: Annotated[AuthUser, Depends(get_current_user)]) -> UUID:
    return user.user_id


CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]
