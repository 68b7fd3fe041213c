import asyncio
import hashlib
import os
import sys
from decimal import Decimal

from timebank.api.auth import create_access_token
from timebank.common.constants import LedgerType, TransactionType
from timebank.core.ledger import LedgerRepository
from timebank.core.users import UserRepository
from timebank.infra.database import init_db

DEV_EMAIL = os.getenv("DEV_USER_EMAIL", "dev@timebank.local")
DEV_NAME = os.getenv("DEV_USER_NAME", "Dev User")
DEV_PASSWORD = os.getenv("DEV_USER_PASSWORD", "devpassword")
STARTING_CREDITS = Decimal("10")
PBKDF2_ITERATIONS = 260_000


def hash_password(password: str) -> str:
    salt = os.urandom(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt.hex()}${digest.hex()}"


async def main():
    db = await init_db()
    print("Connected to DB")

    users = UserRepository(db)
    ledger = LedgerRepository(db)

    user = await users.get_by_email(DEV_EMAIL)
    if user is None:
        user = await users.create(DEV_EMAIL, DEV_NAME, hash_password(DEV_PASSWORD))
        await users.create_profile(user["id"], display_name=DEV_NAME, skills=["python"], categories=["tech"])
        async with db.transaction() as conn:
            await ledger.add_transaction(
                user["id"], user["id"], STARTING_CREDITS, TransactionType.BONUS, "Welcome bonus", conn=conn,
            )
            await ledger.add_entry(user["id"], STARTING_CREDITS, LedgerType.EARNED, "Welcome bonus", conn=conn)
            await users.set_credits(user["id"], STARTING_CREDITS, conn=conn)
        print(f"User {DEV_EMAIL} created with {STARTING_CREDITS} credits")
    else:
        print(f"User {DEV_EMAIL} already exists")

    print(f"user_id: {user['id']}")
    print(f"token:   {create_access_token(user['id'], DEV_EMAIL)}")

    await db.disconnect()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(1)
