from typing import Annotated, Optional

from fastapi import APIRouter, Depends

from timebank.api.auth import CurrentUserId
from timebank.api.dependencies import get_ledger_service
from timebank.common.constants import LedgerType
from timebank.core.ledger import LedgerService
from timebank.shared.models.common import Page, PaginationParams
from timebank.shared.models.wallet import (
    BalanceResponse,
    CollaboratorsResponse,
    CreditSeriesResponse,
    LedgerEntryDTO,
)

router = APIRouter(prefix="/wallet", tags=["Wallet"])

Service = Annotated[LedgerService, Depends(get_ledger_service)]


def parse_ledger_type(value: Optional[str]) -> Optional[LedgerType]:
    """Неизвестный тип означает отсутствие фильтра."""
    try:
        return LedgerType((value or "").upper())
    except ValueError:
        return None


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(user_id: CurrentUserId, service: Service):
    return await service.get_balance(user_id)


@router.get("/history", response_model=Page[LedgerEntryDTO])
async def get_history(
    user_id: CurrentUserId,
    service: Service,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    type: Optional[str] = None,
):
    return await service.get_history(user_id, PaginationParams.clamped(page, limit), parse_ledger_type(type))


@router.get("/analytics/credits", response_model=CreditSeriesResponse)
async def credit_analytics(user_id: CurrentUserId, service: Service):
    return await service.credit_series(user_id)


@router.get("/analytics/collaborators", response_model=CollaboratorsResponse)
async def collaborator_analytics(user_id: CurrentUserId, service: Service):
    return await service.top_collaborators(user_id)
