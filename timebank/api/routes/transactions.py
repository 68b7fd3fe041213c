from typing import Annotated, Optional

from fastapi import APIRouter, Depends

from timebank.api.auth import CurrentUserId
from timebank.api.dependencies import get_transfer_service
from timebank.common.constants import TransactionType
from timebank.core.ledger import TransferService
from timebank.shared.models.common import PaginationParams
from timebank.shared.models.wallet import (
    BuyCreditsRequest,
    CreditOperationResponse,
    TransactionHistoryResponse,
    TransactionStats,
    TransferRequest,
    WalletSummary,
)

router = APIRouter(prefix="/transactions", tags=["Transactions"])

Service = Annotated[TransferService, Depends(get_transfer_service)]


def parse_transaction_type(value: Optional[str]) -> Optional[TransactionType]:
    try:
        return TransactionType((value or "").upper())
    except ValueError:
        return None


@router.get("/wallet", response_model=WalletSummary)
async def get_wallet(user_id: CurrentUserId, service: Service):
    return await service.wallet_summary(user_id)


@router.get("/history", response_model=TransactionHistoryResponse)
async def get_history(
    user_id: CurrentUserId,
    service: Service,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    type: Optional[str] = None,
):
    return await service.history(user_id, PaginationParams.clamped(page, limit), parse_transaction_type(type))


@router.post("/buy-credits", response_model=CreditOperationResponse)
async def buy_credits(request: BuyCreditsRequest, user_id: CurrentUserId, service: Service):
    return await service.buy_credits(user_id, request)


@router.post("/transfer", response_model=CreditOperationResponse)
async def transfer_credits(request: TransferRequest, user_id: CurrentUserId, service: Service):
    return await service.transfer(user_id, request)


@router.get("/stats", response_model=TransactionStats)
async def get_stats(user_id: CurrentUserId, service: Service):
    return await service.stats(user_id)
