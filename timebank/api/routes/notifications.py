from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends

from timebank.api.auth import CurrentUserId
from timebank.api.dependencies import get_notification_service
from timebank.core.notifications import NotificationService
from timebank.shared.models.common import CountResponse, PaginationParams
from timebank.shared.models.notification import NotificationPage, NotificationResponse

router = APIRouter(prefix="/notifications", tags=["Notifications"])

Service = Annotated[NotificationService, Depends(get_notification_service)]


@router.get("", response_model=NotificationPage)
async def list_notifications(
    user_id: CurrentUserId,
    service: Service,
    page: Optional[int] = None,
    limit: Optional[int] = None,
):
    return await service.list_for_user(user_id, PaginationParams.clamped(page, limit))


# read-all объявлен раньше /{notification_id}/read
@router.post("/read-all", response_model=CountResponse)
async def mark_all_read(user_id: CurrentUserId, service: Service):
    return CountResponse(count=await service.mark_all_read(user_id))


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(notification_id: UUID, user_id: CurrentUserId, service: Service):
    return NotificationResponse(notification=await service.mark_read(user_id, notification_id))
