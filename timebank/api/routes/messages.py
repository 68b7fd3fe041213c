from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status

from timebank.api.auth import CurrentUserId
from timebank.api.dependencies import get_message_service
from timebank.core.messages import MessageService
from timebank.shared.models.common import CountResponse
from timebank.shared.models.message import (
    ConversationListResponse,
    MessageCreateRequest,
    MessageListResponse,
    MessageResponse,
    SendersResponse,
)

router = APIRouter(prefix="/messages", tags=["Messages"])

Service = Annotated[MessageService, Depends(get_message_service)]


@router.post("", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(request: MessageCreateRequest, user_id: CurrentUserId, service: Service):
    return MessageResponse(message=await service.send(user_id, request))


@router.get("/direct/{other_id}", response_model=MessageListResponse)
async def direct_messages(other_id: UUID, user_id: CurrentUserId, service: Service):
    return MessageListResponse(messages=await service.direct_conversation(user_id, other_id))


@router.get("/booking/{booking_id}", response_model=MessageListResponse)
async def booking_messages(booking_id: UUID, user_id: CurrentUserId, service: Service):
    return MessageListResponse(messages=await service.booking_messages(user_id, booking_id))


@router.patch("/booking/{booking_id}/read", response_model=CountResponse)
async def mark_booking_read(booking_id: UUID, user_id: CurrentUserId, service: Service):
    return CountResponse(count=await service.mark_booking_read(user_id, booking_id))


@router.get("/senders", response_model=SendersResponse)
async def message_senders(user_id: CurrentUserId, service: Service):
    return SendersResponse(users=await service.senders(user_id))


@router.get("/conversations", response_model=ConversationListResponse)
async def conversations(user_id: CurrentUserId, service: Service):
    return ConversationListResponse(conversations=await service.conversations(user_id))
