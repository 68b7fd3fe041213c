from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, status

from timebank.api.auth import CurrentUserId
from timebank.api.dependencies import get_booking_service
from timebank.common.constants import BookingRole, BookingStatus
from timebank.core.booking import BookingService
from timebank.shared.models.booking import (
    BookingAcceptRequest,
    BookingCreateRequest,
    BookingListResponse,
    BookingResponse,
)

router = APIRouter(prefix="/booking", tags=["Booking"])

Service = Annotated[BookingService, Depends(get_booking_service)]


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(request: BookingCreateRequest, user_id: CurrentUserId, service: Service):
    return BookingResponse(booking=await service.create(user_id, request))


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    user_id: CurrentUserId,
    service: Service,
    role: BookingRole = BookingRole.ANY,
    status: Optional[BookingStatus] = None,
):
    return BookingListResponse(bookings=await service.list_for_user(user_id, role, status))


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(booking_id: UUID, user_id: CurrentUserId, service: Service):
    return BookingResponse(booking=await service.get(user_id, booking_id))


@router.patch("/{booking_id}/accept", response_model=BookingResponse)
async def accept_booking(
    booking_id: UUID,
    user_id: CurrentUserId,
    service: Service,
    request: Annotated[Optional[BookingAcceptRequest], Body()] = None,
):
    slot = request.slot if request else None
    return BookingResponse(booking=await service.accept(user_id, booking_id, slot))


@router.patch("/{booking_id}/decline", response_model=BookingResponse)
async def decline_booking(booking_id: UUID, user_id: CurrentUserId, service: Service):
    return BookingResponse(booking=await service.decline(user_id, booking_id))


@router.patch("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(booking_id: UUID, user_id: CurrentUserId, service: Service):
    return BookingResponse(booking=await service.cancel(user_id, booking_id))


@router.post("/{booking_id}/complete-confirm", response_model=BookingResponse)
async def complete_booking(booking_id: UUID, user_id: CurrentUserId, service: Service):
    return BookingResponse(booking=await service.complete(user_id, booking_id))
