from timebank.core.booking.repository import BookingRepository
from timebank.core.booking.service import BookingService
from timebank.core.booking.state_machine import BookingStateMachine

__all__ = ["BookingRepository", "BookingService", "BookingStateMachine"]
