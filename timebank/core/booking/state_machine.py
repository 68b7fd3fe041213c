from timebank.common.constants import BookingStatus


class BookingStateMachine:
    ALLOWED_TRANSITIONS = {
        BookingStatus.PENDING: [BookingStatus.ACCEPTED, BookingStatus.DECLINED, BookingStatus.CANCELLED],
        BookingStatus.ACCEPTED: [BookingStatus.COMPLETED, BookingStatus.CANCELLED],
        BookingStatus.DECLINED: [],
        BookingStatus.CANCELLED: [],
        BookingStatus.COMPLETED: [],
    }

    @staticmethod
    def can_transition(current_status: str, new_status: str) -> bool:
        try:
            curr = BookingStatus(current_status)
            new = BookingStatus(new_status)
        except ValueError:
            return False
        return new in BookingStateMachine.ALLOWED_TRANSITIONS.get(curr, [])

    @staticmethod
    def sources_for(new_status: BookingStatus) -> list[BookingStatus]:
        """Статусы, из которых разрешён переход в new_status."""
        return [
            status
            for status, targets in BookingStateMachine.ALLOWED_TRANSITIONS.items()
            if new_status in targets
        ]
