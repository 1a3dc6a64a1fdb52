"""Core module for BookingDesk."""

from bookingdesk.core.locks import KeyedLock
from bookingdesk.core.models import (
    Amenity,
    Booking,
    BookingDeskConfig,
    Conversation,
    PaymentAttempt,
    PaymentResult,
    Review,
    Turn,
    TurnResult,
    User,
)

__all__ = [
    "KeyedLock",
    "Amenity",
    "Booking",
    "BookingDeskConfig",
    "Conversation",
    "PaymentAttempt",
    "PaymentResult",
    "Review",
    "Turn",
    "TurnResult",
    "User",
]
