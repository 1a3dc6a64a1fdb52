"""Utility functions and exceptions."""

from bookingdesk.utils.exceptions import (
    BookingDeskError,
    BookingPersistenceFailure,
    BookingRejected,
    BookingUpstreamFailure,
    ChatProcessingFailed,
    InventoryUnavailable,
    LLMError,
    NotFound,
    Unauthenticated,
    ValidationFailure,
)
from bookingdesk.utils.ids import IdGenerator, SequentialIdGenerator, UUIDGenerator

__all__ = [
    "BookingDeskError",
    "BookingPersistenceFailure",
    "BookingRejected",
    "BookingUpstreamFailure",
    "ChatProcessingFailed",
    "InventoryUnavailable",
    "LLMError",
    "NotFound",
    "Unauthenticated",
    "ValidationFailure",
    "IdGenerator",
    "SequentialIdGenerator",
    "UUIDGenerator",
]
