"""Custom exceptions for BookingDesk."""


class BookingDeskError(Exception):
    """Base exception for BookingDesk errors."""

    pass


class Unauthenticated(BookingDeskError):
    """The caller did not supply a user identity."""

    pass


class ValidationFailure(BookingDeskError):
    """Required fields are missing or malformed."""

    pass


class NotFound(BookingDeskError):
    """A referenced record does not exist (or is not visible to the caller)."""

    pass


class BookingUpstreamFailure(BookingDeskError):
    """The external inventory service failed to create or list bookings."""

    pass


class InventoryUnavailable(BookingUpstreamFailure):
    """Transport error, timeout or 5xx from the inventory service."""

    pass


class BookingRejected(BookingUpstreamFailure):
    """The inventory service refused the booking (4xx)."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class BookingPersistenceFailure(BookingUpstreamFailure):
    """The remote booking exists but the local ledger row could not be written."""

    def __init__(self, message: str, booking_id: str):
        super().__init__(message)
        self.booking_id = booking_id


class LLMError(BookingDeskError):
    """Error calling the language model."""

    pass


class ChatProcessingFailed(BookingDeskError):
    """A chat turn could not be completed."""

    pass
