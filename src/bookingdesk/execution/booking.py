"""Booking orchestration: reconciles the inventory service with the local ledger."""

import logging
from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone
from typing import Any

from pydantic import ValidationError

from bookingdesk.core.models import Booking, BookingOutcome, BookingUpdate, utcnow
from bookingdesk.execution.inventory import InventoryClient
from bookingdesk.ledger.base import BookingRepository
from bookingdesk.utils.exceptions import (
    BookingPersistenceFailure,
    BookingUpstreamFailure,
    NotFound,
    ValidationFailure,
)

logger = logging.getLogger(__name__)


def _as_positive_int(name: str, value: Any) -> int:
    """Coerce ``value`` to a positive int, accepting integral floats like 3.0."""
    if isinstance(value, bool):
        raise ValidationFailure(f"{name} must be a positive integer")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value <= 0:
        raise ValidationFailure(f"{name} must be a positive integer")
    return value


def _as_text(name: str, value: Any) -> str:
    """Return ``value`` stripped; it must be a non-empty string."""
    if value is None:
        raise ValidationFailure(f"{name} is required")
    if not isinstance(value, str):
        raise ValidationFailure(f"{name} must be a string")
    value = value.strip()
    if not value:
        raise ValidationFailure(f"{name} is required")
    return value


def _as_date(name: str, value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as e:
        raise ValidationFailure(f"{name} must be an ISO date (YYYY-MM-DD)") from e


class BookingOrchestrator:
    """Creates, updates and cancels bookings.

    The inventory service is the source of truth for ``bookingId`` and the
    total price; check-in/check-out dates are computed locally from ``nights``.
    """

    def __init__(
        self,
        inventory: InventoryClient,
        bookings: BookingRepository,
        clock: Callable[[], datetime] = utcnow,
        persist_attempts: int = 3,
    ):
        """Initialize the orchestrator.

        Args:
            inventory: Client for the external inventory service
            bookings: Local booking repository
            clock: Returns the current time (injected for tests)
            persist_attempts: Attempts to write the local row after a remote success
        """
        self.inventory = inventory
        self.bookings = bookings
        self.clock = clock
        self.persist_attempts = max(1, persist_attempts)

    def book(
        self,
        room_id: Any,
        full_name: str,
        email: str,
        nights: Any,
        user_id: str | None = None,
    ) -> BookingOutcome:
        """Book a room remotely and record it locally.

        Args:
            room_id: Inventory room identifier
            full_name: Guest name
            email: Guest contact email
            nights: Length of stay, positive integer
            user_id: Owner of the booking; falls back to ``email`` when unknown

        Returns:
            BookingOutcome with the stored booking and the upstream payload

        Raises:
            ValidationFailure: Invalid arguments (no remote call is made)
            BookingUpstreamFailure: Remote call failed; nothing stored locally
            BookingPersistenceFailure: Remote booking exists but could not be stored
        """
        room_id = _as_positive_int("roomId", room_id)
        nights = _as_positive_int("nights", nights)
        full_name = _as_text("fullName", full_name)
        email = _as_text("email", email)

        payload = self.inventory.create_booking(room_id, full_name, email, nights)

        booking_id = payload.get("bookingId")
        total_price = payload.get("totalPrice")
        if not booking_id or total_price is None:
            raise BookingUpstreamFailure("Inventory response is missing bookingId or totalPrice")
        try:
            total_amount = float(total_price)
        except (TypeError, ValueError) as e:
            raise BookingUpstreamFailure(f"Invalid totalPrice from inventory: {total_price!r}") from e

        check_in = self.clock()
        booking = Booking(
            booking_id=str(booking_id),
            user_id=user_id or email,
            room_id=room_id,
            check_in_date=check_in,
            check_out_date=check_in + timedelta(days=nights),
            total_amount=total_amount,
            is_paid=False,
        )
        self._persist(booking)
        logger.info(
            "Booked room %s for %s: booking %s, %d night(s), total %.2f",
            room_id, booking.user_id, booking.booking_id, nights, total_amount,
        )
        return BookingOutcome(booking=booking, payload=payload)

    def _persist(self, booking: Booking) -> None:
        for attempt in range(1, self.persist_attempts + 1):
            try:
                self.bookings.upsert(booking)
                return
            except Exception as e:
                logger.warning(
                    "Storing booking %s failed (attempt %d/%d): %s",
                    booking.booking_id, attempt, self.persist_attempts, e,
                )
        logger.error(
            "Booking %s exists at the inventory service but has no local record",
            booking.booking_id,
        )
        raise BookingPersistenceFailure(
            f"Could not store booking {booking.booking_id}",
            booking_id=booking.booking_id,
        )

    def get_booking(self, booking_id: str) -> Booking:
        booking = self.bookings.get(booking_id)
        if booking is None:
            raise NotFound(f"Booking not found: {booking_id}")
        return booking

    def list_bookings_for_user(self, user_id: str) -> list[Booking]:
        return self.bookings.list_by_user(user_id)

    def list_bookings_for_room(self, room_id: Any) -> list[Booking]:
        return self.bookings.list_by_room(_as_positive_int("roomId", room_id))

    def get_bookings_in_range(self, start: date | str, end: date | str) -> list[Booking]:
        """Bookings whose check-in date falls within ``[start, end]`` inclusive."""
        start_date = _as_date("startDate", start)
        end_date = _as_date("endDate", end)
        if start_date > end_date:
            raise ValidationFailure("startDate must not be after endDate")
        return self.bookings.list_check_in_between(start_date, end_date)

    def update_booking(self, booking_id: str, fields: dict[str, Any]) -> Booking:
        """Change room or dates of an existing booking.

        Raises:
            ValidationFailure: No updatable field given, or a value is malformed
            NotFound: The booking does not exist
        """
        try:
            update = BookingUpdate.model_validate(fields)
        except ValidationError as e:
            raise ValidationFailure(f"Invalid booking update: {e}") from e

        values = update.model_dump(exclude_none=True)
        if not values:
            raise ValidationFailure("Nothing to update: give roomId, checkInDate or checkOutDate")
        for key in ("check_in_date", "check_out_date"):
            if key in values and values[key].tzinfo is None:
                values[key] = values[key].replace(tzinfo=timezone.utc)

        booking = self.bookings.update(booking_id, values)
        if booking is None:
            raise NotFound(f"Booking not found: {booking_id}")
        logger.info("Updated booking %s: %s", booking_id, sorted(values))
        return booking

    def cancel_booking(self, booking_id: str, user_id: str) -> None:
        """Cancel a booking owned by ``user_id``.

        Cancellation is local only: the inventory service offers no
        cancellation endpoint, so the remote booking is left untouched.

        Raises:
            NotFound: Missing booking, or owned by someone else
        """
        booking = self.bookings.get(booking_id)
        if booking is None or booking.user_id != user_id:
            raise NotFound(f"Booking not found: {booking_id}")
        self.bookings.delete(booking_id)
        logger.info("Cancelled booking %s for %s (local record only)", booking_id, user_id)

    def delete_booking(self, booking_id: str) -> None:
        """Delete a booking without an ownership check."""
        if not self.bookings.delete(booking_id):
            raise NotFound(f"Booking not found: {booking_id}")
        logger.info("Deleted booking %s", booking_id)
