"""Repository interfaces for the local ledger."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Any

from bookingdesk.core.models import (
    Amenity,
    Booking,
    Conversation,
    PaymentAttempt,
    Review,
    User,
)


class UserRepository(ABC):
    """Storage for users."""

    @abstractmethod
    def get(self, user_id: str) -> User | None:
        """Return the user or None."""
        pass

    @abstractmethod
    def list_all(self) -> list[User]:
        """Return every user."""
        pass

    @abstractmethod
    def add(self, user: User) -> User:
        """Insert a new user.

        Raises:
            ValidationFailure: If the user id is already taken
        """
        pass

    @abstractmethod
    def save(self, user: User) -> User:
        """Insert or replace a user."""
        pass


class ConversationRepository(ABC):
    """Storage for per-user transcripts."""

    @abstractmethod
    def get(self, user_id: str) -> Conversation | None:
        """Return the user's conversation or None."""
        pass

    @abstractmethod
    def save(self, conversation: Conversation) -> Conversation:
        """Replace the stored transcript with ``conversation`` as a whole."""
        pass

    @abstractmethod
    def delete(self, user_id: str) -> bool:
        """Drop the user's conversation. Returns True if one existed."""
        pass


class BookingRepository(ABC):
    """Storage for bookings."""

    @abstractmethod
    def get(self, booking_id: str) -> Booking | None:
        """Return the booking or None."""
        pass

    @abstractmethod
    def upsert(self, booking: Booking) -> Booking:
        """Insert or replace by ``booking_id``. Safe to repeat."""
        pass

    @abstractmethod
    def update(self, booking_id: str, values: dict[str, Any]) -> Booking | None:
        """Apply ``values`` to an existing booking.

        Returns:
            The updated booking, or None if it does not exist
        """
        pass

    @abstractmethod
    def delete(self, booking_id: str) -> bool:
        """Delete a booking. Returns True if a row was removed."""
        pass

    @abstractmethod
    def list_by_user(self, user_id: str) -> list[Booking]:
        """Bookings owned by ``user_id``."""
        pass

    @abstractmethod
    def list_by_room(self, room_id: int) -> list[Booking]:
        """Bookings for ``room_id``."""
        pass

    @abstractmethod
    def list_check_in_between(self, start: date, end: date) -> list[Booking]:
        """Bookings whose check-in date lies in ``[start, end]`` (inclusive)."""
        pass


class PaymentAttemptRepository(ABC):
    """Append-only payment audit log."""

    @abstractmethod
    def add(self, attempt: PaymentAttempt) -> PaymentAttempt:
        """Record an attempt."""
        pass

    @abstractmethod
    def list_for_booking(self, booking_id: str) -> list[PaymentAttempt]:
        """Attempts for a booking, oldest first."""
        pass


class ReviewRepository(ABC):
    """Append-only review storage."""

    @abstractmethod
    def add(self, review: Review) -> Review:
        pass

    @abstractmethod
    def list_by_booking(self, booking_id: str) -> list[Review]:
        pass

    @abstractmethod
    def list_by_user(self, user_id: str) -> list[Review]:
        pass


class AmenityRepository(ABC):
    """Amenity storage."""

    @abstractmethod
    def get(self, amenity_id: str) -> Amenity | None:
        pass

    @abstractmethod
    def list_all(self) -> list[Amenity]:
        pass

    @abstractmethod
    def add(self, amenity: Amenity) -> Amenity:
        pass

    @abstractmethod
    def save(self, amenity: Amenity) -> Amenity:
        pass

    @abstractmethod
    def delete(self, amenity_id: str) -> bool:
        pass


@dataclass
class Ledger:
    """Bundle of repositories handed to the services."""

    users: UserRepository
    conversations: ConversationRepository
    bookings: BookingRepository
    payments: PaymentAttemptRepository
    reviews: ReviewRepository
    amenities: AmenityRepository
