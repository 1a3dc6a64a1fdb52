"""In-memory ledger for tests and simple use cases."""

import threading
from datetime import date, datetime, timezone
from typing import Any

from pydantic import BaseModel

from bookingdesk.core.models import (
    Amenity,
    Booking,
    Conversation,
    PaymentAttempt,
    Review,
    User,
)
from bookingdesk.ledger.base import (
    AmenityRepository,
    BookingRepository,
    ConversationRepository,
    Ledger,
    PaymentAttemptRepository,
    ReviewRepository,
    UserRepository,
)
from bookingdesk.utils.exceptions import ValidationFailure


def _utc_date(value: datetime) -> date:
    """Calendar day of ``value`` in UTC; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.date()
    return value.astimezone(timezone.utc).date()


class _KeyedStore:
    """Thread-safe dict of copied pydantic records."""

    def __init__(self):
        self._lock = threading.Lock()
        self._data: dict[Any, BaseModel] = {}

    def get(self, key: Any):
        with self._lock:
            record = self._data.get(key)
            return record.model_copy(deep=True) if record else None

    def put(self, key: Any, record: BaseModel, unique: bool = False):
        with self._lock:
            if unique and key in self._data:
                raise ValidationFailure(f"Duplicate key: {key}")
            self._data[key] = record.model_copy(deep=True)
        return record

    def pop(self, key: Any) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def values(self) -> list:
        with self._lock:
            return [r.model_copy(deep=True) for r in self._data.values()]


class InMemoryUserRepository(UserRepository):
    def __init__(self):
        self._store = _KeyedStore()

    def get(self, user_id: str) -> User | None:
        return self._store.get(user_id)

    def list_all(self) -> list[User]:
        return self._store.values()

    def add(self, user: User) -> User:
        return self._store.put(user.user_id, user, unique=True)

    def save(self, user: User) -> User:
        return self._store.put(user.user_id, user)


class InMemoryConversationRepository(ConversationRepository):
    def __init__(self):
        self._store = _KeyedStore()

    def get(self, user_id: str) -> Conversation | None:
        return self._store.get(user_id)

    def save(self, conversation: Conversation) -> Conversation:
        return self._store.put(conversation.user_id, conversation)

    def delete(self, user_id: str) -> bool:
        return self._store.pop(user_id)


class InMemoryBookingRepository(BookingRepository):
    def __init__(self):
        self._store = _KeyedStore()
        self._write_lock = threading.Lock()

    def get(self, booking_id: str) -> Booking | None:
        return self._store.get(booking_id)

    def upsert(self, booking: Booking) -> Booking:
        return self._store.put(booking.booking_id, booking)

    def update(self, booking_id: str, values: dict[str, Any]) -> Booking | None:
        with self._write_lock:
            booking = self._store.get(booking_id)
            if booking is None:
                return None
            updated = booking.model_copy(update=values)
            self._store.put(booking_id, updated)
            return updated

    def delete(self, booking_id: str) -> bool:
        return self._store.pop(booking_id)

    def list_by_user(self, user_id: str) -> list[Booking]:
        return [b for b in self._store.values() if b.user_id == user_id]

    def list_by_room(self, room_id: int) -> list[Booking]:
        return [b for b in self._store.values() if b.room_id == room_id]

    def list_check_in_between(self, start: date, end: date) -> list[Booking]:
        return [
            b for b in self._store.values()
            if start <= _utc_date(b.check_in_date) <= end
        ]


class InMemoryPaymentAttemptRepository(PaymentAttemptRepository):
    def __init__(self):
        self._lock = threading.Lock()
        self._attempts: list[PaymentAttempt] = []

    def add(self, attempt: PaymentAttempt) -> PaymentAttempt:
        with self._lock:
            self._attempts.append(attempt.model_copy(deep=True))
        return attempt

    def list_for_booking(self, booking_id: str) -> list[PaymentAttempt]:
        with self._lock:
            return [a.model_copy() for a in self._attempts if a.booking_id == booking_id]


class InMemoryReviewRepository(ReviewRepository):
    def __init__(self):
        self._lock = threading.Lock()
        self._reviews: list[Review] = []

    def add(self, review: Review) -> Review:
        with self._lock:
            self._reviews.append(review.model_copy())
        return review

    def list_by_booking(self, booking_id: str) -> list[Review]:
        with self._lock:
            return [r.model_copy() for r in self._reviews if r.booking_id == booking_id]

    def list_by_user(self, user_id: str) -> list[Review]:
        with self._lock:
            return [r.model_copy() for r in self._reviews if r.user_id == user_id]


class InMemoryAmenityRepository(AmenityRepository):
    def __init__(self):
        self._store = _KeyedStore()

    def get(self, amenity_id: str) -> Amenity | None:
        return self._store.get(amenity_id)

    def list_all(self) -> list[Amenity]:
        return self._store.values()

    def add(self, amenity: Amenity) -> Amenity:
        return self._store.put(amenity.amenity_id, amenity, unique=True)

    def save(self, amenity: Amenity) -> Amenity:
        return self._store.put(amenity.amenity_id, amenity)

    def delete(self, amenity_id: str) -> bool:
        return self._store.pop(amenity_id)


def create_memory_ledger() -> Ledger:
    """Build a ledger backed entirely by process memory."""
    return Ledger(
        users=InMemoryUserRepository(),
        conversations=InMemoryConversationRepository(),
        bookings=InMemoryBookingRepository(),
        payments=InMemoryPaymentAttemptRepository(),
        reviews=InMemoryReviewRepository(),
        amenities=InMemoryAmenityRepository(),
    )
