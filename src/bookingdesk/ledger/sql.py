"""SQLAlchemy-backed ledger."""

import json
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text, create_engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from bookingdesk.core.models import (
    Amenity,
    Booking,
    Conversation,
    PaymentAttempt,
    Review,
    Turn,
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

Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"
    user_id = Column(String(128), primary_key=True)
    full_name = Column(String(200), nullable=True)
    email = Column(String(200), nullable=True)
    last_interaction = Column(DateTime, nullable=True)


class ConversationRow(Base):
    __tablename__ = "conversations"
    user_id = Column(String(128), primary_key=True)
    messages = Column(Text, nullable=False, default="[]")  # JSON list of turns


class BookingRow(Base):
    __tablename__ = "bookings"
    booking_id = Column(String(64), primary_key=True)  # assigned by the inventory service
    user_id = Column(String(200), nullable=False, index=True)
    room_id = Column(Integer, nullable=False, index=True)
    check_in_date = Column(DateTime, nullable=False, index=True)
    check_out_date = Column(DateTime, nullable=False)
    total_amount = Column(Float, nullable=False)
    is_paid = Column(Boolean, nullable=False, default=False)


class PaymentAttemptRow(Base):
    __tablename__ = "payment_attempts"
    attempt_id = Column(String(64), primary_key=True)
    booking_id = Column(String(64), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    method = Column(String(32), nullable=False)
    status = Column(String(16), nullable=False)
    transaction_id = Column(String(64), nullable=True)
    message = Column(Text, default="")
    created_at = Column(DateTime, nullable=False)


class ReviewRow(Base):
    __tablename__ = "reviews"
    review_id = Column(String(64), primary_key=True)
    booking_id = Column(String(64), nullable=False, index=True)
    user_id = Column(String(128), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, default="")


class AmenityRow(Base):
    __tablename__ = "amenities"
    amenity_id = Column(String(64), primary_key=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, default="")


# SQLite has no timezone support: store naive UTC, hand back aware UTC.
def _to_db(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _from_db(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _user(row: UserRow) -> User:
    return User(
        user_id=row.user_id,
        full_name=row.full_name,
        email=row.email,
        last_interaction=_from_db(row.last_interaction),
    )


def _booking(row: BookingRow) -> Booking:
    return Booking(
        booking_id=row.booking_id,
        user_id=row.user_id,
        room_id=row.room_id,
        check_in_date=_from_db(row.check_in_date),
        check_out_date=_from_db(row.check_out_date),
        total_amount=row.total_amount,
        is_paid=bool(row.is_paid),
    )


def _booking_row(booking: Booking) -> BookingRow:
    return BookingRow(
        booking_id=booking.booking_id,
        user_id=booking.user_id,
        room_id=booking.room_id,
        check_in_date=_to_db(booking.check_in_date),
        check_out_date=_to_db(booking.check_out_date),
        total_amount=booking.total_amount,
        is_paid=booking.is_paid,
    )


class SqlUserRepository(UserRepository):
    def __init__(self, session_factory: sessionmaker):
        self._sessions = session_factory

    def get(self, user_id: str) -> User | None:
        with self._sessions() as session:
            row = session.get(UserRow, user_id)
            return _user(row) if row else None

    def list_all(self) -> list[User]:
        with self._sessions() as session:
            return [_user(r) for r in session.scalars(select(UserRow))]

    def add(self, user: User) -> User:
        try:
            with self._sessions.begin() as session:
                session.add(self._row(user))
        except IntegrityError as e:
            raise ValidationFailure(f"User already exists: {user.user_id}") from e
        return user

    def save(self, user: User) -> User:
        with self._sessions.begin() as session:
            session.merge(self._row(user))
        return user

    @staticmethod
    def _row(user: User) -> UserRow:
        return UserRow(
            user_id=user.user_id,
            full_name=user.full_name,
            email=user.email,
            last_interaction=_to_db(user.last_interaction),
        )


class SqlConversationRepository(ConversationRepository):
    def __init__(self, session_factory: sessionmaker):
        self._sessions = session_factory

    def get(self, user_id: str) -> Conversation | None:
        with self._sessions() as session:
            row = session.get(ConversationRow, user_id)
            if row is None:
                return None
            turns = [Turn.model_validate(t) for t in json.loads(row.messages or "[]")]
            return Conversation(user_id=row.user_id, messages=turns)

    def save(self, conversation: Conversation) -> Conversation:
        payload = json.dumps([t.model_dump(mode="json") for t in conversation.messages])
        with self._sessions.begin() as session:
            session.merge(ConversationRow(user_id=conversation.user_id, messages=payload))
        return conversation

    def delete(self, user_id: str) -> bool:
        with self._sessions.begin() as session:
            row = session.get(ConversationRow, user_id)
            if row is None:
                return False
            session.delete(row)
            return True


class SqlBookingRepository(BookingRepository):
    def __init__(self, session_factory: sessionmaker):
        self._sessions = session_factory

    def get(self, booking_id: str) -> Booking | None:
        with self._sessions() as session:
            row = session.get(BookingRow, booking_id)
            return _booking(row) if row else None

    def upsert(self, booking: Booking) -> Booking:
        with self._sessions.begin() as session:
            session.merge(_booking_row(booking))
        return booking

    def update(self, booking_id: str, values: dict[str, Any]) -> Booking | None:
        with self._sessions.begin() as session:
            row = session.get(BookingRow, booking_id, with_for_update=True)
            if row is None:
                return None
            for key, value in values.items():
                if isinstance(value, datetime):
                    value = _to_db(value)
                setattr(row, key, value)
            session.flush()
            return _booking(row)

    def delete(self, booking_id: str) -> bool:
        with self._sessions.begin() as session:
            row = session.get(BookingRow, booking_id)
            if row is None:
                return False
            session.delete(row)
            return True

    def list_by_user(self, user_id: str) -> list[Booking]:
        return self._select(BookingRow.user_id == user_id)

    def list_by_room(self, room_id: int) -> list[Booking]:
        return self._select(BookingRow.room_id == room_id)

    def list_check_in_between(self, start: date, end: date) -> list[Booking]:
        lower = datetime.combine(start, time.min)
        upper = datetime.combine(end + timedelta(days=1), time.min)
        return self._select(BookingRow.check_in_date >= lower, BookingRow.check_in_date < upper)

    def _select(self, *conditions) -> list[Booking]:
        stmt = select(BookingRow).where(*conditions).order_by(BookingRow.check_in_date)
        with self._sessions() as session:
            return [_booking(r) for r in session.scalars(stmt)]


class SqlPaymentAttemptRepository(PaymentAttemptRepository):
    def __init__(self, session_factory: sessionmaker):
        self._sessions = session_factory

    def add(self, attempt: PaymentAttempt) -> PaymentAttempt:
        with self._sessions.begin() as session:
            session.add(PaymentAttemptRow(
                attempt_id=attempt.attempt_id,
                booking_id=attempt.booking_id,
                amount=attempt.amount,
                method=attempt.method,
                status=attempt.status,
                transaction_id=attempt.transaction_id,
                message=attempt.message,
                created_at=_to_db(attempt.created_at),
            ))
        return attempt

    def list_for_booking(self, booking_id: str) -> list[PaymentAttempt]:
        stmt = (
            select(PaymentAttemptRow)
            .where(PaymentAttemptRow.booking_id == booking_id)
            .order_by(PaymentAttemptRow.created_at)
        )
        with self._sessions() as session:
            return [
                PaymentAttempt(
                    attempt_id=r.attempt_id,
                    booking_id=r.booking_id,
                    amount=r.amount,
                    method=r.method,
                    status=r.status,
                    transaction_id=r.transaction_id,
                    message=r.message or "",
                    created_at=_from_db(r.created_at),
                )
                for r in session.scalars(stmt)
            ]


class SqlReviewRepository(ReviewRepository):
    def __init__(self, session_factory: sessionmaker):
        self._sessions = session_factory

    def add(self, review: Review) -> Review:
        with self._sessions.begin() as session:
            session.add(ReviewRow(**review.model_dump()))
        return review

    def list_by_booking(self, booking_id: str) -> list[Review]:
        return self._select(ReviewRow.booking_id == booking_id)

    def list_by_user(self, user_id: str) -> list[Review]:
        return self._select(ReviewRow.user_id == user_id)

    def _select(self, condition) -> list[Review]:
        with self._sessions() as session:
            return [
                Review(
                    review_id=r.review_id,
                    booking_id=r.booking_id,
                    user_id=r.user_id,
                    rating=r.rating,
                    comment=r.comment or "",
                )
                for r in session.scalars(select(ReviewRow).where(condition))
            ]


class SqlAmenityRepository(AmenityRepository):
    def __init__(self, session_factory: sessionmaker):
        self._sessions = session_factory

    def get(self, amenity_id: str) -> Amenity | None:
        with self._sessions() as session:
            row = session.get(AmenityRow, amenity_id)
            return self._amenity(row) if row else None

    def list_all(self) -> list[Amenity]:
        with self._sessions() as session:
            return [self._amenity(r) for r in session.scalars(select(AmenityRow))]

    def add(self, amenity: Amenity) -> Amenity:
        try:
            with self._sessions.begin() as session:
                session.add(AmenityRow(**amenity.model_dump()))
        except IntegrityError as e:
            raise ValidationFailure(f"Amenity already exists: {amenity.amenity_id}") from e
        return amenity

    def save(self, amenity: Amenity) -> Amenity:
        with self._sessions.begin() as session:
            session.merge(AmenityRow(**amenity.model_dump()))
        return amenity

    def delete(self, amenity_id: str) -> bool:
        with self._sessions.begin() as session:
            row = session.get(AmenityRow, amenity_id)
            if row is None:
                return False
            session.delete(row)
            return True

    @staticmethod
    def _amenity(row: AmenityRow) -> Amenity:
        return Amenity(amenity_id=row.amenity_id, name=row.name, description=row.description or "")


def create_sql_ledger(database_url: str) -> Ledger:
    """Build a ledger on a SQLAlchemy engine, creating tables if needed.

    Args:
        database_url: SQLAlchemy URL, e.g. ``sqlite:///./bookingdesk.db``

    Returns:
        Ledger whose repositories share one session factory
    """
    engine_kwargs: dict[str, Any] = {}
    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            engine_kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, **engine_kwargs)
    Base.metadata.create_all(bind=engine)
    session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    return Ledger(
        users=SqlUserRepository(session_factory),
        conversations=SqlConversationRepository(session_factory),
        bookings=SqlBookingRepository(session_factory),
        payments=SqlPaymentAttemptRepository(session_factory),
        reviews=SqlReviewRepository(session_factory),
        amenities=SqlAmenityRepository(session_factory),
    )
