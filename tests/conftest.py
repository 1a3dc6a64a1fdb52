"""Pytest configuration and shared fixtures."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from bookingdesk.chains.llm import LLMClient
from bookingdesk.core.models import Booking, GatewayResponse
from bookingdesk.execution.booking import BookingOrchestrator
from bookingdesk.execution.inventory import MockInventoryClient
from bookingdesk.execution.payment import PaymentGateway, PaymentProcessor
from bookingdesk.ledger import create_memory_ledger
from bookingdesk.tools.functions import FunctionDispatcher
from bookingdesk.utils.ids import SequentialIdGenerator

FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class RecordingGateway(PaymentGateway):
    """Gateway that records charges and answers from a scripted list (default: approve)."""

    def __init__(self):
        self.outcomes: list[bool] = []
        self.charges: list[tuple[str, float, str]] = []

    def charge(self, booking_id: str, amount: float, method: str) -> GatewayResponse:
        self.charges.append((booking_id, amount, method))
        approved = self.outcomes.pop(0) if self.outcomes else True
        if approved:
            return GatewayResponse(
                success=True,
                transaction_id=f"TXN-{len(self.charges)}",
                message="Payment processed successfully",
            )
        return GatewayResponse(success=False, message="Payment declined by gateway")


@pytest.fixture
def fixed_now() -> datetime:
    """The instant every injected clock returns."""
    return FIXED_NOW


@pytest.fixture
def clock(fixed_now):
    """A clock frozen at ``fixed_now``."""
    return lambda: fixed_now


@pytest.fixture
def ledger():
    """A fresh in-memory ledger."""
    return create_memory_ledger()


@pytest.fixture
def id_generator() -> SequentialIdGenerator:
    """Deterministic ids."""
    return SequentialIdGenerator()


@pytest.fixture
def sample_rooms() -> list[dict]:
    """Rooms as the inventory service lists them."""
    return [
        {"id": 1, "name": "Deluxe Room", "price": 100, "description": "King bed, sea view"},
        {"id": 2, "name": "Suite", "price": 250, "description": "Two rooms, balcony"},
    ]


@pytest.fixture
def inventory(sample_rooms) -> MockInventoryClient:
    """Inventory stub that confirms every booking as BK-100 for 300."""
    return MockInventoryClient(
        rooms=sample_rooms,
        booking_response={"bookingId": "BK-100", "totalPrice": 300},
    )


@pytest.fixture
def gateway() -> RecordingGateway:
    """Payment gateway stub; approves unless ``outcomes`` says otherwise."""
    return RecordingGateway()


@pytest.fixture
def orchestrator(inventory, ledger, clock) -> BookingOrchestrator:
    return BookingOrchestrator(inventory, ledger.bookings, clock=clock)


@pytest.fixture
def payments(gateway, ledger, id_generator) -> PaymentProcessor:
    return PaymentProcessor(gateway, ledger.bookings, ledger.payments, id_generator=id_generator)


@pytest.fixture
def dispatcher(inventory, orchestrator, payments) -> FunctionDispatcher:
    return FunctionDispatcher(inventory, orchestrator, payments)


@pytest.fixture
def fake_llm() -> MagicMock:
    """LLM client mock; set ``complete.return_value`` or ``side_effect`` per test."""
    return MagicMock(spec=LLMClient)


@pytest.fixture
def sample_booking(fixed_now) -> Booking:
    """An unpaid three-night booking owned by alice."""
    return Booking(
        booking_id="BK-1",
        user_id="alice",
        room_id=1,
        check_in_date=fixed_now,
        check_out_date=fixed_now.replace(day=4),
        total_amount=300.0,
    )
