"""Unit tests for models, configuration and utilities."""

import pytest
from pydantic import ValidationError

from bookingdesk.core.models import (
    Booking,
    BookingDeskConfig,
    PaymentResult,
    Review,
    Turn,
)
from bookingdesk.utils.ids import SequentialIdGenerator, UUIDGenerator


class TestBookingDeskConfig:
    """Tests for configuration loading."""

    def test_defaults(self, monkeypatch):
        """Test the defaults with an empty environment."""
        for var in ("BOOKINGDESK_MODEL", "INVENTORY_URL", "PORT", "DATABASE_URL"):
            monkeypatch.delenv(var, raising=False)

        config = BookingDeskConfig.from_env()

        assert config.model == "gpt-4o-mini"
        assert config.inventory_url == "https://bot9assignement.deno.dev"
        assert config.port == 3000
        assert config.database_url == "sqlite:///./bookingdesk.db"

    def test_environment_overrides(self, monkeypatch):
        """Test that variables are read and coerced."""
        monkeypatch.setenv("BOOKINGDESK_MODEL", "claude-sonnet-4-20250514")
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("PAYMENT_SUCCESS_RATE", "0.5")

        config = BookingDeskConfig.from_env()

        assert config.model == "claude-sonnet-4-20250514"
        assert config.port == 8080
        assert config.payment_success_rate == 0.5

    def test_empty_variable_ignored(self, monkeypatch):
        """Test that an empty variable keeps the default."""
        monkeypatch.setenv("PORT", "")
        assert BookingDeskConfig.from_env().port == 3000


class TestRecords:
    """Tests for record serialization."""

    def test_booking_json_is_camel_case(self, sample_booking):
        """Test the wire names of a booking."""
        data = sample_booking.to_json()

        assert set(data) == {
            "bookingId", "userId", "roomId", "checkInDate", "checkOutDate", "totalAmount", "isPaid",
        }
        assert data["checkInDate"].startswith("2024-06-01T12:00:00")

    def test_booking_accepts_wire_names(self, sample_booking):
        """Test parsing a booking from its JSON form."""
        assert Booking.model_validate(sample_booking.to_json()) == sample_booking

    def test_turn_json_omits_empty_fields(self):
        """Test that plain turns are just role and content."""
        assert Turn(role="user", content="Hi").to_json() == {"role": "user", "content": "Hi"}

    def test_turn_rejects_unknown_role(self):
        """Test that only user, assistant and function turns exist."""
        with pytest.raises(ValidationError):
            Turn(role="system", content="x")

    def test_review_rating_bounds(self):
        """Test that ratings stay within 1..5."""
        with pytest.raises(ValidationError):
            Review(review_id="R", booking_id="B", user_id="U", rating=6)

    def test_payment_result_json(self):
        """Test the payment result wire form."""
        result = PaymentResult(status="success", message="ok", transaction_id="TXN-1")
        assert result.to_json() == {"status": "success", "message": "ok", "transactionId": "TXN-1"}


class TestIdGenerators:
    """Tests for identifier generation."""

    def test_sequential(self):
        """Test deterministic ids with prefixes."""
        ids = SequentialIdGenerator()
        assert [ids.new_id("TXN-"), ids.new_id(), ids.new_id("PAY-")] == ["TXN-1", "2", "PAY-3"]

    def test_uuid_unique(self):
        """Test that random ids differ and keep the prefix."""
        ids = UUIDGenerator()
        first, second = ids.new_id("TXN-"), ids.new_id("TXN-")
        assert first != second
        assert first.startswith("TXN-")
