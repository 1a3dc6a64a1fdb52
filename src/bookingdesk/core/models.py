"""Pydantic models for BookingDesk."""

import os
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

PaymentMethod = Literal["credit_card", "debit_card", "paypal"]
PAYMENT_METHODS: tuple[str, ...] = ("credit_card", "debit_card", "paypal")


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class BookingDeskConfig(BaseModel):
    """Configuration for the BookingDesk services."""

    model: str = Field(default="gpt-4o-mini", description="Chat model (gpt-* for OpenAI, claude-* for Anthropic)")
    openai_api_key: str | None = Field(default=None, description="OpenAI API key")
    openai_base_url: str | None = Field(default=None, description="Optional OpenAI-compatible base URL")
    anthropic_api_key: str | None = Field(default=None, description="Anthropic API key")
    llm_timeout: float = Field(default=60.0, description="Timeout for model calls in seconds")
    llm_max_retries: int = Field(default=2, description="Max SDK retries for model calls")
    inventory_url: str = Field(
        default="https://bot9assignement.deno.dev",
        description="Base URL of the external inventory service",
    )
    inventory_timeout: float = Field(default=10.0, description="Timeout for inventory calls in seconds")
    inventory_max_retries: int = Field(default=2, description="Max retries for inventory transport errors")
    database_url: str = Field(default="sqlite:///./bookingdesk.db", description="SQLAlchemy database URL")
    payment_delay: float = Field(default=1.0, description="Simulated gateway latency in seconds")
    payment_success_rate: float = Field(default=0.9, description="Simulated gateway success probability")
    log_level: str = Field(default="INFO", description="Log level")
    log_file: str | None = Field(default=None, description="Optional log file path")
    host: str = Field(default="0.0.0.0", description="HTTP bind host")
    port: int = Field(default=3000, description="HTTP port")

    @classmethod
    def from_env(cls) -> "BookingDeskConfig":
        """Build a config from environment variables (call ``load_dotenv`` first)."""
        env_map = {
            "model": "BOOKINGDESK_MODEL",
            "openai_api_key": "OPENAI_API_KEY",
            "openai_base_url": "OPENAI_BASE_URL",
            "anthropic_api_key": "ANTHROPIC_API_KEY",
            "llm_timeout": "LLM_TIMEOUT",
            "llm_max_retries": "LLM_MAX_RETRIES",
            "inventory_url": "INVENTORY_URL",
            "inventory_timeout": "INVENTORY_TIMEOUT",
            "inventory_max_retries": "INVENTORY_MAX_RETRIES",
            "database_url": "DATABASE_URL",
            "payment_delay": "PAYMENT_DELAY",
            "payment_success_rate": "PAYMENT_SUCCESS_RATE",
            "log_level": "LOG_LEVEL",
            "log_file": "LOG_FILE",
            "host": "HOST",
            "port": "PORT",
        }
        values = {
            field: os.environ[env_var]
            for field, env_var in env_map.items()
            if os.environ.get(env_var)
        }
        return cls(**values)


class RecordModel(BaseModel):
    """Base for ledger records: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict[str, Any]:
        """Dump with camelCase keys and JSON-compatible values."""
        return self.model_dump(mode="json", by_alias=True)


class User(RecordModel):
    """A chat user."""

    user_id: str
    full_name: str | None = None
    email: str | None = None
    last_interaction: datetime | None = None


class Turn(RecordModel):
    """One entry of a conversation transcript.

    Function turns carry both the call issued by the model (``name``,
    ``arguments``, ``call_id``) and the dispatcher's result in ``content``.
    """

    role: Literal["user", "assistant", "function"]
    content: str = ""
    name: str | None = None
    arguments: dict[str, Any] | None = None
    call_id: str | None = None

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Conversation(RecordModel):
    """The single active transcript of a user."""

    user_id: str
    messages: list[Turn] = Field(default_factory=list)


class Booking(RecordModel):
    """Local record of a booking created by the inventory service."""

    booking_id: str
    user_id: str
    room_id: int
    check_in_date: datetime
    check_out_date: datetime
    total_amount: float
    is_paid: bool = False


class BookingUpdate(RecordModel):
    """Fields a caller may change on an existing booking."""

    room_id: int | None = None
    check_in_date: datetime | None = None
    check_out_date: datetime | None = None


class PaymentAttempt(RecordModel):
    """Audit entry for one settlement attempt."""

    attempt_id: str
    booking_id: str
    amount: float
    method: str
    status: Literal["success", "failed"]
    transaction_id: str | None = None
    message: str = ""
    created_at: datetime = Field(default_factory=utcnow)


class Review(RecordModel):
    """Guest feedback on a booking."""

    review_id: str
    booking_id: str
    user_id: str
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""


class Amenity(RecordModel):
    """Hotel amenity."""

    amenity_id: str
    name: str
    description: str = ""


class BookingOutcome(BaseModel):
    """Result of a successful booking: the local row and the upstream payload."""

    booking: Booking
    payload: dict[str, Any] = Field(default_factory=dict)


class GatewayResponse(BaseModel):
    """Raw answer from a payment gateway."""

    success: bool
    transaction_id: str | None = None
    message: str = ""


class PaymentResult(RecordModel):
    """Reported outcome of ``process_payment``; a decline is a normal result."""

    status: Literal["success", "failed"]
    message: str
    transaction_id: str | None = None

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class FunctionCall(BaseModel):
    """A structured function call issued by the model."""

    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    call_id: str | None = None


class LLMReply(BaseModel):
    """What the model returned: natural-language content or a function call."""

    content: str | None = None
    function_call: FunctionCall | None = None


class TurnResult(BaseModel):
    """Result of one chat turn."""

    reply: str
    messages: list[Turn] = Field(default_factory=list)
