"""Functions exposed to the model and the dispatcher that executes them."""

import logging
from typing import Any

from bookingdesk.core.models import PAYMENT_METHODS, FunctionCall
from bookingdesk.execution.booking import BookingOrchestrator
from bookingdesk.execution.inventory import InventoryClient
from bookingdesk.execution.payment import PaymentProcessor
from bookingdesk.utils.exceptions import (
    BookingUpstreamFailure,
    NotFound,
    ValidationFailure,
)

logger = logging.getLogger(__name__)

FUNCTION_DEFINITIONS: list[dict[str, Any]] = [
    {
        "name": "get_rooms",
        "description": "Get available hotel rooms",
        "input_schema": {"type": "object", "properties": {}},
    },
    {
        "name": "book_room",
        "description": "Book a hotel room",
        "input_schema": {
            "type": "object",
            "properties": {
                "roomId": {"type": "number"},
                "fullName": {"type": "string"},
                "email": {"type": "string"},
                "nights": {"type": "number"},
            },
            "required": ["roomId", "fullName", "email", "nights"],
        },
    },
    {
        "name": "process_payment",
        "description": "Process payment for a booking",
        "input_schema": {
            "type": "object",
            "properties": {
                "bookingId": {"type": "string"},
                "amount": {"type": "number"},
                "method": {"type": "string", "enum": list(PAYMENT_METHODS)},
            },
            "required": ["bookingId", "amount", "method"],
        },
    },
]

_DEFINITIONS_BY_NAME = {d["name"]: d for d in FUNCTION_DEFINITIONS}


def to_openai_tools(definitions: list[dict[str, Any]] = FUNCTION_DEFINITIONS) -> list[dict[str, Any]]:
    """Convert function definitions to OpenAI ``tools`` format."""
    return [
        {
            "type": "function",
            "function": {
                "name": d["name"],
                "description": d.get("description", ""),
                "parameters": d.get("input_schema", {"type": "object", "properties": {}}),
            },
        }
        for d in definitions
    ]


def _missing_fields(name: str, arguments: dict[str, Any]) -> list[str]:
    required = _DEFINITIONS_BY_NAME[name]["input_schema"].get("required", [])
    return [f for f in required if arguments.get(f) in (None, "")]


class FunctionDispatcher:
    """Runs a model-issued function call and returns a JSON-serializable result.

    Failures come back as ``{"error": ...}`` so the model can explain them to
    the user; nothing raised here reaches the conversation engine except
    programming errors.
    """

    def __init__(
        self,
        inventory: InventoryClient,
        orchestrator: BookingOrchestrator,
        payments: PaymentProcessor,
    ):
        self.inventory = inventory
        self.orchestrator = orchestrator
        self.payments = payments

    def dispatch(self, call: FunctionCall, user_id: str | None = None) -> Any:
        """Execute ``call`` on behalf of ``user_id``."""
        if call.name not in _DEFINITIONS_BY_NAME:
            logger.warning("Model requested unknown function %s", call.name)
            return {"error": f"Unknown function: {call.name}"}

        arguments = call.arguments or {}
        missing = _missing_fields(call.name, arguments)
        if missing:
            return {"error": f"Missing required fields: {', '.join(missing)}"}

        logger.info("Dispatching %s for user %s", call.name, user_id)
        if call.name == "get_rooms":
            return self._get_rooms()
        if call.name == "book_room":
            return self._book_room(arguments, user_id)
        return self._process_payment(arguments)

    def _get_rooms(self) -> list[dict[str, Any]]:
        # The model sees "no rooms" instead of an error.
        try:
            return self.inventory.list_rooms()
        except BookingUpstreamFailure as e:
            logger.error("Fetching rooms failed: %s", e)
            return []

    def _book_room(self, arguments: dict[str, Any], user_id: str | None) -> dict[str, Any]:
        try:
            outcome = self.orchestrator.book(
                room_id=arguments["roomId"],
                full_name=arguments["fullName"],
                email=arguments["email"],
                nights=arguments["nights"],
                user_id=user_id,
            )
        except ValidationFailure as e:
            return {"error": str(e)}
        except BookingUpstreamFailure as e:
            logger.error("book_room failed: %s", e)
            return {"error": "The booking could not be completed. Please try again later."}

        result = outcome.booking.to_json()
        result["message"] = "Booking confirmed"
        return result

    def _process_payment(self, arguments: dict[str, Any]) -> dict[str, Any]:
        method = arguments["method"]
        if method not in PAYMENT_METHODS:
            return {"error": f"Unsupported payment method: {method}"}

        try:
            result = self.payments.process_payment(
                booking_id=str(arguments["bookingId"]),
                amount=arguments["amount"],
                method=method,
            )
        except (ValidationFailure, NotFound) as e:
            return {"error": str(e)}
        return result.to_json()
