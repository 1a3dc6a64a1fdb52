"""BookingDesk - conversational hotel booking assistant with a booking and payment ledger."""

from bookingdesk.core.models import (
    Booking,
    BookingDeskConfig,
    Conversation,
    PaymentResult,
    Turn,
    TurnResult,
    User,
)
from bookingdesk.ledger import Ledger, create_memory_ledger, create_sql_ledger
from bookingdesk.execution import (
    BookingOrchestrator,
    InventoryClient,
    PaymentGateway,
    PaymentProcessor,
    SimulatedPaymentGateway,
)
from bookingdesk.tools import FunctionDispatcher
from bookingdesk.core.engine import ConversationEngine
from bookingdesk.services import Services, build_services

__version__ = "0.1.0"

__all__ = [
    "Booking",
    "BookingDeskConfig",
    "BookingOrchestrator",
    "Conversation",
    "ConversationEngine",
    "FunctionDispatcher",
    "InventoryClient",
    "Ledger",
    "PaymentGateway",
    "PaymentProcessor",
    "PaymentResult",
    "Services",
    "SimulatedPaymentGateway",
    "Turn",
    "TurnResult",
    "User",
    "build_services",
    "create_memory_ledger",
    "create_sql_ledger",
]
