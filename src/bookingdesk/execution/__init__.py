"""Execution layer: inventory calls, booking orchestration and payments."""

from bookingdesk.execution.booking import BookingOrchestrator
from bookingdesk.execution.inventory import InventoryClient, MockInventoryClient
from bookingdesk.execution.payment import (
    PaymentGateway,
    PaymentProcessor,
    SimulatedPaymentGateway,
)

__all__ = [
    "BookingOrchestrator",
    "InventoryClient",
    "MockInventoryClient",
    "PaymentGateway",
    "PaymentProcessor",
    "SimulatedPaymentGateway",
]
