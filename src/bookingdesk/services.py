"""Builds the BookingDesk components from configuration."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from bookingdesk.chains.llm import LLMClient, build_llm_client
from bookingdesk.core.engine import ConversationEngine
from bookingdesk.core.models import BookingDeskConfig, utcnow
from bookingdesk.execution.booking import BookingOrchestrator
from bookingdesk.execution.inventory import InventoryClient
from bookingdesk.execution.payment import (
    PaymentGateway,
    PaymentProcessor,
    SimulatedPaymentGateway,
)
from bookingdesk.ledger.base import Ledger
from bookingdesk.ledger.sql import create_sql_ledger
from bookingdesk.tools.functions import FunctionDispatcher
from bookingdesk.utils.ids import IdGenerator, UUIDGenerator


@dataclass
class Services:
    """Everything the HTTP layer and the CLI need."""

    config: BookingDeskConfig
    ledger: Ledger
    inventory: InventoryClient
    orchestrator: BookingOrchestrator
    payments: PaymentProcessor
    dispatcher: FunctionDispatcher
    engine: ConversationEngine
    id_generator: IdGenerator

    def close(self) -> None:
        self.inventory.close()


def build_services(
    config: BookingDeskConfig,
    ledger: Ledger | None = None,
    llm: LLMClient | None = None,
    inventory: InventoryClient | None = None,
    gateway: PaymentGateway | None = None,
    id_generator: IdGenerator | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> Services:
    """Wire up the services; any collaborator may be overridden (tests do).

    Args:
        config: BookingDesk configuration
        ledger: Ledger to use (defaults to SQLAlchemy on ``config.database_url``)
        llm: Model client (defaults to the provider matching ``config.model``)
        inventory: Inventory client (defaults to ``config.inventory_url``)
        gateway: Payment gateway (defaults to the simulated gateway)
        id_generator: Id generator (defaults to UUIDs)
        clock: Current-time source

    Returns:
        Services bundle
    """
    id_generator = id_generator or UUIDGenerator()
    ledger = ledger or create_sql_ledger(config.database_url)
    inventory = inventory or InventoryClient(
        base_url=config.inventory_url,
        timeout=config.inventory_timeout,
        max_retries=config.inventory_max_retries,
    )
    gateway = gateway or SimulatedPaymentGateway(
        delay=config.payment_delay,
        success_rate=config.payment_success_rate,
        id_generator=id_generator,
    )

    orchestrator = BookingOrchestrator(inventory, ledger.bookings, clock=clock)
    payments = PaymentProcessor(gateway, ledger.bookings, ledger.payments, id_generator=id_generator)
    dispatcher = FunctionDispatcher(inventory, orchestrator, payments)
    engine = ConversationEngine(
        llm=llm or build_llm_client(config),
        dispatcher=dispatcher,
        users=ledger.users,
        conversations=ledger.conversations,
        id_generator=id_generator,
        clock=clock,
    )

    return Services(
        config=config,
        ledger=ledger,
        inventory=inventory,
        orchestrator=orchestrator,
        payments=payments,
        dispatcher=dispatcher,
        engine=engine,
        id_generator=id_generator,
    )
