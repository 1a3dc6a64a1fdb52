"""Local ledger: users, conversations, bookings, payments, reviews, amenities."""

from bookingdesk.ledger.base import Ledger
from bookingdesk.ledger.memory import create_memory_ledger
from bookingdesk.ledger.sql import create_sql_ledger

__all__ = ["Ledger", "create_memory_ledger", "create_sql_ledger"]
