"""Payment settlement for bookings."""

import logging
import math
import random
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from bookingdesk.core.locks import KeyedLock
from bookingdesk.core.models import (
    PAYMENT_METHODS,
    GatewayResponse,
    PaymentAttempt,
    PaymentResult,
)
from bookingdesk.ledger.base import BookingRepository, PaymentAttemptRepository
from bookingdesk.utils.exceptions import NotFound, ValidationFailure
from bookingdesk.utils.ids import IdGenerator, UUIDGenerator

logger = logging.getLogger(__name__)


class PaymentGateway(ABC):
    """A payment provider. ``charge`` blocks until the provider answers."""

    @abstractmethod
    def charge(self, booking_id: str, amount: float, method: str) -> GatewayResponse:
        """Charge ``amount`` for ``booking_id``.

        Returns:
            GatewayResponse with success flag and transaction id
        """
        pass


class SimulatedPaymentGateway(PaymentGateway):
    """Gateway stand-in with fixed latency and a probabilistic outcome."""

    def __init__(
        self,
        delay: float = 1.0,
        success_rate: float = 0.9,
        rng: random.Random | None = None,
        id_generator: IdGenerator | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.delay = max(0.0, delay)
        self.success_rate = success_rate
        self.rng = rng or random.Random()
        self.id_generator = id_generator or UUIDGenerator()
        self._sleep = sleep

    def charge(self, booking_id: str, amount: float, method: str) -> GatewayResponse:
        if self.delay:
            self._sleep(self.delay)

        if self.rng.random() < self.success_rate:
            return GatewayResponse(
                success=True,
                transaction_id=self.id_generator.new_id("TXN-"),
                message="Payment processed successfully",
            )
        return GatewayResponse(success=False, message="Payment declined by gateway")


class PaymentProcessor:
    """Settles bookings through a gateway and keeps an attempt log.

    Settlement is serialized per booking, and a booking that is already paid
    is never charged again.
    """

    def __init__(
        self,
        gateway: PaymentGateway,
        bookings: BookingRepository,
        attempts: PaymentAttemptRepository,
        id_generator: IdGenerator | None = None,
        locks: KeyedLock | None = None,
    ):
        self.gateway = gateway
        self.bookings = bookings
        self.attempts = attempts
        self.id_generator = id_generator or UUIDGenerator()
        self.locks = locks if locks is not None else KeyedLock()

    def process_payment(self, booking_id: str, amount: Any, method: str) -> PaymentResult:
        """Settle a booking.

        A gateway decline is reported as ``status="failed"``, not raised.

        Raises:
            ValidationFailure: Bad amount or method
            NotFound: Unknown booking
        """
        if not booking_id:
            raise ValidationFailure("bookingId is required")
        if method not in PAYMENT_METHODS:
            raise ValidationFailure(f"method must be one of {', '.join(PAYMENT_METHODS)}")
        try:
            amount = float(amount)
        except (TypeError, ValueError) as e:
            raise ValidationFailure("amount must be a number") from e
        if not math.isfinite(amount):
            raise ValidationFailure("amount must be a finite number")
        if amount <= 0:
            raise ValidationFailure("amount must be positive")

        with self.locks.hold(booking_id):
            booking = self.bookings.get(booking_id)
            if booking is None:
                raise NotFound(f"Booking not found: {booking_id}")

            previous = [a for a in self.attempts.list_for_booking(booking_id) if a.status == "success"]
            if booking.is_paid or previous:
                transaction_id = previous[-1].transaction_id if previous else None
                if not booking.is_paid:
                    self.bookings.update(booking_id, {"is_paid": True})
                logger.info("Booking %s already paid; not charging again", booking_id)
                return PaymentResult(
                    status="success",
                    message=f"Booking {booking_id} is already paid.",
                    transaction_id=transaction_id,
                )

            try:
                response = self.gateway.charge(booking_id, amount, method)
            except Exception:
                logger.exception("Payment gateway error for booking %s", booking_id)
                response = GatewayResponse(success=False, message="Gateway error")

            if response.success:
                return self._settle(booking_id, amount, method, response)

            self._record(booking_id, amount, method, "failed", None, response.message)
            logger.info("Payment for booking %s failed: %s", booking_id, response.message)
            return PaymentResult(
                status="failed",
                message="Payment processing failed. Please try again.",
            )

    def _settle(
        self,
        booking_id: str,
        amount: float,
        method: str,
        response: GatewayResponse,
    ) -> PaymentResult:
        transaction_id = response.transaction_id or self.id_generator.new_id("TXN-")
        # The gateway has charged: the caller gets the transaction id even if a ledger write fails.
        # A success attempt without the flag is repaired by the already-paid check.
        try:
            self._record(booking_id, amount, method, "success", transaction_id, response.message)
        except Exception:
            logger.exception(
                "Booking %s charged (%s) but the payment attempt could not be recorded",
                booking_id, transaction_id,
            )
        try:
            self.bookings.update(booking_id, {"is_paid": True})
        except Exception:
            logger.exception(
                "Booking %s charged (%s) but could not be marked paid",
                booking_id, transaction_id,
            )
        logger.info("Booking %s paid: %.2f via %s (%s)", booking_id, amount, method, transaction_id)
        return PaymentResult(
            status="success",
            message=(
                f"Payment of ${amount:.2f} processed via {method}. "
                f"Transaction ID: {transaction_id}"
            ),
            transaction_id=transaction_id,
        )

    def _record(
        self,
        booking_id: str,
        amount: float,
        method: str,
        status: str,
        transaction_id: str | None,
        message: str,
    ) -> None:
        self.attempts.add(PaymentAttempt(
            attempt_id=self.id_generator.new_id("PAY-"),
            booking_id=booking_id,
            amount=amount,
            method=method,
            status=status,
            transaction_id=transaction_id,
            message=message,
        ))

    def list_attempts(self, booking_id: str) -> list[PaymentAttempt]:
        """Audit log of settlement attempts for a booking."""
        return self.attempts.list_for_booking(booking_id)
