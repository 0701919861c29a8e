"""
Payment Processor collaborator. The engine only asks for a checkout; settlement happens elsewhere.

ExternalPaymentProcessor (default) issues a checkout reference and leaves the reservation PENDING until
the payment webhook calls confirm. SimulatedPaymentProcessor confirms at once and exists for development
and tests only (payment_mode=simulated, refused when environment=production).
"""
import logging
import secrets
from typing import NamedTuple, Protocol

from kindling.config import settings
from kindling.core.constants import SIMULATED_CHECKOUT_PREFIX
from kindling.models.reservation import Reservation

logger = logging.getLogger(__name__)


class Checkout(NamedTuple):
    checkout_id: str
    confirmed: bool  # True = payment already captured, reservation can go ACTIVE now


class PaymentProcessor(Protocol):
    def start_checkout(self, reservation: Reservation) -> Checkout:
        """Begin charging reservation.price_usd_cents. Raise to signal the charge was refused."""
        ...


class ExternalPaymentProcessor:
    """Hands off to the hosted checkout; confirmation arrives later via POST /sponsorships/{id}/confirm."""

    def start_checkout(self, reservation: Reservation) -> Checkout:
        checkout_id = f"chk_{reservation.id}_{secrets.token_hex(8)}"
        logger.info(
            "Checkout %s opened for reservation %s (%s cents)",
            checkout_id,
            reservation.id,
            reservation.price_usd_cents,
        )
        return Checkout(checkout_id=checkout_id, confirmed=False)


class SimulatedPaymentProcessor:
    """DEVELOPMENT ONLY: every charge succeeds immediately."""

    def start_checkout(self, reservation: Reservation) -> Checkout:
        checkout_id = f"{SIMULATED_CHECKOUT_PREFIX}{secrets.token_hex(6)}"
        logger.warning("SIMULATED payment: reservation %s confirmed without charge", reservation.id)
        return Checkout(checkout_id=checkout_id, confirmed=True)


def get_payment_processor() -> PaymentProcessor:
    """Processor for the configured payment_mode."""
    if settings.simulate_payment:
        return SimulatedPaymentProcessor()
    return ExternalPaymentProcessor()
