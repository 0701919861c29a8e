"""
Centralized error taxonomy for the slot engine.

Services raise these; routes stay thin and a single exception handler turns them into JSON responses.
Status codes live in ERROR_STATUS so new error types are easy to add.
"""
from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

# HTTP status codes for known error categories
STATUS_BAD_REQUEST = 400
STATUS_PAYMENT_REQUIRED = 402
STATUS_NOT_FOUND = 404
STATUS_CONFLICT = 409
STATUS_SERVICE_UNAVAILABLE = 503  # transient, client may retry


class SlotEngineError(Exception):
    """Base for all errors surfaced to callers. `code` is stable and machine-readable."""

    code = "slot_engine_error"

    def __init__(self, message: str, **detail: Any):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_detail(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, **self.detail}


class InvalidInput(SlotEngineError):
    """Malformed share, duration, price or creative. Caller error, never retried."""

    code = "invalid_input"


class UrlAlreadyExists(InvalidInput):
    code = "url_already_exists"


class NotFound(SlotEngineError):
    code = "not_found"


class SlotInactive(SlotEngineError):
    code = "slot_inactive"


class CapacityExceeded(SlotEngineError):
    """Overlapping reservations leave less share than requested. Caller may retry with less share or another window."""

    code = "capacity_exceeded"

    def __init__(self, available: int, requested: int):
        super().__init__(
            "Slot is full for the requested time period",
            available=available,
            requested=requested,
        )
        self.available = available
        self.requested = requested


class ConcurrencyConflict(SlotEngineError):
    """Another admission changed the slot ledger mid-check. Safe to retry the whole admission from scratch."""

    code = "concurrency_conflict"


class InvalidTransition(SlotEngineError):
    """Reservation status change not allowed from its current status."""

    code = "invalid_transition"


class PaymentRefused(SlotEngineError):
    """The payment processor would not open a checkout. The reservation has already been cancelled."""

    code = "payment_refused"


# First match wins, so subclasses go before their bases.
ERROR_STATUS: list[tuple[type[SlotEngineError], int]] = [
    (UrlAlreadyExists, STATUS_CONFLICT),
    (InvalidInput, STATUS_BAD_REQUEST),
    (NotFound, STATUS_NOT_FOUND),
    (SlotInactive, STATUS_CONFLICT),
    (CapacityExceeded, STATUS_CONFLICT),
    (ConcurrencyConflict, STATUS_SERVICE_UNAVAILABLE),
    (InvalidTransition, STATUS_CONFLICT),
    (PaymentRefused, STATUS_PAYMENT_REQUIRED),
]


def status_for(exc: SlotEngineError) -> int:
    for exc_type, status_code in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return status_code
    return STATUS_BAD_REQUEST


async def slot_engine_error_handler(request: Request, exc: SlotEngineError) -> JSONResponse:
    """FastAPI exception handler: SlotEngineError -> JSON body with code and structured detail."""
    return JSONResponse(status_code=status_for(exc), content=exc.to_detail())
