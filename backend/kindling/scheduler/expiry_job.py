"""Runs every expiry_sweep_interval_seconds: mark ended reservations EXPIRED."""
import logging

from kindling.db.session import SessionLocal
from kindling.services.expiry_service import expire_reservations

logger = logging.getLogger(__name__)


def run_expiry_sweep_job() -> None:
    db = SessionLocal()
    try:
        expire_reservations(db)
    except Exception as e:
        db.rollback()
        logger.warning("Expiry sweep failed: %s", e, exc_info=True)
    finally:
        db.close()
