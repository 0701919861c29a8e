"""
FastAPI app entrypoint.

Slot engine: sites/slots setup, sponsorship booking with capacity control, weighted ad serving.
"""
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load .env from backend/ before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from kindling.api.routes import sites, slots, sponsorships, widget
from kindling.config import settings
from kindling.core.constants import EXPIRY_SWEEP_JOB_ID
from kindling.core.errors import SlotEngineError, slot_engine_error_handler
from kindling.scheduler.expiry_job import run_expiry_sweep_job

logger = logging.getLogger(__name__)

_scheduler = BackgroundScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.scheduler_enabled:
        _scheduler.add_job(
            run_expiry_sweep_job,
            "interval",
            seconds=settings.expiry_sweep_interval_seconds,
            id=EXPIRY_SWEEP_JOB_ID,
            replace_existing=True,
        )
        _scheduler.start()
        app.state.scheduler = _scheduler
    if settings.simulate_payment:
        logger.warning("SIMULATED PAYMENT MODE: sponsorships are confirmed without charging (environment=%s)", settings.environment)
    logger.info("Kindling backend ready (environment=%s, payment_mode=%s)", settings.environment, settings.payment_mode)
    yield
    if _scheduler.running:
        _scheduler.shutdown(wait=False)


app = FastAPI(title="Kindling Slot Engine", version="0.1.0", lifespan=lifespan)

# CORS: dev origins + optional CORS_ORIGINS env (comma-separated); the widget is embedded on publisher sites
_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_cors_extra = os.getenv("CORS_ORIGINS", "")
if _cors_extra:
    _cors_origins.extend(o.strip() for o in _cors_extra.split(",") if o.strip())
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(SlotEngineError, slot_engine_error_handler)

app.include_router(sites.router, tags=["sites"])
app.include_router(slots.router, tags=["slots"])
app.include_router(sponsorships.router, tags=["sponsorships"])
app.include_router(widget.router, tags=["widget"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "payment_mode": settings.payment_mode}
