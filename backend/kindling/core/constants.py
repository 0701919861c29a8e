"""
Centralized constants for the slot engine and scheduler.

Change job IDs, budgets or intervals here instead of scattering literals across services and routes.
"""
from datetime import timedelta

# Every slot has a 100% share budget at each instant
SHARE_BUDGET_PCT = 100
MIN_SHARE_PCT = 1
MAX_SHARE_PCT = 100

# Booking durations are billed in whole days, rounded up
BILLING_DAY = timedelta(days=1)

# Scheduler job IDs (must match ids used in main.py add_job)
EXPIRY_SWEEP_JOB_ID = "reservation_expiry_sweep"

# Checkout references issued by the simulated payment processor start with this prefix
SIMULATED_CHECKOUT_PREFIX = "sim_"
