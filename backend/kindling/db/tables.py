"""
Single source of truth for database tables that exist after migrations.

Use these names when writing raw SQL (e.g. TRUNCATE). Order is child-first so TRUNCATE/DELETE respects FKs.
"""
ALL_TABLE_NAMES = (
    "reservations",
    "ad_slots",
    "sites",
)
