#!/usr/bin/env python3
"""
Quick checks so the backend can start. Run from backend/:
  python scripts/check_backend.py
"""
import os
import sys
from pathlib import Path

# Run from backend/
backend_dir = Path(__file__).resolve().parent.parent
os.chdir(backend_dir)
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))


def main():
    errors = []

    # 1) .env
    env_file = backend_dir / ".env"
    if not env_file.exists():
        errors.append("backend/.env missing. Copy from backend/.env.example and set DATABASE_URL.")
    else:
        print("OK  .env exists")

    # 2) Settings (rejects simulated payment in production)
    try:
        from kindling.config import settings
        print(f"OK  Settings (environment={settings.environment}, payment_mode={settings.payment_mode})")
    except Exception as e:
        errors.append(f"Settings: {e}")
        print("FAIL Settings:", e)
        return 1

    # 3) DB connection and schema
    try:
        from sqlalchemy import inspect, text
        from kindling.db.session import engine
        from kindling.db.tables import ALL_TABLE_NAMES
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("OK  Database connection (DATABASE_URL)")
        missing = set(ALL_TABLE_NAMES) - set(inspect(engine).get_table_names())
        if missing:
            errors.append(f"Missing tables {sorted(missing)}: run `alembic upgrade head`")
            print("FAIL Schema: missing", sorted(missing))
        else:
            print("OK  Schema (all tables present)")
    except Exception as e:
        errors.append(f"Database: {e}")
        print("FAIL Database:", e)

    # 4) App import (catches missing deps, bad imports)
    try:
        from kindling.main import app  # noqa: F401
        print("OK  App import (kindling.main)")
    except Exception as e:
        errors.append(f"App import: {e}")
        print("FAIL App import:", e)

    if errors:
        print("\nFix the above, then run:")
        print("  cd backend && uvicorn kindling.main:app --reload --host 0.0.0.0 --port 8000")
        return 1
    print("\nAll checks passed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
