#!/usr/bin/env python3
"""Mark reservations whose window has ended as EXPIRED (same as the scheduled sweep).
Run from backend: python scripts/expire_reservations.py
"""
import sys
from pathlib import Path

backend_dir = Path(__file__).resolve().parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from kindling.db.session import SessionLocal
from kindling.services.expiry_service import expire_reservations


def main():
    db = SessionLocal()
    try:
        total = expire_reservations(db)
        print(f"Expired {total} reservations.")
    except Exception as e:
        db.rollback()
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
