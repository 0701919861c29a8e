from kindling.db.base import Base
from kindling.db.session import get_db, engine, SessionLocal
from kindling.db.tables import ALL_TABLE_NAMES

__all__ = ["get_db", "engine", "SessionLocal", "Base", "ALL_TABLE_NAMES"]
