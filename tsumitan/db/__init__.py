"""Database package exports."""

from tsumitan.db.base import Base
from tsumitan.db.session import build_engine, build_session_factory, get_db_session

__all__ = ["Base", "build_engine", "build_session_factory", "get_db_session"]
