"""Database module for the link shortener."""
from shortlink.db.base import (
    DatabaseHealthCheck,
    create_session_factory,
    get_engine,
    get_session,
    init_models,
)
from shortlink.db.session import SessionManager, db_transaction, get_db

__all__ = [
    "DatabaseHealthCheck",
    "create_session_factory",
    "get_engine",
    "get_session",
    "init_models",
    "SessionManager",
    "db_transaction",
    "get_db",
]
