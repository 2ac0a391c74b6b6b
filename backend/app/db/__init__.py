"""Database package: shared engine, session factory, and Redis pool."""

from app.db.base import Base, close_db, get_session_factory, init_db
from app.db.redis import close_redis, get_redis, init_redis, ping_redis
from app.db.transaction import run_transaction

__all__ = [
    "Base",
    "close_db",
    "close_redis",
    "get_redis",
    "get_session_factory",
    "init_db",
    "init_redis",
    "ping_redis",
    "run_transaction",
]
