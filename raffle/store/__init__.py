# raffle/store/__init__.py
import logging
from typing import Optional

from raffle.store.base import Store
from raffle.store.memory import MemoryStore
from raffle.store.sql import SqlStore

logger = logging.getLogger(__name__)


def create_store(database_url: Optional[str] = None) -> Store:
    """
    Build the store for this process.

    ``database_url`` is any SQLAlchemy URL; without one an in-memory store is
    returned. Construct it once at startup and close it at shutdown.
    """
    if not database_url:
        logger.info("No database configured, using in-memory store")
        return MemoryStore()

    logger.info("Using SQL store")
    return SqlStore(database_url)


__all__ = [
    "Store",
    "MemoryStore",
    "SqlStore",
    "create_store",
]
