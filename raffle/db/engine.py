# raffle/db/engine.py
import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from raffle.db.models import Base

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str) -> Engine:
    """Create a SQLAlchemy engine and make sure the schema exists."""
    kwargs = {}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every session gets its own empty database
            kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, **kwargs)
    # Create tables if they don't exist (checkfirst=True prevents errors if tables already exist)
    Base.metadata.create_all(bind=engine, checkfirst=True)
    logger.debug("Raffle DB schema ready → %s", engine.url.render_as_string(hide_password=True))
    return engine
