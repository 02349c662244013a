"""
Database engine, session factory, and metadata shared across the application.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeMeta, declarative_base, sessionmaker

from app.core.config import settings

logger = logging.getLogger(__name__)

_DEFAULT_POOL_KWARGS: dict[str, Any] = {
    "pool_size": 5,
    "max_overflow": 5,
    # Fail fast when the pool is exhausted; the pipeline has its own deadline
    "pool_timeout": 5,
    "pool_recycle": 300,
    "pool_pre_ping": True,
}

_DEFAULT_CONNECT_ARGS: dict[str, Any] = {
    "connect_timeout": 5,
    # Cap runaway statements below the pipeline deadline
    "options": "-c statement_timeout=10000",
    "application_name": "kalm_api",
}


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _build_engine_kwargs(db_url: str) -> dict[str, Any]:
    """Engine options per dialect; SQLite gets no pool tuning."""
    if _is_sqlite(db_url):
        return {"connect_args": {"check_same_thread": False}}
    kwargs = dict(_DEFAULT_POOL_KWARGS)
    kwargs["connect_args"] = dict(_DEFAULT_CONNECT_ARGS)
    return kwargs


def build_engine(db_url: str, *, echo: bool = False) -> Engine:
    return create_engine(db_url, echo=echo, future=True, **_build_engine_kwargs(db_url))


engine: Engine = build_engine(settings.database_url, echo=settings.database_echo)


@event.listens_for(engine, "connect")
def receive_connect(dbapi_connection: Any, connection_record: Any) -> None:
    connection_record.info["connect_time"] = datetime.now()
    logger.debug("Database connection established")


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

Base: DeclarativeMeta = declarative_base()


def init_db(bind: Engine | None = None) -> None:
    """Create all tables for the registered models."""
    import app.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
