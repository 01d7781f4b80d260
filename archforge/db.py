"""Database session and engine."""
from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from archforge.utils.config import settings


class Base(DeclarativeBase):
    pass


engine = create_engine(settings.database_url, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def init_db() -> None:
    # registers the mapped classes on Base.metadata
    from archforge import db_models  # noqa: F401

    Base.metadata.create_all(bind=engine)
