"""
Gold Bottom Ent. Portal — SQLAlchemy database setup for the key-value store.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from portal.config import settings


class Base(DeclarativeBase):
    pass


def make_engine(url: str | None = None) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across sessions."""
    url = url or settings.database_url
    if url.startswith("sqlite") and ":memory:" in url:
        return create_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(
        url,
        echo=False,
        # pool settings only for server databases
        **({} if url.startswith("sqlite") else {"pool_pre_ping": True, "pool_recycle": 300}),
    )


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create all tables (used at startup and in tests)."""
    # Import models so they register on Base.metadata
    import portal.models  # noqa: F401

    Base.metadata.create_all(engine)


def close_db(engine: Engine) -> None:
    engine.dispose()
