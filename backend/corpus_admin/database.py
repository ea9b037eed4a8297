"""SQLAlchemy engine and declarative base for the local gateway.

Provides the shared engine and the declarative base for the ``sources`` and
``chunks`` tables. SQLite connections enable WAL mode via an event listener.
In-memory URLs share one connection through ``StaticPool`` so every caller
sees the same database.
"""
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool
from corpus_admin.config import get_settings


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
    pass


def make_engine(url: str, echo: bool = False) -> Engine:
    connect_args = {}
    kwargs = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    engine = create_engine(url, connect_args=connect_args, echo=echo, **kwargs)
    if url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL;")
            cursor.execute("PRAGMA encoding='UTF-8';")
            cursor.close()
            # Ensure Python sqlite3 returns str (UTF-8) for TEXT columns
            dbapi_conn.text_factory = str
    return engine


def _get_engine() -> Engine:
    settings = get_settings()
    return make_engine(settings.DATABASE_URL, echo=settings.DEBUG)


engine = _get_engine()


def create_tables(bind: Engine | None = None) -> None:
    """Create all tables from ORM metadata."""
    import corpus_admin.models  # noqa: F401  (registers the tables on Base.metadata)
    Base.metadata.create_all(bind=bind or engine)
