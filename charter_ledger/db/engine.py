"""
Module: charter_ledger.db.engine
Responsibility: Engine initialization, session factory, and transactional
    scope.  The single point of database connection configuration.
Architecture position: Ledger > DB.  create_tables()/drop_tables() import the
    models package so Base.metadata is complete; nothing else here does.

Invariants enforced:
    - PostgreSQL runs at READ COMMITTED with pooled, pre-pinged connections.
    - SQLite (test suite, local tooling) gets real transactional SAVEPOINT
      support: the pysqlite driver's implicit transaction handling is turned
      off and BEGIN is emitted explicitly, so Session.begin_nested() works.
    - Foreign keys are enforced on SQLite connections.
    - session_scope() commits on success and rolls back on any exception.
    - Immutability listeners are registered whenever an engine is initialized.

Failure modes:
    - RuntimeError if get_engine()/get_session() is called before
      init_engine_from_url().
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from charter_ledger.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def _is_sqlite_url(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """Hand transaction control to SQLAlchemy so SAVEPOINT nests correctly."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(database_url: str, echo: bool = False, **pool_options) -> Engine:
    """
    Create an engine configured for the ledger without touching module state.

    Args:
        database_url: SQLAlchemy URL.  ``sqlite://`` gives a private
            in-memory database shared by every session of this engine.
        echo: Log SQL statements.
        **pool_options: Passed to create_engine for PostgreSQL URLs.
    """
    if _is_sqlite_url(database_url):
        options: dict = {"echo": echo}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            options.update(
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        engine = create_engine(database_url, **options)
        _enable_sqlite_savepoints(engine)
        return engine

    pool_options.setdefault("pool_size", 20)
    pool_options.setdefault("max_overflow", 10)
    pool_options.setdefault("pool_pre_ping", True)
    pool_options.setdefault("pool_recycle", 1800)
    return create_engine(
        database_url,
        echo=echo,
        isolation_level="READ COMMITTED",
        **pool_options,
    )


def init_engine_from_url(database_url: str, echo: bool = False, **pool_options) -> Engine:
    """
    Initialize the module-level engine and session factory.

    Postconditions: get_engine()/get_session()/session_scope() use this
        engine until reset_engine() is called.  A second call replaces the
        first engine.
    """
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()

    _engine = build_engine(database_url, echo=echo, **pool_options)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    from charter_ledger.db.immutability import register_immutability_listeners

    register_immutability_listeners()

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, "echo": echo},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session() -> Session:
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory()


def get_session_factory() -> sessionmaker[Session]:
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Transactional scope around a series of operations.

    Commits on normal exit; rolls back and re-raises on exception.

    Usage:
        with session_scope() as session:
            EventProcessor(session, clock).create_and_process(...)
    """
    session = get_session()
    logger.debug("transaction_started")
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables(engine: Engine | None = None) -> None:
    """Create every ledger table on the given (or module-level) engine."""
    from charter_ledger.db.base import Base
    import charter_ledger.models  # noqa: F401  registers all tables

    Base.metadata.create_all(engine or get_engine())


def drop_tables(engine: Engine | None = None) -> None:
    """Drop every ledger table. Tests and local tooling only."""
    from charter_ledger.db.base import Base
    import charter_ledger.models  # noqa: F401

    Base.metadata.drop_all(engine or get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
        _engine = None
    _SessionFactory = None
