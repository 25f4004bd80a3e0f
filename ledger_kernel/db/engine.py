"""
Module: ledger_kernel.db.engine
Responsibility: SQLAlchemy engine initialization, session factory management,
    transactional scope utilities, and translation of store failures into
    kernel exceptions.  This is the single point of database connection
    configuration for the entire system.
Architecture position: Kernel > DB.  May import from db/base.py and
    exceptions.py.  MUST NOT import from services/, selectors/ or domain/
    (except create_tables, which imports models to register their tables).

Invariants enforced:
    - Atomicity: session_scope() commits on success and rolls back on any
      exception, so a multi-row mutation is never partially applied.
    - Store failures are distinct: OperationalError / InterfaceError /
      pool TimeoutError become StoreUnavailableError or StoreTimeoutError,
      never a validation error.  No implicit retries happen here.

Failure modes:
    - RuntimeError if get_engine/get_session is called before
      init_engine_from_url().
    - StoreUnavailableError / StoreTimeoutError from store_errors().
"""

import atexit
import functools
from contextlib import contextmanager
from typing import Callable, Generator, TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ledger_kernel.exceptions import StoreTimeoutError, StoreUnavailableError
from ledger_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

F = TypeVar("F", bound=Callable)

# Module-level engine and session factory
_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_TIMEOUT_MARKERS = ("timeout", "timed out", "canceling statement", "lock wait")


def build_engine(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create an engine for the given URL without touching module state.

    PostgreSQL (the production store) gets a pooled engine at READ
    COMMITTED.  SQLite is supported for tests and local tooling; an
    in-memory database is pinned to one shared connection.
    """
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite":
        kwargs: dict = {"echo": echo}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
            kwargs["connect_args"] = {"check_same_thread": False}
        engine = create_engine(url, **kwargs)
        event.listen(engine, "connect", _configure_sqlite_connection)
        event.listen(engine, "begin", _begin_sqlite_transaction)
        return engine

    return create_engine(
        url,
        echo=echo,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=pool_pre_ping,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
        isolation_level="READ COMMITTED",
    )


def _configure_sqlite_connection(dbapi_connection, connection_record) -> None:
    # pysqlite defers BEGIN to the first DML, which breaks SAVEPOINT.
    # Autocommit at the driver level plus an explicit BEGIN on "begin"
    # makes SQLAlchemy own the transaction boundaries.
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_sqlite_transaction(connection) -> None:
    connection.exec_driver_sql("BEGIN")


def init_engine_from_url(database_url: str, echo: bool = False, **pool_options) -> Engine:
    """Build the process-wide engine and session factory, replacing any previous one."""
    global _engine, _SessionFactory

    reset_engine()
    _engine = build_engine(database_url, echo=echo, **pool_options)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, "echo": echo},
    )
    return _engine


def _require_engine() -> Engine:
    if _engine is None or _SessionFactory is None:
        raise RuntimeError("No database configured; call init_engine_from_url() first")
    return _engine


def get_engine() -> Engine:
    return _require_engine()


def get_session() -> Session:
    """Open a session on the configured engine; the caller closes it."""
    _require_engine()
    return _SessionFactory()


@contextmanager
def store_errors() -> Generator[None, None, None]:
    """
    Translate store-level failures into kernel exceptions.

    The original exception is chained as ``__cause__``.  Integrity errors
    are NOT translated here; callers that expect them (unique codes)
    handle them explicitly.
    """
    try:
        yield
    except PoolTimeoutError as exc:
        raise StoreTimeoutError(str(exc)) from exc
    except (OperationalError, InterfaceError, DisconnectionError) as exc:
        detail = str(getattr(exc, "orig", None) or exc)
        if any(marker in detail.lower() for marker in _TIMEOUT_MARKERS):
            raise StoreTimeoutError(detail) from exc
        raise StoreUnavailableError(detail) from exc


def translate_store_errors(func: F) -> F:
    """Decorator form of store_errors() for service and selector methods."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        with store_errors():
            return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    One unit of work: commit if the block finishes, roll back if it raises.

    Services only flush, so everything done with the yielded session lands
    in a single commit::

        with session_scope() as session:
            JournalService(session).create_entry(header, lines, actor)
    """
    session = get_session()
    try:
        with store_errors():
            yield session
            session.commit()
        logger.debug("unit_of_work_committed")
    except Exception:
        session.rollback()
        logger.warning("unit_of_work_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def _metadata():
    # Importing the table modules registers them on Base.metadata.
    import ledger_kernel.models  # noqa: F401
    import ledger_kernel.services.sequence_service  # noqa: F401
    from ledger_kernel.db.base import Base

    return Base.metadata


def create_tables(engine: Engine | None = None) -> None:
    _metadata().create_all(engine or get_engine())


def drop_tables(engine: Engine | None = None) -> None:
    """Drop every ledger table.  Test teardown only."""
    _metadata().drop_all(engine or get_engine())


def reset_engine() -> None:
    """Dispose the configured engine and forget the session factory."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


atexit.register(reset_engine)
