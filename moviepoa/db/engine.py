"""Database engine & session management.

The engine is initialized once per process from `config.get_db_path()`.
Callers that need a storage handle receive the session factory explicitly
(`get_session_factory()` / `get_scoped_session()`); every unit of work runs
through `unit_of_work`, which commits on success and rolls back on error.
"""
from __future__ import annotations

import os
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session as SASession
from sqlalchemy.orm import scoped_session, sessionmaker

from moviepoa import config as app_config
from moviepoa.db.models import Base
from moviepoa.utils.logging import get_logger

_engine: Optional[Engine] = None
_SessionFactory: Optional[Callable[[], SASession]] = None
_scoped: Optional[scoped_session] = None
_LOCK = threading.Lock()

LOG = get_logger("moviepoa.db")

READ_ONLY_OPTION = "moviepoa_read_only"


def _install_sqlite_hooks(engine: Engine, *, file_backed: bool) -> None:
    """Serialize writers with BEGIN IMMEDIATE and enable WAL for file DBs.

    pysqlite's own BEGIN handling is disabled. Write transactions take the
    write lock up front, so concurrent rank cascades for the same owner queue
    on the lock instead of interleaving. Connections tagged with
    `READ_ONLY_OPTION` open a plain deferred BEGIN and never take it.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _connection_record):  # pragma: no cover - driver hook
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=ON")
            if file_backed:
                cursor.execute("PRAGMA journal_mode=WAL")
        finally:
            cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):  # pragma: no cover - driver hook
        if conn.get_execution_options().get(READ_ONLY_OPTION):
            conn.exec_driver_sql("BEGIN")
        else:
            conn.exec_driver_sql("BEGIN IMMEDIATE")


def init_engine_once() -> None:
    global _engine, _SessionFactory, _scoped
    if _engine is not None:
        return
    with _LOCK:
        if _engine is not None:
            return
        db_path = app_config.get_db_path()
        LOG.info("Initializing moviepoa database engine at %s", db_path)
        file_backed = db_path != ":memory:"
        if file_backed:
            parent_dir = os.path.dirname(os.path.abspath(db_path)) or "."
            os.makedirs(parent_dir, exist_ok=True)
            if not os.access(parent_dir, os.W_OK):
                raise RuntimeError(f"moviepoa DB directory not writable: {parent_dir}")
        engine = create_engine(f"sqlite:///{db_path}")
        _install_sqlite_hooks(engine, file_backed=file_backed)
        _engine = engine
        _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False, class_=SASession)
        _scoped = scoped_session(_SessionFactory)
        _safe_create_schema()
        LOG.debug("moviepoa schema ready")


def _safe_create_schema() -> None:
    """Run metadata.create_all tolerating the multi-worker startup race.

    Parallel workers may hit OperationalError 'table X already exists'
    between checkfirst and DDL; that one message is benign.
    """
    if _engine is None:
        return
    try:
        Base.metadata.create_all(_engine)
    except OperationalError as e:  # pragma: no cover - concurrency edge
        if "already exists" in str(e).lower():
            LOG.warning("Schema create encountered existing tables (benign race)")
        else:
            raise


def get_engine() -> Engine:
    if _engine is None:
        init_engine_once()
    return _engine  # type: ignore[return-value]


def get_session_factory() -> Callable[[], SASession]:
    if _SessionFactory is None:
        init_engine_once()
    return _SessionFactory  # type: ignore[return-value]


def get_scoped_session() -> scoped_session:
    if _scoped is None:
        init_engine_once()
    if _scoped is None:
        raise RuntimeError("Scoped session could not be initialized.")
    return _scoped


@contextmanager
def unit_of_work(session_factory: Callable[[], SASession], *, read_only: bool = False) -> Iterator[SASession]:
    """Scoped atomic unit of work: full commit or full rollback.

    ``read_only`` units start with a deferred BEGIN so they do not queue
    behind writers for the SQLite write lock.
    """
    sess = session_factory()
    try:
        if read_only:
            sess.connection(execution_options={READ_ONLY_OPTION: True})
        yield sess
        sess.commit()
    except Exception:
        sess.rollback()
        raise
    finally:
        sess.close()


@contextmanager
def app_session(*, read_only: bool = False) -> Iterator[SASession]:
    with unit_of_work(get_scoped_session(), read_only=read_only) as sess:
        yield sess


def ping() -> bool:
    """Trivial DB round-trip used by the health probe."""
    with app_session(read_only=True) as s:
        s.execute(text("SELECT 1"))
    return True


def reset_for_tests(drop: bool = False) -> None:
    global _engine, _SessionFactory, _scoped
    with _LOCK:
        if _scoped is not None:
            _scoped.remove()
        if _engine is not None:
            if drop:
                try:
                    Base.metadata.drop_all(_engine)
                except Exception:
                    LOG.warning("Failed dropping tables during reset", exc_info=True)
            _engine.dispose()
        _engine = None
        _SessionFactory = None
        _scoped = None


__all__ = [
    "init_engine_once",
    "get_engine",
    "get_session_factory",
    "get_scoped_session",
    "unit_of_work",
    "app_session",
    "ping",
    "reset_for_tests",
    "READ_ONLY_OPTION",
]
