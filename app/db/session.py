from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.db.base import normalize_database_url


def _configure_sqlite(engine: Engine) -> None:
    """Make SQLite behave like the production database for our purposes.

    pysqlite's implicit transaction handling is disabled so that every
    transaction starts with BEGIN IMMEDIATE: writers serialize at BEGIN
    instead of failing when upgrading a read lock, and SAVEPOINT works.
    """

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    """Process-wide storage handle: one engine and its session factory.

    Created once at startup, handed to request handlers through the
    ``get_db`` dependency and disposed at shutdown.
    """

    def __init__(self, url: str, **engine_kwargs) -> None:
        self.url = normalize_database_url(url)
        if self.url.startswith("sqlite"):
            connect_args = engine_kwargs.pop("connect_args", {})
            connect_args.setdefault("check_same_thread", False)
            connect_args.setdefault("timeout", 30)
            self.engine = create_engine(self.url, connect_args=connect_args, **engine_kwargs)
            _configure_sqlite(self.engine)
        else:
            engine_kwargs.setdefault("pool_pre_ping", True)
            self.engine = create_engine(self.url, **engine_kwargs)

        self.session_factory = sessionmaker(
            autocommit=False, autoflush=False, bind=self.engine
        )

    def session(self) -> Session:
        return self.session_factory()

    def dispose(self) -> None:
        self.engine.dispose()
