"""
Database engine, session management, base model and column types.

This module is the foundation for all database operations.
Every model inherits from Base. There is no process-wide
session: callers build an engine and a session factory and
hand the factory to the services that need it.
"""

import enum
from datetime import datetime, timezone
from decimal import Decimal
from functools import lru_cache

from sqlalchemy import BigInteger, CheckConstraint, String, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.types import TypeDecorator

from bank_ledger.config import Settings, get_settings
from bank_ledger.money import from_cents, to_cents, to_money


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# --- Column Types ---

class Money(TypeDecorator):
    """
    Two-place Decimal stored as integer minor units (cents).

    Balance arithmetic in SQL (balance + :delta) is then exact
    integer arithmetic on every backend, including SQLite which
    has no native decimal type.
    """

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return to_cents(to_money(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return from_cents(int(value))

    @property
    def python_type(self):
        return Decimal


class TokenEnum(TypeDecorator):
    """
    Stores a str enum by its token and parses it back strictly.

    An unrecognized token in the database raises instead of
    silently turning into some default variant.
    """

    impl = String(20)
    cache_ok = True

    def __init__(self, enum_class: type[enum.Enum], *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.enum_class = enum_class

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, self.enum_class):
            value = self.enum_class.from_token(value)
        return value.to_token()

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return self.enum_class.from_token(value)

    @property
    def python_type(self):
        return self.enum_class


def token_check(
    column: str, enum_class: type[enum.Enum], name: str
) -> CheckConstraint:
    """CHECK that column holds one of enum_class's tokens."""
    tokens = ", ".join(f"'{member.to_token()}'" for member in enum_class)
    return CheckConstraint(f"{column} IN ({tokens})", name=name)


# --- Base Model Class ---

class Base(DeclarativeBase):
    pass


# --- Engine ---

def _configure_sqlite(engine: Engine) -> None:
    """
    Make SQLite transactions take the write lock up front.

    pysqlite defers BEGIN until the first write, which lets two
    transactions both read and then race to upgrade their locks.
    Emitting BEGIN IMMEDIATE ourselves serializes writers the
    same way row locks do on PostgreSQL.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_store_engine(
    settings: Settings | None = None,
    url: str | None = None,
) -> Engine:
    """
    Create the engine (connection pool) for the ledger store.

    pool_pre_ping=True tests connections before using them,
    which handles cases where the database restarted or a
    connection went stale. The statement timeout from settings
    bounds every statement, including waits on row locks.
    """
    settings = settings or get_settings()
    url = url or settings.DATABASE_URL

    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={
                "check_same_thread": False,
                "timeout": settings.STATEMENT_TIMEOUT_MS / 1000,
            },
            echo=settings.DEBUG,
        )
        _configure_sqlite(engine)
        return engine

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_timeout=settings.POOL_TIMEOUT,
        connect_args={
            "options": f"-c statement_timeout={settings.STATEMENT_TIMEOUT_MS}",
        },
        echo=settings.DEBUG,
    )


# --- Session Factory ---
# autoflush=False means SQLAlchemy won't send SQL to the
# database until we explicitly flush or commit.
# expire_on_commit=False keeps loaded rows readable after the
# unit of work that loaded them has finished.

def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,
    )


@lru_cache()
def get_session_factory() -> sessionmaker:
    """Session factory for the configured database, built on first use."""
    return create_session_factory(create_store_engine())
