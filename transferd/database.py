"""Relational storage: the accounts schema and the engine's lifecycle."""

from __future__ import annotations

import logging
from typing import Protocol

import sqlalchemy as sa
from sqlalchemy.engine import Connection, Engine

from .config import Config
from .models import Account

_log = logging.getLogger(__name__)

metadata = sa.MetaData()

accounts_table = sa.Table(
    Account.TABLE_NAME,
    metadata,
    sa.Column("id", sa.Uuid, primary_key=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("account_id", sa.String),
    sa.Column("balance", sa.Double),
    sa.Index("idx_accounts_account_id", "account_id", unique=True),
)


class Database(Protocol):
    """Access to a relational database."""

    def connect(self) -> Connection: ...

    def migrate(self) -> None: ...

    def close(self) -> None: ...


class SqlDatabase:
    """Database over a SQLAlchemy engine."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def connect(self) -> Connection:
        """Open a connection; use it as a context manager."""
        return self.engine.connect()

    def migrate(self) -> None:
        """Create the tables that do not exist yet."""
        metadata.create_all(self.engine)

    def close(self) -> None:
        self.engine.dispose()

    def __enter__(self) -> SqlDatabase:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def new_postgres_database(config: Config) -> SqlDatabase:
    """Connect to PostgreSQL as configured and check that it answers."""
    db = config.database
    url = sa.engine.URL.create(
        "postgresql",
        username=db.user,
        password=db.password or None,
        host=db.host,
        port=int(db.port),
        database=db.name,
        query={"sslmode": db.sslmode},
    )
    engine = sa.create_engine(url, pool_pre_ping=True)
    try:
        with engine.connect():
            pass
    except Exception:
        engine.dispose()
        raise
    _log.info("Connected to PostgreSQL database")
    return SqlDatabase(engine)