"""Wires configuration, storage, cache and HTTP components together."""

from __future__ import annotations

from . import logger
from .cache import Cache, new_redis_cache
from .config import Config
from .database import Database, new_postgres_database
from .repository import SqlAccountRepository
from .service import AccountServiceImpl
from .web import AccountController


class Factory:
    """Owns the database and cache connections and builds components on them."""

    def __init__(
        self,
        config: Config,
        *,
        database: Database | None = None,
        cache: Cache | None = None,
    ) -> None:
        self.config = config
        if database is None:
            try:
                database = new_postgres_database(config)
            except Exception as exc:
                logger.error("Failed to connect to database: %s", exc)
                raise
        if cache is None:
            try:
                cache = new_redis_cache(config)
            except Exception as exc:
                logger.error("Failed to connect to Redis: %s", exc)
                database.close()
                raise
        self.database: Database | None = database
        self.cache: Cache | None = cache

    def close(self) -> None:
        """Close the database and cache connections."""
        if self.database is not None:
            self.database.close()
        if self.cache is not None:
            self.cache.close()

    def __enter__(self) -> Factory:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def create_account_controller(self) -> AccountController:
        """Build the account controller with its repository and service."""
        repo = SqlAccountRepository(self.database)
        service = AccountServiceImpl(repo, self.cache)
        return AccountController(service)

    def migrate_db(self) -> None:
        """Create or update the database schema."""
        self.database.migrate()