"""Account persistence over a SQL database."""

from __future__ import annotations

from typing import Any

import sqlalchemy as sa
from sqlalchemy.engine import Connection

from .database import Database, accounts_table
from .models import Account, AccountExistsError, AccountNotFoundError


def _values(account: Account) -> dict[str, Any]:
    return {
        "id": account.id,
        "created_at": account.created_at,
        "updated_at": account.updated_at,
        "account_id": account.account_id,
        "balance": account.balance,
    }


def _insert(conn: Connection, account: Account) -> None:
    account.before_create()
    conn.execute(sa.insert(accounts_table).values(**_values(account)))


def _save(conn: Connection, account: Account) -> None:
    """Update the row with the account's id, inserting it if there is none."""
    if account.id is None:
        _insert(conn, account)
        return
    account.before_update()
    values = _values(account)
    del values["id"]
    result = conn.execute(
        sa.update(accounts_table).where(accounts_table.c.id == account.id).values(**values)
    )
    if result.rowcount == 0:
        _insert(conn, account)


class SqlAccountRepository:
    """Reads and writes accounts in the accounts table."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def get_account(self, account_id: str) -> Account:
        """Return the account with this identifier; raise AccountNotFoundError otherwise."""
        with self._db.connect() as conn:
            row = conn.execute(
                sa.select(accounts_table).where(accounts_table.c.account_id == account_id)
            ).first()
        if row is None:
            raise AccountNotFoundError()
        return Account(
            account_id=row.account_id,
            balance=row.balance,
            id=row.id,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def update_account(self, account: Account) -> None:
        """Save the account's current state."""
        with self._db.connect() as conn, conn.begin():
            _save(conn, account)

    def create_account(self, account: Account) -> None:
        """Insert a new account; raise AccountExistsError if its identifier is taken."""
        with self._db.connect() as conn:
            existing = conn.execute(
                sa.select(accounts_table.c.id).where(
                    accounts_table.c.account_id == account.account_id
                )
            ).first()
            if existing is not None:
                raise AccountExistsError()
            try:
                _insert(conn, account)
                conn.commit()
            except sa.exc.IntegrityError as exc:
                conn.rollback()
                raise AccountExistsError() from exc

    def update_accounts_in_tx(self, src_account: Account, dest_account: Account) -> None:
        """Save both accounts in one transaction; neither is saved if one fails."""
        with self._db.connect() as conn, conn.begin():
            _save(conn, src_account)
            _save(conn, dest_account)