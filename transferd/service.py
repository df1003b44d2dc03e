"""Account operations: lookups, creation and locked transfers between accounts."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager

from .cache import Cache
from .models import (
    Account,
    AccountNotFoundError,
    AccountRepository,
    ApiResponse,
    GetAccountResponse,
)

_log = logging.getLogger(__name__)

UPDATE_ACCOUNT_LOCK_KEY = "update_account:{}"


class ServiceError(Exception):
    """A failed operation; carries the response to show the caller."""

    def __init__(self, message: str, response: ApiResponse) -> None:
        super().__init__(message)
        self.response = response


class LockTimeoutError(ServiceError):
    """A resource lock could not be taken in time."""

    def __init__(self, key: str) -> None:
        super().__init__(
            f"timed out waiting for {key}",
            ApiResponse("Failed to acquire lock for transaction"),
        )
        self.key = key


class AccountServiceImpl:
    """Account service that serialises transfers with cache locks."""

    def __init__(
        self,
        repo: AccountRepository,
        cache: Cache,
        lock_poll_interval: float = 0.01,
        lock_wait_timeout: float = 0.1,
    ) -> None:
        self._repo = repo
        self._cache = cache
        self._lock_poll_interval = lock_poll_interval
        self._lock_wait_timeout = lock_wait_timeout

    def _acquire(self, key: str) -> None:
        deadline = time.monotonic() + self._lock_wait_timeout
        while True:
            try:
                if self._cache.lock(key, 0):
                    return
            except Exception as exc:  # any cache failure counts as "not yet"
                _log.debug("lock attempt for %s failed: %s", key, exc)
            if time.monotonic() > deadline:
                raise LockTimeoutError(key)
            time.sleep(self._lock_poll_interval)

    def _release(self, key: str) -> None:
        try:
            self._cache.release(key)
        except Exception as exc:
            _log.warning("failed to release lock %s: %s", key, exc)

    @contextmanager
    def _held(self, key: str) -> Iterator[None]:
        self._acquire(key)
        try:
            yield
        finally:
            self._release(key)

    def get_account(self, account_id: str) -> GetAccountResponse:
        """Return the account's balance; the repository's error propagates."""
        account = self._repo.get_account(account_id)
        return GetAccountResponse(account_id=account.account_id, balance=account.balance)

    def create_account(self, account_id: str, balance: float) -> ApiResponse:
        """Create an account with an opening balance."""
        try:
            self._repo.create_account(Account(account_id=account_id, balance=balance))
        except Exception as exc:
            raise ServiceError(str(exc), ApiResponse("Failed to create account")) from exc
        return ApiResponse("Account created successfully")

    def transfer(
        self, source_account_id: str, destination_account_id: str, amount: float
    ) -> ApiResponse:
        """Move amount between accounts, holding both account locks in a fixed order."""
        first, second = source_account_id, destination_account_id
        if first > second:
            first, second = second, first
        with self._held(UPDATE_ACCOUNT_LOCK_KEY.format(first)), \
                self._held(UPDATE_ACCOUNT_LOCK_KEY.format(second)):
            try:
                source = self._repo.get_account(source_account_id)
            except Exception as exc:
                raise ServiceError(
                    str(AccountNotFoundError()), ApiResponse("Source account not found")
                ) from exc

            if source.balance < amount:
                return ApiResponse("Insufficient balance")

            try:
                destination = self._repo.get_account(destination_account_id)
            except Exception as exc:
                raise ServiceError(
                    str(AccountNotFoundError()), ApiResponse("Destination account not found")
                ) from exc

            source.balance -= amount
            destination.balance += amount
            try:
                self._repo.update_accounts_in_tx(source, destination)
            except Exception as exc:
                raise ServiceError(
                    str(exc), ApiResponse("Transaction failed during database update")
                ) from exc
        return ApiResponse("Transaction completed successfully")