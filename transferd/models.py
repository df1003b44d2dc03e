"""Account model, request/response shapes and the repository/service protocols."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Protocol


class AccountNotFoundError(LookupError):
    """The requested account does not exist."""

    def __init__(self, message: str = "account not found") -> None:
        super().__init__(message)


class AccountExistsError(ValueError):
    """An account with this identifier already exists."""

    def __init__(self, message: str = "account already exists") -> None:
        super().__init__(message)


@dataclass
class Account:
    account_id: str
    balance: float = 0.0
    id: uuid.UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    TABLE_NAME: ClassVar[str] = "accounts"

    def before_create(self) -> None:
        """Assign an id if none is set and stamp the creation time."""
        if self.id is None:
            self.id = uuid.uuid4()
        if self.created_at is None:
            self.created_at = datetime.now(timezone.utc)

    def before_update(self) -> None:
        """Stamp the update time."""
        self.updated_at = datetime.now(timezone.utc)


@dataclass(frozen=True)
class GetAccountResponse:
    account_id: str
    balance: float

    def to_dict(self) -> dict[str, Any]:
        return {"account_id": self.account_id, "balance": self.balance}


@dataclass(frozen=True)
class ApiResponse:
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message}


def _string(data: dict[str, Any], key: str) -> str:
    value = data.get(key, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string")
    return value


def _number(data: dict[str, Any], key: str) -> float:
    value = data.get(key, 0)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"field {key!r} must be a number")
    return float(value)


def _require_mapping(data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ValueError("request body must be a JSON object")
    return data


@dataclass(frozen=True)
class CreateAccountRequest:
    account_id: str
    initial_balance: float

    @classmethod
    def from_dict(cls, data: Any) -> CreateAccountRequest:
        data = _require_mapping(data)
        return cls(_string(data, "account_id"), _number(data, "initial_balance"))


@dataclass(frozen=True)
class TxnAccountRequest:
    source_account_id: str
    destination_account_id: str
    amount: float

    @classmethod
    def from_dict(cls, data: Any) -> TxnAccountRequest:
        data = _require_mapping(data)
        return cls(
            _string(data, "source_account_id"),
            _string(data, "destination_account_id"),
            _number(data, "amount"),
        )


class AccountRepository(Protocol):
    def get_account(self, account_id: str) -> Account: ...

    def update_account(self, account: Account) -> None: ...

    def create_account(self, account: Account) -> None: ...

    def update_accounts_in_tx(self, src_account: Account, dest_account: Account) -> None: ...


class AccountService(Protocol):
    def get_account(self, account_id: str) -> GetAccountResponse: ...

    def create_account(self, account_id: str, balance: float) -> ApiResponse: ...

    def transfer(self, source_account_id: str, destination_account_id: str,
                 amount: float) -> ApiResponse: ...