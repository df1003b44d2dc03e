import threading

import pytest

from transferd.models import Account, AccountExistsError, AccountNotFoundError
from transferd.service import AccountServiceImpl, LockTimeoutError, ServiceError


class MockRepository:
    def __init__(self):
        self.accounts = {}
        self.mu = threading.Lock()
        self.fail_updates = False

    def get_account(self, account_id):
        with self.mu:
            if account_id not in self.accounts:
                raise AccountNotFoundError()
            return self.accounts[account_id]

    def update_account(self, account):
        with self.mu:
            if account.account_id not in self.accounts:
                raise AccountNotFoundError()
            self.accounts[account.account_id] = account

    def create_account(self, account):
        with self.mu:
            if account.account_id in self.accounts:
                raise AccountExistsError()
            self.accounts[account.account_id] = account

    def update_accounts_in_tx(self, src_account, dest_account):
        with self.mu:
            if self.fail_updates:
                raise RuntimeError("database unavailable")
            if src_account.account_id not in self.accounts:
                raise AccountNotFoundError("source account not found")
            if dest_account.account_id not in self.accounts:
                raise AccountNotFoundError("destination account not found")
            self.accounts[src_account.account_id] = src_account
            self.accounts[dest_account.account_id] = dest_account


class MockCache:
    def __init__(self):
        self.locks = {}
        self.data = {}
        self.mu = threading.Lock()
        self.lock_order = []

    def get(self, key):
        with self.mu:
            if key not in self.data:
                raise KeyError(key)
            return self.data[key]

    def set(self, key, value, expiration=0):
        with self.mu:
            self.data[key] = value

    def delete(self, key):
        with self.mu:
            self.data.pop(key, None)

    def lock(self, key, expiration=0):
        with self.mu:
            if self.locks.get(key):
                raise RuntimeError("lock already acquired")
            self.locks[key] = True
            self.lock_order.append(key)
            return True

    def release(self, key):
        with self.mu:
            self.locks.pop(key, None)

    def close(self):
        pass


@pytest.fixture
def repo():
    return MockRepository()


@pytest.fixture
def cache():
    return MockCache()


@pytest.fixture
def service(repo, cache):
    return AccountServiceImpl(repo, cache)


def test_create_account(service, repo):
    response = service.create_account("acc123", 1000.0)
    assert response.message == "Account created successfully"
    account = repo.get_account("acc123")
    assert account.account_id == "acc123"
    assert account.balance == 1000.0


def test_create_duplicate_account_fails(service):
    service.create_account("acc123", 1000.0)
    with pytest.raises(ServiceError) as info:
        service.create_account("acc123", 5.0)
    assert info.value.response.message == "Failed to create account"
    assert isinstance(info.value.__cause__, AccountExistsError)


def test_get_existing_account(service, repo):
    repo.create_account(Account(account_id="acc123", balance=1000.0))
    response = service.get_account("acc123")
    assert response.account_id == "acc123"
    assert response.balance == 1000.0


def test_get_non_existent_account(service):
    with pytest.raises(AccountNotFoundError):
        service.get_account("non_existent_account")


def test_simple_transfer(service, repo, cache):
    repo.create_account(Account(account_id="source123", balance=1000.0))
    repo.create_account(Account(account_id="dest456", balance=500.0))
    response = service.transfer("source123", "dest456", 200.0)
    assert response.message == "Transaction completed successfully"
    assert repo.get_account("source123").balance == 800.0
    assert repo.get_account("dest456").balance == 700.0
    assert cache.locks == {}


def _run_concurrently(*calls):
    errors = []

    def run(call):
        try:
            call()
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=run, args=(call,)) for call in calls]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return errors


def test_concurrent_transfers_on_different_accounts(service, repo):
    for account_id in ("acc1", "acc2", "acc3", "acc4"):
        repo.create_account(Account(account_id=account_id, balance=1000.0))
    errors = _run_concurrently(
        lambda: service.transfer("acc1", "acc2", 200.0),
        lambda: service.transfer("acc3", "acc4", 300.0),
    )
    assert errors == []
    assert repo.get_account("acc1").balance == 800.0
    assert repo.get_account("acc2").balance == 1200.0
    assert repo.get_account("acc3").balance == 700.0
    assert repo.get_account("acc4").balance == 1300.0


def test_deadlock_prevention(service, repo):
    repo.create_account(Account(account_id="accA", balance=1000.0))
    repo.create_account(Account(account_id="accB", balance=1000.0))
    errors = _run_concurrently(
        lambda: service.transfer("accA", "accB", 200.0),
        lambda: service.transfer("accB", "accA", 300.0),
    )
    assert errors == []
    assert repo.get_account("accA").balance == 1100.0
    assert repo.get_account("accB").balance == 900.0


def test_locks_taken_in_sorted_order(service, repo, cache):
    repo.create_account(Account(account_id="accA", balance=1000.0))
    repo.create_account(Account(account_id="accB", balance=1000.0))
    response = service.transfer("accB", "accA", 100.0)
    assert response.message == "Transaction completed successfully"
    assert cache.lock_order == ["update_account:accA", "update_account:accB"]
    assert repo.get_account("accA").balance == 1100.0
    assert repo.get_account("accB").balance == 900.0


def test_insufficient_balance(service, repo):
    repo.create_account(Account(account_id="poor", balance=50.0))
    repo.create_account(Account(account_id="rich", balance=500.0))
    response = service.transfer("poor", "rich", 200.0)
    assert response.message == "Insufficient balance"
    assert repo.get_account("poor").balance == 50.0
    assert repo.get_account("rich").balance == 500.0


def test_source_not_found(service, repo, cache):
    repo.create_account(Account(account_id="dest", balance=10.0))
    with pytest.raises(ServiceError) as info:
        service.transfer("missing", "dest", 1.0)
    assert info.value.response.message == "Source account not found"
    assert str(info.value) == "account not found"
    assert cache.locks == {}


def test_destination_not_found(service, repo):
    repo.create_account(Account(account_id="src", balance=10.0))
    with pytest.raises(ServiceError) as info:
        service.transfer("src", "missing", 1.0)
    assert info.value.response.message == "Destination account not found"
    assert repo.get_account("src").balance == 10.0


def test_update_failure_reported(service, repo):
    repo.create_account(Account(account_id="a", balance=10.0))
    repo.create_account(Account(account_id="b", balance=10.0))
    repo.fail_updates = True
    with pytest.raises(ServiceError) as info:
        service.transfer("a", "b", 1.0)
    assert info.value.response.message == "Transaction failed during database update"


def test_lock_held_elsewhere_times_out(service, repo, cache):
    repo.create_account(Account(account_id="x", balance=10.0))
    repo.create_account(Account(account_id="y", balance=10.0))
    cache.lock("update_account:x")
    with pytest.raises(LockTimeoutError) as info:
        service.transfer("x", "y", 1.0)
    assert info.value.response.message == "Failed to acquire lock for transaction"
    assert info.value.key == "update_account:x"
    assert repo.get_account("x").balance == 10.0


def test_transfer_to_same_account_times_out_and_releases(service, repo, cache):
    repo.create_account(Account(account_id="same", balance=10.0))
    with pytest.raises(LockTimeoutError):
        service.transfer("same", "same", 1.0)
    assert cache.locks == {}