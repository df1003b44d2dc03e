import pytest
import sqlalchemy as sa

from transferd.database import SqlDatabase
from transferd.models import Account, AccountExistsError, AccountNotFoundError
from transferd.repository import SqlAccountRepository


@pytest.fixture
def database(tmp_path):
    db = SqlDatabase(sa.create_engine(f"sqlite:///{tmp_path / 'accounts.db'}"))
    db.migrate()
    yield db
    db.close()


@pytest.fixture
def repo(database):
    return SqlAccountRepository(database)


def test_create_then_get_round_trip(repo):
    account = Account(account_id="acc123", balance=1000.0)
    repo.create_account(account)
    stored = repo.get_account("acc123")
    assert stored.account_id == "acc123"
    assert stored.balance == 1000.0
    assert stored.id == account.id
    assert stored.created_at is not None


def test_create_assigns_id(repo):
    account = Account(account_id="a", balance=1.0)
    repo.create_account(account)
    assert repo.get_account("a").id == account.id
    assert account.id is not None


def test_create_duplicate_raises(repo):
    repo.create_account(Account(account_id="dup", balance=1.0))
    with pytest.raises(AccountExistsError):
        repo.create_account(Account(account_id="dup", balance=2.0))
    assert repo.get_account("dup").balance == 1.0


def test_get_missing_raises(repo):
    with pytest.raises(AccountNotFoundError):
        repo.get_account("non_existent_account")


def test_update_account_saves_balance_and_stamp(repo):
    repo.create_account(Account(account_id="acc", balance=10.0))
    account = repo.get_account("acc")
    assert account.updated_at is None
    account.balance = 25.0
    repo.update_account(account)
    stored = repo.get_account("acc")
    assert stored.balance == 25.0
    assert stored.updated_at is not None


def test_update_account_without_id_inserts(repo):
    repo.update_account(Account(account_id="fresh", balance=3.0))
    assert repo.get_account("fresh").balance == 3.0


def test_update_accounts_in_tx_saves_both(repo):
    repo.create_account(Account(account_id="source123", balance=1000.0))
    repo.create_account(Account(account_id="dest456", balance=500.0))
    src = repo.get_account("source123")
    dest = repo.get_account("dest456")
    src.balance -= 200.0
    dest.balance += 200.0
    repo.update_accounts_in_tx(src, dest)
    assert repo.get_account("source123").balance == 800.0
    assert repo.get_account("dest456").balance == 700.0


def test_update_accounts_in_tx_rolls_back_on_failure(repo):
    repo.create_account(Account(account_id="src", balance=100.0))
    src = repo.get_account("src")
    src.balance = 0.0
    clash = Account(account_id="src", balance=100.0)
    with pytest.raises(sa.exc.IntegrityError):
        repo.update_accounts_in_tx(src, clash)
    assert repo.get_account("src").balance == 100.0