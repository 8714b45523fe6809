import pytest

from shopstore.base import NotFoundError, connect, create_schema, transaction
from shopstore.wallet import WalletRepository, WalletTransaction


@pytest.fixture
def conn():
    connection = connect(":memory:")
    create_schema(connection)
    yield connection
    connection.close()


@pytest.fixture
def repo(conn):
    return WalletRepository(conn)


def test_create_wallet_starts_with_credit(repo):
    balance = repo.create_or_update_wallet(7, 120)
    assert balance == 120
    assert repo.get_wallet_balance(7) == 120


def test_update_wallet_adds_credit(repo):
    first, second = 120, 45
    repo.create_or_update_wallet(7, first)
    assert repo.create_or_update_wallet(7, second) == first + second
    assert repo.get_wallet_balance(7) == first + second


def test_negative_credit_is_rejected(repo):
    with pytest.raises(ValueError):
        repo.create_or_update_wallet(7, -5)


def test_balance_of_missing_wallet_is_zero(repo):
    assert repo.get_wallet_balance(99) == 0


def test_get_wallet_round_trip(repo):
    repo.create_or_update_wallet(3, 80)
    wallet = repo.get_wallet(3)
    assert (wallet.user_id, wallet.balance) == (3, 80)
    assert wallet.id > 0


def test_get_missing_wallet_is_empty(repo):
    wallet = repo.get_wallet(42)
    assert (wallet.user_id, wallet.balance, wallet.id) == (42, 0, 0)


def test_record_and_list_transactions(repo):
    stored = repo.record_transaction(WalletTransaction(user_id=5, amount=300.0, purpose="refund"))
    assert stored.transaction_id > 0
    assert (stored.user_id, stored.amount, stored.purpose) == (5, 300.0, "refund")
    listed = repo.get_wallet_transactions(5)
    assert listed == [stored]


def test_transactions_are_per_user(repo):
    repo.record_transaction(WalletTransaction(user_id=5, amount=10.0, purpose="refund"))
    assert repo.get_wallet_transactions(6) == []


def test_final_price_by_order_id(conn, repo):
    cursor = conn.execute("INSERT INTO orders (user_id, final_price) VALUES (1, 250)")
    assert repo.get_final_price_by_order_id(cursor.lastrowid) == 250


def test_final_price_of_missing_order(repo):
    with pytest.raises(NotFoundError):
        repo.get_final_price_by_order_id(404)


def test_update_wallet_balance_sets_value(repo):
    repo.create_or_update_wallet(2, 500)
    repo.update_wallet_balance(2, 75)
    assert repo.get_wallet_balance(2) == 75


def test_update_missing_wallet_fails(repo):
    with pytest.raises(NotFoundError):
        repo.update_wallet_balance(2, 75)


def test_update_wallet_rejects_negative_balance(repo):
    repo.create_or_update_wallet(2, 500)
    with pytest.raises(ValueError):
        repo.update_wallet_balance(2, -1)


def test_outer_transaction_rolls_back_credit(conn, repo):
    with pytest.raises(RuntimeError):
        with transaction(conn):
            repo.create_or_update_wallet(9, 60)
            raise RuntimeError("abort")
    assert repo.get_wallet(9).id == 0