import pytest

from shopstore.base import NotFoundError, RepositoryError, connect, create_schema
from shopstore.payment import PaymentRepository

USER = ("Asha", "asha@example.com", "phone-a")
ADDRESS = ("Rose Villa", "Main Road", "Kochi", "Ernakulam", "Kerala", "pin-1")


@pytest.fixture
def conn():
    connection = connect(":memory:")
    create_schema(connection)
    yield connection
    connection.close()


@pytest.fixture
def repo(conn):
    return PaymentRepository(conn)


@pytest.fixture
def order_id(conn):
    conn.execute("INSERT INTO users (first_name, email, phone) VALUES (?, ?, ?)", USER)
    conn.execute(
        "INSERT INTO addresses (user_id, house_name, street, city, district, state, pin) "
        "VALUES (1, ?, ?, ?, ?, ?, ?)",
        ADDRESS,
    )
    cursor = conn.execute(
        "INSERT INTO orders (user_id, address_id, final_price, order_status, payment_status) "
        "VALUES (1, 1, 250.0, 'pending', 'not paid')"
    )
    return cursor.lastrowid


def test_get_order_details_by_order_id(repo, order_id):
    details = repo.get_order_details_by_order_id(order_id)
    assert details.order_id == str(order_id)
    assert (details.first_name, details.email, details.phone) == USER
    assert (
        details.house_name,
        details.street,
        details.city,
        details.district,
        details.state,
        details.pin,
    ) == ADDRESS
    assert details.order_status == "pending"


def test_get_order_details_missing(repo):
    with pytest.raises(NotFoundError, match="order not found for this user"):
        repo.get_order_details_by_order_id(99)


def test_check_payment_status(repo, order_id):
    assert repo.check_payment_status(order_id) == "not paid"


def test_check_payment_status_missing(repo):
    with pytest.raises(NotFoundError):
        repo.check_payment_status(99)


def test_update_online_payment_success(repo, order_id):
    updated = repo.update_online_payment_success(order_id)
    assert len(updated) == 1
    assert updated[0].payment_status == "paid"
    assert updated[0].order_status == "success"
    assert repo.check_payment_status(order_id) == "paid"


def test_update_online_payment_success_missing(repo):
    assert repo.update_online_payment_success(99) == []


def test_razorpay_details_round_trip(conn, repo, order_id):
    repo.add_razorpay_details(str(order_id), "order_abc")
    repo.update_payment_details(order_id, "pay_xyz")
    row = conn.execute(
        "SELECT razor_id, payment_id FROM razor_pays WHERE order_id = ?", (str(order_id),)
    ).fetchone()
    assert (row["razor_id"], row["payment_id"]) == ("order_abc", "pay_xyz")


def test_storage_failure_raises(conn, repo):
    conn.execute("DROP TABLE razor_pays")
    with pytest.raises(RepositoryError):
        repo.add_razorpay_details("1", "order_abc")