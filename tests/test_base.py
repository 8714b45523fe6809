import pytest

from shopstore.base import (
    NotFoundError,
    RepositoryError,
    connect,
    create_schema,
    transaction,
)


@pytest.fixture
def conn():
    connection = connect(":memory:")
    create_schema(connection)
    yield connection
    connection.close()


def _wishlist_count(conn):
    return conn.execute("SELECT COUNT(*) FROM wishlists").fetchone()[0]


def test_schema_creates_repository_tables(conn):
    names = {
        row[0]
        for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
    }
    for table in ("products", "categories", "wishlists", "orders", "order_items", "carts"):
        assert table in names


def test_create_schema_is_idempotent(conn):
    conn.execute("INSERT INTO wishlists (user_id, product_id) VALUES (1, 1)")
    create_schema(conn)
    assert _wishlist_count(conn) == 1


def test_connect_to_file(tmp_path):
    path = tmp_path / "shop.db"
    first = connect(path)
    create_schema(first)
    first.execute("INSERT INTO wishlists (user_id, product_id) VALUES (3, 4)")
    first.close()
    second = connect(path)
    row = second.execute("SELECT user_id, product_id FROM wishlists").fetchone()
    second.close()
    assert (row["user_id"], row["product_id"]) == (3, 4)


def test_transaction_commits(conn):
    with transaction(conn):
        conn.execute("INSERT INTO wishlists (user_id, product_id) VALUES (1, 2)")
    assert _wishlist_count(conn) == 1
    assert not conn.in_transaction


def test_transaction_rolls_back_on_error(conn):
    with pytest.raises(ValueError):
        with transaction(conn):
            conn.execute("INSERT INTO wishlists (user_id, product_id) VALUES (1, 2)")
            raise ValueError("boom")
    assert _wishlist_count(conn) == 0
    assert not conn.in_transaction


def test_nested_transaction_rolls_back_inner_only(conn):
    with transaction(conn):
        conn.execute("INSERT INTO wishlists (user_id, product_id) VALUES (1, 2)")
        with pytest.raises(KeyError):
            with transaction(conn):
                conn.execute("INSERT INTO wishlists (user_id, product_id) VALUES (1, 3)")
                raise KeyError("inner")
    rows = conn.execute("SELECT product_id FROM wishlists").fetchall()
    assert [row[0] for row in rows] == [2]


def test_database_error_becomes_repository_error(conn):
    with pytest.raises(RepositoryError):
        with transaction(conn):
            conn.execute("INSERT INTO missing_table VALUES (1)")
    assert not conn.in_transaction


def test_not_found_is_caught_as_repository_error_and_rolls_back(conn):
    with pytest.raises(RepositoryError) as excinfo:
        with transaction(conn):
            conn.execute("INSERT INTO wishlists (user_id, product_id) VALUES (5, 6)")
            raise NotFoundError("missing")
    assert isinstance(excinfo.value, NotFoundError)
    assert _wishlist_count(conn) == 0
    assert not conn.in_transaction