import pytest

from shopstore.base import NotFoundError, RepositoryError, connect, create_schema
from shopstore.product import NewProduct, ProductRepository
from shopstore.wishlist import WishListItem, WishlistRepository


@pytest.fixture
def conn():
    connection = connect(":memory:")
    create_schema(connection)
    yield connection
    connection.close()


@pytest.fixture
def repo(conn):
    return WishlistRepository(conn)


@pytest.fixture
def shoe(conn):
    return ProductRepository(conn).add_product(NewProduct(1, "nike", stock=5, price=3000))


def test_add_and_get_wishlist(repo, shoe):
    repo.add_to_wishlist(7, shoe.id)
    assert repo.get_wishlist(7) == [WishListItem(shoe.id, "nike", 3000)]
    assert repo.get_wishlist(8) == []


def test_product_exists_in_wishlist(repo, shoe):
    assert repo.product_exists_in_wishlist(shoe.id, 7) is False
    repo.add_to_wishlist(7, shoe.id)
    assert repo.product_exists_in_wishlist(shoe.id, 7) is True
    assert repo.product_exists_in_wishlist(shoe.id, 8) is False


def test_remove_from_wishlist(repo, shoe):
    repo.add_to_wishlist(7, shoe.id)
    repo.remove_from_wishlist(7, shoe.id)
    assert repo.get_wishlist(7) == []


def test_remove_missing_entry_raises(repo, shoe):
    with pytest.raises(NotFoundError, match="maybe it didn't exist"):
        repo.remove_from_wishlist(7, shoe.id)


def test_does_product_exist(repo, shoe):
    assert repo.does_product_exist(shoe.id) is True
    assert repo.does_product_exist(shoe.id + 100) is False


def test_database_failure_messages(repo, conn):
    conn.execute("DROP TABLE wishlists")
    with pytest.raises(RepositoryError, match="inserting into wishlist"):
        repo.add_to_wishlist(1, 1)
    with pytest.raises(RepositoryError, match="fetching products from wishlist"):
        repo.get_wishlist(1)
    with pytest.raises(RepositoryError, match="error while checking wishlist"):
        repo.product_exists_in_wishlist(1, 1)