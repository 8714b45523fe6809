from datetime import datetime, timedelta

import pytest

from shopstore.base import NotFoundError, RepositoryError, connect, create_schema
from shopstore.category import Category, CategoryRepository
from shopstore.product import NewProduct, ProductRepository
from shopstore.user import Address, OTPRecord, User, UserRepository


@pytest.fixture
def conn():
    connection = connect(":memory:")
    create_schema(connection)
    yield connection
    connection.close()


@pytest.fixture
def repo(conn):
    return UserRepository(conn)


def _user(email="ann@example.com", phone="100", blocked=False):
    password = "password"
    return User(
        first_name="Ann",
        last_name="Lee",
        email=email,
        phone=phone,
        password=password,
        blocked=blocked,
    )


def _address():
    return Address(
        house_name="House No 1",
        street="vyttila",
        city="kochi",
        district="ekm",
        state="ker",
        pin="123456",
    )


def _later():
    return datetime.now() + timedelta(minutes=3)


def _earlier():
    return datetime.now() - timedelta(minutes=1)


def test_get_all_addresses_success(repo):
    repo.add_address(52, _address())
    addresses = repo.get_all_addresses(1)
    assert len(addresses) == 1
    assert addresses[0].user_id == 52
    assert addresses[0].city == "kochi"


def test_get_all_addresses_query_failed(repo, conn):
    conn.execute("DROP TABLE addresses")
    with pytest.raises(RepositoryError):
        repo.get_all_addresses(1)


def test_get_products_success(repo, conn):
    ProductRepository(conn).add_product(
        NewProduct(category_id=44, name="nike", quantity=10, stock=5, price=3000, offer_price=2000)
    )
    products = repo.get_products()
    assert len(products) == 1
    assert products[0].name == "nike"


def test_get_products_query_failed(repo, conn):
    conn.execute("DROP TABLE products")
    with pytest.raises(RepositoryError):
        repo.get_products()


def test_list_categories_success(repo, conn):
    CategoryRepository(conn).add_category(Category("Formal Shoes", "This is Formal Shoes", 2))
    categories = repo.list_categories()
    assert len(categories) == 1
    assert categories[0].category == "Formal Shoes"


def test_list_categories_query_failed(repo, conn):
    conn.execute("DROP TABLE categories")
    with pytest.raises(RepositoryError):
        repo.list_categories()


def test_create_user_and_find_by_email(repo):
    created = repo.create_user(_user())
    assert created.id > 0
    found = repo.get_user_by_email("ann@example.com")
    assert found == created


def test_get_user_by_email_unknown_is_none(repo):
    assert repo.get_user_by_email("ghost@example.com") is None


def test_create_user_with_id_updates_row(repo):
    created = repo.create_user(_user())
    created.first_name = "Anna"
    repo.create_user(created)
    assert repo.get_user_by_id(created.id).first_name == "Anna"
    assert len([u for u in [repo.get_user_by_email("ann@example.com")] if u]) == 1


def test_email_and_phone_exist(repo):
    repo.create_user(_user())
    assert repo.is_email_exists("ann@example.com")
    assert not repo.is_email_exists("bob@example.com")
    assert repo.is_phone_exists("100")
    assert not repo.is_phone_exists("200")


def test_temp_user_lookup_ignores_case_and_spaces(repo):
    saved = repo.save_temp_user(_user())
    found = repo.get_temp_user_by_email("  ANN@Example.com ")
    assert found == saved


def test_temp_user_missing(repo):
    with pytest.raises(NotFoundError, match="temporary user not found for email ghost@example.com"):
        repo.get_temp_user_by_email("ghost@example.com")


def test_delete_temp_user(repo):
    repo.save_temp_user(_user())
    repo.delete_temp_user("ann@example.com")
    with pytest.raises(NotFoundError):
        repo.get_temp_user_by_email("ann@example.com")


def test_save_and_get_otp(repo):
    expiry = _later()
    repo.save_otp("ann@example.com", "1234", expiry)
    assert repo.get_otp(" ann@example.com ") == ("1234", expiry)


def test_get_otp_expired(repo):
    repo.save_otp("ann@example.com", "1234", _earlier())
    with pytest.raises(RepositoryError, match="OTP has expired"):
        repo.get_otp("ann@example.com")


def test_get_otp_missing(repo):
    with pytest.raises(NotFoundError, match="no OTP found for email: ghost@example.com"):
        repo.get_otp("ghost@example.com")


def test_get_otp_by_email_returns_newest(repo):
    repo.save_otp("ann@example.com", "1111", _later())
    repo.save_or_update_otp("ann@example.com", "2222", _later())
    assert repo.get_otp_by_email("ann@example.com").otp == "2222"


def test_get_otp_by_email_missing(repo):
    with pytest.raises(NotFoundError, match="OTP not found"):
        repo.get_otp_by_email("ghost@example.com")


def test_update_otp(repo):
    repo.save_otp("ann@example.com", "1111", _earlier())
    expiry = _later()
    repo.update_otp(OTPRecord(email="ann@example.com", otp="9999", otp_expiry=expiry))
    assert repo.get_otp("ann@example.com") == ("9999", expiry)


def test_get_email_by_otp(repo):
    repo.save_otp("ann@example.com", "4321", _later())
    assert repo.get_email_by_otp("4321") == "ann@example.com"
    with pytest.raises(NotFoundError, match="invalid or expired OTP"):
        repo.get_email_by_otp("0000")


def test_delete_otp(repo):
    repo.save_otp("ann@example.com", "1234", _later())
    repo.delete_otp("ann@example.com")
    with pytest.raises(NotFoundError):
        repo.get_otp("ann@example.com")


def test_verify_otp_moves_user(repo):
    repo.save_temp_user(_user())
    repo.save_otp("ann@example.com", "1234", _later())
    created = repo.verify_otp_and_move_user("ann@example.com", "1234")
    assert repo.get_user_by_email("ann@example.com") == created
    assert created.first_name == "Ann"
    with pytest.raises(NotFoundError):
        repo.get_otp_by_email("ann@example.com")


def test_verify_otp_wrong_code(repo):
    repo.save_temp_user(_user())
    repo.save_otp("ann@example.com", "1234", _later())
    with pytest.raises(NotFoundError, match="invalid or expired OTP"):
        repo.verify_otp_and_move_user("ann@example.com", "9999")
    assert not repo.is_email_exists("ann@example.com")


def test_verify_otp_expired(repo):
    repo.save_temp_user(_user())
    repo.save_otp("ann@example.com", "1234", _earlier())
    with pytest.raises(RepositoryError, match="OTP has expired"):
        repo.verify_otp_and_move_user("ann@example.com", "1234")


def test_unblock_user(repo):
    created = repo.create_user(_user(blocked=True))
    assert repo.get_user_by_id(created.id).blocked is True
    repo.unblock_user("ann@example.com")
    assert repo.get_user_by_id(created.id).blocked is False


def test_unblock_unknown_user(repo):
    with pytest.raises(NotFoundError, match="no user found with the given email"):
        repo.unblock_user("ghost@example.com")


def test_user_profile(repo):
    created = repo.create_user(_user())
    assert repo.user_profile(created.id) == created
    with pytest.raises(NotFoundError, match="user with ID 99 not found"):
        repo.user_profile(99)


def test_update_profile(repo):
    created = repo.create_user(_user())
    created.last_name = "Park"
    created.email = "park@example.com"
    updated = repo.update_profile(created)
    assert updated.last_name == "Park"
    assert repo.get_user_by_email("park@example.com") == updated


def test_update_profile_missing(repo):
    with pytest.raises(NotFoundError, match="No rows are affected"):
        repo.update_profile(User(first_name="X", id=42))


def test_get_user_by_id_missing(repo):
    with pytest.raises(NotFoundError):
        repo.get_user_by_id(5)


def test_passwords(repo):
    created = repo.create_user(_user())
    repo.update_password(created.id, "secret")
    assert repo.get_password(created.id) == "secret"
    repo.forgot_password("ann@example.com", "token")
    assert repo.get_password(created.id) == "token"
    with pytest.raises(NotFoundError):
        repo.get_password(77)


def test_add_and_update_address(repo):
    added = repo.add_address(3, _address())
    assert added.id > 0
    assert added.user_id == 3
    added.city = "thrissur"
    updated = repo.update_address(3, added)
    assert updated.city == "thrissur"
    assert repo.get_all_addresses(3) == [updated]


def test_update_address_of_other_user(repo):
    added = repo.add_address(3, _address())
    with pytest.raises(NotFoundError, match="no rows are affected"):
        repo.update_address(4, added)


def test_delete_address(repo):
    added = repo.add_address(3, _address())
    repo.delete_address(added.id)
    assert repo.get_all_addresses(3) == []
    with pytest.raises(NotFoundError, match="the id does not exist"):
        repo.delete_address(added.id)