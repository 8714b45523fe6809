import pytest

from shopstore.base import NotFoundError, RepositoryError, connect, create_schema
from shopstore.googleauth import AuthRepository
from shopstore.user import User


@pytest.fixture
def conn():
    connection = connect(":memory:")
    create_schema(connection)
    yield connection
    connection.close()


@pytest.fixture
def repo(conn):
    return AuthRepository(conn)


def test_create_then_lookup_round_trip(repo):
    created = repo.create_user(User(first_name="Ann", last_name="Lee", email="ann@example.com"))
    assert created.id > 0
    found = repo.get_user_by_email("ann@example.com")
    assert found == created
    assert found.first_name == "Ann"


def test_lookup_unknown_email(repo):
    with pytest.raises(NotFoundError):
        repo.get_user_by_email("ghost@example.com")


def test_deleted_user_is_not_found(repo, conn):
    created = repo.create_user(User(first_name="Ann", email="ann@example.com"))
    conn.execute("UPDATE users SET deleted_at = CURRENT_TIMESTAMP WHERE id = ?", (created.id,))
    with pytest.raises(NotFoundError):
        repo.get_user_by_email("ann@example.com")


def test_created_users_get_distinct_ids(repo):
    first = repo.create_user(User(email="a@example.com"))
    second = repo.create_user(User(email="b@example.com"))
    assert first.id != second.id
    assert repo.get_user_by_email("b@example.com").id == second.id


def test_create_user_with_taken_id_fails(repo):
    first = repo.create_user(User(email="a@example.com"))
    with pytest.raises(RepositoryError):
        repo.create_user(User(email="b@example.com", id=first.id))
    with pytest.raises(NotFoundError):
        repo.get_user_by_email("b@example.com")