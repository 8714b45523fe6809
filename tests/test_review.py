import pytest

from shopstore.base import RepositoryError, connect, create_schema
from shopstore.review import Review, ReviewRepository


@pytest.fixture
def conn():
    connection = connect(":memory:")
    create_schema(connection)
    yield connection
    connection.close()


@pytest.fixture
def repo(conn):
    return ReviewRepository(conn)


def test_add_review_round_trip(repo):
    review = repo.add_review(3, "7", 4.5, "comfortable")
    assert review.id > 0
    stored = repo.get_reviews_by_product_id("7")
    assert stored == [Review(user_id=3, product_id=7, rating=4.5, comment="comfortable", id=review.id)]


@pytest.mark.parametrize("bad_id", ["abc", "-1", "", " 7", "4294967296"])
def test_add_review_rejects_invalid_product_id(repo, bad_id):
    with pytest.raises(ValueError):
        repo.add_review(1, bad_id, 3.0, "text")


def test_is_product_reviewed_by_user(repo):
    assert repo.is_product_reviewed_by_user(1, "5") is False
    repo.add_review(1, "5", 3.0, "ok")
    assert repo.is_product_reviewed_by_user(1, "5") is True
    assert repo.is_product_reviewed_by_user(2, "5") is False


def test_is_product_reviewed_by_user_invalid_id(repo):
    with pytest.raises(ValueError):
        repo.is_product_reviewed_by_user(1, "x1")


def test_does_product_exist_follows_reviews(repo):
    assert repo.does_product_exist("9") is False
    repo.add_review(1, "9", 2.0, "meh")
    assert repo.does_product_exist("9") is True


def test_delete_review(repo):
    review = repo.add_review(1, "2", 5.0, "great")
    assert repo.does_review_exist(str(review.id)) is True
    repo.delete_review(str(review.id))
    assert repo.does_review_exist(str(review.id)) is False
    assert repo.get_reviews_by_product_id("2") == []


def test_average_rating_single_review(repo):
    repo.add_review(1, "4", 4.5, "good")
    assert repo.get_average_rating("4") == pytest.approx(4.5)


def test_average_rating_lies_between_ratings(repo):
    ratings = [1.0, 5.0, 3.5]
    for user_id, rating in enumerate(ratings, start=1):
        repo.add_review(user_id, "6", rating, "")
    average = repo.get_average_rating("6")
    assert min(ratings) < average < max(ratings)


def test_average_rating_without_reviews(repo):
    assert repo.get_average_rating("8") == 0.0


def test_storage_failure_raises(conn, repo):
    conn.execute("DROP TABLE reviews")
    with pytest.raises(RepositoryError):
        repo.get_reviews_by_product_id("1")