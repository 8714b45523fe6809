"""Storage of product reviews."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import List, Union

from .base import _guard, transaction

_MAX_PRODUCT_ID = 2**32 - 1


@dataclass
class Review:
    """A user's rating and comment on a product."""

    user_id: int
    product_id: int
    rating: float
    comment: str = ""
    id: int = 0


def _parse_product_id(product_id: Union[str, int]) -> int:
    text = str(product_id)
    if not (text.isascii() and text.isdigit()):
        raise ValueError(f"invalid product ID: {text!r}")
    value = int(text)
    if value > _MAX_PRODUCT_ID:
        raise ValueError(f"invalid product ID: {text!r} is out of range")
    return value


def _review_from_row(row: sqlite3.Row) -> Review:
    return Review(
        id=row["id"],
        user_id=row["user_id"],
        product_id=row["product_id"],
        rating=row["rating"],
        comment=row["comment"],
    )


class ReviewRepository:
    """Adds, lists and removes reviews."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def add_review(
        self, user_id: int, product_id: Union[str, int], rating: float, comment: str
    ) -> Review:
        parsed = _parse_product_id(product_id)
        with transaction(self.conn), _guard():
            cursor = self.conn.execute(
                "INSERT INTO reviews (user_id, product_id, rating, comment) VALUES (?, ?, ?, ?)",
                (user_id, parsed, rating, comment),
            )
        return Review(
            user_id=user_id, product_id=parsed, rating=rating, comment=comment, id=cursor.lastrowid
        )

    def is_product_reviewed_by_user(self, user_id: int, product_id: Union[str, int]) -> bool:
        parsed = _parse_product_id(product_id)
        with _guard():
            (count,) = self.conn.execute(
                "SELECT COUNT(*) FROM reviews "
                "WHERE user_id = ? AND product_id = ? AND deleted_at IS NULL",
                (user_id, parsed),
            ).fetchone()
        return count > 0

    def get_reviews_by_product_id(self, product_id: Union[str, int]) -> List[Review]:
        with _guard():
            rows = self.conn.execute(
                "SELECT id, user_id, product_id, rating, comment FROM reviews "
                "WHERE product_id = ? AND deleted_at IS NULL ORDER BY id",
                (product_id,),
            ).fetchall()
        return [_review_from_row(row) for row in rows]

    def does_product_exist(self, product_id: Union[str, int]) -> bool:
        """Tell whether the product has any reviews."""
        with _guard():
            (count,) = self.conn.execute(
                "SELECT COUNT(*) FROM reviews WHERE product_id = ? AND deleted_at IS NULL",
                (product_id,),
            ).fetchone()
        return count > 0

    def does_review_exist(self, review_id: Union[str, int]) -> bool:
        with _guard():
            (count,) = self.conn.execute(
                "SELECT COUNT(*) FROM reviews WHERE id = ? AND deleted_at IS NULL",
                (review_id,),
            ).fetchone()
        return count > 0

    def delete_review(self, review_id: Union[str, int]) -> None:
        """Mark a review as deleted."""
        with transaction(self.conn), _guard():
            self.conn.execute(
                "UPDATE reviews SET deleted_at = CURRENT_TIMESTAMP "
                "WHERE id = ? AND deleted_at IS NULL",
                (review_id,),
            )

    def get_average_rating(self, product_id: Union[str, int]) -> float:
        """Mean rating of a product, 0 when it has no reviews."""
        with _guard():
            (average,) = self.conn.execute(
                "SELECT AVG(rating) FROM reviews WHERE product_id = ? AND deleted_at IS NULL",
                (product_id,),
            ).fetchone()
        return float(average) if average is not None else 0.0