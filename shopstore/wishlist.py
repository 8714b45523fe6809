"""Storage of users' wish lists."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import List

from .base import NotFoundError, _guard, transaction


@dataclass
class WishListItem:
    """A product on a user's wish list."""

    product_id: int
    product_name: str
    product_price: float


class WishlistRepository:
    """Adds, lists and removes wish-list entries."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def add_to_wishlist(self, user_id: int, product_id: int) -> None:
        with transaction(self.conn), _guard("encountered an issue while inserting into wishlist"):
            self.conn.execute(
                "INSERT INTO wishlists (user_id, product_id) VALUES (?, ?)",
                (user_id, product_id),
            )

    def get_wishlist(self, user_id: int) -> List[WishListItem]:
        with _guard("encountered an issue while fetching products from wishlist"):
            rows = self.conn.execute(
                "SELECT products.id AS product_id, products.name AS product_name, "
                "products.price AS product_price FROM products "
                "INNER JOIN wishlists ON products.id = wishlists.product_id "
                "WHERE wishlists.user_id = ? ORDER BY wishlists.id",
                (user_id,),
            ).fetchall()
        return [
            WishListItem(row["product_id"], row["product_name"], row["product_price"])
            for row in rows
        ]

    def remove_from_wishlist(self, user_id: int, product_id: int) -> None:
        with transaction(self.conn), _guard("encountered an issue while deleting from wishlist"):
            cursor = self.conn.execute(
                "DELETE FROM wishlists WHERE product_id = ? AND user_id = ?",
                (product_id, user_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("no product was deleted, maybe it didn't exist")

    def product_exists_in_wishlist(self, product_id: int, user_id: int) -> bool:
        with _guard("error while checking wishlist"):
            (count,) = self.conn.execute(
                "SELECT COUNT(*) FROM wishlists WHERE product_id = ? AND user_id = ?",
                (product_id, user_id),
            ).fetchone()
        return count > 0

    def does_product_exist(self, product_id: int) -> bool:
        with _guard():
            (count,) = self.conn.execute(
                "SELECT COUNT(*) FROM products WHERE id = ?", (product_id,)
            ).fetchone()
        return count > 0