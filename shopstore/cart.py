"""Storage of users' shopping carts."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, replace
from typing import List, Optional

from .base import NotFoundError, _guard, transaction

MAX_QUANTITY = 10

_FIELDS = (
    "user_id",
    "product_id",
    "quantity",
    "price",
    "offer_price",
    "category_discount",
    "total_price",
)
_COLUMNS = "id, " + ", ".join(_FIELDS)


@dataclass
class CartItem:
    """One product line in a user's cart."""

    user_id: int
    product_id: int
    quantity: int = 0
    price: float = 0.0
    offer_price: float = 0.0
    category_discount: float = 0.0
    total_price: float = 0.0
    id: int = 0
    user_name: str = ""
    product_name: str = ""


def _item_from_row(row: sqlite3.Row) -> CartItem:
    keys = row.keys()
    return CartItem(
        id=row["id"],
        user_id=row["user_id"],
        product_id=row["product_id"],
        quantity=row["quantity"],
        price=row["price"],
        offer_price=row["offer_price"],
        category_discount=row["category_discount"],
        total_price=row["total_price"],
        user_name=row["user_name"] if "user_name" in keys else "",
        product_name=row["product_name"] if "product_name" in keys else "",
    )


class CartRepository:
    """Adds, updates, removes and lists cart items."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def _find(self, user_id: int, product_id: int) -> Optional[CartItem]:
        with _guard():
            row = self.conn.execute(
                f"SELECT {_COLUMNS} FROM carts "
                "WHERE user_id = ? AND product_id = ? AND deleted_at IS NULL "
                "ORDER BY id LIMIT 1",
                (user_id, product_id),
            ).fetchone()
        return _item_from_row(row) if row is not None else None

    def _insert(self, item: CartItem) -> CartItem:
        columns = list(_FIELDS)
        values = [getattr(item, name) for name in _FIELDS]
        if item.id:
            columns.append("id")
            values.append(item.id)
        placeholders = ", ".join("?" for _ in columns)
        with _guard():
            cursor = self.conn.execute(
                f"INSERT INTO carts ({', '.join(columns)}) VALUES ({placeholders})",
                values,
            )
        return replace(item, id=cursor.lastrowid)

    def _save(self, item: CartItem) -> CartItem:
        if item.id:
            assignments = ", ".join(f"{name} = ?" for name in _FIELDS)
            with _guard():
                cursor = self.conn.execute(
                    f"UPDATE carts SET {assignments} WHERE id = ?",
                    [getattr(item, name) for name in _FIELDS] + [item.id],
                )
            if cursor.rowcount:
                return item
        return self._insert(item)

    def _soft_delete(self, item: CartItem) -> None:
        with _guard():
            self.conn.execute(
                "UPDATE carts SET deleted_at = CURRENT_TIMESTAMP WHERE id = ?", (item.id,)
            )

    def display_cart(self, user_id: int) -> List[CartItem]:
        with _guard():
            rows = self.conn.execute(
                f"SELECT {_COLUMNS} FROM carts WHERE user_id = ? AND deleted_at IS NULL "
                "ORDER BY id",
                (user_id,),
            ).fetchall()
        return [_item_from_row(row) for row in rows]

    def get_cart_item(self, user_id: int, product_id: int) -> CartItem:
        item = self._find(user_id, product_id)
        if item is None:
            raise NotFoundError("record not found")
        return item

    def add_to_cart(self, cart_item: CartItem) -> CartItem:
        """Add an item, merging it into an existing line for the same product."""
        with transaction(self.conn):
            existing = self._find(cart_item.user_id, cart_item.product_id)
            if existing is not None:
                existing.quantity += cart_item.quantity
                existing.total_price += cart_item.total_price
                return self._save(existing)
            return self._insert(cart_item)

    def update_cart(self, cart_item: CartItem) -> CartItem:
        with transaction(self.conn):
            return self._save(cart_item)

    def check_product_in_cart(self, user_id: int, product_id: int) -> bool:
        with _guard():
            (count,) = self.conn.execute(
                "SELECT COUNT(*) FROM carts "
                "WHERE user_id = ? AND product_id = ? AND deleted_at IS NULL",
                (user_id, product_id),
            ).fetchone()
        return count > 0

    def remove_product_from_cart(self, user_id: int, product_id: int, price: float) -> None:
        """Take one unit of a product out of the cart, dropping the line at the last one."""
        with transaction(self.conn):
            item = self._find(user_id, product_id)
            if item is None:
                raise NotFoundError("product not found in the cart")
            if item.quantity > 1:
                item.quantity -= 1
                item.total_price -= float(item.offer_price)
                self._save(item)
            else:
                self._soft_delete(item)

    def remove_from_cart(self, user_id: int, product_id: int) -> None:
        with transaction(self.conn):
            item = self._find(user_id, product_id)
            if item is None:
                raise NotFoundError("product not found in the cart")
            self._soft_delete(item)

    def get_all_items_from_cart(self, user_id: int) -> List[CartItem]:
        """List a user's cart lines with the user's and products' names."""
        with _guard():
            rows = self.conn.execute(
                "SELECT carts.id, carts.user_id, users.first_name AS user_name, "
                "carts.product_id, products.name AS product_name, carts.quantity, "
                "carts.price, carts.offer_price, carts.category_discount, carts.total_price "
                "FROM carts "
                "INNER JOIN users ON carts.user_id = users.id "
                "INNER JOIN products ON carts.product_id = products.id "
                "WHERE carts.user_id = ? AND carts.deleted_at IS NULL ORDER BY carts.id",
                (user_id,),
            ).fetchall()
        return [_item_from_row(row) for row in rows]