"""Storage of products and their stock."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import List, Optional

from .base import NotFoundError, _guard, transaction

_COLUMNS = "id, category_id, name, stock, quantity, price, offer_price"

_ORDERINGS = {
    "price_H-L": "price DESC",
    "price_L-H": "price ASC",
    "newest": "created_at DESC, id DESC",
    "alphabetic": "LOWER(name) ASC",
}
_DEFAULT_ORDERING = "created_at DESC, id DESC"


@dataclass
class NewProduct:
    """The fields needed to create a product."""

    category_id: int
    name: str
    stock: int = 0
    quantity: int = 0
    price: float = 0.0
    offer_price: float = 0.0


@dataclass
class Product:
    """A stored product."""

    category_id: int
    name: str
    stock: int = 0
    quantity: int = 0
    price: float = 0.0
    offer_price: float = 0.0
    id: int = 0


def _product_from_row(row: sqlite3.Row) -> Product:
    return Product(
        id=row["id"],
        category_id=row["category_id"],
        name=row["name"],
        stock=row["stock"],
        quantity=row["quantity"],
        price=row["price"],
        offer_price=row["offer_price"],
    )


class ProductRepository:
    """Creates, updates, deletes and lists products."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def add_product(self, product: NewProduct) -> Product:
        with transaction(self.conn), _guard():
            cursor = self.conn.execute(
                "INSERT INTO products (category_id, name, stock, quantity, price, offer_price) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    product.category_id,
                    product.name,
                    product.stock,
                    product.quantity,
                    product.price,
                    product.offer_price,
                ),
            )
            created = self.get_product_by_id(cursor.lastrowid)
        assert created is not None
        return created

    def update_product(self, product: Product, product_id: int) -> Product:
        with transaction(self.conn), _guard("error updating product"):
            cursor = self.conn.execute(
                "UPDATE products SET category_id = ?, name = ?, stock = ?, quantity = ?, "
                "price = ?, offer_price = ? WHERE id = ?",
                (
                    product.category_id,
                    product.name,
                    product.stock,
                    product.quantity,
                    product.price,
                    product.offer_price,
                    product_id,
                ),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"product {product_id} does not exist")
            updated = self.get_product_by_id(product_id)
        assert updated is not None
        return updated

    def delete_product(self, product_id: int) -> None:
        """Mark a product as deleted."""
        with transaction(self.conn), _guard():
            cursor = self.conn.execute(
                "UPDATE products SET deleted_at = CURRENT_TIMESTAMP "
                "WHERE id = ? AND deleted_at IS NULL",
                (product_id,),
            )
            if cursor.rowcount < 1:
                raise NotFoundError("the id is not existing")

    def get_product_by_id(self, product_id: int) -> Optional[Product]:
        """Return the product, or None when there is no such id."""
        with _guard():
            row = self.conn.execute(
                f"SELECT {_COLUMNS} FROM products WHERE id = ?", (product_id,)
            ).fetchone()
        return _product_from_row(row) if row is not None else None

    def update_stock(self, product_id: int, qty: int) -> None:
        """Take qty units off a product's stock."""
        with transaction(self.conn), _guard():
            self.conn.execute(
                "UPDATE products SET stock = stock - ? WHERE id = ?", (qty, product_id)
            )

    def get_all_products(self, show_out_of_stock: bool) -> List[Product]:
        query = f"SELECT {_COLUMNS} FROM products WHERE deleted_at IS NULL"
        if not show_out_of_stock:
            query += " AND stock > 0"
        with _guard():
            rows = self.conn.execute(query + " ORDER BY id").fetchall()
        return [_product_from_row(row) for row in rows]

    def get_products_by_category(self, category_id, sort_by: str) -> List[Product]:
        """List in-stock products of a category in the requested order."""
        ordering = _ORDERINGS.get(sort_by, _DEFAULT_ORDERING)
        with _guard():
            rows = self.conn.execute(
                f"SELECT {_COLUMNS} FROM products "
                "WHERE category_id = ? AND stock > 0 AND deleted_at IS NULL "
                f"ORDER BY {ordering}",
                (category_id,),
            ).fetchall()
        return [_product_from_row(row) for row in rows]