"""Storage of product categories."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Optional

from .base import NotFoundError, _guard, transaction

_COLUMNS = "id, category, description, category_discount"


@dataclass
class Category:
    """A product category with its discount."""

    category: str
    description: str = ""
    category_discount: float = 0.0
    id: int = 0


def _category_from_row(row: sqlite3.Row) -> Category:
    return Category(
        id=row["id"],
        category=row["category"],
        description=row["description"],
        category_discount=row["category_discount"],
    )


class CategoryRepository:
    """Creates, updates, deletes and looks up categories."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def add_category(self, category: Category) -> Category:
        with transaction(self.conn), _guard():
            cursor = self.conn.execute(
                "INSERT INTO categories (category, description, category_discount) "
                "VALUES (?, ?, ?)",
                (category.category, category.description, category.category_discount),
            )
            created = self.get_category_by_id(cursor.lastrowid)
        assert created is not None
        return created

    def update_category(self, category: Category, category_id: int) -> Category:
        with transaction(self.conn), _guard():
            cursor = self.conn.execute(
                "UPDATE categories SET category = ?, description = ?, category_discount = ? "
                "WHERE id = ?",
                (
                    category.category,
                    category.description,
                    category.category_discount,
                    category_id,
                ),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("update failed; no rows affected")
            updated = self.get_category_by_id(category_id)
        assert updated is not None
        return updated

    def delete_category(self, category_id: int) -> None:
        with transaction(self.conn), _guard():
            cursor = self.conn.execute("DELETE FROM categories WHERE id = ?", (category_id,))
            if cursor.rowcount < 1:
                raise NotFoundError("the ID does not exist")

    def get_category_by_id(self, category_id: int) -> Optional[Category]:
        """Return the category, or None when there is no such id."""
        with _guard():
            row = self.conn.execute(
                f"SELECT {_COLUMNS} FROM categories WHERE id = ?", (category_id,)
            ).fetchone()
        return _category_from_row(row) if row is not None else None