"""Administrator accounts and the admin views of users, orders, stock and sales."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import date
from typing import List, Sequence, Tuple, Union

from .base import NotFoundError, RepositoryError, _guard, transaction
from .order import (
    _ORDER_COLUMNS,
    _REFUNDABLE_PAYMENT_METHODS,
    FullOrderDetails,
    Order,
    OrderDetails,
    OrderId,
    OrderProduct,
    OrderRepository,
    OrderStatus,
    _order_from_row,
    _order_product_details,
    _plain,
)
from .user import _USER_COLUMNS, User, _user_from_row

_ADMIN_TABLE = (
    "CREATE TABLE IF NOT EXISTS admin_details ("
    "id INTEGER PRIMARY KEY AUTOINCREMENT, "
    "name TEXT NOT NULL, "
    "email TEXT NOT NULL UNIQUE, "
    "password TEXT NOT NULL)"
)
_BEST_SELLING_LIMIT = 10


@dataclass
class AdminSignUp:
    """The fields needed to register an administrator."""

    name: str
    email: str
    password: str


@dataclass
class AdminDetails:
    """A stored administrator; the password is only filled in on login."""

    name: str
    email: str
    password: str = ""
    id: int = 0


@dataclass
class OrderCount:
    """Number of orders in a period, in total and per status."""

    total_order: int = 0
    total_pending: int = 0
    total_confirmed: int = 0
    total_shipped: int = 0
    total_delivered: int = 0
    total_cancelled: int = 0
    total_returned: int = 0


@dataclass
class AmountInformation:
    """Money taken by orders in a period, before and after deductions."""

    total_amount_before_deduction: float = 0.0
    total_coupon_deduction: float = 0.0
    total_product_offer_deduction: float = 0.0
    total_amount_after_deduction: float = 0.0


@dataclass
class BestSellingProduct:
    """A product with the number of units sold."""

    product_id: int
    product_name: str
    total_sold: int


@dataclass
class BestSellingCategory:
    """A category with the number of units sold from it."""

    category_id: int
    category_name: str
    total_sold: int


def _parse_day(text: str, which: str) -> date:
    try:
        return date.fromisoformat(text)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"error parsing {which} date: {exc}") from exc


class AdminRepository:
    """Administrator sign-up and the admin's access to users, orders and sales."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        with transaction(self.conn), _guard():
            self.conn.execute(_ADMIN_TABLE)

    def check_admin_availability(self, email: str) -> bool:
        """Tell whether an administrator with this e-mail exists."""
        with _guard():
            (count,) = self.conn.execute(
                "SELECT COUNT(*) FROM admin_details WHERE email = ?", (email,)
            ).fetchone()
        return count > 0

    def sign_up(self, admin: AdminSignUp) -> AdminDetails:
        """Store a new administrator and return its id, name and e-mail."""
        with transaction(self.conn):
            with _guard():
                (count,) = self.conn.execute(
                    "SELECT COUNT(*) FROM admin_details WHERE email = ?", (admin.email,)
                ).fetchone()
            if count:
                raise RepositoryError(f"admin with email {admin.email} already exists")
            with _guard():
                cursor = self.conn.execute(
                    "INSERT INTO admin_details (name, email, password) VALUES (?, ?, ?)",
                    (admin.name, admin.email, admin.password),
                )
        return AdminDetails(name=admin.name, email=admin.email, id=cursor.lastrowid)

    def login(self, email: str) -> AdminDetails:
        """Return the stored administrator, with password, for checking a login."""
        with _guard():
            row = self.conn.execute(
                "SELECT id, name, email, password FROM admin_details WHERE email = ?",
                (email,),
            ).fetchone()
        if row is None:
            raise NotFoundError("record not found")
        return AdminDetails(
            id=row["id"], name=row["name"], email=row["email"], password=row["password"]
        )

    def get_users(self) -> List[User]:
        with _guard():
            rows = self.conn.execute(f"SELECT {_USER_COLUMNS} FROM users ORDER BY id").fetchall()
        return [_user_from_row(row) for row in rows]

    def get_user_by_id(self, user_id: int) -> User:
        with _guard():
            row = self.conn.execute(
                f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (user_id,)
            ).fetchone()
        if row is None:
            raise NotFoundError(f"user with ID {user_id} not found")
        return _user_from_row(row)

    def update_block_user(self, user_id: int, blocked: bool) -> None:
        with transaction(self.conn), _guard():
            self.conn.execute(
                "UPDATE users SET blocked = ? WHERE id = ?", (int(bool(blocked)), user_id)
            )

    def get_product_stock(self, product_id: int) -> int:
        """Return a product's stock, 0 when there is no such product."""
        with _guard():
            row = self.conn.execute(
                "SELECT stock FROM products WHERE id = ?", (product_id,)
            ).fetchone()
        return row["stock"] if row is not None else 0

    def update_product_stock(self, product_id: int, quantity: int) -> None:
        """Add a quantity to a product's stock."""
        with transaction(self.conn), _guard("failed to update product stock"):
            self.conn.execute(
                "UPDATE products SET stock = stock + ? WHERE id = ?", (quantity, product_id)
            )

    def order_owner(self, order_id: OrderId) -> int:
        """Return the id of the user who placed the order."""
        with _guard(f"failed to fetch user ID for order ID {order_id}"):
            row = self.conn.execute(
                "SELECT user_id FROM orders WHERE order_id = ?", (order_id,)
            ).fetchone()
        if row is None:
            raise NotFoundError(f"order {order_id} not found")
        return row["user_id"]

    def get_product_details_from_orders(self, order_id: OrderId) -> List[OrderProduct]:
        with _guard():
            rows = self.conn.execute(
                "SELECT product_id, quantity FROM order_items WHERE order_id = ? ORDER BY id",
                (order_id,),
            ).fetchall()
        return [OrderProduct(row["product_id"], row["quantity"]) for row in rows]

    def get_order_status(self, order_id: OrderId) -> str:
        with _guard():
            row = self.conn.execute(
                "SELECT order_status FROM orders WHERE order_id = ?", (order_id,)
            ).fetchone()
        if row is None:
            raise NotFoundError(f"order {order_id} not found")
        return row["order_status"]

    def get_order(self, order_id: OrderId) -> Order:
        with _guard():
            row = self.conn.execute(
                f"SELECT {_ORDER_COLUMNS} FROM orders WHERE order_id = ?", (order_id,)
            ).fetchone()
        if row is None:
            raise NotFoundError(f"order {order_id} not found")
        return _order_from_row(row)

    def get_all_order_details(self) -> List[FullOrderDetails]:
        """List every order with its product lines."""
        with _guard():
            rows = self.conn.execute(
                "SELECT order_id, final_price, order_status, payment_status FROM orders "
                "ORDER BY order_id"
            ).fetchall()
        return [
            FullOrderDetails(
                OrderDetails(
                    order_id=row["order_id"],
                    final_price=row["final_price"],
                    order_status=row["order_status"],
                    payment_status=row["payment_status"],
                ),
                _order_product_details(self.conn, row["order_id"]),
            )
            for row in rows
        ]

    def cancel_order(self, order_id: OrderId) -> None:
        """Cancel an order, marking prepaid ones as refunded."""
        OrderRepository(self.conn).cancel_order(order_id)

    def restock_products(self, order_products: Sequence[OrderProduct]) -> None:
        """Give the quantities of an order back to its products."""
        OrderRepository(self.conn).update_quantity_of_products(order_products)

    def change_order_status(self, order_id: OrderId, status: Union[OrderStatus, str]) -> Order:
        """Set an order's status; a delivered prepaid order becomes paid."""
        status_value = _plain(status)
        with transaction(self.conn):
            with _guard():
                cursor = self.conn.execute(
                    "UPDATE orders SET order_status = ? WHERE order_id = ?",
                    (status_value, order_id),
                )
            if cursor.rowcount == 0:
                raise NotFoundError(f"order {order_id} not found")
            if status_value == OrderStatus.DELIVERED.value:
                with _guard():
                    row = self.conn.execute(
                        "SELECT payment_method_id FROM orders WHERE order_id = ?", (order_id,)
                    ).fetchone()
                    if row["payment_method_id"] in _REFUNDABLE_PAYMENT_METHODS:
                        self.conn.execute(
                            "UPDATE orders SET payment_status = 'paid' WHERE order_id = ?",
                            (order_id,),
                        )
        return self.get_order(order_id)

    def get_total_orders(
        self, from_date: str, to_date: str, order_status: str = ""
    ) -> Tuple[OrderCount, AmountInformation]:
        """Count orders per status and sum their amounts between two dates, inclusive.

        The amounts cover only orders with the given status, when one is given;
        the counts cover every order in the period.
        """
        start = _parse_day(from_date, "start")
        end = _parse_day(to_date, "end")
        status_value = _plain(order_status)
        query = (
            "SELECT grand_total, discount_amount, final_price FROM orders "
            "WHERE date(order_date) BETWEEN ? AND ?"
        )
        params: list = [start.isoformat(), end.isoformat()]
        if status_value:
            query += " AND order_status = ?"
            params.append(status_value)
        with _guard("error fetching orders"):
            rows = self.conn.execute(query, params).fetchall()
        if not rows:
            return OrderCount(), AmountInformation()

        amounts = AmountInformation()
        for row in rows:
            amounts.total_amount_before_deduction += row["grand_total"]
            amounts.total_coupon_deduction += row["discount_amount"]
            amounts.total_product_offer_deduction += (
                row["grand_total"] - row["final_price"] - row["discount_amount"]
            )
            amounts.total_amount_after_deduction += row["final_price"]

        with _guard("error counting order items"):
            status_rows = self.conn.execute(
                "SELECT order_status, COUNT(*) AS count FROM orders "
                "WHERE date(order_date) BETWEEN ? AND ? GROUP BY order_status",
                (start.isoformat(), end.isoformat()),
            ).fetchall()
        counts = {row["order_status"]: row["count"] for row in status_rows}
        return (
            OrderCount(
                total_order=sum(counts.values()),
                total_pending=counts.get(OrderStatus.PENDING.value, 0),
                total_confirmed=counts.get(OrderStatus.CONFIRMED.value, 0),
                total_shipped=counts.get(OrderStatus.SHIPPED.value, 0),
                total_delivered=counts.get(OrderStatus.DELIVERED.value, 0),
                total_cancelled=counts.get(OrderStatus.CANCELLED.value, 0),
                total_returned=counts.get(OrderStatus.RETURNED.value, 0),
            ),
            amounts,
        )

    def best_selling_products(self) -> List[BestSellingProduct]:
        """The ten products with the most units ordered, best first."""
        with _guard():
            rows = self.conn.execute(
                "SELECT p.id AS product_id, p.name AS product_name, "
                "SUM(o.quantity) AS total_sold FROM order_items o "
                "JOIN products p ON o.product_id = p.id "
                "GROUP BY p.id, p.name ORDER BY total_sold DESC, p.id LIMIT ?",
                (_BEST_SELLING_LIMIT,),
            ).fetchall()
        return [
            BestSellingProduct(row["product_id"], row["product_name"], row["total_sold"])
            for row in rows
        ]

    def best_selling_categories(self) -> List[BestSellingCategory]:
        """The ten categories with the most units ordered, best first."""
        with _guard():
            rows = self.conn.execute(
                "SELECT c.id AS category_id, c.category AS category_name, "
                "SUM(o.quantity) AS total_sold FROM order_items o "
                "JOIN products p ON o.product_id = p.id "
                "JOIN categories c ON p.category_id = c.id "
                "GROUP BY c.id, c.category ORDER BY total_sold DESC, c.id LIMIT ?",
                (_BEST_SELLING_LIMIT,),
            ).fetchall()
        return [
            BestSellingCategory(row["category_id"], row["category_name"], row["total_sold"])
            for row in rows
        ]