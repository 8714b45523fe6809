"""Storage of online payment records and order payment state."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import List, Union

from .base import NotFoundError, _guard, transaction

OrderId = Union[int, str]


@dataclass
class CombinedOrderDetails:
    """An order joined with its customer and delivery address."""

    order_id: str
    final_price: float
    order_status: str
    payment_status: str
    first_name: str
    email: str
    phone: str
    house_name: str
    street: str
    city: str
    district: str
    state: str
    pin: str


class PaymentRepository:
    """Records gateway payments and updates orders' payment state."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def add_razorpay_details(self, order_id: OrderId, razorpay_order_id: str) -> None:
        with transaction(self.conn), _guard():
            self.conn.execute(
                "INSERT INTO razor_pays (order_id, razor_id) VALUES (?, ?)",
                (str(order_id), razorpay_order_id),
            )

    def get_order_details_by_order_id(self, order_id: OrderId) -> CombinedOrderDetails:
        with _guard():
            row = self.conn.execute(
                "SELECT orders.order_id, orders.final_price, orders.order_status, "
                "orders.payment_status, users.first_name, users.email, users.phone, "
                "addresses.house_name, addresses.street, addresses.city, "
                "addresses.district, addresses.state, addresses.pin "
                "FROM orders "
                "INNER JOIN users ON orders.user_id = users.id "
                "INNER JOIN addresses ON orders.address_id = addresses.id "
                "WHERE orders.order_id = ?",
                (order_id,),
            ).fetchone()
        if row is None:
            raise NotFoundError("order not found for this user")
        values = dict(zip(row.keys(), tuple(row)))
        values["order_id"] = str(values["order_id"])
        return CombinedOrderDetails(**values)

    def check_payment_status(self, order_id: OrderId) -> str:
        with _guard():
            row = self.conn.execute(
                "SELECT payment_status FROM orders WHERE order_id = ?", (order_id,)
            ).fetchone()
        if row is None:
            raise NotFoundError(f"order {order_id} not found")
        return row["payment_status"]

    def update_online_payment_success(self, order_id: OrderId) -> List[CombinedOrderDetails]:
        """Mark an order as paid and successful; return its details if it exists."""
        with transaction(self.conn), _guard():
            cursor = self.conn.execute(
                "UPDATE orders SET payment_status = 'paid', order_status = 'success' "
                "WHERE order_id = ?",
                (order_id,),
            )
        if cursor.rowcount == 0:
            return []
        try:
            return [self.get_order_details_by_order_id(order_id)]
        except NotFoundError:
            return []

    def update_payment_details(self, order_id: OrderId, payment_id: str) -> None:
        with transaction(self.conn), _guard():
            self.conn.execute(
                "UPDATE razor_pays SET payment_id = ? WHERE order_id = ?",
                (payment_id, str(order_id)),
            )