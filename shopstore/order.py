"""Storage of orders, their items, and the order-side views of stock, wallets and coupons."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple, Union

from .base import NotFoundError, _guard, transaction
from .cart import _COLUMNS as _CART_COLUMNS
from .cart import CartItem, _item_from_row
from .coupons import _COLUMNS as _COUPON_COLUMNS
from .coupons import Coupon, _coupon_from_row
from .user import _ADDRESS_COLUMNS, Address, _address_from_row

OrderId = Union[int, str]

_REFUNDABLE_PAYMENT_METHODS = (1, 3)

_ORDER_FIELDS = (
    "user_id",
    "address_id",
    "payment_method_id",
    "coupon_id",
    "coupon_code",
    "discount_amount",
    "category_discount",
    "raw_total",
    "grand_total",
    "final_price",
    "delivery_charge",
    "order_status",
    "payment_status",
)
_ORDER_COLUMNS = "order_id, " + ", ".join(_ORDER_FIELDS) + ", order_date"


class OrderStatus(str, Enum):
    """The states an order moves through."""

    PENDING = "pending"
    CONFIRMED = "success"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


@dataclass
class Order:
    """A placed order with its prices and state."""

    user_id: int
    address_id: int
    payment_method_id: int = 0
    coupon_id: Optional[int] = None
    coupon_code: Optional[str] = None
    discount_amount: float = 0.0
    category_discount: float = 0.0
    raw_total: float = 0.0
    grand_total: float = 0.0
    final_price: float = 0.0
    delivery_charge: float = 0.0
    order_status: str = OrderStatus.PENDING.value
    payment_status: str = "not paid"
    order_date: Optional[datetime] = None
    order_id: int = 0


@dataclass
class OrderItem:
    """One product line of an order."""

    order_id: int
    product_id: int
    quantity: int
    total_price: float = 0.0
    id: int = 0


@dataclass
class OrderProduct:
    """A product and quantity taken by an order, with the order's final price."""

    product_id: int
    quantity: int
    final_price: float = 0.0


@dataclass
class OrderDetails:
    """Summary of an order's prices and state."""

    order_id: int
    final_price: float
    order_status: str
    payment_status: str
    discount_amount: float = 0.0
    category_discount: float = 0.0
    grand_total: float = 0.0


@dataclass
class OrderProductDetails:
    """A product line of an order with the product's name."""

    product_id: int
    product_name: str
    quantity: int
    total_price: float


@dataclass
class FullOrderDetails:
    """An order summary together with its product lines."""

    order_details: OrderDetails
    order_product_details: List[OrderProductDetails] = field(default_factory=list)


@dataclass
class InvoiceItem:
    """A line of an invoice."""

    name: str
    quantity: int
    price: float


@dataclass
class InvoiceDetails:
    """Everything needed to print an invoice for an order."""

    customer_name: str
    customer_phone_number: str
    customer_address: Address
    customer_city: str
    order_date: Optional[datetime]
    items: List[InvoiceItem]
    order_status: str
    grand_total: float
    category_discount: float
    raw_amount: float
    final_price: float
    discount: float
    delivery_charge: float


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _order_from_row(row: sqlite3.Row) -> Order:
    values = {name: row[name] for name in _ORDER_FIELDS}
    return Order(order_id=row["order_id"], order_date=_parse_time(row["order_date"]), **values)


def _order_product_details(conn: sqlite3.Connection, order_id: OrderId) -> List[OrderProductDetails]:
    with _guard():
        rows = conn.execute(
            "SELECT order_items.product_id, products.name AS product_name, "
            "order_items.quantity, order_items.total_price FROM order_items "
            "INNER JOIN products ON order_items.product_id = products.id "
            "WHERE order_items.order_id = ? ORDER BY order_items.id",
            (order_id,),
        ).fetchall()
    return [
        OrderProductDetails(
            product_id=row["product_id"],
            product_name=row["product_name"],
            quantity=row["quantity"],
            total_price=row["total_price"],
        )
        for row in rows
    ]


class OrderRepository:
    """Creates orders and reads or changes their state, items and payments."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def _value(self, query: str, params: Sequence[Any], missing: str) -> Any:
        with _guard():
            row = self.conn.execute(query, params).fetchone()
        if row is None:
            raise NotFoundError(missing)
        return row[0]

    def does_cart_exist(self, user_id: int) -> bool:
        with _guard():
            (exists,) = self.conn.execute(
                "SELECT EXISTS(SELECT 1 FROM carts WHERE user_id = ? AND deleted_at IS NULL)",
                (user_id,),
            ).fetchone()
        return bool(exists)

    def address_exists(self, address_id: int) -> bool:
        with _guard():
            (count,) = self.conn.execute(
                "SELECT COUNT(*) FROM addresses WHERE id = ?", (address_id,)
            ).fetchone()
        return count > 0

    def get_product_stock(self, product_id: int) -> int:
        """Return a product's stock, 0 when there is no such product."""
        with _guard():
            row = self.conn.execute(
                "SELECT stock FROM products WHERE id = ?", (product_id,)
            ).fetchone()
        return row["stock"] if row is not None else 0

    def update_product_stock(self, product_id: int, new_stock: int) -> None:
        with transaction(self.conn), _guard():
            self.conn.execute(
                "UPDATE products SET stock = ? WHERE id = ?", (new_stock, product_id)
            )

    def create_order(self, order: Order) -> int:
        """Store an order and return its id; a given coupon id must exist."""
        with transaction(self.conn):
            if order.coupon_id is not None:
                with _guard():
                    (count,) = self.conn.execute(
                        "SELECT COUNT(*) FROM coupons WHERE id = ?", (order.coupon_id,)
                    ).fetchone()
                if count == 0:
                    raise NotFoundError("invalid coupon id")
            columns = list(_ORDER_FIELDS)
            values = [_plain(getattr(order, name)) for name in _ORDER_FIELDS]
            if order.order_date is not None:
                columns.append("order_date")
                values.append(order.order_date.isoformat(sep=" ", timespec="seconds"))
            placeholders = ", ".join("?" for _ in columns)
            with _guard():
                cursor = self.conn.execute(
                    f"INSERT INTO orders ({', '.join(columns)}) VALUES ({placeholders})", values
                )
            return cursor.lastrowid

    def create_order_items(self, items: Sequence[OrderItem]) -> List[OrderItem]:
        """Store order lines under fresh ids and return them."""
        with transaction(self.conn), _guard():
            return [
                replace(
                    item,
                    id=self.conn.execute(
                        "INSERT INTO order_items (order_id, product_id, quantity, total_price) "
                        "VALUES (?, ?, ?, ?)",
                        (item.order_id, item.product_id, item.quantity, item.total_price),
                    ).lastrowid,
                )
                for item in items
            ]

    def fetch_cart_items(self, user_id: int) -> List[CartItem]:
        with _guard():
            rows = self.conn.execute(
                f"SELECT {_CART_COLUMNS} FROM carts WHERE user_id = ? AND deleted_at IS NULL "
                "ORDER BY id",
                (user_id,),
            ).fetchall()
        return [_item_from_row(row) for row in rows]

    def get_brief_order_details(self, order_id: OrderId) -> Order:
        with _guard():
            row = self.conn.execute(
                f"SELECT {_ORDER_COLUMNS} FROM orders WHERE order_id = ?", (order_id,)
            ).fetchone()
        if row is None:
            raise NotFoundError(f"order {order_id} not found")
        return _order_from_row(row)

    def user_order_relationship(self, order_id: OrderId) -> int:
        """Return the id of the user who placed the order."""
        return self._value(
            "SELECT user_id FROM orders WHERE order_id = ?", (order_id,),
            f"order {order_id} not found",
        )

    def get_product_details_from_orders(self, order_id: OrderId) -> List[OrderProduct]:
        with _guard():
            rows = self.conn.execute(
                "SELECT product_id, quantity FROM order_items WHERE order_id = ? ORDER BY id",
                (order_id,),
            ).fetchall()
            price_row = self.conn.execute(
                "SELECT final_price FROM orders WHERE order_id = ?", (order_id,)
            ).fetchone()
        final_price = price_row["final_price"] if price_row is not None else 0.0
        return [OrderProduct(row["product_id"], row["quantity"], final_price) for row in rows]

    def get_order_item_price(self, order_item_id: int) -> float:
        return self._value(
            "SELECT total_price FROM order_items WHERE id = ?", (order_item_id,),
            f"order item {order_item_id} not found",
        )

    def get_order_item_details(self, order_item_id: int) -> Tuple[int, int]:
        """Return the product id and quantity of an order line."""
        with _guard():
            row = self.conn.execute(
                "SELECT product_id, quantity FROM order_items WHERE id = ?", (order_item_id,)
            ).fetchone()
        if row is None:
            raise NotFoundError(f"order item {order_item_id} not found")
        return row["product_id"], row["quantity"]

    def get_order_status(self, order_id: OrderId) -> str:
        return self._value(
            "SELECT order_status FROM orders WHERE order_id = ?", (order_id,),
            f"order {order_id} not found",
        )

    def get_payment_status(self, order_id: OrderId) -> str:
        return self._value(
            "SELECT payment_status FROM orders WHERE order_id = ?", (order_id,),
            f"order {order_id} not found",
        )

    def update_payment_status(self, order_id: OrderId, payment_status: str) -> None:
        with transaction(self.conn), _guard():
            self.conn.execute(
                "UPDATE orders SET payment_status = ? WHERE order_id = ?",
                (_plain(payment_status), order_id),
            )

    def get_order_final_price(self, order_id: OrderId) -> float:
        return self._value(
            "SELECT final_price FROM orders WHERE order_id = ?", (order_id,),
            f"order {order_id} not found",
        )

    def fetch_order_details(self, order_id: OrderId) -> InvoiceDetails:
        """Collect the customer, address and product lines of an order for its invoice."""
        order = self.get_brief_order_details(order_id)
        with _guard():
            user_row = self.conn.execute(
                "SELECT first_name, phone FROM users WHERE id = ?", (order.user_id,)
            ).fetchone()
            address_row = self.conn.execute(
                f"SELECT {_ADDRESS_COLUMNS} FROM addresses WHERE id = ?", (order.address_id,)
            ).fetchone()
            item_rows = self.conn.execute(
                "SELECT order_items.quantity, products.name, products.price FROM order_items "
                "LEFT JOIN products ON order_items.product_id = products.id "
                "WHERE order_items.order_id = ? ORDER BY order_items.id",
                (order_id,),
            ).fetchall()
        if user_row is None:
            raise NotFoundError(f"user {order.user_id} not found")
        if address_row is None:
            raise NotFoundError(f"address {order.address_id} not found")
        if any(row["name"] is None for row in item_rows):
            raise NotFoundError("a product of the order does not exist")
        address = _address_from_row(address_row)
        return InvoiceDetails(
            customer_name=user_row["first_name"],
            customer_phone_number=user_row["phone"],
            customer_address=address,
            customer_city=address.city,
            order_date=order.order_date,
            items=[InvoiceItem(row["name"], row["quantity"], row["price"]) for row in item_rows],
            order_status=order.order_status,
            grand_total=order.grand_total,
            category_discount=order.category_discount,
            raw_amount=order.raw_total,
            final_price=order.final_price,
            discount=order.discount_amount,
            delivery_charge=order.delivery_charge,
        )

    def get_order_details(self, user_id: int) -> List[FullOrderDetails]:
        """List a user's orders, each with its product lines."""
        with _guard():
            rows = self.conn.execute(
                "SELECT order_id, discount_amount, category_discount, grand_total, "
                "final_price, order_status, payment_status FROM orders "
                "WHERE user_id = ? ORDER BY order_id",
                (user_id,),
            ).fetchall()
        return [
            FullOrderDetails(
                OrderDetails(
                    order_id=row["order_id"],
                    final_price=row["final_price"],
                    order_status=row["order_status"],
                    payment_status=row["payment_status"],
                    discount_amount=row["discount_amount"],
                    category_discount=row["category_discount"],
                    grand_total=row["grand_total"],
                ),
                _order_product_details(self.conn, row["order_id"]),
            )
            for row in rows
        ]

    def get_wallet_amount(self, user_id: int) -> float:
        """Return the wallet balance, 0 when the user has no wallet."""
        with _guard():
            row = self.conn.execute(
                "SELECT balance FROM wallets WHERE user_id = ?", (user_id,)
            ).fetchone()
        return float(row["balance"]) if row is not None else 0.0

    def update_wallet_amount(self, wallet_amount: float, user_id: int) -> None:
        with transaction(self.conn), _guard():
            self.conn.execute(
                "UPDATE wallets SET balance = ? WHERE user_id = ?", (wallet_amount, user_id)
            )

    def cancel_order(self, order_id: OrderId) -> None:
        """Cancel an order, marking prepaid ones as refunded."""
        with transaction(self.conn), _guard():
            self.conn.execute(
                "UPDATE orders SET order_status = ? WHERE order_id = ?",
                (OrderStatus.CANCELLED.value, order_id),
            )
            row = self.conn.execute(
                "SELECT payment_method_id FROM orders WHERE order_id = ?", (order_id,)
            ).fetchone()
            if row is not None and row["payment_method_id"] in _REFUNDABLE_PAYMENT_METHODS:
                self.conn.execute(
                    "UPDATE orders SET payment_status = 'refunded' WHERE order_id = ?",
                    (order_id,),
                )

    def update_quantity_of_products(self, order_products: Sequence[OrderProduct]) -> None:
        """Give the quantities of an order back to its products."""
        with transaction(self.conn), _guard():
            for product in order_products:
                self.conn.execute(
                    "UPDATE products SET quantity = quantity + ? WHERE id = ?",
                    (product.quantity, product.product_id),
                )

    def cancel_order_item(self, order_item_id: int) -> None:
        with transaction(self.conn), _guard("error cancelling order item"):
            self.conn.execute("DELETE FROM order_items WHERE id = ?", (order_item_id,))

    def update_user_order_return(self, order_id: OrderId, user_id: int) -> None:
        """Mark a user's order as returned and refunded."""
        with transaction(self.conn), _guard("error updating order return status"):
            cursor = self.conn.execute(
                "UPDATE orders SET order_status = ?, payment_status = 'refunded' "
                "WHERE order_id = ? AND user_id = ?",
                (OrderStatus.RETURNED.value, order_id, user_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("no rows updated, check if order ID and user ID are correct")

    def get_coupon_details(self, coupon_code: str) -> Coupon:
        with _guard():
            row = self.conn.execute(
                f"SELECT {_COUPON_COLUMNS} FROM coupons WHERE coupon_code = ? ORDER BY id LIMIT 1",
                (coupon_code,),
            ).fetchone()
        if row is None:
            raise NotFoundError("coupon does not exist")
        return _coupon_from_row(row)

    def check_coupon_usage(self, user_id: int, coupon_code: str) -> int:
        """Count the user's orders that used the coupon code."""
        with _guard():
            (count,) = self.conn.execute(
                "SELECT COUNT(*) FROM orders WHERE user_id = ? AND coupon_code = ?",
                (user_id, coupon_code),
            ).fetchone()
        return count

    def check_coupon_applied(self, user_id: int, coupon_code: str) -> bool:
        """Tell whether the user has already used the coupon code on an order."""
        return self.check_coupon_usage(user_id, coupon_code) > 0