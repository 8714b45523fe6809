"""Storage of discount coupons."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Union

from .base import NotFoundError, _guard, transaction

_COLUMNS = (
    "id, coupon_code, discount, minimum_required, maximum_allowed, maximum_usage, "
    "start_date, end_date, is_active"
)
_TRUE_WORDS = frozenset({"true", "t", "yes", "y", "on", "1"})
_FALSE_WORDS = frozenset({"false", "f", "no", "n", "off", "0"})


@dataclass
class NewCoupon:
    """The fields needed to create a coupon."""

    coupon_code: str
    discount: float
    minimum_required: float = 0.0
    maximum_allowed: float = 0.0
    maximum_usage: int = 0
    expire_date: Optional[datetime] = None


@dataclass
class Coupon:
    """A stored coupon."""

    coupon_code: str
    discount: float
    minimum_required: float = 0.0
    maximum_allowed: float = 0.0
    maximum_usage: int = 0
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: bool = True
    id: int = 0


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _coupon_from_row(row: sqlite3.Row) -> Coupon:
    return Coupon(
        id=row["id"],
        coupon_code=row["coupon_code"],
        discount=row["discount"],
        minimum_required=row["minimum_required"],
        maximum_allowed=row["maximum_allowed"],
        maximum_usage=row["maximum_usage"],
        start_date=_parse_time(row["start_date"]),
        end_date=_parse_time(row["end_date"]),
        is_active=bool(row["is_active"]),
    )


def _parse_active(active: Union[str, bool]) -> bool:
    if isinstance(active, bool):
        return active
    text = str(active).strip().lower()
    if not text:
        raise ValueError("coupon status must not be empty")
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise ValueError(f"invalid coupon status: {active!r}")


class CouponRepository:
    """Creates, lists and switches coupons on and off."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def _get(self, coupon_id) -> Optional[Coupon]:
        with _guard():
            row = self.conn.execute(
                f"SELECT {_COLUMNS} FROM coupons WHERE id = ?", (coupon_id,)
            ).fetchone()
        return _coupon_from_row(row) if row is not None else None

    def add_coupon(self, coupon: NewCoupon) -> Coupon:
        """Create an active coupon that starts now and ends at its expiry date."""
        start = datetime.now().isoformat(timespec="seconds")
        end = coupon.expire_date.isoformat() if coupon.expire_date else None
        with transaction(self.conn), _guard("encountered an issue while creating a new coupon"):
            cursor = self.conn.execute(
                "INSERT INTO coupons (coupon_code, discount, minimum_required, maximum_allowed, "
                "maximum_usage, start_date, end_date, is_active) VALUES (?, ?, ?, ?, ?, ?, ?, 1)",
                (
                    coupon.coupon_code,
                    coupon.discount,
                    coupon.minimum_required,
                    coupon.maximum_allowed,
                    coupon.maximum_usage,
                    start,
                    end,
                ),
            )
            created = self._get(cursor.lastrowid)
        if created is None:
            raise NotFoundError("No rows affected")
        return created

    def make_coupon_invalid(self, coupon_id: int) -> None:
        with transaction(self.conn), _guard():
            self.conn.execute("UPDATE coupons SET is_active = 0 WHERE id = ?", (coupon_id,))

    def get_all_coupons(self) -> List[Coupon]:
        with _guard():
            rows = self.conn.execute(f"SELECT {_COLUMNS} FROM coupons ORDER BY id").fetchall()
        return [_coupon_from_row(row) for row in rows]

    def check_coupon_expired(self, coupon_code: str) -> Coupon:
        """Return the active coupon with this code."""
        with _guard("face some issue while check coupon exist"):
            row = self.conn.execute(
                f"SELECT {_COLUMNS} FROM coupons WHERE coupon_code = ? AND is_active = 1 "
                "ORDER BY id LIMIT 1",
                (coupon_code,),
            ).fetchone()
        if row is None:
            raise NotFoundError("not a valid coupon, better luck next time")
        return _coupon_from_row(row)

    def get_coupon_usage_count(self, coupon_code: str, user_id: int) -> int:
        with _guard("Could not check coupon usage"):
            (count,) = self.conn.execute(
                "SELECT COUNT(*) FROM coupons WHERE coupon_code = ? AND user_id = ?",
                (coupon_code, user_id),
            ).fetchone()
        return count

    def update_coupon_status(self, coupon_id, active: Union[str, bool]) -> Coupon:
        """Switch a coupon on or off and return it."""
        is_active = _parse_active(active)
        with transaction(self.conn), _guard("face some issue while update coupons status"):
            cursor = self.conn.execute(
                "UPDATE coupons SET is_active = ? WHERE id = ?", (int(is_active), coupon_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError("No rows affected")
            updated = self._get(coupon_id)
        assert updated is not None
        return updated