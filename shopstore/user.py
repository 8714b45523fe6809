"""Storage of users, pending sign-ups, one-time passwords and addresses."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, replace
from datetime import datetime
from typing import List, Optional, Tuple

from .base import NotFoundError, RepositoryError, _guard, transaction
from .category import Category
from .product import Product, ProductRepository

_USER_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "password",
    "blocked",
    "is_admin",
)
_USER_COLUMNS = "id, " + ", ".join(_USER_FIELDS)
_TEMP_FIELDS = ("first_name", "last_name", "email", "phone", "password")
_TEMP_COLUMNS = "id, " + ", ".join(_TEMP_FIELDS)
_OTP_COLUMNS = "id, email, otp, otp_expiry"
_ADDRESS_FIELDS = ("house_name", "street", "city", "district", "state", "pin")
_ADDRESS_COLUMNS = "id, user_id, " + ", ".join(_ADDRESS_FIELDS)


@dataclass
class User:
    """A registered customer."""

    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    password: str = ""
    blocked: bool = False
    is_admin: bool = False
    id: int = 0


@dataclass
class TempUser:
    """A sign-up waiting for its one-time password to be confirmed."""

    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    password: str = ""
    id: int = 0


@dataclass
class OTPRecord:
    """A one-time password issued to an e-mail address."""

    email: str
    otp: str
    otp_expiry: Optional[datetime] = None
    id: int = 0


@dataclass
class Address:
    """A delivery address of a user."""

    house_name: str = ""
    street: str = ""
    city: str = ""
    district: str = ""
    state: str = ""
    pin: str = ""
    user_id: int = 0
    id: int = 0


def _user_from_row(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        email=row["email"],
        phone=row["phone"],
        password=row["password"],
        blocked=bool(row["blocked"]),
        is_admin=bool(row["is_admin"]),
    )


def _user_values(user: User) -> list:
    return [
        int(value) if isinstance(value, bool) else value
        for value in (getattr(user, name) for name in _USER_FIELDS)
    ]


def _temp_user_from_row(row: sqlite3.Row) -> TempUser:
    return TempUser(**{name: row[name] for name in ("id",) + _TEMP_FIELDS})


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _format_time(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _otp_from_row(row: sqlite3.Row) -> OTPRecord:
    return OTPRecord(
        id=row["id"],
        email=row["email"],
        otp=row["otp"],
        otp_expiry=_parse_time(row["otp_expiry"]),
    )


def _has_expired(expiry: Optional[datetime]) -> bool:
    if expiry is None:
        return True
    return datetime.now(expiry.tzinfo) > expiry


def _address_from_row(row: sqlite3.Row) -> Address:
    return Address(**{name: row[name] for name in ("id", "user_id") + _ADDRESS_FIELDS})


class UserRepository:
    """Keeps users, their sign-up codes, profiles, passwords and addresses."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def _insert_user(self, user: User) -> User:
        columns = list(_USER_FIELDS)
        values = _user_values(user)
        if user.id:
            columns.append("id")
            values.append(user.id)
        placeholders = ", ".join("?" for _ in columns)
        with _guard():
            cursor = self.conn.execute(
                f"INSERT INTO users ({', '.join(columns)}) VALUES ({placeholders})", values
            )
        return replace(user, id=cursor.lastrowid)

    def _insert_otp(self, email: str, otp: str, expiry: Optional[datetime]) -> None:
        self.conn.execute(
            "INSERT INTO otps (email, otp, otp_expiry) VALUES (?, ?, ?)",
            (email, otp, _format_time(expiry)),
        )

    def get_user_by_email(self, email: str) -> Optional[User]:
        """Return the user with this e-mail, or None."""
        with _guard():
            row = self.conn.execute(
                f"SELECT {_USER_COLUMNS} FROM users WHERE email = ? ORDER BY id LIMIT 1",
                (email,),
            ).fetchone()
        return _user_from_row(row) if row is not None else None

    def save_otp(self, email: str, otp: str, expiry: datetime) -> None:
        with transaction(self.conn), _guard("failed to store OTP"):
            self._insert_otp(email, otp, expiry)

    def save_or_update_otp(self, email: str, otp: str, expiry: datetime) -> None:
        """Store a new one-time password record for the address."""
        with transaction(self.conn), _guard():
            self._insert_otp(email, otp, expiry)

    def create_user(self, user: User) -> User:
        """Save a user: update the row with its id, or insert it."""
        with transaction(self.conn):
            if user.id:
                assignments = ", ".join(f"{name} = ?" for name in _USER_FIELDS)
                with _guard():
                    cursor = self.conn.execute(
                        f"UPDATE users SET {assignments} WHERE id = ?",
                        _user_values(user) + [user.id],
                    )
                if cursor.rowcount:
                    return user
            return self._insert_user(user)

    def verify_otp_and_move_user(self, email: str, otp: str) -> User:
        """Check a sign-up code and turn the pending sign-up into a user."""
        with transaction(self.conn):
            with _guard():
                row = self.conn.execute(
                    f"SELECT {_OTP_COLUMNS} FROM otps WHERE email = ? AND otp = ? "
                    "ORDER BY id LIMIT 1",
                    (email, otp),
                ).fetchone()
            if row is None:
                raise NotFoundError("invalid or expired OTP")
            record = _otp_from_row(row)
            if _has_expired(record.otp_expiry):
                raise RepositoryError("OTP has expired")
            with _guard():
                temp_row = self.conn.execute(
                    f"SELECT {_TEMP_COLUMNS} FROM temp_users WHERE email = ? "
                    "ORDER BY id LIMIT 1",
                    (email,),
                ).fetchone()
            if temp_row is None:
                raise NotFoundError("record not found")
            temp = _temp_user_from_row(temp_row)
            created = self._insert_user(
                User(
                    first_name=temp.first_name,
                    last_name=temp.last_name,
                    email=temp.email,
                    phone=temp.phone,
                    password=temp.password,
                )
            )
            with _guard():
                self.conn.execute("DELETE FROM otps WHERE id = ?", (record.id,))
        return created

    def save_temp_user(self, user: User) -> TempUser:
        with transaction(self.conn), _guard():
            cursor = self.conn.execute(
                "INSERT INTO temp_users (first_name, last_name, email, phone, password) "
                "VALUES (?, ?, ?, ?, ?)",
                (user.first_name, user.last_name, user.email, user.phone, user.password),
            )
        return TempUser(
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            phone=user.phone,
            password=user.password,
            id=cursor.lastrowid,
        )

    def update_otp(self, record: OTPRecord) -> None:
        """Replace the code and expiry of every record for the record's address."""
        with transaction(self.conn), _guard():
            self.conn.execute(
                "UPDATE otps SET otp = ?, otp_expiry = ? WHERE email = ?",
                (record.otp, _format_time(record.otp_expiry), record.email),
            )

    def get_otp_by_email(self, email: str) -> OTPRecord:
        """Return the most recent one-time password record for the address."""
        with _guard():
            row = self.conn.execute(
                f"SELECT {_OTP_COLUMNS} FROM otps WHERE email = ? ORDER BY id DESC LIMIT 1",
                (email,),
            ).fetchone()
        if row is None:
            raise NotFoundError("OTP not found")
        return _otp_from_row(row)

    def get_temp_user_by_email(self, email: str) -> TempUser:
        """Find a pending sign-up, ignoring case and surrounding spaces."""
        normalized = email.strip().lower()
        with _guard():
            row = self.conn.execute(
                f"SELECT {_TEMP_COLUMNS} FROM temp_users WHERE LOWER(email) = ? "
                "ORDER BY id LIMIT 1",
                (normalized,),
            ).fetchone()
        if row is None:
            raise NotFoundError(f"temporary user not found for email {normalized}")
        return _temp_user_from_row(row)

    def delete_temp_user(self, email: str) -> None:
        with transaction(self.conn), _guard():
            self.conn.execute("DELETE FROM temp_users WHERE email = ?", (email,))

    def get_otp(self, email: str) -> Tuple[str, datetime]:
        """Return the first unexpired code for the address and its expiry."""
        email = email.strip()
        with _guard():
            row = self.conn.execute(
                f"SELECT {_OTP_COLUMNS} FROM otps WHERE email = ? ORDER BY id LIMIT 1",
                (email,),
            ).fetchone()
        if row is None:
            raise NotFoundError(f"no OTP found for email: {email}")
        record = _otp_from_row(row)
        if _has_expired(record.otp_expiry):
            raise RepositoryError("OTP has expired")
        assert record.otp_expiry is not None
        return record.otp, record.otp_expiry

    def delete_otp(self, email: str) -> None:
        with transaction(self.conn), _guard():
            self.conn.execute("DELETE FROM otps WHERE email = ?", (email,))

    def is_email_exists(self, email: str) -> bool:
        with _guard():
            (count,) = self.conn.execute(
                "SELECT COUNT(*) FROM users WHERE email = ?", (email,)
            ).fetchone()
        return count > 0

    def is_phone_exists(self, phone: str) -> bool:
        with _guard():
            (count,) = self.conn.execute(
                "SELECT COUNT(*) FROM users WHERE phone = ?", (phone,)
            ).fetchone()
        return count > 0

    def get_email_by_otp(self, otp: str) -> str:
        with _guard():
            row = self.conn.execute(
                "SELECT email FROM otps WHERE otp = ? ORDER BY id LIMIT 1", (otp,)
            ).fetchone()
        if row is None:
            raise NotFoundError("invalid or expired OTP")
        return row["email"]

    def unblock_user(self, email: str) -> None:
        with transaction(self.conn), _guard():
            cursor = self.conn.execute(
                "UPDATE users SET blocked = 0 WHERE email = ?", (email,)
            )
            if cursor.rowcount == 0:
                raise NotFoundError("no user found with the given email")

    def get_products(self) -> List[Product]:
        """List every product that has not been deleted."""
        return ProductRepository(self.conn).get_all_products(True)

    def list_categories(self) -> List[Category]:
        with _guard():
            rows = self.conn.execute(
                "SELECT id, category, description, category_discount FROM categories "
                "ORDER BY id"
            ).fetchall()
        return [
            Category(
                id=row["id"],
                category=row["category"],
                description=row["description"],
                category_discount=row["category_discount"],
            )
            for row in rows
        ]

    def user_profile(self, user_id: int) -> User:
        with _guard():
            row = self.conn.execute(
                f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (user_id,)
            ).fetchone()
        if row is None:
            raise NotFoundError(f"user with ID {user_id} not found")
        return _user_from_row(row)

    def update_profile(self, profile: User) -> User:
        """Change a user's names, e-mail and phone, and return the stored user."""
        with transaction(self.conn), _guard("face some issue while update profile"):
            cursor = self.conn.execute(
                "UPDATE users SET first_name = ?, last_name = ?, email = ?, phone = ? "
                "WHERE id = ?",
                (profile.first_name, profile.last_name, profile.email, profile.phone, profile.id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("No rows are affected")
            return self.get_user_by_id(profile.id)

    def get_user_by_id(self, user_id: int) -> User:
        with _guard():
            row = self.conn.execute(
                f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (user_id,)
            ).fetchone()
        if row is None:
            raise NotFoundError("record not found")
        return _user_from_row(row)

    def forgot_password(self, email: str, new_password: str) -> None:
        with transaction(self.conn), _guard():
            self.conn.execute(
                "UPDATE users SET password = ? WHERE email = ?", (new_password, email)
            )

    def update_password(self, user_id: int, new_password: str) -> None:
        with transaction(self.conn), _guard():
            self.conn.execute(
                "UPDATE users SET password = ? WHERE id = ?", (new_password, user_id)
            )

    def get_password(self, user_id: int) -> str:
        """Return the stored password hash of a user."""
        with _guard():
            row = self.conn.execute(
                "SELECT password FROM users WHERE id = ?", (user_id,)
            ).fetchone()
        if row is None:
            raise NotFoundError("record not found")
        return row["password"]

    def _get_address(self, address_id: int) -> Address:
        with _guard():
            row = self.conn.execute(
                f"SELECT {_ADDRESS_COLUMNS} FROM addresses WHERE id = ?", (address_id,)
            ).fetchone()
        if row is None:
            raise NotFoundError("record not found")
        return _address_from_row(row)

    def add_address(self, user_id: int, address: Address) -> Address:
        with transaction(self.conn):
            with _guard():
                cursor = self.conn.execute(
                    "INSERT INTO addresses (user_id, house_name, street, city, district, "
                    "state, pin) VALUES (?, ?, ?, ?, ?, ?, ?)",
                    [user_id] + [getattr(address, name) for name in _ADDRESS_FIELDS],
                )
            return self._get_address(cursor.lastrowid)

    def update_address(self, user_id: int, address: Address) -> Address:
        """Change one of a user's addresses, picked by the address's id."""
        with transaction(self.conn):
            assignments = ", ".join(f"{name} = ?" for name in _ADDRESS_FIELDS)
            with _guard("some issue occurred while updating the address"):
                cursor = self.conn.execute(
                    f"UPDATE addresses SET {assignments} WHERE user_id = ? AND id = ?",
                    [getattr(address, name) for name in _ADDRESS_FIELDS]
                    + [user_id, address.id],
                )
            if cursor.rowcount == 0:
                raise NotFoundError("no rows are affected")
            return self._get_address(address.id)

    def delete_address(self, address_id: int) -> None:
        """Mark an address as deleted."""
        with transaction(self.conn), _guard():
            cursor = self.conn.execute(
                "UPDATE addresses SET deleted_at = CURRENT_TIMESTAMP "
                "WHERE id = ? AND deleted_at IS NULL",
                (address_id,),
            )
            if cursor.rowcount < 1:
                raise NotFoundError("the id does not exist")

    def get_all_addresses(self, user_id: int) -> List[Address]:
        """List every stored address that has not been deleted."""
        with _guard():
            rows = self.conn.execute(
                f"SELECT {_ADDRESS_COLUMNS} FROM addresses WHERE deleted_at IS NULL ORDER BY id"
            ).fetchall()
        return [_address_from_row(row) for row in rows]