"""User lookup and creation for sign-in through an external identity provider."""

from __future__ import annotations

import sqlite3

from .base import NotFoundError, _guard, transaction
from .user import _USER_COLUMNS, _USER_FIELDS, User, _user_from_row, _user_values


class AuthRepository:
    """Finds and creates users signing in with an external account."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def get_user_by_email(self, email: str) -> User:
        """Return the user with this e-mail that has not been deleted."""
        with _guard():
            row = self.conn.execute(
                f"SELECT {_USER_COLUMNS} FROM users "
                "WHERE email = ? AND deleted_at IS NULL ORDER BY id LIMIT 1",
                (email,),
            ).fetchone()
        if row is None:
            raise NotFoundError("record not found")
        return _user_from_row(row)

    def create_user(self, user: User) -> User:
        columns = list(_USER_FIELDS)
        values = _user_values(user)
        if user.id:
            columns.append("id")
            values.append(user.id)
        placeholders = ", ".join("?" for _ in columns)
        with transaction(self.conn), _guard():
            cursor = self.conn.execute(
                f"INSERT INTO users ({', '.join(columns)}) VALUES ({placeholders})", values
            )
        return User(
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            phone=user.phone,
            password=user.password,
            blocked=user.blocked,
            is_admin=user.is_admin,
            id=cursor.lastrowid,
        )