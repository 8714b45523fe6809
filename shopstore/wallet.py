"""Storage of user wallets and the transactions made with them."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Union

from .base import NotFoundError, _guard
from .base import transaction as _db_transaction

_TRANSACTION_COLUMNS = "transaction_id, user_id, created_at, amount, purpose"


@dataclass
class Wallet:
    """A user's wallet and its balance."""

    user_id: int
    balance: int = 0
    id: int = 0


@dataclass
class WalletTransaction:
    """A credit or debit recorded against a user's wallet."""

    user_id: int
    amount: float
    purpose: str = ""
    created_at: Optional[datetime] = None
    transaction_id: int = 0


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _transaction_from_row(row: sqlite3.Row) -> WalletTransaction:
    return WalletTransaction(
        transaction_id=row["transaction_id"],
        user_id=row["user_id"],
        created_at=_parse_time(row["created_at"]),
        amount=row["amount"],
        purpose=row["purpose"],
    )


def _check_amount(amount: int, what: str) -> int:
    if amount < 0:
        raise ValueError(f"{what} must not be negative")
    return int(amount)


class WalletRepository:
    """Credits, reads and records movements of user wallets."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def create_or_update_wallet(self, user_id: int, credit_amount: int) -> int:
        """Credit a user's wallet, creating it if needed; return the new balance."""
        credit = _check_amount(credit_amount, "credit amount")
        with _db_transaction(self.conn):
            with _guard("failed to query wallet"):
                row = self.conn.execute(
                    "SELECT balance FROM wallets WHERE user_id = ?", (user_id,)
                ).fetchone()
            if row is None:
                with _guard("failed to create wallet"):
                    self.conn.execute(
                        "INSERT INTO wallets (user_id, balance) VALUES (?, ?)",
                        (user_id, credit),
                    )
                return credit
            balance = int(row["balance"]) + credit
            with _guard("failed to update wallet balance"):
                self.conn.execute(
                    "UPDATE wallets SET balance = ? WHERE user_id = ?", (balance, user_id)
                )
            return balance

    def get_wallet_balance(self, user_id: int) -> int:
        """Return the wallet balance, 0 when the user has no wallet."""
        with _guard("failed to fetch wallet balance"):
            row = self.conn.execute(
                "SELECT balance FROM wallets WHERE user_id = ?", (user_id,)
            ).fetchone()
        return int(row["balance"]) if row is not None else 0

    def record_transaction(self, transaction: WalletTransaction) -> WalletTransaction:
        """Store a wallet transaction and return it with its id and time."""
        columns = ["user_id", "amount", "purpose"]
        values = [transaction.user_id, transaction.amount, transaction.purpose]
        if transaction.created_at is not None:
            columns.append("created_at")
            values.append(transaction.created_at.isoformat(sep=" ", timespec="seconds"))
        placeholders = ", ".join("?" for _ in columns)
        with _db_transaction(self.conn), _guard():
            cursor = self.conn.execute(
                f"INSERT INTO wallet_transactions ({', '.join(columns)}) VALUES ({placeholders})",
                values,
            )
            row = self.conn.execute(
                f"SELECT {_TRANSACTION_COLUMNS} FROM wallet_transactions "
                "WHERE transaction_id = ?",
                (cursor.lastrowid,),
            ).fetchone()
        return _transaction_from_row(row)

    def get_wallet_transactions(self, user_id: int) -> List[WalletTransaction]:
        with _guard("face some issue while fetch user wallet transaction"):
            rows = self.conn.execute(
                f"SELECT {_TRANSACTION_COLUMNS} FROM wallet_transactions "
                "WHERE user_id = ? ORDER BY transaction_id",
                (user_id,),
            ).fetchall()
        return [_transaction_from_row(row) for row in rows]

    def get_final_price_by_order_id(self, order_id: Union[int, str]) -> int:
        """Return the final price of an order as a whole amount."""
        with _guard("face some issue while getting total amount of order by using order id"):
            (total,) = self.conn.execute(
                "SELECT SUM(final_price) FROM orders WHERE order_id = ?", (order_id,)
            ).fetchone()
        if total is None:
            raise NotFoundError("No rows affected while getting the price")
        return int(total)

    def get_wallet(self, user_id: int) -> Wallet:
        """Return the user's wallet, an empty one when none is stored."""
        with _guard("face some issue while get user wallet"):
            row = self.conn.execute(
                "SELECT id, user_id, COALESCE(balance, 0) AS balance FROM wallets "
                "WHERE user_id = ?",
                (user_id,),
            ).fetchone()
        if row is None:
            return Wallet(user_id=user_id)
        return Wallet(user_id=row["user_id"], balance=int(row["balance"]), id=row["id"])

    def update_wallet_balance(self, user_id: int, amount: int) -> None:
        """Set the balance of an existing wallet."""
        balance = _check_amount(amount, "wallet balance")
        with _db_transaction(self.conn), _guard("face some issue while update wallet balance"):
            cursor = self.conn.execute(
                "UPDATE wallets SET balance = ? WHERE user_id = ?", (balance, user_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError("No rows affected while updating the wallet balance")