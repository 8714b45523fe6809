"""SQLite-backed repositories for a small online shop."""

__version__ = "0.1.0"

__all__ = [
    "admin",
    "base",
    "cart",
    "category",
    "coupons",
    "googleauth",
    "order",
    "payment",
    "product",
    "review",
    "user",
    "wallet",
    "wishlist",
]