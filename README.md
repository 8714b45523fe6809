# shopstore

`shopstore` is the storage layer of a small online shop. It keeps its data in
SQLite through the standard library's `sqlite3` module and offers one
repository class per area of the shop. It needs no packages outside the
standard library.

## Installation

```
pip install .
```

Add the `test` extra to get the test tools as well:

```
pip install ".[test]"
```

## Opening a database

```python
from shopstore.base import connect, create_schema, transaction

conn = connect("shop.db")   # ":memory:" gives a throwaway database
create_schema(conn)         # creates every table the repositories use, if missing
```

`connect` returns a `sqlite3.Connection` whose rows can be read by column
name and whose transactions are managed explicitly.

`transaction(conn)` is a context manager that groups several writes. The
changes are committed when the block finishes and rolled back when it
raises. A `transaction` block opened inside another one becomes a savepoint,
so only the inner block's changes are undone if it fails. Every repository
method that writes runs inside such a block, so calling several of them
inside your own `transaction(conn)` makes them all-or-nothing.

```python
with transaction(conn):
    ...
```

## Repositories

Each repository takes an open connection. Records are plain dataclasses.

| Module | Class | Records | Covers |
| --- | --- | --- | --- |
| `shopstore.category` | `CategoryRepository` | `Category` | categories and their discounts |
| `shopstore.product` | `ProductRepository` | `NewProduct`, `Product` | products, stock, listing by category |
| `shopstore.wishlist` | `WishlistRepository` | `WishListItem` | per-user wish lists |
| `shopstore.cart` | `CartRepository` | `CartItem` | cart lines, quantities, totals |
| `shopstore.review` | `ReviewRepository` | `Review` | product reviews and average ratings |
| `shopstore.coupons` | `CouponRepository` | `NewCoupon`, `Coupon` | coupon creation, listing and status |
| `shopstore.payment` | `PaymentRepository` | `CombinedOrderDetails` | gateway payment records and order payment state |
| `shopstore.user` | `UserRepository` | `User`, `TempUser`, `OTPRecord`, `Address` | users, pending sign-ups, one-time passwords, profiles, passwords, addresses |
| `shopstore.googleauth` | `AuthRepository` | `User` | finding and creating users who sign in with an external account |
| `shopstore.wallet` | `WalletRepository` | `Wallet`, `WalletTransaction` | wallet balances and wallet transactions |
| `shopstore.order` | `OrderRepository` | `Order`, `OrderItem`, `OrderProduct`, `OrderDetails`, `OrderProductDetails`, `FullOrderDetails`, `InvoiceItem`, `InvoiceDetails` | orders, order lines, cancellation, returns, invoice data |
| `shopstore.admin` | `AdminRepository` | `AdminSignUp`, `AdminDetails`, `OrderCount`, `AmountInformation`, `BestSellingProduct`, `BestSellingCategory` | administrator accounts, blocking users, managing orders, sales reports |

Some points worth knowing:

- Products, cart lines, reviews and addresses are marked as deleted rather
  than removed; listings leave them out. Categories and wish-list entries are
  removed for good.
- `ProductRepository.get_products_by_category` accepts the orderings
  `"price_H-L"`, `"price_L-H"`, `"newest"` and `"alphabetic"`; anything else
  lists the newest first. Only products in stock are listed.
- `CartRepository.add_to_cart` merges an item into an existing line for the
  same product, adding quantities and totals.
  `remove_product_from_cart` takes one unit off and drops the line at the last
  one.
- `UserRepository.get_all_addresses` lists every address that has not been
  deleted, whatever user it belongs to.
- `CouponRepository.update_coupon_status` takes a bool or a word such as
  `"true"`, `"false"`, `"yes"`, `"no"`, `"1"` or `"0"`.
- `OrderStatus` lists the states an order moves through: `pending`,
  `success`, `shipped`, `delivered`, `cancelled` and `returned`.
  Cancelling an order paid with payment method 1 or 3 marks it refunded;
  `AdminRepository.change_order_status` to `delivered` marks such an order
  paid.
- `AdminRepository.get_total_orders(from_date, to_date, order_status)` takes
  `YYYY-MM-DD` dates, both days included. The amounts cover only orders with
  the given status, when one is given; the counts per status cover every
  order in the period.
- `AdminRepository.best_selling_products` and `best_selling_categories`
  return the ten with the most units ordered, best first.

## Example

```python
from shopstore.base import connect, create_schema
from shopstore.category import Category, CategoryRepository
from shopstore.product import NewProduct, ProductRepository

conn = connect(":memory:")
create_schema(conn)

categories = CategoryRepository(conn)
shoes = categories.add_category(
    Category(category="Shoes", description="Formal shoes", category_discount=5)
)

products = ProductRepository(conn)
products.add_product(
    NewProduct(category_id=shoes.id, name="Runner", stock=20, quantity=20,
               price=3000.0, offer_price=2300.0)
)

for product in products.get_products_by_category(shoes.id, "price_L-H"):
    print(product.name, product.price)
```

## Errors

A failed database operation raises `shopstore.base.RepositoryError`. A record
that should exist but does not raises `shopstore.base.NotFoundError`, a
subclass of `RepositoryError`. Lookups documented as optional, such as
`CategoryRepository.get_category_by_id`, `ProductRepository.get_product_by_id`
and `UserRepository.get_user_by_email`, return `None` instead.

Arguments that cannot be used raise `ValueError`: a product id that is not a
non-negative whole number in `ReviewRepository`, an unknown coupon status
word, a negative wallet amount, or a date that is not `YYYY-MM-DD` in
`AdminRepository.get_total_orders`.

## What the package does not do

`shopstore` only stores and reads data. It does not:

- serve an HTTP API or offer a command line;
- hash or check passwords: it stores whatever password value it is given;
- generate one-time passwords or send them by e-mail: it stores, looks up
  and expires the codes it is handed;
- talk to a payment gateway: it records the gateway's order and payment ids;
- lay out or print invoices: `OrderRepository.fetch_order_details` returns
  the data an invoice needs.

## Running the tests

```
pytest
```