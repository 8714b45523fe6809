[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "shopstore"
version = "0.1.0"
description = "SQLite-backed storage layer for a small online shop: catalogue, carts, orders, coupons, wallets, reviews and users."
requires-python = ">=3.10"
dependencies = []
keywords = ["ecommerce", "shop", "repository", "sqlite", "orders", "cart", "wallet", "coupons"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business",
    "Topic :: Database",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["shopstore"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
