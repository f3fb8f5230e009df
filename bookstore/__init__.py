"""Bookstore backend: catalog, carts, order ledger and checkout over MongoDB."""
