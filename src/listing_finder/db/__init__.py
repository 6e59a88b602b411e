"""Listing stores and row normalization."""

from listing_finder.db.store import (
    MAX_ROWS,
    Compare,
    SqliteStore,
    Store,
    StoreError,
    StoreQuery,
    TextMatch,
)

__all__ = [
    "MAX_ROWS",
    "Compare",
    "SqliteStore",
    "Store",
    "StoreError",
    "StoreQuery",
    "TextMatch",
]
