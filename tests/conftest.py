"""Shared pytest fixtures."""

import gc
import json
import os
import threading
from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path
from typing import Any

import aiosqlite
import pytest
import pytest_asyncio
from hypothesis import HealthCheck, settings

from listing_finder.config import Settings
from listing_finder.db.store import SqliteStore
from listing_finder.models import Agency, Feed, Property, PropertySource
from listing_finder.schema.registry import SCHEMA_CANDIDATES, SchemaCandidate

# Hypothesis settings profiles for different environments
settings.register_profile("fast", max_examples=25)
settings.register_profile(
    "ci",
    max_examples=200,
    suppress_health_check=[HealthCheck.too_slow],
)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "fast"))

Tables = dict[str, list[dict[str, Any]]]


@pytest.fixture(autouse=True)
def _isolate_settings_from_dotenv(monkeypatch: pytest.MonkeyPatch) -> None:
    """Prevent the local .env file from leaking into test Settings instances."""
    monkeypatch.setattr(
        Settings,
        "model_config",
        {**Settings.model_config, "env_file": None},
    )


@pytest.fixture(autouse=True)
def _cleanup_aiosqlite_threads():
    """Safety net: stop aiosqlite worker threads leaked by tests that forget close()."""
    yield

    from aiosqlite.core import Connection

    gc.collect()
    leaked = False
    for obj in gc.get_objects():
        if isinstance(obj, Connection) and obj._connection is not None:
            leaked = True
            obj.stop()

    if leaked:
        import warnings

        warnings.warn(
            "Test leaked aiosqlite connection(s); close the store in fixture teardown",
            ResourceWarning,
            stacklevel=1,
        )
    for thread in threading.enumerate():
        if "_connection_worker_thread" in (thread.name or "") and thread.is_alive():
            thread.join(timeout=1.0)


@pytest.fixture
def standard_schema() -> SchemaCandidate:
    """The `properties`/`agencies` layout."""
    return SCHEMA_CANDIDATES[0]


@pytest.fixture
def daft_schema() -> SchemaCandidate:
    """The `daft_properties` layout where agency_name doubles as title."""
    return SCHEMA_CANDIDATES[1]


@pytest.fixture
def log_schema() -> SchemaCandidate:
    """The `property_log`/`agency_list` layout."""
    return SCHEMA_CANDIDATES[2]


def _encode(value: Any) -> Any:
    if isinstance(value, list | dict):
        return json.dumps(value)
    return value


async def seed_database(path: Path, tables: Tables) -> None:
    """Create one table per key with the union of its rows' columns, then insert rows.

    An empty row list creates a table with only an ``id`` column.
    """
    async with aiosqlite.connect(path) as conn:
        for table, rows in tables.items():
            columns = list(dict.fromkeys(col for row in rows for col in row)) or ["id"]
            column_sql = ", ".join(f'"{c}"' for c in columns)
            await conn.execute(f'CREATE TABLE "{table}" ({column_sql})')
            placeholders = ", ".join("?" for _ in columns)
            for row in rows:
                await conn.execute(
                    f'INSERT INTO "{table}" ({column_sql}) VALUES ({placeholders})',
                    [_encode(row.get(c)) for c in columns],
                )
        await conn.commit()


@pytest_asyncio.fixture
async def make_store(
    tmp_path: Path,
) -> AsyncGenerator[Callable[..., Awaitable[SqliteStore]], None]:
    """Factory for SQLite stores seeded with the given tables."""
    stores: list[SqliteStore] = []

    async def _make(tables: Tables, name: str | None = None) -> SqliteStore:
        path = tmp_path / f"store-{len(stores)}.db"
        await seed_database(path, tables)
        store = SqliteStore(str(path), name=name)
        stores.append(store)
        return store

    yield _make

    for store in stores:
        await store.close()


@pytest.fixture
def standard_row() -> dict[str, Any]:
    """A complete row in the standard layout with two feed observations."""
    return {
        "id": 101,
        "title": "Detached house in Killiney",
        "address": "12 Seafield Road, Killiney, Co. Dublin",
        "eircode": "A96 X2Y3",
        "price": 950000,
        "bedrooms": 4,
        "bathrooms": 3,
        "property_type": "House",
        "description": "Four bed detached with sea views.",
        "images": ["https://img.example.com/101/1.jpg", "https://img.example.com/101/2.jpg"],
        "latitude": 53.2557,
        "longitude": -6.1128,
        "agency_id": "Sherry FitzGerald",
        "sources": [
            {
                "source": "daft",
                "url": "https://www.daft.ie/for-sale/101",
                "price": 950000,
                "lastUpdated": "2025-03-01T09:00:00Z",
                "description": "Four bed detached with sea views.",
                "images": ["a.jpg", "b.jpg"],
            },
            {
                "source": "myhome",
                "url": "https://www.myhome.ie/residential/101",
                "price": 945000,
                "lastUpdated": "2025-03-04T12:30:00Z",
            },
        ],
    }


@pytest.fixture
def make_property() -> Callable[..., Property]:
    """Factory for Property instances with sensible defaults and auto-incrementing IDs."""
    _counter = 0

    def _make(
        agency_name: str = "Ray Maher Property Service",
        feeds: tuple[Feed, ...] = (Feed.DAFT,),
        price: int = 250000,
        **overrides: Any,
    ) -> Property:
        nonlocal _counter
        _counter += 1
        defaults: dict[str, Any] = {
            "id": f"test-{_counter}",
            "title": f"Test Property {_counter}",
            "address": "1 Main Street, Galway",
            "price": price,
            "bedrooms": 3,
            "bathrooms": 2,
            "agency": Agency(id="-".join(agency_name.lower().split()), name=agency_name),
            "sources": [
                PropertySource(
                    source=feed,
                    url=f"https://example.com/{feed.value}/{_counter}",
                    price=price,
                    last_updated="2025-01-15",
                )
                for feed in feeds
            ],
        }
        defaults.update(overrides)
        return Property(**defaults)

    return _make
