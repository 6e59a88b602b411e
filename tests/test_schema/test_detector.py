"""Tests for schema detection and the schema cache."""

from collections.abc import Awaitable, Callable
from typing import Any
from unittest.mock import AsyncMock

from listing_finder.db.store import SqliteStore, Store, StoreError, StoreQuery
from listing_finder.schema.detector import SchemaCache, detect_schema, is_compatible
from listing_finder.schema.registry import SCHEMA_CANDIDATES, SchemaCandidate

MakeStore = Callable[..., Awaitable[SqliteStore]]


def _mock_store(name: str = "mock", **kwargs: Any) -> AsyncMock:
    store = AsyncMock(spec=Store)
    store.name = name
    store.fetch = AsyncMock(**kwargs)
    return store


class TestIsCompatible:
    def test_requires_id_and_address(self, standard_schema: SchemaCandidate) -> None:
        assert is_compatible({"id": 1, "address": "a", "title": "t"}, standard_schema)
        assert not is_compatible({"address": "a", "title": "t"}, standard_schema)
        assert not is_compatible({"id": 1, "title": "t"}, standard_schema)

    def test_title_or_agency_reference(self, standard_schema: SchemaCandidate) -> None:
        assert is_compatible({"id": 1, "address": "a", "agency_id": 3}, standard_schema)
        assert not is_compatible({"id": 1, "address": "a", "price": 3}, standard_schema)

    def test_column_presence_not_value(self, standard_schema: SchemaCandidate) -> None:
        assert is_compatible({"id": None, "address": None, "title": None}, standard_schema)


class TestDetectSchema:
    async def test_standard_layout(self, make_store: MakeStore, standard_row: dict) -> None:
        store = await make_store({"properties": [standard_row]})
        assert await detect_schema(store) == SCHEMA_CANDIDATES[0]

    async def test_daft_layout(self, make_store: MakeStore) -> None:
        store = await make_store(
            {"daft_properties": [{"id": 1, "agency_name": "DNG", "address1": "Cork"}]}
        )
        assert await detect_schema(store) == SCHEMA_CANDIDATES[1]

    async def test_property_log_layout(self, make_store: MakeStore) -> None:
        store = await make_store({"property_log": [{"id": 1, "name": "Lodge", "address": "Cong"}]})
        assert await detect_schema(store) == SCHEMA_CANDIDATES[2]

    async def test_first_match_wins(self, make_store: MakeStore, standard_row: dict) -> None:
        store = await make_store(
            {
                "property_log": [{"id": 1, "name": "Lodge", "address": "Cong"}],
                "properties": [standard_row],
            }
        )
        assert await detect_schema(store) == SCHEMA_CANDIDATES[0]

    async def test_incompatible_table_falls_through(self, make_store: MakeStore) -> None:
        store = await make_store(
            {
                # properties table lacks an address column
                "properties": [{"id": 1, "title": "x"}],
                "property_log": [{"id": 1, "name": "Lodge", "address": "Cong"}],
            }
        )
        assert await detect_schema(store) == SCHEMA_CANDIDATES[2]

    async def test_empty_table_is_incompatible(self, make_store: MakeStore) -> None:
        store = await make_store({"properties": []})
        assert await detect_schema(store) is None

    async def test_no_matching_table(self, make_store: MakeStore) -> None:
        store = await make_store({"listings": [{"id": 1, "address": "a", "title": "t"}]})
        assert await detect_schema(store) is None

    async def test_probe_errors_are_not_fatal(self) -> None:
        rows = [{"id": 1, "name": "Lodge", "address": "Cong"}]
        store = _mock_store(
            side_effect=[StoreError("boom"), StoreError("no such table"), rows]
        )
        assert await detect_schema(store) == SCHEMA_CANDIDATES[2]
        assert store.fetch.await_count == 3

    async def test_transport_errors_are_not_fatal(self) -> None:
        rows = [{"id": 1, "name": "Lodge", "address": "Cong"}]
        store = _mock_store(side_effect=[ConnectionError("reset"), [], rows])
        assert await detect_schema(store) == SCHEMA_CANDIDATES[2]

    async def test_cache_survives_transport_error(self) -> None:
        rows = [{"id": 1, "name": "Lodge", "address": "Cong"}]
        store = _mock_store(side_effect=[OSError("network unreachable"), [], rows])
        assert await SchemaCache().get_schema(store) == SCHEMA_CANDIDATES[2]

    async def test_probes_read_one_row(self) -> None:
        store = _mock_store(return_value=[])
        await detect_schema(store)
        tables = [call.args[0] for call in store.fetch.await_args_list]
        assert tables == [
            StoreQuery(table=c.properties_table, limit=1) for c in SCHEMA_CANDIDATES
        ]

    async def test_deterministic(self, make_store: MakeStore, standard_row: dict) -> None:
        store = await make_store({"properties": [standard_row]})
        results = {(await detect_schema(store)).label for _ in range(3)}  # type: ignore[union-attr]
        assert results == {"properties/agencies"}

    async def test_custom_candidates(self, make_store: MakeStore) -> None:
        custom = SchemaCandidate.model_validate(
            {
                "properties_table": "listings",
                "agencies_table": "firms",
                "properties": {"id": "listing_id", "title": "headline", "address": "street"},
                "agencies": {"name": "firm"},
            }
        )
        store = await make_store(
            {"listings": [{"listing_id": 1, "headline": "h", "street": "s"}]}
        )
        assert await detect_schema(store, [custom]) == custom


class TestSchemaCache:
    async def test_detects_once(self) -> None:
        rows = [{"id": 1, "address": "a", "title": "t"}]
        store = _mock_store(return_value=rows)
        cache = SchemaCache()

        first = await cache.get_schema(store)
        second = await cache.get_schema(store)

        assert first == second == SCHEMA_CANDIDATES[0]
        assert store.fetch.await_count == 1
        assert cache.get("mock") == SCHEMA_CANDIDATES[0]

    async def test_refresh_redetects(self) -> None:
        store = _mock_store(return_value=[{"id": 1, "address": "a", "title": "t"}])
        cache = SchemaCache()
        await cache.get_schema(store)
        await cache.refresh(store)
        assert store.fetch.await_count == 2

    async def test_refresh_replaces_entry(self) -> None:
        store = _mock_store(return_value=[{"id": 1, "address": "a", "title": "t"}])
        cache = SchemaCache()
        await cache.get_schema(store)

        store.fetch = AsyncMock(side_effect=StoreError("gone"))
        assert await cache.refresh(store) is None
        assert cache.get("mock") is None

    async def test_missing_schema_not_cached(self) -> None:
        store = _mock_store(return_value=[])
        cache = SchemaCache()
        assert await cache.get_schema(store) is None
        assert await cache.get_schema(store) is None
        assert store.fetch.await_count == 2 * len(SCHEMA_CANDIDATES)

    async def test_invalidate_one(self) -> None:
        a = _mock_store("a", return_value=[{"id": 1, "address": "a", "title": "t"}])
        b = _mock_store("b", return_value=[{"id": 1, "address": "a", "title": "t"}])
        cache = SchemaCache()
        await cache.get_schema(a)
        await cache.get_schema(b)

        cache.invalidate("a")

        assert cache.get("a") is None
        assert cache.get("b") is not None

    async def test_invalidate_all(self) -> None:
        a = _mock_store("a", return_value=[{"id": 1, "address": "a", "title": "t"}])
        cache = SchemaCache()
        await cache.get_schema(a)
        cache.invalidate()
        assert cache.get("a") is None
        await cache.get_schema(a)
        assert a.fetch.await_count == 2

    async def test_keyed_by_store_name(self) -> None:
        a = _mock_store("a", return_value=[{"id": 1, "address": "a", "title": "t"}])
        b = _mock_store("b", return_value=[{"id": 1, "address1": "a", "agency_name": "t"}])
        b.fetch = AsyncMock(
            side_effect=lambda q: (
                [{"id": 1, "address1": "a", "agency_name": "t"}]
                if q.table == "daft_properties"
                else []
            )
        )
        cache = SchemaCache()
        assert await cache.get_schema(a) == SCHEMA_CANDIDATES[0]
        assert await cache.get_schema(b) == SCHEMA_CANDIDATES[1]
