"""Search every configured listing store and combine the results."""

import asyncio
from collections.abc import Callable, Iterable, Sequence

from listing_finder.db.row_mappers import row_to_property
from listing_finder.db.store import MAX_ROWS, Store, StoreQuery
from listing_finder.logging import get_logger
from listing_finder.models import Agency, Property, SearchFilters, SearchResults, SourceTally
from listing_finder.schema.detector import SchemaCache
from listing_finder.schema.registry import SchemaCandidate
from listing_finder.search.query import (
    build_agency_properties_query,
    build_property_id_query,
    build_search_query,
)

logger = get_logger(__name__)

QueryPlan = Callable[[SchemaCandidate], StoreQuery]


def merge_agencies(properties: Iterable[Property]) -> list[Agency]:
    """Deduplicate the agencies embedded in properties by id.

    Later snapshots replace earlier ones with the same id; the result keeps
    the order in which each id was first seen.
    """
    by_id: dict[str, Agency] = {}
    for prop in properties:
        by_id[prop.agency.id] = prop.agency
    return list(by_id.values())


def tally_sources(properties: Iterable[Property]) -> SourceTally:
    """Count source observations (not properties) per feed."""
    return SourceTally.from_feeds(src.source for prop in properties for src in prop.sources)


def build_results(query: str, properties: list[Property]) -> SearchResults:
    """Assemble SearchResults from an already concatenated property list."""
    return SearchResults(
        query=query,
        agencies=merge_agencies(properties),
        properties=properties,
        sources=tally_sources(properties),
    )


class SearchService:
    """Fan a search out over several stores, each with its own detected layout."""

    def __init__(
        self,
        stores: Sequence[Store],
        *,
        cache: SchemaCache | None = None,
        row_limit: int = MAX_ROWS,
    ) -> None:
        """Initialize the service.

        Args:
            stores: Stores to search; results are concatenated in this order.
            cache: Schema cache shared with other callers; a private one is
                created when omitted.
            row_limit: Per-store row cap (at most MAX_ROWS).
        """
        self.stores = list(stores)
        self.cache = cache if cache is not None else SchemaCache()
        self.row_limit = min(row_limit, MAX_ROWS)

    async def close(self) -> None:
        """Close every store."""
        for store in self.stores:
            await store.close()

    async def _read_store(self, store: Store, plan: QueryPlan, *, action: str) -> list[Property]:
        """Run one plan against one store, degrading to [] on any failure."""
        try:
            schema = await self.cache.get_schema(store)
            if schema is None:
                logger.warning("store_skipped_no_schema", store=store.name, action=action)
                return []

            rows = await store.fetch(plan(schema))
            properties = [row_to_property(row, schema) for row in rows]
        except Exception as e:
            logger.error("store_read_failed", store=store.name, action=action, error=str(e))
            return []

        logger.info(
            "store_read_complete",
            store=store.name,
            action=action,
            schema=schema.label,
            count=len(properties),
        )
        return properties

    async def _read_all(self, plan: QueryPlan, *, action: str) -> list[list[Property]]:
        """Run a plan against every store concurrently; one list per store, in store order."""
        return list(
            await asyncio.gather(
                *(self._read_store(store, plan, action=action) for store in self.stores)
            )
        )

    async def search(self, query: str, filters: SearchFilters | None = None) -> SearchResults:
        """Search all stores for a text query plus optional filters.

        Stores are read concurrently. A store that cannot be read, or whose
        layout is not recognised, contributes nothing; the others are still
        returned. Properties are not merged across stores; agencies are.

        Args:
            query: Free text, or "*" / "" for everything.
            filters: Optional refinements; unsupported ones are ignored per store.

        Returns:
            SearchResults, empty if anything unexpected goes wrong.
        """
        try:
            per_store = await self._read_all(
                lambda schema: build_search_query(query, schema, filters, limit=self.row_limit),
                action="search",
            )
            properties = [prop for batch in per_store for prop in batch]
            results = build_results(query, properties)
        except Exception:
            logger.exception("search_failed", query=query)
            return SearchResults.empty(query)

        logger.info(
            "search_complete",
            query=query,
            stores=len(self.stores),
            per_store=[len(batch) for batch in per_store],
            properties=len(results.properties),
            agencies=len(results.agencies),
            observations=results.sources.total,
        )
        return results

    async def properties_by_agency(self, agency_name: str) -> SearchResults:
        """All properties whose agency reference contains the given name."""
        if not agency_name.strip():
            return SearchResults.empty(agency_name)
        try:
            per_store = await self._read_all(
                lambda schema: build_agency_properties_query(
                    agency_name, schema, limit=self.row_limit
                ),
                action="agency_properties",
            )
            return build_results(agency_name, [prop for batch in per_store for prop in batch])
        except Exception:
            logger.exception("agency_properties_failed", agency=agency_name)
            return SearchResults.empty(agency_name)

    async def get_property(self, property_id: str) -> Property | None:
        """First property with this id, taking stores in configured order."""
        try:
            per_store = await self._read_all(
                lambda schema: build_property_id_query(property_id, schema),
                action="get_property",
            )
        except Exception:
            logger.exception("get_property_failed", property_id=property_id)
            return None
        return next((batch[0] for batch in per_store if batch), None)
