"""Agency lookups against a store's agencies table."""

from listing_finder.db.row_mappers import row_to_agency
from listing_finder.db.store import MAX_ROWS, Store
from listing_finder.logging import get_logger
from listing_finder.models import Agency
from listing_finder.schema.detector import SchemaCache
from listing_finder.search.query import build_agency_query

logger = get_logger(__name__)


async def list_agencies(
    store: Store,
    cache: SchemaCache,
    *,
    name: str | None = None,
    limit: int = MAX_ROWS,
) -> list[Agency]:
    """Agencies from a store, optionally narrowed by a name substring.

    Returns an empty list when the store's layout is unknown, maps no agency
    name column, or the read fails.
    """
    try:
        schema = await cache.get_schema(store)
        if schema is None:
            return []
        query = build_agency_query(name, schema, limit=limit)
        if query is None:
            logger.info("agency_table_unmapped", store=store.name, schema=schema.label)
            return []
        rows = await store.fetch(query)
    except Exception as e:
        logger.error("agency_read_failed", store=store.name, agency=name, error=str(e))
        return []
    return [row_to_agency(row, schema) for row in rows]


async def find_agency(store: Store, name: str, cache: SchemaCache) -> Agency | None:
    """First agency whose name contains ``name`` (case-insensitive), or None."""
    if not name.strip():
        return None
    matches = await list_agencies(store, cache, name=name, limit=1)
    return matches[0] if matches else None
