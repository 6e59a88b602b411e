"""Detect which known layout a listing store uses."""

from collections.abc import Mapping, Sequence
from typing import Any

from listing_finder.db.store import Store, StoreQuery
from listing_finder.logging import get_logger
from listing_finder.schema.registry import SCHEMA_CANDIDATES, SchemaCandidate

logger = get_logger(__name__)


def is_compatible(row: Mapping[str, Any], candidate: SchemaCandidate) -> bool:
    """Check a sample row against a candidate's required columns.

    The row must carry the id and address columns, plus the title column or
    the agency reference column.
    """
    cols = candidate.properties

    def has(column: str) -> bool:
        return bool(column) and column in row

    return has(cols.id) and has(cols.address) and (has(cols.title) or has(cols.agency_ref))


async def detect_schema(
    store: Store,
    candidates: Sequence[SchemaCandidate] = SCHEMA_CANDIDATES,
) -> SchemaCandidate | None:
    """Probe a store with each candidate in order and return the first that fits.

    A candidate fits when one row can be read from its properties table and
    that row passes :func:`is_compatible`. Any probe failure, a dropped
    connection as much as a missing table, counts as a mismatch.

    Args:
        store: Store to probe.
        candidates: Layouts to try, most preferred first.

    Returns:
        The first compatible candidate, or None when nothing fits.
    """
    for candidate in candidates:
        try:
            rows = await store.fetch(StoreQuery(table=candidate.properties_table, limit=1))
        except Exception as e:
            logger.debug(
                "schema_probe_failed",
                store=store.name,
                table=candidate.properties_table,
                error=str(e),
            )
            continue

        if not rows:
            logger.debug("schema_probe_empty", store=store.name, table=candidate.properties_table)
            continue

        if is_compatible(rows[0], candidate):
            logger.info("schema_detected", store=store.name, schema=candidate.label)
            return candidate

        logger.debug(
            "schema_probe_mismatch",
            store=store.name,
            table=candidate.properties_table,
            columns=sorted(rows[0]),
        )

    logger.warning("schema_not_detected", store=store.name, candidates=len(candidates))
    return None


class SchemaCache:
    """Detected schema per store, kept until explicitly refreshed.

    Entries are only ever replaced as a whole, so concurrent readers see
    either the old or the new candidate. Two concurrent detections for the
    same store both store the same answer. A failed detection is not
    remembered; the store is probed again on the next lookup.
    """

    def __init__(self, candidates: Sequence[SchemaCandidate] = SCHEMA_CANDIDATES) -> None:
        self._candidates = tuple(candidates)
        self._entries: dict[str, SchemaCandidate] = {}

    def get(self, store_name: str) -> SchemaCandidate | None:
        """Return the cached schema for a store without probing."""
        return self._entries.get(store_name)

    async def get_schema(self, store: Store) -> SchemaCandidate | None:
        """Return the cached schema for a store, detecting it on first use."""
        cached = self._entries.get(store.name)
        if cached is not None:
            return cached
        return await self.refresh(store)

    async def refresh(self, store: Store) -> SchemaCandidate | None:
        """Re-run detection for a store and replace its cache entry."""
        schema = await detect_schema(store, self._candidates)
        if schema is None:
            self._entries.pop(store.name, None)
        else:
            self._entries[store.name] = schema
        return schema

    def invalidate(self, store_name: str | None = None) -> None:
        """Forget one store's schema, or every store's when no name is given."""
        if store_name is None:
            self._entries = {}
        else:
            self._entries.pop(store_name, None)
