"""Start-up diagnostics: which layout each store uses and how much it holds."""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass

from listing_finder.db.store import MAX_ROWS, Store, StoreError, StoreQuery
from listing_finder.logging import get_logger
from listing_finder.schema.detector import SchemaCache

logger = get_logger(__name__)


@dataclass(frozen=True)
class StoreReport:
    """What a diagnostic probe found in one store.

    Row counts are capped at MAX_ROWS; None means the table could not be read.
    """

    store: str
    properties_table: str | None = None
    agencies_table: str | None = None
    property_rows: int | None = None
    agency_rows: int | None = None
    error: str | None = None

    @property
    def detected(self) -> bool:
        return self.properties_table is not None


async def _count_rows(store: Store, table: str) -> int | None:
    try:
        return len(await store.fetch(StoreQuery(table=table, limit=MAX_ROWS)))
    except StoreError:
        return None


async def diagnose_store(store: Store, cache: SchemaCache) -> StoreReport:
    """Re-detect a store's schema and sample its tables."""
    try:
        schema = await cache.refresh(store)
        if schema is None:
            return StoreReport(store=store.name)
        property_rows, agency_rows = await asyncio.gather(
            _count_rows(store, schema.properties_table),
            _count_rows(store, schema.agencies_table),
        )
    except Exception as e:
        logger.error("diagnose_failed", store=store.name, error=str(e))
        return StoreReport(store=store.name, error=str(e))

    return StoreReport(
        store=store.name,
        properties_table=schema.properties_table,
        agencies_table=schema.agencies_table,
        property_rows=property_rows,
        agency_rows=agency_rows,
    )


async def diagnose(stores: Sequence[Store], cache: SchemaCache) -> list[StoreReport]:
    """Diagnose every store concurrently, refreshing their cached schemas."""
    reports = list(await asyncio.gather(*(diagnose_store(s, cache) for s in stores)))
    for report in reports:
        logger.info(
            "store_diagnosed",
            store=report.store,
            properties_table=report.properties_table,
            agencies_table=report.agencies_table,
            property_rows=report.property_rows,
            agency_rows=report.agency_rows,
            error=report.error,
        )
    return reports
