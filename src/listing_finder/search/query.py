"""Translate a text query and filters into a store read for a detected schema."""

from typing import Final

from listing_finder.db.store import MAX_ROWS, Compare, Condition, StoreQuery, TextMatch
from listing_finder.models import SearchFilters
from listing_finder.schema.registry import SchemaCandidate

WILDCARD: Final = "*"


def is_wildcard(query: str | None) -> bool:
    """Whether the query places no text restriction (None, blank or "*")."""
    return query is None or not query.strip() or query.strip() == WILDCARD


def text_match_columns(schema: SchemaCandidate) -> list[str]:
    """Columns searched by the free-text query, in match order.

    The agency reference column is only searched when it is not already the
    title column.
    """
    cols = schema.properties
    columns = [cols.title, cols.address, cols.eircode]
    if cols.agency_ref != cols.title:
        columns.append(cols.agency_ref)
    return [c for c in columns if c]


def filter_conditions(schema: SchemaCandidate, filters: SearchFilters | None) -> list[Condition]:
    """AND-conditions for the filters the schema can express.

    A filter whose column the schema does not map is dropped rather than
    treated as an error.
    """
    if filters is None:
        return []

    cols = schema.properties
    conditions: list[Condition] = []
    if filters.min_price and cols.price:
        conditions.append(Compare(cols.price, ">=", filters.min_price))
    if filters.max_price and cols.price:
        conditions.append(Compare(cols.price, "<=", filters.max_price))
    if filters.min_bedrooms and cols.bedrooms:
        conditions.append(Compare(cols.bedrooms, ">=", filters.min_bedrooms))
    if filters.max_bedrooms and cols.bedrooms:
        conditions.append(Compare(cols.bedrooms, "<=", filters.max_bedrooms))
    if filters.property_type and cols.property_type:
        conditions.append(Compare(cols.property_type, "=", filters.property_type))
    if filters.location and cols.address:
        conditions.append(TextMatch(cols.address, filters.location))
    return conditions


def build_search_query(
    query: str | None,
    schema: SchemaCandidate,
    filters: SearchFilters | None = None,
    *,
    limit: int = MAX_ROWS,
) -> StoreQuery:
    """Build the read for one store's properties table.

    Args:
        query: Free text, or the wildcard/blank for "everything".
        schema: Detected schema of the store.
        filters: Optional range/equality refinements.
        limit: Row cap, never above MAX_ROWS.

    Returns:
        StoreQuery against the schema's properties table.
    """
    any_of: tuple[TextMatch, ...] = ()
    if not is_wildcard(query):
        text = (query or "").strip()
        any_of = tuple(TextMatch(column, text) for column in text_match_columns(schema))

    return StoreQuery(
        table=schema.properties_table,
        any_of=any_of,
        all_of=tuple(filter_conditions(schema, filters)),
        limit=min(limit, MAX_ROWS),
    )


def build_agency_properties_query(
    agency_name: str,
    schema: SchemaCandidate,
    *,
    limit: int = MAX_ROWS,
) -> StoreQuery:
    """Read properties whose agency reference (or agency_name column) contains the name."""
    columns = dict.fromkeys(c for c in (schema.properties.agency_ref, "agency_name") if c)
    return StoreQuery(
        table=schema.properties_table,
        any_of=tuple(TextMatch(column, agency_name.strip()) for column in columns),
        limit=min(limit, MAX_ROWS),
    )


def build_property_id_query(property_id: str, schema: SchemaCandidate) -> StoreQuery:
    """Read a single property by its id column."""
    return StoreQuery(
        table=schema.properties_table,
        all_of=(Compare(schema.properties.id, "=", property_id),),
        limit=1,
    )


def build_agency_query(
    name: str | None,
    schema: SchemaCandidate,
    *,
    limit: int = MAX_ROWS,
) -> StoreQuery | None:
    """Read agencies by name substring, or all agencies when name is None.

    Returns None when the schema maps no agency name column.
    """
    column = schema.agencies.name
    if not column:
        return None
    any_of = (TextMatch(column, name.strip()),) if name and name.strip() else ()
    return StoreQuery(table=schema.agencies_table, any_of=any_of, limit=min(limit, MAX_ROWS))
