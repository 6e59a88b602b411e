"""Map raw store rows onto the canonical Property and Agency models.

Rows come from stores with different layouts and inconsistent data, so every
field is looked up through a fallback chain: the column the detected schema
maps, then column names seen in older exports, then a default. Nothing in this
module raises on bad input; the worst case is a Property made of defaults.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any, Final

from pydantic import ValidationError

from listing_finder.logging import get_logger
from listing_finder.models import (
    Agency,
    Coordinates,
    Feed,
    Property,
    PropertySource,
    agency_key,
)
from listing_finder.schema.registry import SchemaCandidate

logger = get_logger(__name__)

Row = Mapping[str, Any]

DEFAULT_TITLE: Final = "Untitled Property"
DEFAULT_AGENCY_NAME: Final = "Unknown Agency"
DEFAULT_PROPERTY_TYPE: Final = "Property"

# Column names seen in older exports, tried after the schema-mapped column
ADDRESS_ALTERNATES: Final = ("address1", "address")
PRICE_ALTERNATES: Final = ("house_price", "price")
BEDROOM_ALTERNATES: Final = ("house_bedrooms", "beds", "bedrooms")
BATHROOM_ALTERNATES: Final = ("house_bathrooms", "baths", "bathrooms")

_NON_NUMERIC_RE: Final = re.compile(r"[^0-9.eE+\-]")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def resolve(row: Row, *columns: str) -> Any:
    """Return the first non-blank value among the given columns, or None.

    Empty column names (unmapped fields) are skipped.
    """
    for column in columns:
        if column and not _is_blank(row.get(column)):
            return row[column]
    return None


def to_text(value: Any) -> str:
    """Render a scalar as stripped text; None and containers become ""."""
    if value is None or isinstance(value, Mapping | list | tuple | set):
        return ""
    return str(value).strip()


def to_number(value: Any) -> int | float:
    """Parse a number leniently, returning 0 when the value cannot be parsed.

    Accepts ints, floats, Decimals and strings with currency symbols or
    thousands separators ("€250,000"). NaN and infinities become 0; integral
    floats come back as ints.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, Decimal):
        if not value.is_finite():
            return 0
        value = float(value)
    if isinstance(value, str):
        cleaned = _NON_NUMERIC_RE.sub("", value)
        if not cleaned:
            return 0
        try:
            value = float(cleaned)
        except ValueError:
            return 0
    if not isinstance(value, float) or not math.isfinite(value):
        return 0
    return int(value) if value.is_integer() else value


def parse_images(value: Any) -> list[str]:
    """Normalize an images column to a list of URLs.

    Handles a native list, a JSON-encoded list, and a bare URL string. A
    non-empty string that is not valid JSON is taken to be a single URL.
    """
    if isinstance(value, list | tuple):
        return [item.strip() for item in value if isinstance(item, str) and item.strip()]
    if not isinstance(value, str):
        return []

    text = value.strip()
    if not text:
        return []
    try:
        decoded = json.loads(text)
    except ValueError:
        return [text]

    if isinstance(decoded, list):
        return parse_images(decoded)
    if isinstance(decoded, str):
        return [decoded.strip()] if decoded.strip() else []
    return [text]


def _source_from_entry(entry: Mapping[str, Any]) -> PropertySource | None:
    images = entry.get("images")
    description = to_text(entry.get("description"))
    try:
        return PropertySource(
            source=Feed.parse(entry.get("source")),
            url=to_text(entry.get("url")),
            price=to_number(entry.get("price")),
            last_updated=to_text(resolve(entry, "lastUpdated", "last_updated")),
            description=description or None,
            images=parse_images(images) if images is not None else None,
        )
    except ValidationError:
        logger.debug("source_entry_invalid", entry=dict(entry))
        return None


def parse_sources(value: Any) -> list[PropertySource]:
    """Normalize a sources column (native list or JSON string) to observations.

    Undecodable JSON yields an empty list; entries that are not mappings are
    skipped.
    """
    if isinstance(value, str):
        if not value.strip():
            return []
        try:
            value = json.loads(value)
        except ValueError:
            logger.debug("sources_json_invalid", raw=value[:200])
            return []

    if isinstance(value, Mapping):
        value = [value]
    if not isinstance(value, Sequence) or isinstance(value, str):
        return []

    sources: list[PropertySource] = []
    for entry in value:
        if isinstance(entry, PropertySource):
            sources.append(entry)
        elif isinstance(entry, Mapping):
            source = _source_from_entry(entry)
            if source is not None:
                sources.append(source)
    return sources


def _make_coordinates(lat: Any, lng: Any) -> Coordinates | None:
    lat_num, lng_num = to_number(lat), to_number(lng)
    # 0 is how the exports spell "unknown"
    if not lat_num or not lng_num:
        return None
    try:
        return Coordinates(lat=lat_num, lng=lng_num)
    except ValidationError:
        return None


def parse_coordinates(row: Row, schema: SchemaCandidate) -> Coordinates | None:
    """Coordinates from the mapped lat/lon columns, else bare latitude/longitude."""
    cols = schema.properties
    if cols.latitude and cols.longitude:
        coords = _make_coordinates(row.get(cols.latitude), row.get(cols.longitude))
        if coords is not None:
            return coords
    return _make_coordinates(row.get("latitude"), row.get("longitude"))


def row_to_agency(row: Row, schema: SchemaCandidate) -> Agency:
    """Convert an agencies-table row (or an embedded agency object) to an Agency.

    Args:
        row: Raw agency row.
        schema: Detected schema of the store the row came from.

    Returns:
        Agency; its id falls back to the weak name key when the row has none.
    """
    cols = schema.agencies
    name = to_text(resolve(row, cols.name, "name", "agency_name")) or DEFAULT_AGENCY_NAME

    def optional(column: str, *alternates: str) -> str | None:
        return to_text(resolve(row, column, *alternates)) or None

    return Agency(
        id=to_text(resolve(row, cols.id, "id")) or agency_key(name),
        name=name,
        address=to_text(resolve(row, cols.address, "address")),
        phone=optional(cols.phone, "phone"),
        email=optional(cols.email, "email"),
        website=optional(cols.website, "website"),
        logo=optional(cols.logo, "logo"),
        office=optional(cols.office, "office"),
    )


def _inline_agency(row: Row, schema: SchemaCandidate) -> Agency:
    cols = schema.properties
    embedded = row.get("agency")
    if isinstance(embedded, Mapping) and embedded:
        return row_to_agency(embedded, schema)

    name = to_text(resolve(row, cols.agency_ref, cols.title)) or DEFAULT_AGENCY_NAME
    return Agency(id=agency_key(name), name=name)


def row_to_property(row: Row, schema: SchemaCandidate) -> Property:
    """Convert a raw row to a Property using the detected schema.

    Args:
        row: Raw row from the schema's properties table.
        schema: Detected schema of the store the row came from.

    Returns:
        Property instance. Missing or malformed fields take their defaults.
    """
    if not isinstance(row, Mapping):
        logger.debug("row_not_a_mapping", row_type=type(row).__name__)
        row = {}
    cols = schema.properties
    agency = _inline_agency(row, schema)

    if cols.title_is_agency:
        # Agency-only feeds have no listing title of their own
        title = f"Property by {agency.name}"
    else:
        title = to_text(resolve(row, cols.title)) or DEFAULT_TITLE

    return Property(
        id=to_text(resolve(row, cols.id, "id")),
        title=title,
        address=to_text(resolve(row, cols.address, *ADDRESS_ALTERNATES)),
        eircode=to_text(resolve(row, cols.eircode)) or None,
        price=to_number(resolve(row, cols.price, *PRICE_ALTERNATES)),
        bedrooms=to_number(resolve(row, cols.bedrooms, *BEDROOM_ALTERNATES)),
        bathrooms=to_number(resolve(row, cols.bathrooms, *BATHROOM_ALTERNATES)),
        property_type=(
            to_text(resolve(row, cols.property_type, "property_type")) or DEFAULT_PROPERTY_TYPE
        ),
        description=to_text(resolve(row, cols.description, "description")),
        images=parse_images(resolve(row, cols.images, "images")),
        coordinates=parse_coordinates(row, schema),
        agency=agency,
        sources=parse_sources(resolve(row, cols.sources, "sources")),
    )
