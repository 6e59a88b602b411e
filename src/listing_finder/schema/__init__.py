"""Table layout registry and detection."""

from listing_finder.schema.detector import SchemaCache, detect_schema, is_compatible
from listing_finder.schema.registry import (
    SCHEMA_CANDIDATES,
    AgencyColumns,
    PropertyColumns,
    SchemaCandidate,
)

__all__ = [
    "SCHEMA_CANDIDATES",
    "AgencyColumns",
    "PropertyColumns",
    "SchemaCache",
    "SchemaCandidate",
    "detect_schema",
    "is_compatible",
]
