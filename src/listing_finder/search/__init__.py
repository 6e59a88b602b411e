"""Query planning for listing stores."""

from listing_finder.search.query import (
    WILDCARD,
    build_agency_properties_query,
    build_agency_query,
    build_property_id_query,
    build_search_query,
    filter_conditions,
    is_wildcard,
    text_match_columns,
)

__all__ = [
    "WILDCARD",
    "build_agency_properties_query",
    "build_agency_query",
    "build_property_id_query",
    "build_search_query",
    "filter_conditions",
    "is_wildcard",
    "text_match_columns",
]
