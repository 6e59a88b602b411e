"""Pydantic models for listings, agencies and search results."""

import re
from collections import Counter
from collections.abc import Iterable
from enum import StrEnum
from typing import Final, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator

_WHITESPACE_RE: Final = re.compile(r"\s+")


class Feed(StrEnum):
    """Listing sites that can report an observation of a property."""

    DAFT = "daft"
    MYHOME = "myhome"
    WORDPRESS = "wordpress"
    OTHERS = "others"

    @property
    def display_name(self) -> str:
        """Human-readable display name for this feed."""
        return _FEED_NAMES[self.value]

    @classmethod
    def parse(cls, value: object) -> "Feed":
        """Map a raw feed tag to a Feed, falling back to OTHERS for anything unknown."""
        if isinstance(value, Feed):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.OTHERS


_FEED_NAMES: Final[dict[str, str]] = {
    "daft": "Daft.ie",
    "myhome": "MyHome.ie",
    "wordpress": "WordPress",
    "others": "Other",
}


def agency_key(name: str) -> str:
    """Weak identity for an agency: lower-cased name with whitespace runs as hyphens.

    "Ray Maher Property Service" and "ray maher  property service" share a key;
    "Ray Maher Ltd" does not.
    """
    return _WHITESPACE_RE.sub("-", name.lower())


class Coordinates(BaseModel):
    """A WGS84 point."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class Agency(BaseModel):
    """An estate agency as embedded in a listing."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    address: str = ""
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    logo: str | None = None
    office: str | None = None


class PropertySource(BaseModel):
    """One feed's observation of a property, as that feed reported it."""

    model_config = ConfigDict(frozen=True)

    source: Feed
    url: str = ""
    price: int | float = 0
    last_updated: str = ""
    description: str | None = None
    images: list[str] | None = None

    @field_validator("source", mode="before")
    @classmethod
    def coerce_feed(cls, v: object) -> Feed:
        """Unknown feed tags become OTHERS instead of failing validation."""
        return Feed.parse(v)


class Property(BaseModel):
    """A listing normalized from any of the supported table layouts."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Row id; unique within one store only")
    title: str
    address: str = ""
    eircode: str | None = None
    price: int | float = 0
    bedrooms: int | float = 0
    bathrooms: int | float = 0
    property_type: str = "Property"
    description: str = ""
    images: list[str] = Field(default_factory=list)
    coordinates: Coordinates | None = None
    agency: Agency
    sources: list[PropertySource] = Field(default_factory=list)

    @property
    def has_multiple_sources(self) -> bool:
        """Whether more than one feed reported this property."""
        return len(self.sources) > 1


class SearchFilters(BaseModel):
    """Optional refinements applied on top of the text query.

    Falsy values (None, 0, "") mean the filter is not set.
    """

    model_config = ConfigDict(frozen=True)

    min_price: float | None = None
    max_price: float | None = None
    min_bedrooms: int | None = None
    max_bedrooms: int | None = None
    property_type: str | None = None
    location: str | None = None

    @field_validator("property_type", "location")
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        """Blank strings are treated as unset."""
        if v is None:
            return None
        return v.strip() or None


class DeltaValue(BaseModel):
    """A single feed's value for a compared field."""

    model_config = ConfigDict(frozen=True)

    source: Feed
    value: str | int | float


class PropertyDelta(BaseModel):
    """Cross-feed comparison of one field of a property."""

    model_config = ConfigDict(frozen=True)

    field: str
    values: list[DeltaValue]
    has_difference: bool


class SourceTally(BaseModel):
    """Number of source observations per feed across a result set."""

    model_config = ConfigDict(frozen=True)

    daft: int = 0
    myhome: int = 0
    wordpress: int = 0
    others: int = 0

    @classmethod
    def from_feeds(cls, feeds: Iterable[Feed]) -> Self:
        """Count one per feed occurrence."""
        counts = Counter(feeds)
        return cls(**{feed.value: counts[feed] for feed in Feed})

    @property
    def total(self) -> int:
        return self.daft + self.myhome + self.wordpress + self.others


class SearchResults(BaseModel):
    """Everything a search returns to the presentation layer."""

    model_config = ConfigDict(frozen=True)

    query: str
    agencies: list[Agency] = Field(default_factory=list)
    properties: list[Property] = Field(default_factory=list)
    sources: SourceTally = Field(default_factory=SourceTally)

    @classmethod
    def empty(cls, query: str) -> Self:
        """A valid result with nothing in it."""
        return cls(query=query)
