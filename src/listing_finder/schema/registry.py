"""Known table/column layouts for listing stores.

Each candidate names the properties and agencies tables of one layout and the
column that holds each canonical field. An empty string means the layout does
not expose that field. Candidates are ordered from the most complete layout to
the least, so the first structurally compatible one is taken as the best match.
"""

from typing import Final

from pydantic import BaseModel, ConfigDict


class PropertyColumns(BaseModel):
    """Column names for the canonical property fields."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    address: str
    eircode: str = ""
    price: str = ""
    bedrooms: str = ""
    bathrooms: str = ""
    property_type: str = ""
    description: str = ""
    images: str = ""
    latitude: str = ""
    longitude: str = ""
    agency_ref: str = ""
    sources: str = ""

    @property
    def title_is_agency(self) -> bool:
        """Whether the title column is really the agency reference (agency-only feeds)."""
        return bool(self.title) and self.title == self.agency_ref


class AgencyColumns(BaseModel):
    """Column names for the canonical agency fields."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    name: str = ""
    address: str = ""
    phone: str = ""
    email: str = ""
    website: str = ""
    logo: str = ""
    office: str = ""


class SchemaCandidate(BaseModel):
    """One hypothesized layout of a listing store."""

    model_config = ConfigDict(frozen=True)

    properties_table: str
    agencies_table: str
    properties: PropertyColumns
    agencies: AgencyColumns

    @property
    def label(self) -> str:
        return f"{self.properties_table}/{self.agencies_table}"


_STANDARD_AGENCIES: Final = AgencyColumns(
    id="id",
    name="name",
    address="address",
    phone="phone",
    email="email",
    website="website",
    logo="logo",
    office="office",
)

SCHEMA_CANDIDATES: Final[tuple[SchemaCandidate, ...]] = (
    SchemaCandidate(
        properties_table="properties",
        agencies_table="agencies",
        properties=PropertyColumns(
            id="id",
            title="title",
            address="address",
            eircode="eircode",
            price="price",
            bedrooms="bedrooms",
            bathrooms="bathrooms",
            property_type="property_type",
            description="description",
            images="images",
            latitude="latitude",
            longitude="longitude",
            agency_ref="agency_id",
            sources="sources",
        ),
        agencies=_STANDARD_AGENCIES,
    ),
    # Daft export: no listing title, the agency name stands in for it
    SchemaCandidate(
        properties_table="daft_properties",
        agencies_table="agencies",
        properties=PropertyColumns(
            id="id",
            title="agency_name",
            address="address1",
            eircode="eircode",
            price="price",
            bedrooms="house_bedrooms",
            bathrooms="house_bathrooms",
            property_type="property_type",
            description="description",
            images="images",
            latitude="latitude",
            longitude="longitude",
            agency_ref="agency_name",
            sources="sources",
        ),
        agencies=_STANDARD_AGENCIES,
    ),
    SchemaCandidate(
        properties_table="property_log",
        agencies_table="agency_list",
        properties=PropertyColumns(
            id="id",
            title="name",
            address="address",
            eircode="eircode",
            price="price",
            bedrooms="bedrooms",
            bathrooms="bathrooms",
            property_type="property_type",
            description="description",
            images="images",
            latitude="latitude",
            longitude="longitude",
            agency_ref="agency_id",
            sources="sources",
        ),
        agencies=AgencyColumns(
            id="agency_id",
            name="agency_name",
            address="address",
            phone="phone",
            email="email",
            website="website",
            logo="logo",
        ),
    ),
)
