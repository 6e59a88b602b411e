"""Field-by-field comparison of a property's observations across feeds."""

from collections.abc import Sequence
from typing import Final

from listing_finder.models import DeltaValue, Property, PropertyDelta, PropertySource

PRICE: Final = "Price"
DESCRIPTION: Final = "Description"
LAST_UPDATED: Final = "Last Updated"
IMAGE_COUNT: Final = "Image Count"


def _delta(field: str, values: list[DeltaValue], *, compare: bool = True) -> PropertyDelta:
    distinct = {v.value for v in values}
    return PropertyDelta(field=field, values=values, has_difference=compare and len(distinct) > 1)


def calculate_property_deltas(sources: Sequence[PropertySource]) -> list[PropertyDelta]:
    """Compare what each feed reported for the same property.

    Price and Last Updated are always present; Last Updated is informational
    and never flagged. Description and Image Count appear only when at least
    one feed supplied them, and feeds that did not are left out of the
    comparison rather than counted as empty.

    Callers usually only show deltas for properties with more than one
    source, but any list (including an empty one) is accepted.

    Args:
        sources: The property's per-feed observations.

    Returns:
        Deltas in the order Price, Description, Last Updated, Image Count.
    """
    deltas = [_delta(PRICE, [DeltaValue(source=s.source, value=s.price) for s in sources])]

    descriptions = [
        DeltaValue(source=s.source, value=s.description) for s in sources if s.description
    ]
    if descriptions:
        deltas.append(_delta(DESCRIPTION, descriptions))

    deltas.append(
        _delta(
            LAST_UPDATED,
            [DeltaValue(source=s.source, value=s.last_updated) for s in sources],
            compare=False,
        )
    )

    image_counts = [
        DeltaValue(source=s.source, value=len(s.images)) for s in sources if s.images is not None
    ]
    if image_counts:
        deltas.append(_delta(IMAGE_COUNT, image_counts))

    return deltas


def property_deltas(prop: Property) -> list[PropertyDelta]:
    """Deltas for a property's own sources."""
    return calculate_property_deltas(prop.sources)


def has_discrepancies(deltas: Sequence[PropertyDelta]) -> bool:
    """Whether any compared field differs between feeds."""
    return any(d.has_difference for d in deltas)
