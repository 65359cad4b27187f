"""Filter dimensions and the static dependency graph between them."""

from enum import Enum
from typing import Optional

from korauto_catalog.domain.errors import ValidationError


class Dimension(str, Enum):
    """One independently selectable filter axis."""

    MANUFACTURER = "manufacturer"
    MODEL = "model"
    GENERATION = "generation"
    GRADE = "grade"
    ENGINE = "engine"
    TRIM_LEVEL = "trim_level"
    COLOR = "color"
    FUEL_TYPE = "fuel_type"
    TRANSMISSION = "transmission"
    BODY_TYPE = "body_type"
    SEAT_COUNT = "seat_count"
    YEAR_RANGE = "year_range"
    PRICE_RANGE = "price_range"
    MILEAGE_RANGE = "mileage_range"
    FREE_TEXT_SEARCH = "free_text_search"
    MAX_ACCIDENTS = "max_accidents"

    @classmethod
    def parse(cls, raw: "str | Dimension") -> "Dimension":
        """
        Resolve a dimension from its tag.

        Args:
            raw: Dimension instance or its string value (case-insensitive)

        Returns:
            Matching Dimension

        Raises:
            ValidationError: If the tag is not a known dimension
        """
        if isinstance(raw, Dimension):
            return raw
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            raise ValidationError(
                errors=[{"field": "dimension", "message": f"Unknown dimension '{raw}'"}]
            ) from None


class ValueKind(str, Enum):
    """Which member of the value union a dimension accepts."""

    STRING = "string"
    RANGE = "range"
    ENUM = "enum"


VALUE_KINDS: dict[Dimension, ValueKind] = {
    Dimension.MANUFACTURER: ValueKind.STRING,
    Dimension.MODEL: ValueKind.STRING,
    Dimension.GENERATION: ValueKind.STRING,
    Dimension.GRADE: ValueKind.STRING,
    Dimension.ENGINE: ValueKind.STRING,
    Dimension.TRIM_LEVEL: ValueKind.STRING,
    Dimension.COLOR: ValueKind.STRING,
    Dimension.FREE_TEXT_SEARCH: ValueKind.STRING,
    Dimension.FUEL_TYPE: ValueKind.ENUM,
    Dimension.TRANSMISSION: ValueKind.ENUM,
    Dimension.BODY_TYPE: ValueKind.ENUM,
    Dimension.SEAT_COUNT: ValueKind.ENUM,
    Dimension.MAX_ACCIDENTS: ValueKind.ENUM,
    Dimension.YEAR_RANGE: ValueKind.RANGE,
    Dimension.PRICE_RANGE: ValueKind.RANGE,
    Dimension.MILEAGE_RANGE: ValueKind.RANGE,
}

# Manufacturer -> Model -> Generation -> Grade, Model -> Engine, Model -> TrimLevel
DEPENDENCY_EDGES: dict[Dimension, tuple[Dimension, ...]] = {
    Dimension.MANUFACTURER: (Dimension.MODEL,),
    Dimension.MODEL: (Dimension.GENERATION, Dimension.ENGINE, Dimension.TRIM_LEVEL),
    Dimension.GENERATION: (Dimension.GRADE,),
}

_PARENTS: dict[Dimension, Dimension] = {
    child: parent for parent, children in DEPENDENCY_EDGES.items() for child in children
}

# Dimensions that carry a selectable option list
OPTION_DIMENSIONS: tuple[Dimension, ...] = (
    Dimension.MANUFACTURER,
    Dimension.MODEL,
    Dimension.GENERATION,
    Dimension.GRADE,
    Dimension.ENGINE,
    Dimension.TRIM_LEVEL,
    Dimension.COLOR,
    Dimension.FUEL_TYPE,
    Dimension.TRANSMISSION,
    Dimension.BODY_TYPE,
    Dimension.SEAT_COUNT,
)


def parent_of(dimension: Dimension) -> Optional[Dimension]:
    """Return the direct ancestor of a dimension, or None for roots and leaves."""
    return _PARENTS.get(dimension)


def ancestors_of(dimension: Dimension) -> tuple[Dimension, ...]:
    """Return every ancestor of a dimension, root first."""
    chain: list[Dimension] = []
    current = _PARENTS.get(dimension)
    while current is not None:
        chain.append(current)
        current = _PARENTS.get(current)
    return tuple(reversed(chain))


def descendants_of(dimension: Dimension) -> tuple[Dimension, ...]:
    """Return every dimension transitively reachable from a dimension (breadth first)."""
    found: list[Dimension] = []
    queue = list(DEPENDENCY_EDGES.get(dimension, ()))
    while queue:
        child = queue.pop(0)
        if child in found:
            continue
        found.append(child)
        queue.extend(DEPENDENCY_EDGES.get(child, ()))
    return tuple(found)


def is_dependent(dimension: Dimension) -> bool:
    """Check whether a dimension has an ancestor in the dependency graph."""
    return dimension in _PARENTS


def dependency_order() -> tuple[Dimension, ...]:
    """Return all dimensions ordered so every ancestor precedes its descendants."""
    ordered: list[Dimension] = []
    for dimension in Dimension:
        for ancestor in ancestors_of(dimension) + (dimension,):
            if ancestor not in ordered:
                ordered.append(ancestor)
    return tuple(ordered)
