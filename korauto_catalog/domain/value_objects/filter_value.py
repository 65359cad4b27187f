"""Filter value objects.

A dimension holds at most one value from the union StringValue | RangeValue |
EnumValue, or is unset. Setting the ANY sentinel is equivalent to unsetting.
"""

from dataclasses import dataclass
from typing import Any, Optional, Union

from korauto_catalog.domain.value_objects.dimension import VALUE_KINDS, Dimension, ValueKind


@dataclass(frozen=True)
class StringValue:
    """Identifier-valued selection (manufacturer, model, color, free text)."""

    id: str

    def __post_init__(self) -> None:
        """Validate identifier."""
        if not isinstance(self.id, str) or not self.id.strip():
            raise ValueError("String value cannot be empty")
        object.__setattr__(self, "id", self.id.strip())

    def signature(self) -> str:
        """Stable text form used in ancestor-path signatures."""
        return self.id


@dataclass(frozen=True)
class RangeValue:
    """Inclusive numeric range; either bound may be open."""

    min: Optional[float] = None
    max: Optional[float] = None

    def __post_init__(self) -> None:
        """Validate bounds."""
        if self.min is None and self.max is None:
            raise ValueError("Range value needs at least one bound")
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("Range minimum cannot be greater than maximum")

    def contains(self, number: float) -> bool:
        """Check whether a number falls inside the range."""
        if self.min is not None and number < self.min:
            return False
        if self.max is not None and number > self.max:
            return False
        return True

    def signature(self) -> str:
        """Stable text form used in ancestor-path signatures."""
        low = "" if self.min is None else f"{self.min:g}"
        high = "" if self.max is None else f"{self.max:g}"
        return f"{low}..{high}"


@dataclass(frozen=True)
class EnumValue:
    """Code from a closed vocabulary (fuel, transmission, body type, seats, accidents)."""

    code: str

    def __post_init__(self) -> None:
        """Validate code."""
        if not isinstance(self.code, str) or not self.code.strip():
            raise ValueError("Enum code cannot be empty")
        object.__setattr__(self, "code", self.code.strip().lower())

    def signature(self) -> str:
        """Stable text form used in ancestor-path signatures."""
        return self.code


class _AnyValue:
    """Sentinel for the synthetic "any" choice."""

    _instance: Optional["_AnyValue"] = None

    def __new__(cls) -> "_AnyValue":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ANY"


ANY = _AnyValue()

FilterValue = Union[StringValue, RangeValue, EnumValue]

_KIND_TYPES: dict[ValueKind, type] = {
    ValueKind.STRING: StringValue,
    ValueKind.RANGE: RangeValue,
    ValueKind.ENUM: EnumValue,
}

# Numeric enum codes
_NUMERIC_CODES = (Dimension.SEAT_COUNT, Dimension.MAX_ACCIDENTS)


def accepts(dimension: Dimension, value: Any) -> bool:
    """
    Check whether a concrete value matches the kind a dimension accepts.

    Args:
        dimension: Target dimension
        value: Candidate value

    Returns:
        True if the value type matches the dimension's value kind
    """
    if not isinstance(value, _KIND_TYPES[VALUE_KINDS[dimension]]):
        return False
    if dimension in _NUMERIC_CODES:
        return value.code.isdigit()
    return True


def is_any(value: Any) -> bool:
    """Check whether a value means "no filter"."""
    return value is None or value is ANY


def parse_filter_value(dimension: Dimension, raw: Any) -> Union[FilterValue, "_AnyValue"]:
    """
    Build a value object from loosely typed input (query params, JSON bodies).

    Args:
        dimension: Target dimension
        raw: None/"any"/"" for no filter; a string for string and enum kinds;
            a {"min", "max"} mapping for range kinds

    Returns:
        Concrete value object or ANY

    Raises:
        ValueError: If the input cannot be converted for this dimension
    """
    if raw is None or raw is ANY:
        return ANY
    if isinstance(raw, (StringValue, RangeValue, EnumValue)):
        if not accepts(dimension, raw):
            raise ValueError(f"{type(raw).__name__} is not accepted by {dimension.value}")
        return raw
    if isinstance(raw, str) and raw.strip().lower() in ("", "any", "all"):
        return ANY

    kind = VALUE_KINDS[dimension]
    if kind is ValueKind.RANGE:
        if not isinstance(raw, dict):
            raise ValueError(f"{dimension.value} expects a range with min/max")
        low = raw.get("min")
        high = raw.get("max")
        try:
            low = None if low in (None, "") else float(low)
            high = None if high in (None, "") else float(high)
        except (TypeError, ValueError) as err:
            raise ValueError(f"{dimension.value} bounds must be numbers") from err
        return RangeValue(min=low, max=high)
    if isinstance(raw, dict):
        raise ValueError(f"{dimension.value} does not accept a range")
    if kind is ValueKind.ENUM:
        value = EnumValue(code=str(raw))
        if not accepts(dimension, value):
            raise ValueError(f"{dimension.value} expects a numeric code")
        return value
    return StringValue(id=str(raw))


def value_signature(value: FilterValue) -> str:
    """Return the signature of a concrete value (exhaustive over the union)."""
    if isinstance(value, (StringValue, RangeValue, EnumValue)):
        return value.signature()
    raise TypeError(f"Unsupported filter value: {value!r}")
