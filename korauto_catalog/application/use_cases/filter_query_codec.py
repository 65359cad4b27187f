"""Encode and decode filter state as shareable query parameters.

Expanded format, one parameter per dimension:
    manufacturer=BMW&model=X5&fuel_type=diesel&year_min=2018&price_max=30000
    &sort=price:asc&page=2
Range dimensions use `<name>_min` / `<name>_max` where name drops the
`_range` suffix. Malformed parameters are ignored rather than rejected.
"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from korauto_catalog.domain.entities.filter_state import FilterState
from korauto_catalog.domain.value_objects.dimension import (
    VALUE_KINDS,
    Dimension,
    ValueKind,
    dependency_order,
    parent_of,
)
from korauto_catalog.domain.value_objects.filter_value import (
    EnumValue,
    FilterValue,
    RangeValue,
    StringValue,
    parse_filter_value,
)
from korauto_catalog.domain.value_objects.sort_spec import DEFAULT_SORT, SortSpec

SORT_PARAM = "sort"
PAGE_PARAM = "page"


@dataclass(frozen=True)
class DecodedQuery:
    """Filter assignments (ancestors first), sort and page decoded from a query."""

    filters: list[tuple[Dimension, FilterValue]] = field(default_factory=list)
    sort: Optional[SortSpec] = None
    page_index: int = 0


def _range_prefix(dimension: Dimension) -> str:
    return dimension.value.removesuffix("_range")


def _format_number(number: float) -> str:
    return f"{number:g}"


def encode_query(state: FilterState, sort: SortSpec = DEFAULT_SORT, page_index: int = 0) -> dict[str, str]:
    """
    Encode state as query parameters, omitting defaults.

    Args:
        state: Filter state
        sort: Current sort
        page_index: Zero-based page index (encoded one-based)

    Returns:
        Parameter mapping
    """
    params: dict[str, str] = {}
    for dimension, value in state.ordered_items():
        if isinstance(value, StringValue):
            params[dimension.value] = value.id
        elif isinstance(value, EnumValue):
            params[dimension.value] = value.code
        elif isinstance(value, RangeValue):
            prefix = _range_prefix(dimension)
            if value.min is not None:
                params[f"{prefix}_min"] = _format_number(value.min)
            if value.max is not None:
                params[f"{prefix}_max"] = _format_number(value.max)

    if sort != DEFAULT_SORT:
        params[SORT_PARAM] = sort.to_param()
    if page_index > 0:
        params[PAGE_PARAM] = str(page_index + 1)
    return params


def decode_query(params: Mapping[str, Any]) -> DecodedQuery:
    """
    Decode query parameters into ordered filter assignments.

    Assignments whose ancestors are missing are dropped so that applying them
    in order never violates the ancestor invariant.

    Args:
        params: Query parameters (values may be strings or lists of strings)

    Returns:
        DecodedQuery
    """
    filters: list[tuple[Dimension, FilterValue]] = []
    assigned: set[Dimension] = set()

    for dimension in dependency_order():
        raw = _raw_for(dimension, params)
        if raw is None:
            continue
        try:
            value = parse_filter_value(dimension, raw)
        except ValueError:
            continue
        if not isinstance(value, (StringValue, RangeValue, EnumValue)):
            continue
        parent = parent_of(dimension)
        if parent is not None and parent not in assigned:
            continue
        filters.append((dimension, value))
        assigned.add(dimension)

    return DecodedQuery(
        filters=filters,
        sort=_decode_sort(_first(params.get(SORT_PARAM))),
        page_index=_decode_page(_first(params.get(PAGE_PARAM))),
    )


def _first(raw: Any) -> Optional[str]:
    if isinstance(raw, (list, tuple)):
        raw = raw[0] if raw else None
    if raw is None:
        return None
    return str(raw)


def _raw_for(dimension: Dimension, params: Mapping[str, Any]) -> Any:
    if VALUE_KINDS[dimension] is ValueKind.RANGE:
        prefix = _range_prefix(dimension)
        low = _first(params.get(f"{prefix}_min"))
        high = _first(params.get(f"{prefix}_max"))
        if low is None and high is None:
            return None
        return {"min": low, "max": high}
    return _first(params.get(dimension.value))


def _decode_sort(raw: Optional[str]) -> Optional[SortSpec]:
    if not raw:
        return None
    try:
        return SortSpec.parse(raw)
    except ValueError:
        return None


def _decode_page(raw: Optional[str]) -> int:
    if not raw or not raw.isdigit():
        return 0
    return max(0, int(raw) - 1)
