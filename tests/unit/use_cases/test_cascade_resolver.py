"""Unit tests for CascadeResolver."""

import pytest

from korauto_catalog.application.use_cases.cascade_resolver import CascadeResolver
from korauto_catalog.domain.entities.filter_state import FilterState
from korauto_catalog.domain.errors import ValidationError
from korauto_catalog.domain.value_objects.dimension import (
    VALUE_KINDS,
    Dimension,
    ValueKind,
    ancestors_of,
    descendants_of,
)
from korauto_catalog.domain.value_objects.filter_value import (
    ANY,
    EnumValue,
    RangeValue,
    StringValue,
)


@pytest.fixture
def resolver() -> CascadeResolver:
    """Create cascade resolver."""
    return CascadeResolver()


@pytest.fixture
def full_state() -> FilterState:
    """Create a state with every dimension set."""
    values = {}
    for dimension in Dimension:
        values[dimension] = _sample_value(dimension)
    return FilterState(values=values, version=7)


def _sample_value(dimension: Dimension):
    kind = VALUE_KINDS[dimension]
    if kind is ValueKind.RANGE:
        return RangeValue(min=1, max=2)
    if kind is ValueKind.ENUM:
        return EnumValue("2")
    return StringValue(f"{dimension.value}-value")


def test_example_cascade_sequence(resolver: CascadeResolver) -> None:
    """Test BMW -> Audi -> A4 leaves Audi/A4 and every other dependent unset."""
    state = FilterState()
    state = resolver.apply(state, Dimension.MANUFACTURER, StringValue("BMW"))
    state = resolver.apply(state, Dimension.MANUFACTURER, StringValue("Audi"))
    state = resolver.apply(state, Dimension.MODEL, StringValue("A4"))

    assert state.get(Dimension.MANUFACTURER) == StringValue("Audi")
    assert state.get(Dimension.MODEL) == StringValue("A4")
    for dimension in (Dimension.GENERATION, Dimension.GRADE, Dimension.ENGINE, Dimension.TRIM_LEVEL):
        assert not state.is_set(dimension)
    assert state.version == 3


@pytest.mark.parametrize("dimension", list(Dimension))
def test_apply_unsets_every_descendant(
    resolver: CascadeResolver, full_state: FilterState, dimension: Dimension
) -> None:
    """Test a change to any dimension unsets all of its descendants."""
    result = resolver.apply(full_state, dimension, _sample_value(dimension))

    for descendant in descendants_of(dimension):
        assert not result.is_set(descendant)
    assert result.get(dimension) == _sample_value(dimension)
    assert result.version == full_state.version + 1


@pytest.mark.parametrize("dimension", list(Dimension))
def test_apply_any_unsets_dimension_and_descendants(
    resolver: CascadeResolver, full_state: FilterState, dimension: Dimension
) -> None:
    """Test setting ANY behaves like unsetting."""
    result = resolver.apply(full_state, dimension, ANY)

    assert not result.is_set(dimension)
    for descendant in descendants_of(dimension):
        assert not result.is_set(descendant)


def test_independent_dimensions_never_cascade(resolver: CascadeResolver, full_state: FilterState) -> None:
    """Test changing an independent facet leaves all other dimensions untouched."""
    result = resolver.apply(full_state, Dimension.COLOR, StringValue("Red"))

    for dimension in Dimension:
        if dimension is not Dimension.COLOR:
            assert result.get(dimension) == full_state.get(dimension)


def test_same_value_still_bumps_version_and_cascades(resolver: CascadeResolver, full_state: FilterState) -> None:
    """Test re-applying the current value is a real transition."""
    current = full_state.get(Dimension.MODEL)

    result = resolver.apply(full_state, Dimension.MODEL, current)

    assert result.version == full_state.version + 1
    assert not result.is_set(Dimension.GENERATION)


def test_apply_ignores_invalid_input(resolver: CascadeResolver) -> None:
    """Test unknown dimensions, wrong kinds and missing ancestors leave the state as is."""
    state = FilterState()

    assert resolver.apply(state, "manufacturer", StringValue("BMW")) is state
    assert resolver.apply(state, Dimension.YEAR_RANGE, StringValue("2018")) is state
    assert resolver.apply(state, Dimension.MODEL, StringValue("X5")) is state


def test_validate_reports_missing_ancestor(resolver: CascadeResolver) -> None:
    """Test validate names the first unset ancestor."""
    state = FilterState(values={Dimension.MANUFACTURER: StringValue("BMW")})

    with pytest.raises(ValidationError) as exc_info:
        resolver.validate(state, Dimension.GRADE, StringValue("xDrive30d"))

    assert exc_info.value.errors == [{"field": "grade", "message": "Select model first"}]
    assert ancestors_of(Dimension.GRADE)[1] == Dimension.MODEL


def test_validate_reports_kind_mismatch(resolver: CascadeResolver) -> None:
    """Test validate rejects values of the wrong kind."""
    with pytest.raises(ValidationError) as exc_info:
        resolver.validate(FilterState(), Dimension.PRICE_RANGE, EnumValue("cheap"))

    assert exc_info.value.error_code == "VALIDATION_ERROR"
    assert "range" in exc_info.value.errors[0]["message"]


def test_reset_clears_everything(resolver: CascadeResolver, full_state: FilterState) -> None:
    """Test reset produces an empty state with the next version."""
    result = resolver.reset(full_state)

    assert result.active_count() == 0
    assert result.version == full_state.version + 1
