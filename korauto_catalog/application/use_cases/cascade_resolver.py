"""Cascade resolver: the only writer of new FilterState versions."""

from typing import Any

from korauto_catalog.domain.entities.filter_state import FilterState
from korauto_catalog.domain.errors import ValidationError
from korauto_catalog.domain.value_objects.dimension import (
    VALUE_KINDS,
    Dimension,
    ancestors_of,
    descendants_of,
)
from korauto_catalog.domain.value_objects.filter_value import accepts, is_any


class CascadeResolver:
    """Apply a single dimension change, resetting dependent dimensions.

    Every accepted change produces a new FilterState whose version is exactly
    one higher; every dimension reachable from the changed one through the
    dependency graph is unset in the same transition. Independent dimensions
    never cascade.
    """

    def apply(self, state: FilterState, dimension: Any, value: Any) -> FilterState:
        """
        Apply a change to one dimension.

        Unrecognized dimensions and values that would break the ancestor
        invariant are ignored: the input state is returned unchanged.

        Args:
            state: Current filter state
            dimension: Dimension to change
            value: Concrete value, or ANY/None to unset

        Returns:
            New filter state, or the input state when the change is rejected
        """
        if not isinstance(dimension, Dimension):
            return state
        if not self._is_acceptable(state, dimension, value):
            return state

        values = dict(state.values)
        for descendant in descendants_of(dimension):
            values.pop(descendant, None)
        if is_any(value):
            values.pop(dimension, None)
        else:
            values[dimension] = value

        return FilterState(values=values, version=state.version + 1)

    def reset(self, state: FilterState) -> FilterState:
        """Unset every dimension in a single transition."""
        return FilterState(values={}, version=state.version + 1)

    def validate(self, state: FilterState, dimension: Dimension, value: Any) -> None:
        """
        Check a change before applying it through the public API.

        Raises:
            ValidationError: If the value kind does not match the dimension or
                an ancestor of the dimension is unset
        """
        if is_any(value):
            return
        if not accepts(dimension, value):
            raise ValidationError(
                errors=[
                    {
                        "field": dimension.value,
                        "message": f"Expected a {VALUE_KINDS[dimension].value} value",
                    }
                ]
            )
        missing = [a for a in ancestors_of(dimension) if not state.is_set(a)]
        if missing:
            raise ValidationError(
                errors=[
                    {
                        "field": dimension.value,
                        "message": f"Select {missing[0].value} first",
                    }
                ]
            )

    def _is_acceptable(self, state: FilterState, dimension: Dimension, value: Any) -> bool:
        """Non-raising variant of validate."""
        try:
            self.validate(state, dimension, value)
        except ValidationError:
            return False
        return True
