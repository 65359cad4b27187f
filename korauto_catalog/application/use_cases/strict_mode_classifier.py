"""Strict mode: hide the synthetic "any" option once a value is committed."""

from typing import Optional

from korauto_catalog.application.dtos.options import ANY_OPTION, OptionSet
from korauto_catalog.domain.entities.filter_state import FilterState
from korauto_catalog.domain.value_objects.dimension import Dimension


class StrictModeClassifier:
    """Per-dimension decision on whether the "any" choice is offered."""

    def is_strict(self, state: FilterState, dimension: Dimension) -> bool:
        """True exactly when the dimension already holds a concrete value."""
        return state.is_set(dimension)

    def render(self, state: FilterState, option_set: Optional[OptionSet]) -> Optional[OptionSet]:
        """
        Build the option list a renderer should show.

        Args:
            state: Current filter state
            option_set: Published option set for the dimension, if any

        Returns:
            The option set, prefixed with the "any" entry unless strict
        """
        if option_set is None:
            return None
        items = tuple(item for item in option_set.items if not item.is_any)
        if not self.is_strict(state, option_set.dimension):
            items = (ANY_OPTION,) + items
        return option_set.model_copy(update={"items": items})
