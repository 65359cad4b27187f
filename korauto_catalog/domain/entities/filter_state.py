"""Filter state entity."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from korauto_catalog.domain.value_objects.dimension import (
    Dimension,
    ancestors_of,
    dependency_order,
)
from korauto_catalog.domain.value_objects.filter_value import FilterValue, value_signature


@dataclass(frozen=True)
class FilterState:
    """Immutable, versioned snapshot of every filter dimension.

    Unset dimensions are simply absent from `values`. A dimension may only
    hold a value when all of its ancestors hold one too.
    """

    values: Mapping[Dimension, FilterValue] = field(default_factory=dict)
    version: int = 0

    def __post_init__(self) -> None:
        """Freeze values and check the ancestor invariant."""
        frozen = MappingProxyType(dict(self.values))
        object.__setattr__(self, "values", frozen)
        if self.version < 0:
            raise ValueError("Filter state version cannot be negative")
        for dimension in frozen:
            missing = [a for a in ancestors_of(dimension) if a not in frozen]
            if missing:
                raise ValueError(
                    f"{dimension.value} cannot be set while {missing[0].value} is unset"
                )

    def get(self, dimension: Dimension) -> Optional[FilterValue]:
        """Return the value of a dimension, or None when unset."""
        return self.values.get(dimension)

    def is_set(self, dimension: Dimension) -> bool:
        """Check whether a dimension holds a concrete value."""
        return dimension in self.values

    def ancestor_values(self, dimension: Dimension) -> Optional[dict[Dimension, FilterValue]]:
        """
        Return the concrete values of all ancestors of a dimension.

        Returns:
            Ancestor values root first, or None when any ancestor is unset
        """
        path: dict[Dimension, FilterValue] = {}
        for ancestor in ancestors_of(dimension):
            value = self.values.get(ancestor)
            if value is None:
                return None
            path[ancestor] = value
        return path

    def path_signature(self, dimension: Dimension) -> Optional[str]:
        """
        Signature of a dimension's ancestor path.

        Independent and root dimensions always have the empty signature.

        Returns:
            Signature string, or None when the path is not yet determinate
        """
        path = self.ancestor_values(dimension)
        if path is None:
            return None
        return "/".join(f"{d.value}={value_signature(v)}" for d, v in path.items())

    def ordered_items(self) -> list[tuple[Dimension, FilterValue]]:
        """Return set values in dependency order (ancestors first)."""
        return [(d, self.values[d]) for d in dependency_order() if d in self.values]

    def active_count(self) -> int:
        """Number of dimensions currently holding a value."""
        return len(self.values)

    def to_dict(self) -> dict[str, str]:
        """Flatten to dimension -> signature, for logging and debug output."""
        return {d.value: value_signature(v) for d, v in self.ordered_items()}
