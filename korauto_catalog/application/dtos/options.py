"""Option list DTOs."""

from enum import Enum
from typing import Optional

from korauto_catalog.application.dtos.base import DTO
from korauto_catalog.domain.value_objects.dimension import Dimension

ANY_OPTION_VALUE = "any"


class OptionSource(str, Enum):
    """Where an option list came from."""

    FALLBACK = "fallback"
    NETWORK = "network"


class OptionItem(DTO):
    """One selectable value of a dimension."""

    value: str
    label: str
    count: Optional[int] = None
    is_any: bool = False


ANY_OPTION = OptionItem(value=ANY_OPTION_VALUE, label="All", is_any=True)


class OptionSet(DTO):
    """Ordered option list for a dimension.

    Tagged with the ancestor-path signature and the per-dimension request
    sequence number it was computed under. Never mutated; replaced wholesale.
    """

    dimension: Dimension
    items: tuple[OptionItem, ...] = ()
    path_signature: str = ""
    sequence: int = 0
    source: OptionSource = OptionSource.NETWORK

    @property
    def is_degenerate(self) -> bool:
        """True for an empty list or one where every count is zero."""
        if not self.items:
            return True
        return all(item.count == 0 for item in self.items)

    def values(self) -> list[str]:
        """Return the option values in order."""
        return [item.value for item in self.items]
