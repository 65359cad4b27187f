"""Sort specification value object."""

from dataclasses import dataclass
from enum import Enum


class SortKey(str, Enum):
    """Field the global sort orders by."""

    PRICE = "price"
    YEAR = "year"
    MILEAGE = "mileage"
    MAKE = "make"
    RECENTLY_ADDED = "recently_added"
    POPULARITY = "popularity"


class SortDirection(str, Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortSpec:
    """Sort key plus direction."""

    key: SortKey = SortKey.RECENTLY_ADDED
    direction: SortDirection = SortDirection.DESC

    def __post_init__(self) -> None:
        """Coerce key and direction to their enums."""
        try:
            object.__setattr__(self, "key", SortKey(self.key))
            object.__setattr__(self, "direction", SortDirection(self.direction))
        except (TypeError, ValueError) as err:
            raise ValueError(f"Invalid sort: {self.key!r}:{self.direction!r}") from err

    @property
    def descending(self) -> bool:
        """True when the primary key sorts descending."""
        return self.direction is SortDirection.DESC

    def to_param(self) -> str:
        """Render as 'key:direction' (e.g. 'price:asc')."""
        return f"{self.key.value}:{self.direction.value}"

    @classmethod
    def parse(cls, raw: str) -> "SortSpec":
        """
        Parse 'key:direction' (direction defaults to asc).

        Raises:
            ValueError: If key or direction is unknown
        """
        key, _, direction = raw.strip().lower().partition(":")
        return cls(key=SortKey(key), direction=SortDirection(direction or "asc"))


DEFAULT_SORT = SortSpec()
