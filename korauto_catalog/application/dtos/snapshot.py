"""Session snapshot DTOs."""

from dataclasses import dataclass
from enum import Enum

from korauto_catalog.application.dtos.catalog import ResultPage
from korauto_catalog.domain.entities.filter_state import FilterState
from korauto_catalog.domain.value_objects.dimension import Dimension
from korauto_catalog.domain.value_objects.sort_spec import SortSpec


class CatalogStatus(str, Enum):
    """Health of a catalog session as shown to renderers."""

    OK = "ok"
    DEGRADED = "degraded"  # Option lists are stale because fetches failed
    ERROR = "error"  # The dataset fetch failed


@dataclass(frozen=True)
class CatalogSnapshot:
    """Immutable view of a session handed to subscribers."""

    revision: int
    state: FilterState
    sort: SortSpec
    page_index: int
    status: CatalogStatus
    page: ResultPage
    loading: bool = False
    cap_exceeded: bool = False
    degraded_dimensions: frozenset[Dimension] = frozenset()
