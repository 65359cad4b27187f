"""Remote catalog source port."""

from abc import ABC, abstractmethod
from typing import Mapping

from korauto_catalog.application.dtos.catalog import SearchResult
from korauto_catalog.application.dtos.options import OptionItem
from korauto_catalog.domain.entities.filter_state import FilterState
from korauto_catalog.domain.value_objects.dimension import Dimension
from korauto_catalog.domain.value_objects.filter_value import FilterValue


class RemoteCatalogSource(ABC):
    """Port interface for the third-party auction-listing API.

    Implementations retry rate-limited calls themselves and only surface
    terminal failures as NetworkError or RateLimited. Callers make no
    assumption about latency.
    """

    @abstractmethod
    async def list_options(
        self,
        dimension: Dimension,
        ancestor_filters: Mapping[Dimension, FilterValue],
    ) -> list[OptionItem]:
        """
        List selectable values of a dimension under the given ancestor path.

        Args:
            dimension: Dimension whose options are requested
            ancestor_filters: Concrete values of every ancestor of the dimension

        Returns:
            Ordered option items

        Raises:
            NetworkError: On transport failure
            RateLimited: When retries were exhausted on 429 responses
        """
        pass

    @abstractmethod
    async def search(self, state: FilterState, cap: int) -> SearchResult:
        """
        Fetch the filtered dataset.

        Args:
            state: Filter state to apply (AND semantics)
            cap: Maximum number of entries to return

        Returns:
            SearchResult with at most `cap` entries and the true total count

        Raises:
            NetworkError: On transport failure
            RateLimited: When retries were exhausted on 429 responses
        """
        pass

    async def close(self) -> None:
        """Release network clients held by the source (no-op by default)."""
        return None
