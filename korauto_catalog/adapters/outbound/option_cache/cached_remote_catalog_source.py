"""Remote catalog source with cached option lists."""

from typing import Mapping

from korauto_catalog.application.dtos.catalog import SearchResult
from korauto_catalog.application.dtos.options import OptionItem
from korauto_catalog.application.ports.remote_catalog_source import RemoteCatalogSource
from korauto_catalog.domain.entities.filter_state import FilterState
from korauto_catalog.domain.value_objects.dimension import Dimension
from korauto_catalog.domain.value_objects.filter_value import FilterValue
from korauto_catalog.infrastructure.logging.logger import log_event

from .redis_option_cache import RedisOptionCache


class CachedRemoteCatalogSource(RemoteCatalogSource):
    """Remote catalog source with Redis-cached option lists (cache-aside pattern).

    Only list_options is cached. Searches always reach the wrapped source.
    """

    def __init__(self, primary_source: RemoteCatalogSource, cache: RedisOptionCache) -> None:
        """
        Initialize cached source.

        Args:
            primary_source: Wrapped source - source of truth
            cache: Redis cache for option lists
        """
        self._primary = primary_source
        self._cache = cache

    async def list_options(
        self,
        dimension: Dimension,
        ancestor_filters: Mapping[Dimension, FilterValue],
    ) -> list[OptionItem]:
        """
        List options (cache-aside pattern).

        Checks cache first, then asks the wrapped source on a miss. Empty
        lists are not cached.

        Raises:
            NetworkError: Propagated from the wrapped source
            RateLimited: Propagated from the wrapped source
        """
        cached_items = await self._cache.get(dimension, ancestor_filters)
        if cached_items is not None:
            log_event(
                session_id="-",
                component="option_cache",
                dimension=dimension.value,
                option_cache_hit=True,
            )
            return cached_items

        log_event(
            session_id="-",
            component="option_cache",
            dimension=dimension.value,
            option_cache_hit=False,
        )
        items = await self._primary.list_options(dimension, ancestor_filters)

        if items:
            await self._cache.set(dimension, ancestor_filters, items)

        return items

    async def search(self, state: FilterState, cap: int) -> SearchResult:
        """Delegate to the wrapped source."""
        return await self._primary.search(state, cap)

    async def close(self) -> None:
        """Close the cache connection and the wrapped source."""
        await self._cache.close()
        await self._primary.close()
