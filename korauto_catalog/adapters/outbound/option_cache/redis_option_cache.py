"""Redis cache adapter for option lists."""

import json
from typing import Mapping, Optional

from redis import asyncio as aioredis

from korauto_catalog.application.dtos.options import OptionItem
from korauto_catalog.domain.value_objects.dimension import Dimension, ancestors_of
from korauto_catalog.domain.value_objects.filter_value import FilterValue, value_signature


class RedisOptionCache:
    """Redis cache for option lists using cache-aside pattern."""

    KEY_PREFIX = "catalog:options:"

    def __init__(self, redis_url: str, ttl_seconds: int) -> None:
        """
        Initialize Redis option cache.

        Args:
            redis_url: Redis connection URL
            ttl_seconds: Time-to-live in seconds for cached lists
        """
        self._redis_url = redis_url
        self._ttl_seconds = ttl_seconds
        self._client: Optional[aioredis.Redis] = None

    async def _get_client(self) -> aioredis.Redis:
        """
        Get or create Redis client.

        Returns:
            Redis client instance
        """
        if self._client is None:
            self._client = await aioredis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        return self._client

    def _make_key(self, dimension: Dimension, ancestor_filters: Mapping[Dimension, FilterValue]) -> str:
        """
        Make Redis key for a dimension under an ancestor path.

        Args:
            dimension: Dimension whose options are cached
            ancestor_filters: Concrete values of every ancestor of the dimension

        Returns:
            Redis key string, e.g. catalog:options:model:manufacturer=BMW
        """
        path = "/".join(
            f"{ancestor.value}={value_signature(ancestor_filters[ancestor])}"
            for ancestor in ancestors_of(dimension)
            if ancestor in ancestor_filters
        )
        return f"{self.KEY_PREFIX}{dimension.value}:{path}"

    async def get(
        self,
        dimension: Dimension,
        ancestor_filters: Mapping[Dimension, FilterValue],
    ) -> Optional[list[OptionItem]]:
        """
        Get option list from cache.

        Args:
            dimension: Dimension whose options are requested
            ancestor_filters: Concrete values of every ancestor of the dimension

        Returns:
            Option items, or None if not found in cache
        """
        redis_key = self._make_key(dimension, ancestor_filters)
        try:
            client = await self._get_client()
            cached_data = await client.get(redis_key)

            if cached_data is None:
                return None

            return [OptionItem(**item) for item in json.loads(cached_data)]
        except Exception as e:
            # Log error but don't fail - treat as cache miss
            from korauto_catalog.infrastructure.logging.logger import logger

            logger.warning(f"Error reading option cache key {redis_key}: {str(e)}")
            return None

    async def set(
        self,
        dimension: Dimension,
        ancestor_filters: Mapping[Dimension, FilterValue],
        items: list[OptionItem],
    ) -> None:
        """
        Store option list in cache with TTL.

        Args:
            dimension: Dimension whose options are cached
            ancestor_filters: Concrete values of every ancestor of the dimension
            items: Option items to cache
        """
        redis_key = self._make_key(dimension, ancestor_filters)
        try:
            client = await self._get_client()
            items_json = json.dumps([item.model_dump() for item in items], sort_keys=True)

            await client.setex(redis_key, self._ttl_seconds, items_json)
        except Exception as e:
            # Log error but don't fail - cache write failure is non-critical
            from korauto_catalog.infrastructure.logging.logger import logger

            logger.warning(f"Error writing option cache key {redis_key}: {str(e)}")

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.close()
            self._client = None
