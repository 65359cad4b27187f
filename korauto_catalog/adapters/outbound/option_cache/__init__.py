"""Option cache outbound adapter."""

from korauto_catalog.adapters.outbound.option_cache.cached_remote_catalog_source import (
    CachedRemoteCatalogSource,
)
from korauto_catalog.adapters.outbound.option_cache.redis_option_cache import RedisOptionCache

__all__ = [
    "CachedRemoteCatalogSource",
    "RedisOptionCache",
]
