"""Remote catalog source outbound adapter."""

from korauto_catalog.adapters.outbound.catalog_api.http_remote_catalog_source import (
    HttpRemoteCatalogSource,
)
from korauto_catalog.adapters.outbound.catalog_api.in_memory_remote_catalog_source import (
    InMemoryRemoteCatalogSource,
)

__all__ = [
    "HttpRemoteCatalogSource",
    "InMemoryRemoteCatalogSource",
]
