"""Dependency injection factory functions."""

from typing import Optional

from korauto_catalog.adapters.outbound.catalog_api import (
    HttpRemoteCatalogSource,
    InMemoryRemoteCatalogSource,
)
from korauto_catalog.adapters.outbound.fallback.static_option_table import StaticOptionTable
from korauto_catalog.adapters.outbound.option_cache import (
    CachedRemoteCatalogSource,
    RedisOptionCache,
)
from korauto_catalog.application.ports.fallback_option_provider import FallbackOptionProvider
from korauto_catalog.application.ports.remote_catalog_source import RemoteCatalogSource
from korauto_catalog.application.use_cases.catalog_session import CatalogSession
from korauto_catalog.infrastructure.config.settings import settings
from korauto_catalog.infrastructure.logging.logger import log_event
from korauto_catalog.infrastructure.wiring.session_registry import SessionFactory, SessionRegistry


def create_remote_catalog_source() -> RemoteCatalogSource:
    """
    Factory function to create the remote catalog source.

    Returns:
        RemoteCatalogSource instance, wrapped with the Redis option cache when enabled
    """
    if settings.catalog_source == "http":
        source: RemoteCatalogSource = HttpRemoteCatalogSource()
    else:
        source = InMemoryRemoteCatalogSource.from_csv(settings.catalog_csv_path or None)

    if settings.option_cache_enabled and settings.redis_url:
        cache = RedisOptionCache(settings.redis_url, settings.option_cache_ttl_seconds)
        return CachedRemoteCatalogSource(source, cache)
    return source


def create_fallback_option_provider() -> FallbackOptionProvider:
    """
    Factory function to create the fallback option provider.

    Returns:
        FallbackOptionProvider instance
    """
    return StaticOptionTable()


def create_session_factory(
    source: Optional[RemoteCatalogSource] = None,
    debounce_seconds: Optional[float] = None,
) -> SessionFactory:
    """
    Factory function to create a catalog session factory.

    Args:
        source: Shared remote catalog source (built from settings by default)
        debounce_seconds: Option fetch quiet window (defaults to settings.option_debounce_ms)

    Returns:
        Callable building a CatalogSession for a session identifier
    """
    shared_source = source if source is not None else create_remote_catalog_source()
    fallback_provider = create_fallback_option_provider()
    quiet_window = (
        debounce_seconds if debounce_seconds is not None else settings.option_debounce_ms / 1000
    )

    # Wire logger function
    def _logger_func(session_id, component, **kwargs):
        log_event(session_id, component, **kwargs)

    def _build(session_id: str) -> CatalogSession:
        return CatalogSession(
            shared_source,
            session_id=session_id,
            fallback_provider=fallback_provider,
            debounce_seconds=quiet_window,
            search_cap=settings.search_cap,
            page_size=settings.default_page_size,
            trust_empty_options_after_seconds=settings.trust_empty_options_after_seconds,
            logger=_logger_func,
        )

    return _build


_shared_source: Optional[RemoteCatalogSource] = None
_session_registry: Optional[SessionRegistry] = None


def get_shared_source() -> RemoteCatalogSource:
    """
    Process-wide remote catalog source shared by every session.

    Returns:
        RemoteCatalogSource instance (created on first use)
    """
    global _shared_source
    if _shared_source is None:
        _shared_source = create_remote_catalog_source()
    return _shared_source


def get_session_registry() -> SessionRegistry:
    """
    FastAPI dependency returning the process-wide session registry.

    Returns:
        SessionRegistry instance (created on first use)
    """
    global _session_registry
    if _session_registry is None:
        _session_registry = SessionRegistry(create_session_factory(source=get_shared_source()))
    return _session_registry


async def shutdown() -> None:
    """Close every live session, then the shared source and its clients."""
    global _shared_source, _session_registry
    if _session_registry is not None:
        _session_registry.close_all()
        _session_registry = None
    if _shared_source is not None:
        await _shared_source.close()
        _shared_source = None
