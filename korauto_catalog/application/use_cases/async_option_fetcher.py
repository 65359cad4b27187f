"""Debounced, staleness-guarded refresh of per-dimension option lists."""

import asyncio
import logging
from functools import partial
from typing import Any, Callable, Iterable, Mapping, Optional

from korauto_catalog.application.dtos.options import OptionSet, OptionSource
from korauto_catalog.application.ports.fallback_option_provider import FallbackOptionProvider
from korauto_catalog.application.ports.remote_catalog_source import RemoteCatalogSource
from korauto_catalog.application.use_cases.option_set_store import OptionSetStore
from korauto_catalog.domain.entities.filter_state import FilterState
from korauto_catalog.domain.errors import RemoteCatalogError, StaleResponse
from korauto_catalog.domain.value_objects.dimension import OPTION_DIMENSIONS, Dimension
from korauto_catalog.domain.value_objects.filter_value import FilterValue
from korauto_catalog.infrastructure.scheduling.debounced_task import DebouncedTask

DEFAULT_DEBOUNCE_SECONDS = 0.3


class AsyncOptionFetcher:
    """Keep each dimension's OptionSet in step with its ancestor path.

    Flow per dimension when its ancestor path changes:
    1. Issue the next sequence number and publish a fallback list (if known)
       under it, or drop the list computed for the old path.
    2. (Re)start the quiet window; when it elapses, fetch from the remote
       source for the path present at that moment.
    3. Apply the response only if its sequence number is still the latest.
    Failures keep the current list and mark the dimension degraded.
    """

    def __init__(
        self,
        source: RemoteCatalogSource,
        store: Optional[OptionSetStore] = None,
        fallback_provider: Optional[FallbackOptionProvider] = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        dimensions: Iterable[Dimension] = OPTION_DIMENSIONS,
        session_id: str = "-",
        logger: Optional[Callable[..., None]] = None,
        on_change: Optional[Callable[[], None]] = None,
    ) -> None:
        """
        Initialize option fetcher.

        Args:
            source: Remote catalog source
            store: Option set arena (a fresh one by default)
            fallback_provider: Optional synchronous approximate option lists
            debounce_seconds: Quiet window before a fetch is issued
            dimensions: Dimensions that carry option lists
            session_id: Session identifier for logging
            logger: Optional logger function (session_id, component, **kwargs)
            on_change: Optional callback fired whenever a published list or
                degraded flag changes
        """
        self._source = source
        self._store = store or OptionSetStore()
        self._fallback_provider = fallback_provider
        self._dimensions = tuple(dimensions)
        self._session_id = session_id
        self._logger = logger
        self._on_change = on_change
        self._signatures: dict[Dimension, Optional[str]] = {}
        self._degraded: set[Dimension] = set()
        self._in_flight: set[asyncio.Task] = set()
        self._debouncers = {
            dimension: DebouncedTask(debounce_seconds, partial(self._fire, dimension))
            for dimension in self._dimensions
        }

    def _log(self, component: str, **kwargs: Any) -> None:
        if self._logger:
            self._logger(self._session_id, component, **kwargs)

    def _notify(self) -> None:
        if self._on_change:
            self._on_change()

    @property
    def store(self) -> OptionSetStore:
        """Underlying option set arena."""
        return self._store

    def get(self, dimension: Dimension) -> Optional[OptionSet]:
        """Return the option set currently published for a dimension."""
        return self._store.current(dimension)

    def is_degraded(self, dimension: Dimension) -> bool:
        """True when the latest fetch for the dimension failed."""
        return dimension in self._degraded

    @property
    def degraded_dimensions(self) -> frozenset[Dimension]:
        """Dimensions whose latest fetch failed."""
        return frozenset(self._degraded)

    def observe(self, state: FilterState) -> None:
        """
        React to a new filter state.

        Dimensions whose ancestor path signature did not change are left alone.
        Must be called from a running event loop.

        Args:
            state: New filter state
        """
        changed = False
        for dimension in self._dimensions:
            signature = state.path_signature(dimension)
            if dimension in self._signatures and self._signatures[dimension] == signature:
                continue
            self._signatures[dimension] = signature
            changed = True

            if signature is None:
                # Ancestor path no longer determinate: nothing to show, nothing to fetch
                self._debouncers[dimension].cancel()
                self._store.invalidate(dimension)
                self._degraded.discard(dimension)
                continue

            self._schedule(dimension, signature, state.ancestor_values(dimension) or {})

        if changed:
            self._notify()

    def _schedule(
        self,
        dimension: Dimension,
        signature: str,
        ancestors: Mapping[Dimension, FilterValue],
    ) -> None:
        sequence = self._store.issue(dimension)
        fallback = (
            self._fallback_provider.options_for(dimension, ancestors)
            if self._fallback_provider
            else []
        )
        if fallback:
            self._store.publish(
                OptionSet(
                    dimension=dimension,
                    items=tuple(fallback),
                    path_signature=signature,
                    sequence=sequence,
                    source=OptionSource.FALLBACK,
                )
            )
        else:
            self._store.clear(dimension)

        self._log(
            "options",
            dimension=dimension.value,
            sequence=sequence,
            outcome="scheduled",
            path=signature,
            fallback_items=len(fallback),
        )
        self._debouncers[dimension].trigger(sequence, signature, dict(ancestors))

    def _fire(
        self,
        dimension: Dimension,
        sequence: int,
        signature: str,
        ancestors: Mapping[Dimension, FilterValue],
    ) -> None:
        if not self._store.is_latest(dimension, sequence):
            return
        task = asyncio.create_task(self._fetch(dimension, sequence, signature, ancestors))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _fetch(
        self,
        dimension: Dimension,
        sequence: int,
        signature: str,
        ancestors: Mapping[Dimension, FilterValue],
    ) -> None:
        self._log("options", dimension=dimension.value, sequence=sequence, outcome="issued")
        try:
            items = await self._source.list_options(dimension, ancestors)
        except RemoteCatalogError as err:
            if not self._store.is_latest(dimension, sequence):
                self._log("options", dimension=dimension.value, sequence=sequence, outcome="stale")
                return
            self._degraded.add(dimension)
            self._log(
                "options",
                level=logging.WARNING,
                dimension=dimension.value,
                sequence=sequence,
                outcome="failed",
                error_code=err.error_code,
            )
            self._notify()
            return

        option_set = OptionSet(
            dimension=dimension,
            items=tuple(items),
            path_signature=signature,
            sequence=sequence,
            source=OptionSource.NETWORK,
        )
        try:
            applied = self._store.publish(option_set)
        except StaleResponse:
            self._log("options", dimension=dimension.value, sequence=sequence, outcome="stale")
            return

        self._degraded.discard(dimension)
        self._log(
            "options",
            dimension=dimension.value,
            sequence=sequence,
            outcome="applied" if applied else "fallback_retained",
            items_count=len(option_set.items),
        )
        self._notify()

    async def wait_until_idle(self) -> None:
        """Wait until no quiet window is pending and no fetch is in flight."""
        while True:
            tasks = [
                debouncer.task
                for debouncer in self._debouncers.values()
                if debouncer.pending and debouncer.task is not None
            ]
            tasks.extend(task for task in self._in_flight if not task.done())
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)

    def close(self) -> None:
        """Cancel pending windows and in-flight fetches."""
        for debouncer in self._debouncers.values():
            debouncer.cancel()
        for task in list(self._in_flight):
            task.cancel()
