"""Consumer-facing catalog session."""

import logging
from typing import Any, Callable, Optional, Union

from korauto_catalog.application.dtos.catalog import ResultPage
from korauto_catalog.application.dtos.options import OptionSet
from korauto_catalog.application.dtos.snapshot import CatalogSnapshot, CatalogStatus
from korauto_catalog.application.ports.fallback_option_provider import FallbackOptionProvider
from korauto_catalog.application.ports.remote_catalog_source import RemoteCatalogSource
from korauto_catalog.application.use_cases.async_option_fetcher import (
    DEFAULT_DEBOUNCE_SECONDS,
    AsyncOptionFetcher,
)
from korauto_catalog.application.use_cases.cascade_resolver import CascadeResolver
from korauto_catalog.application.use_cases.filter_query_codec import decode_query, encode_query
from korauto_catalog.application.use_cases.global_sort_paginate_engine import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_SEARCH_CAP,
    GlobalSortPaginateEngine,
)
from korauto_catalog.application.use_cases.option_set_store import OptionSetStore
from korauto_catalog.application.use_cases.strict_mode_classifier import StrictModeClassifier
from korauto_catalog.domain.entities.filter_state import FilterState
from korauto_catalog.domain.errors import ValidationError
from korauto_catalog.domain.value_objects.dimension import Dimension
from korauto_catalog.domain.value_objects.filter_value import ANY, parse_filter_value
from korauto_catalog.domain.value_objects.sort_spec import SortSpec

Subscriber = Callable[[CatalogSnapshot], None]


class CatalogSession:
    """One user's catalog browsing session.

    Wires the cascade resolver, option fetcher, strict-mode classifier and
    global sort/paginate engine behind setFilter/setSort/setPage-style calls.
    Every mutation and every applied async result publishes a new snapshot to
    subscribers.
    """

    def __init__(
        self,
        source: RemoteCatalogSource,
        session_id: str = "-",
        fallback_provider: Optional[FallbackOptionProvider] = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        search_cap: int = DEFAULT_SEARCH_CAP,
        page_size: int = DEFAULT_PAGE_SIZE,
        trust_empty_options_after_seconds: Optional[float] = None,
        logger: Optional[Callable[..., None]] = None,
    ) -> None:
        """
        Initialize catalog session.

        Args:
            source: Remote catalog source shared by both fetchers
            session_id: Session identifier
            fallback_provider: Optional static option lists
            debounce_seconds: Option fetch quiet window
            search_cap: Maximum entries per dataset fetch
            page_size: Entries per page
            trust_empty_options_after_seconds: See OptionSetStore
            logger: Optional logger function (session_id, component, **kwargs)
        """
        self._session_id = session_id
        self._logger = logger
        self._resolver = CascadeResolver()
        self._classifier = StrictModeClassifier()
        self._fetcher = AsyncOptionFetcher(
            source,
            store=OptionSetStore(trust_empty_after_seconds=trust_empty_options_after_seconds),
            fallback_provider=fallback_provider,
            debounce_seconds=debounce_seconds,
            session_id=session_id,
            logger=logger,
            on_change=self._publish,
        )
        self._engine = GlobalSortPaginateEngine(
            source,
            cap=search_cap,
            page_size=page_size,
            session_id=session_id,
            logger=logger,
            on_change=self._publish,
        )
        self._state = FilterState()
        self._revision = 0
        self._subscribers: list[Subscriber] = []
        self._started = False
        self._holding = 0

    def _log(self, component: str, **kwargs: Any) -> None:
        if self._logger:
            self._logger(self._session_id, component, **kwargs)

    @property
    def session_id(self) -> str:
        """Session identifier."""
        return self._session_id

    @property
    def state(self) -> FilterState:
        """Current filter state."""
        return self._state

    def start(self) -> CatalogSnapshot:
        """
        Issue the initial option fetches and the first search.

        Idempotent. Must be called from a running event loop.

        Returns:
            Snapshot after scheduling
        """
        if not self._started:
            self._started = True
            self._transition(self._state, dimension=None)
        return self.snapshot()

    def set_filter(self, dimension: Any, value: Any) -> CatalogSnapshot:
        """
        Set (or with ANY/None, unset) one dimension.

        Args:
            dimension: Dimension or its tag
            value: Value object, ANY/None, or loosely typed input (see parse_filter_value)

        Returns:
            Snapshot after the transition

        Raises:
            ValidationError: Unknown dimension, malformed value, or unset ancestor
        """
        parsed_dimension = Dimension.parse(dimension)
        try:
            parsed_value = parse_filter_value(parsed_dimension, value)
        except ValueError as err:
            raise ValidationError(
                errors=[{"field": parsed_dimension.value, "message": str(err)}]
            ) from err
        self._resolver.validate(self._state, parsed_dimension, parsed_value)

        new_state = self._resolver.apply(self._state, parsed_dimension, parsed_value)
        self._transition(new_state, dimension=parsed_dimension)
        return self.snapshot()

    def clear_filter(self, dimension: Any) -> CatalogSnapshot:
        """Unset one dimension (and, through the cascade, its descendants)."""
        return self.set_filter(dimension, ANY)

    def clear_filters(self) -> CatalogSnapshot:
        """Unset every dimension in a single transition."""
        self._transition(self._resolver.reset(self._state), dimension=None)
        return self.snapshot()

    def set_sort(self, spec: Union[SortSpec, str]) -> CatalogSnapshot:
        """
        Change the global sort order; the page index resets to 0.

        Never triggers a dataset fetch.

        Args:
            spec: Sort spec or its 'key:direction' form

        Raises:
            ValidationError: If the key or direction is unknown
        """
        if isinstance(spec, str):
            try:
                spec = SortSpec.parse(spec)
            except ValueError as err:
                raise ValidationError(errors=[{"field": "sort", "message": str(err)}]) from err
        if not isinstance(spec, SortSpec):
            raise ValidationError(errors=[{"field": "sort", "message": "Expected a sort spec"}])
        self._engine.set_sort(spec)
        self._log("engine", action="sort", sort=spec.to_param())
        self._publish()
        return self.snapshot()

    def set_page(self, index: int) -> CatalogSnapshot:
        """
        Move to another page. Never triggers a dataset fetch.

        Raises:
            ValidationError: If the index is negative or not an integer
        """
        if isinstance(index, bool) or not isinstance(index, int):
            raise ValidationError(errors=[{"field": "page_index", "message": "Must be an integer"}])
        self._engine.set_page(index)
        self._publish()
        return self.snapshot()

    def get_visible_page(self) -> ResultPage:
        """Current page of the globally sorted dataset."""
        return self._engine.visible_page()

    def get_option_set(self, dimension: Any) -> Optional[OptionSet]:
        """
        Option list to render for a dimension.

        Returns:
            Option set with the "any" entry prefixed unless the dimension is
            strict, or None when no list is available (yet)
        """
        parsed = Dimension.parse(dimension)
        return self._classifier.render(self._state, self._fetcher.get(parsed))

    def get_strict_flag(self, dimension: Any) -> bool:
        """True when the dimension already holds a concrete value."""
        return self._classifier.is_strict(self._state, Dimension.parse(dimension))

    def get_status(self) -> CatalogStatus:
        """ERROR when the dataset fetch failed, DEGRADED when option fetches failed, else OK."""
        if self._engine.has_error:
            return CatalogStatus.ERROR
        if self._fetcher.degraded_dimensions:
            return CatalogStatus.DEGRADED
        return CatalogStatus.OK

    def snapshot(self) -> CatalogSnapshot:
        """Build an immutable view of the session."""
        return CatalogSnapshot(
            revision=self._revision,
            state=self._state,
            sort=self._engine.sort_spec,
            page_index=self._engine.page_index,
            status=self.get_status(),
            page=self._engine.visible_page(),
            loading=self._engine.is_loading,
            cap_exceeded=self._engine.cap_exceeded,
            degraded_dimensions=self._fetcher.degraded_dimensions,
        )

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a snapshot subscriber.

        Returns:
            Callable that removes the subscription
        """
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def to_query(self) -> dict[str, str]:
        """Encode filters, sort and page as shareable query parameters."""
        return encode_query(
            self._state,
            self._engine.sort_spec,
            self._engine.page_index,
        )

    def hydrate(self, params: dict[str, Any]) -> CatalogSnapshot:
        """
        Apply filters, sort and page decoded from query parameters.

        Filters are applied ancestors first; the page is applied last so the
        filter and sort resets do not clobber it.
        """
        decoded = decode_query(params)
        for dimension, value in decoded.filters:
            self.set_filter(dimension, value)
        if decoded.sort is not None:
            self.set_sort(decoded.sort)
        if decoded.page_index:
            self.set_page(decoded.page_index)
        return self.snapshot()

    async def wait_until_idle(self) -> None:
        """Wait for pending option windows and every in-flight fetch."""
        await self._fetcher.wait_until_idle()
        await self._engine.wait_until_idle()

    def close(self) -> None:
        """Cancel everything pending and drop subscribers."""
        self._fetcher.close()
        self._engine.close()
        self._subscribers.clear()

    def _transition(self, new_state: FilterState, dimension: Optional[Dimension]) -> None:
        # Subscribers get one snapshot per transition, taken once the dataset
        # refresh for the new version is already pending
        self._holding += 1
        try:
            self._state = new_state
            self._engine.set_page(0)
            self._engine.schedule_refresh(new_state)
            self._fetcher.observe(new_state)
            self._log(
                "cascade",
                dimension=dimension.value if dimension else None,
                filter_version=new_state.version,
                filters=new_state.to_dict(),
            )
        finally:
            self._holding -= 1
        self._publish()

    def _publish(self) -> None:
        if self._holding:
            return
        self._revision += 1
        if not self._subscribers:
            return
        snapshot = self.snapshot()
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception as err:
                self._log(
                    "subscriber",
                    level=logging.ERROR,
                    outcome="failed",
                    error=type(err).__name__,
                    detail=str(err),
                )
