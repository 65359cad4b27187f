"""Global sort and pagination over the full filtered dataset."""

import asyncio
import logging
import math
from typing import Any, Callable, Optional, Sequence

from korauto_catalog.application.dtos.catalog import CatalogEntry, ResultPage, SearchResult
from korauto_catalog.application.ports.remote_catalog_source import RemoteCatalogSource
from korauto_catalog.domain.entities.filter_state import FilterState
from korauto_catalog.domain.errors import RemoteCatalogError, ValidationError
from korauto_catalog.domain.value_objects.sort_spec import DEFAULT_SORT, SortKey, SortSpec

DEFAULT_SEARCH_CAP = 1000
DEFAULT_PAGE_SIZE = 50

_SORT_FIELDS: dict[SortKey, Callable[[CatalogEntry], Any]] = {
    SortKey.PRICE: lambda entry: entry.price,
    SortKey.YEAR: lambda entry: entry.year,
    SortKey.MAKE: lambda entry: entry.make.casefold(),
    SortKey.RECENTLY_ADDED: lambda entry: entry.added_at,
    SortKey.POPULARITY: lambda entry: entry.popularity_score,
}


def sort_entries(entries: Sequence[CatalogEntry], spec: SortSpec) -> list[CatalogEntry]:
    """
    Order entries deterministically.

    Entries are first ordered by id ascending, then stably by the sort key in
    the requested direction, so ties always fall back to id ascending. Unknown
    mileage sorts after every known mileage regardless of direction.

    Args:
        entries: Entries to order (not modified)
        spec: Sort key and direction

    Returns:
        New ordered list
    """
    by_id = sorted(entries, key=lambda entry: entry.id)
    if spec.key is SortKey.MILEAGE:
        known = [entry for entry in by_id if entry.mileage is not None]
        unknown = [entry for entry in by_id if entry.mileage is None]
        known.sort(key=lambda entry: entry.mileage, reverse=spec.descending)
        return known + unknown
    return sorted(by_id, key=_SORT_FIELDS[spec.key], reverse=spec.descending)


def paginate_entries(
    ordered_entries: Sequence[CatalogEntry],
    page_index: int,
    page_size: int,
    total_count: Optional[int] = None,
) -> ResultPage:
    """
    Slice one page out of an ordered sequence.

    Args:
        ordered_entries: Globally ordered entries
        page_index: Zero-based page index
        page_size: Entries per page
        total_count: True match count to report (defaults to len(ordered_entries))

    Returns:
        ResultPage; empty when the index lies past the last page
    """
    total_pages = math.ceil(len(ordered_entries) / page_size) if page_size > 0 else 0
    start = page_index * page_size
    items = list(ordered_entries[start : start + page_size])
    return ResultPage(
        items=items,
        page_index=page_index,
        page_size=page_size,
        total_count=len(ordered_entries) if total_count is None else total_count,
        total_pages=total_pages,
        has_prev=page_index > 0 and total_pages > 0,
        has_next=page_index + 1 < total_pages,
    )


class GlobalSortPaginateEngine:
    """Fetch the filtered dataset once per FilterState version and serve pages.

    Sort and page changes re-derive the visible page from the held dataset
    without any network call. A fetch whose FilterState version has been
    superseded is ignored when it arrives (last request wins).
    """

    def __init__(
        self,
        source: RemoteCatalogSource,
        cap: int = DEFAULT_SEARCH_CAP,
        page_size: int = DEFAULT_PAGE_SIZE,
        session_id: str = "-",
        logger: Optional[Callable[..., None]] = None,
        on_change: Optional[Callable[[], None]] = None,
    ) -> None:
        """
        Initialize engine.

        Args:
            source: Remote catalog source
            cap: Maximum number of entries fetched per dataset
            page_size: Entries per page
            session_id: Session identifier for logging
            logger: Optional logger function (session_id, component, **kwargs)
            on_change: Optional callback fired when a dataset or failure is applied
        """
        if cap <= 0:
            raise ValueError("Search cap must be positive")
        if page_size <= 0:
            raise ValueError("Page size must be positive")
        self._source = source
        self._cap = cap
        self._page_size = page_size
        self._session_id = session_id
        self._logger = logger
        self._on_change = on_change

        self._entries: list[CatalogEntry] = []
        self._total_count = 0
        self._dataset_version: Optional[int] = None
        self._settled_version: Optional[int] = None
        self._requested_version: Optional[int] = None
        self._error = False
        self._cap_exceeded = False
        self._sort_spec = DEFAULT_SORT
        self._page_index = 0
        self._ordered: Optional[list[CatalogEntry]] = None
        self._in_flight: set[asyncio.Task] = set()

    def _log(self, component: str, **kwargs: Any) -> None:
        if self._logger:
            self._logger(self._session_id, component, **kwargs)

    def _notify(self) -> None:
        if self._on_change:
            self._on_change()

    @property
    def sort_spec(self) -> SortSpec:
        """Current sort specification."""
        return self._sort_spec

    @property
    def page_index(self) -> int:
        """Current zero-based page index."""
        return self._page_index

    @property
    def page_size(self) -> int:
        """Entries per page."""
        return self._page_size

    @property
    def total_count(self) -> int:
        """True number of matches reported for the held dataset."""
        return self._total_count

    @property
    def has_error(self) -> bool:
        """True when the latest dataset fetch failed."""
        return self._error

    @property
    def cap_exceeded(self) -> bool:
        """True when the held dataset was truncated at the cap."""
        return self._cap_exceeded

    @property
    def is_loading(self) -> bool:
        """True while the dataset for the latest requested version is pending."""
        return self._requested_version is not None and self._requested_version != self._settled_version

    @property
    def dataset_version(self) -> Optional[int]:
        """FilterState version the held dataset was fetched for."""
        return self._dataset_version

    async def fetch_filtered(self, state: FilterState) -> SearchResult:
        """
        Fetch the filtered dataset, bounded by the cap.

        Raises:
            NetworkError: On transport failure
            RateLimited: When the remote kept rate limiting
        """
        result = await self._source.search(state, self._cap)
        if len(result.entries) > self._cap:
            result = SearchResult(entries=result.entries[: self._cap], total_count=result.total_count)
        return result

    def schedule_refresh(self, state: FilterState) -> asyncio.Task:
        """
        Start the single fetch for a new FilterState version.

        Must be called from a running event loop.

        Returns:
            Task running the fetch
        """
        self._requested_version = state.version
        task = asyncio.create_task(self.refresh(state))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    async def refresh(self, state: FilterState) -> None:
        """
        Fetch and apply the dataset for a FilterState version.

        The result is dropped if a newer version was requested meanwhile.

        Args:
            state: Filter state to fetch for
        """
        if self._requested_version is None or state.version > self._requested_version:
            self._requested_version = state.version

        try:
            result = await self.fetch_filtered(state)
        except RemoteCatalogError as err:
            if state.version != self._requested_version:
                self._log("engine", filter_version=state.version, outcome="stale")
                return
            self._apply_failure(state.version, err)
            return

        if state.version != self._requested_version:
            self._log("engine", filter_version=state.version, outcome="stale")
            return
        self._apply_dataset(state.version, result)

    def _apply_dataset(self, version: int, result: SearchResult) -> None:
        self._entries = list(result.entries)
        self._total_count = max(result.total_count, len(result.entries))
        self._dataset_version = version
        self._settled_version = version
        self._error = False
        self._cap_exceeded = result.truncated
        self._ordered = None
        self._log(
            "engine",
            filter_version=version,
            outcome="applied",
            entries_count=len(self._entries),
            total_count=self._total_count,
            cap_exceeded=self._cap_exceeded,
        )
        self._notify()

    def _apply_failure(self, version: int, err: RemoteCatalogError) -> None:
        # The held dataset belongs to an older filter state: drop it
        self._entries = []
        self._total_count = 0
        self._dataset_version = None
        self._settled_version = version
        self._error = True
        self._cap_exceeded = False
        self._page_index = 0
        self._ordered = None
        self._log(
            "engine",
            level=logging.WARNING,
            filter_version=version,
            outcome="failed",
            error_code=err.error_code,
        )
        self._notify()

    def sort(self, entries: Sequence[CatalogEntry], spec: SortSpec) -> list[CatalogEntry]:
        """Pure global sort (see sort_entries)."""
        return sort_entries(entries, spec)

    def paginate(self, ordered_entries: Sequence[CatalogEntry], page_index: int, page_size: int) -> ResultPage:
        """Pure slicing (see paginate_entries); never touches the network."""
        return paginate_entries(ordered_entries, page_index, page_size)

    def set_sort(self, spec: SortSpec) -> None:
        """Change the sort order and reset the page index to 0 in the same step."""
        self._sort_spec = spec
        self._page_index = 0
        self._ordered = None

    def set_page(self, page_index: int) -> None:
        """
        Move to another page of the held dataset.

        Raises:
            ValidationError: If the index is negative
        """
        if page_index < 0:
            raise ValidationError(
                errors=[{"field": "page_index", "message": "Must be >= 0"}]
            )
        self._page_index = page_index

    def ordered_entries(self) -> list[CatalogEntry]:
        """Held dataset in the current sort order (cached until dataset or sort changes)."""
        if self._ordered is None:
            self._ordered = self.sort(self._entries, self._sort_spec)
        return self._ordered

    def visible_page(self) -> ResultPage:
        """Current page of the globally sorted dataset."""
        if not self._entries:
            return ResultPage.empty(page_index=self._page_index, page_size=self._page_size)
        return paginate_entries(
            self.ordered_entries(),
            self._page_index,
            self._page_size,
            total_count=self._total_count,
        )

    async def wait_until_idle(self) -> None:
        """Wait for every in-flight dataset fetch to finish."""
        while True:
            tasks = [task for task in self._in_flight if not task.done()]
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)

    def close(self) -> None:
        """Cancel in-flight dataset fetches."""
        for task in list(self._in_flight):
            task.cancel()
