"""Unit tests for AsyncOptionFetcher."""

import asyncio
from typing import Mapping

import pytest

from korauto_catalog.application.dtos.catalog import SearchResult
from korauto_catalog.application.dtos.options import OptionItem, OptionSource
from korauto_catalog.application.ports.fallback_option_provider import FallbackOptionProvider
from korauto_catalog.application.ports.remote_catalog_source import RemoteCatalogSource
from korauto_catalog.application.use_cases.async_option_fetcher import AsyncOptionFetcher
from korauto_catalog.domain.entities.filter_state import FilterState
from korauto_catalog.domain.errors import NetworkError, RateLimited
from korauto_catalog.domain.value_objects.dimension import Dimension
from korauto_catalog.domain.value_objects.filter_value import FilterValue, StringValue


def options(*values: str) -> list[OptionItem]:
    return [OptionItem(value=value, label=value, count=1) for value in values]


class ScriptedSource(RemoteCatalogSource):
    """Remote source answering calls in order, optionally held back by a gate."""

    def __init__(self, responses=None) -> None:
        self.responses = list(responses or [])
        self.gates: dict[int, asyncio.Event] = {}
        self.calls: list[tuple[Dimension, str]] = []

    async def list_options(
        self,
        dimension: Dimension,
        ancestor_filters: Mapping[Dimension, FilterValue],
    ) -> list[OptionItem]:
        index = len(self.calls)
        self.calls.append((dimension, "/".join(v.signature() for v in ancestor_filters.values())))
        gate = self.gates.get(index)
        if gate is not None:
            await gate.wait()
        result = self.responses[index] if index < len(self.responses) else []
        if isinstance(result, Exception):
            raise result
        return list(result)

    async def search(self, state: FilterState, cap: int) -> SearchResult:
        return SearchResult(entries=[], total_count=0)


class ModelFallback(FallbackOptionProvider):
    """Fallback table knowing BMW models only."""

    def options_for(self, dimension, ancestor_filters):
        if dimension is Dimension.MODEL and ancestor_filters.get(Dimension.MANUFACTURER) == StringValue("BMW"):
            return [OptionItem(value="X5", label="X5"), OptionItem(value="X3", label="X3")]
        return []


def with_manufacturer(name: str, version: int = 1) -> FilterState:
    return FilterState(values={Dimension.MANUFACTURER: StringValue(name)}, version=version)


async def drain(iterations: int = 5) -> None:
    """Let scheduled tasks advance to their next suspension point."""
    for _ in range(iterations):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_rapid_path_changes_collapse_into_one_fetch() -> None:
    """Test only the path present when the quiet window elapses is fetched."""
    source = ScriptedSource([options("K5", "Sorento")])
    fetcher = AsyncOptionFetcher(source, debounce_seconds=0.05, dimensions=(Dimension.MODEL,))

    fetcher.observe(with_manufacturer("BMW", 1))
    fetcher.observe(with_manufacturer("Audi", 2))
    fetcher.observe(with_manufacturer("Kia", 3))
    await fetcher.wait_until_idle()

    assert source.calls == [(Dimension.MODEL, "Kia")]
    current = fetcher.get(Dimension.MODEL)
    assert current.values() == ["K5", "Sorento"]
    assert current.sequence == 3
    assert current.path_signature == "manufacturer=Kia"


@pytest.mark.asyncio
async def test_unchanged_path_does_not_refetch() -> None:
    """Test dimensions whose ancestor path is unchanged are left alone."""
    source = ScriptedSource([options("X5"), options("never")])
    fetcher = AsyncOptionFetcher(source, debounce_seconds=0, dimensions=(Dimension.MODEL,))

    fetcher.observe(with_manufacturer("BMW", 1))
    await fetcher.wait_until_idle()
    fetcher.observe(
        FilterState(
            values={Dimension.MANUFACTURER: StringValue("BMW"), Dimension.COLOR: StringValue("Red")},
            version=2,
        )
    )
    await fetcher.wait_until_idle()

    assert len(source.calls) == 1
    assert fetcher.get(Dimension.MODEL).values() == ["X5"]


@pytest.mark.asyncio
async def test_late_response_never_overwrites_newer_one() -> None:
    """Test a response issued earlier for the same path is dropped when it arrives last."""
    source = ScriptedSource([options("old-X5"), options("A4"), options("X5", "X3")])
    source.gates[0] = asyncio.Event()
    fetcher = AsyncOptionFetcher(source, debounce_seconds=0, dimensions=(Dimension.MODEL,))

    fetcher.observe(with_manufacturer("BMW", 1))
    await drain()
    fetcher.observe(with_manufacturer("Audi", 2))
    await drain()
    fetcher.observe(with_manufacturer("BMW", 3))
    await drain()

    assert fetcher.get(Dimension.MODEL).values() == ["X5", "X3"]

    source.gates[0].set()
    await fetcher.wait_until_idle()

    current = fetcher.get(Dimension.MODEL)
    assert current.values() == ["X5", "X3"]
    assert current.sequence == 3
    assert [call[1] for call in source.calls] == ["BMW", "Audi", "BMW"]


@pytest.mark.asyncio
async def test_fallback_published_immediately_and_kept_over_empty_network_list() -> None:
    """Test an empty network list does not downgrade the fallback list."""
    source = ScriptedSource([[]])
    fetcher = AsyncOptionFetcher(
        source,
        fallback_provider=ModelFallback(),
        debounce_seconds=0,
        dimensions=(Dimension.MODEL,),
    )

    fetcher.observe(with_manufacturer("BMW"))
    immediate = fetcher.get(Dimension.MODEL)
    await fetcher.wait_until_idle()

    assert immediate.source is OptionSource.FALLBACK
    assert immediate.values() == ["X5", "X3"]
    current = fetcher.get(Dimension.MODEL)
    assert current.source is OptionSource.FALLBACK
    assert current.values() == ["X5", "X3"]


@pytest.mark.asyncio
async def test_network_list_replaces_fallback() -> None:
    """Test a non-empty network list replaces the fallback under the same sequence."""
    source = ScriptedSource([options("X5", "X7", "M3")])
    fetcher = AsyncOptionFetcher(
        source,
        fallback_provider=ModelFallback(),
        debounce_seconds=0,
        dimensions=(Dimension.MODEL,),
    )

    fetcher.observe(with_manufacturer("BMW"))
    await fetcher.wait_until_idle()

    current = fetcher.get(Dimension.MODEL)
    assert current.source is OptionSource.NETWORK
    assert current.values() == ["X5", "X7", "M3"]
    assert current.sequence == 1


@pytest.mark.asyncio
async def test_failure_keeps_previous_list_and_marks_degraded() -> None:
    """Test fetch failures retain the list and raise the degraded flag until a success."""
    source = ScriptedSource([RateLimited(retry_after_ms=1000), options("X5"), NetworkError("down")])
    notifications = []
    fetcher = AsyncOptionFetcher(
        source,
        fallback_provider=ModelFallback(),
        debounce_seconds=0,
        dimensions=(Dimension.MODEL,),
        on_change=lambda: notifications.append("change"),
    )

    fetcher.observe(with_manufacturer("BMW", 1))
    await fetcher.wait_until_idle()

    assert fetcher.is_degraded(Dimension.MODEL)
    assert fetcher.get(Dimension.MODEL).source is OptionSource.FALLBACK
    assert notifications

    fetcher.observe(with_manufacturer("Audi", 2))
    await fetcher.wait_until_idle()
    assert not fetcher.is_degraded(Dimension.MODEL)
    assert fetcher.get(Dimension.MODEL).values() == ["X5"]

    fetcher.observe(with_manufacturer("Kia", 3))
    await fetcher.wait_until_idle()
    assert fetcher.degraded_dimensions == frozenset({Dimension.MODEL})


@pytest.mark.asyncio
async def test_indeterminate_path_clears_list_and_skips_fetch() -> None:
    """Test a dependent dimension with an unset ancestor has no list and no fetch."""
    source = ScriptedSource([options("X5")])
    fetcher = AsyncOptionFetcher(source, debounce_seconds=0, dimensions=(Dimension.MODEL,))

    fetcher.observe(FilterState())
    await fetcher.wait_until_idle()
    assert source.calls == []
    assert fetcher.get(Dimension.MODEL) is None

    fetcher.observe(with_manufacturer("BMW", 1))
    await fetcher.wait_until_idle()
    assert fetcher.get(Dimension.MODEL).values() == ["X5"]

    fetcher.observe(FilterState(version=2))
    assert fetcher.get(Dimension.MODEL) is None


@pytest.mark.asyncio
async def test_path_change_without_fallback_drops_old_list() -> None:
    """Test the list computed for a previous path is not shown under a new path."""
    source = ScriptedSource([options("X5"), options("A4")])
    source.gates[1] = asyncio.Event()
    fetcher = AsyncOptionFetcher(source, debounce_seconds=0, dimensions=(Dimension.MODEL,))

    fetcher.observe(with_manufacturer("BMW", 1))
    await fetcher.wait_until_idle()
    fetcher.observe(with_manufacturer("Audi", 2))
    await drain()

    assert fetcher.get(Dimension.MODEL) is None

    source.gates[1].set()
    await fetcher.wait_until_idle()
    assert fetcher.get(Dimension.MODEL).values() == ["A4"]


@pytest.mark.asyncio
async def test_close_cancels_pending_windows() -> None:
    """Test closing drops pending fetches."""
    source = ScriptedSource([options("X5")])
    fetcher = AsyncOptionFetcher(source, debounce_seconds=0.05, dimensions=(Dimension.MODEL,))

    fetcher.observe(with_manufacturer("BMW"))
    fetcher.close()
    await asyncio.sleep(0.08)

    assert source.calls == []
