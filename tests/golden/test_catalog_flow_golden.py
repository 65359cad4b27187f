"""Golden tests for a full catalog browsing flow to prevent regressions."""

import pytest

from korauto_catalog.adapters.outbound.catalog_api.in_memory_remote_catalog_source import (
    InMemoryRemoteCatalogSource,
)
from korauto_catalog.adapters.outbound.fallback.static_option_table import StaticOptionTable
from korauto_catalog.application.dtos.options import OptionSource
from korauto_catalog.application.dtos.snapshot import CatalogStatus
from korauto_catalog.application.use_cases.catalog_session import CatalogSession
from korauto_catalog.domain.value_objects.dimension import Dimension
from korauto_catalog.domain.value_objects.sort_spec import SortDirection, SortKey, SortSpec


class RecordingLogger:
    """Collects structured log events emitted by the session."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict]] = []

    def __call__(self, session_id: str, component: str, **kwargs) -> None:
        self.events.append((session_id, component, kwargs))

    def outcomes(self, component: str) -> list[str]:
        return [kwargs.get("outcome") for _, name, kwargs in self.events if name == component]


def page_ids(session: CatalogSession) -> list[str]:
    return [entry.id for entry in session.get_visible_page().items]


@pytest.mark.asyncio
async def test_golden_browse_bmw_then_switch_to_kia():
    """Golden test: narrow down to BMW X5 diesels sorted by price, then switch make."""
    logger = RecordingLogger()
    session = CatalogSession(
        InMemoryRemoteCatalogSource.from_csv(),
        session_id="golden",
        fallback_provider=StaticOptionTable(),
        debounce_seconds=0,
        page_size=3,
        logger=logger,
    )

    # 1. Landing page: most recently added first
    session.start()
    await session.wait_until_idle()
    assert page_ids(session) == ["lot_1018", "lot_1012", "lot_1010"]
    assert session.get_visible_page().total_pages == 8

    # 2. Pick BMW: fallback models show at once, network models replace them
    session.set_filter(Dimension.MANUFACTURER, "BMW")
    immediate_models = session.get_option_set(Dimension.MODEL)
    assert immediate_models.source is OptionSource.FALLBACK
    assert "X5" in immediate_models.values()
    await session.wait_until_idle()
    models = session.get_option_set(Dimension.MODEL)
    assert models.source is OptionSource.NETWORK
    assert models.values() == ["any", "X5", "3 Series", "5 Series"]
    assert session.get_visible_page().total_count == 6

    # 3. Pick X5: generations become available
    session.set_filter(Dimension.MODEL, "X5")
    await session.wait_until_idle()
    assert session.get_option_set(Dimension.GENERATION).values() == ["any", "G05", "F15"]

    # 4. Cheapest first
    session.set_sort(SortSpec(SortKey.PRICE, SortDirection.ASC))
    assert page_ids(session) == ["lot_1003", "lot_1001", "lot_1002"]

    # 5. Diesel only
    session.set_filter(Dimension.FUEL_TYPE, "diesel")
    await session.wait_until_idle()
    assert page_ids(session) == ["lot_1003", "lot_1001"]

    # 6. Switch make: model and generation are cleared, fuel stays
    snapshot = session.set_filter(Dimension.MANUFACTURER, "Kia")
    assert snapshot.state.to_dict() == {"manufacturer": "Kia", "fuel_type": "diesel"}
    assert session.get_option_set(Dimension.GENERATION) is None
    await session.wait_until_idle()
    assert page_ids(session) == ["lot_1016"]
    assert session.get_status() is CatalogStatus.OK

    # 7. Shareable query
    assert session.to_query() == {
        "manufacturer": "Kia",
        "fuel_type": "diesel",
        "sort": "price:asc",
    }

    # Every dataset fetch applied, none failed
    engine_outcomes = logger.outcomes("engine")
    assert engine_outcomes.count("applied") == 5
    assert "failed" not in engine_outcomes
    assert len([event for event in logger.events if event[1] == "cascade"]) == 5
    assert all(event[0] == "golden" for event in logger.events)

    session.close()
