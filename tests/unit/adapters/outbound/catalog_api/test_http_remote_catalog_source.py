"""Unit tests for HttpRemoteCatalogSource."""

import httpx
import pytest

from korauto_catalog.adapters.outbound.catalog_api.http_remote_catalog_source import (
    HttpRemoteCatalogSource,
    build_search_params,
)
from korauto_catalog.domain.entities.filter_state import FilterState
from korauto_catalog.domain.errors import NetworkError, RateLimited
from korauto_catalog.domain.value_objects.dimension import Dimension
from korauto_catalog.domain.value_objects.filter_value import EnumValue, RangeValue, StringValue

BASE_URL = "https://catalog.test/api"

CAR_PAYLOAD = {
    "id": 41823,
    "manufacturer": {"id": 9, "name": "BMW"},
    "model": {"id": 101, "name": "X5"},
    "year": 2019,
    "color": {"name": "Black"},
    "fuel": {"name": "diesel"},
    "created_at": "2026-10-01T08:00:00Z",
    "lots": [{"buy_now": 38900, "odometer": {"km": 64200}, "grade_iaai": "xDrive30d"}],
}


class SleepRecorder:
    """Records requested delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def make_source(handler, sleep=None, **kwargs) -> HttpRemoteCatalogSource:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpRemoteCatalogSource(
        base_url=BASE_URL,
        api_key="secret",
        max_attempts=kwargs.pop("max_attempts", 3),
        backoff_base_ms=kwargs.pop("backoff_base_ms", 500),
        client=client,
        sleep=sleep or SleepRecorder(),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_manufacturer_options_from_envelope() -> None:
    """Test root options are read from the data envelope with their counts."""
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={"data": [{"id": 9, "name": "BMW", "cars_qty": 120}, {"id": 1, "name": "Audi"}]},
        )

    source = make_source(handler)

    items = await source.list_options(Dimension.MANUFACTURER, {})

    assert [(item.value, item.label, item.count) for item in items] == [
        ("9", "BMW", 120),
        ("1", "Audi", None),
    ]
    assert requests[0].url.path == "/api/manufacturers/cars"
    assert requests[0].url.params["per_page"] == "1000"


@pytest.mark.parametrize(
    "dimension,ancestors,expected_path",
    [
        (Dimension.MODEL, {Dimension.MANUFACTURER: StringValue("9")}, "/api/models/9/cars"),
        (
            Dimension.GENERATION,
            {Dimension.MANUFACTURER: StringValue("9"), Dimension.MODEL: StringValue("101")},
            "/api/generations/101",
        ),
        (
            Dimension.ENGINE,
            {Dimension.MANUFACTURER: StringValue("9"), Dimension.MODEL: StringValue("101")},
            "/api/engines/101",
        ),
        (Dimension.COLOR, {}, "/api/filters/color"),
    ],
)
@pytest.mark.asyncio
async def test_option_endpoint_per_dimension(dimension, ancestors, expected_path) -> None:
    """Test dependent dimensions put the ancestor id in the path."""
    paths = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        return httpx.Response(200, json=[{"id": "x", "name": "X"}])

    source = make_source(handler)

    await source.list_options(dimension, ancestors)

    assert paths == [expected_path]


@pytest.mark.asyncio
async def test_options_without_ancestor_skip_the_network() -> None:
    """Test a dependent dimension with no ancestor value returns nothing."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    source = make_source(handler)

    assert await source.list_options(Dimension.MODEL, {}) == []


@pytest.mark.asyncio
async def test_search_maps_filters_and_payload() -> None:
    """Test search sends the filter params and parses nested lot fields."""
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"data": [CAR_PAYLOAD, {"id": "broken"}], "meta": {"total": 2500}})

    source = make_source(handler)
    state = FilterState(
        values={
            Dimension.MANUFACTURER: StringValue("9"),
            Dimension.YEAR_RANGE: RangeValue(min=2018, max=2021),
            Dimension.FUEL_TYPE: EnumValue("diesel"),
        }
    )

    result = await source.search(state, cap=1000)

    assert seen["path"] == "/api/cars"
    assert seen["params"]["manufacturer_id"] == "9"
    assert seen["params"]["from_year"] == "2018"
    assert seen["params"]["to_year"] == "2021"
    assert seen["params"]["fuel_type"] == "diesel"
    assert seen["params"]["per_page"] == "1000"
    assert result.total_count == 2500
    assert result.truncated
    entry = result.entries[0]
    assert entry.id == "41823"
    assert entry.make == "BMW"
    assert entry.model == "X5"
    assert entry.price == 38900
    assert entry.mileage == 64200
    assert entry.grade == "xDrive30d"
    assert entry.fuel_type == "diesel"
    assert len(result.entries) == 1


def test_build_search_params_for_independent_facets() -> None:
    """Test free text, seats and accident limit map to their query names."""
    state = FilterState(
        values={
            Dimension.FREE_TEXT_SEARCH: StringValue("m sport"),
            Dimension.SEAT_COUNT: EnumValue("7"),
            Dimension.MAX_ACCIDENTS: EnumValue("0"),
            Dimension.PRICE_RANGE: RangeValue(max=25000.5),
        }
    )

    assert build_search_params(state) == {
        "search": "m sport",
        "seats_count": "7",
        "max_accidents": "0",
        "buy_now_price_to": "25000.5",
    }


@pytest.mark.asyncio
async def test_server_errors_retried_with_exponential_backoff() -> None:
    """Test 5xx responses are retried after 500ms then 1000ms."""
    responses = iter([httpx.Response(503), httpx.Response(502), httpx.Response(200, json=[])])
    sleep = SleepRecorder()
    source = make_source(lambda request: next(responses), sleep=sleep)

    items = await source.list_options(Dimension.MANUFACTURER, {})

    assert items == []
    assert sleep.delays == [0.5, 1.0]


@pytest.mark.asyncio
async def test_retry_after_header_extends_backoff() -> None:
    """Test a larger Retry-After hint wins over the computed delay."""
    responses = iter(
        [httpx.Response(429, headers={"Retry-After": "3"}), httpx.Response(200, json=[])]
    )
    sleep = SleepRecorder()
    source = make_source(lambda request: next(responses), sleep=sleep)

    await source.list_options(Dimension.MANUFACTURER, {})

    assert sleep.delays == [3.0]


@pytest.mark.asyncio
async def test_rate_limited_after_last_attempt() -> None:
    """Test persistent 429 responses surface as RateLimited."""
    sleep = SleepRecorder()
    source = make_source(
        lambda request: httpx.Response(429, headers={"Retry-After": "1"}),
        sleep=sleep,
    )

    with pytest.raises(RateLimited) as exc_info:
        await source.search(FilterState(), cap=10)

    assert exc_info.value.retry_after_ms == 1000
    assert sleep.delays == [1.0, 1.0]


@pytest.mark.asyncio
async def test_transport_failures_surface_as_network_error() -> None:
    """Test connection errors are retried then raised as NetworkError."""
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    source = make_source(handler, max_attempts=2)

    with pytest.raises(NetworkError):
        await source.search(FilterState(), cap=10)

    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_client_errors_not_retried() -> None:
    """Test 4xx responses other than 429 fail immediately."""
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return httpx.Response(404)

    sleep = SleepRecorder()
    source = make_source(handler, sleep=sleep)

    with pytest.raises(NetworkError) as exc_info:
        await source.list_options(Dimension.COLOR, {})

    assert exc_info.value.to_dict()["status_code"] == 404
    assert len(attempts) == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_unexpected_payload_shape_is_network_error() -> None:
    """Test a payload that is neither a list nor a data envelope is rejected."""
    source = make_source(lambda request: httpx.Response(200, json={"error": "nope"}))

    with pytest.raises(NetworkError):
        await source.list_options(Dimension.MANUFACTURER, {})


def test_requires_base_url() -> None:
    """Test an empty base URL is a configuration error."""
    with pytest.raises(ValueError):
        HttpRemoteCatalogSource(base_url="/")


@pytest.mark.asyncio
async def test_rate_limit_without_hint_uses_exponential_backoff(caplog) -> None:
    """Test a 429 without Retry-After waits the computed delay and logs the retry."""
    responses = iter([httpx.Response(429), httpx.Response(429), httpx.Response(200, json=[])])
    sleep = SleepRecorder()
    source = make_source(lambda request: next(responses), sleep=sleep, backoff_base_ms=200)

    with caplog.at_level("WARNING"):
        await source.list_options(Dimension.MANUFACTURER, {})

    assert sleep.delays == [0.2, 0.4]
    assert "retrying in 200ms" in caplog.text


@pytest.mark.asyncio
async def test_close_releases_client() -> None:
    """Test close shuts the underlying httpx client."""
    source = make_source(lambda request: httpx.Response(200, json=[]))
    client = source._get_client()

    await source.close()

    assert client.is_closed
