"""HTTP remote catalog source adapter for the auction-listing API."""

import asyncio
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping, Optional
from urllib.parse import quote

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from korauto_catalog.application.dtos.catalog import CatalogEntry, SearchResult
from korauto_catalog.application.dtos.options import OptionItem
from korauto_catalog.application.ports.remote_catalog_source import RemoteCatalogSource
from korauto_catalog.domain.entities.filter_state import FilterState
from korauto_catalog.domain.errors import NetworkError, RateLimited
from korauto_catalog.domain.value_objects.dimension import Dimension
from korauto_catalog.domain.value_objects.filter_value import (
    EnumValue,
    FilterValue,
    RangeValue,
    StringValue,
)
from korauto_catalog.infrastructure.config.settings import settings
from korauto_catalog.infrastructure.logging.logger import logger

OPTION_PAGE_SIZE = 1000

# Option endpoint per dependent dimension, keyed by the ancestor whose id goes in the path
_OPTION_PATHS: dict[Dimension, tuple[str, Optional[Dimension]]] = {
    Dimension.MANUFACTURER: ("manufacturers/cars", None),
    Dimension.MODEL: ("models/{id}/cars", Dimension.MANUFACTURER),
    Dimension.GENERATION: ("generations/{id}", Dimension.MODEL),
    Dimension.GRADE: ("grades/{id}", Dimension.GENERATION),
    Dimension.ENGINE: ("engines/{id}", Dimension.MODEL),
    Dimension.TRIM_LEVEL: ("trims/{id}", Dimension.MODEL),
}

# Search query parameter for each single-valued dimension
_SEARCH_PARAMS: dict[Dimension, str] = {
    Dimension.MANUFACTURER: "manufacturer_id",
    Dimension.MODEL: "model_id",
    Dimension.GENERATION: "generation_id",
    Dimension.GRADE: "grade_iaai",
    Dimension.ENGINE: "engine",
    Dimension.TRIM_LEVEL: "trim_level",
    Dimension.COLOR: "color",
    Dimension.FUEL_TYPE: "fuel_type",
    Dimension.TRANSMISSION: "transmission",
    Dimension.BODY_TYPE: "body_type",
    Dimension.SEAT_COUNT: "seats_count",
    Dimension.FREE_TEXT_SEARCH: "search",
    Dimension.MAX_ACCIDENTS: "max_accidents",
}

# (min param, max param) for each range dimension
_RANGE_PARAMS: dict[Dimension, tuple[str, str]] = {
    Dimension.YEAR_RANGE: ("from_year", "to_year"),
    Dimension.PRICE_RANGE: ("buy_now_price_from", "buy_now_price_to"),
    Dimension.MILEAGE_RANGE: ("odometer_from_km", "odometer_to_km"),
}

_RATE_LIMITED_STATUS = 429


class HttpRemoteCatalogSource(RemoteCatalogSource):
    """Remote catalog source backed by the auction-listing REST API.

    Retries 429, 5xx and transport failures with exponential backoff (stretched
    by Retry-After) and surfaces only terminal failures as RateLimited or
    NetworkError.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        max_attempts: Optional[int] = None,
        backoff_base_ms: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Initialize HTTP remote catalog source.

        Args:
            base_url: API base URL (defaults to settings.catalog_api_base_url)
            api_key: API key sent as x-api-key (defaults to settings.catalog_api_key)
            timeout_seconds: Request timeout (defaults to settings.catalog_api_timeout_seconds)
            max_attempts: Attempts per call (defaults to settings.catalog_api_max_attempts)
            backoff_base_ms: First retry delay (defaults to settings.catalog_api_backoff_base_ms)
            client: Optional preconfigured httpx client (tests pass a MockTransport client)
            sleep: Coroutine used to wait between attempts
        """
        self._base_url = (base_url or settings.catalog_api_base_url).rstrip("/")
        self._api_key = api_key if api_key is not None else settings.catalog_api_key
        self._timeout = timeout_seconds or settings.catalog_api_timeout_seconds
        self._max_attempts = max(1, max_attempts or settings.catalog_api_max_attempts)
        self._backoff_base_ms = (
            backoff_base_ms if backoff_base_ms is not None else settings.catalog_api_backoff_base_ms
        )
        self._client = client
        self._sleep = sleep

        if not self._base_url:
            raise ValueError("Catalog API base URL is required")

    def _get_client(self) -> httpx.AsyncClient:
        """
        Get or create the HTTP client.

        Returns:
            httpx AsyncClient instance
        """
        if self._client is None:
            headers = {"accept": "application/json"}
            if self._api_key:
                headers["x-api-key"] = self._api_key
            self._client = httpx.AsyncClient(headers=headers, timeout=self._timeout)
        return self._client

    async def list_options(
        self,
        dimension: Dimension,
        ancestor_filters: Mapping[Dimension, FilterValue],
    ) -> list[OptionItem]:
        """
        Fetch the option list of a dimension.

        Dependent dimensions use their dedicated endpoint with the ancestor id
        in the path; independent facets use filters/{dimension}.

        Raises:
            NetworkError: On transport failure, server error or malformed payload
            RateLimited: When retries were exhausted on 429 responses
        """
        template, ancestor = _OPTION_PATHS.get(dimension, (f"filters/{dimension.value}", None))
        path = template
        if ancestor is not None:
            ancestor_value = ancestor_filters.get(ancestor)
            if not isinstance(ancestor_value, StringValue):
                return []
            path = template.format(id=quote(ancestor_value.id, safe=""))

        payload = await self._request(path, {"per_page": OPTION_PAGE_SIZE, "simple_paginate": 0})
        return [item for item in (_to_option_item(raw) for raw in _extract_list(payload)) if item]

    async def search(self, state: FilterState, cap: int) -> SearchResult:
        """
        Fetch the filtered dataset in a single call of up to `cap` entries.

        Raises:
            NetworkError: On transport failure, server error or malformed payload
            RateLimited: When retries were exhausted on 429 responses
        """
        params = build_search_params(state)
        params.update({"per_page": cap, "page": 1, "simple_paginate": 0})
        payload = await self._request("cars", params)

        raw_entries = _extract_list(payload)
        parsed = [entry for entry in (_to_entry(raw) for raw in raw_entries) if entry]
        if len(parsed) < len(raw_entries):
            logger.warning(f"Skipped {len(raw_entries) - len(parsed)} unreadable catalog entries")

        entries = parsed[:cap]
        total_count = _extract_total(payload, fallback=len(parsed))
        return SearchResult(entries=entries, total_count=max(total_count, len(entries)))

    async def _request(self, path: str, params: dict[str, Any]) -> Any:
        """
        GET a JSON payload, retrying transient failures.

        Args:
            path: Endpoint path relative to the base URL
            params: Query parameters

        Returns:
            Decoded JSON payload

        Raises:
            NetworkError: On terminal transport or server failure
            RateLimited: When the last attempt was rate limited
        """
        url = f"{self._base_url}/{path}"
        client = self._get_client()
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(_TransientFailure),
            stop=stop_after_attempt(self._max_attempts),
            wait=_BackoffWait(self._backoff_base_ms),
            before_sleep=_log_retry,
            sleep=self._sleep,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    payload = await self._get_json(client, url, path, params)
        except _RateLimitedAttempt as err:
            raise RateLimited(retry_after_ms=err.retry_after_ms) from err
        except _TransientFailure as err:
            raise NetworkError(f"Catalog API call failed: {err}", path=path) from err
        return payload

    async def _get_json(
        self, client: httpx.AsyncClient, url: str, path: str, params: dict[str, Any]
    ) -> Any:
        """Run one attempt, raising _TransientFailure for anything worth retrying."""
        try:
            response = await client.get(url, params=params)
        except httpx.HTTPError as err:
            raise _TransientFailure(f"transport error on {path}: {err!s}") from err

        if response.status_code == _RATE_LIMITED_STATUS:
            raise _RateLimitedAttempt(_parse_retry_after_ms(response.headers.get("Retry-After")))
        if response.status_code >= 500:
            raise _TransientFailure(f"server error {response.status_code} on {path}")
        if response.status_code >= 400:
            raise NetworkError(
                f"Catalog API rejected request with status {response.status_code}",
                path=path,
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as err:
            raise NetworkError("Catalog API returned malformed JSON", path=path) from err

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def build_search_params(state: FilterState) -> dict[str, Any]:
    """
    Translate a filter state into search query parameters.

    Args:
        state: Filter state

    Returns:
        Query parameters (unset dimensions are omitted)
    """
    params: dict[str, Any] = {}
    for dimension, value in state.ordered_items():
        if isinstance(value, RangeValue):
            low_param, high_param = _RANGE_PARAMS[dimension]
            if value.min is not None:
                params[low_param] = f"{value.min:g}"
            if value.max is not None:
                params[high_param] = f"{value.max:g}"
        elif isinstance(value, StringValue):
            params[_SEARCH_PARAMS[dimension]] = value.id
        elif isinstance(value, EnumValue):
            params[_SEARCH_PARAMS[dimension]] = value.code
    return params


class _TransientFailure(Exception):
    """A failed attempt worth retrying."""


class _RateLimitedAttempt(_TransientFailure):
    """A 429 answer, with the server's Retry-After hint if it sent one."""

    def __init__(self, retry_after_ms: Optional[int]) -> None:
        self.retry_after_ms = retry_after_ms
        super().__init__("rate limited")


class _BackoffWait:
    """Exponential backoff from the base delay, stretched to honour Retry-After."""

    def __init__(self, backoff_base_ms: int) -> None:
        self._exponential = wait_exponential(multiplier=backoff_base_ms / 1000)

    def __call__(self, retry_state: RetryCallState) -> float:
        delay = self._exponential(retry_state)
        error = retry_state.outcome.exception() if retry_state.outcome else None
        if isinstance(error, _RateLimitedAttempt) and error.retry_after_ms is not None:
            delay = max(delay, error.retry_after_ms / 1000)
        return delay


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.warning(
        f"Catalog API call failed ({error}); "
        f"retrying in {delay * 1000:.0f}ms (attempt {retry_state.attempt_number})"
    )


def _parse_retry_after_ms(raw: Optional[str]) -> Optional[int]:
    if not raw:
        return None
    try:
        return int(float(raw) * 1000)
    except ValueError:
        return None


def _extract_list(payload: Any) -> list[dict]:
    """Accept a bare list or a {"data": [...]} envelope."""
    if isinstance(payload, list):
        items = payload
    elif isinstance(payload, dict) and isinstance(payload.get("data"), list):
        items = payload["data"]
    else:
        raise NetworkError("Catalog API returned an unexpected payload shape")
    return [item for item in items if isinstance(item, dict)]


def _extract_total(payload: Any, fallback: int) -> int:
    """Read the true match count from meta.total or total."""
    if not isinstance(payload, dict):
        return fallback
    meta = payload.get("meta") if isinstance(payload.get("meta"), dict) else {}
    for raw in (meta.get("total"), payload.get("total")):
        if raw is None:
            continue
        try:
            return int(raw)
        except (TypeError, ValueError):
            continue
    return fallback


def _to_option_item(raw: dict) -> Optional[OptionItem]:
    value = raw.get("id", raw.get("value"))
    label = raw.get("name", raw.get("label"))
    if value is None and label is None:
        return None
    value = str(value if value is not None else label).strip()
    label = str(label if label is not None else value).strip()
    if not value:
        return None

    count = raw.get("car_count", raw.get("cars_qty", raw.get("count")))
    try:
        count = int(count) if count is not None else None
    except (TypeError, ValueError):
        count = None
    return OptionItem(value=value, label=label, count=count)


def _name_of(raw: Any) -> Optional[str]:
    if isinstance(raw, dict):
        raw = raw.get("name")
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


def _to_entry(raw: dict) -> Optional[CatalogEntry]:
    """
    Map an API car payload to CatalogEntry.

    Flat fields win over the nested lot structure.

    Returns:
        CatalogEntry or None if a required field is missing or unreadable
    """
    lots = raw.get("lots") or [{}]
    lot = lots[0] if isinstance(lots, list) and lots and isinstance(lots[0], dict) else {}
    odometer = lot.get("odometer") if isinstance(lot.get("odometer"), dict) else {}

    try:
        entry_id = str(raw["id"]).strip()
        make = _name_of(raw.get("make") or raw.get("manufacturer"))
        price = raw.get("price", lot.get("buy_now"))
        year = raw.get("year")
        added_raw = raw.get("added_at") or raw.get("created_at")
        if not entry_id or not make or price is None or year is None or not added_raw:
            return None

        added_at = datetime.fromisoformat(str(added_raw).replace("Z", "+00:00"))
        if added_at.tzinfo is None:
            added_at = added_at.replace(tzinfo=timezone.utc)

        mileage = raw.get("mileage", odometer.get("km"))
        seats = raw.get("seat_count", raw.get("seats_count"))
        accidents = raw.get("accident_count", lot.get("accident_count"))

        return CatalogEntry(
            id=entry_id,
            make=make,
            price=float(price),
            year=int(year),
            added_at=added_at,
            mileage=int(mileage) if mileage is not None else None,
            popularity_score=float(raw.get("popularity_score") or 0),
            model=_name_of(raw.get("model")),
            generation=_name_of(raw.get("generation")),
            grade=_name_of(raw.get("grade") or lot.get("grade_iaai")),
            engine=_name_of(raw.get("engine")),
            trim_level=_name_of(raw.get("trim_level") or raw.get("trim")),
            color=_name_of(raw.get("color")),
            fuel_type=_name_of(raw.get("fuel_type") or raw.get("fuel")),
            transmission=_name_of(raw.get("transmission")),
            body_type=_name_of(raw.get("body_type")),
            seat_count=int(seats) if seats is not None else None,
            accident_count=int(accidents) if accidents is not None else None,
        )
    except (KeyError, TypeError, ValueError):
        return None
