"""HTTP adapter schemas."""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict

from korauto_catalog.application.dtos.catalog import ResultPage
from korauto_catalog.application.dtos.options import OptionItem, OptionSet
from korauto_catalog.application.dtos.snapshot import CatalogSnapshot
from korauto_catalog.domain.value_objects.sort_spec import SortDirection, SortKey


class SetFilterRequest(BaseModel):
    """Filter assignment payload.

    Use `value` for string and enum dimensions, `min`/`max` for ranges.
    A null or "any" value unsets the dimension.
    """

    value: Optional[Union[str, int]] = None
    min: Optional[float] = None
    max: Optional[float] = None

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"value": "BMW"},
                {"min": 2018, "max": 2022},
            ]
        }
    )

    def to_raw(self) -> Any:
        """Return the loosely typed value accepted by CatalogSession.set_filter."""
        if self.min is not None or self.max is not None:
            return {"min": self.min, "max": self.max}
        if self.value is None:
            return None
        return str(self.value)


class SetSortRequest(BaseModel):
    """Sort change payload."""

    key: SortKey
    direction: SortDirection = SortDirection.DESC

    model_config = ConfigDict(json_schema_extra={"example": {"key": "price", "direction": "asc"}})


class SetPageRequest(BaseModel):
    """Page change payload."""

    page_index: int

    model_config = ConfigDict(json_schema_extra={"example": {"page_index": 1}})


class SessionResponse(BaseModel):
    """Snapshot of a catalog session."""

    session_id: str
    revision: int
    filters: dict[str, str]
    filter_version: int
    sort: str
    page_index: int
    status: str
    loading: bool
    cap_exceeded: bool
    degraded_dimensions: list[str]
    page: ResultPage

    @classmethod
    def from_snapshot(cls, session_id: str, snapshot: CatalogSnapshot) -> "SessionResponse":
        """Build response from a session snapshot."""
        return cls(
            session_id=session_id,
            revision=snapshot.revision,
            filters=snapshot.state.to_dict(),
            filter_version=snapshot.state.version,
            sort=snapshot.sort.to_param(),
            page_index=snapshot.page_index,
            status=snapshot.status.value,
            loading=snapshot.loading,
            cap_exceeded=snapshot.cap_exceeded,
            degraded_dimensions=sorted(dimension.value for dimension in snapshot.degraded_dimensions),
            page=snapshot.page,
        )


class OptionSetResponse(BaseModel):
    """Option list to render for a dimension."""

    dimension: str
    strict: bool
    degraded: bool
    items: list[OptionItem]
    path_signature: Optional[str] = None
    source: Optional[str] = None

    @classmethod
    def build(
        cls,
        dimension: str,
        strict: bool,
        degraded: bool,
        option_set: Optional[OptionSet],
    ) -> "OptionSetResponse":
        """Build response from a rendered option set (None while nothing is available)."""
        if option_set is None:
            return cls(dimension=dimension, strict=strict, degraded=degraded, items=[])
        return cls(
            dimension=dimension,
            strict=strict,
            degraded=degraded,
            items=list(option_set.items),
            path_signature=option_set.path_signature,
            source=option_set.source.value,
        )


class StatusResponse(BaseModel):
    """Session health."""

    session_id: str
    status: str
    loading: bool
    cap_exceeded: bool
    degraded_dimensions: list[str]


class ShareResponse(BaseModel):
    """Shareable encoding of a session."""

    session_id: str
    query: dict[str, str]
    query_string: str
