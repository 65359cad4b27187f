"""Catalog DTOs."""

from datetime import datetime
from typing import Optional

from pydantic import ConfigDict

from korauto_catalog.application.dtos.base import DTO


class CatalogEntry(DTO):
    """One listing returned by the remote catalog."""

    id: str
    make: str
    price: float
    year: int
    added_at: datetime
    mileage: Optional[int] = None  # None when the listing does not report it
    popularity_score: float = 0.0
    model: Optional[str] = None
    generation: Optional[str] = None
    grade: Optional[str] = None
    engine: Optional[str] = None
    trim_level: Optional[str] = None
    color: Optional[str] = None
    fuel_type: Optional[str] = None
    transmission: Optional[str] = None
    body_type: Optional[str] = None
    seat_count: Optional[int] = None
    accident_count: Optional[int] = None

    model_config = ConfigDict(
        frozen=True,
        protected_namespaces=(),
        json_schema_extra={
            "example": {
                "id": "lot_41823",
                "make": "BMW",
                "model": "X5",
                "price": 38900.0,
                "year": 2019,
                "mileage": 64200,
                "added_at": "2026-10-01T08:00:00Z",
                "popularity_score": 12.5,
            }
        },
    )


class SearchResult(DTO):
    """Filtered dataset returned by RemoteCatalogSource.search."""

    entries: list[CatalogEntry]
    total_count: int  # True number of matches, even when entries were capped

    @property
    def truncated(self) -> bool:
        """True when the remote reported more matches than were returned."""
        return self.total_count > len(self.entries)


class ResultPage(DTO):
    """One fixed-size page of the globally sorted dataset."""

    items: list[CatalogEntry]
    page_index: int
    page_size: int
    total_count: int
    total_pages: int
    has_prev: bool
    has_next: bool

    @classmethod
    def empty(cls, page_index: int = 0, page_size: int = 50) -> "ResultPage":
        """Build a page with no items."""
        return cls(
            items=[],
            page_index=page_index,
            page_size=page_size,
            total_count=0,
            total_pages=0,
            has_prev=False,
            has_next=False,
        )
