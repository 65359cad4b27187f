"""In-memory remote catalog source adapter."""

import csv
import os
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Mapping, Optional

from korauto_catalog.application.dtos.catalog import CatalogEntry, SearchResult
from korauto_catalog.application.dtos.options import OptionItem
from korauto_catalog.application.ports.remote_catalog_source import RemoteCatalogSource
from korauto_catalog.domain.entities.filter_state import FilterState
from korauto_catalog.domain.value_objects.dimension import Dimension
from korauto_catalog.domain.value_objects.filter_value import (
    EnumValue,
    FilterValue,
    RangeValue,
    StringValue,
)

# Entry attribute holding each filterable dimension's value
_ENTRY_FIELDS: dict[Dimension, str] = {
    Dimension.MANUFACTURER: "make",
    Dimension.MODEL: "model",
    Dimension.GENERATION: "generation",
    Dimension.GRADE: "grade",
    Dimension.ENGINE: "engine",
    Dimension.TRIM_LEVEL: "trim_level",
    Dimension.COLOR: "color",
    Dimension.FUEL_TYPE: "fuel_type",
    Dimension.TRANSMISSION: "transmission",
    Dimension.BODY_TYPE: "body_type",
    Dimension.SEAT_COUNT: "seat_count",
    Dimension.YEAR_RANGE: "year",
    Dimension.PRICE_RANGE: "price",
    Dimension.MILEAGE_RANGE: "mileage",
}

_FREE_TEXT_FIELDS = ("make", "model", "trim_level")


def _normalize(text: object) -> str:
    return str(text).casefold().strip()


class InMemoryRemoteCatalogSource(RemoteCatalogSource):
    """Remote catalog source over a fixed list of entries.

    Filters combine with AND semantics. String and enum facets match
    case-insensitively, ranges are inclusive, free text is a substring match
    over make, model and trim level, and MaxAccidents keeps entries whose
    reported accident count is at most the code.
    """

    def __init__(self, entries: Optional[Iterable[CatalogEntry]] = None) -> None:
        """
        Initialize in-memory source.

        Args:
            entries: Catalog entries served by this source
        """
        self._entries: list[CatalogEntry] = list(entries or [])

    @property
    def entries(self) -> list[CatalogEntry]:
        """All entries held by the source."""
        return list(self._entries)

    @classmethod
    def from_csv(cls, csv_path: Optional[str] = None) -> "InMemoryRemoteCatalogSource":
        """
        Load entries from a CSV file.

        Args:
            csv_path: Path to CSV file. Defaults to data/catalog.csv relative to project root.

        Returns:
            Source holding every valid row

        Raises:
            FileNotFoundError: If the file does not exist
        """
        if csv_path is None:
            project_root = Path(__file__).parent.parent.parent.parent.parent
            csv_path = str(project_root / "data" / "catalog.csv")
        if not os.path.exists(csv_path):
            raise FileNotFoundError(f"Catalog CSV file not found: {csv_path}")

        entries = []
        with open(csv_path, "r", encoding="utf-8") as file:
            reader = csv.DictReader(file)
            for row in reader:
                entry = _map_row_to_entry(row)
                if entry:
                    entries.append(entry)
        return cls(entries)

    async def list_options(
        self,
        dimension: Dimension,
        ancestor_filters: Mapping[Dimension, FilterValue],
    ) -> list[OptionItem]:
        """
        List distinct values of a dimension among entries matching the ancestors.

        Returns:
            Option items ordered by count descending, then label
        """
        field = _ENTRY_FIELDS.get(dimension)
        if field is None:
            return []

        matching = [
            entry
            for entry in self._entries
            if all(_matches(entry, ancestor, value) for ancestor, value in ancestor_filters.items())
        ]
        counts: Counter = Counter()
        labels: dict[str, str] = {}
        for entry in matching:
            raw = getattr(entry, field)
            if raw is None or str(raw).strip() == "":
                continue
            label = str(raw).strip()
            key = label.casefold()
            counts[key] += 1
            labels.setdefault(key, label)

        ordered = sorted(counts, key=lambda key: (-counts[key], labels[key].casefold()))
        return [OptionItem(value=labels[key], label=labels[key], count=counts[key]) for key in ordered]

    async def search(self, state: FilterState, cap: int) -> SearchResult:
        """
        Return entries matching every set dimension, bounded by the cap.

        Returns:
            SearchResult with at most `cap` entries and the true match count
        """
        matches = [
            entry
            for entry in self._entries
            if all(_matches(entry, dimension, value) for dimension, value in state.ordered_items())
        ]
        return SearchResult(entries=matches[:cap], total_count=len(matches))


def _matches(entry: CatalogEntry, dimension: Dimension, value: FilterValue) -> bool:
    """Check a single dimension constraint against an entry."""
    if dimension is Dimension.FREE_TEXT_SEARCH:
        needle = _normalize(value.id) if isinstance(value, StringValue) else ""
        return any(
            needle in _normalize(getattr(entry, field))
            for field in _FREE_TEXT_FIELDS
            if getattr(entry, field)
        )
    if dimension is Dimension.MAX_ACCIDENTS:
        if not isinstance(value, EnumValue) or entry.accident_count is None:
            return False
        return entry.accident_count <= int(value.code)

    actual = getattr(entry, _ENTRY_FIELDS[dimension])
    if actual is None:
        return False
    if isinstance(value, RangeValue):
        return value.contains(actual)
    if isinstance(value, StringValue):
        return _normalize(actual) == _normalize(value.id)
    if isinstance(value, EnumValue):
        return _normalize(actual) == value.code
    return False


def _optional_text(row: dict[str, str], key: str) -> Optional[str]:
    raw = (row.get(key) or "").strip()
    return raw or None


def _optional_int(row: dict[str, str], key: str) -> Optional[int]:
    raw = (row.get(key) or "").strip()
    return int(raw) if raw else None


def _map_row_to_entry(row: dict[str, str]) -> Optional[CatalogEntry]:
    """
    Map CSV row to CatalogEntry DTO.

    Args:
        row: CSV row as dictionary

    Returns:
        CatalogEntry DTO or None if row is invalid
    """
    try:
        entry_id = str(row["id"]).strip()
        make = str(row["make"]).strip()
        price = float(row["price"])
        year = int(row["year"])
        added_at = datetime.fromisoformat(row["added_at"].strip().replace("Z", "+00:00"))
        if added_at.tzinfo is None:
            added_at = added_at.replace(tzinfo=timezone.utc)

        # Validate required fields
        if not entry_id or not make or year <= 0 or price < 0:
            return None

        return CatalogEntry(
            id=entry_id,
            make=make,
            price=price,
            year=year,
            added_at=added_at,
            mileage=_optional_int(row, "mileage"),
            popularity_score=float(row.get("popularity_score") or 0),
            model=_optional_text(row, "model"),
            generation=_optional_text(row, "generation"),
            grade=_optional_text(row, "grade"),
            engine=_optional_text(row, "engine"),
            trim_level=_optional_text(row, "trim_level"),
            color=_optional_text(row, "color"),
            fuel_type=_optional_text(row, "fuel_type"),
            transmission=_optional_text(row, "transmission"),
            body_type=_optional_text(row, "body_type"),
            seat_count=_optional_int(row, "seat_count"),
            accident_count=_optional_int(row, "accident_count"),
        )
    except (ValueError, KeyError, AttributeError):
        return None
