from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from datetime import datetime, timezone

from .content import ContentUnit


def _timestamp(date: datetime) -> float:
    # Naive datetimes are taken as UTC so they compare with aware ones.
    if date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    return date.timestamp()


def sort_by_date(units: Iterable[ContentUnit]) -> list[ContentUnit]:
    """Sort units newest first, ties broken by identifier ascending.

    Units without a date come last, in identifier order.
    """
    by_identifier = sorted(units, key=lambda unit: unit.identifier)

    def date_key(unit: ContentUnit) -> tuple[bool, float]:
        date = unit.date
        return (date is not None, _timestamp(date) if date is not None else 0.0)

    # sorted() is stable with reverse=True, so identifier order survives ties.
    return sorted(by_identifier, key=date_key, reverse=True)


def recent(units: Iterable[ContentUnit], n: int) -> list[ContentUnit]:
    """Return the ``n`` most recent units.

    ``n <= 0`` yields an empty list; ``n`` larger than the number of units
    yields all of them.
    """
    if n <= 0:
        return []
    return sort_by_date(units)[:n]


class ContentCollection(Sequence[ContentUnit]):
    """Lightweight helper for working with lists of units in templates and code."""

    def __init__(self, units: Iterable[ContentUnit]):
        self._units = list(units)

    def __iter__(self) -> Iterator[ContentUnit]:
        return iter(self._units)

    def __len__(self) -> int:
        return len(self._units)

    def __getitem__(self, item):
        if isinstance(item, slice):
            return ContentCollection(self._units[item])
        return self._units[item]

    def recent(self, n: int = 5) -> ContentCollection:
        return ContentCollection(recent(self._units, n))

    def sorted(self) -> ContentCollection:
        return ContentCollection(sort_by_date(self._units))

    def in_category(self, name: str) -> ContentCollection:
        return ContentCollection(u for u in self._units if name in u.categories)

    def drafts(self) -> ContentCollection:
        return ContentCollection(u for u in self._units if u.draft)

    def published(self) -> ContentCollection:
        return ContentCollection(u for u in self._units if not u.draft)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"ContentCollection({len(self._units)} units)"


class CategoryCollection(Mapping[str, ContentCollection]):
    """Mapping of category name to the posts filed under it, newest first."""

    def __init__(self, mapping: Mapping[str, Iterable[ContentUnit]]):
        self._mapping = {
            name: ContentCollection(sort_by_date(units))
            for name, units in sorted(mapping.items())
        }

    def __getitem__(self, key: str) -> ContentCollection:
        return self._mapping[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"CategoryCollection({len(self._mapping)} categories)"


def build_category_index(units: Iterable[ContentUnit]) -> CategoryCollection:
    """Index units by each of their categories."""
    index: dict[str, list[ContentUnit]] = {}
    for unit in units:
        for category in unit.categories:
            index.setdefault(category, []).append(unit)
    return CategoryCollection(index)
