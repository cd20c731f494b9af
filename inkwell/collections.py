from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Any

from .content import Page


class PageCollection(Sequence[Page]):
    """Lightweight helper for working with lists of Pages in templates and code."""

    def __init__(self, pages: Iterable[Page]):
        self._pages = list(pages)

    def __iter__(self) -> Iterator[Page]:
        return iter(self._pages)

    def __len__(self) -> int:
        return len(self._pages)

    def __getitem__(self, item):
        return self._pages[item]

    def newest(self, count: int | None = None) -> PageCollection:
        """Pages newest first, optionally limited to ``count``."""
        ordered = sorted(self._pages, key=lambda p: (p.date, p.url), reverse=True)
        return PageCollection(ordered[:count] if count is not None else ordered)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"PageCollection({len(self._pages)} pages)"


class Collections(Mapping[str, PageCollection]):
    """Named page collections: ``all`` plus one per tag, oldest first."""

    def __init__(self, pages: Iterable[Page]):
        ordered = sorted(pages, key=lambda p: (p.date, p.url))
        grouped: dict[str, list[Page]] = {"all": list(ordered)}
        for page in ordered:
            for tag in page.tags:
                grouped.setdefault(tag, []).append(page)
        self._mapping = {k: PageCollection(v) for k, v in grouped.items()}

    def __getitem__(self, key: str) -> PageCollection:
        return self._mapping[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def get_collection(self, name: str) -> PageCollection:
        """Return a collection by name, empty when it does not exist."""
        return self._mapping.get(name, PageCollection([]))

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"Collections({', '.join(self._mapping)})"


def build_navigation(
    pages: Iterable[Page], extra: Iterable[dict[str, Any]] = ()
) -> list[dict[str, Any]]:
    """Build the site menu from pages with a ``navigation`` entry.

    ``extra`` entries (such as the feed link) join the menu as-is. Entries are
    ordered by ``order`` (missing orders sort last), then by key.
    """
    entries = list(extra)
    for page in pages:
        nav = page.navigation
        if nav is None:
            continue
        entries.append(
            {
                "key": str(nav["key"]),
                "title": str(nav.get("title") or nav["key"]),
                "order": nav.get("order"),
                "url": page.url,
            }
        )
    entries.sort(
        key=lambda e: (e["order"] is None, e["order"] or 0, e["key"].lower())
    )
    return entries
