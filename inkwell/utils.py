"""Utility functions for Inkwell.

Key functions:
    slugify: Convert text to URL slugs.
    titleize: Convert filenames to human-readable titles.
    parse_date: Normalize frontmatter dates.
    extract_date_from_name: Extract date from a filename prefix.
    escape_html: Escape text for HTML and XML output.
    absolute_url: Resolve a site path against a base URL.
    ensure_clean_dir: Ensure a directory exists and is empty.
"""

from __future__ import annotations

import re
import shutil
from datetime import date, datetime, timezone
from pathlib import Path
from urllib.parse import urljoin

_DATE_PREFIX_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})-")


def slugify(text: str) -> str:
    """Convert text to a lowercase, hyphen separated slug.

    Examples:
        >>> slugify("Hello, World!")
        'hello-world'
    """
    cleaned = re.sub(r"[^\w\s-]", "", text.lower()).strip()
    cleaned = re.sub(r"[-\s_]+", "-", cleaned)
    return cleaned.strip("-")


def strip_date_prefix(stem: str) -> str:
    """Drop a leading ``YYYY-MM-DD-`` from a filename stem."""
    return _DATE_PREFIX_RE.sub("", stem)


def titleize(filename: str) -> str:
    """Convert a filename to a human-readable title.

    Examples:
        >>> titleize("2024-01-15-hello-world.md")
        'Hello World'
    """
    base = strip_date_prefix(Path(filename).stem)
    words = re.split(r"[\s\-_]+", base)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def extract_date_from_name(name: str) -> datetime | None:
    """Extract a date from a filename with a YYYY-MM-DD prefix.

    Examples:
        >>> extract_date_from_name("2024-01-15-hello-world")
        datetime.datetime(2024, 1, 15, 0, 0, tzinfo=datetime.timezone.utc)
    """
    match = _DATE_PREFIX_RE.match(name + "-")
    if not match:
        return None
    try:
        year, month, day = (int(g) for g in match.groups())
        return datetime(year, month, day, tzinfo=timezone.utc)
    except ValueError:
        return None


def parse_date(value: object) -> datetime | None:
    """Normalize a frontmatter date to an aware datetime.

    YAML already turns ``2024-01-15`` into a ``date``; strings are parsed as
    ISO 8601. Naive values are assumed to be UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def escape_html(text: str) -> str:
    """Escape special HTML characters in a string.

    Examples:
        >>> escape_html('Tom & "Jerry"')
        'Tom &amp; &quot;Jerry&quot;'
    """
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def absolute_url(url: str, base: str) -> str:
    """Resolve ``url`` against ``base``.

    Examples:
        >>> absolute_url("/blog/first/", "https://example.com/")
        'https://example.com/blog/first/'
    """
    if not base:
        return url
    return urljoin(base if base.endswith("/") else base + "/", url)


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty."""
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)


_ATTR_RE = re.compile(
    r"""([^\s=/>"']+)(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'=<>`]+)))?"""
)


def parse_attributes(tag: str) -> dict[str, str | None]:
    """Parse the attributes of a single HTML start tag.

    Valueless attributes map to None.

    Examples:
        >>> parse_attributes('<img src="a.png" alt=x hidden>')
        {'src': 'a.png', 'alt': 'x', 'hidden': None}
    """
    inner = re.sub(r"^<\w+", "", tag).rstrip(">").rstrip("/")
    attrs: dict[str, str | None] = {}
    for match in _ATTR_RE.finditer(inner):
        value = next((g for g in match.groups()[1:] if g is not None), None)
        attrs[match.group(1).lower()] = value
    return attrs


def render_attributes(attrs: dict[str, str | None]) -> str:
    return " ".join(
        name if value is None else f'{name}="{escape_html(value)}"'
        for name, value in attrs.items()
    )
