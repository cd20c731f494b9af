"""Feed generation for Inkwell.

This module renders one site feed (Atom, RSS 2.0, or JSON Feed 1.1) from a
named page collection. Entries are the newest pages of the collection; links
are made absolute against ``metadata.base``.

Classes:
    FeedGenerator: Base class for feed formats.
    AtomFeedGenerator: Generates Atom feeds.
    RSSFeedGenerator: Generates RSS 2.0 feeds.
    JSONFeedGenerator: Generates JSON Feed 1.1 documents.

Functions:
    create_feed_generator: Pick a generator from the ``feed`` config section.
    write_feed: Generate the configured feed into the output directory.
    feed_navigation: Menu entry for the feed.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from .collections import Collections
from .config import ConfigError
from .content import Page
from .templates import date_to_rfc3339
from .utils import absolute_url, escape_html

logger = logging.getLogger(__name__)


class FeedGenerator(ABC):
    """Base class for feed generators.

    Attributes:
        output_path: Site path of the feed, e.g. ``/feed/feed.xml``.
        metadata: Feed metadata (title, subtitle, language, base, author).
        stylesheet: Optional XSL stylesheet for XML feeds.
    """

    def __init__(
        self,
        output_path: str,
        metadata: dict[str, Any],
        stylesheet: str | None = None,
    ):
        self.output_path = "/" + output_path.lstrip("/")
        self.metadata = metadata
        self.stylesheet = stylesheet

    @property
    def base(self) -> str:
        return str(self.metadata.get("base", ""))

    @property
    def feed_url(self) -> str:
        return absolute_url(self.output_path, self.base)

    @property
    def author_name(self) -> str:
        author = self.metadata.get("author") or {}
        return str(author.get("name", "")) if isinstance(author, dict) else str(author)

    def link(self, page: Page) -> str:
        return absolute_url(page.url, self.base)

    def _xml_prolog(self) -> list[str]:
        lines = ['<?xml version="1.0" encoding="utf-8"?>']
        if self.stylesheet:
            lines.append(
                f'<?xml-stylesheet href="{escape_html(self.stylesheet)}" type="text/xsl"?>'
            )
        return lines

    @abstractmethod
    def generate(self, pages: Sequence[Page]) -> str:
        """Render the feed document for ``pages`` (newest first)."""
        ...

    def write(self, output_dir: Path, pages: Sequence[Page]) -> Path:
        """Generate and write the feed below ``output_dir``.

        Returns:
            Path of the written feed file.
        """
        target = output_dir / self.output_path.lstrip("/")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.generate(pages), encoding="utf-8")
        return target


class AtomFeedGenerator(FeedGenerator):
    """Generates an Atom feed."""

    def generate(self, pages: Sequence[Page]) -> str:
        title = escape_html(str(self.metadata.get("title", "")))
        subtitle = escape_html(str(self.metadata.get("subtitle", "")))
        language = escape_html(str(self.metadata.get("language", "en")))
        base = escape_html(self.base)
        lines = self._xml_prolog()
        lines += [
            f'<feed xmlns="http://www.w3.org/2005/Atom" xml:lang="{language}">',
            f"  <title>{title}</title>",
            f"  <subtitle>{subtitle}</subtitle>",
            f'  <link href="{escape_html(self.feed_url)}" rel="self"/>',
            f'  <link href="{base}"/>',
        ]
        if pages:
            lines.append(f"  <updated>{date_to_rfc3339(pages[0].date)}</updated>")
        lines += [
            f"  <id>{base}</id>",
            "  <author>",
            f"    <name>{escape_html(self.author_name)}</name>",
            "  </author>",
        ]
        for page in pages:
            link = escape_html(self.link(page))
            lines += [
                "  <entry>",
                f"    <title>{escape_html(page.title)}</title>",
                f'    <link href="{link}"/>',
                f"    <updated>{date_to_rfc3339(page.date)}</updated>",
                f"    <id>{link}</id>",
                f'    <content type="html">{escape_html(page.rendered)}</content>',
                "  </entry>",
            ]
        lines.append("</feed>")
        return "\n".join(lines) + "\n"


class RSSFeedGenerator(FeedGenerator):
    """Generates an RSS 2.0 feed."""

    @staticmethod
    def _rfc822(page: Page) -> str:
        return page.date.strftime("%a, %d %b %Y %H:%M:%S %z")

    def generate(self, pages: Sequence[Page]) -> str:
        lines = self._xml_prolog()
        lines += [
            '<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom">',
            "  <channel>",
            f"    <title>{escape_html(str(self.metadata.get('title', '')))}</title>",
            f"    <link>{escape_html(self.base)}</link>",
            f'    <atom:link href="{escape_html(self.feed_url)}" rel="self" type="application/rss+xml"/>',
            f"    <description>{escape_html(str(self.metadata.get('subtitle', '')))}</description>",
            f"    <language>{escape_html(str(self.metadata.get('language', 'en')))}</language>",
        ]
        if pages:
            lines.append(f"    <lastBuildDate>{self._rfc822(pages[0])}</lastBuildDate>")
        for page in pages:
            link = escape_html(self.link(page))
            lines += [
                "    <item>",
                f"      <title>{escape_html(page.title)}</title>",
                f"      <link>{link}</link>",
                f"      <guid>{link}</guid>",
                f"      <pubDate>{self._rfc822(page)}</pubDate>",
                f"      <description>{escape_html(page.rendered)}</description>",
                "    </item>",
            ]
        lines += ["  </channel>", "</rss>"]
        return "\n".join(lines) + "\n"


class JSONFeedGenerator(FeedGenerator):
    """Generates a JSON Feed 1.1 document. Stylesheets do not apply."""

    def generate(self, pages: Sequence[Page]) -> str:
        document = {
            "version": "https://jsonfeed.org/version/1.1",
            "title": self.metadata.get("title", ""),
            "description": self.metadata.get("subtitle", ""),
            "language": self.metadata.get("language", "en"),
            "home_page_url": self.base,
            "feed_url": self.feed_url,
            "authors": [{"name": self.author_name}],
            "items": [
                {
                    "id": self.link(page),
                    "url": self.link(page),
                    "title": page.title,
                    "content_html": page.rendered,
                    "date_published": date_to_rfc3339(page.date),
                }
                for page in pages
            ],
        }
        return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


_GENERATORS: dict[str, type[FeedGenerator]] = {
    "atom": AtomFeedGenerator,
    "rss": RSSFeedGenerator,
    "json": JSONFeedGenerator,
}


def create_feed_generator(feed_config: dict[str, Any]) -> FeedGenerator:
    """Create the generator described by the ``feed`` config section.

    Raises:
        ConfigError: If ``type`` names an unknown format.
    """
    kind = str(feed_config.get("type", "atom")).lower()
    try:
        generator_cls = _GENERATORS[kind]
    except KeyError:
        raise ConfigError(
            f"Unknown feed type {kind!r} (expected one of: {', '.join(_GENERATORS)})"
        ) from None
    stylesheet = feed_config.get("stylesheet") if kind != "json" else None
    return generator_cls(
        output_path=str(feed_config.get("output_path", "/feed/feed.xml")),
        metadata=dict(feed_config.get("metadata") or {}),
        stylesheet=stylesheet,
    )


def feed_navigation(feed_config: dict[str, Any]) -> list[dict[str, Any]]:
    """Menu entry linking to the feed, from the ``feed.navigation`` option.

    Returns an empty list when the option is unset or has no ``key``.
    """
    nav = feed_config.get("navigation")
    if not isinstance(nav, dict) or not nav.get("key"):
        return []
    return [
        {
            "key": str(nav["key"]),
            "title": str(nav.get("title") or nav["key"]),
            "order": nav.get("order"),
            "url": "/" + str(feed_config.get("output_path", "/feed/feed.xml")).lstrip("/"),
        }
    ]


def write_feed(
    output_dir: Path,
    collections: Collections,
    feed_config: dict[str, Any],
) -> Path | None:
    """Write the configured feed.

    Args:
        output_dir: Build output directory.
        collections: Collections of the current build.
        feed_config: The ``feed`` config section.

    Returns:
        Path of the feed, or None when the collection is empty.
    """
    collection_cfg = feed_config.get("collection") or {}
    name = str(collection_cfg.get("name", "posts"))
    limit = collection_cfg.get("limit")
    pages = collections.get_collection(name).newest(int(limit) if limit else None)
    if not pages:
        logger.debug("Collection %r is empty; no feed written", name)
        return None
    generator = create_feed_generator(feed_config)
    path = generator.write(output_dir, list(pages))
    logger.info("Wrote %s feed with %d entries", feed_config.get("type", "atom"), len(pages))
    return path
