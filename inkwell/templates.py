"""Template rendering engine for Inkwell.

This module uses Jinja2 to render page bodies and wrap them in layouts.

Key class:
- TemplateEngine: Handles template rendering and provides context to templates.

Filters available to templates:
- date_to_rfc3339: ``2024-01-15T00:00:00Z`` style timestamps.
- readable_date: ``15 January 2024``.
- absolute_url: Resolves a path against a base URL.

Globals: ``data``, ``collections``, ``navigation``, ``metadata`` (feed
metadata), ``current_build_date()`` and ``pygments_css()``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape
from markupsafe import Markup
from pygments.formatters import HtmlFormatter

from .collections import Collections, build_navigation
from .content import Page
from .utils import absolute_url

logger = logging.getLogger(__name__)


def date_to_rfc3339(value: datetime) -> str:
    """Format a datetime as RFC 3339, using ``Z`` for UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc).replace(microsecond=0)
    return value.isoformat().replace("+00:00", "Z")


def readable_date(value: datetime, fmt: str = "%d %B %Y") -> str:
    return value.strftime(fmt)


def current_build_date() -> str:
    """Return the current time as an ISO 8601 UTC string."""
    return datetime.now(timezone.utc).isoformat()


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Attributes:
        layouts_dir: Directory searched for layout templates.
        includes_dir: Directory searched for partials.
        data: Global site data.
        env: Jinja2 environment.
        collections: Collections built from the current pages.
    """

    def __init__(
        self,
        includes_dir: Path,
        layouts_dir: Path,
        data: dict[str, Any],
        metadata: dict[str, Any] | None = None,
    ):
        self.includes_dir = includes_dir
        self.layouts_dir = layouts_dir
        self.data = data
        self.metadata = metadata or {}
        self.env = Environment(
            loader=FileSystemLoader([str(layouts_dir), str(includes_dir)]),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
        )
        self.collections = Collections([])
        self.navigation: list[dict[str, Any]] = []
        self._install_globals()

    def _install_globals(self) -> None:
        self.env.filters["date_to_rfc3339"] = date_to_rfc3339
        self.env.filters["readable_date"] = readable_date
        self.env.filters["absolute_url"] = absolute_url
        self.env.globals["data"] = self.data
        self.env.globals["metadata"] = self.metadata
        self.env.globals["current_build_date"] = current_build_date
        self.env.globals["pygments_css"] = self._pygments_css
        self.env.globals["collections"] = self.collections
        self.env.globals["navigation"] = self.navigation

    @staticmethod
    def _pygments_css() -> str:
        return HtmlFormatter().get_style_defs(".highlight")

    def update_collections(
        self,
        pages: Iterable[Page],
        extra_navigation: Iterable[dict[str, Any]] = (),
    ) -> None:
        """Rebuild collections and navigation from the current pages."""
        pages = list(pages)
        self.collections = Collections(pages)
        self.navigation = build_navigation(pages, extra_navigation)
        self.env.globals["collections"] = self.collections
        self.env.globals["navigation"] = self.navigation

    def render_page(self, page: Page) -> str:
        """Render a page body and wrap it in its layout.

        Args:
            page: Page object to render.

        Returns:
            Rendered HTML string.
        """
        context = {**page.data, "page": page}
        if page.source_type == "template":
            body_html = self.env.from_string(page.content).render(context)
        else:
            body_html = page.content
        page.rendered = body_html
        if not page.layout:
            return body_html
        try:
            layout = self._resolve_layout_template(page.layout)
        except TemplateNotFound:
            logger.warning(
                "Layout %r not found for %s; rendering body only.",
                page.layout,
                page.path,
            )
            return body_html
        return layout.render({**context, "content": Markup(body_html)})

    def _resolve_layout_template(self, layout: str):
        candidates = [layout]
        if "." not in Path(layout).name:
            candidates += [f"{layout}.html", f"{layout}.jinja"]
        return self.env.select_template(candidates)

    def render_string(self, template: str, context: dict[str, Any]) -> str:
        return self.env.from_string(template).render(**context)
