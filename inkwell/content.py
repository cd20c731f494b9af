"""Content processing for Inkwell.

This module discovers content files, reads their YAML frontmatter, runs the
preprocessors for the current run mode, and builds Page objects.

Key classes:
- Page: Dataclass representing a site page with all its metadata.
- FileContentLoader: Discovers content files under the input directory.
- DefaultPageBuilder: Builds a Page from metadata and a preprocessed body.
- ContentProcessor: Facade tying discovery, preprocessing and page building together.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from .config import RunMode
from .preprocessors import PreprocessorRegistry, default_preprocessors
from .renderers import RendererRegistry, default_renderer_registry
from .utils import (
    extract_date_from_name,
    parse_date,
    slugify,
    strip_date_prefix,
    titleize,
)

logger = logging.getLogger(__name__)

FRONTMATTER_RE = re.compile(r"^---\s*\n(.*?)\n---\s*(?:\n|$)", re.DOTALL)


def extract_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Split YAML frontmatter from the body.

    Args:
        text: Raw file content.

    Returns:
        Tuple of (frontmatter dict, remaining content). Invalid or non-mapping
        frontmatter is treated as absent.
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    try:
        data = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as exc:
        logger.warning("Ignoring invalid frontmatter: %s", exc)
        return {}, text
    if not isinstance(data, dict):
        return {}, text
    return data, text[match.end() :]


@dataclass
class Page:
    """Represents a site page with all its metadata and content.

    Attributes:
        title: Human-readable title of the page.
        body: Source body after preprocessing.
        content: Rendered HTML for Markdown, template source otherwise.
        url: URL path for the page.
        slug: URL-friendly slug.
        date: Publication date (timezone aware).
        tags: Tags from frontmatter.
        draft: Whether the page is marked as a draft.
        layout: Layout template name, or empty for none.
        path: Path to the source file.
        source_type: "markdown" or "template".
        data: Frontmatter mapping.
        rendered: Body HTML after templating, without the layout. Set by
            the TemplateEngine.
    """

    title: str
    body: str
    content: str
    url: str
    slug: str
    date: datetime
    tags: list[str]
    draft: bool
    layout: str
    path: Path
    source_type: str
    data: dict[str, Any] = field(default_factory=dict)
    rendered: str = ""

    @property
    def navigation(self) -> dict[str, Any] | None:
        nav = self.data.get("navigation")
        if isinstance(nav, dict) and nav.get("key"):
            return nav
        return None


@dataclass
class ContentLoadResult:
    """Pages kept for the build plus the sources the preprocessors excluded."""

    pages: list[Page]
    excluded: list[Path]


class FileContentLoader:
    """Discovers content files in the input directory.

    Files inside any directory whose name starts with ``_`` (includes,
    layouts, data) are not content.
    """

    def __init__(self, input_dir: Path, renderers: RendererRegistry | None = None):
        self.input_dir = input_dir
        self.renderers = renderers or default_renderer_registry

    def iter_files(self) -> list[Path]:
        files: list[Path] = []
        for path in sorted(self.input_dir.rglob("*")):
            if path.is_dir():
                continue
            rel = path.relative_to(self.input_dir)
            if any(part.startswith("_") for part in rel.parts[:-1]):
                continue
            if self.renderers.is_content(path):
                files.append(path)
        return files


def _normalize_tags(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(tag) for tag in value]


class DefaultPageBuilder:
    """Builds Page objects from source files."""

    def __init__(self, input_dir: Path, renderers: RendererRegistry | None = None):
        self.input_dir = input_dir
        self.renderers = renderers or default_renderer_registry

    def build(self, path: Path, data: dict[str, Any], body: str) -> Page:
        """Build a Page from metadata and a preprocessed body.

        Args:
            path: Path to the source file.
            data: Frontmatter mapping.
            body: Body after preprocessing.
        """
        renderer = self.renderers.get_renderer(path)
        content = renderer.render(body) if renderer else body
        slug = slugify(strip_date_prefix(path.stem)) or "index"
        return Page(
            title=str(data.get("title") or titleize(path.name)),
            body=body,
            content=content,
            url=self.derive_url(path, slug, data),
            slug=slug,
            date=self._resolve_date(path, data),
            tags=_normalize_tags(data.get("tags")),
            draft=bool(data.get("draft")),
            layout=str(data.get("layout") or ""),
            path=path,
            source_type=renderer.source_type if renderer else "unknown",
            data=data,
        )

    def derive_url(self, path: Path, slug: str, data: dict[str, Any]) -> str:
        """Derive the URL for a page.

        A ``permalink`` in frontmatter wins; otherwise ``blog/first.md`` maps to
        ``/blog/first/`` and ``index`` files map to their directory.
        """
        permalink = data.get("permalink")
        if permalink:
            return "/" + str(permalink).lstrip("/")
        rel = path.relative_to(self.input_dir)
        segments = [p for p in rel.parent.parts if p]
        if path.stem != "index":
            segments.append(slug)
        joined = "/".join(segments)
        return f"/{joined}/" if joined else "/"

    def _resolve_date(self, path: Path, data: dict[str, Any]) -> datetime:
        parsed = parse_date(data.get("date"))
        if parsed is not None:
            return parsed
        from_name = extract_date_from_name(path.stem)
        if from_name is not None:
            return from_name
        return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)


class ContentProcessor:
    """Discovers, preprocesses, and builds pages.

    Attributes:
        input_dir: Directory containing site content.
        preprocessors: Registry applied to every discovered item.
    """

    def __init__(
        self,
        input_dir: Path,
        preprocessors: PreprocessorRegistry | None = None,
        content_loader: FileContentLoader | None = None,
        page_builder: DefaultPageBuilder | None = None,
    ):
        self.input_dir = input_dir
        self.preprocessors = preprocessors or default_preprocessors()
        self._content_loader = content_loader or FileContentLoader(input_dir)
        self._page_builder = page_builder or DefaultPageBuilder(input_dir)

    def load(self, run_mode: RunMode) -> ContentLoadResult:
        """Load all content for a build in ``run_mode``.

        Args:
            run_mode: Run mode of the current build.

        Returns:
            ContentLoadResult with included pages and excluded sources.
        """
        pages: list[Page] = []
        excluded: list[Path] = []
        for path in self._content_loader.iter_files():
            data, body = extract_frontmatter(path.read_text(encoding="utf-8"))
            result = self.preprocessors.apply(path, data, body, run_mode)
            if not result.included:
                excluded.append(path)
                continue
            pages.append(self._page_builder.build(path, data, result.content))
        return ContentLoadResult(pages=pages, excluded=excluded)
