"""Content renderers for Inkwell.

Key classes:
- MarkdownRenderer: Renders Markdown to HTML with heading ids and syntax highlighting.
- TemplateRenderer: Marks HTML/Jinja sources for rendering by the TemplateEngine.
- RendererRegistry: Picks a renderer by file extension.
"""

from __future__ import annotations

import html
import re
from pathlib import Path
from typing import Any

import mistune
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .utils import escape_html, slugify

PRE_ATTRIBUTES = ' tabindex="0"'

_TAG_RE = re.compile(r"<[^>]+>")


class _BlogRenderer(mistune.HTMLRenderer):
    """Markdown renderer adding heading ids and Pygments highlighting."""

    def __init__(self) -> None:
        super().__init__(escape=False)
        self._heading_id_counts: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs: Any) -> str:
        base_id = slugify(html.unescape(_TAG_RE.sub("", text))) or "section"
        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            heading_id = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            heading_id = base_id
        return f'<h{level} id="{heading_id}">{text}</h{level}>\n'

    def block_code(self, code: str, info: str | None = None) -> str:
        lang = info.split()[0] if info else ""
        if lang:
            try:
                lexer = get_lexer_by_name(lang, stripall=True)
            except ClassNotFound:
                lexer = None
            if lexer is not None:
                formatter = HtmlFormatter(cssclass="highlight")
                html = highlight(code, lexer, formatter)
                return html.replace("<pre>", f"<pre{PRE_ATTRIBUTES}>", 1)
        lang_class = f' class="language-{escape_html(lang)}"' if lang else ""
        return f"<pre{PRE_ATTRIBUTES}><code{lang_class}>{escape_html(code)}</code></pre>\n"


class MarkdownRenderer:
    """Renders Markdown content to HTML."""

    source_type = "markdown"
    extensions = frozenset({".md"})

    def can_render(self, path: Path) -> bool:
        return path.suffix.lower() in self.extensions

    def render(self, content: str) -> str:
        """Render Markdown source to HTML."""
        markdown = mistune.create_markdown(
            renderer=_BlogRenderer(),
            plugins=["strikethrough", "footnotes", "table", "url"],
        )
        return markdown(content)


class TemplateRenderer:
    """Handles HTML and Jinja sources.

    The body is returned unchanged; the TemplateEngine renders it later, once
    collections and navigation are known.
    """

    source_type = "template"
    extensions = frozenset({".html", ".jinja"})

    def can_render(self, path: Path) -> bool:
        return path.suffix.lower() in self.extensions

    def render(self, content: str) -> str:
        return content


class RendererRegistry:
    """Registry for content renderers."""

    def __init__(self) -> None:
        self._renderers: list = [MarkdownRenderer(), TemplateRenderer()]

    def register(self, renderer) -> None:
        self._renderers.append(renderer)

    def get_renderer(self, path: Path):
        """Return the first renderer that accepts ``path``, or None."""
        for renderer in self._renderers:
            if renderer.can_render(path):
                return renderer
        return None

    def is_content(self, path: Path) -> bool:
        return self.get_renderer(path) is not None


default_renderer_registry = RendererRegistry()
