"""Per-page CSS and JS bundles for Inkwell.

Inline ``<style>`` and ``<script>`` blocks in a rendered page are collected,
minified, and written to content-hashed files under the bundle directory
(``dist/`` by default). The first style block is replaced by a
``<link rel="stylesheet">`` and the last script block by a
``<script src>``; the other blocks are removed. Blocks carrying the
``inkwell:ignore`` attribute stay inline (the attribute itself is stripped).
Scripts with a ``src`` or a non-JavaScript ``type`` are never bundled.
"""

from __future__ import annotations

import hashlib
import re
from pathlib import Path

import csscompressor
import rjsmin

from .content import Page
from .images import IGNORE_ATTRIBUTE
from .utils import parse_attributes, render_attributes

STYLE_RE = re.compile(r"<style\b([^>]*)>(.*?)</style>", re.IGNORECASE | re.DOTALL)
SCRIPT_RE = re.compile(r"<script\b([^>]*)>(.*?)</script>", re.IGNORECASE | re.DOTALL)

_JS_TYPES = {"", "text/javascript", "application/javascript"}


class BundleTransform:
    """Moves inline styles and scripts into hashed bundle files.

    Attributes:
        output_dir: Build output directory.
        directory: Bundle directory relative to the output directory.
    """

    def __init__(self, output_dir: Path, directory: str = "dist"):
        self.output_dir = output_dir
        self.directory = directory.strip("/")

    def transform(self, html: str, page: Page) -> str:
        html = self._bundle(html, STYLE_RE, "css")
        return self._bundle(html, SCRIPT_RE, "js")

    def _bundle(self, html: str, pattern: re.Pattern, kind: str) -> str:
        chunks: list[str] = []
        spans: list[tuple[int, int]] = []
        kept: dict[tuple[int, int], str] = {}
        for match in pattern.finditer(html):
            attrs = parse_attributes(f"<x{match.group(1)}>")
            if IGNORE_ATTRIBUTE in attrs:
                attrs.pop(IGNORE_ATTRIBUTE)
                tag = "style" if kind == "css" else "script"
                opening = f"<{tag} {render_attributes(attrs)}>" if attrs else f"<{tag}>"
                kept[match.span()] = f"{opening}{match.group(2)}</{tag}>"
                continue
            if kind == "js" and not self._bundleable_script(attrs):
                continue
            chunks.append(match.group(2))
            spans.append(match.span())
        if not spans and not kept:
            return html

        replacement = ""
        source = "\n".join(chunks)
        if source.strip():
            url = self._write(source, kind)
            if kind == "css":
                replacement = f'<link rel="stylesheet" href="{url}">'
            else:
                replacement = f'<script src="{url}"></script>'
        anchor = (spans[0] if kind == "css" else spans[-1]) if spans else None

        pieces: list[str] = []
        cursor = 0
        for span in sorted(set(spans) | set(kept)):
            start, end = span
            pieces.append(html[cursor:start])
            if span in kept:
                pieces.append(kept[span])
            elif span == anchor:
                pieces.append(replacement)
            cursor = end
        pieces.append(html[cursor:])
        return "".join(pieces)

    @staticmethod
    def _bundleable_script(attrs: dict[str, str | None]) -> bool:
        if "src" in attrs:
            return False
        return (attrs.get("type") or "").strip().lower() in _JS_TYPES

    def _write(self, source: str, kind: str) -> str:
        if kind == "css":
            minified = csscompressor.compress(source)
        else:
            minified = rjsmin.jsmin(source)
        digest = hashlib.sha256(minified.encode("utf-8")).hexdigest()[:10]
        target = self.output_dir / self.directory / f"{digest}.{kind}"
        if not target.exists():
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(minified, encoding="utf-8")
        return f"/{self.directory}/{digest}.{kind}"
