"""Image transform for Inkwell.

Rewrites local ``<img>`` tags in rendered HTML into ``<picture>`` elements.
Each configured format gets one generated file under ``img/`` in the output
directory; ``auto`` keeps the source format and is used for the fallback
``<img>``. Generated names are derived from a hash of the source bytes, so
unchanged images map to unchanged files. A format already produced is not
repeated, so ``auto`` adds nothing for a WebP source when ``webp`` is listed.
SVG sources are copied as-is under a hashed name and keep a plain ``<img>``.

Formats the installed Pillow cannot encode are skipped. Any other failure
either raises ImageTransformError or, with ``fail_on_error: false``, logs a
warning and leaves the original tag in place.
"""

from __future__ import annotations

import hashlib
import logging
import re
import shutil
from dataclasses import dataclass
from pathlib import Path

from PIL import Image

from .content import Page
from .utils import parse_attributes, render_attributes

logger = logging.getLogger(__name__)

IMG_TAG_RE = re.compile(r"<img\b[^>]*>", re.IGNORECASE)
RASTER_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}
VECTOR_EXTENSIONS = {".svg"}
IGNORE_ATTRIBUTE = "inkwell:ignore"

_PIL_FORMATS = {
    "avif": ("AVIF", "image/avif", "avif"),
    "webp": ("WEBP", "image/webp", "webp"),
    "jpeg": ("JPEG", "image/jpeg", "jpeg"),
    "png": ("PNG", "image/png", "png"),
    "gif": ("GIF", "image/gif", "gif"),
}


class ImageTransformError(Exception):
    """Raised when an image cannot be processed and fail_on_error is set."""


@dataclass(frozen=True)
class ImageVariant:
    url: str
    mime_type: str
    width: int | None = None
    height: int | None = None


def _normalize_format(name: str) -> str:
    name = name.lower()
    return "jpeg" if name == "jpg" else name


class ImageTransform:
    """Turns local ``<img>`` tags into optimized ``<picture>`` markup.

    Attributes:
        input_dir: Content directory; root for ``/``-prefixed sources.
        output_dir: Build output directory.
        formats: Output formats in preference order.
        fail_on_error: Raise instead of keeping the original tag.
        attributes: Attributes added to every ``<img>`` unless already set.
    """

    def __init__(
        self,
        input_dir: Path,
        output_dir: Path,
        formats: list[str] | None = None,
        fail_on_error: bool = False,
        attributes: dict[str, str] | None = None,
        url_path: str = "/img/",
    ):
        self.input_dir = input_dir
        self.output_dir = output_dir
        self.formats = [_normalize_format(f) for f in (formats or ["webp", "auto"])]
        self.fail_on_error = fail_on_error
        self.attributes = dict(attributes or {})
        self.url_path = "/" + url_path.strip("/") + "/"
        self._cache: dict[Path, list[ImageVariant]] = {}

    def transform(self, html: str, page: Page) -> str:
        """Rewrite every eligible ``<img>`` tag in ``html``."""
        return IMG_TAG_RE.sub(lambda m: self._rewrite_tag(m.group(0), page), html)

    def _rewrite_tag(self, tag: str, page: Page) -> str:
        attrs = parse_attributes(tag)
        if IGNORE_ATTRIBUTE in attrs:
            attrs.pop(IGNORE_ATTRIBUTE)
            return f"<img {render_attributes(attrs)}>"
        src = attrs.get("src") or ""
        source = self._resolve_source(src, page)
        if source is None:
            return tag
        try:
            if source.suffix.lower() in VECTOR_EXTENSIONS:
                variants = self._copy_vector(source)
            else:
                variants = self._variants(source)
        except Exception as exc:
            if self.fail_on_error:
                raise ImageTransformError(f"{page.path}: {src}: {exc}") from exc
            logger.warning("Image transform failed for %s in %s: %s", src, page.path, exc)
            return tag
        if not variants:
            return tag
        return self._markup(attrs, variants)

    def _resolve_source(self, src: str, page: Page) -> Path | None:
        if not src or src.startswith(("http://", "https://", "//", "data:")):
            return None
        clean = src.split("?", 1)[0].split("#", 1)[0]
        if Path(clean).suffix.lower() not in RASTER_EXTENSIONS | VECTOR_EXTENSIONS:
            return None
        if clean.startswith("/"):
            candidate = self.input_dir / clean.lstrip("/")
        else:
            candidate = page.path.parent / clean
        if not candidate.exists():
            message = f"Image not found: {src} (referenced in {page.path})"
            if self.fail_on_error:
                raise ImageTransformError(message)
            logger.warning(message)
            return None
        return candidate

    def _variants(self, source: Path) -> list[ImageVariant]:
        if source in self._cache:
            return self._cache[source]
        digest = hashlib.sha256(source.read_bytes()).hexdigest()[:10]
        target_dir = self.output_dir / self.url_path.strip("/")
        target_dir.mkdir(parents=True, exist_ok=True)
        variants: list[ImageVariant] = []
        emitted: set[str] = set()
        with Image.open(source) as img:
            width, height = img.size
            original = _normalize_format(img.format or source.suffix.lstrip("."))
            for name in self.formats:
                fmt = original if name == "auto" else name
                if fmt not in _PIL_FORMATS:
                    logger.debug("Skipping unknown image format %s", fmt)
                    continue
                if fmt in emitted:
                    continue
                pil_format, mime_type, ext = _PIL_FORMATS[fmt]
                target = target_dir / f"{digest}-{width}.{ext}"
                if not target.exists() and not self._save(img, target, pil_format):
                    continue
                emitted.add(fmt)
                variants.append(
                    ImageVariant(
                        url=f"{self.url_path}{target.name}",
                        mime_type=mime_type,
                        width=width,
                        height=height,
                    )
                )
        self._cache[source] = variants
        return variants

    def _copy_vector(self, source: Path) -> list[ImageVariant]:
        data = source.read_bytes()
        digest = hashlib.sha256(data).hexdigest()[:10]
        target = self.output_dir / self.url_path.strip("/") / f"{digest}.svg"
        if not target.exists():
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
        return [ImageVariant(url=f"{self.url_path}{target.name}", mime_type="image/svg+xml")]

    def _save(self, img: Image.Image, target: Path, pil_format: str) -> bool:
        frame = img
        if pil_format == "JPEG" and img.mode not in ("RGB", "L"):
            frame = img.convert("RGB")
        options = {}
        if getattr(img, "is_animated", False) and pil_format in ("GIF", "WEBP"):
            options["save_all"] = True
        try:
            frame.save(target, format=pil_format, optimize=True, **options)
        except (KeyError, OSError) as exc:
            # KeyError: Pillow has no encoder registered for this format.
            target.unlink(missing_ok=True)
            logger.debug("Cannot encode %s as %s: %s", target.name, pil_format, exc)
            return False
        return True

    def _markup(self, attrs: dict[str, str | None], variants: list[ImageVariant]) -> str:
        fallback = variants[-1]
        img_attrs = dict(attrs)
        img_attrs["src"] = fallback.url
        if fallback.width is not None:
            img_attrs.setdefault("width", str(fallback.width))
        if fallback.height is not None:
            img_attrs.setdefault("height", str(fallback.height))
        for name, value in self.attributes.items():
            img_attrs.setdefault(name, value)
        img_tag = f"<img {render_attributes(img_attrs)}>"
        if len(variants) == 1:
            return img_tag
        sources = "".join(
            f'<source type="{v.mime_type}" srcset="{v.url}">' for v in variants[:-1]
        )
        return f"<picture>{sources}{img_tag}</picture>"
