"""Asset handling for Inkwell.

Two jobs happen here: copying passthrough files verbatim into the output
directory, and running the HTML post-processing transforms (image transform,
CSS/JS bundles) over every rendered page.

Key components:
- copy_passthrough: Copies configured files and directories.
- HtmlTransform: Protocol for page post-processing steps.
- AssetPipeline: Applies the configured transforms in order.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Protocol

from .bundles import BundleTransform
from .config import SiteConfig
from .content import Page
from .images import ImageTransform

logger = logging.getLogger(__name__)


class HtmlTransform(Protocol):
    def transform(self, html: str, page: Page) -> str: ...


def copy_passthrough(
    project_root: Path, output_dir: Path, mapping: dict[str, str]
) -> list[Path]:
    """Copy passthrough sources into the output directory.

    Args:
        project_root: Root the mapping keys are relative to.
        output_dir: Build output directory.
        mapping: Source path to output-relative destination. A directory is
            copied recursively into the destination; a file is copied to the
            destination, or into it when the destination ends with ``/``.

    Returns:
        Output paths of the copied files.
    """
    copied: list[Path] = []
    for source_name, dest_name in mapping.items():
        source = project_root / source_name
        dest = output_dir / str(dest_name).lstrip("/")
        if not source.exists():
            logger.debug("Passthrough source %s does not exist; skipping", source)
            continue
        if source.is_dir():
            for item in sorted(source.rglob("*")):
                if item.is_dir():
                    continue
                target = dest / item.relative_to(source)
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(item, target)
                copied.append(target)
            continue
        if str(dest_name).endswith("/") or dest == output_dir:
            dest = dest / source.name
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, dest)
        copied.append(dest)
    return copied


class AssetPipeline:
    """Post-processes rendered pages and copies passthrough files.

    Attributes:
        config: Site configuration.
        output_dir: Directory the current build writes into.
        transforms: HTML transforms applied to every page, in order.
    """

    def __init__(
        self,
        config: SiteConfig,
        output_dir: Path,
        transforms: list[HtmlTransform] | None = None,
    ):
        self.config = config
        self.output_dir = output_dir
        self.transforms = (
            transforms if transforms is not None else self._default_transforms()
        )

    def _default_transforms(self) -> list[HtmlTransform]:
        transforms: list[HtmlTransform] = []
        images = self.config.images
        if images.get("enabled", True):
            transforms.append(
                ImageTransform(
                    self.config.input_dir,
                    self.output_dir,
                    formats=images.get("formats"),
                    fail_on_error=bool(images.get("fail_on_error", False)),
                    attributes=images.get("attributes"),
                )
            )
        bundles = self.config.bundles
        if bundles.get("enabled", True):
            transforms.append(
                BundleTransform(self.output_dir, str(bundles.get("directory", "dist")))
            )
        return transforms

    def transform_html(self, html: str, page: Page) -> str:
        for transform in self.transforms:
            html = transform.transform(html, page)
        return html

    def copy_passthrough(self) -> list[Path]:
        copied = copy_passthrough(
            self.config.project_root, self.output_dir, self.config.passthrough
        )
        logger.debug("Copied %d passthrough files", len(copied))
        return copied
