"""Site building functionality for Inkwell.

This module runs one build through its lifecycle phases, in order:

1. Prepare the output directory, carrying over the last compiled stylesheet.
2. Emit ``before_build`` (compiles the SCSS stylesheet).
3. Discover content and run the preprocessors for the current run mode.
4. Render pages, post-process the HTML, write ``index.html`` files.
5. Copy passthrough files, write the feed, emit ``after_build``.

Key functions:
- build_site: Main function to build the entire site.
- create_event_registry: Registry with the default lifecycle hooks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from jinja2 import TemplateError, TemplateSyntaxError

from .assets import AssetPipeline
from .config import RunMode, SiteConfig, load_config, load_data
from .content import ContentProcessor, Page
from .feeds import feed_navigation, write_feed
from .hooks import AFTER_BUILD, BEFORE_BUILD, EventRegistry, HookOutcome
from .images import ImageTransformError
from .preprocessors import PreprocessorRegistry
from .styles import scss_hook
from .templates import TemplateEngine
from .utils import ensure_clean_dir

logger = logging.getLogger(__name__)


class BuildError(Exception):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the source file that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        pages: Pages written by this build.
        output_dir: Directory where the site was built.
        data: Global site data dictionary.
        run_mode: Run mode the build ran in.
        outcomes: Outcomes of the lifecycle hooks, in the order they ran.
        excluded: Sources the preprocessors left out of this build.
        feed_path: Path of the written feed, if any.
    """

    pages: list[Page]
    output_dir: Path
    data: dict[str, Any]
    run_mode: RunMode
    outcomes: list[HookOutcome] = field(default_factory=list)
    excluded: list[Path] = field(default_factory=list)
    feed_path: Path | None = None


def create_event_registry(config: SiteConfig, output_dir: Path) -> EventRegistry:
    """Create the lifecycle registry with the default hooks."""
    events = EventRegistry()
    events.on(BEFORE_BUILD, scss_hook(config, output_dir))
    return events


def build_site(
    project_root: Path,
    run_mode: RunMode,
    clean_output: bool = True,
    output_dir_override: Path | None = None,
    events: EventRegistry | None = None,
    preprocessors: PreprocessorRegistry | None = None,
) -> BuildResult:
    """Build the entire static site.

    Args:
        project_root: Root directory of the project.
        run_mode: Run mode of this build; drafts are dropped in ``build``.
        clean_output: Whether to wipe the output directory before building.
        output_dir_override: Write the build here instead of the configured output dir.
        events: Lifecycle registry; the default hooks are used when omitted.
        preprocessors: Preprocessor registry; the defaults are used when omitted.

    Returns:
        BuildResult describing the pages written and hook outcomes.

    Raises:
        FileNotFoundError: If the content directory is missing.
        BuildError: If a page fails to render.
    """
    config = load_config(project_root)
    output_dir = output_dir_override or config.output_dir
    input_dir = config.input_dir
    if not input_dir.exists():
        raise FileNotFoundError(f"Expected content directory at {input_dir}")
    if clean_output:
        previous_css = _read_previous_stylesheet(config, output_dir)
        ensure_clean_dir(output_dir)
        _restore_stylesheet(config, output_dir, previous_css)
    else:
        output_dir.mkdir(parents=True, exist_ok=True)

    logger.info("Building %s (run mode: %s)", project_root, run_mode.value)
    if events is None:
        events = create_event_registry(config, output_dir)
    outcomes = events.emit(BEFORE_BUILD)

    loaded = ContentProcessor(input_dir, preprocessors).load(run_mode)
    for path in loaded.excluded:
        logger.info("Skipping %s", path.relative_to(input_dir))

    data = load_data(config.data_dir)
    feed_config = config.feed
    engine = TemplateEngine(
        config.includes_dir,
        config.layouts_dir,
        data,
        metadata=dict(feed_config.get("metadata") or {}),
    )
    engine.update_collections(loaded.pages, feed_navigation(feed_config))
    assets = AssetPipeline(config, output_dir)
    for page in loaded.pages:
        try:
            rendered = engine.render_page(page)
            rendered = assets.transform_html(rendered, page)
        except TemplateSyntaxError as exc:
            raise BuildError(
                page.path,
                f"Template syntax error on line {exc.lineno}: {exc.message}",
                exc,
            ) from exc
        except (TemplateError, ImageTransformError) as exc:
            raise BuildError(page.path, _format_error_message(exc), exc) from exc
        _write_page(output_dir, page, rendered)

    assets.copy_passthrough()
    feed_path = write_feed(output_dir, engine.collections, feed_config)
    outcomes += events.emit(AFTER_BUILD)
    logger.info("Wrote %d pages to %s", len(loaded.pages), output_dir)
    return BuildResult(
        pages=loaded.pages,
        output_dir=output_dir,
        data=data,
        run_mode=run_mode,
        outcomes=outcomes,
        excluded=loaded.excluded,
        feed_path=feed_path,
    )


def _read_previous_stylesheet(config: SiteConfig, output_dir: Path) -> bytes | None:
    """Return the last compiled stylesheet, if one exists.

    The build output is checked first, then the configured output directory,
    which is where a staging build finds the stylesheet being served.
    """
    rel = config.stylesheet.output
    for candidate in (output_dir / rel, config.output_dir / rel):
        if candidate.is_file():
            return candidate.read_bytes()
    return None


def _restore_stylesheet(
    config: SiteConfig, output_dir: Path, css: bytes | None
) -> None:
    if css is None:
        return
    target = output_dir / config.stylesheet.output
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(css)


def _format_error_message(exc: Exception) -> str:
    error_type = type(exc).__name__
    if error_type == "UndefinedError":
        return f"Undefined variable: {exc}"
    return f"{error_type}: {exc}"


def output_path_for(output_dir: Path, url: str) -> Path:
    """Map a page URL to the file it is written to.

    URLs ending in ``/`` get an ``index.html``; URLs with a file extension
    (``/404.html``, ``/feed/pretty.xsl``) are written as-is.
    """
    rel = url.strip("/")
    if not rel:
        return output_dir / "index.html"
    if url.endswith("/") or "." not in Path(rel).name:
        return output_dir / rel / "index.html"
    return output_dir / rel


def _write_page(output_dir: Path, page: Page, rendered: str) -> None:
    target = output_path_for(output_dir, page.url)
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w", encoding="utf-8") as f:
        f.write(rendered)
