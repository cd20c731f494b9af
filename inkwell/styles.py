"""SCSS compilation for Inkwell.

The site stylesheet is compiled from one fixed SCSS source into one fixed CSS
file in the output directory. Compilation is registered as a ``before_build``
hook so the stylesheet is in place before any page is rendered.

A missing source is a skip and compiler or write failures are reported as a
failed outcome. Neither stops the build.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import sass

from .config import SiteConfig
from .hooks import HookOutcome, OutcomeStatus

HOOK_NAME = "scss"

Compiler = Callable[[Path], str]


def compile_scss(source: Path) -> str:
    """Compile an SCSS file to compressed CSS with libsass."""
    return sass.compile(filename=str(source), output_style="compressed")


def compile_stylesheet(
    source: Path,
    output: Path,
    compiler: Compiler | None = None,
) -> HookOutcome:
    """Compile ``source`` and write the result to ``output``.

    The CSS is compiled in full before the output file is opened, so a
    compiler error leaves any earlier output untouched.

    Args:
        source: SCSS source file.
        output: Destination CSS file.
        compiler: Callable turning a source path into CSS text.

    Returns:
        HookOutcome: skipped when the source is missing, failed on any
        compiler or filesystem error, success otherwise.
    """
    if not source.exists():
        return HookOutcome(
            HOOK_NAME,
            OutcomeStatus.SKIPPED,
            f"[SCSS] Input file not found: {source}. Skipping SCSS compilation.",
        )

    compile_fn = compiler or compile_scss
    try:
        css = compile_fn(source)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(css, encoding="utf-8")
    except Exception as exc:
        return HookOutcome(
            HOOK_NAME,
            OutcomeStatus.FAILED,
            f"[SCSS] Error compiling {source}: {exc}",
            exc,
        )
    return HookOutcome(
        HOOK_NAME,
        OutcomeStatus.SUCCESS,
        f"[SCSS] Compiled {source} to {output}",
    )


def scss_hook(
    config: SiteConfig,
    output_dir: Path,
    compiler: Compiler | None = None,
) -> Callable[[], HookOutcome]:
    """Bind the configured stylesheet pair into a ``before_build`` callback.

    Args:
        config: Site configuration providing the stylesheet pair.
        output_dir: Directory the current build writes into.
        compiler: Optional compiler override.
    """
    pair = config.stylesheet
    source = config.project_root / pair.source
    output = output_dir / pair.output

    def run() -> HookOutcome:
        return compile_stylesheet(source, output, compiler)

    run.__name__ = HOOK_NAME
    return run
