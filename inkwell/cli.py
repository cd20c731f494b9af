"""Command-line interface for Inkwell.

This module defines the CLI commands using Click framework.

Commands:
- build: Build the site into the output directory.
- serve: Run the development server with live reload.
- post: Create a new post interactively.

The run mode is resolved once per command: each command implies a default
(``build`` or ``serve``) which the ``INKWELL_RUN_MODE`` environment variable
may override. The resolved mode is passed explicitly into the build.
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path

import click
import questionary
import yaml

from . import __version__
from .config import ConfigError, RunMode, load_config
from .utils import slugify

_LEVEL_COLORS = {
    logging.WARNING: "yellow",
    logging.ERROR: "red",
    logging.CRITICAL: "red",
}


class ClickEchoHandler(logging.Handler):
    """Logging handler that writes records through ``click.echo``."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            color = _LEVEL_COLORS.get(record.levelno)
            click.echo(
                click.style(message, fg=color) if color else message,
                err=record.levelno >= logging.WARNING,
            )
        except Exception:
            self.handleError(record)


def configure_logging(verbose: bool = False) -> None:
    """Route the ``inkwell`` loggers to the terminal."""
    logger = logging.getLogger("inkwell")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    for handler in list(logger.handlers):
        if isinstance(handler, ClickEchoHandler):
            logger.removeHandler(handler)
    handler = ClickEchoHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)


def _resolve_run_mode(default: RunMode) -> RunMode:
    try:
        return RunMode.resolve(default)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from None


@click.group()
@click.version_option(version=__version__, prog_name="inkwell")
@click.option("-v", "--verbose", is_flag=True, help="Show debug output")
def cli(verbose: bool):
    """Inkwell blog builder."""
    configure_logging(verbose)


@cli.command()
@click.option(
    "--clean/--no-clean",
    default=True,
    help="Empty the output directory before building",
)
def build(clean: bool):
    """Build the site into the output directory."""
    project_root = Path.cwd()
    from .build import BuildError, build_site

    run_mode = _resolve_run_mode(RunMode.BUILD)
    try:
        result = build_site(project_root, run_mode, clean_output=clean)
    except BuildError as exc:
        try:
            rel_path = exc.source_path.relative_to(project_root)
        except ValueError:
            rel_path = exc.source_path
        click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
        click.echo(click.style(f"  File: {rel_path}", fg="yellow"), err=True)
        click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)
        raise SystemExit(1) from None
    except (ConfigError, FileNotFoundError) as exc:
        raise click.ClickException(str(exc)) from None
    click.echo(f"Built {len(result.pages)} pages into {result.output_dir}")


@cli.command()
@click.option(
    "--port",
    type=int,
    required=False,
    help="Port to run the dev server (overrides inkwell.yaml)",
)
@click.option(
    "--ws-port",
    type=int,
    required=False,
    help="Port for the live reload websocket server (defaults to port + 1)",
)
def serve(port: int | None, ws_port: int | None):
    """Run dev server with live reload."""
    project_root = Path.cwd()
    from .server import DevServer

    run_mode = _resolve_run_mode(RunMode.SERVE)
    server = DevServer(project_root, run_mode, http_port=port, ws_port=ws_port)
    server.start()


@cli.command()
def post():
    """Create a new post interactively."""
    project_root = Path.cwd()
    input_dir = load_config(project_root).input_dir
    if not input_dir.exists():
        raise click.ClickException(
            f"No {input_dir.name}/ directory found. Run this command from an Inkwell project root."
        )

    folders = _get_content_folders(input_dir)
    folder = questionary.select(
        "Select folder:",
        choices=folders,
        default="blog" if "blog" in folders else None,
        style=_questionary_style(),
    ).ask()
    if folder is None:
        raise click.Abort()

    title = questionary.text(
        "Title:",
        validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
        style=_questionary_style(),
    ).ask()
    if title is None:
        raise click.Abort()
    title = title.strip()

    draft = questionary.confirm(
        "Mark as draft?",
        default=True,
        style=_questionary_style(),
    ).ask()
    if draft is None:
        raise click.Abort()

    target_dir = input_dir if folder == ". (root)" else input_dir / folder
    target_path = target_dir / f"{slugify(title) or 'untitled'}.md"
    if target_path.exists():
        raise click.ClickException(
            f"File already exists: {target_path.relative_to(project_root)}"
        )

    target_dir.mkdir(parents=True, exist_ok=True)
    target_path.write_text(_new_post(title, draft), encoding="utf-8")
    click.echo(f"Created {target_path.relative_to(project_root)}")


def _new_post(title: str, draft: bool, today: date | None = None) -> str:
    """Render the source of a new post with frontmatter."""
    frontmatter = {
        "title": title,
        "date": today or date.today(),
        "tags": ["posts"],
    }
    if draft:
        frontmatter["draft"] = True
    dumped = yaml.safe_dump(frontmatter, sort_keys=False, allow_unicode=True)
    return f"---\n{dumped}---\n\n"


def _get_content_folders(input_dir: Path) -> list[str]:
    """List content folders, skipping ``_``-prefixed ones, root option first."""
    folders = sorted(
        p.name for p in input_dir.iterdir() if p.is_dir() and not p.name.startswith("_")
    )
    folders.insert(0, ". (root)")
    return folders


def _questionary_style():
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def main():
    """Entry point for the CLI application."""
    cli()
