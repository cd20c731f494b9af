"""Configuration loading for Inkwell.

This module owns the two pieces of process-wide state a build needs: the site
configuration (read from ``inkwell.yaml``) and the run mode. Both are resolved
once at process start and then passed explicitly into the build, so nothing
further down reads environment variables or global state.

Key components:
- RunMode: Enumeration of build/serve/watch modes.
- SiteConfig: Typed view over the merged configuration mapping.
- load_config: Loads ``inkwell.yaml`` and merges it over the defaults.
- load_data: Loads global template data from the data directory.
"""

from __future__ import annotations

import copy
import json
import os
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

CONFIG_FILENAME = "inkwell.yaml"
RUN_MODE_ENV = "INKWELL_RUN_MODE"


class ConfigError(ValueError):
    """Raised when the configuration or run mode is invalid."""


class RunMode(str, Enum):
    """How the current process is running the build.

    ``BUILD`` produces publishable output. ``SERVE`` and ``WATCH`` are local
    preview sessions.
    """

    BUILD = "build"
    SERVE = "serve"
    WATCH = "watch"

    @classmethod
    def parse(cls, value: str) -> RunMode:
        """Parse a run mode name.

        Raises:
            ConfigError: If ``value`` is not a known mode.
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            choices = ", ".join(m.value for m in cls)
            raise ConfigError(
                f"Unknown run mode {value!r} (expected one of: {choices})"
            ) from None

    @classmethod
    def resolve(
        cls, default: RunMode, environ: Mapping[str, str] | None = None
    ) -> RunMode:
        """Resolve the run mode for this process.

        The ``INKWELL_RUN_MODE`` environment variable overrides ``default``
        when set to a non-empty value.

        Args:
            default: Mode implied by the CLI command being run.
            environ: Environment mapping, ``os.environ`` when omitted.

        Returns:
            The resolved run mode.
        """
        env = os.environ if environ is None else environ
        raw = env.get(RUN_MODE_ENV, "")
        if not raw.strip():
            return default
        return cls.parse(raw)


DEFAULT_CONFIG: dict[str, Any] = {
    "dirs": {
        "input": "content",
        "includes": "_includes",
        "layouts": "_includes/layouts",
        "data": "_data",
        "output": "_site",
    },
    "port": 8080,
    "passthrough": {
        "public/": "/",
        "content/feed/pretty-atom-feed.xsl": "feed/",
    },
    "styles": {
        "source": "css/_custom.scss",
        "output": "css/bootstrap.css",
    },
    "images": {
        "enabled": True,
        "formats": ["avif", "webp", "auto"],
        "fail_on_error": False,
        "attributes": {"loading": "lazy", "decoding": "async"},
    },
    "bundles": {
        "enabled": True,
        "directory": "dist",
    },
    "feed": {
        "type": "atom",
        "output_path": "/feed/feed.xml",
        "stylesheet": "pretty-atom-feed.xsl",
        "collection": {"name": "posts", "limit": 10},
        "navigation": {"key": "Feed", "order": 4},
        "metadata": {
            "language": "en",
            "title": "Blog Title",
            "subtitle": "This is a longer description about your blog.",
            "base": "https://example.com/",
            "author": {"name": "Your Name"},
        },
    },
    "watch_targets": [
        "css/**/*.css",
        "css/**/*.scss",
        "content/**/*.{svg,webp,png,jpg,jpeg,gif}",
    ],
}


@dataclass(frozen=True)
class StylesheetConfig:
    """The fixed SCSS source / compiled CSS output pair.

    Attributes:
        source: Style source, relative to the project root.
        output: Compiled stylesheet, relative to the output directory.
    """

    source: str
    output: str


@dataclass
class SiteConfig:
    """Resolved site configuration.

    Attributes:
        project_root: Root directory of the project.
        raw: Merged configuration mapping.
    """

    project_root: Path
    raw: dict[str, Any]

    def _dir(self, key: str) -> str:
        return str(self.raw["dirs"][key]).strip("/")

    @property
    def input_dir(self) -> Path:
        return self.project_root / self._dir("input")

    @property
    def includes_dir(self) -> Path:
        return self.input_dir / self._dir("includes")

    @property
    def layouts_dir(self) -> Path:
        return self.input_dir / self._dir("layouts")

    @property
    def data_dir(self) -> Path:
        return self.input_dir / self._dir("data")

    @property
    def output_dir(self) -> Path:
        return self.project_root / self._dir("output")

    @property
    def port(self) -> int:
        return int(self.raw.get("port", 8080))

    @property
    def stylesheet(self) -> StylesheetConfig:
        styles = self.raw.get("styles") or {}
        return StylesheetConfig(
            source=str(styles.get("source", "css/_custom.scss")),
            output=str(styles.get("output", "css/bootstrap.css")).lstrip("/"),
        )

    @property
    def passthrough(self) -> dict[str, str]:
        return dict(self.raw.get("passthrough") or {})

    @property
    def images(self) -> dict[str, Any]:
        return dict(self.raw.get("images") or {})

    @property
    def bundles(self) -> dict[str, Any]:
        return dict(self.raw.get("bundles") or {})

    @property
    def feed(self) -> dict[str, Any]:
        return dict(self.raw.get("feed") or {})

    @property
    def watch_targets(self) -> list[str]:
        return list(self.raw.get("watch_targets") or [])


def _merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(project_root: Path) -> SiteConfig:
    """Load site configuration from inkwell.yaml.

    Args:
        project_root: Root directory of the project.

    Returns:
        SiteConfig with the file merged over ``DEFAULT_CONFIG``.

    Raises:
        ConfigError: If the file exists but is not a YAML mapping.
    """
    config_path = project_root / CONFIG_FILENAME
    raw = copy.deepcopy(DEFAULT_CONFIG)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            try:
                loaded = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ConfigError(f"{config_path}: {exc}") from exc
        if not isinstance(loaded, dict):
            raise ConfigError(f"{config_path}: expected a mapping at top level")
        raw = _merge(raw, loaded)
    return SiteConfig(project_root=project_root, raw=raw)


def load_data(data_dir: Path) -> dict[str, Any]:
    """Load global template data from YAML and JSON files.

    Each file is exposed under its stem, so ``_data/site.yaml`` becomes
    ``site`` in templates.

    Args:
        data_dir: Directory containing data files.

    Returns:
        Dictionary mapping file stems to their parsed contents.

    Raises:
        ConfigError: If a data file cannot be parsed.
    """
    data: dict[str, Any] = {}
    if not data_dir.exists():
        return data
    for path in sorted(data_dir.iterdir()):
        try:
            if path.suffix in (".yaml", ".yml"):
                with open(path, encoding="utf-8") as f:
                    data[path.stem] = yaml.safe_load(f)
            elif path.suffix == ".json":
                with open(path, encoding="utf-8") as f:
                    data[path.stem] = json.load(f)
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise ConfigError(f"{path}: {exc}") from exc
    return data
