"""Content preprocessors for Inkwell.

Preprocessors run once per content item, after its frontmatter has been read
and before anything is rendered. Each one sees the item's metadata, its raw
body, and the run mode of the current build, and answers with one of three
values:

- ``False``: exclude the item from this build.
- ``None``: no change; the item continues unchanged.
- a ``str``: the item continues with the returned text as its body.

``None`` is not ``True``: a preprocessor with no opinion never stops a later
preprocessor from excluding the item.

Key components:
- drafts: Excludes ``draft: true`` items from publishable builds.
- PreprocessorRegistry: Ordered set of named preprocessors.
- default_preprocessors: Registry with the built-in preprocessors.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

from .config import RunMode

logger = logging.getLogger(__name__)

PreprocessorResult = Union[bool, str, None]
PreprocessorCallback = Callable[[Mapping[str, Any], str, RunMode], PreprocessorResult]


def drafts(data: Mapping[str, Any], content: str, run_mode: RunMode) -> bool | None:
    """Exclude draft items from full builds.

    Drafts stay visible in serve/watch sessions so authors can preview them.

    Args:
        data: Metadata mapping of the content item.
        content: Raw body (unused).
        run_mode: Run mode of the current build.

    Returns:
        ``False`` to exclude, ``None`` to leave the item alone.
    """
    if data.get("draft") and run_mode is RunMode.BUILD:
        return False
    return None


@dataclass(frozen=True)
class PreprocessResult:
    """Outcome of running every matching preprocessor on one item.

    Attributes:
        included: Whether the item takes part in the build.
        content: Body after any replacements.
        excluded_by: Name of the preprocessor that excluded the item.
    """

    included: bool
    content: str
    excluded_by: str | None = None


@dataclass(frozen=True)
class _Registration:
    name: str
    extensions: frozenset[str] | None
    callback: PreprocessorCallback

    def matches(self, path: Path) -> bool:
        if self.extensions is None:
            return True
        return path.suffix.lstrip(".").lower() in self.extensions


def _parse_extensions(extensions: str) -> frozenset[str] | None:
    if extensions.strip() == "*":
        return None
    parts = (p.strip().lstrip(".").lower() for p in extensions.split(","))
    return frozenset(p for p in parts if p)


class PreprocessorRegistry:
    """Ordered registry of named preprocessors."""

    def __init__(self) -> None:
        self._registrations: list[_Registration] = []

    def add(self, name: str, extensions: str, callback: PreprocessorCallback) -> None:
        """Register a preprocessor.

        Re-adding an existing name replaces it without changing its position.

        Args:
            name: Unique preprocessor name.
            extensions: ``"*"`` or a comma separated list such as ``"md,html"``.
            callback: Function called as ``callback(data, content, run_mode)``.
        """
        registration = _Registration(name, _parse_extensions(extensions), callback)
        for index, existing in enumerate(self._registrations):
            if existing.name == name:
                self._registrations[index] = registration
                return
        self._registrations.append(registration)

    def names(self) -> list[str]:
        return [r.name for r in self._registrations]

    def apply(
        self,
        path: Path,
        data: Mapping[str, Any],
        content: str,
        run_mode: RunMode,
    ) -> PreprocessResult:
        """Run the matching preprocessors over one content item.

        Args:
            path: Source path, used for extension matching.
            data: Metadata mapping of the item.
            content: Raw body of the item.
            run_mode: Run mode of the current build.

        Returns:
            PreprocessResult describing inclusion and the final body.
        """
        for registration in self._registrations:
            if not registration.matches(path):
                continue
            result = registration.callback(data, content, run_mode)
            if result is False:
                logger.debug("Preprocessor %s excluded %s", registration.name, path)
                return PreprocessResult(False, content, registration.name)
            if isinstance(result, str):
                content = result
        return PreprocessResult(True, content)


def default_preprocessors() -> PreprocessorRegistry:
    """Create a registry with the built-in preprocessors."""
    registry = PreprocessorRegistry()
    registry.add("drafts", "*", drafts)
    return registry
