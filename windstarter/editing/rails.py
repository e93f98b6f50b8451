"""Patch builders for the Rails files Windstarter edits.

These mirror the Rails generator actions (``environment``, ``route``,
``gsub_file``, ``insert_into_file``) as :class:`Patch` descriptions, so the
steps stay declarative.
"""

from __future__ import annotations

import re

from .patcher import Patch, PatchAction

APPLICATION_RB = "config/application.rb"
ROUTES_RB = "config/routes.rb"

_APPLICATION_ANCHOR = "class Application < Rails::Application\n"
_ENVIRONMENT_ANCHOR = "Rails.application.configure do\n"
_ROUTES_ANCHOR = "Rails.application.routes.draw do\n"


def environment(line: str, env: str | None = None) -> Patch:
    """Add a configuration line to the application or one environment.

    Without *env* the line goes into ``config/application.rb`` inside the
    application class; with *env* it goes into
    ``config/environments/<env>.rb``.
    """
    if env is None:
        path, anchor = APPLICATION_RB, _APPLICATION_ANCHOR
    else:
        path, anchor = f"config/environments/{env}.rb", _ENVIRONMENT_ANCHOR
    return Patch(
        path=path,
        action=PatchAction.INSERT_AFTER,
        pattern=anchor,
        content=f"    {line}\n\n" if env is None else f"  {line}\n",
        guard=_line_guard(line),
        description=f"environment {line}",
    )


def route(line: str) -> Patch:
    """Add a route right after ``Rails.application.routes.draw do``."""
    return Patch(
        path=ROUTES_RB,
        action=PatchAction.INSERT_AFTER,
        pattern=_ROUTES_ANCHOR,
        content=f"  {line}\n",
        guard=_line_guard(line),
        description=f"route {line}",
    )


def gsub_file(path: str, pattern: str, replacement: str) -> Patch:
    return Patch(
        path=path,
        action=PatchAction.REPLACE,
        pattern=pattern,
        content=replacement,
        description=f"gsub {path}",
    )


def insert_into_file(
    path: str,
    content: str,
    *,
    after: str | None = None,
    before: str | None = None,
    guard: str | None = None,
) -> Patch:
    """Insert *content* after or before a literal anchor in *path*."""
    if (after is None) == (before is None):
        raise ValueError("insert_into_file needs exactly one of after= or before=")
    return Patch(
        path=path,
        action=PatchAction.INSERT_AFTER if after is not None else PatchAction.INSERT_BEFORE,
        pattern=after if after is not None else before,
        content=content,
        guard=guard,
        description=f"insert {path}",
    )


def parse_rails_version(output: str) -> tuple[int, ...] | None:
    """Parse ``rails --version`` output such as ``Rails 7.1.3.2``.

    Pre-release tags (``7.0.0.alpha``) are dropped; only the numeric
    components are kept.
    """
    match = re.search(r"Rails\s+(\d+(?:\.\d+)*)", output)
    if not match:
        return None
    return tuple(int(part) for part in match.group(1).split("."))


def version_at_least(version: tuple[int, ...] | None, minimum: tuple[int, ...]) -> bool:
    if version is None:
        return False
    padded, padded_min = _pad(version, minimum)
    return padded >= padded_min


def version_greater_than(version: tuple[int, ...] | None, floor: tuple[int, ...]) -> bool:
    if version is None:
        return False
    padded, padded_floor = _pad(version, floor)
    return padded > padded_floor


def _pad(a: tuple[int, ...], b: tuple[int, ...]) -> tuple[tuple[int, ...], tuple[int, ...]]:
    width = max(len(a), len(b))
    return a + (0,) * (width - len(a)), b + (0,) * (width - len(b))


def _line_guard(line: str) -> str:
    return rf"^\s*{re.escape(line)}\s*$"
