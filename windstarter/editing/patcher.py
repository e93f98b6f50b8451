"""Declarative text patches for files inside the generated project.

Every edit Windstarter makes to an existing file (Gemfile, routes, config
files, migrations) is described as a :class:`Patch` and applied by
:func:`apply_patch`.  Each patch is checked for idempotence before anything
is written, so applying the same patch twice leaves the file unchanged.

A patch whose anchor or pattern does not occur in the file is a silent
no-op: the result is reported as skipped and no error is raised.
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from windstarter.utils import WindstarterError


class PatchError(WindstarterError):
    """Raised when a patch target is not text or a patch pattern is invalid."""


class PatchAction(str, Enum):
    INSERT_AFTER = "insert_after"
    INSERT_BEFORE = "insert_before"
    REPLACE = "replace"
    COMMENT = "comment"
    UNCOMMENT = "uncomment"
    APPEND = "append"


class Patch(BaseModel):
    """One text edit.

    Attributes:
        path: File path relative to the project root.
        action: What to do at the match.
        pattern: Literal anchor for ``insert_after``/``insert_before``;
            regular expression for ``replace``, ``comment`` and
            ``uncomment``.  Unused by ``append``.
        content: Text to insert, or the replacement for ``replace``.
        guard: Optional regex; when it already matches the file the patch is
            considered applied.  Insertions without a guard use the literal
            *content* as their own guard.
    """

    path: str
    action: PatchAction
    pattern: str = ""
    content: str = ""
    guard: str | None = None
    description: str = Field(default="")

    def label(self) -> str:
        return self.description or f"{self.action.value} {self.path}"


class PatchResult(BaseModel):
    """Outcome of :func:`apply_patch`."""

    patch: Patch
    applied: bool
    reason: str = ""

    @property
    def skipped(self) -> bool:
        return not self.applied


_COMMENT_PREFIX = "# "


def apply_patch(root: Path, patch: Patch) -> PatchResult:
    """Apply *patch* to the file it names under *root*.

    Raises:
        FileNotFoundError: If the target file does not exist.
        PatchError: If the target is not valid UTF-8 or a pattern is not a
            valid regular expression.
    """
    target = root / patch.path
    try:
        text = target.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise PatchError(f"{patch.path} is not UTF-8 text: {exc}") from exc

    try:
        return _apply(target, text, patch)
    except re.error as exc:
        raise PatchError(f"Invalid pattern in patch '{patch.label()}': {exc}") from exc


def _apply(target: Path, text: str, patch: Patch) -> PatchResult:
    if patch.guard is not None and re.search(patch.guard, text, re.MULTILINE):
        return PatchResult(patch=patch, applied=False, reason="already-applied")

    updated, reason = _transform(text, patch)
    if updated is None:
        return PatchResult(patch=patch, applied=False, reason=reason)

    if updated == text:
        return PatchResult(patch=patch, applied=False, reason="unchanged")

    target.write_text(updated, encoding="utf-8")
    return PatchResult(patch=patch, applied=True)


def apply_patches(root: Path, patches: list[Patch]) -> list[PatchResult]:
    """Apply *patches* in order and return one result per patch."""
    return [apply_patch(root, patch) for patch in patches]


def _transform(text: str, patch: Patch) -> tuple[str | None, str]:
    """Return ``(new_text, "")`` or ``(None, reason)`` when nothing applies."""
    action = patch.action

    if action in (PatchAction.INSERT_AFTER, PatchAction.INSERT_BEFORE, PatchAction.APPEND):
        if patch.guard is None and patch.content and patch.content in text:
            return None, "already-applied"

    if action is PatchAction.APPEND:
        # Appended content always starts on a line of its own.
        separator = "\n" if text and not text.endswith("\n") else ""
        return text + separator + patch.content, ""

    if action is PatchAction.INSERT_AFTER:
        index = text.find(patch.pattern)
        if index < 0:
            return None, "anchor-not-found"
        cut = index + len(patch.pattern)
        return text[:cut] + patch.content + text[cut:], ""

    if action is PatchAction.INSERT_BEFORE:
        index = text.find(patch.pattern)
        if index < 0:
            return None, "anchor-not-found"
        return text[:index] + patch.content + text[index:], ""

    if action is PatchAction.REPLACE:
        regex = re.compile(patch.pattern, re.MULTILINE)
        if not regex.search(text):
            return None, "anchor-not-found"
        return regex.sub(lambda _match: patch.content, text), ""

    if action is PatchAction.COMMENT:
        return _edit_lines(text, patch.pattern, _comment_line)

    if action is PatchAction.UNCOMMENT:
        return _edit_lines(text, patch.pattern, _uncomment_line)

    raise ValueError(f"Unsupported patch action: {action}")


def _edit_lines(text: str, pattern: str, edit) -> tuple[str | None, str]:
    regex = re.compile(pattern)
    lines = text.splitlines(keepends=True)
    matched = False
    for i, line in enumerate(lines):
        if regex.search(line):
            matched = True
            lines[i] = edit(line)
    if not matched:
        return None, "anchor-not-found"
    return "".join(lines), ""


def _comment_line(line: str) -> str:
    stripped = line.lstrip()
    if stripped.startswith("#"):
        return line
    indent = line[: len(line) - len(stripped)]
    return f"{indent}{_COMMENT_PREFIX}{stripped}"


def _uncomment_line(line: str) -> str:
    return re.sub(r"^(\s*)#\s?", r"\1", line, count=1)
