"""Gemfile editing.

Declares the gems a Windstarter application depends on and writes them into
the project's ``Gemfile`` without ever duplicating a declaration.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from .patcher import Patch, PatchAction, PatchResult, apply_patch

GEMFILE = "Gemfile"


class GemDeclaration(BaseModel):
    """A single ``gem`` line.

    ``options`` values are rendered Ruby-style: strings are single-quoted,
    booleans become ``true``/``false`` and symbols can be passed as
    ``":name"``.
    """

    name: str
    requirements: list[str] = Field(default_factory=list)
    options: dict[str, Any] = Field(default_factory=dict)

    def render(self) -> str:
        parts = [_quote(self.name)]
        parts.extend(_quote(req) for req in self.requirements)
        parts.extend(f"{key}: {_ruby_value(value)}" for key, value in self.options.items())
        return "gem " + ", ".join(parts)


WINDSTARTER_GEMS: list[GemDeclaration] = [
    GemDeclaration(name="devise", requirements=["~> 4.8", ">= 4.8.0"]),
    GemDeclaration(name="friendly_id", requirements=["~> 5.4"]),
    GemDeclaration(name="jsbundling-rails"),
    GemDeclaration(name="name_of_person", requirements=["~> 1.1"]),
    GemDeclaration(name="pundit", requirements=["~> 2.1"]),
    GemDeclaration(name="sidekiq", requirements=["~> 6.2"]),
    GemDeclaration(name="sitemap_generator", requirements=["~> 6.1"]),
    GemDeclaration(name="whenever", options={"require": False}),
    GemDeclaration(
        name="responders",
        options={"github": "heartcombo/responders", "branch": "main"},
    ),
    GemDeclaration(name="tailwindcss-rails"),
]

# Only added when the Gemfile does not already declare it; `rails new
# --css` may have put it there.
CSSBUNDLING_GEM = GemDeclaration(name="cssbundling-rails")

MANIFEST_PATCHES: list[Patch] = [
    Patch(
        path=GEMFILE,
        action=PatchAction.INSERT_AFTER,
        pattern="group :development do\n",
        content="\tgem 'annotate'\n",
        guard=r"^\s*gem ['\"]annotate['\"]",
        description="add annotate to the development group",
    ),
    Patch(
        path=GEMFILE,
        action=PatchAction.UNCOMMENT,
        pattern=r'gem "redis"',
        description="enable redis",
    ),
    Patch(
        path=GEMFILE,
        action=PatchAction.COMMENT,
        pattern=r'gem "importmap-rails"',
        description="disable importmap-rails",
    ),
]


def gem_pattern(name: str) -> str:
    """Regex matching an active (uncommented) declaration of *name*."""
    return rf"^\s*gem ['\"]{re.escape(name)}['\"]"


def has_gem(text: str, name: str) -> bool:
    return re.search(gem_pattern(name), text, re.MULTILINE) is not None


def ensure_gem(root: Path, declaration: GemDeclaration) -> PatchResult:
    """Append *declaration* to the Gemfile unless the gem is already declared."""
    patch = Patch(
        path=GEMFILE,
        action=PatchAction.APPEND,
        content=f"{declaration.render()}\n",
        guard=gem_pattern(declaration.name),
        description=f"gem {declaration.name}",
    )
    return apply_patch(root, patch)


def add_gems(root: Path) -> list[PatchResult]:
    """Apply the full Windstarter Gemfile edit.  Safe to run repeatedly."""
    results = [ensure_gem(root, CSSBUNDLING_GEM)]
    results.extend(ensure_gem(root, gem) for gem in WINDSTARTER_GEMS)
    results.extend(apply_patch(root, patch) for patch in MANIFEST_PATCHES)
    return results


def declared_gems(text: str) -> list[str]:
    """Names of all active gem declarations, in file order."""
    return re.findall(r"^\s*gem ['\"]([^'\"]+)['\"]", text, re.MULTILINE)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _quote(value: str) -> str:
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def _ruby_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str) and value.startswith(":"):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return _quote(str(value))
