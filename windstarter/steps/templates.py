"""Template materialization.

Copies Windstarter's boilerplate files and directory trees into the
generated application, overwriting whatever the Rails generators left at
the same paths.  Files ending in ``.j2`` are rendered with Jinja2 and the
suffix is dropped; every other file is copied byte for byte.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Any

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateError,
    select_autoescape,
)
from rich.markup import escape

from windstarter.context import RunContext, StepResult
from windstarter.editing.rails import insert_into_file, route
from windstarter.source import SourcePaths, TemplateNotFoundError
from windstarter.utils import WindstarterError, console

TEMPLATE_SUFFIX = ".j2"


class TemplateRenderError(WindstarterError):
    """Raised when a ``.j2`` template cannot be parsed or rendered."""


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders Jinja2 templates found on the source lookup path.

    The loader searches the source roots in order, so a template in a
    cloned repository shadows the copy that ships with the package.
    """

    def __init__(self, sources: SourcePaths) -> None:
        self.sources = sources
        self.env = Environment(
            loader=FileSystemLoader([str(root) for root in sources]),
            autoescape=select_autoescape([]),
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )
        self.env.filters["pascal_case"] = _pascal_case_filter

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a template addressed relative to the source roots.

        Raises:
            TemplateRenderError: If the template has a syntax error or
                references an undefined variable.
        """
        # Jinja2 template names always use forward slashes.
        name = template_path.replace("\\", "/")
        try:
            return self.env.get_template(name).render(**context)
        except TemplateError as exc:
            raise TemplateRenderError(f"Could not render template '{name}': {exc}") from exc

    def render_string(self, template_string: str, context: dict[str, Any]) -> str:
        return self.env.from_string(template_string).render(**context)


# ---------------------------------------------------------------------------
# copy_file / directory
# ---------------------------------------------------------------------------


def template_context(ctx: RunContext) -> dict[str, Any]:
    return {
        "app_name": ctx.config.app_name,
        "app_const": _pascal_case_filter(ctx.config.app_name),
    }


def copy_file(
    ctx: RunContext,
    relative: str,
    *,
    force: bool = True,
    renderer: TemplateRenderer | None = None,
    sources: SourcePaths | None = None,
) -> Path | None:
    """Copy one source file into the project.

    Looks up ``relative`` (or ``relative + ".j2"``) on the source path.
    Returns the written path, or ``None`` when the destination exists and
    *force* is false.

    Raises:
        TemplateNotFoundError: If no source root has the file.
    """
    sources = sources or ctx.sources
    renderer = renderer or TemplateRenderer(sources)
    destination = ctx.project_root / relative

    if destination.exists() and not force:
        _say("identical" if destination.is_file() else "skip", relative, "blue")
        return None

    source = _find_source(sources, relative)
    destination.parent.mkdir(parents=True, exist_ok=True)
    existed = destination.exists()

    if source.name.endswith(TEMPLATE_SUFFIX):
        template_name = f"{relative}{TEMPLATE_SUFFIX}"
        content = renderer.render(template_name, template_context(ctx))
        destination.write_text(content, encoding="utf-8")
    else:
        shutil.copyfile(source, destination)
        shutil.copymode(source, destination)

    _say("force" if existed else "create", relative, "yellow" if existed else "green")
    return destination


def directory(
    ctx: RunContext,
    relative: str,
    *,
    force: bool = True,
) -> list[Path]:
    """Copy a whole source tree into the project, preserving layout.

    The tree comes from the first source root that has it; roots later on
    the path are not merged in.

    Raises:
        TemplateNotFoundError: If no source root has the directory.
    """
    root = next((r for r in ctx.sources if (r / relative).is_dir()), None)
    if root is None:
        searched = ", ".join(str(r) for r in ctx.sources) or "(none)"
        raise TemplateNotFoundError(
            f"Could not find directory '{relative}' in any source path: {searched}"
        )

    base = root / relative
    tree_sources = SourcePaths([root])
    renderer = TemplateRenderer(tree_sources)
    written: list[Path] = []

    for source in sorted(base.rglob("*")):
        if not source.is_file():
            continue
        rel = source.relative_to(root).as_posix()
        if rel.endswith(TEMPLATE_SUFFIX):
            rel = rel[: -len(TEMPLATE_SUFFIX)]
        path = copy_file(ctx, rel, force=force, renderer=renderer, sources=tree_sources)
        if path is not None:
            written.append(path)
    return written


# ---------------------------------------------------------------------------
# Step
# ---------------------------------------------------------------------------


async def copy_templates(ctx: RunContext) -> StepResult:
    """Copy Procfile, .foreman, ``app/`` and ``config/`` and wire their routes."""
    result = StepResult(name="templates")

    result.patches.append(
        ctx.patch(
            insert_into_file(
                "Procfile.dev",
                "worker: bundle exec sidekiq\n",
                after="web: bin/rails server -p 3000\n",
            )
        )
    )

    copied: list[Path] = []
    for relative in ("Procfile", ".foreman"):
        path = copy_file(ctx, relative, force=True)
        if path is not None:
            copied.append(path)
    copied.extend(directory(ctx, "app", force=True))
    copied.extend(directory(ctx, "config", force=True))

    result.patches.append(ctx.patch(route("get '/terms', to: 'home#terms'")))
    result.patches.append(ctx.patch(route("get '/privacy', to: 'home#privacy'")))

    result.message = f"{len(copied)} file(s) copied"
    return result


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _find_source(sources: SourcePaths, relative: str) -> Path:
    """Locate *relative* or its ``.j2`` template, whichever root has it first."""
    for root in sources:
        for candidate in (root / relative, root / f"{relative}{TEMPLATE_SUFFIX}"):
            if candidate.is_file():
                return candidate
    searched = ", ".join(str(root) for root in sources) or "(none)"
    raise TemplateNotFoundError(f"Could not find file '{relative}' in any source path: {searched}")


def _say(verb: str, relative: str, colour: str) -> None:
    console.print(f"     [bold {colour}]{verb:>9}[/bold {colour}]  {escape(relative)}")


def _pascal_case_filter(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``SomeThing``."""
    import re

    parts = re.split(r"[-_\s]+", value)
    return "".join(word.capitalize() for word in parts if word)
