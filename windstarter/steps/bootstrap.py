"""Steps that run before ``bundle install``.

Creates the Rails skeleton, checks the Rails version, declares the gems in
the Gemfile and installs them.  Everything after :func:`bundle_install` runs
as an after-bundle callback.
"""

from __future__ import annotations

from pathlib import Path

from windstarter.context import RunContext, StepResult
from windstarter.editing.manifest import add_gems
from windstarter.editing.rails import parse_rails_version, version_at_least
from windstarter.utils import CommandError, WindstarterError, console, print_warning

MINIMUM_RAILS = (6, 0, 0)


async def detect_rails_version(ctx: RunContext) -> StepResult:
    """Record the installed Rails version and warn if it is too old.

    An existing application is asked through its own ``bin/rails``; otherwise
    the Rails used for ``rails new`` is probed.  An old or unknown version
    only prints a warning; the run goes on.
    """
    result = StepResult(name="rails version")
    root = ctx.project_root
    if ctx.config.existing and (root / "bin" / "rails").is_file():
        args, cwd = [*ctx.config.rails_bin, "--version"], root
    else:
        args, cwd = [ctx.config.rails, "--version"], Path.cwd()
    try:
        probe = await ctx.run(args, check=False, cwd=cwd)
    except CommandError as exc:
        print_warning(str(exc))
        ctx.rails_version = None
    else:
        result.commands.append(probe)
        ctx.rails_version = parse_rails_version(probe.stdout) if probe.ok else None

    if ctx.rails_version is None:
        print_warning("Could not determine the Rails version.")
    elif not version_at_least(ctx.rails_version, MINIMUM_RAILS):
        print_warning("Please use Rails 6.0 or newer to create a Windstarter application")
    else:
        console.print(f"  Rails {'.'.join(str(p) for p in ctx.rails_version)}")
    return result


async def create_skeleton(ctx: RunContext) -> StepResult:
    """``rails new`` into the project root, unless it already holds an app."""
    result = StepResult(name="rails new")
    root = ctx.project_root

    if ctx.config.existing:
        if not (root / "Gemfile").is_file():
            raise WindstarterError(f"No Gemfile in {root}; is it a Rails application?")
        result.message = "existing application"
        return result

    if root.exists() and any(root.iterdir()):
        raise WindstarterError(
            f"{root} exists and is not empty. Use --existing to apply Windstarter to it."
        )

    # Without --skip-git, rails new also writes .gitignore and .gitattributes,
    # which keep config/master.key, log/ and tmp/ out of the initial commit.
    args = [ctx.config.rails, "new", str(root), "--skip-bundle"]
    if ctx.config.git.skip:
        args.append("--skip-git")
    args.extend(ctx.config.rails_new_args)

    root.parent.mkdir(parents=True, exist_ok=True)
    result.commands.append(await ctx.run(args, cwd=root.parent))
    return result


async def declare_gems(ctx: RunContext) -> StepResult:
    """Apply the Gemfile edit.  Re-running it leaves the Gemfile unchanged."""
    result = StepResult(name="gems")
    for patch_result in add_gems(ctx.project_root):
        verb = "gemfile" if patch_result.applied else "skip"
        colour = "green" if patch_result.applied else "yellow"
        suffix = f" ({patch_result.reason})" if patch_result.reason else ""
        console.print(
            f"     [bold {colour}]{verb:>7}[/bold {colour}]  {patch_result.patch.label()}{suffix}"
        )
        result.patches.append(patch_result)
    return result


async def bundle_install(ctx: RunContext) -> StepResult:
    result = StepResult(name="bundle install")
    result.commands.append(await ctx.run([ctx.config.bundle, "install"]))
    return result
