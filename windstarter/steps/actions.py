"""Command helpers shared by the pipeline steps.

Thin wrappers that turn Rails generator vocabulary into argv lists and run
them through the context's runner.  Every call is fatal on failure unless
the caller passes ``check=False``.
"""

from __future__ import annotations

from windstarter.context import RunContext
from windstarter.utils import CommandResult


async def generate(ctx: RunContext, *args: str, check: bool = True) -> CommandResult:
    """``bin/rails generate <args>``."""
    return await ctx.run([*ctx.config.rails_bin, "generate", *args], check=check)


async def rails_command(ctx: RunContext, *args: str, check: bool = True) -> CommandResult:
    """``bin/rails <task> [args]``."""
    return await ctx.run([*ctx.config.rails_bin, *args], check=check)


async def run(ctx: RunContext, *args: str, check: bool = True) -> CommandResult:
    """Run an arbitrary program inside the project."""
    return await ctx.run(list(args), check=check)
