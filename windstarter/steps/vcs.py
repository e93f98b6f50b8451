"""Version-control finalization.

Initialises a git repository in the generated application, stages every
file and attempts one commit.  The commit is the only step whose failure is
recovered: a missing ``user.email`` or a rejecting hook is reported as a
warning and the run still succeeds.
"""

from __future__ import annotations

from rich.markup import escape
from rich.panel import Panel

from windstarter.context import RunContext, StepResult
from windstarter.utils import CommandError, CommandResult, console, print_warning


class GitError(CommandError):
    """Raised when a git command exits with a non-zero status."""


async def _run_git(ctx: RunContext, *args: str) -> CommandResult:
    """Run ``git <args>`` in the project and raise :class:`GitError` on failure."""
    result = await ctx.run(["git", *args], check=False)
    if not result.ok:
        raise GitError(
            f"Git command failed (exit {result.returncode}): {result.command}\n{result.stderr}",
            command=result.command,
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )
    return result


async def finalize_git(ctx: RunContext) -> StepResult:
    """``git init``, ``git add .`` and a best-effort initial commit."""
    result = StepResult(name="git")

    if ctx.config.git.skip:
        console.print("[dim]SKIP_GIT is set -- leaving version control alone.[/dim]")
        result.message = "skipped"
        return result

    result.commands.append(await _run_git(ctx, "init"))
    result.commands.append(await _run_git(ctx, "add", "."))

    # git commit fails when user.email is not configured
    try:
        result.commands.append(
            await _run_git(ctx, "commit", "-m", ctx.config.git.commit_message)
        )
    except GitError as exc:
        print_warning(str(exc))
        result.message = "commit failed"
    return result


def print_closing_summary(ctx: RunContext) -> None:
    """Tell the user how to start working on the new app."""
    console.print()
    console.print(
        Panel(
            "[bold blue]Windstarter app successfully created![/bold blue]\n\n"
            "[green]To get started with your new app:[/green]\n"
            f"  cd {escape(ctx.config.app_name)}\n\n"
            "  # Update config/database.yml with your database credentials\n\n"
            "  rails db:create db:migrate\n"
            "  gem install foreman\n"
            "  bin/dev",
            title="Done",
            border_style="blue",
        )
    )
