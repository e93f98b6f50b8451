"""Shared utility functions for Windstarter.

Provides async command execution with a typed result, the error types raised
for failed external commands, and the Rich-based console helpers every step
uses to report progress.
"""

from __future__ import annotations

import asyncio
import os
import shlex
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.rule import Rule
from rich.table import Table

console = Console()


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class WindstarterError(Exception):
    """Base class for every error raised by Windstarter."""


class CommandError(WindstarterError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(
        self,
        message: str,
        command: str = "",
        returncode: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(message)


# ---------------------------------------------------------------------------
# Command execution
# ---------------------------------------------------------------------------


@dataclass
class CommandResult:
    """Outcome of one external command."""

    args: list[str]
    cwd: Path | None
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def command(self) -> str:
        """Shell-escaped rendering of :attr:`args`, for display only."""
        return shlex.join(self.args)

    def check(self) -> "CommandResult":
        """Raise :class:`CommandError` unless the command succeeded."""
        if not self.ok:
            detail = self.stderr or self.stdout
            raise CommandError(
                f"Command failed (exit {self.returncode}): {self.command}"
                + (f"\n{detail}" if detail else ""),
                command=self.command,
                returncode=self.returncode,
                stdout=self.stdout,
                stderr=self.stderr,
            )
        return self


async def run_command(
    args: list[str],
    cwd: str | Path | None = None,
    timeout: float | None = None,
    env: dict[str, str] | None = None,
    check: bool = False,
) -> CommandResult:
    """Run an external command and wait for it to finish.

    Args:
        args: Program and arguments. Never passed through a shell.
        cwd: Working directory for the child process.
        timeout: Seconds before the process is killed. ``None`` waits
            indefinitely, which is the default for every pipeline step.
        env: Extra environment variables merged on top of ``os.environ``.
        check: Raise :class:`CommandError` on a non-zero exit instead of
            returning the failed result.

    Returns:
        A :class:`CommandResult` with the captured output.

    Raises:
        CommandError: If *check* is set and the command failed, or if the
            program could not be started at all.
    """
    merged_env: dict[str, str] | None = None
    if env:
        merged_env = {**os.environ, **env}

    work_dir = Path(cwd) if cwd else None
    display = shlex.join(args)

    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(work_dir) if work_dir else None,
            env=merged_env,
        )
    except FileNotFoundError as exc:
        raise CommandError(
            f"Executable not found: {args[0]}", command=display, stderr=str(exc)
        ) from exc

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise CommandError(
            f"Command timed out after {timeout}s: {display}", command=display
        )

    result = CommandResult(
        args=list(args),
        cwd=work_dir,
        returncode=process.returncode or 0,
        stdout=(stdout_bytes or b"").decode("utf-8", errors="replace").strip(),
        stderr=(stderr_bytes or b"").decode("utf-8", errors="replace").strip(),
    )
    if check:
        result.check()
    return result


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
    """
    if seconds < 0:
        return "0.0s"

    minutes = int(seconds // 60)
    secs = seconds % 60
    if minutes > 0:
        return f"{minutes}m {int(secs)}s"
    return f"{secs:.1f}s"


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_step_header(index: int, name: str) -> None:
    """Print a rule announcing the next pipeline step."""
    console.print(Rule(f"[bold bright_cyan] {index}. {name} [/bold bright_cyan]", style="cyan"))


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{escape(message)}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{escape(message)}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{escape(message)}[/bold yellow]")


def print_info(message: str) -> None:
    """Print a blue informational message."""
    console.print(f"[blue]{escape(message)}[/blue]")
