"""Run context shared by every pipeline step.

Steps never reach for process-wide state.  Everything they need (paths,
collected answers, the command runner) travels in a :class:`RunContext`,
and everything they did comes back as a :class:`StepResult`.
"""

from __future__ import annotations

import shlex
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path

from rich.markup import escape

from windstarter.config import Answers, Config
from windstarter.editing.patcher import Patch, PatchResult, apply_patch
from windstarter.source import SourcePaths
from windstarter.utils import CommandResult, console, run_command

Runner = Callable[..., Awaitable[CommandResult]]


@dataclass
class StepResult:
    """What a single step did."""

    name: str
    success: bool = True
    commands: list[CommandResult] = field(default_factory=list)
    patches: list[PatchResult] = field(default_factory=list)
    message: str = ""

    @property
    def applied_patches(self) -> list[PatchResult]:
        return [p for p in self.patches if p.applied]


@dataclass
class RunContext:
    """Explicit state for one bootstrap run.

    Attributes:
        config: The run configuration.
        project_root: Root of the Rails application being generated.
        sources: Ordered lookup roots for template assets.
        answers: Interactive answers; filled in as prompts are answered.
        rails_version: Detected Rails version, if known.
        runner: Coroutine used for every external command.  Tests swap in
            a recorder.
    """

    config: Config
    project_root: Path
    sources: SourcePaths
    answers: Answers = field(default_factory=Answers)
    rails_version: tuple[int, ...] | None = None
    runner: Runner = run_command

    async def run(self, args: list[str], *, check: bool = True, cwd: Path | None = None) -> CommandResult:
        """Run *args* inside the project and echo it the way Thor does."""
        console.print(f"       [bold green]run[/bold green]  {escape(shlex.join(args))}")
        result = await self.runner(
            args,
            cwd=cwd or self.project_root,
            timeout=self.config.command_timeout,
            check=check,
        )
        if self.config.verbose and result.stdout:
            console.print(result.stdout, style="dim", markup=False)
        return result

    def patch(self, patch: Patch) -> PatchResult:
        """Apply *patch* under the project root and report it."""
        result = apply_patch(self.project_root, patch)
        verb = "patch" if result.applied else "skip"
        colour = "green" if result.applied else "yellow"
        suffix = f" ({result.reason})" if result.reason else ""
        console.print(f"     [bold {colour}]{verb:>5}[/bold {colour}]  {escape(patch.label())}{suffix}")
        return result
