"""Windstarter pipeline orchestrator.

Bootstraps a Rails application in one linear pass:

    START -> SOURCE_RESOLVED -> MANIFEST_EDITED -> BUNDLE_INSTALLED
          -> GENERATORS_RUN -> TEMPLATES_COPIED -> DB_CONFIGURED
          -> (DB_PROVISIONED) -> VCS_FINALIZED -> DONE

Nothing is rolled back.  The first unguarded failure stops the run and the
report records the last stage that was reached.

Usage::

    windstarter ./my-app
    windstarter ./my-app --template https://raw.githubusercontent.com/randikabanura/windstarter/main/template.rb
    SKIP_GIT=1 windstarter ./my-app --existing --non-interactive
"""

from __future__ import annotations

import asyncio
import sys
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from rich.markup import escape
from rich.panel import Panel

from windstarter.config import Config
from windstarter.context import RunContext, Runner, StepResult
from windstarter.source import resolve_source_paths
from windstarter.steps import (
    GENERATOR_STEPS,
    bundle_install,
    copy_templates,
    create_skeleton,
    declare_gems,
    detect_rails_version,
    finalize_git,
    print_closing_summary,
    run_db_functions,
    set_database_credentials,
)
from windstarter.utils import (
    WindstarterError,
    console,
    format_duration,
    print_error,
    print_step_header,
    print_success,
    print_summary_table,
    run_command,
)

Step = Callable[[RunContext], Awaitable[StepResult]]
AfterBundleCallback = Callable[[RunContext], Awaitable[None]]


class Stage(str, Enum):
    START = "START"
    SOURCE_RESOLVED = "SOURCE_RESOLVED"
    MANIFEST_EDITED = "MANIFEST_EDITED"
    BUNDLE_INSTALLED = "BUNDLE_INSTALLED"
    GENERATORS_RUN = "GENERATORS_RUN"
    TEMPLATES_COPIED = "TEMPLATES_COPIED"
    DB_CONFIGURED = "DB_CONFIGURED"
    DB_PROVISIONED = "DB_PROVISIONED"
    VCS_FINALIZED = "VCS_FINALIZED"
    DONE = "DONE"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class PipelineError(WindstarterError):
    """Wraps the failure that aborted a run."""

    def __init__(self, stage: Stage, message: str) -> None:
        self.stage = stage
        super().__init__(f"Aborted after {stage.value}: {message}")


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------


@dataclass
class PipelineReport:
    stage: Stage = Stage.START
    success: bool = False
    steps: list[StepResult] = field(default_factory=list)
    duration: str = ""
    error: str | None = None

    def step(self, name: str) -> StepResult | None:
        return next((s for s in self.steps if s.name == name), None)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class Pipeline:
    """Drives one Windstarter bootstrap.

    Steps before ``bundle install`` are fixed.  Everything afterwards runs
    inside after-bundle callbacks; the Windstarter setup itself is the
    first one registered, and callers may add more with
    :meth:`after_bundle`.

    Attributes:
        config: Run configuration.
        runner: Coroutine used for every external command.
        report: Accumulates step results and the stage reached.
    """

    def __init__(self, config: Config, runner: Runner = run_command) -> None:
        self.config = config
        self.runner = runner
        self.report = PipelineReport()
        self._callbacks: list[AfterBundleCallback] = []
        self._step_index = 0
        self.after_bundle(self._configure_application)

    def after_bundle(self, callback: AfterBundleCallback) -> AfterBundleCallback:
        """Register *callback* to run once gems are installed.

        Returns the callback so it can be used as a decorator.
        """
        self._callbacks.append(callback)
        return callback

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def run(self, location: str | None = None) -> PipelineReport:
        """Execute the whole bootstrap.

        Args:
            location: Where the template assets come from: a local path,
                an ``http(s)://`` URL of ``template.rb``, or ``None`` for
                the assets packaged with Windstarter.

        Returns:
            The final :class:`PipelineReport`.  ``success`` is ``False``
            when a step aborted the run; ``error`` then holds the reason.
        """
        start = time.monotonic()
        project_root = self.config.app_path.expanduser().resolve()

        console.print(
            Panel(
                f"[bold bright_cyan]Windstarter[/bold bright_cyan]\n"
                f"App      : {escape(str(project_root))}\n"
                f"Template : {escape(location or '(packaged)')}",
                title="[bold]Bootstrap[/bold]",
                border_style="bright_cyan",
            )
        )

        try:
            sources = await resolve_source_paths(location, self.config, self.runner)
            self.report.stage = Stage.SOURCE_RESOLVED

            ctx = RunContext(
                config=self.config,
                project_root=project_root,
                sources=sources,
                answers=self.config.answers.model_copy(),
                runner=self.runner,
            )

            await self._run_step(ctx, detect_rails_version)
            await self._run_step(ctx, create_skeleton)
            await self._run_step(ctx, declare_gems, Stage.MANIFEST_EDITED)
            await self._run_step(ctx, bundle_install, Stage.BUNDLE_INSTALLED)

            for callback in self._callbacks:
                await callback(ctx)

            self.report.success = True

        except (WindstarterError, OSError, ValueError) as exc:
            failure = PipelineError(self.report.stage, str(exc))
            self.report.error = str(failure)
            print_error(str(failure))

        self.report.duration = format_duration(time.monotonic() - start)
        return self.report

    async def _run_step(self, ctx: RunContext, step: Step, stage: Stage | None = None) -> StepResult:
        self._step_index += 1
        result = await _named(step, ctx, self._step_index)
        self.report.steps.append(result)
        if stage is not None:
            self.report.stage = stage
        return result

    async def _configure_application(self, ctx: RunContext) -> None:
        """The Windstarter setup proper, run after ``bundle install``."""
        for step in GENERATOR_STEPS:
            await self._run_step(ctx, step)
        self.report.stage = Stage.GENERATORS_RUN

        await self._run_step(ctx, copy_templates, Stage.TEMPLATES_COPIED)

        await self._run_step(ctx, set_database_credentials, Stage.DB_CONFIGURED)
        db_setup = await self._run_step(ctx, run_db_functions)
        if db_setup.commands:
            self.report.stage = Stage.DB_PROVISIONED

        await self._run_step(ctx, finalize_git, Stage.VCS_FINALIZED)

        print_closing_summary(ctx)
        self.report.stage = Stage.DONE


async def _named(step: Step, ctx: RunContext, index: int) -> StepResult:
    print_step_header(index, step.__name__.replace("_", " "))
    return await step(ctx)


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def build_parser():
    import argparse

    parser = argparse.ArgumentParser(
        prog="windstarter",
        description="Windstarter -- bootstrap a Rails application with batteries included",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  windstarter ./my-app\n"
            "  windstarter ./my-app --rails-arg=--css=tailwind\n"
            "  windstarter ./my-app --existing --db-username app --db-password secret\n"
            "\n"
            "Set SKIP_GIT to any value to skip git init and the initial commit.\n"
        ),
    )
    parser.add_argument("app_path", help="Directory of the application to create")
    parser.add_argument(
        "--template", "-m",
        default=None,
        help="Local path or http(s) URL of the template (default: packaged assets)",
    )
    parser.add_argument(
        "--existing",
        action="store_true",
        help="Apply Windstarter to an existing Rails app instead of running `rails new`",
    )
    parser.add_argument(
        "--rails-arg",
        action="append",
        default=None,
        metavar="ARG",
        help="Extra argument for `rails new` (repeatable; default: --database=postgresql)",
    )
    parser.add_argument("--skip-git", action="store_true", help="Same as setting SKIP_GIT")
    parser.add_argument("--db-username", default=None)
    parser.add_argument("--db-password", default=None)
    parser.add_argument(
        "--db-setup",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Create and migrate the database without asking",
    )
    parser.add_argument(
        "--db-drop",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Drop the database before creating it",
    )
    parser.add_argument(
        "--non-interactive",
        action="store_true",
        help="Never prompt; use defaults for anything not given on the command line",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Echo command output")
    return parser


def config_from_args(args) -> Config:
    """Merge parsed CLI arguments on top of the environment configuration."""
    config = Config.from_env()

    answers = config.answers.model_copy()
    if args.db_username is not None:
        answers.db_username = args.db_username
    if args.db_password is not None:
        answers.db_password = args.db_password
    if args.db_setup is not None:
        answers.run_db_setup = args.db_setup
    if args.db_drop is not None:
        answers.drop_database = args.db_drop

    updates = {
        "app_path": Path(args.app_path),
        "existing": args.existing,
        "interactive": not args.non_interactive,
        "verbose": args.verbose,
        "answers": answers,
    }
    if args.rails_arg is not None:
        updates["rails_new_args"] = list(args.rails_arg)
    if args.skip_git:
        updates["git"] = config.git.model_copy(update={"skip": True})
    return config.model_copy(update=updates)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``windstarter`` and ``python -m windstarter.pipeline``."""
    args = build_parser().parse_args(argv)
    try:
        config = config_from_args(args)
    except ValueError as exc:
        console.print(f"[bold red]Error:[/bold red] Invalid configuration: {escape(str(exc))}")
        sys.exit(1)

    pipeline = Pipeline(config)
    report = asyncio.run(pipeline.run(args.template))

    print_summary_table(
        {
            "Stage reached": report.stage.value,
            "Steps run": str(len(report.steps)),
            "Duration": report.duration,
        },
        title="Windstarter",
    )

    if report.success:
        print_success("Bootstrap completed successfully!")
    else:
        print_error("Bootstrap failed.")
        sys.exit(1)


if __name__ == "__main__":
    main()
