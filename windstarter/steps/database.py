"""Interactive database configuration.

Asks for the database credentials, writes them into ``config/database.yml``
and optionally provisions the database.  Provisioning is a three-stage gate:

    run db setup? --no--> nothing
         |yes
    drop first? --yes--> db:drop
         |
    db:create -> db:migrate

Answers already present in the run context (from the command line or the
environment) are used as-is and never prompted for.
"""

from __future__ import annotations

from rich.prompt import Confirm, Prompt

from windstarter.context import RunContext, StepResult
from windstarter.editing.rails import insert_into_file

from .actions import rails_command

_DB_PROMPT_STYLE = "blue"
_DANGER_PROMPT_STYLE = "red"


class YesConfirm(Confirm):
    """Confirm that also accepts ``yes``; any other answer means no."""

    def process_response(self, value: str) -> bool:
        return value.strip().lower() in ("y", "yes")


def _ask(ctx: RunContext, question: str, default: str) -> str:
    if not ctx.config.interactive:
        return default
    return Prompt.ask(f"[{_DB_PROMPT_STYLE}]{question}[/{_DB_PROMPT_STYLE}]", default=default)


def _confirm(ctx: RunContext, question: str) -> bool:
    if not ctx.config.interactive:
        return False
    return YesConfirm.ask(
        f"[{_DANGER_PROMPT_STYLE}]{question}[/{_DANGER_PROMPT_STYLE}]",
        default=False,
        show_choices=False,
    )


async def set_database_credentials(ctx: RunContext) -> StepResult:
    """Prompt for username/password and insert them into database.yml."""
    result = StepResult(name="database credentials")
    db = ctx.config.database
    answers = ctx.answers

    if answers.db_username is None:
        answers.db_username = _ask(ctx, "Please enter a database username:", db.default_username)
    if answers.db_password is None:
        answers.db_password = _ask(ctx, "Please enter a database password:", db.default_password)

    result.patches.append(
        ctx.patch(
            insert_into_file(
                db.database_yml,
                f"\n  username: {answers.db_username}\n  password: {answers.db_password}\n",
                after=db.anchor,
            )
        )
    )
    return result


async def run_db_functions(ctx: RunContext) -> StepResult:
    """Optionally drop, then create and migrate the database."""
    result = StepResult(name="database setup")
    answers = ctx.answers

    if answers.run_db_setup is None:
        answers.run_db_setup = _confirm(
            ctx, "Do you want to run database creation and migration (y/yes)?"
        )
    if not answers.run_db_setup:
        result.message = "skipped"
        return result

    if answers.drop_database is None:
        answers.drop_database = _confirm(ctx, "Do you want to create database forcefully (y/yes)?")
    if answers.drop_database:
        result.commands.append(await rails_command(ctx, "db:drop"))

    result.commands.append(await rails_command(ctx, "db:create"))
    result.commands.append(await rails_command(ctx, "db:migrate"))
    return result
