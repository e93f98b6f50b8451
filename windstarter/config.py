"""Windstarter configuration.

Typed configuration for a single bootstrap run. All settings are Pydantic v2
models so they are validated at construction time and can be serialised to
and from JSON or built from environment variables.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

DEFAULT_REPO_URL = "https://github.com/randikabanura/windstarter.git"

# Captures the branch from ".../windstarter/<branch>/template.rb".
DEFAULT_BRANCH_PATTERN = r"windstarter/(.+)/template\.rb"


class Answers(BaseModel):
    """Interactive answers, optionally supplied before the run starts.

    Any field left as ``None`` is asked for on the console when the pipeline
    reaches it.
    """

    db_username: str | None = None
    db_password: str | None = None
    run_db_setup: bool | None = None
    drop_database: bool | None = None


class DatabaseConfig(BaseModel):
    """Defaults offered by the database credential prompts."""

    default_username: str = Field(default="username")
    default_password: str = Field(default="password")
    database_yml: str = Field(default="config/database.yml")
    anchor: str = Field(
        default="encoding: unicode",
        description="Line in database.yml after which credentials are inserted",
    )


class GitConfig(BaseModel):
    """Settings for the final commit."""

    skip: bool = Field(default=False, description="Suppress git init/add/commit")
    commit_message: str = Field(default="Initial commit")


class Config(BaseModel):
    """Global Windstarter configuration.

    Instances are created once by the CLI entry point (or by tests) and then
    handed to :class:`~windstarter.pipeline.Pipeline`, which passes them on to
    every step through the run context.
    """

    app_path: Path = Field(default=Path("."))
    repo_url: str = Field(default=DEFAULT_REPO_URL)
    branch_pattern: str = Field(default=DEFAULT_BRANCH_PATTERN)

    rails: str = Field(default="rails", description="Rails executable used for `rails new`")
    bundle: str = Field(default="bundle")
    rails_new_args: list[str] = Field(
        default_factory=lambda: ["--database=postgresql"],
        description="Extra arguments appended to `rails new`",
    )
    existing: bool = Field(
        default=False, description="Target already holds a Rails app; skip `rails new`"
    )

    interactive: bool = Field(default=True)
    command_timeout: float | None = Field(
        default=None, gt=0, description="Per-command timeout in seconds; None waits forever"
    )
    verbose: bool = Field(default=False, description="Echo captured command output")

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    git: GitConfig = Field(default_factory=GitConfig)
    answers: Answers = Field(default_factory=Answers)

    @field_validator("branch_pattern")
    @classmethod
    def _branch_pattern_has_group(cls, value: str) -> str:
        try:
            compiled = re.compile(value)
        except re.error as exc:
            raise ValueError(f"invalid regular expression: {exc}") from exc
        if compiled.groups < 1:
            raise ValueError("must capture the branch in a group")
        return value

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def app_name(self) -> str:
        """Directory name of the generated application."""
        return self.app_path.resolve().name

    @property
    def rails_bin(self) -> list[str]:
        """Command prefix for Rails tasks run inside the generated app."""
        return ["bin/rails"]

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file and return its path."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls, **overrides: Any) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            WINDSTARTER_REPO_URL, WINDSTARTER_RAILS, WINDSTARTER_BUNDLE,
            WINDSTARTER_COMMAND_TIMEOUT, WINDSTARTER_DB_USERNAME,
            WINDSTARTER_DB_PASSWORD, SKIP_GIT.

        ``SKIP_GIT`` disables the git step when it holds any non-empty value.
        Keyword *overrides* win over the environment.

        Raises:
            pydantic.ValidationError: If a variable holds an invalid value,
                e.g. a non-numeric timeout.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("WINDSTARTER_REPO_URL"):
            kwargs["repo_url"] = os.environ["WINDSTARTER_REPO_URL"]
        if os.environ.get("WINDSTARTER_RAILS"):
            kwargs["rails"] = os.environ["WINDSTARTER_RAILS"]
        if os.environ.get("WINDSTARTER_BUNDLE"):
            kwargs["bundle"] = os.environ["WINDSTARTER_BUNDLE"]
        if os.environ.get("WINDSTARTER_COMMAND_TIMEOUT"):
            kwargs["command_timeout"] = os.environ["WINDSTARTER_COMMAND_TIMEOUT"]

        answer_kwargs: dict[str, Any] = {}
        if os.environ.get("WINDSTARTER_DB_USERNAME"):
            answer_kwargs["db_username"] = os.environ["WINDSTARTER_DB_USERNAME"]
        if os.environ.get("WINDSTARTER_DB_PASSWORD"):
            answer_kwargs["db_password"] = os.environ["WINDSTARTER_DB_PASSWORD"]
        if answer_kwargs:
            kwargs["answers"] = Answers(**answer_kwargs)

        kwargs["git"] = GitConfig(skip=bool(os.environ.get("SKIP_GIT")))

        kwargs.update(overrides)
        return cls(**kwargs)
