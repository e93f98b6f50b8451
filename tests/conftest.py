"""Shared pytest fixtures for the Windstarter test suite.

Provides reusable fixtures for:
- Temporary project directories and a fake Rails skeleton
- A recording command runner that never spawns a process
- Run contexts wired to the recording runner
- Mock subprocess helpers
- A real temporary git repository
"""

from __future__ import annotations

import shlex
import subprocess
import textwrap
from collections.abc import Callable
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from windstarter.config import Config, GitConfig
from windstarter.context import RunContext
from windstarter.source import PACKAGED_TEMPLATE_DIR, SourcePaths
from windstarter.utils import CommandResult


# ---------------------------------------------------------------------------
# Rails skeleton
# ---------------------------------------------------------------------------

GEMFILE = textwrap.dedent("""\
    source "https://rubygems.org"
    git_source(:github) { |repo| "https://github.com/#{repo}.git" }

    ruby "3.1.2"

    gem "rails", "~> 7.0.4"
    gem "sprockets-rails"
    gem "pg", "~> 1.1"
    gem "puma", "~> 5.0"
    gem "importmap-rails"
    gem "turbo-rails"
    gem "stimulus-rails"
    gem "jbuilder"

    # Use Redis adapter to run Action Cable in production
    # gem "redis", "~> 4.0"

    gem "bootsnap", require: false

    group :development, :test do
      gem "debug", platforms: %i[ mri mingw x64_mingw ]
    end

    group :development do
      gem "web-console"
    end
""")

APPLICATION_RB = textwrap.dedent("""\
    require_relative "boot"

    require "rails/all"

    Bundler.require(*Rails.groups)

    module BlogApp
      class Application < Rails::Application
        config.load_defaults 7.0
      end
    end
""")

ROUTES_RB = textwrap.dedent("""\
    Rails.application.routes.draw do
      # Define your application routes per the DSL in https://guides.rubyonrails.org/routing.html
    end
""")

DEVELOPMENT_RB = textwrap.dedent("""\
    require "active_support/core_ext/integer/time"

    Rails.application.configure do
      config.cache_classes = false
    end
""")

DATABASE_YML = textwrap.dedent("""\
    default: &default
      adapter: postgresql
      encoding: unicode
      pool: 5

    development:
      <<: *default
      database: blog_app_development

    test:
      <<: *default
      database: blog_app_test

    production:
      <<: *default
      database: blog_app_production
""")

DEVISE_RB = textwrap.dedent("""\
    Devise.setup do |config|
      # The secret key used by Devise.
      # config.secret_key = 'a1b2c3d4e5f6'
      config.mailer_sender = 'please-change-me-at-config-initializers-devise@example.com'
    end
""")

PROCFILE_DEV = "web: bin/rails server -p 3000\ncss: bin/rails tailwindcss:watch\n"

SKELETON_FILES = {
    "Gemfile": GEMFILE,
    "config/application.rb": APPLICATION_RB,
    "config/routes.rb": ROUTES_RB,
    "config/environments/development.rb": DEVELOPMENT_RB,
    "config/database.yml": DATABASE_YML,
    "config/initializers/devise.rb": DEVISE_RB,
    "Procfile.dev": PROCFILE_DEV,
}


def _write_skeleton(root: Path) -> Path:
    for relative, content in SKELETON_FILES.items():
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return root


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------

@pytest.fixture
def tmp_project_dir(tmp_path: Path) -> Path:
    """Temporary directory for a generated project (auto-cleanup)."""
    project_dir = tmp_path / "blog-app"
    project_dir.mkdir()
    yield project_dir


@pytest.fixture
def rails_skeleton() -> Callable[[Path], Path]:
    """Function that writes the files a fresh ``rails new`` would leave behind."""
    return _write_skeleton


@pytest.fixture
def rails_app(tmp_project_dir: Path) -> Path:
    """A minimal Rails application tree with the files Windstarter edits."""
    return _write_skeleton(tmp_project_dir)


@pytest.fixture
def tmp_git_repo(tmp_path: Path) -> Path:
    """Temporary git repository with an initial commit."""
    repo_dir = tmp_path / "test-repo"
    repo_dir.mkdir()
    subprocess.run(["git", "init"], cwd=repo_dir, check=True, capture_output=True)
    subprocess.run(
        ["git", "config", "user.email", "test@windstarter.local"],
        cwd=repo_dir, check=True, capture_output=True,
    )
    subprocess.run(
        ["git", "config", "user.name", "Windstarter Test"],
        cwd=repo_dir, check=True, capture_output=True,
    )
    subprocess.run(
        ["git", "config", "commit.gpgsign", "false"],
        cwd=repo_dir, check=True, capture_output=True,
    )
    readme = repo_dir / "README.md"
    readme.write_text("# Test Project\n", encoding="utf-8")
    subprocess.run(["git", "add", "."], cwd=repo_dir, check=True, capture_output=True)
    subprocess.run(
        ["git", "commit", "-m", "Initial commit"],
        cwd=repo_dir, check=True, capture_output=True,
    )
    yield repo_dir


# ---------------------------------------------------------------------------
# Command runners
# ---------------------------------------------------------------------------

class RecordingRunner:
    """Stand-in for ``run_command`` that records every invocation.

    Attributes:
        calls: argv of every command, in order.
        cwds: Working directory of every command.
        outputs: Canned stdout keyed by the shell-joined command.
        failures: Exit codes keyed by the shell-joined command.
        hooks: Callables keyed by a command prefix; each is invoked with
            ``(args, cwd)`` before the result is produced, so a test can
            emulate files a generator would create.
    """

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.cwds: list[Path | None] = []
        self.outputs: dict[str, str] = {"rails --version": "Rails 7.0.4"}
        self.failures: dict[str, int] = {}
        self.hooks: dict[str, Callable[[list[str], Path | None], None]] = {}

    async def __call__(
        self,
        args: list[str],
        cwd: str | Path | None = None,
        timeout: float | None = None,
        env: dict[str, str] | None = None,
        check: bool = False,
    ) -> CommandResult:
        args = list(args)
        work_dir = Path(cwd) if cwd else None
        self.calls.append(args)
        self.cwds.append(work_dir)

        key = shlex.join(args)
        for prefix, hook in self.hooks.items():
            if key.startswith(prefix):
                hook(args, work_dir)

        returncode = self.failures.get(key, 0)
        result = CommandResult(
            args=args,
            cwd=work_dir,
            returncode=returncode,
            stdout=self.outputs.get(key, ""),
            stderr="simulated failure" if returncode else "",
        )
        if check:
            result.check()
        return result

    @property
    def commands(self) -> list[str]:
        return [shlex.join(args) for args in self.calls]


@pytest.fixture
def recording_runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def make_context(rails_app: Path, recording_runner: RecordingRunner):
    """Factory building a :class:`RunContext` on the ``rails_app`` fixture.

    Defaults to a non-interactive run with git skipped, Rails 7.0.4 and the
    packaged template assets.  Keyword arguments override ``Config`` fields.
    """
    def factory(**overrides) -> RunContext:
        settings = {
            "app_path": rails_app,
            "existing": True,
            "interactive": False,
            "git": GitConfig(skip=True),
        }
        settings.update(overrides)
        config = Config(**settings)
        return RunContext(
            config=config,
            project_root=rails_app,
            sources=SourcePaths([PACKAGED_TEMPLATE_DIR]),
            answers=config.answers.model_copy(),
            rails_version=(7, 0, 4),
            runner=recording_runner,
        )

    return factory


# ---------------------------------------------------------------------------
# Mock Subprocess
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory
