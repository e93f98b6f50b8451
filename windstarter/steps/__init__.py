"""Windstarter pipeline steps.

Every step is an ``async def step(ctx: RunContext) -> StepResult``.

Key steps:
    create_skeleton / declare_gems / bundle_install  - before bundle install
    GENERATOR_STEPS                                 - Devise, Pundit, Sidekiq, ...
    copy_templates                                  - boilerplate files and trees
    set_database_credentials / run_db_functions     - interactive database setup
    finalize_git                                    - git init, add and commit
"""

from .bootstrap import bundle_install, create_skeleton, declare_gems, detect_rails_version
from .database import run_db_functions, set_database_credentials
from .generators import GENERATOR_STEPS
from .templates import TemplateRenderError, TemplateRenderer, copy_file, copy_templates, directory
from .vcs import GitError, finalize_git, print_closing_summary

__all__ = [
    # Before bundle install
    "detect_rails_version",
    "create_skeleton",
    "declare_gems",
    "bundle_install",
    # After bundle install
    "GENERATOR_STEPS",
    "copy_templates",
    "copy_file",
    "directory",
    "TemplateRenderer",
    "TemplateRenderError",
    "set_database_credentials",
    "run_db_functions",
    # Version control
    "finalize_git",
    "print_closing_summary",
    "GitError",
]
