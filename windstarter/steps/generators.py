"""Generator steps run after ``bundle install``.

Each step invokes one external generator or task and applies a few small
patches to what it generated.  Steps run in :data:`GENERATOR_STEPS` order;
none of them inspects the outcome of another, and any failing command
aborts the run.
"""

from __future__ import annotations

from pathlib import Path

from windstarter.context import RunContext, StepResult
from windstarter.editing.rails import (
    environment,
    gsub_file,
    insert_into_file,
    route,
    version_greater_than,
)
from windstarter.utils import print_info, print_warning

from .actions import generate, rails_command, run

DEVISE_INITIALIZER = "config/initializers/devise.rb"
FRIENDLY_ID_MIGRATION_GLOB = "db/migrate/**/*friendly_id_slugs.rb"


async def set_application_name(ctx: RunContext) -> StepResult:
    result = StepResult(name="application name")
    result.patches.append(
        ctx.patch(environment("config.application_name = Rails.application.class.module_parent_name"))
    )
    print_info("You can change application name inside: ./config/application.rb")
    return result


async def add_users(ctx: RunContext) -> StepResult:
    """Devise with a ``User`` model that has first and last names."""
    result = StepResult(name="users")
    result.patches.append(ctx.patch(route("root to: 'home#index'")))
    result.commands.append(await generate(ctx, "devise:install"))

    result.patches.append(
        ctx.patch(
            environment(
                "config.action_mailer.default_url_options = { host: 'localhost', port: 3000 }",
                env="development",
            )
        )
    )
    result.commands.append(await generate(ctx, "devise", "User", "first_name", "last_name"))

    if version_greater_than(ctx.rails_version, (5, 2)):
        result.patches.append(
            ctx.patch(
                gsub_file(
                    DEVISE_INITIALIZER,
                    r"  # config.secret_key = .+",
                    "  config.secret_key = Rails.application.credentials.secret_key_base",
                )
            )
        )
    return result


async def add_authorization(ctx: RunContext) -> StepResult:
    result = StepResult(name="authorization")
    result.commands.append(await generate(ctx, "pundit:install"))
    return result


async def add_jsbundling(ctx: RunContext) -> StepResult:
    result = StepResult(name="jsbundling")
    result.commands.append(await rails_command(ctx, "javascript:install:esbuild"))
    return result


async def add_sidekiq(ctx: RunContext) -> StepResult:
    result = StepResult(name="sidekiq")
    result.patches.append(ctx.patch(environment("config.active_job.queue_adapter = :sidekiq")))
    result.patches.append(
        ctx.patch(
            insert_into_file(
                "config/routes.rb",
                "require 'sidekiq/web'\n\n",
                before="Rails.application.routes.draw do",
            )
        )
    )
    return result


async def add_friendly_id(ctx: RunContext) -> StepResult:
    result = StepResult(name="friendly_id")
    result.commands.append(await generate(ctx, "friendly_id"))

    migration = find_first(ctx.project_root, FRIENDLY_ID_MIGRATION_GLOB)
    if migration is None:
        print_warning("friendly_id migration not found; skipping migration version pin")
        return result

    result.patches.append(
        ctx.patch(
            insert_into_file(
                str(migration.relative_to(ctx.project_root)),
                "[5.2]",
                after="ActiveRecord::Migration",
            )
        )
    )
    return result


async def add_tailwind(ctx: RunContext) -> StepResult:
    result = StepResult(name="tailwind")
    result.commands.append(await rails_command(ctx, "css:install:tailwind"))
    return result


async def add_annotate(ctx: RunContext) -> StepResult:
    result = StepResult(name="annotate")
    result.commands.append(await generate(ctx, "annotate:install"))
    return result


async def add_whenever(ctx: RunContext) -> StepResult:
    result = StepResult(name="whenever")
    result.commands.append(await run(ctx, "wheneverize", "."))
    return result


async def add_sitemap(ctx: RunContext) -> StepResult:
    result = StepResult(name="sitemap")
    result.commands.append(await rails_command(ctx, "sitemap:install"))
    return result


async def install_active_storage(ctx: RunContext) -> StepResult:
    result = StepResult(name="active storage")
    result.commands.append(await rails_command(ctx, "active_storage:install"))
    return result


GENERATOR_STEPS = [
    set_application_name,
    add_users,
    add_authorization,
    add_jsbundling,
    add_sidekiq,
    add_friendly_id,
    add_tailwind,
    add_annotate,
    add_whenever,
    add_sitemap,
    install_active_storage,
]


def find_first(root: Path, pattern: str) -> Path | None:
    """First match of a recursive glob under *root*, in sorted order."""
    matches = sorted(root.glob(pattern))
    return matches[0] if matches else None
