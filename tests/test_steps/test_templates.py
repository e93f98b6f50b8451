"""Unit tests for template materialization (windstarter.steps.templates)."""

from __future__ import annotations

from pathlib import Path

import jinja2
import pytest

from windstarter.source import PACKAGED_TEMPLATE_DIR, SourcePaths, TemplateNotFoundError
from windstarter.steps.templates import (
    TemplateRenderError,
    TemplateRenderer,
    copy_file,
    copy_templates,
    directory,
)


def _read(root: Path, relative: str) -> str:
    return (root / relative).read_text(encoding="utf-8")


class TestTemplateRenderer:
    @pytest.mark.unit
    def test_pascal_case_filter(self):
        renderer = TemplateRenderer(SourcePaths([PACKAGED_TEMPLATE_DIR]))
        assert renderer.render_string("{{ name | pascal_case }}", {"name": "my-cool_app"}) == "MyCoolApp"

    @pytest.mark.unit
    def test_undefined_variable_raises(self):
        renderer = TemplateRenderer(SourcePaths([PACKAGED_TEMPLATE_DIR]))
        with pytest.raises(jinja2.UndefinedError):
            renderer.render_string("{{ missing }}", {})

    @pytest.mark.unit
    def test_erb_tags_pass_through(self):
        renderer = TemplateRenderer(SourcePaths([PACKAGED_TEMPLATE_DIR]))
        assert renderer.render_string("<%= yield %>", {}) == "<%= yield %>"

    @pytest.mark.unit
    def test_earlier_root_shadows_packaged(self, tmp_path: Path):
        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "sitemap.rb.j2").write_text("# custom {{ app_const }}\n", encoding="utf-8")
        renderer = TemplateRenderer(SourcePaths([tmp_path, PACKAGED_TEMPLATE_DIR]))
        assert renderer.render("config/sitemap.rb.j2", {"app_const": "Shop"}) == "# custom Shop\n"

    @pytest.mark.unit
    def test_syntax_error_names_template(self, tmp_path: Path):
        (tmp_path / "broken.rb.j2").write_text("{% if %}\n", encoding="utf-8")
        renderer = TemplateRenderer(SourcePaths([tmp_path]))
        with pytest.raises(TemplateRenderError, match="broken.rb.j2"):
            renderer.render("broken.rb.j2", {})

    @pytest.mark.unit
    def test_undefined_variable_in_file(self, tmp_path: Path):
        (tmp_path / "greeting.j2").write_text("{{ nobody }}\n", encoding="utf-8")
        renderer = TemplateRenderer(SourcePaths([tmp_path]))
        with pytest.raises(TemplateRenderError) as excinfo:
            renderer.render("greeting.j2", {})
        assert isinstance(excinfo.value.__cause__, jinja2.UndefinedError)


class TestCopyFile:
    @pytest.mark.unit
    def test_plain_copy(self, make_context):
        ctx = make_context()
        written = copy_file(ctx, "Procfile")
        assert written == ctx.project_root / "Procfile"
        assert written.read_bytes() == (PACKAGED_TEMPLATE_DIR / "Procfile").read_bytes()

    @pytest.mark.unit
    def test_dotfile(self, make_context):
        ctx = make_context()
        copy_file(ctx, ".foreman")
        assert _read(ctx.project_root, ".foreman") == "procfile: Procfile.dev\n"

    @pytest.mark.unit
    def test_rendered_template_drops_suffix(self, make_context):
        ctx = make_context()
        written = copy_file(ctx, "config/sitemap.rb")
        assert written.name == "sitemap.rb"
        text = written.read_text(encoding="utf-8")
        assert "# BlogApp public pages" in text
        assert not (ctx.project_root / "config" / "sitemap.rb.j2").exists()

    @pytest.mark.unit
    def test_overwrites_by_default(self, make_context):
        ctx = make_context()
        (ctx.project_root / "Procfile").write_text("web: old\n", encoding="utf-8")
        copy_file(ctx, "Procfile")
        assert "sidekiq" in _read(ctx.project_root, "Procfile")

    @pytest.mark.unit
    def test_no_force_keeps_existing(self, make_context):
        ctx = make_context()
        (ctx.project_root / "Procfile").write_text("web: old\n", encoding="utf-8")
        assert copy_file(ctx, "Procfile", force=False) is None
        assert _read(ctx.project_root, "Procfile") == "web: old\n"

    @pytest.mark.unit
    def test_missing_source(self, make_context):
        with pytest.raises(TemplateNotFoundError, match="Brewfile"):
            copy_file(make_context(), "Brewfile")

    @pytest.mark.unit
    def test_source_override(self, make_context, tmp_path: Path):
        override = tmp_path / "override"
        override.mkdir()
        (override / "Procfile").write_text("web: custom\n", encoding="utf-8")
        ctx = make_context()
        ctx.sources.unshift(override)
        copy_file(ctx, "Procfile")
        assert _read(ctx.project_root, "Procfile") == "web: custom\n"


class TestDirectory:
    @pytest.mark.unit
    def test_copies_tree(self, make_context):
        ctx = make_context()
        written = directory(ctx, "app")
        assert ctx.project_root / "app/controllers/home_controller.rb" in written
        assert ctx.project_root / "app/views/layouts/application.html.erb" in written
        assert "<title>BlogApp</title>" in _read(ctx.project_root, "app/views/layouts/application.html.erb")

    @pytest.mark.unit
    def test_first_root_only(self, make_context, tmp_path: Path):
        override = tmp_path / "override"
        (override / "app" / "models").mkdir(parents=True)
        (override / "app" / "models" / "account.rb").write_text("class Account; end\n", encoding="utf-8")
        ctx = make_context()
        ctx.sources.unshift(override)

        written = directory(ctx, "app")

        assert written == [ctx.project_root / "app/models/account.rb"]
        assert not (ctx.project_root / "app/controllers/home_controller.rb").exists()

    @pytest.mark.unit
    def test_missing_directory(self, make_context):
        with pytest.raises(TemplateNotFoundError, match="lib"):
            directory(make_context(), "lib")

    @pytest.mark.unit
    def test_keeps_unrelated_project_files(self, make_context):
        ctx = make_context()
        directory(ctx, "config")
        assert (ctx.project_root / "config/sidekiq.yml").is_file()
        assert (ctx.project_root / "config/routes.rb").is_file()
        assert (ctx.project_root / "config/database.yml").is_file()


class TestCopyTemplates:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_full_copy(self, make_context, recording_runner):
        ctx = make_context()
        result = await copy_templates(ctx)

        root = ctx.project_root
        assert recording_runner.calls == []
        assert _read(root, "Procfile.dev") == (
            "web: bin/rails server -p 3000\n"
            "worker: bundle exec sidekiq\n"
            "css: bin/rails tailwindcss:watch\n"
        )
        for relative in (
            "Procfile",
            ".foreman",
            "app/models/user.rb",
            "app/views/home/terms.html.erb",
            "app/views/home/privacy.html.erb",
            "config/initializers/sidekiq.rb",
            "config/sitemap.rb",
        ):
            assert (root / relative).is_file(), relative

        routes = _read(root, "config/routes.rb")
        assert "  get '/terms', to: 'home#terms'\n" in routes
        assert "  get '/privacy', to: 'home#privacy'\n" in routes
        assert result.message.endswith("file(s) copied")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_second_run_is_stable(self, make_context):
        ctx = make_context()
        await copy_templates(ctx)
        first = (_read(ctx.project_root, "Procfile.dev"), _read(ctx.project_root, "config/routes.rb"))
        await copy_templates(ctx)
        second = (_read(ctx.project_root, "Procfile.dev"), _read(ctx.project_root, "config/routes.rb"))
        assert first == second

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_procfile_dev_without_anchor(self, make_context):
        ctx = make_context()
        (ctx.project_root / "Procfile.dev").write_text("web: bin/dev\n", encoding="utf-8")
        result = await copy_templates(ctx)
        assert _read(ctx.project_root, "Procfile.dev") == "web: bin/dev\n"
        assert result.patches[0].reason == "anchor-not-found"
