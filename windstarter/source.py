"""Template source resolution.

Works out where template assets (``Procfile``, ``app/``, ``config/`` ...)
are read from.  A local invocation uses the directory that holds the
template.  A remote invocation (an ``http(s)://`` location) clones the
Windstarter repository into a temporary directory that is removed when the
process exits, and checks out the branch named in the location, if any.
"""

from __future__ import annotations

import atexit
import re
import shutil
import tempfile
from pathlib import Path

from windstarter.config import Config
from windstarter.utils import WindstarterError, console, run_command

PACKAGED_TEMPLATE_DIR = Path(__file__).parent / "template"

_REMOTE_RE = re.compile(r"\Ahttps?://")


class TemplateNotFoundError(WindstarterError):
    """Raised when no source root contains a requested template asset."""


class SourcePaths:
    """Ordered list of directories searched for template assets.

    Earlier roots take precedence over later ones.
    """

    def __init__(self, roots: list[Path] | None = None) -> None:
        self.roots: list[Path] = [Path(r) for r in roots or []]

    def unshift(self, root: Path) -> None:
        """Put *root* in front of every existing root."""
        self.roots.insert(0, Path(root))

    def append(self, root: Path) -> None:
        self.roots.append(Path(root))

    def find(self, relative: str | Path) -> Path:
        """Return the first existing ``root / relative``.

        Raises:
            TemplateNotFoundError: If no root contains *relative*.
        """
        for root in self.roots:
            candidate = root / relative
            if candidate.exists():
                return candidate
        searched = ", ".join(str(r) for r in self.roots) or "(none)"
        raise TemplateNotFoundError(
            f"Could not find '{relative}' in any source path: {searched}"
        )

    def __iter__(self):
        return iter(self.roots)

    def __len__(self) -> int:
        return len(self.roots)

    def __repr__(self) -> str:
        return f"SourcePaths({[str(r) for r in self.roots]!r})"


def is_remote(location: str) -> bool:
    return bool(_REMOTE_RE.match(location))


def extract_branch(location: str, pattern: str) -> str | None:
    """Return the branch encoded in a remote template location.

    ``https://host/user/windstarter/develop/template.rb`` yields
    ``"develop"``; a location without a branch segment yields ``None``.
    """
    match = re.search(pattern, location)
    return match.group(1) if match else None


def _remove_tempdir(path: Path) -> None:
    shutil.rmtree(path, ignore_errors=True)


async def resolve_source_paths(
    location: str | None,
    config: Config,
    runner=run_command,
) -> SourcePaths:
    """Build the source lookup list for a run.

    Args:
        location: Where the template was invoked from: a local file or
            directory, an ``http(s)://`` URL, or ``None`` for the assets
            that ship with this package.
        config: Run configuration (repository URL, branch pattern).
        runner: Command runner, ``run_command`` unless a test replaces it.

    Returns:
        The ordered :class:`SourcePaths`.  The packaged template assets are
        always the last entry.

    Raises:
        CommandError: If cloning or checking out the repository fails.
        TemplateNotFoundError: If a local *location* does not exist.
    """
    sources = SourcePaths([PACKAGED_TEMPLATE_DIR])

    if location is None:
        return sources

    if is_remote(location):
        tempdir = Path(tempfile.mkdtemp(prefix="windstarter-"))
        sources.unshift(tempdir)
        atexit.register(_remove_tempdir, tempdir)

        console.print(f"[cyan]Cloning[/cyan] {config.repo_url} into {tempdir}...")
        await runner(
            ["git", "clone", "--quiet", config.repo_url, str(tempdir)],
            check=True,
            timeout=config.command_timeout,
        )

        branch = extract_branch(location, config.branch_pattern)
        if branch:
            console.print(f"[cyan]Checking out[/cyan] [bold]{branch}[/bold]")
            await runner(
                ["git", "checkout", branch],
                cwd=tempdir,
                check=True,
                timeout=config.command_timeout,
            )
        return sources

    local = Path(location).expanduser().resolve()
    if not local.exists():
        raise TemplateNotFoundError(f"Template location not found: {location}")
    sources.unshift(local if local.is_dir() else local.parent)
    return sources
