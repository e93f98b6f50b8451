"""Windstarter file editing.

Declarative patches for the generated application's files.

Key pieces:
    Patch / apply_patch  - idempotent insert, replace, (un)comment edits
    GemDeclaration       - one Gemfile ``gem`` line
    add_gems             - the complete, re-runnable Gemfile edit
    environment / route  - Rails configuration and routing patches
"""

from .manifest import GemDeclaration, add_gems, declared_gems, ensure_gem, has_gem
from .patcher import Patch, PatchAction, PatchError, PatchResult, apply_patch, apply_patches
from .rails import environment, gsub_file, insert_into_file, route

__all__ = [
    # Patching
    "Patch",
    "PatchAction",
    "PatchError",
    "PatchResult",
    "apply_patch",
    "apply_patches",
    # Gemfile
    "GemDeclaration",
    "add_gems",
    "declared_gems",
    "ensure_gem",
    "has_gem",
    # Rails files
    "environment",
    "gsub_file",
    "insert_into_file",
    "route",
]
