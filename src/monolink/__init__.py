"""
monolink - Local dependency linking for pnpm-based monorepos.

monolink builds the node_modules symlink graph that a Node-style module
loader expects for every project in a monorepo, wiring local projects to
each other and external packages to the folders pnpm already installed.

Key Components:
- core.store_path: Maps lockfile keys to pnpm store folders
- core.classic_linker: Builds and materializes symlink trees (store mode)
- core.workspace_linker: Records local links for pnpm workspaces
- core.link_manager: Runs a full linking pass over the monorepo

Usage:
    from monolink import LinkManager, RepoConfiguration

    config = RepoConfiguration.load(Path("monolink.toml"))
    summary = LinkManager(config).link()
"""

__version__ = "0.1.0"

from .core.errors import ConfigurationError, LinkConsistencyError
from .core.link_manager import LinkManager, LinkSummary
from .core.repo_config import InstallMode, RepoConfiguration

__all__ = [
    "__version__",
    "ConfigurationError",
    "InstallMode",
    "LinkConsistencyError",
    "LinkManager",
    "LinkSummary",
    "RepoConfiguration",
]
