"""
Core modules for monolink.

This package contains the linking engine:
- package_node: In-memory package tree
- lockfile: pnpm lockfile access
- store_path: pnpm store folder naming
- classic_linker / workspace_linker: Per-project linking for each install mode
- materializer: Writes package trees to disk as symlinks
- link_manager: Runs a full pass over the monorepo
"""

from .classic_linker import ClassicLinker
from .dependency_manifest import DependencyScope, ProjectDependencyManifest
from .errors import ConfigurationError, LinkConsistencyError
from .link_manager import LinkManager, LinkSummary
from .link_registry import LinkRegistry
from .lockfile import PnpmShrinkwrapFile, ShrinkwrapEntry, WorkspaceImporter
from .package_json import DependencyType, PackageJson, PackageJsonDependency
from .package_node import NodeKind, PackageNode
from .repo_config import InstallMode, RepoConfiguration, RepoProject
from .workspace_linker import WorkspaceLinker

__all__ = [
    "ClassicLinker",
    "ConfigurationError",
    "DependencyScope",
    "DependencyType",
    "InstallMode",
    "LinkConsistencyError",
    "LinkManager",
    "LinkRegistry",
    "LinkSummary",
    "NodeKind",
    "PackageJson",
    "PackageJsonDependency",
    "PackageNode",
    "PnpmShrinkwrapFile",
    "ProjectDependencyManifest",
    "RepoConfiguration",
    "RepoProject",
    "ShrinkwrapEntry",
    "WorkspaceImporter",
    "WorkspaceLinker",
]
