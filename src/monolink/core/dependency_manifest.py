"""
Incremental Dependency Manifest.

Records, per project, every package version the project can reach through
the lockfile (its direct dependencies and everything they pull in), keyed
as ``name@version`` with the package's integrity hash. The build system
diffs this file between runs to decide whether a project's dependencies
changed.

File location:
    <project>/.monolink/temp/shrinkwrap-deps.json
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable, Dict, Optional, Protocol

from pydantic import BaseModel, Field

from ..config import LINK_VERSION_PREFIX
from .errors import LinkConsistencyError
from .lockfile import LockfileAccessor, ShrinkwrapEntry

logger = logging.getLogger(__name__)


class DependencyScope(BaseModel):
    """
    The dependency maps of whatever declared a dependency.

    Used to satisfy peer dependencies: a peer is provided by the package
    that depends on the peer's dependent. Shrinkwrap entries and workspace
    importers both reduce to this shape.
    """

    dependencies: Dict[str, str] = Field(default_factory=dict)
    optional_dependencies: Dict[str, str] = Field(default_factory=dict)
    peer_dependencies: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_entry(cls, entry: ShrinkwrapEntry) -> "DependencyScope":
        return cls(
            dependencies=dict(entry.dependencies),
            optional_dependencies=dict(entry.optional_dependencies),
            peer_dependencies=dict(entry.peer_dependencies),
        )


class DependencyManifest(Protocol):
    """What the linkers need from an incremental dependency manifest."""

    def add_dependency(
        self, name: str, version: str, parent_scope: DependencyScope | ShrinkwrapEntry
    ) -> None: ...

    def save(self) -> None: ...

    def delete_if_exists(self) -> None: ...


# Builds the manifest for one project: (lockfile, path, project_name)
ManifestFactory = Callable[[LockfileAccessor, Path, str], DependencyManifest]


class ProjectDependencyManifest:
    """
    Accumulates ``name@version -> integrity`` for one project.

    Attributes:
        path: Where ``save()`` writes the manifest.
        project_name: Used in error messages.
    """

    def __init__(self, lockfile: LockfileAccessor, path: Path, project_name: str):
        self.path = path
        self.project_name = project_name
        self._lockfile = lockfile
        self._entries: Dict[str, str] = {}

    @property
    def entries(self) -> Dict[str, str]:
        return dict(self._entries)

    def add_dependency(
        self, name: str, version: str, parent_scope: DependencyScope | ShrinkwrapEntry
    ) -> None:
        """
        Record a direct dependency and everything it depends on.

        Args:
            name: Dependency name.
            version: Resolved version from the lockfile.
            parent_scope: Dependency maps of the declaring package, used to
                satisfy the dependency's peers.

        Raises:
            LinkConsistencyError: If a required package is missing from the
                lockfile, or a specifier resolves to two different integrities.
        """
        if isinstance(parent_scope, ShrinkwrapEntry):
            parent_scope = DependencyScope.from_entry(parent_scope)
        self._add(name, version, parent_scope, required=True)

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(dict(sorted(self._entries.items())), f, indent=2)
            f.write("\n")
        logger.debug(f"Wrote {len(self._entries)} entries to {self.path}")

    def delete_if_exists(self) -> None:
        if self.path.exists():
            self.path.unlink()
            logger.debug(f"Deleted {self.path}")

    def _add(
        self,
        name: str,
        version: str,
        parent_scope: DependencyScope,
        required: bool,
    ) -> None:
        if version.startswith(LINK_VERSION_PREFIX):
            # Local folder links are tracked by the link registry instead
            return

        entry = self._lockfile.get_shrinkwrap_entry(name, version)
        if entry is None:
            if required:
                raise LinkConsistencyError(
                    f"Unable to find dependency {name} with version {version} in shrinkwrap",
                    project=self.project_name,
                    dependency=name,
                )
            return

        specifier = f"{name}@{version}"
        integrity = entry.resolution.integrity or entry.resolution.tarball or ""
        existing = self._entries.get(specifier)
        if existing is not None:
            if existing != integrity:
                raise LinkConsistencyError(
                    f"Collision: {specifier} already exists with a different integrity",
                    project=self.project_name,
                    dependency=name,
                )
            return

        self._entries[specifier] = integrity

        scope = DependencyScope.from_entry(entry)
        for dependency_name, dependency_version in entry.dependencies.items():
            self._add(dependency_name, dependency_version, scope, required=True)
        for dependency_name, dependency_version in entry.optional_dependencies.items():
            self._add(dependency_name, dependency_version, scope, required=False)

        for peer_name in entry.peer_dependencies:
            self._add_peer(specifier, peer_name, entry, parent_scope)

    def _add_peer(
        self,
        specifier: str,
        peer_name: str,
        entry: ShrinkwrapEntry,
        parent_scope: DependencyScope,
    ) -> None:
        # Already installed alongside the package itself
        if peer_name in entry.dependencies:
            return

        version: Optional[str] = (
            parent_scope.dependencies.get(peer_name)
            or parent_scope.optional_dependencies.get(peer_name)
        )
        if version is None:
            version = self._lockfile.get_top_level_dependency_version(peer_name)
        if version is None:
            # An unmet peer is pnpm's warning to give, not an inconsistency
            logger.debug(f"Peer dependency {peer_name} of {specifier} is not satisfied")
            return

        self._add(peer_name, version, parent_scope, required=False)
