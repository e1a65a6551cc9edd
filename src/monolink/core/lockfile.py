"""
pnpm Lockfile access.

The linkers never parse the lockfile themselves; they ask a
``LockfileAccessor`` for the handful of records they need. ``PnpmShrinkwrapFile``
is the accessor for a pnpm-lock.yaml on disk.

Lockfile shapes used here:

    dependencies:                          # classic installs
      '@monolink-temp/app': file:projects/app.tgz_jsdom@11.12.0
    importers:                             # workspace installs
      ../../apps/app:
        dependencies:
          left-pad: 1.3.0
    packages:
      file:projects/app.tgz_jsdom@11.12.0:
        resolution: {tarball: file:projects/app.tgz}
        dependencies:
          left-pad: 1.3.0
      /left-pad/1.3.0:
        resolution: {integrity: sha512-...}
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


def _normalize_versions(value: Any) -> Dict[str, str]:
    """
    Coerce a dependency map to ``{name: version}``.

    Newer lockfiles store importer entries as ``{specifier, version}``
    mappings instead of plain version strings.
    """
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"expected a mapping, got {type(value).__name__}")
    normalized = {}
    for name, version in value.items():
        if isinstance(version, dict):
            version = version.get("version")
        if version is None:
            continue
        normalized[str(name)] = str(version)
    return normalized


class PackageResolution(BaseModel):
    tarball: Optional[str] = None
    integrity: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class ShrinkwrapEntry(BaseModel):
    """
    A record under ``packages``.

    Attributes:
        resolution: Where the package came from (tarball and/or integrity).
        dependencies: Resolved versions of required dependencies.
        optional_dependencies: Resolved versions of optional dependencies.
        peer_dependencies: Declared peer ranges (not resolved versions).
    """

    resolution: PackageResolution = Field(default_factory=PackageResolution)
    dependencies: Dict[str, str] = Field(default_factory=dict)
    optional_dependencies: Dict[str, str] = Field(
        default_factory=dict, alias="optionalDependencies"
    )
    peer_dependencies: Dict[str, str] = Field(default_factory=dict, alias="peerDependencies")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    normalize_versions = field_validator(
        "dependencies", "optional_dependencies", "peer_dependencies", mode="before"
    )(_normalize_versions)


class WorkspaceImporter(BaseModel):
    """A record under ``importers``: one workspace project's resolved dependencies."""

    dependencies: Dict[str, str] = Field(default_factory=dict)
    dev_dependencies: Dict[str, str] = Field(default_factory=dict, alias="devDependencies")
    optional_dependencies: Dict[str, str] = Field(
        default_factory=dict, alias="optionalDependencies"
    )

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    normalize_versions = field_validator(
        "dependencies", "dev_dependencies", "optional_dependencies", mode="before"
    )(_normalize_versions)


class LockfileAccessor(Protocol):
    """Queries the linkers and dependency manifests make against a lockfile."""

    def get_temp_project_dependency_key(self, temp_project_name: str) -> Optional[str]: ...

    def get_tarball_path(self, key: str) -> Optional[str]: ...

    def get_shrinkwrap_entry_from_temp_project_dependency_key(
        self, key: str
    ) -> Optional[ShrinkwrapEntry]: ...

    def get_workspace_key_by_path(self, root_folder: Path, project_folder: Path) -> str: ...

    def get_workspace_importer(self, importer_key: str) -> Optional[WorkspaceImporter]: ...

    def get_shrinkwrap_entry(self, name: str, version: str) -> Optional[ShrinkwrapEntry]: ...

    def get_top_level_dependency_version(self, name: str) -> Optional[str]: ...


class PnpmShrinkwrapFile:
    """
    Read-only view of a pnpm-lock.yaml file.

    Entries are validated lazily, the first time they are asked for, and
    then cached.
    """

    def __init__(self, data: Dict[str, Any], path: Optional[Path] = None):
        self.path = path
        self._top_level: Dict[str, str] = _normalize_versions(data.get("dependencies"))
        self._packages: Dict[str, Any] = data.get("packages") or {}
        self._importers: Dict[str, Any] = data.get("importers") or {}
        self._entry_cache: Dict[str, ShrinkwrapEntry] = {}
        self._importer_cache: Dict[str, WorkspaceImporter] = {}

    @classmethod
    def load_from_file(cls, path: Path) -> Optional["PnpmShrinkwrapFile"]:
        """
        Load a lockfile.

        Returns:
            The parsed lockfile, or None if the file does not exist.

        Raises:
            ConfigurationError: If the file is not valid YAML or not a mapping.
        """
        if not path.exists():
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse {path}: {e}")

        if not isinstance(data, dict):
            raise ConfigurationError(f"Lockfile {path} does not contain a mapping")

        logger.debug(f"Loaded lockfile {path} ({len(data.get('packages') or {})} packages)")
        return cls(data, path=path)

    def get_temp_project_dependency_key(self, temp_project_name: str) -> Optional[str]:
        """
        Get the resolved key of a temp project.

        e.g. ``@monolink-temp/app`` → ``file:projects/app.tgz_jsdom@11.12.0``
        """
        return self._top_level.get(temp_project_name) or None

    def get_top_level_dependency_version(self, name: str) -> Optional[str]:
        return self._top_level.get(name) or None

    def get_tarball_path(self, key: str) -> Optional[str]:
        entry = self._get_entry(key)
        if entry is None:
            return None
        return entry.resolution.tarball or None

    def get_shrinkwrap_entry_from_temp_project_dependency_key(
        self, key: str
    ) -> Optional[ShrinkwrapEntry]:
        return self._get_entry(key)

    def get_shrinkwrap_entry(self, name: str, version: str) -> Optional[ShrinkwrapEntry]:
        """
        Find the ``packages`` entry for a resolved dependency.

        ``version`` is either a plain resolved version (``1.3.0``, possibly
        with a peer suffix) or already a package id (``/left-pad/1.3.0``).
        """
        package_id = version if version.startswith("/") else f"/{name}/{version}"
        return self._get_entry(package_id)

    def get_workspace_key_by_path(self, root_folder: Path, project_folder: Path) -> str:
        """Importer keys are project folders relative to the workspace root, with ``/``."""
        return os.path.relpath(project_folder, root_folder).replace(os.sep, "/")

    def get_workspace_importer(self, importer_key: str) -> Optional[WorkspaceImporter]:
        if importer_key in self._importer_cache:
            return self._importer_cache[importer_key]

        raw = self._importers.get(importer_key)
        if raw is None:
            return None
        try:
            importer = WorkspaceImporter.model_validate(raw)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid importer '{importer_key}' in {self.path}: {e}")
        self._importer_cache[importer_key] = importer
        return importer

    def _get_entry(self, key: str) -> Optional[ShrinkwrapEntry]:
        if key in self._entry_cache:
            return self._entry_cache[key]

        raw = self._packages.get(key)
        if raw is None:
            return None
        try:
            entry = ShrinkwrapEntry.model_validate(raw)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid package entry '{key}' in {self.path}: {e}")
        self._entry_cache[key] = entry
        return entry
