"""
Monorepo configuration for monolink.toml.

Declares the projects that make up the monorepo, where the common temp
folder and the pnpm lockfile live, which pnpm version produced the install
(this selects the store layout), and whether the install used pnpm
workspaces.

Example:
    ```toml
    [repo]
    package_manager_version = "4.14.0"
    common_temp_folder = "common/temp"
    use_workspaces = false

    [experiments]
    legacy_incremental_build_dependency_detection = false

    [[projects]]
    package_name = "app"
    project_folder = "apps/app"
    ```
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..config import (
    DEFAULT_COMMON_TEMP_FOLDER,
    DEFAULT_LINK_JSON_FILENAME,
    DEFAULT_SHRINKWRAP_FILENAME,
    DEFAULT_TEMP_SCOPE,
    DEPENDENCY_MANIFEST_FILENAME,
    PACKAGE_JSON_FILENAME,
    PROJECT_STATE_FOLDER,
    PROJECT_TEMP_FOLDER,
)
from .errors import ConfigurationError
from .package_json import PackageJson


class InstallMode(StrEnum):
    """
    The installation topology the lockfile was produced with.

    Attributes:
        CLASSIC: Per-project temp packages installed into a shared store;
            monolink builds every project's node_modules itself.
        WORKSPACE: pnpm workspaces; pnpm builds node_modules and monolink
            only records local links and incremental build metadata.
    """

    CLASSIC = "classic"
    WORKSPACE = "workspace"


class RepoSection(BaseModel):
    """The [repo] section."""

    package_manager_version: str
    common_temp_folder: str = DEFAULT_COMMON_TEMP_FOLDER
    shrinkwrap: str = DEFAULT_SHRINKWRAP_FILENAME
    link_json: str = DEFAULT_LINK_JSON_FILENAME
    use_workspaces: bool = False
    temp_scope: str = DEFAULT_TEMP_SCOPE

    model_config = ConfigDict(extra="ignore")

    @field_validator("package_manager_version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        major = value.strip().lstrip("v").split(".", 1)[0]
        if not major.isdigit():
            raise ValueError(f"not a version number: {value!r}")
        return value.strip()

    @field_validator("temp_scope")
    @classmethod
    def _check_scope(cls, value: str) -> str:
        if not value.startswith("@") or "/" in value:
            raise ValueError(f"temp scope must look like '@scope': {value!r}")
        return value


class ExperimentsSection(BaseModel):
    """The [experiments] section."""

    legacy_incremental_build_dependency_detection: bool = False
    link_optional_dependencies: bool = False

    model_config = ConfigDict(extra="ignore")


class ProjectSection(BaseModel):
    """One [[projects]] entry."""

    package_name: str = Field(min_length=1)
    project_folder: str = Field(min_length=1)

    model_config = ConfigDict(extra="ignore")


class ConfigFile(BaseModel):
    repo: RepoSection
    experiments: ExperimentsSection = Field(default_factory=ExperimentsSection)
    projects: List[ProjectSection] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


def get_unscoped_name(package_name: str) -> str:
    """Strip an npm scope: ``@scope/name`` becomes ``name``."""
    if package_name.startswith("@") and "/" in package_name:
        return package_name.split("/", 1)[1]
    return package_name


@dataclass
class RepoProject:
    """
    A project that belongs to the monorepo.

    Attributes:
        package_name: The project's npm package name.
        project_folder: Absolute path to the project folder.
        temp_project_name: Name of the project's temp package in the
            lockfile, e.g. ``@monolink-temp/app``.
        package_json: The project's own package.json.
    """

    package_name: str
    project_folder: Path
    temp_project_name: str
    package_json: PackageJson

    @property
    def version(self) -> str:
        return self.package_json.version

    @property
    def unscoped_temp_project_name(self) -> str:
        return get_unscoped_name(self.temp_project_name)

    @property
    def dependency_manifest_path(self) -> Path:
        """Where the incremental build dependency manifest is written."""
        return (
            self.project_folder
            / PROJECT_STATE_FOLDER
            / PROJECT_TEMP_FOLDER
            / DEPENDENCY_MANIFEST_FILENAME
        )


@dataclass
class RepoConfiguration:
    """
    Represents the parsed content of a monolink.toml file.

    Attributes:
        root_folder: Folder containing the configuration file.
        package_manager_version: pnpm version that performed the install.
        common_temp_folder: Absolute path to the shared temp folder.
        shrinkwrap_path: Absolute path to the lockfile in the temp folder.
        link_json_path: Where the local link summary is written.
        install_mode: Classic store install or pnpm workspaces.
        temp_scope: npm scope used for temp project names.
        legacy_incremental_build_dependency_detection: When set, dependency
            manifests are deleted instead of written.
        link_optional_dependencies: Link a project's optional dependencies
            in classic mode.
        projects: Projects in declaration order.
    """

    root_folder: Path
    package_manager_version: str
    common_temp_folder: Path
    shrinkwrap_path: Path
    link_json_path: Path
    install_mode: InstallMode = InstallMode.CLASSIC
    temp_scope: str = DEFAULT_TEMP_SCOPE
    legacy_incremental_build_dependency_detection: bool = False
    link_optional_dependencies: bool = False
    projects: List[RepoProject] = field(default_factory=list)
    _projects_by_name: Dict[str, RepoProject] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        for project in self.projects:
            self._register(project)

    @classmethod
    def load(cls, path: Path) -> "RepoConfiguration":
        """
        Load and validate a monolink.toml file and every project's package.json.

        Raises:
            ConfigurationError: If a file is missing or malformed, or two
                projects share a package name.
        """
        path = path.resolve()
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {path}")

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Failed to parse {path}: {e}")

        try:
            parsed = ConfigFile.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration in {path}: {e}")

        root = path.parent
        common_temp = (root / parsed.repo.common_temp_folder).resolve()

        configuration = cls(
            root_folder=root,
            package_manager_version=parsed.repo.package_manager_version,
            common_temp_folder=common_temp,
            shrinkwrap_path=common_temp / parsed.repo.shrinkwrap,
            link_json_path=common_temp / parsed.repo.link_json,
            install_mode=(
                InstallMode.WORKSPACE if parsed.repo.use_workspaces else InstallMode.CLASSIC
            ),
            temp_scope=parsed.repo.temp_scope,
            legacy_incremental_build_dependency_detection=(
                parsed.experiments.legacy_incremental_build_dependency_detection
            ),
            link_optional_dependencies=parsed.experiments.link_optional_dependencies,
        )

        for section in parsed.projects:
            configuration.add_project(section.package_name, root / section.project_folder)

        return configuration

    @property
    def package_manager_major_version(self) -> int:
        return int(self.package_manager_version.lstrip("v").split(".", 1)[0])

    def add_project(self, package_name: str, project_folder: Path) -> RepoProject:
        """
        Register a project, reading its package.json.

        Raises:
            ConfigurationError: If the package.json is unreadable, its name
                differs from ``package_name``, or the name is already taken.
        """
        project_folder = project_folder.resolve()
        package_json = PackageJson.load(project_folder / PACKAGE_JSON_FILENAME)
        if package_json.name != package_name:
            raise ConfigurationError(
                f"Project folder {project_folder} contains package '{package_json.name}', "
                f"expected '{package_name}'"
            )

        project = RepoProject(
            package_name=package_name,
            project_folder=project_folder,
            temp_project_name=self._generate_temp_name(package_name),
            package_json=package_json,
        )
        self._register(project)
        self.projects.append(project)
        return project

    def get_project_by_name(self, package_name: str) -> Optional[RepoProject]:
        return self._projects_by_name.get(package_name)

    def _register(self, project: RepoProject) -> None:
        if project.package_name in self._projects_by_name:
            raise ConfigurationError(
                f"Project '{project.package_name}' is declared more than once"
            )
        self._projects_by_name[project.package_name] = project

    def _generate_temp_name(self, package_name: str) -> str:
        """
        Build a unique temp project name.

        ``@scope/app`` and ``app`` both want ``<temp_scope>/app``; the second
        one to claim it becomes ``<temp_scope>/app-2``.
        """
        base = f"{self.temp_scope}/{get_unscoped_name(package_name).lower()}"
        taken = {p.temp_project_name for p in self.projects}
        candidate = base
        counter = 2
        while candidate in taken:
            candidate = f"{base}-{counter}"
            counter += 1
        return candidate
