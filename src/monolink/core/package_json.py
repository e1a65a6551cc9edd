"""
package.json reading.

Provides a typed view over the dependency sections of a package.json, both
for real projects and for the flattened temp manifests the orchestrator
writes under the common temp folder before an install.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..config import WORKSPACE_SPECIFIER_PREFIX
from .errors import ConfigurationError


class DependencyType(StrEnum):
    """The package.json section a dependency was declared in."""

    REGULAR = "dependencies"
    DEV = "devDependencies"
    OPTIONAL = "optionalDependencies"
    PEER = "peerDependencies"


@dataclass(frozen=True)
class PackageJsonDependency:
    """
    A single declared dependency.

    Attributes:
        name: Package name, possibly scoped.
        version: The declared specifier (range, tag or ``workspace:`` spec).
        dependency_type: Section the dependency came from.
    """

    name: str
    version: str
    dependency_type: DependencyType

    @property
    def is_workspace(self) -> bool:
        """True when the specifier points at another workspace project."""
        return self.version.startswith(WORKSPACE_SPECIFIER_PREFIX)


class PackageJson(BaseModel):
    """
    Parsed package.json.

    ``local_dependencies`` is only present in temp manifests, where it lists
    the monorepo projects this project links to directly.
    """

    name: str
    version: str = "0.0.0"
    dependencies: Dict[str, str] = Field(default_factory=dict)
    dev_dependencies: Dict[str, str] = Field(default_factory=dict, alias="devDependencies")
    optional_dependencies: Dict[str, str] = Field(
        default_factory=dict, alias="optionalDependencies"
    )
    peer_dependencies: Dict[str, str] = Field(default_factory=dict, alias="peerDependencies")
    local_dependencies: Dict[str, str] = Field(default_factory=dict, alias="localDependencies")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @classmethod
    def load(cls, path: Path) -> "PackageJson":
        """
        Load and validate a package.json file.

        Raises:
            ConfigurationError: If the file is missing, is not JSON, or has
                no usable ``name``.
        """
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise ConfigurationError(f"File does not exist: {path}")
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Failed to parse {path}: {e}")

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid package.json at {path}: {e}")

    @property
    def dependency_list(self) -> List[PackageJsonDependency]:
        """
        Regular, optional and peer dependencies, in that order.

        A name declared both as optional and regular is reported once, as
        optional, since npm installs it from the optional section.
        """
        result: Dict[str, PackageJsonDependency] = {}
        for name, version in self.dependencies.items():
            result[name] = PackageJsonDependency(name, version, DependencyType.REGULAR)
        for name, version in self.optional_dependencies.items():
            result[name] = PackageJsonDependency(name, version, DependencyType.OPTIONAL)
        for name, version in self.peer_dependencies.items():
            if name not in result:
                result[name] = PackageJsonDependency(name, version, DependencyType.PEER)
        return list(result.values())

    @property
    def dev_dependency_list(self) -> List[PackageJsonDependency]:
        return [
            PackageJsonDependency(name, version, DependencyType.DEV)
            for name, version in self.dev_dependencies.items()
        ]
