"""
Shared fixtures: builders for small on-disk monorepos.

The builders lay out what pnpm and the orchestrator would have produced
before linking runs: project folders, temp manifests, a lockfile and the
pnpm store with its per-tarball dependency symlinks.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

import pytest
import yaml

TEMP_SCOPE = "@monolink-temp"


class MonorepoBuilder:
    """Writes a fake monorepo under ``root``."""

    def __init__(self, root: Path, package_manager_version: str = "4.14.0"):
        self.root = root
        self.package_manager_version = package_manager_version
        self.common_temp = root / "common" / "temp"
        self.common_temp.mkdir(parents=True)
        self.projects: list[tuple[str, str]] = []
        self.lockfile: Dict[str, Any] = {"lockfileVersion": 5.1}

    # --- Projects ---

    def add_project(self, name: str, folder: str, **package_json: Any) -> Path:
        project_folder = self.root / folder
        project_folder.mkdir(parents=True, exist_ok=True)
        data = {"name": name, "version": package_json.pop("version", "1.0.0"), **package_json}
        (project_folder / "package.json").write_text(json.dumps(data, indent=2))
        self.projects.append((name, folder))
        return project_folder

    def add_temp_project(
        self,
        unscoped_name: str,
        dependencies: Optional[Dict[str, str]] = None,
        local_dependencies: Optional[Dict[str, str]] = None,
        optional_dependencies: Optional[Dict[str, str]] = None,
        peer_dependencies: Optional[Dict[str, str]] = None,
    ) -> Path:
        folder = self.common_temp / "projects" / unscoped_name
        folder.mkdir(parents=True, exist_ok=True)
        data: Dict[str, Any] = {
            "name": f"{TEMP_SCOPE}/{unscoped_name}",
            "version": "0.0.0",
            "dependencies": dependencies or {},
            "localDependencies": local_dependencies or {},
        }
        if optional_dependencies:
            data["optionalDependencies"] = optional_dependencies
        if peer_dependencies:
            data["peerDependencies"] = peer_dependencies
        (folder / "package.json").write_text(json.dumps(data, indent=2))
        return folder

    # --- Lockfile ---

    def add_temp_project_entry(
        self,
        unscoped_name: str,
        key: str,
        tarball: str,
        dependencies: Optional[Dict[str, str]] = None,
        optional_dependencies: Optional[Dict[str, str]] = None,
    ) -> None:
        self.lockfile.setdefault("dependencies", {})[f"{TEMP_SCOPE}/{unscoped_name}"] = key
        entry: Dict[str, Any] = {"resolution": {"tarball": tarball}}
        if dependencies:
            entry["dependencies"] = dependencies
        if optional_dependencies:
            entry["optionalDependencies"] = optional_dependencies
        self.lockfile.setdefault("packages", {})[key] = entry

    def add_package_entry(self, name: str, version: str, **entry: Any) -> None:
        entry.setdefault("resolution", {"integrity": f"sha512-{name}-{version}"})
        self.lockfile.setdefault("packages", {})[f"/{name}/{version}"] = entry

    def add_importer(self, importer_key: str, **sections: Dict[str, str]) -> None:
        self.lockfile.setdefault("importers", {})[importer_key] = sections

    def write_lockfile(self) -> Path:
        path = self.common_temp / "pnpm-lock.yaml"
        path.write_text(yaml.safe_dump(self.lockfile, sort_keys=False))
        return path

    # --- pnpm store ---

    def store_folder(self, tarball: str, key: str) -> Path:
        """The store node_modules folder, spelled out independently of the resolver."""
        absolute = self.common_temp / tarball[len("file:"):]
        suffix = key[len(tarball):] if key.startswith(tarball) else ""
        folder_name = str(absolute).replace(os.sep, "%2F") + suffix
        major = int(self.package_manager_version.split(".")[0])
        if major >= 4:
            root = self.common_temp / "node_modules" / ".pnpm" / "local"
        else:
            root = self.common_temp / "node_modules" / ".local"
        return root / folder_name / "node_modules"

    def install_store_package(self, tarball: str, key: str, name: str, version: str) -> Path:
        """
        Create the real package folder and the store symlink pnpm would make.

        Returns:
            The real package folder.
        """
        real = self.common_temp / "node_modules" / ".pnpm" / f"{name.replace('/', '+')}@{version}"
        real = real / "node_modules" / name
        real.mkdir(parents=True, exist_ok=True)
        (real / "package.json").write_text(json.dumps({"name": name, "version": version}))

        link = self.store_folder(tarball, key) / name
        link.parent.mkdir(parents=True, exist_ok=True)
        os.symlink(real, link, target_is_directory=True)
        return real

    # --- Configuration ---

    def write_config(self, use_workspaces: bool = False, **experiments: bool) -> Path:
        lines = [
            "[repo]",
            f'package_manager_version = "{self.package_manager_version}"',
            'common_temp_folder = "common/temp"',
            f"use_workspaces = {'true' if use_workspaces else 'false'}",
            "",
        ]
        if experiments:
            lines.append("[experiments]")
            for key, value in experiments.items():
                lines.append(f"{key} = {'true' if value else 'false'}")
            lines.append("")
        for name, folder in self.projects:
            lines.append("[[projects]]")
            lines.append(f'package_name = "{name}"')
            lines.append(f'project_folder = "{folder}"')
            lines.append("")
        path = self.root / "monolink.toml"
        path.write_text("\n".join(lines))
        return path


@pytest.fixture
def repo_builder(tmp_path: Path) -> MonorepoBuilder:
    return MonorepoBuilder(tmp_path.resolve())


@pytest.fixture
def classic_repo(repo_builder: MonorepoBuilder) -> MonorepoBuilder:
    """
    A classic install: ``app`` depends on external ``left-pad`` and local ``core``.

    ``app``'s temp package was installed with a peer suffix in its key.
    """
    b = repo_builder
    b.add_project("app", "apps/app", dependencies={"left-pad": "^1.3.0", "core": "2.0.0"})
    b.add_project("core", "libs/core", version="2.0.0")

    b.add_temp_project("app", dependencies={"left-pad": "^1.3.0"}, local_dependencies={"core": "2.0.0"})
    b.add_temp_project("core")

    b.add_temp_project_entry(
        "app",
        key="file:projects/app.tgz_jsdom@11.12.0",
        tarball="file:projects/app.tgz",
        dependencies={"left-pad": "1.3.0"},
    )
    b.add_temp_project_entry("core", key="file:projects/core.tgz", tarball="file:projects/core.tgz")
    b.add_package_entry("left-pad", "1.3.0")
    b.write_lockfile()

    b.install_store_package(
        "file:projects/app.tgz", "file:projects/app.tgz_jsdom@11.12.0", "left-pad", "1.3.0"
    )
    b.write_config()
    return b
