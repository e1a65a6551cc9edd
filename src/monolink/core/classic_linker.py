"""
Classic Linker.

Links one project for a classic (non-workspace) pnpm install. In this mode
every project is installed as a temp package (``@monolink-temp/<name>``)
from a tarball under ``<temp>/projects``, and pnpm places each temp
package's direct dependencies as symlinks inside a per-tarball store
folder. pnpm always uses the same physical folder for a given resolved
version, so instead of recreating the dependency tree the project's
``node_modules`` entries link straight to the folders pnpm chose.

Local dependencies (other monorepo projects) are linked directly to the
other project's folder without looking at its own dependencies.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple

from rich.console import Console

from ..config import NODE_MODULES_FOLDER, PACKAGE_JSON_FILENAME, TEMP_PROJECTS_FOLDER
from . import store_path
from .dependency_manifest import DependencyManifest, ManifestFactory, ProjectDependencyManifest
from .errors import LinkConsistencyError
from .link_registry import LinkRegistry
from .lockfile import LockfileAccessor, ShrinkwrapEntry
from .materializer import create_symlinks_for_project
from .package_node import PackageNode
from .repo_config import RepoConfiguration, RepoProject
from .result import Err, Ok, Result

logger = logging.getLogger(__name__)


class ClassicLinker:
    """
    Builds and materializes each project's PackageNode tree.

    Attributes:
        configuration: The monorepo configuration.
        lockfile: Accessor for the temp lockfile.
        debug: Print every project's tree before materializing it.
        manifest_factory: Builds each project's dependency manifest.
    """

    def __init__(
        self,
        configuration: RepoConfiguration,
        lockfile: LockfileAccessor,
        debug: bool = False,
        console: Optional[Console] = None,
        manifest_factory: ManifestFactory = ProjectDependencyManifest,
    ):
        self.configuration = configuration
        self.lockfile = lockfile
        self.debug = debug
        self.manifest_factory = manifest_factory
        self._console = console or Console()

    def link_project(self, project: RepoProject, registry: LinkRegistry) -> PackageNode:
        """
        Link one project and write its dependency manifest.

        Returns:
            The materialized tree rooted at the project folder.

        Raises:
            LinkConsistencyError: If a local project, lockfile entry or store
                symlink that must exist does not.
        """
        logger.info(f"Linking {project.package_name}")

        root, manifest = self.build_tree(project, registry)

        if self.debug:
            root.print_tree(self._console)

        create_symlinks_for_project(root)

        if self.configuration.legacy_incremental_build_dependency_detection:
            manifest.delete_if_exists()
        else:
            manifest.save()

        return root

    def build_tree(
        self, project: RepoProject, registry: LinkRegistry
    ) -> Tuple[PackageNode, DependencyManifest]:
        """
        Build the project's tree and populate its dependency manifest.

        Nothing is written to disk; local links are recorded in ``registry``.
        """
        temp_package = self._load_temp_package(project)

        root = PackageNode.create_linked_package(
            project.package_name, temp_package.version, project.project_folder
        )

        self._add_local_dependencies(project, temp_package, root, registry)

        key = self._get_dependency_key(project).unwrap()
        tarball = self._get_tarball_path(project, key).unwrap()
        store_folder = self._get_store_folder(project, tarball, key).unwrap()
        parent_entry = self._get_parent_entry(project, key).unwrap()

        manifest = self.manifest_factory(
            self.lockfile, project.dependency_manifest_path, project.package_name
        )
        legacy = self.configuration.legacy_incremental_build_dependency_detection

        for dependency_name in temp_package.package_json.dependencies:
            node = self._create_node_for_dependency(
                project, parent_entry, root, store_folder, dependency_name
            ).unwrap()
            root.add_child(node)
            if not legacy:
                manifest.add_dependency(node.name, node.version, parent_entry)

        if self.configuration.link_optional_dependencies:
            # Off by default: the orchestrator does not yet install optional
            # dependencies of projects.
            for dependency_name in temp_package.package_json.optional_dependencies:
                node = self._create_node_for_dependency(
                    project, parent_entry, root, store_folder, dependency_name, optional=True
                ).unwrap()
                if node is None:
                    continue
                root.add_child(node)
                if not legacy:
                    manifest.add_dependency(node.name, node.version, parent_entry)

        return root, manifest

    def _load_temp_package(self, project: RepoProject) -> PackageNode:
        temp = self.configuration.common_temp_folder
        unscoped = project.unscoped_temp_project_name

        # e.g. /repo/common/temp/projects/app/package.json
        package_json_path = temp / TEMP_PROJECTS_FOLDER / unscoped / PACKAGE_JSON_FILENAME
        # e.g. /repo/common/temp/node_modules/@monolink-temp/app
        install_folder = (
            temp / NODE_MODULES_FOLDER / self.configuration.temp_scope / unscoped
        )
        return PackageNode.create_virtual_temp_package(package_json_path, install_folder)

    def _add_local_dependencies(
        self,
        project: RepoProject,
        temp_package: PackageNode,
        root: PackageNode,
        registry: LinkRegistry,
    ) -> None:
        for dependency_name in temp_package.package_json.local_dependencies:
            matched = self.configuration.get_project_by_name(dependency_name)
            if matched is None:
                raise LinkConsistencyError(
                    f'Cannot find dependency "{dependency_name}" in the monorepo configuration',
                    project=project.package_name,
                    dependency=dependency_name,
                )

            registry.add_local_link(project.package_name, dependency_name)

            # e.g. /repo/apps/app/node_modules/core
            root.add_child(
                PackageNode.create_linked_package(
                    dependency_name,
                    matched.version,
                    root.folder_path / NODE_MODULES_FOLDER / dependency_name,
                    symlink_target=matched.project_folder,
                )
            )

    def _get_dependency_key(self, project: RepoProject) -> Result[str, LinkConsistencyError]:
        # e.g. file:projects/app.tgz_jsdom@11.12.0
        key = self.lockfile.get_temp_project_dependency_key(project.temp_project_name)
        if key is None:
            return Err(
                LinkConsistencyError(
                    f"Cannot get dependency key for temp project {project.temp_project_name}",
                    project=project.package_name,
                )
            )
        return Ok(key)

    def _get_tarball_path(
        self, project: RepoProject, key: str
    ) -> Result[str, LinkConsistencyError]:
        # e.g. file:projects/app.tgz
        tarball = self.lockfile.get_tarball_path(key)
        if tarball is None:
            return Err(
                LinkConsistencyError(
                    f'Cannot find tarball path for "{project.temp_project_name}" in shrinkwrap',
                    project=project.package_name,
                )
            )
        return Ok(tarball)

    def _get_store_folder(
        self, project: RepoProject, tarball: str, key: str
    ) -> Result[Path, LinkConsistencyError]:
        try:
            folder = store_path.resolve_store_folder(
                self.configuration.common_temp_folder,
                tarball,
                key,
                self.configuration.package_manager_major_version,
            )
        except ValueError as e:
            return Err(LinkConsistencyError(str(e), project=project.package_name))
        return Ok(folder)

    def _get_parent_entry(
        self, project: RepoProject, key: str
    ) -> Result[ShrinkwrapEntry, LinkConsistencyError]:
        entry = self.lockfile.get_shrinkwrap_entry_from_temp_project_dependency_key(key)
        if entry is None:
            return Err(
                LinkConsistencyError(
                    "Cannot find shrinkwrap entry using dependency key for temp project "
                    f"{project.temp_project_name}",
                    project=project.package_name,
                )
            )
        return Ok(entry)

    def _create_node_for_dependency(
        self,
        project: RepoProject,
        parent_entry: ShrinkwrapEntry,
        root: PackageNode,
        store_folder: Path,
        dependency_name: str,
        optional: bool = False,
    ) -> Result[Optional[PackageNode], LinkConsistencyError]:
        versions = parent_entry.optional_dependencies if optional else parent_entry.dependencies
        version = versions.get(dependency_name)
        if version is None and optional:
            logger.debug(
                f"Skipping optional dependency {dependency_name} of {project.package_name}"
            )
            return Ok(None)

        # A scoped name becomes two path segments here, e.g. .../node_modules/@types/node
        installed_link = store_folder / dependency_name

        if not installed_link.is_symlink() and not installed_link.exists():
            return Err(
                LinkConsistencyError(
                    f'Cannot find installed dependency "{dependency_name}" in "{store_folder}"',
                    project=project.package_name,
                    dependency=dependency_name,
                    path=installed_link,
                )
            )

        if not installed_link.is_symlink():
            return Err(
                LinkConsistencyError(
                    f'Dependency "{dependency_name}" is not a symlink in "{store_folder}"',
                    project=project.package_name,
                    dependency=dependency_name,
                    path=installed_link,
                )
            )

        if version is None:
            return Err(
                LinkConsistencyError(
                    f'Cannot find shrinkwrap entry dependency "{dependency_name}" '
                    f"for temp project {project.temp_project_name}",
                    project=project.package_name,
                    dependency=dependency_name,
                )
            )

        # Link to where pnpm's symlink points instead of chaining through it
        try:
            target = installed_link.resolve(strict=True)
        except (OSError, RuntimeError) as e:
            return Err(
                LinkConsistencyError(
                    f'Cannot resolve installed dependency "{dependency_name}": {e}',
                    project=project.package_name,
                    dependency=dependency_name,
                    path=installed_link,
                )
            )

        return Ok(
            PackageNode.create_linked_package(
                dependency_name,
                version,
                root.folder_path / NODE_MODULES_FOLDER / dependency_name,
                symlink_target=target,
            )
        )
