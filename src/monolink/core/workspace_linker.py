"""
Workspace Linker.

Links one project for a pnpm workspace install. pnpm lays out every
project's node_modules itself, so nothing is created on disk here: the
linker only records the project's local links and feeds its resolved
external dependencies into the incremental dependency manifest.

Local projects are referenced with the ``workspace:`` specifier in
workspace mode, which is how they are told apart from external packages.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from .dependency_manifest import DependencyScope, ManifestFactory, ProjectDependencyManifest
from .errors import LinkConsistencyError
from .link_registry import LinkRegistry
from .lockfile import LockfileAccessor, WorkspaceImporter
from .package_json import DependencyType, PackageJsonDependency
from .repo_config import RepoConfiguration, RepoProject

logger = logging.getLogger(__name__)


class WorkspaceLinker:
    """
    Records local links and dependency manifests for workspace projects.

    Attributes:
        configuration: The monorepo configuration.
        lockfile: Accessor for the workspace lockfile.
        manifest_factory: Builds each project's dependency manifest.
    """

    def __init__(
        self,
        configuration: RepoConfiguration,
        lockfile: LockfileAccessor,
        manifest_factory: ManifestFactory = ProjectDependencyManifest,
    ):
        self.configuration = configuration
        self.lockfile = lockfile
        self.manifest_factory = manifest_factory

    def link_project(self, project: RepoProject, registry: LinkRegistry) -> None:
        """
        Link one project.

        Raises:
            LinkConsistencyError: If a ``workspace:`` dependency is not a
                configured project, the project has no importer in the
                lockfile, or a required dependency has no resolved version.
        """
        logger.info(f"Linking {project.package_name}")

        # A project's own peers are provided by its consumers: they are never
        # local links and never part of its manifest
        declared: List[PackageJsonDependency] = [
            dependency
            for dependency in (
                *project.package_json.dependency_list,
                *project.package_json.dev_dependency_list,
            )
            if dependency.dependency_type != DependencyType.PEER
        ]

        for dependency in declared:
            if not dependency.is_workspace:
                continue
            if self.configuration.get_project_by_name(dependency.name) is None:
                raise LinkConsistencyError(
                    f'Cannot find dependency "{dependency.name}" in the monorepo configuration',
                    project=project.package_name,
                    dependency=dependency.name,
                )
            registry.add_local_link(project.package_name, dependency.name)

        importer_key = self.lockfile.get_workspace_key_by_path(
            self.configuration.common_temp_folder, project.project_folder
        )
        importer = self.lockfile.get_workspace_importer(importer_key)
        if importer is None:
            raise LinkConsistencyError(
                "Cannot find shrinkwrap entry using importer key for workspace project "
                f"{importer_key}",
                project=project.package_name,
            )

        manifest = self.manifest_factory(
            self.lockfile, project.dependency_manifest_path, project.package_name
        )
        use_manifest = not self.configuration.legacy_incremental_build_dependency_detection

        # Workspace importers do not track peers
        scope = DependencyScope(
            dependencies={**importer.dependencies, **importer.dev_dependencies},
            optional_dependencies=dict(importer.optional_dependencies),
            peer_dependencies={},
        )

        regular_names = set(project.package_json.dependencies)

        for dependency in declared:
            if dependency.is_workspace:
                continue

            version = self._get_resolved_version(
                importer, dependency, also_regular=dependency.name in regular_names
            )
            if version is None:
                if dependency.dependency_type == DependencyType.OPTIONAL:
                    logger.debug(
                        f"Skipping optional dependency {dependency.name} of {project.package_name}"
                    )
                    continue
                raise LinkConsistencyError(
                    f'Cannot find shrinkwrap entry dependency "{dependency.name}" '
                    "for workspace project",
                    project=project.package_name,
                    dependency=dependency.name,
                )

            if use_manifest:
                manifest.add_dependency(dependency.name, version, scope)

        if use_manifest:
            manifest.save()
        else:
            manifest.delete_if_exists()

    @staticmethod
    def _get_resolved_version(
        importer: WorkspaceImporter,
        dependency: PackageJsonDependency,
        also_regular: bool = False,
    ) -> Optional[str]:
        name = dependency.name
        if dependency.dependency_type == DependencyType.REGULAR:
            return importer.dependencies.get(name)
        if dependency.dependency_type == DependencyType.DEV:
            # pnpm folds a dev dependency that is also a regular one into
            # "dependencies"; the regular entry wins
            if also_regular and name in importer.dependencies:
                return importer.dependencies[name]
            return importer.dev_dependencies.get(name) or importer.dependencies.get(name)
        return importer.optional_dependencies.get(name)
