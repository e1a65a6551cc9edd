"""
Link Manager.

Runs a full linking pass over the monorepo: loads the temp lockfile, picks
the linker for the configured install mode, links every project (optionally
on a thread pool) and writes the local link summary once every project has
succeeded. The first failure aborts the pass and nothing is written.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Optional, Protocol

from rich.console import Console

from .classic_linker import ClassicLinker
from .errors import LinkConsistencyError
from .link_registry import LinkRegistry
from .lockfile import LockfileAccessor, PnpmShrinkwrapFile
from .repo_config import InstallMode, RepoConfiguration, RepoProject
from .workspace_linker import WorkspaceLinker

logger = logging.getLogger(__name__)


class ProjectLinker(Protocol):
    """Links one project, recording its local links in the registry."""

    def link_project(self, project: RepoProject, registry: LinkRegistry) -> object: ...


@dataclass
class LinkSummary:
    """
    Outcome of a linking pass.

    Attributes:
        mode: Install mode the pass ran in.
        projects_linked: Number of projects linked.
        registry: Local links recorded during the pass.
    """

    mode: InstallMode
    projects_linked: int
    registry: LinkRegistry


class LinkManager:
    """
    Links every project of a monorepo.

    Attributes:
        configuration: The monorepo configuration.
        parallelism: Number of projects linked at once.
        debug: Print classic-mode package trees.

    Example:
        ```python
        config = RepoConfiguration.load(Path("monolink.toml"))
        summary = LinkManager(config, parallelism=4).link()
        print(summary.registry.to_dict())
        ```
    """

    def __init__(
        self,
        configuration: RepoConfiguration,
        lockfile: Optional[LockfileAccessor] = None,
        parallelism: int = 1,
        debug: bool = False,
        console: Optional[Console] = None,
    ):
        if parallelism < 1:
            raise ValueError(f"parallelism must be at least 1, got {parallelism}")
        self.configuration = configuration
        self.parallelism = parallelism
        self.debug = debug
        self._lockfile = lockfile
        self._console = console
        self._count_lock = threading.Lock()
        self._projects_linked = 0
        self._failed = threading.Event()

    def link(self) -> LinkSummary:
        """
        Run the pass and write the link summary file.

        Raises:
            LinkConsistencyError: On the first inconsistency in any project.
            ConfigurationError: If the lockfile cannot be parsed.
        """
        registry = LinkRegistry()
        self._projects_linked = 0
        self._failed.clear()
        mode = self.configuration.install_mode

        if self.configuration.projects:
            linker = self._create_linker(self._load_lockfile())
            self._link_all(linker, registry)
        else:
            logger.warning(
                "Nothing to do. Add at least one project to the [[projects]] "
                "section of the configuration."
            )

        logger.info(f"Writing {self.configuration.link_json_path}")
        registry.save(self.configuration.link_json_path)

        return LinkSummary(mode=mode, projects_linked=self._projects_linked, registry=registry)

    def _load_lockfile(self) -> LockfileAccessor:
        if self._lockfile is not None:
            return self._lockfile

        # The temp copy is used since the committed lockfile may lag behind
        path = self.configuration.shrinkwrap_path
        lockfile = PnpmShrinkwrapFile.load_from_file(path)
        if lockfile is None:
            raise LinkConsistencyError(f"Cannot load shrinkwrap at {path}", path=path)
        return lockfile

    def _create_linker(self, lockfile: LockfileAccessor) -> ProjectLinker:
        if self.configuration.install_mode == InstallMode.WORKSPACE:
            return WorkspaceLinker(self.configuration, lockfile)
        return ClassicLinker(self.configuration, lockfile, debug=self.debug, console=self._console)

    def _link_all(self, linker: ProjectLinker, registry: LinkRegistry) -> None:
        projects = self.configuration.projects

        if self.parallelism == 1:
            for project in projects:
                self._link_one(linker, project, registry)
            return

        with ThreadPoolExecutor(max_workers=self.parallelism) as executor:
            futures = [
                executor.submit(self._link_one, linker, project, registry)
                for project in projects
            ]
            for future in as_completed(futures):
                error = future.exception()
                if error is not None:
                    # Queued projects never start; in-flight ones finish first
                    executor.shutdown(wait=True, cancel_futures=True)
                    raise error

    def _link_one(self, linker: ProjectLinker, project: RepoProject, registry: LinkRegistry) -> None:
        # A worker may pick up a project before the pool is shut down
        if self._failed.is_set():
            logger.debug(f"Skipping {project.package_name}: the pass has already failed")
            return
        try:
            linker.link_project(project, registry)
        except Exception as e:
            self._failed.set()
            logger.error(f"Failed to link '{project.package_name}': {e}")
            raise
        with self._count_lock:
            self._projects_linked += 1
