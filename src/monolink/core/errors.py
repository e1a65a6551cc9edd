"""
Error types raised by the linking engine.

Only two error kinds exist. A ``LinkConsistencyError`` means something that
must exist (a configured project, a lockfile entry, a store symlink) does
not, and always aborts the whole pass. A ``ConfigurationError`` means the
monorepo configuration or lockfile could not be read at all.
"""

from pathlib import Path
from typing import Optional


class LinkConsistencyError(Exception):
    """
    Raised when the configuration, lockfile and pnpm store disagree.

    Attributes:
        message: Human-readable error message.
        project: Package name of the project being linked, if known.
        dependency: Name of the dependency that failed, if known.
        path: Filesystem path involved in the failure, if any.
    """

    def __init__(
        self,
        message: str,
        project: Optional[str] = None,
        dependency: Optional[str] = None,
        path: Optional[Path] = None,
    ):
        self.message = message
        self.project = project
        self.dependency = dependency
        self.path = path
        super().__init__(self._format())

    def _format(self) -> str:
        context = []
        if self.project:
            context.append(f"project={self.project}")
        if self.dependency:
            context.append(f"dependency={self.dependency}")
        if self.path:
            context.append(f"path={self.path}")
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


class ConfigurationError(ValueError):
    """Raised when monolink.toml, a package.json or the lockfile is malformed."""
