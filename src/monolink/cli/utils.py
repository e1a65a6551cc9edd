"""
CLI Utilities - Shared helper functions for command line operations.
"""

from pathlib import Path

from ..config import DEFAULT_CONFIG_FILENAME
from ..core.repo_config import RepoConfiguration

CONFIG_OPTION_HELP = f"Path to the monorepo configuration (default: ./{DEFAULT_CONFIG_FILENAME})"


def load_configuration(config_path: str | None) -> RepoConfiguration:
    """
    Load the monorepo configuration from an explicit path or the current directory.

    Args:
        config_path (str | None): Explicit path given on the command line.

    Raises:
        ConfigurationError: If the file is missing or invalid.
    """
    path = Path(config_path) if config_path else Path.cwd() / DEFAULT_CONFIG_FILENAME
    return RepoConfiguration.load(path)
