"""
Symlink Materializer.

Writes a project's PackageNode tree to disk. The project's ``node_modules``
folder is purged first, so running twice on the same tree leaves the same
filesystem state.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from ..config import NODE_MODULES_FOLDER
from .package_node import NodeKind, PackageNode

logger = logging.getLogger(__name__)


def create_symlinks_for_project(root: PackageNode) -> None:
    """
    Realize a project's tree under ``<project>/node_modules``.

    Args:
        root: The project's root node (a FOLDER node for the project folder).

    Raises:
        ValueError: If ``root`` is not a FOLDER node.
        OSError: If a link or folder cannot be created.
    """
    if root.kind != NodeKind.FOLDER:
        raise ValueError(f"'{root.name}' is not a top-level project folder")

    node_modules = root.folder_path / NODE_MODULES_FOLDER
    logger.debug(f"Purging {node_modules}")
    _remove_path(node_modules)

    if not root.children:
        return

    node_modules.mkdir(parents=True, exist_ok=True)
    for child in root.children:
        _create_symlinks_for_dependencies(child)


def _create_symlinks_for_dependencies(node: PackageNode) -> None:
    if node.kind == NodeKind.VIRTUAL:
        return

    if node.kind == NodeKind.SYMLINK:
        _create_symlink(node.symlink_target_folder_path, node.folder_path)
        return

    node.folder_path.mkdir(parents=True, exist_ok=True)
    for child in node.children:
        _create_symlinks_for_dependencies(child)


def _create_symlink(target: Path, link_path: Path) -> None:
    """Create ``link_path`` pointing at ``target``, replacing whatever is there."""
    # Scoped packages live one folder deeper (node_modules/@scope/name)
    link_path.parent.mkdir(parents=True, exist_ok=True)
    _remove_path(link_path)
    os.symlink(target, link_path, target_is_directory=True)
    logger.debug(f"Linked {link_path} -> {target}")


def _remove_path(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)
