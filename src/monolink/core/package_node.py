"""
Package Node tree.

A PackageNode is one resolved package instance in a project's
``node_modules`` layout: the project itself, another monorepo project, or an
external package installed by pnpm. Each node is exactly one of three kinds,
fixed at construction:

- VIRTUAL: the flattened temp manifest of a project; never materialized.
- FOLDER: a real directory (a project root, or an intermediate folder).
- SYMLINK: a link at ``folder_path`` pointing at ``symlink_target_folder_path``.

Trees are built fresh for every linking pass and discarded after the
materializer has written them to disk.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Iterator, List, Optional

from rich.console import Console
from rich.tree import Tree

from .package_json import PackageJson


class NodeKind(StrEnum):
    """How a node is realized on disk."""

    VIRTUAL = "virtual"
    FOLDER = "folder"
    SYMLINK = "symlink"


@dataclass
class PackageNode:
    """
    A node in a project's package tree.

    Attributes:
        name: Package name (unique among siblings).
        version: Resolved version, or the project's own version for roots.
        folder_path: Absolute path of this node's ``node_modules`` entry.
        kind: How the node is realized on disk.
        symlink_target_folder_path: Link target; set if and only if
            ``kind`` is SYMLINK.
        package_json: The parsed manifest, for VIRTUAL nodes only.
        children: Direct dependencies in declaration order.
    """

    name: str
    version: str
    folder_path: Path
    kind: NodeKind
    symlink_target_folder_path: Optional[Path] = None
    package_json: Optional[PackageJson] = None
    children: List["PackageNode"] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Package node name must not be empty")
        if self.kind == NodeKind.SYMLINK and self.symlink_target_folder_path is None:
            raise ValueError(f"Symlink node '{self.name}' requires a target folder")
        if self.kind != NodeKind.SYMLINK and self.symlink_target_folder_path is not None:
            raise ValueError(f"Only symlink nodes may have a target folder ('{self.name}')")
        if self.kind == NodeKind.VIRTUAL and self.package_json is None:
            raise ValueError(f"Virtual node '{self.name}' requires a package.json")

    @classmethod
    def create_virtual_temp_package(
        cls, package_json_path: Path, install_folder_path: Path
    ) -> "PackageNode":
        """
        Create the read-only node for a project's flattened temp manifest.

        Args:
            package_json_path: Path to the temp package.json.
            install_folder_path: Folder pnpm installed the temp package into.

        Raises:
            ConfigurationError: If the temp package.json cannot be read.
        """
        package_json = PackageJson.load(package_json_path)
        return cls(
            name=package_json.name,
            version=package_json.version,
            folder_path=install_folder_path,
            kind=NodeKind.VIRTUAL,
            package_json=package_json,
        )

    @classmethod
    def create_linked_package(
        cls,
        name: str,
        version: str,
        folder_path: Path,
        symlink_target: Optional[Path] = None,
    ) -> "PackageNode":
        """
        Create a node that will be materialized on disk.

        The node is a SYMLINK when ``symlink_target`` is given, otherwise a
        real FOLDER.
        """
        return cls(
            name=name,
            version=version,
            folder_path=folder_path,
            kind=NodeKind.SYMLINK if symlink_target is not None else NodeKind.FOLDER,
            symlink_target_folder_path=symlink_target,
        )

    @property
    def is_symlink(self) -> bool:
        return self.kind == NodeKind.SYMLINK

    def add_child(self, child: "PackageNode") -> None:
        """
        Append a direct dependency.

        Raises:
            ValueError: If this node is a symlink (its children come from the
                link target), or a sibling with the same name exists.
        """
        if self.kind == NodeKind.SYMLINK:
            raise ValueError(f"Cannot add children to symlink node '{self.name}'")
        if self.get_child(child.name) is not None:
            raise ValueError(f"Duplicate dependency '{child.name}' under '{self.name}'")
        self.children.append(child)

    def get_child(self, name: str) -> Optional["PackageNode"]:
        for child in self.children:
            if child.name == name:
                return child
        return None

    def walk(self) -> Iterator["PackageNode"]:
        """Yield this node and all descendants, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_rich_tree(self) -> Tree:
        tree = Tree(self._label())
        self._add_branches(tree)
        return tree

    def print_tree(self, console: Optional[Console] = None) -> None:
        """Render the tree for debugging."""
        (console or Console()).print(self.to_rich_tree())

    def _add_branches(self, tree: Tree) -> None:
        for child in self.children:
            branch = tree.add(child._label())
            child._add_branches(branch)

    def _label(self) -> str:
        label = f"[cyan]{self.name}[/cyan]@{self.version}"
        if self.symlink_target_folder_path is not None:
            label += f" [dim]→ {self.symlink_target_folder_path}[/dim]"
        return label
