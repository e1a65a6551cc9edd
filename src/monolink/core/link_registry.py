"""
Link Registry.

Collects which local projects each project links to directly, and writes
the summary file consumed by the rest of the build system:

    {
      "localLinks": {
        "app": ["core", "utils"]
      }
    }

Projects may be linked from several threads, so every mutation happens
under a lock. The order of one project's links is the order they were
declared in; the order of projects is not significant.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Dict, List


class LinkRegistry:
    """Thread-safe ``localLinks`` map."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._local_links: Dict[str, List[str]] = {}

    def add_local_link(self, project_name: str, dependency_name: str) -> None:
        """
        Record that ``project_name`` links directly to ``dependency_name``.

        Recording the same pair again has no effect.
        """
        with self._lock:
            links = self._local_links.setdefault(project_name, [])
            if dependency_name not in links:
                links.append(dependency_name)

    def get_local_links(self, project_name: str) -> List[str]:
        with self._lock:
            return list(self._local_links.get(project_name, []))

    def to_dict(self) -> Dict[str, Dict[str, List[str]]]:
        with self._lock:
            return {"localLinks": {name: list(links) for name, links in self._local_links.items()}}

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
            f.write("\n")

    @classmethod
    def load(cls, path: Path) -> "LinkRegistry":
        """
        Read a previously written summary file.

        Raises:
            ValueError: If the file is not a valid link summary.
        """
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Failed to parse {path}: {e}")

        local_links = data.get("localLinks") if isinstance(data, dict) else None
        if not isinstance(local_links, dict):
            raise ValueError(f"{path} has no 'localLinks' mapping")

        registry = cls()
        for project_name, links in local_links.items():
            for dependency_name in links:
                registry.add_local_link(project_name, dependency_name)
        return registry

    def __len__(self) -> int:
        with self._lock:
            return len(self._local_links)
