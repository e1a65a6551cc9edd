"""
Unit tests for the incremental dependency manifest.
"""

import json

import pytest

from monolink.core.dependency_manifest import DependencyScope, ProjectDependencyManifest
from monolink.core.errors import LinkConsistencyError
from monolink.core.lockfile import PnpmShrinkwrapFile


def _lockfile(packages, dependencies=None):
    return PnpmShrinkwrapFile({"dependencies": dependencies or {}, "packages": packages})


def _manifest(tmp_path, lockfile):
    return ProjectDependencyManifest(lockfile, tmp_path / ".monolink" / "temp" / "deps.json", "app")


class TestAddDependency:
    def test_walks_transitive_dependencies(self, tmp_path):
        lockfile = _lockfile(
            {
                "/a/1.0.0": {"resolution": {"integrity": "sha-a"}, "dependencies": {"b": "2.0.0"}},
                "/b/2.0.0": {
                    "resolution": {"integrity": "sha-b"},
                    "dependencies": {"c": "3.0.0"},
                    "optionalDependencies": {"d": "4.0.0", "e": "5.0.0"},
                },
                "/c/3.0.0": {"resolution": {"integrity": "sha-c"}},
                "/d/4.0.0": {"resolution": {"integrity": "sha-d"}},
            }
        )
        manifest = _manifest(tmp_path, lockfile)

        manifest.add_dependency("a", "1.0.0", DependencyScope())

        # e@5.0.0 is optional and was not installed
        assert manifest.entries == {
            "a@1.0.0": "sha-a",
            "b@2.0.0": "sha-b",
            "c@3.0.0": "sha-c",
            "d@4.0.0": "sha-d",
        }

    def test_tarball_when_no_integrity(self, tmp_path):
        lockfile = _lockfile({"/a/1.0.0": {"resolution": {"tarball": "https://example.com/a.tgz"}}})
        manifest = _manifest(tmp_path, lockfile)

        manifest.add_dependency("a", "1.0.0", DependencyScope())

        assert manifest.entries == {"a@1.0.0": "https://example.com/a.tgz"}

    def test_cycles_terminate(self, tmp_path):
        lockfile = _lockfile(
            {
                "/a/1.0.0": {"resolution": {"integrity": "sha-a"}, "dependencies": {"b": "1.0.0"}},
                "/b/1.0.0": {"resolution": {"integrity": "sha-b"}, "dependencies": {"a": "1.0.0"}},
            }
        )
        manifest = _manifest(tmp_path, lockfile)

        manifest.add_dependency("a", "1.0.0", DependencyScope())

        assert set(manifest.entries) == {"a@1.0.0", "b@1.0.0"}

    def test_link_versions_are_skipped(self, tmp_path):
        manifest = _manifest(tmp_path, _lockfile({}))
        manifest.add_dependency("core", "link:../../libs/core", DependencyScope())
        assert manifest.entries == {}

    def test_missing_required_entry(self, tmp_path):
        manifest = _manifest(tmp_path, _lockfile({}))
        with pytest.raises(LinkConsistencyError, match="Unable to find dependency a with version 1.0.0"):
            manifest.add_dependency("a", "1.0.0", DependencyScope())

    def test_collision(self, tmp_path):
        lockfile = _lockfile({"/a/1.0.0": {"resolution": {"integrity": "sha-new"}}})
        manifest = _manifest(tmp_path, lockfile)
        manifest._entries["a@1.0.0"] = "sha-old"

        with pytest.raises(LinkConsistencyError, match="Collision: a@1.0.0"):
            manifest.add_dependency("a", "1.0.0", DependencyScope())


class TestPeers:
    PACKAGES = {
        "/react-dom/16.13.1": {
            "resolution": {"integrity": "sha-dom"},
            "peerDependencies": {"react": "^16.0.0"},
        },
        "/react/16.13.1": {"resolution": {"integrity": "sha-react-16.13"}},
        "/react/16.14.0": {"resolution": {"integrity": "sha-react-16.14"}},
    }

    def test_peer_from_parent_scope(self, tmp_path):
        manifest = _manifest(tmp_path, _lockfile(self.PACKAGES, {"react": "16.14.0"}))

        manifest.add_dependency(
            "react-dom", "16.13.1", DependencyScope(dependencies={"react": "16.13.1"})
        )

        assert manifest.entries["react@16.13.1"] == "sha-react-16.13"
        assert "react@16.14.0" not in manifest.entries

    def test_peer_from_top_level(self, tmp_path):
        manifest = _manifest(tmp_path, _lockfile(self.PACKAGES, {"react": "16.14.0"}))

        manifest.add_dependency("react-dom", "16.13.1", DependencyScope())

        assert manifest.entries["react@16.14.0"] == "sha-react-16.14"

    def test_unmet_peer_is_ignored(self, tmp_path):
        manifest = _manifest(tmp_path, _lockfile(self.PACKAGES))

        manifest.add_dependency("react-dom", "16.13.1", DependencyScope())

        assert manifest.entries == {"react-dom@16.13.1": "sha-dom"}

    def test_parent_scope_from_shrinkwrap_entry(self, tmp_path):
        packages = dict(self.PACKAGES)
        packages["file:projects/app.tgz"] = {
            "resolution": {"tarball": "file:projects/app.tgz"},
            "dependencies": {"react": "16.13.1", "react-dom": "16.13.1"},
        }
        lockfile = _lockfile(packages)
        parent = lockfile.get_shrinkwrap_entry_from_temp_project_dependency_key("file:projects/app.tgz")
        manifest = _manifest(tmp_path, lockfile)

        manifest.add_dependency("react-dom", "16.13.1", parent)

        assert "react@16.13.1" in manifest.entries


class TestPersistence:
    def test_save_writes_sorted_json(self, tmp_path):
        lockfile = _lockfile(
            {
                "/b/1.0.0": {"resolution": {"integrity": "sha-b"}},
                "/a/1.0.0": {"resolution": {"integrity": "sha-a"}},
            }
        )
        manifest = _manifest(tmp_path, lockfile)
        manifest.add_dependency("b", "1.0.0", DependencyScope())
        manifest.add_dependency("a", "1.0.0", DependencyScope())

        manifest.save()

        text = manifest.path.read_text()
        assert text.endswith("\n")
        assert list(json.loads(text)) == ["a@1.0.0", "b@1.0.0"]

    def test_delete_if_exists(self, tmp_path):
        manifest = _manifest(tmp_path, _lockfile({}))
        manifest.delete_if_exists()

        manifest.save()
        assert manifest.path.exists()
        manifest.delete_if_exists()
        assert not manifest.path.exists()
