"""
Unit tests for pnpm lockfile access.
"""

from pathlib import Path

import pytest
import yaml

from monolink.core.errors import ConfigurationError
from monolink.core.lockfile import PnpmShrinkwrapFile

LOCKFILE = {
    "lockfileVersion": 5.1,
    "dependencies": {
        "@monolink-temp/app": "file:projects/app.tgz_jsdom@11.12.0",
    },
    "importers": {
        "../../apps/web": {
            "dependencies": {"react": "16.13.1"},
            "devDependencies": {"jest": "26.0.0"},
            "optionalDependencies": {"fsevents": "2.1.3"},
        },
        "../../apps/new-format": {
            "dependencies": {"react": {"specifier": "^16.0.0", "version": "16.13.1"}},
        },
    },
    "packages": {
        "file:projects/app.tgz_jsdom@11.12.0": {
            "resolution": {"tarball": "file:projects/app.tgz"},
            "dependencies": {"left-pad": "1.3.0"},
            "optionalDependencies": {"fsevents": "2.1.3"},
        },
        "/left-pad/1.3.0": {"resolution": {"integrity": "sha512-abc"}},
        "/react-dom/16.13.1_react@16.13.1": {
            "resolution": {"integrity": "sha512-dom"},
            "peerDependencies": {"react": "^16.0.0"},
        },
    },
}


@pytest.fixture
def lockfile(tmp_path) -> PnpmShrinkwrapFile:
    path = tmp_path / "pnpm-lock.yaml"
    path.write_text(yaml.safe_dump(LOCKFILE))
    return PnpmShrinkwrapFile.load_from_file(path)


class TestLoad:
    def test_missing_file_returns_none(self, tmp_path):
        assert PnpmShrinkwrapFile.load_from_file(tmp_path / "pnpm-lock.yaml") is None

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "pnpm-lock.yaml"
        path.write_text("packages: [unclosed")
        with pytest.raises(ConfigurationError, match="Failed to parse"):
            PnpmShrinkwrapFile.load_from_file(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "pnpm-lock.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError, match="does not contain a mapping"):
            PnpmShrinkwrapFile.load_from_file(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "pnpm-lock.yaml"
        path.write_text("")
        lockfile = PnpmShrinkwrapFile.load_from_file(path)
        assert lockfile.get_temp_project_dependency_key("@monolink-temp/app") is None


class TestClassicQueries:
    def test_temp_project_dependency_key(self, lockfile):
        assert (
            lockfile.get_temp_project_dependency_key("@monolink-temp/app")
            == "file:projects/app.tgz_jsdom@11.12.0"
        )
        assert lockfile.get_temp_project_dependency_key("@monolink-temp/missing") is None

    def test_tarball_path(self, lockfile):
        assert lockfile.get_tarball_path("file:projects/app.tgz_jsdom@11.12.0") == "file:projects/app.tgz"
        assert lockfile.get_tarball_path("/left-pad/1.3.0") is None
        assert lockfile.get_tarball_path("file:projects/unknown.tgz") is None

    def test_shrinkwrap_entry_from_key(self, lockfile):
        entry = lockfile.get_shrinkwrap_entry_from_temp_project_dependency_key(
            "file:projects/app.tgz_jsdom@11.12.0"
        )
        assert entry.dependencies == {"left-pad": "1.3.0"}
        assert entry.optional_dependencies == {"fsevents": "2.1.3"}

    def test_shrinkwrap_entry_by_name_and_version(self, lockfile):
        assert lockfile.get_shrinkwrap_entry("left-pad", "1.3.0").resolution.integrity == "sha512-abc"
        assert lockfile.get_shrinkwrap_entry("left-pad", "9.9.9") is None

    def test_shrinkwrap_entry_with_peer_suffix_and_package_id(self, lockfile):
        entry = lockfile.get_shrinkwrap_entry("react-dom", "16.13.1_react@16.13.1")
        assert entry.peer_dependencies == {"react": "^16.0.0"}
        same = lockfile.get_shrinkwrap_entry("react-dom", "/react-dom/16.13.1_react@16.13.1")
        assert same == entry


class TestWorkspaceQueries:
    def test_workspace_key_uses_forward_slashes(self, lockfile):
        key = lockfile.get_workspace_key_by_path(Path("/repo/common/temp"), Path("/repo/apps/web"))
        assert key == "../../apps/web"

    def test_importer(self, lockfile):
        importer = lockfile.get_workspace_importer("../../apps/web")
        assert importer.dependencies == {"react": "16.13.1"}
        assert importer.dev_dependencies == {"jest": "26.0.0"}
        assert importer.optional_dependencies == {"fsevents": "2.1.3"}

    def test_importer_with_specifier_mappings(self, lockfile):
        importer = lockfile.get_workspace_importer("../../apps/new-format")
        assert importer.dependencies == {"react": "16.13.1"}

    def test_missing_importer(self, lockfile):
        assert lockfile.get_workspace_importer("../../apps/nope") is None
