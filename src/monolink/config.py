"""
Global Constants for the linking engine.

Folder and file names shared between the linkers, the store path resolver
and the materializer. The store layout names must match what pnpm creates
on disk, so they are not configurable.
"""

# --- Filesystem layout ---
NODE_MODULES_FOLDER = "node_modules"
PACKAGE_JSON_FILENAME = "package.json"

# Folder under the common temp folder holding the flattened temp manifests
TEMP_PROJECTS_FOLDER = "projects"

# --- pnpm store roots ---
# pnpm < 4 installs local tarballs under node_modules/.local
LEGACY_STORE_FOLDER = ".local"
# pnpm >= 4 moved them under node_modules/.pnpm/local
VIRTUAL_STORE_FOLDER = ".pnpm"
VIRTUAL_STORE_LOCAL_FOLDER = "local"
VIRTUAL_STORE_MIN_MAJOR = 4

# Lockfile references to local tarballs use this URI scheme
TARBALL_SCHEME = "file:"

# Dependency specifiers using this prefix point at another workspace project
WORKSPACE_SPECIFIER_PREFIX = "workspace:"
# Resolved lockfile versions using this prefix are links to local folders
LINK_VERSION_PREFIX = "link:"

# --- monolink defaults ---
DEFAULT_CONFIG_FILENAME = "monolink.toml"
DEFAULT_TEMP_SCOPE = "@monolink-temp"
DEFAULT_COMMON_TEMP_FOLDER = "common/temp"
DEFAULT_SHRINKWRAP_FILENAME = "pnpm-lock.yaml"
DEFAULT_LINK_JSON_FILENAME = "monolink-link.json"

# Per-project incremental build state
PROJECT_STATE_FOLDER = ".monolink"
PROJECT_TEMP_FOLDER = "temp"
DEPENDENCY_MANIFEST_FILENAME = "shrinkwrap-deps.json"
