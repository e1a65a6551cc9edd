"""
Store Path Resolver.

Maps a temp project's lockfile key to the folder where pnpm installed that
exact package and peer combination. The folder name must match pnpm's own
naming byte for byte:

    UriEncode(<absolute path to the .tgz, with / separators>) + <suffix>

where the suffix is whatever the full dependency key carries after the
tarball reference (a peer disambiguator such as ``_jsdom@11.12.0`` or a
hash), appended without encoding. Examples:

    tarball: file:projects/app.tgz
    key:     file:projects/app.tgz_jsdom@11.12.0
    folder:  %2Frepo%2Fcommon%2Ftemp%2Fprojects%2Fapp.tgz_jsdom@11.12.0

The folder lives under one of two roots depending on the pnpm major version
(see https://github.com/pnpm/pnpm/releases/tag/v4.0.0):

    pnpm < 4:   <temp>/node_modules/.local/<folder>/node_modules
    pnpm >= 4:  <temp>/node_modules/.pnpm/local/<folder>/node_modules
"""

import os
from pathlib import Path
from urllib.parse import quote

from ..config import (
    LEGACY_STORE_FOLDER,
    NODE_MODULES_FOLDER,
    TARBALL_SCHEME,
    VIRTUAL_STORE_FOLDER,
    VIRTUAL_STORE_LOCAL_FOLDER,
    VIRTUAL_STORE_MIN_MAJOR,
)


def uri_encode(value: str) -> str:
    """
    Strict URI component encoding.

    Escapes everything except ``A-Z a-z 0-9 - _ . ~`` with upper-case hex,
    which is what encodeURIComponent plus escaping of ``!'()*`` produces.
    """
    return quote(value, safe="")


def get_tarball_absolute_path(common_temp_folder: Path, tarball_ref: str) -> Path:
    """
    Resolve a ``file:`` tarball reference against the common temp folder.

    Raises:
        ValueError: If the reference does not use the ``file:`` scheme.
    """
    if not tarball_ref.startswith(TARBALL_SCHEME):
        raise ValueError(f"Tarball reference must start with '{TARBALL_SCHEME}': {tarball_ref}")
    relative = tarball_ref[len(TARBALL_SCHEME):]
    return Path(os.path.normpath(os.path.join(common_temp_folder, relative)))


def get_folder_name_suffix(tarball_ref: str, dependency_key: str) -> str:
    """
    Extract the unencoded suffix pnpm appends to the store folder name.

    Returns an empty string when the key is just the tarball reference.
    """
    if len(dependency_key) > len(tarball_ref) and dependency_key.startswith(tarball_ref):
        return dependency_key[len(tarball_ref):]
    return ""


def get_store_folder_name(absolute_tarball_path: Path, suffix: str) -> str:
    slashed = str(absolute_tarball_path).replace(os.sep, "/")
    return uri_encode(slashed) + suffix


def get_store_root(common_temp_folder: Path, package_manager_major: int) -> Path:
    """Folder holding the per-tarball installations for this pnpm version."""
    if package_manager_major >= VIRTUAL_STORE_MIN_MAJOR:
        return (
            common_temp_folder
            / NODE_MODULES_FOLDER
            / VIRTUAL_STORE_FOLDER
            / VIRTUAL_STORE_LOCAL_FOLDER
        )
    return common_temp_folder / NODE_MODULES_FOLDER / LEGACY_STORE_FOLDER


def resolve_store_folder(
    common_temp_folder: Path,
    tarball_ref: str,
    dependency_key: str,
    package_manager_major: int,
) -> Path:
    """
    Compute the ``node_modules`` folder pnpm created for a temp project.

    Every direct dependency of the temp project has a symlink directly
    inside the returned folder.

    Args:
        common_temp_folder: Absolute path of the shared temp folder.
        tarball_ref: The entry's ``resolution.tarball``, e.g. ``file:projects/app.tgz``.
        dependency_key: The temp project's full key in the lockfile.
        package_manager_major: Major version of the pnpm that installed.

    Returns:
        Absolute path ending in ``node_modules``.

    Raises:
        ValueError: If ``tarball_ref`` is not a ``file:`` reference.
    """
    absolute_tarball = get_tarball_absolute_path(common_temp_folder, tarball_ref)
    suffix = get_folder_name_suffix(tarball_ref, dependency_key)
    folder_name = get_store_folder_name(absolute_tarball, suffix)
    return get_store_root(common_temp_folder, package_manager_major) / folder_name / NODE_MODULES_FOLDER
