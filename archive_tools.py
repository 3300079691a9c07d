"""
Archive Tools
Extraction helpers for zip and tar release archives
"""

import tarfile
import zipfile
from pathlib import Path, PurePosixPath

from addon_config import ARCHIVE_EXTENSIONS
from addon_errors import AddonError


def is_archive(name):
    """Check whether a filename carries a supported archive extension."""
    return bool(name) and name.lower().endswith(ARCHIVE_EXTENSIONS)


def _is_zip(archive_path):
    return str(archive_path).lower().endswith('.zip')


def extract_all(archive_path, destination):
    """Extract every entry of an archive, overwriting existing files.

    Args:
        archive_path: Path - Zip or tar archive
        destination: Path - Target directory, created if missing

    Returns:
        Path - The destination directory
    """
    destination = Path(destination)
    destination.mkdir(parents=True, exist_ok=True)
    try:
        if _is_zip(archive_path):
            with zipfile.ZipFile(archive_path, 'r') as zip_ref:
                zip_ref.extractall(destination)
        else:
            with tarfile.open(archive_path, 'r:*') as tar_ref:
                tar_ref.extractall(destination, filter='data')
    except (zipfile.BadZipFile, tarfile.TarError) as e:
        raise AddonError(f'{Path(archive_path).name} is not a valid archive: {e}') from e
    return destination


def list_members(archive_path):
    """List the file entries of an archive (directories excluded)."""
    if _is_zip(archive_path):
        with zipfile.ZipFile(archive_path, 'r') as zip_ref:
            return [info.filename for info in zip_ref.infolist() if not info.is_dir()]
    with tarfile.open(archive_path, 'r:*') as tar_ref:
        return [member.name for member in tar_ref.getmembers() if member.isfile()]


def _read_member(archive_path, member):
    if _is_zip(archive_path):
        with zipfile.ZipFile(archive_path, 'r') as zip_ref:
            return zip_ref.read(member)
    with tarfile.open(archive_path, 'r:*') as tar_ref:
        handle = tar_ref.extractfile(member)
        return handle.read()


def extract_members(archive_path, names, destination):
    """Extract the first entry matching each filename into a flat directory.

    Matching is by basename, case-insensitive, so companions are found no
    matter how deep the archive nests them. Names with no matching entry
    are skipped.

    Args:
        archive_path: Path - Zip or tar archive
        names: iterable of str - Filenames to extract
        destination: Path - Directory receiving the files

    Returns:
        list - Paths written
    """
    members = list_members(archive_path)
    written = []
    for name in names:
        wanted = name.lower()
        match = next((m for m in members if PurePosixPath(m).name.lower() == wanted), None)
        if match is None:
            continue
        target = Path(destination) / name
        target.write_bytes(_read_member(archive_path, match))
        written.append(target)
    return written


def find_member(archive_path, subpath, filename):
    """Locate an entry by conventional subpath, else by basename.

    The subpath is tried at the archive root and then under the archive's
    single top-level folder, if it has one. Otherwise the first entry (in
    sorted order) whose basename matches is returned.

    Args:
        archive_path: Path - Zip or tar archive
        subpath: Optional str - Conventional location such as 'bin/dinput8.dll'
        filename: str - Basename to fall back on

    Returns:
        str - Archive member name, or None if nothing matches
    """
    members = sorted(list_members(archive_path))
    by_lower = {str(PurePosixPath(m)).lower(): m for m in members}

    if subpath:
        wanted = subpath.lower()
        if wanted in by_lower:
            return by_lower[wanted]
        parts = [PurePosixPath(m).parts for m in members]
        tops = {p[0] for p in parts}
        if len(tops) == 1 and all(len(p) > 1 for p in parts):
            nested = f'{tops.pop()}/{subpath}'.lower()
            if nested in by_lower:
                return by_lower[nested]

    wanted = filename.lower()
    return next((m for m in members if PurePosixPath(m).name.lower() == wanted), None)
