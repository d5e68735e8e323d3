"""Archive extraction into the shared ``cache/extracted`` directory.

Each archive is unpacked into a private temporary directory next to its final
place, the completion marker is written, and the tree is renamed into place.
A tree without the marker is an interrupted extraction and gets removed.
"""
from __future__ import annotations

import logging
import os
import shutil
import tarfile
import tempfile
import zipfile
from typing import List

from common.fs_utils import remove_path
from constants import Constants
from errors import ExtractionFailed

logger = logging.getLogger(__name__)

_SUFFIXES = (".tar.gz", ".tgz", ".tar.bz2", ".tbz2", ".tar.xz", ".txz", ".tar", ".zip")


def archive_stem(filename: str) -> str:
    """``Python-3.7.3.tgz`` -> ``Python-3.7.3``."""
    name = os.path.basename(filename)
    lower = name.lower()
    for suffix in _SUFFIXES:
        if lower.endswith(suffix):
            return name[: -len(suffix)]
    return os.path.splitext(name)[0]


def _check_member_name(name: str, archive: str) -> None:
    normalized = name.replace("\\", "/")
    if normalized.startswith("/") or os.path.isabs(name) or (len(name) > 1 and name[1] == ":"):
        raise ExtractionFailed(archive, f"member {name!r} has an absolute path")
    if ".." in normalized.split("/"):
        raise ExtractionFailed(archive, f"member {name!r} escapes the extraction directory")


def _extract_tar(archive: str, destination: str) -> None:
    with tarfile.open(archive, "r:*") as tar:
        members = tar.getmembers()
        for member in members:
            _check_member_name(member.name, archive)
            if member.islnk() or member.issym():
                target = member.linkname if member.islnk() else os.path.join(
                    os.path.dirname(member.name), member.linkname
                )
                _check_member_name(os.path.normpath(target), archive)
        if hasattr(tarfile, "data_filter"):
            tar.extractall(destination, members=members, filter="data")
        else:
            tar.extractall(destination, members=members)  # noqa: S202


def _extract_zip(archive: str, destination: str) -> None:
    with zipfile.ZipFile(archive) as zf:
        for name in zf.namelist():
            _check_member_name(name, archive)
        zf.extractall(destination)


def extract_archive(archive: str, destination: str) -> None:
    """Unpack a tar (gz/bz2/xz) or zip archive into ``destination``.

    Raises:
        ExtractionFailed: unreadable archive or unsafe member names.
    """
    try:
        if zipfile.is_zipfile(archive):
            _extract_zip(archive, destination)
        elif tarfile.is_tarfile(archive):
            _extract_tar(archive, destination)
        else:
            raise ExtractionFailed(archive, "unknown archive format")
    except (tarfile.TarError, zipfile.BadZipFile, OSError) as exc:
        raise ExtractionFailed(archive, str(exc)) from exc


def is_extracted(tree: str) -> bool:
    return os.path.isfile(os.path.join(tree, Constants.EXTRACTED_MARKER))


def source_root(tree: str) -> str:
    """The single top-level directory of ``tree`` if there is one, else ``tree``."""
    entries: List[str] = [e for e in os.listdir(tree) if e != Constants.EXTRACTED_MARKER]
    if len(entries) == 1 and os.path.isdir(os.path.join(tree, entries[0])):
        return os.path.join(tree, entries[0])
    return tree


class Extractor:
    """Extract archives under ``extracted_dir`` with convergent concurrent runs."""

    def __init__(self, extracted_dir: str):
        self.extracted_dir = extracted_dir

    def tree_for(self, archive: str) -> str:
        return os.path.join(self.extracted_dir, archive_stem(archive))

    def ensure_extracted(self, archive: str, force: bool = False) -> str:
        """Extract ``archive`` unless a complete tree already exists.

        With ``force`` the existing tree is removed first, even when another
        install of the same version is still building from it; that install
        then fails and has to be re-run.

        Returns:
            The source root inside the extraction tree.
        """
        tree = self.tree_for(archive)
        if is_extracted(tree) and not force:
            logger.info("Archive %s already extracted in %s, skipping", os.path.basename(archive), tree)
            return source_root(tree)
        if os.path.lexists(tree) and (force or not is_extracted(tree)):
            logger.debug("Removing previous extraction %s", tree)
            remove_path(tree)

        os.makedirs(self.extracted_dir, exist_ok=True)
        staging = tempfile.mkdtemp(dir=self.extracted_dir, prefix=f".{os.path.basename(tree)}.")
        try:
            logger.info("Extracting %s", archive)
            extract_archive(archive, staging)
            with open(os.path.join(staging, Constants.EXTRACTED_MARKER), "w", encoding="utf-8") as f:
                f.write(archive + "\n")
            try:
                os.rename(staging, tree)
            except OSError:
                if not is_extracted(tree):
                    raise
                # Another install finished the same extraction first.
                logger.debug("Extraction of %s completed concurrently, discarding ours", tree)
        finally:
            if os.path.isdir(staging):
                shutil.rmtree(staging, ignore_errors=True)
        return source_root(tree)
