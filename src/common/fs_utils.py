"""Small filesystem helpers: atomic writes, digests and removal."""
from __future__ import annotations

import hashlib
import logging
import os
import shutil
import tempfile

from constants import Constants

logger = logging.getLogger(__name__)


def atomic_write_text(path: str, text: str) -> None:
    """Write ``text`` to ``path`` through a temp file and ``os.replace``.

    Readers see either the previous content or the new one, never a partial
    file.
    """
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=os.path.basename(path) + ".", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def split_checksum(checksum: str):
    """Split ``"<algorithm>:<hexdigest>"``; a bare digest defaults to sha256."""
    if ":" in checksum:
        algorithm, digest = checksum.split(":", 1)
        return algorithm.strip().lower(), digest.strip().lower()
    return Constants.DEFAULT_CHECKSUM_ALGORITHM, checksum.strip().lower()


def file_digest(path: str, algorithm: str = "sha256") -> str:
    """Return the hex digest of the file at ``path``."""
    hasher = hashlib.new(algorithm)
    with open(path, "rb") as f:
        for block in iter(lambda: f.read(Constants.HASH_CHUNK_SIZE), b""):
            hasher.update(block)
    return hasher.hexdigest()


def remove_path(path: str) -> None:
    """Remove a file or a directory tree if it exists."""
    if os.path.islink(path) or os.path.isfile(path):
        os.unlink(path)
    elif os.path.isdir(path):
        shutil.rmtree(path)
