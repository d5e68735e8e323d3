"""Filesystem access used by version file discovery.

The resolver only needs a handful of read-only queries; routing them through
this object lets tests substitute an in-memory tree.
"""
from __future__ import annotations

import os
from typing import Optional


class LocalFilesystem:
    """Read-only view of the real filesystem."""

    def is_file(self, path: str) -> bool:
        return os.path.isfile(path)

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def read_text(self, path: str) -> str:
        with open(path, encoding="utf-8") as f:
            return f.read()

    def realpath(self, path: str) -> str:
        return os.path.realpath(path)

    def parent(self, path: str) -> Optional[str]:
        """Return the parent directory, or None at the filesystem root."""
        parent = os.path.dirname(path)
        if not parent or parent == path:
            return None
        return parent
