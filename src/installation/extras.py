"""Extra packages installed with pip right after a toolchain install."""
from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Callable, Iterable, List, Optional, Set

from common.process import run_logged_command, step_log_filename
from errors import PyrigError
from versioning.parser import to_cpython_string

logger = logging.getLogger(__name__)


class ExtrasSource(Enum):
    """Which extras file(s) to read."""
    NONE = "none"
    DEFAULT_FILE = "default"
    FILE = "file"
    BOTH = "both"

    @classmethod
    def from_flags(cls, use_default: bool, extras_file: Optional[str]) -> "ExtrasSource":
        if use_default and extras_file:
            return cls.BOTH
        if use_default:
            return cls.DEFAULT_FILE
        if extras_file:
            return cls.FILE
        return cls.NONE


class ExtrasFileError(PyrigError):
    """An extras file could not be read."""


def load_extra_packages(path: str) -> List[str]:
    """Package names from a newline-delimited file; blank and ``#`` lines are ignored."""
    try:
        with open(path, encoding="utf-8") as f:
            lines = f.read().splitlines()
    except OSError as exc:
        raise ExtrasFileError(f"Cannot read extras file {path}: {exc}") from exc
    names = []
    for line in lines:
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        names.append(line)
    return names


def dedupe(names: Iterable[str]) -> List[str]:
    """Remove duplicates, keeping the first occurrence."""
    seen: Set[str] = set()
    result = []
    for name in names:
        if name not in seen:
            seen.add(name)
            result.append(name)
    return result


def collect_extras(source: ExtrasSource, default_file: str, extras_file: Optional[str]) -> List[str]:
    """Package list for ``source``: default file first, then the given file."""
    names: List[str] = []
    if source in (ExtrasSource.DEFAULT_FILE, ExtrasSource.BOTH):
        if os.path.isfile(default_file):
            names.extend(load_extra_packages(default_file))
        else:
            logger.warning("Default extras file %s does not exist", default_file)
    if source in (ExtrasSource.FILE, ExtrasSource.BOTH) and extras_file:
        names.extend(load_extra_packages(extras_file))
    return dedupe(names)


class DirectoryMonitor:
    """Report files that appeared in a directory since the monitor was created."""

    def __init__(self, directory: str):
        self.directory = directory
        self._known = self._snapshot()

    def _snapshot(self) -> Set[str]:
        if not os.path.isdir(self.directory):
            return set()
        return {
            name for name in os.listdir(self.directory)
            if os.path.isfile(os.path.join(self.directory, name))
        }

    def check(self) -> List[str]:
        """Names added since the previous check (or creation)."""
        current = self._snapshot()
        added = sorted(current - self._known)
        self._known = current
        return added


def python_for_pip(bin_dir: str, version) -> str:
    name = f"python{version.major}"
    if os.name == "nt":
        candidate = os.path.join(bin_dir, name + ".exe")
        return candidate if os.path.isfile(candidate) else os.path.join(bin_dir, "python.exe")
    return os.path.join(bin_dir, name)


def install_extras(
    packages: List[str],
    bin_dir: str,
    version,
    logs_dir: str,
    runner: Callable[..., int] = run_logged_command,
) -> List[str]:
    """``python -m pip install --upgrade`` each package; failures become warnings.

    Returns:
        One warning message per failed package.
    """
    python = python_for_pip(bin_dir, version)
    warnings = []
    for index, package in enumerate(packages, start=1):
        step = f"[{index}/{len(packages)}] pip install --upgrade {package}"
        log_path = os.path.join(logs_dir, step_log_filename(to_cpython_string(version), step))
        exit_code = runner(
            [python, "-m", "pip", "install", "--upgrade", package],
            cwd=bin_dir,
            log_path=log_path,
            step=step,
        )
        if exit_code != 0:
            message = f"Failed to pip install {package} (exit status {exit_code}, see {log_path})"
            logger.warning(message)
            warnings.append(message)
    return warnings
