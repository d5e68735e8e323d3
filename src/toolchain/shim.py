"""Shim dispatch: hand an interpreter-family command over to the real binary."""
from __future__ import annotations

import logging
import os
import subprocess
import sys
from typing import Callable, Iterable, List, Optional

from constants import Constants
from errors import ExecutableNotFound
from .installed import InstalledToolchain
from .probe import is_executable_file

logger = logging.getLogger(__name__)


def is_shim_invocation(argv0: str) -> bool:
    """True when the manager was started under another name (through a shim)."""
    name = os.path.basename(argv0).lower()
    return not name.startswith(Constants.EXECUTABLE_NAME)


def command_with_major_version(command: str, toolchain: InstalledToolchain) -> str:
    """``python`` -> ``python3`` for a 3.x toolchain; ``python3``/``pip2`` unchanged.

    On Windows the digit goes before the ``.exe`` suffix.
    """
    major = str(toolchain.version.major)
    if os.name == "nt":
        stem, ext = os.path.splitext(command)
        if ext.lower() != ".exe":
            stem, ext = command, ".exe"
        if stem.endswith(("2", "3")):
            return stem + ext
        return f"{stem}{major}{ext}"
    if command.endswith(("2", "3")):
        return command
    return command + major


def _candidate_names(command: str, toolchain: InstalledToolchain) -> List[str]:
    names = [command_with_major_version(command, toolchain)]
    bare = command
    if os.name == "nt" and not bare.lower().endswith(".exe"):
        bare += ".exe"
    if bare not in names:
        names.append(bare)
    return names


def _same_directory(a: str, b: str) -> bool:
    return os.path.normcase(os.path.realpath(a)) == os.path.normcase(os.path.realpath(b))


def find_executable(command: str, toolchain: InstalledToolchain, shims_dir: Optional[str] = None) -> str:
    """Path of ``command`` inside ``toolchain``.

    Raises:
        ExecutableNotFound: not present, or it would resolve into the shims
            directory (which would recurse into ourselves).
    """
    if shims_dir and _same_directory(toolchain.location, shims_dir):
        raise ExecutableNotFound(command, f"{toolchain.location} (shims directory)")
    for name in _candidate_names(command, toolchain):
        candidate = os.path.join(toolchain.location, name)
        if is_executable_file(candidate):
            return candidate
    raise ExecutableNotFound(command, toolchain.location)


def dispatch(
    command: str,
    arguments: List[str],
    toolchain: InstalledToolchain,
    *,
    shims_dir: Optional[str] = None,
    execv: Callable = os.execv,
    call: Callable = subprocess.call,
) -> int:
    """Run ``command`` from ``toolchain`` with ``arguments`` forwarded verbatim.

    On POSIX the current process is replaced and this only returns when
    ``execv`` is substituted; on Windows a child runs and its exit status is
    returned.
    """
    executable = find_executable(command, toolchain, shims_dir)
    logger.debug("Dispatching %s -> %s %s", command, executable, arguments)
    argv = [executable] + list(arguments)
    sys.stdout.flush()
    sys.stderr.flush()
    if os.name == "nt":
        return call(argv)
    execv(executable, argv)
    return 0


class ShimLinker:
    """Create shim entries pointing at the manager launcher."""

    def __init__(self, shims_dir: str, launcher: Optional[str] = None):
        self.shims_dir = shims_dir
        self.launcher = launcher or os.path.join(shims_dir, Constants.EXECUTABLE_NAME)

    def link(self, names: Iterable[str]) -> List[str]:
        """Hard-link the launcher under each new name; existing shims are kept.

        Returns:
            Paths of the shims created.
        """
        if not os.path.isfile(self.launcher):
            logger.warning("Launcher %s not found, cannot create shims", self.launcher)
            return []
        os.makedirs(self.shims_dir, exist_ok=True)
        created = []
        for name in names:
            target = os.path.join(self.shims_dir, os.path.basename(name))
            if os.path.lexists(target):
                continue
            try:
                os.link(self.launcher, target)
            except OSError as exc:
                logger.warning("Failed to create shim %s: %s", target, exc)
                continue
            logger.info("Created shim %s", target)
            created.append(target)
        return created
