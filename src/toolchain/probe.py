"""Interpreter probing: find python executables and ask them their version."""
from __future__ import annotations

import logging
import os
import subprocess
from typing import Iterable, List, Optional

import semantic_version

from constants import Constants
from versioning.parser import parse_interpreter_output

logger = logging.getLogger(__name__)


def executable_filename(name: str) -> str:
    """Platform spelling of an executable name."""
    if os.name == "nt" and not name.lower().endswith(".exe"):
        return name + ".exe"
    return name


def is_executable_file(path: str) -> bool:
    return os.path.isfile(path) and os.access(path, os.X_OK)


def find_python_executables(directory: str, names: Optional[Iterable[str]] = None) -> List[str]:
    """Return the python executables present in ``directory``, in probe order."""
    found = []
    for name in names or Constants.PROBE_EXECUTABLES:
        candidate = os.path.join(directory, executable_filename(name))
        if is_executable_file(candidate):
            found.append(candidate)
    return found


def probe_interpreter_version(
    executable: str, timeout: Optional[float] = None
) -> Optional[semantic_version.Version]:
    """Run ``<executable> -V`` and parse the reported version.

    Python 2 prints its version on stderr, so both streams are merged.

    Returns:
        The version, or None when the executable cannot be run, times out or
        prints something unparsable.
    """
    try:
        completed = subprocess.run(  # noqa: S603
            [executable, "-V"],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            timeout=timeout if timeout is not None else Constants.VERSION_PROBE_TIMEOUT,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        logger.debug("Failed to probe %s: %s", executable, exc)
        return None
    version = parse_interpreter_output(completed.stdout or "")
    if version is None:
        logger.debug("Unparsable version output from %s: %r", executable, completed.stdout)
    return version
