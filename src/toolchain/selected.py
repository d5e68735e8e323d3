"""Active toolchain resolution for a working directory.

A project pins its interpreter with a ``.python-version`` file holding either
a version spec or a path to an interpreter (file or directory). Without a
file the newest installed toolchain is used.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import semantic_version

from common.filesystem import LocalFilesystem
from common.fs_utils import atomic_write_text
from constants import Constants, Provenance
from errors import (
    EmptyVersionFile,
    InvalidToolchainPath,
    MalformedVersionSpec,
    NothingInstalled,
    ResolutionError,
    VersionNotInstalled,
)
from versioning.models import SpecKind, VersionSpec
from versioning.parser import exact_spec, parse_spec
from .installed import InstalledToolchain, InstalledToolchainRegistry
from .probe import find_python_executables, probe_interpreter_version

logger = logging.getLogger(__name__)


class VersionFileKind(Enum):
    VERSION = "version"
    PATH = "path"


@dataclass(frozen=True)
class ProjectVersionFile:
    """Parsed content of a project version file."""
    location: str
    kind: VersionFileKind
    spec: Optional[VersionSpec] = None
    path: Optional[str] = None

    def describe(self) -> str:
        return self.spec.render() if self.spec is not None else str(self.path)


@dataclass(frozen=True)
class Selection:
    """Outcome of resolution, kept even when it failed, for listing commands."""
    version_file: Optional[ProjectVersionFile]
    toolchain: Optional[InstalledToolchain]
    error: Optional[ResolutionError] = None

    @property
    def is_installed(self) -> bool:
        return self.toolchain is not None


def find_version_file(start_directory: str, fs=None, walk_up: Optional[bool] = None) -> Optional[str]:
    """Locate the project version file for ``start_directory``.

    Args:
        start_directory: Directory to start from.
        fs: Filesystem view (``is_file``/``parent``); defaults to the real one.
        walk_up: Also search parent directories; defaults to Constants.WALK_UP.

    Returns:
        Path of the nearest version file, or None.
    """
    fs = fs or LocalFilesystem()
    walk_up = Constants.WALK_UP if walk_up is None else walk_up
    directory: Optional[str] = start_directory
    while directory is not None:
        candidate = os.path.join(directory, Constants.TOOLCHAIN_FILE)
        if fs.is_file(candidate):
            return candidate
        if not walk_up:
            break
        directory = fs.parent(directory)
    return None


def load_version_file(location: str, fs=None) -> ProjectVersionFile:
    """Read and classify a version file (first line only).

    Raises:
        EmptyVersionFile: the first line is blank.
        InvalidToolchainPath: the value looks like a path that does not exist.
        MalformedVersionSpec: the value is neither a spec nor a path.
    """
    fs = fs or LocalFilesystem()
    lines = fs.read_text(location).splitlines()
    value = lines[0].strip() if lines else ""
    if not value:
        raise EmptyVersionFile(location)

    try:
        spec = parse_spec(value)
    except MalformedVersionSpec as exc:
        spec_error = exc
    else:
        return ProjectVersionFile(location=location, kind=VersionFileKind.VERSION, spec=spec)

    path = os.path.expanduser(value)
    if not os.path.isabs(path):
        path = os.path.join(os.path.dirname(location), path)
    if fs.exists(path):
        return ProjectVersionFile(location=location, kind=VersionFileKind.PATH, path=fs.realpath(path))
    if os.sep in value or "/" in value or value.startswith(("~", ".")):
        raise InvalidToolchainPath(path, f"does not exist (from {location})")
    raise spec_error


def save_version_file(
    directory: str,
    *,
    version: Optional[semantic_version.Version] = None,
    path: Optional[str] = None,
) -> str:
    """Write ``=X.Y.Z`` or an interpreter path to ``directory``'s version file."""
    if (version is None) == (path is None):
        raise ValueError("exactly one of version or path is required")
    content = exact_spec(version).render() if version is not None else os.path.abspath(path)
    location = os.path.join(directory, Constants.TOOLCHAIN_FILE)
    atomic_write_text(location, content + "\n")
    logger.info("Wrote %s to %s", content, location)
    return location


def toolchain_from_path(
    path: str,
    prober: Callable[[str], Optional[semantic_version.Version]] = probe_interpreter_version,
) -> InstalledToolchain:
    """Probe an interpreter file, or the pythons inside a directory.

    Raises:
        InvalidToolchainPath: nothing there reports a version.
    """
    path = os.path.realpath(path)
    if os.path.isdir(path):
        candidates = find_python_executables(path)
        if not candidates:
            raise InvalidToolchainPath(path, "no python executable in directory")
    elif os.path.isfile(path):
        candidates = [path]
    else:
        raise InvalidToolchainPath(path, "does not exist")

    best = None
    for executable in candidates:
        version = prober(executable)
        if version is not None and (best is None or version > best[0]):
            best = (version, executable)
    if best is None:
        raise InvalidToolchainPath(path, "could not determine the interpreter version")
    return InstalledToolchain(best[0], os.path.dirname(best[1]), Provenance.DISCOVERED)


class ActiveToolchainResolver:
    """Decide which toolchain a working directory uses. Never touches the network."""

    def __init__(
        self,
        registry: InstalledToolchainRegistry,
        fs=None,
        walk_up: Optional[bool] = None,
        prober: Callable[[str], Optional[semantic_version.Version]] = probe_interpreter_version,
    ):
        self.registry = registry
        self.fs = fs or LocalFilesystem()
        self.walk_up = walk_up
        self._prober = prober

    def version_file(self, working_directory: str) -> Optional[ProjectVersionFile]:
        location = find_version_file(working_directory, self.fs, self.walk_up)
        if location is None:
            return None
        logger.debug("Using version file %s", location)
        return load_version_file(location, self.fs)

    def resolve(self, working_directory: str) -> InstalledToolchain:
        """Return the active toolchain for ``working_directory``.

        Raises:
            ParseError: the version file cannot be read as a spec or path.
            ResolutionError: the selection cannot be satisfied.
        """
        return self._resolve_file(self.version_file(working_directory))

    def selection(self, working_directory: str) -> Selection:
        """Like ``resolve`` but reports resolution failures instead of raising.

        Parse errors still propagate; an unusable file is not a selection.
        """
        version_file = self.version_file(working_directory)
        try:
            toolchain = self._resolve_file(version_file)
        except ResolutionError as exc:
            return Selection(version_file, None, exc)
        return Selection(version_file, toolchain)

    def resolve_spec(self, text: str) -> InstalledToolchain:
        """Resolve an explicit override: a spec, or an interpreter path."""
        try:
            spec = parse_spec(text)
        except MalformedVersionSpec:
            if self.fs.exists(text):
                return toolchain_from_path(text, self._prober)
            raise
        return self._from_spec(spec, None)

    def _resolve_file(self, version_file: Optional[ProjectVersionFile]) -> InstalledToolchain:
        if version_file is None:
            toolchain = self.registry.latest()
            if toolchain is None:
                raise NothingInstalled()
            logger.debug("No version file, using latest installed %s", toolchain)
            return toolchain
        if version_file.kind == VersionFileKind.PATH:
            return toolchain_from_path(version_file.path, self._prober)
        return self._from_spec(version_file.spec, version_file.location)

    def _from_spec(self, spec: VersionSpec, location: Optional[str]) -> InstalledToolchain:
        if spec.kind == SpecKind.EXACT:
            toolchain = self.registry.find(spec.version)
        else:
            toolchain = self.registry.best_match(spec)
        if toolchain is None:
            raise VersionNotInstalled(spec.version if spec.kind == SpecKind.EXACT else spec, location)
        return toolchain
