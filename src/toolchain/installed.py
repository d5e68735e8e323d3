"""Registry of toolchains usable on this machine.

Managed toolchains live under ``<home>/installed/cpython/<version>`` and are
recognized by their ownership marker file; discovered toolchains are found by
probing the python executables on the search path.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional

import semantic_version

from common.fs_utils import atomic_write_text
from common.paths import PathsProvider
from constants import Constants, Provenance
from versioning.models import VersionSpec
from .probe import find_python_executables, probe_interpreter_version

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstalledToolchain:
    """A usable interpreter: its version and the directory holding its executables."""
    version: semantic_version.Version
    location: str
    provenance: Provenance = Provenance.MANAGED

    @property
    def is_managed(self) -> bool:
        return self.provenance == Provenance.MANAGED

    def __str__(self) -> str:
        return f"Python {self.version} ({self.location}, {self.provenance.value})"


def install_root(location: str) -> str:
    """Directory holding the ownership marker for an executables ``location``."""
    if os.path.isfile(os.path.join(location, Constants.INFO_FILE)):
        return location
    return os.path.dirname(location.rstrip("/\\")) or location


def is_managed_location(location: str) -> bool:
    return os.path.isfile(os.path.join(install_root(location), Constants.INFO_FILE))


def _is_shims_directory(directory: str, shims_dir: str) -> bool:
    return os.path.normcase(os.path.realpath(directory)) == os.path.normcase(os.path.realpath(shims_dir))


def _sort_key(toolchain: InstalledToolchain):
    return toolchain.version


class InstalledToolchainRegistry:
    """Enumerate, look up and record installed toolchains.

    Scans are lazy and cached on the instance: the managed directory is
    listed once and the search path is probed once, the first time each is
    needed. ``register`` and ``forget`` keep the cached view current.
    """

    def __init__(
        self,
        paths: Optional[PathsProvider] = None,
        search_paths: Optional[List[str]] = None,
        prober: Callable[[str], Optional[semantic_version.Version]] = probe_interpreter_version,
    ):
        self.paths = paths or PathsProvider()
        self._search_paths = search_paths
        self._prober = prober
        self._managed: Optional[List[InstalledToolchain]] = None
        self._discovered: Optional[List[InstalledToolchain]] = None

    # ---------- scanning ----------

    def managed(self) -> List[InstalledToolchain]:
        """Managed toolchains, newest first."""
        if self._managed is None:
            self._managed = self._scan_managed()
        return list(self._managed)

    def discovered(self) -> List[InstalledToolchain]:
        """Discovered toolchains in search path order."""
        if self._discovered is None:
            self._discovered = self._scan_discovered()
        return list(self._discovered)

    def list(self) -> List[InstalledToolchain]:
        """All toolchains: managed (newest first) followed by discovered ones."""
        return self.managed() + self.discovered()

    def _scan_managed(self) -> List[InstalledToolchain]:
        root = self.paths.installed
        if not os.path.isdir(root):
            return []
        found = []
        for name in sorted(os.listdir(root)):
            install_dir = os.path.join(root, name)
            if not os.path.isdir(install_dir):
                continue
            if not os.path.isfile(os.path.join(install_dir, Constants.INFO_FILE)):
                logger.debug("Skipping %s: no %s marker (incomplete install?)", install_dir, Constants.INFO_FILE)
                continue
            try:
                version = semantic_version.Version(name)
            except ValueError:
                logger.debug("Skipping %s: directory name is not a version", install_dir)
                continue
            bin_dir = os.path.join(install_dir, "bin")
            location = bin_dir if os.path.isdir(bin_dir) else install_dir
            found.append(InstalledToolchain(version, location, Provenance.MANAGED))
        found.sort(key=_sort_key, reverse=True)
        return found

    def _scan_discovered(self) -> List[InstalledToolchain]:
        search_paths = self._search_paths if self._search_paths is not None else self.paths.search_paths()
        shims_dir = self.paths.shims
        seen = set()
        found = []
        for directory in search_paths:
            if not os.path.isdir(directory):
                continue
            if _is_shims_directory(directory, shims_dir):
                logger.debug("Skipping shims directory %s", directory)
                continue
            if is_managed_location(directory):
                continue
            for executable in find_python_executables(directory):
                version = self._prober(executable)
                if version is None:
                    continue
                key = (str(version), os.path.normcase(os.path.abspath(directory)))
                if key in seen:
                    continue
                seen.add(key)
                found.append(InstalledToolchain(version, directory, Provenance.DISCOVERED))
        return found

    # ---------- queries ----------

    def find(self, version: semantic_version.Version, *, managed_only: bool = False) -> Optional[InstalledToolchain]:
        """Return the toolchain with exactly ``version``; managed entries win."""
        for toolchain in self.managed():
            if toolchain.version == version:
                return toolchain
        if managed_only:
            return None
        for toolchain in self.discovered():
            if toolchain.version == version:
                return toolchain
        return None

    def best_match(self, spec: VersionSpec) -> Optional[InstalledToolchain]:
        """Most preferred toolchain matching ``spec``; managed wins equal versions."""
        best = spec.select_best(self.managed(), key=_sort_key)
        discovered = spec.select_best(self.discovered(), key=_sort_key)
        if best is None or (discovered is not None and discovered.version > best.version):
            return discovered
        return best

    def latest(self) -> Optional[InstalledToolchain]:
        """Fallback toolchain when nothing is selected.

        The highest managed toolchain when any exists, otherwise the highest
        discovered one (first in search order on ties).
        """
        managed = self.managed()
        if managed:
            return managed[0]
        best = None
        for toolchain in self.discovered():
            if best is None or toolchain.version > best.version:
                best = toolchain
        return best

    # ---------- mutation ----------

    def register(self, version: semantic_version.Version, install_dir: str) -> InstalledToolchain:
        """Record ``install_dir`` as the managed toolchain for ``version``.

        Writes the ownership marker atomically; this is the commit point of an
        install.
        """
        marker = os.path.join(install_dir, Constants.INFO_FILE)
        stamp = datetime.now(timezone.utc).isoformat()
        atomic_write_text(
            marker,
            f"Python {version} installed using {Constants.EXECUTABLE_NAME} version {Constants.VERSION} on {stamp}\n",
        )
        bin_dir = os.path.join(install_dir, "bin")
        location = bin_dir if os.path.isdir(bin_dir) else install_dir
        toolchain = InstalledToolchain(version, location, Provenance.MANAGED)
        if self._managed is not None:
            self._managed = [t for t in self._managed if t.version != version]
            self._managed.append(toolchain)
            self._managed.sort(key=_sort_key, reverse=True)
        logger.debug("Registered %s", toolchain)
        return toolchain

    def forget(self, version: semantic_version.Version, location: str) -> bool:
        """Drop the ownership marker of the managed install at ``location``.

        ``location`` may be the install directory or its executables
        directory. Discovered toolchains carry no marker and are never
        touched. Returns True if a marker was removed.
        """
        marker = os.path.join(install_root(location), Constants.INFO_FILE)
        if not os.path.isfile(marker):
            return False
        os.unlink(marker)
        if self._managed is not None:
            self._managed = [t for t in self._managed if t.version != version]
        logger.debug("Forgot Python %s at %s", version, location)
        return True
