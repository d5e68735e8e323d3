"""Locations of everything pyrig keeps on disk."""
from __future__ import annotations

import os
from typing import List, Optional

from constants import Constants


class PathsProvider:
    """Resolve the pyrig home directory and the layout beneath it.

    The home is ``$PYRIG_HOME`` when set (relative values are taken from the
    current directory), else ``~/.pyrig``. Pass ``home`` explicitly to bypass
    the environment, which is what tests do.
    """

    def __init__(self, home: Optional[str] = None, environ=None):
        self._environ = os.environ if environ is None else environ
        self._home = home

    @property
    def project_home(self) -> str:
        if self._home:
            return os.path.abspath(self._home)
        from_env = self._environ.get(Constants.ENV_HOME)
        if from_env:
            return os.path.abspath(from_env)
        return os.path.join(os.path.expanduser("~"), Constants.DEFAULT_DOT_DIR)

    @property
    def config_file(self) -> str:
        return os.path.join(self.project_home, Constants.CONFIG_FILE)

    @property
    def default_extra_package_file(self) -> str:
        return os.path.join(self.project_home, Constants.EXTRA_PACKAGES_FILENAME)

    @property
    def cache(self) -> str:
        return os.path.join(self.project_home, "cache")

    @property
    def downloaded(self) -> str:
        return os.path.join(self.cache, "downloaded")

    @property
    def extracted(self) -> str:
        return os.path.join(self.cache, "extracted")

    @property
    def available_toolchains_cache_file(self) -> str:
        return os.path.join(self.cache, Constants.AVAILABLE_TOOLCHAIN_CACHE)

    @property
    def installed(self) -> str:
        return os.path.join(self.project_home, "installed", Constants.IMPLEMENTATION)

    @property
    def logs(self) -> str:
        return os.path.join(self.project_home, "logs")

    @property
    def shims(self) -> str:
        return os.path.join(self.project_home, "shims")

    def install_dir(self, version) -> str:
        return os.path.join(self.installed, str(version))

    def bin_dir(self, version) -> str:
        """Executable directory of a managed install (``Scripts``-less layouts use the root)."""
        install_dir = self.install_dir(version)
        bin_dir = os.path.join(install_dir, "bin")
        if os.name == "nt" and not os.path.isdir(bin_dir):
            return install_dir
        return bin_dir

    def search_paths(self) -> List[str]:
        """Directories probed for system interpreters (PATH by default)."""
        if Constants.PROBE_PATHS:
            return [os.path.expanduser(p) for p in Constants.PROBE_PATHS]
        raw = self._environ.get("PATH", "")
        return [p for p in raw.split(os.pathsep) if p]
