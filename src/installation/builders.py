"""Builders turning an extracted release into an installation directory.

``SourceBuilder`` compiles a CPython source tree (configure, make, make
install); ``PrebuiltCopyBuilder`` copies an already built distribution. The
pipeline picks one per install with ``select_builder``.
"""
from __future__ import annotations

import logging
import os
import platform as _platform
import shutil
import uuid
from typing import Callable, List, Optional

from common.fs_utils import atomic_write_text
from common.process import run_logged_command, step_log_filename
from constants import Constants
from errors import BuildFailed
from versioning.models import ReleaseArtifact
from versioning.parser import to_cpython_string

logger = logging.getLogger(__name__)

# "###" stands for MAJOR.MINOR in the names `make install` produces.
UNVERSIONED_PATTERNS = [
    "easy_install-###",
    "idle###",
    "pip###",
    "pydoc###",
    "python###",
    "python###m",
    "python###m-config",
    "python###-config",
    "pyvenv-###",
]


def is_built(install_dir: str) -> bool:
    return os.path.isfile(os.path.join(install_dir, Constants.BUILT_MARKER))


def _replace_link(source: str, destination: str) -> None:
    if os.path.exists(destination) and os.path.samefile(source, destination):
        return
    tmp = f"{destination}.{uuid.uuid4().hex}.tmp"
    os.link(source, tmp)
    try:
        os.replace(tmp, destination)
    except OSError:
        os.unlink(tmp)
        raise
    if os.path.lexists(tmp):
        # rename is a no-op when both names already point at the same file
        os.unlink(tmp)


def link_unversioned_binaries(bin_dir: str, version) -> List[str]:
    """Hard-link ``python3``/``python`` style names to the ``python3.7`` binaries.

    Missing sources are skipped (not every release ships every tool).

    Returns:
        The created link paths.
    """
    major_minor = f"{version.major}.{version.minor}"
    major = str(version.major)
    created = []
    for pattern in UNVERSIONED_PATTERNS:
        source = os.path.join(bin_dir, pattern.replace("###", major_minor))
        if not os.path.isfile(source):
            logger.debug("Source %s not found, not linking it", source)
            continue
        for name in (pattern.replace("-###", major).replace("###", major), pattern.replace("-###", "").replace("###", "")):
            destination = os.path.join(bin_dir, name)
            if destination == source:
                continue
            _replace_link(source, destination)
            created.append(destination)
    return created


class Builder:
    """Template for build strategies; subclasses implement ``_build``."""

    name = "builder"

    def build(self, source_dir: str, install_dir: str, version, *, force: bool = False) -> bool:
        """Build ``source_dir`` into ``install_dir``.

        Returns:
            False when an earlier build completed and ``force`` is not set.

        Raises:
            BuildFailed: a step failed; partial output is left for inspection.
        """
        if is_built(install_dir) and not force:
            logger.info("Python %s already built in %s, skipping build", version, install_dir)
            return False
        os.makedirs(install_dir, exist_ok=True)
        self._build(source_dir, install_dir, version)
        atomic_write_text(os.path.join(install_dir, Constants.BUILT_MARKER), f"{self.name}\n")
        return True

    def _build(self, source_dir: str, install_dir: str, version) -> None:
        raise NotImplementedError


class SourceBuilder(Builder):
    """configure / make / make install, each step logged to its own file."""

    name = "source"

    def __init__(
        self,
        logs_dir: str,
        *,
        optimized: bool = False,
        runner: Callable[..., int] = run_logged_command,
        system: Optional[str] = None,
    ):
        self.logs_dir = logs_dir
        self.optimized = optimized
        self._runner = runner
        self._system = system or _platform.system()

    def configure_command(self, install_dir: str) -> List[str]:
        cmd = ["./configure", f"--prefix={install_dir}", "--enable-shared"]
        if self.optimized:
            cmd.append("--enable-optimizations")
        return cmd

    def build_environment(self, install_dir: str) -> dict:
        env = {}
        if self._system == "Linux":
            # Shared builds must find libpython in the install prefix at runtime.
            ldflags = os.environ.get("LDFLAGS", "")
            env["LDFLAGS"] = f"{ldflags} -Wl,-rpath,{os.path.join(install_dir, 'lib')}".strip()
        return env

    def _build(self, source_dir: str, install_dir: str, version) -> None:
        env = self.build_environment(install_dir)
        steps = [
            ("Configure", self.configure_command(install_dir)),
            ("Make", ["make"]),
            ("Make install", ["make", "install"]),
        ]
        for index, (label, cmd) in enumerate(steps, start=1):
            step = f"[{index}/{len(steps)}] {label}"
            log_path = os.path.join(self.logs_dir, step_log_filename(to_cpython_string(version), step))
            exit_code = self._runner(cmd, cwd=source_dir, env=env, log_path=log_path, step=step)
            if exit_code != 0:
                raise BuildFailed(label, exit_code, log_path)
        link_unversioned_binaries(os.path.join(install_dir, "bin"), version)


class PrebuiltCopyBuilder(Builder):
    """Copy a prebuilt distribution tree into place."""

    name = "prebuilt"

    def _build(self, source_dir: str, install_dir: str, version) -> None:
        logger.info("Copying prebuilt Python %s into %s", version, install_dir)
        try:
            shutil.copytree(source_dir, install_dir, dirs_exist_ok=True)
        except (OSError, shutil.Error) as exc:
            raise BuildFailed("Copy", 1) from exc
        marker = os.path.join(install_dir, Constants.EXTRACTED_MARKER)
        if os.path.isfile(marker):
            os.unlink(marker)


def select_builder(
    artifact: ReleaseArtifact,
    logs_dir: str,
    *,
    optimized: bool = False,
    runner: Callable[..., int] = run_logged_command,
) -> Builder:
    if artifact.prebuilt:
        return PrebuiltCopyBuilder()
    return SourceBuilder(logs_dir, optimized=optimized, runner=runner)
