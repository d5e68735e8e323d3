"""Shared fixtures for pyrig tests."""

import os
import stat

import pytest

from common.paths import PathsProvider
from constants import Constants


_TUNABLES = [
    "INDEX_URL",
    "CACHE_TTL_SEC",
    "REQUEST_TIMEOUT",
    "HTTP_RETRY_MAX",
    "HTTP_RETRY_BASE_DELAY_SEC",
    "PROBE_PATHS",
    "WALK_UP",
    "VERSION_PROBE_TIMEOUT",
]


@pytest.fixture(autouse=True)
def restore_constants():
    """Tests may override tunables on Constants; put them back afterwards."""
    saved = {name: getattr(Constants, name) for name in _TUNABLES}
    Constants.HTTP_RETRY_BASE_DELAY_SEC = 0
    yield
    for name, value in saved.items():
        setattr(Constants, name, value)


@pytest.fixture
def paths(tmp_path):
    """PathsProvider rooted in a temporary home directory."""
    return PathsProvider(home=str(tmp_path / "home"), environ={"PATH": ""})


def write_executable(path, content="#!/bin/sh\nexit 0\n"):
    """Create an executable file (parents included) and return its path."""
    path = str(path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
    os.chmod(path, os.stat(path).st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def fake_interpreter(path, version_output):
    """Shell script answering ``-V`` like a Python interpreter."""
    return write_executable(path, f'#!/bin/sh\necho "{version_output}"\n')


@pytest.fixture
def make_executable():
    return write_executable


@pytest.fixture
def make_interpreter():
    return fake_interpreter


def managed_install(paths, version, marker=True, with_bin=True):
    """Lay out a managed install (``bin/python3`` plus the ownership marker)."""
    install_dir = paths.install_dir(version)
    os.makedirs(install_dir, exist_ok=True)
    if with_bin:
        write_executable(os.path.join(install_dir, "bin", "python3"))
    if marker:
        with open(os.path.join(install_dir, Constants.INFO_FILE), "w", encoding="utf-8") as f:
            f.write("marker\n")
    return install_dir
