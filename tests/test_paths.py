"""Tests for the on-disk layout."""

import os

from common.paths import PathsProvider
from constants import Constants


def test_home_from_environment(tmp_path):
    paths = PathsProvider(environ={Constants.ENV_HOME: str(tmp_path / "rig")})
    assert paths.project_home == str(tmp_path / "rig")


def test_default_home():
    paths = PathsProvider(environ={})
    assert paths.project_home == os.path.join(os.path.expanduser("~"), ".pyrig")


def test_layout(tmp_path):
    home = str(tmp_path / "home")
    paths = PathsProvider(home=home, environ={})
    assert paths.config_file == os.path.join(home, "config.yml")
    assert paths.default_extra_package_file == os.path.join(home, "extra-packages-to-install.txt")
    assert paths.downloaded == os.path.join(home, "cache", "downloaded")
    assert paths.extracted == os.path.join(home, "cache", "extracted")
    assert paths.available_toolchains_cache_file == os.path.join(home, "cache", "available_toolchains.json")
    assert paths.install_dir("3.7.3") == os.path.join(home, "installed", "cpython", "3.7.3")
    assert paths.logs == os.path.join(home, "logs")
    assert paths.shims == os.path.join(home, "shims")


def test_search_paths_from_path_variable(tmp_path):
    raw = os.pathsep.join(["/usr/local/bin", "", "/usr/bin"])
    paths = PathsProvider(home=str(tmp_path), environ={"PATH": raw})
    assert paths.search_paths() == ["/usr/local/bin", "/usr/bin"]


def test_search_paths_from_config(tmp_path):
    Constants.PROBE_PATHS = ["/opt/python/bin"]
    paths = PathsProvider(home=str(tmp_path), environ={"PATH": "/usr/bin"})
    assert paths.search_paths() == ["/opt/python/bin"]
