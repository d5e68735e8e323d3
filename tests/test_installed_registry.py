"""Tests for the installed toolchain registry."""

import os

import pytest
import semantic_version

from constants import Constants, Provenance
from toolchain.installed import InstalledToolchainRegistry, install_root
from versioning.parser import parse_spec

from conftest import managed_install, write_executable

pytestmark = pytest.mark.skipif(os.name == "nt", reason="POSIX executable layout")


def V(text):
    return semantic_version.Version(text)


class FakeProber:
    """Answers versions by executable path and records calls."""

    def __init__(self, versions):
        self.versions = {k: V(v) for k, v in versions.items()}
        self.calls = []

    def __call__(self, executable):
        self.calls.append(executable)
        return self.versions.get(executable)


class TestManagedScan:
    """Managed installs under the home directory."""

    def test_lists_marked_installs_descending(self, paths):
        managed_install(paths, "3.7.3")
        managed_install(paths, "3.10.1")
        managed_install(paths, "3.8.0")
        registry = InstalledToolchainRegistry(paths, search_paths=[])
        assert [str(t.version) for t in registry.list()] == ["3.10.1", "3.8.0", "3.7.3"]
        assert all(t.provenance == Provenance.MANAGED for t in registry.list())
        assert registry.list()[0].location == os.path.join(paths.install_dir("3.10.1"), "bin")

    def test_skips_unmarked_and_non_version_dirs(self, paths):
        managed_install(paths, "3.7.3", marker=False)
        managed_install(paths, "3.8.0")
        os.makedirs(os.path.join(paths.installed, "not-a-version"))
        registry = InstalledToolchainRegistry(paths, search_paths=[])
        assert [str(t.version) for t in registry.list()] == ["3.8.0"]

    def test_location_without_bin(self, paths):
        install_dir = managed_install(paths, "3.8.0", with_bin=False)
        registry = InstalledToolchainRegistry(paths, search_paths=[])
        assert registry.managed()[0].location == install_dir

    def test_missing_root(self, paths):
        assert InstalledToolchainRegistry(paths, search_paths=[]).list() == []


class TestDiscoveredProbe:
    """Interpreters found on the search path."""

    def test_probe_order_and_dedupe(self, paths, tmp_path):
        first = tmp_path / "usr" / "bin"
        second = tmp_path / "opt" / "bin"
        py = write_executable(first / "python")
        py3 = write_executable(first / "python3")
        other = write_executable(second / "python3")
        prober = FakeProber({py: "3.8.10", py3: "3.8.10", other: "3.11.2"})
        registry = InstalledToolchainRegistry(paths, search_paths=[str(first), str(second)], prober=prober)
        found = registry.discovered()
        assert [(str(t.version), t.location) for t in found] == [("3.8.10", str(first)), ("3.11.2", str(second))]
        assert all(t.provenance == Provenance.DISCOVERED for t in found)

    def test_shims_directory_skipped(self, paths):
        shim_python = write_executable(os.path.join(paths.shims, "python"))
        prober = FakeProber({shim_python: "3.9.0"})
        registry = InstalledToolchainRegistry(paths, search_paths=[paths.shims], prober=prober)
        assert registry.discovered() == []
        assert prober.calls == []

    def test_unparsable_and_missing_dirs_ignored(self, paths, tmp_path):
        broken = write_executable(tmp_path / "bin" / "python")
        prober = FakeProber({})
        registry = InstalledToolchainRegistry(
            paths, search_paths=[str(tmp_path / "missing"), str(tmp_path / "bin")], prober=prober
        )
        assert registry.discovered() == []
        assert prober.calls == [broken]

    def test_scans_are_cached(self, paths, tmp_path):
        py = write_executable(tmp_path / "bin" / "python3")
        prober = FakeProber({py: "3.9.0"})
        registry = InstalledToolchainRegistry(paths, search_paths=[str(tmp_path / "bin")], prober=prober)
        registry.list()
        registry.list()
        assert len(prober.calls) == 1


class TestQueries:
    """find / best_match / latest."""

    def _registry(self, paths, tmp_path, managed=(), discovered=()):
        for version in managed:
            managed_install(paths, version)
        versions = {}
        search = []
        for index, version in enumerate(discovered):
            directory = tmp_path / f"sys{index}"
            versions[write_executable(directory / "python3")] = version
            search.append(str(directory))
        return InstalledToolchainRegistry(paths, search_paths=search, prober=FakeProber(versions))

    def test_find_prefers_managed(self, paths, tmp_path):
        registry = self._registry(paths, tmp_path, managed=["3.8.0"], discovered=["3.8.0"])
        assert registry.find(V("3.8.0")).provenance == Provenance.MANAGED

    def test_find_falls_back_to_discovered(self, paths, tmp_path):
        registry = self._registry(paths, tmp_path, managed=["3.8.0"], discovered=["3.6.9"])
        assert registry.find(V("3.6.9")).provenance == Provenance.DISCOVERED
        assert registry.find(V("3.6.9"), managed_only=True) is None

    def test_find_managed_only_skips_probe(self, paths, tmp_path):
        registry = self._registry(paths, tmp_path, managed=["3.8.0"], discovered=["3.6.9"])
        registry.find(V("3.8.0"), managed_only=True)
        assert registry._prober.calls == []

    def test_latest_prefers_managed(self, paths, tmp_path):
        registry = self._registry(paths, tmp_path, managed=["3.7.3"], discovered=["3.12.0"])
        assert registry.latest().version == V("3.7.3")

    def test_latest_discovered_first_on_ties(self, paths, tmp_path):
        registry = self._registry(paths, tmp_path, discovered=["3.9.1", "3.11.0", "3.11.0"])
        latest = registry.latest()
        assert latest.version == V("3.11.0")
        assert latest.location == str(tmp_path / "sys1")

    def test_latest_nothing(self, paths, tmp_path):
        assert self._registry(paths, tmp_path).latest() is None

    def test_best_match(self, paths, tmp_path):
        registry = self._registry(paths, tmp_path, managed=["3.7.3", "3.7.9"], discovered=["3.7.9", "3.8.1"])
        best = registry.best_match(parse_spec("~3.7"))
        assert best.version == V("3.7.9")
        assert best.provenance == Provenance.MANAGED
        assert registry.best_match(parse_spec("latest")).version == V("3.8.1")
        assert registry.best_match(parse_spec("~3.5")) is None


class TestRegistration:
    """register / forget."""

    def test_register_writes_marker_and_updates_view(self, paths):
        registry = InstalledToolchainRegistry(paths, search_paths=[])
        assert registry.list() == []
        install_dir = paths.install_dir("3.9.0")
        write_executable(os.path.join(install_dir, "bin", "python3"))
        toolchain = registry.register(V("3.9.0"), install_dir)
        assert toolchain.location == os.path.join(install_dir, "bin")
        with open(os.path.join(install_dir, Constants.INFO_FILE), encoding="utf-8") as f:
            assert f.read().startswith("Python 3.9.0 installed using pyrig version")
        assert registry.find(V("3.9.0"), managed_only=True) == toolchain
        assert InstalledToolchainRegistry(paths, search_paths=[]).find(V("3.9.0")) == toolchain

    def test_forget_removes_marker(self, paths):
        install_dir = managed_install(paths, "3.8.0")
        registry = InstalledToolchainRegistry(paths, search_paths=[])
        toolchain = registry.find(V("3.8.0"))
        assert registry.forget(toolchain.version, toolchain.location)
        assert registry.list() == []
        assert not os.path.exists(os.path.join(install_dir, Constants.INFO_FILE))
        assert os.path.isdir(install_dir)

    def test_forget_ignores_discovered(self, paths, tmp_path):
        directory = tmp_path / "usr" / "bin"
        directory.mkdir(parents=True)
        registry = InstalledToolchainRegistry(paths, search_paths=[])
        assert registry.forget(V("3.8.0"), str(directory)) is False

    def test_install_root(self, paths):
        install_dir = managed_install(paths, "3.8.0")
        assert install_root(os.path.join(install_dir, "bin")) == install_dir
        assert install_root(install_dir) == install_dir
