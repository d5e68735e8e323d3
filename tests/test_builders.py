"""Tests for source and prebuilt builders."""

import os

import pytest
import semantic_version

from constants import Constants
from errors import BuildFailed
from installation.builders import (
    PrebuiltCopyBuilder,
    SourceBuilder,
    is_built,
    link_unversioned_binaries,
    select_builder,
)
from versioning.models import ReleaseArtifact

from conftest import write_executable

pytestmark = pytest.mark.skipif(os.name == "nt", reason="POSIX build layout")

V386 = semantic_version.Version("3.8.6")


class RecordingRunner:
    """Stands in for run_logged_command; ``make install`` lays out a bin dir."""

    def __init__(self, fail_at=None, exit_code=2):
        self.calls = []
        self.fail_at = fail_at
        self.exit_code = exit_code

    def __call__(self, cmd, *, cwd, env=None, log_path=None, step=""):
        self.calls.append({"cmd": cmd, "cwd": cwd, "env": env, "log_path": log_path, "step": step})
        if self.fail_at and cmd[:len(self.fail_at)] == self.fail_at:
            return self.exit_code
        if cmd == ["make", "install"]:
            prefix = [a for a in self.calls[0]["cmd"] if a.startswith("--prefix=")][0][len("--prefix="):]
            write_executable(os.path.join(prefix, "bin", "python3.8"))
            write_executable(os.path.join(prefix, "bin", "pip3.8"))
        return 0


class TestSourceBuilder:

    def test_runs_configure_make_install(self, tmp_path):
        runner = RecordingRunner()
        builder = SourceBuilder(str(tmp_path / "logs"), runner=runner, system="Linux")
        install_dir = str(tmp_path / "installed" / "3.8.6")
        assert builder.build(str(tmp_path / "src"), install_dir, V386) is True

        cmds = [c["cmd"] for c in runner.calls]
        assert cmds == [
            ["./configure", f"--prefix={install_dir}", "--enable-shared"],
            ["make"],
            ["make", "install"],
        ]
        assert all(c["cwd"] == str(tmp_path / "src") for c in runner.calls)
        assert "-Wl,-rpath," + os.path.join(install_dir, "lib") in runner.calls[0]["env"]["LDFLAGS"]
        assert os.path.basename(runner.calls[0]["log_path"]) == "Python_v3.8.6_step_1_of_3_Configure.log"
        assert is_built(install_dir)

    def test_optimized_flag_and_no_rpath_off_linux(self, tmp_path):
        runner = RecordingRunner()
        builder = SourceBuilder(str(tmp_path / "logs"), optimized=True, runner=runner, system="Darwin")
        builder.build(str(tmp_path / "src"), str(tmp_path / "i"), V386)
        assert "--enable-optimizations" in runner.calls[0]["cmd"]
        assert runner.calls[0]["env"] == {}

    def test_links_unversioned_names(self, tmp_path):
        install_dir = tmp_path / "i"
        SourceBuilder(str(tmp_path / "logs"), runner=RecordingRunner()).build(str(tmp_path), str(install_dir), V386)
        bin_dir = install_dir / "bin"
        for name in ("python", "python3", "pip", "pip3"):
            assert (bin_dir / name).is_file()
        assert os.path.samefile(str(bin_dir / "python3"), str(bin_dir / "python3.8"))

    def test_failure_raises_with_stage_and_log(self, tmp_path):
        runner = RecordingRunner(fail_at=["make"], exit_code=2)
        builder = SourceBuilder(str(tmp_path / "logs"), runner=runner)
        install_dir = str(tmp_path / "i")
        with pytest.raises(BuildFailed) as excinfo:
            builder.build(str(tmp_path), install_dir, V386)
        assert excinfo.value.stage == "Make"
        assert excinfo.value.exit_code == 2
        assert excinfo.value.log_file.endswith("Python_v3.8.6_step_2_of_3_Make.log")
        assert not is_built(install_dir)
        assert len(runner.calls) == 2

    def test_built_marker_skips_unless_forced(self, tmp_path):
        install_dir = tmp_path / "i"
        install_dir.mkdir()
        (install_dir / Constants.BUILT_MARKER).write_text("source\n")
        runner = RecordingRunner()
        builder = SourceBuilder(str(tmp_path / "logs"), runner=runner)
        assert builder.build(str(tmp_path), str(install_dir), V386) is False
        assert runner.calls == []
        assert builder.build(str(tmp_path), str(install_dir), V386, force=True) is True
        assert len(runner.calls) == 3


class TestPrebuiltCopyBuilder:

    def test_copies_tree(self, tmp_path):
        source = tmp_path / "extracted"
        source.mkdir()
        (source / "python.exe").write_text("MZ")
        (source / Constants.EXTRACTED_MARKER).write_text("x")
        install_dir = tmp_path / "installed"
        PrebuiltCopyBuilder().build(str(source), str(install_dir), V386)
        assert (install_dir / "python.exe").read_text() == "MZ"
        assert not (install_dir / Constants.EXTRACTED_MARKER).exists()
        assert is_built(str(install_dir))


class TestSelection:

    def test_select_builder(self, tmp_path):
        assert isinstance(select_builder(ReleaseArtifact(url="u", prebuilt=True), str(tmp_path)), PrebuiltCopyBuilder)
        builder = select_builder(ReleaseArtifact(url="u"), str(tmp_path), optimized=True)
        assert isinstance(builder, SourceBuilder)
        assert builder.optimized is True


class TestLinkUnversioned:

    def test_missing_sources_skipped(self, tmp_path):
        write_executable(tmp_path / "python2.7")
        created = link_unversioned_binaries(str(tmp_path), semantic_version.Version("2.7.18"))
        assert sorted(os.path.basename(p) for p in created) == ["python", "python2"]

    def test_relinking_replaces(self, tmp_path):
        write_executable(tmp_path / "python3.8")
        write_executable(tmp_path / "python3", "#!/bin/sh\necho stale\n")
        link_unversioned_binaries(str(tmp_path), V386)
        assert os.path.samefile(str(tmp_path / "python3"), str(tmp_path / "python3.8"))
