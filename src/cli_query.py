"""CLI handlers for ``list``, ``path`` and ``version``."""

from __future__ import annotations

import os
import sys
from typing import Any, Optional, TextIO

from cli_engine import Engine, build_engine
from constants import ExitCodes
from toolchain.installed import InstalledToolchain


def _active(args: Any, engine: Engine, cwd: str) -> InstalledToolchain:
    override = getattr(args, "VERSION_OVERRIDE", None)
    if override:
        return engine.resolver.resolve_spec(override)
    return engine.resolver.resolve(cwd)


def run_list(args: Any, engine: Optional[Engine] = None, cwd: Optional[str] = None,
             out: Optional[TextIO] = None) -> int:
    """Print every toolchain, marking the active one.

    A selected but missing version is still shown, flagged as not installed.
    """
    del args
    engine = engine or build_engine()
    out = sys.stdout if out is None else out
    cwd = cwd or os.getcwd()
    selection = engine.resolver.selection(cwd)
    toolchains = engine.registry.list()

    if not selection.is_installed and selection.version_file is not None:
        out.write(
            f"* {selection.version_file.describe():<12} not installed "
            f"(selected in {selection.version_file.location})\n"
        )
    if not toolchains:
        out.write("No Python toolchain installed\n")
    for toolchain in toolchains:
        marker = "*" if toolchain == selection.toolchain else " "
        out.write(f"{marker} {str(toolchain.version):<12} {toolchain.provenance.value:<10} {toolchain.location}\n")
    return ExitCodes.SUCCESS.value


def run_path(args: Any, engine: Optional[Engine] = None, cwd: Optional[str] = None,
             out: Optional[TextIO] = None) -> int:
    engine = engine or build_engine()
    toolchain = _active(args, engine, cwd or os.getcwd())
    out = sys.stdout if out is None else out
    out.write(f"{toolchain.location}\n")
    return ExitCodes.SUCCESS.value


def run_version(args: Any, engine: Optional[Engine] = None, cwd: Optional[str] = None,
                out: Optional[TextIO] = None) -> int:
    engine = engine or build_engine()
    toolchain = _active(args, engine, cwd or os.getcwd())
    out = sys.stdout if out is None else out
    out.write(f"{toolchain.version}\n")
    return ExitCodes.SUCCESS.value
