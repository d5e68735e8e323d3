"""CLI entry points that hand control to a toolchain executable.

``run`` dispatches an explicit command; shim mode dispatches the command the
manager was invoked as (``python``, ``pip3``, ...).
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any, List, Optional

from cli_engine import Engine, build_engine
from constants import ExitCodes
from toolchain.shim import dispatch

logger = logging.getLogger(__name__)


def _parse_run_command(args: Any) -> List[str]:
    """Extract the wrapped command from parsed args (leading ``--`` removed)."""
    cmd = list(getattr(args, "RUN_COMMAND", None) or [])
    if cmd and cmd[0] == "--":
        cmd = cmd[1:]
    return cmd


def run_command(args: Any, engine: Optional[Engine] = None, cwd: Optional[str] = None) -> int:
    cmd = _parse_run_command(args)
    if not cmd:
        sys.stderr.write(
            "Error: No command provided.\n"
            "Usage: pyrig run [--version SPEC] -- <command> [args...]\n"
        )
        return ExitCodes.PARSE_ERROR.value

    engine = engine or build_engine()
    override = getattr(args, "VERSION_OVERRIDE", None)
    if override:
        toolchain = engine.resolver.resolve_spec(override)
    else:
        toolchain = engine.resolver.resolve(cwd or os.getcwd())
    return dispatch(cmd[0], cmd[1:], toolchain, shims_dir=engine.paths.shims)


def run_shim(argv: List[str], engine: Optional[Engine] = None, cwd: Optional[str] = None) -> int:
    """Dispatch ``argv[0]``'s basename with ``argv[1:]`` to the active toolchain."""
    engine = engine or build_engine()
    command = os.path.basename(argv[0])
    toolchain = engine.resolver.resolve(cwd or os.getcwd())
    logger.debug("Shim %s resolved to %s", command, toolchain)
    return dispatch(command, argv[1:], toolchain, shims_dir=engine.paths.shims)
