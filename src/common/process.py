"""Subprocess helpers for build steps and package installs.

Each command's merged stdout/stderr is streamed line by line to the logger and
to a per-step log file, so a failed build leaves a transcript behind.
"""
from __future__ import annotations

import logging
import os
import subprocess
from datetime import datetime
from typing import Dict, List, Optional, TextIO

logger = logging.getLogger(__name__)


def _log_line(log_file: Optional[TextIO], line: str) -> None:
    if log_file is None:
        return
    log_file.write(f"{datetime.now().astimezone().isoformat()} - {line}\n")


def step_log_filename(version: str, step: str) -> str:
    """Build the per-step log name, e.g. ``Python_v3.7.3_step_3_of_6_Configure.log``."""
    cleaned = (
        step.replace(" ", "_")
        .replace("[", "")
        .replace("]", "")
        .replace("/", "_of_")
        .replace("-", "")
    )
    return f"Python_v{version}_step_{cleaned}.log"


def run_logged_command(
    cmd: List[str],
    *,
    cwd: str,
    env: Optional[Dict[str, str]] = None,
    log_path: Optional[str] = None,
    step: str = "",
) -> int:
    """Run ``cmd`` in ``cwd`` and return its exit status.

    Args:
        cmd: Command and arguments.
        cwd: Working directory.
        env: Extra environment variables layered over the current environment.
        log_path: Optional transcript file; parent directories are created.
        step: Human-readable step label used as log prefix.

    Returns:
        The process exit status; a missing executable is reported as 127.
    """
    full_env = os.environ.copy()
    if env:
        full_env.update(env)

    log_file = None
    if log_path:
        os.makedirs(os.path.dirname(log_path), exist_ok=True)
        log_file = open(log_path, "w", encoding="utf-8")  # pylint: disable=consider-using-with
    try:
        _log_line(log_file, f"cd {cwd}")
        _log_line(log_file, " ".join(cmd))
        logger.info("%s: %s", step or "Running", " ".join(cmd))
        try:
            process = subprocess.Popen(  # noqa: S603
                cmd,
                cwd=cwd,
                env=full_env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except FileNotFoundError as exc:
            _log_line(log_file, f"command not found: {exc}")
            logger.error("%s: command not found: %s", step or "Running", cmd[0])
            return 127

        assert process.stdout is not None
        for line in process.stdout:
            line = line.rstrip("\n")
            _log_line(log_file, line)
            logger.debug("%s: %s", step, line.replace("\t", " "))
        exit_code = process.wait()
        _log_line(log_file, f"exit status {exit_code}")
        return exit_code
    finally:
        if log_file is not None:
            log_file.close()
