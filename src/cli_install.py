"""CLI handlers for ``install``, ``use`` and ``select``."""

from __future__ import annotations

import logging
import os
from typing import Any, Optional

from cli_engine import Engine, build_engine
from common.logging_utils import extra_context, is_debug_enabled
from constants import ExitCodes
from errors import MalformedVersionSpec, VersionNotInstalled
from installation.extras import ExtrasSource
from installation.pipeline import InstallOptions, InstallResult
from toolchain.selected import VersionFileKind, save_version_file, toolchain_from_path
from versioning.models import VersionSpec
from versioning.parser import parse_spec

logger = logging.getLogger(__name__)


def _install_spec(args: Any, engine: Engine, cwd: str) -> VersionSpec:
    """Spec from the command line, else the project version file, else latest."""
    include_prerelease = bool(getattr(args, "PRERELEASE", False))
    if args.SPEC:
        return parse_spec(args.SPEC, include_prerelease=include_prerelease)
    version_file = engine.resolver.version_file(cwd)
    if version_file is not None and version_file.kind == VersionFileKind.VERSION:
        logger.info("Installing %s from %s", version_file.spec, version_file.location)
        return version_file.spec
    return parse_spec("latest", include_prerelease=include_prerelease)


def _options(args: Any) -> InstallOptions:
    extras_file = getattr(args, "EXTRA_FROM", None)
    return InstallOptions(
        force=bool(getattr(args, "FORCE", False)),
        extras_source=ExtrasSource.from_flags(bool(getattr(args, "EXTRA", False)), extras_file),
        extras_file=extras_file,
        optimized=bool(getattr(args, "RELEASE", False)),
        refresh_index=bool(getattr(args, "REFRESH", False)),
    )


def _report(result: InstallResult) -> None:
    for warning in result.warnings:
        logger.warning(warning)
    if is_debug_enabled(logger):
        logger.debug(
            "Install command finished",
            extra=extra_context(
                event="function_exit",
                component="cli",
                action="install",
                target=str(result.toolchain.version),
                outcome="already_installed" if result.already_installed else "installed",
                warnings=len(result.warnings),
            ),
        )


def run_install(args: Any, engine: Optional[Engine] = None, cwd: Optional[str] = None) -> int:
    engine = engine or build_engine()
    cwd = cwd or os.getcwd()
    spec = _install_spec(args, engine, cwd)
    result = engine.pipeline().install(spec, _options(args))
    _report(result)
    if getattr(args, "SELECT", False):
        save_version_file(cwd, version=result.toolchain.version)
    return ExitCodes.SUCCESS.value


def run_use(args: Any, engine: Optional[Engine] = None, cwd: Optional[str] = None) -> int:
    """Install the version spec when nothing installed matches it, then select it."""
    engine = engine or build_engine()
    cwd = cwd or os.getcwd()
    spec = parse_spec(args.SPEC)
    toolchain = engine.registry.best_match(spec)
    if toolchain is None:
        result = engine.pipeline().install(spec, _options(args))
        _report(result)
        toolchain = result.toolchain
    else:
        logger.info("Using installed %s", toolchain)
    save_version_file(cwd, version=toolchain.version)
    return ExitCodes.SUCCESS.value


def run_select(args: Any, engine: Optional[Engine] = None, cwd: Optional[str] = None) -> int:
    """Select an installed version (written as ``=X.Y.Z``) or an interpreter path."""
    engine = engine or build_engine()
    cwd = cwd or os.getcwd()
    try:
        spec = parse_spec(args.SPEC)
    except MalformedVersionSpec:
        if not os.path.exists(args.SPEC):
            raise
        toolchain = toolchain_from_path(args.SPEC)
        save_version_file(cwd, path=os.path.realpath(args.SPEC))
        logger.info("Selected %s", toolchain)
        return ExitCodes.SUCCESS.value

    toolchain = engine.registry.best_match(spec)
    if toolchain is None:
        raise VersionNotInstalled(spec)
    save_version_file(cwd, version=toolchain.version)
    logger.info("Selected %s", toolchain)
    return ExitCodes.SUCCESS.value
