"""Install pipeline: resolve, download, verify, extract, build, register, extras.

Every stage infers its completion from artifacts on disk, so re-running an
install resumes where a previous attempt stopped, and two overlapping
installs of the same version converge.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from common.http_client import download_file
from common.logging_utils import Timer, extra_context
from common.paths import PathsProvider
from common.process import run_logged_command
from errors import NoIndexAvailable
from toolchain.available import AvailableVersionsCache
from toolchain.index import current_platform
from toolchain.installed import InstalledToolchain, InstalledToolchainRegistry
from toolchain.shim import ShimLinker
from versioning.models import SpecKind, VersionSpec
from .artifacts import ArtifactStore
from .builders import Builder, select_builder
from .extract import Extractor
from .extras import DirectoryMonitor, ExtrasFileError, ExtrasSource, collect_extras, install_extras

logger = logging.getLogger(__name__)


@dataclass
class InstallOptions:
    force: bool = False
    extras_source: ExtrasSource = ExtrasSource.NONE
    extras_file: Optional[str] = None
    optimized: bool = False
    refresh_index: bool = False


@dataclass
class InstallResult:
    toolchain: InstalledToolchain
    warnings: List[str] = field(default_factory=list)
    already_installed: bool = False


class InstallPipeline:
    """Bring a toolchain matching a spec to the installed state."""

    def __init__(
        self,
        paths: PathsProvider,
        cache: AvailableVersionsCache,
        registry: InstalledToolchainRegistry,
        *,
        downloader: Callable[..., str] = download_file,
        runner: Callable[..., int] = run_logged_command,
        builder_factory: Callable[..., Builder] = select_builder,
        platform: Optional[str] = None,
        shim_linker: Optional[ShimLinker] = None,
    ):
        self.paths = paths
        self.cache = cache
        self.registry = registry
        self.platform = platform or current_platform()
        self.artifacts = ArtifactStore(paths.downloaded, downloader)
        self.extractor = Extractor(paths.extracted)
        self._runner = runner
        self._builder_factory = builder_factory
        self._shim_linker = shim_linker or ShimLinker(paths.shims)

    def install(self, spec: VersionSpec, options: Optional[InstallOptions] = None) -> InstallResult:
        """Install the best release matching ``spec``.

        Raises:
            ResolutionError: no index, or no matching release for this platform.
            InstallError: a stage failed; later stages did not run.
        """
        options = options or InstallOptions()
        if spec.kind == SpecKind.EXACT and not options.force:
            existing = self.registry.find(spec.version, managed_only=True)
            if existing is not None:
                return self._already_installed(existing, options)

        try:
            release = self.cache.resolve(spec, platform=self.platform, force_refresh=options.refresh_index)
        except NoIndexAvailable:
            fallback = None if options.force else self._managed_match(spec)
            if fallback is None:
                raise
            logger.warning("Release index unavailable; keeping installed Python %s", fallback.version)
            return self._already_installed(fallback, options)
        version = release.version

        existing = self.registry.find(version, managed_only=True)
        if existing is not None and not options.force:
            return self._already_installed(existing, options)

        artifact = release.artifact_for(self.platform)
        builder = self._builder_factory(artifact, self.paths.logs, optimized=options.optimized, runner=self._runner)
        install_dir = self.paths.install_dir(version)

        with Timer() as timer:
            archive = self.artifacts.fetch(version, artifact)
            source_dir = self.extractor.ensure_extracted(archive, force=options.force)
            builder.build(source_dir, install_dir, version, force=options.force)
            toolchain = self.registry.register(version, install_dir)
        logger.info("Python %s installed in %s", version, install_dir)
        logger.debug(
            "Install finished",
            extra=extra_context(
                event="INSTALL",
                component="pipeline",
                action="install",
                target=str(version),
                outcome="success",
                builder=builder.name,
                duration_ms=timer.duration_ms(),
            ),
        )
        warnings = self._install_extras(toolchain, options)
        return InstallResult(toolchain, warnings)

    def _managed_match(self, spec: VersionSpec) -> Optional[InstalledToolchain]:
        return spec.select_best(self.registry.managed(), key=lambda toolchain: toolchain.version)

    def _already_installed(self, toolchain: InstalledToolchain, options: InstallOptions) -> InstallResult:
        logger.info("Python %s already installed in %s", toolchain.version, toolchain.location)
        warnings = self._install_extras(toolchain, options)
        return InstallResult(toolchain, warnings, already_installed=True)

    def _install_extras(self, toolchain: InstalledToolchain, options: InstallOptions) -> List[str]:
        """Install extra packages; every failure here is a warning, never an error."""
        if options.extras_source == ExtrasSource.NONE:
            return []
        try:
            packages = collect_extras(options.extras_source, self.paths.default_extra_package_file, options.extras_file)
        except ExtrasFileError as exc:
            logger.warning("Skipping extra packages: %s", exc)
            return [str(exc)]
        if not packages:
            logger.info("No extra packages to install")
            return []
        logger.info("Installing extra packages: %s", ", ".join(packages))
        monitor = DirectoryMonitor(toolchain.location)
        warnings = install_extras(packages, toolchain.location, toolchain.version, self.paths.logs, self._runner)
        new_files = monitor.check()
        if new_files:
            self._shim_linker.link(new_files)
        return warnings
