"""Wiring of the engine objects used by the CLI commands.

Cache, registry and resolver are plain objects created per invocation and
passed to the operations; nothing here is a module-level singleton.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from common.paths import PathsProvider
from installation.pipeline import InstallPipeline
from toolchain.available import AvailableVersionsCache
from toolchain.index import IndexFetcher
from toolchain.installed import InstalledToolchainRegistry
from toolchain.selected import ActiveToolchainResolver


@dataclass
class Engine:
    paths: PathsProvider
    cache: AvailableVersionsCache
    registry: InstalledToolchainRegistry
    resolver: ActiveToolchainResolver

    def pipeline(self) -> InstallPipeline:
        return InstallPipeline(self.paths, self.cache, self.registry)


def build_engine(paths: Optional[PathsProvider] = None) -> Engine:
    """Create the engine objects for the configured home directory."""
    paths = paths or PathsProvider()
    cache = AvailableVersionsCache(paths.available_toolchains_cache_file, IndexFetcher())
    registry = InstalledToolchainRegistry(paths)
    resolver = ActiveToolchainResolver(registry)
    return Engine(paths=paths, cache=cache, registry=registry, resolver=resolver)
