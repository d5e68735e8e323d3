"""Toolchain discovery, selection and dispatch.

This package knows which interpreter releases exist (the cached release
index), which are usable locally (managed installs and interpreters found on
the search path), which one a project selects, and how to hand a command over
to it.
"""

from .available import AvailableVersionsCache
from .index import IndexFetcher, IndexFetchError, current_platform
from .installed import InstalledToolchain, InstalledToolchainRegistry
from .selected import ActiveToolchainResolver, ProjectVersionFile, Selection
from .shim import ShimLinker, dispatch, is_shim_invocation

__all__ = [
    "AvailableVersionsCache",
    "IndexFetcher",
    "IndexFetchError",
    "current_platform",
    "InstalledToolchain",
    "InstalledToolchainRegistry",
    "ActiveToolchainResolver",
    "ProjectVersionFile",
    "Selection",
    "ShimLinker",
    "dispatch",
    "is_shim_invocation",
]
