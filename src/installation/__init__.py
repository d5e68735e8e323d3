"""Toolchain installation: artifacts, extraction, builders, extras and the pipeline."""

from .artifacts import ArtifactStore
from .builders import Builder, PrebuiltCopyBuilder, SourceBuilder, select_builder
from .extract import Extractor, extract_archive
from .extras import ExtrasSource, collect_extras, install_extras
from .pipeline import InstallOptions, InstallPipeline, InstallResult

__all__ = [
    "ArtifactStore",
    "Builder",
    "PrebuiltCopyBuilder",
    "SourceBuilder",
    "select_builder",
    "Extractor",
    "extract_archive",
    "ExtrasSource",
    "collect_extras",
    "install_extras",
    "InstallOptions",
    "InstallPipeline",
    "InstallResult",
]
