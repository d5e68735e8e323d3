"""Error taxonomy shared by the resolution and installation engine.

Lower layers raise these typed errors; the CLI maps each family onto an exit
code (see ``constants.ExitCodes``) and logs a single line naming the unmet
condition.
"""
from __future__ import annotations

from typing import Optional


class PyrigError(Exception):
    """Base class for all engine errors."""


# ---------- Parse errors ----------


class ParseError(PyrigError):
    """User supplied text could not be understood."""


class MalformedVersionSpec(ParseError):
    """Text is neither a version nor a recognized prefixed form."""

    def __init__(self, text: str, reason: Optional[str] = None):
        self.text = text
        self.reason = reason
        message = f"Malformed version specifier {text!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class EmptyVersionFile(ParseError):
    """The project version file exists but holds no value."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Version file {path} is empty")


# ---------- Resolution errors ----------


class ResolutionError(PyrigError):
    """A toolchain could not be resolved; nothing can proceed."""


class NoIndexAvailable(ResolutionError):
    """No cached index exists and refreshing it failed."""

    def __init__(self, index_url: str, reason: Optional[str] = None):
        self.index_url = index_url
        self.reason = reason
        message = f"No release index available (consulted {index_url})"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class NoMatchingVersion(ResolutionError):
    """No published release satisfies the requested spec."""

    def __init__(self, spec, index_url: Optional[str] = None, platform: Optional[str] = None):
        self.spec = spec
        self.index_url = index_url
        self.platform = platform
        message = f"No release matching {spec} found"
        if platform:
            message += f" for platform {platform}"
        if index_url:
            message += f" in index {index_url}"
        super().__init__(message)


class NothingInstalled(ResolutionError):
    """No toolchain is installed or discoverable at all."""

    def __init__(self):
        super().__init__("No Python interpreter found at all. Please install at least one!")


class VersionNotInstalled(ResolutionError):
    """The project selects a version that is not installed."""

    def __init__(self, version, version_file: Optional[str] = None):
        self.version = version
        self.version_file = version_file
        message = f"Python version {version} is selected but not installed"
        if version_file:
            message += f" (from {version_file})"
        super().__init__(message)


class InvalidToolchainPath(ResolutionError):
    """A pinned interpreter path does not exist or reports no version."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot use interpreter at {path}: {reason}")


# ---------- Install errors ----------


class InstallError(PyrigError):
    """A stage of the install pipeline failed; fatal for this attempt."""


class DownloadFailed(InstallError):
    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to download {url}: {reason}")


class ChecksumMismatch(InstallError):
    def __init__(self, path: str, expected: str, actual: str):
        self.path = path
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Checksum mismatch for {path}: expected {expected}, got {actual} (artifact deleted)"
        )


class ChecksumUnavailable(InstallError):
    """The index provides no checksum, so the artifact cannot be verified."""

    def __init__(self, version, url: str):
        self.version = version
        self.url = url
        super().__init__(
            f"Release {version} has no checksum in the index; refusing to install "
            f"unverified artifact {url}"
        )


class ExtractionFailed(InstallError):
    def __init__(self, archive: str, reason: str):
        self.archive = archive
        self.reason = reason
        super().__init__(f"Failed to extract {archive}: {reason}")


class BuildFailed(InstallError):
    def __init__(self, stage: str, exit_code: int, log_file: Optional[str] = None):
        self.stage = stage
        self.exit_code = exit_code
        self.log_file = log_file
        message = f"Build stage {stage!r} failed with exit status {exit_code}"
        if log_file:
            message += f" (see log file {log_file})"
        super().__init__(message)


# ---------- Dispatch errors ----------


class DispatchError(PyrigError):
    """The shim could not hand over to a real executable."""


class ExecutableNotFound(DispatchError):
    def __init__(self, command: str, location: str):
        self.command = command
        self.location = location
        super().__init__(f"Executable {command!r} not found in {location}")
