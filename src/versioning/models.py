"""Data models for version specs and published releases."""
from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Optional, TypeVar
from urllib.parse import urlsplit

import semantic_version

T = TypeVar("T")


class SpecKind(Enum):
    """Resolution strategy of a version spec."""
    LATEST = "latest"
    EXACT = "exact"
    COMPATIBLE = "compatible"


@dataclass(frozen=True)
class VersionSpec:
    """Normalized representation of a requested version.

    Exact specs carry ``version``; compatible specs carry ``major``/``minor``.
    Prereleases only match when ``include_prerelease`` is set (exact specs
    naming a prerelease set it implicitly).
    """
    raw: str
    kind: SpecKind
    version: Optional[semantic_version.Version] = None
    major: Optional[int] = None
    minor: Optional[int] = None
    include_prerelease: bool = False

    def matches(self, version: semantic_version.Version) -> bool:
        """Return True when ``version`` satisfies this spec."""
        if self.kind == SpecKind.EXACT:
            return version == self.version
        if version.prerelease and not self.include_prerelease:
            return False
        if self.kind == SpecKind.COMPATIBLE:
            return version.major == self.major and version.minor == self.minor
        return True

    def is_more_preferred(self, a: semantic_version.Version, b: semantic_version.Version) -> bool:
        """Return True when ``a`` should be picked over ``b``.

        Both are assumed to match. Compatible specs fix major.minor, so the
        higher version is the higher patch.
        """
        return a > b

    def select_best(
        self,
        candidates: Iterable[T],
        key: Callable[[T], semantic_version.Version] = lambda item: item,  # type: ignore[assignment,return-value]
    ) -> Optional[T]:
        """Pick the most preferred matching candidate, or None."""
        best: Optional[T] = None
        for candidate in candidates:
            version = key(candidate)
            if not self.matches(version):
                continue
            if best is None or self.is_more_preferred(version, key(best)):
                best = candidate
        return best

    def render(self) -> str:
        if self.kind == SpecKind.LATEST:
            return "latest"
        if self.kind == SpecKind.COMPATIBLE:
            return f"~{self.major}.{self.minor}"
        v = self.version
        return f"={v.major}.{v.minor}.{v.patch}" + "".join(v.prerelease)

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True)
class ReleaseArtifact:
    """One downloadable file of a release for one platform."""
    url: str
    checksum: Optional[str] = None  # "<algorithm>:<hexdigest>"
    size: Optional[int] = None
    prebuilt: bool = False

    @property
    def filename(self) -> str:
        return posixpath.basename(urlsplit(self.url).path)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "checksum": self.checksum,
            "size": self.size,
            "prebuilt": self.prebuilt,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReleaseArtifact":
        size = data.get("size")
        return cls(
            url=str(data["url"]),
            checksum=data.get("checksum") or None,
            size=int(size) if size is not None else None,
            prebuilt=bool(data.get("prebuilt", False)),
        )


@dataclass
class ReleaseEntry:
    """One row of the release index."""
    version: semantic_version.Version
    artifacts: Dict[str, ReleaseArtifact] = field(default_factory=dict)

    def artifact_for(self, platform: str) -> Optional[ReleaseArtifact]:
        return self.artifacts.get(platform)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": str(self.version),
            "files": {name: artifact.to_dict() for name, artifact in self.artifacts.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReleaseEntry":
        """Load an entry persisted by ``to_dict`` (semver version text)."""
        files = data.get("files") or {}
        return cls(
            version=semantic_version.Version(str(data["version"])),
            artifacts={name: ReleaseArtifact.from_dict(a) for name, a in files.items()},
        )
