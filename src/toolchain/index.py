"""Release index fetching and parsing.

Three documents are understood: the python.org ``release_file`` API (the
default, with per-file checksums), a JSON index carrying per-platform URLs and
checksums, and the HTML directory listing served at
https://www.python.org/ftp/python/ (versions only, no checksums).
"""
from __future__ import annotations

import json
import logging
import os
import platform as _platform
import posixpath
import re
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin, urlsplit

import semantic_version

from common.http_client import robust_get
from common.logging_utils import safe_url
from constants import Constants
from errors import MalformedVersionSpec, PyrigError
from versioning.models import ReleaseArtifact, ReleaseEntry
from versioning.parser import parse_version, to_cpython_string

logger = logging.getLogger(__name__)

SOURCE_PLATFORM = "source"

_HREF_RE = re.compile(r'<a\s+href="(?P<version>\d+(?:\.\d+)+)/">', re.IGNORECASE)

_VERSION_PATTERN = r"\d+\.\d+(?:\.\d+)?(?:(?:a|b|rc)\d+)?"
_SOURCE_FILE_RE = re.compile(rf"^Python-(?P<version>{_VERSION_PATTERN})\.tgz$")
_EMBED_FILE_RE = re.compile(rf"^python-(?P<version>{_VERSION_PATTERN})-embed-(?P<arch>amd64|win32|arm64)\.zip$")

_WINDOWS_ARCHES = {
    "amd64": "amd64",
    "x86_64": "amd64",
    "arm64": "arm64",
    "aarch64": "arm64",
    "x86": "win32",
    "i386": "win32",
    "i686": "win32",
}


class IndexFetchError(PyrigError):
    """The remote index could not be fetched or understood."""


def current_platform(os_name: Optional[str] = None, machine: Optional[str] = None) -> str:
    """Return the artifact key for this host (``source`` or ``windows-<arch>``)."""
    if (os_name or os.name) != "nt":
        return SOURCE_PLATFORM
    arch = _WINDOWS_ARCHES.get((machine or _platform.machine()).lower(), "amd64")
    return f"windows-{arch}"


def source_basename(version: semantic_version.Version) -> str:
    """Archive basename of a source release, e.g. ``Python-3.7.2rc1``.

    Starting with 3.3 the name holds the full version; older releases only
    carry MAJOR.MINOR.
    """
    if version >= semantic_version.Version("3.3.0"):
        return f"Python-{to_cpython_string(version)}"
    return f"Python-{version.major}.{version.minor}"


def _release_directory(version: semantic_version.Version) -> str:
    if version >= semantic_version.Version("3.3.0"):
        return f"{version.major}.{version.minor}.{version.patch}"
    return f"{version.major}.{version.minor}"


def python_org_artifacts(
    version: semantic_version.Version, base_url: str
) -> Dict[str, ReleaseArtifact]:
    """Artifacts python.org publishes for ``version`` (without checksums)."""
    directory = urljoin(base_url, _release_directory(version) + "/")
    artifacts = {
        SOURCE_PLATFORM: ReleaseArtifact(url=urljoin(directory, source_basename(version) + ".tgz")),
    }
    if version >= semantic_version.Version("3.5.0"):
        for arch in ("amd64", "win32", "arm64"):
            filename = f"python-{to_cpython_string(version)}-embed-{arch}.zip"
            artifacts[f"windows-{arch}"] = ReleaseArtifact(
                url=urljoin(directory, filename), prebuilt=True
            )
    return artifacts


def parse_index_html(index_html: str, base_url: str) -> List[ReleaseEntry]:
    """Parse the python.org directory listing into releases, newest first."""
    entries: Dict[str, ReleaseEntry] = {}
    for match in _HREF_RE.finditer(index_html):
        text = match.group("version")
        try:
            version = parse_version(text)
        except MalformedVersionSpec as exc:
            logger.warning("Failed to parse version (%r), skipping: %s", text, exc)
            continue
        key = str(version)
        if key not in entries:
            entries[key] = ReleaseEntry(version=version, artifacts=python_org_artifacts(version, base_url))
    return sorted(entries.values(), key=lambda e: e.version, reverse=True)


def parse_json_index(data: Any, base_url: Optional[str] = None) -> List[ReleaseEntry]:
    """Parse a JSON index document into releases, newest first.

    Relative URLs are resolved against ``base_url``.
    """
    if isinstance(data, dict):
        rows = data.get("releases", [])
    elif isinstance(data, list):
        rows = data
    else:
        raise IndexFetchError("JSON index must be an object or a list")

    entries: List[ReleaseEntry] = []
    for row in rows:
        try:
            version = parse_version(str(row["version"]))
            artifacts = {}
            for platform_key, raw in (row.get("files") or {}).items():
                artifact = ReleaseArtifact.from_dict(raw)
                if base_url:
                    artifact = ReleaseArtifact(
                        url=urljoin(base_url, artifact.url),
                        checksum=artifact.checksum,
                        size=artifact.size,
                        prebuilt=artifact.prebuilt,
                    )
                artifacts[platform_key] = artifact
        except (KeyError, TypeError, ValueError, AttributeError, MalformedVersionSpec) as exc:
            logger.warning("Skipping malformed index row %r: %s", row, exc)
            continue
        entries.append(ReleaseEntry(version=version, artifacts=artifacts))
    entries.sort(key=lambda e: e.version, reverse=True)
    return entries


def _release_file_checksum(row: Dict[str, Any]) -> Optional[str]:
    if row.get("sha256_sum"):
        return f"sha256:{row['sha256_sum']}"
    if row.get("md5_sum"):
        return f"md5:{row['md5_sum']}"
    return None


def is_release_file_document(data: Any) -> bool:
    """True for the row list returned by python.org's ``release_file`` API."""
    return (
        isinstance(data, list)
        and bool(data)
        and isinstance(data[0], dict)
        and "url" in data[0]
        and "version" not in data[0]
    )


def parse_release_files(rows: List[Any]) -> List[ReleaseEntry]:
    """Parse python.org ``release_file`` rows into releases, newest first.

    Only the gzipped source tarball and the embeddable zips are kept. Each
    artifact carries the published sha256 sum, or the md5 sum for older
    releases that only have one.
    """
    entries: Dict[str, ReleaseEntry] = {}
    for row in rows:
        if not isinstance(row, dict):
            continue
        url = str(row.get("url") or "")
        filename = posixpath.basename(urlsplit(url).path)
        match = _SOURCE_FILE_RE.match(filename)
        platform_key = SOURCE_PLATFORM
        if match is None:
            match = _EMBED_FILE_RE.match(filename)
            if match is None:
                continue
            platform_key = f"windows-{match.group('arch')}"
        try:
            version = parse_version(match.group("version"))
        except MalformedVersionSpec as exc:
            logger.warning("Failed to parse version of %s, skipping: %s", filename, exc)
            continue
        size = row.get("filesize")
        artifact = ReleaseArtifact(
            url=url,
            checksum=_release_file_checksum(row),
            size=size if isinstance(size, int) and size > 0 else None,
            prebuilt=platform_key != SOURCE_PLATFORM,
        )
        entry = entries.setdefault(str(version), ReleaseEntry(version=version))
        entry.artifacts[platform_key] = artifact
    return sorted(entries.values(), key=lambda e: e.version, reverse=True)


def parse_index_document(text: str, base_url: str) -> List[ReleaseEntry]:
    """Parse any index flavour, detected from the content."""
    stripped = text.lstrip()
    if stripped.startswith("{") or stripped.startswith("["):
        try:
            data = json.loads(stripped)
        except json.JSONDecodeError as exc:
            raise IndexFetchError(f"Invalid JSON index: {exc}") from exc
        if is_release_file_document(data):
            return parse_release_files(data)
        return parse_json_index(data, base_url)
    return parse_index_html(text, base_url)


class IndexFetcher:
    """Fetch the release index from ``index_url`` (one GET, transport retries)."""

    def __init__(self, index_url: Optional[str] = None):
        self.index_url = index_url or Constants.INDEX_URL

    def fetch(self) -> List[ReleaseEntry]:
        logger.debug("Fetching release index from %s", safe_url(self.index_url))
        status_code, _, text = robust_get(self.index_url)
        if status_code != 200:
            reason = text if status_code == 0 else f"HTTP {status_code}"
            raise IndexFetchError(f"Failed to fetch {safe_url(self.index_url)}: {reason}")
        entries = parse_index_document(text, self.index_url)
        if not entries:
            raise IndexFetchError(f"No releases found in {safe_url(self.index_url)}")
        return entries
