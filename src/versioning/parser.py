"""Parsing utilities for version specs and concrete interpreter versions."""

import re
from typing import Optional

import semantic_version
from packaging.version import InvalidVersion, Version as Pep440Version

from errors import MalformedVersionSpec
from .models import SpecKind, VersionSpec

_EXACT_RE = re.compile(
    r"^\d+\.\d+\.\d+(?:[-_.]?(?:a|b|c|rc|alpha|beta)[-_.]?\d+)?$", re.IGNORECASE
)
_COMPATIBLE_RE = re.compile(r"^~\s*(\d+)\.(\d+)$")
_VERSION_TOKEN_RE = re.compile(r"^\d+(?:\.\d+){1,2}\S*$")


def parse_version(text: str) -> semantic_version.Version:
    """Parse a concrete interpreter version into a semantic version.

    Accepts CPython spellings (``3.7``, ``3.7.3``, ``3.7.3rc1``, ``3.7.3-rc1``);
    a missing patch is taken as 0 and prereleases become ``3.7.3-rc.1``.
    """
    raw = text.strip()
    try:
        pep440 = Pep440Version(raw)
    except InvalidVersion as exc:
        raise MalformedVersionSpec(text, "not a version") from exc
    if pep440.epoch or pep440.dev is not None or pep440.post is not None or pep440.local:
        raise MalformedVersionSpec(text, "dev, post and local versions are not supported")
    release = list(pep440.release)
    if len(release) > 3:
        raise MalformedVersionSpec(text, "too many components")
    while len(release) < 3:
        release.append(0)
    prerelease = ()
    if pep440.pre is not None:
        prerelease = (pep440.pre[0], str(pep440.pre[1]))
    return semantic_version.Version(
        major=release[0], minor=release[1], patch=release[2], prerelease=prerelease, build=()
    )


def to_cpython_string(version: semantic_version.Version) -> str:
    """Render a version the way CPython spells it (``3.7.3rc1``)."""
    return f"{version.major}.{version.minor}.{version.patch}" + "".join(version.prerelease)


def parse_spec(text: str, include_prerelease: bool = False) -> VersionSpec:
    """Parse ``latest``, ``=X.Y.Z``/``X.Y.Z`` or ``~X.Y`` into a VersionSpec.

    Raises:
        MalformedVersionSpec: for any other text.
    """
    if text is None:
        raise MalformedVersionSpec("", "empty")
    raw = text.strip()
    if not raw:
        raise MalformedVersionSpec(text, "empty")

    if raw.lower() == "latest":
        return VersionSpec(raw=raw, kind=SpecKind.LATEST, include_prerelease=include_prerelease)

    if raw.startswith("~"):
        m = _COMPATIBLE_RE.match(raw)
        if not m:
            raise MalformedVersionSpec(text, "compatible specs take the form ~MAJOR.MINOR")
        return VersionSpec(
            raw=raw,
            kind=SpecKind.COMPATIBLE,
            major=int(m.group(1)),
            minor=int(m.group(2)),
            include_prerelease=include_prerelease,
        )

    body = raw[1:].strip() if raw.startswith("=") else raw
    if not _EXACT_RE.match(body):
        raise MalformedVersionSpec(text, "exact versions need MAJOR.MINOR.PATCH")
    version = parse_version(body)
    return VersionSpec(
        raw=raw,
        kind=SpecKind.EXACT,
        version=version,
        include_prerelease=bool(version.prerelease),
    )


def exact_spec(version: semantic_version.Version) -> VersionSpec:
    """Build the exact spec selecting ``version``."""
    return VersionSpec(
        raw=f"={to_cpython_string(version)}",
        kind=SpecKind.EXACT,
        version=version,
        include_prerelease=bool(version.prerelease),
    )


def parse_interpreter_output(output: str) -> Optional[semantic_version.Version]:
    """Extract the version from ``python -V`` output (``Python 3.7.3``).

    Returns None when the output does not contain a parsable version.
    """
    tokens = output.split()
    for index, token in enumerate(tokens):
        if token.lower() != "python" or index + 1 >= len(tokens):
            continue
        candidate = tokens[index + 1].rstrip("+")
        if not _VERSION_TOKEN_RE.match(candidate):
            continue
        try:
            return parse_version(candidate)
        except MalformedVersionSpec:
            return None
    return None
