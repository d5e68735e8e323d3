"""Download and checksum verification of release archives."""
from __future__ import annotations

import logging
import os
from typing import Callable

from common.fs_utils import file_digest, split_checksum
from common.http_client import download_file
from common.logging_utils import Timer, extra_context, safe_url
from errors import ChecksumMismatch, ChecksumUnavailable
from versioning.models import ReleaseArtifact

logger = logging.getLogger(__name__)


class ArtifactStore:
    """Archives kept in ``cache/downloaded``, one file per artifact name."""

    def __init__(self, downloaded_dir: str, downloader: Callable[..., str] = download_file):
        self.downloaded_dir = downloaded_dir
        self._downloader = downloader

    def archive_path(self, artifact: ReleaseArtifact) -> str:
        return os.path.join(self.downloaded_dir, artifact.filename)

    def is_valid(self, path: str, artifact: ReleaseArtifact) -> bool:
        """True when ``path`` exists and matches the index size and checksum."""
        if not os.path.isfile(path):
            return False
        if artifact.size is not None and os.path.getsize(path) != artifact.size:
            logger.debug("Size of %s differs from index (%s bytes)", path, artifact.size)
            return False
        if not artifact.checksum:
            return False
        algorithm, expected = split_checksum(artifact.checksum)
        return file_digest(path, algorithm) == expected

    def verify(self, path: str, artifact: ReleaseArtifact) -> None:
        """Compare the digest of ``path`` with the index.

        Raises:
            ChecksumMismatch: digests differ; the archive has been deleted.
        """
        algorithm, expected = split_checksum(artifact.checksum)
        actual = file_digest(path, algorithm)
        if actual != expected:
            os.unlink(path)
            raise ChecksumMismatch(path, f"{algorithm}:{expected}", f"{algorithm}:{actual}")
        logger.debug("Checksum of %s verified (%s)", path, algorithm)

    def fetch(self, version, artifact: ReleaseArtifact) -> str:
        """Make a verified copy of ``artifact`` available locally.

        An archive already present and valid is reused; anything else is
        fetched again in full.

        Returns:
            Path of the verified archive.

        Raises:
            ChecksumUnavailable: the index has no checksum for the artifact.
            DownloadFailed: the transport gave up.
            ChecksumMismatch: the downloaded file is corrupted.
        """
        if not artifact.checksum:
            raise ChecksumUnavailable(version, artifact.url)
        path = self.archive_path(artifact)
        if self.is_valid(path, artifact):
            logger.info("Archive %s already downloaded and verified, skipping download", path)
            return path

        os.makedirs(self.downloaded_dir, exist_ok=True)
        logger.info("Downloading %s", safe_url(artifact.url))
        with Timer() as timer:
            self._downloader(artifact.url, path)
        logger.debug(
            "Download finished",
            extra=extra_context(
                event="DOWNLOAD",
                component="artifacts",
                action="fetch",
                target=safe_url(artifact.url),
                outcome="success",
                duration_ms=timer.duration_ms(),
            ),
        )
        self.verify(path, artifact)
        return path
