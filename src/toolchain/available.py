"""Locally persisted, freshness-checked copy of the remote release index."""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from common.fs_utils import atomic_write_text
from constants import Constants
from errors import NoIndexAvailable, NoMatchingVersion
from versioning.models import ReleaseEntry, VersionSpec
from .index import IndexFetchError, IndexFetcher

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AvailableVersionsCache:
    """Release index cache persisted as JSON.

    The file holds ``{"last_updated", "index_url", "releases"}``. It is stale
    once older than the TTL; stale, missing or corrupted caches trigger one
    refresh attempt per call. When the refresh fails the previous contents are
    kept and used; only the absence of any cache is fatal.
    """

    def __init__(
        self,
        cache_file: str,
        fetcher: Optional[IndexFetcher] = None,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """Initialize the cache.

        Args:
            cache_file: Location of the persisted JSON record.
            fetcher: Object with a ``fetch()`` method returning releases and
                an ``index_url`` attribute.
            ttl_seconds: Freshness window; defaults to Constants.CACHE_TTL_SEC.
            clock: Returns the current aware UTC datetime.
        """
        self.cache_file = cache_file
        self.fetcher = fetcher or IndexFetcher()
        self._ttl = timedelta(seconds=ttl_seconds if ttl_seconds is not None else Constants.CACHE_TTL_SEC)
        self._clock = clock
        self._releases: Optional[List[ReleaseEntry]] = None
        self._last_updated: Optional[datetime] = None
        self._loaded = False

    @property
    def index_url(self) -> str:
        return getattr(self.fetcher, "index_url", Constants.INDEX_URL)

    @property
    def last_updated(self) -> Optional[datetime]:
        self._ensure_loaded()
        return self._last_updated

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    def load(self) -> bool:
        """Load the persisted record; a corrupted file is treated as absent."""
        self._loaded = True
        if not os.path.isfile(self.cache_file):
            logger.debug("No cache file at %s", self.cache_file)
            return False
        try:
            with open(self.cache_file, encoding="utf-8") as f:
                data = json.load(f)
            last_updated = datetime.fromisoformat(data["last_updated"])
            if last_updated.tzinfo is None:
                last_updated = last_updated.replace(tzinfo=timezone.utc)
            releases = [ReleaseEntry.from_dict(row) for row in data["releases"]]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Ignoring unreadable cache file %s: %s", self.cache_file, exc)
            return False
        if data.get("index_url") not in (None, self.index_url):
            logger.info("Cached index comes from %s, not %s; ignoring it", data.get("index_url"), self.index_url)
            return False
        releases.sort(key=lambda e: e.version, reverse=True)
        self._releases = releases
        self._last_updated = last_updated
        return True

    def is_stale(self) -> bool:
        self._ensure_loaded()
        if self._last_updated is None or self._releases is None:
            return True
        return self._clock() - self._last_updated > self._ttl

    def refresh(self) -> bool:
        """Fetch the index once; persist on success. Returns success."""
        self._ensure_loaded()
        try:
            releases = self.fetcher.fetch()
        except IndexFetchError as exc:
            logger.warning("Failed to refresh release index: %s", exc)
            return False
        self._releases = sorted(releases, key=lambda e: e.version, reverse=True)
        self._last_updated = self._clock()
        self._save()
        logger.info("Release index refreshed (%d releases)", len(self._releases))
        return True

    def _save(self) -> None:
        payload = {
            "last_updated": self._last_updated.isoformat() if self._last_updated else None,
            "index_url": self.index_url,
            "releases": [entry.to_dict() for entry in self._releases or []],
        }
        atomic_write_text(self.cache_file, json.dumps(payload, indent=1))

    def releases(self, force_refresh: bool = False) -> List[ReleaseEntry]:
        """Return the cached releases, refreshing first when stale or forced.

        Raises:
            NoIndexAvailable: if no cache exists and the refresh failed.
        """
        if force_refresh or self.is_stale():
            if not self.refresh():
                if self._releases is None:
                    raise NoIndexAvailable(self.index_url, "refresh failed and no cached index exists")
                if force_refresh:
                    logger.warning(
                        "Forced refresh of %s failed; using cached index from %s",
                        self.index_url,
                        self._last_updated.isoformat() if self._last_updated else "an unknown date",
                    )
                else:
                    logger.info("Using stale release index from %s", self._last_updated)
        return list(self._releases or [])

    def resolve(
        self,
        spec: VersionSpec,
        *,
        platform: Optional[str] = None,
        force_refresh: bool = False,
    ) -> ReleaseEntry:
        """Return the most preferred release matching ``spec``.

        Args:
            spec: Requested version spec.
            platform: When given, only releases with an artifact for it count.
            force_refresh: Refresh the index even if the cache is fresh.

        Raises:
            NoIndexAvailable: no index could be obtained at all.
            NoMatchingVersion: nothing in the index satisfies ``spec``.
        """
        candidates = self.releases(force_refresh=force_refresh)
        if platform is not None:
            candidates = [entry for entry in candidates if entry.artifact_for(platform) is not None]
        best = spec.select_best(candidates, key=lambda entry: entry.version)
        if best is None:
            raise NoMatchingVersion(spec, index_url=self.index_url, platform=platform)
        logger.debug("Resolved %s to %s", spec, best.version)
        return best
