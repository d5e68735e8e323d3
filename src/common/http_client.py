"""Shared HTTP helpers used by the index fetcher and the download stage.

Timeouts, retries with back-off and the DEBUG request traces live here so
the index fetcher and the artifact store share one transport policy.
"""
from __future__ import annotations

import logging
import os
import tempfile
import time
from typing import Any, Callable, Dict, Optional, Tuple

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from errors import DownloadFailed

logger = logging.getLogger(__name__)

USER_AGENT = f"{Constants.EXECUTABLE_NAME}/{Constants.VERSION}"


def _backoff(attempt: int) -> None:
    """Sleep before the next attempt (exponential, starting at the base delay)."""
    delay = Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** attempt)
    if delay > 0:
        time.sleep(delay)


def _trace(message: str, url: str, **fields: Any) -> None:
    """Emit one structured DEBUG record for an HTTP event."""
    if is_debug_enabled(logger):
        logger.debug(message, extra=extra_context(component="http_client", target=safe_url(url), **fields))


def robust_get(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], str]:
    """GET ``url`` with the configured timeout, retrying transient failures.

    Server errors (5xx) and transport failures are retried up to
    ``Constants.HTTP_RETRY_MAX`` attempts; other statuses are returned as is.

    Returns:
        Tuple of (status_code, headers_dict, text). A status code of 0 means
        every attempt failed at the transport level; text then holds the reason.
    """
    request_headers = {"User-Agent": USER_AGENT}
    request_headers.update(headers or {})
    failure = None

    for attempt in range(1, Constants.HTTP_RETRY_MAX + 1):
        if attempt > 1:
            _backoff(attempt - 2)
        _trace("HTTP request", url, event="http_request", action="GET", attempt=attempt)
        with Timer() as t:
            try:
                response = requests.get(url, timeout=Constants.REQUEST_TIMEOUT, headers=request_headers, **kwargs)
            except requests.Timeout:
                failure = "timeout"
            except requests.RequestException as exc:
                failure = str(exc)
            else:
                _trace(
                    "HTTP response",
                    url,
                    event="http_response",
                    action="GET",
                    outcome="success" if response.status_code < 400 else "http_error",
                    status_code=response.status_code,
                    duration_ms=t.duration_ms(),
                )
                if response.status_code < 500:
                    return response.status_code, dict(response.headers), response.text
                failure = f"HTTP {response.status_code}"
        _trace("HTTP attempt failed", url, event="http_retry", action="GET", outcome=failure, attempt=attempt)

    return 0, {}, f"Request failed after {Constants.HTTP_RETRY_MAX} attempts: {failure}"


def download_file(
    url: str,
    destination: str,
    *,
    progress: Optional[Callable[[int, Optional[int]], None]] = None,
) -> str:
    """Stream ``url`` into ``destination``, replacing it atomically.

    The body is written to a temporary file next to ``destination`` and moved
    into place only once complete, so an interrupted transfer never leaves a
    file that looks finished. Every attempt restarts from zero; partial-range
    resume is not attempted.

    Raises:
        DownloadFailed: when every attempt failed.
    """
    directory = os.path.dirname(os.path.abspath(destination))
    os.makedirs(directory, exist_ok=True)
    safe_target = safe_url(url)
    last_exception = None

    for attempt in range(Constants.HTTP_RETRY_MAX):
        if attempt:
            _backoff(attempt - 1)
        fd, tmp_path = tempfile.mkstemp(
            dir=directory, prefix=os.path.basename(destination) + ".", suffix=".part"
        )
        try:
            with Timer() as t:
                with requests.get(
                    url,
                    stream=True,
                    timeout=Constants.REQUEST_TIMEOUT,
                    headers={"User-Agent": USER_AGENT},
                ) as response:
                    if response.status_code >= 500:
                        last_exception = f"HTTP {response.status_code}"
                        continue
                    if response.status_code != 200:
                        # Client errors will not improve with retries.
                        raise DownloadFailed(url, f"HTTP {response.status_code}")
                    total = response.headers.get("Content-Length")
                    total_bytes = int(total) if total and total.isdigit() else None
                    received = 0
                    with os.fdopen(fd, "wb") as out:
                        fd = None
                        for chunk in response.iter_content(chunk_size=Constants.DOWNLOAD_CHUNK_SIZE):
                            if not chunk:
                                continue
                            out.write(chunk)
                            received += len(chunk)
                            if progress is not None:
                                progress(received, total_bytes)
                    if total_bytes is not None and received != total_bytes:
                        last_exception = f"truncated body ({received} of {total_bytes} bytes)"
                        continue
            os.replace(tmp_path, destination)
            tmp_path = None
            logger.debug(
                "Downloaded %s (%d bytes)",
                safe_target,
                received,
                extra=extra_context(
                    event="download",
                    component="http_client",
                    action="GET",
                    outcome="success",
                    duration_ms=t.duration_ms(),
                    target=safe_target
                )
            )
            return destination
        except requests.Timeout:
            last_exception = "timeout"
            logger.debug("Download of %s timed out (attempt %d)", safe_target, attempt + 1)
        except requests.RequestException as exc:
            last_exception = str(exc)
            logger.debug("Download of %s failed (attempt %d): %s", safe_target, attempt + 1, exc)
        finally:
            if fd is not None:
                os.close(fd)
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)

    raise DownloadFailed(url, f"failed after {Constants.HTTP_RETRY_MAX} attempts: {last_exception}")
