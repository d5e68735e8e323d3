"""Tests for release index parsing and fetching."""

import json
from unittest.mock import patch

import pytest
import semantic_version

from constants import Constants
from toolchain.index import (
    IndexFetchError,
    IndexFetcher,
    current_platform,
    is_release_file_document,
    parse_index_document,
    parse_index_html,
    parse_json_index,
    parse_release_files,
    source_basename,
)

BASE = "https://www.python.org/ftp/python/"

LISTING = """
<html><head><title>Index of /ftp/python/</title></head>
<body><h1>Index of /ftp/python/</h1><hr><pre><a href="../">../</a>
<a href="2.0/">2.0/</a>                                               16-Oct-2000 10:00       -
<a href="2.7.18/">2.7.18/</a>                                         20-Apr-2020 13:39       -
<a href="3.7.3/">3.7.3/</a>                                           25-Mar-2019 21:23       -
<a href="3.8.0/">3.8.0/</a>                                           14-Oct-2019 19:19       -
<a href="doc/">doc/</a>                                               20-Apr-2020 13:39       -
<a href="index-windows.json">index-windows.json</a>                  01-Oct-2024 00:00    5821
</pre><hr></body></html>
"""


def V(text):
    return semantic_version.Version(text)


class TestParseIndexHtml:
    """python.org directory listing."""

    def test_versions_sorted_descending(self):
        entries = parse_index_html(LISTING, BASE)
        assert [str(e.version) for e in entries] == ["3.8.0", "3.7.3", "2.7.18", "2.0.0"]

    def test_source_artifact_urls(self):
        entries = {str(e.version): e for e in parse_index_html(LISTING, BASE)}
        assert entries["3.7.3"].artifact_for("source").url == BASE + "3.7.3/Python-3.7.3.tgz"
        assert entries["2.0.0"].artifact_for("source").url == BASE + "2.0/Python-2.0.tgz"

    def test_listing_has_no_checksums(self):
        entry = parse_index_html(LISTING, BASE)[0]
        assert entry.artifact_for("source").checksum is None

    def test_windows_embed_zip_only_for_recent_releases(self):
        entries = {str(e.version): e for e in parse_index_html(LISTING, BASE)}
        artifact = entries["3.8.0"].artifact_for("windows-amd64")
        assert artifact.url == BASE + "3.8.0/python-3.8.0-embed-amd64.zip"
        assert artifact.prebuilt is True
        assert entries["2.7.18"].artifact_for("windows-amd64") is None

    def test_source_basename_prerelease(self):
        assert source_basename(V("3.7.2-rc.1")) == "Python-3.7.2rc1"
        assert source_basename(V("3.2.0")) == "Python-3.2"


class TestParseJsonIndex:
    """JSON index documents."""

    def test_parses_files_and_checksums(self):
        data = {
            "releases": [
                {"version": "3.7.3", "files": {"source": {
                    "url": "https://example.org/Python-3.7.3.tgz",
                    "checksum": "sha256:abc",
                    "size": 42,
                }}},
                {"version": "3.8.0rc1", "files": {}},
            ]
        }
        entries = parse_json_index(data)
        assert [e.version for e in entries] == [V("3.8.0-rc.1"), V("3.7.3")]
        artifact = entries[1].artifact_for("source")
        assert artifact.checksum == "sha256:abc"
        assert artifact.size == 42
        assert artifact.filename == "Python-3.7.3.tgz"

    def test_relative_urls_resolved_against_base(self):
        data = [{"version": "3.7.3", "files": {"source": {"url": "3.7.3/Python-3.7.3.tgz", "checksum": "x"}}}]
        entry = parse_json_index(data, "https://mirror.example.org/python/index.json")[0]
        assert entry.artifact_for("source").url == "https://mirror.example.org/python/3.7.3/Python-3.7.3.tgz"

    def test_malformed_rows_skipped(self):
        data = {"releases": [{"version": "not-a-version"}, {"nope": 1}, {"version": "3.6.8"}]}
        assert [str(e.version) for e in parse_json_index(data)] == ["3.6.8"]

    def test_document_detection(self):
        text = json.dumps({"releases": [{"version": "3.9.1"}]})
        assert parse_index_document(text, BASE)[0].version == V("3.9.1")
        assert parse_index_document(LISTING, BASE)[0].version == V("3.8.0")

    def test_invalid_json_raises(self):
        with pytest.raises(IndexFetchError):
            parse_index_document("{not json", BASE)


RELEASE_FILES = [
    {
        "name": "Gzipped source tarball",
        "url": "https://www.python.org/ftp/python/3.8.6/Python-3.8.6.tgz",
        "md5_sum": "ea132d6f449766623eee886966c7d41f",
        "sha256_sum": "313562ee9986dc369cd678011bdfd9800ef62fbf7b1496228a18f86b36428c21",
        "filesize": 24377280,
    },
    {
        "name": "XZ compressed source tarball",
        "url": "https://www.python.org/ftp/python/3.8.6/Python-3.8.6.tar.xz",
        "sha256_sum": "a9e0b79d27aa056eb9cd8d63a3ef58ef9d1ff4b5dec36cd2fc38c5d90e5bd3d5",
        "filesize": 17869888,
    },
    {
        "name": "Windows embeddable package (64-bit)",
        "url": "https://www.python.org/ftp/python/3.8.6/python-3.8.6-embed-amd64.zip",
        "md5_sum": "5f95c5a93e2d8a5b077f406bc4dd96e7",
        "sha256_sum": None,
        "filesize": 8174500,
    },
    {
        "name": "Gzipped source tarball",
        "url": "https://www.python.org/ftp/python/3.9.0/Python-3.9.0rc1.tgz",
        "sha256_sum": "c7a8b4b3b1d0c0f6aa4fdbe1f8e6c3a4b5d1c9e7a6f8b2d3c4e5f6a7b8c9d0e1",
        "filesize": 0,
    },
    {
        "name": "macOS 64-bit installer",
        "url": "https://www.python.org/ftp/python/3.8.6/python-3.8.6-macosx10.9.pkg",
        "md5_sum": "68170127a953e7f12465c1798f0965b8",
    },
]


class TestParseReleaseFiles:
    """python.org release_file API."""

    def test_detected_as_release_files(self):
        assert is_release_file_document(RELEASE_FILES)
        assert not is_release_file_document([{"version": "3.9.1"}])
        assert not is_release_file_document([])

    def test_keeps_source_and_embed_only(self):
        entries = parse_release_files(RELEASE_FILES)
        assert [e.version for e in entries] == [V("3.9.0-rc.1"), V("3.8.6")]
        assert sorted(entries[1].artifacts) == ["source", "windows-amd64"]

    def test_prefers_sha256(self):
        artifact = parse_release_files(RELEASE_FILES)[1].artifact_for("source")
        assert artifact.checksum == "sha256:313562ee9986dc369cd678011bdfd9800ef62fbf7b1496228a18f86b36428c21"
        assert artifact.size == 24377280
        assert artifact.prebuilt is False

    def test_falls_back_to_md5(self):
        artifact = parse_release_files(RELEASE_FILES)[1].artifact_for("windows-amd64")
        assert artifact.checksum == "md5:5f95c5a93e2d8a5b077f406bc4dd96e7"
        assert artifact.prebuilt is True

    def test_zero_size_ignored(self):
        artifact = parse_release_files(RELEASE_FILES)[0].artifact_for("source")
        assert artifact.size is None
        assert artifact.filename == "Python-3.9.0rc1.tgz"

    def test_document_routing(self):
        entries = parse_index_document(json.dumps(RELEASE_FILES), Constants.INDEX_URL)
        assert entries[1].artifact_for("source").checksum.startswith("sha256:")

    @patch("toolchain.index.robust_get")
    def test_default_fetcher_supplies_checksums(self, mock_get):
        mock_get.return_value = (200, {}, json.dumps(RELEASE_FILES))
        entries = IndexFetcher().fetch()
        mock_get.assert_called_once_with(Constants.INDEX_URL)
        assert all(a.checksum for e in entries for a in e.artifacts.values())


class TestIndexFetcher:
    """Fetching through the shared HTTP client."""

    @patch("toolchain.index.robust_get")
    def test_fetch_success(self, mock_get):
        mock_get.return_value = (200, {}, LISTING)
        entries = IndexFetcher(BASE).fetch()
        mock_get.assert_called_once_with(BASE)
        assert entries[0].version == V("3.8.0")

    @patch("toolchain.index.robust_get")
    def test_fetch_http_error(self, mock_get):
        mock_get.return_value = (404, {}, "")
        with pytest.raises(IndexFetchError, match="HTTP 404"):
            IndexFetcher(BASE).fetch()

    @patch("toolchain.index.robust_get")
    def test_fetch_transport_error(self, mock_get):
        mock_get.return_value = (0, {}, "Request failed after 3 attempts: timeout")
        with pytest.raises(IndexFetchError, match="timeout"):
            IndexFetcher(BASE).fetch()

    @patch("toolchain.index.robust_get")
    def test_fetch_empty_listing(self, mock_get):
        mock_get.return_value = (200, {}, "<html></html>")
        with pytest.raises(IndexFetchError):
            IndexFetcher(BASE).fetch()


class TestCurrentPlatform:
    def test_posix_is_source(self):
        assert current_platform("posix") == "source"

    def test_windows_arch(self):
        assert current_platform("nt", "AMD64") == "windows-amd64"
        assert current_platform("nt", "ARM64") == "windows-arm64"
        assert current_platform("nt", "x86") == "windows-win32"
