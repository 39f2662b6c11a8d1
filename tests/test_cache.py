"""Tests for the on-disk bundle cache."""

import json
import os
import stat
import zipfile
from datetime import datetime, timezone

import pytest

from mpak import CacheMetadata, ExtractionError, Platform, get_cache_dir
from mpak.runner import META_FILENAME, CacheStore, ZipArchiveExtractor, cache_dir_name, needs_pull


def _metadata(version="1.0.0"):
    return CacheMetadata(
        version=version,
        pulledAt=datetime(2026, 1, 1, tzinfo=timezone.utc),
        platform=Platform(os="linux", arch="x64"),
    )


# --- naming ---


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("@scope/name", "scope-name"),
        ("@nimblebraininc/echo", "nimblebraininc-echo"),
        ("unscoped", "unscoped"),
        ("@org/sub/name", "org-sub-name"),
        ("@a\\b", "a-b"),
    ],
)
def test_cache_dir_name(name, expected):
    assert cache_dir_name(name) == expected


def test_similar_names_get_distinct_dirs():
    assert cache_dir_name("@nimblebraininc/echo") != cache_dir_name("@nimblebraininc/Echo2")


def test_get_cache_dir_uses_mpak_home(tmp_path, monkeypatch):
    monkeypatch.setenv("MPAK_HOME", str(tmp_path))
    assert get_cache_dir("@scope/name") == tmp_path / "cache" / "scope-name"


def test_get_cache_dir_explicit_root(tmp_path):
    assert get_cache_dir("@scope/name", tmp_path) == tmp_path / "scope-name"


# --- needs_pull ---


@pytest.mark.parametrize(
    ("cached", "requested", "update", "expected"),
    [
        (None, None, False, True),
        (None, "1.0.0", False, True),
        ("1.0.0", None, False, False),
        ("1.0.0", "1.0.0", False, False),
        ("1.0.0", "2.0.0", False, True),
        ("1.0.0", None, True, True),
        ("1.0.0", "1.0.0", True, True),
    ],
)
def test_needs_pull(cached, requested, update, expected):
    metadata = _metadata(cached) if cached else None
    assert needs_pull(metadata, requested, update) is expected


# --- metadata ---


def test_metadata_round_trip_uses_aliases(tmp_path):
    store = CacheStore(tmp_path)
    cache_dir = store.cache_dir("@scope/name")
    store.write_metadata(cache_dir, _metadata("1.2.3"))

    raw = json.loads((cache_dir / META_FILENAME).read_text())
    assert raw["version"] == "1.2.3"
    assert "pulledAt" in raw
    assert raw["platform"] == {"os": "linux", "arch": "x64"}

    loaded = store.read_metadata(cache_dir)
    assert loaded == _metadata("1.2.3")


def test_read_metadata_missing(tmp_path):
    assert CacheStore(tmp_path).read_metadata(tmp_path / "nothing") is None


@pytest.mark.parametrize("content", ["{broken", '{"version": "1.0.0"}', "[]"])
def test_read_metadata_corrupt_is_treated_as_absent(tmp_path, content):
    (tmp_path / META_FILENAME).write_text(content)
    assert CacheStore(tmp_path).read_metadata(tmp_path) is None


# --- extraction and install ---


def test_extract_restores_modes(tmp_path, bundle_factory):
    archive = bundle_factory(
        files={"bin/server": "#!/bin/sh\n", "README.md": "hi"},
        modes={"bin/server": 0o755},
    )
    dest = tmp_path / "out"
    ZipArchiveExtractor().extract(archive, dest)

    assert (dest / "manifest.json").is_file()
    assert (dest / "README.md").read_text() == "hi"
    if os.name != "nt":
        mode = stat.S_IMODE((dest / "bin" / "server").stat().st_mode)
        assert mode & 0o111


def test_extract_bad_archive(tmp_path):
    archive = tmp_path / "bad.mcpb"
    archive.write_bytes(b"not a zip")
    with pytest.raises(ExtractionError) as exc_info:
        ZipArchiveExtractor().extract(archive, tmp_path / "out")
    assert exc_info.value.archive == archive
    assert str(exc_info.value).startswith("Failed to extract bundle:")


def test_install_replaces_previous_tree(tmp_path, bundle_factory):
    store = CacheStore(tmp_path / "cache")
    first = bundle_factory(files={"old.txt": "old"})
    second = bundle_factory(files={"new.txt": "new"})

    store.install("@acme/tool", first, _metadata("1.0.0"))
    path = store.install("@acme/tool", second, _metadata("2.0.0"))

    assert path == tmp_path / "cache" / "acme-tool"
    assert not (path / "old.txt").exists()
    assert (path / "new.txt").read_text() == "new"
    assert store.read_metadata(path).version == "2.0.0"


def test_failed_install_writes_no_metadata(tmp_path):
    store = CacheStore(tmp_path / "cache")
    archive = tmp_path / "bad.mcpb"
    archive.write_bytes(b"garbage")
    with pytest.raises(ExtractionError):
        store.install("@acme/tool", archive, _metadata())
    assert store.read_metadata(store.cache_dir("@acme/tool")) is None


def test_remove(tmp_path, bundle_factory):
    store = CacheStore(tmp_path)
    store.install("@acme/tool", bundle_factory(), _metadata())
    assert store.remove("@acme/tool")
    assert not store.cache_dir("@acme/tool").exists()
    assert not store.remove("@acme/tool")


def test_extract_corrupt_deflate_stream(tmp_path):
    archive = tmp_path / "corrupt.mcpb"
    with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("server.js", "console.log('hello');\n" * 200)
    with zipfile.ZipFile(archive) as zf:
        info = zf.getinfo("server.js")
    data = bytearray(archive.read_bytes())
    # Local header is 30 bytes plus the file name and extra field
    start = info.header_offset + 30 + len(info.filename.encode()) + len(info.extra)
    data[start : start + 18] = b"\xff" * 18
    archive.write_bytes(bytes(data))

    with pytest.raises(ExtractionError) as exc_info:
        CacheStore(tmp_path / "cache").extract(archive, tmp_path / "out")
    assert exc_info.value.archive == archive
