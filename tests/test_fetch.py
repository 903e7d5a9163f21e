# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for source checkout, archive download and unpacking."""

from __future__ import annotations

import io
import tarfile
from collections.abc import Iterator, Sequence
from pathlib import Path, PurePosixPath

import pytest
import requests
from urllib3.exceptions import ReadTimeoutError

from llvmenv import fetch
from llvmenv.errors import ArchiveError, DownloadError, DownloadTimeoutError, HttpError, SourceExistsError
from llvmenv.fetch import (
    ExistingSourcePolicy,
    cached_download,
    fetch_resource,
    strip_leading_component,
    unpack_archive,
    update_resource,
)
from llvmenv.resource import GitResource, SvnResource, TarResource


class _FakeResponse:
    def __init__(self, status_code: int, payload: bytes = b"") -> None:
        self.status_code = status_code
        self._payload = payload
        self.headers = {"Content-Length": str(len(payload))}

    def __enter__(self) -> _FakeResponse:
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    def iter_content(self, chunk_size: int) -> Iterator[bytes]:
        for start in range(0, len(self._payload), chunk_size):
            yield self._payload[start : start + chunk_size]


def _make_archive(path: Path, members: dict[str, bytes]) -> Path:
    with tarfile.open(path, "w:gz") as tar:
        for name, data in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return path


def _record_commands(monkeypatch: pytest.MonkeyPatch) -> list[tuple[list[str], Path | None]]:
    calls: list[tuple[list[str], Path | None]] = []

    def fake_run(args: Sequence[str], *, cwd: Path | None = None, **kwargs: object) -> None:
        calls.append((list(args), cwd))

    monkeypatch.setattr("llvmenv.fetch.run_command", fake_run)
    return calls


def test_strip_leading_component() -> None:
    assert strip_leading_component("llvm-17.0.2.src/lib/Support") == PurePosixPath("lib/Support")
    assert strip_leading_component("llvm-17.0.2.src") is None
    assert strip_leading_component("llvm-17.0.2.src/") is None


def test_unpack_archive_drops_top_directory(tmp_path: Path) -> None:
    archive = _make_archive(
        tmp_path / "llvm.tar.gz",
        {"top/a/b.txt": b"hello", "top/CMakeLists.txt": b"project(LLVM)", "top": b""},
    )
    destination = tmp_path / "dest"

    unpacked = unpack_archive(archive, destination, tool_name="llvm")

    assert unpacked == 2
    assert (destination / "llvm" / "a" / "b.txt").read_text(encoding="utf-8") == "hello"
    assert (destination / "llvm" / "CMakeLists.txt").is_file()
    assert not (destination / "llvm" / "top").exists()


def test_unpack_archive_tolerates_unsafe_members(tmp_path: Path) -> None:
    archive = _make_archive(
        tmp_path / "evil.tar.gz",
        {"top/../../escape.txt": b"nope", "top/ok.txt": b"fine"},
    )
    destination = tmp_path / "dest"

    assert unpack_archive(archive, destination, tool_name="llvm") == 1
    assert (destination / "llvm" / "ok.txt").is_file()
    assert not (tmp_path / "escape.txt").exists()


def test_unpack_archive_skips_directory_shadowed_by_file(tmp_path: Path) -> None:
    archive = tmp_path / "llvm.tar.gz"
    with tarfile.open(archive, "w:gz") as tar:
        directory = tarfile.TarInfo("top/sub")
        directory.type = tarfile.DIRTYPE
        directory.mode = 0o755
        tar.addfile(directory)
        for name, data in (("top/sub/f.txt", b"inner"), ("top/other.txt", b"outer")):
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    root = tmp_path / "dest" / "llvm"
    root.mkdir(parents=True)
    (root / "sub").write_text("left over", encoding="utf-8")

    unpacked = unpack_archive(archive, tmp_path / "dest", tool_name="llvm")

    assert unpacked == 1
    assert (root / "other.txt").read_text(encoding="utf-8") == "outer"
    assert (root / "sub").read_text(encoding="utf-8") == "left over"


def test_unpack_archive_rejects_garbage(tmp_path: Path) -> None:
    archive = tmp_path / "broken.tar.gz"
    archive.write_bytes(b"this is not an archive")
    with pytest.raises(ArchiveError):
        unpack_archive(archive, tmp_path / "dest", tool_name="llvm")


def test_cached_download_fetches_once(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    requested: list[tuple[str, float]] = []

    def fake_get(url: str, **kwargs: object) -> _FakeResponse:
        assert kwargs["stream"] is True
        requested.append((url, kwargs["timeout"]))
        return _FakeResponse(200, b"x" * 200_000)

    monkeypatch.setattr(fetch.requests, "get", fake_get)
    url = "https://example.com/releases/llvm-17.0.2.src.tar.xz"

    first = cached_download(url, tmp_path / "cache", timeout=12.0)
    second = cached_download(url, tmp_path / "cache", timeout=12.0)

    assert first == second == tmp_path / "cache" / "llvm-17.0.2.src.tar.xz"
    assert first.stat().st_size == 200_000
    assert requested == [(url, 12.0)]


def test_cached_download_raises_on_http_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(fetch.requests, "get", lambda url, **kwargs: _FakeResponse(404))

    with pytest.raises(HttpError) as excinfo:
        cached_download("https://example.com/missing.tar.gz", tmp_path / "cache")

    assert excinfo.value.status == 404
    assert list((tmp_path / "cache").iterdir()) == []


def test_cached_download_reports_timeout(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def slow_get(url: str, **kwargs: object) -> _FakeResponse:
        raise requests.ReadTimeout("read timed out")

    monkeypatch.setattr(fetch.requests, "get", slow_get)

    with pytest.raises(DownloadTimeoutError):
        cached_download("https://example.com/slow.tar.gz", tmp_path / "cache", timeout=0.5)
    assert list((tmp_path / "cache").iterdir()) == []


class _StalledResponse(_FakeResponse):
    def __init__(self, error: requests.ConnectionError) -> None:
        super().__init__(200, b"x" * 1024)
        self._error = error

    def iter_content(self, chunk_size: int) -> Iterator[bytes]:
        yield self._payload
        raise self._error


def test_cached_download_reports_stalled_body_as_timeout(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    url = "https://example.com/stalled.tar.gz"
    stalled = requests.ConnectionError(ReadTimeoutError(None, url, "Read timed out."))
    monkeypatch.setattr(fetch.requests, "get", lambda url, **kwargs: _StalledResponse(stalled))

    with pytest.raises(DownloadTimeoutError) as excinfo:
        cached_download(url, tmp_path / "cache", timeout=0.5)

    assert excinfo.value.timeout == 0.5
    assert list((tmp_path / "cache").iterdir()) == []


def test_cached_download_reports_dropped_connection(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    dropped = requests.ConnectionError("Connection reset by peer")
    monkeypatch.setattr(fetch.requests, "get", lambda url, **kwargs: _StalledResponse(dropped))

    with pytest.raises(DownloadError) as excinfo:
        cached_download("https://example.com/reset.tar.gz", tmp_path / "cache")

    assert not isinstance(excinfo.value, DownloadTimeoutError)
    assert list((tmp_path / "cache").iterdir()) == []


def test_fetch_svn_checkout(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _record_commands(monkeypatch)
    destination = tmp_path / "src"

    fetched = fetch_resource(
        SvnResource(url="http://llvm.org/svn/llvm-project/llvm/trunk"),
        destination,
        tool_name="llvm",
        archive_cache=tmp_path / "cache",
    )

    assert fetched is True
    assert calls == [
        (["svn", "co", "http://llvm.org/svn/llvm-project/llvm/trunk", "-r", "HEAD", str(destination)], None)
    ]


def test_fetch_git_without_branch(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _record_commands(monkeypatch)
    destination = tmp_path / "src"

    fetch_resource(
        GitResource(url="https://github.com/llvm/llvm-project.git"),
        destination,
        tool_name="llvm",
        archive_cache=tmp_path / "cache",
    )

    assert calls == [
        (["git", "clone", "-q", "--depth", "1", "https://github.com/llvm/llvm-project.git", str(destination)], None)
    ]


def test_populated_destination_follows_policy(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _record_commands(monkeypatch)
    destination = tmp_path / "src"
    destination.mkdir()
    (destination / "README.txt").write_text("llvm", encoding="utf-8")
    resource = GitResource(url="https://github.com/llvm/llvm-project.git")

    assert fetch_resource(resource, destination, tool_name="llvm", archive_cache=tmp_path / "cache") is False
    with pytest.raises(SourceExistsError):
        fetch_resource(
            resource,
            destination,
            tool_name="llvm",
            archive_cache=tmp_path / "cache",
            existing=ExistingSourcePolicy.FAIL,
        )
    assert calls == []


def test_fetch_archive_unpacks_into_tool_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    archive = _make_archive(tmp_path / "llvm-project.tar.gz", {"llvm-project-17.0.2/llvm/CMakeLists.txt": b"x"})
    downloads: list[str] = []

    def fake_cached_download(url: str, cache_dir: Path, *, timeout: float) -> Path:
        downloads.append(url)
        return archive

    monkeypatch.setattr(fetch, "cached_download", fake_cached_download)
    destination = tmp_path / "src"
    resource = TarResource(url="https://example.com/llvm-project.tar.gz")

    assert fetch_resource(resource, destination, tool_name="llvm", archive_cache=tmp_path / "cache") is True
    assert (destination / "llvm" / "llvm" / "CMakeLists.txt").is_file()

    (destination / "build").mkdir()
    assert fetch_resource(resource, destination, tool_name="llvm", archive_cache=tmp_path / "cache") is False
    assert downloads == ["https://example.com/llvm-project.tar.gz"]


def test_update_resource_commands(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _record_commands(monkeypatch)

    update_resource(GitResource(url="https://github.com/llvm/llvm-project.git"), tmp_path)
    update_resource(SvnResource(url="http://llvm.org/svn/llvm-project/llvm/trunk"), tmp_path)
    update_resource(TarResource(url="https://example.com/llvm.tar.gz"), tmp_path)

    assert calls == [(["git", "pull"], tmp_path), (["svn", "update"], tmp_path)]
