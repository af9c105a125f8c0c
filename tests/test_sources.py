from __future__ import annotations

import subprocess
from pathlib import Path
from urllib.error import HTTPError, URLError

import pytest

from release_inventory.core.errors import FetchFailed
from release_inventory.source import github
from release_inventory.source.base import filter_release_tags
from release_inventory.source.github import GitHubReleaseSource, GitTagLister, UrllibHttpClient
from release_inventory.source.static import StaticReleaseSource

REFS = [
    "1111\trefs/tags/v0.16.0",
    "2222\trefs/tags/v1.0.0",
    "3333\trefs/tags/v1.2.0-alpha.1",
    "4444\trefs/tags/cmd/ctl/v1.3.0",
    "5555\trefs/tags/latest",
    "6666\trefs/tags/v1.10.0",
    "7777\trefs/tags/v1.11.0",
    "",
]


class FakeTags:
    def __init__(self, refs: list[str]) -> None:
        self.refs = refs
        self.urls: list[str] = []

    def list_refs(self, repo_url: str) -> list[str]:
        self.urls.append(repo_url)
        return self.refs


class FakeHttp:
    def __init__(self, body: bytes) -> None:
        self.body = body
        self.urls: list[str] = []

    def get_bytes(self, url: str, headers: dict[str, str]) -> bytes:
        self.urls.append(url)
        return self.body


class FakeResponse:
    def __init__(self, status: int, body: bytes) -> None:
        self.status = status
        self._body = body

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc: object) -> None:
        return None


def test_filter_release_tags_keeps_semver_in_range():
    versions = filter_release_tags(REFS, "v1.0.0", "v1.10.0")
    assert versions == {"v1.0.0", "v1.2.0-alpha.1", "v1.10.0"}


def test_filter_release_tags_keeps_semver_prereleases():
    refs = ["1\trefs/tags/v1.5.0-foo", "2\trefs/tags/v1.5.0", "3\trefs/tags/v1.5.0-1"]
    assert filter_release_tags(refs, "v1.0.0", "v1.5.0") == {"v1.5.0-foo", "v1.5.0", "v1.5.0-1"}


def test_filter_release_tags_rejects_unexpected_output():
    with pytest.raises(FetchFailed):
        filter_release_tags(["not a ref line"], "v1.0.0", "v1.10.0")


def test_github_source_lists_and_downloads():
    tags = FakeTags(REFS)
    http = FakeHttp(b"kind: Service\n")
    source = GitHubReleaseSource(
        repo_url="https://example.com/demo/operator",
        download_url_template="https://example.com/demo/operator/releases/download/{version}/operator.yaml",
        http=http,
        tags=tags,
    )

    assert source.list_versions("v1.11.0") == {"v1.0.0", "v1.2.0-alpha.1", "v1.10.0", "v1.11.0"}
    assert tags.urls == ["https://example.com/demo/operator"]

    assert source.fetch_manifest("v1.10.0") == b"kind: Service\n"
    assert http.urls == ["https://example.com/demo/operator/releases/download/v1.10.0/operator.yaml"]


def test_github_source_respects_floor():
    source = GitHubReleaseSource(min_version="v1.5.0", http=FakeHttp(b""), tags=FakeTags(REFS))
    assert source.list_versions("v2.0.0") == {"v1.10.0", "v1.11.0"}


def test_urllib_client_returns_body(monkeypatch):
    monkeypatch.setattr(github, "urlopen", lambda req, timeout: FakeResponse(200, b"ok"))
    assert UrllibHttpClient().get_bytes("https://example.com/a", headers={}) == b"ok"


def test_urllib_client_maps_http_error(monkeypatch):
    def fail(req, timeout):
        raise HTTPError(req.full_url, 404, "Not Found", hdrs=None, fp=None)

    monkeypatch.setattr(github, "urlopen", fail)
    with pytest.raises(FetchFailed, match="404"):
        UrllibHttpClient().get_bytes("https://example.com/a", headers={})


def test_urllib_client_maps_transport_error(monkeypatch):
    def fail(req, timeout):
        raise URLError("connection refused")

    monkeypatch.setattr(github, "urlopen", fail)
    with pytest.raises(FetchFailed, match="connection refused"):
        UrllibHttpClient().get_bytes("https://example.com/a", headers={})


def test_urllib_client_rejects_non_success_status(monkeypatch):
    monkeypatch.setattr(github, "urlopen", lambda req, timeout: FakeResponse(302, b""))
    with pytest.raises(FetchFailed, match="302"):
        UrllibHttpClient().get_bytes("https://example.com/a", headers={})


def test_git_tag_lister_returns_lines(monkeypatch):
    def run(cmd, **kwargs):
        assert cmd[:2] == ["git", "ls-remote"]
        return subprocess.CompletedProcess(cmd, 0, stdout="1\trefs/tags/v1.0.0\n", stderr="")

    monkeypatch.setattr(github.subprocess, "run", run)
    assert GitTagLister().list_refs("https://example.com/repo") == ["1\trefs/tags/v1.0.0"]


def test_git_tag_lister_failure_raises(monkeypatch):
    def run(cmd, **kwargs):
        return subprocess.CompletedProcess(cmd, 128, stdout="", stderr="fatal: repository not found")

    monkeypatch.setattr(github.subprocess, "run", run)
    with pytest.raises(FetchFailed, match="repository not found"):
        GitTagLister().list_refs("https://example.com/repo")


def test_git_tag_lister_missing_binary_raises():
    with pytest.raises(FetchFailed):
        GitTagLister(git_binary="definitely-not-a-git-binary").list_refs("https://example.com/repo")


def test_static_source_reads_directory(tmp_path: Path):
    for name in ["v0.9.0", "v1.0.0", "v1.1.0", "v1.2.0", "notes"]:
        (tmp_path / f"{name}.yaml").write_text(f"kind: Service\n# {name}\n", encoding="utf-8")

    source = StaticReleaseSource(directory=tmp_path)

    assert source.list_versions("v1.1.0") == {"v1.0.0", "v1.1.0"}
    assert source.fetch_manifest("v1.0.0") == b"kind: Service\n# v1.0.0\n"


def test_static_source_missing_bundle_raises(tmp_path: Path):
    with pytest.raises(FetchFailed):
        StaticReleaseSource(directory=tmp_path).fetch_manifest("v1.0.0")


def test_static_source_missing_directory_raises(tmp_path: Path):
    with pytest.raises(FetchFailed):
        StaticReleaseSource(directory=tmp_path / "missing").list_versions("v1.0.0")
