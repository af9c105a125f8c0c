"""
Git tag and http release source.

Tags come from git ls-remote against the upstream repository, bundles from the
release download url. No clone is needed, only network access.

Design
Tag listing and downloading sit behind the TagLister and HttpClient interfaces,
so tests plug in fakes and never touch the network.
Every call carries a timeout. The compiler has no deadline of its own.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from release_inventory.core.errors import FetchFailed
from release_inventory.core.types import MIN_VERSION
from release_inventory.source.base import (
    HttpClient,
    ReleaseSource,
    TagLister,
    filter_release_tags,
)

logger = logging.getLogger(__name__)

DEFAULT_REPO_URL = "https://github.com/cert-manager/cert-manager"
DEFAULT_DOWNLOAD_URL = (
    "https://github.com/cert-manager/cert-manager/releases/download/{version}/cert-manager.yaml"
)


@dataclass
class UrllibHttpClient(HttpClient):
    """Default http client using urllib."""

    timeout_seconds: float = 30

    def get_bytes(self, url: str, headers: dict[str, str]) -> bytes:
        req = Request(url, headers=headers, method="GET")
        try:
            with urlopen(req, timeout=self.timeout_seconds) as resp:
                status = resp.status
                body = resp.read()
        except HTTPError as exc:
            raise FetchFailed(f"GET {url} returned status {exc.code}") from exc
        except (URLError, OSError) as exc:
            raise FetchFailed(f"GET {url} failed: {exc}") from exc

        if not 200 <= status < 300:
            raise FetchFailed(f"GET {url} returned status {status}")

        return body


@dataclass
class GitTagLister(TagLister):
    """List tags with the git command line client."""

    timeout_seconds: float = 60
    git_binary: str = "git"

    def list_refs(self, repo_url: str) -> list[str]:
        cmd = [
            self.git_binary,
            "ls-remote",
            "--tags",
            "--sort=version:refname",
            "--refs",
            repo_url,
        ]
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise FetchFailed(f"failed to list tags of {repo_url}: {exc}") from exc

        if proc.returncode != 0:
            raise FetchFailed(
                f"failed to list tags of {repo_url}: git exited {proc.returncode}: {proc.stderr.strip()}"
            )

        return proc.stdout.splitlines()


@dataclass(frozen=True)
class GitHubReleaseSource(ReleaseSource):
    """
    Releases published as git tags with a downloadable bundle per tag.

    download_url_template is formatted with version, for example
    https://example.com/releases/download/{version}/bundle.yaml

    min_version is the floor. Older tags predate the catalog and are ignored.
    """

    repo_url: str = DEFAULT_REPO_URL
    download_url_template: str = DEFAULT_DOWNLOAD_URL
    min_version: str = MIN_VERSION
    http: HttpClient = field(default_factory=UrllibHttpClient)
    tags: TagLister = field(default_factory=GitTagLister)

    def list_versions(self, max_version: str) -> set[str]:
        refs = self.tags.list_refs(self.repo_url)
        versions = filter_release_tags(refs, self.min_version, max_version)
        logger.debug("listed %d release versions from %s", len(versions), self.repo_url)
        return versions

    def fetch_manifest(self, version: str) -> bytes:
        url = self.download_url_template.format(version=version)
        logger.debug("downloading %s", url)
        return self.http.get_bytes(url, headers={"Accept": "application/octet-stream, */*"})
