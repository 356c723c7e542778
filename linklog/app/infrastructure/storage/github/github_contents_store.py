"""VersionedBlobStore over the GitHub repository contents API.

The blob `sha` is the revision. A PUT carrying a stale sha is rejected with 409; a PUT
without a sha for a file that already exists is rejected with 422. Both are conflicts.
"""
from __future__ import annotations

import base64
from typing import Any

import httpx
from loguru import logger

from linklog.app.ports.versioned_store import BlobSnapshot, BlobStoreError, ConflictError

GITHUB_API_VERSION = "2022-11-28"


def build_github_client(
    *,
    api_url: str,
    token: str,
    timeout_seconds: float,
    user_agent: str = "linklog",
) -> httpx.AsyncClient:
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": GITHUB_API_VERSION,
        "User-Agent": user_agent,
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return httpx.AsyncClient(
        base_url=api_url.rstrip("/"),
        headers=headers,
        timeout=httpx.Timeout(timeout_seconds),
    )


class GitHubContentsStore:
    """Concrete implementation of VersionedBlobStore using the GitHub REST API."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        owner: str,
        repo: str,
        branch: str | None = None,
    ) -> None:
        if not owner or not repo:
            raise ValueError("github owner and repo are required")
        self._client = client
        self._owner = owner
        self._repo = repo
        self._branch = branch or None

    def _contents_path(self, path: str) -> str:
        return f"/repos/{self._owner}/{self._repo}/contents/{path.lstrip('/')}"

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise BlobStoreError(f"github {method} {url} timed out") from exc
        except httpx.HTTPError as exc:
            raise BlobStoreError(f"github {method} {url} failed: {exc}") from exc

    async def read_blob(self, path: str) -> BlobSnapshot:
        params = {"ref": self._branch} if self._branch else None
        response = await self._request("GET", self._contents_path(path), params=params)
        if response.status_code == 404:
            return BlobSnapshot(content=None, revision=None)
        if not response.is_success:
            raise BlobStoreError(f"github read of {path} returned {response.status_code}")

        try:
            data = response.json()
            if isinstance(data, list):
                raise BlobStoreError(f"github path {path} is a directory")
            sha = data["sha"]
            if data.get("encoding") == "none" or (not data.get("content") and data.get("size", 0) > 0):
                # Files over 1 MB come without inline content; fetch them through the git blobs API.
                return BlobSnapshot(content=await self._read_git_blob(sha), revision=sha)
            return BlobSnapshot(content=_decode(data.get("content") or ""), revision=sha)
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise BlobStoreError(f"github read of {path} returned an unusable body: {exc!r}") from exc

    async def _read_git_blob(self, sha: str) -> str:
        url = f"/repos/{self._owner}/{self._repo}/git/blobs/{sha}"
        response = await self._request("GET", url)
        if not response.is_success:
            raise BlobStoreError(f"github blob {sha} returned {response.status_code}")
        return _decode(response.json().get("content") or "")

    async def write_blob(
        self,
        path: str,
        content: str,
        *,
        expected_revision: str | None,
        message: str,
    ) -> str:
        payload: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        }
        if expected_revision is not None:
            payload["sha"] = expected_revision
        if self._branch:
            payload["branch"] = self._branch

        response = await self._request("PUT", self._contents_path(path), json=payload)
        if response.status_code == 409:
            raise ConflictError(f"github rejected write of {path}: revision {expected_revision} is stale")
        if response.status_code == 422 and expected_revision is None:
            raise ConflictError(f"github rejected creation of {path}: file already exists")
        if not response.is_success:
            logger.warning("github write of {} returned {}: {}", path, response.status_code, response.text[:500])
            raise BlobStoreError(f"github write of {path} returned {response.status_code}")
        try:
            revision = response.json()["content"]["sha"]
        except (ValueError, KeyError, TypeError) as exc:
            raise BlobStoreError(f"github write of {path} returned an unusable body: {exc!r}") from exc
        if not isinstance(revision, str) or not revision:
            raise BlobStoreError(f"github write of {path} returned no revision")
        return revision

    async def close(self) -> None:
        await self._client.aclose()


def _decode(encoded: str) -> str:
    # The API wraps base64 at 60 columns.
    return base64.b64decode("".join(encoded.split())).decode("utf-8")
