"""Blob store factory: selects the versioned store backend from config."""
from __future__ import annotations

from linklog.app.config.settings import Settings
from linklog.app.infrastructure.storage.github.github_contents_store import (
    GitHubContentsStore,
    build_github_client,
)
from linklog.app.infrastructure.storage.inmemory.in_memory_blob_store import InMemoryBlobStore
from linklog.app.ports.versioned_store import VersionedBlobStore


def create_blob_store(settings: Settings) -> VersionedBlobStore:
    backend = settings.store_backend.strip().lower()

    if backend == "github":
        client = build_github_client(
            api_url=settings.github_api_url,
            token=settings.github_token,
            timeout_seconds=settings.store_timeout_seconds,
        )
        return GitHubContentsStore(
            client,
            owner=settings.github_owner,
            repo=settings.github_repo,
            branch=settings.github_branch or None,
        )

    if backend == "inmemory":
        return InMemoryBlobStore()

    raise ValueError(f"Unsupported store backend: {backend}")
