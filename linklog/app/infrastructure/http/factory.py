"""HTTP client factory: builds AbstractHttpClient from settings (no provider logic in composition)."""
from __future__ import annotations

import httpx

from linklog.app.config.settings import Settings
from linklog.app.infrastructure.http.httpx_client import HttpxHttpClient
from linklog.app.ports.http_client import AbstractHttpClient

MAX_REDIRECTS = 10


def create_http_client(settings: Settings) -> AbstractHttpClient:
    """Build an HTTP client for metadata fetches. Timeouts are applied per-request by the adapter."""
    async_client = httpx.AsyncClient(
        max_redirects=MAX_REDIRECTS,
        headers={"User-Agent": settings.metadata_user_agent},
    )
    return HttpxHttpClient(async_client)
