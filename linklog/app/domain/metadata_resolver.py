"""Metadata resolver: best-effort enrichment of a bookmark URL.

Uses the HTTP port (AbstractHttpClient); the client is built in the composition root.
Only a structurally invalid URL is an error for callers. Network failures, non-2xx
responses and timeouts come back as a partial result so persistence is never blocked.
"""
from __future__ import annotations

import asyncio
from typing import Any
from urllib.parse import urlparse

from loguru import logger

from linklog.app.constants import METADATA_TIMEOUT_SECONDS
from linklog.app.core import SERVICE_NAME
from linklog.app.domain.metadata_extraction import extract_page_fields
from linklog.app.domain.models import ResolvedMetadata
from linklog.app.ports.http_client import (
    AbstractHttpClient,
    HttpClientError,
    HttpClientTimeoutError,
    RequestTimeout,
)


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class InvalidUrlError(ValueError):
    """Raised for a URL with a missing or unsupported scheme, or no host."""


class TransientFetchError(Exception):
    """Network failure while fetching a page. Never leaves the resolver."""


def validate_url(url: str) -> str:
    try:
        parsed = urlparse(url)
    except ValueError as exc:
        raise InvalidUrlError(f"Invalid URL: {url}") from exc
    if parsed.scheme.lower() not in ("http", "https") or not parsed.netloc:
        raise InvalidUrlError(f"Invalid URL: {url}")
    return url


class MetadataResolver:
    """Fetches a page once and extracts enrichment fields under a hard timeout.

    The timeout bounds fetch and parse together; when it expires the in-flight
    request is cancelled and a partial result is returned.
    """

    def __init__(
        self,
        client: AbstractHttpClient,
        *,
        timeout_seconds: float = METADATA_TIMEOUT_SECONDS,
        connect_timeout_seconds: float | None = None,
        default_headers: dict[str, str] | None = None,
    ) -> None:
        self._client = client
        self._timeout_seconds = float(timeout_seconds)
        self._request_timeout = RequestTimeout(
            connect_seconds=connect_timeout_seconds or self._timeout_seconds,
            read_seconds=self._timeout_seconds,
        )
        self._default_headers = dict(default_headers) if default_headers else {}

    async def resolve(self, url: str) -> ResolvedMetadata:
        validate_url(url)
        try:
            return await asyncio.wait_for(self._fetch_and_extract(url), timeout=self._timeout_seconds)
        except asyncio.TimeoutError:
            _log("metadata_timeout", url=url, timeout_seconds=self._timeout_seconds)
        except TransientFetchError as exc:
            _log("metadata_fetch_failed", url=url, error=str(exc))
        return ResolvedMetadata.partial_for(url)

    async def _fetch_and_extract(self, url: str) -> ResolvedMetadata:
        try:
            response = await self._client.get(
                url,
                timeout=self._request_timeout,
                follow_redirects=True,
                headers=self._default_headers or None,
            )
        except HttpClientTimeoutError as exc:
            raise TransientFetchError(f"timeout: {exc}") from exc
        except HttpClientError as exc:
            raise TransientFetchError(str(exc)) from exc

        final_url = str(response.url or url)
        if not 200 <= response.status_code < 300:
            _log("metadata_non_2xx", url=url, status_code=response.status_code)
            return ResolvedMetadata(canonical_url=final_url, partial=True)

        fields = extract_page_fields(response.text, base_url=final_url)
        logger.debug("resolved {} -> {} (title={!r})", url, final_url, fields.title)
        return ResolvedMetadata(
            canonical_url=final_url,
            title=fields.title,
            description=fields.description,
            image=fields.image,
            partial=False,
        )
