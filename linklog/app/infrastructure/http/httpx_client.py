"""Concrete HTTP client implementation using httpx (injected where AbstractHttpClient is needed).

Bodies are streamed and cut at `max_body_bytes`: metadata tags live in the page head, so
there is no point downloading a large page in full.
"""
from __future__ import annotations

from dataclasses import dataclass, field

import httpx

from linklog.app.ports.http_client import (
    AbstractHttpClient,
    HttpClientError,
    HttpClientTimeoutError,
    HttpResponse,
    RequestTimeout,
)

MAX_BODY_BYTES = 1_000_000  # 1 MB


@dataclass(frozen=True)
class FetchedResponse:
    """Already-read response satisfying the HttpResponse protocol."""

    status_code: int
    url: str
    text: str
    headers: dict[str, str] = field(default_factory=dict)
    truncated: bool = False


class HttpxHttpClient(AbstractHttpClient):
    """AbstractHttpClient implementation using httpx.AsyncClient."""

    def __init__(self, client: httpx.AsyncClient, *, max_body_bytes: int = MAX_BODY_BYTES) -> None:
        self._client = client
        self._max_body_bytes = int(max_body_bytes)

    async def get(
        self,
        url: str,
        *,
        timeout: RequestTimeout,
        follow_redirects: bool = True,
        headers: dict[str, str] | None = None,
    ) -> HttpResponse:
        httpx_timeout = httpx.Timeout(
            connect=timeout.connect_seconds,
            read=timeout.read_seconds,
            write=timeout.read_seconds,
            pool=timeout.connect_seconds,
        )
        try:
            async with self._client.stream(
                "GET",
                url,
                timeout=httpx_timeout,
                follow_redirects=follow_redirects,
                headers=headers or {},
            ) as response:
                body, truncated = await self._read_capped(response)
                encoding = response.charset_encoding or "utf-8"
                return FetchedResponse(
                    status_code=response.status_code,
                    url=str(response.url),
                    text=body.decode(encoding, errors="replace"),
                    headers=dict(response.headers),
                    truncated=truncated,
                )
        except httpx.TimeoutException as exc:
            raise HttpClientTimeoutError(f"timeout while fetching {url}") from exc
        except httpx.HTTPError as exc:
            raise HttpClientError(f"http fetch failed for {url}: {exc}") from exc
        except LookupError as exc:
            # Unknown charset advertised by the server.
            raise HttpClientError(f"undecodable response from {url}: {exc}") from exc

    async def _read_capped(self, response: httpx.Response) -> tuple[bytes, bool]:
        limit = self._max_body_bytes
        body = bytearray()
        async for chunk in response.aiter_bytes():
            body.extend(chunk)
            if limit > 0 and len(body) >= limit:
                return bytes(body[:limit]), True
        return bytes(body), False

    async def close(self) -> None:
        await self._client.aclose()
