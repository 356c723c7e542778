"""Outbound GET used to fetch pages for metadata.

The resolver only sees this port; the httpx adapter lives in infrastructure.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Protocol, runtime_checkable


class HttpClientError(Exception):
    """The page could not be fetched (DNS, refused connection, TLS, too many redirects...)."""


class HttpClientTimeoutError(HttpClientError):
    pass


@runtime_checkable
class HttpResponse(Protocol):
    """What the resolver reads from a fetched page."""

    @property
    def status_code(self) -> int: ...

    @property
    def url(self) -> str:
        """Final URL after redirects."""
        ...

    @property
    def text(self) -> str: ...

    @property
    def headers(self) -> Mapping[str, str]: ...


@dataclass(frozen=True)
class RequestTimeout:
    connect_seconds: float
    read_seconds: float


class AbstractHttpClient(Protocol):
    """GET a page. Any status code is a response; only transport failures raise."""

    async def get(
        self,
        url: str,
        *,
        timeout: RequestTimeout,
        follow_redirects: bool = True,
        headers: dict[str, str] | None = None,
    ) -> HttpResponse: ...

    async def close(self) -> None: ...
