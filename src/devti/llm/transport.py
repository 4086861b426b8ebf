"""HTTP transport for chat-completion calls.

One :class:`Transport` wraps one ``httpx.AsyncClient`` (and its connection
pool); it can be shared by several conversations.  Each call owns its own
request and response.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Mapping

import httpx

from devti.errors import (
    ConnectError,
    HttpStatusError,
    RequestTimeoutError,
    StreamTerminalError,
)

_logger = logging.getLogger(__name__)

CONTENT_TYPE = "application/json; charset=utf-8"
DEFAULT_TIMEOUT = 600  # seconds


class Transport:
    """POST a request body, either blocking or as a byte stream."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    # ------------------------------------------------------------------
    # Blocking
    # ------------------------------------------------------------------

    async def post(
        self,
        url: str,
        body: bytes,
        headers: Mapping[str, str] | None = None,
    ) -> bytes:
        """Send *body* and return the whole response body.

        Raises :class:`HttpStatusError` on a non-2xx status.
        """
        _logger.debug("POST %s (%d bytes)", url, len(body))
        try:
            resp = await self._client.post(url, content=body, headers=_headers(headers))
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(f"Request to {url} timed out: {e}") from e
        except httpx.HTTPError as e:
            raise ConnectError(f"Request to {url} failed: {e}") from e

        if not resp.is_success:
            raise HttpStatusError(resp.status_code, resp.text)
        return resp.content

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def open_stream(
        self,
        url: str,
        body: bytes,
        headers: Mapping[str, str] | None = None,
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        """Open a streaming POST; yields an iterator over the raw body.

        Setup failures raise :class:`ConnectError`,
        :class:`RequestTimeoutError` or :class:`HttpStatusError`; failures
        while reading the body raise :class:`StreamTerminalError`.  The
        connection is released when the context exits, however it exits.
        """
        _logger.debug("POST %s (stream, %d bytes)", url, len(body))
        try:
            async with self._client.stream(
                "POST", url, content=body, headers=_headers(headers),
            ) as resp:
                if not resp.is_success:
                    await resp.aread()
                    raise HttpStatusError(resp.status_code, resp.text)
                yield _read_body(resp)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(f"Stream to {url} timed out: {e}") from e
        except httpx.HTTPError as e:
            raise ConnectError(f"Stream to {url} failed: {e}") from e

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()


async def _read_body(resp: httpx.Response) -> AsyncIterator[bytes]:
    try:
        async for chunk in resp.aiter_bytes():
            yield chunk
    except httpx.HTTPError as e:
        raise StreamTerminalError(f"Stream interrupted: {e!r}") from e


def _headers(extra: Mapping[str, str] | None) -> dict[str, str]:
    headers = {"Content-Type": CONTENT_TYPE, "Accept": "application/json, text/event-stream"}
    if extra:
        headers.update(extra)
    return headers
