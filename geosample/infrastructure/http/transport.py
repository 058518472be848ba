"""HTTP(S) adapter for the SourceTransport port."""

import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager

import httpx

from geosample.domain.sample.port.transport import ByteStream, SourceTransport
from geosample.domain.shared.error import TransportError, UpstreamError

logger = logging.getLogger(__name__)


class HttpTransport(SourceTransport):
    """Streams a GET response body with httpx."""

    def __init__(self, client: httpx.AsyncClient, chunk_size: int = 64 * 1024) -> None:
        self._client = client
        self._chunk_size = chunk_size

    @asynccontextmanager
    async def open(
        self,
        uri: str,
        params: Mapping[str, str] | None = None,
    ) -> AsyncIterator[ByteStream]:
        logger.debug("GET %s params=%s", uri, dict(params or {}))
        try:
            async with self._client.stream(
                "GET", uri, params=params, follow_redirects=True
            ) as response:
                if not response.is_success:
                    raise UpstreamError(response.status_code, await _error_body(response))
                yield response.aiter_bytes(self._chunk_size)
        except httpx.TransportError as e:
            raise TransportError(str(e) or type(e).__name__) from e
        except httpx.InvalidURL as e:
            raise TransportError(str(e)) from e


async def _error_body(response: httpx.Response) -> str | None:
    """Body of an error response, only when the server sent plain text."""
    content_type = response.headers.get("content-type", "")
    if not content_type.lower().startswith("text/plain"):
        return None
    await response.aread()
    return response.text.strip() or None
