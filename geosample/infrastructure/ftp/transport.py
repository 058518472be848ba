"""FTP adapter for the SourceTransport port."""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import asynccontextmanager
from urllib.parse import unquote, urlsplit

import aioftp

from geosample.domain.sample.port.transport import ByteStream, SourceTransport
from geosample.domain.shared.error import AuthenticationError, TransportError

logger = logging.getLogger(__name__)

ANONYMOUS_USER = "anonymous"

FTP_PORT = 21

_CONNECTION_ERRORS = (OSError, asyncio.TimeoutError)


def _status_message(error: aioftp.StatusCodeError) -> str:
    """Raw server reply of a failed FTP command."""
    info = " ".join(line.strip() for line in (error.info or []) if line.strip())
    codes = ",".join(str(code) for code in error.received_codes)
    return f"{codes} {info}".strip() or str(error)


class FtpTransport(SourceTransport):
    """Downloads a file over a dedicated FTP control connection.

    One client per `open()`. Leaving the context aborts an unfinished data
    connection and always ends the session with QUIT.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        chunk_size: int = 64 * 1024,
        client_factory: Callable[[], aioftp.Client] | None = None,
    ) -> None:
        self._timeout = timeout
        self._chunk_size = chunk_size
        self._client_factory = client_factory or self._default_client

    def _default_client(self) -> aioftp.Client:
        return aioftp.Client(
            socket_timeout=self._timeout,
            connection_timeout=self._timeout,
            path_timeout=self._timeout,
        )

    @asynccontextmanager
    async def open(
        self,
        uri: str,
        params: Mapping[str, str] | None = None,
    ) -> AsyncIterator[ByteStream]:
        parts = urlsplit(uri)
        host = parts.hostname or ""
        user = unquote(parts.username) if parts.username else ANONYMOUS_USER
        password = unquote(parts.password) if parts.password else ""
        path = unquote(parts.path) or "/"

        client = self._client_factory()
        try:
            await client.connect(host, parts.port or FTP_PORT)
        except _CONNECTION_ERRORS as e:
            client.close()
            raise TransportError(str(e) or type(e).__name__) from e

        try:
            try:
                await client.login(user, password)
            except aioftp.StatusCodeError as e:
                logger.debug("FTP login to %s rejected: %s", host, _status_message(e))
                raise AuthenticationError("Authentication error") from e

            logger.debug("FTP RETR %s from %s", path, host)
            try:
                stream = await client.download_stream(path)
            except aioftp.StatusCodeError as e:
                raise TransportError(_status_message(e)) from e

            reader = _ChunkReader(stream, self._chunk_size)
            try:
                yield reader
            except _CONNECTION_ERRORS as e:
                reader.abort()
                raise TransportError(str(e) or type(e).__name__) from e
            except BaseException:
                reader.abort()
                raise
            await reader.release()
        except _CONNECTION_ERRORS as e:
            raise TransportError(str(e) or type(e).__name__) from e
        finally:
            await _quit(client)


class _ChunkReader:
    """Async iterator over a data connection that remembers whether it hit EOF."""

    def __init__(self, stream, chunk_size: int) -> None:
        self._stream = stream
        self._chunk_size = chunk_size
        self._finished = False
        self._released = False

    def __aiter__(self) -> "_ChunkReader":
        return self

    async def __anext__(self) -> bytes:
        chunk = await self._stream.read(self._chunk_size)
        if not chunk:
            self._finished = True
            raise StopAsyncIteration
        return chunk

    async def release(self) -> None:
        """Confirm a complete transfer, or abort an incomplete one."""
        if not self._finished:
            self.abort()
            return
        if self._released:
            return
        self._released = True
        try:
            await self._stream.finish()
        except aioftp.StatusCodeError as e:
            raise TransportError(_status_message(e)) from e

    def abort(self) -> None:
        # Drops the data connection without waiting for the transfer reply
        if self._released:
            return
        self._released = True
        self._stream.close()


async def _quit(client: aioftp.Client) -> None:
    try:
        await client.quit()
    except Exception as e:
        logger.debug("FTP QUIT failed, closing socket: %r", e)
        client.close()
