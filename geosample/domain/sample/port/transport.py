from abc import abstractmethod
from collections.abc import AsyncIterator, Mapping
from contextlib import AbstractAsyncContextManager
from typing import Protocol

ByteStream = AsyncIterator[bytes]


class SourceTransport(Protocol):
    """Opens a readable byte stream for a URI.

    Leaving the context closes the underlying connection, whether or not the
    stream was read to the end. Connection-level failures raise
    `TransportError`, non-2xx answers `UpstreamError`, rejected logins
    `AuthenticationError`.
    """

    @abstractmethod
    def open(
        self,
        uri: str,
        params: Mapping[str, str] | None = None,
    ) -> AbstractAsyncContextManager[ByteStream]: ...
