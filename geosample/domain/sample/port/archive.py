from abc import abstractmethod
from collections.abc import AsyncGenerator, AsyncIterator
from typing import Protocol

from geosample.domain.sample.model.value import SourceFormat


class ArchiveEntry(Protocol):
    name: str
    format: SourceFormat
    delimiter: str | None

    @property
    def basename(self) -> str: ...

    def stream(self) -> AsyncGenerator[bytes, None]: ...

    def drain(self) -> None: ...


class Archive(Protocol):
    """An opened archive; entries are valid until `close()`."""

    @abstractmethod
    def first_supported(self) -> ArchiveEntry:
        """First entry in a decodable format, else `UndeterminedFormatError`."""
        ...

    @abstractmethod
    def first_with_suffix(self, suffix: str) -> ArchiveEntry: ...

    @abstractmethod
    def close(self) -> None: ...


class ArchiveOpener(Protocol):
    @abstractmethod
    async def open(self, stream: AsyncIterator[bytes]) -> Archive:
        """Read `stream` into an archive, or raise `MalformedArchiveError`."""
        ...
