"""Zip archive extraction.

Zip central directories live at the end of the file, so the archive is
staged to the request's temp scope before any entry is read. Entries are
then decompressed chunk by chunk straight from disk.
"""

import asyncio
import logging
import zipfile
import zlib
from collections.abc import AsyncGenerator, AsyncIterator, Iterator
from pathlib import Path, PurePosixPath
from types import TracebackType

from geosample.domain.sample.model.value import SourceFormat
from geosample.domain.sample.port.archive import Archive, ArchiveOpener
from geosample.domain.sample.port.staging import StagingArea
from geosample.domain.sample.service.classifier import entry_format
from geosample.domain.shared.error import MalformedArchiveError, UndeterminedFormatError

logger = logging.getLogger(__name__)

_READ_ERRORS = (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError, RuntimeError)

# macOS resource forks, never data
_RESOURCE_FORK_DIR = "__MACOSX/"


class ZipEntry:
    """A file inside an open archive.

    Valid until it has been read or drained, or the archive is closed.
    """

    def __init__(self, archive: zipfile.ZipFile, info: zipfile.ZipInfo, chunk_size: int) -> None:
        self._archive = archive
        self._info = info
        self._chunk_size = chunk_size
        self.name = info.filename
        self.format, self.delimiter = entry_format(info.filename)
        self._consumed = False

    @property
    def basename(self) -> str:
        return PurePosixPath(self.name).name

    @property
    def size(self) -> int:
        return self._info.file_size

    def has_suffix(self, suffix: str) -> bool:
        return self.name.lower().endswith(suffix.lower())

    async def stream(self) -> AsyncGenerator[bytes, None]:
        """Decompressed content, one chunk at a time."""
        if self._consumed:
            raise RuntimeError(f"Archive entry {self.name} was already consumed")
        self._consumed = True
        try:
            fh = await asyncio.to_thread(self._archive.open, self._info)
            try:
                while chunk := await asyncio.to_thread(fh.read, self._chunk_size):
                    yield chunk
            finally:
                fh.close()
        except _READ_ERRORS as e:
            raise MalformedArchiveError(str(e) or type(e).__name__) from e

    def drain(self) -> None:
        """Skip this entry.

        Nothing is decompressed; the next entry is located from the central
        directory.
        """
        self._consumed = True

    def __repr__(self) -> str:
        return f"ZipEntry(name={self.name!r}, format={self.format.value})"


class ZipArchive(Archive):
    """An archive staged on local disk."""

    def __init__(self, path: Path, chunk_size: int = 64 * 1024) -> None:
        try:
            self._zip = zipfile.ZipFile(path)
        except (zipfile.BadZipFile, OSError, EOFError) as e:
            raise MalformedArchiveError(str(e) or type(e).__name__) from e
        self._chunk_size = chunk_size

    def entries(self) -> Iterator[ZipEntry]:
        """File entries in stored order, directories and resource forks skipped."""
        for info in self._zip.infolist():
            if info.is_dir() or info.filename.startswith(_RESOURCE_FORK_DIR):
                continue
            yield ZipEntry(self._zip, info, self._chunk_size)

    def first_supported(self) -> ZipEntry:
        """The first entry in a format the sampler can decode.

        Raises:
            UndeterminedFormatError: No entry has a supported suffix.
        """
        for entry in self.entries():
            if entry.format is not SourceFormat.UNKNOWN:
                logger.debug("Zip: using %r", entry)
                return entry
            logger.debug("Zip: skipping %s", entry.name)
            entry.drain()
        raise UndeterminedFormatError("Could not determine type from zip file")

    def first_with_suffix(self, suffix: str) -> ZipEntry:
        for entry in self.entries():
            if entry.has_suffix(suffix):
                return entry
            entry.drain()
        raise UndeterminedFormatError(f"Could not find a {suffix} file in zip file")

    def close(self) -> None:
        self._zip.close()

    def __enter__(self) -> "ZipArchive":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class ZipArchiveOpener(ArchiveOpener):
    """Stages a zip stream in the request's staging area and opens it."""

    def __init__(self, staging: StagingArea, chunk_size: int = 64 * 1024) -> None:
        self._staging = staging
        self._chunk_size = chunk_size

    async def open(self, stream: AsyncIterator[bytes]) -> ZipArchive:
        path = await self._staging.stage(stream, suffix=".zip")
        return await asyncio.to_thread(ZipArchive, path, self._chunk_size)
