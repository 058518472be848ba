import logging
from collections.abc import AsyncGenerator

from geosample.domain.download.model.value import DownloadFormat, MetadataRow
from geosample.domain.sample.port.archive import Archive, ArchiveEntry, ArchiveOpener
from geosample.domain.sample.port.transport import SourceTransport
from geosample.domain.shared.error import (
    AuthenticationError,
    MalformedPayloadError,
    SourceNotFoundError,
    TransportError,
    UpstreamError,
)
from geosample.domain.shared.query import Service

logger = logging.getLogger(__name__)

_RETRIEVAL_ERRORS = (TransportError, UpstreamError, AuthenticationError, MalformedPayloadError)


class DownloadService(Service):
    """Fetches a processed run archive and picks the file to send back."""

    transport: SourceTransport
    archives: ArchiveOpener

    async def open_latest(
        self, row: MetadataRow, format: DownloadFormat
    ) -> tuple[ArchiveEntry, AsyncGenerator[bytes, None]]:
        if not row.processed:
            raise SourceNotFoundError(f"No processed run recorded for {row.source}")

        try:
            async with self.transport.open(row.processed) as stream:
                archive = await self.archives.open(stream)
        except _RETRIEVAL_ERRORS as e:
            e.message = f"Error retrieving file {row.processed}: {e.message}"
            e.args = (e.message,)
            raise

        try:
            entry = archive.first_with_suffix(format.suffix)
        except Exception:
            archive.close()
            raise
        logger.info("Serving %s from %s", entry.name, row.processed)
        return entry, _stream_entry(entry, archive)


async def _stream_entry(entry: ArchiveEntry, archive: Archive) -> AsyncGenerator[bytes, None]:
    try:
        async for chunk in entry.stream():
            yield chunk
    finally:
        archive.close()
