from collections.abc import AsyncIterator

import logfire

from geosample.domain.download.model.value import DownloadFormat
from geosample.domain.download.service.download import DownloadService
from geosample.domain.download.service.metadata import MetadataIndex
from geosample.domain.shared.error import InvalidFormatError
from geosample.domain.shared.query import Query, QueryHandler, Result


class DownloadLatest(Query):
    path: str
    format: str = DownloadFormat.CSV.value


class FileStream(Result, arbitrary_types_allowed=True):
    stream: AsyncIterator[bytes]
    filename: str
    content_type: str


class DownloadLatestHandler(QueryHandler[DownloadLatest, FileStream]):
    metadata_index: MetadataIndex
    download_service: DownloadService

    async def run(self, cmd: DownloadLatest) -> FileStream:
        try:
            format = DownloadFormat(cmd.format.lower())
        except ValueError:
            raise InvalidFormatError(
                f"Unsupported format '{cmd.format}', expected one of: csv, geojson"
            ) from None

        # Fail on missing configuration before touching the network
        self.metadata_index.ensure_configured()

        with logfire.span("DownloadLatest", path=cmd.path, format=format.value):
            row = await self.metadata_index.find(cmd.path)
            entry, stream = await self.download_service.open_latest(row, format)
            return FileStream(
                stream=stream,
                filename=entry.basename,
                content_type=format.content_type,
            )
