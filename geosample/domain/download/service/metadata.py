"""Lookup of a source's latest processed run in the metadata index."""

import asyncio
import logging
from contextlib import aclosing

from geosample.domain.download.model.value import MetadataLocation, MetadataRow
from geosample.domain.sample.decoder.base import Fields
from geosample.domain.sample.decoder.delimited import DelimitedTextDecoder
from geosample.domain.sample.port.transport import SourceTransport
from geosample.domain.shared.error import (
    AuthenticationError,
    ConfigurationError,
    MalformedPayloadError,
    MetadataUnavailableError,
    SourceNotFoundError,
    TransportError,
    UpstreamError,
)
from geosample.domain.shared.query import Service

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("source", "processed")

_FETCH_ERRORS = (TransportError, UpstreamError, AuthenticationError, MalformedPayloadError)


def normalize_source(path: str) -> str:
    return path.strip("/")


class MetadataIndex(Service):
    """Streams the tab-separated index and stops at the first matching row."""

    transport: SourceTransport
    location: MetadataLocation

    def ensure_configured(self) -> str:
        if not self.location.configured:
            raise ConfigurationError("Metadata index URL is not configured (GEOSAMPLE_METADATA__URL)")
        return self.location.url

    async def find(self, source: str) -> MetadataRow:
        """Return the first row whose `source` column equals `source`.

        Raises:
            ConfigurationError: No index URL is configured.
            MetadataUnavailableError: The index could not be fetched or read.
            SourceNotFoundError: No row matches.
        """
        url = self.ensure_configured()
        source = normalize_source(source)
        stop = asyncio.Event()
        decoder = DelimitedTextDecoder("\t")

        try:
            async with self.transport.open(url) as stream:
                async with aclosing(decoder.decode(stream, stop)) as events:
                    async for event in events:
                        if isinstance(event, Fields):
                            _check_columns(url, event.names)
                            continue
                        if event.values.get("source") == source:
                            stop.set()
                            row = MetadataRow(
                                source=source,
                                processed=str(event.values.get("processed") or ""),
                            )
                            logger.debug("Found %s in %s: %s", source, url, row.processed)
                            return row
        except _FETCH_ERRORS as e:
            logger.info("Metadata index %s unavailable: %s", url, e.message)
            raise MetadataUnavailableError(f"Error retrieving file {url}: {e.message}") from e

        raise SourceNotFoundError(f"Unable to find {source} in {url}")


def _check_columns(url: str, names: list[str]) -> None:
    missing = [column for column in REQUIRED_COLUMNS if column not in names]
    if missing:
        raise MetadataUnavailableError(
            f"Error retrieving file {url}: missing column(s) {', '.join(missing)}"
        )
