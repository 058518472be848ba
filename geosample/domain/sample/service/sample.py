import asyncio
import logging
from collections.abc import Mapping
from contextlib import AsyncExitStack
from urllib.parse import urlsplit, urlunsplit

from geosample.domain.sample.decoder.base import ByteStream
from geosample.domain.sample.decoder.registry import build_decoder
from geosample.domain.sample.model.value import (
    Compression,
    Conform,
    SampleRequest,
    SampleResult,
    SourceData,
    SourceFormat,
    Transport,
)
from geosample.domain.sample.port.archive import ArchiveOpener
from geosample.domain.sample.port.staging import StagingArea
from geosample.domain.sample.port.transport import SourceTransport
from geosample.domain.sample.service.errors import ResponseGuard
from geosample.domain.sample.service.limiter import RecordLimiter
from geosample.domain.shared.error import UnsupportedTypeError
from geosample.domain.shared.query import Service

logger = logging.getLogger(__name__)

CONFORM_TYPES: dict[SourceFormat, str] = {
    SourceFormat.ESRI: "geojson",
    SourceFormat.GEOJSON: "geojson",
    SourceFormat.DELIMITED_TEXT: "csv",
    SourceFormat.SHAPEFILE: "shapefile",
}


def esri_query(uri: str, size: int, offset: int) -> tuple[str, dict[str, str]]:
    """Feature service query URL and parameters for one page of records.

    Query parameters already on `uri` (a token, say) stay on the URL.
    """
    parts = urlsplit(uri)
    query_url = urlunsplit(parts._replace(path=parts.path.rstrip("/") + "/query"))
    return query_url, {
        "outFields": "*",
        "where": "1=1",
        "resultRecordCount": str(size),
        "resultOffset": str(offset),
        "f": "json",
    }


class SampleService(Service):
    """Runs one source through transport, archive, decoder and limiter.

    Every stage is entered on a single `AsyncExitStack`, so connections,
    archives and decoders are closed in reverse order whatever the outcome.
    A failure inside a stage unwinds through the transport first, so a
    connection dropped mid-body reaches the caller as a `TransportError`.
    The first failure decides the error; anything else raised while unwinding
    is logged and dropped by the `ResponseGuard`.
    """

    transports: Mapping[Transport, SourceTransport]
    staging: StagingArea
    archives: ArchiveOpener

    async def sample(self, request: SampleRequest) -> SampleResult:
        descriptor = request.descriptor
        guard: ResponseGuard[SampleResult] = ResponseGuard(descriptor)
        logger.info(
            "Sampling %s (%s, %s, size=%d, offset=%d)",
            descriptor.uri,
            descriptor.transport.value,
            descriptor.format.value,
            request.size,
            request.offset,
        )
        failure: Exception | None = None
        try:
            async with AsyncExitStack() as stack:
                try:
                    guard.resolve(await self._run(stack, request))
                except Exception as e:
                    # Unwinds through the transports so they can translate it
                    failure = e
                    raise
        except Exception as e:
            if failure is not None and e is not failure and e.__cause__ is not failure:
                # Raised while closing, unrelated to the stage that failed
                guard.reject(failure)
            guard.reject(e)
        return guard.outcome()

    async def _run(self, stack: AsyncExitStack, request: SampleRequest) -> SampleResult:
        descriptor = request.descriptor
        transport = self.transports.get(descriptor.transport)
        if transport is None:
            raise UnsupportedTypeError("Unsupported type")

        stop = asyncio.Event()
        if descriptor.is_esri:
            uri, params = esri_query(descriptor.uri, request.size, request.offset)
            # The server already skipped `offset` records
            offset = 0
        else:
            uri, params, offset = descriptor.uri, None, request.offset

        stream: ByteStream = await stack.enter_async_context(transport.open(uri, params))

        format, delimiter = descriptor.format, descriptor.delimiter
        if descriptor.compression is Compression.ZIP:
            archive = await self.archives.open(stream)
            stack.callback(archive.close)
            entry = archive.first_supported()
            format, delimiter = entry.format, entry.delimiter
            entry_stream = entry.stream()
            stack.push_async_callback(entry_stream.aclose)
            stream = entry_stream

        decoder = build_decoder(format, self.staging, delimiter)
        window = await RecordLimiter(request.size, offset).collect(decoder.decode(stream, stop), stop)
        logger.info(
            "Sampled %d field(s), %d record(s) from %s",
            len(window.fields),
            len(window.records),
            descriptor.uri,
        )

        return SampleResult(
            type=descriptor.source_type,
            data=descriptor.uri,
            compression=Compression.ZIP.value if descriptor.compression is Compression.ZIP else None,
            conform=Conform(type=CONFORM_TYPES.get(format), **decoder.conform()),
            source_data=SourceData(fields=window.fields, results=window.records),
        )
