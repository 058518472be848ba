"""DBF decoder for the attribute table of a shapefile archive."""

import asyncio
import logging
import struct
from collections.abc import AsyncIterator
from typing import BinaryIO

import shapefile

from geosample.domain.sample.decoder.base import (
    ByteStream,
    DecodeEvent,
    Decoder,
    Fields,
    Row,
    normalize_record,
)
from geosample.domain.sample.model.value import SourceFormat
from geosample.domain.sample.port.staging import StagingArea
from geosample.domain.shared.error import MalformedPayloadError

logger = logging.getLogger(__name__)

_DBF_ERRORS = (shapefile.ShapefileException, struct.error, ValueError, IndexError, EOFError)

# pyshp reports the deletion flag as the first field
_DELETION_FLAG = "DeletionFlag"


class DbfDecoder(Decoder):
    """Stages the table to disk, then reads it with pyshp.

    There is no streaming DBF reader, so the entry is materialized in the
    request's staging area first. Deleted rows are skipped by the reader and
    never counted.
    """

    format = SourceFormat.SHAPEFILE
    label = "DBF"

    def __init__(self, staging: StagingArea, encoding: str = "utf-8") -> None:
        super().__init__()
        self._staging = staging
        self._encoding = encoding

    async def _events(self, stream: ByteStream, stop: asyncio.Event) -> AsyncIterator[DecodeEvent]:
        path = await self._staging.stage(stream, suffix=".dbf")
        logger.debug("DBF: staged table at %s", path)

        dbf = await asyncio.to_thread(open, path, "rb")
        try:
            try:
                reader = await asyncio.to_thread(self._reader, dbf)
                names = [field[0] for field in reader.fields if field[0] != _DELETION_FLAG]
                records = reader.iterRecords()
            except _DBF_ERRORS as e:
                raise _malformed(e) from e

            yield Fields(names)

            while not stop.is_set():
                try:
                    record = await asyncio.to_thread(next, records, None)
                except _DBF_ERRORS as e:
                    raise _malformed(e) from e
                if record is None:
                    break
                yield Row(normalize_record(record.as_dict()))
        finally:
            dbf.close()

    def _reader(self, dbf: BinaryIO) -> shapefile.Reader:
        # Reads and parses the header
        return shapefile.Reader(dbf=dbf, encoding=self._encoding, encodingErrors="replace")


def _malformed(error: Exception) -> MalformedPayloadError:
    logger.debug("DBF: parse failure: %s", error)
    return MalformedPayloadError("Could not parse as shapefile", decoder="dbf")
