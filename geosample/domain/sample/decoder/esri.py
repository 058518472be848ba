"""ESRI feature service query response decoder."""

import asyncio
from collections.abc import AsyncIterator
from typing import Any

from geosample.domain.sample.decoder.base import (
    ByteStream,
    DecodeEvent,
    Decoder,
    Fields,
    Row,
    normalize_record,
)
from geosample.domain.sample.decoder.json_stream import JSON_ERRORS, JsonStream
from geosample.domain.sample.model.value import SourceFormat
from geosample.domain.shared.error import MalformedPayloadError, RemoteApplicationError

FIELDS = "fields"
ATTRIBUTES = "features.item.attributes"
ERROR = "error"


class EsriDecoder(Decoder):
    """Extracts `fields[].name` and `features[].attributes` from an ArcGIS query.

    Field names come from the response's `fields` array. Attributes that
    arrive before it are held back until it has been read; the query's
    `resultRecordCount` bounds how many that can be.
    """

    format = SourceFormat.ESRI
    label = "ARCGIS"

    def __init__(self) -> None:
        super().__init__()
        self._fields: list[str] | None = None
        self._held: list[Row] = []

    async def _events(self, stream: ByteStream, stop: asyncio.Event) -> AsyncIterator[DecodeEvent]:
        parser = JsonStream([FIELDS, ATTRIBUTES, ERROR])
        async for chunk in stream:
            for event in self._to_events(self._feed(parser, chunk)):
                yield event
            if stop.is_set():
                return
        for event in self._to_events(self._finish(parser)):
            yield event
        if self._fields is None:
            yield Fields([])
            for row in self._held:
                yield row

    def _to_events(self, found: list[tuple[str, Any]]) -> list[DecodeEvent]:
        events: list[DecodeEvent] = []
        for prefix, value in found:
            if prefix == ERROR:
                raise _remote_error(value)
            if prefix == FIELDS:
                if self._fields is not None:
                    continue
                self._fields = _field_names(value)
                events.append(Fields(self._fields))
                events.extend(self._held)
                self._held.clear()
                continue
            row = Row(normalize_record(value) if isinstance(value, dict) else {})
            if self._fields is None:
                self._held.append(row)
            else:
                events.append(row)
        return events

    def _feed(self, parser: JsonStream, chunk: bytes) -> list[tuple[str, Any]]:
        try:
            return parser.feed(chunk)
        except JSON_ERRORS as e:
            raise MalformedPayloadError("Could not parse as JSON", decoder="esri") from e

    def _finish(self, parser: JsonStream) -> list[tuple[str, Any]]:
        try:
            return parser.finish()
        except JSON_ERRORS as e:
            raise MalformedPayloadError("Could not parse as JSON", decoder="esri") from e


def _field_names(fields: Any) -> list[str]:
    if not isinstance(fields, list):
        return []
    return [
        str(field["name"])
        for field in fields
        if isinstance(field, dict) and field.get("name") is not None
    ]


def _remote_error(error: Any) -> RemoteApplicationError:
    if not isinstance(error, dict):
        return RemoteApplicationError(str(error))
    return RemoteApplicationError(
        str(error.get("message", "Unknown error")),
        remote_code=error.get("code"),
    )
