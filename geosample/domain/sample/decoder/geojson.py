"""GeoJSON decoder: one record per `features[].properties` object."""

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
from geosample.domain.shared.error import MalformedPayloadError

PROPERTIES = "features.item.properties"


class GeoJsonDecoder(Decoder):
    """Streams feature properties; fields are the first feature's keys."""

    format = SourceFormat.GEOJSON
    label = "GEOJSON"

    def __init__(self) -> None:
        super().__init__()
        self._seen_first = False

    async def _events(self, stream: ByteStream, stop: asyncio.Event) -> AsyncIterator[DecodeEvent]:
        parser = JsonStream([PROPERTIES])
        async for chunk in stream:
            for event in self._to_events(self._feed(parser, chunk)):
                yield event
            if stop.is_set():
                return
        for event in self._to_events(self._finish(parser)):
            yield event

    def _to_events(self, found: list[tuple[str, Any]]) -> list[DecodeEvent]:
        events: list[DecodeEvent] = []
        for _, properties in found:
            record = normalize_record(properties) if isinstance(properties, dict) else {}
            if not self._seen_first:
                self._seen_first = True
                events.append(Fields(list(record)))
            events.append(Row(record))
        return events

    def _feed(self, parser: JsonStream, chunk: bytes) -> list[tuple[str, Any]]:
        try:
            return parser.feed(chunk)
        except JSON_ERRORS as e:
            raise MalformedPayloadError("Could not parse as JSON", decoder="geojson") from e

    def _finish(self, parser: JsonStream) -> list[tuple[str, Any]]:
        try:
            return parser.finish()
        except JSON_ERRORS as e:
            raise MalformedPayloadError("Could not parse as JSON", decoder="geojson") from e
