"""Shared decoder contract.

A decoder turns an async byte stream into a `Fields` event followed by `Row`
events. It must check the stop event between chunks and must not emit a
`Row` before `Fields`.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator, AsyncIterator, Mapping
from contextlib import aclosing
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import StrEnum
from typing import Any, ClassVar

from geosample.domain.sample.model.value import Record, RecordValue, SourceFormat
from geosample.domain.sample.port.transport import ByteStream

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Fields:
    names: list[str]


@dataclass(frozen=True)
class Row:
    values: Record


DecodeEvent = Fields | Row


class DecoderState(StrEnum):
    START = "start"
    STREAMING_FIELDS = "streaming_fields"
    STREAMING_RECORDS = "streaming_records"
    COMPLETED = "completed"
    ABORTED = "aborted"
    FAILED = "failed"


_TERMINAL = {DecoderState.COMPLETED, DecoderState.ABORTED, DecoderState.FAILED}


def normalize_value(value: Any) -> RecordValue:
    """Collapse a decoded value into the closed record value variant."""
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return json.dumps(value, separators=(",", ":"), default=str)


def normalize_record(values: Mapping[str, Any]) -> Record:
    return {str(key): normalize_value(value) for key, value in values.items()}


class Decoder(ABC):
    """Base class for streaming format decoders."""

    format: ClassVar[SourceFormat]
    label: ClassVar[str]  # Used in log lines and error messages

    def __init__(self) -> None:
        self.state = DecoderState.START
        self._fields_emitted = False

    async def decode(
        self, stream: ByteStream, stop: asyncio.Event
    ) -> AsyncGenerator[DecodeEvent, None]:
        """Decode `stream`, yielding `Fields` once and then `Row`s.

        Closing the generator (or setting `stop`) before the stream ends is an
        expected early termination and leaves the decoder ABORTED.
        """
        self._transition(DecoderState.STREAMING_FIELDS)
        try:
            async with aclosing(self._events(stream, stop)) as events:
                async for event in events:
                    if isinstance(event, Fields):
                        if self._fields_emitted:
                            continue
                        self._fields_emitted = True
                        self._transition(DecoderState.STREAMING_RECORDS)
                    elif not self._fields_emitted:
                        # A source without a field list still has to announce one
                        self._fields_emitted = True
                        self._transition(DecoderState.STREAMING_RECORDS)
                        yield Fields([])
                    yield event
                    if stop.is_set():
                        self._transition(DecoderState.ABORTED)
                        return
        except GeneratorExit:
            self._transition(DecoderState.ABORTED)
            raise
        except BaseException:
            self._transition(DecoderState.FAILED)
            raise
        if stop.is_set():
            self._transition(DecoderState.ABORTED)
            return
        if not self._fields_emitted:
            self._fields_emitted = True
            yield Fields([])
        self._transition(DecoderState.COMPLETED)

    def conform(self) -> dict[str, str]:
        """Extra `conform` options discovered while decoding."""
        return {}

    @abstractmethod
    def _events(self, stream: ByteStream, stop: asyncio.Event) -> AsyncIterator[DecodeEvent]: ...

    def _transition(self, state: DecoderState) -> None:
        if self.state in _TERMINAL:
            return
        logger.debug("%s decoder: %s -> %s", self.label, self.state, state)
        self.state = state
