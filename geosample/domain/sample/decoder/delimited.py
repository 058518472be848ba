"""Delimited text (CSV/TSV/PSV) decoder."""

import asyncio
import codecs
import csv
import io
from collections.abc import AsyncIterator
from contextlib import aclosing

from geosample.domain.sample.decoder.base import ByteStream, DecodeEvent, Decoder, Fields, Row
from geosample.domain.sample.model.value import SourceFormat
from geosample.domain.shared.error import MalformedPayloadError

CANDIDATE_DELIMITERS = (",", ";", "|", "\t")


def sniff_delimiter(header: str, default: str = ",") -> str:
    """Pick the delimiter for a header line.

    The suffix-implied `default` is kept unless another candidate occurs
    strictly more often in the header.
    """
    counts = {candidate: header.count(candidate) for candidate in CANDIDATE_DELIMITERS}
    best = max(CANDIDATE_DELIMITERS, key=lambda candidate: counts[candidate])
    if counts[best] > counts.get(default, 0):
        return best
    return default


def ends_in_quoted_field(line: str, delimiter: str, in_quotes: bool = False) -> bool:
    """Whether `line` ends inside a quoted field, following `csv` quoting rules.

    A quote opens a quoted field only at the start of a field; elsewhere it
    is an ordinary character, as in `5'10"`. Inside a quoted field `""` is
    an escaped quote. `in_quotes` carries the state over from the previous
    line of the same record.
    """
    field_start = not in_quotes
    i, end = 0, len(line)
    while i < end:
        char = line[i]
        if in_quotes:
            if char == '"':
                if i + 1 < end and line[i + 1] == '"':
                    i += 2
                    continue
                in_quotes = False
        elif char == delimiter:
            field_start = True
            i += 1
            continue
        elif char == '"' and field_start:
            in_quotes = True
        field_start = False
        i += 1
    return in_quotes


class DelimitedTextDecoder(Decoder):
    """Header row becomes the field list; every later row a record.

    A row whose column count differs from the header's fails the whole
    decode. Quoted fields may span lines.
    """

    format = SourceFormat.DELIMITED_TEXT
    label = "CSV"

    def __init__(self, delimiter: str = ",") -> None:
        super().__init__()
        self.delimiter = delimiter

    def conform(self) -> dict[str, str]:
        return {"csvsplit": self.delimiter}

    async def _events(self, stream: ByteStream, stop: asyncio.Event) -> AsyncIterator[DecodeEvent]:
        header: list[str] | None = None
        pending: list[str] = []
        in_quotes = False
        start_line = 0

        async with aclosing(_lines(stream, stop)) as lines:
            async for number, line in lines:
                if not pending:
                    if not line.strip():
                        continue
                    start_line = number
                    if header is None:
                        self.delimiter = sniff_delimiter(line, self.delimiter)
                pending.append(line)
                in_quotes = ends_in_quoted_field(line, self.delimiter, in_quotes)
                if in_quotes:
                    # The quoted field continues on the next line
                    continue
                text = "\n".join(pending)
                pending = []

                if header is None:
                    header = self._parse(text, start_line)
                    yield Fields(header)
                    continue

                values = self._parse(text, start_line)
                if len(values) != len(header):
                    raise MalformedPayloadError(
                        f"Number of columns on line {start_line} does not match header",
                        decoder="csv",
                    )
                yield Row(dict(zip(header, values)))

        if pending:
            raise MalformedPayloadError(
                f"Unterminated quoted field starting on line {start_line}",
                decoder="csv",
            )

    def _parse(self, text: str, line: int) -> list[str]:
        try:
            return next(csv.reader(io.StringIO(text), delimiter=self.delimiter), [])
        except csv.Error as e:
            raise MalformedPayloadError(f"Invalid row on line {line}: {e}", decoder="csv") from e


async def _lines(stream: ByteStream, stop: asyncio.Event) -> AsyncIterator[tuple[int, str]]:
    """Yield (line number, text) pairs, decoding UTF-8 incrementally."""
    decoder = codecs.getincrementaldecoder("utf-8-sig")(errors="replace")
    buffer = ""
    number = 0
    async for chunk in stream:
        buffer += decoder.decode(chunk)
        *complete, buffer = buffer.split("\n")
        for line in complete:
            number += 1
            yield number, line.rstrip("\r")
        if stop.is_set():
            return
    buffer += decoder.decode(b"", final=True)
    if buffer:
        number += 1
        yield number, buffer.rstrip("\r")
