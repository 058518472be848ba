"""Unit tests for DelimitedTextDecoder."""

import pytest

from geosample.domain.sample.decoder.base import DecoderState, Fields, Row
from geosample.domain.sample.decoder.delimited import (
    DelimitedTextDecoder,
    ends_in_quoted_field,
    sniff_delimiter,
)
from geosample.domain.sample.service.limiter import RecordLimiter
from geosample.domain.shared.error import MalformedPayloadError


async def _collect(decoder, stream, stop):
    return [event async for event in decoder.decode(stream, stop)]


class TestSniffDelimiter:
    def test_keeps_default_on_tie(self):
        assert sniff_delimiter("a,b;c", ",") == ","

    def test_more_frequent_candidate_wins(self):
        assert sniff_delimiter("a;b;c;d", ",") == ";"

    def test_tab_header_for_csv_suffix(self):
        assert sniff_delimiter("x\ty\tz", ",") == "\t"

    def test_single_column_keeps_default(self):
        assert sniff_delimiter("name", "|") == "|"


class TestEndsInQuotedField:
    @pytest.mark.parametrize(
        ("line", "expected"),
        [
            ("alice,5'10\",x", False),
            ('a,"open', True),
            ('a,"closed"', False),
            ('a,"escaped "" quote', True),
            ('a, "not at field start', False),
        ],
    )
    def test_quote_rules(self, line, expected):
        assert ends_in_quoted_field(line, ",") is expected

    def test_continuation_line_closes_field(self):
        assert ends_in_quoted_field('end of note",2', ",", in_quotes=True) is False


class TestDelimitedTextDecoder:
    async def test_header_and_rows(self, byte_stream, stop):
        data = b"\xef\xbb\xbfid,name\r\n1,Main St\r\n\r\n2,\"Elm, North\"\r\n"
        decoder = DelimitedTextDecoder(",")

        events = await _collect(decoder, byte_stream(data, chunk_size=5), stop)

        assert events == [
            Fields(["id", "name"]),
            Row({"id": "1", "name": "Main St"}),
            Row({"id": "2", "name": "Elm, North"}),
        ]
        assert decoder.conform() == {"csvsplit": ","}
        assert decoder.state is DecoderState.COMPLETED

    async def test_header_only(self, byte_stream, stop):
        events = await _collect(DelimitedTextDecoder(), byte_stream(b"a,b\n"), stop)

        assert events == [Fields(["a", "b"])]

    async def test_empty_input(self, byte_stream, stop):
        events = await _collect(DelimitedTextDecoder(), byte_stream(b""), stop)

        assert events == [Fields([])]

    async def test_quoted_field_spanning_lines(self, byte_stream, stop):
        data = b'id,note\n1,"first line\nsecond line"\n2,plain\n'

        events = await _collect(DelimitedTextDecoder(), byte_stream(data, chunk_size=3), stop)

        assert events[1] == Row({"id": "1", "note": "first line\nsecond line"})
        assert events[2] == Row({"id": "2", "note": "plain"})

    async def test_column_mismatch_names_physical_line(self, byte_stream, stop):
        data = b"a,b\n1,2,3\n"
        decoder = DelimitedTextDecoder()

        with pytest.raises(MalformedPayloadError) as exc_info:
            await _collect(decoder, byte_stream(data), stop)

        assert exc_info.value.message == "Number of columns on line 2 does not match header"
        assert exc_info.value.decoder == "csv"
        assert decoder.state is DecoderState.FAILED

    async def test_mismatch_line_counts_skipped_blank_lines(self, byte_stream, stop):
        data = b"a,b\n\n1,2\n3\n"

        with pytest.raises(MalformedPayloadError, match="on line 4 "):
            await _collect(DelimitedTextDecoder(), byte_stream(data), stop)

    async def test_unterminated_quote(self, byte_stream, stop):
        with pytest.raises(MalformedPayloadError, match="Unterminated"):
            await _collect(DelimitedTextDecoder(), byte_stream(b'a,b\n1,"open\n'), stop)

    async def test_header_overrides_suffix_delimiter(self, byte_stream, stop):
        decoder = DelimitedTextDecoder(",")

        events = await _collect(decoder, byte_stream(b"a;b;c\n1;2;3\n"), stop)

        assert events == [Fields(["a", "b", "c"]), Row({"a": "1", "b": "2", "c": "3"})]
        assert decoder.conform() == {"csvsplit": ";"}

    async def test_pipe_delimited(self, byte_stream, stop):
        decoder = DelimitedTextDecoder("|")

        events = await _collect(decoder, byte_stream(b"a|b\nx|y\n"), stop)

        assert events[1] == Row({"a": "x", "b": "y"})
        assert decoder.conform() == {"csvsplit": "|"}

    async def test_literal_quote_mid_field_stops_at_window(self, stop):
        body = b"name,height\nalice,5'10\"\n" + b"".join(b"p%d,6'1\"\n" % i for i in range(5000))
        pulled = 0

        async def chunks():
            nonlocal pulled
            for i in range(0, len(body), 64):
                pulled += 1
                yield body[i : i + 64]

        window = await RecordLimiter(1).collect(DelimitedTextDecoder().decode(chunks(), stop), stop)

        assert window.records == [{"name": "alice", "height": "5'10\""}]
        assert pulled == 1
