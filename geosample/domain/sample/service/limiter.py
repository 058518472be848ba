import asyncio
import logging
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field

from geosample.domain.sample.decoder.base import DecodeEvent, Fields
from geosample.domain.sample.model.value import Record

logger = logging.getLogger(__name__)


@dataclass
class Window:
    """Field list plus the collected record window."""

    fields: list[str] = field(default_factory=list)
    records: list[Record] = field(default_factory=list)
    exhausted: bool = False


class RecordLimiter:
    """Collects at most `size` rows after skipping `offset` rows.

    Reaching the cap sets `stop` and closes the decoder, which in turn
    closes the transport. A stream that ends early is a successful, shorter
    window.
    """

    def __init__(self, size: int, offset: int = 0) -> None:
        if size < 0 or offset < 0:
            raise ValueError("size and offset must be non-negative")
        self.size = size
        self.offset = offset

    async def collect(
        self,
        events: AsyncGenerator[DecodeEvent, None],
        stop: asyncio.Event,
    ) -> Window:
        window = Window()
        seen = 0
        try:
            async for event in events:
                if isinstance(event, Fields):
                    window.fields = list(event.names)
                    if self.size == 0:
                        break
                    continue
                seen += 1
                if seen <= self.offset:
                    continue
                window.records.append(event.values)
                if len(window.records) >= self.size:
                    break
            else:
                window.exhausted = True
        finally:
            if not window.exhausted:
                stop.set()
            await events.aclose()

        logger.debug(
            "Collected %d record(s) (offset %d, exhausted=%s)",
            len(window.records),
            self.offset,
            window.exhausted,
        )
        return window
