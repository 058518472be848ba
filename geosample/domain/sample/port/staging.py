from abc import abstractmethod
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Protocol


class StagingArea(Protocol):
    """Per-request scratch storage for payloads that need random access."""

    @abstractmethod
    async def stage(self, stream: AsyncIterator[bytes], suffix: str = "") -> Path:
        """Write `stream` to a new file and return its path."""
        ...
