"""Per-request temporary directory."""

import asyncio
import logging
import shutil
import tempfile
from collections.abc import AsyncIterator
from pathlib import Path

from geosample.domain.sample.port.staging import StagingArea

logger = logging.getLogger(__name__)


class TempScope(StagingArea):
    """Private scratch directory for one request.

    The directory is created on first use and removed by `cleanup()`, which
    the DI container calls when the request's scope closes.
    """

    def __init__(self, prefix: str = "geosample-") -> None:
        self._prefix = prefix
        self._root: Path | None = None
        self._counter = 0

    @property
    def root(self) -> Path:
        if self._root is None:
            self._root = Path(tempfile.mkdtemp(prefix=self._prefix))
            logger.debug("Created temp scope %s", self._root)
        return self._root

    def new_path(self, suffix: str = "") -> Path:
        self._counter += 1
        return self.root / f"{self._counter:04d}{suffix}"

    async def stage(self, stream: AsyncIterator[bytes], suffix: str = "") -> Path:
        path = self.new_path(suffix)
        size = 0
        fh = await asyncio.to_thread(open, path, "wb")
        try:
            async for chunk in stream:
                await asyncio.to_thread(fh.write, chunk)
                size += len(chunk)
        finally:
            await asyncio.to_thread(fh.close)
        logger.debug("Staged %d bytes at %s", size, path)
        return path

    def cleanup(self) -> None:
        if self._root is None:
            return
        shutil.rmtree(self._root, ignore_errors=True)
        logger.debug("Removed temp scope %s", self._root)
        self._root = None
