"""Global test fixtures."""

import asyncio
import io
import os
import zipfile
from collections.abc import AsyncIterator, Callable, Iterable

import pytest

from geosample.infrastructure.local.temp import TempScope

# Keep a developer's metadata URL or config file out of unit tests
os.environ.pop("GEOSAMPLE_METADATA__URL", None)
os.environ.pop("GEOSAMPLE_CONFIG_FILE", None)


async def _chunks(parts: Iterable[bytes]) -> AsyncIterator[bytes]:
    for part in parts:
        await asyncio.sleep(0)
        yield part


@pytest.fixture
def byte_stream() -> Callable[..., AsyncIterator[bytes]]:
    """Build an async byte stream from `data`, split into `chunk_size` pieces."""

    def build(data: bytes, chunk_size: int = 7) -> AsyncIterator[bytes]:
        return _chunks(data[i : i + chunk_size] for i in range(0, len(data), chunk_size))

    return build


@pytest.fixture
def zip_bytes() -> Callable[[list[tuple[str, bytes]]], bytes]:
    """Build an in-memory zip archive from (name, content) pairs, in order."""

    def build(entries: list[tuple[str, bytes]]) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for name, content in entries:
                archive.writestr(name, content)
        return buffer.getvalue()

    return build


@pytest.fixture
def temp_scope():
    scope = TempScope()
    yield scope
    scope.cleanup()


@pytest.fixture
def stop() -> asyncio.Event:
    return asyncio.Event()
