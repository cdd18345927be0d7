"""Byte sources: chunked async readers over files, uploads and in-memory bytes."""

import asyncio
from pathlib import Path
from typing import Any, AsyncIterator, Union

from chatrewind.config import settings


async def iter_file_chunks(
    path: Union[str, Path], chunk_size: int | None = None
) -> AsyncIterator[bytes]:
    """Read a file in chunks without blocking the event loop."""
    size = chunk_size or settings.rewind_read_chunk_bytes
    with open(path, "rb") as f:
        while True:
            chunk = await asyncio.to_thread(f.read, size)
            if not chunk:
                return
            yield chunk


async def iter_upload_chunks(upload: Any, chunk_size: int | None = None) -> AsyncIterator[bytes]:
    """Read a FastAPI ``UploadFile`` (anything with ``async read(n)``) in chunks."""
    size = chunk_size or settings.rewind_read_chunk_bytes
    while True:
        chunk = await upload.read(size)
        if not chunk:
            return
        yield chunk


async def iter_bytes_chunks(data: bytes, chunk_size: int | None = None) -> AsyncIterator[bytes]:
    size = chunk_size or settings.rewind_read_chunk_bytes
    for start in range(0, len(data), size):
        yield data[start : start + size]
