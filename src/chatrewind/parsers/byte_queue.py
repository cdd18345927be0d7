"""
Bounded byte queue between the byte-producing and parsing sides.

The producer pushes decoded chunks and awaits ``wait_writable()`` after each
push; once more than ``high_water_bytes`` are buffered the queue stays paused
until the consumer drains it to ``low_water_bytes`` or below.
"""

import asyncio
from collections import deque
from typing import AsyncIterator, Optional


class AsyncByteQueue:
    """Single-producer, single-consumer byte queue with watermark backpressure."""

    def __init__(self, high_water_bytes: int, low_water_bytes: Optional[int] = None):
        if high_water_bytes <= 0:
            raise ValueError(f"high_water_bytes must be positive, got {high_water_bytes}")
        if low_water_bytes is None:
            low_water_bytes = high_water_bytes // 4
        if low_water_bytes > high_water_bytes:
            raise ValueError("low_water_bytes cannot exceed high_water_bytes")

        self.high_water_bytes = high_water_bytes
        self.low_water_bytes = low_water_bytes
        self.peak_buffered_bytes = 0

        self._chunks: deque[bytes] = deque()
        self._buffered = 0
        self._closed = False
        self._error: Optional[BaseException] = None
        self._readable = asyncio.Event()
        self._writable = asyncio.Event()
        self._writable.set()

    @property
    def buffered_bytes(self) -> int:
        return self._buffered

    @property
    def paused(self) -> bool:
        """True while the producer should not push more bytes."""
        return not self._writable.is_set()

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, chunk: bytes) -> None:
        """Append a chunk. Ignored once the queue is closed or failed."""
        if self._closed or self._error is not None or not chunk:
            return
        self._chunks.append(bytes(chunk))
        self._buffered += len(chunk)
        self.peak_buffered_bytes = max(self.peak_buffered_bytes, self._buffered)
        self._readable.set()
        if self._buffered > self.high_water_bytes:
            self._writable.clear()

    async def wait_writable(self) -> None:
        """Suspend the producer while the queue is above its high-water mark."""
        await self._writable.wait()

    def close(self) -> None:
        """Mark end of stream; buffered chunks are still delivered."""
        if self._closed or self._error is not None:
            return
        self._closed = True
        self._readable.set()

    def fail(self, error: BaseException) -> None:
        """Abort the stream; the consumer raises ``error`` on its next read."""
        if self._closed or self._error is not None:
            return
        self._error = error
        self._chunks.clear()
        self._buffered = 0
        self._readable.set()
        self._writable.set()

    async def get(self) -> Optional[bytes]:
        """Return the next chunk, or None at end of stream."""
        while True:
            if self._error is not None:
                raise self._error
            if self._chunks:
                chunk = self._chunks.popleft()
                self._buffered -= len(chunk)
                if self._buffered <= self.low_water_bytes:
                    self._writable.set()
                return chunk
            if self._closed:
                return None
            self._readable.clear()
            await self._readable.wait()

    async def iterate(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self.get()
            if chunk is None:
                return
            yield chunk

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self.iterate()
