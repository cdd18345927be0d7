"""
Incremental parser for a document holding one top-level JSON array.

Chunks are pushed into an ``ijson.items_coro`` coroutine, which emits each
top-level array element as soon as it is complete. Only the element being
built is held in memory. The coroutine also rejects anything structurally
wrong around the elements: missing or doubled commas, a trailing comma and
content after the closing bracket.
"""

import asyncio
import codecs
import logging
from enum import Enum
from typing import Any, AsyncIterable, AsyncIterator, Callable, Optional

import ijson

from chatrewind.exceptions import MalformedDocument

logger = logging.getLogger(__name__)

_LEADING_WHITESPACE = b" \t\r\n"


class ParserState(str, Enum):
    """Parser states."""

    BEFORE_ARRAY = "before_array"
    IN_ARRAY = "in_array"
    CLOSED = "closed"


class IncrementalArrayParser:
    """Push parser turning byte chunks into top-level array elements.

    Feeding the same byte sequence split at any chunk boundaries yields the
    same elements in the same order.
    """

    def __init__(self):
        self.state = ParserState.BEFORE_ARRAY
        self.elements_emitted = 0

        self._items = ijson.sendable_list()
        self._coro = ijson.items_coro(self._items, "item", use_float=True)
        self._head = b""
        self._bom_checked = False
        self._offset = 0

    def feed(self, chunk: bytes) -> list[Any]:
        """
        Consume a chunk of bytes.

        Args:
            chunk: Next piece of the document

        Returns:
            Elements completed by this chunk, in document order

        Raises:
            MalformedDocument: If the bytes cannot be part of a JSON array of objects
        """
        offset = self._offset
        self._offset += len(chunk)
        data = self._skip_prefix(chunk, offset)
        if data:
            try:
                self._coro.send(data)
            except (ijson.JSONError, ValueError) as e:
                raise MalformedDocument(f"invalid JSON: {e}", offset) from e
        return self._drain()

    def close(self) -> list[Any]:
        """
        Signal end of input.

        Returns:
            Any elements completed by the final flush

        Raises:
            MalformedDocument: If the array was never opened or the document
                ended before it was closed
        """
        if self.state is ParserState.BEFORE_ARRAY:
            raise MalformedDocument("document does not contain a top-level array")
        try:
            self._coro.close()
        except ijson.IncompleteJSONError as e:
            raise MalformedDocument(
                "document ended before the top-level array was closed", self._offset
            ) from e
        except (ijson.JSONError, ValueError) as e:
            raise MalformedDocument(f"invalid JSON: {e}", self._offset) from e
        self.state = ParserState.CLOSED
        return self._drain()

    def _skip_prefix(self, chunk: bytes, offset: int) -> bytes:
        """Drop a leading BOM and whitespace, then require the opening bracket."""
        if self.state is not ParserState.BEFORE_ARRAY:
            return chunk

        data = self._head + chunk
        self._head = b""
        if not self._bom_checked:
            if len(data) < len(codecs.BOM_UTF8) and codecs.BOM_UTF8.startswith(data):
                # Possibly the start of a BOM split across chunks
                self._head = data
                return b""
            if data.startswith(codecs.BOM_UTF8):
                data = data[len(codecs.BOM_UTF8):]
            self._bom_checked = True

        data = data.lstrip(_LEADING_WHITESPACE)
        if not data:
            return b""
        if not data.startswith(b"["):
            raise MalformedDocument("expected a top-level array", offset)
        self.state = ParserState.IN_ARRAY
        return data

    def _drain(self) -> list[Any]:
        items = list(self._items)
        del self._items[:]
        for item in items:
            if not isinstance(item, dict):
                raise MalformedDocument(
                    f"expected an object, found {type(item).__name__}", self._offset
                )
        self.elements_emitted += len(items)
        return items


async def iter_json_array(
    chunks: AsyncIterable[bytes],
    on_progress: Optional[Callable[[int], None]] = None,
    yield_every: int = 25,
    eager_reports: int = 5,
) -> AsyncIterator[Any]:
    """
    Parse an async byte stream and yield top-level array elements.

    Reports progress for each of the first ``eager_reports`` elements, then
    every ``yield_every`` elements, and gives control back to the event loop
    at each report.

    Args:
        chunks: Async iterable of raw document bytes
        on_progress: Called with the number of elements parsed so far
        yield_every: Elements between cooperative yields
        eager_reports: Number of leading elements that always report

    Yields:
        Parsed array elements in document order

    Raises:
        MalformedDocument: If the document is not a well-formed array of objects
    """
    parser = IncrementalArrayParser()
    emitted = 0

    async def report() -> None:
        if on_progress is not None:
            on_progress(emitted)
        await asyncio.sleep(0)

    async def emit(items: list[Any]) -> AsyncIterator[Any]:
        nonlocal emitted
        for item in items:
            yield item
            emitted += 1
            if emitted <= eager_reports or emitted % yield_every == 0:
                await report()

    async for chunk in chunks:
        async for item in emit(parser.feed(chunk)):
            yield item

    async for item in emit(parser.close()):
        yield item

    logger.debug(f"Parsed {parser.elements_emitted} array elements")
    if on_progress is not None:
        on_progress(parser.elements_emitted)
