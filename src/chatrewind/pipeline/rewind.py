"""
Rewind pipeline orchestration.

One ``RewindPipeline`` handles one upload. A producer task reads the byte
source and pushes either raw document bytes or the archive target's
decompressed bytes into a bounded ``AsyncByteQueue``. The consumer parses
the array, classifies each conversation and folds it into an aggregator.
``run()`` resolves to the finished summary or raises the first terminal
error; no partial summary is ever returned.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, AsyncIterable, Callable, Iterable, Optional, Union

from chatrewind.analytics.aggregator import RewindAggregator
from chatrewind.config import settings
from chatrewind.exceptions import UnsupportedFileType
from chatrewind.insights.wrapped import build_wrapped
from chatrewind.models.rewind import RewindSummary
from chatrewind.parsers.archive import ZipDemultiplexer
from chatrewind.parsers.byte_queue import AsyncByteQueue
from chatrewind.parsers.json_array import iter_json_array
from chatrewind.pipeline.sources import iter_file_chunks
from chatrewind.tagging.classifier import ConversationClassifier

logger = logging.getLogger(__name__)

# Errors from a single malformed conversation; anything else is terminal
RECOVERABLE_ERRORS = (TypeError, ValueError, AttributeError, KeyError)


@dataclass
class RewindProgress:
    """Advisory progress snapshot handed to ``on_progress``."""

    phase: str  # 'reading', 'unzipping', 'parsing', 'done'
    bytes_read: int
    total_bytes: Optional[int]
    conversations_processed: int


def detect_kind(filename: str) -> str:
    """
    Decide how to read an upload from its name.

    Returns:
        "zip" or "json"

    Raises:
        UnsupportedFileType: If the name has neither suffix
    """
    lowered = (filename or "").lower()
    if lowered.endswith(".zip"):
        return "zip"
    if lowered.endswith(".json"):
        return "json"
    raise UnsupportedFileType(filename)


class RewindPipeline:
    """Streaming reader, classifier and aggregator for one export."""

    def __init__(
        self,
        filename: str,
        total_bytes: Optional[int] = None,
        on_progress: Optional[Callable[[RewindProgress], None]] = None,
        now: Optional[datetime] = None,
        days_back: Optional[int] = None,
        target_filename: Optional[str] = None,
        high_water_bytes: Optional[int] = None,
        low_water_bytes: Optional[int] = None,
        yield_every: Optional[int] = None,
    ):
        self.kind = detect_kind(filename)
        self.filename = filename
        self.total_bytes = total_bytes
        self.on_progress = on_progress
        self.now = now or datetime.now(timezone.utc)
        self.days_back = days_back if days_back is not None else settings.rewind_days_back
        self.target_filename = target_filename or settings.rewind_target_filename
        self.high_water_bytes = high_water_bytes or settings.rewind_queue_high_water_bytes
        self.low_water_bytes = (
            low_water_bytes
            if low_water_bytes is not None
            else min(settings.rewind_queue_low_water_bytes, self.high_water_bytes)
        )
        self.yield_every = yield_every or settings.rewind_yield_every

        self.bytes_read = 0
        self.conversations_processed = 0
        self.peak_buffered_bytes = 0
        self.archive_entries_seen: list[str] = []

    def _report(self, phase: str) -> None:
        if self.on_progress is None:
            return
        self.on_progress(
            RewindProgress(
                phase=phase,
                bytes_read=self.bytes_read,
                total_bytes=self.total_bytes,
                conversations_processed=self.conversations_processed,
            )
        )

    async def run(self, chunks: AsyncIterable[bytes]) -> RewindSummary:
        """
        Process the byte source to completion.

        Args:
            chunks: Async iterable of raw upload bytes, in arrival order

        Returns:
            Finished RewindSummary with the wrapped narrative attached

        Raises:
            ArchiveTargetNotFound, ArchiveCorrupt, MalformedDocument: On
                terminal read or parse failures
        """
        logger.info(f"Starting rewind for {self.kind} upload ({self.total_bytes} bytes)")
        queue = AsyncByteQueue(self.high_water_bytes, self.low_water_bytes)
        producer = asyncio.create_task(self._produce(chunks, queue))

        try:
            summary = await self._consume(queue)
            await producer
        except BaseException:
            producer.cancel()
            await asyncio.gather(producer, return_exceptions=True)
            raise
        finally:
            self.peak_buffered_bytes = queue.peak_buffered_bytes

        self._report("done")
        logger.info(
            f"Rewind complete: {summary.total_conversations} conversations, "
            f"{summary.total_user_messages} messages, {self.bytes_read} bytes read"
        )
        return summary

    async def _produce(self, chunks: AsyncIterable[bytes], queue: AsyncByteQueue) -> None:
        demux = ZipDemultiplexer(self.target_filename) if self.kind == "zip" else None
        phase = "unzipping" if demux is not None else "reading"
        iterator = chunks.__aiter__()
        try:
            async for chunk in iterator:
                self.bytes_read += len(chunk)
                if demux is None:
                    queue.push(chunk)
                else:
                    for piece in demux.feed(chunk):
                        queue.push(piece)
                        await queue.wait_writable()
                self._report(phase)
                await queue.wait_writable()
                if demux is not None and demux.finished:
                    logger.debug(f"Archive target drained after {self.bytes_read} bytes")
                    break

            if demux is not None:
                self.archive_entries_seen = list(demux.entries_seen)
                demux.close()
            queue.close()
        except Exception as e:
            # Terminal errors reach the caller through the consumer
            logger.warning(f"Byte source failed: {type(e).__name__}: {e}")
            queue.fail(e)
        finally:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()

    async def _consume(self, queue: AsyncByteQueue) -> RewindSummary:
        classifier = ConversationClassifier(now=self.now, days_back=self.days_back)
        aggregator = RewindAggregator(now=self.now, days_back=self.days_back)

        def on_parsed(count: int) -> None:
            self.conversations_processed = count
            self._report("parsing")

        index = 0
        async for element in iter_json_array(
            queue, on_progress=on_parsed, yield_every=self.yield_every
        ):
            try:
                aggregator.add(classifier.classify(element, index))
            except RECOVERABLE_ERRORS as e:
                logger.debug(f"Skipping conversation {index}: {type(e).__name__}")
                aggregator.skip()
            index += 1

        summary = aggregator.summary()
        summary.wrapped = build_wrapped(summary, now=self.now)
        if aggregator.skipped_conversations:
            logger.warning(f"Skipped {aggregator.skipped_conversations} malformed conversations")
        return summary


async def analyze_export(
    chunks: AsyncIterable[bytes], filename: str, **options: Any
) -> RewindSummary:
    """Run a fresh pipeline over ``chunks``. ``options`` go to ``RewindPipeline``."""
    return await RewindPipeline(filename, **options).run(chunks)


def analyze_export_file(path: Union[str, Path], **options: Any) -> RewindSummary:
    """
    Synchronously analyze an export on disk.

    Raises:
        UnsupportedFileType: Before the file is opened, if the suffix is wrong
    """
    path = Path(path)
    pipeline = RewindPipeline(path.name, total_bytes=os.path.getsize(path), **options)
    return asyncio.run(pipeline.run(iter_file_chunks(path)))


def analyze_conversations(
    conversations: Iterable[Any],
    now: Optional[datetime] = None,
    days_back: Optional[int] = None,
) -> RewindSummary:
    """
    Analyze already-parsed conversation objects in memory.

    Args:
        conversations: Raw conversation objects
        now: End of the lookback window (defaults to the current time)
        days_back: Lookback window in days

    Returns:
        Finished RewindSummary with the wrapped narrative attached
    """
    now = now or datetime.now(timezone.utc)
    if days_back is None:
        days_back = settings.rewind_days_back
    classifier = ConversationClassifier(now=now, days_back=days_back)
    aggregator = RewindAggregator(now=now, days_back=classifier.days_back)
    for index, conversation in enumerate(conversations):
        try:
            aggregator.add(classifier.classify(conversation, index))
        except RECOVERABLE_ERRORS as e:
            logger.debug(f"Skipping conversation {index}: {type(e).__name__}")
            aggregator.skip()
    summary = aggregator.summary()
    summary.wrapped = build_wrapped(summary, now=now)
    return summary
