"""
Pytest configuration and fixtures for ChatRewind tests.

Exports are built in memory: conversation dicts shaped like real exports,
JSON documents as bytes, and ZIP archives via the standard zipfile module.
"""

import io
import json
import zipfile
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import pytest

NOW = datetime(2025, 12, 31, 12, 0, tzinfo=timezone.utc)


class _UnseekableBuffer(io.RawIOBase):
    """Write-only stream without tell(); makes zipfile emit data descriptors."""

    def __init__(self):
        self.buffer = io.BytesIO()

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        return self.buffer.write(data)

    def tell(self) -> int:
        raise OSError("unseekable")

    def seekable(self) -> bool:
        return False


@pytest.fixture
def now() -> datetime:
    """Fixed end of the lookback window."""
    return NOW


@pytest.fixture
def make_message() -> Callable[..., dict]:
    """Factory for raw message dicts."""

    def _make(
        text: Any,
        role: str = "user",
        created: Optional[datetime] = None,
        shape: str = "parts",
    ) -> dict:
        if shape == "parts":
            content: Any = {"content_type": "text", "parts": [text]}
        elif shape == "text":
            content = {"text": text}
        else:
            content = text
        message = {"author": {"role": role}, "content": content}
        if created is not None:
            message["create_time"] = created.timestamp()
        return message

    return _make


@pytest.fixture
def make_conversation(make_message) -> Callable[..., dict]:
    """
    Factory for raw conversations.

    ``messages`` items are either message dicts, plain user texts, or
    ``(text, datetime)`` tuples. ``tree=True`` produces the ``mapping`` form
    with node ids in reverse order so nothing can rely on node order.
    """

    def _make(
        messages: list,
        title: Optional[str] = None,
        conversation_id: Optional[str] = None,
        create_time: Optional[datetime] = None,
        tree: bool = True,
    ) -> dict:
        built = []
        for item in messages:
            if isinstance(item, dict):
                built.append(item)
            elif isinstance(item, tuple):
                built.append(make_message(item[0], created=item[1]))
            else:
                built.append(make_message(item))

        conversation: dict = {}
        if title is not None:
            conversation["title"] = title
        if conversation_id is not None:
            conversation["id"] = conversation_id
        if create_time is not None:
            conversation["create_time"] = create_time.timestamp()

        if tree:
            mapping = {"root": {"message": None, "children": []}}
            for position in reversed(range(len(built))):
                mapping[f"node-{position}"] = {"message": built[position]}
            conversation["mapping"] = mapping
        else:
            conversation["messages"] = built
        return conversation

    return _make


@pytest.fixture
def export_bytes() -> Callable[[list], bytes]:
    """Serialize conversations to a JSON export document."""

    def _dump(conversations: list) -> bytes:
        return json.dumps(conversations, ensure_ascii=False).encode("utf-8")

    return _dump


@pytest.fixture
def make_zip() -> Callable[..., bytes]:
    """Build a ZIP archive from ``(name, bytes)`` entries."""

    def _make(
        entries: list[tuple[str, bytes]],
        compression: int = zipfile.ZIP_DEFLATED,
        streamed: bool = False,
    ) -> bytes:
        if streamed:
            target = _UnseekableBuffer()
            with zipfile.ZipFile(target, "w", compression=compression) as archive:
                for name, data in entries:
                    archive.writestr(name, data)
            return target.buffer.getvalue()

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=compression) as archive:
            for name, data in entries:
                archive.writestr(name, data)
        return buffer.getvalue()

    return _make


@pytest.fixture
def scenario_a(make_conversation) -> dict:
    """One debugging conversation that ends in a fix."""
    return make_conversation(
        [
            ("why is this broken", NOW - timedelta(days=30, minutes=5)),
            ("fixed it, thanks!", NOW - timedelta(days=30)),
        ],
        title="Fixing a Python bug",
        conversation_id="conv-a",
    )


@pytest.fixture
def daily_conversations(make_conversation) -> Callable[..., list]:
    """Conversations spread over consecutive days starting at ``start``."""

    def _make(start: datetime, days: int, per_day: int = 1, text: str = "help me plan") -> list:
        conversations = []
        for day in range(days):
            for n in range(per_day):
                created = start + timedelta(days=day, minutes=n)
                conversations.append(make_conversation([(text, created)]))
        return conversations

    return _make
