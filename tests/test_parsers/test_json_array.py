"""
Tests for the incremental JSON array parser.
"""

import asyncio
import json

import pytest

from chatrewind.exceptions import MalformedDocument
from chatrewind.parsers.json_array import IncrementalArrayParser, ParserState, iter_json_array

TRICKY_DOCUMENT = json.dumps(
    [
        {"title": "braces { inside } strings", "n": 1},
        {"title": 'escaped \\" quote and \\\\ backslash }', "nested": {"a": [{"b": "}"}]}},
        {"title": "unicode: café, 日本語, emoji 🎉", "parts": ["[", "]", ","]},
        {},
    ],
    ensure_ascii=False,
).encode("utf-8")


def parse_in_chunks(data: bytes, size: int) -> list:
    parser = IncrementalArrayParser()
    items = []
    for start in range(0, len(data), size):
        items.extend(parser.feed(data[start : start + size]))
    items.extend(parser.close())
    return items


async def _chunks(data: bytes, size: int):
    for start in range(0, len(data), size):
        yield data[start : start + size]


class TestIncrementalArrayParser:
    """Tests for IncrementalArrayParser."""

    def test_single_chunk(self):
        assert parse_in_chunks(TRICKY_DOCUMENT, len(TRICKY_DOCUMENT)) == json.loads(
            TRICKY_DOCUMENT
        )

    @pytest.mark.parametrize("size", [1, 2, 3, 5, 7, 16, 64])
    def test_any_chunking_gives_same_elements(self, size):
        """Splitting the bytes anywhere, including inside UTF-8 sequences, changes nothing."""
        assert parse_in_chunks(TRICKY_DOCUMENT, size) == parse_in_chunks(
            TRICKY_DOCUMENT, len(TRICKY_DOCUMENT)
        )

    def test_emits_element_when_its_brace_closes(self):
        parser = IncrementalArrayParser()

        assert parser.feed(b'[{"a": 1}, {"b"') == [{"a": 1}]
        assert parser.state is ParserState.IN_ARRAY
        assert parser.feed(b": 2}]") == [{"b": 2}]
        assert parser.close() == []
        assert parser.state is ParserState.CLOSED

    def test_escape_split_across_chunks(self):
        parser = IncrementalArrayParser()

        assert parser.feed(b'[{"a": "x\\') == []
        assert parser.feed(b'"}"}]') == [{"a": 'x"}'}]

    def test_floats_stay_floats(self):
        assert parse_in_chunks(b'[{"create_time": 1700000000.5}]', 5) == [
            {"create_time": 1700000000.5}
        ]

    def test_bom_split_across_chunks(self):
        data = "\ufeff[{\"a\": 1}]".encode("utf-8")

        assert parse_in_chunks(data, 1) == [{"a": 1}]

    def test_leading_whitespace_and_bom(self):
        data = "\ufeff \n [ {\"a\": 1} ]\n".encode("utf-8")

        assert parse_in_chunks(data, 2) == [{"a": 1}]

    def test_empty_array(self):
        assert parse_in_chunks(b"[]", 1) == []

    def test_counts_elements(self):
        parser = IncrementalArrayParser()
        parser.feed(b'[{"a": 1}, {"a": 2}]')

        assert parser.elements_emitted == 2


class TestMalformedDocuments:
    """Tests for MalformedDocument failures."""

    def test_top_level_object(self):
        with pytest.raises(MalformedDocument):
            parse_in_chunks(b'{"a": [1]}', 4)

    def test_never_opens_array(self):
        with pytest.raises(MalformedDocument):
            parse_in_chunks(b"   ", 1)

    def test_unbalanced_closing_brace(self):
        with pytest.raises(MalformedDocument):
            parse_in_chunks(b'[{"a": 1}}]', 3)

    def test_non_object_element(self):
        with pytest.raises(MalformedDocument):
            parse_in_chunks(b"[1, 2]", 3)

    def test_unterminated_string(self):
        with pytest.raises(MalformedDocument, match="ended before"):
            parse_in_chunks(b'[{"title": "never closed]', 4)

    def test_array_not_closed(self):
        with pytest.raises(MalformedDocument, match="ended before"):
            parse_in_chunks(b'[{"a": 1}', 4)

    def test_invalid_element_json(self):
        with pytest.raises(MalformedDocument):
            parse_in_chunks(b'[{"a": tru}]', 4)

    def test_invalid_utf8(self):
        with pytest.raises(MalformedDocument):
            parse_in_chunks(b'[{"a": "\xff\xfe"}]', 4)

    @pytest.mark.parametrize(
        "data",
        [
            b'[{"a": 1}{"b": 2}]',
            b'[{"a": 1},,,{"b": 2}]',
            b'[{"a": 1}, {"b": 2},]',
            b'[,{"a": 1}]',
        ],
        ids=["missing-comma", "repeated-commas", "trailing-comma", "leading-comma"],
    )
    def test_element_separators(self, data):
        with pytest.raises(MalformedDocument):
            parse_in_chunks(data, 3)

    def test_content_after_closing_bracket(self):
        with pytest.raises(MalformedDocument):
            parse_in_chunks(b'[{"a": 1}] trailing {garbage', 4)

    def test_second_document_after_closing_bracket(self):
        with pytest.raises(MalformedDocument):
            parse_in_chunks(b'[{"a": 1}] [{"b": 2}]', len(b'[{"a": 1}] [{"b": 2}]'))

    def test_trailing_whitespace_is_fine(self):
        assert parse_in_chunks(b'[{"a": 1}]\n\n  ', 2) == [{"a": 1}]


class TestIterJsonArray:
    """Tests for the async wrapper."""

    def test_yields_elements_and_reports_progress(self):
        data = json.dumps([{"i": i} for i in range(30)]).encode()
        reports = []

        async def collect():
            return [
                item
                async for item in iter_json_array(
                    _chunks(data, 10), on_progress=reports.append, yield_every=25
                )
            ]

        items = asyncio.run(collect())

        assert [item["i"] for item in items] == list(range(30))
        assert reports == [1, 2, 3, 4, 5, 25, 30]

    def test_propagates_malformed_document(self):
        async def collect():
            return [item async for item in iter_json_array(_chunks(b'[{"a": "x', 3))]

        with pytest.raises(MalformedDocument):
            asyncio.run(collect())
