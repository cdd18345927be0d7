"""
Tests for the streaming ZIP demultiplexer.
"""

import json
import zipfile

import pytest

from chatrewind.exceptions import ArchiveCorrupt, ArchiveTargetNotFound
from chatrewind.parsers.archive import ZipDemultiplexer

PAYLOAD = json.dumps(
    [{"title": f"conversation number {i}", "body": "lorem ipsum " * 20} for i in range(40)]
).encode("utf-8")


def extract(data: bytes, chunk_size: int = 0, target: str = "conversations.json", **kwargs):
    """Feed ``data`` through a demultiplexer and return it with the joined output."""
    demux = ZipDemultiplexer(target, **kwargs)
    size = chunk_size or max(len(data), 1)
    out = bytearray()
    for start in range(0, len(data), size):
        for piece in demux.feed(data[start : start + size]):
            out.extend(piece)
        if demux.finished:
            break
    demux.close()
    return demux, bytes(out)


class TestTargetExtraction:
    """Tests for finding and inflating the target entry."""

    def test_deflated_target(self, make_zip):
        data = make_zip([("conversations.json", PAYLOAD)])

        demux, out = extract(data)

        assert out == PAYLOAD
        assert demux.finished
        assert demux.target_name == "conversations.json"

    def test_stored_target(self, make_zip):
        data = make_zip([("conversations.json", PAYLOAD)], compression=zipfile.ZIP_STORED)

        _, out = extract(data)

        assert out == PAYLOAD

    def test_suffix_match_is_case_insensitive(self, make_zip):
        data = make_zip([("export-2025/Conversations.JSON", PAYLOAD)])

        demux, out = extract(data)

        assert out == PAYLOAD
        assert demux.target_name == "export-2025/Conversations.JSON"

    @pytest.mark.parametrize("chunk_size", [1, 7, 512])
    def test_chunked_feed(self, make_zip, chunk_size):
        data = make_zip([("conversations.json", PAYLOAD)])

        _, out = extract(data, chunk_size=chunk_size)

        assert out == PAYLOAD

    def test_skips_other_entries(self, make_zip):
        data = make_zip(
            [
                ("user.json", b'{"name": "someone"}'),
                ("chat.html", b"<html>" + b"x" * 4000 + b"</html>"),
                ("conversations.json", PAYLOAD),
            ]
        )

        demux, out = extract(data, chunk_size=100)

        assert out == PAYLOAD
        assert demux.entries_seen == ["user.json", "chat.html", "conversations.json"]

    def test_entries_with_data_descriptors(self, make_zip):
        """Archives written to an unseekable stream defer sizes to a trailing descriptor."""
        data = make_zip(
            [("notes.txt", b"not this one " * 200), ("conversations.json", PAYLOAD)],
            streamed=True,
        )

        _, out = extract(data, chunk_size=64)

        assert out == PAYLOAD

    def test_output_pieces_are_bounded(self, make_zip):
        data = make_zip([("conversations.json", PAYLOAD)])
        demux = ZipDemultiplexer("conversations.json", output_chunk_bytes=100)

        pieces = list(demux.feed(data))

        assert b"".join(pieces) == PAYLOAD
        assert all(len(piece) <= 100 for piece in pieces)

    def test_stops_consuming_after_target(self, make_zip):
        data = make_zip(
            [("conversations.json", PAYLOAD), ("images/big.bin", b"\x00" * 50_000)],
            compression=zipfile.ZIP_STORED,
        )
        demux = ZipDemultiplexer("conversations.json")
        split = len(data) // 2

        first = b"".join(demux.feed(data[:split]))
        later = list(demux.feed(data[split:]))

        assert first == PAYLOAD
        assert demux.finished
        assert later == []
        assert demux.bytes_consumed == split
        demux.close()


class TestArchiveFailures:
    """Tests for unreadable archives."""

    def test_target_not_found(self, make_zip):
        data = make_zip([("readme.txt", b"hello")])

        with pytest.raises(ArchiveTargetNotFound):
            extract(data)

    def test_not_a_zip(self):
        with pytest.raises(ArchiveCorrupt, match="not a ZIP"):
            extract(b"hello world, definitely not an archive")

    def test_empty_input(self):
        with pytest.raises(ArchiveCorrupt):
            extract(b"")

    def test_truncated_inside_target(self, make_zip):
        data = make_zip([("conversations.json", PAYLOAD)], compression=zipfile.ZIP_STORED)
        truncated = data[: data.index(PAYLOAD) + len(PAYLOAD) // 2]

        with pytest.raises(ArchiveCorrupt):
            extract(truncated)

    def test_crc_mismatch(self, make_zip):
        data = bytearray(make_zip([("conversations.json", PAYLOAD)], compression=zipfile.ZIP_STORED))
        position = bytes(data).index(PAYLOAD) + 20
        data[position] = ord("#") if data[position] != ord("#") else ord("%")

        with pytest.raises(ArchiveCorrupt, match="CRC"):
            extract(bytes(data))
