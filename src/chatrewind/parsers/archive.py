"""
Streaming ZIP demultiplexer.

Walks ZIP local file headers as bytes arrive, inflates only the entry whose
name ends with the target filename, and hands its decompressed bytes out in
bounded pieces. Other entries are skipped (or inflated into a throwaway
buffer when their size is only known from a trailing data descriptor).
Once the target entry is complete the demultiplexer reports ``finished`` and
ignores further input, so the caller can stop reading the source early.
"""

import logging
import struct
import zlib
from enum import Enum
from typing import Iterator, Optional

from chatrewind.exceptions import ArchiveCorrupt, ArchiveTargetNotFound

logger = logging.getLogger(__name__)

LOCAL_HEADER_SIG = b"PK\x03\x04"
CENTRAL_DIR_SIG = b"PK\x01\x02"
END_OF_CENTRAL_DIR_SIG = b"PK\x05\x06"
ZIP64_END_SIG = b"PK\x06\x06"
DATA_DESCRIPTOR_SIG = b"PK\x07\x08"

LOCAL_HEADER = struct.Struct("<4sHHHHHIIIHH")
ZIP64_EXTRA_ID = 0x0001
FLAG_DATA_DESCRIPTOR = 0x0008
FLAG_ENCRYPTED = 0x0001

METHOD_STORED = 0
METHOD_DEFLATED = 8

DEFAULT_OUTPUT_CHUNK_BYTES = 1_048_576


class _State(str, Enum):
    HEADER = "header"
    ENTRY_DATA = "entry_data"
    DESCRIPTOR = "descriptor"
    END = "end"  # Central directory reached, no more entries
    FINISHED = "finished"  # Target entry fully drained


class _Entry:
    """Bookkeeping for the entry currently being read."""

    def __init__(
        self,
        name: str,
        method: int,
        flags: int,
        crc: int,
        compressed_size: int,
        zip64: bool,
        is_target: bool,
    ):
        self.name = name
        self.method = method
        self.flags = flags
        self.crc = crc
        self.compressed_size = compressed_size
        self.zip64 = zip64
        self.is_target = is_target
        self.remaining = compressed_size
        self.running_crc = 0
        self.inflater = zlib.decompressobj(-zlib.MAX_WBITS) if method == METHOD_DEFLATED else None

    @property
    def has_descriptor(self) -> bool:
        return bool(self.flags & FLAG_DATA_DESCRIPTOR)


class ZipDemultiplexer:
    """Push-style ZIP reader that extracts a single target entry.

    Usage::

        demux = ZipDemultiplexer("conversations.json")
        for chunk in source:
            for piece in demux.feed(chunk):
                queue.push(piece)
            if demux.finished:
                break
        demux.close()
    """

    def __init__(
        self,
        target_filename: str,
        output_chunk_bytes: int = DEFAULT_OUTPUT_CHUNK_BYTES,
    ):
        self.target_suffix = target_filename.lower()
        self.output_chunk_bytes = output_chunk_bytes
        self.entries_seen: list[str] = []
        self.target_name: Optional[str] = None
        self.bytes_consumed = 0

        self._state = _State.HEADER
        self._buffer = bytearray()
        self._entry: Optional[_Entry] = None

    @property
    def found(self) -> bool:
        return self.target_name is not None

    @property
    def finished(self) -> bool:
        """True once the target entry's last byte has been produced."""
        return self._state is _State.FINISHED

    def feed(self, chunk: bytes) -> Iterator[bytes]:
        """
        Consume a chunk of archive bytes.

        Args:
            chunk: Next piece of the archive, in arrival order

        Yields:
            Decompressed pieces of the target entry, each at most
            ``output_chunk_bytes`` long

        Raises:
            ArchiveCorrupt: If the bytes do not form a readable ZIP stream
        """
        if self._state in (_State.FINISHED, _State.END):
            return
        self.bytes_consumed += len(chunk)
        self._buffer.extend(chunk)
        yield from self._process()

    def close(self) -> None:
        """
        Signal end of input.

        Raises:
            ArchiveTargetNotFound: If the archive held no matching entry
            ArchiveCorrupt: If input ended in the middle of an entry
        """
        if self._state is _State.FINISHED:
            return
        if self._entry is not None and self._entry.is_target:
            raise ArchiveCorrupt(f"unexpected end of data in {self._entry.name}")
        if self._state is _State.HEADER and not self.entries_seen:
            raise ArchiveCorrupt("not a ZIP archive")
        if self._state is not _State.END and (self._buffer or self._entry is not None):
            raise ArchiveCorrupt("unexpected end of archive")
        raise ArchiveTargetNotFound(self.target_suffix)

    def _process(self) -> Iterator[bytes]:
        while True:
            if self._state is _State.HEADER:
                if not self._read_header():
                    return
            elif self._state is _State.ENTRY_DATA:
                yield from self._read_entry_data()
                if self._state is _State.ENTRY_DATA:
                    return
            elif self._state is _State.DESCRIPTOR:
                if not self._read_descriptor():
                    return
            else:
                return

    def _read_header(self) -> bool:
        if len(self._buffer) < 4:
            return False
        signature = bytes(self._buffer[:4])
        if signature in (CENTRAL_DIR_SIG, END_OF_CENTRAL_DIR_SIG, ZIP64_END_SIG):
            logger.debug(f"Reached central directory after {len(self.entries_seen)} entries")
            self._state = _State.END
            self._buffer.clear()
            return False
        if signature != LOCAL_HEADER_SIG:
            if not self.entries_seen:
                raise ArchiveCorrupt("not a ZIP archive")
            raise ArchiveCorrupt(f"bad local header signature {signature!r}")
        if len(self._buffer) < LOCAL_HEADER.size:
            return False

        (
            _sig,
            _version,
            flags,
            method,
            _mtime,
            _mdate,
            crc,
            compressed_size,
            uncompressed_size,
            name_len,
            extra_len,
        ) = LOCAL_HEADER.unpack_from(self._buffer)

        total = LOCAL_HEADER.size + name_len + extra_len
        if len(self._buffer) < total:
            return False

        raw_name = bytes(self._buffer[LOCAL_HEADER.size : LOCAL_HEADER.size + name_len])
        extra = bytes(self._buffer[LOCAL_HEADER.size + name_len : total])
        del self._buffer[:total]

        name = raw_name.decode("utf-8", errors="replace")
        zip64 = False
        if compressed_size == 0xFFFFFFFF or uncompressed_size == 0xFFFFFFFF:
            zip64 = True
            compressed_size = self._zip64_compressed_size(
                extra, uncompressed_size == 0xFFFFFFFF, compressed_size
            )

        is_target = not self.found and name.lower().endswith(self.target_suffix)
        self.entries_seen.append(name)

        if flags & FLAG_ENCRYPTED and is_target:
            raise ArchiveCorrupt(f"{name} is encrypted")
        if method not in (METHOD_STORED, METHOD_DEFLATED) and (is_target or flags & FLAG_DATA_DESCRIPTOR):
            raise ArchiveCorrupt(f"unsupported compression method {method} for {name}")
        if method == METHOD_STORED and flags & FLAG_DATA_DESCRIPTOR and compressed_size == 0:
            raise ArchiveCorrupt(f"stored entry {name} has no declared size")

        if is_target:
            self.target_name = name
            logger.info(f"Found archive target entry {name}")
        else:
            logger.debug(f"Skipping archive entry {name}")

        self._entry = _Entry(
            name=name,
            method=method,
            flags=flags,
            crc=crc,
            compressed_size=compressed_size,
            zip64=zip64,
            is_target=is_target,
        )
        self._state = _State.ENTRY_DATA
        return True

    @staticmethod
    def _zip64_compressed_size(extra: bytes, has_uncompressed: bool, fallback: int) -> int:
        pos = 0
        while pos + 4 <= len(extra):
            header_id, size = struct.unpack_from("<HH", extra, pos)
            body = extra[pos + 4 : pos + 4 + size]
            if header_id == ZIP64_EXTRA_ID:
                offset = 8 if has_uncompressed else 0
                if len(body) >= offset + 8:
                    return struct.unpack_from("<Q", body, offset)[0]
                break
            pos += 4 + size
        return fallback

    def _read_entry_data(self) -> Iterator[bytes]:
        entry = self._entry
        assert entry is not None

        if entry.inflater is not None and (entry.is_target or entry.has_descriptor):
            yield from self._inflate(entry)
            return

        # Stored data, or a non-target entry whose compressed size is known
        take = min(entry.remaining, len(self._buffer))
        if take:
            data = bytes(self._buffer[:take])
            del self._buffer[:take]
            entry.remaining -= take
            if entry.is_target:
                entry.running_crc = zlib.crc32(data, entry.running_crc)
                for start in range(0, len(data), self.output_chunk_bytes):
                    yield data[start : start + self.output_chunk_bytes]
        if entry.remaining == 0:
            self._finish_entry()

    def _inflate(self, entry: _Entry) -> Iterator[bytes]:
        inflater = entry.inflater
        pending = bytes(self._buffer)
        self._buffer.clear()
        try:
            while not inflater.eof:
                out = inflater.decompress(pending, self.output_chunk_bytes)
                pending = inflater.unconsumed_tail
                if out:
                    if entry.is_target:
                        entry.running_crc = zlib.crc32(out, entry.running_crc)
                        yield out
                elif not pending:
                    break
        except zlib.error as e:
            raise ArchiveCorrupt(f"cannot inflate {entry.name}: {e}") from e

        if inflater.eof:
            self._buffer[:0] = inflater.unused_data + pending
            self._finish_entry()

    def _finish_entry(self) -> None:
        entry = self._entry
        assert entry is not None
        if entry.is_target:
            if not entry.has_descriptor and entry.running_crc != entry.crc:
                raise ArchiveCorrupt(f"CRC mismatch in {entry.name}")
            logger.info(f"Finished reading {entry.name}")
            self._entry = None
            self._state = _State.FINISHED
            self._buffer.clear()
            return
        if entry.has_descriptor:
            self._state = _State.DESCRIPTOR
            return
        self._entry = None
        self._state = _State.HEADER

    def _read_descriptor(self) -> bool:
        entry = self._entry
        assert entry is not None
        size_width = 8 if entry.zip64 else 4
        body = 4 + 2 * size_width
        if len(self._buffer) < 4:
            return False
        has_sig = bytes(self._buffer[:4]) == DATA_DESCRIPTOR_SIG
        needed = body + (4 if has_sig else 0)
        if len(self._buffer) < needed:
            return False
        del self._buffer[:needed]
        self._entry = None
        self._state = _State.HEADER
        return True
