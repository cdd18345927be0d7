"""
Streaming readers for chat exports.

This package provides the bounded byte queue, the ZIP demultiplexer that
extracts the conversations document from an archive, and the incremental
parser for its top-level JSON array.
"""

from chatrewind.parsers.archive import ZipDemultiplexer
from chatrewind.parsers.byte_queue import AsyncByteQueue
from chatrewind.parsers.json_array import IncrementalArrayParser, iter_json_array

__all__ = [
    "AsyncByteQueue",
    "IncrementalArrayParser",
    "ZipDemultiplexer",
    "iter_json_array",
]
