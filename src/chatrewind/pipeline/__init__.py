"""End-to-end rewind pipeline: byte source to finished summary."""

from chatrewind.pipeline.rewind import (
    RewindPipeline,
    RewindProgress,
    analyze_conversations,
    analyze_export,
    analyze_export_file,
    detect_kind,
)
from chatrewind.pipeline.sources import iter_bytes_chunks, iter_file_chunks, iter_upload_chunks

__all__ = [
    "RewindPipeline",
    "RewindProgress",
    "analyze_conversations",
    "analyze_export",
    "analyze_export_file",
    "detect_kind",
    "iter_bytes_chunks",
    "iter_file_chunks",
    "iter_upload_chunks",
]
