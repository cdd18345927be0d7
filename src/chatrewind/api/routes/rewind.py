"""
Rewind API routes.

Accepts one export upload, streams it through the pipeline and returns the
summary, its storage-safe copy and the bangers. Nothing is persisted.
"""

import logging
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile

from chatrewind.api.schemas import BangerSetResponse, RewindResponse
from chatrewind.config import settings
from chatrewind.exceptions import RewindError, UnsupportedFileType
from chatrewind.insights.bangers import SpiceLevel, generate_bangers
from chatrewind.pipeline import analyze_export, detect_kind, iter_upload_chunks
from chatrewind.sanitize import sanitize_summary

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=RewindResponse)
async def create_rewind(
    file: UploadFile = File(...),
    client_id: Optional[str] = Form(None),
    spice: SpiceLevel = Form(SpiceLevel.SPICY),
    include_sensitive: bool = Form(False),
) -> RewindResponse:
    """
    Analyze an uploaded chat export.

    Accepts a .zip archive containing conversations.json, or the .json
    document itself. An export with no in-scope conversations yields an
    empty summary, not an error.
    """
    filename = file.filename or ""
    try:
        detect_kind(filename)
    except UnsupportedFileType as e:
        raise HTTPException(status_code=415, detail=str(e))

    size = getattr(file, "size", None)
    if size is not None and size > settings.rewind_max_upload_bytes:
        raise HTTPException(status_code=413, detail="Upload too large")

    try:
        summary = await analyze_export(
            iter_upload_chunks(file), filename, total_bytes=size
        )
    except RewindError as e:
        logger.warning(f"Could not read export for client {client_id}: {type(e).__name__}: {e}")
        raise HTTPException(status_code=422, detail="could_not_read_export")

    bangers = generate_bangers(summary, spice=spice, include_sensitive=include_sensitive)
    return RewindResponse(
        client_id=client_id,
        rewind=summary.to_dict(),
        sanitized=sanitize_summary(summary).to_dict(),
        bangers=BangerSetResponse(**bangers.to_dict()),
    )
