"""
api/routes/export.py — MIDI file download.

Endpoints:
    POST /export/midi — Progression JSON → Standard MIDI File attachment
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response

from api.schemas.music import ExportRequest
from ingestion.idea_store import progression_from_dict
from ingestion.midi_export import MIDI_MIME_TYPE, export_filename, progression_to_export_bytes

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/export", tags=["export"])


@router.post("/midi")
def export_midi(request: ExportRequest) -> Response:
    """Encode a progression as a .mid download.

    Raises:
        422: The progression is empty or its chords/notes are invalid.
    """
    try:
        progression = progression_from_dict(request.progression.model_dump())
        data = progression_to_export_bytes(progression)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    filename = export_filename(progression)
    logger.info("Exporting %s (%d bytes)", filename, len(data))
    return Response(
        content=data,
        media_type=MIDI_MIME_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
