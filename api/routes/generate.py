"""
api/routes/generate.py — Progression generation endpoints.

Endpoints:
    POST /generate/progression — Chord progression from key + scale + template
    GET  /generate/catalog     — Keys, scales, templates, rhythm patterns, instruments

No audio, no database — pure music theory computation.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from api.schemas.music import (
    CatalogResponse,
    InstrumentOut,
    KeyOut,
    ProgressionOut,
    ProgressionRequest,
    RhythmPatternOut,
    ScaleOut,
    TemplateOut,
)
from core.music_theory.harmony import available_templates, generate_progression, get_template
from core.music_theory.rhythm import RHYTHM_PATTERNS
from core.music_theory.scales import KEYS, SCALES, UnknownScaleError
from core.playback.synthesis import INSTRUMENTS
from ingestion.idea_store import progression_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/generate", tags=["generate"])


# ---------------------------------------------------------------------------
# POST /generate/progression
# ---------------------------------------------------------------------------


@router.post("/progression", response_model=ProgressionOut)
def generate_progression_endpoint(request: ProgressionRequest) -> ProgressionOut:
    """Generate a chord progression.

    Degree source, in priority order: explicit ``degrees``, the named
    ``template``, then ``length`` random degrees.

    Raises:
        422: Unknown scale.
    """
    degrees: tuple[int, ...] = tuple(request.degrees or ())
    if not degrees and request.template:
        degrees = get_template(request.template).degrees

    try:
        progression = generate_progression(
            request.key,
            request.scale,
            degrees,
            length=request.length,
            add_extensions=request.add_extensions,
            generate_melody_line=request.generate_melody,
            seed=request.seed,
        )
    except UnknownScaleError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return ProgressionOut.model_validate(progression_to_dict(progression))


# ---------------------------------------------------------------------------
# GET /generate/catalog
# ---------------------------------------------------------------------------


@router.get("/catalog", response_model=CatalogResponse)
def get_catalog() -> CatalogResponse:
    """Return the static catalogs used to build a generation request."""
    return CatalogResponse(
        keys=[KeyOut(name=k.name, value=k.value) for k in KEYS],
        scales=[
            ScaleOut(
                id=scale_id,
                name=s.name,
                intervals=list(s.intervals),
                chord_qualities=list(s.chord_qualities),
            )
            for scale_id, s in SCALES.items()
        ],
        templates=[TemplateOut(name=t.name, degrees=list(t.degrees)) for t in available_templates()],
        rhythm_patterns=[
            RhythmPatternOut(
                name=p.name,
                type=p.type,
                description=p.description,
                note_timings=list(p.note_timings),
                note_durations=list(p.note_durations),
            )
            for p in RHYTHM_PATTERNS
        ],
        instruments=[InstrumentOut(name=i.name, type=i.type) for i in INSTRUMENTS],
    )
