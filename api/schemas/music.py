"""
api/schemas/music.py — Pydantic request/response schemas for music endpoints.

Covers:
    /generate/progression — ProgressionRequest / ProgressionOut
    /generate/catalog     — CatalogResponse
    /export/midi          — ExportRequest (response is raw audio/midi)
    /ideas                — SaveIdeaRequest / IdeaOut / IdeaListResponse
"""

from datetime import datetime

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Shared sub-schemas
# ---------------------------------------------------------------------------


class ChordOut(BaseModel):
    """A single chord in a progression."""

    root: int = Field(..., ge=0, le=11)
    name: str = ""
    quality: str
    extensions: list[str] = Field(default_factory=list)
    inversion: int = Field(default=0, ge=0)
    degree: int | None = None
    midi_notes: list[int] = Field(..., min_length=1)


class MelodyNoteOut(BaseModel):
    """A single melody note, positioned in beats."""

    midi_note: int = Field(..., ge=0, le=127)
    duration: float = Field(..., gt=0.0)
    start_time: float = Field(..., ge=0.0)
    velocity: int = Field(..., ge=0, le=127)


class MelodyOut(BaseModel):
    key: str
    scale: str
    length: float = Field(..., ge=0.0)
    notes: list[MelodyNoteOut]


class ProgressionOut(BaseModel):
    """A generated progression. Also accepted back as export / save input."""

    key: str
    scale: str
    tempo: float = Field(default=120.0, gt=0.0)
    chords: list[ChordOut]
    melody: MelodyOut | None = None


class IdeaSettingsModel(BaseModel):
    """Generator settings stored with a saved idea."""

    key: str
    scale: str
    template: str
    rhythm_pattern: str = "Block Chord"
    add_extensions: bool = False
    generate_melody: bool = False


# ---------------------------------------------------------------------------
# /generate
# ---------------------------------------------------------------------------


class ProgressionRequest(BaseModel):
    """Request body for POST /generate/progression."""

    key: str = Field(default="C", description="Key name, e.g. 'C', 'F#/Gb', 'Eb'.")
    scale: str = Field(default="major", description="Scale catalog key, e.g. 'dorian'.")
    template: str | None = Field(
        default=None,
        description="Named template, e.g. 'I-V-vi-IV'. Ignored when 'degrees' is given.",
    )
    degrees: list[int] | None = Field(
        default=None,
        description="Explicit 0-based scale degrees. Empty or missing → template/random.",
    )
    length: int = Field(default=4, ge=1, le=32, description="Chord count for random progressions.")
    add_extensions: bool = False
    generate_melody: bool = False
    seed: int | None = Field(default=None, description="Seed for reproducible output.")


class TemplateOut(BaseModel):
    name: str
    degrees: list[int]


class ScaleOut(BaseModel):
    id: str
    name: str
    intervals: list[int]
    chord_qualities: list[str]


class KeyOut(BaseModel):
    name: str
    value: int = Field(..., ge=0, le=11)


class RhythmPatternOut(BaseModel):
    name: str
    type: str
    description: str
    note_timings: list[float]
    note_durations: list[float]


class InstrumentOut(BaseModel):
    name: str
    type: str


class CatalogResponse(BaseModel):
    """Everything a client needs to populate its selectors."""

    keys: list[KeyOut]
    scales: list[ScaleOut]
    templates: list[TemplateOut]
    rhythm_patterns: list[RhythmPatternOut]
    instruments: list[InstrumentOut]


# ---------------------------------------------------------------------------
# /export
# ---------------------------------------------------------------------------


class ExportRequest(BaseModel):
    """Request body for POST /export/midi."""

    progression: ProgressionOut


# ---------------------------------------------------------------------------
# /ideas
# ---------------------------------------------------------------------------


class SaveIdeaRequest(BaseModel):
    """Request body for POST /ideas."""

    name: str = Field(..., min_length=1, max_length=200)
    progression: ProgressionOut
    settings: IdeaSettingsModel
    folder: str | None = None
    tags: list[str] = Field(default_factory=list)
    existing_id: str | None = Field(
        default=None, description="Overwrite this idea, keeping its creation time."
    )


class SaveIdeaResponse(BaseModel):
    id: str


class IdeaOut(BaseModel):
    id: str
    name: str
    folder: str | None
    tags: list[str]
    progression: ProgressionOut
    settings: IdeaSettingsModel
    created_at: datetime
    updated_at: datetime


class IdeaListResponse(BaseModel):
    ideas: list[IdeaOut]
    total: int
