"""ingestion/idea_store.py — Saved-idea storage.

Persists named progressions, with the generator settings that produced
them, as one JSON list. Ideas can be grouped in folders and tagged.

Side effects: reads and writes ``ingestion/user_data/ideas.json`` (or the
path given to the store).
"""

from __future__ import annotations

import json
import logging
import random
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from core.music_theory.types import Chord, ChordProgression, Melody, MelodyNote

logger = logging.getLogger(__name__)

_DEFAULT_STORE_PATH: Path = Path(__file__).parent / "user_data" / "ideas.json"

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IdeaSettings:
    """Generator settings captured alongside a saved progression."""

    key: str
    scale: str
    template: str
    rhythm_pattern: str = "Block Chord"
    add_extensions: bool = False
    generate_melody: bool = False


@dataclass(frozen=True)
class SavedIdea:
    """A named, saved progression."""

    id: str
    name: str
    progression: ChordProgression
    settings: IdeaSettings
    created_at: datetime
    updated_at: datetime
    folder: str | None = None
    tags: tuple[str, ...] = field(default_factory=tuple)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36_DIGITS[rem])
    return "".join(reversed(digits))


def progression_to_dict(progression: ChordProgression) -> dict[str, Any]:
    """JSON-ready dict for a progression (melody included when present)."""
    data: dict[str, Any] = {
        "key": progression.key,
        "scale": progression.scale,
        "tempo": progression.tempo,
        "chords": [
            {
                "root": c.root,
                "name": c.name,
                "quality": c.quality,
                "extensions": list(c.extensions),
                "inversion": c.inversion,
                "midi_notes": list(c.midi_notes),
                "degree": c.degree,
            }
            for c in progression.chords
        ],
        "melody": None,
    }
    if progression.melody is not None:
        melody = progression.melody
        data["melody"] = {
            "key": melody.key,
            "scale": melody.scale,
            "length": melody.length,
            "notes": [
                {
                    "midi_note": n.midi_note,
                    "duration": n.duration,
                    "start_time": n.start_time,
                    "velocity": n.velocity,
                }
                for n in melody.notes
            ],
        }
    return data


def progression_from_dict(data: dict[str, Any]) -> ChordProgression:
    """Rebuild a progression from progression_to_dict() output.

    Raises:
        KeyError / ValueError: malformed data
    """
    melody = None
    raw_melody = data.get("melody")
    if raw_melody:
        melody = Melody(
            notes=tuple(MelodyNote(**n) for n in raw_melody["notes"]),
            key=raw_melody["key"],
            scale=raw_melody["scale"],
            length=raw_melody["length"],
        )
    return ChordProgression(
        chords=tuple(
            Chord(
                root=c["root"],
                quality=c["quality"],
                midi_notes=tuple(c["midi_notes"]),
                extensions=tuple(c.get("extensions", ())),
                inversion=c.get("inversion", 0),
                degree=c.get("degree"),
            )
            for c in data["chords"]
        ),
        key=data["key"],
        scale=data["scale"],
        tempo=data.get("tempo", 120.0),
        melody=melody,
    )


def _idea_to_dict(idea: SavedIdea) -> dict[str, Any]:
    return {
        "id": idea.id,
        "name": idea.name,
        "folder": idea.folder,
        "tags": list(idea.tags),
        "progression": progression_to_dict(idea.progression),
        "settings": {
            "key": idea.settings.key,
            "scale": idea.settings.scale,
            "template": idea.settings.template,
            "rhythm_pattern": idea.settings.rhythm_pattern,
            "add_extensions": idea.settings.add_extensions,
            "generate_melody": idea.settings.generate_melody,
        },
        "created_at": idea.created_at.isoformat(),
        "updated_at": idea.updated_at.isoformat(),
    }


def _idea_from_dict(data: dict[str, Any]) -> SavedIdea:
    return SavedIdea(
        id=data["id"],
        name=data["name"],
        folder=data.get("folder"),
        tags=tuple(data.get("tags", ())),
        progression=progression_from_dict(data["progression"]),
        settings=IdeaSettings(**data["settings"]),
        created_at=datetime.fromisoformat(data["created_at"]),
        updated_at=datetime.fromisoformat(data["updated_at"]),
    )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class IdeaStore:
    """JSON-backed storage for saved ideas.

    The ideas.json format is a list of serialized SavedIdea records::

        [
            {
                "id": "lq2x8k1f3h9a7c2e",
                "name": "Sunday pad",
                "folder": "sketches",
                "tags": ["lofi"],
                "progression": {"key": "C", "scale": "major", "chords": [...]},
                "settings": {"key": "C", "scale": "major", ...},
                "created_at": "2026-10-18T09:30:00+00:00",
                "updated_at": "2026-10-18T09:30:00+00:00"
            }
        ]
    """

    def __init__(
        self,
        store_path: Path = _DEFAULT_STORE_PATH,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the IdeaStore.

        Args:
            store_path: Path to the JSON file. Defaults to
                        ``ingestion/user_data/ideas.json``.
            rng:        Random source for id suffixes.
            clock:      Returns the current time; defaults to UTC now.
        """
        self.store_path = Path(store_path)
        self._rng = rng if rng is not None else random.Random()
        self._clock = clock if clock is not None else (lambda: datetime.now(UTC))
        self._unreadable = False

    # ── raw persistence ────────────────────────────────────────────────────

    def _load_all(self) -> list[SavedIdea]:
        self._unreadable = False
        if not self.store_path.exists():
            return []
        try:
            with open(self.store_path, encoding="utf-8") as f:
                raw = json.load(f)
            return [_idea_from_dict(entry) for entry in raw]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Could not read idea store %s: %s", self.store_path, exc)
            self._unreadable = True
            return []

    def _save_all(self, ideas: Iterable[SavedIdea]) -> None:
        self.store_path.parent.mkdir(parents=True, exist_ok=True)
        if self._unreadable and self.store_path.exists():
            backup = self.corrupt_path
            self.store_path.replace(backup)
            logger.warning("Moved unreadable idea store aside to %s", backup)
            self._unreadable = False
        with open(self.store_path, "w", encoding="utf-8") as f:
            json.dump([_idea_to_dict(i) for i in ideas], f, indent=2)

    @property
    def corrupt_path(self) -> Path:
        """Where an unreadable store file is moved before it is overwritten."""
        return self.store_path.with_name(self.store_path.name + ".corrupt")

    def _new_id(self) -> str:
        timestamp = _to_base36(int(self._clock().timestamp() * 1000))
        suffix = _to_base36(self._rng.getrandbits(48))
        return timestamp + suffix

    # ── public API ─────────────────────────────────────────────────────────

    def save(
        self,
        name: str,
        progression: ChordProgression,
        settings: IdeaSettings,
        folder: str | None = None,
        tags: Iterable[str] = (),
        existing_id: str | None = None,
    ) -> str:
        """Insert a new idea or replace an existing one.

        Saving with ``existing_id`` keeps the original ``created_at`` and
        refreshes ``updated_at``. An unknown ``existing_id`` is inserted
        under that id.

        Returns:
            The idea's id.
        """
        ideas = self._load_all()
        now = self._clock()
        idea_id = existing_id or self._new_id()

        previous = next((i for i in ideas if i.id == idea_id), None)
        idea = SavedIdea(
            id=idea_id,
            name=name,
            folder=folder or None,
            tags=tuple(tags),
            progression=progression,
            settings=settings,
            created_at=previous.created_at if previous is not None else now,
            updated_at=now,
        )

        if previous is not None:
            ideas = [idea if i.id == idea_id else i for i in ideas]
        else:
            ideas.append(idea)

        self._save_all(ideas)
        logger.info("Saved idea %r (%s)", name, idea_id)
        return idea_id

    def list_ideas(self) -> list[SavedIdea]:
        """All ideas in insertion order."""
        return self._load_all()

    def load(self, idea_id: str) -> SavedIdea | None:
        return next((i for i in self._load_all() if i.id == idea_id), None)

    def delete(self, idea_id: str) -> bool:
        """Remove an idea. Returns True if an idea was removed."""
        ideas = self._load_all()
        remaining = [i for i in ideas if i.id != idea_id]
        if len(remaining) == len(ideas):
            return False
        self._save_all(remaining)
        logger.info("Deleted idea %s", idea_id)
        return True

    def folders(self) -> list[str]:
        """Sorted unique folder names."""
        return sorted({i.folder for i in self._load_all() if i.folder})

    def tags(self) -> list[str]:
        """Sorted unique tags across all ideas."""
        return sorted({tag for i in self._load_all() for tag in i.tags})

    def by_folder(self, folder: str) -> list[SavedIdea]:
        return [i for i in self._load_all() if i.folder == folder]

    def by_tag(self, tag: str) -> list[SavedIdea]:
        return [i for i in self._load_all() if tag in i.tags]

    def clear(self) -> None:
        """Clear all ideas (for testing / reset).

        Removes the JSON file if it exists.
        """
        if self.store_path.exists():
            self.store_path.unlink()
