"""REST endpoints for saved progression ideas."""
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from api.deps import get_idea_store
from api.schemas.music import (
    IdeaListResponse,
    IdeaOut,
    IdeaSettingsModel,
    ProgressionOut,
    SaveIdeaRequest,
    SaveIdeaResponse,
)
from ingestion.idea_store import (
    IdeaSettings,
    IdeaStore,
    SavedIdea,
    progression_from_dict,
    progression_to_dict,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/ideas", tags=["ideas"])

Store = Annotated[IdeaStore, Depends(get_idea_store)]


def _to_response(idea: SavedIdea) -> IdeaOut:
    """Convert a SavedIdea to an IdeaOut."""
    return IdeaOut(
        id=idea.id,
        name=idea.name,
        folder=idea.folder,
        tags=list(idea.tags),
        progression=ProgressionOut.model_validate(progression_to_dict(idea.progression)),
        settings=IdeaSettingsModel(
            key=idea.settings.key,
            scale=idea.settings.scale,
            template=idea.settings.template,
            rhythm_pattern=idea.settings.rhythm_pattern,
            add_extensions=idea.settings.add_extensions,
            generate_melody=idea.settings.generate_melody,
        ),
        created_at=idea.created_at,
        updated_at=idea.updated_at,
    )


@router.get("/", response_model=IdeaListResponse)
def list_ideas(store: Store, folder: str | None = None, tag: str | None = None) -> IdeaListResponse:
    """List saved ideas, optionally filtered by folder or tag (folder wins)."""
    if folder:
        ideas = store.by_folder(folder)
    elif tag:
        ideas = store.by_tag(tag)
    else:
        ideas = store.list_ideas()
    return IdeaListResponse(ideas=[_to_response(i) for i in ideas], total=len(ideas))


@router.get("/folders", response_model=list[str])
def list_folders(store: Store) -> list[str]:
    """Sorted unique folder names."""
    return store.folders()


@router.get("/tags", response_model=list[str])
def list_tags(store: Store) -> list[str]:
    """Sorted unique tags."""
    return store.tags()


@router.post("/", response_model=SaveIdeaResponse, status_code=201)
def save_idea(body: SaveIdeaRequest, store: Store) -> SaveIdeaResponse:
    """Save a new idea, or overwrite ``existing_id`` keeping its creation time."""
    try:
        progression = progression_from_dict(body.progression.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    idea_id = store.save(
        body.name,
        progression,
        IdeaSettings(**body.settings.model_dump()),
        folder=body.folder,
        tags=body.tags,
        existing_id=body.existing_id,
    )
    return SaveIdeaResponse(id=idea_id)


@router.get("/{idea_id}", response_model=IdeaOut)
def get_idea(idea_id: str, store: Store) -> IdeaOut:
    """Return one saved idea."""
    idea = store.load(idea_id)
    if idea is None:
        raise HTTPException(status_code=404, detail=f"Idea {idea_id!r} not found")
    return _to_response(idea)


@router.delete("/{idea_id}", status_code=204)
def delete_idea(idea_id: str, store: Store) -> None:
    """Delete a saved idea."""
    if not store.delete(idea_id):
        raise HTTPException(status_code=404, detail=f"Idea {idea_id!r} not found")
