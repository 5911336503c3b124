"""
FastAPI dependency providers.

Provides a singleton for the saved-idea store so the JSON file location is
resolved once and reused across requests.
"""

import os
from pathlib import Path

from ingestion.idea_store import IdeaStore

_idea_store: IdeaStore | None = None


def get_idea_store() -> IdeaStore:
    """
    Return a cached ``IdeaStore`` singleton.

    Reads ``IDEA_STORE_PATH`` from the environment on first call; without
    it the store uses its default location under ``ingestion/user_data/``.
    """
    global _idea_store  # noqa: PLW0603
    if _idea_store is None:
        path = os.environ.get("IDEA_STORE_PATH")
        _idea_store = IdeaStore(Path(path)) if path else IdeaStore()
    return _idea_store
