"""
Local history cache for anonymous sessions.

Keeps the newest artifacts in a JSON file when no owner is signed in.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import List

from .models import Artifact

logger = logging.getLogger(__name__)

DEFAULT_CACHE_PATH = ".creation_studio_history.json"
DEFAULT_CACHE_LIMIT = 20


class LocalHistoryCache:
    """JSON-file fallback for the history list.

    Unreadable or corrupt files load as an empty history rather than
    failing the session.
    """

    def __init__(self, path: str = DEFAULT_CACHE_PATH, limit: int = DEFAULT_CACHE_LIMIT):
        if limit <= 0:
            raise ValueError("limit must be > 0")
        self.path = Path(path)
        self.limit = limit

    def load(self) -> List[Artifact]:
        """Load cached artifacts, newest first."""
        if not self.path.exists():
            return []
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                raw_items = json.load(f)
            return [
                Artifact(
                    id=item["id"],
                    name=item["name"],
                    content=item["content"],
                    updated_at=datetime.fromisoformat(item["updated_at"])
                )
                for item in raw_items
            ]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Ignoring unreadable history cache %s: %s", self.path, e)
            return []

    def save(self, history: List[Artifact]) -> None:
        """Write the newest `limit` artifacts to the cache file."""
        items = [
            {
                "id": artifact.id,
                "name": artifact.name,
                "content": artifact.content,
                "updated_at": artifact.updated_at.isoformat()
            }
            for artifact in history[:self.limit]
        ]
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(items, f)
