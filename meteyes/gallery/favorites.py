"""Favorites: a set of artwork ids persisted as a JSON array under one key.

Every toggle re-reads the stored set and rewrites it in full. When storage
is unavailable the store behaves as an empty set and toggles are no-ops:
nothing is written unless the current value could be read.
"""

from __future__ import annotations

import json
import logging

from meteyes.config import settings
from meteyes.errors import StorageUnavailableError
from meteyes.gallery.storage import KeyValueStorage

logger = logging.getLogger(__name__)


class FavoritesStore:
    def __init__(self, storage: KeyValueStorage, key: str | None = None):
        self.storage = storage
        self.key = key or settings.favorites_key

    def _read(self) -> list[int] | None:
        """Stored ids in insertion order, or None when storage cannot be read."""
        try:
            raw = self.storage.get(self.key)
        except StorageUnavailableError as e:
            logger.warning("Favorites unavailable | %s", str(e)[:200])
            return None
        if not raw:
            return []

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Favorites value is not valid JSON | key=%s", self.key)
            return []
        if not isinstance(data, list):
            return []

        ids: list[int] = []
        for value in data:
            # bool is an int subclass, but never a valid object id
            if isinstance(value, int) and not isinstance(value, bool) and value not in ids:
                ids.append(value)
        return ids

    def list(self) -> set[int]:
        return set(self._read() or [])

    def has(self, object_id: int) -> bool:
        return object_id in (self._read() or [])

    def toggle(self, object_id: int) -> bool:
        """Add ``object_id`` if absent, remove it if present. Returns new membership."""
        ids = self._read()
        if ids is None:
            logger.warning("Favorite not toggled, storage unreadable | id=%s", object_id)
            return False
        was_favorite = object_id in ids
        if was_favorite:
            ids.remove(object_id)
        else:
            ids.append(object_id)

        try:
            self.storage.set(self.key, json.dumps(ids))
        except StorageUnavailableError as e:
            logger.warning("Favorites not saved | id=%s | %s", object_id, str(e)[:200])
            return was_favorite

        logger.info("Favorite %s | id=%s | count=%d", "removed" if was_favorite else "added", object_id, len(ids))
        return not was_favorite
