"""Gallery client state: favorites, storage and the result-set controller."""

from meteyes.gallery.controller import GalleryController, ViewMode
from meteyes.gallery.favorites import FavoritesStore
from meteyes.gallery.storage import JsonFileStorage, KeyValueStorage, MemoryStorage

__all__ = [
    "FavoritesStore",
    "GalleryController",
    "JsonFileStorage",
    "KeyValueStorage",
    "MemoryStorage",
    "ViewMode",
]
