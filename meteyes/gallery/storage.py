"""Key/value string storage, the local persistence capability of the client.

Implementations raise StorageUnavailableError when the backing store cannot
be used; callers decide how to degrade.
"""

import json
import logging
from pathlib import Path
from typing import Protocol

from meteyes.errors import StorageUnavailableError

logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStorage:
    """Process-local storage. Useful for tests and ephemeral sessions."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStorage:
    """All keys kept in one JSON object file, rewritten in full on every set.

    Single-writer only: two processes sharing a file may lose each other's writes.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except OSError as e:
            raise StorageUnavailableError(f"cannot read {self.path}: {e}") from e
        except json.JSONDecodeError:
            logger.warning("Storage file is not valid JSON, starting empty | path=%s", self.path)
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
            tmp.replace(self.path)
        except OSError as e:
            raise StorageUnavailableError(f"cannot write {self.path}: {e}") from e
