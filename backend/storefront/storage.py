"""Per-browser durable key-value storage used by the timer widgets.

Each widget only touches keys derived from its own timer id, so no locking
is needed between widgets on a page.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


def session_start_key(timer_id: str) -> str:
    return f"utimer_fixed_{timer_id}_startedAt"


def dismiss_key(timer_id: str) -> str:
    return f"utimer-dismissed-{timer_id}"


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStore:
    """Non-durable store; one instance per simulated browser."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()


class JsonFileStore:
    """Durable store backed by one JSON file, rewritten atomically on change.

    An unreadable or unwritable file behaves like unavailable browser storage:
    the widgets keep working, state just does not survive.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._data: dict[str, str] | None = None

    def _load(self) -> dict[str, str]:
        if self._data is None:
            self._data = {}
            if self.path.exists():
                try:
                    raw = json.loads(self.path.read_text(encoding="utf-8"))
                    self._data = {str(k): str(v) for k, v in raw.items()}
                except (OSError, ValueError, AttributeError) as e:
                    logger.warning(f"Ignoring unreadable storage file {self.path}: {e}")
        return self._data

    def _save(self) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(self._load(), indent=2), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            logger.warning(f"Could not persist storage file {self.path}: {e}")

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        self._load()[key] = value
        self._save()

    def remove(self, key: str) -> None:
        if self._load().pop(key, None) is not None:
            self._save()
