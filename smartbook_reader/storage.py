"""Key-value persistence for reading progress and reader settings."""

import json
import logging
import os
import tempfile
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import replace
from pathlib import Path
from typing import Callable, Optional

from smartbook_reader.models import ReadingProgress
from smartbook_reader.settings import PAGINATION_FIELDS, ReaderSettings

logger = logging.getLogger(__name__)

PROGRESS_KEY_PREFIX = "progress:"
SETTINGS_KEY = "reader_settings"


class StorageError(RuntimeError):
    """The persisted store exists but cannot be read or written."""


class KeyValueBackend(ABC):
    """Minimal key-value contract the stores are built on."""

    @abstractmethod
    def get(self, key: str) -> Optional[dict]:
        """Return the value stored under ``key``, or None."""
        ...

    @abstractmethod
    def put(self, key: str, value: dict) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""
        ...

    @abstractmethod
    def keys(self) -> list[str]:
        ...


class MemoryBackend(KeyValueBackend):
    """Thread-safe in-memory store. Values are copied in and out."""

    def __init__(self):
        self._data: dict[str, dict] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[dict]:
        with self._lock:
            value = self._data.get(key)
            return dict(value) if value is not None else None

    def put(self, key: str, value: dict) -> None:
        with self._lock:
            self._data[key] = dict(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data.keys())


class JsonFileBackend(KeyValueBackend):
    """Whole store kept in one JSON document, rewritten on every change."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._data = self._read()

    def _read(self) -> dict[str, dict]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise StorageError(f"Impossibile leggere {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Formato non valido in {self.path}: atteso un oggetto JSON")
        return data

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self.path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Impossibile scrivere {self.path}: {e}") from e

    def get(self, key: str) -> Optional[dict]:
        with self._lock:
            value = self._data.get(key)
            return dict(value) if isinstance(value, dict) else None

    def put(self, key: str, value: dict) -> None:
        with self._lock:
            self._data[key] = dict(value)
            self._write()

    def delete(self, key: str) -> None:
        with self._lock:
            if self._data.pop(key, None) is not None:
                self._write()

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data.keys())


class ProgressStore:
    """Reading progress keyed by book id, last write wins."""

    def __init__(self, backend: KeyValueBackend):
        self.backend = backend

    def load(self, book_id: str) -> Optional[ReadingProgress]:
        """Return the saved cursor for a book, or None if it was never saved."""
        data = self.backend.get(PROGRESS_KEY_PREFIX + book_id)
        if data is None:
            return None
        try:
            return ReadingProgress.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Progresso salvato non valido per '%s': %s", book_id, e)
            return None

    def save(self, progress: ReadingProgress) -> None:
        self.backend.put(PROGRESS_KEY_PREFIX + progress.book_id, progress.to_dict())
        logger.debug(
            "Progresso salvato per '%s': capitolo %d, pagina %d",
            progress.book_id, progress.chapter_index, progress.page_index,
        )

    def delete(self, book_id: str) -> None:
        self.backend.delete(PROGRESS_KEY_PREFIX + book_id)

    def list_book_ids(self) -> list[str]:
        return sorted(
            key[len(PROGRESS_KEY_PREFIX):]
            for key in self.backend.keys()
            if key.startswith(PROGRESS_KEY_PREFIX)
        )


class SettingsStore:
    """Process-wide reader settings."""

    def __init__(self, backend: KeyValueBackend):
        self.backend = backend

    def get(self) -> ReaderSettings:
        data = self.backend.get(SETTINGS_KEY)
        if data is None:
            return ReaderSettings()
        return ReaderSettings.from_dict(data)

    def put(self, settings: ReaderSettings) -> None:
        self.backend.put(SETTINGS_KEY, settings.to_dict())


class SettingsManager:
    """Holds the live settings and decides when they are written back.

    Font size and line spacing change in rapid steps while the user drags a
    control, so those writes are debounced; every other change is written at once.

    Args:
        store: Where settings are persisted.
        debounce: Seconds of quiet after the last size/spacing change before it is written.
        clock: Monotonic time source, in seconds.
    """

    def __init__(
        self,
        store: SettingsStore,
        debounce: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.debounce = debounce
        self._clock = clock
        self._settings = store.get()
        self._pending = False
        self._last_change = 0.0

    @property
    def settings(self) -> ReaderSettings:
        return self._settings

    @property
    def has_pending_changes(self) -> bool:
        return self._pending

    def apply(self, new_settings: ReaderSettings) -> frozenset[str]:
        """Make ``new_settings`` current and return the names of changed fields."""
        changed = new_settings.changed_fields(self._settings)
        if not changed:
            return changed

        self._settings = new_settings
        if changed <= PAGINATION_FIELDS:
            self._pending = True
            self._last_change = self._clock()
            logger.debug("Modifica impostazioni in attesa: %s", ", ".join(sorted(changed)))
        else:
            self.flush()
        return changed

    def update(self, **changes) -> frozenset[str]:
        """Apply a partial change, e.g. ``update(font_size=20)``."""
        return self.apply(replace(self._settings, **changes))

    def flush_if_due(self) -> bool:
        """Write a pending change once the debounce window has passed."""
        if self._pending and self._clock() - self._last_change >= self.debounce:
            self.flush()
            return True
        return False

    def flush(self) -> None:
        """Write the current settings unconditionally."""
        self.store.put(self._settings)
        self._pending = False
        logger.debug("Impostazioni salvate")
