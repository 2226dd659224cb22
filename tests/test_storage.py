"""Tests for progress and settings persistence."""

import json
from datetime import datetime

import pytest

from smartbook_reader.models import ReadingProgress
from smartbook_reader.settings import BackgroundTheme, ReaderSettings
from smartbook_reader.storage import (
    JsonFileBackend,
    MemoryBackend,
    ProgressStore,
    SettingsManager,
    SettingsStore,
    StorageError,
)


def _progress(book_id="libro-1", chapter=2, page=17):
    return ReadingProgress(
        book_id=book_id,
        chapter_index=chapter,
        page_index=page,
        last_read_date=datetime(2024, 5, 1, 21, 30, 15, 123456),
    )


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


class TestMemoryBackend:
    def test_values_are_copied(self):
        backend = MemoryBackend()
        value = {"a": 1}
        backend.put("k", value)
        value["a"] = 2
        assert backend.get("k") == {"a": 1}

    def test_delete_missing_key_is_noop(self):
        backend = MemoryBackend()
        backend.delete("assente")
        assert backend.keys() == []


class TestJsonFileBackend:
    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "store.json"
        JsonFileBackend(path).put("k", {"v": "è"})
        assert JsonFileBackend(path).get("k") == {"v": "è"}

    def test_missing_file_is_empty(self, tmp_path):
        backend = JsonFileBackend(tmp_path / "nuovo" / "store.json")
        assert backend.get("k") is None
        assert backend.keys() == []

    def test_creates_parent_directory_on_write(self, tmp_path):
        path = tmp_path / "a" / "b" / "store.json"
        JsonFileBackend(path).put("k", {})
        assert json.loads(path.read_text(encoding="utf-8")) == {"k": {}}

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{non json", encoding="utf-8")
        with pytest.raises(StorageError):
            JsonFileBackend(path)

    def test_non_object_document_raises(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(StorageError, match="Formato non valido"):
            JsonFileBackend(path)

    def test_delete_rewrites_file(self, tmp_path):
        path = tmp_path / "store.json"
        backend = JsonFileBackend(path)
        backend.put("a", {"x": 1})
        backend.put("b", {"x": 2})
        backend.delete("a")
        assert json.loads(path.read_text(encoding="utf-8")) == {"b": {"x": 2}}


class TestProgressStore:
    def test_round_trip(self):
        store = ProgressStore(MemoryBackend())
        progress = _progress()
        store.save(progress)
        assert store.load(progress.book_id) == progress

    def test_round_trip_through_json_file(self, tmp_path):
        path = tmp_path / "progress.json"
        progress = _progress()
        ProgressStore(JsonFileBackend(path)).save(progress)
        assert ProgressStore(JsonFileBackend(path)).load(progress.book_id) == progress

    def test_load_unknown_book_returns_none(self):
        assert ProgressStore(MemoryBackend()).load("mai-aperto") is None

    def test_save_overwrites_previous_record(self):
        store = ProgressStore(MemoryBackend())
        store.save(_progress(page=3))
        store.save(_progress(page=9))
        assert store.load("libro-1").page_index == 9
        assert store.list_book_ids() == ["libro-1"]

    def test_records_are_keyed_by_book(self):
        store = ProgressStore(MemoryBackend())
        store.save(_progress(book_id="b", page=1))
        store.save(_progress(book_id="a", page=2))
        assert store.list_book_ids() == ["a", "b"]
        assert store.load("b").page_index == 1

    def test_malformed_record_is_treated_as_missing(self, caplog):
        backend = MemoryBackend()
        backend.put("progress:rotto", {"book_id": "rotto", "page_index": "x"})
        assert ProgressStore(backend).load("rotto") is None
        assert "rotto" in caplog.text

    def test_delete(self):
        store = ProgressStore(MemoryBackend())
        store.save(_progress())
        store.delete("libro-1")
        assert store.load("libro-1") is None


class TestSettingsStore:
    def test_defaults_when_nothing_saved(self):
        assert SettingsStore(MemoryBackend()).get() == ReaderSettings()

    def test_put_then_get(self):
        store = SettingsStore(MemoryBackend())
        settings = ReaderSettings(font_size=25, background_theme=BackgroundTheme.SEPIA)
        store.put(settings)
        assert store.get() == settings


class TestSettingsManager:
    def _manager(self, debounce=0.5):
        store = SettingsStore(MemoryBackend())
        clock = FakeClock()
        return SettingsManager(store, debounce=debounce, clock=clock), store, clock

    def test_loads_saved_settings(self):
        store = SettingsStore(MemoryBackend())
        store.put(ReaderSettings(font_size=26))
        assert SettingsManager(store).settings.font_size == 26

    def test_font_size_change_is_debounced(self):
        manager, store, clock = self._manager()
        manager.update(font_size=20)

        assert manager.settings.font_size == 20
        assert manager.has_pending_changes
        assert store.get().font_size == 18

        clock.now += 0.25
        assert manager.flush_if_due() is False
        assert store.get().font_size == 18

        clock.now += 0.25
        assert manager.flush_if_due() is True
        assert store.get().font_size == 20
        assert not manager.has_pending_changes

    def test_each_step_restarts_the_window(self):
        manager, store, clock = self._manager()
        manager.update(font_size=19)
        clock.now += 0.25
        manager.update(font_size=20)
        clock.now += 0.25
        assert manager.flush_if_due() is False
        clock.now += 0.25
        assert manager.flush_if_due() is True
        assert store.get().font_size == 20

    def test_theme_change_is_written_immediately(self):
        manager, store, _ = self._manager()
        manager.update(background_theme=BackgroundTheme.LIGHT)
        assert store.get().background_theme == BackgroundTheme.LIGHT
        assert not manager.has_pending_changes

    def test_immediate_write_includes_pending_change(self):
        manager, store, _ = self._manager()
        manager.update(line_spacing=12)
        manager.update(background_theme=BackgroundTheme.SEPIA)
        saved = store.get()
        assert saved.line_spacing == 12
        assert saved.background_theme == BackgroundTheme.SEPIA

    def test_flush_writes_pending_change(self):
        manager, store, _ = self._manager()
        manager.update(font_size=16)
        manager.flush()
        assert store.get().font_size == 16

    def test_apply_returns_changed_fields(self):
        manager, _, _ = self._manager()
        assert manager.apply(ReaderSettings(font_size=22)) == {"font_size"}
        assert manager.apply(ReaderSettings(font_size=22)) == frozenset()
