"""Tests for src.core.registry and src.data.preferences_store."""

import json
from pathlib import Path

import pytest

from src.core.registry import SubscriberRegistry
from src.data.models import SubscriberPreferences
from src.data.preferences_store import PersistenceError, PreferencesStore


def _read(prefs_path) -> dict:
    return json.loads(Path(prefs_path).read_text(encoding="utf-8"))


class TestPreferencesStore:
    def test_missing_file_loads_empty(self, store):
        assert store.load_all() == {}

    def test_save_then_load(self, store, prefs_path):
        store.save_all({42: SubscriberPreferences(notify_daily=False)})
        assert _read(prefs_path)["42"]["notifyDaily"] is False

        loaded = store.load_all()
        assert list(loaded) == [42]
        assert loaded[42].notify_daily is False

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "prefs.json"
        PreferencesStore(path=str(path))
        assert path.parent.is_dir()

    def test_corrupt_file_raises(self, store, prefs_path):
        Path(prefs_path).write_text("{not json", encoding="utf-8")
        with pytest.raises(PersistenceError):
            store.load_all()

    def test_non_object_raises(self, store, prefs_path):
        Path(prefs_path).write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(PersistenceError):
            store.load_all()

    def test_unreadable_file_is_copied_aside(self, store, prefs_path):
        Path(prefs_path).write_text("{not json", encoding="utf-8")
        with pytest.raises(PersistenceError):
            store.load_all()
        assert Path(prefs_path + ".corrupt").read_text(encoding="utf-8") == "{not json"

    def test_skips_non_numeric_user_ids(self, store, prefs_path):
        Path(prefs_path).write_text(
            json.dumps({"abc": {}, "7": {"notifyRahuKalam": False}}), encoding="utf-8",
        )
        loaded = store.load_all()
        assert list(loaded) == [7]
        assert loaded[7].notify_rahu_kalam is False


class TestRegistryGet:
    def test_unknown_user_gets_defaults_without_persisting(self, registry, prefs_path):
        prefs = registry.get(99)
        assert prefs == SubscriberPreferences()
        assert 99 not in registry
        assert not Path(prefs_path).exists()

    def test_returns_copy(self, registry):
        registry.ensure(1)
        registry.get(1).notify_daily = False
        registry.ensure(1).notify_rahu_kalam = False
        assert registry.get(1) == SubscriberPreferences()
        assert [uid for uid, _ in registry.list_subscribed("notify_daily")] == [1]


class TestRegistryEnsure:
    def test_creates_and_persists(self, registry, prefs_path):
        prefs = registry.ensure(1)
        assert prefs == SubscriberPreferences()
        assert 1 in registry
        assert "1" in _read(prefs_path)

    def test_idempotent(self, registry):
        registry.ensure(1)
        registry.toggle(1, "notify_daily")
        again = registry.ensure(1)
        assert again.notify_daily is False
        assert len(registry) == 1

    def test_fresh_user_is_subscribed_everywhere(self, registry):
        registry.ensure(5)
        for toggle in SubscriberPreferences.toggle_names():
            assert 5 in [uid for uid, _ in registry.list_subscribed(toggle)]


class TestRegistryToggle:
    def test_self_inverse(self, registry, prefs_path):
        registry.ensure(1)
        assert registry.toggle(1, "notify_rahu_kalam") is False
        assert _read(prefs_path)["1"]["notifyRahuKalam"] is False
        assert registry.toggle(1, "notify_rahu_kalam") is True
        assert _read(prefs_path)["1"]["notifyRahuKalam"] is True

    def test_unknown_user_gets_defaults_then_flip(self, registry, prefs_path):
        assert registry.toggle(8, "notify_yamagandam") is False
        assert 8 in registry
        assert _read(prefs_path)["8"] == {
            "notifyRahuKalam": True,
            "notifyYamagandam": False,
            "notifyChandrashtama": True,
            "notifyDaily": True,
        }

    def test_unknown_toggle_raises(self, registry):
        with pytest.raises(ValueError):
            registry.toggle(1, "notify_weather")
        assert 1 not in registry

    def test_survives_reload(self, store):
        SubscriberRegistry(store).toggle(3, "notify_daily")
        reloaded = SubscriberRegistry(store)
        assert reloaded.get(3).notify_daily is False


class TestRegistryListSubscribed:
    def test_filters_by_toggle_in_insertion_order(self, registry):
        for uid in (3, 1, 2):
            registry.ensure(uid)
        registry.toggle(1, "notify_rahu_kalam")

        assert [uid for uid, _ in registry.list_subscribed("notify_rahu_kalam")] == [3, 2]
        assert [uid for uid, _ in registry.list_subscribed("notify_daily")] == [3, 1, 2]
        assert registry.count_enabled("notify_rahu_kalam") == 2

    def test_is_lazy(self, registry):
        registry.ensure(1)
        it = registry.list_subscribed("notify_daily")
        assert next(it)[0] == 1
        with pytest.raises(StopIteration):
            next(it)


class TestRegistryPersistenceFailures:
    def test_corrupt_file_starts_empty(self, store, prefs_path):
        Path(prefs_path).write_text("garbage", encoding="utf-8")
        assert len(SubscriberRegistry(store)) == 0

    def test_corrupt_file_survives_next_write(self, store, prefs_path):
        Path(prefs_path).write_text("garbage", encoding="utf-8")
        SubscriberRegistry(store).ensure(1)
        assert "1" in _read(prefs_path)
        assert Path(prefs_path + ".corrupt").read_text(encoding="utf-8") == "garbage"

    def test_write_failure_keeps_memory_state(self, registry, store, monkeypatch):
        def _fail(prefs):
            raise PersistenceError("disk full")

        monkeypatch.setattr(store, "save_all", _fail)
        assert registry.toggle(1, "notify_daily") is False
        assert registry.get(1).notify_daily is False
