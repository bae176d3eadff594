"""
Tests for infrastructure/settings.py - nesting settings persistence.
"""
import pytest

from core.errors import SettingsError, StorageCorruptionError
from core.schemas import SETTINGS_KEY, NavSettings, decode_settings
from infrastructure.event_bus import EventBus, EventType
from infrastructure.kv_store import MemoryKeyValueStore
from infrastructure.settings import SettingsStore, coerce_settings


@pytest.fixture
def settings_store(memory_kv):
    return SettingsStore(memory_kv, event_bus=EventBus())


def test_first_read_persists_defaults(settings_store, memory_kv):
    assert memory_kv.get(SETTINGS_KEY) is None

    settings = settings_store.read()

    assert settings == NavSettings(nesting_enabled=True, back_steps=1)
    assert decode_settings(memory_kv.get(SETTINGS_KEY)) == settings


def test_read_merges_partial_record_with_defaults():
    kv = MemoryKeyValueStore({SETTINGS_KEY: b'{"nestingEnabled": false}'})

    settings = SettingsStore(kv).read()

    assert settings.nesting_enabled is False
    assert settings.back_steps == 1


def test_corrupt_record_raises():
    kv = MemoryKeyValueStore({SETTINGS_KEY: b"{broken"})

    with pytest.raises(StorageCorruptionError):
        SettingsStore(kv).read()


def test_write_replaces_record(settings_store):
    settings_store.write(NavSettings(nesting_enabled=False, back_steps=4))

    assert settings_store.read() == NavSettings(nesting_enabled=False, back_steps=4)


def test_write_clamps_back_steps(settings_store):
    stored = settings_store.write(NavSettings(back_steps=0))

    assert stored.back_steps == 1
    assert settings_store.read().back_steps == 1


def test_update_changes_only_given_fields(settings_store):
    settings_store.write(NavSettings(nesting_enabled=True, back_steps=3))

    updated = settings_store.update(nesting_enabled=False)

    assert updated == NavSettings(nesting_enabled=False, back_steps=3)


def test_update_accepts_camel_case_names(settings_store):
    assert settings_store.update(backSteps=2).back_steps == 2


def test_write_publishes_settings_changed(memory_kv):
    bus = EventBus()
    received = []
    bus.subscribe(EventType.SETTINGS_CHANGED, received.append)

    SettingsStore(memory_kv, event_bus=bus).write(NavSettings(back_steps=2))

    assert len(received) == 1
    assert received[0].payload == {"nestingEnabled": True, "backSteps": 2}


class TestCoerceSettings:
    """Loosely typed settings payloads."""

    def test_numeric_strings_are_accepted(self):
        assert coerce_settings({"backSteps": "3"}).back_steps == 3

    def test_values_below_one_are_clamped(self):
        assert coerce_settings({"backSteps": -4}).back_steps == 1

    def test_missing_fields_come_from_base(self):
        base = NavSettings(nesting_enabled=False, back_steps=5)

        assert coerce_settings({}, base=base) == base

    def test_unknown_fields_are_ignored(self):
        assert coerce_settings({"theme": "dark"}) == NavSettings()

    def test_wrong_types_raise(self):
        with pytest.raises(SettingsError):
            coerce_settings({"nestingEnabled": "sometimes"})

    def test_non_object_payload_raises(self):
        with pytest.raises(SettingsError):
            coerce_settings([1, 2])
