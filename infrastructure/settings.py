"""
Navigation settings persistence.

Settings are shared, read-mostly state. Reads merge the stored record over
the defaults; the first read of a fresh store persists those defaults.
Writes replace the stored record and clamp backSteps to at least 1.
"""
import logging
from typing import Any, Dict, Optional

import msgspec

from core.errors import SettingsError
from core.schemas import (
    SETTINGS_KEY,
    NavSettings,
    decode_settings,
    encode_settings,
    now_ms,
    to_builtins,
)
from infrastructure.event_bus import EventBus, EventType, NavEvent, get_event_bus
from infrastructure.kv_store import KeyValueStore

logger = logging.getLogger(__name__)


def coerce_settings(payload: Dict[str, Any], base: Optional[NavSettings] = None) -> NavSettings:
    """
    Build NavSettings from a loosely typed payload (settings UI, CLI, API).

    Fields missing from `payload` are taken from `base` (or the defaults).
    Numeric strings are accepted for backSteps.

    Raises:
        SettingsError: If the payload is not an object or has wrong field types
    """
    if not isinstance(payload, dict):
        raise SettingsError(f"Settings must be an object, got {type(payload).__name__}")

    merged = to_builtins(base or NavSettings())
    merged.update(payload)
    try:
        return msgspec.convert(merged, NavSettings, strict=False)
    except msgspec.ValidationError as e:
        raise SettingsError(f"Invalid settings: {e}") from e


class SettingsStore:
    """Reads and writes the NavSettings record in a KeyValueStore."""

    def __init__(self, kv: KeyValueStore, event_bus: Optional[EventBus] = None):
        self._kv = kv
        self._event_bus = event_bus

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus or get_event_bus()

    def read(self) -> NavSettings:
        """Current settings merged over defaults (init-on-first-read)."""
        raw = self._kv.get(SETTINGS_KEY)
        if raw is None:
            settings = NavSettings()
            self._kv.set(SETTINGS_KEY, encode_settings(settings))
            logger.info("Initialized navigation settings with defaults")
            return settings
        return decode_settings(raw)

    def write(self, settings: NavSettings) -> NavSettings:
        """Replace the stored record. Returns what was stored."""
        stored = NavSettings(
            nesting_enabled=bool(settings.nesting_enabled),
            back_steps=settings.back_steps,
        )
        self._kv.set(SETTINGS_KEY, encode_settings(stored))
        logger.info(
            f"Settings updated: nestingEnabled={stored.nesting_enabled} "
            f"backSteps={stored.back_steps}"
        )
        self.event_bus.publish(NavEvent(
            type=EventType.SETTINGS_CHANGED,
            payload=to_builtins(stored),
            timestamp=now_ms(),
            source="settings",
        ))
        return stored

    def update(self, **changes: Any) -> NavSettings:
        """
        Read-modify-write a subset of fields.

        Accepts snake_case or camelCase names:
            store.update(nesting_enabled=False, back_steps=2)
        """
        payload = {_CAMEL.get(key, key): value for key, value in changes.items()}
        return self.write(coerce_settings(payload, base=self.read()))


_CAMEL = {"nesting_enabled": "nestingEnabled", "back_steps": "backSteps"}
