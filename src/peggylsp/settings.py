"""
Server settings.

Settings arrive as the ``peggyLanguageServer`` section of the client
configuration, either pushed with ``workspace/didChangeConfiguration``,
pulled with ``workspace/configuration`` or sent as ``initializationOptions``.
Unknown keys are ignored; missing keys keep their current value.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace

SECTION = 'peggyLanguageServer'


@dataclass(frozen=True)
class PeggySettings:
    console_info: bool = False
    mark_info: bool = True
    debounce_ms: int = 200
    log_level: str | None = None

    @property
    def debounce_seconds(self) -> float:
        return max(self.debounce_ms, 0) / 1000.0

    def updated(self, raw) -> PeggySettings:
        """Return a copy with the camelCase options found in *raw* applied.

        *raw* may be a dict or any object exposing the options as attributes.
        """
        if raw is None:
            return self
        changes = {}
        for key, attr, convert in _OPTIONS:
            value = raw.get(key) if isinstance(raw, dict) else getattr(raw, key, None)
            if value is not None:
                changes[attr] = convert(value)
        return replace(self, **changes)


def _to_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


_OPTIONS = (
    ('consoleInfo', 'console_info', _to_bool),
    ('markInfo', 'mark_info', _to_bool),
    ('debounceMS', 'debounce_ms', int),
    ('logLevel', 'log_level', str),
)


def section_from(settings) -> object | None:
    """Extract the ``peggyLanguageServer`` section from a pushed settings object."""
    if settings is None:
        return None
    if isinstance(settings, dict):
        return settings.get(SECTION)
    return getattr(settings, SECTION, None)


def apply_log_level(raw: str | None) -> None:
    """Set the root logger level from a string like 'debug', 'warning', etc."""
    if not raw:
        return
    level = getattr(logging, raw.upper(), None)
    if isinstance(level, int):
        logging.getLogger().setLevel(level)
