from __future__ import annotations

from dataclasses import dataclass
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from config.defaults import PARTICIPANT_LIST_MAX_CHARS
from config.defaults import SESSION_AUTO_CLEANUP_SECONDS
from config.defaults import SESSION_END_DELETE_DELAY_SECONDS
from config.defaults import SESSION_GRACE_SECONDS
from config.defaults import SESSION_HORIZON_SECONDS
from config.defaults import SESSION_MAX_AGE_SECONDS
from config.defaults import SESSION_SWEEP_INTERVAL_SECONDS


@dataclass(frozen=True, slots=True)
class SessionSettings:
    horizon_seconds: float = SESSION_HORIZON_SECONDS
    max_age_seconds: float = SESSION_MAX_AGE_SECONDS
    grace_seconds: float = SESSION_GRACE_SECONDS
    auto_cleanup_seconds: float = SESSION_AUTO_CLEANUP_SECONDS
    sweep_interval_seconds: float = SESSION_SWEEP_INTERVAL_SECONDS
    end_delete_delay_seconds: float = SESSION_END_DELETE_DELAY_SECONDS
    participant_list_max_chars: int = PARTICIPANT_LIST_MAX_CHARS


def _positive_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value <= 0:
        return None
    return value


def load_session_settings(path: str | Path | None) -> tuple[SessionSettings, str | None]:
    """
    Returns (settings, warning_message). warning_message is None on clean load.
    Unknown keys are ignored; bad values fall back to the built-in default.
    """
    defaults = SessionSettings()
    if not path:
        return (defaults, None)

    p = Path(path)
    if not p.exists():
        return (defaults, f"Session settings file not found at {p}; using built-in defaults.")

    try:
        payload = yaml.safe_load(p.read_text(encoding="utf-8"))
    except Exception as exc:
        return (defaults, f"Failed to read session settings from {p}: {exc}; using built-in defaults.")

    if payload is None:
        return (defaults, None)
    if not isinstance(payload, dict):
        return (defaults, f"Invalid session settings format in {p}; using built-in defaults.")

    values: dict[str, Any] = {}
    rejected: list[str] = []
    for f in fields(SessionSettings):
        if f.name not in payload:
            continue
        clean = _positive_number(payload.get(f.name))
        if clean is None:
            rejected.append(f.name)
            continue
        values[f.name] = int(clean) if f.name == "participant_list_max_chars" else clean

    settings = SessionSettings(**values)
    if settings.grace_seconds > settings.max_age_seconds:
        rejected.append("grace_seconds")
        settings = SessionSettings(**{**values, "grace_seconds": min(defaults.grace_seconds, settings.max_age_seconds)})

    if rejected:
        return (settings, f"Ignored invalid session settings in {p}: {', '.join(rejected)}.")
    return (settings, None)
