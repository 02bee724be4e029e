from __future__ import annotations

from sessions.models import SessionRecord


class SessionRegistry:
    """In-memory map of live sessions. Owned by the engine, which is its only writer."""

    def __init__(self) -> None:
        self._sessions: dict[str, SessionRecord] = {}

    def put(self, record: SessionRecord) -> None:
        if record.id in self._sessions and self._sessions[record.id] is not record:
            raise KeyError(f"duplicate session id: {record.id}")
        self._sessions[record.id] = record

    def get(self, session_id: str) -> SessionRecord | None:
        return self._sessions.get(str(session_id))

    def delete(self, session_id: str) -> SessionRecord | None:
        return self._sessions.pop(str(session_id), None)

    def contains(self, session_id: str) -> bool:
        return str(session_id) in self._sessions

    def all_for_location(self, guild_id: int) -> list[SessionRecord]:
        return [r for r in self._sessions.values() if r.guild_id == int(guild_id) and r.is_active]

    def all_active(self) -> list[SessionRecord]:
        return [r for r in self._sessions.values() if r.is_active]

    def __len__(self) -> int:
        return len(self._sessions)
