from __future__ import annotations

import copy
from dataclasses import dataclass
from dataclasses import field
from dataclasses import replace
from datetime import datetime

ACTION_JOIN = "join"
ACTION_LEAVE = "leave"
ACTION_INFO = "info"
ACTION_END = "end"
SESSION_ACTIONS = (ACTION_JOIN, ACTION_LEAVE, ACTION_INFO, ACTION_END)


@dataclass(slots=True)
class Participant:
    display_name: str
    joined_at: datetime
    is_host: bool = False


@dataclass(slots=True)
class SessionRecord:
    id: str
    host_id: int
    host_name: str
    activity_label: str
    scheduled_at: datetime
    scheduled_display: str
    description: str
    created_at: datetime
    guild_id: int
    channel_id: int
    participants: dict[int, Participant] = field(default_factory=dict)
    ping_role_id: int | None = None
    message_ref: int | None = None
    is_active: bool = True

    def is_live(self, now: datetime) -> bool:
        return self.scheduled_at <= now

    def participant_count(self) -> int:
        return len(self.participants)

    def snapshot(self) -> SessionRecord:
        return replace(self, participants=copy.deepcopy(self.participants))


@dataclass(frozen=True, slots=True)
class JoinResult:
    session: SessionRecord
    added: bool
    participant_count: int
    display_stale: bool = False


@dataclass(frozen=True, slots=True)
class LeaveResult:
    session: SessionRecord
    removed: bool
    participant_count: int
    host_transferred_to: int | None = None
    grace_pending: bool = False
    display_stale: bool = False


@dataclass(frozen=True, slots=True)
class EndResult:
    session: SessionRecord
    reason: str
    display_stale: bool = False


@dataclass(frozen=True, slots=True)
class InfoResult:
    session: SessionRecord
