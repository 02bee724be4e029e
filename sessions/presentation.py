from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from datetime import timedelta

from config.defaults import DESCRIPTION_MAX_CHARS
from config.defaults import INFO_PARTICIPANT_LIST_MAX
from config.defaults import PARTICIPANT_LIST_MAX_CHARS
from config.defaults import SESSION_STARTING_SOON_SECONDS
from misc.discord_timestamps import format_discord_timestamp
from sessions.models import ACTION_END
from sessions.models import ACTION_INFO
from sessions.models import ACTION_JOIN
from sessions.models import ACTION_LEAVE
from sessions.models import SESSION_ACTIONS
from sessions.models import EndResult
from sessions.models import JoinResult
from sessions.models import LeaveResult
from sessions.models import SessionRecord

CUSTOM_ID_PREFIX = "gaming"

COLOR_LIVE = 0xFF0000
COLOR_SCHEDULED = 0x00FF00
COLOR_INFO = 0x3498DB
COLOR_ENDED = 0xFF6B6B


@dataclass(frozen=True, slots=True)
class SurfaceField:
    name: str
    value: str
    inline: bool = False


@dataclass(frozen=True, slots=True)
class SurfaceButton:
    action: str
    label: str
    style: str
    custom_id: str


@dataclass(frozen=True, slots=True)
class DisplaySurfaceSpec:
    title: str
    color: int
    fields: tuple[SurfaceField, ...] = ()
    description: str | None = None
    content: str | None = None
    footer: str | None = None
    timestamp: datetime | None = None
    buttons: tuple[SurfaceButton, ...] = ()
    mention_role_ids: tuple[int, ...] = ()


def session_custom_id(action: str, session_id: str) -> str:
    return f"{CUSTOM_ID_PREFIX}:{action}:{session_id}"


def parse_custom_id(custom_id: str | None) -> tuple[str, str] | None:
    parts = str(custom_id or "").split(":", 2)
    if len(parts) != 3 or parts[0] != CUSTOM_ID_PREFIX:
        return None
    action, session_id = parts[1], parts[2].strip()
    if action not in SESSION_ACTIONS or not session_id:
        return None
    return (action, session_id)


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: max(0, limit - 3)] + "..."


def _truncate_lines(lines: list[str], limit: int) -> str:
    # whole lines only, so markdown pairs are never split
    kept: list[str] = []
    used = 0
    for line in lines:
        cost = len(line) + 1
        if used + cost + 3 > limit:
            break
        kept.append(line)
        used += cost
    return "\n".join([*kept, "..."])


def format_duration(delta: timedelta, *, always_hours: bool = False) -> str:
    total_minutes = max(0, int(delta.total_seconds() // 60))
    hours, minutes = divmod(total_minutes, 60)
    if hours > 0 or always_hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def status_badge(record: SessionRecord, now: datetime) -> str:
    return "**LIVE NOW**" if record.is_live(now) else "**Scheduled**"


def participant_lines(record: SessionRecord, *, numbered: bool = True) -> list[str]:
    lines = []
    for idx, p in enumerate(record.participants.values(), start=1):
        host_mark = " (host)" if p.is_host else ""
        if numbered:
            lines.append(f"{idx}. **{p.display_name}**{host_mark}")
        else:
            lines.append(f"- {p.display_name}{host_mark}")
    return lines


def session_buttons(session_id: str) -> tuple[SurfaceButton, ...]:
    return (
        SurfaceButton(ACTION_JOIN, "Join Session", "success", session_custom_id(ACTION_JOIN, session_id)),
        SurfaceButton(ACTION_LEAVE, "Leave Session", "danger", session_custom_id(ACTION_LEAVE, session_id)),
        SurfaceButton(ACTION_INFO, "Session Info", "secondary", session_custom_id(ACTION_INFO, session_id)),
        SurfaceButton(ACTION_END, "End Event", "danger", session_custom_id(ACTION_END, session_id)),
    )


def render_session(
    record: SessionRecord,
    now: datetime,
    *,
    participant_list_max_chars: int = PARTICIPANT_LIST_MAX_CHARS,
) -> DisplaySurfaceSpec:
    """The main session card: live/scheduled badge is derived from scheduled_at vs now."""
    live = record.is_live(now)
    time_info = record.scheduled_display
    if not live:
        minutes_until = int((record.scheduled_at - now).total_seconds() // 60)
        if minutes_until <= 60:
            time_info += f"\nStarting in {minutes_until} minutes"

    lines = participant_lines(record)
    names = "\n".join(lines) or "*No players yet - be the first to join!*"
    if len(names) > participant_list_max_chars:
        names = _truncate_lines(lines, participant_list_max_chars)

    fields = [
        SurfaceField("Game", record.activity_label, True),
        SurfaceField("Host", record.host_name, True),
        SurfaceField("Status", status_badge(record, now), True),
        SurfaceField("Time", time_info, False),
        SurfaceField("Players", f"**{record.participant_count()}** joined", True),
        SurfaceField("Player List", names, False),
    ]
    if record.description:
        fields.append(SurfaceField("Description", _truncate(record.description, DESCRIPTION_MAX_CHARS), False))

    header = "**New Gaming Session Started!**"
    mention_roles: tuple[int, ...] = ()
    if record.ping_role_id:
        header = f"<@&{int(record.ping_role_id)}> {header}"
        mention_roles = (int(record.ping_role_id),)

    return DisplaySurfaceSpec(
        title=f"{record.activity_label} Gaming Session",
        color=COLOR_LIVE if live else COLOR_SCHEDULED,
        fields=tuple(fields),
        content=header,
        footer=f"Session ID: {record.id.rsplit('-', 1)[-1]} - Created",
        timestamp=record.created_at,
        buttons=session_buttons(record.id),
        mention_role_ids=mention_roles,
    )


def render_session_info(record: SessionRecord, now: datetime) -> DisplaySurfaceSpec:
    if record.is_live(now):
        status = "**LIVE NOW!**"
    else:
        status = f"Starting {format_discord_timestamp(record.scheduled_at, 'R')}"
    fields = [
        SurfaceField("Game", record.activity_label, True),
        SurfaceField("Host", record.host_name, True),
        SurfaceField("Players", str(record.participant_count()), True),
        SurfaceField("Scheduled Time", record.scheduled_display, False),
        SurfaceField("Status", status, True),
        SurfaceField("Session Age", format_duration(now - record.created_at, always_hours=True), True),
    ]
    if record.description:
        fields.append(SurfaceField("Description", _truncate(record.description, DESCRIPTION_MAX_CHARS), False))
    if 0 < record.participant_count() <= INFO_PARTICIPANT_LIST_MAX:
        fields.append(SurfaceField("Participants", "\n".join(participant_lines(record, numbered=False)), False))
    return DisplaySurfaceSpec(
        title="Session Information",
        color=COLOR_INFO,
        fields=tuple(fields),
        footer="Session created",
        timestamp=record.created_at,
    )


def render_session_ended(record: SessionRecord, now: datetime) -> DisplaySurfaceSpec:
    duration = format_duration(now - record.created_at)
    return DisplaySurfaceSpec(
        title="Gaming Session Ended",
        color=COLOR_ENDED,
        description=(
            f"## **{record.activity_label}** session has been ended by the host\n\n"
            f"**Final Stats:**\n"
            f"**Players:** {record.participant_count()}\n"
            f"**Duration:** {duration}\n\n"
            "**Thanks for playing!** Feel free to start a new session anytime."
        ),
        fields=(
            SurfaceField("Host", record.host_name, True),
            SurfaceField("Game", record.activity_label, True),
            SurfaceField("Ended", format_discord_timestamp(now, "F"), True),
        ),
        timestamp=now,
    )


def reminder_recipients(record: SessionRecord) -> list[int]:
    """Host first, then everyone else in join order."""
    others = [uid for uid in record.participants if uid != record.host_id]
    if record.host_id in record.participants:
        return [record.host_id, *others]
    return others


def render_reminder_body(record: SessionRecord, user_ids: list[int]) -> str:
    mentions = " ".join(f"<@{int(uid)}>" for uid in user_ids)
    return (
        f"{mentions}\n"
        f"**GAME TIME!** **{record.activity_label}** is starting **NOW!**\n"
        "Ready up and let's play!"
    )


def render_session_list(records: list[SessionRecord], now: datetime) -> str:
    if not records:
        return "No active gaming sessions right now. Start one with `!startsession`."
    lines = [f"Active gaming sessions ({len(records)}):"]
    for record in sorted(records, key=lambda r: r.scheduled_at):
        state = "LIVE" if record.is_live(now) else "SCHEDULED"
        lines.append(
            f"- {record.activity_label} [{state}] host={record.host_name} "
            f"players={record.participant_count()} time={record.scheduled_display}"
        )
    return "\n".join(lines)


STALE_DISPLAY_NOTE = "\n\n_The session card may be out of date._"


def render_join_reply(result: JoinResult, now: datetime, *, starting_soon_seconds: int = SESSION_STARTING_SOON_SECONDS) -> str:
    record = result.session
    if not result.added:
        return (
            f"**Already joined!** You're already in the **{record.activity_label}** session.\n\n"
            f"**Total players:** {result.participant_count}"
        )
    text = (
        f"**Joined {record.activity_label}!**\n\n"
        f"**Starting:** {record.scheduled_display}\n"
        f"**Players:** {result.participant_count} joined"
    )
    seconds_until = (record.scheduled_at - now).total_seconds()
    if seconds_until <= 0:
        text += "\n\n**LIVE NOW!** Ready to play!"
    elif seconds_until <= starting_soon_seconds:
        text += "\n\n**Starting soon!** Get ready to play!"
    else:
        text += "\n\n*You'll be notified when it's time to play!*"
    if result.display_stale:
        text += STALE_DISPLAY_NOTE
    return text


def render_leave_reply(result: LeaveResult) -> str:
    record = result.session
    if not result.removed:
        return (
            f"**Not in session!** You're not signed up for **{record.activity_label}**.\n\n"
            f"**Current players:** {result.participant_count}"
        )
    text = f"**Left {record.activity_label}**\n\n**Remaining players:** {result.participant_count}"
    if result.host_transferred_to is not None:
        text += f"\n\n**Host transferred** to {record.host_name}"
    elif result.grace_pending:
        text += "\n\n**Session will end soon** (no players left)"
    text += "\n\n*You can rejoin anytime!*"
    if result.display_stale:
        text += STALE_DISPLAY_NOTE
    return text


def render_end_reply(result: EndResult, now: datetime) -> str:
    record = result.session
    text = (
        "**Gaming Session Ended**\n\n"
        f"**{record.activity_label}** session has been successfully ended.\n"
        f"**Total players:** {record.participant_count()}\n"
        f"**Duration:** {format_duration(now - record.created_at)}"
    )
    if result.display_stale:
        text += STALE_DISPLAY_NOTE
    return text


def render_not_host_reply(host_name: str) -> str:
    return (
        "**Permission Denied**\n\n"
        f"Only the session host (**{host_name}**) can end this event.\n\n"
        "If you're a moderator and need to end this session, you can delete the message manually."
    )


SESSION_NOT_FOUND_REPLY = (
    "**Gaming Session Not Found**\n\n"
    "This session may have expired or been deleted. Please create a new one with `!startsession`."
)
