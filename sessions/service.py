from __future__ import annotations

import asyncio
from datetime import datetime
from datetime import timedelta
from datetime import tzinfo
from typing import Any
from typing import Callable

from config.defaults import ACTIVITY_LABEL_MAX_CHARS
from sessions.errors import SessionNotFoundError
from sessions.errors import SessionPermissionError
from sessions.errors import SessionValidationError
from sessions.models import ACTION_END
from sessions.models import ACTION_INFO
from sessions.models import ACTION_JOIN
from sessions.models import ACTION_LEAVE
from sessions.models import EndResult
from sessions.models import InfoResult
from sessions.models import JoinResult
from sessions.models import LeaveResult
from sessions.models import Participant
from sessions.models import SessionRecord
from sessions.presentation import reminder_recipients
from sessions.presentation import render_reminder_body
from sessions.presentation import render_session
from sessions.presentation import render_session_ended
from sessions.registry import SessionRegistry
from sessions.scheduler import ReminderScheduler
from sessions.scheduler import utc_now
from sessions.settings import SessionSettings
from sessions.time_parser import parse_time_expression


def _grace_key(session_id: str) -> str:
    return f"{session_id}:grace"


def _cleanup_key(session_id: str) -> str:
    return f"{session_id}:cleanup"


def _horizon_text(seconds: float) -> str:
    minutes = int(seconds // 60)
    if minutes % 60 == 0:
        hours = minutes // 60
        return f"{hours} hour" if hours == 1 else f"{hours} hours"
    return f"{minutes} minutes"


class SessionService:
    """
    Lifecycle of gaming sessions: create, join/leave with host succession,
    host-only end, reminder-driven live transition and the expiry sweep.

    State is mutated synchronously before any sink call is awaited, so a
    concurrent reader never sees a half-applied change. Sink failures are
    logged and reported as display_stale; they never roll back state.

    render_sink: create(channel_id, surface) -> message_ref,
        update(channel_id, message_ref, surface), retire(channel_id, message_ref, *, delete),
        post(channel_id, surface)
    notification_sink: notify(channel_id, user_ids, body)
    """

    def __init__(
        self,
        *,
        registry: SessionRegistry | None = None,
        scheduler: ReminderScheduler | None = None,
        render_sink: Any = None,
        notification_sink: Any = None,
        settings: SessionSettings | None = None,
        clock: Callable[[], datetime] | None = None,
        timezone: tzinfo | None = None,
    ) -> None:
        self.clock = clock or utc_now
        self.timezone = timezone
        self.registry = registry or SessionRegistry()
        self.scheduler = scheduler or ReminderScheduler(clock=self.clock)
        self.render_sink = render_sink
        self.notification_sink = notification_sink
        self.settings = settings or SessionSettings()
        self._render_locks: dict[str, asyncio.Lock] = {}

    # ---- reads (snapshots only) ----

    def get(self, session_id: str) -> SessionRecord | None:
        record = self.registry.get(session_id)
        return record.snapshot() if record is not None else None

    def find_by_message(self, *, guild_id: int, channel_id: int, message_ref: int) -> SessionRecord | None:
        for record in self.registry.all_for_location(guild_id):
            if record.channel_id == int(channel_id) and record.message_ref == int(message_ref):
                return record.snapshot()
        return None

    def sessions_for_guild(self, guild_id: int) -> list[SessionRecord]:
        return [r.snapshot() for r in self.registry.all_for_location(guild_id)]

    def stats(self) -> dict[str, Any]:
        now = self.clock()
        active = self.registry.all_active()
        return {
            "total_sessions": len(active),
            "pending_timers": self.scheduler.pending_count(),
            "total_participants": sum(r.participant_count() for r in active),
            "sessions": [
                {
                    "game": r.activity_label,
                    "players": r.participant_count(),
                    "host": r.host_name,
                    "time": r.scheduled_display,
                    "status": "LIVE" if r.is_live(now) else "SCHEDULED",
                }
                for r in active
            ],
        }

    # ---- operations ----

    async def create(
        self,
        *,
        host_id: int,
        host_name: str,
        activity_label: str,
        time_text: str,
        description: str | None,
        guild_id: int,
        channel_id: int,
        ping_role_id: int | None = None,
    ) -> SessionRecord:
        label = str(activity_label or "").strip()
        if not label:
            raise SessionValidationError("A game or activity name is required.")
        if len(label) > ACTIVITY_LABEL_MAX_CHARS:
            raise SessionValidationError(
                f"Game or activity name is too long (max {ACTIVITY_LABEL_MAX_CHARS} characters)."
            )

        now = self.clock()
        if self.timezone is not None:
            parsed = parse_time_expression(time_text, now=now, tz=self.timezone)
        else:
            parsed = parse_time_expression(time_text, now=now.astimezone())
        if not parsed.ok or parsed.instant is None:
            raise SessionValidationError(
                "Invalid time format. Examples: `now`, `in 30 minutes`, `in 2 hours`, `at 8pm`, `at 20:30`."
            )
        if parsed.instant > now + timedelta(seconds=self.settings.horizon_seconds):
            raise SessionValidationError(
                "Time too far in the future. Sessions can only be scheduled up to "
                f"{_horizon_text(self.settings.horizon_seconds)} ahead."
            )

        host_id = int(host_id)
        record = SessionRecord(
            id=self._new_session_id(int(guild_id), now),
            host_id=host_id,
            host_name=str(host_name),
            activity_label=label,
            scheduled_at=parsed.instant,
            scheduled_display=parsed.display or "",
            description=str(description or "").strip(),
            created_at=now,
            guild_id=int(guild_id),
            channel_id=int(channel_id),
            participants={host_id: Participant(display_name=str(host_name), joined_at=now, is_host=True)},
            ping_role_id=int(ping_role_id) if ping_role_id else None,
        )
        self.registry.put(record)

        if record.scheduled_at > now:
            session_id = record.id
            self.scheduler.schedule(session_id, record.scheduled_at, lambda: self._on_reminder_fire(session_id))
            print(
                f"[Sessions] action=schedule_reminder session={session_id} "
                f"in_s={int((record.scheduled_at - now).total_seconds())}"
            )

        print(f"[Sessions] action=create result=ok session={record.id} game={label[:80]} host={host_id}")
        await self._publish(record)
        return record.snapshot()

    async def join(self, session_id: str, user_id: int, display_name: str) -> JoinResult:
        record = self._require(session_id)
        user_id = int(user_id)
        if user_id in record.participants:
            return JoinResult(session=record.snapshot(), added=False, participant_count=record.participant_count())

        becomes_host = not record.participants
        record.participants[user_id] = Participant(
            display_name=str(display_name),
            joined_at=self.clock(),
            is_host=becomes_host,
        )
        if becomes_host:
            # rejoin during the grace window
            record.host_id = user_id
            record.host_name = str(display_name)
            self.scheduler.cancel(_grace_key(record.id))
        snapshot = record.snapshot()
        print(f"[Sessions] action=join result=ok session={record.id} user={user_id} total={snapshot.participant_count()}")

        rendered = await self._rerender(record)
        return JoinResult(
            session=snapshot,
            added=True,
            participant_count=snapshot.participant_count(),
            display_stale=not rendered,
        )

    async def leave(self, session_id: str, user_id: int) -> LeaveResult:
        record = self._require(session_id)
        user_id = int(user_id)
        removed = record.participants.pop(user_id, None)
        if removed is None:
            return LeaveResult(session=record.snapshot(), removed=False, participant_count=record.participant_count())

        transferred_to: int | None = None
        if removed.is_host and record.participants:
            transferred_to = self._next_host_id(record)
            new_host = record.participants[transferred_to]
            new_host.is_host = True
            record.host_id = transferred_to
            record.host_name = new_host.display_name
            print(f"[Sessions] action=host_transfer session={record.id} from={user_id} to={transferred_to}")

        grace_pending = False
        if not record.participants:
            session_id = record.id
            self.scheduler.schedule(
                _grace_key(session_id),
                self.clock() + timedelta(seconds=self.settings.grace_seconds),
                lambda: self._grace_check(session_id),
            )
            grace_pending = True

        snapshot = record.snapshot()
        print(f"[Sessions] action=leave result=ok session={record.id} user={user_id} remaining={snapshot.participant_count()}")

        rendered = await self._rerender(record)
        return LeaveResult(
            session=snapshot,
            removed=True,
            participant_count=snapshot.participant_count(),
            host_transferred_to=transferred_to,
            grace_pending=grace_pending,
            display_stale=not rendered,
        )

    def info(self, session_id: str) -> InfoResult:
        return InfoResult(session=self._require(session_id).snapshot())

    async def end(self, session_id: str, requester_id: int) -> EndResult:
        record = self._require(session_id)
        if int(requester_id) != record.host_id:
            raise SessionPermissionError(record.id, int(requester_id), record.host_id)

        reason = f"ended by host ({int(requester_id)})"
        snapshot = record.snapshot()
        self._terminate(record, reason)

        posted = True
        if snapshot.participant_count() > 1:
            posted = await self._post_end_summary(snapshot)
        retired = await self._retire_display(snapshot, delete=True)
        return EndResult(session=snapshot, reason=reason, display_stale=not (posted and retired))

    async def handle_action(self, action: str, session_id: str, user_id: int, display_name: str):
        if action == ACTION_JOIN:
            return await self.join(session_id, user_id, display_name)
        if action == ACTION_LEAVE:
            return await self.leave(session_id, user_id)
        if action == ACTION_INFO:
            return self.info(session_id)
        if action == ACTION_END:
            return await self.end(session_id, user_id)
        raise SessionValidationError(f"Unknown action: {action}")

    async def sweep_expired(self, now: datetime | None = None) -> int:
        now = now or self.clock()
        max_age = timedelta(seconds=self.settings.max_age_seconds)
        grace = timedelta(seconds=self.settings.grace_seconds)

        expired: list[SessionRecord] = []
        for record in self.registry.all_active():
            age = now - record.created_at
            if age > max_age:
                reason = "expired (max age)"
            elif not record.participants and age > grace:
                reason = "no participants"
            else:
                continue
            snapshot = record.snapshot()
            self._terminate(record, reason)
            expired.append(snapshot)

        for snapshot in expired:
            await self._retire_display(snapshot, delete=False)
        if expired:
            print(f"[Sessions] action=sweep result=ok removed={len(expired)}")
        return len(expired)

    async def shutdown(self) -> None:
        self.scheduler.cancel_all()

    # ---- timer callbacks ----

    async def _on_reminder_fire(self, session_id: str) -> None:
        record = self.registry.get(session_id)
        if record is None or not record.is_active:
            return

        now = self.clock()
        record.scheduled_at = now
        recipients = reminder_recipients(record)
        self.scheduler.schedule(
            _cleanup_key(session_id),
            now + timedelta(seconds=self.settings.auto_cleanup_seconds),
            lambda: self._system_end(session_id, "auto-cleanup after game time"),
        )
        snapshot = record.snapshot()

        await self._rerender(record)
        if recipients and self.notification_sink is not None:
            try:
                await self.notification_sink.notify(
                    snapshot.channel_id,
                    recipients,
                    render_reminder_body(snapshot, recipients),
                )
            except Exception as e:
                print(f"[Sessions] action=notify result=error session={session_id} error={str(e)[:180]}")
                return
        print(f"[Sessions] action=live result=ok session={session_id} notified={len(recipients)}")

    async def _grace_check(self, session_id: str) -> None:
        record = self.registry.get(session_id)
        if record is None or not record.is_active or record.participants:
            return
        await self._system_end(session_id, "no participants remaining")

    async def _system_end(self, session_id: str, reason: str) -> bool:
        record = self.registry.get(session_id)
        if record is None or not record.is_active:
            return False
        snapshot = record.snapshot()
        self._terminate(record, reason)
        await self._retire_display(snapshot, delete=False)
        return True

    # ---- internals ----

    def _require(self, session_id: str) -> SessionRecord:
        record = self.registry.get(session_id)
        if record is None or not record.is_active:
            raise SessionNotFoundError(str(session_id))
        return record

    def _new_session_id(self, guild_id: int, now: datetime) -> str:
        stamp = int(now.timestamp() * 1000)
        session_id = f"{guild_id}-{stamp}"
        while self.registry.contains(session_id):
            stamp += 1
            session_id = f"{guild_id}-{stamp}"
        return session_id

    @staticmethod
    def _next_host_id(record: SessionRecord) -> int:
        # earliest joined, ties broken by insertion order
        ordered = list(record.participants.items())
        idx = min(range(len(ordered)), key=lambda i: (ordered[i][1].joined_at, i))
        return ordered[idx][0]

    def _terminate(self, record: SessionRecord, reason: str) -> None:
        self.scheduler.cancel(record.id)
        self.scheduler.cancel(_grace_key(record.id))
        self.scheduler.cancel(_cleanup_key(record.id))
        self.registry.delete(record.id)
        record.is_active = False
        self._render_locks.pop(record.id, None)
        print(f"[Sessions] action=end session={record.id} game={record.activity_label[:80]} reason={reason}")

    async def _publish(self, record: SessionRecord) -> bool:
        if self.render_sink is None:
            return True
        lock = self._render_locks.setdefault(record.id, asyncio.Lock())
        async with lock:
            surface = render_session(
                record,
                self.clock(),
                participant_list_max_chars=self.settings.participant_list_max_chars,
            )
            try:
                record.message_ref = await self.render_sink.create(record.channel_id, surface)
            except Exception as e:
                print(f"[Sessions] action=render result=error op=create session={record.id} error={str(e)[:180]}")
                return False
        if not record.is_active:
            # ended while the message was being created
            await self._retire_display(record.snapshot(), delete=False)
        return True

    async def _rerender(self, record: SessionRecord) -> bool:
        if self.render_sink is None:
            return True
        if record.message_ref is None:
            return False
        lock = self._render_locks.setdefault(record.id, asyncio.Lock())
        async with lock:
            if not record.is_active:
                return True
            surface = render_session(
                record,
                self.clock(),
                participant_list_max_chars=self.settings.participant_list_max_chars,
            )
            try:
                await self.render_sink.update(record.channel_id, record.message_ref, surface)
            except Exception as e:
                print(f"[Sessions] action=render result=error op=update session={record.id} error={str(e)[:180]}")
                return False
        return True

    async def _retire_display(self, snapshot: SessionRecord, *, delete: bool) -> bool:
        if self.render_sink is None:
            return True
        if snapshot.message_ref is None:
            return False
        try:
            await self.render_sink.retire(snapshot.channel_id, snapshot.message_ref, delete=delete)
        except Exception as e:
            print(f"[Sessions] action=render result=error op=retire session={snapshot.id} error={str(e)[:180]}")
            return False
        return True

    async def _post_end_summary(self, snapshot: SessionRecord) -> bool:
        if self.render_sink is None:
            return True
        try:
            await self.render_sink.post(snapshot.channel_id, render_session_ended(snapshot, self.clock()))
        except Exception as e:
            print(f"[Sessions] action=render result=error op=post session={snapshot.id} error={str(e)[:180]}")
            return False
        return True
