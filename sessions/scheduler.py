from __future__ import annotations

import asyncio
from datetime import datetime
from datetime import timezone
from typing import Awaitable
from typing import Callable


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReminderScheduler:
    """
    One-shot deferred callbacks keyed by string.

    At most one pending callback per key: scheduling a key again replaces the
    previous one. The handle is dropped before the callback body runs, so a
    cancel racing with a fire is a no-op and can never re-arm it.
    """

    def __init__(self, *, clock: Callable[[], datetime] | None = None) -> None:
        self.clock = clock or utc_now
        self._tasks: dict[str, asyncio.Task] = {}

    def schedule(self, key: str, when: datetime, on_fire: Callable[[], Awaitable[None]]) -> None:
        self.cancel(key)
        delay = max(0.0, (when - self.clock()).total_seconds())
        self._tasks[key] = asyncio.create_task(self._fire_after(key, delay, on_fire))

    def cancel(self, key: str) -> bool:
        task = self._tasks.pop(key, None)
        if task is None:
            return False
        if not task.done():
            task.cancel()
        return True

    def pending(self, key: str) -> bool:
        return key in self._tasks

    def pending_count(self) -> int:
        return len(self._tasks)

    def cancel_all(self) -> None:
        for key in list(self._tasks):
            self.cancel(key)

    async def _fire_after(self, key: str, delay: float, on_fire: Callable[[], Awaitable[None]]) -> None:
        await asyncio.sleep(delay)
        if self._tasks.get(key) is not asyncio.current_task():
            return
        del self._tasks[key]
        try:
            await on_fire()
        except Exception as e:
            print(f"[Sessions] action=timer_fire result=error key={key} error={str(e)[:180]}")
