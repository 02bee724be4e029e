from __future__ import annotations

import asyncio


async def session_sweep_loop(
    *,
    session_service,
    interval_seconds: float = 1800,
) -> None:
    while True:
        await asyncio.sleep(max(10, int(interval_seconds)))
        try:
            await session_service.sweep_expired()
        except Exception as e:
            print(f"[Sessions] sweep loop error: {e}")
