from __future__ import annotations

import asyncio

from discord.ext import commands
from misc.runtime_deps import RuntimeBootDeps


def register_runtime_events(
    bot: commands.Bot,
    *,
    boot: RuntimeBootDeps,
) -> None:
    @bot.event
    async def on_ready():
        print(f"Session bot is online as {bot.user}")
        if boot.settings_warning:
            print(f"[CFG] {boot.settings_warning}")

        if not getattr(bot, "_session_sweep_task", None):
            bot._session_sweep_task = asyncio.create_task(boot.session_sweep_loop_func())
            print("[Sessions] sweep loop started")
