from __future__ import annotations

from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.commands.commands_sessions import register as register_sessions
from misc.discord_gates import channel_in_allowed_channels
from misc.events_runtime import register_runtime_events
from misc.runtime_deps import RuntimeBootDeps


def wire_bot_runtime(
    bot,
    *,
    allowed_channel_ids: set[int],
    user_is_owner,
    send_chunked,
    session_service,
    session_sink,
    session_sweep_loop_func,
    settings_warning: str | None = None,
) -> None:
    def in_allowed_channel(ctx) -> bool:
        try:
            return channel_in_allowed_channels(ctx.channel, allowed_channel_ids)
        except Exception:
            return False

    command_deps = CommandDeps(
        send_chunked=send_chunked,
        session_service=session_service,
        session_sink=session_sink,
    )
    command_gates = CommandGates(
        in_allowed_channel=in_allowed_channel,
        allowed_channel_ids=allowed_channel_ids,
        user_is_owner=user_is_owner,
    )
    register_sessions(bot, deps=command_deps, gates=command_gates)

    register_runtime_events(
        bot,
        boot=RuntimeBootDeps(
            session_sweep_loop_func=session_sweep_loop_func,
            settings_warning=settings_warning,
        ),
    )
