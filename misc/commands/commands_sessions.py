from __future__ import annotations

import discord
from discord.ext import commands
from misc.adhoc_modules.session_panel import surface_to_embed
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from sessions.errors import SessionNotFoundError
from sessions.errors import SessionPermissionError
from sessions.errors import SessionValidationError
from sessions.models import EndResult
from sessions.models import InfoResult
from sessions.models import JoinResult
from sessions.models import LeaveResult
from sessions.presentation import SESSION_NOT_FOUND_REPLY
from sessions.presentation import parse_custom_id
from sessions.presentation import render_end_reply
from sessions.presentation import render_join_reply
from sessions.presentation import render_leave_reply
from sessions.presentation import render_not_host_reply
from sessions.presentation import render_session_info
from sessions.presentation import render_session_list


def _display_name(user) -> str:
    for attr in ("display_name", "global_name", "name"):
        value = getattr(user, attr, None)
        if value:
            return str(value)
    return str(getattr(user, "id", "unknown"))


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    if deps.session_service is None:
        return

    service = deps.session_service

    async def _ensure_channel(ctx: commands.Context) -> bool:
        if gates.in_allowed_channel(ctx):
            return True
        await ctx.reply("Gaming sessions can't be started in this channel.", mention_author=False)
        return False

    async def handle_session_interaction(interaction: discord.Interaction, custom_id: str) -> None:
        parsed = parse_custom_id(custom_id)
        session_id = parsed[1] if parsed else None
        action = parsed[0] if parsed else None
        if session_id is None or service.get(session_id) is None:
            # stale or malformed id: fall back to the message the button lives on
            message = getattr(interaction, "message", None)
            found = None
            if message is not None and interaction.guild_id is not None and action is not None:
                found = service.find_by_message(
                    guild_id=int(interaction.guild_id),
                    channel_id=int(interaction.channel_id or 0),
                    message_ref=int(message.id),
                )
            if found is None:
                await interaction.response.send_message(SESSION_NOT_FOUND_REPLY, ephemeral=True)
                return
            session_id = found.id

        await interaction.response.defer()
        user = interaction.user
        try:
            result = await service.handle_action(action, session_id, int(user.id), _display_name(user))
        except SessionNotFoundError:
            await interaction.followup.send(SESSION_NOT_FOUND_REPLY, ephemeral=True)
            return
        except SessionPermissionError:
            current = service.get(session_id)
            host_name = current.host_name if current is not None else "the host"
            await interaction.followup.send(render_not_host_reply(host_name), ephemeral=True)
            return
        except SessionValidationError as e:
            await interaction.followup.send(f"Error: {e}", ephemeral=True)
            return
        except Exception as e:
            print(f"[Sessions] action={action} result=error session={session_id} error={str(e)[:180]}")
            await interaction.followup.send(
                "**Gaming Session Error**\n\nSomething went wrong. Please try again.",
                ephemeral=True,
            )
            return

        now = service.clock()
        if isinstance(result, InfoResult):
            await interaction.followup.send(
                embed=surface_to_embed(render_session_info(result.session, now)),
                ephemeral=True,
            )
        elif isinstance(result, JoinResult):
            await interaction.followup.send(render_join_reply(result, now), ephemeral=True)
        elif isinstance(result, LeaveResult):
            await interaction.followup.send(render_leave_reply(result), ephemeral=True)
        elif isinstance(result, EndResult):
            await interaction.followup.send(render_end_reply(result, now), ephemeral=True)

    if deps.session_sink is not None:
        deps.session_sink.on_action = handle_session_interaction

    @bot.command(name="startsession")
    @commands.guild_only()
    async def startsession(
        ctx: commands.Context,
        game: discord.Role | str,
        time_text: str,
        *,
        description: str = "",
    ):
        if not await _ensure_channel(ctx):
            return
        if isinstance(game, discord.Role):
            label, ping_role_id = game.name, int(game.id)
        else:
            label, ping_role_id = str(game), None

        try:
            record = await service.create(
                host_id=int(ctx.author.id),
                host_name=_display_name(ctx.author),
                activity_label=label,
                time_text=time_text,
                description=description,
                guild_id=int(ctx.guild.id),
                channel_id=int(ctx.channel.id),
                ping_role_id=ping_role_id,
            )
        except SessionValidationError as e:
            await ctx.reply(f"Error: {e}", mention_author=False)
            return

        if record.message_ref is None and deps.session_sink is not None:
            await ctx.reply(
                f"Session for **{record.activity_label}** was created, but I couldn't post the session card. "
                "The display may be stale.",
                mention_author=False,
            )

    @bot.command(name="sessions")
    @commands.guild_only()
    async def sessions_list(ctx: commands.Context):
        records = service.sessions_for_guild(int(ctx.guild.id))
        text = render_session_list(records, service.clock())
        await deps.send_chunked(ctx.channel, text)

    @bot.command(name="sessions.stats")
    async def sessions_stats(ctx: commands.Context):
        if not gates.user_is_owner(ctx.author):
            await ctx.send("This command is owner-only.")
            return
        stats = service.stats()
        lines = [
            "Session stats:",
            f"- active_sessions: {stats['total_sessions']}",
            f"- pending_timers: {stats['pending_timers']}",
            f"- participants: {stats['total_participants']}",
        ]
        for row in stats["sessions"]:
            lines.append(f"- {row['game']} [{row['status']}] host={row['host']} players={row['players']}")
        await deps.send_chunked(ctx.channel, "```\n" + "\n".join(lines)[:7000] + "\n```")
