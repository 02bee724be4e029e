from __future__ import annotations

import asyncio
from typing import Awaitable
from typing import Callable

import discord

from sessions.errors import NotificationSinkError
from sessions.errors import RenderSinkError
from sessions.presentation import DisplaySurfaceSpec
from sessions.presentation import SurfaceButton

BUTTON_STYLES = {
    "primary": discord.ButtonStyle.primary,
    "secondary": discord.ButtonStyle.secondary,
    "success": discord.ButtonStyle.success,
    "danger": discord.ButtonStyle.danger,
}

ActionHandler = Callable[[discord.Interaction, str], Awaitable[None]]


def surface_to_embed(surface: DisplaySurfaceSpec) -> discord.Embed:
    embed = discord.Embed(
        title=surface.title,
        description=surface.description,
        colour=discord.Colour(surface.color),
        timestamp=surface.timestamp,
    )
    for f in surface.fields:
        embed.add_field(name=f.name, value=f.value, inline=f.inline)
    if surface.footer:
        embed.set_footer(text=surface.footer)
    return embed


def build_session_panel(
    buttons: tuple[SurfaceButton, ...],
    *,
    on_action: ActionHandler | None,
) -> discord.ui.View:
    class SessionPanel(discord.ui.View):
        def __init__(self):
            super().__init__(timeout=None)
            for spec in buttons:
                button = discord.ui.Button(
                    label=spec.label,
                    style=BUTTON_STYLES.get(spec.style, discord.ButtonStyle.secondary),
                    custom_id=spec.custom_id,
                )
                button.callback = self._make_callback(spec.custom_id)
                self.add_item(button)

        @staticmethod
        def _make_callback(custom_id: str):
            async def _callback(interaction: discord.Interaction):
                if on_action is None:
                    await interaction.response.send_message(
                        "Gaming sessions aren't available right now.",
                        ephemeral=True,
                    )
                    return
                await on_action(interaction, custom_id)

            return _callback

    return SessionPanel()


class DiscordSessionSink:
    """Renders session surfaces as Discord messages and delivers reminder pings."""

    def __init__(self, *, bot, end_delete_delay_seconds: float = 5, on_action: ActionHandler | None = None) -> None:
        self.bot = bot
        self.end_delete_delay_seconds = max(0.0, float(end_delete_delay_seconds))
        self.on_action = on_action
        self._views: dict[int, discord.ui.View] = {}
        self._pending: set[asyncio.Task] = set()

    def _channel(self, channel_id: int):
        return self.bot.get_partial_messageable(int(channel_id))

    def _message(self, channel_id: int, message_ref: int):
        return self._channel(channel_id).get_partial_message(int(message_ref))

    async def create(self, channel_id: int, surface: DisplaySurfaceSpec) -> int:
        view = build_session_panel(surface.buttons, on_action=self.on_action)
        try:
            message = await self._channel(channel_id).send(
                content=surface.content,
                embed=surface_to_embed(surface),
                view=view,
                allowed_mentions=discord.AllowedMentions(
                    everyone=False,
                    users=False,
                    roles=[discord.Object(id=rid) for rid in surface.mention_role_ids],
                ),
            )
        except Exception as e:
            view.stop()
            raise RenderSinkError(f"create failed in channel {channel_id}: {e}") from e
        self._views[int(message.id)] = view
        return int(message.id)

    async def update(self, channel_id: int, message_ref: int, surface: DisplaySurfaceSpec) -> None:
        try:
            await self._message(channel_id, message_ref).edit(embed=surface_to_embed(surface))
        except Exception as e:
            raise RenderSinkError(f"update failed for message {message_ref}: {e}") from e

    async def retire(self, channel_id: int, message_ref: int, *, delete: bool) -> None:
        view = self._views.pop(int(message_ref), None)
        if view is not None:
            view.stop()
        if delete:
            task = asyncio.create_task(self._delete_later(channel_id, message_ref))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            return
        try:
            await self._message(channel_id, message_ref).edit(content="This gaming session has ended.", view=None)
        except Exception as e:
            raise RenderSinkError(f"retire failed for message {message_ref}: {e}") from e

    async def post(self, channel_id: int, surface: DisplaySurfaceSpec) -> None:
        try:
            await self._channel(channel_id).send(embed=surface_to_embed(surface))
        except Exception as e:
            raise RenderSinkError(f"post failed in channel {channel_id}: {e}") from e

    async def notify(self, channel_id: int, user_ids: list[int], body: str) -> None:
        try:
            await self._channel(channel_id).send(
                content=body,
                allowed_mentions=discord.AllowedMentions(
                    everyone=False,
                    roles=False,
                    users=[discord.Object(id=int(uid)) for uid in user_ids],
                ),
            )
        except Exception as e:
            raise NotificationSinkError(f"notify failed in channel {channel_id}: {e}") from e

    async def _delete_later(self, channel_id: int, message_ref: int) -> None:
        await asyncio.sleep(self.end_delete_delay_seconds)
        message = self._message(channel_id, message_ref)
        try:
            await message.delete()
            print(f"[Sessions] action=delete_message result=ok message={message_ref}")
            return
        except Exception as e:
            print(f"[Sessions] action=delete_message result=error message={message_ref} error={str(e)[:180]}")
        # could not delete: at least take the buttons away
        try:
            await message.edit(view=None)
        except Exception as e:
            print(f"[Sessions] action=disable_buttons result=error message={message_ref} error={str(e)[:180]}")
