import os
import discord
from discord.ext import commands
from config.defaults import COMMAND_PREFIX
from config.defaults import DEFAULT_SESSION_SETTINGS_PATH
from config.defaults import DEFAULT_SESSION_TIMEZONE
from jobs.sessions import session_sweep_loop as session_sweep_loop_service
from misc.adhoc_modules.session_panel import DiscordSessionSink
from misc.discord_gates import parse_id_set
from misc.runtime_wiring import wire_bot_runtime
from sessions.service import SessionService
from sessions.settings import load_session_settings
from sessions.time_parser import resolve_timezone

# =========================
# ENV
# =========================
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN")

if not DISCORD_TOKEN:
    raise RuntimeError("Missing DISCORD_TOKEN env var")

SESSIONS_SETTINGS_PATH = os.getenv("SESSIONS_SETTINGS_PATH", DEFAULT_SESSION_SETTINGS_PATH)
SESSIONS_CHANNEL_IDS = parse_id_set(os.getenv("SESSIONS_CHANNEL_IDS"))
OWNER_USER_IDS = parse_id_set(os.getenv("SESSIONS_OWNER_USER_IDS"))
SESSIONS_TIMEZONE_NAME = os.getenv("SESSIONS_TIMEZONE", DEFAULT_SESSION_TIMEZONE).strip() or DEFAULT_SESSION_TIMEZONE
SESSIONS_TIMEZONE, SESSIONS_TIMEZONE_WARNING = resolve_timezone(SESSIONS_TIMEZONE_NAME)
if SESSIONS_TIMEZONE_WARNING:
    print(f"[CFG] {SESSIONS_TIMEZONE_WARNING}")

SESSION_SETTINGS, SESSION_SETTINGS_WARNING = load_session_settings(SESSIONS_SETTINGS_PATH)

# Env wins over the settings file for the sweep cadence.
try:
    SWEEP_INTERVAL_SECONDS = float(
        os.getenv("SESSIONS_SWEEP_INTERVAL_SECONDS", str(SESSION_SETTINGS.sweep_interval_seconds)).strip()
    )
except ValueError:
    SWEEP_INTERVAL_SECONDS = SESSION_SETTINGS.sweep_interval_seconds

print(
    f"[CFG] settings={SESSIONS_SETTINGS_PATH} "
    f"channels={'(all)' if not SESSIONS_CHANNEL_IDS else str(len(SESSIONS_CHANNEL_IDS))} "
    f"owners={len(OWNER_USER_IDS)} tz={SESSIONS_TIMEZONE.key} sweep_s={int(SWEEP_INTERVAL_SECONDS)} "
    f"horizon_s={int(SESSION_SETTINGS.horizon_seconds)} max_age_s={int(SESSION_SETTINGS.max_age_seconds)} "
    f"grace_s={int(SESSION_SETTINGS.grace_seconds)}"
)

DISCORD_MAX_MESSAGE_LEN = 1900  # keep under 2000 hard limit

def chunk_text(text: str, limit: int = DISCORD_MAX_MESSAGE_LEN) -> list[str]:
    text = text or ""
    if len(text) <= limit:
        return [text]

    chunks = []
    remaining = text

    while len(remaining) > limit:
        # Prefer splitting on paragraph, then newline, then space
        split_at = remaining.rfind("\n\n", 0, limit)
        if split_at == -1:
            split_at = remaining.rfind("\n", 0, limit)
        if split_at == -1:
            split_at = remaining.rfind(" ", 0, limit)
        if split_at == -1:
            split_at = limit

        chunk = remaining[:split_at].strip()
        if chunk:
            chunks.append(chunk)

        remaining = remaining[split_at:].strip()

    if remaining:
        chunks.append(remaining)

    return chunks


async def send_chunked(channel: discord.abc.Messageable, text: str) -> None:
    for part in chunk_text(text, DISCORD_MAX_MESSAGE_LEN):
        await channel.send(part)


def user_is_owner(user: discord.abc.User) -> bool:
    uid = int(getattr(user, "id", 0) or 0)
    return bool(uid and uid in OWNER_USER_IDS)

# =========================
# DISCORD BOT
# =========================
intents = discord.Intents.default()
intents.message_content = True

bot = commands.Bot(command_prefix=COMMAND_PREFIX, intents=intents)

# =========================
# GAMING SESSIONS
# =========================
session_sink = DiscordSessionSink(
    bot=bot,
    end_delete_delay_seconds=SESSION_SETTINGS.end_delete_delay_seconds,
)
session_service = SessionService(
    render_sink=session_sink,
    notification_sink=session_sink,
    settings=SESSION_SETTINGS,
    timezone=SESSIONS_TIMEZONE,
)

async def session_sweep_loop() -> None:
    return await session_sweep_loop_service(
        session_service=session_service,
        interval_seconds=SWEEP_INTERVAL_SECONDS,
    )

wire_bot_runtime(
    bot,
    allowed_channel_ids=SESSIONS_CHANNEL_IDS,
    user_is_owner=user_is_owner,
    send_chunked=send_chunked,
    session_service=session_service,
    session_sink=session_sink,
    session_sweep_loop_func=session_sweep_loop,
    settings_warning=SESSION_SETTINGS_WARNING,
)



bot.run(DISCORD_TOKEN)
