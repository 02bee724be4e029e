from __future__ import annotations

COMMAND_PREFIX = "!"

# Session timing (seconds)
SESSION_HORIZON_SECONDS = 24 * 60 * 60
SESSION_MAX_AGE_SECONDS = 4 * 60 * 60
SESSION_GRACE_SECONDS = 5 * 60
SESSION_AUTO_CLEANUP_SECONDS = 2 * 60 * 60
SESSION_SWEEP_INTERVAL_SECONDS = 30 * 60
SESSION_END_DELETE_DELAY_SECONDS = 5
SESSION_STARTING_SOON_SECONDS = 10 * 60

# "in <N> <unit>" accepts N up to this value regardless of unit
TIME_PARSE_MAX_AMOUNT = 1440

# Presentation limits (Discord embed limits are 1024 per field value)
PARTICIPANT_LIST_MAX_CHARS = 1000
DESCRIPTION_MAX_CHARS = 1024
# Role names are capped at 100 by Discord; free-text games get the same bound
ACTIVITY_LABEL_MAX_CHARS = 100
INFO_PARTICIPANT_LIST_MAX = 10

DEFAULT_SESSION_SETTINGS_PATH = "config/sessions.yaml"

# Zone for "at <time>" wall-clock times when SESSIONS_TIMEZONE is unset
DEFAULT_SESSION_TIMEZONE = "UTC"
