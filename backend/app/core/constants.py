"""Application constants and configuration values"""

# Recording availability poll (stop -> processed artifact)
RECORDING_POLL_MAX_ATTEMPTS = 5
RECORDING_POLL_INTERVAL_SECONDS = 5.0

# Participant reconciliation
RECONCILE_DEBOUNCE_SECONDS = 1.0
RECONCILE_INTERVAL_SECONDS = 10.0
NUMERIC_PARTICIPANT_ID_PATTERN = r"^[0-9]+$"

# Chat
CHAT_HISTORY_LIMIT = 100
CHAT_DEFAULT_LIMIT = 50
CHAT_SESSION_ACTIVE_WINDOW_SECONDS = 5 * 60
CHAT_CHANNEL_TYPES = ("messaging", "team", "livestream")

# Meetings
DEFAULT_MEETING_TIMEZONE = "UTC"
DEFAULT_NOTIFICATION_MINUTES = 15
DEFAULT_MEETING_DURATION_MINUTES = 60
EMAIL_ADDRESS_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
MEETINGS_DEFAULT_LIMIT = 10

# Client-side refresh
CALL_LIST_REFRESH_SECONDS = 30.0

# AssemblyAI
ASSEMBLY_TOKEN_TTL_SECONDS = 600

