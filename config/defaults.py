from __future__ import annotations

DEFAULT_DB_PATH = "guildlog_settings.db"
DEFAULT_SETTINGS_API_BASE = "http://127.0.0.1:5000/api"
DEFAULT_DASHBOARD_URL = "http://127.0.0.1:5000/"

DEFAULT_SETTINGS_CACHE_SECONDS = 5.0
DEFAULT_PROVIDER_TIMEOUT_SECONDS = 8.0

# Audit log lookups: one page, newest first.
DEFAULT_AUDIT_PAGE_LIMIT = 10
DEFAULT_KICK_WINDOW_SECONDS = 20
DEFAULT_AUDIT_WINDOW_SECONDS = 25

LOG_EMBED_COLOUR = 0x5865F2
MESSAGE_DELETE_MAX_CHARS = 1500
MESSAGE_EDIT_MAX_CHARS = 900

SETTINGS_TOGGLE_FIELDS = (
    "log_join",
    "log_leave",
    "log_kick",
    "log_ban",
    "log_roles",
    "log_nickname",
    "log_timeout",
    "log_message_delete",
    "log_message_edit",
    "log_invites",
)

AUDIT_ACTION_KICK = "kick"
AUDIT_ACTION_BAN = "ban"
AUDIT_ACTION_ROLE_UPDATE = "member_role_update"
AUDIT_ACTION_MEMBER_UPDATE = "member_update"
AUDIT_ACTIONS = {
    AUDIT_ACTION_KICK,
    AUDIT_ACTION_BAN,
    AUDIT_ACTION_ROLE_UPDATE,
    AUDIT_ACTION_MEMBER_UPDATE,
}
