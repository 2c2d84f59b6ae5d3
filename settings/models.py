from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping

from config.defaults import SETTINGS_TOGGLE_FIELDS

SNOWFLAKE_RE = re.compile(r"^\d{17,20}$")


def is_enabled(value: Any, default: bool = True) -> bool:
    if value is None:
        return bool(default)
    if isinstance(value, bool):
        return value
    text = str(value).strip()
    if not text:
        return bool(default)
    try:
        return float(text) == 1
    except ValueError:
        return False


def clean_snowflake(value: Any) -> str | None:
    text = str(value if value is not None else "").strip()
    if SNOWFLAKE_RE.fullmatch(text):
        return text
    return None


def resolve_destination(settings: "GuildSettings | None", default_channel_id: Any = None) -> str | None:
    from_settings = clean_snowflake(settings.log_channel_id) if settings is not None else None
    return from_settings or clean_snowflake(default_channel_id)


@dataclass(frozen=True, slots=True)
class GuildSettings:
    guild_id: str
    log_channel_id: str | None = None
    log_join: Any = None
    log_leave: Any = None
    log_kick: Any = None
    log_ban: Any = None
    log_roles: Any = None
    log_nickname: Any = None
    log_timeout: Any = None
    log_message_delete: Any = None
    log_message_edit: Any = None
    log_invites: Any = None

    def enabled(self, toggle: str) -> bool:
        if toggle not in SETTINGS_TOGGLE_FIELDS:
            raise ValueError(f"Unknown settings toggle: {toggle}")
        return is_enabled(getattr(self, toggle), True)

    def toggle_states(self) -> dict[str, bool]:
        return {name: self.enabled(name) for name in SETTINGS_TOGGLE_FIELDS}

    @classmethod
    def from_mapping(cls, guild_id: str, data: Mapping[str, Any]) -> "GuildSettings":
        raw_channel = data.get("log_channel_id")
        kwargs: dict[str, Any] = {
            "guild_id": str(data.get("guild_id") or guild_id),
            "log_channel_id": str(raw_channel) if raw_channel not in (None, "") else None,
        }
        for name in SETTINGS_TOGGLE_FIELDS:
            kwargs[name] = data.get(name)
        return cls(**kwargs)
