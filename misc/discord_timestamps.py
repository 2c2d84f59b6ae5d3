"""Builds Discord <t:...> timestamp tags for log records."""

from __future__ import annotations

from datetime import datetime, timezone


DISCORD_TIMESTAMP_STYLES = {"t", "T", "d", "D", "f", "F", "R"}


def _validate_style(style: str) -> str:
    clean = str(style or "").strip() or "f"
    if clean not in DISCORD_TIMESTAMP_STYLES:
        raise ValueError(f"Invalid Discord timestamp style: {clean}")
    return clean


def _as_aware(value: datetime) -> datetime:
    if not isinstance(value, datetime):
        raise ValueError("dt must be a datetime")
    if value.tzinfo is None or value.utcoffset() is None:
        # discord.py hands out aware datetimes; naive ones are treated as UTC.
        return value.replace(tzinfo=timezone.utc)
    return value


def format_discord_timestamp(dt: datetime, style: str = "f") -> str:
    aware = _as_aware(dt)
    style_clean = _validate_style(style)
    return f"<t:{int(aware.timestamp())}:{style_clean}>"


def timestamp_tag_or_unknown(dt: datetime | None, style: str = "F") -> str:
    if dt is None:
        return "Unknown"
    return format_discord_timestamp(dt, style=style)
