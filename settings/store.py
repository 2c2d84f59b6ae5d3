from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Any

from config.defaults import SETTINGS_TOGGLE_FIELDS

_SETTINGS_COLUMNS = ("guild_id", "log_channel_id", *SETTINGS_TOGGLE_FIELDS, "updated_at_utc")


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_settings(row: sqlite3.Row | tuple[Any, ...] | None) -> dict[str, Any] | None:
    if row is None:
        return None
    out: dict[str, Any] = {}
    for idx, col in enumerate(_SETTINGS_COLUMNS):
        out[col] = row[idx]
    out["guild_id"] = str(out["guild_id"])
    return out


def fetch_guild_settings_sync(conn: sqlite3.Connection, guild_id: str) -> dict[str, Any] | None:
    cur = conn.cursor()
    cur.execute(
        f"""
        SELECT {", ".join(_SETTINGS_COLUMNS)}
        FROM guild_settings
        WHERE guild_id = ?
        LIMIT 1
        """,
        (str(guild_id),),
    )
    return _row_to_settings(cur.fetchone())


def ensure_guild_settings_sync(conn: sqlite3.Connection, guild_id: str) -> dict[str, Any] | None:
    """Insert the default row for a guild if missing, then read it back."""
    cur = conn.cursor()
    cur.execute(
        """
        INSERT OR IGNORE INTO guild_settings (guild_id, updated_at_utc)
        VALUES (?, ?)
        """,
        (str(guild_id), _utc_now_iso()),
    )
    conn.commit()
    return fetch_guild_settings_sync(conn, guild_id)


def update_guild_settings_sync(conn: sqlite3.Connection, guild_id: str, changes: dict[str, Any]) -> None:
    # Admin/dashboard writes; only used by tests and local tooling here.
    allowed = {"log_channel_id", *SETTINGS_TOGGLE_FIELDS}
    cols = [k for k in changes if k in allowed]
    if not cols:
        return
    ensure_guild_settings_sync(conn, guild_id)
    assignments = ", ".join(f"{col} = ?" for col in cols)
    params = [changes[col] for col in cols]
    params.extend([_utc_now_iso(), str(guild_id)])
    cur = conn.cursor()
    cur.execute(
        f"UPDATE guild_settings SET {assignments}, updated_at_utc = ? WHERE guild_id = ?",
        params,
    )
    conn.commit()
