from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from attribution.models import ATTRIBUTION_INVITE
from attribution.models import ATTRIBUTION_VANITY
from attribution.models import AuditEntry
from attribution.models import InviteAttribution
from config.defaults import LOG_EMBED_COLOUR
from config.defaults import MESSAGE_DELETE_MAX_CHARS
from config.defaults import MESSAGE_EDIT_MAX_CHARS
from events.models import MemberBanned
from events.models import MemberJoined
from events.models import MemberLeft
from events.models import MemberUpdated
from events.models import MessageDeleted
from events.models import MessageEdited
from misc.discord_timestamps import timestamp_tag_or_unknown


@dataclass(frozen=True, slots=True)
class LogRecord:
    guild_id: str
    category: str
    title: str
    description: str
    colour: int = LOG_EMBED_COLOUR
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def user_line(name: str | None, user_id: str | None) -> str:
    if user_id is None:
        return "Unknown"
    return f"{name or 'Unknown'} (`{user_id}`)"


def executor_line(entry: AuditEntry | None) -> str:
    if entry is None or entry.executor_id is None:
        return "Unknown"
    return user_line(entry.executor_name, entry.executor_id)


def reason_line(entry: AuditEntry | None) -> str:
    if entry is None or not entry.reason:
        return "No reason"
    return entry.reason


def _clip(text: str | None, limit: int) -> str:
    return str(text or "*no text*")[:limit]


def attribution_lines(attribution: InviteAttribution | None) -> str:
    if attribution is None:
        return ""
    if attribution.kind == ATTRIBUTION_INVITE:
        inviter = (
            user_line(attribution.inviter_name, attribution.inviter_id)
            if attribution.inviter_id
            else "Unknown inviter"
        )
        return (
            f"**Invite:** `{attribution.code}`\n"
            f"**Inviter:** {inviter}\n"
            f"**Uses:** {int(attribution.uses or 0)}"
        )
    if attribution.kind == ATTRIBUTION_VANITY:
        return f"**Vanity:** `{attribution.code}`"
    if attribution.permission_denied:
        return "**Invite:** Unknown (missing permissions to read invites)"
    return "**Invite:** Unknown"


def render_member_joined(event: MemberJoined, attribution: InviteAttribution | None) -> LogRecord:
    description = (
        f"**User:** {user_line(event.user_name, event.user_id)}\n"
        f"**Account created:** {timestamp_tag_or_unknown(event.account_created_at, 'F')}"
    )
    extra = attribution_lines(attribution)
    if extra:
        description = f"{description}\n\n{extra}"
    return LogRecord(event.guild_id, "member_join", "✅ Member Joined", description)


def render_member_left(event: MemberLeft) -> LogRecord:
    return LogRecord(
        event.guild_id,
        "member_leave",
        "❌ Member Left",
        f"**User:** {user_line(event.user_name, event.user_id)}",
    )


def render_member_kicked(event: MemberLeft, entry: AuditEntry) -> LogRecord:
    return LogRecord(
        event.guild_id,
        "kick",
        "👢 Member Kicked",
        (
            f"**User:** {user_line(event.user_name, event.user_id)}\n"
            f"**By:** {executor_line(entry)}\n"
            f"**Reason:** {reason_line(entry)}"
        ),
    )


def render_member_banned(event: MemberBanned, entry: AuditEntry | None) -> LogRecord:
    return LogRecord(
        event.guild_id,
        "ban",
        "⛔ Member Banned",
        (
            f"**User:** {user_line(event.user_name, event.user_id)}\n"
            f"**By:** {executor_line(entry)}\n"
            f"**Reason:** {reason_line(entry)}"
        ),
    )


def render_roles_updated(event: MemberUpdated, entry: AuditEntry | None) -> LogRecord:
    added = ", ".join(event.roles_added) if event.roles_added else "None"
    removed = ", ".join(event.roles_removed) if event.roles_removed else "None"
    return LogRecord(
        event.guild_id,
        "role_change",
        "🎭 Roles Updated",
        (
            f"**User:** {user_line(event.user_name, event.user_id)}\n"
            f"**By:** {executor_line(entry)}\n"
            f"**Added:** {added}\n"
            f"**Removed:** {removed}"
        ),
    )


def render_nickname_changed(event: MemberUpdated, entry: AuditEntry | None) -> LogRecord:
    old_nick = event.nick_before if event.nick_before is not None else event.username
    new_nick = event.nick_after if event.nick_after is not None else event.username
    return LogRecord(
        event.guild_id,
        "nickname_change",
        "📝 Nickname Changed",
        (
            f"**User:** {user_line(event.user_name, event.user_id)}\n"
            f"**By:** {executor_line(entry)}\n"
            f"**Before:** {old_nick}\n"
            f"**After:** {new_nick}"
        ),
    )


def render_timeout_changed(event: MemberUpdated, entry: AuditEntry | None) -> LogRecord:
    who = f"**User:** {user_line(event.user_name, event.user_id)}\n**By:** {executor_line(entry)}"
    if event.timeout_after is not None:
        return LogRecord(
            event.guild_id,
            "timeout",
            "⏳ Timeout Applied/Updated",
            f"{who}\n**Until:** {timestamp_tag_or_unknown(event.timeout_after, 'F')}",
        )
    return LogRecord(event.guild_id, "timeout", "✅ Timeout Removed", who)


def render_message_deleted(event: MessageDeleted) -> LogRecord:
    return LogRecord(
        event.guild_id,
        "message_delete",
        "🗑️ Message Deleted",
        (
            f"**Author:** {user_line(event.author_name, event.author_id)}\n"
            f"**Channel:** {event.channel_mention or 'Unknown'}\n"
            f"**Content:**\n{_clip(event.content, MESSAGE_DELETE_MAX_CHARS)}"
        ),
    )


def render_message_edited(event: MessageEdited) -> LogRecord:
    return LogRecord(
        event.guild_id,
        "message_edit",
        "✏️ Message Edited",
        (
            f"**Author:** {user_line(event.author_name, event.author_id)}\n"
            f"**Channel:** {event.channel_mention or 'Unknown'}\n\n"
            f"**Before:**\n{_clip(event.before_content, MESSAGE_EDIT_MAX_CHARS)}\n\n"
            f"**After:**\n{_clip(event.after_content, MESSAGE_EDIT_MAX_CHARS)}"
        ),
    )
