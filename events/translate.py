from __future__ import annotations

from typing import Any

from events.models import GuildAvailable
from events.models import InviteChanged
from events.models import MemberBanned
from events.models import MemberJoined
from events.models import MemberLeft
from events.models import MemberUpdated
from events.models import MessageDeleted
from events.models import MessageEdited
from misc.discord_gates import message_is_loggable
from misc.discord_gates import role_is_loggable


def _sid(obj: Any) -> str | None:
    raw = getattr(obj, "id", None)
    return str(raw) if raw is not None else None


def _name(obj: Any) -> str | None:
    return str(obj) if obj is not None else None


def _mention(obj: Any) -> str | None:
    if obj is None:
        return None
    return str(getattr(obj, "mention", None) or obj)


def guild_available_event(guild) -> GuildAvailable:
    return GuildAvailable(guild_id=str(guild.id))


def invite_changed_event(invite, *, created: bool) -> InviteChanged | None:
    guild_id = _sid(getattr(invite, "guild", None))
    if guild_id is None:
        return None
    return InviteChanged(guild_id=guild_id, code=getattr(invite, "code", None), created=created)


def member_joined_event(member) -> MemberJoined:
    return MemberJoined(
        guild_id=str(member.guild.id),
        user_id=str(member.id),
        user_name=str(member),
        account_created_at=getattr(member, "created_at", None),
    )


def member_left_event(member) -> MemberLeft:
    return MemberLeft(guild_id=str(member.guild.id), user_id=str(member.id), user_name=str(member))


def member_banned_event(guild, user) -> MemberBanned:
    return MemberBanned(guild_id=str(guild.id), user_id=str(user.id), user_name=str(user))


def member_updated_event(before, after) -> MemberUpdated:
    before_roles = {int(r.id): r for r in getattr(before, "roles", []) or []}
    after_roles = {int(r.id): r for r in getattr(after, "roles", []) or []}
    added = [r for rid, r in after_roles.items() if rid not in before_roles and role_is_loggable(r)]
    removed = [r for rid, r in before_roles.items() if rid not in after_roles and role_is_loggable(r)]
    return MemberUpdated(
        guild_id=str(after.guild.id),
        user_id=str(after.id),
        user_name=str(after),
        username=str(getattr(after, "name", None) or after),
        roles_added=tuple(_mention(r) for r in added),
        roles_removed=tuple(_mention(r) for r in removed),
        nick_before=getattr(before, "nick", None),
        nick_after=getattr(after, "nick", None),
        timeout_before=getattr(before, "timed_out_until", None),
        timeout_after=getattr(after, "timed_out_until", None),
    )


def message_deleted_event(message) -> MessageDeleted | None:
    if not message_is_loggable(message):
        return None
    author = getattr(message, "author", None)
    return MessageDeleted(
        guild_id=str(message.guild.id),
        author_id=_sid(author),
        author_name=_name(author),
        channel_mention=_mention(getattr(message, "channel", None)),
        content=getattr(message, "content", None),
    )


def message_edited_event(before, after) -> MessageEdited | None:
    if not message_is_loggable(after):
        return None
    if getattr(before, "content", None) == getattr(after, "content", None):
        return None
    author = getattr(after, "author", None)
    return MessageEdited(
        guild_id=str(after.guild.id),
        author_id=_sid(author),
        author_name=_name(author),
        channel_mention=_mention(getattr(after, "channel", None)),
        before_content=getattr(before, "content", None),
        after_content=getattr(after, "content", None),
    )
