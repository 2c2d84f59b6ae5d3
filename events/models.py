from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class GuildAvailable:
    guild_id: str


@dataclass(frozen=True, slots=True)
class GuildRemoved:
    guild_id: str


@dataclass(frozen=True, slots=True)
class InviteChanged:
    guild_id: str
    code: str | None = None
    created: bool = True


@dataclass(frozen=True, slots=True)
class MemberJoined:
    guild_id: str
    user_id: str
    user_name: str
    account_created_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class MemberLeft:
    guild_id: str
    user_id: str
    user_name: str


@dataclass(frozen=True, slots=True)
class MemberBanned:
    guild_id: str
    user_id: str
    user_name: str


@dataclass(frozen=True, slots=True)
class MemberUpdated:
    guild_id: str
    user_id: str
    user_name: str
    username: str
    roles_added: tuple[str, ...] = ()
    roles_removed: tuple[str, ...] = ()
    nick_before: str | None = None
    nick_after: str | None = None
    timeout_before: datetime | None = None
    timeout_after: datetime | None = None

    @property
    def roles_changed(self) -> bool:
        return bool(self.roles_added or self.roles_removed)

    @property
    def nickname_changed(self) -> bool:
        return self.nick_before != self.nick_after

    @property
    def timeout_changed(self) -> bool:
        return self.timeout_before != self.timeout_after


@dataclass(frozen=True, slots=True)
class MessageDeleted:
    guild_id: str
    author_id: str | None
    author_name: str | None
    channel_mention: str | None
    content: str | None


@dataclass(frozen=True, slots=True)
class MessageEdited:
    guild_id: str
    author_id: str | None
    author_name: str | None
    channel_mention: str | None
    before_content: str | None
    after_content: str | None


GuildEvent = (
    GuildAvailable
    | GuildRemoved
    | InviteChanged
    | MemberJoined
    | MemberLeft
    | MemberBanned
    | MemberUpdated
    | MessageDeleted
    | MessageEdited
)
