from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Protocol

from attribution.audit import AuditCorrelator
from attribution.invites import InviteLedger
from config.defaults import AUDIT_ACTION_BAN
from config.defaults import AUDIT_ACTION_KICK
from config.defaults import AUDIT_ACTION_MEMBER_UPDATE
from config.defaults import AUDIT_ACTION_ROLE_UPDATE
from config.defaults import DEFAULT_AUDIT_WINDOW_SECONDS
from config.defaults import DEFAULT_KICK_WINDOW_SECONDS
from events.models import GuildAvailable
from events.models import GuildRemoved
from events.models import InviteChanged
from events.models import MemberBanned
from events.models import MemberJoined
from events.models import MemberLeft
from events.models import MemberUpdated
from events.models import MessageDeleted
from events.models import MessageEdited
from events.render import LogRecord
from events.render import render_member_banned
from events.render import render_member_joined
from events.render import render_member_kicked
from events.render import render_member_left
from events.render import render_message_deleted
from events.render import render_message_edited
from events.render import render_nickname_changed
from events.render import render_roles_updated
from events.render import render_timeout_changed
from jobs.dispatch import event_dispatch_loop
from settings.models import GuildSettings
from settings.models import resolve_destination
from settings.service import SettingsCache


class LogSink(Protocol):
    async def emit(self, record: LogRecord, destination_id: str) -> bool: ...


@dataclass(frozen=True)
class AuditWindows:
    kick: float = DEFAULT_KICK_WINDOW_SECONDS
    ban: float = DEFAULT_AUDIT_WINDOW_SECONDS
    roles: float = DEFAULT_AUDIT_WINDOW_SECONDS
    member_update: float = DEFAULT_AUDIT_WINDOW_SECONDS


class EventRouter:
    """
    Turns typed guild events into log records.

    Each submitted event runs in its own task; nothing here serializes work per
    guild. `handle` never raises: a failing event is printed and dropped.
    """

    def __init__(
        self,
        *,
        settings_cache: SettingsCache,
        invite_ledger: InviteLedger,
        audit_correlator: AuditCorrelator,
        sink: LogSink,
        default_channel_id: Any = None,
        windows: AuditWindows | None = None,
    ) -> None:
        self.settings_cache = settings_cache
        self.invite_ledger = invite_ledger
        self.audit_correlator = audit_correlator
        self.sink = sink
        self.default_channel_id = default_channel_id
        self.windows = windows or AuditWindows()
        self._tasks: set[asyncio.Task] = set()
        self._handlers = {
            GuildAvailable: self._on_guild_available,
            GuildRemoved: self._on_guild_removed,
            InviteChanged: self._on_invite_changed,
            MemberJoined: self._on_member_joined,
            MemberLeft: self._on_member_left,
            MemberBanned: self._on_member_banned,
            MemberUpdated: self._on_member_updated,
            MessageDeleted: self._on_message_deleted,
            MessageEdited: self._on_message_edited,
        }

    # ---- task management ----

    def submit(self, event) -> asyncio.Task:
        task = asyncio.create_task(self.handle(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def run(self, queue: asyncio.Queue) -> None:
        await event_dispatch_loop(router=self, queue=queue)

    async def handle(self, event) -> list[LogRecord]:
        handler = self._handlers.get(type(event))
        if handler is None:
            print(f"[Router] no handler for event type {type(event).__name__}")
            return []
        try:
            return await handler(event)
        except Exception as e:
            print(f"[Router] {type(event).__name__} failed guild={getattr(event, 'guild_id', '?')}: {e}")
            return []

    # ---- delivery ----

    async def _emit(self, settings: GuildSettings, record: LogRecord) -> list[LogRecord]:
        destination = resolve_destination(settings, self.default_channel_id)
        if destination is None:
            return []
        delivered = await self.sink.emit(record, destination)
        return [record] if delivered else []

    # ---- lifecycle events ----

    async def _on_guild_available(self, event: GuildAvailable) -> list[LogRecord]:
        await self.invite_ledger.refresh(event.guild_id)
        await self.settings_cache.get(event.guild_id)
        return []

    async def _on_guild_removed(self, event: GuildRemoved) -> list[LogRecord]:
        self.invite_ledger.forget(event.guild_id)
        self.settings_cache.invalidate(event.guild_id)
        return []

    async def _on_invite_changed(self, event: InviteChanged) -> list[LogRecord]:
        await self.invite_ledger.refresh(event.guild_id)
        return []

    # ---- membership ----

    async def _on_member_joined(self, event: MemberJoined) -> list[LogRecord]:
        settings = await self.settings_cache.get(event.guild_id)
        if settings is None or not settings.enabled("log_join"):
            return []

        attribution = None
        if settings.enabled("log_invites"):
            attribution = await self.invite_ledger.diff_and_attribute(event.guild_id)
        return await self._emit(settings, render_member_joined(event, attribution))

    async def _on_member_left(self, event: MemberLeft) -> list[LogRecord]:
        settings = await self.settings_cache.get(event.guild_id)
        if settings is None:
            return []

        if settings.enabled("log_kick"):
            entry = await self.audit_correlator.find_actor(
                event.guild_id, AUDIT_ACTION_KICK, event.user_id, self.windows.kick
            )
            if entry is not None:
                return await self._emit(settings, render_member_kicked(event, entry))

        if not settings.enabled("log_leave"):
            return []
        return await self._emit(settings, render_member_left(event))

    async def _on_member_banned(self, event: MemberBanned) -> list[LogRecord]:
        settings = await self.settings_cache.get(event.guild_id)
        if settings is None or not settings.enabled("log_ban"):
            return []
        entry = await self.audit_correlator.find_actor(
            event.guild_id, AUDIT_ACTION_BAN, event.user_id, self.windows.ban
        )
        return await self._emit(settings, render_member_banned(event, entry))

    async def _on_member_updated(self, event: MemberUpdated) -> list[LogRecord]:
        settings = await self.settings_cache.get(event.guild_id)
        if settings is None:
            return []

        out: list[LogRecord] = []
        if settings.enabled("log_roles") and event.roles_changed:
            entry = await self.audit_correlator.find_actor(
                event.guild_id, AUDIT_ACTION_ROLE_UPDATE, event.user_id, self.windows.roles
            )
            out.extend(await self._emit(settings, render_roles_updated(event, entry)))

        if settings.enabled("log_nickname") and event.nickname_changed:
            entry = await self.audit_correlator.find_actor(
                event.guild_id, AUDIT_ACTION_MEMBER_UPDATE, event.user_id, self.windows.member_update
            )
            out.extend(await self._emit(settings, render_nickname_changed(event, entry)))

        if settings.enabled("log_timeout") and event.timeout_changed:
            entry = await self.audit_correlator.find_actor(
                event.guild_id, AUDIT_ACTION_MEMBER_UPDATE, event.user_id, self.windows.member_update
            )
            out.extend(await self._emit(settings, render_timeout_changed(event, entry)))
        return out

    # ---- messages ----

    async def _on_message_deleted(self, event: MessageDeleted) -> list[LogRecord]:
        settings = await self.settings_cache.get(event.guild_id)
        if settings is None or not settings.enabled("log_message_delete"):
            return []
        return await self._emit(settings, render_message_deleted(event))

    async def _on_message_edited(self, event: MessageEdited) -> list[LogRecord]:
        if event.before_content == event.after_content:
            return []
        settings = await self.settings_cache.get(event.guild_id)
        if settings is None or not settings.enabled("log_message_edit"):
            return []
        return await self._emit(settings, render_message_edited(event))
