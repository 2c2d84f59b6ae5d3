from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Protocol, TypeVar

import discord

from attribution.errors import ProviderError
from attribution.errors import ProviderPermissionDenied
from attribution.errors import ProviderTimeout
from attribution.models import AuditEntry
from attribution.models import InviteRecord
from config.defaults import AUDIT_ACTIONS

T = TypeVar("T")


class GuildProvider(Protocol):
    async def fetch_invites(self, guild_id: str) -> list[InviteRecord]: ...

    async def fetch_vanity_code(self, guild_id: str) -> str | None: ...

    async def fetch_audit_entries(self, guild_id: str, action: str, limit: int) -> list[AuditEntry]: ...


def _id_or_none(obj: Any) -> str | None:
    raw = getattr(obj, "id", None)
    return str(raw) if raw is not None else None


def _name_or_none(obj: Any) -> str | None:
    return str(obj) if obj is not None else None


def invite_to_record(invite: Any) -> InviteRecord:
    inviter = getattr(invite, "inviter", None)
    return InviteRecord(
        code=str(invite.code),
        uses=int(getattr(invite, "uses", None) or 0),
        inviter_id=_id_or_none(inviter),
        inviter_name=_name_or_none(inviter),
    )


def audit_entry_to_record(entry: Any, action: str) -> AuditEntry:
    executor = getattr(entry, "user", None)
    return AuditEntry(
        action=action,
        target_id=_id_or_none(getattr(entry, "target", None)),
        executor_id=_id_or_none(executor),
        executor_name=_name_or_none(executor),
        reason=getattr(entry, "reason", None) or None,
        created_at=getattr(entry, "created_at", None),
    )


class DiscordGuildProvider:
    """GuildProvider backed by a connected discord.py client; every call is time-bounded."""

    def __init__(self, client: discord.Client, *, timeout_seconds: float) -> None:
        self.client = client
        self.timeout_seconds = float(timeout_seconds)

    def _guild(self, guild_id: str) -> discord.Guild:
        try:
            guild = self.client.get_guild(int(guild_id))
        except (TypeError, ValueError):
            guild = None
        if guild is None:
            raise ProviderError(f"guild {guild_id} is not available")
        return guild

    async def _call(self, aw: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(aw, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as exc:
            raise ProviderTimeout(f"timed out after {self.timeout_seconds}s") from exc
        except discord.Forbidden as exc:
            raise ProviderPermissionDenied(str(exc)) from exc
        except discord.HTTPException as exc:
            raise ProviderError(str(exc)) from exc

    async def fetch_invites(self, guild_id: str) -> list[InviteRecord]:
        guild = self._guild(guild_id)
        invites = await self._call(guild.invites())
        return [invite_to_record(inv) for inv in invites]

    async def fetch_vanity_code(self, guild_id: str) -> str | None:
        guild = self._guild(guild_id)
        invite = await self._call(guild.vanity_invite())
        code = getattr(invite, "code", None) if invite is not None else None
        return str(code) if code else None

    async def fetch_audit_entries(self, guild_id: str, action: str, limit: int) -> list[AuditEntry]:
        if action not in AUDIT_ACTIONS:
            raise ValueError(f"Unsupported audit action: {action}")
        guild = self._guild(guild_id)
        audit_action = getattr(discord.AuditLogAction, action)

        async def _collect() -> list[AuditEntry]:
            out: list[AuditEntry] = []
            async for entry in guild.audit_logs(limit=max(1, int(limit)), action=audit_action):
                out.append(audit_entry_to_record(entry, action))
            return out

        return await self._call(_collect())
