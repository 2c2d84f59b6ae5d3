from __future__ import annotations

import asyncio
import unittest
from datetime import datetime, timezone
from types import SimpleNamespace

try:
    import discord
except ModuleNotFoundError:
    discord = None

if discord is not None:
    from attribution.errors import ProviderError
    from attribution.errors import ProviderPermissionDenied
    from attribution.errors import ProviderTimeout
    from attribution.provider import DiscordGuildProvider
    from attribution.provider import invite_to_record


class _Named(SimpleNamespace):
    def __str__(self) -> str:
        return self.display


def _forbidden():
    return discord.Forbidden(SimpleNamespace(status=403, reason="Forbidden"), "Missing Permissions")


class _FakeGuild:
    def __init__(self, *, invites=None, vanity=None, audit=None, exc: Exception | None = None, delay: float = 0):
        self._invites = invites or []
        self._vanity = vanity
        self._audit = audit or []
        self.exc = exc
        self.delay = delay
        self.audit_calls: list[tuple[int, object]] = []

    async def invites(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc is not None:
            raise self.exc
        return list(self._invites)

    async def vanity_invite(self):
        if self.exc is not None:
            raise self.exc
        return self._vanity

    async def audit_logs(self, *, limit, action):
        self.audit_calls.append((limit, action))
        for entry in self._audit:
            yield entry


class _FakeClient:
    def __init__(self, guild=None):
        self.guild = guild

    def get_guild(self, guild_id: int):
        return self.guild


@unittest.skipIf(discord is None, "discord.py not installed")
class DiscordGuildProviderTests(unittest.IsolatedAsyncioTestCase):
    async def test_invites_become_records(self):
        inviter = _Named(id=42, display="bob")
        guild = _FakeGuild(invites=[SimpleNamespace(code="abc", uses=3, inviter=inviter), SimpleNamespace(code="x", uses=None, inviter=None)])
        records = await DiscordGuildProvider(_FakeClient(guild), timeout_seconds=1).fetch_invites("10")

        self.assertEqual([(r.code, r.uses, r.inviter_id, r.inviter_name) for r in records], [("abc", 3, "42", "bob"), ("x", 0, None, None)])

    async def test_vanity_code(self):
        guild = _FakeGuild(vanity=SimpleNamespace(code="cool"))
        self.assertEqual(await DiscordGuildProvider(_FakeClient(guild), timeout_seconds=1).fetch_vanity_code("10"), "cool")
        self.assertIsNone(await DiscordGuildProvider(_FakeClient(_FakeGuild()), timeout_seconds=1).fetch_vanity_code("10"))

    async def test_forbidden_maps_to_permission_denied(self):
        provider = DiscordGuildProvider(_FakeClient(_FakeGuild(exc=_forbidden())), timeout_seconds=1)
        with self.assertRaises(ProviderPermissionDenied):
            await provider.fetch_invites("10")

    async def test_slow_call_times_out(self):
        provider = DiscordGuildProvider(_FakeClient(_FakeGuild(delay=1)), timeout_seconds=0.01)
        with self.assertRaises(ProviderTimeout):
            await provider.fetch_invites("10")

    async def test_unknown_guild_is_provider_error(self):
        provider = DiscordGuildProvider(_FakeClient(None), timeout_seconds=1)
        with self.assertRaises(ProviderError):
            await provider.fetch_invites("10")
        with self.assertRaises(ProviderError):
            await provider.fetch_invites("not-a-snowflake")

    async def test_audit_entries_use_executor_and_target(self):
        created = datetime(2026, 3, 1, tzinfo=timezone.utc)
        entry = SimpleNamespace(user=_Named(id=9, display="mod"), target=SimpleNamespace(id=1), reason="", created_at=created)
        guild = _FakeGuild(audit=[entry])
        records = await DiscordGuildProvider(_FakeClient(guild), timeout_seconds=1).fetch_audit_entries("10", "kick", 5)

        self.assertEqual(guild.audit_calls, [(5, discord.AuditLogAction.kick)])
        self.assertEqual(records[0].executor_id, "9")
        self.assertEqual(records[0].target_id, "1")
        self.assertIsNone(records[0].reason)
        self.assertEqual(records[0].created_at, created)

    async def test_unsupported_audit_action(self):
        provider = DiscordGuildProvider(_FakeClient(_FakeGuild()), timeout_seconds=1)
        with self.assertRaises(ValueError):
            await provider.fetch_audit_entries("10", "channel_delete", 5)

    def test_invite_to_record_without_inviter(self):
        record = invite_to_record(SimpleNamespace(code="abc", uses=2))
        self.assertIsNone(record.inviter_id)


if __name__ == "__main__":
    unittest.main()
