from __future__ import annotations

import asyncio
import unittest
from datetime import datetime, timezone

from attribution.models import AuditEntry
from attribution.models import InviteAttribution
from config.defaults import AUDIT_ACTION_BAN
from config.defaults import AUDIT_ACTION_KICK
from config.defaults import AUDIT_ACTION_MEMBER_UPDATE
from config.defaults import AUDIT_ACTION_ROLE_UPDATE
from events.models import GuildAvailable
from events.models import GuildRemoved
from events.models import InviteChanged
from events.models import MemberBanned
from events.models import MemberJoined
from events.models import MemberLeft
from events.models import MemberUpdated
from events.models import MessageDeleted
from events.models import MessageEdited
from events.router import AuditWindows
from events.router import EventRouter
from settings.models import GuildSettings

CHANNEL = "111111111111111111"
DEFAULT_CHANNEL = "222222222222222222"


class _FakeCache:
    def __init__(self, settings: GuildSettings | None):
        self.settings = settings
        self.gets: list[str] = []
        self.invalidated: list[str] = []

    async def get(self, guild_id):
        self.gets.append(str(guild_id))
        return self.settings

    def invalidate(self, guild_id):
        self.invalidated.append(str(guild_id))


class _FakeLedger:
    def __init__(self, attribution: InviteAttribution | None = None):
        self.attribution = attribution or InviteAttribution.unknown()
        self.diffs: list[str] = []
        self.refreshes: list[str] = []
        self.forgotten: list[str] = []

    async def diff_and_attribute(self, guild_id):
        self.diffs.append(guild_id)
        return self.attribution

    async def refresh(self, guild_id):
        self.refreshes.append(guild_id)

    def forget(self, guild_id):
        self.forgotten.append(guild_id)


class _FakeCorrelator:
    def __init__(self, entries: dict[str, AuditEntry] | None = None):
        self.entries = entries or {}
        self.calls: list[tuple[str, str, float]] = []

    async def find_actor(self, guild_id, action, target_id, window_seconds):
        self.calls.append((action, target_id, window_seconds))
        return self.entries.get(action)


class _FakeSink:
    def __init__(self, ok: bool = True):
        self.ok = ok
        self.emitted: list[tuple[object, str]] = []

    async def emit(self, record, destination_id):
        self.emitted.append((record, destination_id))
        return self.ok


def _entry(action: str) -> AuditEntry:
    return AuditEntry(
        action=action,
        target_id="1",
        executor_id="9",
        executor_name="mod",
        reason="rules",
        created_at=datetime.now(timezone.utc),
    )


class EventRouterTests(unittest.IsolatedAsyncioTestCase):
    def _router(
        self,
        settings: GuildSettings | None = None,
        *,
        entries=None,
        attribution=None,
        default_channel_id=None,
        sink_ok: bool = True,
    ) -> EventRouter:
        if settings is None:
            settings = GuildSettings(guild_id="10", log_channel_id=CHANNEL)
        self.cache = _FakeCache(settings)
        self.ledger = _FakeLedger(attribution)
        self.correlator = _FakeCorrelator(entries)
        self.sink = _FakeSink(sink_ok)
        return EventRouter(
            settings_cache=self.cache,
            invite_ledger=self.ledger,
            audit_correlator=self.correlator,
            sink=self.sink,
            default_channel_id=default_channel_id,
            windows=AuditWindows(kick=20, ban=25, roles=25, member_update=25),
        )

    async def test_join_with_invite_attribution(self):
        router = self._router(attribution=InviteAttribution.vanity("cool"))
        records = await router.handle(MemberJoined("10", "1", "alice"))

        self.assertEqual(len(records), 1)
        self.assertIn("**Vanity:** `cool`", records[0].description)
        self.assertEqual(self.sink.emitted[0][1], CHANNEL)
        self.assertEqual(self.ledger.diffs, ["10"])

    async def test_join_disabled_skips_ledger_and_sink(self):
        router = self._router(GuildSettings(guild_id="10", log_channel_id=CHANNEL, log_join=0))
        self.assertEqual(await router.handle(MemberJoined("10", "1", "alice")), [])
        self.assertEqual(self.ledger.diffs, [])
        self.assertEqual(self.sink.emitted, [])

    async def test_join_without_invite_logging_has_no_attribution(self):
        router = self._router(GuildSettings(guild_id="10", log_channel_id=CHANNEL, log_invites="0"))
        records = await router.handle(MemberJoined("10", "1", "alice"))
        self.assertEqual(self.ledger.diffs, [])
        self.assertNotIn("Invite", records[0].description)

    async def test_kick_replaces_leave_record(self):
        router = self._router(entries={AUDIT_ACTION_KICK: _entry(AUDIT_ACTION_KICK)})
        records = await router.handle(MemberLeft("10", "1", "alice"))

        self.assertEqual([r.category for r in records], ["kick"])
        self.assertIn("**Reason:** rules", records[0].description)
        self.assertEqual(self.correlator.calls, [(AUDIT_ACTION_KICK, "1", 20)])

    async def test_leave_without_kick_entry(self):
        router = self._router()
        records = await router.handle(MemberLeft("10", "1", "alice"))
        self.assertEqual([r.category for r in records], ["member_leave"])

    async def test_leave_toggle_off_still_reports_kicks(self):
        settings = GuildSettings(guild_id="10", log_channel_id=CHANNEL, log_leave=0)
        router = self._router(settings, entries={AUDIT_ACTION_KICK: _entry(AUDIT_ACTION_KICK)})
        self.assertEqual([r.category for r in await router.handle(MemberLeft("10", "1", "a"))], ["kick"])

        router = self._router(settings)
        self.assertEqual(await router.handle(MemberLeft("10", "1", "a")), [])

    async def test_kick_toggle_off_skips_audit_lookup(self):
        router = self._router(GuildSettings(guild_id="10", log_channel_id=CHANNEL, log_kick=0))
        records = await router.handle(MemberLeft("10", "1", "alice"))
        self.assertEqual(self.correlator.calls, [])
        self.assertEqual([r.category for r in records], ["member_leave"])

    async def test_ban_without_audit_entry_still_logs(self):
        router = self._router()
        records = await router.handle(MemberBanned("10", "1", "alice"))
        self.assertEqual(records[0].category, "ban")
        self.assertIn("**By:** Unknown", records[0].description)
        self.assertEqual(self.correlator.calls[0][0], AUDIT_ACTION_BAN)

    async def test_member_update_emits_each_enabled_change(self):
        router = self._router(entries={AUDIT_ACTION_ROLE_UPDATE: _entry(AUDIT_ACTION_ROLE_UPDATE)})
        event = MemberUpdated(
            "10",
            "1",
            "alice#1",
            "alice",
            roles_added=("<@&2>",),
            nick_before=None,
            nick_after="Al",
            timeout_after=datetime(2026, 5, 1, tzinfo=timezone.utc),
        )
        records = await router.handle(event)

        self.assertEqual([r.category for r in records], ["role_change", "nickname_change", "timeout"])
        self.assertEqual(
            [c[0] for c in self.correlator.calls],
            [AUDIT_ACTION_ROLE_UPDATE, AUDIT_ACTION_MEMBER_UPDATE, AUDIT_ACTION_MEMBER_UPDATE],
        )

    async def test_member_update_respects_toggles(self):
        settings = GuildSettings(guild_id="10", log_channel_id=CHANNEL, log_roles=0, log_timeout=0)
        router = self._router(settings)
        event = MemberUpdated(
            "10", "1", "a", "a", roles_removed=("<@&2>",), nick_before="x", nick_after="y",
            timeout_before=datetime(2026, 5, 1, tzinfo=timezone.utc),
        )
        records = await router.handle(event)
        self.assertEqual([r.category for r in records], ["nickname_change"])

    async def test_invalid_channel_falls_back_to_default(self):
        router = self._router(
            GuildSettings(guild_id="10", log_channel_id="123"),
            default_channel_id=DEFAULT_CHANNEL,
        )
        await router.handle(MessageDeleted("10", "1", "a", "<#7>", "hi"))
        self.assertEqual(self.sink.emitted[0][1], DEFAULT_CHANNEL)

    async def test_no_destination_drops_record(self):
        router = self._router(GuildSettings(guild_id="10", log_channel_id="123"))
        self.assertEqual(await router.handle(MessageDeleted("10", "1", "a", "<#7>", "hi")), [])
        self.assertEqual(self.sink.emitted, [])

    async def test_settings_unavailable_pauses_logging(self):
        router = self._router()
        self.cache.settings = None
        self.assertEqual(await router.handle(MemberBanned("10", "1", "a")), [])
        self.assertEqual(self.correlator.calls, [])

    async def test_failed_delivery_is_not_reported(self):
        router = self._router(sink_ok=False)
        self.assertEqual(await router.handle(MessageDeleted("10", "1", "a", "<#7>", "hi")), [])
        self.assertEqual(len(self.sink.emitted), 1)

    async def test_identical_edit_is_skipped(self):
        router = self._router()
        self.assertEqual(await router.handle(MessageEdited("10", "1", "a", "<#7>", "same", "same")), [])
        records = await router.handle(MessageEdited("10", "1", "a", "<#7>", "old", "new"))
        self.assertEqual(records[0].category, "message_edit")

    async def test_lifecycle_events(self):
        router = self._router()
        await router.handle(GuildAvailable("10"))
        await router.handle(InviteChanged("10", "abc", created=True))
        await router.handle(GuildRemoved("10"))

        self.assertEqual(self.ledger.refreshes, ["10", "10"])
        self.assertEqual(self.ledger.forgotten, ["10"])
        self.assertEqual(self.cache.gets, ["10"])
        self.assertEqual(self.cache.invalidated, ["10"])

    async def test_handler_errors_are_contained(self):
        router = self._router()

        async def _boom(guild_id):
            raise RuntimeError("cache exploded")

        self.cache.get = _boom
        self.assertEqual(await router.handle(MemberJoined("10", "1", "a")), [])
        self.assertEqual(await router.handle(object()), [])

    async def test_submit_runs_events_concurrently_and_drains(self):
        router = self._router()
        for n in range(3):
            router.submit(MessageDeleted("10", str(n), "a", "<#7>", "hi"))
        self.assertEqual(router.in_flight, 3)
        await router.drain()
        self.assertEqual(router.in_flight, 0)
        self.assertEqual(len(self.sink.emitted), 3)

    async def test_run_consumes_queue(self):
        router = self._router()
        queue: asyncio.Queue = asyncio.Queue()
        queue.put_nowait(MessageDeleted("10", "1", "a", "<#7>", "hi"))
        queue.put_nowait(GuildRemoved("10"))

        task = asyncio.create_task(router.run(queue))
        await asyncio.wait_for(queue.join(), timeout=1)
        await router.drain()
        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task

        self.assertEqual(len(self.sink.emitted), 1)
        self.assertEqual(self.ledger.forgotten, ["10"])


if __name__ == "__main__":
    unittest.main()
