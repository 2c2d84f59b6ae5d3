from __future__ import annotations

from attribution.errors import ProviderError
from attribution.errors import ProviderPermissionDenied
from attribution.models import InviteAttribution
from attribution.models import InviteRecord
from attribution.models import InviteSnapshot
from attribution.provider import GuildProvider
from misc.keyed_store import KeyedStore


def find_used_invite(before: InviteSnapshot, after: list[InviteRecord]) -> InviteRecord | None:
    """
    First invite (in provider order) whose use count went up since `before`.

    Only codes present in both snapshots count; a code that first shows up in
    `after` has no baseline and is skipped.
    """
    for invite in after:
        uses_before = before.uses(invite.code)
        if uses_before is None:
            continue
        if int(invite.uses or 0) > uses_before:
            return invite
    return None


class InviteLedger:
    def __init__(self, provider: GuildProvider, *, store: KeyedStore[InviteSnapshot] | None = None) -> None:
        self.provider = provider
        self.store: KeyedStore[InviteSnapshot] = store if store is not None else KeyedStore()
        self._permission_reported: set[str] = set()

    def snapshot(self, guild_id) -> InviteSnapshot | None:
        return self.store.get(str(guild_id))

    def forget(self, guild_id) -> None:
        self.store.pop(str(guild_id))
        self._permission_reported.discard(str(guild_id))

    def _report_failure(self, guild_id: str, exc: Exception) -> None:
        if isinstance(exc, ProviderPermissionDenied):
            if guild_id in self._permission_reported:
                return
            self._permission_reported.add(guild_id)
            print(f"[Invites] missing permission to read invites guild={guild_id}")
            return
        print(f"[Invites] invite fetch failed guild={guild_id}: {exc}")

    async def refresh(self, guild_id) -> InviteSnapshot:
        gid = str(guild_id)
        try:
            invites = await self.provider.fetch_invites(gid)
            snapshot = InviteSnapshot.from_invites(invites)
        except ProviderError as e:
            self._report_failure(gid, e)
            snapshot = InviteSnapshot.empty()
        except Exception as e:
            print(f"[Invites] unexpected refresh error guild={gid}: {e}")
            snapshot = InviteSnapshot.empty()
        self.store.replace(gid, snapshot)
        return snapshot

    async def _vanity_code(self, guild_id: str) -> str | None:
        try:
            return await self.provider.fetch_vanity_code(guild_id)
        except ProviderError:
            return None
        except Exception as e:
            print(f"[Invites] unexpected vanity lookup error guild={guild_id}: {e}")
            return None

    async def diff_and_attribute(self, guild_id) -> InviteAttribution:
        gid = str(guild_id)
        before = self.store.get(gid) or InviteSnapshot.empty()
        try:
            after = await self.provider.fetch_invites(gid)
        except ProviderError as e:
            self._report_failure(gid, e)
            return InviteAttribution.unknown(permission_denied=True)
        except Exception as e:
            print(f"[Invites] unexpected diff error guild={gid}: {e}")
            return InviteAttribution.unknown(permission_denied=True)

        used = find_used_invite(before, after)
        self.store.replace(gid, InviteSnapshot.from_invites(after))

        if used is not None:
            return InviteAttribution.from_invite(used)

        vanity_code = await self._vanity_code(gid)
        if vanity_code:
            return InviteAttribution.vanity(vanity_code)
        return InviteAttribution.unknown()
