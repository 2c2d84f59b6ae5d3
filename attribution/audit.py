from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Iterable

from attribution.errors import ProviderError
from attribution.errors import ProviderPermissionDenied
from attribution.errors import ProviderTimeout
from attribution.models import LOOKUP_ERROR
from attribution.models import LOOKUP_FORBIDDEN
from attribution.models import LOOKUP_FOUND
from attribution.models import LOOKUP_NOT_FOUND
from attribution.models import LOOKUP_TIMEOUT
from attribution.models import AuditEntry
from attribution.models import AuditLookup
from attribution.provider import GuildProvider
from config.defaults import DEFAULT_AUDIT_PAGE_LIMIT


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def entry_age_seconds(entry: AuditEntry, now: datetime) -> float | None:
    created = entry.created_at
    if created is None:
        return None
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return (now - created).total_seconds()


def select_entry(
    entries: Iterable[AuditEntry],
    target_id,
    window_seconds: float,
    now: datetime,
) -> AuditEntry | None:
    """First entry (provider order, newest first) for `target_id` no older than the window."""
    wanted = str(target_id)
    for entry in entries:
        if str(entry.target_id) != wanted:
            continue
        age = entry_age_seconds(entry, now)
        if age is not None and age <= window_seconds:
            return entry
    return None


class AuditCorrelator:
    def __init__(
        self,
        provider: GuildProvider,
        *,
        page_limit: int = DEFAULT_AUDIT_PAGE_LIMIT,
        now_func: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.provider = provider
        self.page_limit = max(1, int(page_limit))
        self.now_func = now_func
        self._permission_reported: set[str] = set()

    async def lookup_actor(self, guild_id, action: str, target_id, window_seconds: float) -> AuditLookup:
        gid = str(guild_id)
        try:
            entries = await self.provider.fetch_audit_entries(gid, action, self.page_limit)
        except ProviderPermissionDenied:
            if gid not in self._permission_reported:
                self._permission_reported.add(gid)
                print(f"[Audit] missing permission to view audit log guild={gid}")
            return AuditLookup(LOOKUP_FORBIDDEN)
        except ProviderTimeout:
            print(f"[Audit] audit log fetch timed out guild={gid} action={action}")
            return AuditLookup(LOOKUP_TIMEOUT)
        except ProviderError as e:
            print(f"[Audit] audit log fetch failed guild={gid} action={action}: {e}")
            return AuditLookup(LOOKUP_ERROR)
        except Exception as e:
            print(f"[Audit] unexpected audit lookup error guild={gid} action={action}: {e}")
            return AuditLookup(LOOKUP_ERROR)

        entry = select_entry(entries or [], target_id, float(window_seconds), self.now_func())
        if entry is None:
            return AuditLookup(LOOKUP_NOT_FOUND)
        return AuditLookup(LOOKUP_FOUND, entry)

    async def find_actor(self, guild_id, action: str, target_id, window_seconds: float) -> AuditEntry | None:
        lookup = await self.lookup_actor(guild_id, action, target_id, window_seconds)
        return lookup.entry
