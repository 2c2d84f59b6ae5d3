from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Protocol
from urllib.parse import quote

import aiohttp

from misc.keyed_store import KeyedStore
from settings.models import GuildSettings
from settings.store import ensure_guild_settings_sync

UNAVAILABLE_NOT_FOUND = "not_found"
UNAVAILABLE_NO_CREDENTIAL = "no_credential"
UNAVAILABLE_BAD_STATUS = "bad_status"
UNAVAILABLE_BAD_PAYLOAD = "bad_payload"
UNAVAILABLE_TIMEOUT = "timeout"
UNAVAILABLE_ERROR = "error"


@dataclass(frozen=True, slots=True)
class SettingsFetch:
    settings: GuildSettings | None
    unavailable_reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.settings is not None

    @classmethod
    def found(cls, settings: GuildSettings) -> "SettingsFetch":
        return cls(settings=settings)

    @classmethod
    def unavailable(cls, reason: str) -> "SettingsFetch":
        return cls(settings=None, unavailable_reason=reason)


@dataclass(frozen=True, slots=True)
class CacheEntry:
    value: GuildSettings
    fetched_at: float

    def is_fresh(self, now: float, ttl_seconds: float) -> bool:
        return (now - self.fetched_at) < ttl_seconds


class SettingsBackend(Protocol):
    name: str

    async def fetch(self, guild_id: str) -> SettingsFetch: ...

    async def close(self) -> None: ...


class LocalSettingsBackend:
    name = "sqlite"

    def __init__(self, *, db_lock, db_conn, timeout_seconds: float) -> None:
        self.db_lock = db_lock
        self.db_conn = db_conn
        self.timeout_seconds = float(timeout_seconds)

    async def fetch(self, guild_id: str) -> SettingsFetch:
        try:
            async with self.db_lock:
                row = await asyncio.wait_for(
                    asyncio.to_thread(ensure_guild_settings_sync, self.db_conn, guild_id),
                    timeout=self.timeout_seconds,
                )
        except asyncio.TimeoutError:
            return SettingsFetch.unavailable(UNAVAILABLE_TIMEOUT)
        except Exception as e:
            print(f"[Settings] sqlite lookup failed guild={guild_id}: {e}")
            return SettingsFetch.unavailable(UNAVAILABLE_ERROR)
        if not row:
            return SettingsFetch.unavailable(UNAVAILABLE_NOT_FOUND)
        return SettingsFetch.found(GuildSettings.from_mapping(guild_id, row))

    async def close(self) -> None:
        async with self.db_lock:
            self.db_conn.close()


class HttpSettingsBackend:
    name = "http"

    def __init__(
        self,
        *,
        api_base: str,
        api_key: str,
        timeout_seconds: float,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.api_base = str(api_base or "").rstrip("/")
        self.api_key = str(api_key or "").strip()
        self.timeout_seconds = float(timeout_seconds)
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    def settings_url(self, guild_id: str) -> str:
        return f"{self.api_base}/settings/{quote(str(guild_id), safe='')}"

    async def fetch(self, guild_id: str) -> SettingsFetch:
        if not self.api_key:
            return SettingsFetch.unavailable(UNAVAILABLE_NO_CREDENTIAL)

        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        try:
            async with self._get_session().get(
                self.settings_url(guild_id),
                headers={"X-API-KEY": self.api_key},
                timeout=timeout,
            ) as resp:
                if resp.status == 404:
                    return SettingsFetch.unavailable(UNAVAILABLE_NOT_FOUND)
                if resp.status != 200:
                    return SettingsFetch.unavailable(UNAVAILABLE_BAD_STATUS)
                data = await resp.json(content_type=None)
        except asyncio.TimeoutError:
            return SettingsFetch.unavailable(UNAVAILABLE_TIMEOUT)
        except (aiohttp.ClientError, ValueError) as e:
            print(f"[Settings] http lookup failed guild={guild_id}: {e}")
            return SettingsFetch.unavailable(UNAVAILABLE_ERROR)

        if not isinstance(data, dict):
            return SettingsFetch.unavailable(UNAVAILABLE_BAD_PAYLOAD)
        return SettingsFetch.found(GuildSettings.from_mapping(guild_id, data))


class SettingsCache:
    """
    TTL cache of per-guild settings in front of one backend.

    A failed fetch keeps the previous entry; an expired entry is then served as
    the last known-good record until a fetch succeeds.
    """

    def __init__(
        self,
        backend: SettingsBackend,
        *,
        ttl_seconds: float,
        store: KeyedStore[CacheEntry] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.backend = backend
        self.ttl_seconds = max(0.0, float(ttl_seconds))
        self.store: KeyedStore[CacheEntry] = store if store is not None else KeyedStore()
        self.clock = clock
        self.fetch_count = 0

    async def get(self, guild_id: Any) -> GuildSettings | None:
        gid = str(guild_id if guild_id is not None else "").strip()
        if not gid:
            return None

        cached = self.store.get(gid)
        if cached is not None and cached.is_fresh(self.clock(), self.ttl_seconds):
            return cached.value

        self.fetch_count += 1
        try:
            result = await self.backend.fetch(gid)
        except Exception as e:
            print(f"[Settings] {self.backend.name} fetch raised guild={gid}: {e}")
            result = SettingsFetch.unavailable(UNAVAILABLE_ERROR)
        if result.ok:
            self.store.replace(gid, CacheEntry(value=result.settings, fetched_at=self.clock()))
            return result.settings

        if cached is not None:
            print(
                f"[Settings] {self.backend.name} unavailable guild={gid} "
                f"reason={result.unavailable_reason}; serving last known settings"
            )
            return cached.value
        return None

    def invalidate(self, guild_id: Any) -> None:
        self.store.pop(str(guild_id))

    def peek(self, guild_id: Any) -> CacheEntry | None:
        return self.store.get(str(guild_id))

    async def close(self) -> None:
        await self.backend.close()
