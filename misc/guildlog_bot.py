from __future__ import annotations

from typing import Awaitable, Callable, Iterable

from discord.ext import commands


class GuildLogBot(commands.Bot):
    """commands.Bot that releases settings resources (aiohttp session, sqlite) on close."""

    def __init__(self, *args, cleanup_funcs: Iterable[Callable[[], Awaitable[None]]] = (), **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._cleanup_funcs = list(cleanup_funcs)

    async def close(self) -> None:
        try:
            await super().close()
        finally:
            cleanups, self._cleanup_funcs = self._cleanup_funcs, []
            for func in cleanups:
                try:
                    await func()
                except Exception as e:
                    print(f"[CFG] cleanup {getattr(func, '__qualname__', func)!r} failed: {e}")
