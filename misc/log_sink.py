from __future__ import annotations

import asyncio
from typing import Any

import discord

from events.render import LogRecord

EMBED_DESCRIPTION_LIMIT = 4096


def build_log_embed(record: LogRecord) -> discord.Embed:
    return discord.Embed(
        title=record.title,
        description=record.description[:EMBED_DESCRIPTION_LIMIT],
        colour=discord.Colour(record.colour),
        timestamp=record.timestamp,
    )


class DiscordLogSink:
    def __init__(self, client: discord.Client, *, timeout_seconds: float) -> None:
        self.client = client
        self.timeout_seconds = float(timeout_seconds)

    async def resolve_channel(self, guild_id: str, destination_id: str) -> Any | None:
        """Channel `destination_id` if it belongs to guild `guild_id`, else None."""
        guild = self.client.get_guild(int(guild_id))
        if guild is None:
            print(f"[Sink] guild {guild_id} is not available; dropping record")
            return None

        channel_id = int(destination_id)
        channel = guild.get_channel(channel_id)
        if channel is None:
            try:
                channel = await asyncio.wait_for(guild.fetch_channel(channel_id), timeout=self.timeout_seconds)
            except (discord.HTTPException, discord.InvalidData, asyncio.TimeoutError) as e:
                print(f"[Sink] could not fetch channel {destination_id} in guild {guild_id}: {e}")
                return None

        owner_id = getattr(getattr(channel, "guild", None), "id", None)
        if owner_id is None or str(owner_id) != str(guild_id):
            print(f"[Sink] channel {destination_id} is not in guild {guild_id}; dropping record")
            return None
        return channel

    async def emit(self, record: LogRecord, destination_id: str) -> bool:
        channel = await self.resolve_channel(record.guild_id, destination_id)
        if channel is None or not isinstance(channel, discord.abc.Messageable):
            return False
        try:
            await asyncio.wait_for(channel.send(embed=build_log_embed(record)), timeout=self.timeout_seconds)
        except (discord.HTTPException, asyncio.TimeoutError) as e:
            print(f"[Sink] send failed guild={record.guild_id} channel={destination_id}: {e}")
            return False
        return True
