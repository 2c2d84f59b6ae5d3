from __future__ import annotations

import asyncio

import discord
from discord.ext import commands
from events.models import GuildRemoved
from events.translate import guild_available_event
from events.translate import invite_changed_event
from events.translate import member_banned_event
from events.translate import member_joined_event
from events.translate import member_left_event
from events.translate import member_updated_event
from events.translate import message_deleted_event
from events.translate import message_edited_event
from misc.runtime_deps import RuntimeBootDeps
from misc.runtime_deps import RuntimeDeps


def enqueue_event(queue: asyncio.Queue, event) -> bool:
    # Listeners never await the router; a None event means "not ours to log".
    if event is None:
        return False
    queue.put_nowait(event)
    return True


def register_runtime_events(
    bot: commands.Bot,
    *,
    deps: RuntimeDeps,
    boot: RuntimeBootDeps,
) -> None:
    queue = deps.event_queue

    @bot.event
    async def on_ready():
        print(f"GuildLog is online as {bot.user}")
        print(
            f"[CFG] settings_backend={deps.settings_backend_name} "
            f"default_log_channel={'set' if deps.default_log_channel_id else 'unset'} "
            f"guilds={len(bot.guilds)}"
        )

        if not getattr(bot, "_dispatch_task", None):
            bot._dispatch_task = asyncio.create_task(boot.dispatch_loop_func())
            print("[Router] dispatch loop started")

        # First contact with every guild: seed invite snapshots and settings rows.
        for guild in bot.guilds:
            enqueue_event(queue, guild_available_event(guild))

    @bot.event
    async def on_guild_join(guild: discord.Guild):
        enqueue_event(queue, guild_available_event(guild))

    @bot.event
    async def on_guild_remove(guild: discord.Guild):
        enqueue_event(queue, GuildRemoved(guild_id=str(guild.id)))

    @bot.event
    async def on_invite_create(invite: discord.Invite):
        enqueue_event(queue, invite_changed_event(invite, created=True))

    @bot.event
    async def on_invite_delete(invite: discord.Invite):
        enqueue_event(queue, invite_changed_event(invite, created=False))

    @bot.event
    async def on_member_join(member: discord.Member):
        enqueue_event(queue, member_joined_event(member))

    @bot.event
    async def on_member_remove(member: discord.Member):
        enqueue_event(queue, member_left_event(member))

    @bot.event
    async def on_member_ban(guild: discord.Guild, user: discord.User | discord.Member):
        enqueue_event(queue, member_banned_event(guild, user))

    @bot.event
    async def on_member_update(before: discord.Member, after: discord.Member):
        enqueue_event(queue, member_updated_event(before, after))

    @bot.event
    async def on_message_delete(message: discord.Message):
        enqueue_event(queue, message_deleted_event(message))

    @bot.event
    async def on_message_edit(before: discord.Message, after: discord.Message):
        enqueue_event(queue, message_edited_event(before, after))
