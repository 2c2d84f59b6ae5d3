from __future__ import annotations

import asyncio
import importlib


class _DummyCache:
    def invalidate(self, guild_id):
        return None

    async def get(self, guild_id):
        return None


async def _noop_async(*args, **kwargs):
    return None


def _try_import_or_skip(module_name: str, pip_name: str | None = None) -> bool:
    try:
        importlib.import_module(module_name)
        return True
    except ModuleNotFoundError:
        install_name = pip_name or module_name
        print(
            f"Smoke wiring check skipped: missing dependency '{module_name}'. "
            f"Install requirements and retry (e.g. `pip install {install_name}` "
            f"or `pip install -e .`)."
        )
        return False


def _main() -> int:
    if not _try_import_or_skip("discord", "discord.py"):
        return 0

    import discord
    from discord.ext import commands
    from misc.runtime_wiring import wire_bot_runtime

    intents = discord.Intents.none()
    bot = commands.Bot(command_prefix="!", intents=intents)

    wire_bot_runtime(
        bot,
        event_queue=asyncio.Queue(),
        settings_cache=_DummyCache(),
        settings_backend_name="sqlite",
        default_log_channel_id=None,
        dashboard_url="http://127.0.0.1:5000",
        dispatch_loop_func=_noop_async,
    )

    expected_commands = {"dashboard", "logsettings"}
    existing_commands = set(bot.all_commands.keys())
    missing = sorted(expected_commands - existing_commands)
    if missing:
        raise RuntimeError(f"Missing expected commands: {missing}")

    expected_events = (
        "on_ready",
        "on_guild_join",
        "on_guild_remove",
        "on_invite_create",
        "on_invite_delete",
        "on_member_join",
        "on_member_remove",
        "on_member_ban",
        "on_member_update",
        "on_message_delete",
        "on_message_edit",
    )
    unregistered = [name for name in expected_events if getattr(bot, name, None) is None]
    if unregistered:
        raise RuntimeError(f"Runtime events were not registered: {unregistered}")

    print("Smoke wiring check passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
