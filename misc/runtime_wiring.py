from __future__ import annotations

import asyncio

from misc.commands.command_deps import CommandDeps
from misc.commands.commands_settings import register as register_settings
from misc.runtime_deps import RuntimeBootDeps
from misc.runtime_deps import RuntimeDeps
from misc.events_runtime import register_runtime_events


def wire_bot_runtime(
    bot,
    *,
    event_queue: asyncio.Queue,
    settings_cache,
    settings_backend_name: str,
    default_log_channel_id: str | None,
    dashboard_url: str,
    dispatch_loop_func,
) -> None:
    register_settings(
        bot,
        deps=CommandDeps(
            settings_cache=settings_cache,
            dashboard_url=dashboard_url,
            default_log_channel_id=default_log_channel_id,
        ),
    )

    register_runtime_events(
        bot,
        deps=RuntimeDeps(
            event_queue=event_queue,
            settings_backend_name=settings_backend_name,
            default_log_channel_id=default_log_channel_id,
        ),
        boot=RuntimeBootDeps(
            dispatch_loop_func=dispatch_loop_func,
        ),
    )
