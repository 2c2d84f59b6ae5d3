from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable


@dataclass(frozen=True)
class RuntimeDeps:
    # event hand-off
    event_queue: asyncio.Queue

    # config echo
    settings_backend_name: str
    default_log_channel_id: str | None


@dataclass(frozen=True)
class RuntimeBootDeps:
    dispatch_loop_func: Callable
