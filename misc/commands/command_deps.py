from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CommandDeps:
    settings_cache: Any = None
    dashboard_url: str = ""
    default_log_channel_id: str | None = None
