import os
import asyncio
import discord
from misc.guildlog_bot import GuildLogBot
from attribution.audit import AuditCorrelator
from attribution.invites import InviteLedger
from attribution.provider import DiscordGuildProvider
from config.defaults import DEFAULT_AUDIT_PAGE_LIMIT
from config.defaults import DEFAULT_AUDIT_WINDOW_SECONDS
from config.defaults import DEFAULT_DASHBOARD_URL
from config.defaults import DEFAULT_DB_PATH
from config.defaults import DEFAULT_KICK_WINDOW_SECONDS
from config.defaults import DEFAULT_PROVIDER_TIMEOUT_SECONDS
from config.defaults import DEFAULT_SETTINGS_API_BASE
from config.defaults import DEFAULT_SETTINGS_CACHE_SECONDS
from db.migrate import list_schema_migrations_sync
from db.migrate import open_settings_db
from db.migrate import table_columns_sync
from events.router import AuditWindows
from events.router import EventRouter
from misc.keyed_store import KeyedStore
from misc.log_sink import DiscordLogSink
from misc.runtime_wiring import wire_bot_runtime
from settings.models import clean_snowflake
from settings.service import HttpSettingsBackend
from settings.service import LocalSettingsBackend
from settings.service import SettingsCache

# =========================
# ENV
# =========================
DISCORD_TOKEN = (os.getenv("DISCORD_TOKEN") or "").strip()

if not DISCORD_TOKEN:
    raise RuntimeError("Missing DISCORD_TOKEN env var")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return float(default)
    try:
        return float(raw.strip())
    except ValueError:
        print(f"[CFG] invalid {name}={raw!r}; falling back to {default!r}")
        return float(default)


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, default))


# Optional fallback destination when a guild has no valid log channel.
_RAW_DEFAULT_LOG_CHANNEL_ID = os.getenv("GUILDLOG_LOG_CHANNEL_ID", "").strip()
DEFAULT_LOG_CHANNEL_ID = clean_snowflake(_RAW_DEFAULT_LOG_CHANNEL_ID)
if _RAW_DEFAULT_LOG_CHANNEL_ID and DEFAULT_LOG_CHANNEL_ID is None:
    print(f"[CFG] ignoring malformed GUILDLOG_LOG_CHANNEL_ID={_RAW_DEFAULT_LOG_CHANNEL_ID!r}")

DASHBOARD_URL = os.getenv("GUILDLOG_DASHBOARD_URL", DEFAULT_DASHBOARD_URL).strip()

# =========================
# SETTINGS SOURCE
# =========================
# sqlite by default; the HTTP backend is for deployments where the dashboard
# owns the settings DB in a separate service.
USE_HTTP_SETTINGS = os.getenv("GUILDLOG_USE_HTTP_SETTINGS", "0").strip() == "1"
SETTINGS_API_BASE = os.getenv("GUILDLOG_SETTINGS_API_BASE", DEFAULT_SETTINGS_API_BASE).strip()
BOT_API_KEY = os.getenv("GUILDLOG_BOT_API_KEY", "").strip()
SETTINGS_CACHE_SECONDS = _env_float("GUILDLOG_SETTINGS_CACHE_SECONDS", DEFAULT_SETTINGS_CACHE_SECONDS)
DB_PATH = os.getenv("GUILDLOG_DB_PATH", DEFAULT_DB_PATH)

# =========================
# PROVIDER / AUDIT
# =========================
PROVIDER_TIMEOUT_SECONDS = _env_float("GUILDLOG_PROVIDER_TIMEOUT_SECONDS", DEFAULT_PROVIDER_TIMEOUT_SECONDS)
AUDIT_PAGE_LIMIT = _env_int("GUILDLOG_AUDIT_PAGE_LIMIT", DEFAULT_AUDIT_PAGE_LIMIT)
KICK_WINDOW_SECONDS = _env_float("GUILDLOG_KICK_WINDOW_SECONDS", DEFAULT_KICK_WINDOW_SECONDS)
AUDIT_WINDOW_SECONDS = _env_float("GUILDLOG_AUDIT_WINDOW_SECONDS", DEFAULT_AUDIT_WINDOW_SECONDS)

print(
    f"[CFG] settings={'http' if USE_HTTP_SETTINGS else 'sqlite'} cache_s={SETTINGS_CACHE_SECONDS} "
    f"api_key={'set' if BOT_API_KEY else 'unset'} provider_timeout_s={PROVIDER_TIMEOUT_SECONDS} "
    f"audit_page={AUDIT_PAGE_LIMIT} kick_window_s={KICK_WINDOW_SECONDS} audit_window_s={AUDIT_WINDOW_SECONDS}"
)
if USE_HTTP_SETTINGS and not BOT_API_KEY:
    print("[CFG] GUILDLOG_USE_HTTP_SETTINGS=1 without GUILDLOG_BOT_API_KEY; logging stays paused")

# =========================
# SQLITE
# =========================
db_lock = asyncio.Lock()
if USE_HTTP_SETTINGS:
    db_conn = None
    settings_backend = HttpSettingsBackend(
        api_base=SETTINGS_API_BASE,
        api_key=BOT_API_KEY,
        timeout_seconds=PROVIDER_TIMEOUT_SECONDS,
    )
else:
    db_conn = open_settings_db(DB_PATH)
    print(f"[DB] Using DB_PATH={DB_PATH}")
    print(f"[DB] guild_settings cols: {table_columns_sync(db_conn, 'guild_settings')}")
    print(f"[DB] migrations applied: {[v for v, _n, _t in list_schema_migrations_sync(db_conn)]}")
    settings_backend = LocalSettingsBackend(
        db_lock=db_lock,
        db_conn=db_conn,
        timeout_seconds=PROVIDER_TIMEOUT_SECONDS,
    )

settings_cache = SettingsCache(
    settings_backend,
    ttl_seconds=SETTINGS_CACHE_SECONDS,
    store=KeyedStore(),
)

# =========================
# DISCORD BOT
# =========================
intents = discord.Intents.default()
intents.members = True
intents.message_content = True

bot = GuildLogBot(command_prefix="!", intents=intents, cleanup_funcs=[settings_cache.close])

provider = DiscordGuildProvider(bot, timeout_seconds=PROVIDER_TIMEOUT_SECONDS)
invite_ledger = InviteLedger(provider, store=KeyedStore())
audit_correlator = AuditCorrelator(provider, page_limit=AUDIT_PAGE_LIMIT)
log_sink = DiscordLogSink(bot, timeout_seconds=PROVIDER_TIMEOUT_SECONDS)

router = EventRouter(
    settings_cache=settings_cache,
    invite_ledger=invite_ledger,
    audit_correlator=audit_correlator,
    sink=log_sink,
    default_channel_id=DEFAULT_LOG_CHANNEL_ID,
    windows=AuditWindows(
        kick=KICK_WINDOW_SECONDS,
        ban=AUDIT_WINDOW_SECONDS,
        roles=AUDIT_WINDOW_SECONDS,
        member_update=AUDIT_WINDOW_SECONDS,
    ),
)
event_queue: asyncio.Queue = asyncio.Queue()


async def dispatch_loop() -> None:
    return await router.run(event_queue)


wire_bot_runtime(
    bot,
    event_queue=event_queue,
    settings_cache=settings_cache,
    settings_backend_name=settings_backend.name,
    default_log_channel_id=DEFAULT_LOG_CHANNEL_ID,
    dashboard_url=DASHBOARD_URL,
    dispatch_loop_func=dispatch_loop,
)


bot.run(DISCORD_TOKEN)
