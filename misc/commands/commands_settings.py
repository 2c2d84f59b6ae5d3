from __future__ import annotations

from discord.ext import commands
from misc.commands.command_deps import CommandDeps
from settings.models import GuildSettings
from settings.models import resolve_destination


def format_settings_summary(settings: GuildSettings | None, default_log_channel_id: str | None) -> str:
    if settings is None:
        return "Settings are unavailable for this server right now (logging is paused)."

    destination = resolve_destination(settings, default_log_channel_id)
    if destination is None:
        dest_line = "Log channel: **none** (events are dropped until one is set)"
    elif destination == (settings.log_channel_id or "").strip():
        dest_line = f"Log channel: <#{destination}>"
    else:
        dest_line = f"Log channel: <#{destination}> (process default)"

    lines = [dest_line]
    for name, on in settings.toggle_states().items():
        lines.append(f"- `{name}`: {'on' if on else 'off'}")
    return "\n".join(lines)


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
) -> None:
    @bot.command(name="dashboard")
    async def cmd_dashboard(ctx: commands.Context):
        if not deps.dashboard_url:
            await ctx.reply("No dashboard is configured.", mention_author=False)
            return
        await ctx.reply(deps.dashboard_url, mention_author=False)

    @bot.command(name="logsettings")
    @commands.has_permissions(administrator=True)
    @commands.guild_only()
    async def cmd_logsettings(ctx: commands.Context):
        deps.settings_cache.invalidate(ctx.guild.id)
        settings = await deps.settings_cache.get(ctx.guild.id)
        await ctx.reply(
            format_settings_summary(settings, deps.default_log_channel_id),
            mention_author=False,
        )
