"""
main.py
───────
CLI entry point for the Discord server backup tool.

Settings come from config.json next to this file (see config.py); the
bot token and guild id are prompted for when they are missing.
"""

from __future__ import annotations
import asyncio
import getpass
import logging
import sys

from backup import run_backup
from config import BackupOptions, SchedulerSettings, load_config
from discord_reader import DiscordGuild
from errors import BackupError, ConfigError, InvalidTokenError

# ── ANSI ──────────────────────────────────────────────────────────────────────
BOLD = "\033[1m"
RED = "\033[91m"
YELLOW = "\033[93m"
RESET = "\033[0m"


def banner():
    print(f"""
{BOLD}╔══════════════════════════════════════════════════╗
║   Discord Server Backup Tool  v1.0               ║
║   Rate-limited · Restorable · Selective          ║
╚══════════════════════════════════════════════════╝{RESET}

Saves your Discord server configuration to a JSON file.

{YELLOW}What is saved:{RESET}
  ✔ Roles, bans and members (with their roles)
  ✔ Categories and channels (in order, with permissions)
  ✔ Recent messages of text and stage channels
  ✔ Emojis (first 50) and auto-moderation rules

{YELLOW}What is NOT saved:{RESET}
  ✘ Stickers, webhooks, integrations
  ✘ Threads
  ✘ Channels listed under doNotBackup in config.json
""")


def prompt(label: str, secret: bool = False) -> str:
    while True:
        val = (
            getpass.getpass(f"  {label}: ") if secret else input(f"  {label}: ")
        ).strip()
        if val:
            return val
        print("  (required)")


def main():
    logging.basicConfig(
        level=logging.WARNING,
        format="    %(levelname)s %(name)s: %(message)s",
    )
    banner()

    try:
        config = load_config()
        options = BackupOptions.from_dict(config.get("backup", {}))
        scheduler = SchedulerSettings.from_dict(config.get("scheduler", {})).build()
    except ConfigError as exc:
        print(f"  {RED}✘{RESET}  config.json: {exc}")
        sys.exit(1)

    # ── Discord credentials ───────────────────────────────────────────────
    discord_cfg = config.get("discord", {})
    discord_token = discord_cfg.get("token", "")
    guild_id = discord_cfg.get("guild_id", "")

    if not discord_token or not guild_id:
        print(f"\n{BOLD}Discord credentials:{RESET}")
        print("  Create a bot at https://discord.com/developers/applications")
        print("  Enable the Server Members intent and invite it to your server.\n")
    if not discord_token:
        discord_token = prompt("Discord Bot Token", secret=True)
    if not guild_id:
        guild_id = prompt("Discord Server (Guild) ID")

    # ── Run backup ────────────────────────────────────────────────────────
    guild = DiscordGuild(bot_token=discord_token, guild_id=guild_id)
    try:
        asyncio.run(run_backup(guild, options, scheduler))
    except InvalidTokenError:
        print(f"  {RED}✘{RESET}  Invalid Discord bot token.")
        sys.exit(1)
    except BackupError as exc:
        print(f"  {RED}✘{RESET}  Backup failed: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\n\n  Backup cancelled.")
        sys.exit(0)
