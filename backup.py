"""
backup.py
─────────
The backup engine.

Takes a guild handle and drives the full extraction sequence:
  1. Guild info
  2. Bans and members (fetched side by side)
  3. Roles
  4. Channels (category tree)
  5. Auto-moderation rules
  6. Emojis
and returns a GuildSnapshot.  Roles and channels come before the
auto-moderation rules because rule exemptions are resolved against them.

Any RemoteFetchError aborts the backup; the caller decides what to do.
"""

from __future__ import annotations
import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from config import BackupOptions
from discord_reader import guild_icon_url
from extractors.channels import build_channel_tree
from extractors.resources import (
    get_auto_moderation_rules,
    get_bans,
    get_emojis,
    get_members,
    get_roles,
)
from models import GuildSnapshot
from scheduler import Scheduler

logger = logging.getLogger(__name__)

# ── ANSI colours ──────────────────────────────────────────────────────────────
GREEN = "\033[92m"
CYAN = "\033[96m"
BOLD = "\033[1m"
DIM = "\033[2m"
RESET = "\033[0m"


def _ok(msg):
    print(f"  {GREEN}✔{RESET}  {msg}")


def _head(msg):
    print(f"\n{BOLD}{msg}{RESET}")


# ── Backup report ─────────────────────────────────────────────────────────────


@dataclass
class BackupReport:
    snapshot: GuildSnapshot
    path: str
    calls: dict[str, int]

    def print(self):
        _head("═══════════════════ Backup Report ═══════════════════")

        snap = self.snapshot
        print(f"\n  Server          : {BOLD}{snap.name}{RESET}")
        print(f"  Saved to        : {self.path}\n")

        sections = [
            ("Roles", len(snap.roles)),
            ("Categories", len(snap.channels.categories)),
            ("Channels", len(snap.channels.all_channels())),
            ("Members", len(snap.members)),
            ("Bans", len(snap.bans)),
            ("Emojis", len(snap.emojis)),
            ("Auto-mod", len(snap.auto_moderation_rules)),
        ]
        for label, count in sections:
            print(f"  {label:<12}  {GREEN}{count} saved{RESET}")

        print(f"\n  {DIM}{sum(self.calls.values())} API calls scheduled{RESET}\n")


# ── Backup ────────────────────────────────────────────────────────────────────


async def create_backup(guild, options: BackupOptions, scheduler: Scheduler) -> GuildSnapshot:
    info = await scheduler.schedule("getGuild::guild.fetch", guild.fetch_guild)
    _ok(f"Server: {info['name']}")

    bans, members = await asyncio.gather(
        get_bans(guild, scheduler),
        get_members(guild, scheduler),
    )
    _ok(f"Bans:       {len(bans)}")
    _ok(f"Members:    {len(members)}")

    roles = await get_roles(guild, scheduler, guild_id=info["id"])
    _ok(f"Roles:      {len(roles)}")

    channels = await build_channel_tree(guild, options, scheduler)
    _ok(f"Categories: {len(channels.categories)}")
    _ok(f"Channels:   {len(channels.all_channels())}")

    rules = await get_auto_moderation_rules(guild, scheduler)
    _ok(f"Auto-mod:   {len(rules)}")

    emojis = await get_emojis(guild, options, scheduler)
    _ok(f"Emojis:     {len(emojis)}")

    return GuildSnapshot(
        guild_id=info["id"],
        name=info["name"],
        icon_url=guild_icon_url(info),
        created_at=datetime.now(timezone.utc).isoformat(),
        bans=bans,
        members=members,
        roles=roles,
        emojis=emojis,
        channels=channels,
        auto_moderation_rules=rules,
    )


def save_snapshot(snapshot: GuildSnapshot, path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(snapshot.to_dict(), f, indent=2, ensure_ascii=False)
    logger.info("Backup of %s written to %s", snapshot.guild_id, path)


async def run_backup(guild, options: BackupOptions, scheduler: Scheduler) -> BackupReport:
    print("\n📥  Reading Discord server …\n")
    snapshot = await create_backup(guild, options, scheduler)

    print(f"\n    {CYAN}{snapshot.summary()}{RESET}")
    save_snapshot(snapshot, options.output)

    report = BackupReport(snapshot=snapshot, path=options.output, calls=scheduler.stats())
    report.print()
    return report
