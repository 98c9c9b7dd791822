"""
extractors/resources.py
───────────────────────
Guild-level collections: bans, members, roles, emojis and auto-moderation
rules.

Each extractor issues a single scheduled fetch for its collection and
projects the raw Discord objects into records.
"""

from __future__ import annotations
import asyncio
import base64
import copy
import logging
from datetime import datetime
from typing import Callable

from config import BackupOptions
from discord_reader import avatar_url, emoji_url, fetch_image, role_icon_url
from errors import RemoteFetchError
from models import AutoModerationRuleRecord, BanRecord, EmojiRecord, MemberRecord, RoleRecord
from scheduler import Scheduler

logger = logging.getLogger(__name__)

MAX_EMOJIS = 50


def _epoch_millis(iso: str | None) -> int | None:
    if not iso:
        return None
    try:
        return int(datetime.fromisoformat(iso).timestamp() * 1000)
    except ValueError:
        logger.warning("Unparseable timestamp %r", iso)
        return None


async def get_bans(guild, scheduler: Scheduler) -> list[BanRecord]:
    bans = await scheduler.schedule("getBans::guild.bans.fetch", guild.fetch_bans)
    return [BanRecord(user_id=b["user"]["id"], reason=b.get("reason")) for b in bans]


async def get_members(guild, scheduler: Scheduler) -> list[MemberRecord]:
    members = await scheduler.schedule(
        "getMembers::guild.members.fetch", guild.fetch_members
    )
    return [
        MemberRecord(
            user_id=m["user"]["id"],
            username=m["user"].get("username", ""),
            discriminator=m["user"].get("discriminator", "0"),
            avatar_url=avatar_url(m["user"]),
            joined_timestamp=_epoch_millis(m.get("joined_at")),
            role_ids=list(m.get("roles") or []),
            is_bot=bool(m["user"].get("bot")),
        )
        for m in members
    ]


async def get_roles(guild, scheduler: Scheduler, guild_id: str) -> list[RoleRecord]:
    """Non-managed roles, most senior first.  `guild_id` identifies @everyone."""
    roles = await scheduler.schedule("getRoles::guild.roles.fetch", guild.fetch_roles)
    kept = sorted(
        (r for r in roles if not r.get("managed")),
        key=lambda r: r.get("position", 0),
        reverse=True,
    )
    return [
        RoleRecord(
            source_id=r["id"],
            name=r["name"],
            color_hex=f"#{r.get('color') or 0:06x}",
            icon_url=role_icon_url(r),
            hoist=bool(r.get("hoist")),
            permissions=str(int(r.get("permissions", 0))),
            mentionable=bool(r.get("mentionable")),
            position=r.get("position", 0),
            is_everyone=str(r["id"]) == str(guild_id),
        )
        for r in kept
    ]


async def get_emojis(
    guild,
    options: BackupOptions,
    scheduler: Scheduler,
    image_fetcher: Callable[[str], bytes] = fetch_image,
) -> list[EmojiRecord]:
    """
    The first MAX_EMOJIS emojis of the guild, in the order Discord lists them.

    The collection is cut to MAX_EMOJIS before any image is downloaded.  With
    saveImages == "base64" the images are fetched concurrently (bounded by the
    scheduler) and inlined; an emoji whose image cannot be fetched is left out
    and logged.  Otherwise only the CDN url is stored.
    """
    emojis = await scheduler.schedule("getEmojis::guild.emojis.fetch", guild.fetch_emojis)
    emojis = list(emojis)[:MAX_EMOJIS]

    if not options.inline_images:
        return [EmojiRecord(name=e["name"], url=emoji_url(e)) for e in emojis]

    async def inline(emoji: dict) -> EmojiRecord | None:
        url = emoji_url(emoji)
        try:
            raw = await scheduler.schedule(
                f"getEmojis::emoji.image:{emoji['id']}",
                lambda: asyncio.to_thread(image_fetcher, url),
            )
        except RemoteFetchError as exc:
            logger.warning("Emoji %s skipped: %s", emoji["name"], exc)
            return None
        return EmojiRecord(name=emoji["name"], base64=base64.b64encode(raw).decode("ascii"))

    results = await asyncio.gather(*(inline(e) for e in emojis))
    return [r for r in results if r is not None]


def _resolve_action(action: dict, guild) -> dict:
    copied = copy.deepcopy(action)
    metadata = copied.setdefault("metadata", {})
    channel_id = metadata.get("channel_id")
    if channel_id:
        channel = guild.channel_cache.get(channel_id)
        if channel is not None:
            metadata["channel_name"] = channel["name"]
        else:
            logger.info("Auto-mod action points at deleted channel %s", channel_id)
    return copied


def _resolve_exempt(ids: list | None, cache: dict[str, dict]) -> list[dict]:
    resolved = []
    for rid in ids or []:
        target = cache.get(rid) if rid is not None else None
        if target is None:
            continue  # deleted role / channel
        resolved.append({"id": rid, "name": target["name"]})
    return resolved


async def get_auto_moderation_rules(guild, scheduler: Scheduler) -> list[AutoModerationRuleRecord]:
    """
    Channel and role ids are resolved to names with the guild's local caches,
    so roles and channels must have been fetched first.
    """
    rules = await scheduler.schedule(
        "getAutoModerationRules::guild.autoModerationRules.fetch",
        guild.fetch_auto_moderation_rules,
    )
    return [
        AutoModerationRuleRecord(
            name=rule["name"],
            event_type=rule.get("event_type"),
            trigger_type=rule.get("trigger_type"),
            trigger_metadata=copy.deepcopy(rule.get("trigger_metadata") or {}),
            actions=[_resolve_action(a, guild) for a in rule.get("actions") or []],
            enabled=bool(rule.get("enabled")),
            exempt_roles=_resolve_exempt(rule.get("exempt_roles"), guild.role_cache),
            exempt_channels=_resolve_exempt(rule.get("exempt_channels"), guild.channel_cache),
        )
        for rule in rules
    ]
