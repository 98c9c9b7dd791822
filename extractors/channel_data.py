"""
extractors/channel_data.py
──────────────────────────
Per-type channel extractors used by the channel tree builder.

Text and stage channels may carry message history, fetched through the
scheduler; voice channels are built from the channel object alone.
"""

from __future__ import annotations

from config import BackupOptions
from discord_reader import avatar_url
from extractors.permissions import snapshot_permissions
from models import (
    ChannelType,
    MessageRecord,
    StageChannelRecord,
    TextChannelRecord,
    VoiceChannelRecord,
)
from scheduler import Scheduler


def _message(raw: dict) -> MessageRecord:
    author = raw.get("author") or {}
    return MessageRecord(
        author_id=author.get("id", ""),
        username=author.get("username", ""),
        avatar_url=avatar_url(author) if author else None,
        content=raw.get("content", ""),
        embeds=list(raw.get("embeds") or []),
        attachments=[
            {"name": a.get("filename"), "url": a.get("url")}
            for a in raw.get("attachments") or []
        ],
        pinned=bool(raw.get("pinned")),
        sent_at=raw.get("timestamp"),
    )


async def fetch_messages(
    channel: dict, guild, options: BackupOptions, scheduler: Scheduler
) -> list[MessageRecord]:
    """Up to max_messages_per_channel of the newest messages, oldest first."""
    limit = options.max_messages_per_channel
    if limit <= 0:
        return []
    raw = await scheduler.schedule(
        "fetchMessages::channel.messages.fetch",
        lambda: guild.fetch_messages(channel["id"], limit),
    )
    return [_message(m) for m in reversed(raw)]


async def fetch_text_channel_data(
    channel: dict, guild, options: BackupOptions, scheduler: Scheduler
) -> TextChannelRecord:
    return TextChannelRecord(
        source_id=channel["id"],
        name=channel["name"],
        position=channel.get("position", 0),
        permissions=snapshot_permissions(channel, guild),
        topic=channel.get("topic") or None,
        nsfw=bool(channel.get("nsfw")),
        rate_limit_per_user=channel.get("rate_limit_per_user") or 0,
        is_news=channel.get("type") == ChannelType.ANNOUNCEMENT,
        messages=await fetch_messages(channel, guild, options, scheduler),
    )


def fetch_voice_channel_data(channel: dict, guild) -> VoiceChannelRecord:
    return VoiceChannelRecord(
        source_id=channel["id"],
        name=channel["name"],
        position=channel.get("position", 0),
        permissions=snapshot_permissions(channel, guild),
        bitrate=channel.get("bitrate"),
        user_limit=channel.get("user_limit") or 0,
        rtc_region=channel.get("rtc_region"),
    )


async def fetch_stage_channel_data(
    channel: dict, guild, options: BackupOptions, scheduler: Scheduler
) -> StageChannelRecord:
    return StageChannelRecord(
        source_id=channel["id"],
        name=channel["name"],
        position=channel.get("position", 0),
        permissions=snapshot_permissions(channel, guild),
        bitrate=channel.get("bitrate"),
        user_limit=channel.get("user_limit") or 0,
        rtc_region=channel.get("rtc_region"),
        topic=channel.get("topic") or None,
        messages=await fetch_messages(channel, guild, options, scheduler),
    )
