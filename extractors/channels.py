"""
extractors/channels.py
──────────────────────
Rebuilds the guild's channel hierarchy.

    ChannelTree
      categories:  CategoryRecord (by position)
                     children: text / voice / stage records (by position)
      others:      channels without a category (by position)

Channels listed in doNotBackup are skipped.  An excluded category takes
all of its children with it.  Threads are never part of the tree.

Channels are dispatched to a per-type extractor through one of two tables.
Under a category the dispatch is exact and unknown types are skipped with
a warning; at the top level every known type that is not text is stored
as voice (stage and forum channels included).
"""

from __future__ import annotations
import logging
from typing import Awaitable, Callable

from config import BackupOptions
from exclusion import ExclusionSpec, should_exclude
from extractors.channel_data import (
    fetch_stage_channel_data,
    fetch_text_channel_data,
    fetch_voice_channel_data,
)
from extractors.permissions import snapshot_permissions
from models import THREAD_TYPES, CategoryRecord, ChannelRecord, ChannelTree, ChannelType
from scheduler import Scheduler

logger = logging.getLogger(__name__)

Extractor = Callable[[dict, object, BackupOptions, Scheduler], Awaitable[ChannelRecord]]


async def _text(channel, guild, options, scheduler):
    return await fetch_text_channel_data(channel, guild, options, scheduler)


async def _voice(channel, guild, options, scheduler):
    return fetch_voice_channel_data(channel, guild)


async def _stage(channel, guild, options, scheduler):
    return await fetch_stage_channel_data(channel, guild, options, scheduler)


CATEGORY_CHILD_EXTRACTORS: dict[ChannelType, Extractor] = {
    ChannelType.TEXT: _text,
    ChannelType.ANNOUNCEMENT: _text,
    ChannelType.VOICE: _voice,
    ChannelType.STAGE: _stage,
}

TOP_LEVEL_EXTRACTORS: dict[ChannelType, Extractor] = {
    ChannelType.TEXT: _text,
    ChannelType.ANNOUNCEMENT: _text,
}
TOP_LEVEL_FALLBACK: Extractor = _voice


def category_child_extractor(raw_type: int) -> Extractor | None:
    ctype = ChannelType.of(raw_type)
    return CATEGORY_CHILD_EXTRACTORS.get(ctype) if ctype is not None else None


def top_level_extractor(raw_type: int) -> Extractor | None:
    ctype = ChannelType.of(raw_type)
    if ctype is None:
        return None
    return TOP_LEVEL_EXTRACTORS.get(ctype, TOP_LEVEL_FALLBACK)


def _by_position(channels: list[dict]) -> list[dict]:
    return sorted(channels, key=lambda c: c.get("position", 0))


def _unsupported(channel: dict) -> None:
    logger.warning(
        "Unsupported channel type: %s (#%s)", channel.get("type"), channel.get("name")
    )


def _is_thread(channel: dict) -> bool:
    return ChannelType.of(channel.get("type")) in THREAD_TYPES


async def assemble_channel_tree(
    channels: list[dict],
    guild,
    exclusions: ExclusionSpec,
    options: BackupOptions,
    scheduler: Scheduler,
) -> ChannelTree:
    tree = ChannelTree()

    categories = _by_position(
        [c for c in channels if c.get("type") == ChannelType.CATEGORY]
    )

    for category in categories:
        if should_exclude(category, exclusions):
            logger.info("Skipping excluded category %s", category.get("name"))
            continue

        record = CategoryRecord(
            source_id=category["id"],
            name=category["name"],
            position=category.get("position", 0),
            permissions=snapshot_permissions(category, guild),
        )
        children = _by_position(
            [
                c
                for c in channels
                if c.get("parent_id") == category["id"]
                and not should_exclude(c, exclusions)
            ]
        )
        for child in children:
            extract = category_child_extractor(child.get("type"))
            if extract is None:
                _unsupported(child)
                continue
            data = await extract(child, guild, options, scheduler)
            data.source_id = child["id"]
            record.children.append(data)

        tree.categories.append(record)

    # a parent that is not a fetched category counts as no parent
    category_ids = {c["id"] for c in categories}
    others = _by_position(
        [
            c
            for c in channels
            if c.get("parent_id") not in category_ids
            and c.get("type") != ChannelType.CATEGORY
            and not _is_thread(c)
            and not should_exclude(c, exclusions)
        ]
    )
    for channel in others:
        extract = top_level_extractor(channel.get("type"))
        if extract is None:
            _unsupported(channel)
            continue
        data = await extract(channel, guild, options, scheduler)
        data.source_id = channel["id"]
        tree.others.append(data)

    return tree


async def build_channel_tree(
    guild, options: BackupOptions, scheduler: Scheduler
) -> ChannelTree:
    """Fetch every channel of the guild and rebuild the category tree."""
    channels = await scheduler.schedule(
        "getChannels::guild.channels.fetch", guild.fetch_channels
    )
    return await assemble_channel_tree(
        channels, guild, options.exclusions, options, scheduler
    )
