"""
models.py
─────────
Backup records.

Every extractor turns one raw Discord collection into a list of these
records; backup.py collects them into a GuildSnapshot.  Records are plain
values: nothing holds on to them once the snapshot is assembled.
to_dict() gives the JSON shape written to disk.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ChannelType(IntEnum):
    """Discord's numeric channel types (the ones a guild can contain)."""

    TEXT = 0
    VOICE = 2
    CATEGORY = 4
    ANNOUNCEMENT = 5
    ANNOUNCEMENT_THREAD = 10
    PUBLIC_THREAD = 11
    PRIVATE_THREAD = 12
    STAGE = 13
    DIRECTORY = 14
    FORUM = 15
    MEDIA = 16

    @classmethod
    def of(cls, raw: int | None) -> ChannelType | None:
        try:
            return cls(raw)
        except ValueError:
            return None


THREAD_TYPES = frozenset(
    {
        ChannelType.ANNOUNCEMENT_THREAD,
        ChannelType.PUBLIC_THREAD,
        ChannelType.PRIVATE_THREAD,
    }
)


# ── guild-level records ───────────────────────────────────────────────────────


@dataclass
class BanRecord:
    user_id: str
    reason: str | None = None

    def to_dict(self) -> dict:
        return {"id": self.user_id, "reason": self.reason}


@dataclass
class MemberRecord:
    user_id: str
    username: str
    discriminator: str
    avatar_url: str | None
    joined_timestamp: int | None  # epoch millis
    role_ids: list[str] = field(default_factory=list)  # order not significant
    is_bot: bool = False

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "username": self.username,
            "discriminator": self.discriminator,
            "avatarUrl": self.avatar_url,
            "joinedTimestamp": self.joined_timestamp,
            "roles": list(self.role_ids),
            "bot": self.is_bot,
        }


@dataclass
class RoleRecord:
    source_id: str
    name: str
    color_hex: str  # "#rrggbb"
    icon_url: str | None
    hoist: bool
    permissions: str  # unsigned 64-bit bitfield, stringified
    mentionable: bool
    position: int  # higher = more senior
    is_everyone: bool = False

    def to_dict(self) -> dict:
        return {
            "oldId": self.source_id,
            "name": self.name,
            "color": self.color_hex,
            "icon": self.icon_url,
            "hoist": self.hoist,
            "permissions": self.permissions,
            "mentionable": self.mentionable,
            "position": self.position,
            "isEveryone": self.is_everyone,
        }


@dataclass
class EmojiRecord:
    name: str
    base64: str | None = None
    url: str | None = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"name": self.name}
        if self.base64 is not None:
            data["base64"] = self.base64
        else:
            data["url"] = self.url
        return data


@dataclass
class AutoModerationRuleRecord:
    name: str
    event_type: int
    trigger_type: int
    trigger_metadata: dict
    actions: list[dict] = field(default_factory=list)
    enabled: bool = True
    exempt_roles: list[dict] = field(default_factory=list)  # {id, name}
    exempt_channels: list[dict] = field(default_factory=list)  # {id, name}

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "eventType": self.event_type,
            "triggerType": self.trigger_type,
            "triggerMetadata": self.trigger_metadata,
            "actions": self.actions,
            "enabled": self.enabled,
            "exemptRoles": self.exempt_roles,
            "exemptChannels": self.exempt_channels,
        }


# ── channel records ───────────────────────────────────────────────────────────


@dataclass
class PermissionOverwriteRecord:
    role_id: str
    role_name: str
    allow: str
    deny: str

    def to_dict(self) -> dict:
        return {
            "roleId": self.role_id,
            "roleName": self.role_name,
            "allow": self.allow,
            "deny": self.deny,
        }


@dataclass
class MessageRecord:
    author_id: str
    username: str
    avatar_url: str | None
    content: str
    embeds: list[dict] = field(default_factory=list)
    attachments: list[dict] = field(default_factory=list)  # {name, url}
    pinned: bool = False
    sent_at: str | None = None  # ISO 8601, as Discord sends it

    def to_dict(self) -> dict:
        return {
            "authorId": self.author_id,
            "username": self.username,
            "avatar": self.avatar_url,
            "content": self.content,
            "embeds": self.embeds,
            "files": self.attachments,
            "pinned": self.pinned,
            "sentAt": self.sent_at,
        }


@dataclass
class ChannelRecord:
    """Fields shared by every channel variant."""

    source_id: str
    name: str
    position: int = 0
    permissions: list[PermissionOverwriteRecord] = field(default_factory=list)

    kind = "channel"

    def to_dict(self) -> dict:
        return {
            "type": self.kind,
            "oldId": self.source_id,
            "name": self.name,
            "position": self.position,
            "permissions": [p.to_dict() for p in self.permissions],
        }


@dataclass
class TextChannelRecord(ChannelRecord):
    topic: str | None = None
    nsfw: bool = False
    rate_limit_per_user: int = 0
    is_news: bool = False
    messages: list[MessageRecord] = field(default_factory=list)

    kind = "text"

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update(
            topic=self.topic,
            nsfw=self.nsfw,
            rateLimitPerUser=self.rate_limit_per_user,
            isNews=self.is_news,
            messages=[m.to_dict() for m in self.messages],
        )
        return data


@dataclass
class VoiceChannelRecord(ChannelRecord):
    bitrate: int | None = None
    user_limit: int = 0
    rtc_region: str | None = None

    kind = "voice"

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update(
            bitrate=self.bitrate,
            userLimit=self.user_limit,
            rtcRegion=self.rtc_region,
        )
        return data


@dataclass
class StageChannelRecord(VoiceChannelRecord):
    topic: str | None = None
    messages: list[MessageRecord] = field(default_factory=list)

    kind = "stage"

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update(
            topic=self.topic,
            messages=[m.to_dict() for m in self.messages],
        )
        return data


@dataclass
class CategoryRecord(ChannelRecord):
    children: list[ChannelRecord] = field(default_factory=list)

    kind = "category"

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["children"] = [c.to_dict() for c in self.children]
        return data


@dataclass
class ChannelTree:
    categories: list[CategoryRecord] = field(default_factory=list)
    others: list[ChannelRecord] = field(default_factory=list)

    def all_channels(self) -> list[ChannelRecord]:
        flat: list[ChannelRecord] = []
        for cat in self.categories:
            flat.extend(cat.children)
        flat.extend(self.others)
        return flat

    def to_dict(self) -> dict:
        return {
            "categories": [c.to_dict() for c in self.categories],
            "others": [c.to_dict() for c in self.others],
        }


# ── snapshot ──────────────────────────────────────────────────────────────────


@dataclass
class GuildSnapshot:
    """
    Everything needed to restore a guild's configuration, as captured at
    `created_at`.  Produced by backup.create_backup().
    """

    guild_id: str
    name: str
    icon_url: str | None = None
    created_at: str = ""

    bans: list[BanRecord] = field(default_factory=list)
    members: list[MemberRecord] = field(default_factory=list)
    roles: list[RoleRecord] = field(default_factory=list)
    emojis: list[EmojiRecord] = field(default_factory=list)
    channels: ChannelTree = field(default_factory=ChannelTree)
    auto_moderation_rules: list[AutoModerationRuleRecord] = field(default_factory=list)

    def summary(self) -> str:
        return (
            f"'{self.name}': "
            f"{len(self.roles)} roles, "
            f"{len(self.channels.categories)} categories, "
            f"{len(self.channels.all_channels())} channels, "
            f"{len(self.members)} members, "
            f"{len(self.bans)} bans"
        )

    def to_dict(self) -> dict:
        return {
            "guildID": self.guild_id,
            "name": self.name,
            "iconURL": self.icon_url,
            "createdTimestamp": self.created_at,
            "bans": [b.to_dict() for b in self.bans],
            "members": [m.to_dict() for m in self.members],
            "roles": [r.to_dict() for r in self.roles],
            "emojis": [e.to_dict() for e in self.emojis],
            "channels": self.channels.to_dict(),
            "autoModerationRules": [r.to_dict() for r in self.auto_moderation_rules],
        }
