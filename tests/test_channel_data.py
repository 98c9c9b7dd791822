import asyncio

from config import BackupOptions
from extractors.channel_data import (
    fetch_stage_channel_data,
    fetch_text_channel_data,
    fetch_voice_channel_data,
)
from extractors.permissions import snapshot_permissions
from models import ChannelType
from scheduler import Scheduler
from tests.fakes import FakeGuild, channel


def _message(mid, content, pinned=False):
    return {
        "id": mid,
        "author": {"id": "u1", "username": "ann", "avatar": None},
        "content": content,
        "embeds": [],
        "attachments": [{"filename": "cat.png", "url": "https://cdn.example/cat.png"}],
        "pinned": pinned,
        "timestamp": f"2024-01-0{mid}T00:00:00+00:00",
    }


def test_permissions_keep_resolvable_role_overwrites():
    guild = FakeGuild()
    guild.role_cache = {"r1": {"id": "r1", "name": "Mods"}}
    ch = channel(
        "1",
        "staff",
        permission_overwrites=[
            {"id": "r1", "type": 0, "allow": "1024", "deny": "2048"},
            {"id": "r-deleted", "type": 0, "allow": "1", "deny": "0"},
            {"id": "u1", "type": 1, "allow": "8", "deny": "0"},
        ],
    )
    (ow,) = snapshot_permissions(ch, guild)
    assert (ow.role_id, ow.role_name, ow.allow, ow.deny) == ("r1", "Mods", "1024", "2048")
    assert ow.to_dict() == {"roleId": "r1", "roleName": "Mods", "allow": "1024", "deny": "2048"}


def test_text_channel_messages_oldest_first_and_limited():
    guild = FakeGuild(messages={"5": [_message("3", "newest", pinned=True), _message("2", "middle"), _message("1", "oldest")]})
    ch = channel("5", "general", topic="hi", nsfw=True, rate_limit_per_user=10)
    scheduler = Scheduler()

    record = asyncio.run(
        fetch_text_channel_data(ch, guild, BackupOptions(max_messages_per_channel=2), scheduler)
    )

    assert record.topic == "hi"
    assert record.nsfw
    assert record.rate_limit_per_user == 10
    assert not record.is_news
    assert [m.content for m in record.messages] == ["middle", "newest"]
    assert record.messages[1].pinned
    assert record.messages[0].attachments == [{"name": "cat.png", "url": "https://cdn.example/cat.png"}]
    assert scheduler.stats() == {"fetchMessages::channel.messages.fetch": 1}


def test_message_fetch_disabled():
    guild = FakeGuild(messages={"5": [_message("1", "x")]})
    scheduler = Scheduler()
    record = asyncio.run(
        fetch_text_channel_data(channel("5", "general"), guild, BackupOptions(max_messages_per_channel=0), scheduler)
    )
    assert record.messages == []
    assert scheduler.stats() == {}


def test_voice_channel_needs_no_fetch():
    guild = FakeGuild()
    ch = channel("9", "Lounge", ChannelType.VOICE, position=4, bitrate=96000, user_limit=5, rtc_region="rotterdam")
    record = fetch_voice_channel_data(ch, guild)

    assert record.to_dict() == {
        "type": "voice",
        "oldId": "9",
        "name": "Lounge",
        "position": 4,
        "permissions": [],
        "bitrate": 96000,
        "userLimit": 5,
        "rtcRegion": "rotterdam",
    }
    assert guild.calls == []


def test_stage_channel_has_topic_and_messages():
    guild = FakeGuild(messages={"8": [_message("1", "welcome")]})
    ch = channel("8", "Town Hall", ChannelType.STAGE, topic="Q&A", bitrate=64000)
    record = asyncio.run(fetch_stage_channel_data(ch, guild, BackupOptions(), Scheduler()))

    data = record.to_dict()
    assert data["type"] == "stage"
    assert data["topic"] == "Q&A"
    assert data["bitrate"] == 64000
    assert [m["content"] for m in data["messages"]] == ["welcome"]
