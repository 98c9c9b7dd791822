import asyncio
import json

from backup import create_backup, run_backup, save_snapshot
from config import BackupOptions
from models import ChannelType
from scheduler import Scheduler
from tests.fakes import FakeGuild, channel, role


def _guild():
    return FakeGuild(
        guild_id="1000",
        name="Test Server",
        bans=[{"user": {"id": "66"}, "reason": "raid"}],
        members=[
            {
                "user": {"id": "7", "username": "ann", "discriminator": "0", "avatar": None},
                "joined_at": "2021-01-01T00:00:00+00:00",
                "roles": ["11"],
            }
        ],
        roles=[role("1000", "@everyone"), role("11", "Mod", position=1)],
        emojis=[{"id": "5", "name": "wave", "animated": False}],
        channels=[
            channel("20", "Info", ChannelType.CATEGORY),
            channel("21", "rules", parent="20"),
            channel("22", "lobby"),
        ],
        rules=[
            {
                "name": "links",
                "event_type": 1,
                "trigger_type": 1,
                "trigger_metadata": {},
                "actions": [{"type": 2, "metadata": {"channel_id": "22"}}],
                "enabled": True,
                "exempt_roles": ["11"],
                "exempt_channels": ["21"],
            }
        ],
    )


def test_create_backup_assembles_every_collection():
    options = BackupOptions(max_messages_per_channel=0)
    snapshot = asyncio.run(create_backup(_guild(), options, Scheduler()))

    assert snapshot.guild_id == "1000"
    assert snapshot.name == "Test Server"
    assert [b.user_id for b in snapshot.bans] == ["66"]
    assert [m.user_id for m in snapshot.members] == ["7"]
    assert [r.name for r in snapshot.roles] == ["Mod", "@everyone"]
    assert snapshot.roles[1].is_everyone
    assert [e.name for e in snapshot.emojis] == ["wave"]
    assert [c.name for c in snapshot.channels.categories] == ["Info"]
    assert [c.name for c in snapshot.channels.others] == ["lobby"]

    (rule,) = snapshot.auto_moderation_rules
    assert rule.actions[0]["metadata"]["channel_name"] == "lobby"
    assert rule.exempt_roles == [{"id": "11", "name": "Mod"}]
    assert rule.exempt_channels == [{"id": "21", "name": "rules"}]


def test_summary_mentions_counts():
    snapshot = asyncio.run(create_backup(_guild(), BackupOptions(max_messages_per_channel=0), Scheduler()))
    summary = snapshot.summary()
    assert "'Test Server'" in summary
    assert "2 roles" in summary
    assert "1 categories" in summary
    assert "2 channels" in summary


def test_save_snapshot_writes_json(tmp_path):
    snapshot = asyncio.run(create_backup(_guild(), BackupOptions(max_messages_per_channel=0), Scheduler()))
    path = tmp_path / "backup.json"
    save_snapshot(snapshot, str(path))

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["guildID"] == "1000"
    assert data["bans"] == [{"id": "66", "reason": "raid"}]
    assert data["channels"]["categories"][0]["children"][0]["name"] == "rules"
    assert data["channels"]["others"][0]["type"] == "text"
    assert data["emojis"] == [{"name": "wave", "url": "https://cdn.discordapp.com/emojis/5.png"}]
    assert data["roles"][0]["oldId"] == "11"


def test_run_backup_reports(tmp_path, capsys):
    options = BackupOptions(max_messages_per_channel=0, output=str(tmp_path / "out.json"))
    scheduler = Scheduler()
    report = asyncio.run(run_backup(_guild(), options, scheduler))

    assert (tmp_path / "out.json").exists()
    assert report.calls == scheduler.stats()
    assert report.calls["getChannels::guild.channels.fetch"] == 1
    assert "Backup Report" in capsys.readouterr().out
