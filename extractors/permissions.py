"""
extractors/permissions.py
─────────────────────────
Snapshot of a channel's permission overwrites.

Only role overwrites are kept, keyed by role name so they can be re-bound
to the freshly created roles on restore.  Member overwrites are dropped,
and so are overwrites for roles that no longer exist.
"""

from __future__ import annotations

from models import PermissionOverwriteRecord

# Discord overwrite target type for roles
_OW_ROLE = 0


def snapshot_permissions(channel: dict, guild) -> list[PermissionOverwriteRecord]:
    """Role overwrites of `channel`, resolved against the guild's role cache."""
    records = []
    for ow in channel.get("permission_overwrites") or []:
        if ow.get("type") != _OW_ROLE:
            continue
        role = guild.role_cache.get(ow["id"])
        if role is None:
            continue  # deleted role
        records.append(
            PermissionOverwriteRecord(
                role_id=ow["id"],
                role_name=role["name"],
                allow=str(ow.get("allow", "0")),
                deny=str(ow.get("deny", "0")),
            )
        )
    return records
