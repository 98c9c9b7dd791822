"""
exclusion.py
────────────
The doNotBackup filter.

A channel (or category) is skipped when its name or its id appears in the
configured list.  Matching is exact and case-sensitive.
"""

from __future__ import annotations
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ExclusionSpec:
    channels: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_options(cls, do_not_backup: list[dict] | None) -> ExclusionSpec:
        """Use the first doNotBackup entry that has a "channels" list."""
        for entry in do_not_backup or []:
            if "channels" in entry:
                return cls(channels=tuple(str(c) for c in entry["channels"] or ()))
        return cls()


def should_exclude(resource: dict, spec: ExclusionSpec) -> bool:
    """True if the resource's name or id is listed in `spec`."""
    if not spec.channels:
        return False
    if resource.get("name") in spec.channels:
        return True
    rid = resource.get("id")
    return rid is not None and str(rid) in spec.channels
