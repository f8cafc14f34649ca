"""GC option and report models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from ..refs import RemotePriority


class HeadCollection(Enum):
    """When a local head reference may itself be collected."""

    NEVER = "never"
    BACKED_BY_REMOTE_HEAD = "backed-by-remote-head"


@dataclass(frozen=True)
class CollectionOptions:
    """Knobs for computing collectible references.

    Attributes:
        consider_remote: Let remote-tracking references of prioritized
            remotes pin messages, so local leaves they cover are collected.
        collect_heads: Whether the local head may be collected.
        priority: Remote priority list; ``None`` uses the index's list.
    """

    consider_remote: bool = False
    collect_heads: HeadCollection = HeadCollection.NEVER
    priority: RemotePriority | None = None


@dataclass
class GcReport:
    """Outcome of a collection pass; deletions are independent of each other."""

    dry_run: bool
    planned: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed
