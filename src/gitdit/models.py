"""Pydantic models for git-dit configuration data."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator

from .gc.models import CollectionOptions, HeadCollection
from .refs import WILDCARD_REMOTE, RemotePriority

COLLECT_HEADS_VALUES = ("never", "backed-by-remote-head")
CollectHeads = Literal["never", "backed-by-remote-head"]


def _parse_bool(value: object) -> object:
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"true", "yes", "on", "1"}:
            return True
        if normalized in {"false", "no", "off", "0", ""}:
            return False
    return value


class GcSection(BaseModel):
    """Garbage collection configuration.

    Attributes:
        consider_remote: Whether remote-tracking references pin messages.
        collect_heads: Head collection policy (never|backed-by-remote-head).

    Example:
        >>> GcSection(consider_remote="true", collect_heads="backed-by-remote-head")
        GcSection(...)
    """

    model_config = ConfigDict(extra="allow")

    consider_remote: bool = False
    collect_heads: CollectHeads = "never"

    @field_validator("consider_remote", mode="before")
    @classmethod
    def normalize_consider_remote(cls, value: object) -> object:
        if value is None:
            return False
        return _parse_bool(value)

    @field_validator("collect_heads", mode="before")
    @classmethod
    def normalize_collect_heads(cls, value: object) -> object:
        if value is None:
            return "never"
        if isinstance(value, str):
            return value.strip().lower() or "never"
        return value

    def head_collection(self) -> HeadCollection:
        return HeadCollection(self.collect_heads)


class DitConfig(BaseModel):
    """Effective configuration for a repository.

    Attributes:
        remote_priorities: Ordered remote names; ``*`` matches any remote.
        comment_marker: Prefix of comment lines stripped from new messages.
        abbrev: Length of abbreviated ids in listings.
        gc: Garbage collection settings.

    Example:
        >>> DitConfig(remote_priorities="upstream,origin").remote_priorities
        ['upstream', 'origin']
    """

    model_config = ConfigDict(extra="allow")

    remote_priorities: list[str] = [WILDCARD_REMOTE]
    comment_marker: str | None = "#"
    abbrev: int = 7
    gc: GcSection = GcSection()

    @field_validator("remote_priorities", mode="before")
    @classmethod
    def normalize_remote_priorities(cls, value: object) -> object:
        if value is None:
            return [WILDCARD_REMOTE]
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, (list, tuple)):
            entries = [str(item).strip() for item in value if str(item).strip()]
            return entries or [WILDCARD_REMOTE]
        return value

    @field_validator("comment_marker", mode="before")
    @classmethod
    def normalize_comment_marker(cls, value: object) -> object:
        if isinstance(value, str):
            if value.strip().lower() == "auto":
                return "#"
            return value or None
        return value

    @field_validator("abbrev", mode="before")
    @classmethod
    def normalize_abbrev(cls, value: object) -> object:
        if value is None:
            return 7
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized in {"", "auto"}:
                return 7
            if normalized == "no":
                return 40
        return value

    @field_validator("abbrev")
    @classmethod
    def check_abbrev(cls, value: int) -> int:
        if not 4 <= value <= 64:
            raise ValueError("abbrev must be between 4 and 64")
        return value

    def priority(self) -> RemotePriority:
        return RemotePriority.parse(self.remote_priorities)

    def collection_options(self) -> CollectionOptions:
        return CollectionOptions(
            consider_remote=self.gc.consider_remote,
            collect_heads=self.gc.head_collection(),
            priority=self.priority(),
        )
