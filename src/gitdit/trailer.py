"""Trailer model: keys, values and the registry of known metadata keys.

Trailer keys are case-insensitive as a whole. They are canonicalized by
upper-casing the first character and lower-casing the rest, so
``DIT-STATUS``, ``dit-status`` and ``Dit-Status`` all become ``Dit-status``.

Example:
    >>> normalize_key("DIT-Status")
    'Dit-status'
    >>> str(Trailer.create("dit-status", "open"))
    'Dit-status: open'
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator

from .errors import MalformedMessage

DIT_PREFIX = "Dit-"
KEY_PATTERN = r"[A-Za-z0-9][A-Za-z0-9-]*"

_KEY_RE = re.compile(rf"^{KEY_PATTERN}$")
_TRAILER_LINE_RE = re.compile(rf"^(?P<key>{KEY_PATTERN}): (?P<value>.*\S.*)$")
_TRAILER_ARGUMENT_RE = re.compile(rf"^(?P<key>{KEY_PATTERN})\s*[:=]\s*(?P<value>.*)$")


def is_valid_key(key: str) -> bool:
    return bool(_KEY_RE.match(key))


def normalize_key(key: str) -> str:
    """Return the canonical spelling of a trailer key.

    Raises:
        MalformedMessage: If the key does not match the key grammar.
    """
    candidate = key.strip()
    if not is_valid_key(candidate):
        raise MalformedMessage(f"invalid trailer key: {key!r}")
    return candidate[:1].upper() + candidate[1:].lower()


def dit_key(name: str) -> str:
    """Return the canonical ``Dit-`` key for a short metadata name.

    Example:
        >>> dit_key("assignee")
        'Dit-assignee'
        >>> dit_key("Dit-Type")
        'Dit-type'
    """
    normalized = normalize_key(name)
    if normalized.startswith(DIT_PREFIX):
        return normalized
    return normalize_key(f"{DIT_PREFIX}{name.strip()}")


@dataclass(frozen=True, order=True)
class TrailerValue:
    """A trailer value made of one or more lines.

    Values compare by their exact line sequence, so a wrapped value never
    equals the same words on a single line.
    """

    lines: tuple[str, ...]

    @classmethod
    def from_text(cls, text: str) -> TrailerValue:
        return cls(tuple(text.split("\n")))

    @property
    def is_multiline(self) -> bool:
        return len(self.lines) > 1

    def append_line(self, line: str) -> TrailerValue:
        return TrailerValue((*self.lines, line))

    def __str__(self) -> str:
        return "\n".join(self.lines)


@dataclass(frozen=True, order=True)
class Trailer:
    key: str
    value: TrailerValue

    @classmethod
    def create(cls, key: str, value: str | TrailerValue) -> Trailer:
        if not isinstance(value, TrailerValue):
            value = TrailerValue.from_text(value)
        return cls(key=normalize_key(key), value=value)

    @property
    def is_dit(self) -> bool:
        return self.key.startswith(DIT_PREFIX)

    def render_lines(self) -> list[str]:
        """Render the trailer as message lines, continuation lines indented."""
        first, *rest = self.value.lines
        head = f"{self.key}: {first}" if first else f"{self.key}:"
        return [head, *(f" {line}" for line in rest)]

    def __str__(self) -> str:
        return "\n".join(self.render_lines())


def match_trailer_line(line: str) -> Trailer | None:
    """Parse a single message line that starts a trailer.

    Returns ``None`` when the line is not of the form ``Key: value``. The
    value must not be empty, so a prose line such as ``Steps:`` never starts
    a trailer.
    """
    match = _TRAILER_LINE_RE.match(line)
    if match is None:
        return None
    return Trailer.create(match.group("key"), match.group("value").strip())


def parse_trailer(text: str) -> Trailer:
    """Parse a trailer supplied on the command line.

    Both ``Key: value`` and ``Key=value`` are accepted.

    Raises:
        MalformedMessage: If the text is not a trailer.

    Example:
        >>> parse_trailer("Dit-status=closed").value.lines
        ('closed',)
    """
    match = _TRAILER_ARGUMENT_RE.match(text.strip())
    if match is None:
        raise MalformedMessage(f"malformed trailer: {text!r}")
    value = match.group("value").strip()
    if not value:
        raise MalformedMessage(f"trailer {match.group('key')!r} has no value")
    return Trailer.create(match.group("key"), value)


class AccumulationPolicy(Enum):
    """How values of one key are folded along a chain of messages."""

    LATEST = "latest"
    LIST = "list"


@dataclass(frozen=True)
class TrailerSpec:
    key: str
    policy: AccumulationPolicy = AccumulationPolicy.LATEST

    def __post_init__(self) -> None:
        object.__setattr__(self, "key", normalize_key(self.key))


ISSUE_STATUS_SPEC = TrailerSpec(key="Dit-status", policy=AccumulationPolicy.LATEST)
ISSUE_TYPE_SPEC = TrailerSpec(key="Dit-type", policy=AccumulationPolicy.LATEST)
ISSUE_ASSIGNEE_SPEC = TrailerSpec(key="Dit-assignee", policy=AccumulationPolicy.LATEST)
ISSUE_LABEL_SPEC = TrailerSpec(key="Dit-label", policy=AccumulationPolicy.LIST)

DEFAULT_SPECS: tuple[TrailerSpec, ...] = (
    ISSUE_STATUS_SPEC,
    ISSUE_TYPE_SPEC,
    ISSUE_ASSIGNEE_SPEC,
    ISSUE_LABEL_SPEC,
)


@dataclass
class TrailerRegistry:
    """Lookup table of known trailer keys and their accumulation policy."""

    _specs: dict[str, TrailerSpec] = field(default_factory=dict)

    @classmethod
    def from_specs(cls, specs: Iterable[TrailerSpec]) -> TrailerRegistry:
        registry = cls()
        for spec in specs:
            registry.register(spec)
        return registry

    def register(self, spec: TrailerSpec) -> None:
        self._specs[spec.key] = spec

    def get(self, key: str) -> TrailerSpec | None:
        if not is_valid_key(key.strip()):
            return None
        return self._specs.get(normalize_key(key))

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __iter__(self) -> Iterator[TrailerSpec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)


def default_registry() -> TrailerRegistry:
    return TrailerRegistry.from_specs(DEFAULT_SPECS)
