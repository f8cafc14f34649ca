"""Folding trailers along a first-parent chain into issue metadata.

The chain is walked from a starting message (usually the issue head) towards
the issue root. ``Latest`` keys keep the first value seen, so messages closer
to the head shadow older ones. ``List`` keys keep every value in walk order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, Mapping, Union

from .errors import MalformedMessage
from .graph import MessageGraph
from .trailer import (
    AccumulationPolicy,
    Trailer,
    TrailerRegistry,
    TrailerSpec,
    TrailerValue,
    default_registry,
    is_valid_key,
    normalize_key,
)

KeySelector = Union[str, TrailerSpec]


def _canonical_or_none(key: str) -> str | None:
    candidate = key.strip()
    return normalize_key(candidate) if is_valid_key(candidate) else None


@dataclass
class ValueAccumulator:
    policy: AccumulationPolicy
    values: list[TrailerValue] = field(default_factory=list)

    def process(self, value: TrailerValue) -> None:
        if self.policy is AccumulationPolicy.LATEST and self.values:
            return
        self.values.append(value)

    def __iter__(self) -> Iterator[TrailerValue]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)


class MetadataSnapshot(Mapping[str, tuple[TrailerValue, ...]]):
    """Accumulated values per canonical trailer key.

    Keys without any value are absent rather than empty.
    """

    def __init__(
        self,
        values: Mapping[str, tuple[TrailerValue, ...]],
        policies: Mapping[str, AccumulationPolicy],
    ) -> None:
        self._values = dict(values)
        self._policies = dict(policies)

    def __getitem__(self, key: str) -> tuple[TrailerValue, ...]:
        canonical = _canonical_or_none(key)
        if canonical is None:
            raise KeyError(key)
        return self._values[canonical]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"MetadataSnapshot({self.as_dict()!r})"

    def policy(self, key: str) -> AccumulationPolicy | None:
        canonical = _canonical_or_none(key)
        return None if canonical is None else self._policies.get(canonical)

    def latest(self, key: str) -> TrailerValue | None:
        canonical = _canonical_or_none(key)
        values = None if canonical is None else self._values.get(canonical)
        if not values:
            return None
        return values[0]

    def value(self, key: str) -> str | None:
        latest = self.latest(key)
        return None if latest is None else str(latest)

    def as_dict(self) -> dict[str, str | list[str]]:
        rendered: dict[str, str | list[str]] = {}
        for key, values in self._values.items():
            if self._policies.get(key) is AccumulationPolicy.LIST:
                rendered[key] = [str(value) for value in values]
            else:
                rendered[key] = str(values[0])
        return rendered


class Accumulator:
    """Collects values for a fixed set of keys."""

    def __init__(self, specs: Iterable[TrailerSpec]) -> None:
        self._accumulators = {spec.key: ValueAccumulator(spec.policy) for spec in specs}

    @classmethod
    def for_keys(
        cls,
        keys: Iterable[KeySelector] | None = None,
        *,
        registry: TrailerRegistry | None = None,
    ) -> Accumulator:
        """Build an accumulator for the registry's keys or an explicit selection.

        Explicitly requested keys that are not registered use ``Latest``.
        """
        active = registry if registry is not None else default_registry()
        if keys is None:
            return cls(active)
        specs: list[TrailerSpec] = []
        for key in keys:
            if isinstance(key, TrailerSpec):
                specs.append(key)
                continue
            specs.append(active.get(key) or TrailerSpec(key=key))
        return cls(specs)

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(self._accumulators)

    def process(self, trailer: Trailer) -> None:
        accumulator = self._accumulators.get(trailer.key)
        if accumulator is not None:
            accumulator.process(trailer.value)

    def process_all(self, trailers: Iterable[Trailer]) -> None:
        for trailer in trailers:
            self.process(trailer)

    def snapshot(self) -> MetadataSnapshot:
        values = {key: tuple(acc.values) for key, acc in self._accumulators.items() if acc.values}
        policies = {key: acc.policy for key, acc in self._accumulators.items()}
        return MetadataSnapshot(values, policies)


def accumulate(
    graph: MessageGraph,
    start: str,
    root: str,
    keys: Iterable[KeySelector] | None = None,
    *,
    registry: TrailerRegistry | None = None,
) -> MetadataSnapshot:
    """Compute the metadata of the chain from ``start`` down to ``root``.

    Parse and traversal errors propagate; a chain is never accumulated with
    a message skipped.
    """
    accumulator = Accumulator.for_keys(keys, registry=registry)
    for message in graph.first_parent_chain(start, until=root):
        accumulator.process_all(message.trailers)
    return accumulator.snapshot()


class MatchKind(Enum):
    ANY = "any"
    EQUALS = "equals"
    CONTAINS = "contains"


@dataclass(frozen=True)
class ValueMatcher:
    kind: MatchKind = MatchKind.ANY
    operand: str = ""

    def matches(self, value: TrailerValue) -> bool:
        if self.kind is MatchKind.ANY:
            return True
        if self.kind is MatchKind.EQUALS:
            return value == TrailerValue.from_text(self.operand)
        return self.operand in str(value)

    def matches_any(self, values: Iterable[TrailerValue]) -> bool:
        return any(self.matches(value) for value in values)


@dataclass(frozen=True)
class TrailerFilter:
    spec: TrailerSpec
    matcher: ValueMatcher = ValueMatcher()

    def matches(self, snapshot: MetadataSnapshot) -> bool:
        return self.matcher.matches_any(snapshot.get(self.spec.key, ()))


_FILTER_RE = re.compile(r"^(?P<key>[A-Za-z0-9][A-Za-z0-9-]*)(?:(?P<op>[=~])(?P<operand>.*))?$")


def parse_filter(text: str, *, registry: TrailerRegistry | None = None) -> TrailerFilter:
    """Parse ``key``, ``key=value`` or ``key~substring`` into a filter.

    Example:
        >>> parse_filter("Dit-status=open").matcher
        ValueMatcher(kind=<MatchKind.EQUALS: 'equals'>, operand='open')
    """
    match = _FILTER_RE.match(text.strip())
    if match is None:
        raise MalformedMessage(f"malformed metadata filter: {text!r}")
    active = registry if registry is not None else default_registry()
    key = match.group("key")
    spec = active.get(key) or TrailerSpec(key=key)
    op = match.group("op")
    if op is None:
        return TrailerFilter(spec)
    kind = MatchKind.EQUALS if op == "=" else MatchKind.CONTAINS
    return TrailerFilter(spec, ValueMatcher(kind, match.group("operand").strip()))


@dataclass(frozen=True)
class MetadataFilter:
    """Conjunction of trailer filters; an empty filter matches everything."""

    filters: tuple[TrailerFilter, ...] = ()

    @property
    def specs(self) -> tuple[TrailerSpec, ...]:
        return tuple(item.spec for item in self.filters)

    def matches(self, snapshot: MetadataSnapshot) -> bool:
        return all(item.matches(snapshot) for item in self.filters)
