"""Reference naming scheme and conflict-free reference updates.

Local issue references::

    refs/dit/<issue>/head
    refs/dit/<issue>/leaves/<message>

Remote-tracking copies live under ``refs/remotes/<remote>/dit/...`` with the
same suffix. Names are matched exactly and case-sensitively.

Example:
    >>> issue = "a" * 40
    >>> classify(f"refs/dit/{issue}/head").kind
    <RefKind.HEAD: 'head'>
    >>> classify(f"refs/remotes/origin/dit/{issue}/head").remote
    'origin'
    >>> classify("refs/heads/main").kind
    <RefKind.UNRECOGNIZED: 'unrecognized'>
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence

from . import log as dit_log
from .errors import HeadExists, ReferenceConflict
from .store import ObjectStore, StoredRef

DIT_NAMESPACE = "refs/dit"
REMOTES_NAMESPACE = "refs/remotes"
WILDCARD_REMOTE = "*"

_OBJECT_ID = r"[0-9a-f]{40}(?:[0-9a-f]{24})?"
_SCOPE = r"(?:refs/remotes/(?P<remote>[^/]+)/|refs/)dit"
_HEAD_RE = re.compile(rf"^{_SCOPE}/(?P<issue>{_OBJECT_ID})/head$")
_LEAF_RE = re.compile(rf"^{_SCOPE}/(?P<issue>{_OBJECT_ID})/leaves/(?P<leaf>{_OBJECT_ID})$")


def _log_debug(message: str) -> None:
    dit_log.debug(f"[refs] {message}")


class RefKind(Enum):
    HEAD = "head"
    LEAF = "leaf"
    UNRECOGNIZED = "unrecognized"


class RefType(Enum):
    """Selector for issue reference queries."""

    ANY = "any"
    HEAD = "head"
    LEAF = "leaf"

    def accepts(self, kind: RefKind) -> bool:
        if kind is RefKind.UNRECOGNIZED:
            return False
        if self is RefType.ANY:
            return True
        return self.value == kind.value


class RefScope(Enum):
    LOCAL = "local"
    REMOTE = "remote"
    ALL = "all"

    def accepts(self, remote: str | None) -> bool:
        if self is RefScope.ALL:
            return True
        if self is RefScope.LOCAL:
            return remote is None
        return remote is not None


@dataclass(frozen=True)
class ClassifiedRef:
    name: str
    kind: RefKind
    issue: str | None = None
    leaf: str | None = None
    remote: str | None = None

    @property
    def is_local(self) -> bool:
        return self.remote is None


@dataclass(frozen=True)
class IssueRef:
    """A recognized issue reference together with its target."""

    name: str
    target: str
    kind: RefKind
    issue: str
    leaf: str | None = None
    remote: str | None = None

    @property
    def is_local(self) -> bool:
        return self.remote is None

    @classmethod
    def from_stored(cls, stored: StoredRef) -> IssueRef | None:
        classified = classify(stored.name)
        if classified.kind is RefKind.UNRECOGNIZED or classified.issue is None:
            return None
        return cls(
            name=stored.name,
            target=stored.target,
            kind=classified.kind,
            issue=classified.issue,
            leaf=classified.leaf,
            remote=classified.remote,
        )


def classify(name: str) -> ClassifiedRef:
    """Classify a reference name as an issue head, an issue leaf, or neither."""
    match = _HEAD_RE.match(name)
    if match is not None:
        return ClassifiedRef(
            name=name, kind=RefKind.HEAD, issue=match.group("issue"), remote=match.group("remote")
        )
    match = _LEAF_RE.match(name)
    if match is not None:
        return ClassifiedRef(
            name=name,
            kind=RefKind.LEAF,
            issue=match.group("issue"),
            leaf=match.group("leaf"),
            remote=match.group("remote"),
        )
    return ClassifiedRef(name=name, kind=RefKind.UNRECOGNIZED)


def namespace(remote: str | None = None) -> str:
    if remote is None:
        return DIT_NAMESPACE
    return f"{REMOTES_NAMESPACE}/{remote}/dit"


def issue_prefix(issue: str, remote: str | None = None) -> str:
    return f"{namespace(remote)}/{issue}"


def head_ref_name(issue: str, remote: str | None = None) -> str:
    return f"{issue_prefix(issue, remote)}/head"


def leaf_ref_name(issue: str, message: str, remote: str | None = None) -> str:
    return f"{issue_prefix(issue, remote)}/leaves/{message}"


def issue_refspec(remote: str, issue: str) -> str:
    """Refspec fetching one issue's references into remote-tracking refs.

    Example:
        >>> issue_refspec("origin", "abc")
        '+refs/dit/abc/*:refs/remotes/origin/dit/abc/*'
    """
    return f"+{issue_prefix(issue)}/*:{issue_prefix(issue, remote)}/*"


def all_issues_refspec(remote: str) -> str:
    """Refspec fetching every issue reference of a remote."""
    return f"+{DIT_NAMESPACE}/*:{namespace(remote)}/*"


@dataclass(frozen=True)
class RemotePriority:
    """Ordered remote names used to pick between competing references.

    Local references always win (priority 0). A remote's priority is the
    1-based position of the first entry naming it or ``*``; remotes matching
    no entry are ignored.
    """

    entries: tuple[str, ...] = (WILDCARD_REMOTE,)

    @classmethod
    def parse(cls, value: str | Sequence[str] | None) -> RemotePriority:
        """Build a priority list from ``origin,*`` style text or a sequence.

        Example:
            >>> RemotePriority.parse("upstream, origin").entries
            ('upstream', 'origin')
        """
        if value is None:
            return cls()
        items = value.split(",") if isinstance(value, str) else list(value)
        entries = tuple(item.strip() for item in items if item and item.strip())
        return cls(entries or (WILDCARD_REMOTE,))

    def priority_for_remote(self, remote: str | None) -> int | None:
        if remote is None:
            return 0
        for position, entry in enumerate(self.entries, start=1):
            if entry == remote or entry == WILDCARD_REMOTE:
                return position
        return None

    def includes(self, remote: str | None) -> bool:
        return self.priority_for_remote(remote) is not None

    def select_ref(self, refs: Iterable[IssueRef]) -> IssueRef | None:
        """Return the reference with the best priority, ties broken by name."""
        ranked = [
            (priority, ref.name, ref)
            for ref in refs
            if (priority := self.priority_for_remote(ref.remote)) is not None
        ]
        if not ranked:
            return None
        return min(ranked, key=lambda item: (item[0], item[1]))[2]


class ReferenceScheme:
    """Reads and updates issue references in a store."""

    def __init__(self, store: ObjectStore) -> None:
        self.store = store

    def references(self, prefix: str = "refs") -> list[IssueRef]:
        refs: list[IssueRef] = []
        for stored in self.store.list_references(prefix):
            issue_ref = IssueRef.from_stored(stored)
            if issue_ref is not None:
                refs.append(issue_ref)
        return refs

    def issue_refs(
        self,
        issue: str,
        ref_type: RefType = RefType.ANY,
        scope: RefScope = RefScope.ALL,
    ) -> list[IssueRef]:
        prefixes: list[str] = []
        if scope is not RefScope.REMOTE:
            prefixes.append(issue_prefix(issue))
        if scope is not RefScope.LOCAL:
            prefixes.append(REMOTES_NAMESPACE)
        refs = [ref for prefix in prefixes for ref in self.references(prefix)]
        return [
            ref
            for ref in refs
            if ref.issue == issue and ref_type.accepts(ref.kind) and scope.accepts(ref.remote)
        ]

    def target_of(self, name: str) -> str | None:
        for stored in self.store.list_references(name):
            if stored.name == name:
                return stored.target
        return None

    def update_head(self, issue: str, new_target: str, *, replace_existing: bool = False) -> str | None:
        """Point the local head of ``issue`` at ``new_target``.

        Returns the previous target, or ``None`` if the head was created.

        Raises:
            HeadExists: If a head exists and ``replace_existing`` is false.
            ReferenceConflict: If the head changed between read and update.
        """
        name = head_ref_name(issue)
        observed = self.target_of(name)
        if observed is not None and not replace_existing:
            raise HeadExists(name, observed)
        if not self.store.compare_and_swap_reference(name, observed, new_target):
            raise ReferenceConflict(name, f"expected {observed or 'no reference'}")
        _log_debug(f"head updated issue={issue} old={observed} new={new_target}")
        return observed

    def create_leaf(self, issue: str, message: str) -> str:
        """Create the leaf reference pinning ``message``; a repeat call is a no-op.

        Raises:
            ReferenceConflict: If the leaf exists and points elsewhere.
        """
        name = leaf_ref_name(issue, message)
        if self.store.compare_and_swap_reference(name, None, message):
            _log_debug(f"leaf created issue={issue} message={message}")
            return name
        current = self.target_of(name)
        if current == message:
            return name
        raise ReferenceConflict(name, f"points to {current or 'nothing'} instead of {message}")

    def delete(self, name: str, expected: str | None = None) -> bool:
        return self.store.delete_reference(name, expected)
