"""Issue discovery, issue handles and message creation.

An issue has no record of its own. It is the id of its initial message and
exists as long as some head reference names that id.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from . import log as dit_log
from .accumulation import KeySelector, MetadataSnapshot, accumulate
from .errors import NoIssueFound, ReferenceConflict
from .graph import MessageGraph, MessageWalk, TraversalMode
from .message import DEFAULT_COMMENT_MARKER, Message, compose_message, reply_subject, strip_message
from .refs import (
    IssueRef,
    ReferenceScheme,
    RefKind,
    RefScope,
    RefType,
    RemotePriority,
    head_ref_name,
)
from .store import ObjectStore
from .trailer import Trailer, TrailerRegistry


def _log_debug(message: str) -> None:
    dit_log.debug(f"[issues] {message}")


class Issue:
    """Handle for the issue rooted at ``id``."""

    def __init__(self, index: IssueIndex, issue_id: str) -> None:
        self.index = index
        self.id = issue_id

    def __repr__(self) -> str:
        return f"Issue({self.id!r})"

    def __str__(self) -> str:
        return self.id

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Issue) and other.id == self.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def scheme(self) -> ReferenceScheme:
        return self.index.scheme

    @property
    def graph(self) -> MessageGraph:
        return self.index.graph

    def initial_message(self) -> Message:
        return self.graph.message(self.id)

    def heads(self) -> list[IssueRef]:
        return self.scheme.issue_refs(self.id, RefType.HEAD)

    def local_head(self) -> IssueRef | None:
        heads = self.scheme.issue_refs(self.id, RefType.HEAD, RefScope.LOCAL)
        return heads[0] if heads else None

    def select_head(self, priority: RemotePriority | None = None) -> IssueRef | None:
        active = priority if priority is not None else self.index.priority
        return active.select_ref(self.heads())

    def leaves(self) -> list[IssueRef]:
        return self.scheme.issue_refs(self.id, RefType.LEAF)

    def local_refs(self, ref_type: RefType = RefType.ANY) -> list[IssueRef]:
        return self.scheme.issue_refs(self.id, ref_type, RefScope.LOCAL)

    def remote_refs(self, ref_type: RefType = RefType.ANY) -> list[IssueRef]:
        return self.scheme.issue_refs(self.id, ref_type, RefScope.REMOTE)

    def messages(self) -> MessageWalk:
        """Walk every message of the issue, stopping at the initial message.

        Every parent is followed, but only into commits descending from the
        initial message. Commits added with ``--reference`` from outside the
        issue are never descended into or parsed.
        """
        targets = {ref.target for ref in self.scheme.issue_refs(self.id)}
        members = self.graph.descendants(
            self.id, self.graph.ancestors(sorted(targets), until=self.id)
        )
        starts = sorted(targets & members) or [self.id]
        return self.graph.walk(starts, TraversalMode.ALL_PARENTS, until=self.id, within=members)

    def add_message(self, raw: bytes | str, parents: Sequence[str]) -> str:
        """Store a new message in this issue and pin it with a leaf reference."""
        message_id = self.index.store.create_message(
            list(parents), self.index.normalized_bytes(raw)
        )
        self.scheme.create_leaf(self.id, message_id)
        _log_debug(f"message added issue={self.id} message={message_id}")
        return message_id

    def update_head(self, message: str, *, replace_existing: bool = True) -> str | None:
        return self.scheme.update_head(self.id, message, replace_existing=replace_existing)

    def metadata(
        self,
        keys: Iterable[KeySelector] | None = None,
        *,
        priority: RemotePriority | None = None,
        registry: TrailerRegistry | None = None,
    ) -> MetadataSnapshot:
        """Accumulate metadata from the preferred head down to the initial message."""
        head = self.select_head(priority)
        start = head.target if head is not None else self.id
        return accumulate(self.graph, start, self.id, keys, registry=registry)


class IssueIndex:
    """Maps messages and references to issues."""

    def __init__(
        self,
        store: ObjectStore,
        *,
        priority: RemotePriority | None = None,
        comment_marker: str | None = DEFAULT_COMMENT_MARKER,
        graph: MessageGraph | None = None,
    ) -> None:
        self.store = store
        self.priority = priority if priority is not None else RemotePriority()
        self.comment_marker = comment_marker
        self.graph = graph if graph is not None else MessageGraph(
            store, comment_marker=comment_marker
        )
        self.scheme = ReferenceScheme(store)

    def normalized_bytes(self, raw: bytes | str) -> bytes:
        return strip_message(raw, comment_marker=self.comment_marker).encode("utf-8")

    def issue(self, issue_id: str) -> Issue:
        return Issue(self, issue_id)

    def find_issue(self, issue_id: str) -> Issue:
        """Return the issue with the given id, requiring a head reference."""
        issue = Issue(self, issue_id)
        if not issue.heads():
            raise NoIssueFound(
                f"no head reference exists for issue {issue_id}",
                recovery_hint="fetch the issue or check the id",
            )
        return issue

    def _head_issue_ids(self) -> set[str]:
        return {ref.issue for ref in self.scheme.references() if ref.kind is RefKind.HEAD}

    def find_owning_issue(self, commit: str) -> str:
        """Return the id of the issue a message belongs to.

        Follows first parents until a message with a head reference is
        found. A chain ending without such a message belongs to its root.

        Raises:
            NoIssueFound: If the store has no references at all.
        """
        if not self.store.list_references("refs"):
            raise NoIssueFound("the repository has no references")
        heads = self._head_issue_ids()
        last = commit
        for message in self.graph.first_parent_chain(commit):
            if message.id in heads:
                return message.id
            last = message.id
        _log_debug(f"no head found from {commit}; using root {last}")
        return last

    def list_issues(self, scope: RefScope = RefScope.ALL) -> set[str]:
        """Return the ids of all issues with a head in the given scope.

        Remote heads count only for remotes covered by the priority list.
        """
        issues: set[str] = set()
        for ref in self.scheme.references():
            if ref.kind is not RefKind.HEAD or not scope.accepts(ref.remote):
                continue
            if ref.remote is not None and not self.priority.includes(ref.remote):
                continue
            issues.add(ref.issue)
        return issues

    def issues(self, scope: RefScope = RefScope.ALL) -> list[Issue]:
        return [Issue(self, issue_id) for issue_id in sorted(self.list_issues(scope))]


def create_message(
    index: IssueIndex,
    issue: str | None,
    raw: bytes | str,
    parents: Sequence[str] = (),
) -> str:
    """Store a message and the reference keeping it alive.

    Without an issue the message starts a new issue and gets a head
    reference, which must not exist yet. Otherwise the message gets a leaf
    reference in the given issue.
    """
    if issue is not None:
        return index.issue(issue).add_message(raw, parents)
    message_id = index.store.create_message(list(parents), index.normalized_bytes(raw))
    name = head_ref_name(message_id)
    if not index.store.compare_and_swap_reference(name, None, message_id):
        existing = index.scheme.target_of(name)
        if existing != message_id:
            raise ReferenceConflict(name, f"points to {existing}")
    _log_debug(f"issue created id={message_id}")
    return message_id


def reply(
    index: IssueIndex,
    parent: str,
    raw: bytes | str,
    references: Sequence[str] = (),
) -> str:
    """Reply to ``parent``; extra ``references`` become additional parents."""
    issue = index.find_owning_issue(parent)
    return create_message(index, issue, raw, [parent, *references])


def tag(
    index: IssueIndex,
    issue_id: str,
    trailers: Sequence[Trailer],
    references: Sequence[str] = (),
) -> str | None:
    """Record trailers on top of the local head and advance the head to it.

    Returns the new message id, or ``None`` when there is nothing to record.

    Raises:
        NoIssueFound: If the issue has no local head.
        ReferenceConflict: If the head moved while the message was created.
    """
    if not trailers and not references:
        return None
    issue = index.issue(issue_id)
    head = issue.local_head()
    if head is None:
        raise NoIssueFound(f"issue {issue_id} has no local head reference")
    head_message = index.graph.message(head.target)
    text = compose_message(reply_subject(head_message.subject), trailers=trailers)
    message_id = index.store.create_message(
        [head.target, *references], index.normalized_bytes(text)
    )
    if not index.store.compare_and_swap_reference(head.name, head.target, message_id):
        raise ReferenceConflict(head.name, f"expected {head.target}")
    _log_debug(f"issue tagged id={issue_id} head={message_id}")
    return message_id
