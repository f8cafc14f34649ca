"""Lazy traversal of the message DAG.

Messages are held in an id-keyed cache and linked only through their parent
id lists. Walks are explicit work-list iterators, so deep histories do not
grow the Python call stack, and every walk object can be iterated again from
its starting points.
"""

from __future__ import annotations

from enum import Enum
from typing import Collection, Iterable, Iterator, Sequence

from . import log as dit_log
from .errors import CycleDetected, NotFound, UnresolvedObject
from .message import DEFAULT_COMMENT_MARKER, Message
from .store import ObjectStore, RawCommit

_GREY = 1
_BLACK = 2


class TraversalMode(Enum):
    ALL_PARENTS = "all-parents"
    FIRST_PARENT_ONLY = "first-parent-only"


def _log_trace(message: str) -> None:
    dit_log.trace(f"[graph] {message}")


class MessageGraph:
    """Read-through view of the messages in a store."""

    def __init__(
        self, store: ObjectStore, *, comment_marker: str | None = DEFAULT_COMMENT_MARKER
    ) -> None:
        self.store = store
        self.comment_marker = comment_marker
        self._messages: dict[str, Message] = {}
        self._parents: dict[str, tuple[str, ...]] = {}

    def _read(self, object_id: str) -> RawCommit:
        try:
            raw = self.store.read_message(object_id)
        except NotFound as exc:
            raise UnresolvedObject(object_id) from exc
        self._parents[object_id] = raw.parents
        return raw

    def message(self, object_id: str) -> Message:
        cached = self._messages.get(object_id)
        if cached is not None:
            return cached
        raw = self._read(object_id)
        message = Message.from_raw(
            raw.id, raw.parents, raw.raw, comment_marker=self.comment_marker
        )
        self._messages[object_id] = message
        return message

    def parents(self, object_id: str) -> tuple[str, ...]:
        """Return the parent ids of a commit without parsing its message."""
        cached = self._parents.get(object_id)
        if cached is not None:
            return cached
        return self._read(object_id).parents

    def walk(
        self,
        starts: str | Iterable[str],
        mode: TraversalMode = TraversalMode.ALL_PARENTS,
        *,
        until: str | None = None,
        within: Collection[str] | None = None,
    ) -> MessageWalk:
        """Return a restartable walk from one or more starting messages.

        Args:
            starts: Starting message id or ids.
            mode: Follow every parent, or only first parents.
            until: Message at which the walk stops; it is still yielded but
                its parents are not followed.
            within: If given, parents outside this set are not followed.
        """
        if isinstance(starts, str):
            starts = (starts,)
        return MessageWalk(self, tuple(starts), mode, until, within)

    def first_parent_chain(self, start: str, *, until: str | None = None) -> MessageWalk:
        return self.walk(start, TraversalMode.FIRST_PARENT_ONLY, until=until)

    def ancestors(self, starts: str | Iterable[str], *, until: str | None = None) -> set[str]:
        """Return the ids of every commit reachable from ``starts``, inclusive.

        Only parent ids are read, so commits referenced from outside the
        issue (ordinary code commits) are never parsed as messages.

        Raises:
            UnresolvedObject: If a reachable commit is missing from the store.
            CycleDetected: If the graph has a back-edge.
        """
        start_ids = (starts,) if isinstance(starts, str) else tuple(starts)
        state: dict[str, int] = {}
        for start in start_ids:
            if start in state:
                continue
            state[start] = _GREY
            stack: list[tuple[str, Iterator[str]]] = [(start, self._expand_ids(start, until))]
            while stack:
                node, parents = stack[-1]
                parent = next(parents, None)
                if parent is None:
                    state[node] = _BLACK
                    stack.pop()
                    continue
                mark = state.get(parent)
                if mark == _GREY:
                    raise CycleDetected(parent)
                if mark == _BLACK:
                    continue
                state[parent] = _GREY
                stack.append((parent, self._expand_ids(parent, until)))
        _log_trace(f"ancestors starts={len(start_ids)} reachable={len(state)}")
        return set(state)

    def descendants(self, root: str, candidates: Iterable[str]) -> set[str]:
        """Return the ids among ``candidates`` that have ``root`` as an ancestor.

        ``root`` itself is included. Parent ids are read without parsing.
        """
        pool = set(candidates)
        children: dict[str, list[str]] = {}
        for object_id in pool:
            for parent in self.parents(object_id):
                children.setdefault(parent, []).append(object_id)
        found = {root}
        pending = [root]
        while pending:
            for child in children.get(pending.pop(), ()):
                if child not in found:
                    found.add(child)
                    pending.append(child)
        return found

    def _expand_ids(self, object_id: str, until: str | None) -> Iterator[str]:
        if object_id == until:
            return iter(())
        return iter(self.parents(object_id))


class MessageWalk:
    """Iterable over the messages of a walk.

    Each call to ``iter()`` starts over from the original starting points.
    """

    def __init__(
        self,
        graph: MessageGraph,
        starts: Sequence[str],
        mode: TraversalMode,
        until: str | None,
        within: Collection[str] | None = None,
    ) -> None:
        self.graph = graph
        self.starts = tuple(starts)
        self.mode = mode
        self.until = until
        self.within = within

    def __iter__(self) -> Iterator[Message]:
        if self.mode is TraversalMode.FIRST_PARENT_ONLY:
            return self._first_parents()
        return self._all_parents()

    def ids(self) -> Iterator[str]:
        return (message.id for message in self)

    def _expand(self, message: Message) -> Sequence[str]:
        if message.id == self.until:
            return ()
        if self.within is not None:
            return [parent for parent in message.parents if parent in self.within]
        return message.parents

    def _first_parents(self) -> Iterator[Message]:
        visited: set[str] = set()
        for start in self.starts:
            chain: set[str] = set()
            current: str | None = start
            while current is not None:
                if current in chain:
                    raise CycleDetected(current)
                if current in visited:
                    _log_trace(f"first-parent chain from {start} joined at {current}")
                    break
                message = self.graph.message(current)
                chain.add(current)
                visited.add(current)
                yield message
                if current == self.until:
                    break
                current = message.first_parent
                if self.within is not None and current not in self.within:
                    break

    def _all_parents(self) -> Iterator[Message]:
        state: dict[str, int] = {}
        for start in self.starts:
            if start in state:
                continue
            message = self.graph.message(start)
            state[start] = _GREY
            yield message
            stack: list[tuple[str, Iterator[str]]] = [(start, iter(self._expand(message)))]
            while stack:
                node, parents = stack[-1]
                parent = next(parents, None)
                if parent is None:
                    state[node] = _BLACK
                    stack.pop()
                    continue
                mark = state.get(parent)
                if mark == _GREY:
                    raise CycleDetected(parent)
                if mark == _BLACK:
                    continue
                parent_message = self.graph.message(parent)
                state[parent] = _GREY
                yield parent_message
                stack.append((parent, iter(self._expand(parent_message))))
