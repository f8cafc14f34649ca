"""Object-store contract consumed by the issue engine, plus an in-memory store.

The engine only needs commits (id, parents, raw message) and references with
atomic compare-and-swap updates. ``GitStore`` in ``gitdit.git`` provides them
on top of a real repository; ``MemoryStore`` keeps everything in dicts and is
used by tests and dry runs.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Iterable, Protocol, Sequence

from . import log as dit_log
from .errors import NotFound, ReferenceConflict, StoreCommandFailed

ZERO_ID = "0" * 40


@dataclass(frozen=True)
class RawCommit:
    id: str
    parents: tuple[str, ...]
    raw: bytes


@dataclass(frozen=True, order=True)
class StoredRef:
    name: str
    target: str


class ObjectStore(Protocol):
    """Narrow interface onto a content-addressed commit store."""

    def resolve(self, rev: str) -> str:
        """Resolve a revision or reference name to a commit id.

        Raises:
            NotFound: If the revision does not exist.
        """
        ...

    def read_message(self, object_id: str) -> RawCommit:
        """Read a commit.

        Raises:
            NotFound: If no object with that id exists.
            NotACommit: If the object is not a commit.
        """
        ...

    def create_message(self, parents: Sequence[str], raw: bytes) -> str: ...

    def list_references(self, prefix: str) -> list[StoredRef]: ...

    def compare_and_swap_reference(
        self, name: str, expected_old: str | None, new: str
    ) -> bool:
        """Atomically point ``name`` at ``new`` if it currently holds ``expected_old``.

        ``expected_old=None`` requires the reference to be absent. Returns
        ``False`` when the precondition does not hold.
        """
        ...

    def delete_reference(self, name: str, expected: str | None = None) -> bool:
        """Delete a reference, optionally only if it still points to ``expected``.

        Raises:
            NotFound: If the reference does not exist.
        """
        ...

    def fetch(self, remote: str, refspecs: Sequence[str]) -> None: ...

    def push(self, remote: str, refspecs: Sequence[str]) -> None: ...


def _log_debug(message: str) -> None:
    dit_log.debug(f"[store] {message}")


def content_id(parents: Sequence[str], raw: bytes) -> str:
    """Hash a message the way the in-memory store addresses it."""
    digest = hashlib.sha1()
    for parent in parents:
        digest.update(f"parent {parent}\n".encode("ascii"))
    digest.update(b"\n")
    digest.update(raw)
    return digest.hexdigest()


@dataclass(frozen=True)
class Refspec:
    source: str
    destination: str
    force: bool = False

    @classmethod
    def parse(cls, text: str) -> Refspec:
        force = text.startswith("+")
        body = text[1:] if force else text
        source, sep, destination = body.partition(":")
        if not sep:
            destination = source
        if source.count("*") != destination.count("*") or source.count("*") > 1:
            raise StoreCommandFailed(f"unsupported refspec: {text}")
        return cls(source=source, destination=destination, force=force)

    def map(self, name: str) -> str | None:
        if "*" not in self.source:
            return self.destination if name == self.source else None
        prefix, _, suffix = self.source.partition("*")
        if not (name.startswith(prefix) and name.endswith(suffix)):
            return None
        if len(name) < len(prefix) + len(suffix):
            return None
        matched = name[len(prefix) : len(name) - len(suffix)]
        return self.destination.replace("*", matched, 1)


@dataclass
class MemoryStore:
    """Dictionary-backed store with git-like content addressing."""

    objects: dict[str, RawCommit] = field(default_factory=dict)
    refs: dict[str, str] = field(default_factory=dict)
    remotes: dict[str, MemoryStore] = field(default_factory=dict)

    def resolve(self, rev: str) -> str:
        candidate = rev.strip()
        if candidate in self.refs:
            return self.refs[candidate]
        if f"refs/{candidate}" in self.refs:
            return self.refs[f"refs/{candidate}"]
        if candidate in self.objects:
            return candidate
        if len(candidate) >= 4:
            matches = [oid for oid in self.objects if oid.startswith(candidate)]
            if len(matches) == 1:
                return matches[0]
        raise NotFound(f"cannot resolve revision {rev!r}")

    def read_message(self, object_id: str) -> RawCommit:
        commit = self.objects.get(object_id)
        if commit is None:
            raise NotFound(f"object {object_id} does not exist")
        return commit

    def create_message(self, parents: Sequence[str], raw: bytes) -> str:
        for parent in parents:
            self.read_message(parent)
        object_id = content_id(parents, raw)
        self.objects.setdefault(object_id, RawCommit(object_id, tuple(parents), raw))
        _log_debug(f"create message id={object_id} parents={len(parents)}")
        return object_id

    def list_references(self, prefix: str) -> list[StoredRef]:
        normalized = prefix.rstrip("/")
        return sorted(
            StoredRef(name, target)
            for name, target in self.refs.items()
            if name == normalized or name.startswith(f"{normalized}/")
        )

    def compare_and_swap_reference(self, name: str, expected_old: str | None, new: str) -> bool:
        self.read_message(new)
        current = self.refs.get(name)
        if current != expected_old:
            _log_debug(f"cas rejected ref={name} expected={expected_old} current={current}")
            return False
        self.refs[name] = new
        return True

    def delete_reference(self, name: str, expected: str | None = None) -> bool:
        current = self.refs.get(name)
        if current is None:
            raise NotFound(f"reference {name} does not exist")
        if expected is not None and current != expected:
            return False
        del self.refs[name]
        return True

    def fetch(self, remote: str, refspecs: Sequence[str]) -> None:
        self._transfer(self._remote(remote), self, refspecs)

    def push(self, remote: str, refspecs: Sequence[str]) -> None:
        self._transfer(self, self._remote(remote), refspecs)

    def _remote(self, remote: str) -> MemoryStore:
        store = self.remotes.get(remote)
        if store is None:
            raise NotFound(f"remote {remote!r} is not configured")
        return store

    @staticmethod
    def _transfer(source: MemoryStore, destination: MemoryStore, refspecs: Iterable[str]) -> None:
        for text in refspecs:
            spec = Refspec.parse(text)
            for name, target in sorted(source.refs.items()):
                mapped = spec.map(name)
                if mapped is None:
                    continue
                _copy_history(source, destination, target)
                current = destination.refs.get(mapped)
                if current is not None and current != target and not spec.force:
                    if not _is_ancestor(destination, current, target):
                        raise ReferenceConflict(mapped, "non-fast-forward update")
                destination.refs[mapped] = target


def _copy_history(source: MemoryStore, destination: MemoryStore, start: str) -> None:
    pending = [start]
    while pending:
        object_id = pending.pop()
        if object_id in destination.objects:
            continue
        commit = source.read_message(object_id)
        destination.objects[object_id] = commit
        pending.extend(commit.parents)


def _is_ancestor(store: MemoryStore, ancestor: str, descendant: str) -> bool:
    pending = [descendant]
    seen: set[str] = set()
    while pending:
        object_id = pending.pop()
        if object_id == ancestor:
            return True
        if object_id in seen or object_id not in store.objects:
            continue
        seen.add(object_id)
        pending.extend(store.objects[object_id].parents)
    return False
