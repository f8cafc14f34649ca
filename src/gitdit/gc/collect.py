"""Computation and removal of redundant issue references.

A local leaf is redundant when its message stays reachable from a reference
that is kept. Reachability is judged against the union of ancestors of:

- the local head;
- the parents (not the targets) of every local leaf, so a leaf never pins
  itself;
- with ``consider_remote``, every remote-tracking reference of the issue
  from a prioritized remote.

Remote-tracking references are never deleted, and the local head is only
collected when a remote head already covers it, so every pin relied upon
survives the pass.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from .. import log as dit_log
from ..errors import DitError
from ..issues import IssueIndex
from ..refs import IssueRef, RefKind, RefType
from .models import CollectionOptions, GcReport, HeadCollection


def log_debug(message: str) -> None:
    dit_log.debug(f"[gc] {message}")


def log_warning(message: str) -> None:
    dit_log.warning(f"[gc] {message}")


def collectible_refs(
    index: IssueIndex,
    issue_id: str,
    options: CollectionOptions | None = None,
) -> list[IssueRef]:
    """Return the local references of ``issue_id`` that can be deleted safely."""
    active = options or CollectionOptions()
    priority = active.priority if active.priority is not None else index.priority
    graph = index.graph
    issue = index.issue(issue_id)

    local_head = issue.local_head()
    local_leaves = issue.local_refs(RefType.LEAF)
    remote_refs = [ref for ref in issue.remote_refs() if priority.includes(ref.remote)]

    collectible: list[IssueRef] = []

    if local_head is not None and active.collect_heads is HeadCollection.BACKED_BY_REMOTE_HEAD:
        remote_heads = sorted({ref.target for ref in remote_refs if ref.kind is RefKind.HEAD})
        if remote_heads and local_head.target in graph.ancestors(remote_heads, until=issue_id):
            log_debug(f"head backed by remote head issue={issue_id}")
            collectible.append(local_head)

    pins: set[str] = set()
    if local_head is not None:
        pins.add(local_head.target)
    if active.consider_remote:
        pins.update(ref.target for ref in remote_refs)
    for leaf in local_leaves:
        pins.update(graph.parents(leaf.target))
    reachable = graph.ancestors(sorted(pins), until=issue_id) if pins else set()

    unpinned: dict[str, list[IssueRef]] = defaultdict(list)
    for leaf in local_leaves:
        if leaf.target in reachable:
            collectible.append(leaf)
        else:
            unpinned[leaf.target].append(leaf)
    for leaves in unpinned.values():
        _keep, *redundant = sorted(leaves, key=lambda ref: ref.name)
        collectible.extend(redundant)

    log_debug(
        f"issue={issue_id} leaves={len(local_leaves)} pins={len(pins)} "
        f"collectible={len(collectible)}"
    )
    return sorted(collectible, key=lambda ref: ref.name)


def collectible_leaves(
    index: IssueIndex,
    issue_id: str,
    options: CollectionOptions | None = None,
) -> set[str]:
    """Names of the references of ``issue_id`` whose removal loses no message."""
    return {ref.name for ref in collectible_refs(index, issue_id, options)}


def collect(
    index: IssueIndex,
    refs: Iterable[IssueRef],
    *,
    dry_run: bool = True,
) -> GcReport:
    """Delete references one by one, continuing past individual failures.

    Each deletion only succeeds if the reference still points where it did
    when it was judged collectible.
    """
    report = GcReport(dry_run=dry_run)
    for ref in sorted(refs, key=lambda item: item.name):
        report.planned.append(ref.name)
        if dry_run:
            continue
        try:
            deleted = index.store.delete_reference(ref.name, ref.target)
        except DitError as exc:
            log_warning(f"delete failed ref={ref.name} detail={exc}")
            report.failed.append((ref.name, str(exc)))
            continue
        if not deleted:
            log_warning(f"delete rejected ref={ref.name} (reference moved)")
            report.failed.append((ref.name, "reference changed since it was inspected"))
            continue
        report.deleted.append(ref.name)
    return report
