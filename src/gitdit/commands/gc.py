"""Implementation for the ``git dit gc`` command."""

from __future__ import annotations

from .. import log as dit_log
from ..gc.collect import collect, collectible_refs
from ..gc.models import CollectionOptions, HeadCollection
from ..io import confirm, die, say, warn
from ..refs import IssueRef, RefScope
from .resolve import open_repository


def _log_debug(message: str) -> None:
    dit_log.debug(f"[gc] {message}")


def _options(args: object, defaults: CollectionOptions) -> CollectionOptions:
    consider_remote = getattr(args, "consider_remote", None)
    collect_heads = getattr(args, "collect_heads", None)
    return CollectionOptions(
        consider_remote=defaults.consider_remote if consider_remote is None else consider_remote,
        collect_heads=(
            defaults.collect_heads if collect_heads is None else HeadCollection(collect_heads)
        ),
        priority=defaults.priority,
    )


def gc(args: object) -> None:
    """Remove issue references whose messages stay reachable without them."""
    repo = open_repository()
    options = _options(args, repo.config.collection_options())
    dry_run = bool(getattr(args, "dry_run", False))
    yes = bool(getattr(args, "yes", False))
    _log_debug(
        f"gc start dry_run={dry_run} yes={yes} consider_remote={options.consider_remote} "
        f"collect_heads={options.collect_heads.value}"
    )

    requested = getattr(args, "issues", None) or ()
    if requested:
        issue_ids = [repo.index.find_issue(repo.store.resolve(value)).id for value in requested]
    else:
        issue_ids = sorted(repo.index.list_issues(RefScope.LOCAL))

    candidates: list[IssueRef] = []
    for issue_id in issue_ids:
        candidates.extend(collectible_refs(repo.index, issue_id, options))

    if not candidates:
        say("No references to collect.")
        return

    for ref in candidates:
        say(f"{'Would delete' if dry_run else 'Collect'} {ref.name}")
    if dry_run:
        return
    if not yes and not confirm(f"Delete {len(candidates)} reference(s)?", default=False):
        say("Skipped gc.")
        return

    report = collect(repo.index, candidates, dry_run=False)
    for name, detail in report.failed:
        warn(f"failed to delete {name}: {detail}")
    say(f"Deleted {len(report.deleted)} reference(s), {len(report.failed)} failed.")
    if not report.ok:
        die("some references could not be deleted")
