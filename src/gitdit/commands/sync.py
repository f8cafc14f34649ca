"""Fetch and push issue references."""

from __future__ import annotations

from .. import log as dit_log
from ..io import say
from ..refs import RefScope, all_issues_refspec, issue_refspec
from .resolve import open_repository


def _log_debug(message: str) -> None:
    dit_log.debug(f"[sync] {message}")


def fetch(args: object) -> None:
    """Fetch issue references from a remote into remote-tracking references.

    Without issues every issue of the remote is fetched. ``--known`` adds
    all issues already known locally to the requested ones.
    """
    repo = open_repository()
    remote = args.remote
    requested = [repo.store.resolve(issue) for issue in getattr(args, "issues", None) or ()]
    if requested:
        if getattr(args, "known", False):
            requested.extend(sorted(repo.index.list_issues() - set(requested)))
        refspecs = [issue_refspec(remote, issue) for issue in requested]
    else:
        refspecs = [all_issues_refspec(remote)]
    _log_debug(f"fetch remote={remote} refspecs={len(refspecs)}")
    repo.store.fetch(remote, refspecs)
    say(f"Fetched {len(refspecs)} refspec(s) from {remote}")


def push(args: object) -> None:
    """Push local issue references to a remote under the same names."""
    repo = open_repository()
    remote = args.remote
    requested = getattr(args, "issues", None) or ()
    if requested:
        refs = []
        for value in requested:
            issue = repo.index.find_issue(repo.store.resolve(value))
            refs.extend(issue.local_refs())
    else:
        refs = [ref for ref in repo.index.scheme.references() if RefScope.LOCAL.accepts(ref.remote)]
    refspecs = [f"{ref.name}:{ref.name}" for ref in sorted(refs, key=lambda item: item.name)]
    if not refspecs:
        say("No issue references to push.")
        return
    _log_debug(f"push remote={remote} refs={len(refspecs)}")
    repo.store.push(remote, refspecs)
    say(f"Pushed {len(refspecs)} reference(s) to {remote}")
