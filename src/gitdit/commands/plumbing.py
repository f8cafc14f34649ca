"""Plumbing commands used by scripts and other tools."""

from __future__ import annotations

from pathlib import Path

from ..io import say
from ..issues import create_message as create_issue_message
from ..message import DEFAULT_COMMENT_MARKER, check_message_format
from .resolve import open_repository, read_stdin


def check_message(args: object) -> None:
    """Check that a message file (or stdin) is well formed.

    Example:
        $ git dit check-message .git/COMMIT_EDITMSG
    """
    filename = getattr(args, "filename", None)
    raw = Path(filename).read_text(encoding="utf-8") if filename else read_stdin()
    check_message_format(raw, comment_marker=DEFAULT_COMMENT_MARKER)


def create_message(args: object) -> None:
    """Create a message from stdin and print its id."""
    repo = open_repository()
    issue = getattr(args, "issue", None)
    if issue:
        issue = repo.store.resolve(issue)
    parents = repo.resolve_all(getattr(args, "parents", None))
    message_id = create_issue_message(repo.index, issue, read_stdin(), parents)
    say(message_id)


def find_tree_init_hash(args: object) -> None:
    """Print the id of the issue a message belongs to."""
    repo = open_repository()
    commit = repo.store.resolve(args.commit)
    say(repo.index.find_owning_issue(commit))


def get_issue_metadata(args: object) -> None:
    """Print every trailer on the first-parent chain from ``head`` to its issue."""
    repo = open_repository()
    head = repo.store.resolve(args.head)
    issue = repo.index.find_owning_issue(head)
    for message in repo.index.graph.first_parent_chain(head, until=issue):
        for trailer in message.trailers:
            say(str(trailer))


def get_issue_tree_init_hashes(args: object) -> None:
    """Print the ids of all known issues."""
    repo = open_repository()
    for issue in sorted(repo.index.list_issues()):
        say(issue)
