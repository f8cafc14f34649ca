"""Porcelain commands for creating, tagging, listing and showing issues."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Iterable

from rich import box
from rich.console import Console
from rich.table import Table

from .. import issues as issues_mod
from ..accumulation import MetadataFilter, MetadataSnapshot, parse_filter
from ..blocks import TrailerBlock, body_blocks
from ..io import die, say, warn
from ..issues import Issue
from ..message import Message, compose_message, quoted, reply_subject
from ..trailer import default_registry
from .resolve import (
    Repository,
    join_message,
    message_paragraphs,
    open_repository,
    trailers_from_args,
)

_LIST_FORMATS = {"short", "long", "table", "json"}


def new_issue(args: object) -> None:
    """Create a new issue and print its id.

    The first ``--message`` paragraph is the subject.

    Example:
        $ git dit new -m "Crash on start" -t Dit-type=bug
    """
    repo = open_repository()
    paragraphs = message_paragraphs(args)
    trailers = trailers_from_args(getattr(args, "trailers", None))
    text = join_message(paragraphs, trailers)
    issue = issues_mod.create_message(repo.index, None, text)
    say(issue)


def reply_message(args: object) -> None:
    """Reply to a message of an issue and print the new message id.

    The subject defaults to the parent's subject prefixed with ``Re: ``;
    ``--message`` paragraphs (or stdin) form the body.
    """
    repo = open_repository()
    parent = repo.store.resolve(args.parent)
    parent_message = repo.index.graph.message(parent)
    references = repo.resolve_all(getattr(args, "references", None))
    subject = getattr(args, "subject", None) or reply_subject(parent_message.subject)
    body: list[str] = []
    if getattr(args, "quote", False):
        body.extend(quoted(parent_message.body_lines()))
    for paragraph in message_paragraphs(args):
        if body:
            body.append("")
        body.extend(paragraph.splitlines())
    trailers = trailers_from_args(getattr(args, "trailers", None))
    text = compose_message(subject, body, trailers)
    message_id = issues_mod.reply(repo.index, parent, text, references)
    say(message_id)


def tag_issue(args: object) -> None:
    """Record trailers on an issue head, or list the head's trailers."""
    repo = open_repository()
    issue_id = repo.store.resolve(args.issue)
    issue = repo.index.find_issue(issue_id)
    if getattr(args, "list", False):
        head = issue.local_head()
        if head is None:
            die(f"issue {issue_id} has no local head reference")
        for message in repo.index.graph.first_parent_chain(head.target, until=issue_id):
            for trailer in message.trailers:
                say(str(trailer))
        return
    trailers = trailers_from_args(getattr(args, "set", None))
    references = repo.resolve_all(getattr(args, "references", None))
    message_id = issues_mod.tag(repo.index, issue_id, trailers, references)
    if message_id is None:
        warn("no message was created because no trailers or references were supplied")
        return
    say(message_id)


def _metadata_filter(values: Iterable[str] | None) -> MetadataFilter:
    return MetadataFilter(tuple(parse_filter(value) for value in values or ()))


@dataclass(frozen=True)
class IssueRow:
    id: str
    subject: str
    metadata: dict[str, str | list[str]]

    @classmethod
    def build(cls, issue: Issue, snapshot: MetadataSnapshot) -> IssueRow:
        return cls(id=issue.id, subject=issue.initial_message().subject, metadata=snapshot.as_dict())


def list_issues(args: object) -> None:
    """List issues, optionally filtered by metadata.

    Filters take the forms ``key`` (present), ``key=value`` and
    ``key~substring``; all filters must match.
    """
    format_value = str(getattr(args, "format", "short") or "short").lower()
    if format_value not in _LIST_FORMATS:
        die(f"unsupported format: {format_value}")
    repo = open_repository()
    metadata_filter = _metadata_filter(getattr(args, "filters", None))
    keys = [*default_registry(), *metadata_filter.specs]

    rows: list[IssueRow] = []
    for issue in repo.index.issues():
        snapshot = issue.metadata(keys)
        if not metadata_filter.matches(snapshot):
            continue
        rows.append(IssueRow.build(issue, snapshot))

    limit = getattr(args, "number", None)
    if limit is not None:
        rows = rows[: max(limit, 0)]

    if format_value == "json":
        say(json.dumps([asdict(row) for row in rows], indent=2, sort_keys=True))
        return
    if not rows:
        say("No issues found.")
        return
    if format_value == "table":
        _render_table(repo, rows)
        return
    for row in rows:
        issue_id = row.id
        if format_value == "long":
            message = repo.index.graph.message(issue_id)
            say(f"Issue:  {issue_id}")
            say("")
            for line in _display_lines(message):
                say(f"    {line}" if line else "")
            say("")
            continue
        status = row.metadata.get("Dit-status")
        suffix = f" [{status}]" if status else ""
        say(f"{repo.abbreviate(issue_id)} {row.subject}{suffix}")


def _render_table(repo: Repository, rows: list[IssueRow]) -> None:
    console = Console()
    table = Table(title="Issues", box=box.SIMPLE)
    table.add_column("Id", no_wrap=True)
    table.add_column("Status")
    table.add_column("Type")
    table.add_column("Subject")
    for row in rows:
        table.add_row(
            repo.abbreviate(row.id),
            str(row.metadata.get("Dit-status", "")),
            str(row.metadata.get("Dit-type", "")),
            row.subject,
        )
    console.print(table)


def _display_lines(message: Message) -> list[str]:
    """Render a message with every trailer block in canonical form."""
    lines = [message.subject]
    for block in body_blocks(message.body_lines()):
        lines.append("")
        if isinstance(block, TrailerBlock):
            lines.extend(line for trailer in block.trailers for line in trailer.render_lines())
        else:
            lines.extend(block.lines)
    return lines


def _message_lines(repo: Repository, message: Message, *, short: bool) -> list[str]:
    if short:
        return [f"{repo.abbreviate(message.id)} {message.subject}"]
    return [repo.abbreviate(message.id), "", *_display_lines(message), ""]


def show_issue(args: object) -> None:
    """Print the messages of an issue, newest first unless ``--tree`` is set."""
    repo = open_repository()
    issue_id = repo.store.resolve(args.issue)
    short = bool(getattr(args, "msgtree", False))
    if getattr(args, "initial", False):
        messages = [repo.index.graph.message(issue_id)]
    else:
        issue = repo.index.find_issue(issue_id)
        messages = list(issue.messages())
        if getattr(args, "tree", False):
            messages.reverse()
    if getattr(args, "metadata", False):
        snapshot = repo.index.issue(issue_id).metadata()
        for key, value in snapshot.as_dict().items():
            rendered = ", ".join(value) if isinstance(value, list) else value
            say(f"{key}: {rendered}")
        say("")
    for message in messages:
        for line in _message_lines(repo, message, short=short):
            say(line)
