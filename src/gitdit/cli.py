"""Command-line entry point for git-dit.

Each command collects its options into a ``SimpleNamespace`` and hands it
to the implementation in ``gitdit.commands``. Expected failures
(``DitError``) are reported on stderr with a non-zero exit status.
"""

from __future__ import annotations

from types import SimpleNamespace
from typing import Callable

import typer

from . import __version__
from . import log as dit_log
from .commands.gc import gc as gc_cmd
from .commands.issues import list_issues as list_cmd
from .commands.issues import new_issue as new_cmd
from .commands.issues import reply_message as reply_cmd
from .commands.issues import show_issue as show_cmd
from .commands.issues import tag_issue as tag_cmd
from .commands.plumbing import check_message as check_message_cmd
from .commands.plumbing import create_message as create_message_cmd
from .commands.plumbing import find_tree_init_hash as find_tree_init_hash_cmd
from .commands.plumbing import get_issue_metadata as get_issue_metadata_cmd
from .commands.plumbing import get_issue_tree_init_hashes as get_issue_tree_init_hashes_cmd
from .commands.sync import fetch as fetch_cmd
from .commands.sync import push as push_cmd
from .errors import DitError
from .gc.models import HeadCollection
from .io import die

app = typer.Typer(
    help="Distributed issue tracking stored in git.",
    no_args_is_help=True,
    add_completion=False,
)


def _run(command: Callable[[SimpleNamespace], None], **values: object) -> None:
    try:
        command(SimpleNamespace(**values))
    except DitError as exc:
        dit_log.debug(f"[cli] command failed code={exc.code}")
        detail = str(exc)
        if exc.recovery_hint:
            detail = f"{detail}\nhint: {exc.recovery_hint}"
        die(detail)


def _validate_log_level(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized not in dit_log.LEVEL_NAMES:
        raise typer.BadParameter(f"expected one of: {', '.join(dit_log.LEVEL_NAMES)}")
    return normalized


def _validate_collect_heads(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip().lower()
    choices = [item.value for item in HeadCollection]
    if normalized not in choices:
        raise typer.BadParameter(f"expected one of: {', '.join(choices)}")
    return normalized


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main_callback(
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="log level (trace|debug|info|success|warning|error)",
        callback=_validate_log_level,
    ),
    no_color: bool = typer.Option(False, "--no-color", help="disable colorized output"),
    version: bool = typer.Option(
        False, "--version", help="show the version and exit", callback=_version_callback, is_eager=True
    ),
) -> None:
    """Distributed issue tracking stored in git."""
    if log_level is not None:
        dit_log.set_level(log_level)
    if no_color:
        dit_log.set_no_color(True)


@app.command("check-message")
def check_message(
    filename: str | None = typer.Argument(None, help="message file (defaults to stdin)"),
) -> None:
    """Check that a message is well formed."""
    _run(check_message_cmd, filename=filename)


@app.command("create-message")
def create_message(
    issue: str | None = typer.Option(None, "--issue", "-i", help="issue the message belongs to"),
    parents: list[str] | None = typer.Option(None, "--parent", "-p", help="parent message"),
) -> None:
    """Create a message from stdin and print its id."""
    _run(create_message_cmd, issue=issue, parents=parents or [])


@app.command("find-tree-init-hash")
def find_tree_init_hash(
    commit: str = typer.Argument(..., help="message to look up"),
) -> None:
    """Print the id of the issue a message belongs to."""
    _run(find_tree_init_hash_cmd, commit=commit)


@app.command("get-issue-metadata")
def get_issue_metadata(
    head: str = typer.Argument(..., help="message to start from"),
) -> None:
    """Print the trailers from a message down to its issue's initial message."""
    _run(get_issue_metadata_cmd, head=head)


@app.command("get-issue-tree-init-hashes")
def get_issue_tree_init_hashes() -> None:
    """Print the ids of all known issues."""
    _run(get_issue_tree_init_hashes_cmd)


@app.command("new")
def new(
    message: list[str] | None = typer.Option(
        None, "--message", "-m", help="message paragraph; the first one is the subject"
    ),
    trailers: list[str] | None = typer.Option(
        None, "--trailer", "-t", help="trailer to add (Key=value)"
    ),
) -> None:
    """Create a new issue."""
    _run(new_cmd, message=message or [], trailers=trailers or [])


@app.command("reply")
def reply(
    parent: str = typer.Argument(..., help="message to reply to"),
    message: list[str] | None = typer.Option(
        None, "--message", "-m", help="body paragraph (defaults to stdin)"
    ),
    subject: str | None = typer.Option(None, "--subject", help="override the reply subject"),
    trailers: list[str] | None = typer.Option(
        None, "--trailer", "-t", help="trailer to add (Key=value)"
    ),
    references: list[str] | None = typer.Option(
        None, "--reference", "-r", help="additional message to reference"
    ),
    quote: bool = typer.Option(False, "--quote", "-q", help="quote the parent's body"),
) -> None:
    """Reply to a message."""
    _run(
        reply_cmd,
        parent=parent,
        message=message or [],
        subject=subject,
        trailers=trailers or [],
        references=references or [],
        quote=quote,
    )


@app.command("tag")
def tag(
    issue: str = typer.Argument(..., help="issue id"),
    set_values: list[str] | None = typer.Option(
        None, "--set", "-s", help="trailer to record (Key=value)"
    ),
    references: list[str] | None = typer.Option(
        None, "--reference", "-r", help="additional message to reference"
    ),
    list_only: bool = typer.Option(False, "--list", "-l", help="list the head's trailers"),
) -> None:
    """Record metadata on an issue head."""
    _run(
        tag_cmd,
        issue=issue,
        set=set_values or [],
        references=references or [],
        list=list_only,
    )


@app.command("list")
def list_(
    filters: list[str] | None = typer.Argument(
        None, help="metadata filter (key, key=value or key~substring)"
    ),
    number: int | None = typer.Option(None, "--number", "-n", help="show at most N issues"),
    long: bool = typer.Option(False, "--long", "-l", help="show full initial messages"),
    format: str = typer.Option("short", "--format", help="output format (short|long|table|json)"),
) -> None:
    """List issues."""
    _run(
        list_cmd,
        filters=filters or [],
        number=number,
        format="long" if long else format,
    )


@app.command("show")
def show(
    issue: str = typer.Argument(..., help="issue id"),
    initial: bool = typer.Option(False, "--initial", "-i", help="show only the initial message"),
    tree: bool = typer.Option(False, "--tree", "-t", help="show oldest messages first"),
    msgtree: bool = typer.Option(False, "--msgtree", "-s", help="show one line per message"),
    metadata: bool = typer.Option(False, "--metadata", "-m", help="show accumulated metadata"),
) -> None:
    """Show the messages of an issue."""
    _run(
        show_cmd,
        issue=issue,
        initial=initial,
        tree=tree,
        msgtree=msgtree,
        metadata=metadata,
    )


@app.command("fetch")
def fetch(
    remote: str = typer.Argument(..., help="remote to fetch from"),
    issues: list[str] | None = typer.Argument(None, help="issues to fetch (default: all)"),
    known: bool = typer.Option(False, "--known", "-k", help="also fetch all known issues"),
) -> None:
    """Fetch issues from a remote."""
    _run(fetch_cmd, remote=remote, issues=issues or [], known=known)


@app.command("push")
def push(
    remote: str = typer.Argument(..., help="remote to push to"),
    issues: list[str] | None = typer.Argument(None, help="issues to push (default: all)"),
) -> None:
    """Push local issue references to a remote."""
    _run(push_cmd, remote=remote, issues=issues or [])


@app.command("gc")
def gc(
    issues: list[str] | None = typer.Argument(None, help="issues to collect (default: all)"),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="only list references"),
    yes: bool = typer.Option(False, "--yes", "-y", help="delete without confirmation"),
    consider_remote: bool | None = typer.Option(
        None,
        "--consider-remote/--ignore-remote",
        help="let remote-tracking references pin messages",
    ),
    collect_heads: str | None = typer.Option(
        None,
        "--collect-heads",
        help="head collection policy (never|backed-by-remote-head)",
        callback=_validate_collect_heads,
    ),
) -> None:
    """Remove redundant issue references."""
    _run(
        gc_cmd,
        issues=issues or [],
        dry_run=dry_run,
        yes=yes,
        consider_remote=consider_remote,
        collect_heads=collect_heads,
    )


def main() -> None:
    app(prog_name="git-dit")


if __name__ == "__main__":
    main()
