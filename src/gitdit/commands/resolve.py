"""Shared helpers for resolving the current repository and command input."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from .. import config, git
from ..io import die
from ..issues import IssueIndex
from ..models import DitConfig
from ..store import ObjectStore
from ..trailer import Trailer, parse_trailer


@dataclass
class Repository:
    """Store, configuration and issue index of the current repository."""

    store: ObjectStore
    config: DitConfig
    index: IssueIndex

    def abbreviate(self, object_id: str) -> str:
        return object_id[: self.config.abbrev]

    def resolve_all(self, revs: Sequence[str] | None) -> list[str]:
        return [self.store.resolve(rev) for rev in revs or ()]


def open_repository(start: Path | None = None) -> Repository:
    """Open the repository containing ``start`` (default: the cwd)."""
    cwd = start or Path.cwd()
    repo_root = git.git_repo_root(cwd)
    if repo_root is None:
        die("not a git repository (or any of the parent directories)")
    store = git.GitStore(repo_root)
    dit_config = config.load_config(store)
    index = IssueIndex(
        store,
        priority=dit_config.priority(),
        comment_marker=dit_config.comment_marker,
    )
    return Repository(store=store, config=dit_config, index=index)


def read_stdin() -> str:
    return sys.stdin.read()


def message_paragraphs(args: object) -> list[str]:
    """Return ``--message`` values, or stdin text when none were given."""
    messages = list(getattr(args, "message", None) or [])
    if messages:
        return [text.strip("\n") for text in messages]
    text = read_stdin().strip("\n")
    return [text] if text else []


def trailers_from_args(values: Sequence[str] | None) -> list[Trailer]:
    return [parse_trailer(value) for value in values or ()]


def join_message(paragraphs: Sequence[str], trailers: Sequence[Trailer] = ()) -> str:
    """Join paragraphs with blank lines and append trailers as the last block.

    Example:
        >>> from gitdit.trailer import Trailer
        >>> join_message(["Subject", "Body"], [Trailer.create("dit-status", "open")])
        'Subject\\n\\nBody\\n\\nDit-status: open\\n'
    """
    blocks = [paragraph for paragraph in paragraphs if paragraph.strip()]
    if trailers:
        blocks.append("\n".join(line for trailer in trailers for line in trailer.render_lines()))
    return "\n\n".join(blocks) + "\n"
