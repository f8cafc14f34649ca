# ruff: noqa: E402

from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterable, Sequence

ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from gitdit.commands.resolve import Repository
from gitdit.issues import IssueIndex
from gitdit.message import compose_message
from gitdit.models import DitConfig
from gitdit.refs import head_ref_name, leaf_ref_name
from gitdit.store import MemoryStore, RawCommit
from gitdit.trailer import Trailer


def make_message(
    store: MemoryStore,
    subject: str,
    *,
    parents: Sequence[str] = (),
    body: Iterable[str] = (),
    trailers: Iterable[tuple[str, str]] = (),
) -> str:
    text = compose_message(
        subject, body, [Trailer.create(key, value) for key, value in trailers]
    )
    return store.create_message(list(parents), text.encode("utf-8"))


def make_issue(
    store: MemoryStore,
    subject: str,
    *,
    body: Iterable[str] = (),
    trailers: Iterable[tuple[str, str]] = (),
) -> str:
    """Create an initial message and point a local head at it."""
    issue = make_message(store, subject, body=body, trailers=trailers)
    store.refs[head_ref_name(issue)] = issue
    return issue


def set_head(store: MemoryStore, issue: str, target: str, remote: str | None = None) -> str:
    name = head_ref_name(issue, remote)
    store.refs[name] = target
    return name


def set_leaf(store: MemoryStore, issue: str, target: str, remote: str | None = None) -> str:
    name = leaf_ref_name(issue, target, remote)
    store.refs[name] = target
    return name


def insert_raw(store: MemoryStore, object_id: str, parents: Sequence[str], text: str) -> None:
    """Insert an object under a chosen id, bypassing content addressing."""
    store.objects[object_id] = RawCommit(object_id, tuple(parents), text.encode("utf-8"))


def make_repository(store: MemoryStore, **config: object) -> Repository:
    dit_config = DitConfig.model_validate(config)
    index = IssueIndex(
        store,
        priority=dit_config.priority(),
        comment_marker=dit_config.comment_marker,
    )
    return Repository(store=store, config=dit_config, index=index)
