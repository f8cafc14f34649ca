"""Commit message text handling.

A message is a subject line, an empty line, and an optional body. The last
paragraph of the body may be a block of trailers carrying issue metadata.

Example:
    >>> text = parse_message_text(b"Crash on start\\n\\nDit-status: open\\n")
    >>> text.subject
    'Crash on start'
    >>> text.trailer_candidate
    ('Dit-status: open',)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from .blocks import last_block, parse_trailer_block
from .errors import MalformedMessage
from .trailer import Trailer

DEFAULT_COMMENT_MARKER = "#"
REPLY_PREFIX = "Re: "


@dataclass(frozen=True)
class MessageText:
    """A parsed message: subject, body lines and the trailer-block candidate."""

    subject: str
    body: tuple[str, ...]
    trailer_candidate: tuple[str, ...]

    def lines(self) -> list[str]:
        if not self.body:
            return [self.subject]
        return [self.subject, "", *self.body]


@dataclass(frozen=True)
class Message:
    """An immutable issue message as read from the store.

    ``body`` holds the prose of the message. When the final paragraph is a
    trailer block it is held in ``trailers`` instead; otherwise it stays in
    ``body`` verbatim and ``trailers`` is empty.
    """

    id: str
    parents: tuple[str, ...]
    subject: str
    body: tuple[str, ...]
    trailers: tuple[Trailer, ...]
    text: MessageText

    @classmethod
    def from_raw(
        cls,
        object_id: str,
        parents: Sequence[str],
        raw: bytes | str,
        *,
        comment_marker: str | None = DEFAULT_COMMENT_MARKER,
    ) -> Message:
        text = parse_message_text(raw, comment_marker=comment_marker)
        trailers = parse_trailer_block(text.trailer_candidate) if text.trailer_candidate else None
        if trailers is None:
            body = text.body
            trailers = ()
        else:
            body = _trim_trailing_blank(text.body[: len(text.body) - len(text.trailer_candidate)])
        return cls(
            id=object_id,
            parents=tuple(parents),
            subject=text.subject,
            body=body,
            trailers=trailers,
            text=text,
        )

    @property
    def first_parent(self) -> str | None:
        return self.parents[0] if self.parents else None

    def body_lines(self) -> list[str]:
        """Return the full body including any trailer block."""
        return list(self.text.body)


def _decode(raw: bytes | str) -> str:
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return raw


def _trim_trailing_blank(lines: Sequence[str]) -> tuple[str, ...]:
    end = len(lines)
    while end > 0 and not lines[end - 1].strip():
        end -= 1
    return tuple(lines[:end])


def stripped_lines(
    raw: bytes | str, *, comment_marker: str | None = DEFAULT_COMMENT_MARKER
) -> list[str]:
    """Drop comment lines, trailing whitespace, and leading/trailing blank lines."""
    lines = [
        line.rstrip()
        for line in _decode(raw).splitlines()
        if not (comment_marker and line.startswith(comment_marker))
    ]
    start = 0
    while start < len(lines) and not lines[start]:
        start += 1
    return list(_trim_trailing_blank(lines[start:]))


def parse_message_text(
    raw: bytes | str, *, comment_marker: str | None = DEFAULT_COMMENT_MARKER
) -> MessageText:
    """Split raw message bytes into subject, body and trailer candidate.

    Raises:
        MalformedMessage: If the message is empty or the second line is not
            empty.
    """
    lines = stripped_lines(raw, comment_marker=comment_marker)
    check_lines_format(lines)
    body = tuple(lines[2:])
    return MessageText(subject=lines[0], body=body, trailer_candidate=last_block(body))


def check_lines_format(lines: Sequence[str]) -> None:
    if not lines:
        raise MalformedMessage("the message is empty")
    if not lines[0].strip():
        raise MalformedMessage("empty subject line")
    if len(lines) > 1 and lines[1]:
        raise MalformedMessage(
            "the subject line must be followed by an empty line",
            recovery_hint="keep the subject on a single line",
        )


def check_message_format(
    raw: bytes | str, *, comment_marker: str | None = DEFAULT_COMMENT_MARKER
) -> None:
    """Validate a draft message without building a ``Message``."""
    check_lines_format(stripped_lines(raw, comment_marker=comment_marker))


def strip_message(
    raw: bytes | str, *, comment_marker: str | None = DEFAULT_COMMENT_MARKER
) -> str:
    """Return the normalized text stored for a message."""
    lines = stripped_lines(raw, comment_marker=comment_marker)
    check_lines_format(lines)
    return "\n".join(lines) + "\n"


def compose_message(
    subject: str, body: Iterable[str] = (), trailers: Iterable[Trailer] = ()
) -> str:
    """Assemble message text from a subject, body paragraphs and trailers.

    Example:
        >>> from gitdit.trailer import Trailer
        >>> compose_message("Fix it", ["Details."], [Trailer.create("Dit-status", "open")])
        'Fix it\\n\\nDetails.\\n\\nDit-status: open\\n'
    """
    body_lines = list(_trim_trailing_blank(list(body)))
    trailer_lines = [line for trailer in trailers for line in trailer.render_lines()]
    lines = [subject.strip()]
    if body_lines:
        lines.extend(["", *body_lines])
    if trailer_lines:
        lines.extend(["", *trailer_lines])
    return "\n".join(lines) + "\n"


def quoted(lines: Iterable[str]) -> list[str]:
    """Quote lines for a reply.

    Example:
        >>> quoted(["hello", "", "world"])
        ['> hello', '>', '> world']
    """
    return [f"> {line}" if line else ">" for line in lines]


def reply_subject(subject: str) -> str:
    """Return a subject suitable for a reply.

    Example:
        >>> reply_subject("Crash")
        'Re: Crash'
        >>> reply_subject("Re: Crash")
        'Re: Crash'
    """
    if subject.startswith(REPLY_PREFIX):
        return subject
    return f"{REPLY_PREFIX}{subject}"
