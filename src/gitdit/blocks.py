"""Classification of message body blocks into prose and trailers.

A block is a run of non-blank lines. A block is a trailer block only if
every line either starts a trailer (``Key: value``) or continues the
previous trailer (an indented line). Anything else turns the whole block
into prose, so ambiguous text never yields a partial set of trailers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence, Union

from .trailer import Trailer, match_trailer_line


@dataclass(frozen=True)
class TextBlock:
    lines: tuple[str, ...]


@dataclass(frozen=True)
class TrailerBlock:
    lines: tuple[str, ...]
    trailers: tuple[Trailer, ...]


Block = Union[TextBlock, TrailerBlock]


def _is_continuation(line: str) -> bool:
    return bool(line) and line[0].isspace() and bool(line.strip())


def parse_trailer_block(lines: Sequence[str]) -> tuple[Trailer, ...] | None:
    """Decode a block of lines as trailers.

    Returns the trailers in source order, or ``None`` if any line is neither
    a trailer start nor a continuation of the previous trailer.

    Example:
        >>> [str(t) for t in parse_trailer_block(["Dit-status: open", "Dit-type: bug"])]
        ['Dit-status: open', 'Dit-type: bug']
        >>> parse_trailer_block(["Dit-status: open", "and some prose"]) is None
        True
    """
    trailers: list[Trailer] = []
    current: Trailer | None = None
    for line in lines:
        started = match_trailer_line(line)
        if started is not None:
            if current is not None:
                trailers.append(current)
            current = started
            continue
        if current is not None and _is_continuation(line):
            current = Trailer(key=current.key, value=current.value.append_line(line.strip()))
            continue
        return None
    if current is not None:
        trailers.append(current)
    if not trailers:
        return None
    return tuple(trailers)


def split_blocks(lines: Iterable[str]) -> list[tuple[str, ...]]:
    """Split lines into runs of non-blank lines."""
    blocks: list[tuple[str, ...]] = []
    pending: list[str] = []
    for line in lines:
        if line.strip():
            pending.append(line)
            continue
        if pending:
            blocks.append(tuple(pending))
            pending = []
    if pending:
        blocks.append(tuple(pending))
    return blocks


def last_block(lines: Sequence[str]) -> tuple[str, ...]:
    """Return the last contiguous run of non-blank lines, or an empty tuple."""
    end = len(lines)
    while end > 0 and not lines[end - 1].strip():
        end -= 1
    start = end
    while start > 0 and lines[start - 1].strip():
        start -= 1
    return tuple(lines[start:end])


def classify_block(lines: Sequence[str]) -> Block:
    trailers = parse_trailer_block(lines)
    if trailers is None:
        return TextBlock(lines=tuple(lines))
    return TrailerBlock(lines=tuple(lines), trailers=trailers)


def body_blocks(lines: Iterable[str]) -> list[Block]:
    """Categorize every paragraph of a message body."""
    return [classify_block(block) for block in split_blocks(lines)]
