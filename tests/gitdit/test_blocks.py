import gitdit.blocks as blocks
from gitdit.trailer import Trailer


def test_parse_trailer_block_joins_continuation_lines() -> None:
    parsed = blocks.parse_trailer_block(["Dit-note: first", "  second", "Dit-type: bug"])

    assert parsed is not None
    note, kind = parsed
    assert note.value.lines == ("first", "second")
    assert kind == Trailer.create("Dit-type", "bug")


def test_parse_trailer_block_rejects_leading_continuation() -> None:
    assert blocks.parse_trailer_block(["  dangling", "Dit-type: bug"]) is None


def test_parse_trailer_block_rejects_empty_block() -> None:
    assert blocks.parse_trailer_block([]) is None


def test_split_blocks_drops_blank_runs() -> None:
    lines = ["", "a", "b", "", "", "c", ""]

    assert blocks.split_blocks(lines) == [("a", "b"), ("c",)]


def test_last_block_ignores_trailing_blank_lines() -> None:
    assert blocks.last_block(["a", "", "b", "c", "", ""]) == ("b", "c")
    assert blocks.last_block(["", ""]) == ()


def test_body_blocks_classifies_each_paragraph() -> None:
    result = blocks.body_blocks(
        ["Some prose.", "", "Dit-status: open", "", "Key: value", "but prose"]
    )

    assert isinstance(result[0], blocks.TextBlock)
    assert isinstance(result[1], blocks.TrailerBlock)
    assert result[1].trailers == (Trailer.create("Dit-status", "open"),)
    assert isinstance(result[2], blocks.TextBlock)
