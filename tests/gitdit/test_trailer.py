import pytest

import gitdit.trailer as trailer
from gitdit.errors import MalformedMessage


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("dit-status", "Dit-status"),
        ("DIT-STATUS", "Dit-status"),
        ("Dit-Status", "Dit-status"),
        ("  signed-off-by ", "Signed-off-by"),
    ],
)
def test_normalize_key_is_case_insensitive(value: str, expected: str) -> None:
    assert trailer.normalize_key(value) == expected


@pytest.mark.parametrize("value", ["", "-leading", "has space", "colon:", "ünïcode"])
def test_normalize_key_rejects_invalid_keys(value: str) -> None:
    with pytest.raises(MalformedMessage):
        trailer.normalize_key(value)


def test_match_trailer_line_requires_colon_space() -> None:
    parsed = trailer.match_trailer_line("Dit-status: open")

    assert parsed == trailer.Trailer.create("Dit-status", "open")
    assert trailer.match_trailer_line("Dit-status:open") is None
    assert trailer.match_trailer_line("Dit status: open") is None
    assert trailer.match_trailer_line("  Dit-status: open") is None


def test_match_trailer_line_rejects_empty_value() -> None:
    assert trailer.match_trailer_line("Dit-assignee:") is None
    assert trailer.match_trailer_line("Steps: ") is None


def test_parse_trailer_rejects_empty_value() -> None:
    with pytest.raises(MalformedMessage):
        trailer.parse_trailer("Dit-status=")


def test_parse_trailer_accepts_equals_and_colon_forms() -> None:
    assert trailer.parse_trailer("dit-type=bug") == trailer.Trailer.create("Dit-type", "bug")
    assert trailer.parse_trailer("Dit-type: bug") == trailer.Trailer.create("Dit-type", "bug")
    with pytest.raises(MalformedMessage):
        trailer.parse_trailer("no separator here")


def test_multiline_value_renders_continuation_lines_indented() -> None:
    value = trailer.TrailerValue(("first", "second"))
    item = trailer.Trailer.create("Dit-note", value)

    assert value.is_multiline
    assert item.render_lines() == ["Dit-note: first", " second"]
    assert str(value) == "first\nsecond"


def test_values_compare_by_exact_lines() -> None:
    wrapped = trailer.TrailerValue(("a", "b"))
    single = trailer.TrailerValue.from_text("a b")

    assert wrapped != single
    assert wrapped == trailer.TrailerValue.from_text("a\nb")


def test_is_dit_uses_canonical_prefix() -> None:
    assert trailer.Trailer.create("DIT-TYPE", "bug").is_dit
    assert not trailer.Trailer.create("Signed-off-by", "me").is_dit


def test_default_registry_knows_dit_keys() -> None:
    registry = trailer.default_registry()

    assert registry.get("dit-status") == trailer.ISSUE_STATUS_SPEC
    assert registry.get("Dit-label").policy is trailer.AccumulationPolicy.LIST
    assert "DIT-TYPE" in registry
    assert "not a key" not in registry
    assert registry.get("Dit-unknown") is None
    assert len(registry) == len(trailer.DEFAULT_SPECS)


def test_registry_register_overrides_existing_spec() -> None:
    registry = trailer.default_registry()
    registry.register(trailer.TrailerSpec("dit-status", trailer.AccumulationPolicy.LIST))

    spec = registry.get("Dit-status")
    assert spec is not None
    assert spec.policy is trailer.AccumulationPolicy.LIST
