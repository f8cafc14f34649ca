import pytest

import gitdit.config as config
import gitdit.models as models
from gitdit.errors import DitError
from gitdit.gc.models import HeadCollection


class FakeConfigSource:
    def __init__(self, values: dict[str, str]) -> None:
        self.values = values

    def config_get(self, key: str) -> str | None:
        return self.values.get(key)


def test_defaults_when_nothing_is_configured() -> None:
    loaded = config.load_config(FakeConfigSource({}))

    assert loaded.remote_priorities == ["*"]
    assert loaded.comment_marker == "#"
    assert loaded.abbrev == 7
    assert loaded.gc.consider_remote is False
    assert loaded.gc.head_collection() is HeadCollection.NEVER


def test_git_config_values_are_normalized() -> None:
    loaded = config.load_config(
        FakeConfigSource(
            {
                "dit.remote-prios": "upstream, origin ,*",
                "core.commentChar": ";",
                "core.abbrev": "12",
                "dit.gc-consider-remote": "yes",
                "dit.gc-collect-heads": "Backed-By-Remote-Head",
            }
        )
    )

    assert loaded.priority().entries == ("upstream", "origin", "*")
    assert loaded.comment_marker == ";"
    assert loaded.abbrev == 12
    options = loaded.collection_options()
    assert options.consider_remote is True
    assert options.collect_heads is HeadCollection.BACKED_BY_REMOTE_HEAD


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("core.abbrev", "2"),
        ("dit.gc-collect-heads", "always"),
        ("dit.gc-consider-remote", "maybe"),
    ],
)
def test_invalid_values_raise_dit_error(key: str, value: str) -> None:
    with pytest.raises(DitError) as excinfo:
        config.load_config(FakeConfigSource({key: value}))

    assert excinfo.value.code == "invalid_config"


def test_auto_values_use_defaults() -> None:
    loaded = models.DitConfig(comment_marker="auto", abbrev="auto")

    assert loaded.comment_marker == "#"
    assert loaded.abbrev == 7


def test_empty_priority_list_falls_back_to_wildcard() -> None:
    assert models.DitConfig(remote_priorities=" , ").remote_priorities == ["*"]
