"""Configuration helpers for git-dit repositories.

Settings live in git config and are validated with Pydantic models:

- ``dit.remote-prios``: comma separated remote priority list.
- ``core.commentChar``: comment marker for new messages.
- ``core.abbrev``: abbreviated id length.
- ``dit.gc-consider-remote`` and ``dit.gc-collect-heads``: gc defaults.
"""

from __future__ import annotations

from typing import Protocol

from pydantic import ValidationError

from . import log as dit_log
from .errors import DitError
from .models import DitConfig

CONFIG_KEYS = {
    "remote_priorities": "dit.remote-prios",
    "comment_marker": "core.commentChar",
    "abbrev": "core.abbrev",
}
GC_CONFIG_KEYS = {
    "consider_remote": "dit.gc-consider-remote",
    "collect_heads": "dit.gc-collect-heads",
}


class ConfigSource(Protocol):
    def config_get(self, key: str) -> str | None: ...


def _read(source: ConfigSource, keys: dict[str, str]) -> dict[str, str]:
    payload: dict[str, str] = {}
    for field, key in keys.items():
        value = source.config_get(key)
        if value is not None:
            dit_log.trace(f"[config] {key}={value}")
            payload[field] = value
    return payload


def load_config(source: ConfigSource) -> DitConfig:
    """Read and validate the effective configuration from git config.

    Raises:
        DitError: If a configured value is invalid.
    """
    payload: dict[str, object] = dict(_read(source, CONFIG_KEYS))
    payload["gc"] = _read(source, GC_CONFIG_KEYS)
    try:
        return DitConfig.model_validate(payload)
    except ValidationError as exc:
        raise DitError(
            "invalid_config",
            f"invalid git-dit configuration: {exc}",
            recovery_hint="fix the dit.* or core.* git config values",
        ) from exc
