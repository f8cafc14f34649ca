"""gitdit package metadata.

Exports the package version resolved from installed distribution
information.

Example:
    >>> from gitdit import __version__
    >>> isinstance(__version__, str)
    True
"""

from __future__ import annotations

__all__ = ["__version__"]

try:
    from importlib.metadata import PackageNotFoundError, version
except ImportError:  # pragma: no cover - import edge cases
    __version__ = "0.0.0"
else:
    try:
        __version__ = version("gitdit")
    except PackageNotFoundError:
        __version__ = "0.0.0"
