from pathlib import Path

import pytest
from _pytest.doctest import DoctestModule

ROOT = Path(__file__).resolve().parent

DOCTEST_MODULES = {
    ROOT / "src" / "gitdit" / "__init__.py",
    ROOT / "src" / "gitdit" / "blocks.py",
    ROOT / "src" / "gitdit" / "git.py",
    ROOT / "src" / "gitdit" / "io.py",
    ROOT / "src" / "gitdit" / "message.py",
    ROOT / "src" / "gitdit" / "models.py",
    ROOT / "src" / "gitdit" / "refs.py",
    ROOT / "src" / "gitdit" / "trailer.py",
    ROOT / "src" / "gitdit" / "commands" / "resolve.py",
}


def pytest_collect_file(
    parent: pytest.Collector, file_path: Path
) -> DoctestModule | None:
    path = file_path if isinstance(file_path, Path) else Path(str(file_path))
    if path in DOCTEST_MODULES:
        return DoctestModule.from_parent(parent, path=path)
    return None
