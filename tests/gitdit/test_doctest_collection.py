from pathlib import Path

import pytest


def test_doctest_modules_live_under_src(pytestconfig: pytest.Config) -> None:
    collectors = [
        plugin
        for plugin in pytestconfig.pluginmanager.get_plugins()
        if hasattr(plugin, "DOCTEST_MODULES")
    ]
    src = Path(pytestconfig.rootpath) / "src" / "gitdit"

    assert collectors
    modules = collectors[0].DOCTEST_MODULES
    assert modules
    assert all(path.is_file() and src in path.parents for path in modules)
