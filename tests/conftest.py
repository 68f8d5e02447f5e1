from __future__ import annotations

import os
from pathlib import Path

import pytest

from tests.utils import make_index, write_fake_runtime


@pytest.fixture(autouse=True)
def isolated_upgrade_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep config and default logs out of the real home directory."""
    home = tmp_path / "upgrade-home"
    monkeypatch.setenv("INDEX_UPGRADE_HOME", str(home))
    monkeypatch.delenv("INDEX_UPGRADE_JAVA", raising=False)
    monkeypatch.delenv("INDEX_UPGRADE_TOOLS", raising=False)
    return home


@pytest.fixture()
def index_dir(tmp_path: Path) -> Path:
    return make_index(tmp_path / "case" / "solr4_schema_2.0" / "index")


@pytest.fixture()
def results_dir(tmp_path: Path) -> Path:
    return tmp_path / "results" / "IndexUpgrade"


@pytest.fixture()
def tools_root(tmp_path: Path) -> Path:
    root = tmp_path / "modules"
    root.mkdir()
    return root


@pytest.fixture()
def fake_java(tmp_path: Path) -> Path:
    if os.name == "nt":
        pytest.skip("fake Java runtime is a POSIX shell script")
    return write_fake_runtime(tmp_path / "jre" / "bin")
