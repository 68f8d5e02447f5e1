"""Helpers for building fake upgrade tool installs in tests.

The fake Java runtime is a shell wrapper around the current interpreter.
It reads the "jar" it is given as JSON describing what the tool should do::

    {
        "exit_code": 0,
        "stdout": "...",
        "stderr": "...",
        "write": {"segments_2": "lucene6"},
        "output_suffix": null,
        "record": "/tmp/.../invocations.log"
    }
"""

from __future__ import annotations

import hashlib
import json
import os
import stat
import sys
from pathlib import Path

from index_upgrade.versions import IndexVersion, UpgradeHop

HOP_4_TO_5 = UpgradeHop(IndexVersion(4), IndexVersion(5), "Solr4to5IndexUpgrade")
HOP_5_TO_6 = UpgradeHop(IndexVersion(5), IndexVersion(6), "Solr5to6IndexUpgrade")

ARTIFACTS = {
    "Solr4to5IndexUpgrade": "Solr4IndexUpgrade.jar",
    "Solr5to6IndexUpgrade": "Solr5IndexUpgrade.jar",
}

_DRIVER = '''\
import json
import shutil
import sys
from pathlib import Path

args = sys.argv[1:]
if len(args) != 3 or args[0] != "-jar":
    sys.stderr.write("usage: java -jar <tool> <index>\\n")
    sys.exit(2)

tool = Path(args[1])
index = Path(args[2])
spec = json.loads(tool.read_text(encoding="utf-8"))

if spec.get("record"):
    with open(spec["record"], "a", encoding="utf-8") as fh:
        fh.write(f"{tool.name} {index}\\n")

sys.stdout.write(spec.get("stdout", ""))
sys.stderr.write(spec.get("stderr", ""))

target = index
if spec.get("output_suffix"):
    target = index.with_name(index.name + spec["output_suffix"])
    shutil.copytree(index, target)

for name, content in spec.get("write", {}).items():
    (target / name).write_text(content, encoding="utf-8")

sys.exit(spec.get("exit_code", 0))
'''


def write_fake_runtime(directory: Path) -> Path:
    """Create an executable fake ``java`` that runs JSON-described tools."""
    directory.mkdir(parents=True, exist_ok=True)
    driver = directory / "fake_java_driver.py"
    driver.write_text(_DRIVER, encoding="utf-8")

    runtime = directory / "java"
    runtime.write_text(
        f'#!/bin/sh\nexec "{sys.executable}" "{driver}" "$@"\n',
        encoding="utf-8",
    )
    runtime.chmod(runtime.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return runtime


def write_fake_tool(
    tools_root: Path,
    tool_id: str,
    *,
    namespace: str | None = None,
    **behaviour: object,
) -> Path:
    """Install a fake tool under *tools_root* and return its artifact path."""
    tool_dir = tools_root / namespace / tool_id if namespace else tools_root / tool_id
    tool_dir.mkdir(parents=True, exist_ok=True)
    artifact = tool_dir / ARTIFACTS[tool_id]
    artifact.write_text(json.dumps(behaviour), encoding="utf-8")
    return artifact


def make_index(path: Path, version: int = 4) -> Path:
    """Create a small index-like directory tree."""
    path.mkdir(parents=True)
    (path / "segments_1").write_text(f"lucene{version}", encoding="utf-8")
    (path / "_0.cfs").write_bytes(os.urandom(256))
    (path / "_0.cfe").write_bytes(b"\x00\x01\x02")
    (path / "write.lock").write_text("", encoding="utf-8")
    return path


def tree_checksum(path: Path) -> str:
    """Checksum of every relative path and file body under *path*."""
    digest = hashlib.sha256()
    for entry in sorted(path.rglob("*")):
        digest.update(str(entry.relative_to(path)).encode("utf-8"))
        if entry.is_file():
            digest.update(entry.read_bytes())
    return digest.hexdigest()


def read_invocations(record: Path) -> list[str]:
    if not record.exists():
        return []
    return [line for line in record.read_text(encoding="utf-8").splitlines() if line]
