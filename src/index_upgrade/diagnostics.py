"""Per-stage diagnostic files under a results directory.

Layout::

    <results_dir>/
        solr4-to-solr5/output.txt
        solr4-to-solr5/output.txt.err
        solr5-to-solr6/output.txt
        solr5-to-solr6/output.txt.err
        upgrade-report.json

The caller picks a fresh results directory per attempt; files from an
earlier run in the same directory are overwritten.
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from .versions import UpgradeHop

STDOUT_FILENAME = "output.txt"
STDERR_FILENAME = STDOUT_FILENAME + ".err"
REPORT_FILENAME = "upgrade-report.json"


@dataclass(frozen=True)
class StageLogPaths:
    stdout: Path
    stderr: Path


class DiagnosticsSink:
    """Owns the results directory and names each stage's log files."""

    def __init__(self, results_dir: Path):
        self.results_dir = Path(results_dir)

    def ensure(self) -> Path:
        """Create the results directory (and parents) if missing."""
        self.results_dir.mkdir(parents=True, exist_ok=True)
        return self.results_dir

    def stage_dir(self, hop: UpgradeHop) -> Path:
        return self.results_dir / hop.stage_name

    def log_paths(self, hop: UpgradeHop) -> StageLogPaths:
        stage_dir = self.stage_dir(hop)
        return StageLogPaths(
            stdout=stage_dir / STDOUT_FILENAME,
            stderr=stage_dir / STDERR_FILENAME,
        )

    @property
    def report_path(self) -> Path:
        return self.results_dir / REPORT_FILENAME

    def write_report(self, payload: dict[str, object]) -> Path:
        """Atomically write the JSON run summary.

        Temp file is created in the results directory so ``os.replace``
        stays on one filesystem.
        """
        self.ensure()
        report = self.report_path
        fd, tmp_path = tempfile.mkstemp(
            dir=self.results_dir,
            prefix=f".{REPORT_FILENAME}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, sort_keys=True)
                f.write("\n")
            os.replace(tmp_path, report)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        return report
