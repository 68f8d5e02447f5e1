"""Runs one upgrade tool as a child process.

The command line is fixed: ``<java> -jar <tool.jar> <index dir>``. The
child's stdout and stderr go straight to the stage's log files and the
caller blocks until the process exits. A non-zero exit is reported in the
returned :class:`StageResult`; only failures to create the log files or to
spawn the process raise :class:`StageLaunchError`.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

from .diagnostics import DiagnosticsSink
from .errors import StageLaunchError
from .versions import UpgradeHop

logger = logging.getLogger(__name__)

__all__ = ["StageResult", "StageRunner"]


@dataclass(frozen=True)
class StageResult:
    """Outcome of running one hop's tool."""

    hop: UpgradeHop
    exit_code: int
    stdout_path: Path
    stderr_path: Path
    output_path: Path
    succeeded: bool
    fatal: bool

    @property
    def skipped(self) -> bool:
        """Failed, but the failure was tolerated."""
        return not self.succeeded and not self.fatal

    @property
    def status(self) -> str:
        if self.succeeded:
            return "succeeded"
        return "skipped" if self.skipped else "failed"

    def to_dict(self) -> dict[str, object]:
        return {
            **self.hop.to_dict(),
            "status": self.status,
            "exit_code": self.exit_code,
            "stdout": str(self.stdout_path),
            "stderr": str(self.stderr_path),
            "output_path": str(self.output_path),
        }


class StageRunner:
    """Launches upgrade tools with a given Java runtime."""

    def __init__(self, java_path: str = "java"):
        self.java_path = java_path

    def build_command(self, tool_path: Path, index_path: Path) -> list[str]:
        return [self.java_path, "-jar", str(Path(tool_path).absolute()), str(Path(index_path).absolute())]

    def run(
        self,
        hop: UpgradeHop,
        tool_path: Path,
        input_path: Path,
        output_path: Path,
        results_dir: Path,
        *,
        mandatory: bool = True,
    ) -> StageResult:
        """Run *hop*'s tool against *input_path* and wait for it to exit.

        Args:
            hop: The hop being performed
            tool_path: Resolved tool artifact
            input_path: Index directory handed to the tool
            output_path: Where the tool leaves the upgraded index (equal to
                *input_path* for tools that upgrade in place)
            results_dir: Root results directory for diagnostics
            mandatory: Whether a failure of this hop is fatal

        Returns:
            StageResult; ``succeeded`` requires exit status 0 and an existing
            *output_path*

        Raises:
            StageLaunchError: If the log files cannot be created or the
                process cannot be spawned
        """
        logs = DiagnosticsSink(results_dir).log_paths(hop)
        try:
            logs.stdout.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StageLaunchError(hop, f"cannot create results directory {logs.stdout.parent}: {exc}") from exc

        command = self.build_command(tool_path, input_path)
        logger.info(f"Upgrading index {input_path} ({hop.stage_name}) with {Path(tool_path).name}")
        logger.debug(f"Running: {' '.join(command)}")

        try:
            out = open(logs.stdout, "wb")
        except OSError as exc:
            raise StageLaunchError(hop, f"cannot write logs to {logs.stdout}: {exc}") from exc
        try:
            err = open(logs.stderr, "wb")
        except OSError as exc:
            out.close()
            raise StageLaunchError(hop, f"cannot write logs to {logs.stderr}: {exc}") from exc

        with out, err:
            try:
                completed = subprocess.run(
                    command,
                    stdin=subprocess.DEVNULL,
                    stdout=out,
                    stderr=err,
                    check=False,
                )
            except OSError as exc:
                raise StageLaunchError(hop, f"cannot launch {command[0]}: {exc}") from exc

        exit_code = completed.returncode
        succeeded = exit_code == 0
        if succeeded and not Path(output_path).is_dir():
            logger.error(f"{hop.stage_name} exited 0 but produced no index at {output_path}")
            succeeded = False
        elif not succeeded:
            logger.log(
                logging.ERROR if mandatory else logging.WARNING,
                f"{hop.stage_name} exited with status {exit_code}; see {logs.stderr}",
            )

        return StageResult(
            hop=hop,
            exit_code=exit_code,
            stdout_path=logs.stdout,
            stderr_path=logs.stderr,
            output_path=Path(output_path),
            succeeded=succeeded,
            fatal=mandatory and not succeeded,
        )
