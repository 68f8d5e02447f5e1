"""Migration orchestrator: runs a plan's hops and commits the result.

All hops run against a staging copy of the index that sits beside it.
The original directory is only replaced, by rename, after every mandatory
hop has succeeded. On failure the staging copy and any directories the tools
created are removed and the original is left as it was.

The first hop of a plan is best-effort. An index that is already newer than
the first tool expects makes that tool fail, so its failure is logged and the
next hop runs against the unchanged copy. Every later hop, and the only hop
of a single-hop plan, is mandatory.
"""

from __future__ import annotations

import logging
import os
import shutil
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from .catalog import StageCatalog
from .diagnostics import DiagnosticsSink
from .errors import IndexDirectoryError, IndexUpgradeError, StageFailed, StageLaunchError
from .runner import StageResult, StageRunner
from .versions import (
    DEFAULT_LATTICE,
    IndexVersion,
    MigrationPlan,
    UpgradeHop,
    VersionLattice,
    build_plan,
)

logger = logging.getLogger(__name__)

__all__ = ["MigrationOutcome", "IndexMigrator"]


@dataclass(frozen=True)
class MigrationOutcome:
    """Report of one migration; the directory on disk is the real result."""

    success: bool
    plan: MigrationPlan
    stage_results: tuple[StageResult, ...] = ()
    final_index_path: Path | None = None
    failure_reason: str | None = None
    backup_path: Path | None = None

    @property
    def failed_hop(self) -> UpgradeHop | None:
        for result in self.stage_results:
            if result.fatal:
                return result.hop
        return None

    @property
    def skipped_hops(self) -> list[UpgradeHop]:
        return [result.hop for result in self.stage_results if result.skipped]

    def raise_for_failure(self) -> None:
        """Raise :class:`StageFailed` if the migration did not succeed."""
        if self.success:
            return
        failed = next((r for r in self.stage_results if r.fatal), None)
        if failed is None:
            raise IndexUpgradeError(self.failure_reason or "Index upgrade failed")
        raise StageFailed(failed.hop, failed.exit_code, self.failure_reason)

    def to_dict(self) -> dict[str, object]:
        return {
            "success": self.success,
            "plan": self.plan.to_dict(),
            "stages": [result.to_dict() for result in self.stage_results],
            "final_index_path": str(self.final_index_path) if self.final_index_path else None,
            "failure_reason": self.failure_reason,
            "backup_path": str(self.backup_path) if self.backup_path else None,
        }


@dataclass
class _Workspace:
    """Directories created during one migration, for cleanup."""

    index_dir: Path
    token: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    created: list[Path] = field(default_factory=list)

    @property
    def staging_dir(self) -> Path:
        return self.index_dir.with_name(f".{self.index_dir.name}.upgrade-{self.token}")

    @property
    def backup_dir(self) -> Path:
        return self.index_dir.with_name(f".{self.index_dir.name}.pre-upgrade-{self.token}")

    def track(self, path: Path) -> None:
        if path != self.index_dir and path not in self.created:
            self.created.append(path)

    def discard(self, keep: Path | None = None) -> None:
        for path in reversed(self.created):
            if path == keep or not path.exists():
                continue
            logger.debug(f"Removing upgrade scratch directory {path}")
            shutil.rmtree(path, ignore_errors=True)


class IndexMigrator:
    """Upgrades an index directory through every hop of a migration plan."""

    def __init__(
        self,
        catalog: StageCatalog,
        runner: StageRunner,
        lattice: VersionLattice = DEFAULT_LATTICE,
        keep_backup: bool = False,
    ):
        self.catalog = catalog
        self.runner = runner
        self.lattice = lattice
        self.keep_backup = keep_backup

    def plan(self, source: IndexVersion, target: IndexVersion) -> MigrationPlan:
        return build_plan(source, target, self.lattice)

    def migrate(
        self,
        index_dir: Path,
        source: IndexVersion,
        target: IndexVersion,
        results_dir: Path,
    ) -> MigrationOutcome:
        """Upgrade *index_dir* from *source* to *target*.

        Args:
            index_dir: Index directory to upgrade; replaced only on success
            source: Detected format version of the index
            target: Format version required by the search engine
            results_dir: Fresh directory for per-stage logs and the run report

        Returns:
            MigrationOutcome; ``success`` is False when a mandatory hop failed

        Raises:
            NoMigrationPath: If no hop chain connects the versions
            ToolNotFound, ToolArtifactMissing: If a hop's tool is not installed
            StageLaunchError: If the results directory cannot be created or a
                tool cannot be launched or logged
            IndexDirectoryError: If the index cannot be staged or swapped
        """
        index_dir = Path(index_dir).absolute()
        plan = self.plan(source, target)

        if plan.is_empty:
            logger.info(f"Index {index_dir} is already at version {target}")
            return MigrationOutcome(success=True, plan=plan, final_index_path=index_dir)

        if not index_dir.is_dir():
            raise IndexDirectoryError(f"Index directory does not exist: {index_dir}")

        diagnostics = DiagnosticsSink(results_dir)
        try:
            diagnostics.ensure()
        except OSError as exc:
            raise StageLaunchError(
                plan.hops[0], f"cannot create results directory {diagnostics.results_dir}: {exc}"
            ) from exc

        workspace = _Workspace(index_dir)
        try:
            outcome = self._run_plan(plan, workspace, diagnostics)
        except BaseException:
            workspace.discard()
            raise

        try:
            diagnostics.write_report(outcome.to_dict())
        except OSError as exc:
            logger.error(f"Cannot write upgrade report {diagnostics.report_path}: {exc}")
        return outcome

    def _run_plan(
        self,
        plan: MigrationPlan,
        workspace: _Workspace,
        diagnostics: DiagnosticsSink,
    ) -> MigrationOutcome:
        logger.info(f"Upgrading index {workspace.index_dir} from {plan.source} to {plan.target}")
        working = self._stage(workspace)

        results: list[StageResult] = []
        for position, hop in enumerate(plan):
            mandatory = plan.is_mandatory(position)
            spec = self.catalog.spec_for(hop)
            tool_path = self.catalog.resolve(hop)
            output_path = spec.output_path(working)
            workspace.track(output_path)

            result = self.runner.run(
                hop,
                tool_path,
                working,
                output_path,
                diagnostics.results_dir,
                mandatory=mandatory,
            )
            results.append(result)

            if result.succeeded:
                working = result.output_path
            elif not mandatory:
                logger.warning(
                    f"Best-effort stage {hop.stage_name} did not apply "
                    f"(exit status {result.exit_code}); continuing"
                )
            else:
                reason = str(StageFailed(hop, result.exit_code))
                logger.error(f"{reason}; discarding upgraded copy of {workspace.index_dir}")
                workspace.discard()
                return MigrationOutcome(
                    success=False,
                    plan=plan,
                    stage_results=tuple(results),
                    failure_reason=reason,
                )

        backup = self._commit(working, workspace)
        logger.info(f"Index {workspace.index_dir} upgraded to version {plan.target}")
        return MigrationOutcome(
            success=True,
            plan=plan,
            stage_results=tuple(results),
            final_index_path=workspace.index_dir,
            backup_path=backup,
        )

    def _stage(self, workspace: _Workspace) -> Path:
        staging = workspace.staging_dir
        workspace.track(staging)
        try:
            shutil.copytree(workspace.index_dir, staging, symlinks=True)
        except (OSError, shutil.Error) as exc:
            raise IndexDirectoryError(f"Cannot stage index copy at {staging}: {exc}") from exc
        return staging

    def _commit(self, working: Path, workspace: _Workspace) -> Path | None:
        """Swap the upgraded directory into place; return the kept backup."""
        index_dir = workspace.index_dir
        backup = workspace.backup_dir
        try:
            os.replace(index_dir, backup)
        except OSError as exc:
            raise IndexDirectoryError(f"Cannot move {index_dir} aside: {exc}") from exc

        try:
            os.replace(working, index_dir)
        except OSError as exc:
            try:
                os.replace(backup, index_dir)
            except OSError as restore_exc:
                raise IndexDirectoryError(
                    f"Cannot move upgraded index into {index_dir} ({exc}) and cannot restore "
                    f"the original from {backup}: {restore_exc}"
                ) from restore_exc
            raise IndexDirectoryError(f"Cannot move upgraded index into {index_dir}: {exc}") from exc

        workspace.discard(keep=index_dir)
        if self.keep_backup:
            return backup
        shutil.rmtree(backup, ignore_errors=True)
        return None
