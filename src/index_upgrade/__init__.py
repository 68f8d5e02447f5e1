"""
index-upgrade - migrate keyword search indexes to the current Solr format.

Usage:
    index-upgrade upgrade <index-dir> [--from 4] [--to 6]
    index-upgrade plan --from 4
    index-upgrade tools
"""

from __future__ import annotations

import typer

from index_upgrade.catalog import DirectoryToolLocator, StageCatalog, ToolLocator, ToolSpec
from index_upgrade.config import UpgradeConfig, load_config
from index_upgrade.errors import (
    ConfigError,
    IndexDirectoryError,
    IndexUpgradeError,
    NoMigrationPath,
    StageFailed,
    StageLaunchError,
    ToolArtifactMissing,
    ToolNotFound,
)
from index_upgrade.orchestrator import IndexMigrator, MigrationOutcome
from index_upgrade.runner import StageResult, StageRunner
from index_upgrade.versions import (
    DEFAULT_LATTICE,
    IndexVersion,
    MigrationPlan,
    UpgradeHop,
    VersionLattice,
    build_plan,
)

__version__ = "1.0.0"

app = typer.Typer(
    name="index-upgrade",
    help="Upgrade keyword search indexes through successive Solr formats",
    add_completion=False,
    no_args_is_help=True,
)


def _register_commands() -> None:
    from index_upgrade.cli.commands.tools import tools
    from index_upgrade.cli.commands.upgrade import plan, upgrade

    app.command()(upgrade)
    app.command()(plan)
    app.command()(tools)


_register_commands()


def main():
    app()


__all__ = [
    "app",
    "main",
    "ConfigError",
    "DEFAULT_LATTICE",
    "DirectoryToolLocator",
    "IndexDirectoryError",
    "IndexMigrator",
    "IndexUpgradeError",
    "IndexVersion",
    "MigrationOutcome",
    "MigrationPlan",
    "NoMigrationPath",
    "StageCatalog",
    "StageFailed",
    "StageLaunchError",
    "StageResult",
    "StageRunner",
    "ToolArtifactMissing",
    "ToolLocator",
    "ToolNotFound",
    "ToolSpec",
    "UpgradeConfig",
    "UpgradeHop",
    "VersionLattice",
    "build_plan",
    "load_config",
]


if __name__ == "__main__":
    main()
