"""Shared helpers for index-upgrade CLI commands."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.logging import RichHandler

from index_upgrade.catalog import DirectoryToolLocator, StageCatalog
from index_upgrade.config import UpgradeConfig, get_upgrade_home
from index_upgrade.orchestrator import IndexMigrator
from index_upgrade.runner import StageRunner

console = Console()


def configure_logging(verbose: bool) -> None:
    """Route library logging through Rich when ``--verbose`` is given."""
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def build_catalog(config: UpgradeConfig) -> StageCatalog:
    return StageCatalog(DirectoryToolLocator(config.search_paths), namespace=config.namespace)


def build_migrator(config: UpgradeConfig, keep_backup: bool = False) -> IndexMigrator:
    """Wire catalog and runner from resolved configuration."""
    return IndexMigrator(
        catalog=build_catalog(config),
        runner=StageRunner(config.java_path),
        keep_backup=keep_backup or config.keep_backup,
    )


def default_results_dir(index_dir: Path) -> Path:
    """Return a fresh per-attempt log directory under the upgrade home."""
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    return get_upgrade_home() / "logs" / f"{index_dir.name}-{stamp}"


def exit_with_error(message: str, json_output: bool, **extra: object) -> NoReturn:
    """Print an error (plain or JSON) and exit with status 1."""
    if json_output:
        typer.echo(json.dumps({"error": message, **extra}))
    else:
        console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(1)
