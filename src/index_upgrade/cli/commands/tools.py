"""Tools command: check that every upgrade tool is installed."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

from index_upgrade.cli import StepTracker
from index_upgrade.cli.helpers import build_catalog, console, exit_with_error
from index_upgrade.config import load_config
from index_upgrade.errors import ConfigError
from index_upgrade.versions import DEFAULT_LATTICE


def tools(
    config_file: Optional[Path] = typer.Option(None, "--config", help="Path to config.yaml"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
) -> None:
    """Check that the upgrade tool for every supported stage is installed."""
    try:
        config = load_config(config_file)
    except ConfigError as exc:
        exit_with_error(str(exc), json_output, error_type=type(exc).__name__)

    statuses = build_catalog(config).check(DEFAULT_LATTICE.hops)
    all_found = all(status.found for status in statuses)

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "java_path": config.java_path,
                    "search_paths": [str(p) for p in config.search_paths],
                    "tools": [status.to_dict() for status in statuses],
                    "all_found": all_found,
                }
            )
        )
    else:
        tracker = StepTracker("Check Upgrade Tools")
        for status in statuses:
            key = status.hop.stage_name
            tracker.add(key, f"{status.hop.tool_id} ({status.hop.from_version} -> {status.hop.to_version})")
            if status.found:
                tracker.complete(key, str(status.path))
            else:
                tracker.error(key, status.error or "not found")

        console.print(f"[cyan]Java runtime:[/cyan] {config.java_path}")
        console.print(tracker.render())
        if not config.search_paths:
            console.print("[dim]Tip: set tools.search_paths in config.yaml or INDEX_UPGRADE_TOOLS[/dim]")

    if not all_found:
        raise typer.Exit(1)
