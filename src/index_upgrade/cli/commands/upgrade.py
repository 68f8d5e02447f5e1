"""Upgrade and plan commands for the index-upgrade CLI."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich.panel import Panel
from rich.table import Table

from index_upgrade.cli import StepTracker
from index_upgrade.cli.helpers import (
    build_migrator,
    configure_logging,
    console,
    default_results_dir,
    exit_with_error,
)
from index_upgrade.config import load_config
from index_upgrade.errors import IndexUpgradeError
from index_upgrade.orchestrator import MigrationOutcome
from index_upgrade.versions import DEFAULT_LATTICE, IndexVersion, MigrationPlan, build_plan


def _parse_version(text: str, option: str, json_output: bool) -> IndexVersion:
    try:
        return IndexVersion.parse(text)
    except ValueError as exc:
        exit_with_error(f"{option}: {exc}", json_output)


def _source_version(index_dir: Path, from_version: str | None, json_output: bool) -> IndexVersion:
    if from_version is not None:
        return _parse_version(from_version, "--from", json_output)

    for name in (index_dir.name, index_dir.parent.name):
        detected = IndexVersion.from_directory_name(name)
        if detected is not None:
            return detected
    exit_with_error(
        f"Cannot infer the index version; pass --from (looked at '{index_dir}')",
        json_output,
    )


def _render_outcome(outcome: MigrationOutcome) -> None:
    tracker = StepTracker("Index Upgrade")
    for hop in outcome.plan:
        tracker.add(hop.stage_name, f"{hop.from_version} -> {hop.to_version} ({hop.tool_id})")

    for result in outcome.stage_results:
        key = result.hop.stage_name
        if result.succeeded:
            tracker.complete(key, "upgraded")
        elif result.skipped:
            tracker.skip(key, f"not applicable, exit status {result.exit_code}")
        else:
            tracker.error(key, f"exit status {result.exit_code}; see {result.stderr_path}")

    for hop in outcome.plan:
        if tracker.status_of(hop.stage_name) == "pending":
            tracker.skip(hop.stage_name, "not run")

    console.print(tracker.render())
    console.print()

    if outcome.success:
        lines = [f"[green]Index upgraded to version {outcome.plan.target}[/green]"]
        lines.append(f"Index: {outcome.final_index_path}")
        if outcome.backup_path:
            lines.append(f"Previous index kept at: {outcome.backup_path}")
        console.print(Panel("\n".join(lines), title="Upgrade complete", border_style="green"))
    else:
        console.print(
            Panel(
                f"[red]{outcome.failure_reason}[/red]\nThe original index was left unchanged.",
                title="Upgrade failed",
                border_style="red",
            )
        )


def upgrade(
    index_dir: Path = typer.Argument(..., help="Index directory to upgrade"),
    from_version: Optional[str] = typer.Option(
        None, "--from", help="Current index version (inferred from a solrN_schema_X directory or parent name when omitted)"
    ),
    to_version: Optional[str] = typer.Option(
        None, "--to", help="Target index version (defaults to the newest supported version)"
    ),
    results_dir: Optional[Path] = typer.Option(
        None, "--results-dir", help="Directory for per-stage tool logs (fresh directory per attempt)"
    ),
    config_file: Optional[Path] = typer.Option(None, "--config", help="Path to config.yaml"),
    keep_backup: bool = typer.Option(
        False, "--keep-backup", help="Keep the pre-upgrade index beside the upgraded one"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output results as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show detailed log output"),
) -> None:
    """Upgrade a keyword search index to a newer Solr format.

    Runs each single-version upgrade tool in turn against a staging copy and
    replaces the index only when every required stage succeeds.

    Examples:
        index-upgrade upgrade ./solr4_schema_2.0/index
        index-upgrade upgrade ./index --from 4 --to 6 --results-dir ./logs
    """
    configure_logging(verbose)

    index_dir = index_dir.absolute()
    source = _source_version(index_dir, from_version, json_output)
    target = _parse_version(to_version, "--to", json_output) if to_version else DEFAULT_LATTICE.latest

    try:
        config = load_config(config_file)
        migrator = build_migrator(config, keep_backup=keep_backup)
        outcome = migrator.migrate(
            index_dir,
            source,
            target,
            results_dir or default_results_dir(index_dir),
        )
    except IndexUpgradeError as exc:
        exit_with_error(str(exc), json_output, error_type=type(exc).__name__)

    if json_output:
        typer.echo(json.dumps(outcome.to_dict()))
    else:
        console.print(f"[cyan]Current version:[/cyan] {source}")
        console.print(f"[cyan]Target version:[/cyan]  {target}")
        console.print()
        if outcome.plan.is_empty:
            console.print("[green]Index is already up to date![/green]")
        else:
            _render_outcome(outcome)

    if not outcome.success:
        raise typer.Exit(1)


def _plan_table(plan: MigrationPlan) -> Table:
    table = Table(title=f"Upgrade plan {plan.source} -> {plan.target}")
    table.add_column("Step", justify="right")
    table.add_column("From")
    table.add_column("To")
    table.add_column("Tool")
    table.add_column("On failure")
    for position, hop in enumerate(plan):
        policy = "[red]abort[/red]" if plan.is_mandatory(position) else "[yellow]continue[/yellow]"
        table.add_row(
            str(position + 1),
            str(hop.from_version),
            str(hop.to_version),
            hop.tool_id,
            policy,
        )
    return table


def plan(
    from_version: str = typer.Option(..., "--from", help="Current index version"),
    to_version: Optional[str] = typer.Option(
        None, "--to", help="Target index version (defaults to the newest supported version)"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output the plan as JSON"),
) -> None:
    """Show the upgrade stages needed between two index versions."""
    source = _parse_version(from_version, "--from", json_output)
    target = _parse_version(to_version, "--to", json_output) if to_version else DEFAULT_LATTICE.latest

    try:
        migration_plan = build_plan(source, target)
    except IndexUpgradeError as exc:
        exit_with_error(str(exc), json_output, error_type=type(exc).__name__)

    if json_output:
        typer.echo(json.dumps(migration_plan.to_dict()))
        return

    if migration_plan.is_empty:
        console.print(f"[green]Index version {source} needs no upgrade.[/green]")
        return
    console.print(_plan_table(migration_plan))
