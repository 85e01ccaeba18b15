"""Console rendering and progress helpers for publisher CLI."""
from __future__ import annotations

import time
from typing import Any, Dict, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .models import ChangeSetEntry, FileResult, Manifest, RunResult, RunState

console = Console()

_STATE_STYLES = {
    RunState.COMPLETED: "bold green",
    RunState.PARTIALLY_FAILED: "bold yellow",
    RunState.REJECTED: "bold red",
}


def render_configuration_summary(config: Dict[str, Any]) -> None:
    """Render startup configuration summary."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]tutorial-publish[/bold green]",
        subtitle="[dim]publisher CLI[/dim]",
        border_style="blue",
    )
    console.print(panel)


def render_run_result(result: RunResult) -> None:
    """Render per-file outcomes and the run summary."""
    style = _STATE_STYLES.get(result.state, "bold")
    if result.state == RunState.REJECTED:
        console.print(f"[{style}]Rejected:[/{style}] {result.error}")
        return

    table = Table(title="Publish results", show_lines=False)
    table.add_column("File", style="white")
    table.add_column("Outcome")
    table.add_column("Upload", justify="center")
    table.add_column("Metadata", justify="center")
    table.add_column("Storage ref", style="dim")
    table.add_column("Error", style="red")

    for file_result in sorted(result.results, key=lambda r: r.path):
        outcome = file_result.outcome.value
        outcome = f"[green]{outcome}[/green]" if file_result.success else f"[red]{outcome}[/red]"
        table.add_row(
            file_result.path,
            outcome,
            "uploaded" if file_result.uploaded else "-",
            "written" if file_result.reconciled else "-",
            file_result.storage_ref or "-",
            file_result.error or "",
        )

    console.print(table)
    console.print(
        f"[{style}]{result.state.value}[/{style}] uploaded={result.uploaded} "
        f"unchanged={result.skipped} failed={result.failed} metadata_writes={result.metadata_writes}"
    )
    if result.state == RunState.PARTIALLY_FAILED:
        console.print("[yellow]Re-run publish to retry the failed files; completed files are skipped.[/yellow]")


def render_manifest(manifest: Manifest) -> None:
    """Render manifest content after prepublish."""
    table = Table(title=f"Manifest ({manifest.slug or 'unnamed'}, proposal {manifest.proposal_id})")
    table.add_column("Path")
    table.add_column("Name")
    table.add_column("Digest", style="dim")
    table.add_column("Storage ref", style="dim")
    for path, record in sorted(manifest.files.items()):
        table.add_row(path, record.name, (record.digest or "-")[:16], record.storage_ref or "-")
    console.print(table)
    for key, reviewer in sorted(manifest.reviewers.items()):
        console.print(f"[cyan]{key}[/cyan]: {reviewer.github_name or '-'} ({reviewer.pubkey})")


class PublishProgressDisplay:
    """Timeline of per-file events during a publish run."""

    def __init__(self):
        self._started: Dict[str, float] = {}

    def _emit_timeline(self, status: str, path: str, error: Optional[str] = None) -> None:
        stamp = time.strftime("%H:%M:%S")
        elapsed = ""
        started = self._started.pop(path, None)
        if started is not None:
            elapsed = f" ({time.monotonic() - started:.1f}s)"
        error_label = f" - {error}" if error else ""
        color = "green" if status == "DONE" else "red"
        console.print(f"[dim]{stamp}[/dim] [{color}]{status:<4}[/{color}] {path}{elapsed}{error_label}")

    def on_file_start(self, entry: ChangeSetEntry) -> None:
        self._started[entry.path] = time.monotonic()
        action = "reconcile" if entry.skip_upload else "upload"
        console.print(f"[cyan]Starting {action}:[/cyan] {entry.path}")

    def on_file_complete(self, result: FileResult) -> None:
        self._emit_timeline("DONE", result.path)

    def on_file_fail(self, result: FileResult) -> None:
        self._emit_timeline("FAIL", result.path, error=result.error)
