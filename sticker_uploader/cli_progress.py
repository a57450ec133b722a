"""Console rendering and progress helpers for the sticker uploader CLI."""
from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Tuple

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn
from rich.table import Table

from .models import AttemptOutcome, Group, OutcomeKind, PackResult, PlanEntry, RunResult

console = Console()


def _echo(message: str) -> None:
    console.print(message)


def mask_token(token: Optional[str]) -> str:
    """Keep the bot id part of a token, hide the secret."""
    if not token:
        return "(missing)"
    bot_id, sep, secret = token.partition(":")
    if not sep:
        return "***"
    return f"{bot_id}:{'*' * min(len(secret), 8)}"


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
        title="[bold green]sticker-up[/bold green]",
        subtitle="[dim]sticker set uploader[/dim]",
        border_style="blue",
    )
    console.print(panel)


def render_plan(plan: List[Tuple[Group, List[PlanEntry]]], naming: Any) -> None:
    """Print the upload plan without touching the network."""
    if not plan:
        _echo("[yellow]No files found.[/yellow]")
        return

    table = Table(title="Upload plan", show_lines=False)
    table.add_column("Pack", justify="right", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Title")
    table.add_column("Stickers", justify="right")
    table.add_column("First file", style="dim")
    table.add_column("Last file", style="dim")

    for group, entries in plan:
        pack_name = entries[0].pack_name
        table.add_row(
            str(group.number),
            pack_name,
            escape(naming.title(group.index)),
            str(len(entries)),
            escape(entries[0].item.name),
            escape(entries[-1].item.name),
        )
    console.print(table)


class PackUploadProgressDisplay:
    """Event-based console display for sticker pack uploads."""

    def __init__(self):
        self._progress: Optional[Progress] = None
        self._task_id: Optional[TaskID] = None

    def _timeline(self, status: str, message: str) -> None:
        stamp = time.strftime("%H:%M:%S")
        palette = {
            "DONE": "green",
            "FAIL": "red",
            "WAIT": "yellow",
            "INFO": "blue",
        }
        color = palette.get(status, "white")
        _echo(f"[dim]{stamp}[/dim] [{color}]{status:<4}[/{color}] {message}")

    def _start_progress(self, pack: PackResult) -> None:
        self._stop_progress()
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold cyan]{task.fields[label]}", justify="left"),
            BarColumn(bar_width=36),
            TextColumn("{task.completed}/{task.total}"),
            TextColumn("[dim]{task.fields[detail]}", justify="left"),
            expand=False,
            console=console,
        )
        self._progress.start()
        self._task_id = self._progress.add_task(
            "pack",
            label=escape(pack.title),
            total=max(pack.total_items, 1),
            completed=0,
            detail="",
        )

    def _stop_progress(self) -> None:
        if self._progress is None:
            return
        self._progress.stop()
        self._progress = None
        self._task_id = None

    def on_nothing_to_do(self) -> None:
        _echo("[yellow]No files found.[/yellow] Nothing to upload.")

    def on_pack_start(self, group: Group, pack: PackResult) -> None:
        self._timeline("INFO", f"Creating pack: {escape(pack.title)} ({pack.name}, {pack.total_items} stickers)")
        self._start_progress(pack)

    def on_item_complete(self, entry: PlanEntry, done: int, total: int) -> None:
        if self._progress is not None and self._task_id is not None:
            self._progress.update(self._task_id, completed=done, total=total, detail=escape(entry.item.name[:60]))
            return
        _echo(f"[{done}/{total}] Added: {escape(entry.item.name)}")

    def on_pack_complete(self, pack: PackResult) -> None:
        self._stop_progress()
        self._timeline("DONE", f"{escape(pack.title)}: [link={pack.link}]{pack.link}[/link]")

    def on_retry(self, entry: PlanEntry, outcome: AttemptOutcome, attempt: int) -> None:
        if outcome.kind is OutcomeKind.RETRY_AFTER:
            self._timeline("WAIT", f"Rate limited on {escape(entry.item.name)}, sleeping for {outcome.delay} seconds")
            return
        reason = outcome.message or "network error"
        self._timeline("WAIT", f"{escape(reason)} on {escape(entry.item.name)} (attempt {attempt}), retrying")

    def on_fatal(self, entry: PlanEntry, message: str) -> None:
        self._stop_progress()
        self._timeline("FAIL", f"{entry.operation.method} {escape(entry.item.name)}")
        _echo(f"[red]Error from Telegram:[/red] {escape(message)}")

    def on_finish(self, result: RunResult) -> None:
        self._stop_progress()
        if result.total_items == 0:
            return
        status = "[bold green]Finished[/bold green]" if result.success else "[bold red]Stopped[/bold red]"
        _echo(
            f"{status} uploaded={result.uploaded_items}/{result.total_items} "
            f"packs={sum(1 for pack in result.packs if pack.complete)}/{result.total_packs}"
        )

    def attach(self, orchestrator: Any) -> "PackUploadProgressDisplay":
        """Subscribe every handler to an UploadOrchestrator."""
        orchestrator.on_nothing_to_do(self.on_nothing_to_do)
        orchestrator.on_pack_start(self.on_pack_start)
        orchestrator.on_item_complete(self.on_item_complete)
        orchestrator.on_pack_complete(self.on_pack_complete)
        orchestrator.on_retry(self.on_retry)
        orchestrator.on_fatal(self.on_fatal)
        orchestrator.on_finish(self.on_finish)
        return self
