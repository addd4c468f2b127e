"""Terminal output for one-shot collections: a Rich table or JSON lines."""

from __future__ import annotations

import json
import logging
import sys
from typing import Optional, TextIO

from rich.console import Console
from rich.table import Table

from sapnwrfc_exporter.metrics import CollectionResult

log = logging.getLogger(__name__)


def _color_for_value(value: float) -> str:
    return "dim" if value == 0 else "bold"


def build_table(result: CollectionResult, source_name: str) -> Table:
    table = Table(
        title=f"sapnwrfc exporter -- {source_name}",
        show_header=True,
        header_style="bold",
    )
    table.add_column("Metric", style="cyan")
    table.add_column("Type", width=8)
    table.add_column("System")
    table.add_column("Usage")
    table.add_column("Server")
    table.add_column("Count")
    table.add_column("Value", justify="right")

    for snapshot in sorted(result.metrics, key=lambda m: m.name.lower()):
        rows = sorted(snapshot.summary(), key=lambda r: (r["system"], r["server"], r["count"]))
        for row in rows:
            color = _color_for_value(row["value"])
            table.add_row(
                row["metric"],
                row["type"],
                row["system"],
                row["usage"],
                row["server"],
                row["count"],
                f"[{color}]{row['value']:g}[/{color}]",
            )
    return table


def print_table(result: CollectionResult, source_name: str, console: Optional[Console] = None):
    console = console or Console()
    if not result.sample_count():
        console.print("[yellow]No samples collected -- check the log for connection errors.[/yellow]")
        return
    console.print(build_table(result, source_name))
    console.print(f"[dim]{len(result.metrics)} metrics, {result.sample_count()} samples[/dim]")


def write_jsonl(result: CollectionResult, source_name: str, out: Optional[TextIO] = None):
    """One JSON object per sample, for pipelines where a table is no use."""
    out = out or sys.stdout
    for snapshot in result.metrics:
        for record in snapshot.summary():
            record["source"] = source_name
            out.write(json.dumps(record) + "\n")
    out.flush()
    log.debug("Wrote %d samples as JSON lines", result.sample_count())
