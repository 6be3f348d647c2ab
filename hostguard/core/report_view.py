"""
HostGuard - Self-check report rendering.

A rich table when the stream is a terminal, colored plain lines otherwise.
"""

import sys
from typing import Optional, TextIO

from rich import box as rich_box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from hostguard.core.alerts import colored_alert
from hostguard.core.models import CheckReport, CheckStatus

_STATUS_STYLES = {
    CheckStatus.OK: "bold green",
    CheckStatus.WARNING: "bold yellow",
    CheckStatus.ERROR: "bold red",
}


def build_table(report: CheckReport) -> Table:
    table = Table(title="HostGuard self-check", box=rich_box.SIMPLE_HEAVY, show_lines=False)
    table.add_column("Check", style="cyan", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Details", overflow="fold")
    for item in report:
        table.add_row(item.name, Text(item.status.value, style=_STATUS_STYLES[item.status]), item.message)
    return table


def render_report(report: CheckReport, stream: Optional[TextIO] = None) -> None:
    """Write the report to stream (stderr by default)."""
    stream = stream or sys.stderr
    if stream.isatty():
        console = Console(file=stream)
        console.print(build_table(report))
        verdict = "[green]PASSED[/green]" if report.is_success else "[red]FAILED[/red]"
        console.print(f"Self-check {verdict}")
        return
    print("Self-check report:", file=stream)
    for item in report:
        colored_alert(f" - {item.format()}", item.status.value, stream=stream)
    colored_alert(
        "Self-check PASSED" if report.is_success else "Self-check FAILED",
        "OK" if report.is_success else "ERROR",
        stream=stream,
    )
