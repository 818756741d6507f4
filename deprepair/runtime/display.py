"""Rich-based rendering of a repair report.

Usage:
    console = Console()
    render_report(report, console)
"""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from deprepair.runtime.report import RemovalStatus, RepairReport

logger = logging.getLogger("deprepair.runtime.display")

# Status icons and colors
_ICONS = {
    "added": ("+", "green"),
    RemovalStatus.REMOVED: ("-", "green"),
    RemovalStatus.FAILED: ("✗", "red"),
}

# Diagnostic lines shown per failed coordinate.
_DIAGNOSTIC_LINES = 5


def _tail(text: Optional[str], lines: int = _DIAGNOSTIC_LINES) -> str:
    if not text:
        return ""
    return "\n".join(text.splitlines()[-lines:])


def build_report_table(report: RepairReport) -> Table:
    """Build a table listing every coordinate and what happened to it."""
    table = Table(show_header=True, header_style="bold", expand=False)
    table.add_column("", width=1)
    table.add_column("Coordinate", no_wrap=True)
    table.add_column("Outcome")
    table.add_column("Diagnostic", overflow="fold")

    icon, color = _ICONS["added"]
    for coordinate in report.requested_additions:
        if report.addition_error is None:
            table.add_row(Text(icon, style=color), str(coordinate), Text("added", style=color), "")
        else:
            table.add_row(
                Text("✗", style="red"),
                str(coordinate),
                Text("not added", style="red"),
                _tail(report.addition_error),
            )

    for outcome in report.removals:
        icon, color = _ICONS[outcome.status]
        table.add_row(
            Text(icon, style=color),
            str(outcome.coordinate),
            Text(outcome.status.value, style=color),
            _tail(outcome.diagnostic),
        )
    return table


def build_summary(report: RepairReport) -> Text:
    summary = Text()
    if report.nothing_to_do:
        summary.append("Nothing to do.", style="dim")
        return summary
    if report.precheck_error is not None:
        summary.append("Project failed verification before any change.\n", style="red")
        summary.append(_tail(report.precheck_error), style="dim")
        return summary

    summary.append(f"Added: {len(report.added)}  ")
    summary.append(f"Removed: {len(report.removed)}  ")
    failed = len(report.failed_removals)
    summary.append(f"Failed: {failed}", style="red" if failed else "")
    if report.removals:
        summary.append(f"  (removal tier: {report.removal_tier})", style="dim")
    if report.final_verification is False:
        summary.append("\nFinal verification failed", style="bold red")
        if report.rolled_back:
            summary.append(" - manifest rolled back to its pre-repair content", style="red")
    return summary


def render_report(report: RepairReport, console: Optional[Console] = None) -> None:
    """Print a report panel to the console."""
    console = console or Console()
    status = Text("SUCCESS", style="bold green") if report.success else Text(
        "FAILURE", style="bold red"
    )
    body = Group(build_summary(report)) if report.nothing_to_do else Group(
        build_summary(report), build_report_table(report)
    )
    console.print(
        Panel(
            body,
            title=Text.assemble("deprepair ", status),
            subtitle=str(report.manifest),
            expand=False,
        )
    )


__all__ = ["build_report_table", "build_summary", "render_report"]
