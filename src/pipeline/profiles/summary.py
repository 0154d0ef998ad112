"""Rich rendering of per-area stage outcomes.

Builds a table with one row per council area and one column per stage
that has run, so an operator sees at a glance which areas failed where.
"""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import Console
from rich.table import Table

from .stage_runner import RunReport, StageOutcome

_STATUS_STYLES = {
    StageOutcome.OK.value: "green",
    StageOutcome.MISSING_ARTIFACT.value: "yellow",
}


def _status_label(outcome: object) -> str:
    """Return a styled label for an outcome.

    Examples
    --------
    >>> _status_label(StageOutcome.OK)
    '[green]ok[/green]'
    """
    text = str(outcome)
    style = _STATUS_STYLES.get(text, "red")
    return f"[{style}]{text}[/{style}]"


def build_summary_table(reports: Sequence[RunReport], title: str = "Council area profiles") -> Table:
    """Return a table of outcomes, one column per report.

    Items are taken from the first report; an item missing from a later
    report (a stage that never ran for it) is shown as ``-``.
    """
    table = Table(title=title, show_header=True, header_style="bold blue")
    table.add_column("Council Area", style="bold")
    for report in reports:
        table.add_column(report.stage.capitalize())
    if not reports:
        return table
    lookups = [dict(report.entries) for report in reports]
    for item in reports[0].items:
        cells = [
            _status_label(lookup[item]) if item in lookup else "-" for lookup in lookups
        ]
        table.add_row(item, *cells)
    return table


def print_summary(
    reports: Sequence[RunReport],
    elapsed_seconds: float | None = None,
    console: Console | None = None,
) -> None:
    """Print the outcome table and, when known, the run time."""
    console = console or Console()
    console.print(build_summary_table(reports))
    if elapsed_seconds is not None:
        console.print(f"Code complete. Run time: {elapsed_seconds:.1f} seconds")
