from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Optional

from rich.console import Console
from rich.table import Table

from .models import MediaKind

if TYPE_CHECKING:  # pragma: no cover
    from .orchestrator import IterationReport


# Color constants for status indicators
SUCCESS_COLOR = "green"
WARNING_COLOR = "yellow"
ERROR_COLOR = "red"
DIM_COLOR = "dim"

# Symbol indicators for quick scanning
SUCCESS_SYMBOL = "✓"
WARNING_SYMBOL = "⚠"
ERROR_SYMBOL = "✗"
SKIP_SYMBOL = "⊘"
IGNORE_SYMBOL = "○"

KIND_ORDER = (MediaKind.LIVE, MediaKind.SERIES, MediaKind.MOVIE)


class SummaryTableRenderer:
    """Renders provider pass results as Rich Tables with color-coded status indicators."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    @staticmethod
    def _get_status_color(value: int, *, is_error: bool = False, is_warning: bool = False) -> str:
        if value == 0:
            return DIM_COLOR
        if is_error:
            return ERROR_COLOR
        if is_warning:
            return WARNING_COLOR
        return SUCCESS_COLOR

    @staticmethod
    def _colorize_value_with_symbol(
        value: int,
        *,
        is_error: bool = False,
        is_warning: bool = False,
        is_skip: bool = False,
    ) -> str:
        """Colorize a count and prefix it with its status symbol; zero renders dimmed."""
        if value == 0:
            return f"[{DIM_COLOR}]{value}[/{DIM_COLOR}]"
        if is_error:
            symbol = ERROR_SYMBOL
        elif is_warning:
            symbol = WARNING_SYMBOL
        elif is_skip:
            symbol = SKIP_SYMBOL
        else:
            symbol = SUCCESS_SYMBOL
        color = SummaryTableRenderer._get_status_color(value, is_error=is_error, is_warning=is_warning)
        return f"[{color}]{symbol} {value}[/{color}]"

    @staticmethod
    def _status_cell(report: IterationReport) -> str:
        if report.error is not None:
            return f"[{ERROR_COLOR}]{ERROR_SYMBOL}[/{ERROR_COLOR}]"
        if any(progress.failed for progress in report.kinds.values()):
            return f"[{WARNING_COLOR}]{WARNING_SYMBOL}[/{WARNING_COLOR}]"
        if report.kinds:
            return f"[{SUCCESS_COLOR}]{SUCCESS_SYMBOL}[/{SUCCESS_COLOR}]"
        return f"[{DIM_COLOR}]{IGNORE_SYMBOL}[/{DIM_COLOR}]"

    def render_provider_table(self, reports: Iterable[IterationReport]) -> Table:
        """One row per provider and media kind with the item counts of its last pass."""
        table = Table(title="Sync Summary", show_header=True, header_style="bold")

        table.add_column("Provider", style="cyan", no_wrap=True)
        table.add_column("Kind", style="cyan")
        table.add_column("Total", justify="right")
        table.add_column("Processed", justify="right")
        table.add_column("Skipped", justify="right")
        table.add_column("Failed", justify="right")
        table.add_column("Status", justify="center")

        for report in reports:
            status = self._status_cell(report)
            if not report.kinds:
                table.add_row(report.provider, "-", "-", "-", "-", "-", status)
                continue
            for kind in KIND_ORDER:
                progress = report.kinds.get(kind)
                if progress is None:
                    continue
                table.add_row(
                    report.provider,
                    kind.value,
                    str(progress.total),
                    self._colorize_value_with_symbol(progress.processed),
                    self._colorize_value_with_symbol(progress.skipped, is_skip=True),
                    self._colorize_value_with_symbol(progress.failed, is_error=True),
                    status,
                )
        return table

    def render_reconcile_table(self, reports: Iterable[IterationReport]) -> Table:
        table = Table(title="Run Recap", show_header=True, header_style="bold")

        table.add_column("Provider", style="cyan", no_wrap=True)
        table.add_column("Duration", justify="right")
        table.add_column("Written", justify="right")
        table.add_column("Unchanged", justify="right")
        table.add_column("Deleted", justify="right")
        table.add_column("Write Errors", justify="right")
        table.add_column("Library Refresh", justify="center")

        for report in reports:
            result = report.reconcile
            if result is None:
                table.add_row(
                    report.provider,
                    f"{report.duration:.2f}s",
                    "-",
                    "-",
                    "-",
                    "-",
                    "no",
                )
                continue
            table.add_row(
                report.provider,
                f"{report.duration:.2f}s",
                self._colorize_value_with_symbol(result.written),
                str(result.unchanged),
                self._colorize_value_with_symbol(result.deleted, is_warning=True),
                self._colorize_value_with_symbol(
                    result.write_failures + result.delete_failures, is_error=True
                ),
                "yes" if report.refreshed else "no",
            )
        return table

    def print_summary(self, reports: Iterable[IterationReport]) -> None:
        reports = list(reports)
        if not reports:
            return
        self.console.print()
        self.console.print(self.render_provider_table(reports))
        self.console.print(self.render_reconcile_table(reports))

    @staticmethod
    def render_summary_plain_text(reports: Iterable[IterationReport]) -> str:
        """Render the summary without Rich formatting, for non-interactive output."""
        lines = ["", "Sync Summary", "------------"]
        for report in reports:
            if report.error is not None:
                lines.append(f"    {report.provider:<16} : failed ({report.error})")
                continue
            for kind in KIND_ORDER:
                progress = report.kinds.get(kind)
                if progress is None:
                    continue
                lines.append(
                    f"    {report.provider + '::' + kind.value:<16} : "
                    f"{progress.processed} processed, {progress.skipped} skipped, {progress.failed} failed"
                )
        return "\n".join(lines)


__all__ = ["SummaryTableRenderer"]
