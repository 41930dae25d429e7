"""
Console reporter for load reports.

Formats a LoadReport using Rich: one summary table, then the issues of
every resource that did not load cleanly.
"""

from rich.console import Console
from rich.table import Table

from tabularload.report.core import LoadReport, ResourceReport, ResourceStatus
from tabularload.schema.table import TableDefinition

_STATUS_STYLE = {
    ResourceStatus.LOADED: "[green]Loaded[/green]",
    ResourceStatus.PARTIAL: "[yellow]Partial[/yellow]",
    ResourceStatus.FAILED: "[red]Failed[/red]",
}


class ConsoleReporter:
    """Formats and displays load reports and table definitions."""

    def __init__(self, console: Console, max_issues: int = 10) -> None:
        """
        Initialize console reporter.

        Args:
            console: Rich Console instance for output.
            max_issues: Issues listed per resource before truncating.
        """
        self.console = console
        self.max_issues = max_issues

    def print_report(self, report: LoadReport) -> None:
        """Print the summary table followed by per-resource issues."""
        table = Table(title=f"Load report: {report.package}", show_header=True)
        table.add_column("Resource", style="cyan", no_wrap=True)
        table.add_column("Table", style="blue")
        table.add_column("Status", justify="center")
        table.add_column("Table status", style="dim")
        table.add_column("Attempted", justify="right")
        table.add_column("Inserted", justify="right")
        table.add_column("Skipped", justify="right")
        table.add_column("Nulled", justify="right")

        for r in report.resources:
            table.add_row(
                r.resource,
                r.table or "-",
                _STATUS_STYLE[r.status],
                r.table_status.value if r.table_status else "-",
                str(r.rows_attempted),
                str(r.rows_inserted),
                str(r.rows_skipped),
                str(len(r.warnings)),
            )

        self.console.print(table)
        self._print_summary(report)

        for r in report.resources:
            if r.status is not ResourceStatus.LOADED or r.type_warnings:
                self._print_issues(r)

    def print_definitions(self, definitions: list[TableDefinition]) -> None:
        """Print the columns each resource would be loaded into."""
        for definition in definitions:
            table = Table(title=definition.name, show_header=True)
            table.add_column("Column", style="cyan")
            table.add_column("Type", style="blue")
            table.add_column("Nullable", justify="center")
            table.add_column("Source field", style="dim")
            for column in definition.columns:
                table.add_row(
                    column.name,
                    column.storage_type.value,
                    "yes" if column.nullable else "no",
                    column.source_field or "(identity)",
                )
            self.console.print(table)
            for warning in definition.type_warnings:
                self.console.print(f"  [yellow]![/yellow] {warning}")

    def _print_summary(self, report: LoadReport) -> None:
        failed = len(report.failed)
        total = len(report.resources)
        self.console.print()
        if failed:
            self.console.print(
                f"[red]{failed} of {total} resources failed[/red], "
                f"{report.rows_inserted} rows inserted"
            )
        else:
            self.console.print(
                f"[green]All {total} resources loaded[/green], "
                f"{report.rows_inserted} rows inserted"
            )

    def _print_issues(self, r: ResourceReport) -> None:
        self.console.print(f"\n[bold]{r.resource}[/bold]")
        if r.error:
            self.console.print(f"  [red]{r.error_kind}[/red]: {r.error}")
        for warning in r.type_warnings:
            self.console.print(f"  [yellow]![/yellow] {warning}")

        issues = [*r.skipped, *r.warnings]
        for issue in issues[: self.max_issues]:
            location = f"row {issue.row}"
            if issue.field:
                location += f", field '{issue.field}'"
            self.console.print(f"  [dim]{issue.kind}[/dim] {location}: {issue.message}")
        if len(issues) > self.max_issues:
            self.console.print(
                f"  [dim]... {len(issues) - self.max_issues} more issues[/dim]"
            )
