"""
Terminal report for ctxlocal.

Presentation only: consumes ScenarioResult objects and prints them with
the 'rich' library. Nothing here influences a verdict.
"""

from typing import List, Optional

from rich.box import ROUNDED
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import ReportConfig
from .harness.models import ScenarioResult, ScenarioStatus, Suite

_STATUS_STYLE = {
    ScenarioStatus.PASSED: "[green]✓ PASS[/green]",
    ScenarioStatus.FAILED: "[red]✗ FAIL[/red]",
    ScenarioStatus.INFRASTRUCTURE_FAILURE: "[yellow]⚠ NO COLLISIONS[/yellow]",
    ScenarioStatus.ERROR: "[red]✗ ERROR[/red]",
}


class ReportUI:
    """Rich terminal report for scenario results."""

    def __init__(self, config: Optional[ReportConfig] = None, console: Optional[Console] = None):
        self.config = config or ReportConfig()
        self.console = console or Console(
            color_system="auto" if self.config.use_colors else None,
            highlight=False,
        )

    def print_header(self, title: str) -> None:
        self.console.print()
        self.console.rule(f"[bold]{escape(title)}[/bold]")

    def print_result(self, result: ScenarioResult) -> None:
        """Print the verdict line for one scenario, plus its first mismatches."""
        self.print_header(result.label)

        if self.config.show_observations and result.observations:
            self.console.print(f"[dim]Checkpoints verified: {result.observations}[/dim]")

        if result.status == ScenarioStatus.ERROR:
            self.console.print(f"[red]✗[/red] {escape(result.label)} raised: {escape(result.error or '')}")
            return

        if result.suite == Suite.REGRESSION:
            self._print_regression(result)
        else:
            self._print_acceptance(result)

    def _print_acceptance(self, result: ScenarioResult) -> None:
        if result.passed:
            self.console.print(f"[green]✓[/green] {escape(result.label)} PASSED - no context bleeding detected")
            return

        self.console.print(
            f"[red]✗[/red] {escape(result.label)} FAILED - {result.mismatch_count} errors detected:"
        )
        self._print_mismatches(result.mismatches)

    def _print_regression(self, result: ScenarioResult) -> None:
        if result.passed:
            self.console.print(
                f"[green]✓[/green] {escape(result.label)} PASSED: shared slot had "
                f"{result.mismatch_count} context collisions (expected)"
            )
            return

        self.console.print(f"[yellow]⚠[/yellow] {escape(result.label)} FAILED: shared slot had NO collisions")
        self.console.print(
            "[dim]The interleaving did not reproduce the race; "
            "this is a harness problem, not proof the shared slot is safe.[/dim]"
        )

    def _print_mismatches(self, mismatches: List[str]) -> None:
        limit = self.config.max_displayed_errors
        for message in mismatches[:limit]:
            self.console.print(f"  - {escape(message)}")
        if len(mismatches) > limit:
            self.console.print(f"  [dim]... and {len(mismatches) - limit} more errors[/dim]")

    def print_summary(self, results: List[ScenarioResult]) -> None:
        """Print a summary table, one section per suite."""
        self.print_header("Summary")
        table = Table(box=ROUNDED)
        table.add_column("Suite", style="cyan")
        table.add_column("Scenario")
        table.add_column("Result")
        table.add_column("Mismatches", justify="right")
        table.add_column("Time", justify="right", style="dim")

        for suite in Suite:
            for result in (r for r in results if r.suite == suite):
                table.add_row(
                    suite.value,
                    escape(result.label),
                    _STATUS_STYLE[result.status],
                    str(result.mismatch_count),
                    f"{result.duration_ms:.0f} ms",
                )
            table.add_section()

        self.console.print(table)

    def print_verdict(self, results: List[ScenarioResult], passed: bool) -> None:
        self.console.print()
        if passed:
            suites = {r.suite for r in results}
            self.console.print("[bold green]✓ ALL TESTS PASSED[/bold green]")
            if Suite.ACCEPTANCE in suites:
                self.console.print("  - Context store correctly isolates query context")
            if Suite.REGRESSION in suites:
                self.console.print("  - The shared-slot pattern demonstrably fails")
        else:
            self.console.print("[bold red]✗ SOME TESTS FAILED[/bold red]")
