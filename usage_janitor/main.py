"""Usage Janitor CLI - find routes, views and assets nothing refers to."""
import sys
from typing import List, Optional, Type

import typer
from rich.markup import escape
from rich.table import Table

from usage_janitor.analyzer.analyzer import Analyzer
from usage_janitor.analyzer.errors import InvalidRoot
from usage_janitor.analyzer.report import AnalysisReport, EntityStatus
from usage_janitor.analyzer.scanner import Scanner
from usage_janitor.config import __version__, get_config
from usage_janitor.entities.assets import AssetsAnalyzer
from usage_janitor.entities.routes import RoutesAnalyzer
from usage_janitor.entities.views import ViewsAnalyzer
from usage_janitor.utils.console import SafeConsole

app = typer.Typer(
    name="usage-janitor",
    help="Look for unused routes, views and assets",
    add_completion=False
)
console = SafeConsole()

STATUS_STYLES = {
    EntityStatus.USED: "green",
    EntityStatus.UNUSED: "bold red",
    EntityStatus.INCOMPLETE: "yellow",
}


def run_analysis(analyzer_class: Type[Analyzer], root: str, threshold: Optional[int],
                 exclude: List[str], workers: Optional[int], as_json: bool,
                 show_all: bool):
    """Shared driver logic for every entity type command."""
    config = get_config()
    try:
        scanner = Scanner(
            root,
            excluded_dirs=config.excluded_dirs,
            exclude_paths=tuple(config.exclude_paths) + tuple(exclude),
            max_workers=workers or config.max_workers,
            exclude_self=config.exclude_self,
            max_file_size=config.max_file_size,
            max_cache_chars=config.max_cache_chars,
        )
        analyzer = analyzer_class(
            root,
            scanner=scanner,
            config=config,
            console=None if as_json else console,
            show_progress=not as_json,
            threshold=threshold,
        )
    except InvalidRoot as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)

    report = analyzer.analyze()

    if as_json:
        # Bypass rich so the output stays machine readable
        sys.stdout.write(report.to_json() + "\n")
        return

    print_report(report, show_all=show_all)


def print_report(report: AnalysisReport, show_all: bool = False):
    console.print(f"[bold blue]Analyzed {report.entity_type}s in:[/bold blue] {escape(str(report.root))}\n")

    rows = report.entities if show_all else report.unused() + report.incomplete()
    if rows:
        table = Table(title=f"{report.entity_type.capitalize()}s")
        table.add_column("Name", style="cyan", no_wrap=False)
        table.add_column("Usage", justify="right")
        table.add_column("Occurrences", style="magenta")
        table.add_column("Status")

        for entity in rows:
            status = report.status_of(entity)
            usage, occurrences = entity.snapshot()
            note = ", ".join(occurrences) or "-"
            if entity.error is not None:
                note = str(entity.error)
            table.add_row(
                escape(entity.name),
                str(usage),
                escape(note),
                f"[{STATUS_STYLES[status]}]{status.value}[/{STATUS_STYLES[status]}]",
            )
        console.print(table)
    else:
        console.print(f"[bold green]✓ No unused {report.entity_type}s found![/bold green]")

    console.print(f"\n[bold yellow]Summary:[/bold yellow]")
    console.print(f"  Total {report.entity_type}s: {len(report.entities)}")
    unused = len(report.unused())
    if unused:
        console.print(f"  [red]✗ Unused: {unused}[/red]")
    else:
        console.print(f"  [green]✓ Unused: 0[/green]")
    if report.incomplete():
        console.print(f"  [yellow]⚠ Incomplete: {len(report.incomplete())}[/yellow]")
    if report.discovery_errors:
        console.print(f"  [yellow]⚠ Discovery errors: {len(report.discovery_errors)}[/yellow]")
    if report.skipped_count:
        console.print(f"  [yellow]⚠ Skipped files: {report.skipped_count} (unreadable or binary)[/yellow]")


@app.command()
def routes(
    root: str = typer.Argument(".", help="Codebase root to analyze"),
    threshold: Optional[int] = typer.Option(None, "--threshold", "-t", help="Usage score at or below which a route is unused"),
    exclude: List[str] = typer.Option([], "--exclude", "-e", help="Glob of relative paths to skip (repeatable)"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Threads used to scan files"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
    show_all: bool = typer.Option(False, "--all", help="List used routes too"),
):
    """Look for unused named routes."""
    run_analysis(RoutesAnalyzer, root, threshold, exclude, workers, as_json, show_all)


@app.command()
def views(
    root: str = typer.Argument(".", help="Codebase root to analyze"),
    threshold: Optional[int] = typer.Option(None, "--threshold", "-t", help="Usage score at or below which a view is unused"),
    exclude: List[str] = typer.Option([], "--exclude", "-e", help="Glob of relative paths to skip (repeatable)"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Threads used to scan files"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
    show_all: bool = typer.Option(False, "--all", help="List used views too"),
):
    """Look for unused views."""
    run_analysis(ViewsAnalyzer, root, threshold, exclude, workers, as_json, show_all)


@app.command()
def assets(
    root: str = typer.Argument(".", help="Codebase root to analyze"),
    threshold: Optional[int] = typer.Option(None, "--threshold", "-t", help="Usage score at or below which an asset is unused"),
    exclude: List[str] = typer.Option([], "--exclude", "-e", help="Glob of relative paths to skip (repeatable)"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Threads used to scan files"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
    show_all: bool = typer.Option(False, "--all", help="List used assets too"),
):
    """Look for unused assets."""
    run_analysis(AssetsAnalyzer, root, threshold, exclude, workers, as_json, show_all)


def version_callback(value: bool):
    if value:
        console.print(f"usage-janitor {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(False, "--version", callback=version_callback, is_eager=True,
                                 help="Show the version and exit"),
):
    """Usage Janitor - static usage analysis for routes, views and assets."""
    pass


if __name__ == "__main__":
    app()
