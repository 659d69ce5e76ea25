"""
Legislative Import CLI - Command Line Interface
"""

import asyncio
import json
import logging

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from legislative_import import __version__
from legislative_import.adapters import ADAPTERS, get_adapter
from legislative_import.config import get_settings
from legislative_import.models import ImportResult, Jurisdiction, RunStatus
from legislative_import.pipelines import ImportPipeline, UpdateCheckPipeline
from legislative_import.storage import JsonFileStore

# Load environment variables
load_dotenv()

console = Console()

JURISDICTIONS = [j.value for j in ADAPTERS]
STATUS_STYLES = {
    RunStatus.COMPLETED: "green",
    RunStatus.PARTIAL: "yellow",
    RunStatus.FAILED: "red",
    RunStatus.RUNNING: "blue",
}


def _store() -> JsonFileStore:
    return JsonFileStore(get_settings().store_path)


def _run(coro):
    """Run a pipeline coroutine; Ctrl+C cancels it and the run log is still finalized."""
    try:
        return asyncio.run(coro)
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted.[/yellow]")
        raise SystemExit(130)


def _print_result(result: ImportResult) -> None:
    style = STATUS_STYLES.get(result.status, "white")
    table = Table(title=f"{result.jurisdiction} {result.run_type.value} run")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Status", f"[{style}]{result.status.value}[/{style}]")
    table.add_row("Found", str(result.acts_found))
    table.add_row("New", str(result.acts_new))
    table.add_row("Updated", str(result.acts_updated))
    table.add_row("Skipped", str(result.acts_skipped))
    table.add_row("Translated", str(result.acts_translated))
    table.add_row("Structured", str(result.acts_structured))
    table.add_row("DeepL characters", f"{result.translation_characters:,}")
    table.add_row("Gemini tokens", f"{result.structurer_tokens:,}")
    table.add_row("Estimated cost", f"EUR {result.estimated_cost_eur:.4f}")
    table.add_row("Duration", f"{result.duration_ms / 1000:.1f}s")
    console.print(table)

    if result.errors:
        errors = Table(title="Errors", show_header=True, header_style="bold red")
        errors.add_column("Source ID", style="cyan")
        errors.add_column("Step")
        errors.add_column("Message", width=70)
        for error in result.errors:
            errors.add_row(error.source_id, error.step.value, error.message)
        console.print(errors)

    for warning in result.warnings:
        console.print(f"[yellow]! {warning}[/yellow]")


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
def cli(verbose: bool):
    """Legislative Import - fetch, translate and classify OSH legislation"""
    level = "DEBUG" if verbose else get_settings().log_level
    logging.basicConfig(
        level=level,
        format="%(name)s - %(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


@cli.command(name="import")
@click.argument("jurisdiction", type=click.Choice(JURISDICTIONS, case_sensitive=False))
@click.option("--limit", "-l", type=int, default=None, help="Import only the first N priority acts")
def import_acts(jurisdiction: str, limit):
    """Initial import of a jurisdiction's priority acts."""
    jurisdiction = Jurisdiction(jurisdiction.upper())
    console.print(Panel.fit(
        f"[bold blue]Initial import[/bold blue]\n"
        f"Jurisdiction: {jurisdiction.value}\n"
        f"Store: {get_settings().store_path}",
        title="📥 Import"
    ))

    pipeline = ImportPipeline(_store())
    result = _run(pipeline.run_initial_import(jurisdiction, limit=limit))
    _print_result(result)


@cli.command(name="import-act")
@click.argument("jurisdiction", type=click.Choice(JURISDICTIONS, case_sensitive=False))
@click.argument("source_id")
def import_act(jurisdiction: str, source_id: str):
    """Import (or re-import) a single act by its source identifier."""
    pipeline = ImportPipeline(_store())
    result = _run(pipeline.import_single_act(Jurisdiction(jurisdiction.upper()), source_id))
    _print_result(result)


@cli.command(name="check-updates")
@click.option(
    "--jurisdiction", "-j",
    multiple=True,
    type=click.Choice(JURISDICTIONS, case_sensitive=False),
    help="Limit the check to these jurisdictions (default: all)",
)
def check_updates(jurisdiction):
    """Re-check processed acts and re-process those whose text changed."""
    targets = [Jurisdiction(j.upper()) for j in jurisdiction] or None
    pipeline = UpdateCheckPipeline(_store())
    results = _run(pipeline.check_all(targets))
    for result in results:
        _print_result(result)
    if not results:
        console.print("[yellow]No update check ran.[/yellow]")


@cli.command()
@click.argument("jurisdiction", type=click.Choice(JURISDICTIONS, case_sensitive=False))
@click.argument("source_id")
@click.option("--json", "as_json", is_flag=True, help="Print the fetched act as JSON")
def fetch(jurisdiction: str, source_id: str, as_json: bool):
    """Fetch one act from its portal without translating or storing it."""

    async def _fetch():
        async with get_adapter(jurisdiction.upper()) as adapter:
            return await adapter.fetch_act(source_id)

    raw = _run(_fetch())
    if as_json:
        console.print_json(json.dumps(raw.to_dict(), ensure_ascii=False))
        return

    console.print(Panel.fit(
        f"[bold]{raw.title_original}[/bold]\n"
        f"Type: {raw.act_type or '-'}  Number: {raw.act_number or '-'}  Year: {raw.act_year or '-'}\n"
        f"Language: {raw.language_original}  Sections: {len(raw.sections)}\n"
        f"Characters: {len(raw.text_original):,}  Hash: {raw.content_hash[:16]}\n"
        f"URL: {raw.source_url}",
        title=f"📄 {raw.country_code.value} {raw.source_id}"
    ))


@cli.command()
@click.argument("jurisdiction", type=click.Choice(JURISDICTIONS, case_sensitive=False))
def priority(jurisdiction: str):
    """List the curated priority acts of a jurisdiction."""
    adapter_cls = ADAPTERS[Jurisdiction(jurisdiction.upper())]

    table = Table(title=f"{jurisdiction.upper()} priority acts")
    table.add_column("#", justify="right")
    table.add_column("Source ID", style="cyan")
    table.add_column("Short name")
    table.add_column("Title", width=70)

    for i, act in enumerate(adapter_cls.PRIORITY_ACTS, 1):
        table.add_row(str(i), act.source_id, act.short_name, act.title)
    console.print(table)


@cli.command()
@click.option("--limit", "-n", default=20, help="Number of runs to show")
def runs(limit: int):
    """Show the most recent pipeline runs."""
    results = _run(_store().list_run_logs(limit=limit))
    if not results:
        console.print("[dim]No runs recorded yet.[/dim]")
        return

    table = Table(title="Recent runs")
    table.add_column("Started", style="dim")
    table.add_column("Jurisdiction", style="cyan")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Summary", width=60)

    for result in results:
        style = STATUS_STYLES.get(result.status, "white")
        table.add_row(
            result.started_at[:19],
            result.jurisdiction,
            result.run_type.value,
            f"[{style}]{result.status.value}[/{style}]",
            result.summary(),
        )
    console.print(table)


if __name__ == "__main__":
    cli()
