"""Command-line interface for ScopeGuard."""

import json
import logging
import re
import sys
from pathlib import Path
from typing import Optional

import structlog
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from scopeguard.baseline import JsonBaselineStore
from scopeguard.config import default_tables, get_settings, load_tables
from scopeguard.errors import ScopeGuardError
from scopeguard.extraction import load_document_json, load_document_pdf
from scopeguard.models import Contact, Document, ProgressEvent, RecipientInfo, Severity
from scopeguard.pipeline import IngestionManager, PipelineRunState, run_document_pipeline

# Configure structlog for CLI
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

app = typer.Typer(
    name="scopeguard",
    help="ScopeGuard - Detect bulletin revisions that conflict with approved submittals",
    add_completion=False,
)
console = Console()

_CONTACT_PATTERN = re.compile(r"^\s*(?P<name>[^<]+?)\s*(?:<(?P<email>[^>]+)>)?\s*$")

_SEVERITY_STYLES = {
    Severity.CRITICAL: "bold red",
    Severity.WARNING: "yellow",
    Severity.INFO: "dim",
}


@app.command()
def analyze(
    document_path: Path = typer.Argument(
        ...,
        help="Bulletin to analyze: a serialized document (.json) or a PDF",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    baseline: Optional[Path] = typer.Option(
        None,
        "--baseline",
        "-b",
        help="JSON file of approved submittal baseline records (default: SCOPEGUARD_BASELINE_PATH)",
        exists=True,
        dir_okay=False,
    ),
    project: str = typer.Option(..., "--project", "-p", help="Project identifier"),
    tables: Optional[Path] = typer.Option(
        None,
        "--tables",
        "-t",
        help="Configuration tables JSON (default: shipped tables)",
        exists=True,
        dir_okay=False,
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output file path for the JSON report (default: <document>_conflicts.json)",
    ),
    gc_name: Optional[str] = typer.Option(None, "--gc-name", help="General contractor contact name"),
    gc_email: Optional[str] = typer.Option(None, "--gc-email", help="General contractor email"),
    cc: Optional[list[str]] = typer.Option(None, "--cc", help="CC recipient, 'Name <email>' (repeatable)"),
    bulletin: Optional[str] = typer.Option(None, "--bulletin", help="Bulletin identifier, e.g. 'ASI #04'"),
    project_name: Optional[str] = typer.Option(None, "--project-name", help="Project name for RFI subjects"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Analyze a bulletin against the approved baseline and report conflicts."""
    if not gc_name and (gc_email or cc or bulletin or project_name):
        raise typer.BadParameter(
            "--gc-email, --cc, --bulletin and --project-name only apply to RFI drafts, "
            "which need --gc-name",
            param_hint="--gc-name",
        )

    settings = get_settings()
    logging.basicConfig(level=logging.DEBUG if verbose else settings.log_level.upper())

    baseline = baseline or settings.baseline_path
    if baseline is None:
        console.print("[red]Error:[/red] no baseline given; pass --baseline or set SCOPEGUARD_BASELINE_PATH")
        sys.exit(1)
    tables = tables or settings.tables_path

    console.print(
        Panel.fit(
            "[bold blue]ScopeGuard[/bold blue]\n"
            "Cross-referencing bulletin against approved submittals...",
            border_style="blue",
        )
    )
    console.print(f"\n[dim]Input:[/dim] {document_path}")

    if output is None:
        output = document_path.with_name(f"{document_path.stem}_conflicts.json")
    console.print(f"[dim]Output:[/dim] {output}\n")

    recipient = None
    if gc_name:
        recipient = RecipientInfo(
            project_name=project_name or project,
            bulletin_id=bulletin or document_path.stem,
            gc_contact=Contact(name=gc_name, email=gc_email),
            cc=[_parse_contact(value) for value in cc or []],
        )

    try:
        table_set = load_tables(tables) if tables else default_tables()
        document = _load_document(document_path)

        state = run_document_pipeline(
            document,
            JsonBaselineStore(baseline),
            project,
            tables=table_set,
            settings=settings,
            on_progress=_print_progress,
            recipient=recipient,
        )

        with open(output, "w", encoding="utf-8") as f:
            json.dump(state.model_dump(mode="json"), f, indent=2, ensure_ascii=False)

        _display_summary(state)
        console.print(f"\n[green]Report saved to:[/green] {output}")

    except (ScopeGuardError, OSError, ValidationError) as e:
        console.print(f"\n[red]Error:[/red] {escape(str(e))}")
        if verbose:
            console.print_exception()
        sys.exit(1)


@app.command()
def batch(
    documents: list[Path] = typer.Argument(
        ...,
        help="Bulletins to analyze (.json or .pdf)",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    baseline: Optional[Path] = typer.Option(
        None, "--baseline", "-b", help="Baseline records JSON", exists=True, dir_okay=False
    ),
    project: str = typer.Option(..., "--project", "-p", help="Project identifier"),
    tables: Optional[Path] = typer.Option(
        None, "--tables", "-t", help="Configuration tables JSON", exists=True, dir_okay=False
    ),
    output_dir: Optional[Path] = typer.Option(
        None, "--output-dir", "-o", help="Directory for per-document JSON reports"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Analyze several bulletins concurrently."""
    settings = get_settings()
    logging.basicConfig(level=logging.DEBUG if verbose else settings.log_level.upper())

    baseline = baseline or settings.baseline_path
    if baseline is None:
        console.print("[red]Error:[/red] no baseline given; pass --baseline or set SCOPEGUARD_BASELINE_PATH")
        sys.exit(1)
    tables = tables or settings.tables_path

    try:
        table_set = load_tables(tables) if tables else default_tables()
        loaded = [_load_document(path) for path in documents]
    except (ScopeGuardError, OSError, ValidationError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)

    names = {doc.document_id: path.name for doc, path in zip(loaded, documents)}

    def _on_progress(event: ProgressEvent) -> None:
        console.print(
            f"[dim]{escape(names[event.document_id])}[/dim] "
            f"[{event.stage_index}/{event.total_stages}] {event.stage_name.value}"
        )

    manager = IngestionManager(
        JsonBaselineStore(baseline),
        project,
        tables=table_set,
        settings=settings,
        on_progress=_on_progress,
    )
    outcomes = manager.run_all(loaded)

    table = Table(title="Batch Results")
    table.add_column("Document")
    table.add_column("Status")
    table.add_column("Conflicts", justify="right")
    table.add_column("Cost", justify="right")

    for path, outcome in zip(documents, outcomes):
        if outcome.succeeded:
            state = outcome.state
            table.add_row(
                escape(path.name),
                state.status.value,
                str(len(state.conflicts)),
                f"${state.total_cost_impact:,.2f}",
            )
            if output_dir is not None:
                output_dir.mkdir(parents=True, exist_ok=True)
                report_path = output_dir / f"{path.stem}_conflicts.json"
                with open(report_path, "w", encoding="utf-8") as f:
                    json.dump(state.model_dump(mode="json"), f, indent=2, ensure_ascii=False)
        else:
            table.add_row(escape(path.name), f"[red]{escape(str(outcome.error))}[/red]", "-", "-")

    console.print(table)
    if not all(outcome.succeeded for outcome in outcomes):
        sys.exit(1)


@app.command()
def info(
    tables: Optional[Path] = typer.Option(
        None, "--tables", "-t", help="Configuration tables JSON", exists=True, dir_okay=False
    ),
) -> None:
    """Display system information and configuration."""
    from scopeguard import __version__

    settings = get_settings()
    tables = tables or settings.tables_path
    table_set = load_tables(tables) if tables else default_tables()

    console.print(Panel.fit("[bold blue]ScopeGuard[/bold blue]", border_style="blue"))

    table = Table(show_header=False, box=None)
    table.add_column("Setting", style="dim")
    table.add_column("Value")

    table.add_row("Version", __version__)
    table.add_row("Tables Version", table_set.version)
    table.add_row("Vocabulary Entries", str(len(table_set.vocabulary)))
    table.add_row("Scope Keywords", ", ".join(table_set.scope_keywords))
    table.add_row("Extraction Workers", str(settings.extraction_max_workers))
    table.add_row("Concurrent Documents", str(settings.max_concurrent_documents))
    table.add_row("Location Match Threshold", f"{settings.location_match_threshold:.0f}")
    table.add_row("Baseline Attempts", str(settings.baseline_max_attempts))

    console.print(table)


def _load_document(path: Path) -> Document:
    if path.suffix.lower() == ".pdf":
        return load_document_pdf(path)
    return load_document_json(path)


def _parse_contact(value: str) -> Contact:
    match = _CONTACT_PATTERN.match(value)
    if not match:
        raise typer.BadParameter(f"Invalid contact: {value!r}")
    return Contact(name=match.group("name"), email=match.group("email"))


def _print_progress(event: ProgressEvent) -> None:
    console.print(
        f"[dim][{event.stage_index}/{event.total_stages}][/dim] "
        f"{event.stage_name.value} [green]done[/green]"
    )


def _display_summary(state: PipelineRunState) -> None:
    """Display conflicts, scope findings and any RFI drafts."""
    console.print("\n[bold]Analysis Summary[/bold]")
    console.print("-" * 40)

    counts = Table(show_header=False, box=None)
    counts.add_column("Metric", style="dim")
    counts.add_column("Count", justify="right")
    counts.add_row("Specification Elements", str(len(state.elements)))
    counts.add_row("In Elevator Scope", str(len(state.scoped_elements)))
    counts.add_row("Conflicts", str(len(state.conflicts)))
    if state.cross_reference:
        counts.add_row("Uncoordinated New Scope", str(len(state.cross_reference.uncoordinated)))
        counts.add_row("Needs Manual Review", str(len(state.cross_reference.needs_review)))
    console.print(counts)

    if state.conflicts:
        table = Table(title="Conflicts")
        table.add_column("ID")
        table.add_column("Severity")
        table.add_column("Location")
        table.add_column("Approved")
        table.add_column("Bulletin")
        table.add_column("Sheet")
        table.add_column("Cost", justify="right")
        for conflict in state.conflicts:
            table.add_row(
                conflict.conflict_id,
                f"[{_SEVERITY_STYLES[conflict.severity]}]{conflict.severity.value}[/]",
                escape(conflict.location),
                escape(conflict.old_spec_text),
                escape(conflict.new_spec_text),
                escape(conflict.sheet_ref),
                f"${conflict.cost_impact:,.2f}",
            )
        console.print(table)
        console.print(f"[bold]Total cost impact:[/bold] ${state.total_cost_impact:,.2f}")

    for draft in state.rfi_drafts:
        console.print(Panel(Text(draft.as_text()), title=f"RFI {draft.conflict_id}", border_style="cyan"))

    if state.warnings:
        console.print(f"\n[yellow]Warnings:[/yellow] {len(state.warnings)}")

    total = sum(state.stage_durations.values())
    console.print(f"\n[dim]Processed in {total:.2f}s[/dim]")


if __name__ == "__main__":
    app()
