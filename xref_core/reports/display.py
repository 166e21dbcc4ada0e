from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from xref_core.models import TemporalStatus
from xref_core.schemas import BasisResult, CurrencyReport, TemporalResolution

console = Console()

STATUS_COLORS = {
    TemporalStatus.CURRENT: "green",
    TemporalStatus.HISTORICAL: "yellow",
    TemporalStatus.FUTURE: "cyan",
    TemporalStatus.NOT_FOUND: "red",
}


def display_basis(result: BasisResult) -> None:
    """
    Display the EU basis of a document or provision as a table.

    Primary implementations are marked with a star, low-confidence
    classifications are dimmed.
    """
    locus = result.document_id
    if result.provision_ref:
        locus = f"{locus} {result.provision_ref}"

    if not result.entries:
        console.print(Panel(
            f"[dim]{result.reason or 'No EU references'}[/dim]",
            title=f"EU basis: {locus}",
            border_style="dim",
        ))
        return

    table = Table(title=f"EU basis: {locus} ({result.document_title or ''})")
    table.add_column("", width=2)
    table.add_column("Instrument", style="cyan")
    table.add_column("CELEX")
    table.add_column("Type")
    table.add_column("Article")
    table.add_column("Provision")

    for entry in result.entries:
        name = entry.id if not entry.short_name else f"{entry.short_name} ({entry.id})"
        row_style = "dim" if entry.low_confidence else None
        table.add_row(
            "★" if entry.is_primary else "",
            name,
            entry.celex_number,
            entry.reference_type.value.replace("_", " "),
            entry.article or "",
            entry.provision_ref or "(document)",
            style=row_style,
        )
    console.print(table)


def display_resolution(resolution: TemporalResolution) -> None:
    """Display a point-in-time resolution with its status color."""
    color = STATUS_COLORS.get(resolution.status, "white")
    lines = [
        f"[cyan]Date:[/cyan] {resolution.as_of}",
        f"[cyan]Status:[/cyan] [{color}]{resolution.status.value.upper()}[/{color}]",
    ]
    if resolution.version_id:
        window_end = resolution.valid_to or "present"
        lines.append(f"[cyan]Valid:[/cyan] {resolution.valid_from or 'original'} - {window_end}")
    if resolution.next_valid_from:
        lines.append(f"[cyan]Takes effect:[/cyan] {resolution.next_valid_from}")
    if resolution.amended_by:
        amended = ", ".join(f"{a.amended_by} ({a.effective_date})" for a in resolution.amended_by)
        lines.append(f"[cyan]Later amendments:[/cyan] {amended}")
    if resolution.content:
        lines.append("")
        lines.append(resolution.content)
    elif resolution.reason:
        lines.append(f"[dim]{resolution.reason}[/dim]")

    console.print(Panel(
        "\n".join(lines),
        title=f"{resolution.document_id} {resolution.provision_ref}",
        border_style=color,
    ))


def display_currency(report: CurrencyReport) -> None:
    color = {"current": "green", "outdated": "red"}.get(report.status, "yellow")
    lines = [
        f"[cyan]Status:[/cyan] [{color}]{report.status.upper()}[/{color}]",
        f"[cyan]References checked:[/cyan] {report.references_checked}",
    ]
    for outdated in report.outdated:
        where = outdated.provision_ref or "(document)"
        successor = f" -> {outdated.superseded_by}" if outdated.superseded_by else ""
        lines.append(f"  [red]✗[/red] {outdated.id} in {where}{successor}")
    for recommendation in report.recommendations:
        lines.append(f"[green]→[/green] {recommendation}")
    for warning in report.warnings:
        lines.append(f"[yellow]⚠ {warning}[/yellow]")
    console.print(Panel("\n".join(lines), title=f"Reference currency: {report.document_id}", border_style=color))


def display_batch_summary(summary: dict, failures: list) -> None:
    """Print the outcome of an ingestion batch."""
    console.print(f"[green]✓ Committed {summary.get('succeeded', 0)}/{summary.get('total', 0)} documents[/green]")
    console.print(
        f"  {summary.get('edges_added', 0)} edges, {summary.get('instruments_added', 0)} new instruments, "
        f"{summary.get('versions_added', 0)} provision versions"
    )
    if failures:
        console.print(f"[red]✗ {len(failures)} documents failed:[/red]")
        for failure in failures:
            console.print(f"  [red]{failure['document_id']}[/red] ({failure['stage']}): {failure['error']}")
