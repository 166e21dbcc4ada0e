import os
from datetime import datetime
from typing import Any, Optional, TextIO


def write_batch_section(f: TextIO, batch: dict[str, Any], failures: list[dict[str, Any]]) -> None:
    """
    Write the ingestion outcome of a batch.

    Args:
        f: File handle to write to
        batch: BatchReport.summary() dict
        failures: BatchReport.failed entries
    """
    f.write("## Ingestion\n\n")
    f.write(f"- **Documents Processed:** {batch.get('total', 0)}\n")
    f.write(f"- **Committed:** {batch.get('succeeded', 0)}\n")
    f.write(f"- **Failed:** {batch.get('failed', 0)}\n")
    f.write(f"- **Provision Versions Recorded:** {batch.get('versions_added', 0)}\n")
    f.write(f"- **Discarded Matches:** {batch.get('discarded_matches', 0)}\n\n")

    if failures:
        f.write("### Failed Documents\n\n")
        f.write("| Document | Stage | Error |\n")
        f.write("|---|---|---|\n")
        for failure in failures:
            error = failure.get("error", "").replace("|", "\\|")
            f.write(f"| {failure.get('document_id')} | {failure.get('stage')} | "
                    f"{failure.get('error_type', '')}: {error} |\n")
        f.write("\n")


def generate_markdown_report(
    statistics: dict[str, Any],
    timestamp: str,
    output_dir: Optional[str] = None,
    batch: Optional[dict[str, Any]] = None,
    failures: Optional[list[dict[str, Any]]] = None,
) -> str:
    """
    Generate Markdown report of EU reference extraction statistics.

    Args:
        statistics: QueryEngine.statistics() output
        timestamp: Timestamp for filename (YYYYMMDD_HHMMSS format)
        output_dir: Optional output directory
        batch: Optional BatchReport.summary() for the run
        failures: Optional BatchReport.failed entries

    Returns:
        str: Path to generated markdown file
    """
    if output_dir:
        md_file = os.path.join(output_dir, f"eu_references_{timestamp}.md")
    else:
        md_file = f"eu_references_{timestamp}.md"

    documents = statistics.get("documents", 0)
    with_refs = statistics.get("documents_with_references", 0)
    coverage = (with_refs / documents * 100) if documents else 0.0

    with open(md_file, "w", encoding="utf-8") as f:
        # Header
        f.write("# EU Cross-Reference Extraction Report\n\n")
        f.write(f"**Generated:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n\n")
        f.write("---\n\n")

        # Summary
        f.write("## Summary\n\n")
        f.write(f"- **Statutes:** {documents}\n")
        f.write(f"- **Statutes with EU References:** {with_refs} ({coverage:.1f}%)\n")
        f.write(f"- **EU Instruments:** {statistics.get('instruments', 0)} "
                f"({statistics.get('directives', 0)} directives, "
                f"{statistics.get('regulations', 0)} regulations)\n")
        f.write(f"- **Citation Edges:** {statistics.get('edges', 0)}\n")
        f.write(f"- **Low-Confidence Edges:** {statistics.get('low_confidence_edges', 0)}\n")
        f.write(f"- **Ambiguous Instruments:** {statistics.get('ambiguous_instruments', 0)}\n\n")
        f.write("---\n\n")

        if batch:
            write_batch_section(f, batch, failures or [])
            f.write("---\n\n")

        by_type = statistics.get("edges_by_reference_type", {})
        if by_type:
            f.write("## Reference Types\n\n")
            f.write("| Type | Edges |\n")
            f.write("|---|---|\n")
            for ref_type, count in sorted(by_type.items(), key=lambda kv: -kv[1]):
                f.write(f"| {ref_type.replace('_', ' ')} | {count} |\n")
            f.write("\n")

        top = statistics.get("top_instruments", [])
        if top:
            f.write("## Most Referenced Instruments\n\n")
            f.write("| # | Instrument | CELEX | Statutes | Edges |\n")
            f.write("|---|---|---|---|---|\n")
            for i, entry in enumerate(top, 1):
                name = entry["id"]
                if entry.get("short_name"):
                    name = f"{entry['short_name']} ({entry['id']})"
                f.write(f"| {i} | {name} | {entry['celex_number']} | "
                        f"{entry['statute_count']} | {entry['edge_count']} |\n")
            f.write("\n")

    return md_file
