#!/usr/bin/env python3
"""
Extract EU cross-references from statute seed files.

Loads every statute JSON in a seed directory, extracts EU references and
provision versions, applies instrument metadata from config.yaml, persists
everything to SQLite and writes a Markdown statistics report.
"""
import argparse
import logging
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv

from xref_core.config import XrefConfig, console, get_config_path, get_db_path, load_config
from xref_core.db import init_database, load_graph, load_versions, save_all
from xref_core.graph import QueryEngine
from xref_core.ingest import IngestionPipeline, apply_instrument_metadata, load_seed_directory
from xref_core.reports import display_batch_summary, generate_markdown_report


def main():
    """Main entry point for reference extraction."""
    load_dotenv()

    parser = argparse.ArgumentParser(description="Extract EU references from statute seed files")
    parser.add_argument("--seed-dir", default="data/seed",
                        help="Directory containing statute seed JSON files")
    parser.add_argument("--db", default=get_db_path(),
                        help="SQLite database path (default: $XREF_DB_PATH or xref.db)")
    parser.add_argument("--config", default=get_config_path(),
                        help="Config file (default: $XREF_CONFIG or config.yaml)")
    parser.add_argument("--report-dir", default=None,
                        help="Directory for the Markdown report")
    parser.add_argument("--workers", type=int, default=None,
                        help="Parallel extraction workers")
    parser.add_argument("--fresh", action="store_true",
                        help="Ignore data already stored in the database")
    parser.add_argument("--verbose", action="store_true")

    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    seed_dir = Path(args.seed_dir)
    if not seed_dir.exists():
        console.print(f"[red]✗ Seed directory not found: {seed_dir}[/red]")
        return 1

    config = load_config(args.config)
    xref_config = XrefConfig.from_dict(config)

    documents, invalid = load_seed_directory(seed_dir)
    console.print(f"[green]✓ Loaded {len(documents)} statutes from {seed_dir}[/green]")
    if invalid:
        console.print(f"[yellow]⚠ Skipped {len(invalid)} invalid seed files[/yellow]")

    conn = init_database(args.db)
    try:
        if args.fresh:
            pipeline = IngestionPipeline(config=xref_config)
        else:
            pipeline = IngestionPipeline(
                graph=load_graph(conn),
                versions=load_versions(conn, xref_config),
                config=xref_config,
            )

        console.print("[cyan]Extracting references...[/cyan]")
        report = pipeline.ingest_batch(documents, max_workers=args.workers)

        enriched = apply_instrument_metadata(
            pipeline.graph, config.get("seed_instruments", []) or [], create_missing=True
        )
        if enriched:
            console.print(f"[green]✓ Applied metadata to {enriched} instruments[/green]")

        save_all(conn, pipeline.graph, pipeline.versions)
        console.print(f"[green]✓ Saved to {args.db}[/green]")
    finally:
        conn.close()

    summary = report.summary()
    display_batch_summary(summary, report.failed)

    queries = QueryEngine(pipeline.graph, pipeline.versions, xref_config)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    md_file = generate_markdown_report(
        queries.statistics(), timestamp, args.report_dir, batch=summary, failures=report.failed
    )
    console.print(f"[green]✓ Report written to {md_file}[/green]")
    return 0 if not report.failed else 2


if __name__ == "__main__":
    raise SystemExit(main())
