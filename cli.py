#!/usr/bin/env python3
"""
Agent Finder - command line entry point.

Usage:
    python cli.py extract https://agency.example          # Crawl one agency site
    python cli.py extract https://agency.example --confirm --save
    python cli.py crawl URL [URL ...] --mode single        # Known agent pages
    python cli.py genres --category fiction                # Show the registry
    python cli.py approve "Cozy Mystery" --category fiction
    python cli.py serve --port 5001                        # Start the web API
"""

import sys
import argparse

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich import box

from config import load_settings
from models import CrawlResult
from repositories import SinkConfigError

console = Console()


def show_result(result: CrawlResult) -> None:
    """Render records, warning and failures of a run."""
    if result.warning:
        w = result.warning
        console.print(Panel.fit(
            f"{w.message}\n\n[dim]Estimated time: ~{w.estimated_minutes} min[/dim]\n"
            + "\n".join(f"  {u}" for u in w.sample_urls),
            title=f"[yellow]{w.found_links} pages found (limit {w.limit})[/yellow]",
        ))
        console.print("[dim]Re-run with --confirm to crawl the top pages.[/dim]")
        return

    table = Table(title="Agents", box=box.ROUNDED)
    table.add_column("Name", style="cyan")
    table.add_column("Agency")
    table.add_column("Email")
    table.add_column("Genres")
    table.add_column("Open", justify="center")
    table.add_column("Conf.", justify="right", style="green")

    for v in result.records:
        r = v.record
        genres = ", ".join(r.genres_fiction + r.genres_nonfiction)
        is_open = {True: "yes", False: "no"}.get(r.is_open_to_submissions, "?")
        conf = str(v.confidence_score)
        if v.consistency and v.consistency.needs_review:
            conf += " [yellow]![/yellow]"
        table.add_row(r.agent_name, r.agency_name, r.email or "-",
                      genres[:60] or "-", is_open, conf)

    console.print(table)
    console.print(f"[dim]{result.pages_fetched} pages fetched, {result.pages_triaged} extracted, "
                  f"{result.rejected} rejected, {result.duplicates_dropped} duplicates[/dim]")

    if result.genre_suggestions:
        console.print("\n[bold]Genres for review:[/bold]")
        for s in result.genre_suggestions:
            console.print(f"  {s.term} [dim](closest: {s.best_match or '-'}, {s.similarity:.2f})[/dim]")

    for f in result.failures:
        console.print(f"[red]{f.stage}[/red] {f.url}: [dim]{f.error}[/dim]")


def save_records(pipeline, result: CrawlResult) -> None:
    if not result.records:
        return
    try:
        summary = pipeline.save(result.records)
    except SinkConfigError as e:
        console.print(f"[red]Cannot save: {e}[/red]")
        return
    console.print(f"[green]Saved {summary.saved}[/green], failed {summary.failed}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Extract literary agent contacts from agency websites")
    parser.add_argument("--self-consistency", action="store_true",
                        help="Extract each page several times and vote")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("extract", help="Crawl one agency site")
    p.add_argument("url")
    p.add_argument("--confirm", action="store_true", help="Proceed even if the site has many pages")
    p.add_argument("--save", action="store_true", help="Save accepted agents to the sink")

    p = sub.add_parser("crawl", help="Extract several URLs")
    p.add_argument("urls", nargs="+")
    p.add_argument("--mode", choices=["single", "dynamic"], default="dynamic")
    p.add_argument("--confirm", action="store_true")
    p.add_argument("--save", action="store_true")

    p = sub.add_parser("genres", help="List registry genres")
    p.add_argument("--category", choices=["fiction", "nonfiction"])

    p = sub.add_parser("approve", help="Add a genre to the registry")
    p.add_argument("name")
    p.add_argument("--category", choices=["fiction", "nonfiction"], required=True)

    p = sub.add_parser("serve", help="Run the web API")
    p.add_argument("--port", type=int, default=5001)

    args = parser.parse_args(argv)

    overrides = {"self_consistency": True} if args.self_consistency else {}
    settings = load_settings(**overrides)

    from finder import Pipeline
    pipeline = Pipeline(settings)

    if args.command == "extract":
        result = pipeline.extract(args.url, confirm=args.confirm)
        show_result(result)
        if args.save:
            save_records(pipeline, result)

    elif args.command == "crawl":
        result = pipeline.crawl(args.urls, mode=args.mode, confirm=args.confirm)
        show_result(result)
        if args.save:
            save_records(pipeline, result)

    elif args.command == "genres":
        table = Table(title="Genre Registry", box=box.ROUNDED)
        table.add_column("Genre", style="cyan")
        table.add_column("Category")
        table.add_column("Source")
        table.add_column("Fingerprint", justify="center")
        for e in pipeline.list_registry(args.category):
            table.add_row(e.name, e.category.value if e.category else "-",
                          e.provenance.value, "yes" if e.has_fingerprint else "[red]no[/red]")
        console.print(table)

    elif args.command == "approve":
        entry = pipeline.approve_term(args.name, args.category)
        console.print(f"[green]Approved:[/green] {entry.name} ({args.category})")

    elif args.command == "serve":
        from app import create_app
        create_app(pipeline).run(port=args.port)

    return 0


if __name__ == "__main__":
    sys.exit(main())
