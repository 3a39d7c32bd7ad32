#!/usr/bin/env python3
"""Render-Blocking Resource Auditor.

A CLI tool that extracts the scripts and stylesheets of a page, decides
how each one should be loaded, and reports what blocks first render.

Usage:
    python main.py <url> [--output report.json] [--workers 4]
    python main.py page.html --source file
    python main.py rendered.json --source snapshot --above-fold critical.html
    python main.py <url> --preload --no-seo-critical
"""

import argparse
import sys

import requests
from rich.console import Console
from rich.panel import Panel

from above_fold import FOLD_HEIGHT, prune_above_the_fold
from analyzer import analyze_resources
from extractor import EXTRACTORS, get_extractor
from preload import extract_preloadable_resources, generate_all_preload_tags
from reporter import (
    build_page_report,
    print_insights,
    print_scripts_report,
    print_stylesheets_report,
    write_excel_report,
    write_json_report,
)


def _build_arg_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser.

    Returns:
        A configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        description=(
            "Render-Blocking Resource Auditor: find the scripts and "
            "stylesheets that delay first render, and how to fix them."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python main.py https://example.com/\n"
            "  python main.py saved_page.html --source file\n"
            "  python main.py rendered.json --source snapshot "
            "--above-fold critical.html\n"
            "  python main.py https://example.com/ --preload "
            "--output report.json\n"
        ),
    )
    parser.add_argument(
        "target",
        help="Page URL, saved HTML file, or rendered-page JSON snapshot.",
    )
    parser.add_argument(
        "--source",
        choices=sorted(EXTRACTORS),
        help=(
            "Extraction backend. Defaults to 'http' for URLs, 'snapshot' "
            "for .json files and 'file' otherwise."
        ),
    )
    parser.add_argument(
        "--base-url",
        default="",
        help="Page URL used to resolve relative links with --source file.",
    )
    parser.add_argument(
        "--output", "-o",
        default="report.json",
        help="Path for the JSON report output (default: report.json).",
    )
    parser.add_argument(
        "--excel", "-e",
        help=(
            "Path for the Excel report output. Defaults to the JSON "
            "filename with a .xlsx extension."
        ),
    )
    parser.add_argument(
        "--fold-height",
        type=float,
        default=FOLD_HEIGHT,
        help=f"Fold line in pixels (default: {FOLD_HEIGHT}).",
    )
    parser.add_argument(
        "--above-fold",
        help=(
            "Write the above-the-fold DOM to this HTML file "
            "(needs a snapshot with recorded offsets)."
        ),
    )
    parser.add_argument(
        "--preload",
        action="store_true",
        help="Print suggested preload/preconnect/dns-prefetch tags.",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=30,
        help="HTTP timeout in seconds for --source http (default: 30).",
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=4,
        help="Number of concurrent workers for analysis (default: 4).",
    )
    parser.add_argument(
        "--no-seo-critical",
        action="store_true",
        help="Hide SEO-critical scripts from the terminal output.",
    )
    return parser


def _detect_source(target: str) -> str:
    if target.startswith(("http://", "https://")):
        return "http"
    if target.lower().endswith(".json"):
        return "snapshot"
    return "file"


def main() -> int:
    """Main entry point for the render-blocking auditor.

    Returns:
        Exit code (0 for success, 1 for errors).
    """
    parser = _build_arg_parser()
    args = parser.parse_args()

    console = Console()

    if args.workers < 1:
        console.print("[red]Error: --workers must be at least 1.[/]")
        return 1
    if args.fold_height < 0:
        console.print("[red]Error: --fold-height must be >= 0.[/]")
        return 1

    source = args.source or _detect_source(args.target)
    options = {}
    if source == "http":
        options["timeout"] = args.timeout
    elif source == "file":
        options["base_url"] = args.base_url
    else:
        options["console"] = console

    # --- Banner ---
    console.print()
    console.print(Panel(
        "[bold]Render-Blocking Resource Auditor[/]\n"
        f"[dim]Target:[/] {args.target}\n"
        f"[dim]Source:[/] {source}\n"
        f"[dim]Output:[/] {args.output}",
        border_style="bold blue",
    ))
    console.print()

    # --- Step 1: Extract resources ---
    console.print(Panel(
        "[bold]Step 1/2: Extracting Resources[/]",
        border_style="cyan",
    ))
    try:
        extractor = get_extractor(source, **options)
        snapshot = extractor.extract(args.target)
    except (requests.RequestException, OSError, ValueError) as exc:
        console.print(f"[red]Failed to extract resources: {exc}[/]")
        return 1

    console.print(
        f"[green]Found {len(snapshot.scripts)} scripts and "
        f"{len(snapshot.stylesheets)} stylesheets.[/]"
    )

    # --- Step 2: Analyze ---
    console.print()
    console.print(Panel(
        "[bold]Step 2/2: Analyzing Loading Strategies[/]",
        border_style="cyan",
    ))
    with console.status("[cyan]Analyzing..."):
        resources = analyze_resources(
            snapshot.resources,
            page_host=snapshot.page_host,
            max_workers=args.workers,
            console=console,
        )

    report = build_page_report(snapshot.url or args.target, resources)

    # --- Output ---
    console.print()
    console.rule("[bold]📊 RESULTS", style="bold blue")

    print_insights(report, console=console, show_seo_critical=not args.no_seo_critical)
    print_scripts_report(report, console=console, show_seo_critical=not args.no_seo_critical)
    print_stylesheets_report(report, console=console)

    if args.preload:
        # Only snapshots carry the offsets needed to filter by the fold.
        fold = args.fold_height if source == "snapshot" else None
        preloadable = extract_preloadable_resources(
            snapshot.html, base_url=snapshot.url, fold_height=fold
        )
        tags = generate_all_preload_tags(preloadable)
        console.print()
        console.print(Panel(
            tags["html"] or "[dim]No preload candidates found.[/]",
            title="⚡ Suggested <head> resource hints",
            border_style="green",
        ))

    if args.above_fold:
        try:
            pruned = prune_above_the_fold(snapshot.html, args.fold_height)
            with open(args.above_fold, "w", encoding="utf-8") as fh:
                fh.write(pruned)
        except (OSError, ValueError) as exc:
            console.print(f"[red]Failed to write above-the-fold DOM: {exc}[/]")
            return 1
        console.print()
        console.print(
            f"[green]✅ Above-the-fold DOM written to:[/] "
            f"[bold]{args.above_fold}[/]"
        )

    # JSON report
    write_json_report(report, args.output)
    console.print()
    console.print(
        f"[green]✅ JSON report written to:[/] [bold]{args.output}[/]"
    )

    # Excel report
    excel_path = args.excel or args.output.replace(".json", ".xlsx")
    if not excel_path.endswith(".xlsx"):
        excel_path += ".xlsx"
    write_excel_report(report, excel_path)
    console.print(
        f"[green]✅ Excel report written to:[/] [bold]{excel_path}[/]"
    )
    console.print()

    return 0


if __name__ == "__main__":
    sys.exit(main())
