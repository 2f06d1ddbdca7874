from __future__ import annotations

import argparse
import sys
from itertools import islice
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from .config import AppConfig, load_config
from .index import build_index, load_index, save_index
from .logging_utils import configure_logging
from .render import format_path, render_hits, render_outline, render_report, render_section

console = Console()

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_MALFORMED = 2


def _threshold(value: str) -> float:
    threshold = float(value)
    if not 0.0 <= threshold <= 1.0:
        raise argparse.ArgumentTypeError("threshold must be between 0 and 1")
    return threshold


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="notes-outline",
        description="Notes Outline - index Markdown study notes, find duplicated sections, look up and search them.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a config YAML file (default: $NOTES_OUTLINE_CONFIG or config.yaml).",
    )
    parser.add_argument("--log-level", type=str, default=None, help="Override the configured log level.")

    subparsers = parser.add_subparsers(dest="command", required=True)

    load_parser = subparsers.add_parser("load", help="Load note files and save the index.")
    load_parser.add_argument("paths", nargs="*", help="Note files or directories (default: notes_dir).")
    load_parser.add_argument(
        "--threshold",
        type=_threshold,
        default=None,
        help="Similarity threshold for duplicate groups (default from config: 0.8).",
    )

    query_parser = subparsers.add_parser("query", help="Look up a section by heading path.")
    query_parser.add_argument("heading_path", type=str, help='Heading path, e.g. "Chapter 1 > Hello World".')
    query_parser.add_argument("--document", type=str, default=None, help="Only look in this document.")
    query_parser.add_argument("--all", action="store_true", help="Show every variant at this path.")

    search_parser = subparsers.add_parser("search", help="Full-text search across all sections.")
    search_parser.add_argument("term", type=str, help="Word or phrase to search for.")
    search_parser.add_argument("--limit", type=_positive_int, default=None, help="Maximum number of results.")

    outline_parser = subparsers.add_parser("outline", help="Print the outline tree.")
    outline_parser.add_argument("--document", type=str, default=None, help="Only print this document.")

    dup_parser = subparsers.add_parser("duplicates", help="Report duplicated sections.")
    dup_parser.add_argument("--merged", action="store_true", help="Also show the merged form of each group.")

    return parser


def cmd_load(args: argparse.Namespace, cfg: AppConfig) -> int:
    console.print("[bold green]Building index...[/bold green]")
    index = build_index(args.paths, cfg, threshold=args.threshold)

    for warning in index.warnings:
        console.print(f"[yellow]warning:[/yellow] {escape(str(warning))}")
    for failure in index.failures:
        console.print(f"[red]malformed:[/red] {escape(str(failure))}")

    if not index.documents and not index.failures:
        return EXIT_MALFORMED

    index_dir = save_index(index, cfg)
    console.print(f"[green]Index saved to:[/green] {index_dir}")
    if index.report is not None and index.report.groups:
        console.print(f"[magenta]{len(index.report.groups)} duplicate group(s) found.[/magenta]")
    return EXIT_MALFORMED if index.failures else EXIT_OK


def cmd_query(args: argparse.Namespace, cfg: AppConfig) -> int:
    index = load_index(cfg)
    if args.all:
        sections = index.lookup_all(args.heading_path)
        if not sections:
            console.print(f"[red]Not found:[/red] {escape(args.heading_path)}")
            return EXIT_NOT_FOUND
        for section in sections:
            console.print(render_section(section))
        return EXIT_OK

    result = index.lookup(args.heading_path, document=args.document)
    if not result:
        console.print(f"[red]Not found:[/red] {escape(format_path(result.path))} ({result.reason})")
        if result.matched:
            console.print(f"Closest existing heading: {escape(format_path(result.matched))}")
        return EXIT_NOT_FOUND
    console.print(render_section(result))
    return EXIT_OK


def cmd_search(args: argparse.Namespace, cfg: AppConfig) -> int:
    index = load_index(cfg)
    limit = cfg.search_limit if args.limit is None else args.limit
    hits = list(islice(index.search(args.term).hits(), limit))
    if not hits:
        console.print(f"[yellow]No sections match {escape(args.term)!r}.[/yellow]")
        return EXIT_NOT_FOUND
    console.print(render_hits(hits))
    return EXIT_OK


def cmd_outline(args: argparse.Namespace, cfg: AppConfig) -> int:
    index = load_index(cfg)
    outlines = index.outlines
    if args.document is not None:
        outline = index.outline_for(args.document)
        if outline is None:
            console.print(f"[red]No loaded document named[/red] {escape(args.document)}")
            return EXIT_NOT_FOUND
        outlines = [outline]
    console.print(render_outline(outlines, index.report))
    return EXIT_OK


def cmd_duplicates(args: argparse.Namespace, cfg: AppConfig) -> int:
    index = load_index(cfg)
    if index.report is None or not (index.report.groups or index.report.variants):
        console.print("[green]No duplicated sections.[/green]")
        return EXIT_OK
    for renderable in render_report(index.report, merged=args.merged):
        console.print(renderable)
    return EXIT_OK


COMMANDS = {
    "load": cmd_load,
    "query": cmd_query,
    "search": cmd_search,
    "outline": cmd_outline,
    "duplicates": cmd_duplicates,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    cfg = load_config(Path(args.config) if args.config else None)
    configure_logging(args.log_level or cfg.log_level)

    return COMMANDS[args.command](args, cfg)


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
