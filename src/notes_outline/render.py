from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from .ingest import Block, Section
from .outline import Outline, OutlineNode
from .query import PATH_SEPARATOR, SearchHit
from .reconcile import ReconcileReport, merge_group


def format_path(path: Sequence[str]) -> str:
    return f" {PATH_SEPARATOR} ".join(path)


def _where(section: Section) -> str:
    return f"{Path(section.source).name}:{section.line}"


def _block_markdown(block: Block) -> str:
    if block.kind == "code":
        longest = max((len(run) for run in re.findall(r"`+", block.text)), default=0)
        fence = "`" * max(3, longest + 1)
        return f"{fence}\n{block.text}\n{fence}"
    if block.kind == "list_item":
        return f"- {block.text}"
    return block.text


def _blocks_markdown(blocks: Iterable[Block]) -> List[str]:
    chunks: List[str] = []
    previous: Optional[str] = None
    for block in blocks:
        # Consecutive list items stay in one list.
        if chunks and not (previous == "list_item" and block.kind == "list_item"):
            chunks.append("")
        chunks.append(_block_markdown(block))
        previous = block.kind
    return chunks


def to_markdown(sections: Iterable[Section]) -> str:
    """Serialise a flat heading sequence back to `#`-prefixed note text."""
    lines: List[str] = []
    for section in sections:
        if lines:
            lines.append("")
        lines.append(f"{'#' * section.depth} {section.title}")
        if section.blocks:
            lines.append("")
            lines.extend(_blocks_markdown(section.blocks))
    return "\n".join(lines) + "\n"


def _add_children(tree: Tree, node: OutlineNode, report: Optional[ReconcileReport]) -> None:
    for child in node.children:
        label = escape(child.title)
        if child.placeholder:
            label = f"[dim italic]{label}[/dim italic]"
        elif report is not None and child.section is not None:
            if report.group_of(child.section) is not None:
                label += " [magenta](duplicate)[/magenta]"
            elif child.path in report.variants:
                label += " [yellow](variant)[/yellow]"
        branch = tree.add(label)
        _add_children(branch, child, report)


def render_outline(outlines: Sequence[Outline], report: Optional[ReconcileReport] = None) -> Tree:
    tree = Tree("[bold]Notes[/bold]")
    for outline in outlines:
        branch = tree.add(f"[bold green]{escape(outline.root.title)}[/bold green]")
        _add_children(branch, outline.root, report)
    return tree


def render_section(section: Section) -> Panel:
    body = "\n".join(_blocks_markdown(section.blocks)) or "_(no content)_"
    return Panel(
        Markdown(body),
        title=escape(format_path(section.path) or section.title),
        subtitle=escape(_where(section)),
        expand=False,
    )


def render_hits(hits: Iterable[SearchHit]) -> Table:
    table = Table(title="Search results")
    table.add_column("Matches", justify="right")
    table.add_column("Document")
    table.add_column("Heading path")
    for hit in hits:
        table.add_row(str(hit.matches), escape(Path(hit.section.source).name), escape(format_path(hit.section.path)))
    return table


def render_report(report: ReconcileReport, merged: bool = False) -> List[object]:
    """Renderables describing duplicate groups and diverging variants."""
    renderables: List[object] = []

    groups = Table(title=f"Duplicate groups (threshold {report.threshold:.2f})")
    groups.add_column("#", justify="right")
    groups.add_column("Heading path")
    groups.add_column("Members")
    groups.add_column("Kind")
    for number, group in enumerate(report.groups, start=1):
        members = ", ".join(_where(m) for m in group.members)
        kind = "identical" if group.identical else f"similar (min {min(group.scores.values()):.2f})"
        groups.add_row(str(number), escape(format_path(group.path)), escape(members), kind)
    renderables.append(groups)

    if report.variants:
        variants = Table(title="Diverging variants")
        variants.add_column("Heading path")
        variants.add_column("Variant", justify="right")
        variants.add_column("Source")
        for path, sections in report.variants.items():
            for number, section in enumerate(sections, start=1):
                variants.add_row(escape(format_path(path)), str(number), escape(_where(section)))
        renderables.append(variants)

    if merged:
        for group in report.groups:
            renderables.append(render_section(merge_group(group)))

    return renderables


__all__ = [
    "format_path",
    "to_markdown",
    "render_outline",
    "render_section",
    "render_hits",
    "render_report",
]
