from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterator, List, Optional, Tuple

from .errors import StructureError
from .ingest import Document, Section

log = logging.getLogger(__name__)

PLACEHOLDER_TITLE = "(untitled)"


@dataclass
class OutlineNode:
    """One heading and its nested children. Root nodes stand for a document."""

    title: str
    depth: int
    path: Tuple[str, ...]
    section: Optional[Section] = None
    children: List["OutlineNode"] = field(default_factory=list)
    _by_title: Dict[str, List["OutlineNode"]] = field(default_factory=dict, repr=False, compare=False)

    @property
    def placeholder(self) -> bool:
        return self.section is not None and self.section.placeholder

    def add_child(self, node: "OutlineNode") -> None:
        self.children.append(node)
        self._by_title.setdefault(node.title, []).append(node)

    def children_titled(self, title: str) -> List["OutlineNode"]:
        """Children with this title, in source order."""
        return self._by_title.get(title, [])

    def child(self, title: str) -> Optional["OutlineNode"]:
        matches = self.children_titled(title)
        return matches[0] if matches else None


@dataclass
class Outline:
    document: Document
    root: OutlineNode
    warnings: List[StructureError] = field(default_factory=list)


def _placeholder(parent: OutlineNode, trigger: Section) -> OutlineNode:
    depth = parent.depth + 1
    path = parent.path + (PLACEHOLDER_TITLE,)
    section = Section(
        title=PLACEHOLDER_TITLE,
        depth=depth,
        blocks=(),
        source=trigger.source,
        order=trigger.order,
        line=trigger.line,
        path=path,
        placeholder=True,
    )
    return OutlineNode(title=PLACEHOLDER_TITLE, depth=depth, path=path, section=section)


def build_outline(document: Document) -> Outline:
    """
    Build the heading tree for one document.

    Keeps a stack of open nodes; each heading pops the stack back to a node of
    smaller depth and becomes its child. A heading that skips levels gets
    placeholder parents for every missing level and a StructureError warning.
    """
    root = OutlineNode(title=document.name, depth=0, path=())
    outline = Outline(document=document, root=root)
    stack: List[OutlineNode] = [root]

    for section in document.sections:
        while stack[-1].depth >= section.depth:
            stack.pop()
        parent = stack[-1]

        if section.depth - parent.depth > 1:
            warning = StructureError(
                document.source,
                f"heading {section.title!r} jumps from depth {parent.depth} to {section.depth}; "
                f"synthesized {section.depth - parent.depth - 1} placeholder level(s)",
                section.line,
            )
            log.warning("%s", warning)
            outline.warnings.append(warning)
            while section.depth - parent.depth > 1:
                filler = _placeholder(parent, section)
                parent.add_child(filler)
                stack.append(filler)
                parent = filler

        path = parent.path + (section.title,)
        node = OutlineNode(
            title=section.title,
            depth=section.depth,
            path=path,
            section=replace(section, path=path),
        )
        parent.add_child(node)
        stack.append(node)

    return outline


def iter_nodes(root: OutlineNode) -> Iterator[OutlineNode]:
    """Pre-order traversal, root excluded."""
    pending = list(reversed(root.children))
    while pending:
        node = pending.pop()
        yield node
        pending.extend(reversed(node.children))


def flatten(root: OutlineNode) -> List[Section]:
    """Heading sequence of a tree, placeholders included as ordinary headings."""
    return [node.section for node in iter_nodes(root) if node.section is not None]


def outline_signature(node: OutlineNode) -> tuple:
    return (
        node.title,
        node.placeholder,
        tuple(outline_signature(child) for child in node.children),
    )


__all__ = [
    "PLACEHOLDER_TITLE",
    "OutlineNode",
    "Outline",
    "build_outline",
    "iter_nodes",
    "flatten",
    "outline_signature",
]
