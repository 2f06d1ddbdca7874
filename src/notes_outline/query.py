from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple, Union

from .ingest import Section
from .outline import Outline, OutlineNode, iter_nodes

PATH_SEPARATOR = ">"
# Only a ">" with whitespace on both sides separates titles, so "->" and
# "std::vector<int>" stay inside a title.
PATH_SEPARATOR_RE = re.compile(r"(?:^|\s+)>(?:\s+|$)")

PathLike = Union[str, Sequence[str]]


def parse_heading_path(heading_path: PathLike) -> Tuple[str, ...]:
    """Accept `"Chapter 1 > Hello World"` or a sequence of titles."""
    parts = PATH_SEPARATOR_RE.split(heading_path) if isinstance(heading_path, str) else heading_path
    return tuple(" ".join(part.split()) for part in parts if part and part.strip())


@dataclass(frozen=True)
class NotFound:
    path: Tuple[str, ...]
    matched: Tuple[str, ...] = ()
    reason: str = "no section at this heading path"

    def __bool__(self) -> bool:
        return False


def _walk(root: OutlineNode, path: Tuple[str, ...]) -> Tuple[Optional[OutlineNode], int]:
    """First node in source order at `path`, or None and the longest matched prefix.

    Repeated sibling titles are tried in order; with unique titles this is a
    single descent.
    """
    best = 0
    pending = [(root, 0)]
    while pending:
        node, depth = pending.pop()
        if depth == len(path):
            return node, depth
        best = max(best, depth)
        pending.extend((child, depth + 1) for child in reversed(node.children_titled(path[depth])))
    return None, best


def _select(outlines: Sequence[Outline], document: Optional[str]) -> List[Outline]:
    if document is None:
        return list(outlines)
    return [o for o in outlines if document in (o.document.name, o.document.source)]


def lookup(
    outlines: Sequence[Outline],
    heading_path: PathLike,
    document: Optional[str] = None,
) -> Union[Section, NotFound]:
    """
    Resolve a heading path to its Section.

    Walks each outline's title index, so the cost is proportional to the
    depth of the path. The first document in load order that has the path
    wins; `lookup_all` returns every variant.
    """
    path = parse_heading_path(heading_path)
    if not path:
        return NotFound(path=path, reason="empty heading path")

    candidates = _select(outlines, document)
    if not candidates:
        return NotFound(path=path, reason=f"no loaded document named {document!r}")

    best = 0
    for outline in candidates:
        node, matched = _walk(outline.root, path)
        if node is not None and node.section is not None:
            return node.section
        best = max(best, matched)
    return NotFound(path=path, matched=path[:best])


def lookup_all(outlines: Sequence[Outline], heading_path: PathLike) -> List[Section]:
    path = parse_heading_path(heading_path)
    found: List[Section] = []
    if not path:
        return found
    for outline in outlines:
        for node in iter_nodes(outline.root):
            if node.path == path and node.section is not None:
                found.append(node.section)
    return found


@dataclass(frozen=True)
class SearchHit:
    section: Section
    matches: int


def count_matches(section: Section, patterns: Sequence[re.Pattern]) -> int:
    texts = [section.title] + [block.text for block in section.blocks]
    return sum(len(pattern.findall(text)) for pattern in patterns for text in texts)


class SearchResults:
    """
    Relevance-ordered sections matching a term.

    Nothing is scanned until iteration starts, and every new iteration scans
    again, so results can be consumed more than once.
    """

    def __init__(self, outlines: Sequence[Outline], term: str) -> None:
        self.outlines = list(outlines)
        self.term = term
        self._patterns = [re.compile(re.escape(token), re.IGNORECASE) for token in term.split()]

    def hits(self) -> Iterator[SearchHit]:
        if not self._patterns:
            return
        scored = []
        for doc_index, outline in enumerate(self.outlines):
            for node in iter_nodes(outline.root):
                if node.section is None or node.placeholder:
                    continue
                matches = count_matches(node.section, self._patterns)
                if matches:
                    scored.append((-matches, doc_index, node.section.order, node.section))
        scored.sort(key=lambda item: item[:3])
        for negative, _, _, section in scored:
            yield SearchHit(section=section, matches=-negative)

    def __iter__(self) -> Iterator[Section]:
        for hit in self.hits():
            yield hit.section


def search(outlines: Sequence[Outline], term: str) -> SearchResults:
    return SearchResults(outlines, term)


__all__ = [
    "PATH_SEPARATOR",
    "NotFound",
    "SearchHit",
    "SearchResults",
    "parse_heading_path",
    "lookup",
    "lookup_all",
    "search",
]
