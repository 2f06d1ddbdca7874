"""
Duplicate detection across loaded outlines.

Sections sharing an exact heading path are compared pairwise with a
longest-common-subsequence ratio over their content blocks. Pairs at or above
the threshold are joined, and every connected component with more than one
member becomes a DuplicateGroup. Sections that stay apart are kept as
numbered variants of the same path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from rapidfuzz.fuzz import ratio

from .ingest import Block, Section
from .outline import Outline, iter_nodes

log = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.8

HeadingPath = Tuple[str, ...]
SectionKey = Tuple[str, int]


def normalize_block(block: Block) -> str:
    return " ".join(block.text.casefold().split())


def lcs_length(
    a: Sequence[str],
    b: Sequence[str],
    same: Callable[[str, str], bool] = lambda x, y: x == y,
) -> int:
    if len(a) < len(b):
        a, b = b, a
    previous = [0] * (len(b) + 1)
    for item in a:
        current = [0]
        for j, other in enumerate(b, start=1):
            if same(item, other):
                current.append(previous[j - 1] + 1)
            else:
                current.append(max(previous[j], current[j - 1]))
        previous = current
    return previous[-1]


def blocks_match(a: str, b: str, cutoff: float = DEFAULT_THRESHOLD) -> bool:
    """Normalised blocks match when equal or when their character ratio reaches the cutoff."""
    return a == b or ratio(a, b) >= cutoff * 100


def similarity(a: Section, b: Section, cutoff: float = DEFAULT_THRESHOLD) -> float:
    """Normalised LCS ratio of two sections' blocks, in [0, 1].

    Blocks count as the same element of the subsequence when `blocks_match`
    at `cutoff`, so a small edit inside one bullet does not split the pair.
    """
    left = [normalize_block(block) for block in a.blocks]
    right = [normalize_block(block) for block in b.blocks]
    if not left and not right:
        return 1.0
    matched = lcs_length(left, right, lambda x, y: blocks_match(x, y, cutoff))
    return 2.0 * matched / (len(left) + len(right))


@dataclass
class DuplicateGroup:
    path: HeadingPath
    members: List[Section]
    scores: Dict[Tuple[int, int], float] = field(default_factory=dict)
    merge: bool = True

    @property
    def canonical(self) -> Section:
        return self.members[0]

    @property
    def identical(self) -> bool:
        """True when every member is a verbatim copy of the others."""
        return all(member.blocks == self.canonical.blocks for member in self.members)

    def score(self, a: Section, b: Section) -> Optional[float]:
        keys = [m.key for m in self.members]
        try:
            i, j = sorted((keys.index(a.key), keys.index(b.key)))
        except ValueError:
            return None
        return self.scores.get((i, j))

    def __contains__(self, section: object) -> bool:
        return isinstance(section, Section) and any(m.key == section.key for m in self.members)


@dataclass
class ReconcileReport:
    threshold: float
    groups: List[DuplicateGroup] = field(default_factory=list)
    variants: Dict[HeadingPath, List[Section]] = field(default_factory=dict)
    _group_by_key: Dict[SectionKey, DuplicateGroup] = field(default_factory=dict, repr=False)

    def group_of(self, section: Section) -> Optional[DuplicateGroup]:
        return self._group_by_key.get(section.key)

    def grouped_with(self, a: Section, b: Section) -> bool:
        group = self.group_of(a)
        return group is not None and b in group


def _components(count: int, edges: Iterable[Tuple[int, int]]) -> List[List[int]]:
    parent = list(range(count))

    def find(i: int) -> int:
        while parent[i] != i:
            parent[i] = parent[parent[i]]
            i = parent[i]
        return i

    for i, j in edges:
        ri, rj = find(i), find(j)
        if ri != rj:
            parent[max(ri, rj)] = min(ri, rj)

    components: Dict[int, List[int]] = {}
    for i in range(count):
        components.setdefault(find(i), []).append(i)
    return sorted(components.values(), key=lambda members: members[0])


def sections_by_path(outlines: Sequence[Outline]) -> Dict[HeadingPath, List[Section]]:
    """Sections with content keyed by heading path, in source order.

    Placeholders and bare container headings carry no content to compare.
    """
    by_path: Dict[HeadingPath, List[Section]] = {}
    for outline in outlines:
        for node in iter_nodes(outline.root):
            if node.section is None or node.placeholder or not node.section.blocks:
                continue
            by_path.setdefault(node.path, []).append(node.section)
    return by_path


def reconcile(outlines: Sequence[Outline], threshold: float = DEFAULT_THRESHOLD) -> ReconcileReport:
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"similarity threshold must be within [0, 1], got {threshold}")

    report = ReconcileReport(threshold=threshold)
    for path, sections in sections_by_path(outlines).items():
        if len(sections) < 2:
            continue

        scores: Dict[Tuple[int, int], float] = {}
        edges: List[Tuple[int, int]] = []
        for i in range(len(sections)):
            for j in range(i + 1, len(sections)):
                score = similarity(sections[i], sections[j], threshold)
                scores[(i, j)] = score
                if score >= threshold:
                    edges.append((i, j))

        components = _components(len(sections), edges)
        for members in components:
            if len(members) < 2:
                continue
            local = {
                (a, b): scores[(members[a], members[b])]
                for a in range(len(members))
                for b in range(a + 1, len(members))
            }
            group = DuplicateGroup(path=path, members=[sections[i] for i in members], scores=local)
            report.groups.append(group)
            for section in group.members:
                report._group_by_key[section.key] = group

        if len(components) > 1:
            report.variants[path] = [sections[members[0]] for members in components]

    log.info(
        "Reconciled %d duplicate group(s) and %d path(s) with diverging variants",
        len(report.groups),
        len(report.variants),
    )
    return report


def merge_group(group: DuplicateGroup) -> Section:
    """
    Ordered union of the members' blocks as a new Section.

    Blocks missing from the canonical member are inserted after the last block
    they follow in their own member. The members are left untouched.
    """
    merged: List[Block] = list(group.canonical.blocks)
    keys: List[str] = [normalize_block(block) for block in merged]
    for member in group.members[1:]:
        anchor = -1
        for block in member.blocks:
            key = normalize_block(block)
            if key in keys[anchor + 1:]:
                anchor = keys.index(key, anchor + 1)
            elif key not in keys:
                anchor += 1
                merged.insert(anchor, block)
                keys.insert(anchor, key)
    return replace(group.canonical, blocks=tuple(merged))


__all__ = [
    "DEFAULT_THRESHOLD",
    "DuplicateGroup",
    "ReconcileReport",
    "similarity",
    "lcs_length",
    "blocks_match",
    "normalize_block",
    "sections_by_path",
    "reconcile",
    "merge_group",
]
