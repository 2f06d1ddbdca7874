from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

from .errors import MalformedInputError

log = logging.getLogger(__name__)

# ATX headings only: "#" to "######", whitespace, title, optional closing run.
HEADING_RE = re.compile(r"^ {0,3}(#{1,6})(?:[ \t]+(.*?))?(?:[ \t]+#+)?[ \t]*$")
FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})(.*)$")
LIST_ITEM_RE = re.compile(r"^\s*(?:[-*+]|\d{1,9}[.)])[ \t]+(.*)$")
THEMATIC_BREAK_RE = re.compile(r"^ {0,3}([-*_])(?:[ \t]*\1){2,}[ \t]*$")

DEFAULT_SUFFIXES = (".md", ".markdown", ".txt")


@dataclass(frozen=True)
class Block:
    kind: str  # "paragraph", "list_item" or "code"
    text: str


@dataclass(frozen=True)
class Section:
    title: str
    depth: int
    blocks: Tuple[Block, ...]
    source: str
    order: int
    line: int
    path: Tuple[str, ...] = ()
    placeholder: bool = False

    @property
    def key(self) -> Tuple[str, int]:
        return (self.source, self.order)


@dataclass(frozen=True)
class Document:
    source: str
    sections: Tuple[Section, ...]
    preamble: Tuple[Block, ...] = ()

    @property
    def name(self) -> str:
        return Path(self.source).stem or self.source


@dataclass
class LoadResult:
    documents: List[Document] = field(default_factory=list)
    failures: List[MalformedInputError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def _closes_fence(line: str, fence: Tuple[str, int]) -> bool:
    char, length = fence
    stripped = line.strip()
    return (
        len(line) - len(line.lstrip(" ")) <= 3
        and len(stripped) >= length
        and set(stripped) == {char}
    )


def _split_blocks(lines: Sequence[str]) -> List[Block]:
    """Split the body of one section into paragraphs, list items and code."""
    blocks: List[Block] = []
    kind: str | None = None
    buffer: List[str] = []

    def flush() -> None:
        nonlocal kind, buffer
        if kind == "code":
            blocks.append(Block(kind, "\n".join(buffer)))
        elif kind is not None:
            text = " ".join(" ".join(buffer).split())
            if text:
                blocks.append(Block(kind, text))
        kind, buffer = None, []

    fence: Tuple[str, int] | None = None
    for line in lines:
        if fence is not None:
            if _closes_fence(line, fence):
                fence = None
                flush()
            else:
                buffer.append(line)
            continue

        m = FENCE_RE.match(line)
        if m:
            flush()
            kind = "code"
            fence = (m.group(1)[0], len(m.group(1)))
            continue

        if not line.strip() or THEMATIC_BREAK_RE.match(line):
            flush()
            continue

        m = LIST_ITEM_RE.match(line)
        if m:
            flush()
            kind = "list_item"
            buffer = [m.group(1)]
            continue

        if kind is None:
            kind = "paragraph"
        buffer.append(line.strip())

    flush()
    return blocks


def parse_document(text: str, source: str) -> Document:
    """
    Split raw note text into a Document of flat, depth-tagged sections.

    Depths are normalised so the shallowest heading in the document is depth 1.
    Lines inside fenced code blocks are never treated as headings.

    Raises MalformedInputError when a heading has no title, a code fence is
    never closed, or the first heading is deeper than the document's
    top-level headings.
    """
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")

    preamble: List[str] = []
    headings: List[Tuple[int, int, str, List[str]]] = []
    body = preamble
    fence: Tuple[str, int] | None = None
    fence_line = 0

    for line_no, line in enumerate(lines, start=1):
        if fence is not None:
            if _closes_fence(line, fence):
                fence = None
            body.append(line)
            continue

        m = FENCE_RE.match(line)
        if m:
            fence = (m.group(1)[0], len(m.group(1)))
            fence_line = line_no
            body.append(line)
            continue

        m = HEADING_RE.match(line)
        if m:
            title = " ".join((m.group(2) or "").split())
            if not title:
                raise MalformedInputError(source, "heading has no title", line_no)
            body = []
            headings.append((line_no, len(m.group(1)), title, body))
            continue

        body.append(line)

    if fence is not None:
        raise MalformedInputError(source, "code fence is never closed", fence_line)

    sections: List[Section] = []
    if headings:
        base = min(level for _, level, _, _ in headings)
        first_line, first_level, first_title, _ = headings[0]
        if first_level > base:
            raise MalformedInputError(
                source,
                f"subsection heading {first_title!r} appears before any top-level heading",
                first_line,
            )
        for order, (line_no, level, title, section_lines) in enumerate(headings):
            sections.append(
                Section(
                    title=title,
                    depth=level - base + 1,
                    blocks=tuple(_split_blocks(section_lines)),
                    source=source,
                    order=order,
                    line=line_no,
                )
            )
    else:
        log.debug("No headings found in %s", source)

    return Document(source=source, sections=tuple(sections), preamble=tuple(_split_blocks(preamble)))


def load_documents(inputs: Iterable[Tuple[str, str]]) -> LoadResult:
    """Parse `(source, text)` pairs, collecting failures instead of aborting."""
    result = LoadResult()
    for source, text in inputs:
        try:
            result.documents.append(parse_document(text, source))
        except MalformedInputError as exc:
            log.error("Failed to load %s", exc)
            result.failures.append(exc)
    return result


def read_document(path: Path, encoding: str = "utf-8") -> Document:
    try:
        with path.open("r", encoding=encoding) as f:
            text = f.read()
    except UnicodeDecodeError as exc:
        raise MalformedInputError(str(path), f"not valid {encoding} text ({exc.reason})") from exc
    except OSError as exc:
        raise MalformedInputError(str(path), f"cannot read file: {exc.strerror or exc}") from exc
    return parse_document(text, source=str(path))


def iter_files(data_dir: Path, suffixes: Sequence[str] = DEFAULT_SUFFIXES) -> Iterable[Path]:
    wanted = {s.lower() for s in suffixes}
    for path in sorted(data_dir.rglob("*")):
        if path.is_file() and path.suffix.lower() in wanted:
            yield path


def collect_paths(paths: Iterable[Path | str], suffixes: Sequence[str] = DEFAULT_SUFFIXES) -> List[Path]:
    """Expand directories to note files; explicit file paths are kept as given."""
    collected: List[Path] = []
    seen = set()
    for raw in paths:
        path = Path(raw)
        candidates = iter_files(path, suffixes) if path.is_dir() else [path]
        for candidate in candidates:
            if candidate not in seen:
                seen.add(candidate)
                collected.append(candidate)
    return collected


__all__ = [
    "Block",
    "Section",
    "Document",
    "LoadResult",
    "parse_document",
    "load_documents",
    "read_document",
    "iter_files",
    "collect_paths",
]
