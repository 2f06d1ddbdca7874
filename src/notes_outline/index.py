from __future__ import annotations

import json
import logging
import pickle
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from rich.console import Console
from rich.progress import Progress

from .config import AppConfig, load_config
from .errors import MalformedInputError, StructureError
from .ingest import Document, Section, collect_paths, read_document
from .outline import Outline, build_outline
from .query import NotFound, PathLike, SearchResults, lookup, lookup_all, search
from .reconcile import DEFAULT_THRESHOLD, ReconcileReport, reconcile

console = Console()
log = logging.getLogger(__name__)

DOCUMENTS_FILE = "documents.pkl"
SNAPSHOT_FILE = "config_snapshot.json"


class NotesIndex:
    """
    The loaded notes: documents, their outlines and the duplicate report.

    `load` initialises the index and `clear` tears it down; reloading is a
    clear followed by a load, so no outline survives a reload.
    """

    def __init__(self, threshold: float = DEFAULT_THRESHOLD) -> None:
        self.threshold = threshold
        self.documents: List[Document] = []
        self.outlines: List[Outline] = []
        self.failures: List[MalformedInputError] = []
        self.report: Optional[ReconcileReport] = None

    @property
    def loaded(self) -> bool:
        return self.report is not None

    @property
    def warnings(self) -> List[StructureError]:
        return [warning for outline in self.outlines for warning in outline.warnings]

    @property
    def section_count(self) -> int:
        return sum(len(document.sections) for document in self.documents)

    def load(
        self,
        documents: Iterable[Document],
        failures: Iterable[MalformedInputError] = (),
    ) -> "NotesIndex":
        self.clear()
        self.documents = list(documents)
        self.failures = list(failures)
        self.outlines = [build_outline(document) for document in self.documents]
        self.report = reconcile(self.outlines, self.threshold)
        return self

    def clear(self) -> None:
        self.documents = []
        self.outlines = []
        self.failures = []
        self.report = None

    def outline_for(self, document: str) -> Optional[Outline]:
        for outline in self.outlines:
            if document in (outline.document.name, outline.document.source):
                return outline
        return None

    def lookup(self, heading_path: PathLike, document: Optional[str] = None) -> Union[Section, NotFound]:
        return lookup(self.outlines, heading_path, document=document)

    def lookup_all(self, heading_path: PathLike) -> List[Section]:
        return lookup_all(self.outlines, heading_path)

    def search(self, term: str) -> SearchResults:
        return search(self.outlines, term)


def build_index(
    paths: Optional[Sequence[Union[Path, str]]] = None,
    cfg: AppConfig | None = None,
    threshold: float | None = None,
) -> NotesIndex:
    """Read note files into a fresh index, collecting per-document failures."""
    if cfg is None:
        cfg = load_config()
    if not paths:
        paths = [cfg.notes_dir_resolved]
    if threshold is None:
        threshold = cfg.similarity_threshold

    index = NotesIndex(threshold=threshold)
    files = collect_paths(paths, cfg.file_suffixes)
    if not files:
        console.print(f"[yellow]No note files ({', '.join(cfg.file_suffixes)}) found.[/yellow]")
        return index.load([])

    documents: List[Document] = []
    failures: List[MalformedInputError] = []

    with Progress(console=console, transient=True) as progress:
        task = progress.add_task("Reading notes...", total=len(files))
        for path in files:
            progress.update(task, description=f"Processing {path.name}")
            try:
                documents.append(read_document(path, encoding=cfg.encoding))
            except MalformedInputError as exc:
                log.error("Failed to load %s", exc)
                failures.append(exc)
            finally:
                progress.update(task, advance=1)

    index.load(documents, failures)
    console.print(
        f"[green]Loaded {len(documents)} document(s) with {index.section_count} section(s).[/green]"
    )
    return index


def save_index(index: NotesIndex, cfg: AppConfig | None = None) -> Path:
    if cfg is None:
        cfg = load_config()

    index_dir = cfg.index_dir_resolved
    index_dir.mkdir(parents=True, exist_ok=True)

    documents_path = index_dir / DOCUMENTS_FILE
    snapshot_path = index_dir / SNAPSHOT_FILE

    log.info("Saving %d document(s) to %s", len(index.documents), documents_path)
    with documents_path.open("wb") as f:
        pickle.dump(index.documents, f)

    snapshot = cfg.model_dump()
    snapshot["threshold"] = index.threshold
    snapshot["documents"] = [document.source for document in index.documents]
    with snapshot_path.open("w", encoding="utf-8") as f:
        json.dump(snapshot, f, indent=2, default=str)

    return index_dir


def load_index(cfg: AppConfig | None = None) -> NotesIndex:
    if cfg is None:
        cfg = load_config()

    index_dir = cfg.index_dir_resolved
    documents_path = index_dir / DOCUMENTS_FILE
    snapshot_path = index_dir / SNAPSHOT_FILE

    if not documents_path.exists():
        raise SystemExit(f"Index not found in {index_dir}. Run 'notes-outline load <paths...>' first.")

    threshold = cfg.similarity_threshold
    if snapshot_path.exists():
        with snapshot_path.open("r", encoding="utf-8") as f:
            threshold = json.load(f).get("threshold", threshold)

    log.info("Loading documents from %s", documents_path)
    with documents_path.open("rb") as f:
        documents: List[Document] = pickle.load(f)

    return NotesIndex(threshold=threshold).load(documents)


__all__ = ["NotesIndex", "build_index", "save_index", "load_index"]
