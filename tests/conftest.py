"""Shared fixtures: two small book summaries that overlap on one chapter."""

from __future__ import annotations

from pathlib import Path
from typing import List

import pytest

from notes_outline.config import AppConfig
from notes_outline.ingest import Document, parse_document
from notes_outline.outline import Outline, build_outline

HELLO_BULLETS = [f"Point {n} about printf and the main function" for n in range(1, 21)]


def _bullets(items: List[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def _diverged(items: List[str]) -> List[str]:
    changed = list(items)
    changed[6] = "The concurrency book rewrites this one with std::thread"
    return changed


K_AND_R_NOTES = f"""Study notes, first draft.

# Chapter 1

## Hello World

{_bullets(HELLO_BULLETS)}

## Variables and Arithmetic

- `int` and `float` sizes are machine dependent.
- Integer division truncates.

```c
# define LOWER 0
#include <stdio.h>
int main(void)
{{
    printf("hello, world\\n");
}}
```

# Chapter 8

## Further Reading

- POSIX threads add a mutex type, pthread_mutex_t, outside the C standard.
"""

CONCURRENCY_NOTES = f"""# Chapter 1

## Hello World

{_bullets(_diverged(HELLO_BULLETS))}

# Chapter 3 Sharing Data

## Protecting Shared Data with Mutexes

- std::mutex provides lock() and unlock(); prefer std::lock_guard.
- A mutex protects data only if every access path locks the same mutex.
- Don't pass pointers or references to protected data outside the lock.

### Deadlock

- Lock multiple mutexes together with std::scoped_lock.
"""


@pytest.fixture
def k_and_r_text() -> str:
    return K_AND_R_NOTES


@pytest.fixture
def concurrency_text() -> str:
    return CONCURRENCY_NOTES


@pytest.fixture
def documents() -> List[Document]:
    return [
        parse_document(K_AND_R_NOTES, "k_and_r.md"),
        parse_document(CONCURRENCY_NOTES, "concurrency.md"),
    ]


@pytest.fixture
def outlines(documents: List[Document]) -> List[Outline]:
    return [build_outline(document) for document in documents]


@pytest.fixture
def notes_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "notes"
    directory.mkdir()
    (directory / "k_and_r.md").write_text(K_AND_R_NOTES, encoding="utf-8")
    (directory / "concurrency.md").write_text(CONCURRENCY_NOTES, encoding="utf-8")
    (directory / "diagram.png").write_bytes(b"\x89PNG")
    return directory


@pytest.fixture
def cfg(tmp_path: Path, notes_dir: Path) -> AppConfig:
    return AppConfig(notes_dir=notes_dir, index_dir=tmp_path / "index")
