"""Tests for lookup and search."""

from __future__ import annotations

from typing import List

from notes_outline.ingest import Section, parse_document
from notes_outline.outline import PLACEHOLDER_TITLE, Outline, build_outline
from notes_outline.query import (
    NotFound,
    SearchResults,
    lookup,
    lookup_all,
    parse_heading_path,
    search,
)


def test_parse_heading_path() -> None:
    assert parse_heading_path(" Chapter 1 >  Hello   World ") == ("Chapter 1", "Hello World")
    assert parse_heading_path(["Chapter 1", "Hello World"]) == ("Chapter 1", "Hello World")
    assert parse_heading_path(" > ") == ()


def test_parse_heading_path_keeps_angle_brackets_inside_titles() -> None:
    assert parse_heading_path("Chapter 6 > Structure member operator ->") == (
        "Chapter 6",
        "Structure member operator ->",
    )
    assert parse_heading_path("std::vector<int> > size") == ("std::vector<int>", "size")
    assert parse_heading_path("a>b") == ("a>b",)


class TestLookup:
    def test_finds_section_by_path(self, outlines: List[Outline]) -> None:
        section = lookup(outlines, "Chapter 8 > Further Reading")
        assert isinstance(section, Section)
        assert section.source == "k_and_r.md"
        assert section.path == ("Chapter 8", "Further Reading")

    def test_first_document_in_load_order_wins(self, outlines: List[Outline]) -> None:
        section = lookup(outlines, ("Chapter 1", "Hello World"))
        assert isinstance(section, Section)
        assert section.source == "k_and_r.md"

    def test_document_filter(self, outlines: List[Outline]) -> None:
        section = lookup(outlines, "Chapter 1 > Hello World", document="concurrency")
        assert isinstance(section, Section)
        assert section.source == "concurrency.md"

    def test_not_found_is_a_value(self, outlines: List[Outline]) -> None:
        result = lookup(outlines, "Chapter 3 Sharing Data > Condition Variables")
        assert isinstance(result, NotFound)
        assert not result
        assert result.path == ("Chapter 3 Sharing Data", "Condition Variables")
        assert result.matched == ("Chapter 3 Sharing Data",)

    def test_empty_path_and_unknown_document(self, outlines: List[Outline]) -> None:
        assert isinstance(lookup(outlines, ""), NotFound)
        missing = lookup(outlines, "Chapter 1", document="nope")
        assert isinstance(missing, NotFound)
        assert "nope" in missing.reason

    def test_idempotent(self, outlines: List[Outline]) -> None:
        path = "Chapter 3 Sharing Data > Protecting Shared Data with Mutexes > Deadlock"
        first = lookup(outlines, path)
        assert first == lookup(outlines, path)
        assert lookup(outlines, "missing") == lookup(outlines, "missing")

    def test_path_through_placeholder(self) -> None:
        outline = build_outline(parse_document("# Chapter 2\n\n### Types\n\n- int\n", "jump.md"))
        section = lookup([outline], ("Chapter 2", PLACEHOLDER_TITLE, "Types"))
        assert isinstance(section, Section)
        assert isinstance(lookup([outline], "Chapter 2 > Types"), NotFound)

    def test_repeated_parent_titles_are_all_searched(self) -> None:
        text = "# Chapter 1\n\n## Intro\n\n- a\n\n# Chapter 1\n\n## Hello World\n\n- b\n"
        outline = build_outline(parse_document(text, "dup.md"))
        section = lookup([outline], "Chapter 1 > Hello World")
        assert isinstance(section, Section)
        assert section.blocks[0].text == "b"
        assert lookup([outline], "Chapter 1 > Intro") == lookup_all([outline], "Chapter 1 > Intro")[0]

        missing = lookup([outline], "Chapter 1 > Outro")
        assert isinstance(missing, NotFound)
        assert missing.matched == ("Chapter 1",)

    def test_lookup_all_returns_every_variant(self, outlines: List[Outline]) -> None:
        sections = lookup_all(outlines, "Chapter 1 > Hello World")
        assert [s.source for s in sections] == ["k_and_r.md", "concurrency.md"]
        assert lookup_all(outlines, "") == []


class TestSearch:
    def test_mutex_spans_both_books_by_match_count(self, outlines: List[Outline]) -> None:
        hits = list(search(outlines, "mutex").hits())
        assert [(h.section.title, h.matches) for h in hits] == [
            ("Protecting Shared Data with Mutexes", 4),
            ("Further Reading", 2),
            ("Deadlock", 1),
        ]
        assert {h.section.source for h in hits} == {"k_and_r.md", "concurrency.md"}
        counts = [h.matches for h in hits]
        assert counts == sorted(counts, reverse=True)

    def test_results_are_lazy_and_restartable(self, outlines: List[Outline]) -> None:
        results = search(outlines, "MUTEX")
        assert isinstance(results, SearchResults)
        first = [s.key for s in results]
        second = [s.key for s in results]
        assert first == second
        assert len(first) == 3

    def test_ties_break_by_document_then_source_order(self) -> None:
        outlines = [
            build_outline(parse_document("# B\n\n- lock\n\n# A\n\n- lock\n", "one.md")),
            build_outline(parse_document("# C\n\n- lock twice: lock\n\n# D\n\n- lock\n", "two.md")),
        ]
        hits = list(search(outlines, "lock").hits())
        assert [(h.section.source, h.section.title, h.matches) for h in hits] == [
            ("two.md", "C", 2),
            ("one.md", "B", 1),
            ("one.md", "A", 1),
            ("two.md", "D", 1),
        ]

    def test_empty_term_yields_nothing(self, outlines: List[Outline]) -> None:
        assert list(search(outlines, "   ")) == []

    def test_no_match(self, outlines: List[Outline]) -> None:
        assert list(search(outlines, "coroutine")) == []

    def test_search_sees_code_blocks(self, outlines: List[Outline]) -> None:
        titles = [s.title for s in search(outlines, "stdio.h")]
        assert titles == ["Variables and Arithmetic"]
