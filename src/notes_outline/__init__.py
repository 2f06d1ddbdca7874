"""
Notes Outline.

Index Markdown study notes into heading outlines, report duplicated
sections, and look sections up by heading path or full-text search.
"""

__all__ = [
    "config",
    "ingest",
    "outline",
    "reconcile",
    "query",
    "render",
    "index",
]
