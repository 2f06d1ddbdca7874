from __future__ import annotations


class NotesError(Exception):
    """Base class for problems found in a note file, located by source and line."""

    def __init__(self, source: str, reason: str, line: int | None = None) -> None:
        self.source = source
        self.reason = reason
        self.line = line
        location = f"{source}:{line}" if line is not None else source
        super().__init__(f"{location}: {reason}")


class MalformedInputError(NotesError):
    """A document whose heading structure cannot be parsed.

    Fatal for that document only; the rest of the batch still loads.
    """


class StructureError(NotesError):
    """A heading depth jump that was repaired with placeholder headings.

    Recorded as a warning on the outline, never raised by the builder.
    """


__all__ = ["NotesError", "MalformedInputError", "StructureError"]
