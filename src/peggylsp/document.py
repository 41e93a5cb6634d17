"""
Open-document store entries.

The server uses full text synchronisation, so every open or change
notification replaces the stored :class:`GrammarDocument` for its URI.
Analysis results live separately in the slot cache; a document only holds
what the client sent.

Grammar locations count columns in code points.  LSP positions count UTF-16
code units, so the two differ on lines holding characters outside the Basic
Multilingual Plane; :func:`utf16_column` and :func:`codepoint_column` convert.
"""
from __future__ import annotations

import io
from dataclasses import dataclass


def split_lines(source: str) -> list[str]:
    """Split *source* into lines, keeping each line break as-is."""
    return io.StringIO(source, newline='').readlines()


def utf16_column(line: str, column: int) -> int:
    """UTF-16 offset of code point offset *column* in *line*."""
    return column + sum(1 for ch in line[:column] if ord(ch) > 0xFFFF)


def codepoint_column(line: str, character: int) -> int:
    """Code point offset of UTF-16 offset *character* in *line*."""
    units = 0
    for index, ch in enumerate(line):
        if units >= character:
            return index
        units += 2 if ord(ch) > 0xFFFF else 1
    # Past the end of the line: keep the overshoot.
    return len(line) + (character - units)


@dataclass
class GrammarDocument:
    uri: str
    source: str
    version: int | None = None

    def lines(self) -> list[str]:
        return split_lines(self.source)

    def line(self, index: int) -> str:
        """Return line *index* (0-based) including its line break, or ``''``."""
        lines = self.lines()
        if 0 <= index < len(lines):
            return lines[index]
        return ''
