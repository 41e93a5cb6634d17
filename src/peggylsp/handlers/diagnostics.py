"""Convert grammar compiler problems into LSP Diagnostic objects."""
from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence

from lsprotocol import types as lsp

from peggylsp.document import utf16_column
from peggylsp.grammar.ast import Location, Position
from peggylsp.grammar.compiler import Problem
from peggylsp.settings import PeggySettings

SOURCE = 'peggy-language'

_SEVERITIES = {
    'error': lsp.DiagnosticSeverity.Error,
    'warning': lsp.DiagnosticSeverity.Warning,
    'info': lsp.DiagnosticSeverity.Information,
}


def _position(pos: Position, lines: Sequence[str] | None) -> lsp.Position:
    line = pos.line - 1
    character = pos.column - 1
    if lines is not None and 0 <= line < len(lines):
        character = utf16_column(lines[line], character)
    return lsp.Position(line=line, character=character)


def location_to_range(loc: Location, lines: Sequence[str] | None = None) -> lsp.Range:
    """Grammar locations are 1-based; LSP is 0-based.

    With the document *lines*, columns are also converted to UTF-16 units.
    """
    return lsp.Range(start=_position(loc.start, lines), end=_position(loc.end, lines))


def name_range(name: str, declaration: lsp.Range) -> lsp.Range:
    """The span of *name* at the start of *declaration*."""
    return lsp.Range(
        start=declaration.start,
        end=lsp.Position(
            line=declaration.start.line,
            character=declaration.start.character + len(name.encode('utf-16-le')) // 2,
        ),
    )


def problems_to_diagnostics(
    problems: Iterable[Problem],
    settings: PeggySettings,
    console: Callable[[str], None] | None = None,
    lines: Sequence[str] | None = None,
) -> list[lsp.Diagnostic]:
    """Return diagnostics for the located *problems*.

    *lines* are the lines of the validated document, for UTF-16 columns.

    Located info problems are only kept when ``settings.mark_info`` is set.
    Problems without a location cannot be shown in the editor; they are
    written to *console* when ``settings.console_info`` is set.
    """
    diags: list[lsp.Diagnostic] = []
    for severity, message, location, notes in problems:
        if location is None:
            if settings.console_info and console is not None:
                console(f'{severity}: {message}')
                for note in notes or ():
                    console(f'  {note.message}')
            continue
        if severity == 'info' and not settings.mark_info:
            continue
        diags.append(lsp.Diagnostic(
            range=location_to_range(location, lines),
            message=message,
            severity=_SEVERITIES[severity],
            source=SOURCE,
            related_information=[
                lsp.DiagnosticRelatedInformation(
                    location=lsp.Location(
                        uri=note.location.source,
                        range=location_to_range(note.location, lines),
                    ),
                    message=note.message,
                )
                for note in notes or ()
            ],
        ))
    return diags
