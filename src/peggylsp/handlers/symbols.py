"""Document outline: one symbol per rule, plus the grammar's initializers."""
from __future__ import annotations

from typing import TYPE_CHECKING

from lsprotocol import types as lsp

from peggylsp.grammar.ast import Grammar, NodeType
from peggylsp.handlers.diagnostics import location_to_range, name_range

if TYPE_CHECKING:
    from peggylsp.document import GrammarDocument

PER_PARSE_INITIALIZER = '{Per-parse initializer}'
GLOBAL_INITIALIZER = '{{Global initializer}}'


def get_document_symbols(analysis, doc: GrammarDocument | None = None) -> list[lsp.DocumentSymbol] | None:
    if not isinstance(analysis, Grammar):
        return None
    lines = doc.lines() if doc is not None else None

    symbols: list[lsp.DocumentSymbol] = []
    for rule in analysis.rules:
        rng = location_to_range(rule.location, lines)
        symbols.append(lsp.DocumentSymbol(
            name=rule.name,
            kind=lsp.SymbolKind.Function,
            range=rng,
            selection_range=name_range(rule.name, rng),
            detail=rule.expression.name if rule.expression.type is NodeType.NAMED else None,
        ))

    if analysis.initializer is not None:
        rng = location_to_range(analysis.initializer.location, lines)
        symbols.insert(0, lsp.DocumentSymbol(
            name=PER_PARSE_INITIALIZER,
            kind=lsp.SymbolKind.Constructor,
            range=rng,
            selection_range=name_range('{', rng),
        ))
    if analysis.top_level_initializer is not None:
        rng = location_to_range(analysis.top_level_initializer.location, lines)
        symbols.insert(0, lsp.DocumentSymbol(
            name=GLOBAL_INITIALIZER,
            kind=lsp.SymbolKind.Constructor,
            range=rng,
            selection_range=name_range('{{', rng),
        ))
    return symbols
