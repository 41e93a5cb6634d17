"""
Completion handler.

Offers the names of the grammar's rules that start with the word under the
cursor, in declaration order.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from lsprotocol import types as lsp

from peggylsp.grammar.ast import Grammar
from peggylsp.locator import word_at_position

if TYPE_CHECKING:
    from peggylsp.document import GrammarDocument


def get_completions(
    analysis,
    doc: GrammarDocument,
    position: lsp.Position,
) -> list[lsp.CompletionItem] | None:
    """Return completion items for *position*, or None if there is nothing to offer."""
    if not isinstance(analysis, Grammar) or not analysis.rules:
        return None
    word = word_at_position(doc, position)
    if word == '':
        return None
    return [
        lsp.CompletionItem(label=rule.name)
        for rule in analysis.rules
        if rule.name.startswith(word)
    ]
