"""
Go-to-definition, find-references and rename.

Rule references are never resolved ahead of time: every query looks rules and
references up by name in the analysed tree.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from lsprotocol import types as lsp

from peggylsp.grammar import visitor
from peggylsp.grammar.ast import Grammar, NodeType
from peggylsp.handlers.diagnostics import location_to_range, name_range
from peggylsp.locator import word_at_position

if TYPE_CHECKING:
    from peggylsp.document import GrammarDocument


def _word(analysis, doc: GrammarDocument, position: lsp.Position) -> str:
    """The word under the cursor, or '' when there is no usable analysis."""
    if not isinstance(analysis, Grammar) or not analysis.rules:
        return ''
    return word_at_position(doc, position)


def get_definition(
    analysis,
    doc: GrammarDocument,
    position: lsp.Position,
) -> list[lsp.LocationLink] | None:
    word = _word(analysis, doc, position)
    if word == '':
        return None
    rule = analysis.find_rule(word)
    if rule is None:
        return None
    target_range = location_to_range(rule.location, doc.lines())
    return [
        lsp.LocationLink(
            target_uri=doc.uri,
            target_range=target_range,
            target_selection_range=name_range(rule.name, target_range),
        )
    ]


def get_references(
    analysis,
    doc: GrammarDocument,
    position: lsp.Position,
) -> list[lsp.Location] | None:
    word = _word(analysis, doc, position)
    if word == '':
        return None

    lines = doc.lines()
    results: list[lsp.Location] = []

    def rule_ref(node, visit):
        if node.name == word:
            results.append(lsp.Location(uri=doc.uri, range=location_to_range(node.location, lines)))

    visitor.build({NodeType.RULE_REF: rule_ref})(analysis)
    return results


def get_rename_edits(
    analysis,
    doc: GrammarDocument,
    position: lsp.Position,
    new_name: str,
) -> lsp.WorkspaceEdit | None:
    word = _word(analysis, doc, position)
    if word == '':
        return None

    lines = doc.lines()
    edits: list[lsp.TextEdit] = []

    def rule_ref(node, visit):
        if node.name == word:
            edits.append(lsp.TextEdit(range=location_to_range(node.location, lines), new_text=new_name))

    def rule(node, visit):
        visit(node.expression)
        if node.name == word:
            edits.append(lsp.TextEdit(
                range=name_range(node.name, location_to_range(node.location, lines)),
                new_text=new_name,
            ))

    visitor.build({
        NodeType.RULE_REF: rule_ref,
        NodeType.RULE: rule,
    })(analysis)
    return lsp.WorkspaceEdit(changes={doc.uri: edits})
