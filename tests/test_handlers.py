"""Tests for the query handlers: completion, navigation, rename and outline."""
from __future__ import annotations

from lsprotocol import types as lsp

from peggylsp.cache import ABSENT, SlotCache
from peggylsp.document import GrammarDocument
from peggylsp.handlers import (
    get_completions,
    get_definition,
    get_document_symbols,
    get_references,
    get_rename_edits,
)
from peggylsp.handlers.symbols import GLOBAL_INITIALIZER, PER_PARSE_INITIALIZER
from peggylsp.validation import INVALID, Validator

URI = 'file:///tmp/test.peggy'

SIMPLE = 'start = "a" foo\nfoo = "b"'

MANY_RULES = """\
start = food / fold / Foo
food = "x"
fold = "y"
Foo = "z"
"""

INITIALIZERS = """\
{{ const helpers = {}; }}
{ let depth = 0; }
start "Start rule" = "a"
"""

RECURSIVE = 'list = item ("," list)?\nitem = [a-z]+'

# The emoji takes two UTF-16 code units.
ASTRAL = 'start = "😀" foo\nfoo = "b"'


def _analyse(source):
    cache = SlotCache()
    Validator(cache, publish=lambda uri, diags: None).validate(URI, source)
    return cache.get(URI), GrammarDocument(uri=URI, source=source)


def _pos(line, character):
    return lsp.Position(line=line, character=character)


def _range(l1, c1, l2, c2):
    return lsp.Range(start=_pos(l1, c1), end=_pos(l2, c2))


def _apply(source, edits):
    """Apply single-line TextEdits, last first so earlier ranges stay valid."""
    lines = source.split('\n')
    for edit in sorted(edits, key=lambda e: (e.range.start.line, e.range.start.character), reverse=True):
        line = lines[edit.range.start.line]
        lines[edit.range.start.line] = (
            line[:edit.range.start.character] + edit.new_text + line[edit.range.end.character:]
        )
    return '\n'.join(lines)


class TestCompletion:
    def test_prefix_matches_in_declaration_order(self):
        analysis, _ = _analyse(MANY_RULES)
        # The user is typing; completion runs against the last good analysis.
        doc = GrammarDocument(uri=URI, source='start = fo')
        items = get_completions(analysis, doc, _pos(0, 10))
        assert [i.label for i in items] == ['food', 'fold']

    def test_case_sensitive(self):
        analysis, _ = _analyse(MANY_RULES)
        doc = GrammarDocument(uri=URI, source='start = F')
        items = get_completions(analysis, doc, _pos(0, 9))
        assert [i.label for i in items] == ['Foo']

    def test_whole_word_matches_itself(self):
        analysis, doc = _analyse(MANY_RULES)
        items = get_completions(analysis, doc, _pos(0, 10))
        assert [i.label for i in items] == ['food']

    def test_no_word_under_cursor(self):
        analysis, doc = _analyse(SIMPLE)
        assert get_completions(analysis, doc, _pos(0, 7)) is None

    def test_unmatched_word_gives_empty_list(self):
        analysis, doc = _analyse(SIMPLE)
        doc = GrammarDocument(uri=URI, source='start = "a" zzz\nfoo = "b"')
        assert get_completions(analysis, doc, _pos(0, 14)) == []

    def test_invalid_analysis(self):
        _, doc = _analyse(SIMPLE)
        assert get_completions(INVALID, doc, _pos(0, 13)) is None
        assert get_completions(ABSENT, doc, _pos(0, 13)) is None


class TestDefinition:
    def test_definition_of_reference(self):
        analysis, doc = _analyse(SIMPLE)
        (link,) = get_definition(analysis, doc, _pos(0, 13))
        assert link.target_uri == URI
        assert link.target_range == _range(1, 0, 1, 9)
        assert link.target_selection_range == _range(1, 0, 1, 3)

    def test_definition_of_rule_name_is_itself(self):
        analysis, doc = _analyse(SIMPLE)
        (link,) = get_definition(analysis, doc, _pos(1, 1))
        assert link.target_selection_range == _range(1, 0, 1, 3)

    def test_unknown_word(self):
        analysis, doc = _analyse(SIMPLE)
        assert get_definition(analysis, doc, _pos(0, 9)) is None

    def test_invalid_analysis(self):
        _, doc = _analyse(SIMPLE)
        assert get_definition(INVALID, doc, _pos(0, 13)) is None


class TestReferences:
    def test_single_reference(self):
        analysis, doc = _analyse(SIMPLE)
        refs = get_references(analysis, doc, _pos(1, 0))
        assert refs == [lsp.Location(uri=URI, range=_range(0, 12, 0, 15))]

    def test_recursive_references(self):
        analysis, doc = _analyse(RECURSIVE)
        refs = get_references(analysis, doc, _pos(0, 1))
        assert [r.range.start for r in refs] == [_pos(0, 17)]

    def test_unreferenced_rule(self):
        analysis, doc = _analyse(SIMPLE)
        assert get_references(analysis, doc, _pos(0, 1)) == []

    def test_no_word(self):
        analysis, doc = _analyse(SIMPLE)
        assert get_references(analysis, doc, _pos(0, 7)) is None


class TestRename:
    def test_rename_reference_and_declaration(self):
        analysis, doc = _analyse(SIMPLE)
        edit = get_rename_edits(analysis, doc, _pos(0, 13), 'bar')
        edits = edit.changes[URI]
        assert [(e.range, e.new_text) for e in edits] == [
            (_range(0, 12, 0, 15), 'bar'),
            (_range(1, 0, 1, 3), 'bar'),
        ]

    def test_rename_is_repeatable(self):
        analysis, doc = _analyse(SIMPLE)
        first = get_rename_edits(analysis, doc, _pos(0, 13), 'bar').changes[URI]
        renamed = _apply(SIMPLE, first)
        assert renamed == 'start = "a" bar\nbar = "b"'

        analysis, doc = _analyse(renamed)
        second = get_rename_edits(analysis, doc, _pos(0, 13), 'bar').changes[URI]
        assert [e.range for e in second] == [e.range for e in first]

    def test_rename_unknown_word_yields_no_edits(self):
        analysis, doc = _analyse(SIMPLE)
        edit = get_rename_edits(analysis, doc, _pos(0, 9), 'x')
        assert edit.changes == {URI: []}

    def test_invalid_analysis(self):
        _, doc = _analyse(SIMPLE)
        assert get_rename_edits(INVALID, doc, _pos(0, 13), 'bar') is None


class TestDocumentSymbols:
    def test_rules_in_order(self):
        analysis, _ = _analyse(SIMPLE)
        symbols = get_document_symbols(analysis)
        assert [s.name for s in symbols] == ['start', 'foo']
        assert all(s.kind == lsp.SymbolKind.Function for s in symbols)
        assert symbols[0].range == _range(0, 0, 0, 15)
        assert symbols[1].selection_range == _range(1, 0, 1, 3)

    def test_initializers_come_first(self):
        analysis, _ = _analyse(INITIALIZERS)
        symbols = get_document_symbols(analysis)
        assert [s.name for s in symbols] == [GLOBAL_INITIALIZER, PER_PARSE_INITIALIZER, 'start']
        glob, per_parse, start = symbols
        assert glob.kind == lsp.SymbolKind.Constructor
        assert glob.selection_range == _range(0, 0, 0, 2)
        assert per_parse.selection_range == _range(1, 0, 1, 1)
        assert start.detail == 'Start rule'

    def test_invalid_grammar_has_no_outline(self):
        analysis, _ = _analyse('start = "a')
        assert analysis is INVALID
        assert get_document_symbols(analysis) is None


class TestUtf16Columns:
    def test_reference_range(self):
        analysis, doc = _analyse(ASTRAL)
        refs = get_references(analysis, doc, _pos(1, 0))
        assert refs == [lsp.Location(uri=URI, range=_range(0, 13, 0, 16))]

    def test_definition_from_utf16_cursor(self):
        analysis, doc = _analyse(ASTRAL)
        (link,) = get_definition(analysis, doc, _pos(0, 14))
        assert link.target_selection_range == _range(1, 0, 1, 3)

    def test_rename_ranges(self):
        analysis, doc = _analyse(ASTRAL)
        edits = get_rename_edits(analysis, doc, _pos(0, 13), 'bar').changes[URI]
        assert [e.range for e in edits] == [_range(0, 13, 0, 16), _range(1, 0, 1, 3)]

    def test_outline_range(self):
        analysis, doc = _analyse(ASTRAL)
        symbols = get_document_symbols(analysis, doc)
        assert symbols[0].range == _range(0, 0, 0, 16)
