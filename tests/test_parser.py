"""Tests for peggylsp.grammar.parser."""
from __future__ import annotations

import pytest

from peggylsp.grammar import GrammarSyntaxError, NodeType, parse
from peggylsp.grammar import ast

SOURCE = 'file:///tmp/test.peggy'

SIMPLE = 'start = "a" foo\nfoo = "b"'

WITH_INITIALIZERS = """\
{{ const helpers = {}; }}
{ let depth = 0; }
start = "a"
"""


def _parse(text):
    return parse(text, grammar_source=SOURCE)


def _expr(text):
    return _parse(text).rules[0].expression


class TestRules:
    def test_rule_names_in_order(self):
        g = _parse(SIMPLE)
        assert [r.name for r in g.rules] == ['start', 'foo']

    def test_rule_location_covers_definition(self):
        foo = _parse(SIMPLE).rules[1]
        assert foo.location.source == SOURCE
        assert (foo.location.start.line, foo.location.start.column) == (2, 1)
        assert (foo.location.end.line, foo.location.end.column) == (2, 10)

    def test_rule_name_location(self):
        start = _parse(SIMPLE).rules[0]
        loc = start.name_location
        assert (loc.start.column, loc.end.column) == (1, 6)
        assert loc.start.offset == 0 and loc.end.offset == 5

    def test_rule_ref_location(self):
        seq = _parse(SIMPLE).rules[0].expression
        assert seq.type is NodeType.SEQUENCE
        ref = seq.elements[1]
        assert ref.type is NodeType.RULE_REF
        assert ref.name == 'foo'
        assert (ref.location.start.line, ref.location.start.column) == (1, 13)
        assert ref.location.end.column == 16

    def test_display_name_wraps_in_named(self):
        expr = _expr('start "Start rule" = "a"')
        assert isinstance(expr, ast.Named)
        assert expr.name == 'Start rule'
        assert isinstance(expr.expression, ast.Literal)

    def test_semicolons_and_comments(self):
        g = _parse('// leading\nstart = "a" /* inline */ ;\nb = "c";')
        assert [r.name for r in g.rules] == ['start', 'b']

    def test_initializers(self):
        g = _parse(WITH_INITIALIZERS)
        assert g.top_level_initializer is not None
        assert g.top_level_initializer.code.strip() == 'const helpers = {};'
        assert g.initializer is not None
        assert g.initializer.code.strip() == 'let depth = 0;'
        assert g.initializer.location.start.line == 2

    def test_single_initializer_is_per_parse(self):
        g = _parse('{ let depth = 0; }\nstart = "a"')
        assert g.top_level_initializer is None
        assert g.initializer is not None


class TestExpressions:
    def test_choice(self):
        expr = _expr('start = "a" / "b" / c')
        assert isinstance(expr, ast.Choice)
        assert [a.type for a in expr.alternatives] == [NodeType.LITERAL, NodeType.LITERAL, NodeType.RULE_REF]

    def test_action(self):
        expr = _expr('start = "a" { return 1; }')
        assert isinstance(expr, ast.Action)
        assert expr.code.strip() == 'return 1;'
        assert isinstance(expr.expression, ast.Literal)

    def test_action_with_nested_braces(self):
        expr = _expr('start = "a" { if (x) { return {}; } }')
        assert isinstance(expr, ast.Action)

    def test_action_with_brace_in_string(self):
        expr = _expr('start = "a" { return "}"; }')
        assert isinstance(expr, ast.Action)
        assert expr.code.strip() == 'return "}";'

    def test_action_with_braces_in_template_and_comments(self):
        code = ' const s = `${"{"}`; // }\n /* { */ return s; '
        g = _parse('start = "a" {' + code + '}\nnext = "b"')
        assert g.rules[0].expression.code == code
        assert [r.name for r in g.rules] == ['start', 'next']
        assert g.rules[1].location.start.line == 3

    def test_deeply_nested_global_initializer(self):
        code = ' function f(x) { if (x) { for (;;) { const o = { a: { b: {} } }; } } } '
        g = _parse('{{' + code + '}}\nstart = "a"')
        assert isinstance(g.top_level_initializer, ast.TopLevelInitializer)
        assert g.top_level_initializer.code == code
        assert g.initializer is None

    def test_braces_in_grammar_literals_and_classes(self):
        expr = _expr('start = "{" [{}] \'}\' { return 1; }')
        assert isinstance(expr, ast.Action)
        assert [e.type for e in expr.expression.elements] == [
            NodeType.LITERAL, NodeType.CLASS, NodeType.LITERAL,
        ]

    def test_labels_and_pluck(self):
        expr = _expr('start = x:"a" @"b" @y:c')
        first, second, third = expr.elements
        assert (first.label, first.pick) == ('x', False)
        assert first.label_location.start.column == 9
        assert (second.label, second.pick) == (None, True)
        assert (third.label, third.pick) == ('y', True)

    def test_prefix_and_suffix_operators(self):
        expr = _expr('start = $"a"+ &"b" !"c" "d"? "e"*')
        types = [e.type for e in expr.elements]
        assert types == [
            NodeType.TEXT, NodeType.SIMPLE_AND, NodeType.SIMPLE_NOT,
            NodeType.OPTIONAL, NodeType.ZERO_OR_MORE,
        ]
        assert expr.elements[0].expression.type is NodeType.ONE_OR_MORE

    def test_semantic_predicates(self):
        expr = _expr('start = &{ return true; } !{ return false; } "a"')
        assert expr.elements[0].type is NodeType.SEMANTIC_AND
        assert expr.elements[1].type is NodeType.SEMANTIC_NOT
        assert expr.elements[0].code.strip() == 'return true;'

    def test_class_and_any(self):
        expr = _expr('start = [^a-z]i .')
        cls, any_ = expr.elements
        assert isinstance(cls, ast.CharClass)
        assert (cls.text, cls.inverted, cls.ignore_case) == ('a-z', True, True)
        assert isinstance(any_, ast.AnyChar)

    def test_group(self):
        expr = _expr('start = ("a" / "b")*')
        assert expr.type is NodeType.ZERO_OR_MORE
        assert expr.expression.type is NodeType.GROUP
        assert expr.expression.expression.type is NodeType.CHOICE

    def test_literal_escapes_and_case(self):
        expr = _expr("start = 'a\\n\\u0041'i")
        assert expr.value == 'a\nA'
        assert expr.ignore_case is True


class TestSyntaxErrors:
    def test_unterminated_literal(self):
        with pytest.raises(GrammarSyntaxError) as info:
            _parse('start = "a')
        err = info.value
        assert err.message == 'Unterminated string literal.'
        assert (err.location.start.line, err.location.start.column) == (1, 9)
        assert err.location.end.column == 10
        assert err.location.source == SOURCE

    def test_unexpected_token(self):
        with pytest.raises(GrammarSyntaxError) as info:
            _parse('start = "a" )')
        err = info.value
        assert '")" found' in err.message
        assert err.location.start.column == 13

    def test_end_of_input(self):
        with pytest.raises(GrammarSyntaxError) as info:
            _parse('start =')
        err = info.value
        assert 'end of input' in err.message
        assert (err.location.start.line, err.location.start.column) == (1, 8)

    def test_empty_text(self):
        with pytest.raises(GrammarSyntaxError) as info:
            _parse('')
        assert 'end of input' in info.value.message

    def test_reserved_word_label(self):
        with pytest.raises(GrammarSyntaxError) as info:
            _parse('start = class:"a"')
        err = info.value
        assert err.message == 'Label can\'t be a reserved word "class".'
        assert err.location.start.column == 9

    def test_custom_reserved_words(self):
        g = parse('start = class:"a"', grammar_source=SOURCE, reserved_words=frozenset())
        assert g.rules[0].expression.label == 'class'

    def test_too_many_initializers(self):
        with pytest.raises(GrammarSyntaxError):
            _parse('{ a }\n{ b }\n{ c }\nstart = "a"')

    def test_second_global_initializer(self):
        with pytest.raises(GrammarSyntaxError) as info:
            _parse('{{ a }}\n{{ b }}\nstart = "a"')
        err = info.value
        assert err.message == 'The global initializer must come first and appear only once.'
        assert err.location.start.line == 2

    def test_global_initializer_after_per_parse_initializer(self):
        with pytest.raises(GrammarSyntaxError):
            _parse('{ a }\n{{ b }}\nstart = "a"')

    def test_unbalanced_code_block(self):
        with pytest.raises(GrammarSyntaxError) as info:
            _parse('start = "a" { return 1;')
        err = info.value
        assert err.message == 'Unbalanced code block.'
        assert err.location.start.column == 13
