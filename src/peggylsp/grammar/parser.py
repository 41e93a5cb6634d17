"""
Lark-based parser for the Peggy grammar language.

:func:`parse` turns grammar source text into a :class:`~peggylsp.grammar.ast.Grammar`
or raises :class:`~peggylsp.grammar.errors.GrammarSyntaxError` carrying a
Peggy-style message and the location of the offending input.
"""
from __future__ import annotations

import re

from lark import Lark, Token, Transformer, UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, v_args
from lark.exceptions import UnexpectedToken, VisitError

from peggylsp.grammar import ast
from peggylsp.grammar.errors import GrammarSyntaxError

# Words that may not be used as labels; labels become JavaScript variables in
# the generated parser.
RESERVED_WORDS: frozenset[str] = frozenset(
    [
        'break', 'case', 'catch', 'class', 'const', 'continue', 'debugger',
        'default', 'delete', 'do', 'else', 'export', 'extends', 'finally',
        'for', 'function', 'if', 'import', 'in', 'instanceof', 'new',
        'return', 'super', 'switch', 'this', 'throw', 'try', 'typeof', 'var',
        'void', 'while', 'with', 'null', 'true', 'false', 'enum',
        'implements', 'interface', 'let', 'package', 'private', 'protected',
        'public', 'static', 'yield', 'await', 'arguments', 'eval',
    ]
)


# ---- Code block scanning ----
#
# JavaScript code blocks cannot be described by a regular terminal: braces
# nest without limit and may appear inside strings and comments.  Before
# lexing, every code block found by the scanner below has its body blanked
# out (line breaks kept, so token positions are unchanged), and the lexer only
# has to match a brace pair with nothing but blanks in between.  The
# transformer reads the real code back from the original text by offset.

_BLANK_RE = re.compile(r'[^\r\n]')


def _skip_quoted(text: str, i: int, quote: str) -> int:
    """Index just past the string opening at ``text[i]``.

    Single- and double-quoted strings also end at a line break; template
    strings only at their closing backtick.
    """
    n = len(text)
    i += 1
    while i < n:
        c = text[i]
        if c == '\\':
            i += 2
            continue
        if c == quote:
            return i + 1
        if c == '\n' and quote != '`':
            return i
        i += 1
    return n


def _skip_comment(text: str, i: int) -> int:
    """Index just past the ``//`` or ``/* */`` comment at ``text[i]``, or *i*."""
    if text.startswith('//', i):
        end = text.find('\n', i)
        return len(text) if end < 0 else end
    if text.startswith('/*', i):
        end = text.find('*/', i + 2)
        return len(text) if end < 0 else end + 2
    return i


def _code_block_end(text: str, start: int) -> int:
    """Index just past the code block opening at ``text[start]``, or -1."""
    depth = 0
    i = start
    n = len(text)
    while i < n:
        c = text[i]
        if c in '"\'`':
            i = _skip_quoted(text, i, c)
            continue
        if c == '/':
            end = _skip_comment(text, i)
            if end != i:
                i = end
                continue
        elif c == '{':
            depth += 1
        elif c == '}':
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    return -1


def _mask_code_blocks(text: str) -> str:
    """Blank the body of every code block in *text*, keeping its braces.

    Grammar-level strings, character classes and comments are skipped so a
    brace inside them does not open a block.  Scanning stops at an unbalanced
    block; the lexer then reports it.
    """
    parts = []
    last = 0
    i = 0
    n = len(text)
    while i < n:
        c = text[i]
        if c in '"\'':
            i = _skip_quoted(text, i, c)
        elif c == '[':
            i = _skip_quoted(text, i, ']')
        elif c == '/' and _skip_comment(text, i) != i:
            i = _skip_comment(text, i)
        elif c == '{':
            end = _code_block_end(text, i)
            if end < 0:
                break
            parts.append(text[last:i + 1])
            parts.append(_BLANK_RE.sub(' ', text[i + 1:end - 1]))
            parts.append('}')
            last = i = end
        else:
            i += 1
    parts.append(text[last:])
    return ''.join(parts)


# ---- Grammar ----

_GRAMMAR = r"""
grammar: initializer* rule+

initializer: CODE _SEMI?

rule: IDENT STRING? _EQUAL choice _SEMI?

?choice: action
       | action (_SLASH action)+          -> choice

?action: sequence
       | sequence CODE                    -> action

?sequence: labeled
         | labeled labeled+               -> sequence

?labeled: prefixed
        | AT prefixed                     -> labeled
        | AT? IDENT _COLON prefixed       -> labeled

?prefixed: suffixed
         | (DOLLAR | AMP | BANG) suffixed -> prefixed

?suffixed: primary
         | primary (QUESTION | STAR | PLUS) -> suffixed

?primary: STRING                          -> literal
        | CLASS                           -> char_class
        | DOT                             -> any_char
        | IDENT                           -> rule_ref
        | AMP CODE                        -> semantic_and
        | BANG CODE                       -> semantic_not
        | _LPAR choice _RPAR              -> group

IDENT: /[A-Za-z_][A-Za-z0-9_$]*/
STRING: /"(?:[^"\\\n]|\\.)*"i?/ | /'(?:[^'\\\n]|\\.)*'i?/
CLASS: /\[\^?(?:[^\]\\\n]|\\.)*\]i?/
CODE: /\{[ \t\r\n]*\}/

DOT: "."
AT: "@"
DOLLAR: "$"
AMP: "&"
BANG: "!"
QUESTION: "?"
STAR: "*"
PLUS: "+"
_EQUAL: "="
_SLASH: "/"
_LPAR: "("
_RPAR: ")"
_COLON: ":"
_SEMI: ";"

COMMENT: /\/\/[^\n]*/ | /\/\*[\s\S]*?\*\//

%ignore /\s+/
%ignore COMMENT
"""

_lark_parser = Lark(
    _GRAMMAR,
    start='grammar',
    parser='earley',
    lexer='basic',
    propagate_positions=True,
)

# Human-readable names for terminals in error messages.
_TERMINAL_NAMES = {
    'IDENT': 'identifier',
    'STRING': 'string literal',
    'CLASS': 'character class',
    'CODE': 'code block',
    'DOT': '"."',
    'AT': '"@"',
    'DOLLAR': '"$"',
    'AMP': '"&"',
    'BANG': '"!"',
    'QUESTION': '"?"',
    'STAR': '"*"',
    'PLUS': '"+"',
    '_EQUAL': '"="',
    '_SLASH': '"/"',
    '_LPAR': '"("',
    '_RPAR': '")"',
    '_COLON': '":"',
    '_SEMI': '";"',
    '$END': 'end of input',
}

_ESCAPE_RE = re.compile(r'\\(u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|.)', re.DOTALL)
_SIMPLE_ESCAPES = {'n': '\n', 't': '\t', 'r': '\r', 'b': '\b', 'f': '\f', 'v': '\v', '0': '\0'}


def _unescape(raw: str) -> str:
    def repl(m: re.Match) -> str:
        esc = m.group(1)
        if esc[0] in 'ux' and len(esc) > 1:
            return chr(int(esc[1:], 16))
        return _SIMPLE_ESCAPES.get(esc, esc)
    return _ESCAPE_RE.sub(repl, raw)


def _describe(names) -> str:
    described = sorted({_TERMINAL_NAMES.get(n, n) for n in names or ()})
    if not described:
        return 'nothing'
    if len(described) == 1:
        return described[0]
    return ', '.join(described[:-1]) + ' or ' + described[-1]


def _end_position(text: str) -> ast.Position:
    line = text.count('\n') + 1
    column = len(text) - (text.rfind('\n') + 1) + 1
    return ast.Position(offset=len(text), line=line, column=column)


def _point(source: str, pos: ast.Position, width: int = 0) -> ast.Location:
    end = ast.Position(offset=pos.offset + width, line=pos.line, column=pos.column + width)
    return ast.Location(source=source, start=pos, end=end)


def _syntax_error(exc: UnexpectedInput, text: str, source: str) -> GrammarSyntaxError:
    """Translate a Lark error into a :class:`GrammarSyntaxError`."""
    if isinstance(exc, UnexpectedEOF):
        where = _point(source, _end_position(text))
        return GrammarSyntaxError(f'Expected {_describe(exc.expected)} but end of input found.', where)

    if isinstance(exc, UnexpectedCharacters):
        pos = ast.Position(offset=exc.pos_in_stream, line=exc.line, column=exc.column)
        where = _point(source, pos, 1)
        char = exc.char
        if char in '"\'':
            message = 'Unterminated string literal.'
        elif char == '[':
            message = 'Unterminated character class.'
        elif char == '{':
            message = 'Unbalanced code block.'
        else:
            message = f'Unexpected character {char!r}.'
        return GrammarSyntaxError(message, where)

    if isinstance(exc, UnexpectedToken):
        token = exc.token
        if token.type == '$END' or token.line is None:
            where = _point(source, _end_position(text))
            found = 'end of input'
        else:
            pos = ast.Position(offset=token.start_pos, line=token.line, column=token.column)
            where = _point(source, pos, len(token))
            found = f'"{text[token.start_pos:token.end_pos]}"'
        return GrammarSyntaxError(f'Expected {_describe(exc.expected)} but {found} found.', where)

    line = getattr(exc, 'line', None) or 1
    column = getattr(exc, 'column', None) or 1
    pos = ast.Position(offset=exc.pos_in_stream or 0, line=max(line, 1), column=max(column, 1))
    return GrammarSyntaxError(str(exc), _point(source, pos))


# ---- Transformer ----


@v_args(meta=True)
class GrammarTransformer(Transformer):
    """Build :mod:`peggylsp.grammar.ast` nodes from the Lark parse tree."""

    def __init__(self, source: str, reserved_words: frozenset[str], text: str):
        super().__init__()
        self.source = source
        self.reserved_words = reserved_words
        # Unmasked grammar text; CODE tokens only hold blanked bodies.
        self.text = text

    def _code(self, token: Token) -> str:
        """The code between the braces of a CODE token."""
        return self.text[token.start_pos + 1:token.end_pos - 1]

    # ---- Position helpers ----

    def _loc(self, meta) -> ast.Location:
        return ast.Location(
            source=self.source,
            start=ast.Position(offset=meta.start_pos, line=meta.line, column=meta.column),
            end=ast.Position(offset=meta.end_pos, line=meta.end_line, column=meta.end_column),
        )

    def _token_loc(self, token: Token) -> ast.Location:
        return ast.Location(
            source=self.source,
            start=ast.Position(offset=token.start_pos, line=token.line, column=token.column),
            end=ast.Position(offset=token.end_pos, line=token.end_line, column=token.end_column),
        )

    # ---- Top level ----

    def grammar(self, meta, children):
        top_level = None
        initializer = None
        rules: list[ast.Rule] = []
        for child in children:
            if isinstance(child, ast.Rule):
                rules.append(child)
            elif isinstance(child, ast.TopLevelInitializer):
                # Only valid as the very first block.
                if top_level is not None or initializer is not None:
                    raise GrammarSyntaxError(
                        'The global initializer must come first and appear only once.',
                        child.location,
                    )
                top_level = child
            elif initializer is None:
                initializer = child
            else:
                raise GrammarSyntaxError('Expected rule but code block found.', child.location)
        return ast.Grammar(
            location=self._loc(meta),
            top_level_initializer=top_level,
            initializer=initializer,
            rules=rules,
        )

    def initializer(self, meta, children):
        code = self._code(children[0])
        # {{ ... }}: a block whose body is exactly one inner block.
        if code.startswith('{') and _code_block_end(code, 0) == len(code):
            return ast.TopLevelInitializer(location=self._loc(meta), code=code[1:-1])
        return ast.Initializer(location=self._loc(meta), code=code)

    def rule(self, meta, children):
        name_token = children[0]
        expression = children[-1]
        if len(children) == 3:
            display = children[1]
            expression = ast.Named(
                location=self._token_loc(display),
                name=self._string_value(display)[0],
                expression=expression,
            )
        return ast.Rule(
            location=self._loc(meta),
            name=str(name_token),
            name_location=self._token_loc(name_token),
            expression=expression,
        )

    # ---- Expressions ----

    def choice(self, meta, children):
        return ast.Choice(location=self._loc(meta), alternatives=list(children))

    def action(self, meta, children):
        expression, code = children
        return ast.Action(location=self._loc(meta), expression=expression, code=self._code(code))

    def sequence(self, meta, children):
        return ast.Sequence(location=self._loc(meta), elements=list(children))

    def labeled(self, meta, children):
        pick = False
        label = None
        label_location = None
        for child in children[:-1]:
            if child.type == 'AT':
                pick = True
            elif child.type == 'IDENT':
                label = str(child)
                label_location = self._token_loc(child)
        if label is not None and label in self.reserved_words:
            raise GrammarSyntaxError(f'Label can\'t be a reserved word "{label}".', label_location)
        return ast.Labeled(
            location=self._loc(meta),
            label=label,
            label_location=label_location,
            pick=pick,
            expression=children[-1],
        )

    def prefixed(self, meta, children):
        operator, expression = children
        node_type = {'DOLLAR': ast.Text, 'AMP': ast.SimpleAnd, 'BANG': ast.SimpleNot}[operator.type]
        return node_type(location=self._loc(meta), expression=expression)

    def suffixed(self, meta, children):
        expression, operator = children
        node_type = {'QUESTION': ast.OptionalExpr, 'STAR': ast.ZeroOrMore, 'PLUS': ast.OneOrMore}[operator.type]
        return node_type(location=self._loc(meta), expression=expression)

    def group(self, meta, children):
        return ast.Group(location=self._loc(meta), expression=children[0])

    def semantic_and(self, meta, children):
        return ast.SemanticAnd(location=self._loc(meta), code=self._code(children[1]))

    def semantic_not(self, meta, children):
        return ast.SemanticNot(location=self._loc(meta), code=self._code(children[1]))

    # ---- Leaves ----

    def rule_ref(self, meta, children):
        return ast.RuleRef(location=self._token_loc(children[0]), name=str(children[0]))

    def literal(self, meta, children):
        value, ignore_case = self._string_value(children[0])
        return ast.Literal(location=self._token_loc(children[0]), value=value, ignore_case=ignore_case)

    def char_class(self, meta, children):
        text = str(children[0])
        ignore_case = text.endswith('i')
        if ignore_case:
            text = text[:-1]
        body = text[1:-1]
        inverted = body.startswith('^')
        if inverted:
            body = body[1:]
        return ast.CharClass(
            location=self._token_loc(children[0]),
            text=body,
            inverted=inverted,
            ignore_case=ignore_case,
        )

    def any_char(self, meta, children):
        return ast.AnyChar(location=self._token_loc(children[0]))

    @staticmethod
    def _string_value(token: Token) -> tuple[str, bool]:
        text = str(token)
        ignore_case = text.endswith('i')
        if ignore_case:
            text = text[:-1]
        return _unescape(text[1:-1]), ignore_case


# ---- Public entry point ----


def parse(
    text: str,
    *,
    grammar_source: str,
    reserved_words: frozenset[str] = RESERVED_WORDS,
) -> ast.Grammar:
    """Parse Peggy grammar *text*; *grammar_source* ends up in every node location."""
    try:
        tree = _lark_parser.parse(_mask_code_blocks(text))
    except UnexpectedInput as exc:
        raise _syntax_error(exc, text, grammar_source) from None

    try:
        return GrammarTransformer(grammar_source, reserved_words, text).transform(tree)
    except VisitError as exc:
        raise exc.orig_exc from None
