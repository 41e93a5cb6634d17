"""Peggy grammar toolchain: parser, tree model and compiler passes."""
from .ast import Grammar, Location, NodeType, Position, Rule
from .compiler import DiagnosticNote, Problem, Session, compile_grammar
from .errors import GrammarError, GrammarSyntaxError, PeggyError
from .parser import RESERVED_WORDS, parse
from .passes import STAGES

__all__ = [
    'Grammar', 'Location', 'NodeType', 'Position', 'Rule',
    'DiagnosticNote', 'Problem', 'Session', 'compile_grammar',
    'GrammarError', 'GrammarSyntaxError', 'PeggyError',
    'RESERVED_WORDS', 'parse', 'STAGES',
]
