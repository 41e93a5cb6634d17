"""
Validation pipeline: compile a grammar document, publish its diagnostics and
store the analysis result in the slot cache.

Every run ends with exactly one of two values in the document's slot: the
parsed :class:`~peggylsp.grammar.ast.Grammar`, or :data:`INVALID` when the
grammar could not be parsed or compiled.
"""
from __future__ import annotations

import logging
import traceback
from collections.abc import Callable

from lsprotocol import types as lsp

from peggylsp.cache import SlotCache
from peggylsp.document import split_lines
from peggylsp.grammar import (
    RESERVED_WORDS,
    STAGES,
    GrammarError,
    GrammarSyntaxError,
    Problem,
    compile_grammar,
    parse,
)
from peggylsp.handlers.diagnostics import SOURCE, problems_to_diagnostics
from peggylsp.settings import PeggySettings

logger = logging.getLogger(__name__)


class _Invalid:
    __slots__ = ()

    def __repr__(self) -> str:
        return 'INVALID'

    def __bool__(self) -> bool:
        return False


#: Analysis result stored for a document that failed to parse or compile.
INVALID = _Invalid()

# Code generation is never needed, and of the transform passes only the match
# result inference is kept: the others rewrite the tree the queries run on.
PASSES = {
    'prepare': STAGES['prepare'],
    'check': STAGES['check'],
    'transform': STAGES['transform'][-1:],
    'semantic': STAGES['semantic'],
}

Publish = Callable[[str, list[lsp.Diagnostic]], None]


class Validator:
    """Runs the pipeline for one document at a time.

    *publish* sends ``(uri, diagnostics)`` to the client; *console* echoes
    unlocated problems to the client log when ``console_info`` is on.
    """

    def __init__(
        self,
        cache: SlotCache,
        publish: Publish,
        settings: PeggySettings | None = None,
        console: Callable[[str], None] | None = None,
    ):
        self.cache = cache
        self.publish = publish
        self.settings = settings or PeggySettings()
        self.console = console

    def _diagnostics(self, problems: list[Problem], lines: list[str]) -> list[lsp.Diagnostic]:
        return problems_to_diagnostics(problems, self.settings, self.console, lines)

    def validate(self, uri: str, source: str) -> list[lsp.Diagnostic]:
        # A new generation: anything still waiting on the old text is dropped.
        self.cache.delete(uri)
        lines = split_lines(source)

        diagnostics: list[lsp.Diagnostic] = []
        try:
            grammar = parse(source, grammar_source=uri, reserved_words=RESERVED_WORDS)
            session = compile_grammar(grammar, PASSES, grammar_source=uri, output='session')
            diagnostics.extend(self._diagnostics(session.problems, lines))
            self.cache.set(uri, grammar)
        except GrammarSyntaxError as e:
            diagnostics.extend(self._diagnostics([Problem('error', e.message, e.location)], lines))
            self.cache.set(uri, INVALID)
        except GrammarError as e:
            diagnostics.extend(self._diagnostics(e.problems, lines))
            self.cache.set(uri, INVALID)
        except Exception:
            detail = traceback.format_exc()
            logger.error('UNEXPECTED ERROR validating %s:\n%s', uri, detail)
            diagnostics.append(lsp.Diagnostic(
                range=lsp.Range(
                    start=lsp.Position(line=0, character=0),
                    end=lsp.Position(line=0, character=0),
                ),
                message=detail,
                severity=lsp.DiagnosticSeverity.Error,
                source=SOURCE,
                related_information=[],
            ))
            self.cache.set(uri, INVALID)

        logger.debug('validate: %s -> %d diagnostics', uri, len(diagnostics))
        self.publish(uri, diagnostics)
        return diagnostics
