"""
Pass-based grammar compiler.

Passes are plain functions ``pass_(grammar, options, session)`` grouped into
stages.  :func:`compile_grammar` runs the stages in order and raises
:class:`~peggylsp.grammar.errors.GrammarError` at the end of the first stage
that reported an error.  Only the ``"session"`` output is supported: the
server needs the problems and the (annotated) tree, never generated code.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any, NamedTuple

from peggylsp.grammar.ast import Grammar, Location
from peggylsp.grammar.errors import GrammarError

logger = logging.getLogger(__name__)

STAGE_ORDER = ('prepare', 'check', 'transform', 'semantic', 'generate')


class DiagnosticNote(NamedTuple):
    message: str
    location: Location


class Problem(NamedTuple):
    severity: str
    message: str
    location: Location | None = None
    diagnostics: tuple[DiagnosticNote, ...] = ()


class Session:
    """Collects the problems reported by compiler passes."""

    def __init__(self) -> None:
        self.problems: list[Problem] = []
        self.errors = 0
        self._first_error: Problem | None = None

    def _report(self, severity, message, location, notes) -> None:
        problem = Problem(severity, message, location, tuple(notes or ()))
        self.problems.append(problem)
        if severity == 'error':
            self.errors += 1
            if self._first_error is None:
                self._first_error = problem

    def error(self, message: str, location: Location | None = None, notes=None) -> None:
        self._report('error', message, location, notes)

    def warning(self, message: str, location: Location | None = None, notes=None) -> None:
        self._report('warning', message, location, notes)

    def info(self, message: str, location: Location | None = None, notes=None) -> None:
        self._report('info', message, location, notes)

    def check_errors(self) -> None:
        if self._first_error is not None:
            raise GrammarError(self._first_error.message, list(self.problems))


Pass = Callable[[Grammar, Mapping[str, Any], Session], None]


def compile_grammar(
    grammar: Grammar,
    passes: Mapping[str, Sequence[Pass]],
    *,
    grammar_source: str,
    output: str = 'session',
) -> Session:
    """Run *passes* over *grammar* and return the problem session."""
    if output != 'session':
        raise ValueError(f'Unsupported output "{output}"; only "session" is available')

    options = {'grammar_source': grammar_source, 'output': output}
    session = Session()
    for stage in STAGE_ORDER:
        for pass_ in passes.get(stage, ()):
            logger.debug('compile_grammar: %s pass %s', stage, pass_.__name__)
            pass_(grammar, options, session)
        session.check_errors()
    return session
