"""Structured errors raised by the grammar parser and compiler."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from peggylsp.grammar.ast import Location
    from peggylsp.grammar.compiler import Problem


class PeggyError(Exception):
    """Base class for errors raised by :mod:`peggylsp.grammar`."""


class GrammarSyntaxError(PeggyError):
    """The grammar text could not be parsed."""

    def __init__(self, message: str, location: Location):
        super().__init__(message)
        self.message = message
        self.location = location


class GrammarError(PeggyError):
    """One or more compiler passes reported errors.

    *problems* holds every problem reported by the session up to and including
    the failing stage, warnings and infos included.
    """

    def __init__(self, message: str, problems: list[Problem]):
        super().__init__(message)
        self.message = message
        self.problems = problems
