"""Query and diagnostic handlers used by the server features."""
from .completion import get_completions
from .diagnostics import problems_to_diagnostics
from .navigation import get_definition, get_references, get_rename_edits
from .symbols import get_document_symbols

__all__ = [
    'get_completions',
    'problems_to_diagnostics',
    'get_definition',
    'get_references',
    'get_rename_edits',
    'get_document_symbols',
]
