"""Find the identifier-like word under the cursor."""
from __future__ import annotations

import re
from typing import TYPE_CHECKING

from peggylsp.document import codepoint_column

if TYPE_CHECKING:
    from lsprotocol import types as lsp

    from peggylsp.document import GrammarDocument

# Maximal runs of anything but whitespace and grammar punctuation.
WORD_RE = re.compile(r"""[^\s{}\[\]()`~!@#%^&*+\-=|\\;:'",./<>?]+""")


def word_at_position(doc: GrammarDocument, position: lsp.Position) -> str:
    """Return the word whose range contains ``position.character``, or ``''``.

    Both ends of a word's range count as inside it: a cursor right after the
    last character of a word still selects that word.
    """
    line = doc.line(position.line)
    character = codepoint_column(line, position.character)
    for m in WORD_RE.finditer(line):
        if m.start() <= character <= m.end():
            return m.group(0)
    return ''
