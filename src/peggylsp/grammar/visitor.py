"""
Table-driven traversal of the grammar tree.

:func:`build` takes a mapping from :class:`~peggylsp.grammar.ast.NodeType` to
handler and returns a ``visit`` function.  A handler is called as
``handler(node, visit)`` and decides itself whether (and when) to descend,
by calling ``visit`` on the children it cares about.  Node types without a
handler fall back to visiting every child in source order.
"""
from __future__ import annotations

from collections.abc import Callable, Mapping

from peggylsp.grammar.ast import Node, NodeType, children

Visit = Callable[[Node], None]
Handler = Callable[[Node, Visit], None]


def build(handlers: Mapping[NodeType, Handler]) -> Visit:
    table = dict(handlers)

    def visit(node: Node) -> None:
        handler = table.get(node.type)
        if handler is None:
            for child in children(node):
                visit(child)
        else:
            handler(node, visit)

    return visit


def walk(node: Node):
    """Yield *node* and all of its descendants, depth-first, pre-order."""
    yield node
    for child in children(node):
        yield from walk(child)
