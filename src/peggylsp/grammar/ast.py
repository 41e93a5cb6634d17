"""
Grammar tree produced by :func:`peggylsp.grammar.parser.parse`.

Every node carries an explicit ``type`` discriminant (:class:`NodeType`) and a
:class:`Location`.  Lines and columns are 1-based with an exclusive end, the
same convention Lark uses for token positions.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import ClassVar


class NodeType(str, enum.Enum):
    GRAMMAR = 'grammar'
    TOP_LEVEL_INITIALIZER = 'top_level_initializer'
    INITIALIZER = 'initializer'
    RULE = 'rule'
    NAMED = 'named'
    CHOICE = 'choice'
    ACTION = 'action'
    SEQUENCE = 'sequence'
    LABELED = 'labeled'
    TEXT = 'text'
    SIMPLE_AND = 'simple_and'
    SIMPLE_NOT = 'simple_not'
    OPTIONAL = 'optional'
    ZERO_OR_MORE = 'zero_or_more'
    ONE_OR_MORE = 'one_or_more'
    GROUP = 'group'
    SEMANTIC_AND = 'semantic_and'
    SEMANTIC_NOT = 'semantic_not'
    RULE_REF = 'rule_ref'
    LITERAL = 'literal'
    CLASS = 'class'
    ANY = 'any'


# Match-result values assigned by the ``infer_match_result`` pass.
ALWAYS = 1
SOMETIMES = 0
NEVER = -1


@dataclass(frozen=True)
class Position:
    offset: int     # 0-based
    line: int       # 1-based
    column: int     # 1-based


@dataclass(frozen=True)
class Location:
    source: str
    start: Position
    end: Position


@dataclass
class Node:
    type: ClassVar[NodeType]

    location: Location
    match: int = field(default=SOMETIMES, kw_only=True, compare=False)


@dataclass
class Grammar(Node):
    type: ClassVar[NodeType] = NodeType.GRAMMAR

    top_level_initializer: TopLevelInitializer | None
    initializer: Initializer | None
    rules: list[Rule]
    # Filled by the ``index_rules`` compiler pass.
    rule_index: dict[str, Rule] = field(default_factory=dict, kw_only=True, compare=False, repr=False)

    def find_rule(self, name: str) -> Rule | None:
        for rule in self.rules:
            if rule.name == name:
                return rule
        return None


@dataclass
class TopLevelInitializer(Node):
    type: ClassVar[NodeType] = NodeType.TOP_LEVEL_INITIALIZER
    code: str


@dataclass
class Initializer(Node):
    type: ClassVar[NodeType] = NodeType.INITIALIZER
    code: str


@dataclass
class Rule(Node):
    type: ClassVar[NodeType] = NodeType.RULE
    name: str
    name_location: Location
    expression: Expression


@dataclass
class Named(Node):
    """``rule "display name" = …`` wraps the rule's expression."""
    type: ClassVar[NodeType] = NodeType.NAMED
    name: str
    expression: Expression


@dataclass
class Choice(Node):
    type: ClassVar[NodeType] = NodeType.CHOICE
    alternatives: list[Expression]


@dataclass
class Action(Node):
    type: ClassVar[NodeType] = NodeType.ACTION
    expression: Expression
    code: str


@dataclass
class Sequence(Node):
    type: ClassVar[NodeType] = NodeType.SEQUENCE
    elements: list[Expression]


@dataclass
class Labeled(Node):
    type: ClassVar[NodeType] = NodeType.LABELED
    label: str | None
    label_location: Location | None
    pick: bool
    expression: Expression


@dataclass
class Text(Node):
    type: ClassVar[NodeType] = NodeType.TEXT
    expression: Expression


@dataclass
class SimpleAnd(Node):
    type: ClassVar[NodeType] = NodeType.SIMPLE_AND
    expression: Expression


@dataclass
class SimpleNot(Node):
    type: ClassVar[NodeType] = NodeType.SIMPLE_NOT
    expression: Expression


@dataclass
class OptionalExpr(Node):
    type: ClassVar[NodeType] = NodeType.OPTIONAL
    expression: Expression


@dataclass
class ZeroOrMore(Node):
    type: ClassVar[NodeType] = NodeType.ZERO_OR_MORE
    expression: Expression


@dataclass
class OneOrMore(Node):
    type: ClassVar[NodeType] = NodeType.ONE_OR_MORE
    expression: Expression


@dataclass
class Group(Node):
    type: ClassVar[NodeType] = NodeType.GROUP
    expression: Expression


@dataclass
class SemanticAnd(Node):
    type: ClassVar[NodeType] = NodeType.SEMANTIC_AND
    code: str


@dataclass
class SemanticNot(Node):
    type: ClassVar[NodeType] = NodeType.SEMANTIC_NOT
    code: str


@dataclass
class RuleRef(Node):
    type: ClassVar[NodeType] = NodeType.RULE_REF
    name: str


@dataclass
class Literal(Node):
    type: ClassVar[NodeType] = NodeType.LITERAL
    value: str
    ignore_case: bool = False


@dataclass
class CharClass(Node):
    type: ClassVar[NodeType] = NodeType.CLASS
    text: str               # source text between the brackets
    inverted: bool = False
    ignore_case: bool = False


@dataclass
class AnyChar(Node):
    type: ClassVar[NodeType] = NodeType.ANY


Expression = (
    Named | Choice | Action | Sequence | Labeled | Text | SimpleAnd | SimpleNot
    | OptionalExpr | ZeroOrMore | OneOrMore | Group | SemanticAnd | SemanticNot
    | RuleRef | Literal | CharClass | AnyChar
)


def children(node: Node) -> list[Node]:
    """Return the direct child nodes of *node*, in source order."""
    return _CHILDREN[node.type](node)


def _no_children(node: Node) -> list[Node]:
    return []


def _expression_child(node) -> list[Node]:
    return [node.expression]


def _grammar_children(node: Grammar) -> list[Node]:
    out: list[Node] = []
    if node.top_level_initializer is not None:
        out.append(node.top_level_initializer)
    if node.initializer is not None:
        out.append(node.initializer)
    out.extend(node.rules)
    return out


_CHILDREN = {
    NodeType.GRAMMAR: _grammar_children,
    NodeType.TOP_LEVEL_INITIALIZER: _no_children,
    NodeType.INITIALIZER: _no_children,
    NodeType.RULE: _expression_child,
    NodeType.NAMED: _expression_child,
    NodeType.CHOICE: lambda node: list(node.alternatives),
    NodeType.ACTION: _expression_child,
    NodeType.SEQUENCE: lambda node: list(node.elements),
    NodeType.LABELED: _expression_child,
    NodeType.TEXT: _expression_child,
    NodeType.SIMPLE_AND: _expression_child,
    NodeType.SIMPLE_NOT: _expression_child,
    NodeType.OPTIONAL: _expression_child,
    NodeType.ZERO_OR_MORE: _expression_child,
    NodeType.ONE_OR_MORE: _expression_child,
    NodeType.GROUP: _expression_child,
    NodeType.SEMANTIC_AND: _no_children,
    NodeType.SEMANTIC_NOT: _no_children,
    NodeType.RULE_REF: _no_children,
    NodeType.LITERAL: _no_children,
    NodeType.CLASS: _no_children,
    NodeType.ANY: _no_children,
}
