"""
Compiler passes, grouped into stages in :data:`STAGES`.

check
    Static checks that report errors and warnings.
transform
    Tree rewrites and annotations.  ``infer_match_result`` must stay last:
    the semantic stage relies on its ``match`` annotations.
semantic
    Checks that need the inferred match results.
"""
from __future__ import annotations

from peggylsp.grammar import visitor
from peggylsp.grammar.ast import (
    ALWAYS,
    NEVER,
    SOMETIMES,
    Grammar,
    Node,
    NodeType,
    children,
)
from peggylsp.grammar.compiler import DiagnosticNote

# ---------------------------------------------------------------------------
# prepare
# ---------------------------------------------------------------------------


def index_rules(grammar: Grammar, options, session) -> None:
    """Fill ``grammar.rule_index``; the first definition of a name wins."""
    grammar.rule_index = {}
    for rule in grammar.rules:
        grammar.rule_index.setdefault(rule.name, rule)


def _rule_index(grammar: Grammar) -> dict:
    if not grammar.rule_index and grammar.rules:
        index_rules(grammar, {}, None)
    return grammar.rule_index


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


def report_undefined_rules(grammar: Grammar, options, session) -> None:
    index = _rule_index(grammar)

    def rule_ref(node, visit):
        if node.name not in index:
            session.error(f'Rule "{node.name}" is not defined', node.location)

    visitor.build({NodeType.RULE_REF: rule_ref})(grammar)


def report_duplicate_rules(grammar: Grammar, options, session) -> None:
    seen = {}
    for rule in grammar.rules:
        first = seen.get(rule.name)
        if first is None:
            seen[rule.name] = rule
            continue
        session.error(
            f'Rule "{rule.name}" is already defined',
            rule.name_location,
            [DiagnosticNote('Original rule location', first.name_location)],
        )


def report_unused_rules(grammar: Grammar, options, session) -> None:
    referenced = {
        node.name for node in visitor.walk(grammar) if node.type is NodeType.RULE_REF
    }
    # The first rule is the default start rule.
    for rule in grammar.rules[1:]:
        if rule.name not in referenced:
            session.warning(f'Rule "{rule.name}" is not referenced', rule.name_location)


def report_duplicate_labels(grammar: Grammar, options, session) -> None:
    def check(node: Node, env: dict) -> None:
        if node.type is NodeType.SEQUENCE:
            # Labels of earlier elements are visible to later ones.
            scope = dict(env)
            for element in node.elements:
                check(element, scope)
        elif node.type is NodeType.LABELED:
            label = node.label
            if label is not None and label in env:
                session.error(
                    f'Label "{label}" is already defined',
                    node.label_location,
                    [DiagnosticNote('Original label location', env[label])],
                )
            check(node.expression, dict(env))
            if label is not None:
                env[label] = node.label_location
        else:
            for child in children(node):
                check(child, dict(env))

    for rule in grammar.rules:
        check(rule.expression, {})


def always_consumes_on_success(node: Node, consumes: dict) -> bool:
    """True if *node* consumes at least one character whenever it matches.

    *consumes* maps rule names to the same answer for their expressions; see
    :func:`consuming_rules`.
    """
    t = node.type
    if t in (NodeType.RULE, NodeType.NAMED, NodeType.ACTION, NodeType.LABELED,
             NodeType.TEXT, NodeType.GROUP, NodeType.ONE_OR_MORE):
        return always_consumes_on_success(node.expression, consumes)
    if t is NodeType.CHOICE:
        return all(always_consumes_on_success(a, consumes) for a in node.alternatives)
    if t is NodeType.SEQUENCE:
        return any(always_consumes_on_success(e, consumes) for e in node.elements)
    if t in (NodeType.SIMPLE_AND, NodeType.SIMPLE_NOT, NodeType.OPTIONAL,
             NodeType.ZERO_OR_MORE, NodeType.SEMANTIC_AND, NodeType.SEMANTIC_NOT):
        return False
    if t is NodeType.RULE_REF:
        return consumes.get(node.name, False)
    if t is NodeType.LITERAL:
        return node.value != ''
    if t in (NodeType.CLASS, NodeType.ANY):
        return True
    raise AssertionError(f'unexpected node type {t}')


def consuming_rules(grammar: Grammar) -> dict[str, bool]:
    """Map each rule name to whether the rule always consumes on success.

    Starts from False everywhere and re-evaluates the rules until nothing
    changes; a rule only counts as consuming once that holds without assuming
    it for itself.
    """
    index = _rule_index(grammar)
    consumes = {name: False for name in index}
    for _ in range(len(index) + 1):
        changed = False
        for name, rule in index.items():
            if not consumes[name] and always_consumes_on_success(rule.expression, consumes):
                consumes[name] = True
                changed = True
        if not changed:
            break
    return consumes


def report_infinite_recursion(grammar: Grammar, options, session) -> None:
    index = _rule_index(grammar)
    consumes = consuming_rules(grammar)
    reported = set()
    # Rules from which no left-recursive cycle can be reached.
    clean = set()
    stack = []
    found = [0]

    def sequence(node, visit):
        for element in node.elements:
            visit(element)
            if always_consumes_on_success(element, consumes):
                break

    def rule_ref(node, visit):
        if node.name in stack:
            found[0] += 1
            if node.location not in reported:
                reported.add(node.location)
                path = ' -> '.join(stack + [node.name])
                session.error(
                    f'Possible infinite loop when parsing (left recursion: {path})',
                    node.location,
                )
            return
        if node.name in clean or node.name not in index:
            return
        enter(index[node.name])

    check = visitor.build({
        NodeType.SEQUENCE: sequence,
        NodeType.RULE_REF: rule_ref,
    })

    def enter(rule):
        before = found[0]
        stack.append(rule.name)
        check(rule.expression)
        stack.pop()
        if found[0] == before and index.get(rule.name) is rule:
            clean.add(rule.name)

    for root in grammar.rules:
        # Duplicate definitions are checked too; only the indexed one is memoized.
        if root.name not in clean or index.get(root.name) is not root:
            enter(root)


def report_infinite_repetition(grammar: Grammar, options, session) -> None:
    consumes = consuming_rules(grammar)

    def repeated(node, visit):
        if not always_consumes_on_success(node.expression, consumes):
            session.error(
                'Possible infinite loop when parsing '
                '(repetition used with an expression that may not consume any input)',
                node.location,
            )
        visit(node.expression)

    visitor.build({
        NodeType.ZERO_OR_MORE: repeated,
        NodeType.ONE_OR_MORE: repeated,
    })(grammar)


def report_incorrect_plucking(grammar: Grammar, options, session) -> None:
    def action(node, visit):
        expression = node.expression
        elements = expression.elements if expression.type is NodeType.SEQUENCE else [expression]
        for element in elements:
            if element.type is NodeType.LABELED and element.pick:
                session.error(
                    '"@" cannot be used with an action block',
                    element.location,
                    [DiagnosticNote('Action block location', node.location)],
                )
        visit(expression)

    def labeled(node, visit):
        if node.pick and node.expression.type in (NodeType.SEMANTIC_AND, NodeType.SEMANTIC_NOT):
            session.error('"@" cannot be used on a semantic predicate', node.location)
        visit(node.expression)

    visitor.build({
        NodeType.ACTION: action,
        NodeType.LABELED: labeled,
    })(grammar)


# ---------------------------------------------------------------------------
# transform
# ---------------------------------------------------------------------------


def remove_proxy_rules(grammar: Grammar, options, session) -> None:
    """Replace references to ``a = b`` style rules by ``b`` and drop ``a``.

    The start rule is kept even when it is a proxy.
    """
    proxies = {
        rule.name: rule.expression.name
        for rule in grammar.rules[1:]
        if rule.expression.type is NodeType.RULE_REF
    }
    if not proxies:
        return

    def target(name: str) -> str:
        seen = set()
        while name in proxies and name not in seen:
            seen.add(name)
            name = proxies[name]
        return name

    def rule_ref(node, visit):
        node.name = target(node.name)

    visitor.build({NodeType.RULE_REF: rule_ref})(grammar)
    grammar.rules = [rule for rule in grammar.rules if rule.name not in proxies]
    index_rules(grammar, options, session)


def _infer_sequence(node, infer) -> int:
    results = [infer(e) for e in node.elements]
    if NEVER in results:
        return NEVER
    if all(r == ALWAYS for r in results):
        return ALWAYS
    return SOMETIMES


def _infer_choice(node, infer) -> int:
    results = [infer(a) for a in node.alternatives]
    if ALWAYS in results:
        return ALWAYS
    if all(r == NEVER for r in results):
        return NEVER
    return SOMETIMES


def _infer_inner(node, infer) -> int:
    return infer(node.expression)


def _infer_always(node, infer) -> int:
    infer(node.expression)
    return ALWAYS


def _infer_not(node, infer) -> int:
    return -infer(node.expression)


def _infer_class(node, infer) -> int:
    return NEVER if node.text == '' and not node.inverted else SOMETIMES


# RULE_REF is resolved against the per-run rule results in infer_match_result.
_MATCH_RULES = {
    NodeType.RULE: _infer_inner,
    NodeType.NAMED: _infer_inner,
    NodeType.CHOICE: _infer_choice,
    NodeType.ACTION: _infer_inner,
    NodeType.SEQUENCE: _infer_sequence,
    NodeType.LABELED: _infer_inner,
    NodeType.TEXT: _infer_inner,
    NodeType.SIMPLE_AND: _infer_inner,
    NodeType.SIMPLE_NOT: _infer_not,
    NodeType.OPTIONAL: _infer_always,
    NodeType.ZERO_OR_MORE: _infer_always,
    NodeType.ONE_OR_MORE: _infer_inner,
    NodeType.GROUP: _infer_inner,
    NodeType.SEMANTIC_AND: lambda node, infer: SOMETIMES,
    NodeType.SEMANTIC_NOT: lambda node, infer: SOMETIMES,
    NodeType.LITERAL: lambda node, infer: ALWAYS if node.value == '' else SOMETIMES,
    NodeType.CLASS: _infer_class,
    NodeType.ANY: lambda node, infer: SOMETIMES,
}


def infer_match_result(grammar: Grammar, options, session) -> None:
    """Annotate every node with ``match``: ALWAYS, SOMETIMES or NEVER.

    Rule results feed the references to them, so rules are re-inferred until
    nothing changes.
    """
    rule_matches: dict[str, int] = {}

    def infer(node: Node) -> int:
        if node.type is NodeType.RULE_REF:
            result = rule_matches.get(node.name, SOMETIMES)
        else:
            result = _MATCH_RULES[node.type](node, infer)
        node.match = result
        return result

    for _ in range(len(grammar.rules) + 1):
        changed = False
        for rule in grammar.rules:
            result = infer(rule)
            if rule_matches.get(rule.name) != result:
                rule_matches[rule.name] = result
                changed = True
        if not changed:
            break


# ---------------------------------------------------------------------------
# semantic
# ---------------------------------------------------------------------------


def report_unreachable_alternatives(grammar: Grammar, options, session) -> None:
    def choice(node, visit):
        for i, alternative in enumerate(node.alternatives[:-1]):
            if alternative.match == ALWAYS:
                for unreachable in node.alternatives[i + 1:]:
                    session.warning(
                        'Alternative is never tried: a previous alternative always matches',
                        unreachable.location,
                        [DiagnosticNote('Always-matching alternative', alternative.location)],
                    )
                break
        for alternative in node.alternatives:
            visit(alternative)

    visitor.build({NodeType.CHOICE: choice})(grammar)


def report_start_rule(grammar: Grammar, options, session) -> None:
    if grammar.rules:
        session.info(f'Start rule is "{grammar.rules[0].name}"')


STAGES = {
    'prepare': [index_rules],
    'check': [
        report_undefined_rules,
        report_duplicate_rules,
        report_unused_rules,
        report_duplicate_labels,
        report_infinite_recursion,
        report_infinite_repetition,
        report_incorrect_plucking,
    ],
    'transform': [remove_proxy_rules, infer_match_result],
    'semantic': [report_unreachable_alternatives, report_start_rule],
}
