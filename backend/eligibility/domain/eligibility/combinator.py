"""Logic combinator: requirement outcomes → rule outcome → rule-tree outcome."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from eligibility.domain.eligibility.enums import CheckStatus, LogicOperator
from eligibility.domain.eligibility.models import (
    PrerequisiteCheckResult,
    PrerequisiteRule,
    RequirementCheckResult,
)

_PASSING = (CheckStatus.SATISFIED, CheckStatus.OVERRIDDEN, CheckStatus.WAIVED)


def apply_operator(operator: str, outcomes: Sequence[bool], mandatory: Optional[Sequence[bool]] = None) -> bool:
    """Combine boolean outcomes with AND / OR / XOR.

    For AND only outcomes flagged mandatory can fail the combination; an AND
    with no mandatory items passes.
    """
    if mandatory is None:
        mandatory = [True] * len(outcomes)
    if operator == LogicOperator.AND:
        return all(o for o, m in zip(outcomes, mandatory) if m)
    if operator == LogicOperator.OR:
        return not outcomes or any(outcomes)
    if operator == LogicOperator.XOR:
        return not outcomes or sum(1 for o in outcomes if o) == 1
    raise ValueError(f"Unknown logic operator {operator!r}")


def satisfaction_percentage(operator: str, results: Sequence[RequirementCheckResult]) -> float:
    if not results:
        return 100.0
    if operator == LogicOperator.AND:
        counted = [r for r in results if r.must_be_completed]
        if not counted:
            return 100.0
        met = sum(1 for r in counted if r.is_satisfied)
        return round(met * 100.0 / len(counted), 2)
    satisfied = apply_operator(operator, [r.is_satisfied for r in results])
    return 100.0 if satisfied else 0.0


def combine(rule: PrerequisiteRule, requirement_results: List[RequirementCheckResult]) -> PrerequisiteCheckResult:
    """Combine one rule's requirement results according to its LogicOperator.

    Only the rule's own requirements are considered here; child rules are
    folded in by :func:`aggregate_tree`.
    """
    outcomes = [r.is_satisfied for r in requirement_results]
    mandatory = [r.must_be_completed for r in requirement_results]
    satisfied = apply_operator(rule.logic_operator, outcomes, mandatory)
    percentage = satisfaction_percentage(rule.logic_operator, requirement_results)

    if satisfied:
        status = CheckStatus.SATISFIED
        reason = None
    else:
        status = CheckStatus.PARTIALLY_SATISFIED if percentage > 0 else CheckStatus.NOT_SATISFIED
        reason = _failure_reason(rule.logic_operator, requirement_results)

    return PrerequisiteCheckResult(
        rule_id=rule.id,
        rule_name=rule.rule_name,
        logic_operator=rule.logic_operator,
        priority=rule.priority,
        parent_rule_id=rule.parent_rule_id,
        status=status.value,
        is_satisfied=satisfied,
        satisfaction_percentage=percentage,
        failure_reason=reason,
        requirement_results=list(requirement_results),
    )


def _failure_reason(operator: str, results: Sequence[RequirementCheckResult]) -> str:
    unmet = [r.failure_reason for r in results if not r.is_satisfied and r.failure_reason]
    if operator == LogicOperator.AND:
        unmet = [r.failure_reason for r in results if not r.is_satisfied and r.must_be_completed and r.failure_reason]
        return "; ".join(unmet)
    if operator == LogicOperator.XOR and sum(1 for r in results if r.is_satisfied) > 1:
        return "More than one alternative satisfied; exactly one is allowed"
    return "None of the following is met: " + "; ".join(unmet)


# ------------------------------------------------------------------
# Rule hierarchy
# ------------------------------------------------------------------
@dataclass
class RuleNode:
    rule: PrerequisiteRule
    children: List[str] = field(default_factory=list)


@dataclass
class RuleTree:
    """Arena of rule nodes keyed by id; parent links resolved by lookup."""
    nodes: Dict[str, RuleNode] = field(default_factory=dict)
    roots: List[str] = field(default_factory=list)
    cyclic: List[str] = field(default_factory=list)

    @classmethod
    def build(cls, rules: Sequence[PrerequisiteRule]) -> "RuleTree":
        tree = cls(nodes={r.id: RuleNode(rule=r) for r in rules})
        for rule in rules:
            parent = rule.parent_rule_id
            if parent and parent in tree.nodes and parent != rule.id:
                tree.nodes[parent].children.append(rule.id)

        # A rule whose parent chain loops never reaches a root
        for rule in rules:
            seen = set()
            current: Optional[str] = rule.id
            while current is not None and current in tree.nodes and current not in seen:
                seen.add(current)
                parent = tree.nodes[current].rule.parent_rule_id
                current = parent if parent in tree.nodes else None
            if current is not None and current in seen:
                tree.cyclic.append(rule.id)
            elif tree.nodes[rule.id].rule.parent_rule_id not in tree.nodes:
                tree.roots.append(rule.id)
        return tree


def aggregate_tree(tree: RuleTree, results: Dict[str, PrerequisiteCheckResult]) -> Dict[str, bool]:
    """Aggregate outcome per rule id, including each rule's descendants.

    A parent's aggregate applies the parent's operator over its own
    requirement outcomes plus each child's aggregate. Children count as
    mandatory members of an AND parent. Rules caught in a parent cycle
    aggregate to False.
    """
    memo: Dict[str, bool] = {rule_id: False for rule_id in tree.cyclic}

    def visit(rule_id: str) -> bool:
        if rule_id in memo:
            return memo[rule_id]
        node = tree.nodes[rule_id]
        result = results[rule_id]
        if result.status in (CheckStatus.OVERRIDDEN, CheckStatus.WAIVED):
            memo[rule_id] = True
            return True
        if result.status == CheckStatus.ERROR:
            memo[rule_id] = False
            return False
        if not node.children:
            memo[rule_id] = result.is_satisfied
            return result.is_satisfied
        own = result.requirement_results
        outcomes = [r.is_satisfied for r in own] + [visit(c) for c in node.children]
        mandatory = [r.must_be_completed for r in own] + [True] * len(node.children)
        memo[rule_id] = apply_operator(node.rule.logic_operator, outcomes, mandatory)
        return memo[rule_id]

    for rule_id in tree.nodes:
        visit(rule_id)
    return memo


def is_passing(result: PrerequisiteCheckResult) -> bool:
    return result.is_satisfied or result.status in _PASSING
