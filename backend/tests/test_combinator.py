"""Logic combinator and rule-tree tests."""
import pytest

from builders import course_req, rule
from eligibility.domain.eligibility.combinator import RuleTree, aggregate_tree, apply_operator, combine
from eligibility.domain.eligibility.models import RequirementCheckResult


def _outcome(req_id, satisfied, mandatory=True, reason=None):
    return RequirementCheckResult(
        requirement_id=req_id,
        requirement_type="completed_course",
        is_satisfied=satisfied,
        must_be_completed=mandatory,
        failure_reason=reason or (None if satisfied else f"{req_id} not completed"),
    )


# ------------------------------------------------------------------
# Operators
# ------------------------------------------------------------------
def test_and_ignores_optional_requirements():
    assert apply_operator("AND", [True, False], mandatory=[True, False])
    assert not apply_operator("AND", [False, True], mandatory=[True, False])


def test_or_and_xor():
    assert apply_operator("OR", [False, True])
    assert not apply_operator("OR", [False, False])
    assert apply_operator("XOR", [False, True, False])
    assert not apply_operator("XOR", [True, True])


def test_unknown_operator_raises():
    with pytest.raises(ValueError):
        apply_operator("NAND", [True])


# ------------------------------------------------------------------
# combine
# ------------------------------------------------------------------
def test_and_rule_partially_satisfied():
    r = rule("R1", "CS301", operator="AND")
    result = combine(r, [_outcome("A", True), _outcome("B", False), _outcome("C", True, mandatory=False)])
    assert not result.is_satisfied
    assert result.status == "partially_satisfied"
    assert result.satisfaction_percentage == 50.0
    assert result.failure_reason == "B not completed"


def test_or_rule_satisfied_by_one():
    r = rule("R1", "CS301", operator="OR")
    result = combine(r, [_outcome("A", False), _outcome("B", True)])
    assert result.is_satisfied
    assert result.status == "satisfied"
    assert result.satisfaction_percentage == 100.0
    assert result.failure_reason is None


def test_or_rule_lists_alternatives_when_failing():
    r = rule("R1", "CS301", operator="OR")
    result = combine(r, [_outcome("A", False), _outcome("B", False)])
    assert result.status == "not_satisfied"
    assert result.failure_reason == "None of the following is met: A not completed; B not completed"


def test_xor_with_two_satisfied_fails():
    r = rule("R1", "CS301", operator="XOR")
    result = combine(r, [_outcome("A", True), _outcome("B", True)])
    assert not result.is_satisfied
    assert "exactly one" in result.failure_reason


def test_empty_rule_is_satisfied():
    result = combine(rule("R1", "CS301"), [])
    assert result.is_satisfied
    assert result.satisfaction_percentage == 100.0


# ------------------------------------------------------------------
# Rule tree
# ------------------------------------------------------------------
def test_tree_roots_and_children():
    parent = rule("P", "CS301", operator="OR")
    child_a = rule("A", "CS301", course_req("QA", "CS101"), parent="P")
    child_b = rule("B", "CS301", course_req("QB", "CS102"), parent="P")
    tree = RuleTree.build([parent, child_a, child_b])
    assert tree.roots == ["P"]
    assert tree.nodes["P"].children == ["A", "B"]
    assert tree.cyclic == []


def test_parent_cycle_detected():
    a = rule("A", "CS301", parent="B")
    b = rule("B", "CS301", parent="A")
    tree = RuleTree.build([a, b])
    assert sorted(tree.cyclic) == ["A", "B"]
    assert tree.roots == []


def test_rule_with_missing_parent_is_root():
    tree = RuleTree.build([rule("A", "CS301", parent="GONE")])
    assert tree.roots == ["A"]


def test_parent_operator_applies_over_children():
    parent = rule("P", "CS301", operator="OR")
    child_a = rule("A", "CS301", parent="P")
    child_b = rule("B", "CS301", parent="P")
    tree = RuleTree.build([parent, child_a, child_b])
    results = {
        "P": combine(parent, []),
        "A": combine(child_a, [_outcome("QA", False)]),
        "B": combine(child_b, [_outcome("QB", True)]),
    }
    aggregates = aggregate_tree(tree, results)
    assert aggregates == {"P": True, "A": False, "B": True}


def test_and_parent_fails_when_a_child_fails():
    parent = rule("P", "CS301", operator="AND")
    child = rule("A", "CS301", parent="P")
    tree = RuleTree.build([parent, child])
    results = {
        "P": combine(parent, [_outcome("QP", True)]),
        "A": combine(child, [_outcome("QA", False)]),
    }
    assert aggregate_tree(tree, results)["P"] is False
