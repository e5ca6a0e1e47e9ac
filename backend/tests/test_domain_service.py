"""End-to-end tests of the pure eligibility pipeline."""
from datetime import datetime, timezone

import pytest

from builders import AS_OF, approved_override, course_req, rule, student
from eligibility.domain.eligibility.models import (
    ApplicableRules,
    CircularDependencyResult,
    CorequisiteRequirement,
    CorequisiteRule,
    EnrollmentRestriction,
    MajorRestriction,
    OverrideRuleMapping,
    PrerequisiteWaiver,
)
from eligibility.domain.eligibility.service import EligibilityDomainService, is_course_frozen

KNOWN = {"CS101", "CS102", "CS201", "MATH101", "PHYS201L"}
CS201 = ApplicableRules(prerequisite_rules=[rule("R1", "CS201", course_req("Q1", "CS101", "C"))])


@pytest.fixture
def service():
    return EligibilityDomainService(engine_version="test")


def _validate(service, applicable=CS201, course_id="CS201", record=None, overrides=(), waivers=(), cycle=None):
    return service.validate(
        "S1", course_id, "2024FA", applicable, record or student(),
        list(overrides), list(waivers), cycle, AS_OF, known_courses=KNOWN,
    )


def test_grade_above_minimum_can_enroll(service):
    result = _validate(service, record=student(CS101="B"))
    assert result.can_enroll
    assert result.overall_status == "satisfied"
    assert result.failure_reason is None
    assert result.unmet_requirements == []
    assert result.engine_version == "test"
    assert result.processing_time_ms is not None


def test_missing_prerequisite_is_reported(service):
    result = _validate(service)
    assert not result.can_enroll
    assert result.overall_status == "not_satisfied"
    assert result.unmet_requirements == ["CS101 not completed"]
    assert result.failure_reason == "CS101 not completed"


def test_grade_below_minimum(service):
    result = _validate(service, record=student(CS101="D"))
    assert not result.can_enroll
    assert "minimum grade C required" in result.failure_reason


def test_complete_override_lets_student_enroll(service):
    override = approved_override(mappings=[OverrideRuleMapping(prerequisite_rule_id="R1")])
    result = _validate(service, overrides=[override])
    assert result.can_enroll
    assert result.overall_status == "overridden"
    assert result.applied_override_ids == ["O1"]


def test_pending_override_reports_pending_approval(service):
    result = _validate(service, overrides=[approved_override(status="pending")])
    assert not result.can_enroll
    assert result.overall_status == "pending_approval"


def test_course_without_rules_is_open(service):
    result = _validate(service, applicable=ApplicableRules(), course_id="CS101")
    assert result.can_enroll
    assert result.overall_status == "satisfied"


def test_partially_satisfied(service):
    applicable = ApplicableRules(prerequisite_rules=[
        rule("R1", "CS201", course_req("Q1", "CS101"), course_req("Q2", "MATH101")),
    ])
    result = _validate(service, applicable=applicable, record=student(CS101="A"))
    assert result.overall_status == "partially_satisfied"
    assert result.unmet_requirements == ["MATH101 not completed"]


def test_configuration_error_blocks(service):
    applicable = ApplicableRules(prerequisite_rules=[
        rule("R1", "CS201", course_req("Q1", "CS999")),
    ])
    result = _validate(service, applicable=applicable, record=student(CS999="A"))
    assert not result.can_enroll
    assert result.overall_status == "validation_error"
    assert result.failure_reason == "Eligibility rules for this course could not be evaluated"
    assert result.prerequisite_results[0].status == "error"
    assert result.configuration_issues[0].message == "Requirement Q1: references unknown course 'CS999'"
    # configuration problems are not shown as unmet requirements
    assert result.unmet_requirements == []


def test_child_rules_act_through_parent(service):
    applicable = ApplicableRules(prerequisite_rules=[
        rule("P", "CS201", operator="OR"),
        rule("A", "CS201", course_req("QA", "CS101", rule_id="A"), parent="P"),
        rule("B", "CS201", course_req("QB", "CS102", rule_id="B"), parent="P"),
    ])
    result = _validate(service, applicable=applicable, record=student(CS102="B"))
    assert result.can_enroll
    blocking = {r.rule_id: r.is_blocking for r in result.prerequisite_results}
    assert blocking == {"P": True, "A": False, "B": False}


def _parent_with_child(*own_requirements):
    return ApplicableRules(prerequisite_rules=[
        rule("P", "CS201", *own_requirements),
        rule("A", "CS201", course_req("QA", "CS101", rule_id="A"), parent="P"),
    ])


@pytest.mark.parametrize("own_requirements,grades", [
    ((), {}),
    ((course_req("QP", "CS102", rule_id="P"),), {"CS102": "A"}),
])
def test_override_on_parent_rule_covers_failing_child(service, own_requirements, grades):
    override = approved_override(mappings=[OverrideRuleMapping(prerequisite_rule_id="P")])
    result = _validate(service, applicable=_parent_with_child(*own_requirements),
                       record=student(**grades), overrides=[override])
    assert result.can_enroll
    assert result.overall_status == "overridden"
    assert result.applied_override_ids == ["O1"]
    assert result.unmet_requirements == []


def test_partial_override_on_parent_leaves_children_failing(service):
    override = approved_override(mappings=[
        OverrideRuleMapping(prerequisite_rule_id="P", is_complete=False, partial_conditions=["QP"]),
    ])
    applicable = _parent_with_child(course_req("QP", "CS102", rule_id="P"))
    result = _validate(service, applicable=applicable, overrides=[override])
    assert not result.can_enroll
    parent = result.prerequisite_results[0]
    assert parent.status == "satisfied"
    assert parent.excepted_by == "O1"
    assert result.unmet_requirements == ["CS101 not completed"]


def test_waiver_for_all_prerequisites_covers_hierarchy(service):
    applicable = ApplicableRules(prerequisite_rules=[
        rule("P", "CS201"),
        rule("A", "CS201", course_req("QA", "CS101", rule_id="A"), parent="P"),
        rule("B", "CS201", course_req("QB", "CS102", rule_id="B"), parent="P"),
    ])
    waiver = PrerequisiteWaiver(id="W1", student_id="S1", course_id="CS201", status="approved",
                                scope="all_prerequisites")
    result = _validate(service, applicable=applicable, record=student(CS102="B"), waivers=[waiver])
    assert result.can_enroll
    assert result.overall_status == "waived"
    statuses = {r.rule_id: r.status for r in result.prerequisite_results}
    # passing rules are never rewritten by an exception
    assert statuses == {"P": "waived", "A": "waived", "B": "satisfied"}


def test_override_on_passing_hierarchy_is_not_applied(service):
    override = approved_override(mappings=[OverrideRuleMapping(prerequisite_rule_id="P")])
    result = _validate(service, applicable=_parent_with_child(), record=student(CS101="B"), overrides=[override])
    assert result.overall_status == "satisfied"
    assert result.applied_override_ids == []


def test_circular_parent_chain_is_a_configuration_error(service):
    applicable = ApplicableRules(prerequisite_rules=[
        rule("A", "CS201", parent="B"),
        rule("B", "CS201", parent="A"),
    ])
    result = _validate(service, applicable=applicable)
    assert result.overall_status == "validation_error"
    messages = [i.message for i in result.configuration_issues]
    assert "Rule A: parent rule chain is circular" in messages


def test_unresolved_cycle_freezes_course(service):
    cycle = CircularDependencyResult(
        id="C1", course_id="CS201", detection_date=datetime.now(timezone.utc),
        has_circular_dependency=True, dependency_path=["CS201", "CS101", "CS201"],
        involved_courses=["CS201", "CS101"], severity="minor",
    )
    assert is_course_frozen(cycle)
    result = _validate(service, record=student(CS101="A"), cycle=cycle)
    assert not result.can_enroll
    assert result.blocked_by_circular_dependency
    assert result.unmet_requirements == [
        "Enrollment in CS201 is frozen until a circular prerequisite dependency is resolved"
    ]

    cycle.is_resolved = True
    assert _validate(service, record=student(CS101="A"), cycle=cycle).can_enroll


def test_blocking_corequisite_and_restriction(service):
    applicable = ApplicableRules(
        corequisite_rules=[CorequisiteRule(
            id="CR1", course_id="CS201", rule_name="Lab",
            requirements=[CorequisiteRequirement("CQ1", "CR1", "PHYS201L")],
        )],
        restrictions=[EnrollmentRestriction(
            id="X1", course_id="CS201", restriction_type="major",
            major_restrictions=[MajorRestriction("CS")],
        )],
    )
    result = _validate(service, applicable=applicable)
    assert not result.can_enroll
    assert result.overall_status == "not_satisfied"
    assert result.unmet_requirements == ["PHYS201L must be taken in the same term", "Restricted to CS majors"]


def test_non_blocking_corequisite_becomes_warning(service):
    applicable = ApplicableRules(corequisite_rules=[CorequisiteRule(
        id="CR1", course_id="CS201", rule_name="Lab",
        requirements=[CorequisiteRequirement("CQ1", "CR1", "PHYS201L", failure_action="allow_with_warning")],
    )])
    result = _validate(service, applicable=applicable)
    assert result.can_enroll
    assert result.warnings == ["PHYS201L must be taken in the same term"]


def test_repeated_runs_agree(service):
    first = _validate(service, record=student(CS101="D"))
    second = _validate(service, record=student(CS101="D"))
    assert first.id != second.id
    assert first.prerequisite_results == second.prerequisite_results
    assert first.overall_status == second.overall_status
