"""Application service tests over the sqlite repositories."""
from datetime import date

import pytest

from builders import AS_OF, course_req, rule, steps, student
from eligibility import container
from eligibility.domain.common.result import CONFLICT, NOT_FOUND
from eligibility.domain.eligibility.models import Course, PrerequisiteOverride, PrerequisiteWaiver


@pytest.fixture
def rules_service(db):
    service = container.get_rule_app_service()
    for course_id in ("CS101", "CS201", "CS301"):
        assert service.save_course(Course(id=course_id, title=course_id)).is_success
    return service


# ------------------------------------------------------------------
# Rule authoring
# ------------------------------------------------------------------
def test_rule_for_unknown_course_is_not_found(rules_service):
    result = rules_service.save_prerequisite_rule(rule("R1", "CS999"))
    assert result.code == NOT_FOUND


def test_invalid_rule_reports_every_problem(rules_service):
    bad = rule("R1", "CS201", course_req("Q1", "CS101", "Z"), course_req("Q2", "NOPE"), operator="NAND")
    result = rules_service.save_prerequisite_rule(bad)
    assert not result.is_success
    assert result.code is None
    assert len(result.errors) == 3
    assert container.get_rule_repo().get_prerequisite_rule("R1") is None


def test_requirement_closing_a_cycle_is_rejected(rules_service):
    assert rules_service.save_prerequisite_rule(rule("R1", "CS201", course_req("Q1", "CS101"))).is_success
    assert rules_service.save_prerequisite_rule(rule("R2", "CS301", course_req("Q2", "CS201", rule_id="R2"))).is_success

    closing = rules_service.save_prerequisite_rule(rule("R3", "CS101", course_req("Q3", "CS301", rule_id="R3")))
    assert closing.code == CONFLICT
    assert "circular" in closing.error

    assert rules_service.save_prerequisite_rule(rule("R3", "CS101")).is_success
    added = rules_service.add_requirement("R3", course_req("Q3", "CS301"))
    assert added.code == CONFLICT
    assert container.get_rule_repo().get_prerequisite_rule("R3").requirements == []


def test_add_requirement(rules_service):
    rules_service.save_prerequisite_rule(rule("R1", "CS301"))
    result = rules_service.add_requirement("R1", course_req("Q1", "CS201", rule_id="ignored"))
    assert result.is_success
    assert result.value.rule_id == "R1"

    duplicate = rules_service.add_requirement("R1", course_req("Q1", "CS101"))
    assert duplicate.error == "Requirement 'Q1' already exists on rule 'R1'."
    assert rules_service.add_requirement("R9", course_req("Q5", "CS101")).code == NOT_FOUND


# ------------------------------------------------------------------
# Circular dependencies
# ------------------------------------------------------------------
def _seed_cycle():
    repo = container.get_rule_repo()
    repo.save_prerequisite_rule(rule("R1", "CS201", course_req("Q1", "CS101")))
    repo.save_prerequisite_rule(rule("R2", "CS101", course_req("Q2", "CS201", rule_id="R2")))


def test_detect_and_resolve(rules_service):
    _seed_cycle()
    detected = rules_service.detect_for_course("CS201").value
    assert detected.has_circular_dependency
    assert set(detected.involved_courses) == {"CS101", "CS201"}

    blocked = rules_service.resolve(detected.id)
    assert blocked.code == CONFLICT

    container.get_rule_repo().save_prerequisite_rule(rule("R2", "CS101"))
    resolved = rules_service.resolve(detected.id)
    assert resolved.is_success
    assert resolved.value.resolution_date is not None
    assert container.get_circular_dependency_repo().get_by_id(detected.id).is_resolved

    again = rules_service.resolve(detected.id)
    assert again.error == f"Result '{detected.id}' is already resolved."


def test_resolve_unknown_and_clean_results(rules_service):
    assert rules_service.resolve("missing").code == NOT_FOUND
    clean = rules_service.detect_for_course("CS301").value
    assert not clean.has_circular_dependency
    assert not rules_service.resolve(clean.id).is_success


def test_scan_all_courses(rules_service):
    _seed_cycle()
    found = rules_service.scan_all_courses()
    assert [r.course_id for r in found] == ["CS101", "CS201"]
    assert all(r.has_circular_dependency for r in found)
    assert len(container.get_circular_dependency_repo().list_unresolved()) == 2


# ------------------------------------------------------------------
# Validation
# ------------------------------------------------------------------
def test_validate_persists_and_freezes_on_cycle(rules_service):
    validations = container.get_validation_app_service()
    rules_service.save_prerequisite_rule(rule("R1", "CS201", course_req("Q1", "CS101", "C")))
    validations.save_student_record(student(CS101="B"))

    result = validations.validate("S1", "CS201", "2024FA", as_of=AS_OF)
    assert result.is_success
    assert result.value.can_enroll
    assert validations.get_current("S1", "CS201", "2024FA").id == result.value.id

    _seed_cycle()
    rules_service.detect_for_course("CS201")
    frozen = validations.validate("S1", "CS201", "2024FA", as_of=AS_OF).value
    assert frozen.blocked_by_circular_dependency
    assert not frozen.can_enroll
    assert len(validations.get_history("S1", "CS201", "2024FA")) == 2


def test_fixed_graph_stays_frozen_until_resolved(rules_service):
    validations = container.get_validation_app_service()
    validations.save_student_record(student(CS101="B"))
    _seed_cycle()
    detected = rules_service.detect_for_course("CS201").value

    container.get_rule_repo().save_prerequisite_rule(rule("R2", "CS101"))
    assert not rules_service.detect_for_course("CS201").value.has_circular_dependency
    still_frozen = validations.validate("S1", "CS201", "2024FA", as_of=AS_OF).value
    assert still_frozen.blocked_by_circular_dependency
    assert not still_frozen.can_enroll

    assert rules_service.resolve(detected.id).is_success
    after = validations.validate("S1", "CS201", "2024FA", as_of=AS_OF).value
    assert not after.blocked_by_circular_dependency
    assert after.can_enroll


def test_validate_unknown_course(db):
    result = container.get_validation_app_service().validate("S1", "CS999", "2024FA")
    assert result.code == NOT_FOUND


def test_student_without_record(rules_service):
    rules_service.save_prerequisite_rule(rule("R1", "CS201", course_req("Q1", "CS101")))
    result = container.get_validation_app_service().validate("S404", "CS201", "2024FA", as_of=AS_OF).value
    assert result.unmet_requirements == ["CS101 not completed"]


# ------------------------------------------------------------------
# Overrides
# ------------------------------------------------------------------
def test_override_workflow_unlocks_enrollment(rules_service):
    overrides = container.get_override_app_service()
    validations = container.get_validation_app_service()
    rules_service.save_prerequisite_rule(rule("R1", "CS201", course_req("Q1", "CS101")))

    submitted = overrides.submit_override(PrerequisiteOverride(
        id="O1", student_id="S1", course_id="CS201", reason="Industry experience",
        requested_by="advisor-1", requested_date=date(2024, 8, 1),
        approval_steps=list(reversed(steps("Advisor", "Chair"))),
    ))
    assert [s.step_number for s in submitted.value.approval_steps] == [1, 2]
    assert validations.validate("S1", "CS201", "2024FA", as_of=AS_OF).value.overall_status == "pending_approval"

    assert overrides.decide_step("O1", 1, "approved", "advisor-1").is_success
    assert overrides.decide_step("O1", 2, "approved", "chair-1").value.status == "approved"

    result = validations.validate("S1", "CS201", "2024FA", as_of=AS_OF).value
    assert result.can_enroll
    assert result.applied_override_ids == ["O1"]


def test_override_intake_checks(db):
    overrides = container.get_override_app_service()
    bad_scope = PrerequisiteOverride(id="O1", student_id="S1", course_id="CS201", scope="galaxy")
    assert not overrides.submit_override(bad_scope).is_success

    duplicate_steps = PrerequisiteOverride(id="O2", student_id="S1", course_id="CS201",
                                           approval_steps=steps("A") + steps("B"))
    assert overrides.submit_override(duplicate_steps).error == "Approval step numbers must be unique."
    assert overrides.decide_step("nope", 1, "approved", "x").code == NOT_FOUND


def test_override_and_waiver_types_checked(db):
    overrides = container.get_override_app_service()
    bad_type = PrerequisiteOverride(id="O1", student_id="S1", course_id="CS201", override_type="favour")
    assert overrides.submit_override(bad_type).error == "'favour' is not a valid override type."

    bad_authority = PrerequisiteOverride(id="O2", student_id="S1", course_id="CS201", approval_steps=steps("A"))
    bad_authority.approval_steps[0].required_authority = "janitor"
    assert not overrides.submit_override(bad_authority).is_success

    waiver = PrerequisiteWaiver(id="W1", student_id="S1", course_id="CS201", waiver_type="vibes")
    assert overrides.submit_waiver(waiver).error == "'vibes' is not a valid waiver type."
