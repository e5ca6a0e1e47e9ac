"""Requirement evaluator and grade scale tests."""
from datetime import date

import pytest

from builders import AS_OF, course_req, student
from eligibility.domain.eligibility import grades
from eligibility.domain.eligibility.evaluator import RequirementEvaluator, months_between
from eligibility.domain.eligibility.models import (
    ClassStandingParams,
    CompletedCourse,
    CreditHoursParams,
    ExamEquivalency,
    ExamScore,
    ExamScoreParams,
    GpaParams,
    PermissionGrant,
    PermissionParams,
    PrerequisiteRequirement,
    StudentRecord,
    TransferCredit,
)


@pytest.fixture
def evaluator():
    return RequirementEvaluator()


def _req(requirement_type, params, req_id="Q1"):
    return PrerequisiteRequirement(id=req_id, rule_id="R1", requirement_type=requirement_type, params=params)


# ------------------------------------------------------------------
# Grade scale
# ------------------------------------------------------------------
@pytest.mark.parametrize("grade,minimum,expected", [
    ("B", "C", True),
    ("C", "C", True),
    ("C-", "C", False),
    ("A+", "A", True),
    ("F", None, False),
    ("D-", None, True),
    ("P", None, True),
    ("P", "C", False),
    ("W", None, False),
    ("b+", "B", True),
])
def test_meets_minimum_grade(grade, minimum, expected):
    assert grades.meets_minimum_grade(grade, minimum) is expected


def test_best_grade_prefers_highest_attempt():
    assert grades.best_grade(["D", "B+", "W"]) == "B+"


def test_standing_thresholds():
    assert grades.standing_for_credit_hours(29) == "freshman"
    assert grades.standing_for_credit_hours(30) == "sophomore"
    assert grades.standing_for_credit_hours(60) == "junior"
    assert grades.standing_for_credit_hours(90) == "senior"


def test_declared_graduate_standing_wins():
    assert grades.effective_standing(10, "graduate") == "graduate"
    assert grades.effective_standing(10, "senior") == "freshman"


def test_months_between():
    assert months_between(date(2023, 9, 15), date(2024, 9, 1)) == 11
    assert months_between(date(2023, 9, 1), date(2024, 9, 1)) == 12


# ------------------------------------------------------------------
# completed_course
# ------------------------------------------------------------------
def test_completed_course_with_sufficient_grade(evaluator):
    result = evaluator.evaluate(course_req("Q1", "CS101", "C"), student(CS101="B"), AS_OF)
    assert result.is_satisfied
    assert result.actual_value == "B"
    assert result.required_value == "C"


def test_completed_course_missing(evaluator):
    result = evaluator.evaluate(course_req("Q1", "CS101", "C"), student(), AS_OF)
    assert not result.is_satisfied
    assert result.failure_reason == "CS101 not completed"


def test_completed_course_grade_too_low(evaluator):
    result = evaluator.evaluate(course_req("Q1", "CS101", "C"), student(CS101="D"), AS_OF)
    assert not result.is_satisfied
    assert result.actual_value == "D"
    assert "minimum grade C required" in result.failure_reason


def test_best_of_repeated_attempts_counts(evaluator):
    record = StudentRecord(
        student_id="S1",
        completed_courses=[CompletedCourse("CS101", "F"), CompletedCourse("CS101", "B-")],
    )
    result = evaluator.evaluate(course_req("Q1", "CS101", "C"), record, AS_OF)
    assert result.is_satisfied
    assert result.actual_value == "B-"


def test_transfer_credit_checked_before_courses(evaluator):
    record = StudentRecord(student_id="S1", transfer_credits=[TransferCredit("CS101", grade="B")])
    req = course_req("Q1", "CS101", "C", alternatives=["transfer_credit"])
    result = evaluator.evaluate(req, record, AS_OF)
    assert result.is_satisfied
    assert result.satisfaction_method == "transfer_credit"


def test_transfer_credit_ignored_when_not_an_accepted_method(evaluator):
    record = StudentRecord(student_id="S1", transfer_credits=[TransferCredit("CS101", grade="B")])
    result = evaluator.evaluate(course_req("Q1", "CS101", "C"), record, AS_OF)
    assert not result.is_satisfied


def test_test_equivalency(evaluator):
    record = StudentRecord(student_id="S1", exam_equivalencies=[ExamEquivalency("CS101", "AP CS A")])
    req = course_req("Q1", "CS101", "C", alternatives=["test_equivalency"])
    result = evaluator.evaluate(req, record, AS_OF)
    assert result.is_satisfied
    assert result.actual_value == "AP CS A"


# ------------------------------------------------------------------
# credit_hours / class_standing / gpa
# ------------------------------------------------------------------
def test_credit_hours_total(evaluator):
    record = StudentRecord(student_id="S1", total_credit_hours=45)
    result = evaluator.evaluate(_req("credit_hours", CreditHoursParams(60)), record, AS_OF)
    assert not result.is_satisfied
    assert result.actual_value == "45"
    assert result.failure_reason == "45 credit hours earned; 60 required"


def test_credit_hours_by_subject(evaluator):
    record = StudentRecord(student_id="S1", completed_courses=[
        CompletedCourse("MATH101", "A", credit_hours=4, subject_area="MATH"),
        CompletedCourse("MATH102", "F", credit_hours=4, subject_area="MATH"),
        CompletedCourse("HIST101", "A", credit_hours=3, subject_area="HIST"),
    ])
    result = evaluator.evaluate(_req("credit_hours", CreditHoursParams(4, "MATH")), record, AS_OF)
    assert result.is_satisfied
    assert result.actual_value == "4"


def test_class_standing(evaluator):
    record = StudentRecord(student_id="S1", total_credit_hours=65)
    ok = evaluator.evaluate(_req("class_standing", ClassStandingParams("junior")), record, AS_OF)
    too_high = evaluator.evaluate(_req("class_standing", ClassStandingParams("senior")), record, AS_OF)
    assert ok.is_satisfied and ok.actual_value == "junior"
    assert not too_high.is_satisfied


def test_cumulative_gpa(evaluator):
    record = StudentRecord(student_id="S1", cumulative_gpa=2.8)
    result = evaluator.evaluate(_req("gpa", GpaParams(3.0)), record, AS_OF)
    assert not result.is_satisfied
    assert result.actual_value == "2.80"
    assert result.required_value == "3.00"


def test_subject_gpa_computed_from_courses(evaluator):
    record = StudentRecord(student_id="S1", completed_courses=[
        CompletedCourse("CS101", "A", credit_hours=3, subject_area="CS"),
        CompletedCourse("CS102", "C", credit_hours=3, subject_area="CS"),
    ])
    result = evaluator.evaluate(_req("gpa", GpaParams(3.0, "subject", "CS")), record, AS_OF)
    assert result.is_satisfied
    assert result.actual_value == "3.00"


def test_missing_major_gpa_is_unsatisfied(evaluator):
    result = evaluator.evaluate(_req("gpa", GpaParams(2.0, "major")), StudentRecord(student_id="S1"), AS_OF)
    assert not result.is_satisfied
    assert result.failure_reason == "Major GPA not available"


# ------------------------------------------------------------------
# permission / test_score
# ------------------------------------------------------------------
def test_permission_requires_verified_document(evaluator):
    record = StudentRecord(student_id="S1", permissions=[PermissionGrant("instructor_consent")])
    params = PermissionParams("instructor_consent", requires_documentation=True)
    result = evaluator.evaluate(_req("permission", params), record, AS_OF)
    assert not result.is_satisfied
    assert "documentation not verified" in result.failure_reason

    record.permissions[0].document_verified = True
    assert evaluator.evaluate(_req("permission", params), record, AS_OF).is_satisfied


def test_expired_permission_does_not_count(evaluator):
    record = StudentRecord(student_id="S1", permissions=[
        PermissionGrant("instructor_consent", expires_on=date(2024, 1, 1)),
    ])
    result = evaluator.evaluate(_req("permission", PermissionParams("instructor_consent")), record, AS_OF)
    assert not result.is_satisfied


def test_test_score_within_validity(evaluator):
    record = StudentRecord(student_id="S1", test_scores=[
        ExamScore("MATH_PLACEMENT", 70, date(2024, 3, 1)),
        ExamScore("MATH_PLACEMENT", 90, date(2021, 3, 1)),
    ])
    params = ExamScoreParams("MATH_PLACEMENT", 75, validity_months=24)
    result = evaluator.evaluate(_req("test_score", params), record, AS_OF)
    assert not result.is_satisfied
    assert result.actual_value == "70"


def test_test_score_too_old(evaluator):
    record = StudentRecord(student_id="S1", test_scores=[ExamScore("SAT", 1400, date(2020, 1, 1))])
    result = evaluator.evaluate(_req("test_score", ExamScoreParams("SAT", 1200, 24)), record, AS_OF)
    assert not result.is_satisfied
    assert "older than 24 months" in result.failure_reason


def test_no_test_score(evaluator):
    result = evaluator.evaluate(_req("test_score", ExamScoreParams("SAT", 1200)), student(), AS_OF)
    assert result.failure_reason == "No SAT score on file"


# ------------------------------------------------------------------
# Misconfiguration
# ------------------------------------------------------------------
def test_mismatched_params_never_raise(evaluator):
    req = _req("gpa", CreditHoursParams(10))
    result = evaluator.evaluate(req, student(), AS_OF)
    assert not result.is_satisfied
    assert result.failure_reason == "Requirement is misconfigured"


def test_unknown_type_never_raises(evaluator):
    result = evaluator.evaluate(_req("portfolio", None), student(), AS_OF)
    assert not result.is_satisfied
