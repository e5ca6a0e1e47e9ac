"""Requirement evaluator: one atomic requirement against one academic record.

Every branch resolves to a RequirementCheckResult. Missing data and
misconfigured parameters are reported as unsatisfied with a reason, never
raised, so a single bad requirement cannot abort a whole validation.
"""
from __future__ import annotations
import logging
from datetime import date
from typing import Callable, Dict, Optional

from eligibility.domain.eligibility import grades
from eligibility.domain.eligibility.enums import AlternativeMethod, ClassStanding, GpaScope, RequirementType
from eligibility.domain.eligibility.models import (
    ClassStandingParams,
    CourseParams,
    CreditHoursParams,
    ExamScoreParams,
    GpaParams,
    PermissionParams,
    PrerequisiteRequirement,
    RequirementCheckResult,
    StudentRecord,
)

logger = logging.getLogger(__name__)


def months_between(earlier: date, later: date) -> int:
    months = (later.year - earlier.year) * 12 + (later.month - earlier.month)
    if later.day < earlier.day:
        months -= 1
    return months


def _fmt(value: float) -> str:
    return f"{value:g}"


class RequirementEvaluator:
    """Switches on RequirementType and applies the matching check."""

    def __init__(self) -> None:
        self._handlers: Dict[str, Callable[..., RequirementCheckResult]] = {
            RequirementType.COMPLETED_COURSE.value: self._completed_course,
            RequirementType.CREDIT_HOURS.value: self._credit_hours,
            RequirementType.CLASS_STANDING.value: self._class_standing,
            RequirementType.GPA.value: self._gpa,
            RequirementType.PERMISSION.value: self._permission,
            RequirementType.TEST_SCORE.value: self._test_score,
        }
        self._param_types = {
            RequirementType.COMPLETED_COURSE.value: CourseParams,
            RequirementType.CREDIT_HOURS.value: CreditHoursParams,
            RequirementType.CLASS_STANDING.value: ClassStandingParams,
            RequirementType.GPA.value: GpaParams,
            RequirementType.PERMISSION.value: PermissionParams,
            RequirementType.TEST_SCORE.value: ExamScoreParams,
        }

    def evaluate(
        self,
        requirement: PrerequisiteRequirement,
        record: StudentRecord,
        as_of: date,
        course_id: Optional[str] = None,
    ) -> RequirementCheckResult:
        handler = self._handlers.get(requirement.requirement_type)
        expected = self._param_types.get(requirement.requirement_type)
        if handler is None or not isinstance(requirement.params, expected):
            logger.warning(
                "Requirement %s has type %r with parameters %r; treating as unsatisfied",
                requirement.id, requirement.requirement_type, type(requirement.params).__name__,
            )
            return self._result(requirement, False, failure_reason="Requirement is misconfigured")
        return handler(requirement, requirement.params, record, as_of, course_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _result(requirement: PrerequisiteRequirement, satisfied: bool, **kwargs) -> RequirementCheckResult:
        return RequirementCheckResult(
            requirement_id=requirement.id,
            requirement_type=requirement.requirement_type,
            is_satisfied=satisfied,
            must_be_completed=requirement.must_be_completed,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # completed_course
    # ------------------------------------------------------------------
    def _completed_course(self, req, params: CourseParams, record: StudentRecord, as_of, course_id):
        course = params.required_course_id
        minimum = grades.normalize_grade(params.minimum_grade)
        required_value = minimum or "passing grade"

        methods = set(params.alternative_methods)
        if AlternativeMethod.TRANSFER_CREDIT.value in methods:
            for credit in record.transfer_credits:
                if credit.equivalent_course_id != course:
                    continue
                if credit.grade is None or grades.meets_minimum_grade(credit.grade, minimum):
                    return self._result(
                        req, True,
                        actual_value=grades.normalize_grade(credit.grade) or "TR",
                        required_value=required_value,
                        satisfaction_method=AlternativeMethod.TRANSFER_CREDIT.value,
                    )
        if AlternativeMethod.TEST_EQUIVALENCY.value in methods:
            for equivalency in record.exam_equivalencies:
                if equivalency.course_id == course:
                    return self._result(
                        req, True,
                        actual_value=equivalency.test_name,
                        required_value=required_value,
                        satisfaction_method=AlternativeMethod.TEST_EQUIVALENCY.value,
                    )

        attempts = [c.grade for c in record.completed_courses if c.course_id == course]
        if not attempts:
            return self._result(
                req, False,
                required_value=required_value,
                failure_reason=f"{course} not completed",
            )
        best = grades.best_grade(attempts)
        if grades.meets_minimum_grade(best, minimum):
            return self._result(
                req, True,
                actual_value=best,
                required_value=required_value,
                satisfaction_method="course",
            )
        if minimum:
            reason = f"{course} completed with grade {best}; minimum grade {minimum} required"
        else:
            reason = f"{course} completed with grade {best}; a passing grade is required"
        return self._result(req, False, actual_value=best, required_value=required_value, failure_reason=reason)

    # ------------------------------------------------------------------
    # credit_hours
    # ------------------------------------------------------------------
    def _credit_hours(self, req, params: CreditHoursParams, record: StudentRecord, as_of, course_id):
        if params.subject_area:
            earned = sum(
                c.credit_hours
                for c in record.completed_courses
                if c.subject_area == params.subject_area and grades.meets_minimum_grade(c.grade, None)
            )
            label = f"{params.subject_area} credit hours"
        else:
            earned = record.credit_hours()
            label = "credit hours"
        ok = earned >= params.minimum_credit_hours
        return self._result(
            req, ok,
            actual_value=_fmt(earned),
            required_value=_fmt(params.minimum_credit_hours),
            failure_reason=None if ok else (
                f"{_fmt(earned)} {label} earned; {_fmt(params.minimum_credit_hours)} required"
            ),
        )

    # ------------------------------------------------------------------
    # class_standing
    # ------------------------------------------------------------------
    def _class_standing(self, req, params: ClassStandingParams, record: StudentRecord, as_of, course_id):
        if not ClassStanding.has(params.required_standing):
            return self._result(req, False, failure_reason="Requirement is misconfigured")
        required = ClassStanding(params.required_standing)
        standing = grades.effective_standing(record.credit_hours(), record.class_standing)
        ok = standing.rank >= required.rank
        return self._result(
            req, ok,
            actual_value=standing.value,
            required_value=required.value,
            failure_reason=None if ok else f"Class standing {standing.value}; {required.value} or higher required",
        )

    # ------------------------------------------------------------------
    # gpa
    # ------------------------------------------------------------------
    def _gpa(self, req, params: GpaParams, record: StudentRecord, as_of, course_id):
        scope = params.scope or GpaScope.CUMULATIVE
        if scope == GpaScope.CUMULATIVE:
            gpa = record.cumulative_gpa
            if gpa is None:
                gpa = grades.weighted_gpa(record.completed_courses)
            label = "Cumulative GPA"
        elif scope == GpaScope.MAJOR:
            gpa = record.major_gpa
            label = "Major GPA"
        elif scope == GpaScope.SUBJECT and params.subject_area:
            gpa = record.subject_gpas.get(params.subject_area)
            if gpa is None:
                gpa = grades.weighted_gpa(
                    c for c in record.completed_courses if c.subject_area == params.subject_area
                )
            label = f"{params.subject_area} GPA"
        else:
            return self._result(req, False, failure_reason="Requirement is misconfigured")

        required_value = f"{params.minimum_gpa:.2f}"
        if gpa is None:
            return self._result(
                req, False,
                required_value=required_value,
                failure_reason=f"{label} not available",
            )
        ok = gpa >= params.minimum_gpa
        return self._result(
            req, ok,
            actual_value=f"{gpa:.2f}",
            required_value=required_value,
            failure_reason=None if ok else f"{label} {gpa:.2f}; minimum {required_value} required",
        )

    # ------------------------------------------------------------------
    # permission
    # ------------------------------------------------------------------
    def _permission(self, req, params: PermissionParams, record: StudentRecord, as_of, course_id):
        undocumented = False
        for grant in record.permissions:
            if grant.permission != params.required_permission:
                continue
            if grant.course_id is not None and course_id is not None and grant.course_id != course_id:
                continue
            if params.permission_level and grant.level != params.permission_level:
                continue
            if grant.expires_on is not None and grant.expires_on < as_of:
                continue
            if params.requires_documentation and not grant.document_verified:
                undocumented = True
                continue
            return self._result(
                req, True,
                actual_value=grant.permission,
                required_value=params.required_permission,
                satisfaction_method="permission",
            )
        if undocumented:
            reason = f"Permission '{params.required_permission}' granted but documentation not verified"
        else:
            reason = f"Permission '{params.required_permission}' not granted"
        return self._result(req, False, required_value=params.required_permission, failure_reason=reason)

    # ------------------------------------------------------------------
    # test_score
    # ------------------------------------------------------------------
    def _test_score(self, req, params: ExamScoreParams, record: StudentRecord, as_of, course_id):
        required_value = _fmt(params.minimum_score)
        scores = [s for s in record.test_scores if s.test_name == params.test_name]
        if not scores:
            return self._result(
                req, False,
                required_value=required_value,
                failure_reason=f"No {params.test_name} score on file",
            )
        if params.validity_months is not None:
            valid = [
                s for s in scores
                if s.taken_on <= as_of and months_between(s.taken_on, as_of) <= params.validity_months
            ]
            if not valid:
                return self._result(
                    req, False,
                    required_value=required_value,
                    failure_reason=(
                        f"{params.test_name} score is older than {params.validity_months} months"
                    ),
                )
            scores = valid
        best = max(s.score for s in scores)
        ok = best >= params.minimum_score
        return self._result(
            req, ok,
            actual_value=_fmt(best),
            required_value=required_value,
            failure_reason=None if ok else (
                f"{params.test_name} score {_fmt(best)}; minimum {required_value} required"
            ),
        )
