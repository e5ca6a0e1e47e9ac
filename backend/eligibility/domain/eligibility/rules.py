"""Configuration checks for authored rules.

A rule that fails these checks is never evaluated: its problems are
reported to rule administrators instead of being shown to students as an
unmet requirement.
"""
from __future__ import annotations
from typing import List, Optional

from eligibility.domain.common.result import Result
from eligibility.domain.eligibility import grades
from eligibility.domain.eligibility.enums import (
    AlternativeMethod,
    ClassStanding,
    CorequisiteEnforcementType,
    CorequisiteFailureAction,
    CorequisiteRelationship,
    GpaScope,
    LogicOperator,
    MajorType,
    PermissionLevel,
    RequirementType,
    RestrictionEnforcementLevel,
    RestrictionType,
)
from eligibility.domain.eligibility.models import (
    ClassStandingParams,
    CorequisiteRule,
    CourseParams,
    CreditHoursParams,
    EnrollmentRestriction,
    ExamScoreParams,
    GpaParams,
    PermissionParams,
    PrerequisiteRequirement,
    PrerequisiteRule,
)

_PARAM_TYPES = {
    RequirementType.COMPLETED_COURSE.value: CourseParams,
    RequirementType.CREDIT_HOURS.value: CreditHoursParams,
    RequirementType.CLASS_STANDING.value: ClassStandingParams,
    RequirementType.GPA.value: GpaParams,
    RequirementType.PERMISSION.value: PermissionParams,
    RequirementType.TEST_SCORE.value: ExamScoreParams,
}


def validate_requirement(
    requirement: PrerequisiteRequirement, known_courses: Optional[set[str]] = None
) -> List[str]:
    """Problems with one requirement; empty when it can be evaluated."""
    label = f"Requirement {requirement.id}"
    expected = _PARAM_TYPES.get(requirement.requirement_type)
    if expected is None:
        return [f"{label}: unknown requirement type '{requirement.requirement_type}'"]
    params = requirement.params
    if not isinstance(params, expected):
        return [f"{label}: parameters do not match type '{requirement.requirement_type}'"]

    errors: List[str] = []
    if isinstance(params, CourseParams):
        if not params.required_course_id:
            errors.append(f"{label}: required course is missing")
        elif known_courses is not None and params.required_course_id not in known_courses:
            errors.append(f"{label}: references unknown course '{params.required_course_id}'")
        if params.minimum_grade and not grades.is_letter_grade(params.minimum_grade):
            errors.append(f"{label}: invalid minimum grade '{params.minimum_grade}'")
        bad = [m for m in params.alternative_methods if not AlternativeMethod.has(m)]
        if bad:
            errors.append(f"{label}: unknown alternative methods {bad}")
    elif isinstance(params, CreditHoursParams):
        if params.minimum_credit_hours is None or params.minimum_credit_hours < 0:
            errors.append(f"{label}: minimum credit hours must be zero or more")
    elif isinstance(params, ClassStandingParams):
        if not ClassStanding.has(params.required_standing):
            errors.append(f"{label}: unknown class standing '{params.required_standing}'")
    elif isinstance(params, GpaParams):
        if params.minimum_gpa is None or not 0.0 <= params.minimum_gpa <= 4.0:
            errors.append(f"{label}: minimum GPA must be between 0.0 and 4.0")
        if not GpaScope.has(params.scope):
            errors.append(f"{label}: unknown GPA scope '{params.scope}'")
        elif params.scope == GpaScope.SUBJECT and not params.subject_area:
            errors.append(f"{label}: subject GPA requires a subject area")
    elif isinstance(params, PermissionParams):
        if not params.required_permission:
            errors.append(f"{label}: required permission is missing")
        if params.permission_level and not PermissionLevel.has(params.permission_level):
            errors.append(f"{label}: unknown permission level '{params.permission_level}'")
    elif isinstance(params, ExamScoreParams):
        if not params.test_name:
            errors.append(f"{label}: test name is missing")
        if params.validity_months is not None and params.validity_months <= 0:
            errors.append(f"{label}: validity months must be positive")
    return errors


def validate_prerequisite_rule(
    rule: PrerequisiteRule, known_courses: Optional[set[str]] = None
) -> Result[PrerequisiteRule]:
    errors: List[str] = []
    if not LogicOperator.has(rule.logic_operator):
        errors.append(f"Rule {rule.id}: malformed logic operator '{rule.logic_operator}'")
    if rule.parent_rule_id == rule.id:
        errors.append(f"Rule {rule.id}: rule cannot be its own parent")
    if rule.effective_date and rule.expiration_date and rule.expiration_date < rule.effective_date:
        errors.append(f"Rule {rule.id}: expires before it becomes effective")
    for requirement in rule.requirements:
        if requirement.requirement_type == RequirementType.COMPLETED_COURSE and isinstance(
            requirement.params, CourseParams
        ) and requirement.params.required_course_id == rule.course_id:
            errors.append(f"Requirement {requirement.id}: course cannot require itself")
        errors.extend(validate_requirement(requirement, known_courses))
    if errors:
        return Result.fail_many(errors)
    return Result.ok(rule)


def validate_corequisite_rule(
    rule: CorequisiteRule, known_courses: Optional[set[str]] = None
) -> Result[CorequisiteRule]:
    errors: List[str] = []
    if not CorequisiteEnforcementType.has(rule.enforcement_type):
        errors.append(f"Corequisite rule {rule.id}: unknown enforcement type '{rule.enforcement_type}'")
    for req in rule.requirements:
        if req.required_course_id == rule.course_id:
            errors.append(f"Corequisite {req.id}: course cannot be its own corequisite")
        elif known_courses is not None and req.required_course_id not in known_courses:
            errors.append(f"Corequisite {req.id}: references unknown course '{req.required_course_id}'")
        if not CorequisiteRelationship.has(req.relationship):
            errors.append(f"Corequisite {req.id}: unknown relationship '{req.relationship}'")
        if not CorequisiteFailureAction.has(req.failure_action):
            errors.append(f"Corequisite {req.id}: unknown failure action '{req.failure_action}'")
    if errors:
        return Result.fail_many(errors)
    return Result.ok(rule)


def validate_restriction(restriction: EnrollmentRestriction) -> Result[EnrollmentRestriction]:
    errors: List[str] = []
    if not RestrictionType.has(restriction.restriction_type):
        errors.append(f"Restriction {restriction.id}: unknown restriction type '{restriction.restriction_type}'")
    if not RestrictionEnforcementLevel.has(restriction.enforcement_level):
        errors.append(
            f"Restriction {restriction.id}: unknown enforcement level '{restriction.enforcement_level}'"
        )
    bad = [s.standing for s in restriction.class_standing_restrictions if not ClassStanding.has(s.standing)]
    if bad:
        errors.append(f"Restriction {restriction.id}: unknown class standings {bad}")
    bad = [m.major_type for m in restriction.major_restrictions if not MajorType.has(m.major_type)]
    if bad:
        errors.append(f"Restriction {restriction.id}: unknown major types {bad}")
    bad = [
        p.permission_level for p in restriction.permission_restrictions
        if p.permission_level and not PermissionLevel.has(p.permission_level)
    ]
    if bad:
        errors.append(f"Restriction {restriction.id}: unknown permission levels {bad}")
    if errors:
        return Result.fail_many(errors)
    return Result.ok(restriction)

