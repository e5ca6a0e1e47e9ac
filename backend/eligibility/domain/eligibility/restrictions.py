"""Corequisite and enrollment-restriction checks."""
from __future__ import annotations
from datetime import date, timedelta
from typing import List, Optional

from eligibility.domain.eligibility import grades
from eligibility.domain.eligibility.enums import (
    CheckStatus,
    CorequisiteEnforcementType,
    CorequisiteFailureAction,
    CorequisiteRelationship,
    RestrictionCheckStatus,
    RestrictionEnforcementLevel,
    RestrictionType,
    ViolationSeverity,
)
from eligibility.domain.eligibility.models import (
    CorequisiteCheckResult,
    CorequisiteRequirement,
    CorequisiteRule,
    EnrollmentRestriction,
    RestrictionCheckResult,
    StudentRecord,
)

_BLOCKING_ENFORCEMENT = {
    CorequisiteEnforcementType.MUST_TAKE_SIMULTANEOUSLY.value,
    CorequisiteEnforcementType.MUST_TAKE_BEFORE_OR_WITH.value,
}
_ADVISORY_RELATIONSHIPS = {
    CorequisiteRelationship.RECOMMENDED_CONCURRENT.value,
    CorequisiteRelationship.PREFERRED_SEQUENCE.value,
}
_BLOCKING_LEVELS = {
    RestrictionEnforcementLevel.HARD.value,
    RestrictionEnforcementLevel.REQUIRES_OVERRIDE.value,
}
_SEVERITY = {
    RestrictionEnforcementLevel.HARD.value: ViolationSeverity.CRITICAL.value,
    RestrictionEnforcementLevel.REQUIRES_OVERRIDE.value: ViolationSeverity.ERROR.value,
    RestrictionEnforcementLevel.WARNING.value: ViolationSeverity.WARNING.value,
    RestrictionEnforcementLevel.INFORMATION.value: ViolationSeverity.WARNING.value,
}


# ------------------------------------------------------------------
# Corequisites
# ------------------------------------------------------------------
def _corequisite_met(req: CorequisiteRequirement, record: StudentRecord, term_id: str) -> bool:
    enrolled = record.enrolled_in(req.required_course_id, term_id)
    if req.relationship == CorequisiteRelationship.MUST_COMPLETE_BEFORE_OR_WITH:
        completed = any(
            c.course_id == req.required_course_id and grades.meets_minimum_grade(c.grade, None)
            for c in record.completed_courses
        )
        return completed or enrolled
    return enrolled


def check_corequisite(rule: CorequisiteRule, record: StudentRecord, term_id: str) -> CorequisiteCheckResult:
    """Concurrent-enrollment check for one corequisite rule in one term.

    Advisory relationships are reported but never make the rule fail. The
    rule blocks enrollment only when its enforcement type is mandatory and
    an unmet requirement's failure action is ``block_enrollment``.
    """
    required = [r.required_course_id for r in rule.requirements]
    enrolled = [c for c in required if record.enrolled_in(c, term_id)]
    unmet: List[CorequisiteRequirement] = [
        r for r in rule.requirements
        if r.relationship not in _ADVISORY_RELATIONSHIPS and not _corequisite_met(r, record, term_id)
    ]
    mandatory = rule.enforcement_type in _BLOCKING_ENFORCEMENT
    satisfied = not unmet or not mandatory

    action: Optional[str] = None
    blocking = False
    reason = None
    if unmet:
        action = unmet[0].failure_action
        blocking = mandatory and any(
            r.failure_action == CorequisiteFailureAction.BLOCK_ENROLLMENT for r in unmet
        )
        parts = []
        for r in unmet:
            if r.relationship == CorequisiteRelationship.MUST_COMPLETE_BEFORE_OR_WITH:
                parts.append(f"{r.required_course_id} must be completed or taken in the same term")
            else:
                parts.append(f"{r.required_course_id} must be taken in the same term")
        reason = "; ".join(parts)

    return CorequisiteCheckResult(
        rule_id=rule.id,
        rule_name=rule.rule_name,
        status=(CheckStatus.SATISFIED if not unmet else CheckStatus.NOT_SATISFIED).value,
        is_satisfied=satisfied,
        is_blocking=blocking,
        failure_reason=reason,
        enforcement_action=action,
        required_courses=required,
        enrolled_courses=enrolled,
        unmet_courses=[r.required_course_id for r in unmet],
    )


# ------------------------------------------------------------------
# Enrollment restrictions
# ------------------------------------------------------------------
def _major_violation(restriction: EnrollmentRestriction, record: StudentRecord) -> Optional[str]:
    included = [m for m in restriction.major_restrictions if m.is_included]
    excluded = {m.major_code for m in restriction.major_restrictions if not m.is_included}
    declared = {m.code: m for m in record.majors}

    blocked = sorted(excluded & set(declared))
    if blocked:
        return f"Not open to {', '.join(blocked)} majors"
    if not included:
        return None
    for rule in included:
        major = declared.get(rule.major_code)
        if major is None:
            continue
        if rule.minimum_progress is not None and (major.progress_percent or 0.0) < rule.minimum_progress:
            continue
        return None
    codes = ", ".join(m.major_code for m in included)
    return f"Restricted to {codes} majors"


def _standing_violation(restriction: EnrollmentRestriction, record: StudentRecord) -> Optional[str]:
    hours = record.credit_hours()
    standing = grades.effective_standing(hours, record.class_standing)
    included = [s for s in restriction.class_standing_restrictions if s.is_included]
    for rule in restriction.class_standing_restrictions:
        if not rule.is_included and rule.standing == standing:
            return f"Not open to {standing.value} students"
    if not included:
        return None
    for rule in included:
        if rule.standing != standing:
            continue
        if rule.minimum_credit_hours is not None and hours < rule.minimum_credit_hours:
            continue
        if rule.maximum_credit_hours is not None and hours > rule.maximum_credit_hours:
            continue
        return None
    allowed = ", ".join(s.standing for s in included)
    return f"Restricted to {allowed} students; current standing is {standing.value}"


def _permission_violation(
    restriction: EnrollmentRestriction, record: StudentRecord, as_of: date
) -> Optional[str]:
    for rule in restriction.permission_restrictions:
        granted = False
        for grant in record.permissions:
            if grant.permission != rule.required_permission:
                continue
            if grant.course_id is not None and grant.course_id != restriction.course_id:
                continue
            if rule.permission_level and grant.level != rule.permission_level:
                continue
            if rule.requires_documentation and not grant.document_verified:
                continue
            if grant.expires_on is not None and grant.expires_on < as_of:
                continue
            if rule.validity_days is not None and grant.granted_on is not None:
                if grant.granted_on + timedelta(days=rule.validity_days) < as_of:
                    continue
            granted = True
            break
        if not granted:
            return f"Permission '{rule.required_permission}' required"
    return None


def check_restriction(
    restriction: EnrollmentRestriction, record: StudentRecord, as_of: date
) -> RestrictionCheckResult:
    violations: List[str] = []
    reasons: List[str] = []
    checks = (
        (RestrictionType.MAJOR.value, restriction.major_restrictions, lambda: _major_violation(restriction, record)),
        (
            RestrictionType.CLASS_STANDING.value,
            restriction.class_standing_restrictions,
            lambda: _standing_violation(restriction, record),
        ),
        (
            RestrictionType.PERMISSION.value,
            restriction.permission_restrictions,
            lambda: _permission_violation(restriction, record, as_of),
        ),
    )
    for kind, conditions, check in checks:
        if not conditions:
            continue
        reason = check()
        if reason:
            violations.append(kind)
            reasons.append(reason)

    violated = bool(violations)
    level = restriction.enforcement_level
    if violated and restriction.violation_message:
        reasons = [restriction.violation_message] + reasons
    return RestrictionCheckResult(
        restriction_id=restriction.id,
        restriction_type=restriction.restriction_type,
        enforcement_level=level,
        status=(RestrictionCheckStatus.VIOLATION if violated else RestrictionCheckStatus.NO_VIOLATION).value,
        is_violated=violated,
        is_blocking=violated and level in _BLOCKING_LEVELS,
        severity=_SEVERITY.get(level, ViolationSeverity.ERROR.value),
        can_be_overridden=level != RestrictionEnforcementLevel.HARD,
        violation_reason="; ".join(reasons) if violated else None,
        violated_conditions=violations,
    )
