"""JSON column codecs shared by the sqlite repositories."""
from __future__ import annotations
import json
from dataclasses import asdict
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from eligibility.domain.eligibility.enums import RequirementType
from eligibility.domain.eligibility.models import (
    ClassStandingParams,
    ClassStandingRestriction,
    CompletedCourse,
    ConfigurationIssue,
    CourseParams,
    CreditHoursParams,
    CurrentEnrollment,
    DeclaredMajor,
    ExamEquivalency,
    ExamScore,
    ExamScoreParams,
    GpaParams,
    MajorRestriction,
    OverrideApprovalStep,
    OverrideRuleMapping,
    PermissionGrant,
    PermissionParams,
    PermissionRestriction,
    RequirementCheckResult,
    RequirementParams,
    StudentRecord,
    TransferCredit,
    WaiverRuleMapping,
)

_PARAMS_BY_TYPE = {
    RequirementType.COMPLETED_COURSE.value: CourseParams,
    RequirementType.CREDIT_HOURS.value: CreditHoursParams,
    RequirementType.CLASS_STANDING.value: ClassStandingParams,
    RequirementType.GPA.value: GpaParams,
    RequirementType.PERMISSION.value: PermissionParams,
    RequirementType.TEST_SCORE.value: ExamScoreParams,
}


def _default(value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    raise TypeError(f"Cannot serialise {type(value).__name__}")


def dumps(value: Any) -> str:
    return json.dumps(value, default=_default)


def loads(text: Optional[str], fallback: Any = None) -> Any:
    if not text:
        return fallback
    return json.loads(text)


def to_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def to_datetime(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


# ------------------------------------------------------------------
# Requirement parameters
# ------------------------------------------------------------------
def params_to_json(params: Optional[RequirementParams]) -> str:
    return dumps(asdict(params) if params is not None else {})


def params_from_dict(requirement_type: str, data: Dict[str, Any]) -> Optional[RequirementParams]:
    """Rebuild the typed params; None when the shape does not fit the type.

    A None params object is reported as a configuration problem by the rule
    checks rather than failing the whole load.
    """
    cls = _PARAMS_BY_TYPE.get(requirement_type)
    if cls is None:
        return None
    try:
        return cls(**data)
    except TypeError:
        return None


def params_from_json(requirement_type: str, text: Optional[str]) -> Optional[RequirementParams]:
    return params_from_dict(requirement_type, loads(text, {}))


# ------------------------------------------------------------------
# Restriction conditions, exception mappings and approval steps
# ------------------------------------------------------------------
def list_to_json(items: List[Any]) -> str:
    return dumps([asdict(i) for i in items])


def majors_from_json(text: Optional[str]) -> List[MajorRestriction]:
    return [MajorRestriction(**d) for d in loads(text, [])]


def standings_from_json(text: Optional[str]) -> List[ClassStandingRestriction]:
    return [ClassStandingRestriction(**d) for d in loads(text, [])]


def permissions_from_json(text: Optional[str]) -> List[PermissionRestriction]:
    return [PermissionRestriction(**d) for d in loads(text, [])]


def override_mappings_from_json(text: Optional[str]) -> List[OverrideRuleMapping]:
    return [OverrideRuleMapping(**d) for d in loads(text, [])]


def waiver_mappings_from_json(text: Optional[str]) -> List[WaiverRuleMapping]:
    return [WaiverRuleMapping(**d) for d in loads(text, [])]


def steps_from_json(text: Optional[str]) -> List[OverrideApprovalStep]:
    steps = []
    for d in loads(text, []):
        d["decided_at"] = to_datetime(d.get("decided_at"))
        d["due_date"] = to_date(d.get("due_date"))
        steps.append(OverrideApprovalStep(**d))
    return sorted(steps, key=lambda s: s.step_number)


def requirement_results_from_json(text: Optional[str]) -> List[RequirementCheckResult]:
    return [RequirementCheckResult(**d) for d in loads(text, [])]


def issues_from_json(text: Optional[str]) -> List[ConfigurationIssue]:
    return [ConfigurationIssue(**d) for d in loads(text, [])]


# ------------------------------------------------------------------
# Student records
# ------------------------------------------------------------------
def record_to_json(record: StudentRecord) -> str:
    return dumps(asdict(record))


def record_from_dict(data: Dict[str, Any]) -> StudentRecord:
    """Build a StudentRecord from its JSON shape (also used for HTTP bodies)."""
    return StudentRecord(
        student_id=data["student_id"],
        completed_courses=[
            CompletedCourse(**{**c, "completed_on": to_date(c.get("completed_on"))})
            for c in data.get("completed_courses", [])
        ],
        transfer_credits=[TransferCredit(**t) for t in data.get("transfer_credits", [])],
        exam_equivalencies=[
            ExamEquivalency(**{**e, "awarded_on": to_date(e.get("awarded_on"))})
            for e in data.get("exam_equivalencies", [])
        ],
        cumulative_gpa=data.get("cumulative_gpa"),
        major_gpa=data.get("major_gpa"),
        subject_gpas=dict(data.get("subject_gpas") or {}),
        total_credit_hours=data.get("total_credit_hours"),
        class_standing=data.get("class_standing"),
        majors=[DeclaredMajor(**m) for m in data.get("majors", [])],
        permissions=[
            PermissionGrant(**{
                **p,
                "granted_on": to_date(p.get("granted_on")),
                "expires_on": to_date(p.get("expires_on")),
            })
            for p in data.get("permissions", [])
        ],
        test_scores=[
            ExamScore(**{**s, "taken_on": to_date(s.get("taken_on"))})
            for s in data.get("test_scores", [])
        ],
        current_enrollments=[CurrentEnrollment(**e) for e in data.get("current_enrollments", [])],
    )


def record_from_json(text: str) -> StudentRecord:
    return record_from_dict(json.loads(text))
