"""Enumerated values used by rules, exceptions and results.

Entities store these as plain strings; the enums are ``str`` subclasses so a
stored value compares equal to its member, and an unknown stored value can be
reported as a configuration problem instead of failing on load.
"""
from __future__ import annotations
from enum import Enum


class _StrEnum(str, Enum):
    @classmethod
    def values(cls) -> set[str]:
        return {m.value for m in cls}

    @classmethod
    def has(cls, value: object) -> bool:
        return value in cls.values()


class LogicOperator(_StrEnum):
    AND = "AND"
    OR = "OR"
    XOR = "XOR"


class RequirementType(_StrEnum):
    COMPLETED_COURSE = "completed_course"
    CREDIT_HOURS = "credit_hours"
    CLASS_STANDING = "class_standing"
    GPA = "gpa"
    PERMISSION = "permission"
    TEST_SCORE = "test_score"


class ClassStanding(_StrEnum):
    FRESHMAN = "freshman"
    SOPHOMORE = "sophomore"
    JUNIOR = "junior"
    SENIOR = "senior"
    GRADUATE = "graduate"
    POST_BACCALAUREATE = "post_baccalaureate"
    DOCTORAL = "doctoral"

    @property
    def rank(self) -> int:
        return _STANDING_ORDER.index(self)


_STANDING_ORDER = list(ClassStanding)


class GpaScope(_StrEnum):
    CUMULATIVE = "cumulative"
    MAJOR = "major"
    SUBJECT = "subject"


class AlternativeMethod(_StrEnum):
    TRANSFER_CREDIT = "transfer_credit"
    TEST_EQUIVALENCY = "test_equivalency"


class PermissionLevel(_StrEnum):
    INSTRUCTOR = "instructor"
    DEPARTMENT = "department"
    COLLEGE = "college"
    ACADEMIC_AFFAIRS = "academic_affairs"
    REGISTRAR = "registrar"
    ADVISOR = "advisor"


class CorequisiteEnforcementType(_StrEnum):
    MUST_TAKE_SIMULTANEOUSLY = "must_take_simultaneously"
    MUST_TAKE_BEFORE_OR_WITH = "must_take_before_or_with"
    RECOMMENDED_TOGETHER = "recommended_together"
    STRONGLY_RECOMMENDED = "strongly_recommended"


class CorequisiteRelationship(_StrEnum):
    MUST_ENROLL_SIMULTANEOUSLY = "must_enroll_simultaneously"
    MUST_COMPLETE_BEFORE_OR_WITH = "must_complete_before_or_with"
    RECOMMENDED_CONCURRENT = "recommended_concurrent"
    PREFERRED_SEQUENCE = "preferred_sequence"


class CorequisiteFailureAction(_StrEnum):
    BLOCK_ENROLLMENT = "block_enrollment"
    REQUIRE_ADVISOR_APPROVAL = "require_advisor_approval"
    REQUIRE_DEPARTMENT_PERMISSION = "require_department_permission"
    ALLOW_WITH_WARNING = "allow_with_warning"
    NOTIFICATION_ONLY = "notification_only"


class RestrictionType(_StrEnum):
    MAJOR = "major"
    CLASS_STANDING = "class_standing"
    PERMISSION = "permission"


class RestrictionEnforcementLevel(_StrEnum):
    HARD = "hard"
    REQUIRES_OVERRIDE = "requires_override"
    WARNING = "warning"
    INFORMATION = "information"


class MajorType(_StrEnum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    MINOR = "minor"
    CERTIFICATE = "certificate"
    CONCENTRATION = "concentration"


class CheckStatus(_StrEnum):
    """Outcome of a single prerequisite or corequisite check."""
    SATISFIED = "satisfied"
    NOT_SATISFIED = "not_satisfied"
    PARTIALLY_SATISFIED = "partially_satisfied"
    OVERRIDDEN = "overridden"
    WAIVED = "waived"
    ERROR = "error"


class RestrictionCheckStatus(_StrEnum):
    NO_VIOLATION = "no_violation"
    VIOLATION = "violation"
    OVERRIDDEN = "overridden"
    ERROR = "error"


class ViolationSeverity(_StrEnum):
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ValidationStatus(_StrEnum):
    SATISFIED = "satisfied"
    NOT_SATISFIED = "not_satisfied"
    PARTIALLY_SATISFIED = "partially_satisfied"
    OVERRIDDEN = "overridden"
    WAIVED = "waived"
    PENDING_APPROVAL = "pending_approval"
    VALIDATION_ERROR = "validation_error"


class ValidationStage(_StrEnum):
    LOADING = "loading"
    EVALUATING = "evaluating"
    COMBINING = "combining"
    EXCEPTION_RESOLUTION = "exception_resolution"
    PERSISTED = "persisted"


class OverrideType(_StrEnum):
    ADMINISTRATIVE = "administrative"
    ADVISOR = "advisor"
    DEPARTMENT = "department"
    INSTRUCTOR = "instructor"
    EMERGENCY = "emergency"
    SYSTEM = "system"


class OverrideScope(_StrEnum):
    SINGLE_COURSE = "single_course"
    TERM = "term"


class OverrideStatus(_StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    EXPIRED = "expired"
    REVOKED = "revoked"
    UNDER_REVIEW = "under_review"


class ApprovalStepStatus(_StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    DELEGATED = "delegated"
    SKIPPED = "skipped"
    ON_HOLD = "on_hold"


class AuthorityLevel(_StrEnum):
    DEPARTMENT = "department"
    COLLEGE = "college"
    UNIVERSITY = "university"
    DEAN = "dean"
    PROVOST = "provost"


class WaiverType(_StrEnum):
    ACADEMIC_EXCEPTION = "academic_exception"
    TRANSFER_CREDIT = "transfer_credit"
    PROFESSIONAL_EXPERIENCE = "professional_experience"
    MILITARY_EXPERIENCE = "military_experience"
    MEDICAL = "medical"
    HARDSHIP = "hardship"


class WaiverScope(_StrEnum):
    SINGLE_PREREQUISITE = "single_prerequisite"
    ALL_PREREQUISITES = "all_prerequisites"
    COREQUISITES = "corequisites"
    BOTH = "both"


class WaiverStatus(_StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    UNDER_REVIEW = "under_review"
    DOCUMENTATION_REQUIRED = "documentation_required"
    EXPIRED = "expired"


class CircularDependencySeverity(_StrEnum):
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"
    CRITICAL = "critical"
