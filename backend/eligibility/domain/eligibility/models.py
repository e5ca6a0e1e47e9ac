"""Eligibility domain models. Pure Python, no DB or HTTP dependencies."""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional, Union


# ------------------------------------------------------------------
# Catalog
# ------------------------------------------------------------------
@dataclass
class Course:
    id: str
    title: str = ""
    subject_area: Optional[str] = None
    credit_hours: float = 3.0
    is_active: bool = True


# ------------------------------------------------------------------
# Requirement parameters, one class per RequirementType
# ------------------------------------------------------------------
@dataclass
class CourseParams:
    required_course_id: str
    minimum_grade: Optional[str] = None
    alternative_methods: List[str] = field(default_factory=list)


@dataclass
class CreditHoursParams:
    minimum_credit_hours: float
    subject_area: Optional[str] = None


@dataclass
class ClassStandingParams:
    required_standing: str


@dataclass
class GpaParams:
    minimum_gpa: float
    scope: str = "cumulative"  # cumulative | major | subject
    subject_area: Optional[str] = None


@dataclass
class PermissionParams:
    required_permission: str
    permission_level: Optional[str] = None
    requires_documentation: bool = False


@dataclass
class ExamScoreParams:
    test_name: str
    minimum_score: float
    validity_months: Optional[int] = None


RequirementParams = Union[
    CourseParams, CreditHoursParams, ClassStandingParams, GpaParams, PermissionParams, ExamScoreParams
]


# ------------------------------------------------------------------
# Prerequisite / corequisite rules
# ------------------------------------------------------------------
@dataclass
class PrerequisiteRequirement:
    id: str
    rule_id: str
    requirement_type: str
    params: Optional[RequirementParams]
    sequence_order: int = 1
    must_be_completed: bool = True
    notes: Optional[str] = None


@dataclass
class PrerequisiteRule:
    id: str
    course_id: str
    rule_name: str
    logic_operator: str = "AND"  # AND | OR | XOR
    priority: int = 1
    parent_rule_id: Optional[str] = None
    is_active: bool = True
    effective_date: Optional[date] = None
    expiration_date: Optional[date] = None
    description: Optional[str] = None
    requirements: List[PrerequisiteRequirement] = field(default_factory=list)


@dataclass
class CorequisiteRequirement:
    id: str
    rule_id: str
    required_course_id: str
    relationship: str = "must_enroll_simultaneously"
    failure_action: str = "block_enrollment"
    is_waivable: bool = False
    notes: Optional[str] = None


@dataclass
class CorequisiteRule:
    id: str
    course_id: str
    rule_name: str
    enforcement_type: str = "must_take_simultaneously"
    is_active: bool = True
    effective_date: Optional[date] = None
    expiration_date: Optional[date] = None
    requirements: List[CorequisiteRequirement] = field(default_factory=list)


# ------------------------------------------------------------------
# Enrollment restrictions
# ------------------------------------------------------------------
@dataclass
class MajorRestriction:
    major_code: str
    major_type: str = "primary"
    is_included: bool = True
    minimum_progress: Optional[float] = None


@dataclass
class ClassStandingRestriction:
    standing: str
    is_included: bool = True
    minimum_credit_hours: Optional[float] = None
    maximum_credit_hours: Optional[float] = None


@dataclass
class PermissionRestriction:
    required_permission: str
    permission_level: Optional[str] = None
    requires_documentation: bool = False
    validity_days: Optional[int] = None


@dataclass
class EnrollmentRestriction:
    id: str
    course_id: str
    restriction_type: str
    enforcement_level: str = "hard"
    priority: int = 1
    restriction_name: Optional[str] = None
    violation_message: Optional[str] = None
    is_active: bool = True
    effective_date: Optional[date] = None
    expiration_date: Optional[date] = None
    major_restrictions: List[MajorRestriction] = field(default_factory=list)
    class_standing_restrictions: List[ClassStandingRestriction] = field(default_factory=list)
    permission_restrictions: List[PermissionRestriction] = field(default_factory=list)


@dataclass
class ApplicableRules:
    """Everything that gates enrollment in one course on one date."""
    prerequisite_rules: List[PrerequisiteRule] = field(default_factory=list)
    corequisite_rules: List[CorequisiteRule] = field(default_factory=list)
    restrictions: List[EnrollmentRestriction] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.prerequisite_rules or self.corequisite_rules or self.restrictions)


# ------------------------------------------------------------------
# Student academic record snapshot
# ------------------------------------------------------------------
@dataclass
class CompletedCourse:
    course_id: str
    grade: str
    credit_hours: float = 3.0
    subject_area: Optional[str] = None
    term_id: Optional[str] = None
    completed_on: Optional[date] = None


@dataclass
class TransferCredit:
    equivalent_course_id: str
    credit_hours: float = 3.0
    grade: Optional[str] = None
    institution: Optional[str] = None


@dataclass
class ExamEquivalency:
    course_id: str
    test_name: str
    awarded_on: Optional[date] = None


@dataclass
class ExamScore:
    test_name: str
    score: float
    taken_on: date


@dataclass
class PermissionGrant:
    permission: str
    level: Optional[str] = None
    course_id: Optional[str] = None
    granted_on: Optional[date] = None
    expires_on: Optional[date] = None
    document_verified: bool = False


@dataclass
class DeclaredMajor:
    code: str
    major_type: str = "primary"
    progress_percent: Optional[float] = None


@dataclass
class CurrentEnrollment:
    course_id: str
    term_id: str


@dataclass
class StudentRecord:
    student_id: str
    completed_courses: List[CompletedCourse] = field(default_factory=list)
    transfer_credits: List[TransferCredit] = field(default_factory=list)
    exam_equivalencies: List[ExamEquivalency] = field(default_factory=list)
    cumulative_gpa: Optional[float] = None
    major_gpa: Optional[float] = None
    subject_gpas: Dict[str, float] = field(default_factory=dict)
    total_credit_hours: Optional[float] = None
    class_standing: Optional[str] = None
    majors: List[DeclaredMajor] = field(default_factory=list)
    permissions: List[PermissionGrant] = field(default_factory=list)
    test_scores: List[ExamScore] = field(default_factory=list)
    current_enrollments: List[CurrentEnrollment] = field(default_factory=list)

    def credit_hours(self) -> float:
        if self.total_credit_hours is not None:
            return self.total_credit_hours
        earned = sum(c.credit_hours for c in self.completed_courses)
        return earned + sum(t.credit_hours for t in self.transfer_credits)

    def enrolled_in(self, course_id: str, term_id: str) -> bool:
        return any(e.course_id == course_id and e.term_id == term_id for e in self.current_enrollments)


# ------------------------------------------------------------------
# Overrides and waivers
# ------------------------------------------------------------------
@dataclass
class OverrideRuleMapping:
    prerequisite_rule_id: Optional[str] = None
    corequisite_rule_id: Optional[str] = None
    restriction_id: Optional[str] = None
    is_complete: bool = True
    partial_conditions: List[str] = field(default_factory=list)


@dataclass
class OverrideApprovalStep:
    step_number: int
    step_name: str
    status: str = "pending"
    is_mandatory: bool = True
    required_authority: Optional[str] = None
    assigned_to: Optional[str] = None
    decided_by: Optional[str] = None
    decided_at: Optional[datetime] = None
    comments: Optional[str] = None
    due_date: Optional[date] = None
    can_delegate: bool = False
    delegated_to: Optional[str] = None


@dataclass
class PrerequisiteOverride:
    id: str
    student_id: str
    course_id: str
    term_id: Optional[str] = None
    override_type: str = "administrative"
    scope: str = "single_course"
    status: str = "pending"  # pending | approved | denied | expired | revoked | under_review
    reason: str = ""
    requested_by: str = ""
    requested_date: Optional[date] = None
    approved_by: Optional[str] = None
    approved_date: Optional[datetime] = None
    expiration_date: Optional[date] = None
    is_active: bool = True
    requires_periodic_review: bool = False
    review_frequency_days: Optional[int] = None
    last_review_date: Optional[date] = None
    next_review_date: Optional[date] = None
    notes: Optional[str] = None
    rule_mappings: List[OverrideRuleMapping] = field(default_factory=list)
    approval_steps: List[OverrideApprovalStep] = field(default_factory=list)


@dataclass
class WaiverRuleMapping:
    prerequisite_rule_id: Optional[str] = None
    corequisite_rule_id: Optional[str] = None
    is_complete: bool = True
    partial_conditions: List[str] = field(default_factory=list)


@dataclass
class PrerequisiteWaiver:
    id: str
    student_id: str
    course_id: str
    waiver_type: str = "academic_exception"
    scope: str = "single_prerequisite"
    status: str = "pending"
    reason: str = ""
    requested_by: str = ""
    approved_by: Optional[str] = None
    approved_date: Optional[datetime] = None
    expiration_date: Optional[date] = None
    is_active: bool = True
    is_permanent: bool = False
    rule_mappings: List[WaiverRuleMapping] = field(default_factory=list)


# ------------------------------------------------------------------
# Check results (value objects, no ids)
# ------------------------------------------------------------------
@dataclass
class RequirementCheckResult:
    requirement_id: str
    requirement_type: str
    is_satisfied: bool
    actual_value: Optional[str] = None
    required_value: Optional[str] = None
    failure_reason: Optional[str] = None
    satisfaction_method: Optional[str] = None
    must_be_completed: bool = True
    excepted_by: Optional[str] = None


@dataclass
class PrerequisiteCheckResult:
    rule_id: str
    rule_name: str
    logic_operator: str
    priority: int
    parent_rule_id: Optional[str]
    status: str
    is_satisfied: bool
    satisfaction_percentage: float
    failure_reason: Optional[str] = None
    requirement_results: List[RequirementCheckResult] = field(default_factory=list)
    is_blocking: bool = True
    excepted_by: Optional[str] = None


@dataclass
class CorequisiteCheckResult:
    rule_id: str
    rule_name: str
    status: str
    is_satisfied: bool
    is_blocking: bool
    failure_reason: Optional[str] = None
    enforcement_action: Optional[str] = None
    required_courses: List[str] = field(default_factory=list)
    enrolled_courses: List[str] = field(default_factory=list)
    unmet_courses: List[str] = field(default_factory=list)
    excepted_by: Optional[str] = None


@dataclass
class RestrictionCheckResult:
    restriction_id: str
    restriction_type: str
    enforcement_level: str
    status: str
    is_violated: bool
    is_blocking: bool
    severity: str
    can_be_overridden: bool
    violation_reason: Optional[str] = None
    violated_conditions: List[str] = field(default_factory=list)
    excepted_by: Optional[str] = None


@dataclass
class ConfigurationIssue:
    rule_id: str
    message: str


@dataclass
class CheckResults:
    """Working set handed between the evaluate, combine and exception stages."""
    prerequisite_results: List[PrerequisiteCheckResult] = field(default_factory=list)
    corequisite_results: List[CorequisiteCheckResult] = field(default_factory=list)
    restriction_results: List[RestrictionCheckResult] = field(default_factory=list)
    configuration_issues: List[ConfigurationIssue] = field(default_factory=list)


@dataclass
class ExceptionOutcome:
    results: CheckResults
    applied_override_ids: List[str] = field(default_factory=list)
    applied_waiver_ids: List[str] = field(default_factory=list)
    pending_exception_ids: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


# ------------------------------------------------------------------
# Persisted outcomes
# ------------------------------------------------------------------
@dataclass
class PrerequisiteValidationResult:
    id: str
    student_id: str
    course_id: str
    term_id: str
    validation_date: datetime
    as_of: date
    overall_status: str
    can_enroll: bool
    failure_reason: Optional[str] = None
    unmet_requirements: List[str] = field(default_factory=list)
    prerequisite_results: List[PrerequisiteCheckResult] = field(default_factory=list)
    corequisite_results: List[CorequisiteCheckResult] = field(default_factory=list)
    restriction_results: List[RestrictionCheckResult] = field(default_factory=list)
    applied_override_ids: List[str] = field(default_factory=list)
    applied_waiver_ids: List[str] = field(default_factory=list)
    configuration_issues: List[ConfigurationIssue] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    blocked_by_circular_dependency: bool = False
    engine_version: str = ""
    processing_time_ms: Optional[int] = None
    is_current: bool = True


@dataclass
class CircularDependencyResult:
    id: str
    course_id: str
    detection_date: datetime
    has_circular_dependency: bool
    dependency_path: List[str] = field(default_factory=list)
    involved_courses: List[str] = field(default_factory=list)
    severity: Optional[str] = None
    resolution_recommendations: Optional[str] = None
    is_resolved: bool = False
    resolution_date: Optional[datetime] = None
