"""Course, rule authoring and circular dependency API endpoints."""
from __future__ import annotations
import uuid
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, status
from pydantic import BaseModel

from eligibility.api.errors import raise_for_failure
from eligibility.application.rule_app_service import RuleAppService
from eligibility.container import get_rule_app_service
from eligibility.domain.eligibility.models import (
    CircularDependencyResult,
    ClassStandingRestriction,
    CorequisiteRequirement,
    CorequisiteRule,
    Course,
    EnrollmentRestriction,
    MajorRestriction,
    PermissionRestriction,
    PrerequisiteRequirement,
    PrerequisiteRule,
)
from eligibility.persistence.serialization import params_from_dict

router = APIRouter(tags=["rules"])


def _new_id() -> str:
    return str(uuid.uuid4())


# ------------------------------------------------------------------
# Pydantic schemas
# ------------------------------------------------------------------
class CourseBody(BaseModel):
    id: str
    title: str = ""
    subject_area: Optional[str] = None
    credit_hours: float = 3.0
    is_active: bool = True


class RequirementBody(BaseModel):
    id: Optional[str] = None
    requirement_type: str
    params: Dict[str, Any] = {}
    sequence_order: int = 1
    must_be_completed: bool = True
    notes: Optional[str] = None


class PrerequisiteRuleBody(BaseModel):
    id: Optional[str] = None
    course_id: str
    rule_name: str
    logic_operator: str = "AND"
    priority: int = 1
    parent_rule_id: Optional[str] = None
    is_active: bool = True
    effective_date: Optional[date] = None
    expiration_date: Optional[date] = None
    description: Optional[str] = None
    requirements: List[RequirementBody] = []


class CorequisiteRequirementBody(BaseModel):
    id: Optional[str] = None
    required_course_id: str
    relationship: str = "must_enroll_simultaneously"
    failure_action: str = "block_enrollment"
    is_waivable: bool = False
    notes: Optional[str] = None


class CorequisiteRuleBody(BaseModel):
    id: Optional[str] = None
    course_id: str
    rule_name: str
    enforcement_type: str = "must_take_simultaneously"
    is_active: bool = True
    effective_date: Optional[date] = None
    expiration_date: Optional[date] = None
    requirements: List[CorequisiteRequirementBody] = []


class MajorConditionBody(BaseModel):
    major_code: str
    major_type: str = "primary"
    is_included: bool = True
    minimum_progress: Optional[float] = None


class StandingConditionBody(BaseModel):
    standing: str
    is_included: bool = True
    minimum_credit_hours: Optional[float] = None
    maximum_credit_hours: Optional[float] = None


class PermissionConditionBody(BaseModel):
    required_permission: str
    permission_level: Optional[str] = None
    requires_documentation: bool = False
    validity_days: Optional[int] = None


class RestrictionBody(BaseModel):
    id: Optional[str] = None
    course_id: str
    restriction_type: str
    enforcement_level: str = "hard"
    priority: int = 1
    restriction_name: Optional[str] = None
    violation_message: Optional[str] = None
    is_active: bool = True
    effective_date: Optional[date] = None
    expiration_date: Optional[date] = None
    major_restrictions: List[MajorConditionBody] = []
    class_standing_restrictions: List[StandingConditionBody] = []
    permission_restrictions: List[PermissionConditionBody] = []


# ------------------------------------------------------------------
# Body -> domain
# ------------------------------------------------------------------
def _to_requirement(body: RequirementBody, rule_id: str) -> PrerequisiteRequirement:
    return PrerequisiteRequirement(
        id=body.id or _new_id(),
        rule_id=rule_id,
        requirement_type=body.requirement_type,
        params=params_from_dict(body.requirement_type, body.params),
        sequence_order=body.sequence_order,
        must_be_completed=body.must_be_completed,
        notes=body.notes,
    )


def _to_rule(body: PrerequisiteRuleBody) -> PrerequisiteRule:
    rule_id = body.id or _new_id()
    return PrerequisiteRule(
        id=rule_id,
        course_id=body.course_id,
        rule_name=body.rule_name,
        logic_operator=body.logic_operator,
        priority=body.priority,
        parent_rule_id=body.parent_rule_id,
        is_active=body.is_active,
        effective_date=body.effective_date,
        expiration_date=body.expiration_date,
        description=body.description,
        requirements=[_to_requirement(r, rule_id) for r in body.requirements],
    )


# ------------------------------------------------------------------
# Serializers
# ------------------------------------------------------------------
def _serialize_requirement(r: PrerequisiteRequirement) -> dict:
    return {
        "id": r.id,
        "rule_id": r.rule_id,
        "requirement_type": r.requirement_type,
        "params": vars(r.params) if r.params is not None else None,
        "sequence_order": r.sequence_order,
        "must_be_completed": r.must_be_completed,
        "notes": r.notes,
    }


def _serialize_rule(rule: PrerequisiteRule) -> dict:
    return {
        "id": rule.id,
        "course_id": rule.course_id,
        "rule_name": rule.rule_name,
        "logic_operator": rule.logic_operator,
        "priority": rule.priority,
        "parent_rule_id": rule.parent_rule_id,
        "is_active": rule.is_active,
        "effective_date": rule.effective_date,
        "expiration_date": rule.expiration_date,
        "description": rule.description,
        "requirements": [_serialize_requirement(r) for r in rule.requirements],
    }


def _serialize_cycle(c: CircularDependencyResult) -> dict:
    return {
        "id": c.id,
        "course_id": c.course_id,
        "detection_date": c.detection_date.isoformat(),
        "has_circular_dependency": c.has_circular_dependency,
        "dependency_path": c.dependency_path,
        "involved_courses": c.involved_courses,
        "severity": c.severity,
        "resolution_recommendations": c.resolution_recommendations,
        "is_resolved": c.is_resolved,
        "resolution_date": c.resolution_date.isoformat() if c.resolution_date else None,
    }


# ------------------------------------------------------------------
# Courses and rules
# ------------------------------------------------------------------
@router.post("/courses", status_code=status.HTTP_201_CREATED)
def create_course(body: CourseBody, svc: RuleAppService = Depends(get_rule_app_service)):
    result = svc.save_course(Course(**body.model_dump()))
    raise_for_failure(result)
    return body.model_dump()


@router.post("/prerequisite-rules", status_code=status.HTTP_201_CREATED)
def create_prerequisite_rule(
    body: PrerequisiteRuleBody,
    svc: RuleAppService = Depends(get_rule_app_service),
):
    result = svc.save_prerequisite_rule(_to_rule(body))
    raise_for_failure(result)
    return _serialize_rule(result.value)


@router.post("/prerequisite-rules/{rule_id}/requirements", status_code=status.HTTP_201_CREATED)
def add_requirement(
    rule_id: str,
    body: RequirementBody,
    svc: RuleAppService = Depends(get_rule_app_service),
):
    result = svc.add_requirement(rule_id, _to_requirement(body, rule_id))
    raise_for_failure(result)
    return _serialize_requirement(result.value)


@router.post("/corequisite-rules", status_code=status.HTTP_201_CREATED)
def create_corequisite_rule(
    body: CorequisiteRuleBody,
    svc: RuleAppService = Depends(get_rule_app_service),
):
    rule_id = body.id or _new_id()
    rule = CorequisiteRule(
        id=rule_id,
        course_id=body.course_id,
        rule_name=body.rule_name,
        enforcement_type=body.enforcement_type,
        is_active=body.is_active,
        effective_date=body.effective_date,
        expiration_date=body.expiration_date,
        requirements=[
            CorequisiteRequirement(rule_id=rule_id, **{**r.model_dump(), "id": r.id or _new_id()})
            for r in body.requirements
        ],
    )
    result = svc.save_corequisite_rule(rule)
    raise_for_failure(result)
    return {"id": rule_id, "course_id": body.course_id}


@router.post("/enrollment-restrictions", status_code=status.HTTP_201_CREATED)
def create_restriction(
    body: RestrictionBody,
    svc: RuleAppService = Depends(get_rule_app_service),
):
    data = body.model_dump()
    restriction = EnrollmentRestriction(
        **{
            **data,
            "id": body.id or _new_id(),
            "major_restrictions": [MajorRestriction(**m) for m in data["major_restrictions"]],
            "class_standing_restrictions": [
                ClassStandingRestriction(**s) for s in data["class_standing_restrictions"]
            ],
            "permission_restrictions": [PermissionRestriction(**p) for p in data["permission_restrictions"]],
        }
    )
    result = svc.save_restriction(restriction)
    raise_for_failure(result)
    return {"id": restriction.id, "course_id": restriction.course_id}


# ------------------------------------------------------------------
# Circular dependencies
# ------------------------------------------------------------------
@router.post("/courses/{course_id}/circular-dependency-check")
def check_circular_dependency(
    course_id: str,
    svc: RuleAppService = Depends(get_rule_app_service),
):
    result = svc.detect_for_course(course_id)
    raise_for_failure(result)
    return _serialize_cycle(result.value)


@router.post("/circular-dependency-scans", status_code=status.HTTP_202_ACCEPTED)
def scan_circular_dependencies(
    background_tasks: BackgroundTasks,
    svc: RuleAppService = Depends(get_rule_app_service),
):
    background_tasks.add_task(svc.scan_all_courses)
    return {"status": "accepted"}


@router.post("/circular-dependencies/{result_id}/resolve")
def resolve_circular_dependency(
    result_id: str,
    svc: RuleAppService = Depends(get_rule_app_service),
):
    result = svc.resolve(result_id)
    raise_for_failure(result)
    return _serialize_cycle(result.value)
