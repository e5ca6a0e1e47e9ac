"""Override/waiver intake + approval workflow API endpoints."""
from __future__ import annotations
import uuid
from dataclasses import asdict
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from eligibility.api.errors import raise_for_failure
from eligibility.application.override_app_service import OverrideAppService
from eligibility.container import get_override_app_service
from eligibility.domain.eligibility import approval
from eligibility.domain.eligibility.models import (
    OverrideApprovalStep,
    OverrideRuleMapping,
    PrerequisiteOverride,
    PrerequisiteWaiver,
    WaiverRuleMapping,
)

router = APIRouter(tags=["overrides"])


# ------------------------------------------------------------------
# Pydantic schemas
# ------------------------------------------------------------------
class OverrideMappingBody(BaseModel):
    prerequisite_rule_id: Optional[str] = None
    corequisite_rule_id: Optional[str] = None
    restriction_id: Optional[str] = None
    is_complete: bool = True
    partial_conditions: List[str] = []


class ApprovalStepBody(BaseModel):
    step_number: int
    step_name: str
    is_mandatory: bool = True
    required_authority: Optional[str] = None
    assigned_to: Optional[str] = None
    due_date: Optional[date] = None
    can_delegate: bool = False


class OverrideBody(BaseModel):
    id: Optional[str] = None
    student_id: str
    course_id: str
    term_id: Optional[str] = None
    override_type: str = "administrative"
    scope: str = "single_course"
    reason: str = ""
    requested_by: str = ""
    expiration_date: Optional[date] = None
    requires_periodic_review: bool = False
    review_frequency_days: Optional[int] = None
    next_review_date: Optional[date] = None
    notes: Optional[str] = None
    rule_mappings: List[OverrideMappingBody] = []
    approval_steps: List[ApprovalStepBody] = []


class WaiverMappingBody(BaseModel):
    prerequisite_rule_id: Optional[str] = None
    corequisite_rule_id: Optional[str] = None
    is_complete: bool = True
    partial_conditions: List[str] = []


class WaiverBody(BaseModel):
    id: Optional[str] = None
    student_id: str
    course_id: str
    waiver_type: str = "academic_exception"
    scope: str = "single_prerequisite"
    status: str = "pending"
    reason: str = ""
    requested_by: str = ""
    approved_by: Optional[str] = None
    expiration_date: Optional[date] = None
    is_permanent: bool = False
    rule_mappings: List[WaiverMappingBody] = []


class StepDecisionBody(BaseModel):
    decision: str
    actor: str
    comments: Optional[str] = None
    delegate_to: Optional[str] = None


# ------------------------------------------------------------------
# Serializers
# ------------------------------------------------------------------
def _serialize_override(o: PrerequisiteOverride) -> dict:
    next_step = approval.next_pending_step(o)
    return {
        "id": o.id,
        "student_id": o.student_id,
        "course_id": o.course_id,
        "term_id": o.term_id,
        "override_type": o.override_type,
        "scope": o.scope,
        "status": o.status,
        "reason": o.reason,
        "requested_by": o.requested_by,
        "requested_date": o.requested_date,
        "approved_by": o.approved_by,
        "approved_date": o.approved_date.isoformat() if o.approved_date else None,
        "expiration_date": o.expiration_date,
        "is_active": o.is_active,
        "requires_periodic_review": o.requires_periodic_review,
        "next_review_date": o.next_review_date,
        "rule_mappings": [asdict(m) for m in o.rule_mappings],
        "approval_steps": [asdict(s) for s in o.approval_steps],
        "next_step_number": next_step.step_number if next_step else None,
    }


# ------------------------------------------------------------------
# Overrides
# ------------------------------------------------------------------
@router.post("/overrides", status_code=status.HTTP_201_CREATED)
def submit_override(body: OverrideBody, svc: OverrideAppService = Depends(get_override_app_service)):
    override = PrerequisiteOverride(
        id=body.id or str(uuid.uuid4()),
        student_id=body.student_id,
        course_id=body.course_id,
        term_id=body.term_id,
        override_type=body.override_type,
        scope=body.scope,
        reason=body.reason,
        requested_by=body.requested_by,
        requested_date=date.today(),
        expiration_date=body.expiration_date,
        requires_periodic_review=body.requires_periodic_review,
        review_frequency_days=body.review_frequency_days,
        next_review_date=body.next_review_date,
        notes=body.notes,
        rule_mappings=[OverrideRuleMapping(**m.model_dump()) for m in body.rule_mappings],
        approval_steps=[OverrideApprovalStep(**s.model_dump()) for s in body.approval_steps],
    )
    result = svc.submit_override(override)
    raise_for_failure(result)
    return _serialize_override(result.value)


@router.get("/overrides/{override_id}")
def get_override(override_id: str, svc: OverrideAppService = Depends(get_override_app_service)):
    override = svc.get_override(override_id)
    if not override:
        raise HTTPException(status_code=404, detail=f"Override '{override_id}' not found")
    return _serialize_override(override)


@router.post("/overrides/{override_id}/steps/{step_number}/decision")
def decide_step(
    override_id: str,
    step_number: int,
    body: StepDecisionBody,
    svc: OverrideAppService = Depends(get_override_app_service),
):
    result = svc.decide_step(
        override_id, step_number, body.decision, body.actor,
        comments=body.comments, delegate_to=body.delegate_to,
    )
    raise_for_failure(result)
    return _serialize_override(result.value)


# ------------------------------------------------------------------
# Waivers
# ------------------------------------------------------------------
@router.post("/waivers", status_code=status.HTTP_201_CREATED)
def submit_waiver(body: WaiverBody, svc: OverrideAppService = Depends(get_override_app_service)):
    data = body.model_dump()
    waiver = PrerequisiteWaiver(
        **{
            **data,
            "id": body.id or str(uuid.uuid4()),
            "rule_mappings": [WaiverRuleMapping(**m) for m in data["rule_mappings"]],
        }
    )
    result = svc.submit_waiver(waiver)
    raise_for_failure(result)
    return {"id": waiver.id, "status": waiver.status}
