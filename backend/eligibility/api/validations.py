"""Enrollment validation + student record API endpoints."""
from __future__ import annotations
from dataclasses import asdict
from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from eligibility.api.errors import raise_for_failure
from eligibility.application.validation_app_service import ValidationAppService
from eligibility.container import get_validation_app_service
from eligibility.domain.eligibility.models import PrerequisiteValidationResult
from eligibility.persistence.serialization import record_from_dict

router = APIRouter(tags=["validations"])


# ------------------------------------------------------------------
# Pydantic schemas
# ------------------------------------------------------------------
class ValidationRequestBody(BaseModel):
    student_id: str
    course_id: str
    term_id: str
    as_of: Optional[date] = None


class CompletedCourseBody(BaseModel):
    course_id: str
    grade: str
    credit_hours: float = 3.0
    subject_area: Optional[str] = None
    term_id: Optional[str] = None
    completed_on: Optional[date] = None


class TransferCreditBody(BaseModel):
    equivalent_course_id: str
    credit_hours: float = 3.0
    grade: Optional[str] = None
    institution: Optional[str] = None


class ExamEquivalencyBody(BaseModel):
    course_id: str
    test_name: str
    awarded_on: Optional[date] = None


class ExamScoreBody(BaseModel):
    test_name: str
    score: float
    taken_on: date


class PermissionGrantBody(BaseModel):
    permission: str
    level: Optional[str] = None
    course_id: Optional[str] = None
    granted_on: Optional[date] = None
    expires_on: Optional[date] = None
    document_verified: bool = False


class DeclaredMajorBody(BaseModel):
    code: str
    major_type: str = "primary"
    progress_percent: Optional[float] = None


class CurrentEnrollmentBody(BaseModel):
    course_id: str
    term_id: str


class StudentRecordBody(BaseModel):
    completed_courses: List[CompletedCourseBody] = []
    transfer_credits: List[TransferCreditBody] = []
    exam_equivalencies: List[ExamEquivalencyBody] = []
    cumulative_gpa: Optional[float] = None
    major_gpa: Optional[float] = None
    subject_gpas: Dict[str, float] = {}
    total_credit_hours: Optional[float] = None
    class_standing: Optional[str] = None
    majors: List[DeclaredMajorBody] = []
    permissions: List[PermissionGrantBody] = []
    test_scores: List[ExamScoreBody] = []
    current_enrollments: List[CurrentEnrollmentBody] = []


# ------------------------------------------------------------------
# Serializers
# ------------------------------------------------------------------
def _serialize_result(r: PrerequisiteValidationResult) -> dict:
    return {
        "id": r.id,
        "student_id": r.student_id,
        "course_id": r.course_id,
        "term_id": r.term_id,
        "validation_date": r.validation_date.isoformat(),
        "as_of": r.as_of.isoformat(),
        "overall_status": r.overall_status,
        "can_enroll": r.can_enroll,
        "failure_reason": r.failure_reason,
        "unmet_requirements": r.unmet_requirements,
        "prerequisite_results": [asdict(p) for p in r.prerequisite_results],
        "corequisite_results": [asdict(c) for c in r.corequisite_results],
        "restriction_results": [asdict(x) for x in r.restriction_results],
        "applied_override_ids": r.applied_override_ids,
        "applied_waiver_ids": r.applied_waiver_ids,
        "configuration_issues": [asdict(i) for i in r.configuration_issues],
        "warnings": r.warnings,
        "blocked_by_circular_dependency": r.blocked_by_circular_dependency,
        "engine_version": r.engine_version,
        "processing_time_ms": r.processing_time_ms,
        "is_current": r.is_current,
    }


# ------------------------------------------------------------------
# Health check
# ------------------------------------------------------------------
@router.get("/health")
def health():
    return {"status": "ok"}


# ------------------------------------------------------------------
# Validation endpoints
# ------------------------------------------------------------------
@router.post("/validations", status_code=status.HTTP_201_CREATED)
def validate_enrollment(
    body: ValidationRequestBody,
    svc: ValidationAppService = Depends(get_validation_app_service),
):
    result = svc.validate(body.student_id, body.course_id, body.term_id, as_of=body.as_of)
    raise_for_failure(result)
    return _serialize_result(result.value)


@router.get("/validations/{student_id}/{course_id}/{term_id}/current")
def get_current_validation(
    student_id: str,
    course_id: str,
    term_id: str,
    svc: ValidationAppService = Depends(get_validation_app_service),
):
    result = svc.get_current(student_id, course_id, term_id)
    if not result:
        raise HTTPException(
            status_code=404,
            detail=f"No validation for student '{student_id}' in '{course_id}' for term '{term_id}'",
        )
    return _serialize_result(result)


@router.get("/validations/{student_id}/{course_id}/{term_id}/history")
def get_validation_history(
    student_id: str,
    course_id: str,
    term_id: str,
    svc: ValidationAppService = Depends(get_validation_app_service),
):
    return [_serialize_result(r) for r in svc.get_history(student_id, course_id, term_id)]


# ------------------------------------------------------------------
# Student records
# ------------------------------------------------------------------
@router.put("/students/{student_id}/record")
def put_student_record(
    student_id: str,
    body: StudentRecordBody,
    svc: ValidationAppService = Depends(get_validation_app_service),
):
    record = record_from_dict({**body.model_dump(mode="json"), "student_id": student_id})
    result = svc.save_student_record(record)
    raise_for_failure(result)
    return {"student_id": student_id, "saved": True}
