"""Small constructors for domain objects used across the tests."""
from __future__ import annotations
from datetime import date
from typing import List, Optional

from eligibility.domain.eligibility.models import (
    CompletedCourse,
    CourseParams,
    OverrideApprovalStep,
    OverrideRuleMapping,
    PrerequisiteOverride,
    PrerequisiteRequirement,
    PrerequisiteRule,
    StudentRecord,
)

AS_OF = date(2024, 9, 1)


def course_req(req_id: str, course: str, minimum: Optional[str] = None, *,
               rule_id: str = "R1", mandatory: bool = True, alternatives: Optional[List[str]] = None,
               order: int = 1) -> PrerequisiteRequirement:
    return PrerequisiteRequirement(
        id=req_id,
        rule_id=rule_id,
        requirement_type="completed_course",
        params=CourseParams(required_course_id=course, minimum_grade=minimum,
                            alternative_methods=alternatives or []),
        sequence_order=order,
        must_be_completed=mandatory,
    )


def rule(rule_id: str, course: str, *requirements: PrerequisiteRequirement, operator: str = "AND",
         parent: Optional[str] = None, priority: int = 1) -> PrerequisiteRule:
    return PrerequisiteRule(
        id=rule_id,
        course_id=course,
        rule_name=f"{course} rule {rule_id}",
        logic_operator=operator,
        priority=priority,
        parent_rule_id=parent,
        requirements=list(requirements),
    )


def student(student_id: str = "S1", **grades_by_course: str) -> StudentRecord:
    return StudentRecord(
        student_id=student_id,
        completed_courses=[CompletedCourse(course_id=c, grade=g) for c, g in grades_by_course.items()],
    )


def approved_override(override_id: str = "O1", course: str = "CS201", student_id: str = "S1",
                      mappings: Optional[List[OverrideRuleMapping]] = None, **kwargs) -> PrerequisiteOverride:
    fields = dict(status="approved", reason="Equivalent experience", requested_by="advisor-1")
    fields.update(kwargs)
    return PrerequisiteOverride(
        id=override_id,
        student_id=student_id,
        course_id=course,
        rule_mappings=mappings if mappings is not None else [],
        **fields,
    )


def steps(*names: str, mandatory: bool = True) -> List[OverrideApprovalStep]:
    return [
        OverrideApprovalStep(step_number=i, step_name=name, is_mandatory=mandatory)
        for i, name in enumerate(names, start=1)
    ]
