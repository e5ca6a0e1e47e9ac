"""SQLite implementation of ValidationResultRepository.

Results are append-only. Instead of flipping an is_current flag on older
rows, the current result for a key is the one with the highest ``seq``;
concurrent writers for the same key are ordered by the autoincrement and
the earlier one simply becomes history.
"""
from __future__ import annotations
from dataclasses import asdict
from typing import List, Optional

from eligibility.domain.eligibility.models import (
    CorequisiteCheckResult,
    PrerequisiteCheckResult,
    PrerequisiteValidationResult,
    RestrictionCheckResult,
)
from eligibility.persistence import serialization as codec
from eligibility.persistence.db import get_connection
from eligibility.persistence.interfaces.validation_result_repository import ValidationResultRepository


def _prerequisite_rows(conn, validation_id: str) -> List[PrerequisiteCheckResult]:
    rows = conn.execute(
        "SELECT * FROM prerequisite_check_results WHERE validation_id = ? ORDER BY position ASC",
        (validation_id,),
    ).fetchall()
    return [
        PrerequisiteCheckResult(
            rule_id=r["rule_id"],
            rule_name=r["rule_name"],
            logic_operator=r["logic_operator"],
            priority=r["priority"],
            parent_rule_id=r["parent_rule_id"],
            status=r["status"],
            is_satisfied=bool(r["is_satisfied"]),
            satisfaction_percentage=r["satisfaction_percentage"],
            failure_reason=r["failure_reason"],
            requirement_results=codec.requirement_results_from_json(r["requirement_results"]),
            is_blocking=bool(r["is_blocking"]),
            excepted_by=r["excepted_by"],
        )
        for r in rows
    ]


def _corequisite_rows(conn, validation_id: str) -> List[CorequisiteCheckResult]:
    rows = conn.execute(
        "SELECT * FROM corequisite_check_results WHERE validation_id = ? ORDER BY position ASC",
        (validation_id,),
    ).fetchall()
    return [
        CorequisiteCheckResult(
            rule_id=r["rule_id"],
            rule_name=r["rule_name"],
            status=r["status"],
            is_satisfied=bool(r["is_satisfied"]),
            is_blocking=bool(r["is_blocking"]),
            failure_reason=r["failure_reason"],
            enforcement_action=r["enforcement_action"],
            required_courses=codec.loads(r["required_courses"], []),
            enrolled_courses=codec.loads(r["enrolled_courses"], []),
            unmet_courses=codec.loads(r["unmet_courses"], []),
            excepted_by=r["excepted_by"],
        )
        for r in rows
    ]


def _restriction_rows(conn, validation_id: str) -> List[RestrictionCheckResult]:
    rows = conn.execute(
        "SELECT * FROM restriction_check_results WHERE validation_id = ? ORDER BY position ASC",
        (validation_id,),
    ).fetchall()
    return [
        RestrictionCheckResult(
            restriction_id=r["restriction_id"],
            restriction_type=r["restriction_type"],
            enforcement_level=r["enforcement_level"],
            status=r["status"],
            is_violated=bool(r["is_violated"]),
            is_blocking=bool(r["is_blocking"]),
            severity=r["severity"],
            can_be_overridden=bool(r["can_be_overridden"]),
            violation_reason=r["violation_reason"],
            violated_conditions=codec.loads(r["violated_conditions"], []),
            excepted_by=r["excepted_by"],
        )
        for r in rows
    ]


def _row_to_result(conn, row, is_current: bool) -> PrerequisiteValidationResult:
    return PrerequisiteValidationResult(
        id=row["id"],
        student_id=row["student_id"],
        course_id=row["course_id"],
        term_id=row["term_id"],
        validation_date=codec.to_datetime(row["validation_date"]),
        as_of=codec.to_date(row["as_of"]),
        overall_status=row["overall_status"],
        can_enroll=bool(row["can_enroll"]),
        failure_reason=row["failure_reason"],
        unmet_requirements=codec.loads(row["unmet_requirements"], []),
        prerequisite_results=_prerequisite_rows(conn, row["id"]),
        corequisite_results=_corequisite_rows(conn, row["id"]),
        restriction_results=_restriction_rows(conn, row["id"]),
        applied_override_ids=codec.loads(row["applied_override_ids"], []),
        applied_waiver_ids=codec.loads(row["applied_waiver_ids"], []),
        configuration_issues=codec.issues_from_json(row["configuration_issues"]),
        warnings=codec.loads(row["warnings"], []),
        blocked_by_circular_dependency=bool(row["blocked_by_circular_dependency"]),
        engine_version=row["engine_version"],
        processing_time_ms=row["processing_time_ms"],
        is_current=is_current,
    )


class SqliteValidationResultRepository(ValidationResultRepository):

    def save(self, result: PrerequisiteValidationResult) -> None:
        conn = get_connection()
        try:
            conn.execute(
                """
                INSERT INTO validation_results (
                    id, student_id, course_id, term_id, validation_date, as_of,
                    overall_status, can_enroll, failure_reason, unmet_requirements,
                    applied_override_ids, applied_waiver_ids, configuration_issues, warnings,
                    blocked_by_circular_dependency, engine_version, processing_time_ms
                ) VALUES (
                    :id, :student_id, :course_id, :term_id, :validation_date, :as_of,
                    :overall_status, :can_enroll, :failure_reason, :unmet_requirements,
                    :applied_override_ids, :applied_waiver_ids, :configuration_issues, :warnings,
                    :blocked_by_circular_dependency, :engine_version, :processing_time_ms
                )
                """,
                {
                    "id": result.id,
                    "student_id": result.student_id,
                    "course_id": result.course_id,
                    "term_id": result.term_id,
                    "validation_date": result.validation_date.isoformat(),
                    "as_of": result.as_of.isoformat(),
                    "overall_status": result.overall_status,
                    "can_enroll": int(result.can_enroll),
                    "failure_reason": result.failure_reason,
                    "unmet_requirements": codec.dumps(result.unmet_requirements),
                    "applied_override_ids": codec.dumps(result.applied_override_ids),
                    "applied_waiver_ids": codec.dumps(result.applied_waiver_ids),
                    "configuration_issues": codec.list_to_json(result.configuration_issues),
                    "warnings": codec.dumps(result.warnings),
                    "blocked_by_circular_dependency": int(result.blocked_by_circular_dependency),
                    "engine_version": result.engine_version,
                    "processing_time_ms": result.processing_time_ms,
                },
            )
            for position, p in enumerate(result.prerequisite_results):
                conn.execute(
                    """
                    INSERT INTO prerequisite_check_results (
                        validation_id, position, rule_id, rule_name, logic_operator, priority,
                        parent_rule_id, status, is_satisfied, satisfaction_percentage,
                        failure_reason, is_blocking, excepted_by, requirement_results
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (result.id, position, p.rule_id, p.rule_name, p.logic_operator, p.priority,
                     p.parent_rule_id, p.status, int(p.is_satisfied), p.satisfaction_percentage,
                     p.failure_reason, int(p.is_blocking), p.excepted_by,
                     codec.dumps([asdict(rr) for rr in p.requirement_results])),
                )
            for position, c in enumerate(result.corequisite_results):
                conn.execute(
                    """
                    INSERT INTO corequisite_check_results (
                        validation_id, position, rule_id, rule_name, status, is_satisfied,
                        is_blocking, failure_reason, enforcement_action, required_courses,
                        enrolled_courses, unmet_courses, excepted_by
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (result.id, position, c.rule_id, c.rule_name, c.status, int(c.is_satisfied),
                     int(c.is_blocking), c.failure_reason, c.enforcement_action,
                     codec.dumps(c.required_courses), codec.dumps(c.enrolled_courses),
                     codec.dumps(c.unmet_courses), c.excepted_by),
                )
            for position, x in enumerate(result.restriction_results):
                conn.execute(
                    """
                    INSERT INTO restriction_check_results (
                        validation_id, position, restriction_id, restriction_type, enforcement_level,
                        status, is_violated, is_blocking, severity, can_be_overridden,
                        violation_reason, violated_conditions, excepted_by
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (result.id, position, x.restriction_id, x.restriction_type, x.enforcement_level,
                     x.status, int(x.is_violated), int(x.is_blocking), x.severity,
                     int(x.can_be_overridden), x.violation_reason,
                     codec.dumps(x.violated_conditions), x.excepted_by),
                )
            conn.commit()
        finally:
            conn.close()

    def get_current(self, student_id: str, course_id: str, term_id: str) -> Optional[PrerequisiteValidationResult]:
        conn = get_connection()
        row = conn.execute(
            """
            SELECT * FROM validation_results
            WHERE student_id = ? AND course_id = ? AND term_id = ?
            ORDER BY seq DESC
            LIMIT 1
            """,
            (student_id, course_id, term_id),
        ).fetchone()
        result = _row_to_result(conn, row, is_current=True) if row else None
        conn.close()
        return result

    def get_history(self, student_id: str, course_id: str, term_id: str) -> List[PrerequisiteValidationResult]:
        conn = get_connection()
        rows = conn.execute(
            """
            SELECT * FROM validation_results
            WHERE student_id = ? AND course_id = ? AND term_id = ?
            ORDER BY seq DESC
            """,
            (student_id, course_id, term_id),
        ).fetchall()
        results = [_row_to_result(conn, r, is_current=(i == 0)) for i, r in enumerate(rows)]
        conn.close()
        return results
