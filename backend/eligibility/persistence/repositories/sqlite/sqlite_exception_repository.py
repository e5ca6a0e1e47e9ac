"""SQLite implementation of ExceptionRepository."""
from __future__ import annotations
from typing import List, Optional

from eligibility.domain.eligibility.models import PrerequisiteOverride, PrerequisiteWaiver
from eligibility.persistence import serialization as codec
from eligibility.persistence.db import get_connection
from eligibility.persistence.interfaces.exception_repository import ExceptionRepository


def _row_to_override(row) -> PrerequisiteOverride:
    return PrerequisiteOverride(
        id=row["id"],
        student_id=row["student_id"],
        course_id=row["course_id"],
        term_id=row["term_id"],
        override_type=row["override_type"],
        scope=row["scope"],
        status=row["status"],
        reason=row["reason"],
        requested_by=row["requested_by"],
        requested_date=codec.to_date(row["requested_date"]),
        approved_by=row["approved_by"],
        approved_date=codec.to_datetime(row["approved_date"]),
        expiration_date=codec.to_date(row["expiration_date"]),
        is_active=bool(row["is_active"]),
        requires_periodic_review=bool(row["requires_periodic_review"]),
        review_frequency_days=row["review_frequency_days"],
        last_review_date=codec.to_date(row["last_review_date"]),
        next_review_date=codec.to_date(row["next_review_date"]),
        notes=row["notes"],
        rule_mappings=codec.override_mappings_from_json(row["rule_mappings"]),
        approval_steps=codec.steps_from_json(row["approval_steps"]),
    )


def _row_to_waiver(row) -> PrerequisiteWaiver:
    return PrerequisiteWaiver(
        id=row["id"],
        student_id=row["student_id"],
        course_id=row["course_id"],
        waiver_type=row["waiver_type"],
        scope=row["scope"],
        status=row["status"],
        reason=row["reason"],
        requested_by=row["requested_by"],
        approved_by=row["approved_by"],
        approved_date=codec.to_datetime(row["approved_date"]),
        expiration_date=codec.to_date(row["expiration_date"]),
        is_active=bool(row["is_active"]),
        is_permanent=bool(row["is_permanent"]),
        rule_mappings=codec.waiver_mappings_from_json(row["rule_mappings"]),
    )


class SqliteExceptionRepository(ExceptionRepository):

    def save_override(self, override: PrerequisiteOverride) -> None:
        conn = get_connection()
        conn.execute(
            """
            INSERT OR REPLACE INTO prerequisite_overrides (
                id, student_id, course_id, term_id, override_type, scope, status,
                reason, requested_by, requested_date, approved_by, approved_date,
                expiration_date, is_active, requires_periodic_review, review_frequency_days,
                last_review_date, next_review_date, notes, rule_mappings, approval_steps
            ) VALUES (
                :id, :student_id, :course_id, :term_id, :override_type, :scope, :status,
                :reason, :requested_by, :requested_date, :approved_by, :approved_date,
                :expiration_date, :is_active, :requires_periodic_review, :review_frequency_days,
                :last_review_date, :next_review_date, :notes, :rule_mappings, :approval_steps
            )
            """,
            {
                "id": override.id,
                "student_id": override.student_id,
                "course_id": override.course_id,
                "term_id": override.term_id,
                "override_type": override.override_type,
                "scope": override.scope,
                "status": override.status,
                "reason": override.reason,
                "requested_by": override.requested_by,
                "requested_date": codec.iso(override.requested_date),
                "approved_by": override.approved_by,
                "approved_date": codec.iso(override.approved_date),
                "expiration_date": codec.iso(override.expiration_date),
                "is_active": int(override.is_active),
                "requires_periodic_review": int(override.requires_periodic_review),
                "review_frequency_days": override.review_frequency_days,
                "last_review_date": codec.iso(override.last_review_date),
                "next_review_date": codec.iso(override.next_review_date),
                "notes": override.notes,
                "rule_mappings": codec.list_to_json(override.rule_mappings),
                "approval_steps": codec.list_to_json(override.approval_steps),
            },
        )
        conn.commit()
        conn.close()

    def get_override(self, override_id: str) -> Optional[PrerequisiteOverride]:
        conn = get_connection()
        row = conn.execute("SELECT * FROM prerequisite_overrides WHERE id = ?", (override_id,)).fetchone()
        conn.close()
        return _row_to_override(row) if row else None

    def find_overrides(self, student_id: str, course_id: str) -> List[PrerequisiteOverride]:
        conn = get_connection()
        rows = conn.execute(
            "SELECT * FROM prerequisite_overrides WHERE student_id = ? AND course_id = ? ORDER BY id ASC",
            (student_id, course_id),
        ).fetchall()
        conn.close()
        return [_row_to_override(r) for r in rows]

    def save_waiver(self, waiver: PrerequisiteWaiver) -> None:
        conn = get_connection()
        conn.execute(
            """
            INSERT OR REPLACE INTO prerequisite_waivers (
                id, student_id, course_id, waiver_type, scope, status, reason, requested_by,
                approved_by, approved_date, expiration_date, is_active, is_permanent, rule_mappings
            ) VALUES (
                :id, :student_id, :course_id, :waiver_type, :scope, :status, :reason, :requested_by,
                :approved_by, :approved_date, :expiration_date, :is_active, :is_permanent, :rule_mappings
            )
            """,
            {
                "id": waiver.id,
                "student_id": waiver.student_id,
                "course_id": waiver.course_id,
                "waiver_type": waiver.waiver_type,
                "scope": waiver.scope,
                "status": waiver.status,
                "reason": waiver.reason,
                "requested_by": waiver.requested_by,
                "approved_by": waiver.approved_by,
                "approved_date": codec.iso(waiver.approved_date),
                "expiration_date": codec.iso(waiver.expiration_date),
                "is_active": int(waiver.is_active),
                "is_permanent": int(waiver.is_permanent),
                "rule_mappings": codec.list_to_json(waiver.rule_mappings),
            },
        )
        conn.commit()
        conn.close()

    def find_waivers(self, student_id: str, course_id: str) -> List[PrerequisiteWaiver]:
        conn = get_connection()
        rows = conn.execute(
            "SELECT * FROM prerequisite_waivers WHERE student_id = ? AND course_id = ? ORDER BY id ASC",
            (student_id, course_id),
        ).fetchall()
        conn.close()
        return [_row_to_waiver(r) for r in rows]
