"""SQLite implementation of StudentRecordProvider: one JSON snapshot per student."""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional

from eligibility.domain.eligibility.models import StudentRecord
from eligibility.persistence import serialization as codec
from eligibility.persistence.db import get_connection
from eligibility.persistence.interfaces.student_record_provider import StudentRecordProvider


class SqliteStudentRecordProvider(StudentRecordProvider):

    def get_record(self, student_id: str) -> Optional[StudentRecord]:
        conn = get_connection()
        row = conn.execute("SELECT record FROM student_records WHERE student_id = ?", (student_id,)).fetchone()
        conn.close()
        return codec.record_from_json(row["record"]) if row else None

    def save_record(self, record: StudentRecord) -> None:
        conn = get_connection()
        conn.execute(
            """
            INSERT INTO student_records (student_id, record, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(student_id) DO UPDATE SET
                record     = excluded.record,
                updated_at = excluded.updated_at
            """,
            (record.student_id, codec.record_to_json(record), datetime.now(timezone.utc).isoformat()),
        )
        conn.commit()
        conn.close()
