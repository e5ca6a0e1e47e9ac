"""SQLite implementation of CircularDependencyRepository."""
from __future__ import annotations
from typing import List, Optional

from eligibility.domain.eligibility.models import CircularDependencyResult
from eligibility.persistence import serialization as codec
from eligibility.persistence.db import get_connection
from eligibility.persistence.interfaces.circular_dependency_repository import CircularDependencyRepository


def _row_to_result(row) -> CircularDependencyResult:
    return CircularDependencyResult(
        id=row["id"],
        course_id=row["course_id"],
        detection_date=codec.to_datetime(row["detection_date"]),
        has_circular_dependency=bool(row["has_circular_dependency"]),
        dependency_path=codec.loads(row["dependency_path"], []),
        involved_courses=codec.loads(row["involved_courses"], []),
        severity=row["severity"],
        resolution_recommendations=row["resolution_recommendations"],
        is_resolved=bool(row["is_resolved"]),
        resolution_date=codec.to_datetime(row["resolution_date"]),
    )


class SqliteCircularDependencyRepository(CircularDependencyRepository):

    def save(self, result: CircularDependencyResult) -> None:
        conn = get_connection()
        conn.execute(
            """
            INSERT INTO circular_dependency_results (
                id, course_id, detection_date, has_circular_dependency, dependency_path,
                involved_courses, severity, resolution_recommendations, is_resolved, resolution_date
            ) VALUES (
                :id, :course_id, :detection_date, :has_circular_dependency, :dependency_path,
                :involved_courses, :severity, :resolution_recommendations, :is_resolved, :resolution_date
            )
            ON CONFLICT(id) DO UPDATE SET
                is_resolved     = excluded.is_resolved,
                resolution_date = excluded.resolution_date
            """,
            {
                "id": result.id,
                "course_id": result.course_id,
                "detection_date": result.detection_date.isoformat(),
                "has_circular_dependency": int(result.has_circular_dependency),
                "dependency_path": codec.dumps(result.dependency_path),
                "involved_courses": codec.dumps(result.involved_courses),
                "severity": result.severity,
                "resolution_recommendations": result.resolution_recommendations,
                "is_resolved": int(result.is_resolved),
                "resolution_date": codec.iso(result.resolution_date),
            },
        )
        conn.commit()
        conn.close()

    def get_by_id(self, result_id: str) -> Optional[CircularDependencyResult]:
        conn = get_connection()
        row = conn.execute("SELECT * FROM circular_dependency_results WHERE id = ?", (result_id,)).fetchone()
        conn.close()
        return _row_to_result(row) if row else None

    def get_unresolved_for_course(self, course_id: str) -> Optional[CircularDependencyResult]:
        conn = get_connection()
        row = conn.execute(
            """
            SELECT * FROM circular_dependency_results
            WHERE course_id = ? AND has_circular_dependency = 1 AND is_resolved = 0
            ORDER BY seq ASC LIMIT 1
            """,
            (course_id,),
        ).fetchone()
        conn.close()
        return _row_to_result(row) if row else None

    def list_unresolved(self) -> List[CircularDependencyResult]:
        conn = get_connection()
        rows = conn.execute(
            """
            SELECT * FROM circular_dependency_results
            WHERE has_circular_dependency = 1 AND is_resolved = 0
            ORDER BY seq ASC
            """
        ).fetchall()
        conn.close()
        return [_row_to_result(r) for r in rows]
