"""SQLite implementation of RuleRepository."""
from __future__ import annotations
from datetime import date
from typing import Dict, List, Optional, Set

from eligibility.domain.eligibility.enums import RequirementType
from eligibility.domain.eligibility.models import (
    ApplicableRules,
    CorequisiteRequirement,
    CorequisiteRule,
    Course,
    CourseParams,
    EnrollmentRestriction,
    PrerequisiteRequirement,
    PrerequisiteRule,
)
from eligibility.persistence import serialization as codec
from eligibility.persistence.db import get_connection
from eligibility.persistence.interfaces.rule_repository import RuleRepository

_EFFECTIVE = """
    is_active = 1
    AND (effective_date IS NULL OR effective_date <= :as_of)
    AND (expiration_date IS NULL OR expiration_date >= :as_of)
"""


def _row_to_requirement(row) -> PrerequisiteRequirement:
    return PrerequisiteRequirement(
        id=row["id"],
        rule_id=row["rule_id"],
        requirement_type=row["requirement_type"],
        params=codec.params_from_json(row["requirement_type"], row["params"]),
        sequence_order=row["sequence_order"],
        must_be_completed=bool(row["must_be_completed"]),
        notes=row["notes"],
    )


def _row_to_rule(row, requirements: List[PrerequisiteRequirement]) -> PrerequisiteRule:
    return PrerequisiteRule(
        id=row["id"],
        course_id=row["course_id"],
        rule_name=row["rule_name"],
        logic_operator=row["logic_operator"],
        priority=row["priority"],
        parent_rule_id=row["parent_rule_id"],
        is_active=bool(row["is_active"]),
        effective_date=codec.to_date(row["effective_date"]),
        expiration_date=codec.to_date(row["expiration_date"]),
        description=row["description"],
        requirements=requirements,
    )


def _row_to_corequisite(row, requirements: List[CorequisiteRequirement]) -> CorequisiteRule:
    return CorequisiteRule(
        id=row["id"],
        course_id=row["course_id"],
        rule_name=row["rule_name"],
        enforcement_type=row["enforcement_type"],
        is_active=bool(row["is_active"]),
        effective_date=codec.to_date(row["effective_date"]),
        expiration_date=codec.to_date(row["expiration_date"]),
        requirements=requirements,
    )


def _row_to_restriction(row) -> EnrollmentRestriction:
    return EnrollmentRestriction(
        id=row["id"],
        course_id=row["course_id"],
        restriction_type=row["restriction_type"],
        enforcement_level=row["enforcement_level"],
        priority=row["priority"],
        restriction_name=row["restriction_name"],
        violation_message=row["violation_message"],
        is_active=bool(row["is_active"]),
        effective_date=codec.to_date(row["effective_date"]),
        expiration_date=codec.to_date(row["expiration_date"]),
        major_restrictions=codec.majors_from_json(row["major_restrictions"]),
        class_standing_restrictions=codec.standings_from_json(row["class_standing_restrictions"]),
        permission_restrictions=codec.permissions_from_json(row["permission_restrictions"]),
    )


def _requirement_params(requirement: PrerequisiteRequirement) -> dict:
    required_course = None
    if requirement.requirement_type == RequirementType.COMPLETED_COURSE and isinstance(
        requirement.params, CourseParams
    ):
        required_course = requirement.params.required_course_id
    return {
        "id": requirement.id,
        "rule_id": requirement.rule_id,
        "requirement_type": requirement.requirement_type,
        "params": codec.params_to_json(requirement.params),
        "required_course_id": required_course,
        "sequence_order": requirement.sequence_order,
        "must_be_completed": int(requirement.must_be_completed),
        "notes": requirement.notes,
    }


_INSERT_REQUIREMENT = """
    INSERT INTO prerequisite_requirements (
        id, rule_id, requirement_type, params, required_course_id,
        sequence_order, must_be_completed, notes
    ) VALUES (
        :id, :rule_id, :requirement_type, :params, :required_course_id,
        :sequence_order, :must_be_completed, :notes
    )
"""


class SqliteRuleRepository(RuleRepository):

    # ------------------------------------------------------------------
    # Applicable rules
    # ------------------------------------------------------------------
    def load_applicable_rules(self, course_id: str, as_of: date) -> ApplicableRules:
        params = {"course_id": course_id, "as_of": as_of.isoformat()}
        conn = get_connection()
        rule_rows = conn.execute(
            f"SELECT * FROM prerequisite_rules WHERE course_id = :course_id AND {_EFFECTIVE}"
            " ORDER BY priority ASC, id ASC",
            params,
        ).fetchall()
        prerequisite_rules = [
            _row_to_rule(r, self._requirements(conn, r["id"])) for r in rule_rows
        ]

        coreq_rows = conn.execute(
            f"SELECT * FROM corequisite_rules WHERE course_id = :course_id AND {_EFFECTIVE}"
            " ORDER BY id ASC",
            params,
        ).fetchall()
        corequisite_rules = [
            _row_to_corequisite(r, self._corequisite_requirements(conn, r["id"])) for r in coreq_rows
        ]

        restriction_rows = conn.execute(
            f"SELECT * FROM enrollment_restrictions WHERE course_id = :course_id AND {_EFFECTIVE}"
            " ORDER BY priority ASC, id ASC",
            params,
        ).fetchall()
        conn.close()
        return ApplicableRules(
            prerequisite_rules=prerequisite_rules,
            corequisite_rules=corequisite_rules,
            restrictions=[_row_to_restriction(r) for r in restriction_rows],
        )

    @staticmethod
    def _requirements(conn, rule_id: str) -> List[PrerequisiteRequirement]:
        rows = conn.execute(
            "SELECT * FROM prerequisite_requirements WHERE rule_id = ? ORDER BY sequence_order ASC, id ASC",
            (rule_id,),
        ).fetchall()
        return [_row_to_requirement(r) for r in rows]

    @staticmethod
    def _corequisite_requirements(conn, rule_id: str) -> List[CorequisiteRequirement]:
        rows = conn.execute(
            "SELECT * FROM corequisite_requirements WHERE rule_id = ? ORDER BY id ASC",
            (rule_id,),
        ).fetchall()
        return [
            CorequisiteRequirement(
                id=r["id"],
                rule_id=r["rule_id"],
                required_course_id=r["required_course_id"],
                relationship=r["relationship"],
                failure_action=r["failure_action"],
                is_waivable=bool(r["is_waivable"]),
                notes=r["notes"],
            )
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Courses
    # ------------------------------------------------------------------
    def save_course(self, course: Course) -> None:
        conn = get_connection()
        conn.execute(
            """
            INSERT INTO courses (id, title, subject_area, credit_hours, is_active)
            VALUES (:id, :title, :subject_area, :credit_hours, :is_active)
            ON CONFLICT(id) DO UPDATE SET
                title        = excluded.title,
                subject_area = excluded.subject_area,
                credit_hours = excluded.credit_hours,
                is_active    = excluded.is_active
            """,
            {
                "id": course.id,
                "title": course.title,
                "subject_area": course.subject_area,
                "credit_hours": course.credit_hours,
                "is_active": int(course.is_active),
            },
        )
        conn.commit()
        conn.close()

    def get_course(self, course_id: str) -> Optional[Course]:
        conn = get_connection()
        row = conn.execute("SELECT * FROM courses WHERE id = ?", (course_id,)).fetchone()
        conn.close()
        if not row:
            return None
        return Course(
            id=row["id"],
            title=row["title"],
            subject_area=row["subject_area"],
            credit_hours=row["credit_hours"],
            is_active=bool(row["is_active"]),
        )

    def list_course_ids(self) -> Set[str]:
        conn = get_connection()
        rows = conn.execute("SELECT id FROM courses").fetchall()
        conn.close()
        return {r["id"] for r in rows}

    # ------------------------------------------------------------------
    # Prerequisite rules
    # ------------------------------------------------------------------
    def save_prerequisite_rule(self, rule: PrerequisiteRule) -> None:
        conn = get_connection()
        conn.execute(
            """
            INSERT INTO prerequisite_rules (
                id, course_id, rule_name, logic_operator, priority, parent_rule_id,
                is_active, effective_date, expiration_date, description
            ) VALUES (
                :id, :course_id, :rule_name, :logic_operator, :priority, :parent_rule_id,
                :is_active, :effective_date, :expiration_date, :description
            )
            ON CONFLICT(id) DO UPDATE SET
                course_id       = excluded.course_id,
                rule_name       = excluded.rule_name,
                logic_operator  = excluded.logic_operator,
                priority        = excluded.priority,
                parent_rule_id  = excluded.parent_rule_id,
                is_active       = excluded.is_active,
                effective_date  = excluded.effective_date,
                expiration_date = excluded.expiration_date,
                description     = excluded.description
            """,
            {
                "id": rule.id,
                "course_id": rule.course_id,
                "rule_name": rule.rule_name,
                "logic_operator": rule.logic_operator,
                "priority": rule.priority,
                "parent_rule_id": rule.parent_rule_id,
                "is_active": int(rule.is_active),
                "effective_date": codec.iso(rule.effective_date),
                "expiration_date": codec.iso(rule.expiration_date),
                "description": rule.description,
            },
        )
        conn.execute("DELETE FROM prerequisite_requirements WHERE rule_id = ?", (rule.id,))
        for requirement in rule.requirements:
            conn.execute(_INSERT_REQUIREMENT, _requirement_params(requirement))
        conn.commit()
        conn.close()

    def get_prerequisite_rule(self, rule_id: str) -> Optional[PrerequisiteRule]:
        conn = get_connection()
        row = conn.execute("SELECT * FROM prerequisite_rules WHERE id = ?", (rule_id,)).fetchone()
        if not row:
            conn.close()
            return None
        rule = _row_to_rule(row, self._requirements(conn, rule_id))
        conn.close()
        return rule

    def add_requirement(self, requirement: PrerequisiteRequirement) -> None:
        conn = get_connection()
        conn.execute(_INSERT_REQUIREMENT, _requirement_params(requirement))
        conn.commit()
        conn.close()

    # ------------------------------------------------------------------
    # Corequisites and restrictions
    # ------------------------------------------------------------------
    def save_corequisite_rule(self, rule: CorequisiteRule) -> None:
        conn = get_connection()
        conn.execute(
            """
            INSERT INTO corequisite_rules (
                id, course_id, rule_name, enforcement_type, is_active, effective_date, expiration_date
            ) VALUES (
                :id, :course_id, :rule_name, :enforcement_type, :is_active, :effective_date, :expiration_date
            )
            ON CONFLICT(id) DO UPDATE SET
                rule_name        = excluded.rule_name,
                enforcement_type = excluded.enforcement_type,
                is_active        = excluded.is_active,
                effective_date   = excluded.effective_date,
                expiration_date  = excluded.expiration_date
            """,
            {
                "id": rule.id,
                "course_id": rule.course_id,
                "rule_name": rule.rule_name,
                "enforcement_type": rule.enforcement_type,
                "is_active": int(rule.is_active),
                "effective_date": codec.iso(rule.effective_date),
                "expiration_date": codec.iso(rule.expiration_date),
            },
        )
        conn.execute("DELETE FROM corequisite_requirements WHERE rule_id = ?", (rule.id,))
        for req in rule.requirements:
            conn.execute(
                """
                INSERT INTO corequisite_requirements (
                    id, rule_id, required_course_id, relationship, failure_action, is_waivable, notes
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (req.id, rule.id, req.required_course_id, req.relationship,
                 req.failure_action, int(req.is_waivable), req.notes),
            )
        conn.commit()
        conn.close()

    def save_restriction(self, restriction: EnrollmentRestriction) -> None:
        conn = get_connection()
        conn.execute(
            """
            INSERT OR REPLACE INTO enrollment_restrictions (
                id, course_id, restriction_type, enforcement_level, priority,
                restriction_name, violation_message, is_active, effective_date, expiration_date,
                major_restrictions, class_standing_restrictions, permission_restrictions
            ) VALUES (
                :id, :course_id, :restriction_type, :enforcement_level, :priority,
                :restriction_name, :violation_message, :is_active, :effective_date, :expiration_date,
                :major_restrictions, :class_standing_restrictions, :permission_restrictions
            )
            """,
            {
                "id": restriction.id,
                "course_id": restriction.course_id,
                "restriction_type": restriction.restriction_type,
                "enforcement_level": restriction.enforcement_level,
                "priority": restriction.priority,
                "restriction_name": restriction.restriction_name,
                "violation_message": restriction.violation_message,
                "is_active": int(restriction.is_active),
                "effective_date": codec.iso(restriction.effective_date),
                "expiration_date": codec.iso(restriction.expiration_date),
                "major_restrictions": codec.list_to_json(restriction.major_restrictions),
                "class_standing_restrictions": codec.list_to_json(restriction.class_standing_restrictions),
                "permission_restrictions": codec.list_to_json(restriction.permission_restrictions),
            },
        )
        conn.commit()
        conn.close()

    # ------------------------------------------------------------------
    # Graph
    # ------------------------------------------------------------------
    def load_prerequisite_graph(self) -> Dict[str, Set[str]]:
        conn = get_connection()
        rows = conn.execute(
            """
            SELECT r.course_id, q.required_course_id
            FROM prerequisite_rules r
            JOIN prerequisite_requirements q ON q.rule_id = r.id
            WHERE r.is_active = 1 AND q.required_course_id IS NOT NULL
            """
        ).fetchall()
        conn.close()
        graph: Dict[str, Set[str]] = {}
        for row in rows:
            graph.setdefault(row["course_id"], set()).add(row["required_course_id"])
        return graph
