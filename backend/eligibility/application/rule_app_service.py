"""Application service: rule authoring and circular dependency detection."""
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import List, Optional

from eligibility.domain.common.result import CONFLICT, Result
from eligibility.domain.eligibility import cycles
from eligibility.domain.eligibility import rules as rule_checks
from eligibility.domain.eligibility.cycles import CircularDependencyDetector
from eligibility.domain.eligibility.enums import RequirementType
from eligibility.domain.eligibility.models import (
    CircularDependencyResult,
    CorequisiteRule,
    Course,
    CourseParams,
    EnrollmentRestriction,
    PrerequisiteRequirement,
    PrerequisiteRule,
)
from eligibility.persistence.interfaces.circular_dependency_repository import CircularDependencyRepository
from eligibility.persistence.interfaces.rule_repository import RuleRepository

logger = logging.getLogger(__name__)


def _required_course(requirement: PrerequisiteRequirement) -> Optional[str]:
    if requirement.requirement_type == RequirementType.COMPLETED_COURSE and isinstance(
        requirement.params, CourseParams
    ):
        return requirement.params.required_course_id
    return None


class RuleAppService:
    def __init__(self, rules: RuleRepository, cycle_results: CircularDependencyRepository):
        self._rules = rules
        self._cycle_results = cycle_results
        self._detector = CircularDependencyDetector()

    # ------------------------------------------------------------------
    # COURSES
    # ------------------------------------------------------------------
    def save_course(self, course: Course) -> Result[Course]:
        if not course.id:
            return Result.fail("Course id is required.")
        self._rules.save_course(course)
        return Result.ok(course)

    # ------------------------------------------------------------------
    # RULE AUTHORING
    # ------------------------------------------------------------------
    def save_prerequisite_rule(self, rule: PrerequisiteRule) -> Result[PrerequisiteRule]:
        if self._rules.get_course(rule.course_id) is None:
            return Result.not_found(f"Course '{rule.course_id}' not found.")
        check = rule_checks.validate_prerequisite_rule(rule, self._rules.list_course_ids())
        if not check.is_success:
            return Result.fail_many(check.errors)

        graph = self._rules.load_prerequisite_graph()
        for requirement in rule.requirements:
            guard = self._cycle_guard(graph, rule.course_id, requirement)
            if guard is not None:
                return guard
        self._rules.save_prerequisite_rule(rule)
        logger.info("Saved prerequisite rule %s for %s", rule.id, rule.course_id)
        return Result.ok(rule)

    def add_requirement(self, rule_id: str, requirement: PrerequisiteRequirement) -> Result[PrerequisiteRequirement]:
        rule = self._rules.get_prerequisite_rule(rule_id)
        if rule is None:
            return Result.not_found(f"Prerequisite rule '{rule_id}' not found.")
        requirement.rule_id = rule_id
        if any(r.id == requirement.id for r in rule.requirements):
            return Result.fail(f"Requirement '{requirement.id}' already exists on rule '{rule_id}'.")

        errors = rule_checks.validate_requirement(requirement, self._rules.list_course_ids())
        if errors:
            return Result.fail_many(errors)
        guard = self._cycle_guard(self._rules.load_prerequisite_graph(), rule.course_id, requirement)
        if guard is not None:
            return guard

        self._rules.add_requirement(requirement)
        logger.info("Added requirement %s to rule %s", requirement.id, rule_id)
        return Result.ok(requirement)

    @staticmethod
    def _cycle_guard(graph, course_id: str, requirement: PrerequisiteRequirement) -> Optional[Result]:
        required = _required_course(requirement)
        if required is None or not cycles.would_create_cycle(graph, course_id, required):
            return None
        logger.warning("Rejected requirement %s: %s requiring %s would close a cycle",
                       requirement.id, course_id, required)
        return Result.fail(
            f"Requiring '{required}' for '{course_id}' would create a circular prerequisite dependency.",
            code=CONFLICT,
        )

    def save_corequisite_rule(self, rule: CorequisiteRule) -> Result[CorequisiteRule]:
        if self._rules.get_course(rule.course_id) is None:
            return Result.not_found(f"Course '{rule.course_id}' not found.")
        check = rule_checks.validate_corequisite_rule(rule, self._rules.list_course_ids())
        if not check.is_success:
            return Result.fail_many(check.errors)
        self._rules.save_corequisite_rule(rule)
        return Result.ok(rule)

    def save_restriction(self, restriction: EnrollmentRestriction) -> Result[EnrollmentRestriction]:
        if self._rules.get_course(restriction.course_id) is None:
            return Result.not_found(f"Course '{restriction.course_id}' not found.")
        check = rule_checks.validate_restriction(restriction)
        if not check.is_success:
            return Result.fail_many(check.errors)
        self._rules.save_restriction(restriction)
        return Result.ok(restriction)

    # ------------------------------------------------------------------
    # CIRCULAR DEPENDENCIES
    # ------------------------------------------------------------------
    def detect_for_course(self, course_id: str) -> Result[CircularDependencyResult]:
        if self._rules.get_course(course_id) is None:
            return Result.not_found(f"Course '{course_id}' not found.")
        result = self._detector.detect(self._rules.load_prerequisite_graph(), course_id)
        self._cycle_results.save(result)
        return Result.ok(result)

    def scan_all_courses(self) -> List[CircularDependencyResult]:
        """Detect on every course that has prerequisite rules. Runs as a background batch."""
        graph = self._rules.load_prerequisite_graph()
        found = []
        for course_id in sorted(graph):
            result = self._detector.detect(graph, course_id)
            self._cycle_results.save(result)
            found.append(result)
        cyclic = sum(1 for r in found if r.has_circular_dependency)
        logger.info("Circular dependency scan: %d courses checked, %d with cycles", len(found), cyclic)
        return found

    def resolve(self, result_id: str) -> Result[CircularDependencyResult]:
        result = self._cycle_results.get_by_id(result_id)
        if result is None:
            return Result.not_found(f"Circular dependency result '{result_id}' not found.")
        if not result.has_circular_dependency:
            return Result.fail(f"Result '{result_id}' reported no circular dependency.")
        if result.is_resolved:
            return Result.fail(f"Result '{result_id}' is already resolved.")
        if cycles.find_cycle_path(self._rules.load_prerequisite_graph(), result.course_id) is not None:
            return Result.fail(
                f"Prerequisites of '{result.course_id}' still form a cycle; change the rules first.",
                code=CONFLICT,
            )
        result.is_resolved = True
        result.resolution_date = datetime.now(timezone.utc)
        self._cycle_results.save(result)
        logger.info("Circular dependency %s on %s resolved", result.id, result.course_id)
        return Result.ok(result)
