"""Domain service: pure eligibility evaluation for one (student, course, term).

No I/O. The application layer loads inputs through the repositories, calls
:meth:`EligibilityDomainService.validate` and persists what it returns.
"""
from __future__ import annotations
import logging
import time
import uuid
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Sequence

from eligibility.domain.eligibility import rules as rule_checks
from eligibility.domain.eligibility.combinator import RuleTree, aggregate_tree, combine, is_passing
from eligibility.domain.eligibility.enums import CheckStatus, ValidationStage, ValidationStatus
from eligibility.domain.eligibility.evaluator import RequirementEvaluator
from eligibility.domain.eligibility.exceptions import ExceptionResolver
from eligibility.domain.eligibility.models import (
    ApplicableRules,
    CheckResults,
    CircularDependencyResult,
    ConfigurationIssue,
    ExceptionOutcome,
    PrerequisiteCheckResult,
    PrerequisiteOverride,
    PrerequisiteRule,
    PrerequisiteValidationResult,
    PrerequisiteWaiver,
    StudentRecord,
)
from eligibility.domain.eligibility.restrictions import check_corequisite, check_restriction

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


def is_course_frozen(cycle: Optional[CircularDependencyResult]) -> bool:
    """An unresolved circular dependency freezes enrollment in the course."""
    return cycle is not None and cycle.has_circular_dependency and not cycle.is_resolved


class EligibilityDomainService:
    """
    Runs the evaluating, combining and exception-resolution stages and
    assembles the validation result.
    """

    def __init__(self, engine_version: str = ""):
        self._evaluator = RequirementEvaluator()
        self._resolver = ExceptionResolver()
        self._engine_version = engine_version

    # ------------------------------------------------------------------
    # EVALUATING
    # ------------------------------------------------------------------
    def evaluate_rules(
        self,
        course_id: str,
        term_id: str,
        applicable: ApplicableRules,
        record: StudentRecord,
        as_of: date,
        known_courses: Optional[set[str]] = None,
    ) -> CheckResults:
        results = CheckResults()
        for rule in applicable.prerequisite_rules:
            check = rule_checks.validate_prerequisite_rule(rule, known_courses)
            if not check.is_success:
                results.configuration_issues.extend(ConfigurationIssue(rule.id, e) for e in check.errors)
                results.prerequisite_results.append(self._error_result(rule))
                continue
            requirement_results = [
                self._evaluator.evaluate(req, record, as_of, course_id)
                for req in sorted(rule.requirements, key=lambda r: r.sequence_order)
            ]
            # COMBINING happens per rule right after its requirements are evaluated
            results.prerequisite_results.append(combine(rule, requirement_results))

        for corequisite in applicable.corequisite_rules:
            check = rule_checks.validate_corequisite_rule(corequisite, known_courses)
            if not check.is_success:
                results.configuration_issues.extend(ConfigurationIssue(corequisite.id, e) for e in check.errors)
                continue
            results.corequisite_results.append(check_corequisite(corequisite, record, term_id))

        for restriction in applicable.restrictions:
            check = rule_checks.validate_restriction(restriction)
            if not check.is_success:
                results.configuration_issues.extend(ConfigurationIssue(restriction.id, e) for e in check.errors)
                continue
            results.restriction_results.append(check_restriction(restriction, record, as_of))

        for issue in results.configuration_issues:
            logger.warning("Configuration problem on course %s: %s", course_id, issue.message)
        return results

    @staticmethod
    def _error_result(rule: PrerequisiteRule) -> PrerequisiteCheckResult:
        return PrerequisiteCheckResult(
            rule_id=rule.id,
            rule_name=rule.rule_name,
            logic_operator=rule.logic_operator,
            priority=rule.priority,
            parent_rule_id=rule.parent_rule_id,
            status=CheckStatus.ERROR.value,
            is_satisfied=False,
            satisfaction_percentage=0.0,
            failure_reason="Rule configuration error; reported to rule administrators",
        )

    # ------------------------------------------------------------------
    # COMBINING (rule hierarchy)
    # ------------------------------------------------------------------
    @staticmethod
    def mark_blocking(results: CheckResults, tree: RuleTree) -> None:
        """Root rules gate enrollment; children only act through their parent."""
        roots = set(tree.roots) | set(tree.cyclic)
        results.prerequisite_results = [
            replace(r, is_blocking=r.rule_id in roots) for r in results.prerequisite_results
        ]
        for rule_id in tree.cyclic:
            results.configuration_issues.append(
                ConfigurationIssue(rule_id, f"Rule {rule_id}: parent rule chain is circular")
            )

    # ------------------------------------------------------------------
    # Full pipeline
    # ------------------------------------------------------------------
    def validate(
        self,
        student_id: str,
        course_id: str,
        term_id: str,
        applicable: ApplicableRules,
        record: StudentRecord,
        overrides: Sequence[PrerequisiteOverride],
        waivers: Sequence[PrerequisiteWaiver],
        cycle: Optional[CircularDependencyResult],
        as_of: date,
        known_courses: Optional[set[str]] = None,
    ) -> PrerequisiteValidationResult:
        started = time.perf_counter()

        logger.debug("Validation %s/%s/%s: %s", student_id, course_id, term_id, ValidationStage.EVALUATING.value)
        results = self.evaluate_rules(course_id, term_id, applicable, record, as_of, known_courses)

        logger.debug("Validation %s/%s/%s: %s", student_id, course_id, term_id, ValidationStage.COMBINING.value)
        tree = RuleTree.build(applicable.prerequisite_rules)
        self.mark_blocking(results, tree)

        logger.debug(
            "Validation %s/%s/%s: %s", student_id, course_id, term_id, ValidationStage.EXCEPTION_RESOLUTION.value
        )
        rules_by_id = {r.id: r for r in applicable.prerequisite_rules}
        outcome = self._resolver.apply_exceptions(
            student_id, course_id, term_id, results, overrides, waivers, rules_by_id, as_of, tree
        )
        aggregates = aggregate_tree(tree, {r.rule_id: r for r in outcome.results.prerequisite_results})

        result = self._assemble(student_id, course_id, term_id, outcome, aggregates, cycle, as_of)
        result.processing_time_ms = int((time.perf_counter() - started) * 1000)
        return result

    def _assemble(
        self,
        student_id: str,
        course_id: str,
        term_id: str,
        outcome: ExceptionOutcome,
        aggregates: Dict[str, bool],
        cycle: Optional[CircularDependencyResult],
        as_of: date,
    ) -> PrerequisiteValidationResult:
        results = outcome.results
        unmet: List[str] = []

        failing_rules = [
            r for r in results.prerequisite_results
            if r.is_blocking and not aggregates.get(r.rule_id, is_passing(r))
        ]
        for r in failing_rules:
            if r.status == CheckStatus.ERROR:
                continue
            unmet.extend(self._rule_guidance(r, results.prerequisite_results))

        failing_coreqs = [c for c in results.corequisite_results if c.is_blocking and not c.is_satisfied]
        unmet.extend(c.failure_reason for c in failing_coreqs if c.failure_reason)

        failing_restrictions = [x for x in results.restriction_results if x.is_blocking and x.is_violated]
        unmet.extend(x.violation_reason for x in failing_restrictions if x.violation_reason)

        warnings = list(outcome.warnings)
        warnings.extend(
            c.failure_reason for c in results.corequisite_results
            if c.unmet_courses and not c.is_blocking and c.failure_reason
        )
        warnings.extend(
            x.violation_reason for x in results.restriction_results
            if x.is_violated and not x.is_blocking and x.violation_reason
        )

        frozen = is_course_frozen(cycle)
        if frozen:
            unmet.append(f"Enrollment in {course_id} is frozen until a circular prerequisite dependency is resolved")

        config_error = bool(results.configuration_issues)
        can_enroll = not (failing_rules or failing_coreqs or failing_restrictions or frozen or config_error)

        if config_error:
            status = ValidationStatus.VALIDATION_ERROR
        elif can_enroll and outcome.applied_override_ids:
            status = ValidationStatus.OVERRIDDEN
        elif can_enroll and outcome.applied_waiver_ids:
            status = ValidationStatus.WAIVED
        elif can_enroll:
            status = ValidationStatus.SATISFIED
        elif outcome.pending_exception_ids:
            status = ValidationStatus.PENDING_APPROVAL
        elif any(r.satisfaction_percentage > 0 for r in failing_rules) and not (
            failing_coreqs or failing_restrictions or frozen
        ):
            status = ValidationStatus.PARTIALLY_SATISFIED
        else:
            status = ValidationStatus.NOT_SATISFIED

        if config_error:
            failure_reason = "Eligibility rules for this course could not be evaluated"
        else:
            failure_reason = "; ".join(unmet) if unmet else None

        return PrerequisiteValidationResult(
            id=_new_id(),
            student_id=student_id,
            course_id=course_id,
            term_id=term_id,
            validation_date=datetime.now(timezone.utc),
            as_of=as_of,
            overall_status=status.value,
            can_enroll=can_enroll,
            failure_reason=failure_reason,
            unmet_requirements=unmet,
            prerequisite_results=results.prerequisite_results,
            corequisite_results=results.corequisite_results,
            restriction_results=results.restriction_results,
            applied_override_ids=outcome.applied_override_ids,
            applied_waiver_ids=outcome.applied_waiver_ids,
            configuration_issues=results.configuration_issues,
            warnings=warnings,
            blocked_by_circular_dependency=frozen,
            engine_version=self._engine_version,
        )

    @staticmethod
    def _rule_guidance(rule: PrerequisiteCheckResult, all_results: List[PrerequisiteCheckResult]) -> List[str]:
        """Actionable messages for a failing root rule, including failing descendants."""
        messages: List[str] = []
        if rule.failure_reason and not is_passing(rule):
            messages.append(rule.failure_reason)
        children = [r for r in all_results if r.parent_rule_id == rule.rule_id and r.rule_id != rule.rule_id]
        for child in children:
            if not is_passing(child) and child.failure_reason:
                messages.append(child.failure_reason)
        if not messages:
            messages.append(f"Prerequisite rule '{rule.rule_name}' is not met")
        return messages
