"""Override / waiver resolver.

Applies student-specific exceptions to failing check results. Only
failures are touched, so applying an exception can turn a failing check
into a passing one but never the reverse. Waivers are applied before
overrides; a check already waived is not overridden as well.
"""
from __future__ import annotations
import logging
from dataclasses import replace
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Set, Union

from eligibility.domain.eligibility import approval
from eligibility.domain.eligibility.combinator import RuleTree, aggregate_tree, combine, is_passing
from eligibility.domain.eligibility.enums import (
    CheckStatus,
    OverrideStatus,
    RestrictionCheckStatus,
    WaiverScope,
    WaiverStatus,
)
from eligibility.domain.eligibility.models import (
    CheckResults,
    CorequisiteCheckResult,
    ExceptionOutcome,
    PrerequisiteCheckResult,
    PrerequisiteOverride,
    PrerequisiteRule,
    PrerequisiteWaiver,
    RestrictionCheckResult,
)

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Applicability
# ------------------------------------------------------------------
def in_scope(exception: Union[PrerequisiteOverride, PrerequisiteWaiver], student_id: str, course_id: str) -> bool:
    return exception.student_id == student_id and exception.course_id == course_id


def override_inapplicability(
    override: PrerequisiteOverride, student_id: str, course_id: str, term_id: str, as_of: date
) -> Optional[str]:
    """Why an override cannot be used right now, or None if it can."""
    if not in_scope(override, student_id, course_id):
        return "scoped to another student or course"
    if override.term_id is not None and override.term_id != term_id:
        return "scoped to another term"
    if not override.is_active:
        return "inactive"
    if override.status != OverrideStatus.APPROVED:
        return f"status is {override.status}"
    if approval.is_workflow_rejected(override):
        return "approval workflow rejected"
    if not approval.is_workflow_complete(override):
        return "approval workflow incomplete"
    if override.expiration_date is not None and override.expiration_date < as_of:
        return f"expired on {override.expiration_date.isoformat()}"
    if override.requires_periodic_review:
        due = override.next_review_date
        if due is None and override.last_review_date and override.review_frequency_days:
            due = override.last_review_date + timedelta(days=override.review_frequency_days)
        if due is None or due < as_of:
            return "periodic review overdue"
    return None


def waiver_inapplicability(
    waiver: PrerequisiteWaiver, student_id: str, course_id: str, as_of: date
) -> Optional[str]:
    if not in_scope(waiver, student_id, course_id):
        return "scoped to another student or course"
    if not waiver.is_active:
        return "inactive"
    if waiver.status != WaiverStatus.APPROVED:
        return f"status is {waiver.status}"
    if not waiver.is_permanent and waiver.expiration_date is not None and waiver.expiration_date < as_of:
        return f"expired on {waiver.expiration_date.isoformat()}"
    return None


_PENDING_OVERRIDE = {OverrideStatus.PENDING.value, OverrideStatus.UNDER_REVIEW.value}
_PENDING_WAIVER = {
    WaiverStatus.PENDING.value,
    WaiverStatus.UNDER_REVIEW.value,
    WaiverStatus.DOCUMENTATION_REQUIRED.value,
}


# ------------------------------------------------------------------
# Coverage
# ------------------------------------------------------------------
class _Coverage:
    """Which checks one exception covers, completely or partially."""

    def __init__(self) -> None:
        self.prerequisite: Dict[str, Optional[List[str]]] = {}
        self.corequisite: Dict[str, Optional[List[str]]] = {}
        self.restriction: Dict[str, Optional[List[str]]] = {}
        self.everything = False

    @staticmethod
    def add(target: Dict[str, Optional[List[str]]], key: str, complete: bool, conditions: List[str]) -> None:
        if complete:
            target[key] = None
        elif target.get(key, []) is not None:
            target.setdefault(key, []).extend(conditions)

    def conditions_for(self, target: Dict[str, Optional[List[str]]], key: str):
        """None = complete coverage, list = partial coverage, missing key = not covered."""
        if self.everything:
            return None
        return target.get(key, [])


def _override_coverage(override: PrerequisiteOverride) -> _Coverage:
    cov = _Coverage()
    if not override.rule_mappings:
        cov.everything = True
        return cov
    for m in override.rule_mappings:
        if m.prerequisite_rule_id:
            cov.add(cov.prerequisite, m.prerequisite_rule_id, m.is_complete, m.partial_conditions)
        if m.corequisite_rule_id:
            cov.add(cov.corequisite, m.corequisite_rule_id, m.is_complete, m.partial_conditions)
        if m.restriction_id:
            cov.add(cov.restriction, m.restriction_id, m.is_complete, m.partial_conditions)
    return cov


def _waiver_coverage(waiver: PrerequisiteWaiver, results: CheckResults) -> _Coverage:
    cov = _Coverage()
    for m in waiver.rule_mappings:
        if m.prerequisite_rule_id:
            cov.add(cov.prerequisite, m.prerequisite_rule_id, m.is_complete, m.partial_conditions)
        if m.corequisite_rule_id:
            cov.add(cov.corequisite, m.corequisite_rule_id, m.is_complete, m.partial_conditions)
    if waiver.scope in (WaiverScope.ALL_PREREQUISITES, WaiverScope.BOTH):
        for r in results.prerequisite_results:
            cov.prerequisite[r.rule_id] = None
    if waiver.scope in (WaiverScope.COREQUISITES, WaiverScope.BOTH):
        for r in results.corequisite_results:
            cov.corequisite[r.rule_id] = None
    return cov


# ------------------------------------------------------------------
# Resolver
# ------------------------------------------------------------------
class ExceptionResolver:
    """Applies approved, current overrides and waivers to failing checks.

    A prerequisite rule counts as failing when its aggregate over the rule
    tree fails, so a parent rule whose own requirements pass but whose
    children do not can still be covered by a mapping on the parent.
    """

    def apply_exceptions(
        self,
        student_id: str,
        course_id: str,
        term_id: str,
        check_results: CheckResults,
        overrides: Sequence[PrerequisiteOverride],
        waivers: Sequence[PrerequisiteWaiver],
        rules: Dict[str, PrerequisiteRule],
        as_of: date,
        tree: Optional[RuleTree] = None,
    ) -> ExceptionOutcome:
        results = CheckResults(
            prerequisite_results=list(check_results.prerequisite_results),
            corequisite_results=list(check_results.corequisite_results),
            restriction_results=list(check_results.restriction_results),
            configuration_issues=list(check_results.configuration_issues),
        )
        outcome = ExceptionOutcome(results=results)

        for waiver in sorted(waivers, key=lambda w: w.id):
            if not in_scope(waiver, student_id, course_id):
                continue
            reason = waiver_inapplicability(waiver, student_id, course_id, as_of)
            if reason is not None:
                self._note_unusable(outcome, "Waiver", waiver.id, reason, waiver.status in _PENDING_WAIVER)
                continue
            cov = _waiver_coverage(waiver, results)
            changed = self._apply(results, cov, waiver.id, CheckStatus.WAIVED.value, rules, tree, restrictions=False)
            if changed:
                outcome.applied_waiver_ids.append(waiver.id)

        for override in sorted(overrides, key=lambda o: o.id):
            if not in_scope(override, student_id, course_id):
                continue
            reason = override_inapplicability(override, student_id, course_id, term_id, as_of)
            if reason is not None:
                pending = override.status in _PENDING_OVERRIDE and not approval.is_workflow_rejected(override)
                self._note_unusable(outcome, "Override", override.id, reason, pending)
                continue
            cov = _override_coverage(override)
            changed = self._apply(results, cov, override.id, CheckStatus.OVERRIDDEN.value, rules, tree,
                                  restrictions=True)
            if changed:
                outcome.applied_override_ids.append(override.id)
        return outcome

    @staticmethod
    def _note_unusable(outcome: ExceptionOutcome, kind: str, exception_id: str, reason: str, pending: bool) -> None:
        logger.info("%s %s not applied: %s", kind, exception_id, reason)
        if pending:
            outcome.pending_exception_ids.append(exception_id)
        else:
            outcome.warnings.append(f"{kind} {exception_id} not applied: {reason}")

    def _apply(
        self,
        results: CheckResults,
        cov: _Coverage,
        exception_id: str,
        status: str,
        rules: Dict[str, PrerequisiteRule],
        tree: Optional[RuleTree],
        restrictions: bool,
    ) -> bool:
        changed = False

        failing = _failing_rule_ids(results, tree)
        for i, r in enumerate(results.prerequisite_results):
            if r.rule_id not in failing or r.status in (CheckStatus.OVERRIDDEN, CheckStatus.WAIVED):
                continue
            if r.status == CheckStatus.ERROR:
                continue
            if not cov.everything and r.rule_id not in cov.prerequisite:
                continue
            has_children = tree is not None and r.rule_id in tree.nodes and bool(tree.nodes[r.rule_id].children)
            updated = self._apply_prerequisite(r, cov.conditions_for(cov.prerequisite, r.rule_id),
                                               exception_id, status, rules.get(r.rule_id), has_children)
            if updated is not r:
                results.prerequisite_results[i] = updated
                changed = True

        for i, c in enumerate(results.corequisite_results):
            if c.is_satisfied:
                continue
            if c.status in (CheckStatus.OVERRIDDEN, CheckStatus.WAIVED):
                continue
            if not cov.everything and c.rule_id not in cov.corequisite:
                continue
            updated = self._apply_corequisite(c, cov.conditions_for(cov.corequisite, c.rule_id), exception_id, status)
            if updated is not c:
                results.corequisite_results[i] = updated
                changed = True

        if restrictions:
            for i, x in enumerate(results.restriction_results):
                if not x.is_violated or x.status == RestrictionCheckStatus.OVERRIDDEN:
                    continue
                if not x.can_be_overridden:
                    continue
                if not cov.everything and x.restriction_id not in cov.restriction:
                    continue
                updated = self._apply_restriction(x, cov.conditions_for(cov.restriction, x.restriction_id),
                                                  exception_id)
                if updated is not x:
                    results.restriction_results[i] = updated
                    changed = True
        return changed

    @staticmethod
    def _apply_prerequisite(
        result: PrerequisiteCheckResult,
        conditions: Optional[List[str]],
        exception_id: str,
        status: str,
        rule: Optional[PrerequisiteRule],
        has_children: bool = False,
    ) -> PrerequisiteCheckResult:
        if conditions is None:
            note = f"{status} by {exception_id}"
            return replace(
                result,
                status=status,
                is_satisfied=True,
                excepted_by=exception_id,
                failure_reason=f"{result.failure_reason} ({note})" if result.failure_reason else note,
            )
        covered = set(conditions)
        requirement_results = []
        for rr in result.requirement_results:
            if not rr.is_satisfied and rr.requirement_id in covered:
                rr = replace(rr, is_satisfied=True, excepted_by=exception_id, satisfaction_method=status)
            requirement_results.append(rr)
        if requirement_results == result.requirement_results or rule is None:
            return result
        recombined = combine(rule, requirement_results)
        # Partial coverage only reaches the rule's own requirements; child rules still count
        if recombined.is_satisfied and has_children:
            return replace(recombined, excepted_by=exception_id, is_blocking=result.is_blocking)
        if recombined.is_satisfied:
            return replace(recombined, status=status, excepted_by=exception_id,
                           is_blocking=result.is_blocking)
        return replace(recombined, is_blocking=result.is_blocking)

    @staticmethod
    def _apply_corequisite(
        result: CorequisiteCheckResult, conditions: Optional[List[str]], exception_id: str, status: str
    ) -> CorequisiteCheckResult:
        if conditions is None:
            remaining: List[str] = []
        else:
            remaining = [c for c in result.unmet_courses if c not in set(conditions)]
            if remaining == result.unmet_courses:
                return result
        if remaining:
            return replace(result, unmet_courses=remaining)
        return replace(
            result,
            status=status,
            is_satisfied=True,
            is_blocking=False,
            unmet_courses=[],
            excepted_by=exception_id,
        )

    @staticmethod
    def _apply_restriction(
        result: RestrictionCheckResult, conditions: Optional[List[str]], exception_id: str
    ) -> RestrictionCheckResult:
        if conditions is None:
            remaining: List[str] = []
        else:
            remaining = [c for c in result.violated_conditions if c not in set(conditions)]
            if remaining == result.violated_conditions:
                return result
        if remaining:
            return replace(result, violated_conditions=remaining)
        return replace(
            result,
            status=RestrictionCheckStatus.OVERRIDDEN.value,
            is_violated=False,
            is_blocking=False,
            violated_conditions=[],
            excepted_by=exception_id,
        )


def _failing_rule_ids(results: CheckResults, tree: Optional[RuleTree]) -> Set[str]:
    by_id = {r.rule_id: r for r in results.prerequisite_results}
    if tree is None:
        return {rule_id for rule_id, r in by_id.items() if not is_passing(r)}
    return {rule_id for rule_id, passed in aggregate_tree(tree, by_id).items() if not passed}
