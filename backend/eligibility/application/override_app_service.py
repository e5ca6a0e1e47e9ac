"""Application service: override/waiver intake and the approval workflow."""
from __future__ import annotations
import logging
from typing import Optional

from eligibility.domain.common.result import Result
from eligibility.domain.eligibility import approval
from eligibility.domain.eligibility.enums import (
    AuthorityLevel,
    OverrideScope,
    OverrideStatus,
    OverrideType,
    WaiverScope,
    WaiverStatus,
    WaiverType,
)
from eligibility.domain.eligibility.models import PrerequisiteOverride, PrerequisiteWaiver
from eligibility.persistence.interfaces.exception_repository import ExceptionRepository

logger = logging.getLogger(__name__)


class OverrideAppService:
    def __init__(self, exceptions: ExceptionRepository):
        self._exceptions = exceptions

    # ------------------------------------------------------------------
    # INTAKE
    # ------------------------------------------------------------------
    def submit_override(self, override: PrerequisiteOverride) -> Result[PrerequisiteOverride]:
        if not override.student_id or not override.course_id:
            return Result.fail("Override needs a student and a course.")
        if not OverrideType.has(override.override_type):
            return Result.fail(f"'{override.override_type}' is not a valid override type.")
        if not OverrideScope.has(override.scope):
            return Result.fail(f"'{override.scope}' is not a valid override scope.")
        if not OverrideStatus.has(override.status):
            return Result.fail(f"'{override.status}' is not a valid override status.")
        numbers = [s.step_number for s in override.approval_steps]
        if len(numbers) != len(set(numbers)):
            return Result.fail("Approval step numbers must be unique.")
        bad = [s.required_authority for s in override.approval_steps
               if s.required_authority and not AuthorityLevel.has(s.required_authority)]
        if bad:
            return Result.fail(f"Unknown approval authority levels {bad}.")
        override.approval_steps.sort(key=lambda s: s.step_number)
        self._exceptions.save_override(override)
        return Result.ok(override)

    def submit_waiver(self, waiver: PrerequisiteWaiver) -> Result[PrerequisiteWaiver]:
        if not waiver.student_id or not waiver.course_id:
            return Result.fail("Waiver needs a student and a course.")
        if not WaiverType.has(waiver.waiver_type):
            return Result.fail(f"'{waiver.waiver_type}' is not a valid waiver type.")
        if not WaiverScope.has(waiver.scope):
            return Result.fail(f"'{waiver.scope}' is not a valid waiver scope.")
        if not WaiverStatus.has(waiver.status):
            return Result.fail(f"'{waiver.status}' is not a valid waiver status.")
        self._exceptions.save_waiver(waiver)
        return Result.ok(waiver)

    def get_override(self, override_id: str) -> Optional[PrerequisiteOverride]:
        return self._exceptions.get_override(override_id)

    # ------------------------------------------------------------------
    # APPROVAL WORKFLOW
    # ------------------------------------------------------------------
    def decide_step(
        self,
        override_id: str,
        step_number: int,
        decision: str,
        actor: str,
        comments: Optional[str] = None,
        delegate_to: Optional[str] = None,
    ) -> Result[PrerequisiteOverride]:
        override = self._exceptions.get_override(override_id)
        if override is None:
            return Result.not_found(f"Override '{override_id}' not found.")

        result = approval.decide_step(override, step_number, decision, actor, comments, delegate_to)
        if not result.is_success:
            return Result.fail(result.error)

        self._exceptions.save_override(result.value)
        logger.info(
            "Override %s step %d %s by %s; override now %s",
            override_id, step_number, decision, actor, result.value.status,
        )
        return Result.ok(result.value)
