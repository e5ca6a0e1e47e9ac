"""Override approval workflow. Enforces the ordered step state machine."""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional

from eligibility.domain.common.result import Result
from eligibility.domain.eligibility.enums import ApprovalStepStatus, OverrideStatus
from eligibility.domain.eligibility.models import OverrideApprovalStep, PrerequisiteOverride

# Decisions an approver may record on a step
VALID_DECISIONS = {
    ApprovalStepStatus.APPROVED.value,
    ApprovalStepStatus.REJECTED.value,
    ApprovalStepStatus.DELEGATED.value,
    ApprovalStepStatus.SKIPPED.value,
    ApprovalStepStatus.ON_HOLD.value,
}

# Steps in these states never change again
TERMINAL_STEP_STATUSES = {
    ApprovalStepStatus.APPROVED.value,
    ApprovalStepStatus.REJECTED.value,
    ApprovalStepStatus.SKIPPED.value,
}

# Override statuses that end the workflow
CLOSED_OVERRIDE_STATUSES = {
    OverrideStatus.DENIED.value,
    OverrideStatus.REVOKED.value,
    OverrideStatus.EXPIRED.value,
}

_CLEARED = {ApprovalStepStatus.APPROVED.value, ApprovalStepStatus.SKIPPED.value}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def is_workflow_rejected(override: PrerequisiteOverride) -> bool:
    return any(s.status == ApprovalStepStatus.REJECTED for s in override.approval_steps)


def is_workflow_complete(override: PrerequisiteOverride) -> bool:
    """All mandatory steps approved and no step rejected; vacuously true without steps."""
    if is_workflow_rejected(override):
        return False
    return all(
        s.status == ApprovalStepStatus.APPROVED
        for s in override.approval_steps
        if s.is_mandatory
    )


def next_pending_step(override: PrerequisiteOverride) -> Optional[OverrideApprovalStep]:
    for step in sorted(override.approval_steps, key=lambda s: s.step_number):
        if step.status not in TERMINAL_STEP_STATUSES:
            return step
    return None


def validate_step_decision(
    override: PrerequisiteOverride,
    step_number: int,
    decision: str,
    delegate_to: Optional[str] = None,
) -> Result[OverrideApprovalStep]:
    """
    Steps are decided in order: every earlier mandatory step must already be
    approved or skipped. Returns Result.ok(step) or Result.fail(reason).
    """
    if override.status in CLOSED_OVERRIDE_STATUSES:
        return Result.fail(f"Override '{override.id}' is {override.status}. No further decisions allowed.")

    if decision not in VALID_DECISIONS:
        return Result.fail(f"'{decision}' is not a valid decision. Must be one of {sorted(VALID_DECISIONS)}.")

    step = next((s for s in override.approval_steps if s.step_number == step_number), None)
    if step is None:
        return Result.fail(f"Override '{override.id}' has no approval step {step_number}.")

    if step.status in TERMINAL_STEP_STATUSES:
        return Result.fail(f"Step {step_number} is already {step.status}.")

    blocking = [
        s for s in override.approval_steps
        if s.step_number < step_number and s.is_mandatory and s.status not in _CLEARED
    ]
    if blocking:
        return Result.fail(
            f"Step {step_number} cannot be decided before step {blocking[0].step_number} "
            f"('{blocking[0].step_name}') is approved."
        )

    if decision == ApprovalStepStatus.DELEGATED:
        if not step.can_delegate:
            return Result.fail(f"Step {step_number} cannot be delegated.")
        if not delegate_to:
            return Result.fail("Delegation requires a delegate.")

    if decision == ApprovalStepStatus.SKIPPED and step.is_mandatory:
        return Result.fail(f"Step {step_number} is mandatory and cannot be skipped.")

    return Result.ok(step)


def decide_step(
    override: PrerequisiteOverride,
    step_number: int,
    decision: str,
    actor: str,
    comments: Optional[str] = None,
    delegate_to: Optional[str] = None,
) -> Result[PrerequisiteOverride]:
    """Record one decision and roll the override status forward."""
    validation = validate_step_decision(override, step_number, decision, delegate_to)
    if not validation.is_success:
        return Result.fail(validation.error)

    step = validation.value
    now = _now()
    step.status = decision
    step.comments = comments
    if decision == ApprovalStepStatus.DELEGATED:
        step.delegated_to = delegate_to
        step.assigned_to = delegate_to
    else:
        step.decided_by = actor
        step.decided_at = now

    if decision == ApprovalStepStatus.REJECTED:
        override.status = OverrideStatus.DENIED.value
    elif is_workflow_complete(override):
        override.status = OverrideStatus.APPROVED.value
        override.approved_by = actor
        override.approved_date = now
    else:
        override.status = OverrideStatus.UNDER_REVIEW.value
    return Result.ok(override)
