"""Approval workflow state machine tests."""
from builders import approved_override, steps
from eligibility.domain.eligibility import approval


def _pending(*names, **kwargs):
    return approved_override(status="pending", approval_steps=steps(*names, **kwargs))


def test_steps_are_decided_in_order():
    override = _pending("Advisor", "Chair")
    result = approval.decide_step(override, 2, "approved", "chair-1")
    assert not result.is_success
    assert "before step 1" in result.error
    assert override.approval_steps[1].status == "pending"


def test_partial_approval_moves_to_under_review():
    override = _pending("Advisor", "Chair")
    result = approval.decide_step(override, 1, "approved", "advisor-1", comments="ok")
    assert result.is_success
    assert override.status == "under_review"
    assert override.approval_steps[0].decided_by == "advisor-1"
    assert override.approval_steps[0].decided_at is not None
    assert approval.next_pending_step(override).step_number == 2


def test_completing_all_steps_approves_override():
    override = _pending("Advisor", "Chair")
    approval.decide_step(override, 1, "approved", "advisor-1")
    approval.decide_step(override, 2, "approved", "chair-1")
    assert override.status == "approved"
    assert override.approved_by == "chair-1"
    assert approval.is_workflow_complete(override)
    assert approval.next_pending_step(override) is None


def test_rejection_denies_and_is_final():
    override = _pending("Advisor", "Chair")
    approval.decide_step(override, 1, "rejected", "advisor-1")
    assert override.status == "denied"
    assert approval.is_workflow_rejected(override)

    again = approval.decide_step(override, 2, "approved", "chair-1")
    assert not again.is_success
    assert "denied" in again.error


def test_decided_step_cannot_change():
    override = _pending("Advisor", "Chair")
    approval.decide_step(override, 1, "approved", "advisor-1")
    result = approval.decide_step(override, 1, "rejected", "advisor-1")
    assert result.error == "Step 1 is already approved."


def test_invalid_decision():
    result = approval.decide_step(_pending("Advisor"), 1, "maybe", "advisor-1")
    assert not result.is_success
    assert "not a valid decision" in result.error


def test_unknown_step():
    result = approval.decide_step(_pending("Advisor"), 7, "approved", "advisor-1")
    assert result.error == "Override 'O1' has no approval step 7."


def test_mandatory_step_cannot_be_skipped():
    result = approval.decide_step(_pending("Advisor"), 1, "skipped", "advisor-1")
    assert result.error == "Step 1 is mandatory and cannot be skipped."


def test_optional_step_skipped_then_override_approved():
    override = _pending("Dean review", mandatory=False)
    override.approval_steps.insert(0, steps("Advisor")[0])
    override.approval_steps[1].step_number = 2
    approval.decide_step(override, 1, "approved", "advisor-1")
    assert override.status == "approved"

    result = approval.decide_step(override, 2, "skipped", "dean-1")
    assert result.is_success
    assert approval.next_pending_step(override) is None


def test_delegation():
    override = _pending("Advisor")
    denied = approval.decide_step(override, 1, "delegated", "advisor-1", delegate_to="advisor-2")
    assert denied.error == "Step 1 cannot be delegated."

    override.approval_steps[0].can_delegate = True
    assert approval.decide_step(override, 1, "delegated", "advisor-1").error == "Delegation requires a delegate."

    result = approval.decide_step(override, 1, "delegated", "advisor-1", delegate_to="advisor-2")
    assert result.is_success
    step = override.approval_steps[0]
    assert step.assigned_to == "advisor-2"
    assert step.decided_by is None
    assert override.status == "under_review"

    approval.decide_step(override, 1, "approved", "advisor-2")
    assert override.status == "approved"


def test_on_hold_keeps_step_open():
    override = _pending("Advisor")
    approval.decide_step(override, 1, "on_hold", "advisor-1")
    assert override.status == "under_review"
    assert approval.next_pending_step(override).step_number == 1
