import pytest

from app.core.exceptions import ConflictError, ForbiddenError, InvalidInputError
from app.models.substitute_request import SubstituteReason, SubstituteRequest, SubstituteRequestStatus
from app.services.substitute_machine import (
    SubstituteAction,
    ensure_no_pending,
    ensure_owner,
    ensure_pending,
    validate_covered_by,
)


def _request(status: SubstituteRequestStatus = SubstituteRequestStatus.pending) -> SubstituteRequest:
    return SubstituteRequest(
        id="req-1",
        requester_id="inst-1",
        lab_day_id="day-1",
        reason=SubstituteReason.illness,
        status=status,
    )


def test_actions_map_to_terminal_statuses():
    assert SubstituteAction.approve.target_status is SubstituteRequestStatus.approved
    assert SubstituteAction.deny.target_status is SubstituteRequestStatus.denied
    assert SubstituteAction.cancel.target_status is SubstituteRequestStatus.cancelled


def test_existing_pending_request_blocks_a_new_one():
    ensure_no_pending(None)
    with pytest.raises(ConflictError) as exc_info:
        ensure_no_pending(_request())
    assert exc_info.value.reason == "pending_request_exists"
    assert exc_info.value.details["request_id"] == "req-1"


@pytest.mark.parametrize(
    "status",
    [SubstituteRequestStatus.approved, SubstituteRequestStatus.denied, SubstituteRequestStatus.cancelled],
)
def test_terminal_requests_cannot_transition(status):
    for action in SubstituteAction:
        with pytest.raises(ConflictError) as exc_info:
            ensure_pending(_request(status), action)
        assert exc_info.value.reason == "not_pending"


def test_only_requester_can_cancel():
    ensure_owner(_request(), "inst-1")
    with pytest.raises(ForbiddenError):
        ensure_owner(_request(), "someone-else")


def test_covered_by_rules():
    validate_covered_by(_request(), SubstituteAction.approve, "inst-2")
    validate_covered_by(_request(), SubstituteAction.deny, None)
    with pytest.raises(InvalidInputError):
        validate_covered_by(_request(), SubstituteAction.deny, "inst-2")
    with pytest.raises(InvalidInputError):
        validate_covered_by(_request(), SubstituteAction.approve, "inst-1")
