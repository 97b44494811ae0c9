from __future__ import annotations

from enum import Enum

from app.core.exceptions import ConflictError, ForbiddenError, InvalidInputError
from app.models.substitute_request import SubstituteRequest, SubstituteRequestStatus


class SubstituteAction(str, Enum):
    approve = "approve"
    deny = "deny"
    cancel = "cancel"

    @property
    def target_status(self) -> SubstituteRequestStatus:
        return {
            SubstituteAction.approve: SubstituteRequestStatus.approved,
            SubstituteAction.deny: SubstituteRequestStatus.denied,
            SubstituteAction.cancel: SubstituteRequestStatus.cancelled,
        }[self]


def ensure_no_pending(existing: SubstituteRequest | None) -> None:
    if existing is not None:
        raise ConflictError(
            "You already have a pending substitute request for this lab day",
            reason="pending_request_exists",
            details={"request_id": existing.id},
        )


def ensure_pending(request: SubstituteRequest, action: SubstituteAction) -> None:
    if request.status == SubstituteRequestStatus.pending:
        return
    verb = "cancelled" if action is SubstituteAction.cancel else "approved or denied"
    raise ConflictError(
        f"Only pending requests can be {verb} (current status: {request.status.value})",
        reason="not_pending",
        details={"status": request.status.value},
    )


def ensure_owner(request: SubstituteRequest, actor_id: str) -> None:
    if request.requester_id != actor_id:
        raise ForbiddenError("Only the requesting instructor can cancel this request", reason="not_owner")


def validate_covered_by(request: SubstituteRequest, action: SubstituteAction, covered_by: str | None) -> None:
    if covered_by is None:
        return
    if action is not SubstituteAction.approve:
        raise InvalidInputError("covered_by can only be set when approving a request", field="covered_by")
    if covered_by == request.requester_id:
        raise InvalidInputError("The substitute must be different from the requesting instructor", field="covered_by")
