"""Rules for handing a confirmed shift over to a colleague.

A trade starts ``pending``. A colleague may accept it (``accepted``) or turn
it down (``declined``); an approver then approves the accepted trade, which
moves the requester's confirmed seat to the colleague. The requester may
cancel while the trade is still open. Volunteers can also register interest
on an open trade and an approver may assign one of them directly.
"""

from __future__ import annotations

from enum import Enum

from app.core.exceptions import ConflictError, ForbiddenError
from app.models.shift_signup import ShiftSignup, SignupStatus
from app.models.shift_trade import ShiftSwapInterest, ShiftTradeRequest, ShiftTradeStatus, SwapInterestStatus

OPEN_TRADE_STATUSES = frozenset({ShiftTradeStatus.pending, ShiftTradeStatus.accepted})


class TradeAction(str, Enum):
    accept = "accept"
    decline = "decline"
    approve = "approve"
    cancel = "cancel"

    @property
    def from_statuses(self) -> frozenset[ShiftTradeStatus]:
        if self is TradeAction.approve:
            return frozenset({ShiftTradeStatus.accepted})
        if self is TradeAction.cancel:
            return OPEN_TRADE_STATUSES
        return frozenset({ShiftTradeStatus.pending})

    @property
    def target_status(self) -> ShiftTradeStatus:
        return {
            TradeAction.accept: ShiftTradeStatus.accepted,
            TradeAction.decline: ShiftTradeStatus.declined,
            TradeAction.approve: ShiftTradeStatus.approved,
            TradeAction.cancel: ShiftTradeStatus.cancelled,
        }[self]


def ensure_confirmed_holder(signup: ShiftSignup | None) -> None:
    if signup is None or signup.status != SignupStatus.confirmed:
        raise ConflictError(
            "Only instructors confirmed for this shift can offer it for trade",
            reason="not_confirmed",
        )


def ensure_no_active_trade(existing: ShiftTradeRequest | None) -> None:
    if existing is not None:
        raise ConflictError(
            "You already have an open trade request for this shift",
            reason="trade_request_exists",
            details={"trade_id": existing.id},
        )


def ensure_status(trade: ShiftTradeRequest, action: TradeAction) -> None:
    if trade.status in action.from_statuses:
        return
    allowed = ", ".join(sorted(item.value for item in action.from_statuses))
    raise ConflictError(
        f"Cannot {action.value} a trade that is {trade.status.value} (expected: {allowed})",
        reason="trade_not_open",
        details={"status": trade.status.value},
    )


def ensure_open(trade: ShiftTradeRequest) -> None:
    if trade.status not in OPEN_TRADE_STATUSES:
        raise ConflictError(
            f"This trade is no longer open (current status: {trade.status.value})",
            reason="trade_not_open",
            details={"status": trade.status.value},
        )


def ensure_participant(trade: ShiftTradeRequest, action: TradeAction, actor_id: str) -> None:
    if action is TradeAction.cancel and trade.requester_id != actor_id:
        raise ForbiddenError("Only the requesting instructor can cancel this trade", reason="not_owner")
    if action is TradeAction.accept and trade.requester_id == actor_id:
        raise ForbiddenError("You cannot accept your own trade request", reason="own_trade")


def ensure_not_requester(trade: ShiftTradeRequest, actor_id: str) -> None:
    if trade.requester_id == actor_id:
        raise ForbiddenError("You cannot volunteer for your own trade request", reason="own_trade")


def ensure_selectable(interest: ShiftSwapInterest) -> None:
    if interest.status != SwapInterestStatus.interested:
        raise ConflictError(
            f"This volunteer can no longer be assigned (current status: {interest.status.value})",
            reason="interest_unavailable",
            details={"status": interest.status.value},
        )


def ensure_interest_withdrawable(interest: ShiftSwapInterest) -> None:
    if interest.status == SwapInterestStatus.selected:
        raise ConflictError(
            "You were already assigned this shift and cannot withdraw",
            reason="interest_selected",
        )
