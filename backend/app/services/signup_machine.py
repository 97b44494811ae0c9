"""Transition rules for an instructor's claim on an open shift.

The functions here only decide; persistence and the conditional writes that
make each decision race-safe live in the coordinator and the store.

    create ──► pending ──► confirmed
                  │  └───► declined
                  ▼
    (any non-withdrawn) ──► withdrawn ──► pending (re-signup, same record)
"""

from __future__ import annotations

from datetime import time
from enum import Enum

from app.core.exceptions import ConflictError, InvalidInputError
from app.models.open_shift import OpenShift
from app.models.shift_signup import ShiftSignup, SignupStatus
from app.services.capacity import CapacityLedger

WITHDRAWABLE_STATUSES = frozenset({SignupStatus.pending, SignupStatus.confirmed, SignupStatus.declined})


class SignupEntry(str, Enum):
    create = "create"
    reopen = "reopen"


class SignupReviewAction(str, Enum):
    confirm = "confirm"
    decline = "decline"

    @property
    def target_status(self) -> SignupStatus:
        if self is SignupReviewAction.confirm:
            return SignupStatus.confirmed
        return SignupStatus.declined


def ensure_shift_open(shift: OpenShift) -> None:
    if shift.is_cancelled:
        raise ConflictError("This shift has been cancelled", reason="shift_cancelled")


def plan_signup(*, shift: OpenShift, existing: ShiftSignup | None, ledger: CapacityLedger) -> SignupEntry:
    ensure_shift_open(shift)
    if existing is not None:
        if existing.status == SignupStatus.declined:
            raise ConflictError(
                "Your signup for this shift was declined. Withdraw it before signing up again",
                reason="signup_declined",
            )
        if existing.status != SignupStatus.withdrawn:
            raise ConflictError("You have already signed up for this shift", reason="duplicate_signup")
    if not ledger.has_capacity:
        raise ConflictError(
            "This shift is full",
            reason="shift_full",
            details={"max_instructors": ledger.max_instructors, "confirmed_count": ledger.confirmed},
        )
    return SignupEntry.reopen if existing is not None else SignupEntry.create


def resolve_window(shift: OpenShift, start: time | None, end: time | None) -> tuple[time, time, bool]:
    """Return the requested window clamped to defaults and whether it is partial."""
    window_start = start or shift.start_time
    window_end = end or shift.end_time
    if window_start >= window_end:
        raise InvalidInputError("Signup start time must be before end time", field="start_time")
    if window_start < shift.start_time or window_end > shift.end_time:
        raise InvalidInputError(
            f"Signup window must fall within the shift ({shift.start_time:%H:%M}-{shift.end_time:%H:%M})",
            field="end_time" if window_end > shift.end_time else "start_time",
        )
    is_partial = (window_start, window_end) != (shift.start_time, shift.end_time)
    return window_start, window_end, is_partial


def ensure_withdrawable(signup: ShiftSignup) -> None:
    if signup.status == SignupStatus.withdrawn:
        raise ConflictError("Already withdrawn", reason="already_withdrawn")


def ensure_reviewable(signup: ShiftSignup) -> None:
    if signup.status != SignupStatus.pending:
        raise ConflictError(
            f"Only pending signups can be reviewed (current status: {signup.status.value})",
            reason="not_pending",
            details={"status": signup.status.value},
        )


def ensure_confirmable(*, shift: OpenShift, ledger: CapacityLedger) -> None:
    ensure_shift_open(shift)
    if not ledger.has_capacity:
        raise ConflictError(
            "Confirming this signup would exceed the shift's instructor limit",
            reason="capacity_exceeded",
            details={"max_instructors": ledger.max_instructors, "confirmed_count": ledger.confirmed},
        )
