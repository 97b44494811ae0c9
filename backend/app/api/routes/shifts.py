from datetime import date

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_coordinator, get_current_user
from app.models.open_shift import OpenShift
from app.models.user import User
from app.schemas.shift import (
    OpenShiftDetailOut,
    OpenShiftOut,
    PendingSignupOut,
    ShiftBatchOut,
    ShiftCancellationOut,
    ShiftCreate,
    ShiftSignupCreate,
    ShiftSignupOut,
    ShiftSignupReview,
    ShiftUpdate,
)
from app.services.capacity import CapacityLedger
from app.services.coverage import CoverageCoordinator, ShiftView

router = APIRouter()


def _capacity_fields(view: ShiftView) -> dict:
    return {
        "confirmed_count": view.ledger.confirmed,
        "signup_count": view.ledger.active,
        "remaining_slots": view.ledger.remaining,
        "is_filled": view.ledger.is_filled,
        "is_understaffed": view.ledger.is_understaffed,
        "user_signup": ShiftSignupOut.model_validate(view.user_signup) if view.user_signup else None,
    }


def _shift_out(view: ShiftView) -> OpenShiftOut:
    return OpenShiftOut.model_validate(view.shift).model_copy(update=_capacity_fields(view))


def _shift_detail_out(view: ShiftView) -> OpenShiftDetailOut:
    update = _capacity_fields(view)
    update["signups"] = [ShiftSignupOut.model_validate(item) for item in view.signups]
    return OpenShiftDetailOut.model_validate(view.shift).model_copy(update=update)


def _new_shift_view(shift: OpenShift) -> ShiftView:
    ledger = CapacityLedger.from_statuses(
        [],
        max_instructors=shift.max_instructors,
        min_instructors=shift.min_instructors,
    )
    return ShiftView(shift=shift, signups=[], ledger=ledger)


@router.get("/shifts", response_model=list[OpenShiftOut])
def list_shifts(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    department: str | None = Query(default=None, max_length=100),
    include_filled: bool = Query(default=True),
    include_cancelled: bool = Query(default=False),
    current_user: User = Depends(get_current_user),
    coordinator: CoverageCoordinator = Depends(get_coordinator),
) -> list[OpenShiftOut]:
    views = coordinator.list_shifts(
        current_user,
        start_date=start_date,
        end_date=end_date,
        department=department,
        include_filled=include_filled,
        include_cancelled=include_cancelled,
    )
    return [_shift_out(item) for item in views]


@router.post("/shifts", response_model=ShiftBatchOut, status_code=status.HTTP_201_CREATED)
def create_shifts(
    payload: ShiftCreate,
    current_user: User = Depends(get_current_user),
    coordinator: CoverageCoordinator = Depends(get_coordinator),
) -> ShiftBatchOut:
    shifts = coordinator.create_shifts(current_user, payload)
    return ShiftBatchOut(count=len(shifts), shifts=[_shift_out(_new_shift_view(item)) for item in shifts])


@router.get("/shifts/{shift_id}", response_model=OpenShiftDetailOut)
def get_shift(
    shift_id: str,
    current_user: User = Depends(get_current_user),
    coordinator: CoverageCoordinator = Depends(get_coordinator),
) -> OpenShiftDetailOut:
    return _shift_detail_out(coordinator.get_shift(current_user, shift_id))


@router.put("/shifts/{shift_id}", response_model=OpenShiftOut)
def update_shift(
    shift_id: str,
    payload: ShiftUpdate,
    current_user: User = Depends(get_current_user),
    coordinator: CoverageCoordinator = Depends(get_coordinator),
) -> OpenShiftOut:
    coordinator.update_shift(current_user, shift_id, payload)
    return _shift_out(coordinator.get_shift(current_user, shift_id))


@router.delete("/shifts/{shift_id}", response_model=ShiftCancellationOut)
def cancel_shift(
    shift_id: str,
    current_user: User = Depends(get_current_user),
    coordinator: CoverageCoordinator = Depends(get_coordinator),
) -> ShiftCancellationOut:
    cancellation = coordinator.cancel_shift(current_user, shift_id)
    return ShiftCancellationOut(
        shift=_shift_out(coordinator.get_shift(current_user, shift_id)),
        affected_instructor_ids=cancellation.affected_instructor_ids,
    )


@router.post("/shifts/{shift_id}/signup", response_model=ShiftSignupOut, status_code=status.HTTP_201_CREATED)
def sign_up_for_shift(
    shift_id: str,
    payload: ShiftSignupCreate | None = None,
    current_user: User = Depends(get_current_user),
    coordinator: CoverageCoordinator = Depends(get_coordinator),
) -> ShiftSignupOut:
    payload = payload or ShiftSignupCreate()
    return coordinator.create_signup(
        current_user,
        shift_id,
        start_time=payload.start_time,
        end_time=payload.end_time,
        notes=payload.notes,
    )


@router.delete("/shifts/{shift_id}/signup", response_model=ShiftSignupOut)
def withdraw_from_shift(
    shift_id: str,
    current_user: User = Depends(get_current_user),
    coordinator: CoverageCoordinator = Depends(get_coordinator),
) -> ShiftSignupOut:
    return coordinator.withdraw_signup(current_user, shift_id)


@router.post("/shifts/{shift_id}/signup/{signup_id}", response_model=ShiftSignupOut)
def review_shift_signup(
    shift_id: str,
    signup_id: str,
    payload: ShiftSignupReview,
    current_user: User = Depends(get_current_user),
    coordinator: CoverageCoordinator = Depends(get_coordinator),
) -> ShiftSignupOut:
    return coordinator.review_signup(current_user, shift_id, signup_id, payload.action, reason=payload.reason)


@router.get("/signups/pending", response_model=list[PendingSignupOut])
def list_pending_signups(
    current_user: User = Depends(get_current_user),
    coordinator: CoverageCoordinator = Depends(get_coordinator),
) -> list[PendingSignupOut]:
    return [
        PendingSignupOut(
            **ShiftSignupOut.model_validate(item.signup).model_dump(),
            shift=_shift_out(item.shift),
        )
        for item in coordinator.list_pending_signups(current_user)
    ]
