"""Orchestrates open-shift signups, substitute requests and shift trades.

Each public operation authorizes the actor, validates the transition, applies
it through the store inside one transaction, and only after commit hands
notification intents to the sink. Delivery failures are logged and never undo
the committed transition.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
import logging

from app.core.config import Settings, get_settings
from app.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    ResourceNotFoundError,
    UnauthenticatedError,
)
from app.db.store import CoverageStore
from app.models.lab_day import LabDay
from app.models.notification import NotificationCategory
from app.models.open_shift import OpenShift
from app.models.shift_signup import ShiftSignup, SignupStatus
from app.models.shift_trade import ShiftSwapInterest, ShiftTradeRequest, ShiftTradeStatus
from app.models.substitute_request import SubstituteReason, SubstituteRequest, SubstituteRequestStatus
from app.schemas.shift import ShiftCreate, ShiftUpdate
from app.services.authorization import Actor, CoverageAction, RoleAuthorizer
from app.services.capacity import ACTIVE_SIGNUP_STATUSES, CapacityLedger
from app.services.directory import COVERAGE_POOL_ROLES, Directory
from app.services.notifications import NotificationIntent, NotificationSink
from app.services.shift_calendar import expand_shift_dates
from app.services.signup_machine import (
    WITHDRAWABLE_STATUSES,
    SignupEntry,
    SignupReviewAction,
    ensure_confirmable,
    ensure_reviewable,
    ensure_shift_open,
    ensure_withdrawable,
    plan_signup,
    resolve_window,
)
from app.services.substitute_machine import (
    SubstituteAction,
    ensure_no_pending,
    ensure_owner,
    ensure_pending,
    validate_covered_by,
)
from app.services.trade_machine import (
    OPEN_TRADE_STATUSES,
    TradeAction,
    ensure_confirmed_holder,
    ensure_interest_withdrawable,
    ensure_no_active_trade,
    ensure_not_requester,
    ensure_open,
    ensure_participant,
    ensure_selectable,
    ensure_status,
)

logger = logging.getLogger(__name__)

SHIFT_REFERENCE = "open_shift"
SIGNUP_REFERENCE = "shift_signup"
SUBSTITUTE_REFERENCE = "substitute_request"
TRADE_REFERENCE = "shift_trade_request"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _normalize_text(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def _format_day(value: date) -> str:
    return f"{value:%a}, {value:%b} {value.day}"


def _format_window(start: time, end: time) -> str:
    return f"{start:%H:%M}-{end:%H:%M}"


@dataclass
class ShiftView:
    shift: OpenShift
    signups: list[ShiftSignup]
    ledger: CapacityLedger
    user_signup: ShiftSignup | None = None


@dataclass
class ShiftCancellation:
    shift: OpenShift
    affected_instructor_ids: list[str] = field(default_factory=list)


@dataclass
class PendingSignup:
    signup: ShiftSignup
    shift: ShiftView


@dataclass
class SubstituteRequestView:
    request: SubstituteRequest
    lab_day: LabDay | None = None


@dataclass
class TradeView:
    trade: ShiftTradeRequest
    shift: OpenShift | None = None


@dataclass
class TradeInterestBoard:
    interests: list[ShiftSwapInterest]
    my_interest: ShiftSwapInterest | None = None


@dataclass
class TradeAssignment:
    trade: ShiftTradeRequest
    interest: ShiftSwapInterest
    declined_instructor_ids: list[str] = field(default_factory=list)


class CoverageCoordinator:
    def __init__(
        self,
        *,
        store: CoverageStore,
        authorizer: RoleAuthorizer,
        directory: Directory,
        notifier: NotificationSink,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.store = store
        self.authorizer = authorizer
        self.directory = directory
        self.notifier = notifier
        self.shifts_link = settings.shifts_link
        self.substitute_requests_link = settings.substitute_requests_link
        self.trades_link = settings.trades_link

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        try:
            yield
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise

    def _dispatch(self, intents: Iterable[NotificationIntent]) -> int:
        delivered = 0
        for intent in intents:
            try:
                self.notifier.emit(intent)
            except Exception:
                logger.warning(
                    "Notification delivery failed: category=%s recipient=%s %s=%s",
                    intent.category.value,
                    intent.recipient_id,
                    intent.reference_type,
                    intent.reference_id,
                    exc_info=True,
                )
                continue
            delivered += 1
        return delivered

    def _ledger(self, shift: OpenShift, signups: list[ShiftSignup] | None = None) -> CapacityLedger:
        if signups is None:
            signups = self.store.signups.list_for_shifts([shift.id])[shift.id]
        return CapacityLedger.from_statuses(
            (item.status for item in signups),
            max_instructors=shift.max_instructors,
            min_instructors=shift.min_instructors,
        )

    def _require_shift(self, shift_id: str, *, for_update: bool = False) -> OpenShift:
        shift = self.store.shifts.get(shift_id, for_update=for_update)
        if shift is None:
            raise ResourceNotFoundError("Shift", shift_id)
        return shift

    def _shift_link(self, shift_id: str) -> str:
        return f"{self.shifts_link}?shift={shift_id}"

    # Shifts

    def create_shifts(self, actor: Actor | None, payload: ShiftCreate) -> list[OpenShift]:
        self.authorizer.require(actor, CoverageAction.manage_shifts)
        dates = expand_shift_dates(
            single_date=payload.date,
            dates=payload.dates,
            repeat=payload.repeat,
            repeat_until=payload.repeat_until,
        )
        shifts = [
            OpenShift(
                title=payload.title.strip(),
                description=_normalize_text(payload.description),
                date=shift_date,
                start_time=payload.start_time,
                end_time=payload.end_time,
                location=_normalize_text(payload.location),
                department=_normalize_text(payload.department),
                created_by_id=actor.id,
                min_instructors=payload.min_instructors,
                max_instructors=payload.max_instructors,
                is_cancelled=False,
            )
            for shift_date in dates
        ]
        with self._transaction():
            self.store.shifts.add_many(shifts)
        logger.info("Created %d open shift(s) %r by %s", len(shifts), payload.title, actor.id)
        return shifts

    def update_shift(self, actor: Actor | None, shift_id: str, payload: ShiftUpdate) -> OpenShift:
        self.authorizer.require(actor, CoverageAction.manage_shifts)
        changes = payload.model_dump(exclude_unset=True)
        with self._transaction():
            shift = self._require_shift(shift_id, for_update=True)
            if shift.is_cancelled:
                raise ConflictError("Cancelled shifts cannot be edited", reason="shift_cancelled")

            for required in ("title", "date", "start_time", "end_time", "min_instructors"):
                if required in changes and changes[required] is None:
                    raise InvalidInputError(f"{required} cannot be cleared", field=required)

            start = changes.get("start_time", shift.start_time)
            end = changes.get("end_time", shift.end_time)
            if start >= end:
                raise InvalidInputError("end_time must be after start_time", field="end_time")

            minimum = changes.get("min_instructors", shift.min_instructors)
            maximum = changes.get("max_instructors", shift.max_instructors)
            if maximum is not None and minimum > maximum:
                raise InvalidInputError("min_instructors cannot exceed max_instructors", field="min_instructors")
            if maximum is not None and "max_instructors" in changes:
                confirmed = self.store.signups.confirmed_count(shift_id)
                if confirmed > maximum:
                    raise ConflictError(
                        f"{confirmed} instructor(s) are already confirmed for this shift",
                        reason="capacity_below_confirmed",
                        details={"confirmed_count": confirmed, "max_instructors": maximum},
                    )

            for key, value in changes.items():
                if isinstance(value, str):
                    value = value.strip() if key == "title" else _normalize_text(value)
                setattr(shift, key, value)
            self.store.shifts.save(shift)
        logger.info("Updated open shift %s fields=%s by %s", shift_id, sorted(changes), actor.id)
        return shift

    def cancel_shift(self, actor: Actor | None, shift_id: str) -> ShiftCancellation:
        self.authorizer.require(actor, CoverageAction.manage_shifts)
        with self._transaction():
            self._require_shift(shift_id, for_update=True)
            if not self.store.shifts.mark_cancelled(shift_id):
                raise ConflictError("This shift has already been cancelled", reason="shift_cancelled")
            signups = self.store.signups.list_for_shifts([shift_id])[shift_id]
            affected = [item.instructor_id for item in signups if item.status in ACTIVE_SIGNUP_STATUSES]

        shift = self._require_shift(shift_id)
        logger.info("Cancelled open shift %s by %s (%d affected)", shift_id, actor.id, len(affected))
        self._dispatch(
            NotificationIntent(
                recipient_id=instructor_id,
                title="Shift cancelled",
                message=(
                    f"{shift.title} on {_format_day(shift.date)} "
                    f"({_format_window(shift.start_time, shift.end_time)}) has been cancelled."
                ),
                category=NotificationCategory.shift_cancelled,
                link_url=self.shifts_link,
                reference_type=SHIFT_REFERENCE,
                reference_id=shift.id,
            )
            for instructor_id in affected
        )
        return ShiftCancellation(shift=shift, affected_instructor_ids=affected)

    def get_shift(self, actor: Actor | None, shift_id: str) -> ShiftView:
        if actor is None:
            raise UnauthenticatedError()
        shift = self._require_shift(shift_id)
        signups = self.store.signups.list_for_shifts([shift_id])[shift_id]
        return self._view(shift, signups, actor)

    def list_shifts(
        self,
        actor: Actor | None,
        *,
        start_date: date | None = None,
        end_date: date | None = None,
        department: str | None = None,
        include_filled: bool = True,
        include_cancelled: bool = False,
    ) -> list[ShiftView]:
        if actor is None:
            raise UnauthenticatedError()
        shifts = self.store.shifts.list(
            start_date=start_date,
            end_date=end_date,
            department=department,
            include_cancelled=include_cancelled,
        )
        grouped = self.store.signups.list_for_shifts(item.id for item in shifts)
        views = [self._view(item, grouped.get(item.id, []), actor) for item in shifts]
        if not include_filled:
            views = [item for item in views if not item.ledger.is_filled]
        return views

    def _view(self, shift: OpenShift, signups: list[ShiftSignup], actor: Actor) -> ShiftView:
        own = next((item for item in signups if item.instructor_id == actor.id), None)
        return ShiftView(shift=shift, signups=signups, ledger=self._ledger(shift, signups), user_signup=own)

    # Signups

    def create_signup(
        self,
        actor: Actor | None,
        shift_id: str,
        *,
        start_time: time | None = None,
        end_time: time | None = None,
        notes: str | None = None,
    ) -> ShiftSignup:
        self.authorizer.require(actor, CoverageAction.sign_up)
        with self._transaction():
            shift = self._require_shift(shift_id, for_update=True)
            existing = self.store.signups.find(shift_id, actor.id)
            entry = plan_signup(shift=shift, existing=existing, ledger=self._ledger(shift))
            window_start, window_end, is_partial = resolve_window(shift, start_time, end_time)
            values = {
                "signup_start_time": window_start,
                "signup_end_time": window_end,
                "is_partial": is_partial,
                "status": SignupStatus.pending,
                "notes": _normalize_text(notes),
                "confirmed_by_id": None,
                "confirmed_at": None,
                "declined_reason": None,
            }
            if entry is SignupEntry.reopen:
                reopened = self.store.signups.transition(
                    existing.id,
                    from_statuses={SignupStatus.withdrawn},
                    values=values,
                )
                if not reopened:
                    raise ConflictError("You have already signed up for this shift", reason="duplicate_signup")
                signup = self.store.signups.get(existing.id)
            else:
                signup = self.store.signups.insert(ShiftSignup(shift_id=shift_id, instructor_id=actor.id, **values))

        logger.info("Signup %s %s for shift %s by %s", signup.id, entry.value, shift_id, actor.id)
        if shift.created_by_id and shift.created_by_id != actor.id:
            self._dispatch(
                [
                    NotificationIntent(
                        recipient_id=shift.created_by_id,
                        title="New shift signup",
                        message=f"{actor.name} signed up for {shift.title} on {_format_day(shift.date)}.",
                        category=NotificationCategory.shift_available,
                        link_url=self._shift_link(shift.id),
                        reference_type=SIGNUP_REFERENCE,
                        reference_id=signup.id,
                    )
                ]
            )
        return signup

    def withdraw_signup(self, actor: Actor | None, shift_id: str) -> ShiftSignup:
        if actor is None:
            raise UnauthenticatedError()
        with self._transaction():
            shift = self._require_shift(shift_id)
            signup = self.store.signups.find(shift_id, actor.id)
            if signup is None:
                raise ResourceNotFoundError("Signup", f"{shift_id}/{actor.id}")
            ensure_withdrawable(signup)
            previous = signup.status
            withdrawn = self.store.signups.transition(
                signup.id,
                from_statuses=WITHDRAWABLE_STATUSES,
                values={"status": SignupStatus.withdrawn},
            )
            if not withdrawn:
                raise ConflictError("Already withdrawn", reason="already_withdrawn")
            signup = self.store.signups.get(signup.id)

        logger.info("Signup %s withdrawn from %s by %s", signup.id, previous.value, actor.id)
        if previous == SignupStatus.confirmed and shift.created_by_id and shift.created_by_id != actor.id:
            self._dispatch(
                [
                    NotificationIntent(
                        recipient_id=shift.created_by_id,
                        title="Confirmed instructor withdrew",
                        message=(
                            f"{actor.name} withdrew from {shift.title} on {_format_day(shift.date)}. "
                            "The slot is open again."
                        ),
                        category=NotificationCategory.shift_withdrawn,
                        link_url=self._shift_link(shift.id),
                        reference_type=SIGNUP_REFERENCE,
                        reference_id=signup.id,
                    )
                ]
            )
        return signup

    def review_signup(
        self,
        actor: Actor | None,
        shift_id: str,
        signup_id: str,
        action: SignupReviewAction | str,
        *,
        reason: str | None = None,
    ) -> ShiftSignup:
        self.authorizer.require(actor, CoverageAction.review_signup)
        try:
            action = SignupReviewAction(action)
        except ValueError as exc:
            raise InvalidInputError(f"Unknown signup review action: {action}", field="action") from exc
        with self._transaction():
            signup = self.store.signups.get(signup_id)
            if signup is None or signup.shift_id != shift_id:
                raise ResourceNotFoundError("Signup", signup_id)
            ensure_reviewable(signup)
            shift = self._require_shift(shift_id, for_update=action is SignupReviewAction.confirm)
            if action is SignupReviewAction.confirm:
                ensure_confirmable(shift=shift, ledger=self._ledger(shift))
                applied = self.store.signups.confirm_within_capacity(
                    signup_id,
                    shift_id=shift_id,
                    max_instructors=shift.max_instructors,
                    values={
                        "status": SignupStatus.confirmed,
                        "confirmed_by_id": actor.id,
                        "confirmed_at": _utc_now(),
                        "declined_reason": None,
                    },
                )
            else:
                applied = self.store.signups.transition(
                    signup_id,
                    from_statuses={SignupStatus.pending},
                    values={
                        "status": SignupStatus.declined,
                        "declined_reason": _normalize_text(reason),
                        "confirmed_by_id": None,
                        "confirmed_at": None,
                    },
                )
            if not applied:
                self._raise_lost_review(signup_id, shift)
            signup = self.store.signups.get(signup_id)

        logger.info("Signup %s %s by %s", signup_id, signup.status.value, actor.id)
        if action is SignupReviewAction.confirm:
            intent = NotificationIntent(
                recipient_id=signup.instructor_id,
                title="Shift confirmed",
                message=(
                    f"You're confirmed for {shift.title} on {_format_day(shift.date)} "
                    f"({_format_window(signup.signup_start_time or shift.start_time, signup.signup_end_time or shift.end_time)})."
                ),
                category=NotificationCategory.shift_confirmed,
                link_url=self._shift_link(shift.id),
                reference_type=SIGNUP_REFERENCE,
                reference_id=signup.id,
            )
        else:
            message = f"Your signup for {shift.title} on {_format_day(shift.date)} was declined."
            if signup.declined_reason:
                message = f"{message} Reason: {signup.declined_reason}"
            intent = NotificationIntent(
                recipient_id=signup.instructor_id,
                title="Shift signup declined",
                message=message,
                category=NotificationCategory.shift_declined,
                link_url=self._shift_link(shift.id),
                reference_type=SIGNUP_REFERENCE,
                reference_id=signup.id,
            )
        self._dispatch([intent])
        return signup

    def _raise_lost_review(self, signup_id: str, shift: OpenShift) -> None:
        current = self.store.signups.get(signup_id)
        if current is None:
            raise ResourceNotFoundError("Signup", signup_id)
        ensure_reviewable(current)
        ledger = self._ledger(shift)
        raise ConflictError(
            "Confirming this signup would exceed the shift's instructor limit",
            reason="capacity_exceeded",
            details={"max_instructors": ledger.max_instructors, "confirmed_count": ledger.confirmed},
        )

    def list_pending_signups(self, actor: Actor | None) -> list[PendingSignup]:
        self.authorizer.require(actor, CoverageAction.review_signup)
        signups = self.store.signups.list_by_status(SignupStatus.pending)
        shift_ids = list(dict.fromkeys(item.shift_id for item in signups))
        grouped = self.store.signups.list_for_shifts(shift_ids)
        views: dict[str, ShiftView] = {}
        for shift_id in shift_ids:
            shift = self.store.shifts.get(shift_id)
            if shift is None or shift.is_cancelled:
                continue
            views[shift_id] = self._view(shift, grouped.get(shift_id, []), actor)
        pending = [PendingSignup(signup=item, shift=views[item.shift_id]) for item in signups if item.shift_id in views]
        pending.sort(key=lambda item: (item.shift.shift.date, item.shift.shift.start_time))
        return pending

    # Substitute requests

    def create_substitute_request(
        self,
        actor: Actor | None,
        *,
        lab_day_id: str,
        reason: SubstituteReason | str,
        reason_details: str | None = None,
    ) -> SubstituteRequest:
        self.authorizer.require(actor, CoverageAction.request_substitute)
        try:
            reason = SubstituteReason(reason)
        except ValueError as exc:
            raise InvalidInputError(f"Unknown substitute reason: {reason}", field="reason") from exc

        lab_day = self.directory.get_lab_day(lab_day_id)
        if lab_day is None:
            raise ResourceNotFoundError("Lab day", lab_day_id)
        if not self.directory.is_assigned_to(actor.id, lab_day_id):
            raise ForbiddenError("You are not assigned to this lab day", reason="not_assigned")

        with self._transaction():
            ensure_no_pending(self.store.substitute_requests.find_pending(actor.id, lab_day_id))
            request = self.store.substitute_requests.insert(
                SubstituteRequest(
                    requester_id=actor.id,
                    lab_day_id=lab_day_id,
                    reason=reason,
                    reason_details=_normalize_text(reason_details),
                    status=SubstituteRequestStatus.pending,
                )
            )

        logger.info("Substitute request %s created by %s for lab day %s", request.id, actor.id, lab_day_id)
        reviewers = self.directory.active_user_ids(
            self.authorizer.eligible_roles(CoverageAction.review_substitute),
            exclude_user_id=actor.id,
        )
        self._dispatch(
            NotificationIntent(
                recipient_id=reviewer_id,
                title="New substitute request",
                message=(
                    f"{actor.name} requested a substitute for {self._lab_day_label(lab_day)}. "
                    f"Reason: {reason.value}"
                ),
                category=NotificationCategory.substitute_request,
                link_url=self.substitute_requests_link,
                reference_type=SUBSTITUTE_REFERENCE,
                reference_id=request.id,
            )
            for reviewer_id in reviewers
        )
        return request

    def review_substitute_request(
        self,
        actor: Actor | None,
        request_id: str,
        action: SubstituteAction | str,
        *,
        review_notes: str | None = None,
        covered_by: str | None = None,
    ) -> SubstituteRequest:
        try:
            action = SubstituteAction(action)
        except ValueError as exc:
            raise InvalidInputError(f"Unknown substitute request action: {action}", field="action") from exc
        if action is SubstituteAction.cancel:
            if covered_by is not None:
                raise InvalidInputError("covered_by can only be set when approving a request", field="covered_by")
            return self.cancel_substitute_request(actor, request_id)

        self.authorizer.require(actor, CoverageAction.review_substitute)
        with self._transaction():
            request = self.store.substitute_requests.get(request_id)
            if request is None:
                raise ResourceNotFoundError("Substitute request", request_id)
            ensure_pending(request, action)
            validate_covered_by(request, action, covered_by)
            if covered_by is not None:
                substitute = self.directory.get_user(covered_by)
                if substitute is None or not substitute.is_active:
                    raise ResourceNotFoundError("User", covered_by)

            now = _utc_now()
            values = {
                "status": action.target_status,
                "reviewed_by_id": actor.id,
                "reviewed_at": now,
                "review_notes": _normalize_text(review_notes),
            }
            if covered_by is not None:
                values["covered_by_id"] = covered_by
                values["covered_at"] = now
            if not self.store.substitute_requests.transition_pending(request_id, values=values):
                self._raise_request_not_pending(request_id, action)
            request = self.store.substitute_requests.get(request_id)

        logger.info("Substitute request %s %s by %s", request_id, request.status.value, actor.id)
        lab_day = self.directory.get_lab_day(request.lab_day_id)
        self._dispatch(self._review_intents(request, lab_day))
        return request

    def _review_intents(self, request: SubstituteRequest, lab_day: LabDay | None) -> list[NotificationIntent]:
        label = self._lab_day_label(lab_day)
        notes = f" Notes: {request.review_notes}" if request.review_notes else ""

        def _intent(recipient_id: str, title: str, message: str, category: NotificationCategory) -> NotificationIntent:
            return NotificationIntent(
                recipient_id=recipient_id,
                title=title,
                message=message,
                category=category,
                link_url=self.substitute_requests_link,
                reference_type=SUBSTITUTE_REFERENCE,
                reference_id=request.id,
            )

        if request.status == SubstituteRequestStatus.denied:
            return [
                _intent(
                    request.requester_id,
                    "Substitute request denied",
                    f"Your substitute request for {label} was denied.{notes}",
                    NotificationCategory.substitute_request,
                )
            ]

        intents = [
            _intent(
                request.requester_id,
                "Substitute request approved",
                f"Your substitute request for {label} was approved.{notes}",
                NotificationCategory.substitute_request,
            )
        ]
        if request.covered_by_id:
            intents.append(
                _intent(
                    request.covered_by_id,
                    "Substitute assignment",
                    f"You have been assigned to cover {label}.",
                    NotificationCategory.lab_assignment,
                )
            )
            return intents

        pool = self.directory.active_user_ids(COVERAGE_POOL_ROLES, exclude_user_id=request.requester_id)
        intents.extend(
            _intent(
                recipient_id,
                "Coverage needed",
                f"A substitute is needed for {label}. Reason: {request.reason.value}",
                NotificationCategory.shift_available,
            )
            for recipient_id in pool
        )
        return intents

    def _raise_request_not_pending(self, request_id: str, action: SubstituteAction) -> None:
        current = self.store.substitute_requests.get(request_id)
        if current is None:
            raise ResourceNotFoundError("Substitute request", request_id)
        ensure_pending(current, action)
        raise ConflictError("This request was changed by someone else", reason="not_pending")

    @staticmethod
    def _lab_day_label(lab_day: LabDay | None) -> str:
        if lab_day is None:
            return "a lab day"
        label = _format_day(lab_day.date)
        if lab_day.title:
            label = f"{lab_day.title} ({label})"
        return label

    def cancel_substitute_request(self, actor: Actor | None, request_id: str) -> SubstituteRequest:
        if actor is None:
            raise UnauthenticatedError()
        with self._transaction():
            request = self.store.substitute_requests.get(request_id)
            if request is None:
                raise ResourceNotFoundError("Substitute request", request_id)
            ensure_owner(request, actor.id)
            ensure_pending(request, SubstituteAction.cancel)
            cancelled = self.store.substitute_requests.transition_pending(
                request_id,
                values={"status": SubstituteRequestStatus.cancelled},
            )
            if not cancelled:
                self._raise_request_not_pending(request_id, SubstituteAction.cancel)
            request = self.store.substitute_requests.get(request_id)
        logger.info("Substitute request %s cancelled by requester %s", request_id, actor.id)
        return request

    def delete_substitute_request(self, actor: Actor | None, request_id: str) -> None:
        if actor is None:
            raise UnauthenticatedError()
        with self._transaction():
            request = self.store.substitute_requests.get(request_id)
            if request is None:
                raise ResourceNotFoundError("Substitute request", request_id)
            if request.requester_id != actor.id and not self.authorizer.allows(actor, CoverageAction.administer):
                raise ForbiddenError("You can only delete your own requests", reason="not_owner")
            if request.status != SubstituteRequestStatus.pending:
                raise ConflictError(
                    "Only pending requests can be deleted",
                    reason="not_pending",
                    details={"status": request.status.value},
                )
            if not self.store.substitute_requests.delete_pending(request_id):
                raise ConflictError("Only pending requests can be deleted", reason="not_pending")
        logger.info("Substitute request %s deleted by %s", request_id, actor.id)

    def list_substitute_requests(
        self,
        actor: Actor | None,
        *,
        status: SubstituteRequestStatus | None = None,
        pending_only: bool = False,
    ) -> list[SubstituteRequestView]:
        self.authorizer.require(actor, CoverageAction.request_substitute)
        requester_id = None if self.authorizer.allows(actor, CoverageAction.view_all_substitutes) else actor.id
        statuses = None
        if pending_only:
            statuses = {SubstituteRequestStatus.pending}
        elif status is not None:
            statuses = {status}
        requests = self.store.substitute_requests.list(requester_id=requester_id, statuses=statuses)
        lab_days = self.directory.get_lab_days(item.lab_day_id for item in requests)
        return [SubstituteRequestView(request=item, lab_day=lab_days.get(item.lab_day_id)) for item in requests]

    # Shift trades

    def _require_trade(self, trade_id: str) -> ShiftTradeRequest:
        trade = self.store.trades.get(trade_id)
        if trade is None:
            raise ResourceNotFoundError("Shift trade", trade_id)
        return trade

    def _trade_intent(
        self,
        recipient_id: str,
        title: str,
        message: str,
        category: NotificationCategory,
        trade_id: str,
    ) -> NotificationIntent:
        return NotificationIntent(
            recipient_id=recipient_id,
            title=title,
            message=message,
            category=category,
            link_url=self.trades_link,
            reference_type=TRADE_REFERENCE,
            reference_id=trade_id,
        )

    def _trade_approvers(self, *exclude: str | None) -> list[str]:
        approvers = self.directory.active_user_ids(self.authorizer.eligible_roles(CoverageAction.approve_trade))
        return [item for item in approvers if item not in exclude]

    @staticmethod
    def _shift_label(shift: OpenShift) -> str:
        return f"{shift.title} on {_format_day(shift.date)} ({_format_window(shift.start_time, shift.end_time)})"

    def _hand_over(self, shift: OpenShift, *, from_user_id: str, to_user_id: str, approver: Actor) -> None:
        """Move a confirmed seat between instructors under the caller's shift lock."""
        ensure_shift_open(shift)
        outgoing = self.store.signups.find(shift.id, from_user_id)
        released = outgoing is not None and self.store.signups.transition(
            outgoing.id,
            from_statuses={SignupStatus.confirmed},
            values={"status": SignupStatus.withdrawn},
        )
        if not released:
            raise ConflictError(
                "The requesting instructor is no longer confirmed for this shift",
                reason="requester_not_confirmed",
            )

        values = {
            "signup_start_time": outgoing.signup_start_time,
            "signup_end_time": outgoing.signup_end_time,
            "is_partial": outgoing.is_partial,
            "status": SignupStatus.confirmed,
            "confirmed_by_id": approver.id,
            "confirmed_at": _utc_now(),
            "declined_reason": None,
        }
        incoming = self.store.signups.find(shift.id, to_user_id)
        if incoming is None:
            self.store.signups.insert(
                ShiftSignup(
                    shift_id=shift.id,
                    instructor_id=to_user_id,
                    notes="Assigned through a shift trade",
                    **values,
                )
            )
        elif incoming.status != SignupStatus.confirmed:
            moved = self.store.signups.transition(
                incoming.id,
                from_statuses={SignupStatus.pending, SignupStatus.declined, SignupStatus.withdrawn},
                values=values,
            )
            if not moved:
                raise ConflictError(
                    "The replacement's signup changed while the trade was being approved",
                    reason="signup_changed",
                )

    def create_trade_request(
        self,
        actor: Actor | None,
        shift_id: str,
        *,
        reason: str | None = None,
    ) -> ShiftTradeRequest:
        self.authorizer.require(actor, CoverageAction.sign_up)
        with self._transaction():
            shift = self._require_shift(shift_id, for_update=True)
            ensure_shift_open(shift)
            ensure_confirmed_holder(self.store.signups.find(shift_id, actor.id))
            ensure_no_active_trade(self.store.trades.find_active(actor.id, shift_id))
            trade = self.store.trades.insert(
                ShiftTradeRequest(
                    requester_id=actor.id,
                    shift_id=shift_id,
                    reason=_normalize_text(reason),
                    status=ShiftTradeStatus.pending,
                )
            )

        logger.info("Shift trade %s opened by %s for shift %s", trade.id, actor.id, shift_id)
        message = f"{actor.name} is looking for someone to take {self._shift_label(shift)}."
        if trade.reason:
            message = f"{message} Reason: {trade.reason}"
        self._dispatch(
            self._trade_intent(approver_id, "Shift trade requested", message, NotificationCategory.shift_available, trade.id)
            for approver_id in self._trade_approvers(actor.id)
        )
        return trade

    def review_trade_request(
        self,
        actor: Actor | None,
        trade_id: str,
        action: TradeAction | str,
        *,
        response_note: str | None = None,
    ) -> ShiftTradeRequest:
        try:
            action = TradeAction(action)
        except ValueError as exc:
            raise InvalidInputError(f"Unknown trade action: {action}", field="action") from exc
        required = CoverageAction.approve_trade if action is TradeAction.approve else CoverageAction.sign_up
        self.authorizer.require(actor, required)

        with self._transaction():
            trade = self._require_trade(trade_id)
            ensure_participant(trade, action, actor.id)
            ensure_status(trade, action)
            shift = self._require_shift(trade.shift_id, for_update=action is TradeAction.approve)
            values = {"status": action.target_status}
            if action in (TradeAction.accept, TradeAction.decline):
                if action is TradeAction.accept:
                    ensure_shift_open(shift)
                if actor.id != trade.requester_id:
                    values["target_user_id"] = actor.id
                values["response_note"] = _normalize_text(response_note)
            elif action is TradeAction.approve:
                self._hand_over(shift, from_user_id=trade.requester_id, to_user_id=trade.target_user_id, approver=actor)
                values["approved_by_id"] = actor.id
                values["approved_at"] = _utc_now()
            if not self.store.trades.transition(trade_id, from_statuses=action.from_statuses, values=values):
                self._raise_lost_trade(trade_id, action)
            trade = self.store.trades.get(trade_id)

        logger.info("Shift trade %s %s by %s", trade_id, trade.status.value, actor.id)
        self._dispatch(self._trade_review_intents(trade, shift, action, actor))
        return trade

    def _trade_review_intents(
        self,
        trade: ShiftTradeRequest,
        shift: OpenShift,
        action: TradeAction,
        actor: Actor,
    ) -> list[NotificationIntent]:
        label = self._shift_label(shift)
        note = f" Note: {trade.response_note}" if trade.response_note else ""
        if action is TradeAction.accept:
            intents = [
                self._trade_intent(
                    trade.requester_id,
                    "Shift trade accepted",
                    f"{actor.name} agreed to take {label}. Awaiting approval.{note}",
                    NotificationCategory.general,
                    trade.id,
                )
            ]
            intents.extend(
                self._trade_intent(
                    approver_id,
                    "Shift trade awaiting approval",
                    f"{actor.name} agreed to take {label}.",
                    NotificationCategory.general,
                    trade.id,
                )
                for approver_id in self._trade_approvers(actor.id, trade.requester_id)
            )
            return intents
        if action is TradeAction.decline:
            if actor.id == trade.requester_id:
                return []
            return [
                self._trade_intent(
                    trade.requester_id,
                    "Shift trade declined",
                    f"{actor.name} declined your trade request for {label}.{note}",
                    NotificationCategory.shift_declined,
                    trade.id,
                )
            ]
        if action is TradeAction.approve:
            return [
                self._trade_intent(
                    trade.requester_id,
                    "Shift trade approved",
                    f"Your trade for {label} was approved. You are no longer scheduled.",
                    NotificationCategory.shift_withdrawn,
                    trade.id,
                ),
                self._trade_intent(
                    trade.target_user_id,
                    "Shift trade approved",
                    f"You're confirmed for {label}.",
                    NotificationCategory.shift_confirmed,
                    trade.id,
                ),
            ]
        if trade.target_user_id:
            return [
                self._trade_intent(
                    trade.target_user_id,
                    "Shift trade cancelled",
                    f"The trade request for {label} was withdrawn by the requester.",
                    NotificationCategory.general,
                    trade.id,
                )
            ]
        return []

    def _raise_lost_trade(self, trade_id: str, action: TradeAction) -> None:
        ensure_status(self._require_trade(trade_id), action)
        raise ConflictError("This trade was changed by someone else", reason="trade_not_open")

    def list_trade_requests(
        self,
        actor: Actor | None,
        *,
        status: ShiftTradeStatus | None = None,
        mine: bool = False,
    ) -> list[TradeView]:
        if actor is None:
            raise UnauthenticatedError()
        sees_all = self.authorizer.allows(actor, CoverageAction.approve_trade) and not mine
        trades = self.store.trades.list(
            visible_to=None if sees_all else actor.id,
            statuses={status} if status is not None else None,
        )
        if mine:
            trades = [item for item in trades if actor.id in (item.requester_id, item.target_user_id)]
        shifts: dict[str, OpenShift | None] = {}
        for item in trades:
            if item.shift_id not in shifts:
                shifts[item.shift_id] = self.store.shifts.get(item.shift_id)
        return [TradeView(trade=item, shift=shifts[item.shift_id]) for item in trades]

    # Swap volunteers

    def express_trade_interest(
        self,
        actor: Actor | None,
        trade_id: str,
        *,
        notes: str | None = None,
    ) -> ShiftSwapInterest:
        self.authorizer.require(actor, CoverageAction.sign_up)
        with self._transaction():
            trade = self._require_trade(trade_id)
            ensure_open(trade)
            ensure_not_requester(trade, actor.id)
            shift = self._require_shift(trade.shift_id)
            ensure_shift_open(shift)
            if self.store.trade_interests.find(trade_id, actor.id) is not None:
                raise ConflictError("You have already volunteered for this shift", reason="duplicate_interest")
            interest = self.store.trade_interests.insert(
                ShiftSwapInterest(trade_request_id=trade_id, instructor_id=actor.id, notes=_normalize_text(notes))
            )

        logger.info("Instructor %s volunteered for shift trade %s", actor.id, trade_id)
        message = f"{actor.name} volunteered to take {self._shift_label(shift)}."
        recipients = [trade.requester_id, *self._trade_approvers(actor.id, trade.requester_id)]
        self._dispatch(
            self._trade_intent(recipient_id, "New swap volunteer", message, NotificationCategory.shift_available, trade.id)
            for recipient_id in recipients
        )
        return interest

    def withdraw_trade_interest(self, actor: Actor | None, trade_id: str) -> None:
        if actor is None:
            raise UnauthenticatedError()
        with self._transaction():
            self._require_trade(trade_id)
            interest = self.store.trade_interests.find(trade_id, actor.id)
            if interest is None:
                raise ResourceNotFoundError("Swap interest", f"{trade_id}/{actor.id}")
            ensure_interest_withdrawable(interest)
            if not self.store.trade_interests.delete_unselected(interest.id):
                raise ConflictError("You were already assigned this shift and cannot withdraw", reason="interest_selected")
        logger.info("Instructor %s withdrew interest in shift trade %s", actor.id, trade_id)

    def list_trade_interests(self, actor: Actor | None, trade_id: str) -> TradeInterestBoard:
        if actor is None:
            raise UnauthenticatedError()
        self._require_trade(trade_id)
        interests = self.store.trade_interests.list_for_trade(trade_id)
        mine = next((item for item in interests if item.instructor_id == actor.id), None)
        return TradeInterestBoard(interests=interests, my_interest=mine)

    def assign_trade_volunteer(self, actor: Actor | None, trade_id: str, interest_id: str) -> TradeAssignment:
        self.authorizer.require(actor, CoverageAction.approve_trade)
        with self._transaction():
            trade = self._require_trade(trade_id)
            ensure_open(trade)
            interest = self.store.trade_interests.get(interest_id)
            if interest is None or interest.trade_request_id != trade_id:
                raise ResourceNotFoundError("Swap interest", interest_id)
            ensure_selectable(interest)
            shift = self._require_shift(trade.shift_id, for_update=True)
            self._hand_over(shift, from_user_id=trade.requester_id, to_user_id=interest.instructor_id, approver=actor)
            if not self.store.trade_interests.mark_selected(interest_id):
                raise ConflictError("This volunteer can no longer be assigned", reason="interest_unavailable")
            declined = self.store.trade_interests.decline_others(trade_id, keep_id=interest_id)
            approved = self.store.trades.transition(
                trade_id,
                from_statuses=OPEN_TRADE_STATUSES,
                values={
                    "status": ShiftTradeStatus.approved,
                    "target_user_id": interest.instructor_id,
                    "approved_by_id": actor.id,
                    "approved_at": _utc_now(),
                },
            )
            if not approved:
                raise ConflictError("This trade was changed by someone else", reason="trade_not_open")
            trade = self.store.trades.get(trade_id)
            interest = self.store.trade_interests.get(interest_id)

        logger.info(
            "Shift trade %s assigned to %s by %s (%d declined)", trade_id, interest.instructor_id, actor.id, len(declined)
        )
        label = self._shift_label(shift)
        intents = [
            self._trade_intent(
                interest.instructor_id,
                "Shift assigned to you",
                f"You're confirmed for {label}.",
                NotificationCategory.shift_confirmed,
                trade.id,
            ),
            self._trade_intent(
                trade.requester_id,
                "Shift trade filled",
                f"A volunteer is taking {label}. You are no longer scheduled.",
                NotificationCategory.shift_withdrawn,
                trade.id,
            ),
        ]
        intents.extend(
            self._trade_intent(
                instructor_id,
                "Shift filled",
                f"{label} was filled by another volunteer. Thanks for offering.",
                NotificationCategory.general,
                trade.id,
            )
            for instructor_id in declined
        )
        self._dispatch(intents)
        return TradeAssignment(trade=trade, interest=interest, declined_instructor_ids=declined)
