"""Persistence seam for the coverage workflow.

Every state transition is written as a conditional UPDATE/DELETE whose WHERE
clause restates the expected prior state. The returned flag tells the caller
whether it won; a ``False`` means a concurrent writer got there first.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from typing import Any, Protocol

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased
from sqlalchemy.orm.util import identity_key

from app.core.exceptions import ConflictError
from app.models.open_shift import OpenShift
from app.models.shift_signup import ShiftSignup, SignupStatus
from app.models.shift_trade import ShiftSwapInterest, ShiftTradeRequest, ShiftTradeStatus, SwapInterestStatus
from app.models.substitute_request import SubstituteRequest, SubstituteRequestStatus


class ShiftRepository(Protocol):
    def get(self, shift_id: str, *, for_update: bool = False) -> OpenShift | None: ...

    def add_many(self, shifts: list[OpenShift]) -> list[OpenShift]: ...

    def save(self, shift: OpenShift) -> OpenShift: ...

    def mark_cancelled(self, shift_id: str) -> bool: ...

    def list(
        self,
        *,
        start_date: date | None = None,
        end_date: date | None = None,
        department: str | None = None,
        include_cancelled: bool = False,
    ) -> list[OpenShift]: ...


class SignupRepository(Protocol):
    def get(self, signup_id: str) -> ShiftSignup | None: ...

    def find(self, shift_id: str, instructor_id: str) -> ShiftSignup | None: ...

    def list_for_shifts(self, shift_ids: Iterable[str]) -> dict[str, list[ShiftSignup]]: ...

    def list_by_status(self, status: SignupStatus) -> list[ShiftSignup]: ...

    def confirmed_count(self, shift_id: str) -> int: ...

    def insert(self, signup: ShiftSignup) -> ShiftSignup: ...

    def transition(self, signup_id: str, *, from_statuses: Iterable[SignupStatus], values: dict[str, Any]) -> bool: ...

    def confirm_within_capacity(
        self,
        signup_id: str,
        *,
        shift_id: str,
        max_instructors: int | None,
        values: dict[str, Any],
    ) -> bool: ...


class SubstituteRequestRepository(Protocol):
    def get(self, request_id: str) -> SubstituteRequest | None: ...

    def find_pending(self, requester_id: str, lab_day_id: str) -> SubstituteRequest | None: ...

    def insert(self, request: SubstituteRequest) -> SubstituteRequest: ...

    def transition_pending(self, request_id: str, *, values: dict[str, Any]) -> bool: ...

    def delete_pending(self, request_id: str) -> bool: ...

    def list(
        self,
        *,
        requester_id: str | None = None,
        statuses: Iterable[SubstituteRequestStatus] | None = None,
    ) -> list[SubstituteRequest]: ...


class TradeRepository(Protocol):
    def get(self, trade_id: str) -> ShiftTradeRequest | None: ...

    def find_active(self, requester_id: str, shift_id: str) -> ShiftTradeRequest | None: ...

    def insert(self, trade: ShiftTradeRequest) -> ShiftTradeRequest: ...

    def transition(
        self, trade_id: str, *, from_statuses: Iterable[ShiftTradeStatus], values: dict[str, Any]
    ) -> bool: ...

    def list(
        self,
        *,
        visible_to: str | None = None,
        statuses: Iterable[ShiftTradeStatus] | None = None,
    ) -> list[ShiftTradeRequest]: ...


class SwapInterestRepository(Protocol):
    def get(self, interest_id: str) -> ShiftSwapInterest | None: ...

    def find(self, trade_id: str, instructor_id: str) -> ShiftSwapInterest | None: ...

    def list_for_trade(self, trade_id: str) -> list[ShiftSwapInterest]: ...

    def insert(self, interest: ShiftSwapInterest) -> ShiftSwapInterest: ...

    def mark_selected(self, interest_id: str) -> bool: ...

    def decline_others(self, trade_id: str, *, keep_id: str) -> list[str]: ...

    def delete_unselected(self, interest_id: str) -> bool: ...


class CoverageStore(Protocol):
    shifts: ShiftRepository
    signups: SignupRepository
    substitute_requests: SubstituteRequestRepository
    trades: TradeRepository
    trade_interests: SwapInterestRepository

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


def _conditional(db: Session, statement) -> bool:
    result = db.execute(statement.execution_options(synchronize_session=False))
    return (result.rowcount or 0) > 0


class SqlShiftRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, shift_id: str, *, for_update: bool = False) -> OpenShift | None:
        query = select(OpenShift).where(OpenShift.id == shift_id)
        if for_update:
            query = query.with_for_update()
        return self.db.execute(query.execution_options(populate_existing=True)).scalar_one_or_none()

    def add_many(self, shifts: list[OpenShift]) -> list[OpenShift]:
        self.db.add_all(shifts)
        self.db.flush()
        return shifts

    def save(self, shift: OpenShift) -> OpenShift:
        self.db.add(shift)
        self.db.flush()
        return shift

    def mark_cancelled(self, shift_id: str) -> bool:
        return _conditional(
            self.db,
            update(OpenShift)
            .where(OpenShift.id == shift_id, OpenShift.is_cancelled.is_(False))
            .values(is_cancelled=True),
        )

    def list(
        self,
        *,
        start_date: date | None = None,
        end_date: date | None = None,
        department: str | None = None,
        include_cancelled: bool = False,
    ) -> list[OpenShift]:
        query = select(OpenShift)
        if not include_cancelled:
            query = query.where(OpenShift.is_cancelled.is_(False))
        if start_date is not None:
            query = query.where(OpenShift.date >= start_date)
        if end_date is not None:
            query = query.where(OpenShift.date <= end_date)
        if department:
            query = query.where(OpenShift.department == department)
        query = query.order_by(OpenShift.date.asc(), OpenShift.start_time.asc(), OpenShift.title.asc())
        return list(self.db.execute(query).scalars())


class SqlSignupRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, signup_id: str) -> ShiftSignup | None:
        return self.db.get(ShiftSignup, signup_id, populate_existing=True)

    def find(self, shift_id: str, instructor_id: str) -> ShiftSignup | None:
        return self.db.execute(
            select(ShiftSignup)
            .where(ShiftSignup.shift_id == shift_id, ShiftSignup.instructor_id == instructor_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def list_for_shifts(self, shift_ids: Iterable[str]) -> dict[str, list[ShiftSignup]]:
        ids = list(dict.fromkeys(shift_ids))
        grouped: dict[str, list[ShiftSignup]] = {item: [] for item in ids}
        if not ids:
            return grouped
        rows = self.db.execute(
            select(ShiftSignup)
            .where(ShiftSignup.shift_id.in_(ids))
            .order_by(ShiftSignup.created_at.asc())
            .execution_options(populate_existing=True)
        ).scalars()
        for row in rows:
            grouped[row.shift_id].append(row)
        return grouped

    def list_by_status(self, status: SignupStatus) -> list[ShiftSignup]:
        return list(
            self.db.execute(
                select(ShiftSignup).where(ShiftSignup.status == status).order_by(ShiftSignup.created_at.asc())
            ).scalars()
        )

    def confirmed_count(self, shift_id: str) -> int:
        return int(
            self.db.execute(
                select(func.count(ShiftSignup.id)).where(
                    ShiftSignup.shift_id == shift_id,
                    ShiftSignup.status == SignupStatus.confirmed,
                )
            ).scalar_one()
        )

    def insert(self, signup: ShiftSignup) -> ShiftSignup:
        self.db.add(signup)
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError("You have already signed up for this shift", reason="duplicate_signup") from exc
        return signup

    def transition(self, signup_id: str, *, from_statuses: Iterable[SignupStatus], values: dict[str, Any]) -> bool:
        return _conditional(
            self.db,
            update(ShiftSignup)
            .where(ShiftSignup.id == signup_id, ShiftSignup.status.in_(list(from_statuses)))
            .values(**values),
        )

    def confirm_within_capacity(
        self,
        signup_id: str,
        *,
        shift_id: str,
        max_instructors: int | None,
        values: dict[str, Any],
    ) -> bool:
        statement = update(ShiftSignup).where(
            ShiftSignup.id == signup_id,
            ShiftSignup.shift_id == shift_id,
            ShiftSignup.status == SignupStatus.pending,
        )
        if max_instructors is not None:
            # Aliased so the count is not correlated to the row being updated.
            counted = aliased(ShiftSignup)
            confirmed = (
                select(func.count(counted.id))
                .where(counted.shift_id == shift_id, counted.status == SignupStatus.confirmed)
                .scalar_subquery()
            )
            statement = statement.where(confirmed < max_instructors)
        return _conditional(self.db, statement.values(**values))


class SqlSubstituteRequestRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, request_id: str) -> SubstituteRequest | None:
        return self.db.get(SubstituteRequest, request_id, populate_existing=True)

    def find_pending(self, requester_id: str, lab_day_id: str) -> SubstituteRequest | None:
        return self.db.execute(
            select(SubstituteRequest).where(
                SubstituteRequest.requester_id == requester_id,
                SubstituteRequest.lab_day_id == lab_day_id,
                SubstituteRequest.status == SubstituteRequestStatus.pending,
            )
        ).scalar_one_or_none()

    def insert(self, request: SubstituteRequest) -> SubstituteRequest:
        self.db.add(request)
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError(
                "You already have a pending substitute request for this lab day",
                reason="pending_request_exists",
            ) from exc
        return request

    def transition_pending(self, request_id: str, *, values: dict[str, Any]) -> bool:
        return _conditional(
            self.db,
            update(SubstituteRequest)
            .where(
                SubstituteRequest.id == request_id,
                SubstituteRequest.status == SubstituteRequestStatus.pending,
            )
            .values(**values),
        )

    def delete_pending(self, request_id: str) -> bool:
        deleted = _conditional(
            self.db,
            delete(SubstituteRequest).where(
                SubstituteRequest.id == request_id,
                SubstituteRequest.status == SubstituteRequestStatus.pending,
            ),
        )
        loaded = self.db.identity_map.get(identity_key(SubstituteRequest, request_id))
        if deleted and loaded is not None:
            self.db.expunge(loaded)
        return deleted

    def list(
        self,
        *,
        requester_id: str | None = None,
        statuses: Iterable[SubstituteRequestStatus] | None = None,
    ) -> list[SubstituteRequest]:
        query = select(SubstituteRequest)
        if requester_id is not None:
            query = query.where(SubstituteRequest.requester_id == requester_id)
        if statuses is not None:
            query = query.where(SubstituteRequest.status.in_(list(statuses)))
        return list(self.db.execute(query.order_by(SubstituteRequest.created_at.desc())).scalars())


class SqlTradeRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, trade_id: str) -> ShiftTradeRequest | None:
        return self.db.get(ShiftTradeRequest, trade_id, populate_existing=True)

    def find_active(self, requester_id: str, shift_id: str) -> ShiftTradeRequest | None:
        return self.db.execute(
            select(ShiftTradeRequest).where(
                ShiftTradeRequest.requester_id == requester_id,
                ShiftTradeRequest.shift_id == shift_id,
                ShiftTradeRequest.status.in_([ShiftTradeStatus.pending, ShiftTradeStatus.accepted]),
            )
        ).scalar_one_or_none()

    def insert(self, trade: ShiftTradeRequest) -> ShiftTradeRequest:
        self.db.add(trade)
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError(
                "You already have an open trade request for this shift",
                reason="trade_request_exists",
            ) from exc
        return trade

    def transition(
        self, trade_id: str, *, from_statuses: Iterable[ShiftTradeStatus], values: dict[str, Any]
    ) -> bool:
        return _conditional(
            self.db,
            update(ShiftTradeRequest)
            .where(ShiftTradeRequest.id == trade_id, ShiftTradeRequest.status.in_(list(from_statuses)))
            .values(**values),
        )

    def list(
        self,
        *,
        visible_to: str | None = None,
        statuses: Iterable[ShiftTradeStatus] | None = None,
    ) -> list[ShiftTradeRequest]:
        query = select(ShiftTradeRequest)
        if visible_to is not None:
            # Participants see their own trades; everyone sees open ones to volunteer.
            query = query.where(
                or_(
                    ShiftTradeRequest.requester_id == visible_to,
                    ShiftTradeRequest.target_user_id == visible_to,
                    ShiftTradeRequest.status.in_([ShiftTradeStatus.pending, ShiftTradeStatus.accepted]),
                )
            )
        if statuses is not None:
            query = query.where(ShiftTradeRequest.status.in_(list(statuses)))
        return list(self.db.execute(query.order_by(ShiftTradeRequest.created_at.desc())).scalars())


class SqlSwapInterestRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, interest_id: str) -> ShiftSwapInterest | None:
        return self.db.get(ShiftSwapInterest, interest_id, populate_existing=True)

    def find(self, trade_id: str, instructor_id: str) -> ShiftSwapInterest | None:
        return self.db.execute(
            select(ShiftSwapInterest)
            .where(
                ShiftSwapInterest.trade_request_id == trade_id,
                ShiftSwapInterest.instructor_id == instructor_id,
            )
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def list_for_trade(self, trade_id: str) -> list[ShiftSwapInterest]:
        return list(
            self.db.execute(
                select(ShiftSwapInterest)
                .where(ShiftSwapInterest.trade_request_id == trade_id)
                .order_by(ShiftSwapInterest.created_at.asc())
                .execution_options(populate_existing=True)
            ).scalars()
        )

    def insert(self, interest: ShiftSwapInterest) -> ShiftSwapInterest:
        self.db.add(interest)
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError(
                "You have already volunteered for this shift",
                reason="duplicate_interest",
            ) from exc
        return interest

    def mark_selected(self, interest_id: str) -> bool:
        return _conditional(
            self.db,
            update(ShiftSwapInterest)
            .where(ShiftSwapInterest.id == interest_id, ShiftSwapInterest.status == SwapInterestStatus.interested)
            .values(status=SwapInterestStatus.selected),
        )

    def decline_others(self, trade_id: str, *, keep_id: str) -> list[str]:
        waiting = (
            ShiftSwapInterest.trade_request_id == trade_id,
            ShiftSwapInterest.id != keep_id,
            ShiftSwapInterest.status == SwapInterestStatus.interested,
        )
        declined = list(self.db.execute(select(ShiftSwapInterest.instructor_id).where(*waiting)).scalars())
        if declined:
            _conditional(
                self.db,
                update(ShiftSwapInterest).where(*waiting).values(status=SwapInterestStatus.declined),
            )
        return declined

    def delete_unselected(self, interest_id: str) -> bool:
        deleted = _conditional(
            self.db,
            delete(ShiftSwapInterest).where(
                ShiftSwapInterest.id == interest_id,
                ShiftSwapInterest.status != SwapInterestStatus.selected,
            ),
        )
        loaded = self.db.identity_map.get(identity_key(ShiftSwapInterest, interest_id))
        if deleted and loaded is not None:
            self.db.expunge(loaded)
        return deleted


class SqlCoverageStore:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.shifts = SqlShiftRepository(db)
        self.signups = SqlSignupRepository(db)
        self.substitute_requests = SqlSubstituteRequestRepository(db)
        self.trades = SqlTradeRepository(db)
        self.trade_interests = SqlSwapInterestRepository(db)

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
