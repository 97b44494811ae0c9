from datetime import date, datetime, time, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.exceptions import ConflictError
from app.db.base import Base
from app.db.store import SqlCoverageStore
from app.models.open_shift import OpenShift
from app.models.shift_signup import ShiftSignup, SignupStatus
from app.models.shift_trade import ShiftSwapInterest, ShiftTradeRequest, ShiftTradeStatus, SwapInterestStatus
from app.models.substitute_request import SubstituteReason, SubstituteRequest, SubstituteRequestStatus


def _confirm_values(reviewer_id: str) -> dict:
    return {
        "status": SignupStatus.confirmed,
        "confirmed_by_id": reviewer_id,
        "confirmed_at": datetime.now(timezone.utc),
    }


def test_conditional_confirm_refuses_the_slot_a_racer_already_took(db, make_user, make_shift):
    store = SqlCoverageStore(db)
    admin = make_user("admin")
    shift = make_shift(admin, max_instructors=1)
    first = store.signups.insert(ShiftSignup(shift_id=shift.id, instructor_id="inst-a", status=SignupStatus.pending))
    second = store.signups.insert(ShiftSignup(shift_id=shift.id, instructor_id="inst-b", status=SignupStatus.pending))
    store.commit()

    # Both reviewers read one free slot; only the first conditional write may land.
    assert store.signups.confirm_within_capacity(
        first.id, shift_id=shift.id, max_instructors=1, values=_confirm_values(admin.id)
    )
    assert not store.signups.confirm_within_capacity(
        second.id, shift_id=shift.id, max_instructors=1, values=_confirm_values(admin.id)
    )
    store.commit()

    assert store.signups.confirmed_count(shift.id) == 1
    assert store.signups.get(second.id).status == SignupStatus.pending


def test_conditional_confirm_ignores_capacity_for_unbounded_shift(db, make_user, make_shift):
    store = SqlCoverageStore(db)
    shift = make_shift(make_user("admin"), max_instructors=None)
    signups = [
        store.signups.insert(ShiftSignup(shift_id=shift.id, instructor_id=f"inst-{i}", status=SignupStatus.pending))
        for i in range(3)
    ]
    store.commit()
    for signup in signups:
        assert store.signups.confirm_within_capacity(
            signup.id, shift_id=shift.id, max_instructors=None, values=_confirm_values("admin")
        )
    store.commit()
    assert store.signups.confirmed_count(shift.id) == 3


def test_transition_only_applies_from_expected_status(db, make_user, make_shift):
    store = SqlCoverageStore(db)
    shift = make_shift(make_user("admin"))
    signup = store.signups.insert(ShiftSignup(shift_id=shift.id, instructor_id="inst-a", status=SignupStatus.pending))
    store.commit()

    assert store.signups.transition(signup.id, from_statuses={SignupStatus.pending}, values={"status": SignupStatus.declined})
    assert not store.signups.transition(
        signup.id, from_statuses={SignupStatus.pending}, values={"status": SignupStatus.confirmed}
    )
    store.commit()
    assert store.signups.get(signup.id).status == SignupStatus.declined


def test_unique_signup_per_instructor_surfaces_as_conflict(db, make_user, make_shift):
    store = SqlCoverageStore(db)
    shift = make_shift(make_user("admin"))
    store.signups.insert(ShiftSignup(shift_id=shift.id, instructor_id="inst-a", status=SignupStatus.pending))
    store.commit()

    with pytest.raises(ConflictError) as exc_info:
        store.signups.insert(ShiftSignup(shift_id=shift.id, instructor_id="inst-a", status=SignupStatus.pending))
    assert exc_info.value.reason == "duplicate_signup"


def test_pending_substitute_uniqueness_enforced_by_partial_index(db):
    store = SqlCoverageStore(db)

    def _request(status=SubstituteRequestStatus.pending):
        return SubstituteRequest(
            requester_id="inst-a",
            lab_day_id="day-1",
            reason=SubstituteReason.illness,
            status=status,
        )

    store.substitute_requests.insert(_request(SubstituteRequestStatus.denied))
    store.substitute_requests.insert(_request(SubstituteRequestStatus.cancelled))
    pending = store.substitute_requests.insert(_request())
    store.commit()

    with pytest.raises(ConflictError) as exc_info:
        store.substitute_requests.insert(_request())
    assert exc_info.value.reason == "pending_request_exists"

    assert store.substitute_requests.find_pending("inst-a", "day-1").id == pending.id
    assert store.substitute_requests.transition_pending(pending.id, values={"status": SubstituteRequestStatus.approved})
    assert not store.substitute_requests.delete_pending(pending.id)
    store.commit()


def test_mark_cancelled_is_one_shot(db, make_user, make_shift):
    store = SqlCoverageStore(db)
    shift = make_shift(make_user("admin"))
    assert store.shifts.mark_cancelled(shift.id)
    assert not store.shifts.mark_cancelled(shift.id)
    store.commit()
    assert store.shifts.get(shift.id).is_cancelled


@pytest.fixture()
def file_sessions(tmp_path):
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'coverage.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    sessions = [factory(), factory()]
    yield sessions
    for session in sessions:
        session.close()
    engine.dispose()


def test_two_sessions_racing_for_the_last_slot(file_sessions):
    setup_session, other_session = file_sessions
    setup = SqlCoverageStore(setup_session)
    shift = OpenShift(
        title="Airway Lab",
        date=date(2026, 11, 3),
        start_time=time(8, 0),
        end_time=time(12, 0),
        min_instructors=1,
        max_instructors=1,
    )
    setup.shifts.add_many([shift])
    first = setup.signups.insert(ShiftSignup(shift_id=shift.id, instructor_id="inst-a", status=SignupStatus.pending))
    second = setup.signups.insert(ShiftSignup(shift_id=shift.id, instructor_id="inst-b", status=SignupStatus.pending))
    setup.commit()

    reviewer_a = setup
    reviewer_b = SqlCoverageStore(other_session)
    # Both reviewers see the free slot before either writes.
    assert reviewer_a.signups.confirmed_count(shift.id) == 0
    assert reviewer_b.signups.confirmed_count(shift.id) == 0

    assert reviewer_a.signups.confirm_within_capacity(
        first.id, shift_id=shift.id, max_instructors=1, values=_confirm_values("admin-a")
    )
    reviewer_a.commit()

    assert not reviewer_b.signups.confirm_within_capacity(
        second.id, shift_id=shift.id, max_instructors=1, values=_confirm_values("admin-b")
    )
    reviewer_b.commit()

    assert reviewer_b.signups.confirmed_count(shift.id) == 1
    assert reviewer_b.signups.get(second.id).status == SignupStatus.pending


def test_deleted_request_is_gone_from_the_session(db):
    store = SqlCoverageStore(db)
    request = store.substitute_requests.insert(
        SubstituteRequest(
            requester_id="inst-a",
            lab_day_id="day-1",
            reason=SubstituteReason.personal,
            status=SubstituteRequestStatus.pending,
        )
    )
    store.commit()

    assert store.substitute_requests.delete_pending(request.id)
    store.commit()
    assert store.substitute_requests.get(request.id) is None
    assert not store.substitute_requests.delete_pending(request.id)


def test_one_open_trade_per_requester_and_shift(db, make_user, make_shift):
    store = SqlCoverageStore(db)
    shift = make_shift(make_user("admin"))

    def _trade(status=ShiftTradeStatus.pending):
        return ShiftTradeRequest(requester_id="inst-a", shift_id=shift.id, status=status)

    store.trades.insert(_trade(ShiftTradeStatus.declined))
    accepted = store.trades.insert(_trade(ShiftTradeStatus.accepted))
    store.commit()

    with pytest.raises(ConflictError) as exc_info:
        store.trades.insert(_trade())
    assert exc_info.value.reason == "trade_request_exists"

    assert store.trades.find_active("inst-a", shift.id).id == accepted.id
    assert not store.trades.transition(
        accepted.id, from_statuses={ShiftTradeStatus.pending}, values={"status": ShiftTradeStatus.declined}
    )
    assert store.trades.transition(
        accepted.id, from_statuses={ShiftTradeStatus.accepted}, values={"status": ShiftTradeStatus.cancelled}
    )
    store.commit()
    assert store.trades.find_active("inst-a", shift.id) is None


def test_selected_interest_survives_delete_and_others_are_declined(db, make_user, make_shift):
    store = SqlCoverageStore(db)
    shift = make_shift(make_user("admin"))
    trade = store.trades.insert(ShiftTradeRequest(requester_id="inst-a", shift_id=shift.id))
    chosen, passed_over, gone = (
        store.trade_interests.insert(ShiftSwapInterest(trade_request_id=trade.id, instructor_id=name))
        for name in ("inst-b", "inst-c", "inst-d")
    )
    store.commit()

    assert store.trade_interests.delete_unselected(gone.id)
    assert store.trade_interests.get(gone.id) is None
    assert store.trade_interests.mark_selected(chosen.id)
    assert not store.trade_interests.mark_selected(chosen.id)
    assert store.trade_interests.decline_others(trade.id, keep_id=chosen.id) == ["inst-c"]
    assert not store.trade_interests.delete_unselected(chosen.id)
    store.commit()

    assert store.trade_interests.get(passed_over.id).status == SwapInterestStatus.declined
    assert sorted(item.instructor_id for item in store.trade_interests.list_for_trade(trade.id)) == ["inst-b", "inst-c"]
