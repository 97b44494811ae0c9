from app.models.shift_signup import SignupStatus
from app.services.capacity import CapacityLedger, active_count, confirmed_count, has_capacity


def test_unbounded_shift_always_has_capacity():
    assert has_capacity(None, 0)
    assert has_capacity(None, 250)


def test_bounded_shift_fills_at_max():
    assert has_capacity(2, 1)
    assert not has_capacity(2, 2)
    assert not has_capacity(2, 3)


def test_only_confirmed_signups_consume_capacity():
    statuses = [
        SignupStatus.pending,
        SignupStatus.pending,
        SignupStatus.confirmed,
        SignupStatus.declined,
        SignupStatus.withdrawn,
    ]
    assert confirmed_count(statuses) == 1
    assert active_count(statuses) == 3

    ledger = CapacityLedger.from_statuses(statuses, max_instructors=2, min_instructors=1)
    assert ledger.has_capacity
    assert ledger.remaining == 1
    assert not ledger.is_understaffed


def test_ledger_reports_filled_and_understaffed_states():
    full = CapacityLedger.from_statuses([SignupStatus.confirmed] * 2, max_instructors=2, min_instructors=3)
    assert full.is_filled
    assert full.remaining == 0
    assert full.is_understaffed

    open_ended = CapacityLedger.from_statuses([SignupStatus.confirmed] * 5, max_instructors=None)
    assert not open_ended.is_filled
    assert open_ended.remaining is None
