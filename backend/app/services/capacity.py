from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from app.models.shift_signup import SignupStatus

# Statuses that hold a claim on a shift for an instructor.
ACTIVE_SIGNUP_STATUSES = frozenset({SignupStatus.pending, SignupStatus.confirmed})


def confirmed_count(statuses: Iterable[SignupStatus]) -> int:
    return sum(1 for item in statuses if item == SignupStatus.confirmed)


def active_count(statuses: Iterable[SignupStatus]) -> int:
    return sum(1 for item in statuses if item in ACTIVE_SIGNUP_STATUSES)


def has_capacity(max_instructors: int | None, confirmed: int) -> bool:
    return max_instructors is None or confirmed < max_instructors


@dataclass(frozen=True)
class CapacityLedger:
    """Snapshot of one shift's claims, recomputed from signup rows on every check."""

    max_instructors: int | None
    min_instructors: int
    confirmed: int
    active: int

    @classmethod
    def from_statuses(
        cls,
        statuses: Iterable[SignupStatus],
        *,
        max_instructors: int | None,
        min_instructors: int = 1,
    ) -> "CapacityLedger":
        values = list(statuses)
        return cls(
            max_instructors=max_instructors,
            min_instructors=min_instructors,
            confirmed=confirmed_count(values),
            active=active_count(values),
        )

    @property
    def has_capacity(self) -> bool:
        return has_capacity(self.max_instructors, self.confirmed)

    @property
    def is_filled(self) -> bool:
        return not self.has_capacity

    @property
    def remaining(self) -> int | None:
        if self.max_instructors is None:
            return None
        return max(0, self.max_instructors - self.confirmed)

    @property
    def is_understaffed(self) -> bool:
        return self.confirmed < self.min_instructors
