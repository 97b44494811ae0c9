from __future__ import annotations

from enum import Enum
from typing import Protocol

from app.core.config import Settings, get_settings
from app.core.exceptions import ForbiddenError, UnauthenticatedError
from app.models.user import UserRole

ROLE_LEVELS: dict[UserRole, int] = {
    UserRole.superadmin: 5,
    UserRole.admin: 4,
    UserRole.lead_instructor: 3,
    UserRole.instructor: 2,
    UserRole.volunteer_instructor: 2,
    UserRole.guest: 1,
}


class Actor(Protocol):
    id: str
    name: str
    role: UserRole
    is_director: bool


class CoverageAction(str, Enum):
    manage_shifts = "shift.manage"
    review_signup = "signup.review"
    sign_up = "signup.create"
    request_substitute = "substitute.create"
    review_substitute = "substitute.review"
    view_all_substitutes = "substitute.view_all"
    approve_trade = "trade.approve"
    administer = "coverage.admin"


DENIAL_MESSAGES: dict[CoverageAction, str] = {
    CoverageAction.manage_shifts: "Only directors can manage shifts",
    CoverageAction.review_signup: "Only directors can confirm or decline signups",
    CoverageAction.sign_up: "Only instructors can sign up for shifts",
    CoverageAction.request_substitute: "Only instructors can request substitutes",
    CoverageAction.review_substitute: "Only lead instructors and above can approve or deny requests",
    CoverageAction.view_all_substitutes: "Only lead instructors and above can view all requests",
    CoverageAction.approve_trade: "Only directors and admins can approve shift trades",
    CoverageAction.administer: "Administrator role required",
}

# A director endorsement satisfies these regardless of role level.
DIRECTOR_ACTIONS = frozenset(
    {CoverageAction.manage_shifts, CoverageAction.review_signup, CoverageAction.approve_trade}
)


def role_level(role: UserRole | str) -> int:
    try:
        return ROLE_LEVELS[UserRole(role)]
    except ValueError:
        return 0


def has_min_role(role: UserRole | str, threshold: UserRole | str) -> bool:
    return role_level(role) >= role_level(threshold)


class RoleAuthorizer:
    """Single place that answers "may this actor perform this coverage action"."""

    def __init__(
        self,
        requirements: dict[CoverageAction, UserRole],
        *,
        director_endorsement_enabled: bool = True,
    ) -> None:
        missing = set(CoverageAction) - set(requirements)
        if missing:
            raise ValueError(f"Missing role requirements for: {', '.join(sorted(item.value for item in missing))}")
        self._requirements = dict(requirements)
        self._director_endorsement_enabled = director_endorsement_enabled

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "RoleAuthorizer":
        settings = settings or get_settings()
        instructor = UserRole(settings.signup_min_role)
        return cls(
            {
                CoverageAction.manage_shifts: UserRole(settings.shift_manager_min_role),
                CoverageAction.review_signup: UserRole(settings.shift_manager_min_role),
                CoverageAction.sign_up: instructor,
                CoverageAction.request_substitute: instructor,
                CoverageAction.review_substitute: UserRole(settings.substitute_reviewer_min_role),
                CoverageAction.view_all_substitutes: UserRole(settings.substitute_reviewer_min_role),
                CoverageAction.approve_trade: UserRole(settings.trade_approver_min_role),
                CoverageAction.administer: UserRole(settings.coverage_admin_min_role),
            },
            director_endorsement_enabled=settings.director_endorsement_enabled,
        )

    def threshold(self, action: CoverageAction) -> UserRole:
        return self._requirements[action]

    def allows(self, actor: Actor | None, action: CoverageAction) -> bool:
        if actor is None:
            return False
        if (
            self._director_endorsement_enabled
            and action in DIRECTOR_ACTIONS
            and getattr(actor, "is_director", False)
        ):
            return True
        return has_min_role(actor.role, self._requirements[action])

    def require(self, actor: Actor | None, action: CoverageAction) -> None:
        if actor is None:
            raise UnauthenticatedError()
        if not self.allows(actor, action):
            raise ForbiddenError(DENIAL_MESSAGES[action], reason="insufficient_role")

    def eligible_roles(self, action: CoverageAction) -> list[UserRole]:
        threshold = self._requirements[action]
        return [role for role in UserRole if has_min_role(role, threshold)]
