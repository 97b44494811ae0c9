from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.lab_day import LabDay, LabDayRole, LabStation
from app.models.user import User, UserRole

# Who hears about a "coverage needed" broadcast.
COVERAGE_POOL_ROLES = (UserRole.instructor, UserRole.lead_instructor, UserRole.volunteer_instructor)


class Directory(Protocol):
    def get_user(self, user_id: str) -> User | None: ...

    def active_user_ids(self, roles: Iterable[UserRole], *, exclude_user_id: str | None = None) -> list[str]: ...

    def get_lab_day(self, lab_day_id: str) -> LabDay | None: ...

    def get_lab_days(self, lab_day_ids: Iterable[str]) -> dict[str, LabDay]: ...

    def is_assigned_to(self, instructor_id: str, lab_day_id: str) -> bool: ...


class SqlDirectory:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_user(self, user_id: str) -> User | None:
        return self.db.get(User, user_id)

    def active_user_ids(self, roles: Iterable[UserRole], *, exclude_user_id: str | None = None) -> list[str]:
        role_list = list(roles)
        if not role_list:
            return []
        query = select(User.id).where(User.role.in_(role_list), User.is_active.is_(True))
        if exclude_user_id:
            query = query.where(User.id != exclude_user_id)
        return list(self.db.execute(query.order_by(User.name)).scalars())

    def get_lab_day(self, lab_day_id: str) -> LabDay | None:
        return self.db.get(LabDay, lab_day_id)

    def get_lab_days(self, lab_day_ids: Iterable[str]) -> dict[str, LabDay]:
        ids = sorted(set(lab_day_ids))
        if not ids:
            return {}
        return {item.id: item for item in self.db.execute(select(LabDay).where(LabDay.id.in_(ids))).scalars()}

    def is_assigned_to(self, instructor_id: str, lab_day_id: str) -> bool:
        role_assignment = self.db.execute(
            select(LabDayRole.id).where(
                LabDayRole.lab_day_id == lab_day_id,
                LabDayRole.instructor_id == instructor_id,
            ).limit(1)
        ).scalar_one_or_none()
        if role_assignment is not None:
            return True
        station_assignment = self.db.execute(
            select(LabStation.id).where(
                LabStation.lab_day_id == lab_day_id,
                LabStation.instructor_id == instructor_id,
            ).limit(1)
        ).scalar_one_or_none()
        return station_assignment is not None
