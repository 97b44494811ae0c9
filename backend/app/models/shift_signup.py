import uuid
from datetime import datetime, time
from enum import Enum

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, String, Text, Time, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class SignupStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    declined = "declined"
    withdrawn = "withdrawn"


class ShiftSignup(Base):
    __tablename__ = "shift_signups"
    __table_args__ = (
        UniqueConstraint("shift_id", "instructor_id", name="uq_shift_signup_instructor"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    shift_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("open_shifts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    instructor_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    signup_start_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    signup_end_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    is_partial: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[SignupStatus] = mapped_column(
        SAEnum(SignupStatus, name="shift_signup_status"),
        nullable=False,
        default=SignupStatus.pending,
        index=True,
    )
    confirmed_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    declined_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
