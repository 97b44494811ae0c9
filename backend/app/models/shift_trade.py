import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, ForeignKey, Index, String, Text, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base

ACTIVE_TRADE_CLAUSE = "status IN ('pending', 'accepted')"


class ShiftTradeStatus(str, Enum):
    pending = "pending"
    # A colleague agreed to take the shift; awaiting approval.
    accepted = "accepted"
    approved = "approved"
    declined = "declined"
    cancelled = "cancelled"


class SwapInterestStatus(str, Enum):
    interested = "interested"
    selected = "selected"
    declined = "declined"


class ShiftTradeRequest(Base):
    __tablename__ = "shift_trade_requests"
    __table_args__ = (
        Index(
            "uq_shift_trade_requests_active",
            "requester_id",
            "shift_id",
            unique=True,
            postgresql_where=text(ACTIVE_TRADE_CLAUSE),
            sqlite_where=text(ACTIVE_TRADE_CLAUSE),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    requester_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    shift_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("open_shifts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[ShiftTradeStatus] = mapped_column(
        SAEnum(ShiftTradeStatus, name="shift_trade_status"),
        nullable=False,
        default=ShiftTradeStatus.pending,
        index=True,
    )
    target_user_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    response_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    approved_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())


class ShiftSwapInterest(Base):
    __tablename__ = "shift_swap_interests"
    __table_args__ = (
        UniqueConstraint("trade_request_id", "instructor_id", name="uq_shift_swap_interest_instructor"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    trade_request_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("shift_trade_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    instructor_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    status: Mapped[SwapInterestStatus] = mapped_column(
        SAEnum(SwapInterestStatus, name="shift_swap_interest_status"),
        nullable=False,
        default=SwapInterestStatus.interested,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
