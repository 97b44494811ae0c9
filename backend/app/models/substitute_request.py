import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class SubstituteReason(str, Enum):
    illness = "Illness"
    personal = "Personal"
    professional_development = "Professional Development"
    emergency = "Emergency"
    other = "Other"


class SubstituteRequestStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    denied = "denied"
    # Withdrawn by the requester; never produced by a reviewer.
    cancelled = "cancelled"


class SubstituteRequest(Base):
    __tablename__ = "substitute_requests"
    __table_args__ = (
        Index(
            "uq_substitute_requests_pending_assignment",
            "requester_id",
            "lab_day_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    requester_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    lab_day_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    reason: Mapped[SubstituteReason] = mapped_column(
        SAEnum(SubstituteReason, name="substitute_reason", values_callable=lambda items: [item.value for item in items]),
        nullable=False,
    )
    reason_details: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[SubstituteRequestStatus] = mapped_column(
        SAEnum(SubstituteRequestStatus, name="substitute_request_status"),
        nullable=False,
        default=SubstituteRequestStatus.pending,
        index=True,
    )
    reviewed_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    covered_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    covered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
