"""create shift trades

Revision ID: 20261019_0005
Revises: 20261019_0004
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20261019_0005"
down_revision = "20261019_0004"
branch_labels = None
depends_on = None


trade_status_enum = postgresql.ENUM(
    "pending",
    "accepted",
    "approved",
    "declined",
    "cancelled",
    name="shift_trade_status",
    create_type=False,
)
interest_status_enum = postgresql.ENUM(
    "interested",
    "selected",
    "declined",
    name="shift_swap_interest_status",
    create_type=False,
)

ACTIVE_TRADE = "status IN ('pending', 'accepted')"


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    trade_status_enum.create(bind, checkfirst=True)
    interest_status_enum.create(bind, checkfirst=True)

    if not inspector.has_table("shift_trade_requests"):
        op.create_table(
            "shift_trade_requests",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("requester_id", sa.String(length=36), nullable=False),
            sa.Column("shift_id", sa.String(length=36), nullable=False),
            sa.Column("reason", sa.Text(), nullable=True),
            sa.Column("status", trade_status_enum, nullable=False),
            sa.Column("target_user_id", sa.String(length=36), nullable=True),
            sa.Column("response_note", sa.Text(), nullable=True),
            sa.Column("approved_by_id", sa.String(length=36), nullable=True),
            sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["shift_id"], ["open_shifts.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )

    if not inspector.has_table("shift_swap_interests"):
        op.create_table(
            "shift_swap_interests",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("trade_request_id", sa.String(length=36), nullable=False),
            sa.Column("instructor_id", sa.String(length=36), nullable=False),
            sa.Column("status", interest_status_enum, nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
            sa.ForeignKeyConstraint(["trade_request_id"], ["shift_trade_requests.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("trade_request_id", "instructor_id", name="uq_shift_swap_interest_instructor"),
        )

    for table_name, indexes in (
        (
            "shift_trade_requests",
            (
                ("ix_shift_trade_requests_requester_id", ["requester_id"]),
                ("ix_shift_trade_requests_shift_id", ["shift_id"]),
                ("ix_shift_trade_requests_status", ["status"]),
                ("ix_shift_trade_requests_target_user_id", ["target_user_id"]),
            ),
        ),
        (
            "shift_swap_interests",
            (
                ("ix_shift_swap_interests_trade_request_id", ["trade_request_id"]),
                ("ix_shift_swap_interests_instructor_id", ["instructor_id"]),
            ),
        ),
    ):
        existing_indexes = {item["name"] for item in sa.inspect(bind).get_indexes(table_name)}
        for index_name, columns in indexes:
            if index_name in existing_indexes:
                continue
            op.create_index(index_name, table_name, columns, unique=False)

    # One open trade per instructor and shift.
    existing_indexes = {item["name"] for item in sa.inspect(bind).get_indexes("shift_trade_requests")}
    if "uq_shift_trade_requests_active" not in existing_indexes:
        op.create_index(
            "uq_shift_trade_requests_active",
            "shift_trade_requests",
            ["requester_id", "shift_id"],
            unique=True,
            postgresql_where=sa.text(ACTIVE_TRADE),
            sqlite_where=sa.text(ACTIVE_TRADE),
        )


def downgrade() -> None:
    op.drop_table("shift_swap_interests")
    op.drop_table("shift_trade_requests")
    interest_status_enum.drop(op.get_bind(), checkfirst=True)
    trade_status_enum.drop(op.get_bind(), checkfirst=True)
