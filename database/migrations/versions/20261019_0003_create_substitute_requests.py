"""create substitute requests

Revision ID: 20261019_0003
Revises: 20261019_0002
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20261019_0003"
down_revision = "20261019_0002"
branch_labels = None
depends_on = None


reason_enum = postgresql.ENUM(
    "Illness",
    "Personal",
    "Professional Development",
    "Emergency",
    "Other",
    name="substitute_reason",
    create_type=False,
)
status_enum = postgresql.ENUM(
    "pending",
    "approved",
    "denied",
    "cancelled",
    name="substitute_request_status",
    create_type=False,
)


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    reason_enum.create(bind, checkfirst=True)
    status_enum.create(bind, checkfirst=True)

    table_name = "substitute_requests"
    if not inspector.has_table(table_name):
        op.create_table(
            table_name,
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("requester_id", sa.String(length=36), nullable=False),
            sa.Column("lab_day_id", sa.String(length=36), nullable=False),
            sa.Column("reason", reason_enum, nullable=False),
            sa.Column("reason_details", sa.Text(), nullable=True),
            sa.Column("status", status_enum, nullable=False),
            sa.Column("reviewed_by_id", sa.String(length=36), nullable=True),
            sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("review_notes", sa.Text(), nullable=True),
            sa.Column("covered_by_id", sa.String(length=36), nullable=True),
            sa.Column("covered_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )

    existing_indexes = {item["name"] for item in sa.inspect(bind).get_indexes(table_name)}
    index_specs = [
        ("ix_substitute_requests_requester_id", ["requester_id"]),
        ("ix_substitute_requests_lab_day_id", ["lab_day_id"]),
        ("ix_substitute_requests_status", ["status"]),
    ]
    for index_name, columns in index_specs:
        if index_name in existing_indexes:
            continue
        op.create_index(index_name, table_name, columns, unique=False)

    # At most one pending request per instructor and lab day.
    if "uq_substitute_requests_pending_assignment" not in existing_indexes:
        op.create_index(
            "uq_substitute_requests_pending_assignment",
            table_name,
            ["requester_id", "lab_day_id"],
            unique=True,
            postgresql_where=sa.text("status = 'pending'"),
            sqlite_where=sa.text("status = 'pending'"),
        )


def downgrade() -> None:
    op.drop_table("substitute_requests")
    status_enum.drop(op.get_bind(), checkfirst=True)
    reason_enum.drop(op.get_bind(), checkfirst=True)
