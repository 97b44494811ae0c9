"""create open shifts and signups

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


signup_status_enum = postgresql.ENUM(
    "pending",
    "confirmed",
    "declined",
    "withdrawn",
    name="shift_signup_status",
    create_type=False,
)


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    signup_status_enum.create(bind, checkfirst=True)

    if not inspector.has_table("open_shifts"):
        op.create_table(
            "open_shifts",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("date", sa.Date(), nullable=False),
            sa.Column("start_time", sa.Time(), nullable=False),
            sa.Column("end_time", sa.Time(), nullable=False),
            sa.Column("location", sa.String(length=200), nullable=True),
            sa.Column("department", sa.String(length=100), nullable=True),
            sa.Column("created_by_id", sa.String(length=36), nullable=True),
            sa.Column("min_instructors", sa.Integer(), nullable=False, server_default=sa.text("1")),
            sa.Column("max_instructors", sa.Integer(), nullable=True),
            sa.Column("is_cancelled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.CheckConstraint("start_time < end_time", name="ck_open_shifts_window"),
            sa.CheckConstraint(
                "max_instructors IS NULL OR max_instructors >= min_instructors",
                name="ck_open_shifts_capacity",
            ),
        )

    if not inspector.has_table("shift_signups"):
        op.create_table(
            "shift_signups",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("shift_id", sa.String(length=36), nullable=False),
            sa.Column("instructor_id", sa.String(length=36), nullable=False),
            sa.Column("signup_start_time", sa.Time(), nullable=True),
            sa.Column("signup_end_time", sa.Time(), nullable=True),
            sa.Column("is_partial", sa.Boolean(), nullable=False, server_default=sa.text("false")),
            sa.Column("status", signup_status_enum, nullable=False),
            sa.Column("confirmed_by_id", sa.String(length=36), nullable=True),
            sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("declined_reason", sa.Text(), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.ForeignKeyConstraint(["shift_id"], ["open_shifts.id"], ondelete="CASCADE"),
            sa.UniqueConstraint("shift_id", "instructor_id", name="uq_shift_signup_instructor"),
        )

    index_specs = [
        ("open_shifts", "ix_open_shifts_date", ["date"]),
        ("open_shifts", "ix_open_shifts_created_by_id", ["created_by_id"]),
        ("shift_signups", "ix_shift_signups_shift_id", ["shift_id"]),
        ("shift_signups", "ix_shift_signups_instructor_id", ["instructor_id"]),
        ("shift_signups", "ix_shift_signups_status", ["status"]),
    ]
    for table_name, index_name, columns in index_specs:
        existing_indexes = {item["name"] for item in sa.inspect(bind).get_indexes(table_name)}
        if index_name in existing_indexes:
            continue
        op.create_index(index_name, table_name, columns, unique=False)


def downgrade() -> None:
    op.drop_table("shift_signups")
    op.drop_table("open_shifts")
    signup_status_enum.drop(op.get_bind(), checkfirst=True)
