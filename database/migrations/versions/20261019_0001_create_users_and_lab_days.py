"""create users and lab day assignments

Revision ID: 20261019_0001
Revises: None
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


user_role_enum = postgresql.ENUM(
    "superadmin",
    "admin",
    "lead_instructor",
    "instructor",
    "volunteer_instructor",
    "guest",
    name="user_role",
    create_type=False,
)


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    user_role_enum.create(bind, checkfirst=True)

    if not inspector.has_table("users"):
        op.create_table(
            "users",
            sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("role", user_role_enum, nullable=False),
            sa.Column("is_director", sa.Boolean(), nullable=False, server_default=sa.text("false")),
            sa.Column("department", sa.String(length=200), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index("ix_users_email", "users", ["email"], unique=True)

    if not inspector.has_table("lab_days"):
        op.create_table(
            "lab_days",
            sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
            sa.Column("date", sa.Date(), nullable=False),
            sa.Column("title", sa.String(length=200), nullable=True),
            sa.Column("cohort_label", sa.String(length=100), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        )
        op.create_index("ix_lab_days_date", "lab_days", ["date"], unique=False)

    if not inspector.has_table("lab_day_roles"):
        op.create_table(
            "lab_day_roles",
            sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
            sa.Column("lab_day_id", sa.String(length=36), nullable=False),
            sa.Column("instructor_id", sa.String(length=36), nullable=False),
            sa.Column("role", sa.String(length=50), nullable=False),
            sa.UniqueConstraint("lab_day_id", "instructor_id", "role", name="uq_lab_day_role_assignment"),
        )
        op.create_index("ix_lab_day_roles_lab_day_id", "lab_day_roles", ["lab_day_id"], unique=False)
        op.create_index("ix_lab_day_roles_instructor_id", "lab_day_roles", ["instructor_id"], unique=False)

    if not inspector.has_table("lab_stations"):
        op.create_table(
            "lab_stations",
            sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
            sa.Column("lab_day_id", sa.String(length=36), nullable=False),
            sa.Column("instructor_id", sa.String(length=36), nullable=True),
            sa.Column("title", sa.String(length=200), nullable=True),
        )
        op.create_index("ix_lab_stations_lab_day_id", "lab_stations", ["lab_day_id"], unique=False)
        op.create_index("ix_lab_stations_instructor_id", "lab_stations", ["instructor_id"], unique=False)


def downgrade() -> None:
    op.drop_table("lab_stations")
    op.drop_table("lab_day_roles")
    op.drop_table("lab_days")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    user_role_enum.drop(op.get_bind(), checkfirst=True)
