"""create notifications

Revision ID: 20261019_0004
Revises: 20261019_0003
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20261019_0004"
down_revision = "20261019_0003"
branch_labels = None
depends_on = None


category_enum = postgresql.ENUM(
    "shift_available",
    "shift_confirmed",
    "shift_declined",
    "shift_cancelled",
    "shift_withdrawn",
    "lab_assignment",
    "substitute_request",
    "general",
    name="notification_category",
    create_type=False,
)


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    category_enum.create(bind, checkfirst=True)

    table_name = "notifications"
    if not inspector.has_table(table_name):
        op.create_table(
            table_name,
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=False),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("message", sa.Text(), nullable=False),
            sa.Column("category", category_enum, nullable=False),
            sa.Column("link_url", sa.String(length=500), nullable=True),
            sa.Column("reference_type", sa.String(length=50), nullable=True),
            sa.Column("reference_id", sa.String(length=36), nullable=True),
            sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )

    existing_indexes = {item["name"] for item in sa.inspect(bind).get_indexes(table_name)}
    for index_name, columns in (
        ("ix_notifications_user_id", ["user_id"]),
        ("ix_notifications_reference_id", ["reference_id"]),
    ):
        if index_name in existing_indexes:
            continue
        op.create_index(index_name, table_name, columns, unique=False)


def downgrade() -> None:
    op.drop_table("notifications")
    category_enum.drop(op.get_bind(), checkfirst=True)
