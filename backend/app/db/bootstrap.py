from __future__ import annotations

import logging

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

from app.db.base import Base
from app.db.session import engine as default_engine
import app.models  # noqa: F401
from app.models.shift_trade import ACTIVE_TRADE_CLAUSE

logger = logging.getLogger(__name__)

PENDING_REQUEST_INDEX = "uq_substitute_requests_pending_assignment"
ACTIVE_TRADE_INDEX = "uq_shift_trade_requests_active"

# index name -> (table, columns, predicate)
PARTIAL_UNIQUE_INDEXES: dict[str, tuple[str, str, str]] = {
    PENDING_REQUEST_INDEX: ("substitute_requests", "requester_id, lab_day_id", "status = 'pending'"),
    ACTIVE_TRADE_INDEX: ("shift_trade_requests", "requester_id, shift_id", ACTIVE_TRADE_CLAUSE),
}

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "users": {"id", "email", "role", "is_director", "is_active"},
    "lab_days": {"id", "date"},
    "lab_day_roles": {"id", "lab_day_id", "instructor_id", "role"},
    "lab_stations": {"id", "lab_day_id", "instructor_id"},
    "open_shifts": {"id", "date", "start_time", "end_time", "min_instructors", "max_instructors", "is_cancelled"},
    "shift_signups": {"id", "shift_id", "instructor_id", "status", "is_partial", "confirmed_at"},
    "substitute_requests": {"id", "requester_id", "lab_day_id", "status", "covered_by_id", "covered_at"},
    "shift_trade_requests": {"id", "requester_id", "shift_id", "status", "target_user_id", "approved_at"},
    "shift_swap_interests": {"id", "trade_request_id", "instructor_id", "status"},
    "notifications": {"id", "user_id", "category", "link_url", "reference_type", "reference_id", "is_read"},
}


def _ensure_users_is_director_column(engine: Engine) -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        if "users" not in set(inspector.get_table_names()):
            return
        column_names = {item["name"] for item in inspector.get_columns("users")}
        if "is_director" in column_names:
            return
        connection.execute(text("ALTER TABLE users ADD COLUMN is_director BOOLEAN NOT NULL DEFAULT FALSE"))


def _ensure_partial_unique_indexes(engine: Engine) -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        for index_name, (table_name, columns, predicate) in PARTIAL_UNIQUE_INDEXES.items():
            if table_name not in table_names:
                continue
            if index_name in {item["name"] for item in inspector.get_indexes(table_name)}:
                continue
            connection.execute(
                text(f"CREATE UNIQUE INDEX {index_name} ON {table_name} ({columns}) WHERE {predicate}")
            )
            logger.info("Created partial unique index %s", index_name)


def _assert_required_columns(engine: Engine) -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = [name for name in REQUIRED_COLUMNS if name not in table_names]
        if missing_tables:
            raise RuntimeError(f"Missing required tables: {', '.join(sorted(missing_tables))}")

        missing_columns: list[str] = []
        for table_name, required in REQUIRED_COLUMNS.items():
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            for column_name in sorted(required - existing):
                missing_columns.append(f"{table_name}.{column_name}")
        if missing_columns:
            raise RuntimeError(f"Missing required columns: {', '.join(missing_columns)}")


def ensure_runtime_schema_compatibility(engine: Engine | None = None) -> None:
    engine = engine or default_engine
    try:
        # Ensure missing tables are present before additive compatibility patches.
        Base.metadata.create_all(bind=engine)
        _ensure_users_is_director_column(engine)
        _ensure_partial_unique_indexes(engine)
        _assert_required_columns(engine)
    except Exception as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Runtime schema compatibility bootstrap failed")
        raise RuntimeError("Runtime schema compatibility bootstrap failed") from exc
    logger.info("Runtime schema verified for %d coverage tables", len(REQUIRED_COLUMNS))
