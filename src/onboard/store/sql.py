"""SQLAlchemy table definitions for onboard persistence."""

from __future__ import annotations

from pathlib import Path

import sqlalchemy as sa
from sqlalchemy.orm import sessionmaker

TIMESTAMP = sa.DateTime(timezone=True)

METADATA = sa.MetaData()

# ---------------------------------------------------------------------------
# users: credentials, profile data and wizard progress, one row per account
# ---------------------------------------------------------------------------

users = sa.Table(
    "users",
    METADATA,
    sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
    sa.Column("first_name", sa.Text(), nullable=False),
    sa.Column("last_name", sa.Text(), nullable=False),
    sa.Column("email", sa.Text(), nullable=False, unique=True),
    sa.Column("password", sa.Text(), nullable=False),
    sa.Column("country_code", sa.String(length=2), nullable=False, server_default="US"),
    sa.Column("phone", sa.Text(), nullable=True),
    sa.Column("birth_date", sa.Date(), nullable=True),
    sa.Column("location_street_address", sa.Text(), nullable=True),
    sa.Column("location_city", sa.Text(), nullable=True),
    sa.Column("location_state", sa.Text(), nullable=True),
    sa.Column("location_post_code", sa.Text(), nullable=True),
    sa.Column("attempt_count", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("last_attempt_at", TIMESTAMP, nullable=True),
    sa.Column("last_error_code", sa.Text(), nullable=True),
    sa.Column("last_error_message", sa.Text(), nullable=True),
    sa.Column("success_at", TIMESTAMP, nullable=True),
    sa.Column("captcha_flagged_at", TIMESTAMP, nullable=True),
    sa.Column("rate_step_completed_at", TIMESTAMP, nullable=True),
    sa.Column("onboarding_completed_at", TIMESTAMP, nullable=True),
    sa.Column("last_session_state", sa.Text(), nullable=True),
    sa.Column("last_proxy_port", sa.Integer(), nullable=True),
    sa.Column("created_at", TIMESTAMP, nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    sa.Column("updated_at", TIMESTAMP, nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
)
sa.Index("idx_users_success_at", users.c.success_at)
sa.Index("idx_users_captcha_flagged_at", users.c.captcha_flagged_at)
sa.Index("idx_users_last_proxy_port", users.c.last_proxy_port)

MILESTONE_COLUMNS: frozenset[str] = frozenset(
    {"rate_step_completed_at", "onboarding_completed_at", "success_at"}
)


# ---------------------------------------------------------------------------
# Engine / session helpers
# ---------------------------------------------------------------------------


def build_engine(*, db_path: str | Path | None = None, echo: bool = False) -> sa.Engine:
    """Create a SQLAlchemy engine for the onboard SQLite database.

    Args:
        db_path: Override path for the SQLite file.  Defaults to
            ``settings.storage.sqlite_path``.
        echo: When True, log all SQL statements.
    """
    if db_path is None:
        from onboard.settings import get_settings

        db_path = get_settings().storage.sqlite_path

    resolved = Path(db_path)
    resolved.parent.mkdir(parents=True, exist_ok=True)
    url = f"sqlite:///{resolved.as_posix()}"
    return sa.create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        connect_args={"check_same_thread": False, "timeout": 30},
    )


def build_session_factory(*, db_path: str | Path | None = None) -> sessionmaker:
    """Return a ``sessionmaker`` bound to the onboard engine."""
    engine = build_engine(db_path=db_path)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)
