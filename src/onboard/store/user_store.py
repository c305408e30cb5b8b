"""User progress store for wizard runs.

``UserStore`` accepts an optional *db_path* for convenience or a pre-built
*session_factory* for shared engines and test fixtures.  All update
methods are field-level and idempotent so a run can safely retry them.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from sqlalchemy.orm import sessionmaker

from onboard.exceptions import UserNotFoundError
from onboard.models.user import UserRecord
from onboard.store import sql as sql_schema
from onboard.store.sql import METADATA, MILESTONE_COLUMNS, build_session_factory

if TYPE_CHECKING:
    from onboard.models.outcome import Outcome

logger = logging.getLogger(__name__)

_MAX_ERROR_MESSAGE = 2_000


def _now() -> datetime:
    return datetime.now(timezone.utc)


class UserStore:
    """Persist user records, session blobs, proxy ports and milestones.

    Args:
        db_path: Convenience path for a local SQLite file.  Mutually
            exclusive with *session_factory*.
        session_factory: Pre-configured ``sessionmaker``.
    """

    def __init__(
        self,
        db_path: str | Path | None = None,
        *,
        session_factory: sessionmaker | None = None,
    ) -> None:
        if session_factory is not None:
            self._session_factory = session_factory
        elif db_path is not None:
            self._session_factory = build_session_factory(db_path=db_path)
        else:
            self._session_factory = build_session_factory()

        with self._session_factory() as session:
            METADATA.create_all(session.connection())
            session.commit()

    # ------------------------------------------------------------------
    # Create / read
    # ------------------------------------------------------------------

    def create_user(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        country_code: str = "US",
        phone: str | None = None,
        birth_date: date | None = None,
        location_street_address: str | None = None,
        location_city: str | None = None,
        location_state: str | None = None,
        location_post_code: str | None = None,
    ) -> int:
        """Insert a new ``users`` row and return its id."""
        now = _now()
        with self._session_factory() as session:
            result = session.execute(
                sa.insert(sql_schema.users).values(
                    first_name=first_name,
                    last_name=last_name,
                    email=email,
                    password=password,
                    country_code=country_code.upper(),
                    phone=phone,
                    birth_date=birth_date,
                    location_street_address=location_street_address,
                    location_city=location_city,
                    location_state=location_state,
                    location_post_code=location_post_code,
                    attempt_count=0,
                    created_at=now,
                    updated_at=now,
                )
            )
            session.commit()
            user_id = int(result.inserted_primary_key[0])
        logger.debug("Created user %d (%s)", user_id, email)
        return user_id

    def get_user(self, user_id: int) -> UserRecord | None:
        """Return a single user, or ``None``."""
        with self._session_factory() as session:
            row = session.execute(
                sa.select(sql_schema.users).where(sql_schema.users.c.id == user_id)
            ).first()
        return UserRecord.from_row(dict(row._mapping)) if row else None

    def require_user(self, user_id: int) -> UserRecord:
        """Return a single user or raise :class:`UserNotFoundError`."""
        user = self.get_user(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def list_users(
        self,
        *,
        pending_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> list[UserRecord]:
        """Return users ordered by id, optionally only those not yet successful."""
        stmt = sa.select(sql_schema.users).order_by(sql_schema.users.c.id)
        if pending_only:
            stmt = stmt.where(sql_schema.users.c.success_at.is_(None))
        stmt = stmt.limit(limit).offset(offset)
        with self._session_factory() as session:
            rows = session.execute(stmt).all()
        return [UserRecord.from_row(dict(r._mapping)) for r in rows]

    # ------------------------------------------------------------------
    # Field-level updates
    # ------------------------------------------------------------------

    def _update(self, user_id: int, **fields: Any) -> None:
        fields["updated_at"] = _now()
        with self._session_factory() as session:
            result = session.execute(
                sa.update(sql_schema.users)
                .where(sql_schema.users.c.id == user_id)
                .values(**fields)
            )
            session.commit()
        if result.rowcount == 0:
            raise UserNotFoundError(user_id)

    def update_session_state(self, user_id: int, blob: str) -> None:
        """Store the encoded browser session for reuse by later runs."""
        self._update(user_id, last_session_state=blob)
        logger.debug("Saved session state for user %d (%d bytes)", user_id, len(blob))

    def clear_session_state(self, user_id: int) -> None:
        self._update(user_id, last_session_state=None)

    def update_captcha_flag_and_proxy_port(self, user_id: int, proxy_port: int) -> None:
        """Flag a detected block and pin the user to a rotated proxy port."""
        self._update(user_id, captcha_flagged_at=_now(), last_proxy_port=proxy_port)
        logger.info("User %d flagged for captcha; proxy port rotated to %d", user_id, proxy_port)

    def clear_captcha_flag(self, user_id: int) -> None:
        self._update(user_id, captcha_flagged_at=None)

    def update_milestone(self, user_id: int, field: str) -> None:
        """Set one milestone timestamp column to now.

        Raises:
            ValueError: If *field* is not a milestone column.
        """
        if field not in MILESTONE_COLUMNS:
            raise ValueError(f"Unknown milestone column: {field}")
        self._update(user_id, **{field: _now()})
        logger.info("User %d reached milestone %s", user_id, field)

    def mark_success(self, user_id: int) -> None:
        """Record a fully submitted profile."""
        now = _now()
        self._update(user_id, success_at=now, onboarding_completed_at=now)
        logger.info("User %d marked successful", user_id)

    def record_attempt(self, user_id: int, outcome: Outcome) -> None:
        """Bump the attempt counter and store the outcome's error, if any."""
        message = outcome.evidence[:_MAX_ERROR_MESSAGE] if outcome.evidence else None
        self._update(
            user_id,
            attempt_count=sql_schema.users.c.attempt_count + 1,
            last_attempt_at=_now(),
            last_error_code=outcome.error_code,
            last_error_message=message,
        )
