"""Stored per-user progress record consumed by a run."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class UserRecord(BaseModel):
    """Credentials, profile data, proxy assignment and milestone timestamps.

    The record outlives any single run.  A run only reads it and asks the
    store to update individual fields; it never deletes it.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    first_name: str
    last_name: str
    email: str
    password: str = Field(repr=False)
    country_code: str = "US"
    phone: str | None = None
    birth_date: date | None = None

    location_street_address: str | None = None
    location_city: str | None = None
    location_state: str | None = None
    location_post_code: str | None = None

    attempt_count: int = 0
    last_attempt_at: datetime | None = None
    last_error_code: str | None = None
    last_error_message: str | None = None

    success_at: datetime | None = None
    captcha_flagged_at: datetime | None = None
    rate_step_completed_at: datetime | None = None
    onboarding_completed_at: datetime | None = None

    last_session_state: str | None = Field(default=None, repr=False)
    last_proxy_port: int | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("country_code")
    @classmethod
    def _upper_country(cls, v: str) -> str:
        return v.strip().upper()

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "UserRecord":
        """Build a record from a ``users`` table row mapping."""
        return cls.model_validate(row)
