"""Per-run flags passed unchanged down the whole call chain."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from onboard.models.steps import StepName


class RunOptions(BaseModel):
    """Immutable configuration for one wizard run."""

    model_config = ConfigDict(frozen=True)

    upload_only: bool = Field(default=False, description="Verify existing data instead of re-entering it.")
    skip_otp: bool = Field(default=False, description="Skip the phone-verification challenge.")
    skip_location: bool = Field(default=False, description="Stop once the location screen is reached.")
    force_step: StepName | None = Field(default=None, description="Jump straight to this step before orchestrating.")
    restore_session: bool = Field(default=False, description="Reuse the saved browser session when possible.")
