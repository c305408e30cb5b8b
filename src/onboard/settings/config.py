"""Configuration loader for onboard using Pydantic settings.

Config precedence (highest wins):
  1. CLI flags (where applicable)
  2. Environment variables (ONBOARD_* with __ for nesting)
  3. settings.local.toml
  4. settings.{env}.toml
  5. settings.default.toml
"""

from __future__ import annotations

import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

_THIS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = Path(os.getenv("ONBOARD_PROJECT_ROOT", _THIS_DIR.parents[2]))
CONFIG_DIR = PROJECT_ROOT / "config"

ENV_VAR_NAME = "ONBOARD_ENV"
DEFAULT_ENV = "local"

_SECRET_FIELDS = ("smspool_api_key", "smsman_api_key")


def _resolve_env() -> str:
    return (os.getenv(ENV_VAR_NAME) or DEFAULT_ENV).strip()


def _load_toml(path: Path) -> dict[str, Any]:
    if path.is_file():
        with open(path, "rb") as f:
            return tomllib.load(f)
    return {}


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class BrowserSettings(BaseSettings):
    """Playwright browser settings."""

    model_config = SettingsConfigDict(env_prefix="ONBOARD_BROWSER__")

    headless: bool = True
    navigation_timeout_ms: int = Field(default=30_000, ge=1_000)
    settle_timeout_ms: int = Field(default=2_000, ge=0, description="Network-idle wait before falling back to a pause.")
    proxy_host: str = ""
    default_proxy_port: int = Field(default=10_001, ge=1, le=65_535)
    screenshot_dir: str = "data/screenshots"
    screenshot_max_width: int = 1280
    screenshot_max_height: int = 2400
    viewport_width: int = 1366
    viewport_height: int = 900


class WizardSettings(BaseSettings):
    """Target site and wizard layout."""

    model_config = SettingsConfigDict(env_prefix="ONBOARD_WIZARD__")

    base_url: str = "https://www.upwork.com"
    namespace: str = "/nx/create-profile/"
    login_path: str = "/ab/account-security/login"
    selectors_path: str = ""
    resume_path: str = "assets/sample-resume.pdf"
    photo_path: str = "assets/profile-photo.png"


class RetrySettings(BaseSettings):
    """The single bounded-retry policy used by every loop in a run."""

    model_config = SettingsConfigDict(env_prefix="ONBOARD_RETRIES__")

    attempts: int = Field(default=3, ge=1, le=10)
    fill_attempts: int = Field(default=2, ge=1, le=10)
    poll_interval_ms: int = Field(default=500, ge=50)
    selector_timeout_ms: int = Field(default=10_000, ge=100)
    backoff_ms: int = Field(default=1_000, ge=0)


class PacingSettings(BaseSettings):
    """Randomised human-like delays."""

    model_config = SettingsConfigDict(env_prefix="ONBOARD_PACING__")

    enabled: bool = True
    scale: float = Field(default=1.0, ge=0.0, le=10.0)


class OtpSettings(BaseSettings):
    """SMS provider credentials and polling."""

    model_config = SettingsConfigDict(env_prefix="ONBOARD_OTP__")

    smspool_api_key: str = ""
    smspool_base_url: str = "https://api.smspool.net"
    smsman_api_key: str = ""
    smsman_base_url: str = "https://api.sms-man.com"
    poll_interval_s: float = Field(default=5.0, gt=0)
    timeout_s: int = Field(default=360, ge=1)
    request_timeout_s: float = 30.0


class StorageSettings(BaseSettings):
    """Persistence backend configuration."""

    model_config = SettingsConfigDict(env_prefix="ONBOARD_STORAGE__")

    sqlite_path: str = "data/onboard.db"


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    """Root onboard settings with nested sections."""

    model_config = SettingsConfigDict(
        env_prefix="ONBOARD_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    env: str = Field(default_factory=_resolve_env)
    project_root: Path = Field(default=PROJECT_ROOT)
    debug: bool = False

    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    wizard: WizardSettings = Field(default_factory=WizardSettings)
    retries: RetrySettings = Field(default_factory=RetrySettings)
    pacing: PacingSettings = Field(default_factory=PacingSettings)
    otp: OtpSettings = Field(default_factory=OtpSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)

    @model_validator(mode="before")
    @classmethod
    def _merge_toml_files(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Layer TOML config files before env var overrides."""
        defaults = _load_toml(CONFIG_DIR / "settings.default.toml")
        env_name = (values.get("env") or os.getenv(ENV_VAR_NAME) or DEFAULT_ENV).strip()
        env_overrides = _load_toml(CONFIG_DIR / f"settings.{env_name}.toml")
        local_overrides = _load_toml(CONFIG_DIR / "settings.local.toml")

        # Merge: defaults < env-specific < local < explicit values
        merged: dict[str, Any] = {}
        for layer in (defaults, env_overrides, local_overrides, values):
            for key, val in layer.items():
                if isinstance(val, dict) and isinstance(merged.get(key), dict):
                    merged[key] = {**merged[key], **val}
                else:
                    merged[key] = val
        return merged

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        """Normalize relative paths against project_root."""
        root = self.project_root
        if not Path(self.browser.screenshot_dir).is_absolute():
            self.browser.screenshot_dir = str(root / self.browser.screenshot_dir)
        if not Path(self.storage.sqlite_path).is_absolute():
            self.storage.sqlite_path = str(root / self.storage.sqlite_path)
        for name in ("resume_path", "photo_path", "selectors_path"):
            raw = getattr(self.wizard, name)
            if raw and not Path(raw).is_absolute():
                setattr(self.wizard, name, str(root / raw))
        return self

    @property
    def wizard_url(self) -> str:
        """Absolute URL of the wizard namespace root."""
        return self.wizard.base_url.rstrip("/") + self.wizard.namespace

    @property
    def login_url(self) -> str:
        return self.wizard.base_url.rstrip("/") + self.wizard.login_path

    def masked_dump(self) -> dict[str, Any]:
        """Return ``model_dump`` output with provider secrets masked."""
        data = self.model_dump(mode="json")
        for name in _SECRET_FIELDS:
            if data["otp"].get(name):
                data["otp"][name] = "****"
        return data


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton settings instance (cached)."""
    return Settings()
