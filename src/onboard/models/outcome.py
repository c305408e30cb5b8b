"""The uniform result object returned by every wizard operation.

An :class:`Outcome` is immutable.  Build one with :func:`success` or
:func:`error`; both go through ``__post_init__`` which enforces that an
``error_code`` is present exactly when the status is not ``success``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any


class OutcomeStatus(str, Enum):
    """Result taxonomy for wizard operations."""

    SUCCESS = "success"
    SOFT_FAIL = "soft_fail"  # Retryable: element missing, mismatch, timeout
    HARD_FAIL = "hard_fail"  # An unexpected exception was caught


@dataclass(frozen=True)
class Outcome:
    """Result of a primitive, form operation, step handler, or whole run.

    Attributes:
        status: One of :class:`OutcomeStatus`.
        stage: Free-form label of the phase that produced the result.
        error_code: Stable machine-readable token; ``None`` on success.
        evidence: Human-readable detail; ``None`` on success.
        url: Page location when the result was produced.
        screenshots: Ordered, read-only mapping of checkpoint name to
            stored image reference.
    """

    status: OutcomeStatus
    stage: str = ""
    error_code: str | None = None
    evidence: str | None = None
    url: str = ""
    screenshots: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        failed = self.status is not OutcomeStatus.SUCCESS
        if failed and not self.error_code:
            raise ValueError("a failed Outcome requires an error_code")
        if not failed and (self.error_code is not None or self.evidence is not None):
            raise ValueError("a successful Outcome cannot carry an error_code or evidence")
        object.__setattr__(self, "screenshots", MappingProxyType(dict(self.screenshots)))

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a JSON-compatible dict."""
        return {
            "status": self.status.value,
            "stage": self.stage,
            "error_code": self.error_code,
            "evidence": self.evidence,
            "url": self.url,
            "screenshots": dict(self.screenshots),
        }


def success(stage: str = "", *, url: str = "", screenshots: Mapping[str, str] | None = None) -> Outcome:
    """Return a successful :class:`Outcome`."""
    return Outcome(OutcomeStatus.SUCCESS, stage=stage, url=url, screenshots=screenshots or {})


def error(
    code: str,
    evidence: str,
    stage: str = "",
    *,
    url: str = "",
    screenshots: Mapping[str, str] | None = None,
    hard: bool = False,
) -> Outcome:
    """Return a failed :class:`Outcome`.

    Args:
        code: Stable error token, e.g. ``RATE_INPUT_NOT_FOUND``.
        evidence: Human-readable detail.  Never pass secrets here.
        stage: Logical phase label.
        url: Page location at failure time.
        screenshots: Checkpoints captured so far.
        hard: ``True`` when the failure came from an unexpected exception.
    """
    status = OutcomeStatus.HARD_FAIL if hard else OutcomeStatus.SOFT_FAIL
    return Outcome(
        status,
        stage=stage,
        error_code=code,
        evidence=evidence or code,
        url=url,
        screenshots=screenshots or {},
    )
