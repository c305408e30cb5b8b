"""Onboard-specific exception hierarchy.

These are raised by leaf collaborators only.  The step-handler boundary and
the run entrypoint convert anything that escapes into a ``hard_fail``
:class:`~onboard.models.outcome.Outcome`.
"""

from __future__ import annotations


class OnboardError(Exception):
    """Base exception for all onboard-specific errors."""


class NavigationError(OnboardError):
    """Raised when navigation fails in a non-retryable way (DNS, TLS, refused).

    Attributes:
        url: The URL that was being loaded.
        reason: Short human-readable reason.
    """

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Navigation to {url} failed: {reason}")


class OtpProviderError(OnboardError):
    """Raised when an SMS provider API call fails."""

    def __init__(self, provider: str, reason: str) -> None:
        self.provider = provider
        self.reason = reason
        super().__init__(f"{provider}: {reason}")


class UserNotFoundError(OnboardError):
    """Raised when a run is requested for a user id with no stored record."""

    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")


class SelectorTableError(OnboardError):
    """Raised when a logical field has no entry in the selector table."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"No selectors configured for {key!r}")
