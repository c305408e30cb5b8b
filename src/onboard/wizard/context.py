"""Per-run context passed explicitly through the whole call chain.

A :class:`RunContext` replaces ambient module state: it carries the page,
the pacing strategy, the selector table, the user record and the
screenshot checkpoints collected so far.  Every Outcome a run produces
is built through :meth:`RunContext.ok` or :meth:`RunContext.fail` so it
carries the live URL and a snapshot of the checkpoints.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from onboard.browser.actions import Clock, Pacer, capture_screenshot, wait_for_any
from onboard.models import outcome
from onboard.models.outcome import Outcome
from onboard.models.steps import DetectedStep, detect_step

if TYPE_CHECKING:
    from playwright.async_api import ElementHandle, Page

    from onboard.browser.selectors import SelectorTable
    from onboard.models.user import UserRecord
    from onboard.otp.base import OtpChain
    from onboard.profile.content import ProfileContent
    from onboard.settings.config import Settings

logger = logging.getLogger(__name__)


class UserPersistence(Protocol):
    """The subset of :class:`~onboard.store.user_store.UserStore` a run uses."""

    def update_session_state(self, user_id: int, blob: str) -> None: ...

    def clear_session_state(self, user_id: int) -> None: ...

    def update_captcha_flag_and_proxy_port(self, user_id: int, proxy_port: int) -> None: ...

    def update_milestone(self, user_id: int, field: str) -> None: ...

    def mark_success(self, user_id: int) -> None: ...


@dataclass
class RunContext:
    """Everything a single wizard run needs, owned by that run alone."""

    page: Page
    settings: Settings
    selectors: SelectorTable
    pacer: Pacer
    user: UserRecord
    store: UserPersistence
    content: ProfileContent
    otp: OtpChain | None = None
    capture_state: Callable[[], Awaitable[str]] | None = None
    screenshots: dict[str, str] = field(default_factory=dict)

    # ------------------------------------------------------------------
    # Shortcuts
    # ------------------------------------------------------------------

    @property
    def clock(self) -> Clock:
        return self.pacer.clock

    @property
    def namespace(self) -> str:
        return self.settings.wizard.namespace

    @property
    def attempts(self) -> int:
        return self.settings.retries.attempts

    def detect(self) -> DetectedStep:
        """Detect the current step from the live URL."""
        return detect_step(self.page.url, self.namespace)

    def sel(self, key: str) -> tuple[str, ...]:
        return self.selectors[key]

    async def wait_for(
        self,
        selectors: str | Sequence[str],
        timeout_ms: int | None = None,
        *,
        visible: bool = True,
    ) -> ElementHandle | None:
        """Selector-retry wait; *selectors* may be a selector-table key."""
        options = self.sel(selectors) if isinstance(selectors, str) else selectors
        return await wait_for_any(
            self.page,
            options,
            clock=self.clock,
            timeout_ms=timeout_ms if timeout_ms is not None else self.settings.retries.selector_timeout_ms,
            poll_ms=self.settings.retries.poll_interval_ms,
            visible=visible,
        )

    # ------------------------------------------------------------------
    # Outcomes and checkpoints
    # ------------------------------------------------------------------

    def ok(self, stage: str) -> Outcome:
        return outcome.success(stage, url=self.page.url, screenshots=self.screenshots)

    def fail(self, code: str, evidence: str, stage: str, *, hard: bool = False) -> Outcome:
        logger.warning("%s failed: %s (%s)", stage, code, evidence)
        return outcome.error(
            code,
            evidence,
            stage,
            url=self.page.url,
            screenshots=self.screenshots,
            hard=hard,
        )

    async def snap(self, name: str) -> str:
        """Capture a named checkpoint; an empty reference is still recorded."""
        browser = self.settings.browser
        path = await capture_screenshot(
            self.page,
            name,
            browser.screenshot_dir,
            max_size=(browser.screenshot_max_width, browser.screenshot_max_height),
        )
        self.screenshots[name] = path
        return path

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def persist(self, method: str, *args: Any) -> None:
        """Call a store method for this user off the event loop.

        Exceptions propagate; callers decide whether the write is critical.
        """
        fn = getattr(self.store, method)
        await asyncio.to_thread(fn, self.user.id, *args)

    async def save_session(self) -> None:
        """Persist the current browser session blob; failures are logged only."""
        if self.capture_state is None:
            return
        try:
            blob = await self.capture_state()
            await self.persist("update_session_state", blob)
        except Exception as exc:
            logger.warning("Session save for user %d failed: %s", self.user.id, exc)
