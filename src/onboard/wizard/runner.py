"""Run entrypoint: one user, one browser, one wizard pass.

``ProfileRun.execute`` is the only boundary callers use.  It never
raises: an escaped exception becomes a ``hard_fail`` Outcome with
``AUTOMATION_FAILED``, and every attempt is recorded on the user row.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from onboard.browser.actions import Clock, Pacer
from onboard.browser.selectors import load_selectors
from onboard.browser.session import BrowserSession
from onboard.exceptions import UserNotFoundError
from onboard.models import outcome
from onboard.models.options import RunOptions
from onboard.profile.content import ProfileContent
from onboard.settings import get_settings
from onboard.wizard.context import RunContext
from onboard.wizard.login import ensure_wizard, sign_in
from onboard.wizard.orchestrator import Orchestrator, force_step
from onboard.wizard.session import check_restored_session, restorable_state
from onboard.wizard.steps import build_registry

if TYPE_CHECKING:
    from onboard.models.outcome import Outcome
    from onboard.models.user import UserRecord
    from onboard.otp.base import OtpChain
    from onboard.settings.config import Settings
    from onboard.store.user_store import UserStore

logger = logging.getLogger(__name__)


class ProfileRun:
    """Drive the profile wizard for a single stored user.

    Args:
        user_id: Row id in the ``users`` table.
        store: Persistence collaborator.
        otp: Provider chain for phone verification; ``None`` disables it.
        settings: Resolved settings (defaults to :func:`get_settings`).
        browser_factory: Builds the browser session; swapped out in tests.
        clock: Time source for every wait and pause.
        rng: Random generator for pacing and profile content.
    """

    def __init__(
        self,
        user_id: int,
        store: UserStore,
        otp: OtpChain | None = None,
        settings: Settings | None = None,
        *,
        browser_factory: Callable[..., Any] = BrowserSession,
        clock: Clock | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.user_id = user_id
        self.store = store
        self.otp = otp
        self.settings = settings or get_settings()
        self.browser_factory = browser_factory
        self.clock = clock
        self.rng = rng or random.Random()

    async def execute(self, options: RunOptions | None = None) -> Outcome:
        options = options or RunOptions()
        try:
            user = await asyncio.to_thread(self.store.require_user, self.user_id)
        except UserNotFoundError as exc:
            return outcome.error("USER_NOT_FOUND", str(exc), "setup")

        logger.info("Run started for user %d (%s)", user.id, options.model_dump(exclude_defaults=True) or "defaults")
        try:
            result = await self._run(user, options)
        except Exception as exc:
            logger.exception("Run for user %d aborted", user.id)
            result = outcome.error("AUTOMATION_FAILED", str(exc) or type(exc).__name__, "run", hard=True)

        try:
            await asyncio.to_thread(self.store.record_attempt, user.id, result)
        except Exception as exc:
            logger.warning("Recording attempt for user %d failed: %s", user.id, exc)
        logger.info(
            "Run finished for user %d: %s %s",
            user.id,
            result.status.value,
            result.error_code or result.stage,
        )
        return result

    def _context(self, page: Any, user: UserRecord, session: Any) -> RunContext:
        settings = self.settings
        return RunContext(
            page=page,
            settings=settings,
            selectors=load_selectors(settings.wizard.selectors_path),
            pacer=Pacer(self.clock, self.rng, enabled=settings.pacing.enabled, scale=settings.pacing.scale),
            user=user,
            store=self.store,
            content=ProfileContent(self.rng),
            otp=self.otp,
            capture_state=session.capture_state,
        )

    async def _run(self, user: UserRecord, options: RunOptions) -> Outcome:
        session = self.browser_factory(
            self.settings,
            proxy_port=user.last_proxy_port,
            storage_state=restorable_state(user, options),
        )
        async with session as page:
            ctx = self._context(page, user, session)

            logged_in = session.restored and await check_restored_session(ctx)
            if logged_in:
                if not await ensure_wizard(ctx):
                    return ctx.fail("NOT_ON_CREATE_PROFILE", f"Restored session left us at {page.url}", "login")
            else:
                login = await sign_in(ctx)
                if not login.ok:
                    return login

            if options.force_step is not None:
                forced = await force_step(ctx, options.force_step)
                if not forced.ok:
                    return forced

            orchestrator = Orchestrator(ctx, build_registry(ctx))
            return await orchestrator.run(options)
