"""Restoring a saved browser session instead of logging in again."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from playwright.async_api import Error as PlaywrightError

from onboard.browser.navigation import resilient_goto, wait_for_settle
from onboard.exceptions import NavigationError
from onboard.models.steps import is_logged_in_page

if TYPE_CHECKING:
    from onboard.models.options import RunOptions
    from onboard.models.user import UserRecord
    from onboard.wizard.context import RunContext

logger = logging.getLogger(__name__)


def restorable_state(user: UserRecord, options: RunOptions) -> str | None:
    """Return the saved blob when *options* ask for it and onboarding is unfinished."""
    if not options.restore_session or not user.last_session_state:
        return None
    if user.onboarding_completed_at is not None:
        logger.info("User %d already onboarded; not restoring session", user.id)
        return None
    return user.last_session_state


async def check_restored_session(ctx: RunContext) -> bool:
    """Open the site root and report whether the restored session is logged in.

    A live session is saved again; a dead one is cleared so later runs
    stop trying it.  Store failures here are logged only.
    """
    try:
        await resilient_goto(ctx.page, ctx.settings.wizard.base_url, timeout_ms=ctx.settings.browser.navigation_timeout_ms)
    except (PlaywrightError, NavigationError) as exc:
        logger.warning("Could not load site root with restored session: %s", exc)
        return False
    await wait_for_settle(ctx)

    if is_logged_in_page(ctx.page.url, ctx.namespace):
        logger.info("Restored session for user %d is logged in", ctx.user.id)
        await ctx.save_session()
        return True

    logger.info("Restored session for user %d expired; clearing it", ctx.user.id)
    try:
        await ctx.persist("clear_session_state")
    except Exception as exc:
        logger.warning("Clearing session for user %d failed: %s", ctx.user.id, exc)
    return False
