"""Credential phase and the post-login block scan.

A flagged network path shows up right after the password is submitted.
When that happens the user is flagged, the sticky proxy port is rotated
once, and the run stops with ``CAPTCHA_DETECTED``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from playwright.async_api import Error as PlaywrightError

from onboard.browser.actions import click, press, wait_for_url
from onboard.browser.captcha import BlockDetection, scan_for_block
from onboard.browser.form import enter_password, fill_and_verify
from onboard.browser.navigation import resilient_goto, wait_for_settle
from onboard.exceptions import NavigationError
from onboard.models.steps import in_namespace, is_logged_in_page

if TYPE_CHECKING:
    from onboard.models.outcome import Outcome
    from onboard.wizard.context import RunContext

logger = logging.getLogger(__name__)

STAGE = "login"


# ---------------------------------------------------------------------------
# Block scan
# ---------------------------------------------------------------------------


async def detect_block(ctx: RunContext) -> BlockDetection:
    """Scan for block signals up to ``retries.attempts`` times."""
    for attempt in range(1, ctx.attempts + 1):
        detection = await scan_for_block(ctx.page)
        if detection.detected:
            return detection
        if attempt < ctx.attempts:
            await ctx.pacer.pause(1_000, 2_000)
    return BlockDetection(page_url=ctx.page.url)


async def flag_block(ctx: RunContext, detection: BlockDetection) -> Outcome:
    """Flag the user and rotate their sticky proxy port exactly once."""
    current = ctx.user.last_proxy_port or ctx.settings.browser.default_proxy_port
    new_port = current + 1
    await ctx.snap("captcha_detected")
    try:
        await ctx.persist("update_captcha_flag_and_proxy_port", new_port)
    except Exception as exc:
        logger.error("Could not flag user %d after block: %s", ctx.user.id, exc)
        return ctx.fail("CAPTCHA_FLAG_FAILED", f"Block detected but flag update failed: {exc}", STAGE)
    kind = detection.block_type.value if detection.block_type else "unknown"
    logger.warning("User %d blocked (%s); proxy port %d -> %d", ctx.user.id, kind, current, new_port)
    return ctx.fail(
        "CAPTCHA_DETECTED",
        f"{kind}: {detection.message or detection.selector}; proxy port rotated to {new_port}",
        STAGE,
    )


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


async def _wait_for_wizard(ctx: RunContext) -> bool:
    return await wait_for_url(
        ctx.page,
        lambda url: is_logged_in_page(url, ctx.namespace),
        clock=ctx.clock,
        timeout_ms=ctx.settings.browser.navigation_timeout_ms,
        poll_ms=ctx.settings.retries.poll_interval_ms,
    )


async def ensure_wizard(ctx: RunContext) -> bool:
    """Load the wizard entry page unless the page is already inside it."""
    if in_namespace(ctx.page.url, ctx.namespace):
        return True
    try:
        await resilient_goto(ctx.page, ctx.settings.wizard_url, timeout_ms=ctx.settings.browser.navigation_timeout_ms)
    except (PlaywrightError, NavigationError) as exc:
        logger.warning("Could not open the wizard: %s", exc)
        return False
    await wait_for_settle(ctx)
    return in_namespace(ctx.page.url, ctx.namespace)


async def sign_in(ctx: RunContext) -> Outcome:
    """Log in with the stored credentials and land inside the wizard."""
    if is_logged_in_page(ctx.page.url, ctx.namespace):
        logger.info("Already logged in at %s", ctx.page.url)
    else:
        result = await _submit_credentials(ctx)
        if not result.ok:
            return result
        detection = await detect_block(ctx)
        if detection.detected:
            return await flag_block(ctx, detection)

    if not await ensure_wizard(ctx):
        return ctx.fail("NOT_ON_CREATE_PROFILE", f"Not on the profile wizard after login (at {ctx.page.url})", STAGE)
    await ctx.save_session()
    return ctx.ok(STAGE)


async def _submit_credentials(ctx: RunContext) -> Outcome:
    user = ctx.user
    try:
        await resilient_goto(ctx.page, ctx.settings.login_url, timeout_ms=ctx.settings.browser.navigation_timeout_ms)
    except NavigationError as exc:
        return ctx.fail("LOGIN_PAGE_UNREACHABLE", str(exc), STAGE)
    await wait_for_settle(ctx)
    await ctx.snap("login_page")

    email = await fill_and_verify(ctx, "login.email", user.email, "email", stage=STAGE)
    if not email.ok:
        return email
    button = await ctx.wait_for("login.continue")
    if button is None:
        return ctx.fail("CONTINUE_BUTTON_NOT_FOUND", "Continue button not found after email", STAGE)
    await click(button, ctx.pacer, (1_500, 2_500))

    password = await enter_password(ctx, user.password, stage=STAGE)
    if not password.ok:
        return password
    await press(ctx.page, "Enter", ctx.pacer, (2_000, 3_000))

    if not await _wait_for_wizard(ctx):
        logger.info("No redirect after password; resubmitting once")
        resubmit = await ctx.wait_for("login.submit")
        if resubmit is not None:
            await click(resubmit, ctx.pacer, (2_000, 3_000))
        else:
            await press(ctx.page, "Enter", ctx.pacer, (2_000, 3_000))
        await _wait_for_wizard(ctx)
    await wait_for_settle(ctx)
    logger.info("Credentials submitted for user %d, now at %s", user.id, ctx.page.url)
    return ctx.ok(STAGE)
