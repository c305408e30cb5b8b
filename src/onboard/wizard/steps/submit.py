"""Final screen: submit the profile and record success."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from onboard.browser.actions import click, wait_for_url
from onboard.models.steps import StepName, is_completion_page
from onboard.wizard.templates import validate_page

if TYPE_CHECKING:
    from onboard.models.options import RunOptions
    from onboard.models.outcome import Outcome
    from onboard.wizard.context import RunContext

logger = logging.getLogger(__name__)

STEP = StepName.SUBMIT


async def _mark_success(ctx: RunContext) -> None:
    try:
        await ctx.persist("mark_success")
    except Exception as exc:
        logger.error("Could not mark user %d as onboarded: %s", ctx.user.id, exc)


async def submit(ctx: RunContext, options: RunOptions) -> Outcome:
    stage = STEP.value
    if is_completion_page(ctx.page.url, ctx.namespace):
        logger.info("Profile already submitted")
        await _mark_success(ctx)
        return ctx.ok(stage)

    invalid = validate_page(ctx, STEP)
    if invalid is not None:
        return invalid

    button = await ctx.wait_for("submit.button")
    if button is None:
        return ctx.fail("SUBMIT_BUTTON_NOT_FOUND", "Submit profile button not found", stage)
    await click(button, ctx.pacer, (2_000, 4_000))

    finished = await wait_for_url(
        ctx.page,
        lambda url: is_completion_page(url, ctx.namespace),
        clock=ctx.clock,
        timeout_ms=ctx.settings.browser.navigation_timeout_ms,
        poll_ms=ctx.settings.retries.poll_interval_ms,
    )
    if not finished:
        return ctx.fail("SUBMIT_NOT_CONFIRMED", f"No completion page after submit (at {ctx.page.url})", stage)

    await ctx.snap("profile_submitted")
    await _mark_success(ctx)
    logger.info("Profile submitted for user %d", ctx.user.id)
    return ctx.ok(stage)
