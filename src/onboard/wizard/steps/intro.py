"""Opening screens: welcome and the three single-choice questions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from onboard.browser.actions import probe
from onboard.browser.form import select_with_verification
from onboard.browser.navigation import advance
from onboard.models.steps import StepName
from onboard.wizard.templates import fill_then_advance, validate_page

if TYPE_CHECKING:
    from onboard.models.options import RunOptions
    from onboard.models.outcome import Outcome
    from onboard.wizard.context import RunContext

_GET_STARTED_TIMEOUT_MS = 5_000


async def welcome(ctx: RunContext, options: RunOptions) -> Outcome:
    invalid = validate_page(ctx, StepName.WELCOME)
    if invalid is not None:
        return invalid
    if await ctx.wait_for("welcome.get_started", _GET_STARTED_TIMEOUT_MS) is not None:
        return await advance(ctx, StepName.WELCOME, "welcome.get_started")
    if await probe(ctx.page, ctx.sel("next")) is not None:
        return await advance(ctx, StepName.WELCOME)
    return ctx.fail("GET_STARTED_NOT_FOUND", "Neither Get Started nor Next found on welcome page", "welcome")


def _choice(step: StepName):
    """Build a handler that checks one option and advances."""

    async def run(ctx: RunContext, options: RunOptions) -> Outcome:
        return await fill_then_advance(
            ctx,
            step,
            [
                lambda: select_with_verification(
                    ctx, f"{step.value}.option", stage=step.value, code=f"{step.code}_OPTION"
                )
            ],
        )

    run.__name__ = step.value
    return run


experience = _choice(StepName.EXPERIENCE)
goal = _choice(StepName.GOAL)
work_preference = _choice(StepName.WORK_PREFERENCE)
