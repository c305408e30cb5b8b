"""Step sequencer: walks the declared order against the live page.

The declared order is a default plan.  Before each step the live URL is
re-read; when it shows a different known step that step runs instead.
After each success the URL is read again: a later step means the site
skipped ahead and the loop jumps there, the same step means nothing
happened and the run fails as stuck.  Location and submit have their own
terminal handling because their post-conditions differ from the generic
"URL moved on" check.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from onboard.browser.navigation import goto_step
from onboard.models.outcome import OutcomeStatus
from onboard.models.steps import STEP_ORDER, StepName, is_completion_page, is_later

if TYPE_CHECKING:
    from onboard.models.options import RunOptions
    from onboard.models.outcome import Outcome
    from onboard.wizard.context import RunContext
    from onboard.wizard.templates import StepHandler

logger = logging.getLogger(__name__)

DONE_STAGE = "done"
RATE_COMPLETED_STAGE = "rate_completed"
FORCE_STAGE = "force_step"

# Controls that must be present before a forced jump counts as landed.
_FORCE_MARKERS: dict[StepName, str] = {
    StepName.WELCOME: "welcome.get_started",
    StepName.EDUCATION: "education.add",
}


async def force_step(ctx: RunContext, step: StepName) -> Outcome:
    """Navigate straight to *step* before orchestration starts."""
    for attempt in range(1, ctx.attempts + 1):
        if await goto_step(ctx, step):
            marker = _FORCE_MARKERS.get(step)
            if marker is None or await ctx.wait_for(marker) is not None:
                logger.info("Forced navigation to %s (attempt %d)", step.value, attempt)
                return ctx.ok(FORCE_STAGE)
        logger.info("Forced navigation to %s not confirmed (attempt %d/%d)", step.value, attempt, ctx.attempts)
        await ctx.pacer.wait(ctx.settings.retries.backoff_ms * attempt)
    return ctx.fail(
        "FORCED_STEP_NAVIGATION_FAILED",
        f"Could not reach the {step.value} page after {ctx.attempts} attempts",
        FORCE_STAGE,
    )


class Orchestrator:
    """Runs the wizard to a terminal Outcome.

    Args:
        ctx: Per-run context.
        registry: Step name to bound handler, built once per run.
        steps: Declared order; defaults to the full wizard.
    """

    def __init__(
        self,
        ctx: RunContext,
        registry: Mapping[StepName, StepHandler],
        steps: Sequence[StepName] | None = None,
    ) -> None:
        self.ctx = ctx
        self.registry = registry
        self.steps: tuple[StepName, ...] = tuple(steps) if steps is not None else tuple(d.name for d in STEP_ORDER)
        missing = [s.value for s in self.steps if s not in registry]
        if missing:
            raise ValueError(f"No handler registered for: {', '.join(missing)}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _position(self, step: object) -> int | None:
        return self.steps.index(step) if step in self.steps else None

    def _done(self) -> Outcome:
        return self.ctx.ok(DONE_STAGE)

    async def _execute(self, step: StepName, options: RunOptions, attempts: int = 1) -> Outcome:
        """Run *step*, retrying soft failures with backoff up to *attempts* times."""
        result = await self.registry[step].execute(options)
        for attempt in range(2, attempts + 1):
            if result.ok or result.status is OutcomeStatus.HARD_FAIL:
                break
            delay = self.ctx.settings.retries.backoff_ms * 2 ** (attempt - 2)
            logger.info("Retrying %s in %dms after %s", step.value, delay, result.error_code)
            await self.ctx.pacer.wait(delay)
            result = await self.registry[step].execute(options)
        return result

    async def _stop_before_location(self) -> Outcome:
        logger.info("Stopping before location for user %d", self.ctx.user.id)
        try:
            await self.ctx.persist("update_milestone", "rate_step_completed_at")
        except Exception as exc:
            logger.warning("Milestone update for user %d failed: %s", self.ctx.user.id, exc)
        return self.ctx.ok(RATE_COMPLETED_STAGE)

    # ------------------------------------------------------------------
    # Terminal handling
    # ------------------------------------------------------------------

    async def _reach_submit(self) -> Outcome:
        """Make sure the page shows the submit screen (or is already finished)."""
        ctx = self.ctx
        if ctx.detect() is StepName.SUBMIT or is_completion_page(ctx.page.url, ctx.namespace):
            return ctx.ok(StepName.SUBMIT.value)
        if await goto_step(ctx, StepName.SUBMIT):
            return ctx.ok(StepName.SUBMIT.value)
        if is_completion_page(ctx.page.url, ctx.namespace):
            return ctx.ok(StepName.SUBMIT.value)
        if ctx.detect() is StepName.LOCATION:
            return ctx.fail("SUBMIT_REDIRECT_FAILED", "Redirected back to location when opening submit", "submit")
        return ctx.fail("SUBMIT_REDIRECT_UNEXPECTED", f"Unexpected page when opening submit: {ctx.page.url}", "submit")

    async def _finish_submit(self, options: RunOptions) -> Outcome:
        result = await self._execute(StepName.SUBMIT, options)
        if not result.ok:
            return result
        return self._done()

    async def _finish_from_location(self, options: RunOptions) -> Outcome:
        await self.ctx.pacer.pause(2_000, 3_000)
        result = await self._execute(StepName.LOCATION, options)
        if not result.ok:
            return result
        await self.ctx.save_session()
        if is_completion_page(self.ctx.page.url, self.ctx.namespace):
            return self._done()
        if StepName.SUBMIT not in self.steps:
            return result
        reached = await self._reach_submit()
        if not reached.ok:
            return reached
        return await self._finish_submit(options)

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    async def run(self, options: RunOptions) -> Outcome:
        """Walk the wizard until ``done`` or a failure Outcome."""
        ctx = self.ctx
        if is_completion_page(ctx.page.url, ctx.namespace):
            logger.info("Wizard already finished for user %d", ctx.user.id)
            return self._done()

        index = self._position(ctx.detect()) or 0
        cap = 3 * len(self.steps)
        iterations = 0
        logger.info("Starting wizard at %s", self.steps[index].value if self.steps else "-")

        while index < len(self.steps):
            step = self.steps[index]
            iterations += 1
            if iterations > cap:
                return ctx.fail(
                    f"{step.code}_STEP_STUCK",
                    f"Gave up after {cap} step executions without finishing",
                    step.value,
                )

            attempts = 1
            detected = ctx.detect()
            if isinstance(detected, StepName) and detected is not step and detected in self.steps:
                logger.info("Page shows %s while %s was planned; realigning", detected.value, step.value)
                index = self.steps.index(detected)
                step = detected
                attempts = ctx.attempts

            if step is StepName.LOCATION and options.skip_location:
                return await self._stop_before_location()
            if step is StepName.LOCATION:
                return await self._finish_from_location(options)
            if step is StepName.SUBMIT:
                return await self._finish_submit(options)

            result = await self._execute(step, options, attempts)
            if not result.ok:
                return result
            await ctx.save_session()

            if is_completion_page(ctx.page.url, ctx.namespace):
                return self._done()
            after = ctx.detect()
            if after is step:
                return ctx.fail(
                    f"{step.code}_STEP_STUCK",
                    f"{step.value} reported success but the page did not move on ({ctx.page.url})",
                    step.value,
                )
            if step is StepName.RATE and options.skip_location:
                return await self._stop_before_location()
            if is_later(after, step) and after in self.steps:
                target = self.steps.index(after)
                if target > index + 1:
                    logger.info("Site skipped ahead from %s to %s", step.value, after.value)
                index = target
                continue
            index += 1

        if is_completion_page(ctx.page.url, ctx.namespace):
            return self._done()
        last = self.steps[-1].value if self.steps else "location"
        return ctx.fail(
            "LOCATION_STEP_NOT_COMPLETED",
            f"All steps ran without reaching a terminal screen (last: {last}, at {ctx.page.url})",
            last,
        )
