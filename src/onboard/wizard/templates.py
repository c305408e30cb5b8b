"""Reusable execution templates shared by the step handlers.

A step handler is a plain coroutine ``run(ctx, options) -> Outcome``
wrapped in a :class:`StepHandler`.  The wrapper is the exception
boundary: anything a handler raises becomes a ``hard_fail`` Outcome.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from onboard.browser.actions import probe
from onboard.browser.navigation import advance
from onboard.models.steps import StepName, descriptor

if TYPE_CHECKING:
    from onboard.models.options import RunOptions
    from onboard.models.outcome import Outcome
    from onboard.wizard.context import RunContext

logger = logging.getLogger(__name__)

StepRun = Callable[["RunContext", "RunOptions"], Awaitable["Outcome"]]
Fill = Callable[[], Awaitable["Outcome"]]


@dataclass(frozen=True)
class StepHandler:
    """One wizard screen: a name bound to its run coroutine and context."""

    name: StepName
    ctx: RunContext
    run: StepRun

    async def execute(self, options: RunOptions) -> Outcome:
        """Run the handler; exceptions become ``<STEP>_STEP_FAILED``."""
        step = self.name.value
        await self.ctx.snap(f"{step}_before")
        try:
            result = await self.run(self.ctx, options)
        except Exception as exc:
            logger.exception("Step %s raised", step)
            await self.ctx.snap(f"{step}_error")
            return self.ctx.fail(f"{self.name.code}_STEP_FAILED", str(exc) or type(exc).__name__, step, hard=True)
        await self.ctx.snap(f"{step}_after")
        return result


def validate_page(ctx: RunContext, step: StepName) -> Outcome | None:
    """Return a ``<STEP>_PAGE_NOT_FOUND`` failure unless the page shows *step*."""
    if descriptor(step).matches(ctx.page.url, ctx.namespace):
        return None
    return ctx.fail(
        f"{step.code}_PAGE_NOT_FOUND",
        f"Expected the {step.value} page, found {ctx.page.url}",
        step.value,
    )


async def run_fills(fills: Sequence[Fill]) -> Outcome | None:
    """Run *fills* in order; return the first failure, or ``None``."""
    for fill in fills:
        result = await fill()
        if not result.ok:
            return result
    return None


async def simple_advance(ctx: RunContext, step: StepName, selectors: str = "next") -> Outcome:
    invalid = validate_page(ctx, step)
    if invalid is not None:
        return invalid
    return await advance(ctx, step, selectors)


async def fill_then_advance(
    ctx: RunContext,
    step: StepName,
    fills: Sequence[Fill],
    selectors: str = "next",
) -> Outcome:
    """Validate the page, run each fill (short-circuiting), then advance."""
    invalid = validate_page(ctx, step)
    if invalid is not None:
        return invalid
    failed = await run_fills(fills)
    if failed is not None:
        return failed
    return await advance(ctx, step, selectors)


async def try_advance_before_fill(
    ctx: RunContext,
    step: StepName,
    fills: Sequence[Fill],
    *,
    edit: Fill | None = None,
    edit_when: str = "edit",
    selectors: str = "next",
) -> Outcome:
    """Advance straight away when the screen is already complete.

    If that fails and an element matching *edit_when* is on the page, the
    *edit* path repairs the existing entry; otherwise the full
    fill-then-advance path runs.
    """
    invalid = validate_page(ctx, step)
    if invalid is not None:
        return invalid

    first = await advance(ctx, step, selectors, direct_fallback=False)
    if first.ok:
        logger.info("%s already complete from an earlier run", step.value)
        return first

    if edit is not None and await probe(ctx.page, ctx.sel(edit_when)) is not None:
        logger.info("Editing existing %s entry", step.value)
        failed = await run_fills([edit])
        if failed is not None:
            return failed
        return await advance(ctx, step, selectors)

    logger.info("Filling %s from scratch", step.value)
    return await fill_then_advance(ctx, step, fills, selectors)
