"""Modal dialog lifecycle: open with title verification, save, and close."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from onboard.browser.actions import click, probe

if TYPE_CHECKING:
    from onboard.models.outcome import Outcome
    from onboard.wizard.context import RunContext

logger = logging.getLogger(__name__)

_DIALOG_TIMEOUT_MS = 5_000


async def wait_for_absence(
    ctx: RunContext,
    selectors: str | Sequence[str],
    timeout_ms: int | None = None,
) -> bool:
    """Poll until none of *selectors* matches a visible element."""
    options = ctx.sel(selectors) if isinstance(selectors, str) else selectors
    timeout_ms = timeout_ms if timeout_ms is not None else ctx.settings.retries.selector_timeout_ms
    deadline = ctx.clock.monotonic() + timeout_ms / 1000
    while True:
        if await probe(ctx.page, options) is None:
            return True
        if ctx.clock.monotonic() >= deadline:
            return False
        await ctx.clock.sleep(ctx.settings.retries.poll_interval_ms / 1000)


async def _title_matches(ctx: RunContext, expected: str | None) -> bool:
    if not expected:
        return True
    heading = await probe(ctx.page, ctx.sel("modal.title"))
    if heading is None:
        return False
    text = (await heading.text_content()) or ""
    return expected.lower() in text.lower()


async def open_modal(
    ctx: RunContext,
    trigger: str | Sequence[str],
    *,
    stage: str,
    trigger_code: str,
    modal_code: str,
    expected_title: str | None = None,
    dialog: str | Sequence[str] = "modal.dialog",
) -> Outcome:
    """Click *trigger* and wait for a dialog with the expected title.

    Retries the click up to ``retries.attempts`` times.  A trigger that
    never appears fails with *trigger_code*; a dialog that never shows
    (or shows the wrong title) fails with *modal_code*.
    """
    for attempt in range(1, ctx.attempts + 1):
        button = await ctx.wait_for(trigger)
        if button is None:
            if attempt == 1:
                return ctx.fail(trigger_code, f"Trigger for {stage} modal not found", stage)
        else:
            await click(button, ctx.pacer, (1_000, 2_000))

        shown = await ctx.wait_for(dialog, _DIALOG_TIMEOUT_MS) is not None
        if shown and await _title_matches(ctx, expected_title):
            logger.info("%s modal open (attempt %d)", stage, attempt)
            return ctx.ok(stage)
        if shown:
            logger.info("%s dialog has an unexpected title; dismissing it", stage)
            await close_modal(ctx, stage=stage, dialog=dialog)
        logger.info("%s modal not confirmed after attempt %d/%d", stage, attempt, ctx.attempts)
        await ctx.pacer.pause(1_000, 2_000)

    return ctx.fail(modal_code, f"{stage} modal did not appear after {ctx.attempts} attempts", stage)


async def save_modal(
    ctx: RunContext,
    *,
    stage: str,
    code: str,
    dialog: str | Sequence[str] = "modal.dialog",
) -> Outcome:
    """Click the modal's save control and wait for the dialog to go away."""
    button = await ctx.wait_for("modal.save")
    if button is None:
        return ctx.fail("MODAL_SAVE_NOT_FOUND", f"Save button not found in {stage} modal", stage)
    await click(button, ctx.pacer, (1_500, 2_500))
    if not await wait_for_absence(ctx, dialog):
        return ctx.fail(f"{code}_ENTRY_NOT_CONFIRMED", f"{stage} modal still open after save", stage)
    return ctx.ok(stage)


async def close_modal(
    ctx: RunContext,
    *,
    stage: str,
    dialog: str | Sequence[str] = "modal.dialog",
) -> Outcome:
    """Dismiss a dialog via its close control, or Escape when there is none."""
    button = await probe(ctx.page, ctx.sel("modal.close"))
    if button is not None:
        await click(button, ctx.pacer)
    else:
        await ctx.page.keyboard.press("Escape")
        await ctx.pacer.pause(500, 1_000)
    if not await wait_for_absence(ctx, dialog):
        return ctx.fail("MODAL_CLOSE_FAILED", f"{stage} modal still visible after close", stage)
    return ctx.ok(stage)
