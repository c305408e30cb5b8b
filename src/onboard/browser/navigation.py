"""Wizard navigation: resilient page loads and the advance protocol.

``advance`` clicks the primary proceed control and verifies by URL that
the wizard moved on.  When no proceed control can be found it falls back
to ``direct_navigate`` towards the statically computed next screen, so a
missing button never blocks the run indefinitely.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Literal

from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeout

from onboard.browser.actions import click, wait_for_url
from onboard.exceptions import NavigationError
from onboard.models.steps import StepName, descriptor, in_namespace, next_step_url

if TYPE_CHECKING:
    from playwright.async_api import Page, Response

    from onboard.models.outcome import Outcome
    from onboard.wizard.context import RunContext

logger = logging.getLogger(__name__)

# Playwright error substrings that indicate non-retryable navigation failures.
_NON_RETRYABLE_ERRORS: tuple[str, ...] = (
    "ERR_NAME_NOT_RESOLVED",
    "ERR_CONNECTION_REFUSED",
    "ERR_CONNECTION_RESET",
    "ERR_CONNECTION_CLOSED",
    "ERR_PROXY_CONNECTION_FAILED",
    "ERR_TUNNEL_CONNECTION_FAILED",
    "ERR_SSL_PROTOCOL_ERROR",
    "ERR_ADDRESS_UNREACHABLE",
)

WaitUntil = Literal["commit", "domcontentloaded", "load", "networkidle"]

_FALLBACK_STRATEGY: list[WaitUntil] = ["networkidle", "load", "domcontentloaded"]

# Pause after clicking a proceed control (ms)
_ADVANCE_DELAY = (2_000, 4_000)


def _build_fallback_chain(preferred: WaitUntil) -> list[WaitUntil]:
    """Return the fallback chain starting from *preferred*."""
    if preferred in _FALLBACK_STRATEGY:
        idx = _FALLBACK_STRATEGY.index(preferred)
        return _FALLBACK_STRATEGY[idx:]
    return [preferred, *_FALLBACK_STRATEGY]


async def resilient_goto(
    page: Page,
    url: str,
    *,
    timeout_ms: int = 30_000,
    wait_until: WaitUntil = "networkidle",
) -> Response | None:
    """Navigate to *url*, relaxing the wait strategy on timeout.

    Args:
        page: Playwright page instance.
        url: Target URL.
        timeout_ms: Timeout per attempt in milliseconds.
        wait_until: Preferred initial wait strategy.

    Raises:
        NavigationError: On DNS, proxy, connection or TLS failures.
        PlaywrightTimeout: If every strategy in the chain times out.
    """
    last_error: PlaywrightTimeout | None = None
    for strategy in _build_fallback_chain(wait_until):
        try:
            logger.debug("goto %s (wait_until=%s, timeout=%dms)", url, strategy, timeout_ms)
            return await page.goto(url, wait_until=strategy, timeout=timeout_ms)
        except PlaywrightError as exc:
            error_msg = str(exc)
            for pattern in _NON_RETRYABLE_ERRORS:
                if pattern in error_msg:
                    reason = pattern.replace("ERR_", "").replace("_", " ").lower()
                    logger.warning("Navigation to %s failed (non-retryable): %s", url, pattern)
                    raise NavigationError(url, reason) from exc
            if isinstance(exc, PlaywrightTimeout):
                logger.warning("Navigation to %s timed out with wait_until=%s, relaxing", url, strategy)
                last_error = exc
            else:
                raise

    raise last_error  # type: ignore[misc]


async def wait_for_settle(ctx: RunContext) -> None:
    """Wait briefly for network idle, otherwise fall back to a short pause."""
    try:
        await ctx.page.wait_for_load_state("networkidle", timeout=ctx.settings.browser.settle_timeout_ms)
    except PlaywrightTimeout:
        await ctx.pacer.pause(1_000, 2_000)


async def advance(
    ctx: RunContext,
    step: StepName,
    selectors: str = "next",
    *,
    direct_fallback: bool = True,
) -> Outcome:
    """Click the proceed control for *step* and verify the wizard moved on.

    With *direct_fallback* off a missing control is reported instead of
    navigating to the statically computed next screen.

    Returns:
        ``success`` when the URL changed and stayed inside the wizard;
        ``<STEP>_NAVIGATION_FAILED`` otherwise; ``<STEP>_NEXT_NOT_FOUND``
        when neither a control nor a direct-navigation target exists.
    """
    page = ctx.page
    before = page.url
    button = await ctx.wait_for(selectors)
    if button is None:
        target = next_step_url(before, ctx.namespace) if direct_fallback else None
        if target is None:
            return ctx.fail(f"{step.code}_NEXT_NOT_FOUND", f"Next button not found on {step.value} page", step.value)
        logger.info("No proceed control on %s; navigating directly to %s", step.value, target)
        return await direct_navigate(ctx, target, step)

    if not await button.is_enabled():
        return ctx.fail(
            f"{step.code}_NAVIGATION_FAILED", f"Proceed control on {step.value} page is disabled", step.value
        )

    logger.info("Advancing from %s", step.value)
    await click(button, ctx.pacer, _ADVANCE_DELAY)
    await wait_for_settle(ctx)
    await wait_for_url(
        page,
        lambda url: url != before,
        clock=ctx.clock,
        timeout_ms=ctx.settings.retries.selector_timeout_ms,
        poll_ms=ctx.settings.retries.poll_interval_ms,
    )
    after = page.url
    if after == before or not in_namespace(after, ctx.namespace):
        return ctx.fail(
            f"{step.code}_NAVIGATION_FAILED",
            f"Failed to navigate from {step.value} page (now at {after})",
            step.value,
        )
    return ctx.ok(step.value)


async def direct_navigate(ctx: RunContext, url: str, step: StepName) -> Outcome:
    """Go straight to *url*; the escape hatch when no proceed control exists."""
    try:
        await resilient_goto(ctx.page, url, timeout_ms=15_000, wait_until="domcontentloaded")
    except (PlaywrightError, NavigationError) as exc:
        return ctx.fail(f"{step.code}_NAVIGATION_FAILED", f"Failed to navigate to {url}: {exc}", step.value)
    await wait_for_settle(ctx)
    return ctx.ok(step.value)


async def goto_step(ctx: RunContext, step: StepName) -> bool:
    """Load the URL of *step* and report whether the page landed on it."""
    url = descriptor(step).url(ctx.settings.wizard.base_url, ctx.namespace)
    try:
        await resilient_goto(ctx.page, url, timeout_ms=ctx.settings.browser.navigation_timeout_ms)
    except (PlaywrightError, NavigationError) as exc:
        logger.warning("Direct load of %s failed: %s", step.value, exc)
        return False
    await wait_for_settle(ctx)
    return ctx.detect() is step
