"""Paced action primitives shared by every wizard layer.

Every delay goes through a :class:`Pacer` built on an injectable
:class:`Clock`, so tests can substitute a clock that never sleeps without
touching control flow.  The random pauses are for plausibility only and
are never relied on for ordering.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Sequence
from datetime import datetime, timezone
from io import BytesIO
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from PIL import Image

if TYPE_CHECKING:
    from playwright.async_api import ElementHandle, Page

logger = logging.getLogger(__name__)

# In-page scripts used when keyboard interaction does not stick.
JS_CLEAR_VALUE = (
    "el => { el.value = ''; "
    "el.dispatchEvent(new Event('input', { bubbles: true })); "
    "el.dispatchEvent(new Event('change', { bubbles: true })); }"
)
JS_FORCE_CHECK = (
    "el => { el.checked = true; "
    "el.dispatchEvent(new Event('click', { bubbles: true })); "
    "el.dispatchEvent(new Event('change', { bubbles: true })); }"
)

# Human-like typing delay range (ms per character)
TYPE_DELAY = (30, 100)
# Pause after a click (ms)
CLICK_DELAY = (500, 1500)


# ---------------------------------------------------------------------------
# Time source
# ---------------------------------------------------------------------------


class Clock(Protocol):
    """Monotonic time source with an awaitable sleep."""

    def monotonic(self) -> float: ...

    async def sleep(self, seconds: float) -> None: ...


class SystemClock:
    """Wall-clock implementation backed by ``asyncio.sleep``."""

    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class Pacer:
    """Draws uniformly random pauses and suspends on the given clock.

    Args:
        clock: Time source used for suspension.
        rng: Random generator; pass a seeded one for reproducible runs.
        enabled: When False, :meth:`pause` returns immediately.
        scale: Multiplier applied to every drawn duration.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        rng: random.Random | None = None,
        *,
        enabled: bool = True,
        scale: float = 1.0,
    ) -> None:
        self.clock: Clock = clock or SystemClock()
        self.rng = rng or random.Random()
        self.enabled = enabled
        self.scale = scale

    async def pause(self, min_ms: int, max_ms: int) -> None:
        """Suspend for a uniformly random duration in ``[min_ms, max_ms]``."""
        if not self.enabled or self.scale <= 0:
            return
        seconds = self.rng.uniform(min_ms, max_ms) / 1000 * self.scale
        await self.clock.sleep(seconds)

    async def wait(self, ms: int) -> None:
        """Suspend for a fixed duration regardless of pacing settings."""
        await self.clock.sleep(ms / 1000)


# ---------------------------------------------------------------------------
# Selector-retry wait
# ---------------------------------------------------------------------------


async def probe(page: Page, selectors: Sequence[str], *, visible: bool = True) -> ElementHandle | None:
    """Single pass over *selectors*; return the first (visible) match or ``None``."""
    for selector in selectors:
        element = await page.query_selector(selector)
        if element is not None and (not visible or await element.is_visible()):
            return element
    return None


async def wait_for_any(
    page: Page,
    selectors: Sequence[str],
    *,
    clock: Clock,
    timeout_ms: int = 10_000,
    poll_ms: int = 500,
    visible: bool = True,
) -> ElementHandle | None:
    """Poll an ordered list of selector alternatives until one resolves.

    Not-found is a normal result and returns ``None``.  Errors raised by
    the browser itself (closed page, broken connection) propagate.

    Args:
        page: Playwright page.
        selectors: Alternatives in priority order.
        clock: Time source for the deadline and the poll cadence.
        timeout_ms: Overall budget.
        poll_ms: Fixed delay between passes.
        visible: Require the match to be visible (off for file inputs).
    """
    deadline = clock.monotonic() + timeout_ms / 1000
    while True:
        element = await probe(page, selectors, visible=visible)
        if element is not None:
            return element
        if clock.monotonic() >= deadline:
            logger.debug("No match after %dms for %s", timeout_ms, selectors[:2])
            return None
        await clock.sleep(poll_ms / 1000)


async def wait_for_url(
    page: Page,
    predicate,
    *,
    clock: Clock,
    timeout_ms: int,
    poll_ms: int = 500,
) -> bool:
    """Poll ``page.url`` until *predicate* accepts it or the timeout elapses."""
    deadline = clock.monotonic() + timeout_ms / 1000
    while True:
        if predicate(page.url):
            return True
        if clock.monotonic() >= deadline:
            return False
        await clock.sleep(poll_ms / 1000)


# ---------------------------------------------------------------------------
# Click / type
# ---------------------------------------------------------------------------


async def click(element: ElementHandle, pacer: Pacer, delay: tuple[int, int] = CLICK_DELAY) -> None:
    """Click *element* and apply a randomised pause."""
    await element.click()
    await pacer.pause(*delay)


async def read_value(element: ElementHandle) -> str:
    return (await element.input_value()) or ""


async def clear_field(page: Page, element: ElementHandle, pacer: Pacer) -> None:
    """Empty a field by keyboard, falling back to a script when keys do not stick."""
    await element.focus()
    await page.keyboard.press("Control+A")
    await page.keyboard.press("Backspace")
    await pacer.pause(100, 250)
    if await read_value(element):
        await element.evaluate(JS_CLEAR_VALUE)


async def type_text(
    element: ElementHandle,
    text: str,
    pacer: Pacer,
    delay: tuple[int, int] = TYPE_DELAY,
) -> None:
    """Type *text* one character at a time with randomised spacing."""
    for char in text:
        await element.type(char)
        await pacer.pause(*delay)


async def clear_and_type(
    page: Page,
    element: ElementHandle,
    text: str,
    pacer: Pacer,
    delay: tuple[int, int] = TYPE_DELAY,
) -> None:
    await clear_field(page, element, pacer)
    await type_text(element, text, pacer, delay)


async def press(page: Page, key: str, pacer: Pacer, delay: tuple[int, int] = (150, 300)) -> None:
    await page.keyboard.press(key)
    await pacer.pause(*delay)


# ---------------------------------------------------------------------------
# Screenshots
# ---------------------------------------------------------------------------


def _resize_png(png_bytes: bytes, width: int, height: int) -> bytes:
    """Downscale PNG bytes to fit within *width* x *height*, preserving aspect ratio."""
    img = Image.open(BytesIO(png_bytes))
    if img.width <= width and img.height <= height:
        return png_bytes
    img.thumbnail((width, height), Image.LANCZOS)
    buf = BytesIO()
    img.save(buf, format="PNG", optimize=True)
    return buf.getvalue()


async def capture_screenshot(
    page: Page,
    name: str,
    directory: str | Path,
    *,
    max_size: tuple[int, int] | None = None,
) -> str:
    """Save a full-page PNG named ``<name>_<timestamp>.png``.

    Best-effort: any failure is logged and an empty reference returned.

    Returns:
        The saved file path, or ``""``.
    """
    try:
        out_dir = Path(directory)
        out_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
        path = out_dir / f"{name}_{stamp}.png"
        png = await page.screenshot(full_page=True)
        if max_size:
            png = _resize_png(png, *max_size)
        path.write_bytes(png)
        return str(path)
    except Exception as exc:
        logger.warning("Screenshot %s failed: %s", name, exc)
        return ""
