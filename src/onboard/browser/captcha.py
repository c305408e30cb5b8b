"""Block and CAPTCHA detection after credential submission.

The target site reports a flagged network path either with an inline
verification-error banner or with an embedded challenge widget.  Both
are treated the same way by the caller: flag the user, rotate the sticky
proxy port, and stop the run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from playwright.async_api import Error as PlaywrightError

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)


class BlockType(str, Enum):
    """Kinds of block signal recognised on the page."""

    NETWORK_RESTRICTION = "network_restriction"
    VERIFICATION_FAILED = "verification_failed"
    RECAPTCHA = "recaptcha"
    HCAPTCHA = "hcaptcha"
    TURNSTILE = "turnstile"


@dataclass(frozen=True)
class BlockDetection:
    """Result of scanning a page for block signals."""

    detected: bool = False
    block_type: BlockType | None = None
    selector: str = ""
    message: str = ""
    page_url: str = ""


# (selector, phrases, require_all, type).  With require_all=False any phrase
# matches; with True every phrase must be present in the element text.
_TEXT_SIGNATURES: list[tuple[str, tuple[str, ...], bool, BlockType]] = [
    (
        ".air3-form-message-error",
        (
            "we cannot verify your request due to network restrictions",
            "traffic blocking at your location",
        ),
        False,
        BlockType.NETWORK_RESTRICTION,
    ),
    (".air3-alert-content", ("verification failed",), False, BlockType.VERIFICATION_FAILED),
    ('[class*="error"]', ("verification", "failed"), True, BlockType.VERIFICATION_FAILED),
    ('[class*="alert"]', ("verification", "failed"), True, BlockType.VERIFICATION_FAILED),
]

_WIDGET_SIGNATURES: list[tuple[str, BlockType]] = [
    ('iframe[src*="google.com/recaptcha"]', BlockType.RECAPTCHA),
    ('iframe[src*="hcaptcha.com"]', BlockType.HCAPTCHA),
    ('iframe[src*="challenges.cloudflare.com"]', BlockType.TURNSTILE),
]


def _matches(text: str, phrases: tuple[str, ...], require_all: bool) -> bool:
    text = text.lower()
    hits = [p in text for p in phrases]
    return all(hits) if require_all else any(hits)


async def scan_for_block(page: Page) -> BlockDetection:
    """Scan the current page once for verification-error banners or widgets."""
    for selector, phrases, require_all, block_type in _TEXT_SIGNATURES:
        try:
            elements = await page.query_selector_all(selector)
        except PlaywrightError as exc:
            logger.debug("Block signature %s unavailable: %s", selector, exc)
            continue
        for element in elements:
            text = (await element.text_content()) or ""
            if _matches(text, phrases, require_all):
                logger.warning("Block detected on %s: %s (%s)", page.url, block_type.value, text.strip()[:120])
                return BlockDetection(True, block_type, selector, text.strip(), page.url)

    for selector, block_type in _WIDGET_SIGNATURES:
        if await page.query_selector(selector) is not None:
            logger.warning("Challenge widget detected on %s: %s", page.url, block_type.value)
            return BlockDetection(True, block_type, selector, "", page.url)

    return BlockDetection(page_url=page.url)
