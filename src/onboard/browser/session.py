"""Browser lifecycle for one wizard run.

A :class:`BrowserSession` owns exactly one Chromium browser, one context
and one page.  Outbound traffic goes through the user's sticky proxy
port, and a previously saved ``storage_state`` blob can be applied at
context creation so a later run resumes an authenticated session.
"""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from playwright.async_api import async_playwright

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright

    from onboard.settings.config import Settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Session blob codec
# ---------------------------------------------------------------------------


def encode_state(state: dict[str, Any]) -> str:
    """Encode a Playwright ``storage_state`` dict for storage as text."""
    raw = json.dumps(state, separators=(",", ":")).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def decode_state(blob: str) -> dict[str, Any]:
    """Inverse of :func:`encode_state`.

    Raises:
        ValueError: If *blob* is not a valid encoded session.
    """
    try:
        state = json.loads(base64.b64decode(blob.encode("ascii"), validate=True))
    except (ValueError, UnicodeError) as exc:
        raise ValueError(f"Invalid session blob: {exc}") from exc
    if not isinstance(state, dict):
        raise ValueError("Invalid session blob: not an object")
    return state


# ---------------------------------------------------------------------------
# Launch profile
# ---------------------------------------------------------------------------


@dataclass
class LaunchProfile:
    """Playwright launch and context arguments for a single session."""

    launch_args: dict[str, Any] = field(default_factory=dict)
    context_args: dict[str, Any] = field(default_factory=dict)
    proxy_url: str = ""


def proxy_server(host: str, port: int | None) -> str:
    """Return ``http://host:port`` or ``""`` when no proxy host is configured."""
    if not host or port is None:
        return ""
    return f"http://{host}:{port}"


def build_launch_profile(
    settings: Settings,
    *,
    proxy_port: int | None = None,
    storage_state: str | None = None,
) -> LaunchProfile:
    """Build launch/context arguments from settings and the user's sticky port."""
    browser = settings.browser
    profile = LaunchProfile()
    profile.launch_args["headless"] = browser.headless
    profile.launch_args["args"] = ["--disable-blink-features=AutomationControlled"]

    port = proxy_port or browser.default_proxy_port
    proxy_url = proxy_server(browser.proxy_host, port)
    if proxy_url:
        profile.launch_args["proxy"] = {"server": proxy_url}
        profile.proxy_url = proxy_url
        logger.debug("Using sticky proxy %s", proxy_url)

    ctx = profile.context_args
    ctx["viewport"] = {"width": browser.viewport_width, "height": browser.viewport_height}
    ctx["locale"] = "en-US"
    if storage_state:
        try:
            ctx["storage_state"] = decode_state(storage_state)
        except ValueError as exc:
            logger.warning("Ignoring saved session: %s", exc)
    return profile


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class BrowserSession:
    """Async context manager owning a Playwright browser, context and page.

    Args:
        settings: Resolved settings.
        proxy_port: The user's sticky proxy port (default port when ``None``).
        storage_state: Encoded session blob to restore, if any.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        proxy_port: int | None = None,
        storage_state: str | None = None,
    ) -> None:
        self._settings = settings
        self._profile = build_launch_profile(settings, proxy_port=proxy_port, storage_state=storage_state)
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self.page: Page | None = None

    @property
    def restored(self) -> bool:
        """True when a saved session was applied to the context."""
        return "storage_state" in self._profile.context_args

    async def start(self) -> Page:
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(**self._profile.launch_args)
        self._context = await self._browser.new_context(**self._profile.context_args)
        self._context.set_default_timeout(self._settings.browser.navigation_timeout_ms)
        self.page = await self._context.new_page()
        logger.info("Browser started (proxy=%s, restored=%s)", self._profile.proxy_url or "none", self.restored)
        return self.page

    async def capture_state(self) -> str:
        """Return the encoded ``storage_state`` of the live context."""
        if self._context is None:
            raise RuntimeError("Browser session is not started")
        return encode_state(await self._context.storage_state())

    async def close(self) -> None:
        for name, closer in (
            ("context", self._context),
            ("browser", self._browser),
        ):
            if closer is None:
                continue
            try:
                await closer.close()
            except Exception as exc:
                logger.debug("Closing %s failed: %s", name, exc)
        if self._playwright is not None:
            await self._playwright.stop()
        self._context = self._browser = self._playwright = None
        self.page = None

    async def __aenter__(self) -> Page:
        return await self.start()

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
