"""Tests for resilient page loads and the advance protocol."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeout

from conftest import FakeElement, FakePage, step_url
from onboard.browser.navigation import _build_fallback_chain, advance, goto_step, resilient_goto
from onboard.exceptions import NavigationError
from onboard.models.steps import StepName


def _next_button(page: FakePage, target: str | None) -> FakeElement:
    def go() -> None:
        if target is not None:
            page.url = target

    return page.put("next", FakeElement(on_click=go))


# ---------------------------------------------------------------------------
# resilient_goto
# ---------------------------------------------------------------------------


class TestResilientGoto:
    """Wait-strategy fallback and non-retryable errors."""

    def test_fallback_chain(self) -> None:
        """The chain starts at the preferred strategy."""
        assert _build_fallback_chain("load") == ["load", "domcontentloaded"]
        assert _build_fallback_chain("commit") == ["commit", "networkidle", "load", "domcontentloaded"]

    @pytest.mark.anyio
    async def test_relaxes_on_timeout(self) -> None:
        """A timeout retries with the next, looser strategy."""
        page = MagicMock()
        page.goto = AsyncMock(side_effect=[PlaywrightTimeout("slow"), "response"])
        assert await resilient_goto(page, "https://example.test") == "response"
        assert [c.kwargs["wait_until"] for c in page.goto.call_args_list] == ["networkidle", "load"]

    @pytest.mark.anyio
    async def test_non_retryable(self) -> None:
        """DNS failures raise NavigationError immediately."""
        page = MagicMock()
        page.goto = AsyncMock(side_effect=PlaywrightError("net::ERR_NAME_NOT_RESOLVED at https://x"))
        with pytest.raises(NavigationError) as info:
            await resilient_goto(page, "https://x")
        assert info.value.reason == "name not resolved"
        assert page.goto.await_count == 1

    @pytest.mark.anyio
    async def test_all_timeouts_raise(self) -> None:
        """The last timeout propagates once every strategy failed."""
        page = MagicMock()
        page.goto = AsyncMock(side_effect=PlaywrightTimeout("slow"))
        with pytest.raises(PlaywrightTimeout):
            await resilient_goto(page, "https://x", wait_until="load")
        assert page.goto.await_count == 2


# ---------------------------------------------------------------------------
# advance
# ---------------------------------------------------------------------------


class TestAdvance:
    """Click the proceed control and verify by URL."""

    @pytest.mark.anyio
    async def test_url_changes(self, make_ctx) -> None:
        """A click that moves to the next screen succeeds."""
        page = FakePage(step_url("title"))
        button = _next_button(page, step_url("employment"))
        result = await advance(make_ctx(page), StepName.TITLE)
        assert result.ok
        assert button.clicks == 1
        assert result.url == step_url("employment")

    @pytest.mark.anyio
    async def test_url_unchanged(self, make_ctx) -> None:
        """No navigation reports <STEP>_NAVIGATION_FAILED."""
        page = FakePage(step_url("title"))
        _next_button(page, None)
        result = await advance(make_ctx(page), StepName.TITLE)
        assert result.error_code == "TITLE_NAVIGATION_FAILED"

    @pytest.mark.anyio
    async def test_left_namespace(self, make_ctx) -> None:
        """Leaving the wizard namespace is a navigation failure too."""
        page = FakePage(step_url("title"))
        _next_button(page, "https://www.upwork.com/ab/account-security/login")
        result = await advance(make_ctx(page), StepName.TITLE)
        assert result.error_code == "TITLE_NAVIGATION_FAILED"

    @pytest.mark.anyio
    async def test_disabled_button(self, make_ctx) -> None:
        """A disabled control is not clicked."""
        page = FakePage(step_url("title"))
        button = page.put("next", FakeElement(enabled=False))
        result = await advance(make_ctx(page), StepName.TITLE)
        assert result.error_code == "TITLE_NAVIGATION_FAILED"
        assert button.clicks == 0

    @pytest.mark.anyio
    async def test_direct_navigation_fallback(self, make_ctx) -> None:
        """With no control, the static next URL is loaded directly."""
        page = FakePage(step_url("title"))
        result = await advance(make_ctx(page), StepName.TITLE)
        assert result.ok
        assert page.gotos == [step_url("employment")]

    @pytest.mark.anyio
    async def test_direct_fallback_disabled(self, make_ctx) -> None:
        """direct_fallback=False reports the missing control instead."""
        page = FakePage(step_url("title"))
        result = await advance(make_ctx(page), StepName.TITLE, direct_fallback=False)
        assert result.error_code == "TITLE_NEXT_NOT_FOUND"
        assert page.gotos == []

    @pytest.mark.anyio
    async def test_no_control_and_no_target(self, make_ctx) -> None:
        """Screens outside the static list cannot fall back."""
        page = FakePage(step_url("welcome"))
        result = await advance(make_ctx(page), StepName.WELCOME)
        assert result.error_code == "WELCOME_NEXT_NOT_FOUND"


class TestGotoStep:
    """Direct load of a named step."""

    @pytest.mark.anyio
    async def test_lands(self, make_ctx) -> None:
        """True when the loaded URL shows the step."""
        page = FakePage(step_url("title"))
        assert await goto_step(make_ctx(page), StepName.EDUCATION)
        assert page.url == step_url("education")

    @pytest.mark.anyio
    async def test_redirected(self, make_ctx) -> None:
        """False when the site bounces elsewhere."""
        page = FakePage(step_url("title"))
        page.redirects[step_url("submit")] = step_url("location")
        assert not await goto_step(make_ctx(page), StepName.SUBMIT)
