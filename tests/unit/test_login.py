"""Tests for the credential phase, block detection and session restore."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError

from conftest import WIZARD, FakeElement, FakePage, step_url
from onboard.browser.captcha import BlockType, scan_for_block
from onboard.models.options import RunOptions
from onboard.wizard.login import ensure_wizard, sign_in
from onboard.wizard.session import check_restored_session, restorable_state

NETWORK_BANNER = "We cannot verify your request due to network restrictions. Please try again later."


def _login_page(*, banner: str | None = None, redirect_on_enter: bool = True) -> FakePage:
    """Login form whose Enter key lands in the wizard, optionally with a block banner."""
    page = FakePage()
    page.put("login.email", FakeElement())
    page.put("login.continue", FakeElement())
    page.put("login.password", FakeElement(attributes={"type": "password", "id": "login_password"}))

    def submitted() -> None:
        page.url = step_url("welcome")
        if banner is not None:
            page.put(".air3-form-message-error", FakeElement(text=banner))

    if redirect_on_enter:
        page.key_handlers["Enter"] = submitted
    else:
        page.put("login.submit", FakeElement(on_click=submitted))
    return page


class TestScanForBlock:
    """Block signatures on a rendered page."""

    @pytest.mark.anyio
    async def test_network_banner(self) -> None:
        """The network-restriction banner is recognised case-insensitively."""
        page = FakePage(step_url("welcome"))
        page.put(".air3-form-message-error", FakeElement(text=NETWORK_BANNER.upper()))
        detection = await scan_for_block(page)
        assert detection.detected
        assert detection.block_type is BlockType.NETWORK_RESTRICTION

    @pytest.mark.anyio
    async def test_unrelated_error_ignored(self) -> None:
        """Ordinary form errors are not block signals."""
        page = FakePage(step_url("welcome"))
        page.put(".air3-form-message-error", FakeElement(text="Please enter a valid email"))
        assert not (await scan_for_block(page)).detected

    @pytest.mark.anyio
    async def test_all_phrases_required(self) -> None:
        """Generic error containers need every phrase."""
        page = FakePage(step_url("welcome"))
        page.put('[class*="error"]', FakeElement(text="Verification pending"))
        assert not (await scan_for_block(page)).detected
        page.put('[class*="error"]', FakeElement(text="Verification failed, try again"))
        assert (await scan_for_block(page)).block_type is BlockType.VERIFICATION_FAILED

    @pytest.mark.anyio
    async def test_challenge_widget(self) -> None:
        """An embedded challenge iframe is a block."""
        page = FakePage(step_url("welcome"))
        page.put('iframe[src*="challenges.cloudflare.com"]', FakeElement())
        assert (await scan_for_block(page)).block_type is BlockType.TURNSTILE


class TestSignIn:
    """Full credential flow on the fake page."""

    @pytest.mark.anyio
    async def test_success_saves_session(self, make_ctx, caplog) -> None:
        """A clean login lands in the wizard and stores the session blob."""
        store = MagicMock()
        page = _login_page()
        ctx = make_ctx(page, store=store, capture_state=AsyncMock(return_value='{"cookies": []}'))
        result = await sign_in(ctx)
        assert result.ok
        assert page.url == step_url("welcome")
        store.update_session_state.assert_called_once_with(1, '{"cookies": []}')
        store.update_captcha_flag_and_proxy_port.assert_not_called()
        assert "s3cret-pass" not in caplog.text

    @pytest.mark.anyio
    async def test_resubmits_once(self, make_ctx) -> None:
        """Without a redirect the submit control is clicked once."""
        page = _login_page(redirect_on_enter=False)
        ctx = make_ctx(page)
        result = await sign_in(ctx)
        assert result.ok
        submit = await page.query_selector(ctx.sel("login.submit")[0])
        assert submit.clicks == 1

    @pytest.mark.anyio
    async def test_captcha_rotates_port_once(self, make_ctx) -> None:
        """A block banner flags the user and moves to the next proxy port."""
        store = MagicMock()
        ctx = make_ctx(_login_page(banner=NETWORK_BANNER), store=store)
        result = await sign_in(ctx)
        assert result.error_code == "CAPTCHA_DETECTED"
        assert result.stage == "login"
        assert "captcha_detected" in result.screenshots
        store.update_captcha_flag_and_proxy_port.assert_called_once_with(1, 10006)
        store.update_session_state.assert_not_called()

    @pytest.mark.anyio
    async def test_flag_write_fails(self, make_ctx) -> None:
        """A failed flag update is reported distinctly."""
        store = MagicMock()
        store.update_captcha_flag_and_proxy_port.side_effect = RuntimeError("database is locked")
        result = await sign_in(make_ctx(_login_page(banner=NETWORK_BANNER), store=store))
        assert result.error_code == "CAPTCHA_FLAG_FAILED"

    @pytest.mark.anyio
    async def test_default_port_when_unset(self, make_ctx, user) -> None:
        """Users without a port start from the configured default."""
        store = MagicMock()
        unassigned = user.model_copy(update={"last_proxy_port": None})
        ctx = make_ctx(_login_page(banner=NETWORK_BANNER), store=store, user=unassigned)
        await sign_in(ctx)
        store.update_captcha_flag_and_proxy_port.assert_called_once_with(1, 10002)

    @pytest.mark.anyio
    async def test_login_page_unreachable(self, make_ctx) -> None:
        """DNS failure on the login page is LOGIN_PAGE_UNREACHABLE."""
        page = _login_page()
        page.goto_error = PlaywrightError("net::ERR_NAME_NOT_RESOLVED at https://www.upwork.com")
        result = await sign_in(make_ctx(page))
        assert result.error_code == "LOGIN_PAGE_UNREACHABLE"

    @pytest.mark.anyio
    async def test_not_a_password_field(self, make_ctx) -> None:
        """A revealed text input is never typed into as a password."""
        page = _login_page()
        field = page.put("login.password", FakeElement(attributes={"type": "text", "id": "login_username"}))
        result = await sign_in(make_ctx(page))
        assert result.error_code == "WRONG_FIELD_TYPE"
        assert field.typed == []

    @pytest.mark.anyio
    async def test_already_logged_in(self, make_ctx) -> None:
        """A page already inside the wizard skips credentials."""
        page = FakePage(step_url("title"))
        result = await sign_in(make_ctx(page))
        assert result.ok
        assert page.gotos == []


class TestEnsureWizard:
    """Opening the wizard entry page."""

    @pytest.mark.anyio
    async def test_from_dashboard(self, make_ctx) -> None:
        """The wizard URL is loaded from outside the namespace."""
        page = FakePage("https://www.upwork.com/nx/find-work/")
        assert await ensure_wizard(make_ctx(page))
        assert page.gotos == [WIZARD]

    @pytest.mark.anyio
    async def test_redirected_away(self, make_ctx) -> None:
        """A redirect out of the wizard is reported as False."""
        page = FakePage("https://www.upwork.com/nx/find-work/")
        page.redirects[WIZARD] = "https://www.upwork.com/nx/find-work/"
        assert not await ensure_wizard(make_ctx(page))


class TestSessionRestore:
    """Saved-session reuse."""

    def test_restorable_only_when_requested(self, user) -> None:
        """The blob is offered only with restore_session and unfinished onboarding."""
        saved = user.model_copy(update={"last_session_state": "blob"})
        assert restorable_state(saved, RunOptions()) is None
        assert restorable_state(saved, RunOptions(restore_session=True)) == "blob"
        assert restorable_state(user, RunOptions(restore_session=True)) is None

    def test_not_restored_after_onboarding(self, user) -> None:
        """A finished user never reuses a session."""
        from datetime import datetime, timezone

        done = user.model_copy(
            update={"last_session_state": "blob", "onboarding_completed_at": datetime.now(timezone.utc)}
        )
        assert restorable_state(done, RunOptions(restore_session=True)) is None

    @pytest.mark.anyio
    async def test_live_session(self, make_ctx) -> None:
        """A logged-in landing page keeps and re-saves the session."""
        store = MagicMock()
        page = FakePage()
        page.redirects["https://www.upwork.com"] = step_url("title")
        ctx = make_ctx(page, store=store, capture_state=AsyncMock(return_value="fresh"))
        assert await check_restored_session(ctx)
        store.update_session_state.assert_called_once_with(1, "fresh")
        store.clear_session_state.assert_not_called()

    @pytest.mark.anyio
    async def test_expired_session(self, make_ctx) -> None:
        """A logged-out landing page clears the stored blob."""
        store = MagicMock()
        page = FakePage()
        page.redirects["https://www.upwork.com"] = "https://www.upwork.com/ab/account-security/login"
        assert not await check_restored_session(make_ctx(page, store=store))
        store.clear_session_state.assert_called_once_with(1)
