"""Tests for the modal dialog lifecycle."""

from __future__ import annotations

import pytest

from conftest import FakeElement, FakePage, step_url
from onboard.browser.modal import close_modal, open_modal, save_modal


def _page_with_trigger() -> tuple[FakePage, FakeElement]:
    page = FakePage(step_url("education"))
    trigger = page.put("education.add", FakeElement())
    return page, trigger


class TestOpenModal:
    """Open with title verification and bounded retries."""

    @pytest.mark.anyio
    async def test_opens(self, make_ctx) -> None:
        """Clicking the trigger shows the dialog."""
        page, trigger = _page_with_trigger()
        trigger.on_click = lambda: page.put("modal.dialog", FakeElement())
        result = await open_modal(
            make_ctx(page), "education.add", stage="education",
            trigger_code="ADD_EDUCATION_BUTTON_NOT_FOUND", modal_code="EDUCATION_MODAL_NOT_FOUND",
        )
        assert result.ok
        assert trigger.clicks == 1

    @pytest.mark.anyio
    async def test_title_checked(self, make_ctx) -> None:
        """A dialog with the wrong title does not count."""
        page, trigger = _page_with_trigger()

        def show() -> None:
            page.put("modal.dialog", FakeElement())
            page.put("modal.title", FakeElement(text="Add certification"))

        trigger.on_click = show
        page.key_handlers["Escape"] = lambda: page.remove("modal.dialog", "modal.title")
        result = await open_modal(
            make_ctx(page), "education.add", stage="education",
            trigger_code="ADD_EDUCATION_BUTTON_NOT_FOUND", modal_code="EDUCATION_MODAL_NOT_FOUND",
            expected_title="Add education",
        )
        assert result.error_code == "EDUCATION_MODAL_NOT_FOUND"
        assert trigger.clicks == 3
        assert page.keyboard.pressed.count("Escape") == 3

    @pytest.mark.anyio
    async def test_trigger_missing(self, make_ctx) -> None:
        """No trigger reports the trigger code straight away."""
        result = await open_modal(
            make_ctx(FakePage(step_url("education"))), "education.add", stage="education",
            trigger_code="ADD_EDUCATION_BUTTON_NOT_FOUND", modal_code="EDUCATION_MODAL_NOT_FOUND",
        )
        assert result.error_code == "ADD_EDUCATION_BUTTON_NOT_FOUND"

    @pytest.mark.anyio
    async def test_never_appears(self, make_ctx) -> None:
        """Three clicks without a dialog report the modal code."""
        page, trigger = _page_with_trigger()
        result = await open_modal(
            make_ctx(page), "education.add", stage="education",
            trigger_code="ADD_EDUCATION_BUTTON_NOT_FOUND", modal_code="EDUCATION_MODAL_NOT_FOUND",
        )
        assert result.error_code == "EDUCATION_MODAL_NOT_FOUND"
        assert trigger.clicks == 3


class TestSaveAndClose:
    """Save and close verified by the dialog's absence."""

    @pytest.mark.anyio
    async def test_save(self, make_ctx) -> None:
        """Save closes the dialog."""
        page = FakePage(step_url("education"))
        page.put("modal.dialog", FakeElement())
        page.put("modal.save", FakeElement(on_click=lambda: page.remove("modal.dialog")))
        assert (await save_modal(make_ctx(page), stage="education", code="EDUCATION")).ok

    @pytest.mark.anyio
    async def test_save_not_confirmed(self, make_ctx) -> None:
        """A dialog that stays open after save is reported."""
        page = FakePage(step_url("education"))
        page.put("modal.dialog", FakeElement())
        page.put("modal.save", FakeElement())
        result = await save_modal(make_ctx(page), stage="education", code="EDUCATION")
        assert result.error_code == "EDUCATION_ENTRY_NOT_CONFIRMED"

    @pytest.mark.anyio
    async def test_close_with_escape(self, make_ctx) -> None:
        """Without a close control the cancel key is used."""
        page = FakePage(step_url("education"))
        page.put("modal.dialog", FakeElement())
        page.key_handlers["Escape"] = lambda: page.remove("modal.dialog")
        assert (await close_modal(make_ctx(page), stage="education")).ok
        assert page.keyboard.pressed == ["Escape"]

    @pytest.mark.anyio
    async def test_close_failed(self, make_ctx) -> None:
        """A dialog that will not go away reports MODAL_CLOSE_FAILED."""
        page = FakePage(step_url("education"))
        page.put("modal.dialog", FakeElement())
        page.put("modal.close", FakeElement())
        result = await close_modal(make_ctx(page), stage="education")
        assert result.error_code == "MODAL_CLOSE_FAILED"
