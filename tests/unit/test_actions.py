"""Tests for pacing, selector-retry waits, typing and screenshots."""

from __future__ import annotations

import random
from io import BytesIO

import pytest
from PIL import Image

from conftest import FakeElement, FakePage, ManualClock
from onboard.browser.actions import (
    Pacer,
    _resize_png,
    capture_screenshot,
    clear_and_type,
    wait_for_any,
    wait_for_url,
)


def _png(width: int, height: int) -> bytes:
    buf = BytesIO()
    Image.new("RGB", (width, height), "white").save(buf, format="PNG")
    return buf.getvalue()


class TestPacer:
    """Randomised delays on an injectable clock."""

    @pytest.mark.anyio
    async def test_pause_within_bounds(self) -> None:
        """pause() sleeps a uniform duration in range."""
        clock = ManualClock()
        pacer = Pacer(clock, random.Random(1))
        for _ in range(20):
            await pacer.pause(100, 200)
        assert all(0.1 <= s <= 0.2 for s in clock.sleeps)

    @pytest.mark.anyio
    async def test_disabled_never_sleeps(self) -> None:
        """A disabled pacer returns immediately."""
        clock = ManualClock()
        await Pacer(clock, enabled=False).pause(1_000, 2_000)
        assert clock.sleeps == []

    @pytest.mark.anyio
    async def test_scale(self) -> None:
        """scale multiplies every drawn delay."""
        clock = ManualClock()
        await Pacer(clock, random.Random(1), scale=0.5).pause(1_000, 1_000)
        assert clock.sleeps == [0.5]

    @pytest.mark.anyio
    async def test_wait_ignores_pacing(self) -> None:
        """wait() is a fixed delay even when pacing is off."""
        clock = ManualClock()
        await Pacer(clock, enabled=False).wait(750)
        assert clock.sleeps == [0.75]


class TestWaitForAny:
    """Selector-retry wait."""

    @pytest.mark.anyio
    async def test_returns_first_visible_match(self) -> None:
        """Alternatives are tried in priority order."""
        page = FakePage()
        hidden = page.put("#a", FakeElement(visible=False))
        shown = page.put("#b", FakeElement())
        found = await wait_for_any(page, ["#a", "#b"], clock=ManualClock())
        assert found is shown
        assert found is not hidden

    @pytest.mark.anyio
    async def test_hidden_allowed_when_not_visible(self) -> None:
        """visible=False accepts hidden elements such as file inputs."""
        page = FakePage()
        hidden = page.put("#file", FakeElement(visible=False))
        assert await wait_for_any(page, ["#file"], clock=ManualClock(), visible=False) is hidden

    @pytest.mark.anyio
    async def test_not_found_returns_none_after_timeout(self) -> None:
        """Not found is a normal result, reached at the deadline."""
        clock = ManualClock()
        found = await wait_for_any(FakePage(), ["#missing"], clock=clock, timeout_ms=2_000, poll_ms=500)
        assert found is None
        assert clock.now >= 2.0
        assert set(clock.sleeps) == {0.5}


class TestWaitForUrl:
    """URL polling."""

    @pytest.mark.anyio
    async def test_times_out(self) -> None:
        """Returns False once the deadline passes."""
        page = FakePage("https://x/a")
        assert not await wait_for_url(page, lambda u: u.endswith("/b"), clock=ManualClock(), timeout_ms=1_000)


class TestClearAndType:
    """Keyboard clear with script fallback, then per-character typing."""

    @pytest.mark.anyio
    async def test_replaces_value(self) -> None:
        """Existing text is cleared by keyboard before typing."""
        page = FakePage()
        field = page.put("#f", FakeElement(value="old"))
        await clear_and_type(page, field, "new", Pacer(ManualClock(), enabled=False))
        assert field.value == "new"
        assert field.typed == ["n", "e", "w"]
        assert page.keyboard.pressed[:2] == ["Control+A", "Backspace"]


class TestScreenshots:
    """Best-effort screenshot capture."""

    @pytest.mark.anyio
    async def test_saves_file(self, tmp_path) -> None:
        """A PNG is written and its path returned."""
        path = await capture_screenshot(FakePage(), "title_before", tmp_path)
        assert path.endswith(".png")
        assert (tmp_path / path.split("/")[-1]).is_file()

    @pytest.mark.anyio
    async def test_failure_returns_empty(self, tmp_path) -> None:
        """A failing capture never raises."""
        page = FakePage()

        async def broken(full_page: bool = False) -> bytes:
            raise RuntimeError("page crashed")

        page.screenshot = broken  # type: ignore[method-assign]
        assert await capture_screenshot(page, "x", tmp_path) == ""

    def test_resize_downscales(self) -> None:
        """Large images are shrunk to fit, small ones untouched."""
        small = _png(10, 10)
        assert _resize_png(small, 100, 100) is small
        resized = Image.open(BytesIO(_resize_png(_png(400, 200), 100, 100)))
        assert resized.width == 100
        assert resized.height == 50
