"""Onboard test configuration: shared fixtures and an in-memory browser fake."""

from __future__ import annotations

import base64
import random
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from onboard.browser.actions import JS_CLEAR_VALUE, JS_FORCE_CHECK

WIZARD = "https://www.upwork.com/nx/create-profile/"

# 1x1 RGB PNG
TINY_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAIAAACQd1PeAAAADElEQVR4nGP4z8AAAAMBAQDJ/pLvAAAAAElFTkSuQmCC"
)


def step_url(fragment: str) -> str:
    return WIZARD + fragment


# ---------------------------------------------------------------------------
# Fake browser
# ---------------------------------------------------------------------------


class FakeElement:
    """Element handle supporting the subset of Playwright calls the core uses.

    Args:
        value: Initial input value.
        text: ``text_content()`` result.
        attributes: ``get_attribute()`` results.
        checked: Initial checked state (checkboxes and radios).
        check_on_click: Whether a click toggles ``checked`` on.
        on_click: Callback run after every click.
        max_length: Characters typed beyond this length are dropped.
        accepts_input: When False typed characters are ignored.
        display: Transforms the stored value when read back.
        upload_error: Exception raised by ``set_input_files``.
    """

    def __init__(
        self,
        *,
        value: str = "",
        text: str = "",
        attributes: dict[str, str] | None = None,
        checked: bool = False,
        check_on_click: bool = True,
        on_click: Callable[[], None] | None = None,
        visible: bool = True,
        enabled: bool = True,
        max_length: int | None = None,
        accepts_input: bool = True,
        display: Callable[[str], str] | None = None,
        upload_error: Exception | None = None,
    ) -> None:
        self.value = value
        self.text = text
        self.attributes = dict(attributes or {})
        self.checked = checked
        self.check_on_click = check_on_click
        self.on_click = on_click
        self.visible = visible
        self.enabled = enabled
        self.max_length = max_length
        self.accepts_input = accepts_input
        self.display = display
        self.upload_error = upload_error
        self.page: FakePage | None = None
        self.clicks = 0
        self.typed: list[str] = []
        self.files: list[str] = []
        self.scripts: list[str] = []

    async def click(self) -> None:
        self.clicks += 1
        if self.page is not None:
            self.page.focused = self
        if self.check_on_click:
            self.checked = True
        if self.on_click is not None:
            self.on_click()

    async def focus(self) -> None:
        if self.page is not None:
            self.page.focused = self

    async def type(self, text: str) -> None:
        self.typed.append(text)
        if not self.accepts_input:
            return
        self.value += text
        if self.max_length is not None:
            self.value = self.value[: self.max_length]

    async def input_value(self) -> str:
        return self.display(self.value) if self.display and self.value else self.value

    async def evaluate(self, script: str, arg: Any = None) -> None:
        self.scripts.append(script)
        if script == JS_CLEAR_VALUE:
            self.value = ""
        elif script == JS_FORCE_CHECK:
            self.checked = True

    async def get_attribute(self, name: str) -> str | None:
        return self.attributes.get(name)

    async def is_visible(self) -> bool:
        return self.visible

    async def is_enabled(self) -> bool:
        return self.enabled

    async def is_checked(self) -> bool:
        return self.checked

    async def set_input_files(self, path: str) -> None:
        if self.upload_error is not None:
            raise self.upload_error
        self.files.append(path)

    async def text_content(self) -> str:
        return self.text


class FakeKeyboard:
    def __init__(self, page: FakePage) -> None:
        self.page = page
        self.pressed: list[str] = []
        self._select_all = False

    async def press(self, key: str) -> None:
        self.pressed.append(key)
        focused = self.page.focused
        if key == "Control+A":
            self._select_all = True
        elif key == "Backspace" and self._select_all and focused is not None:
            focused.value = ""
            self._select_all = False
        handler = self.page.key_handlers.get(key)
        if handler is not None:
            handler()

    async def type(self, text: str) -> None:
        if self.page.focused is not None:
            await self.page.focused.type(text)


class FakePage:
    """In-memory page: selectors map to registered elements, URL is a plain attribute.

    Elements are registered under a selector-table key (resolved to the
    key's first selector) or under a raw selector string.
    """

    def __init__(self, url: str = "about:blank") -> None:
        from onboard.browser.selectors import load_selectors

        self._table = load_selectors()
        self.url = url
        self.elements: dict[str, list[FakeElement]] = {}
        self.focused: FakeElement | None = None
        self.keyboard = FakeKeyboard(self)
        self.key_handlers: dict[str, Callable[[], None]] = {}
        self.redirects: dict[str, str] = {}
        self.gotos: list[str] = []
        self.goto_error: Exception | None = None

    def _selector(self, key: str) -> str:
        return self._table[key][0] if key in self._table else key

    def put(self, key: str, *elements: FakeElement) -> FakeElement:
        for element in elements:
            element.page = self
        self.elements[self._selector(key)] = list(elements)
        return elements[0]

    def remove(self, *keys: str) -> None:
        for key in keys:
            self.elements.pop(self._selector(key), None)

    async def query_selector(self, selector: str) -> FakeElement | None:
        found = self.elements.get(selector)
        return found[0] if found else None

    async def query_selector_all(self, selector: str) -> list[FakeElement]:
        return list(self.elements.get(selector, []))

    async def goto(self, url: str, wait_until: str = "load", timeout: int = 30_000) -> None:
        self.gotos.append(url)
        if self.goto_error is not None:
            raise self.goto_error
        self.url = self.redirects.get(url, url)

    async def wait_for_load_state(self, state: str = "load", timeout: int | None = None) -> None:
        return None

    async def screenshot(self, full_page: bool = False) -> bytes:
        return TINY_PNG


class ManualClock:
    """Clock whose sleeps advance virtual time instantly."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Clear the settings LRU cache between tests."""
    from onboard.settings.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def settings(tmp_path: Path):
    """Settings pointing every writable path at *tmp_path*, pacing off."""
    from onboard.settings.config import Settings

    return Settings(
        browser={"screenshot_dir": str(tmp_path / "shots"), "proxy_host": "proxy.local"},
        pacing={"enabled": False},
        storage={"sqlite_path": str(tmp_path / "onboard.db")},
        otp={"smspool_api_key": "", "smsman_api_key": ""},
    )


# ---------------------------------------------------------------------------
# Stores and users
# ---------------------------------------------------------------------------


@pytest.fixture()
def user_store(tmp_path: Path):
    """Create a disposable ``UserStore`` backed by a temporary SQLite DB."""
    from onboard.store.user_store import UserStore

    return UserStore(db_path=tmp_path / "test_users.db")


@pytest.fixture()
def user():
    from onboard.models.user import UserRecord

    return UserRecord(
        id=1,
        first_name="Ada",
        last_name="Lovelace",
        email="ada@example.com",
        password="s3cret-pass",
        country_code="GB",
        phone="447700900123",
        last_proxy_port=10005,
    )


# ---------------------------------------------------------------------------
# Run context
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def make_ctx(settings, user, clock):
    """Factory building a ``RunContext`` around a ``FakePage``."""
    from onboard.browser.actions import Pacer
    from onboard.browser.selectors import load_selectors
    from onboard.profile.content import ProfileContent
    from onboard.wizard.context import RunContext

    def factory(page: FakePage, *, store: Any = None, otp: Any = None, capture_state: Any = None, **overrides: Any):
        fields: dict[str, Any] = {
            "page": page,
            "settings": settings,
            "selectors": load_selectors(),
            "pacer": Pacer(clock, random.Random(7), enabled=False),
            "user": user,
            "store": store if store is not None else MagicMock(),
            "content": ProfileContent(random.Random(7)),
            "otp": otp,
            "capture_state": capture_state,
        }
        fields.update(overrides)
        return RunContext(**fields)

    return factory


# ---------------------------------------------------------------------------
# Pytest markers
# ---------------------------------------------------------------------------


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests that require external services or real I/O")
    config.addinivalue_line("markers", "slow: marks tests that take more than a few seconds")
