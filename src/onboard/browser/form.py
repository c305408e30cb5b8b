"""Form interaction layer: fill-and-verify, password entry and control helpers.

Every helper returns an :class:`~onboard.models.outcome.Outcome`.  An
element that cannot be found or a value that does not stick is a normal
``soft_fail``; only browser transport errors propagate, and those are
converted at the step-handler boundary.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from playwright.async_api import Error as PlaywrightError

from onboard.browser.actions import (
    JS_FORCE_CHECK,
    click,
    clear_and_type,
    clear_field,
    press,
    probe,
    read_value,
    type_text,
)

if TYPE_CHECKING:
    from playwright.async_api import ElementHandle

    from onboard.models.outcome import Outcome
    from onboard.wizard.context import RunContext

logger = logging.getLogger(__name__)

JS_BLUR = "el => el.blur()"

# Password typing cadence per cycle (ms per character)
_PASSWORD_DELAYS: tuple[tuple[int, int], ...] = ((150, 400), (200, 500))
_PASSWORD_TIMEOUT_MS = 15_000
_PASSWORD_HINTS = ("password", "passwd", "pwd")


def _code(field: str) -> str:
    return field.upper().replace(" ", "_").replace(".", "_")


# ---------------------------------------------------------------------------
# Fill-and-verify
# ---------------------------------------------------------------------------


async def fill_and_verify(
    ctx: RunContext,
    selectors: str | Sequence[str],
    value: str,
    field: str,
    *,
    stage: str,
    check_first_char: bool = True,
    not_found_code: str | None = None,
    failed_code: str | None = None,
) -> Outcome:
    """Locate a field, type *value* into it and confirm it stuck.

    Each attempt clears, types, blurs and re-reads the field.  An attempt
    passes when the value is non-empty and (optionally) starts with the
    expected character.  After ``retries.fill_attempts`` misses a final
    leniency check accepts any non-empty value.  Empty is never accepted.

    Args:
        ctx: Run context.
        selectors: Selector-table key or explicit alternatives.
        value: Text to enter.
        field: Logical field name used in logs and default error codes.
        stage: Stage label for the returned Outcome.
        check_first_char: Compare the first character case-insensitively.
        not_found_code: Override for ``<FIELD>_FIELD_NOT_FOUND``.
        failed_code: Override for ``<FIELD>_ENTRY_FAILED``.
    """
    failed_code = failed_code or f"{_code(field)}_ENTRY_FAILED"
    if not value:
        return ctx.fail(failed_code, f"Refusing to fill {field} with an empty value", stage)

    element = await ctx.wait_for(selectors)
    if element is None:
        return ctx.fail(not_found_code or f"{_code(field)}_FIELD_NOT_FOUND", f"{field} field not found", stage)

    attempts = ctx.settings.retries.fill_attempts
    actual = ""
    for attempt in range(1, attempts + 1):
        await clear_and_type(ctx.page, element, value, ctx.pacer)
        await element.evaluate(JS_BLUR)
        await ctx.pacer.pause(200, 400)
        actual = (await read_value(element)).strip()
        if actual and (not check_first_char or actual[0].lower() == value[0].lower()):
            logger.debug("Filled %s on attempt %d", field, attempt)
            return ctx.ok(stage)
        logger.info("Fill of %s did not verify on attempt %d/%d (got %r)", field, attempt, attempts, actual[:20])
        await ctx.pacer.pause(300, 600)

    if actual:
        logger.warning("Accepting non-matching value for %s after %d attempts", field, attempts)
        return ctx.ok(stage)
    return ctx.fail(failed_code, f"{field} stayed empty after {attempts} attempts", stage)


# ---------------------------------------------------------------------------
# Password entry
# ---------------------------------------------------------------------------


async def _looks_like_password(element: ElementHandle) -> tuple[bool, str]:
    attrs = {name: (await element.get_attribute(name)) or "" for name in ("type", "id", "name")}
    described = ", ".join(f"{k}={v!r}" for k, v in attrs.items())
    if attrs["type"].lower() == "password":
        return True, described
    joined = f"{attrs['id']} {attrs['name']}".lower()
    return any(h in joined for h in _PASSWORD_HINTS), described


async def enter_password(
    ctx: RunContext,
    password: str,
    *,
    selectors: str | Sequence[str] = "login.password",
    stage: str = "login",
) -> Outcome:
    """Hardened password entry.

    Cross-checks the field's type, id and name so a revealed username
    field is never typed into, types slowly, and allows exactly one full
    clear-and-retype cycle.  Only the password length is ever logged or
    reported.
    """
    element = await ctx.wait_for(selectors, timeout_ms=_PASSWORD_TIMEOUT_MS)
    if element is None:
        return ctx.fail("PASSWORD_FIELD_NOT_FOUND", "Password field not found", stage)

    is_password, described = await _looks_like_password(element)
    if not is_password:
        return ctx.fail("WRONG_FIELD_TYPE", f"Located field is not a password input ({described})", stage)

    for cycle, delay in enumerate(_PASSWORD_DELAYS, start=1):
        await clear_field(ctx.page, element, ctx.pacer)
        await type_text(element, password, ctx.pacer, delay)
        await ctx.pacer.pause(300, 600)
        entered = await read_value(element)
        if entered and len(entered) == len(password):
            logger.info("Password entered (%d characters) on cycle %d", len(password), cycle)
            return ctx.ok(stage)
        logger.warning(
            "Password entry cycle %d left %d of %d characters", cycle, len(entered), len(password)
        )

    return ctx.fail(
        "PASSWORD_ENTRY_FAILED",
        f"Password field did not hold the expected {len(password)} characters after {len(_PASSWORD_DELAYS)} cycles",
        stage,
    )


# ---------------------------------------------------------------------------
# Choice controls
# ---------------------------------------------------------------------------


async def select_with_verification(
    ctx: RunContext,
    selectors: str | Sequence[str],
    *,
    stage: str,
    code: str,
) -> Outcome:
    """Check a radio or checkbox and make sure it stays checked.

    Clicks once, clicks again only if the first click was dropped, then
    forces the checked state by script before re-verifying.  A control
    that is already checked is left alone.
    """
    element = await ctx.wait_for(selectors)
    if element is None:
        return ctx.fail(f"{code}_NOT_FOUND", f"No selectable control found for {stage}", stage)
    if await element.is_checked():
        logger.info("%s already selected", stage)
        return ctx.ok(stage)

    await click(element, ctx.pacer)
    if not await element.is_checked():
        logger.info("First click on %s was dropped; clicking again", stage)
        await click(element, ctx.pacer)
    if not await element.is_checked():
        logger.info("Forcing checked state on %s", stage)
        await element.evaluate(JS_FORCE_CHECK)
        await ctx.pacer.pause(200, 400)
    if not await element.is_checked():
        return ctx.fail(f"{code}_NOT_SELECTED", f"Control for {stage} would not stay checked", stage)
    return ctx.ok(stage)


async def select_dropdown(
    ctx: RunContext,
    selectors: str | Sequence[str],
    *,
    stage: str,
    code: str,
    option_text: str | None = None,
) -> Outcome:
    """Open a dropdown and pick an option.

    The primary strategy clicks the option whose text matches
    *option_text*; the fallback uses ArrowDown + Enter.  Success means the
    toggle no longer reports ``aria-expanded="true"``.
    """
    toggle = await ctx.wait_for(selectors)
    if toggle is None:
        return ctx.fail(f"{code}_NOT_FOUND", f"Dropdown for {stage} not found", stage)

    for attempt in range(1, ctx.attempts + 1):
        if await toggle.get_attribute("aria-expanded") != "true":
            await click(toggle, ctx.pacer, (500, 1_000))
        option = None
        if option_text:
            option = await probe(
                ctx.page, [f'{s}:has-text("{option_text}")' for s in ctx.sel("dropdown.option")]
            )
        if option is not None:
            await click(option, ctx.pacer)
        else:
            await press(ctx.page, "ArrowDown", ctx.pacer)
            await press(ctx.page, "Enter", ctx.pacer, (300, 600))
        if await toggle.get_attribute("aria-expanded") != "true":
            return ctx.ok(stage)
        logger.info("Dropdown for %s still expanded after attempt %d", stage, attempt)

    return ctx.fail(f"{code}_SELECTION_FAILED", f"Dropdown for {stage} stayed open", stage)


async def fill_typeahead(
    ctx: RunContext,
    selectors: str | Sequence[str],
    value: str,
    field: str,
    *,
    stage: str,
    not_found_code: str | None = None,
) -> Outcome:
    """Fill a search-as-you-type field and accept the first suggestion."""
    result = await fill_and_verify(
        ctx, selectors, value, field, stage=stage, not_found_code=not_found_code
    )
    if not result.ok:
        return result
    await ctx.pacer.pause(1_000, 1_500)
    await press(ctx.page, "ArrowDown", ctx.pacer, (500, 800))
    await press(ctx.page, "Enter", ctx.pacer, (800, 1_200))
    return result


# ---------------------------------------------------------------------------
# File upload
# ---------------------------------------------------------------------------


async def upload_file(
    ctx: RunContext,
    selectors: str | Sequence[str],
    path: str | Path,
    *,
    stage: str,
    code: str,
) -> Outcome:
    """Attach a local file through the browser's native upload primitive."""
    file_path = Path(path)
    if not file_path.is_file():
        return ctx.fail(f"{code}_FILE_MISSING", f"Upload source {file_path} does not exist", stage)
    element = await ctx.wait_for(selectors, visible=False)
    if element is None:
        return ctx.fail(f"{code}_INPUT_NOT_FOUND", f"No file input found for {stage}", stage)
    try:
        await element.set_input_files(str(file_path))
    except PlaywrightError as exc:
        return ctx.fail(f"{code}_UPLOAD_FAILED", str(exc), stage)
    logger.info("Uploaded %s for %s", file_path.name, stage)
    await ctx.pacer.pause(2_000, 3_000)
    return ctx.ok(stage)
