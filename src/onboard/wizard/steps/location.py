"""Location screen and the phone-verification sub-flow that follows it.

Clicking "Review your profile" does not change the URL; it opens the
phone-verification modal.  Only once the code is accepted does the
wizard move on to the submit screen.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from onboard.browser.actions import click, probe, read_value, type_text
from onboard.browser.form import fill_and_verify, fill_typeahead, upload_file
from onboard.browser.modal import wait_for_absence
from onboard.browser.navigation import wait_for_settle
from onboard.models.steps import StepName
from onboard.profile.content import format_birth_date
from onboard.wizard.templates import run_fills, validate_page

if TYPE_CHECKING:
    from onboard.models.options import RunOptions
    from onboard.models.outcome import Outcome
    from onboard.wizard.context import RunContext

logger = logging.getLogger(__name__)

STEP = StepName.LOCATION
VERIFY_STAGE = "phone_verification"

_MODAL_TIMEOUT_MS = 10_000


async def _fill_if_present(ctx: RunContext, key: str, value: str, field: str) -> Outcome:
    """Fill an optional field; absent or already populated fields are left alone."""
    element = await probe(ctx.page, ctx.sel(key))
    if element is None:
        logger.info("Optional %s field not shown", field)
        return ctx.ok(STEP.value)
    if await read_value(element):
        return ctx.ok(STEP.value)
    return await fill_and_verify(ctx, key, value, field, stage=STEP.value)


async def _upload_photo(ctx: RunContext) -> Outcome:
    stage = STEP.value
    photo = ctx.settings.wizard.photo_path
    if not photo or not Path(photo).is_file():
        logger.info("No profile photo configured; skipping upload")
        return ctx.ok(stage)
    uploaded = await upload_file(ctx, "location.photo_file", photo, stage=stage, code="PHOTO")
    if not uploaded.ok:
        return uploaded
    attach = await ctx.wait_for("location.photo_attach", _MODAL_TIMEOUT_MS)
    if attach is not None:
        await click(attach, ctx.pacer, (1_500, 2_500))
    return ctx.ok(stage)


async def location(ctx: RunContext, options: RunOptions) -> Outcome:
    """Fill address, birth date, phone and photo, then open verification.

    With ``skip_otp`` the handler stops after requesting the review and
    leaves the move to the submit screen to the orchestrator.
    """
    invalid = validate_page(ctx, STEP)
    if invalid is not None:
        return invalid

    stage = STEP.value
    user = ctx.user
    details = ctx.content.location_for(user)
    failed = await run_fills(
        [
            lambda: fill_and_verify(
                ctx,
                "location.dob",
                format_birth_date(details.birth_date, user.country_code),
                "date of birth",
                stage=stage,
                not_found_code="DOB_FIELD_NOT_FOUND",
            ),
            lambda: fill_typeahead(ctx, "location.street", details.street, "street address", stage=stage),
            lambda: _fill_if_present(ctx, "location.city", details.city, "city"),
            lambda: _fill_if_present(ctx, "location.state", details.state, "state"),
            lambda: _fill_if_present(ctx, "location.postal", details.post_code, "postal code"),
            lambda: fill_and_verify(
                ctx, "location.phone", details.phone, "phone", stage=stage, check_first_char=False
            ),
            lambda: _upload_photo(ctx),
        ]
    )
    if failed is not None:
        return failed

    review = await ctx.wait_for("location.review")
    if review is None:
        return ctx.fail("REVIEW_BUTTON_NOT_FOUND", "Review your profile button not found", stage)
    await click(review, ctx.pacer, (2_000, 3_000))
    await wait_for_settle(ctx)
    await ctx.save_session()

    if options.skip_otp:
        logger.info("Skipping phone verification for user %d", user.id)
        return ctx.ok(stage)
    return await verify_phone(ctx)


# ---------------------------------------------------------------------------
# Phone verification
# ---------------------------------------------------------------------------


async def _find_verification_modal(ctx: RunContext) -> bool:
    modal_selectors = [*ctx.sel("phone.code_modal"), *ctx.sel("phone.send_modal")]
    for attempt in range(1, ctx.attempts + 1):
        if await ctx.wait_for(modal_selectors, _MODAL_TIMEOUT_MS) is not None:
            return True
        logger.info("Verification modal not shown (attempt %d/%d)", attempt, ctx.attempts)
        review = await probe(ctx.page, ctx.sel("location.review"))
        if review is not None:
            await click(review, ctx.pacer, (2_000, 3_000))
    return False


async def _enter_code(ctx: RunContext, code: str) -> bool:
    inputs = []
    for selector in ctx.sel("phone.pin"):
        inputs = await ctx.page.query_selector_all(selector)
        if inputs:
            break
    if not inputs:
        return False
    if len(inputs) >= len(code):
        for element, digit in zip(inputs, code):
            await element.click()
            await type_text(element, digit, ctx.pacer, (100, 250))
    else:
        await inputs[0].click()
        await type_text(inputs[0], code, ctx.pacer, (100, 250))
    return True


async def verify_phone(ctx: RunContext) -> Outcome:
    """Request a code, fetch it from the OTP providers and submit it.

    The code itself is never logged or reported.
    """
    stage = VERIFY_STAGE
    user = ctx.user
    if not await _find_verification_modal(ctx):
        return ctx.fail("PHONE_VERIFICATION_MODAL_NOT_FOUND", "Phone verification modal did not appear", stage)

    if await probe(ctx.page, ctx.sel("phone.code_modal")) is None:
        send = await ctx.wait_for("phone.send")
        if send is None:
            return ctx.fail("SEND_CODE_BUTTON_NOT_FOUND", "Send code button not found", stage)
        await click(send, ctx.pacer, (2_000, 3_000))
    await ctx.snap("phone_code_requested")

    code = None
    if ctx.otp is not None:
        code = await ctx.otp.wait_for_otp(user.id, user.country_code, ctx.settings.otp.timeout_s)
    if not code:
        return ctx.fail("OTP_NOT_RECEIVED", f"No verification code received for {user.country_code} number", stage)

    if await ctx.wait_for("phone.pin") is None or not await _enter_code(ctx, code):
        return ctx.fail("OTP_INPUT_NOT_FOUND", "Verification code inputs not found", stage)

    verify = await ctx.wait_for("phone.verify")
    if verify is None:
        return ctx.fail("VERIFY_BUTTON_NOT_FOUND", "Verify phone number button not found", stage)
    await click(verify, ctx.pacer, (3_000, 5_000))
    await wait_for_settle(ctx)

    if await probe(ctx.page, ctx.sel("phone.pin_error")) is not None:
        return ctx.fail("OTP_INPUT_ERROR", "Verification code inputs flagged as invalid", stage)
    error = await probe(ctx.page, ctx.sel("phone.error"))
    if error is not None:
        message = ((await error.text_content()) or "").strip()
        if "expired" in message.lower():
            return ctx.fail("OTP_EXPIRED", message, stage)
        return ctx.fail("PHONE_VERIFICATION_FAILED", message or "Verification rejected", stage)

    if not await wait_for_absence(ctx, "phone.code_modal", _MODAL_TIMEOUT_MS):
        return ctx.fail("VERIFICATION_MODAL_STILL_OPEN", "Code modal still open after verification", stage)
    logger.info("Phone verified for user %d", user.id)
    return ctx.ok(stage)
