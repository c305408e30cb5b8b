"""Resume import screen: fill out manually, or upload a resume file."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from onboard.browser.form import upload_file
from onboard.browser.modal import open_modal
from onboard.browser.navigation import advance
from onboard.models.steps import StepName
from onboard.wizard.templates import validate_page

if TYPE_CHECKING:
    from onboard.models.options import RunOptions
    from onboard.models.outcome import Outcome
    from onboard.wizard.context import RunContext

logger = logging.getLogger(__name__)

STEP = StepName.RESUME_IMPORT
_MANUAL_TIMEOUT_MS = 5_000
# Resume parsing on the remote side can take a while.
_PARSE_TIMEOUT_MS = 30_000


async def resume_import(ctx: RunContext, options: RunOptions) -> Outcome:
    invalid = validate_page(ctx, STEP)
    if invalid is not None:
        return invalid

    if options.upload_only:
        first = await advance(ctx, STEP, direct_fallback=False)
        if first.ok:
            return first
        logger.info("Resume import not yet complete; uploading")
        return await upload_resume(ctx)

    manual = await ctx.wait_for("resume_import.manual", _MANUAL_TIMEOUT_MS)
    if manual is not None:
        return await advance(ctx, STEP, "resume_import.manual")
    logger.info("No manual-entry option; falling back to resume upload")
    return await upload_resume(ctx)


async def upload_resume(ctx: RunContext) -> Outcome:
    """Open the upload modal, attach the resume and continue once parsed."""
    stage = STEP.value
    opened = await open_modal(
        ctx,
        "resume_import.upload",
        stage=stage,
        trigger_code="UPLOAD_RESUME_BUTTON_NOT_FOUND",
        modal_code="UPLOAD_MODAL_NOT_FOUND",
    )
    if not opened.ok:
        return opened

    uploaded = await upload_file(ctx, "resume_import.file", ctx.settings.wizard.resume_path, stage=stage, code="RESUME")
    if not uploaded.ok:
        return uploaded

    if await ctx.wait_for("resume_import.continue", _PARSE_TIMEOUT_MS) is None:
        return ctx.fail("RESUME_CONTINUE_NOT_FOUND", "Continue button did not appear after upload", stage)
    return await advance(ctx, STEP, "resume_import.continue")
