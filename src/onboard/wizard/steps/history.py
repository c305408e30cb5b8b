"""Employment and education screens, both modal-driven list editors."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from onboard.browser.form import fill_and_verify, fill_typeahead, select_with_verification
from onboard.browser.modal import open_modal, save_modal
from onboard.models.steps import StepName
from onboard.wizard.templates import run_fills, try_advance_before_fill

if TYPE_CHECKING:
    from onboard.models.options import RunOptions
    from onboard.models.outcome import Outcome
    from onboard.wizard.context import RunContext

logger = logging.getLogger(__name__)

EMPLOYMENT_MODAL_TITLE = "Add Work Experience"
EDUCATION_MODAL_TITLE = "Add Education History"


# ---------------------------------------------------------------------------
# Employment
# ---------------------------------------------------------------------------


async def employment(ctx: RunContext, options: RunOptions) -> Outcome:
    stage = StepName.EMPLOYMENT.value
    entry = ctx.content.employment
    dialog = "employment.dialog"

    async def add() -> Outcome:
        opened = await open_modal(
            ctx,
            "employment.add",
            stage=stage,
            trigger_code="ADD_EXPERIENCE_BUTTON_NOT_FOUND",
            modal_code="EMPLOYMENT_MODAL_NOT_FOUND",
            expected_title=EMPLOYMENT_MODAL_TITLE,
            dialog=dialog,
        )
        if not opened.ok:
            return opened
        failed = await run_fills(
            [
                lambda: fill_typeahead(ctx, "employment.title", entry.title, "employment title", stage=stage),
                lambda: fill_and_verify(ctx, "employment.company", entry.company, "company", stage=stage),
                lambda: fill_typeahead(ctx, "employment.location", entry.location, "employment location", stage=stage),
                lambda: select_with_verification(ctx, "employment.current", stage=stage, code="CURRENT_ROLE"),
                lambda: fill_and_verify(
                    ctx, "employment.description", entry.description, "employment description", stage=stage
                ),
            ]
        )
        if failed is not None:
            return failed
        return await save_modal(ctx, stage=stage, code="EMPLOYMENT", dialog=dialog)

    async def edit() -> Outcome:
        # The "missing information" warning is almost always the location.
        opened = await open_modal(
            ctx,
            "edit",
            stage=stage,
            trigger_code="EDIT_BUTTON_NOT_FOUND",
            modal_code="EMPLOYMENT_MODAL_NOT_FOUND",
            dialog=dialog,
        )
        if not opened.ok:
            return opened
        filled = await fill_typeahead(ctx, "employment.location", entry.location, "employment location", stage=stage)
        if not filled.ok:
            return filled
        return await save_modal(ctx, stage=stage, code="EMPLOYMENT", dialog=dialog)

    return await try_advance_before_fill(
        ctx, StepName.EMPLOYMENT, [add], edit=edit, edit_when="employment.warning"
    )


# ---------------------------------------------------------------------------
# Education
# ---------------------------------------------------------------------------


async def education(ctx: RunContext, options: RunOptions) -> Outcome:
    stage = StepName.EDUCATION.value
    entry = ctx.content.education
    dialog = "education.dialog"

    async def add() -> Outcome:
        opened = await open_modal(
            ctx,
            "education.add",
            stage=stage,
            trigger_code="ADD_EDUCATION_BUTTON_NOT_FOUND",
            modal_code="EDUCATION_MODAL_NOT_FOUND",
            expected_title=EDUCATION_MODAL_TITLE,
            dialog=dialog,
        )
        if not opened.ok:
            return opened
        failed = await run_fills(
            [
                lambda: fill_typeahead(ctx, "education.school", entry.school, "school", stage=stage),
                lambda: fill_typeahead(ctx, "education.degree", entry.degree, "degree", stage=stage),
                lambda: fill_typeahead(ctx, "education.field", entry.field_of_study, "field of study", stage=stage),
            ]
        )
        if failed is not None:
            return failed
        return await save_modal(ctx, stage=stage, code="EDUCATION", dialog=dialog)

    return await try_advance_before_fill(ctx, StepName.EDUCATION, [add])
