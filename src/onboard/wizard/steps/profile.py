"""Profile-detail screens that fill one control and move on."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from onboard.browser.actions import click, probe
from onboard.browser.form import fill_and_verify, select_dropdown
from onboard.browser.navigation import advance, wait_for_settle
from onboard.models.steps import StepName
from onboard.wizard.templates import fill_then_advance, simple_advance, validate_page

if TYPE_CHECKING:
    from onboard.models.options import RunOptions
    from onboard.models.outcome import Outcome
    from onboard.wizard.context import RunContext

logger = logging.getLogger(__name__)

_MAX_SUGGESTED_SKILLS = 3


async def categories(ctx: RunContext, options: RunOptions) -> Outcome:
    stage = StepName.CATEGORIES.value

    async def pick() -> Outcome:
        link = await ctx.wait_for("categories.left")
        if link is None:
            return ctx.fail("CATEGORY_NOT_FOUND", "No category link found", stage)
        await click(link, ctx.pacer, (1_500, 2_500))
        specialty = await ctx.wait_for("categories.specialty")
        if specialty is None:
            return ctx.fail("SPECIALTY_NOT_FOUND", "No specialty checkbox found", stage)
        await click(specialty, ctx.pacer)
        return ctx.ok(stage)

    return await fill_then_advance(ctx, StepName.CATEGORIES, [pick])


async def _count(ctx: RunContext, key: str) -> int:
    total = 0
    for selector in ctx.sel(key):
        total += len(await ctx.page.query_selector_all(selector))
    return total


async def skills(ctx: RunContext, options: RunOptions) -> Outcome:
    """Add suggested skills when none are selected or the page demands one."""
    step = StepName.SKILLS
    invalid = validate_page(ctx, step)
    if invalid is not None:
        return invalid

    error_shown = await probe(ctx.page, ctx.sel("skills.error")) is not None
    selected = await _count(ctx, "skills.selected")
    if error_shown or selected == 0:
        added = 0
        for skill in ctx.content.suggested_skills:
            if added >= _MAX_SUGGESTED_SKILLS:
                break
            button = await probe(ctx.page, [s.format(skill=skill) for s in ctx.sel("skills.suggestion")])
            if button is None:
                continue
            await click(button, ctx.pacer, (800, 1_500))
            added += 1
        if added == 0:
            return ctx.fail("SKILLS_NOT_ADDED", "No suggested skills available to add", step.value)
        logger.info("Added %d suggested skills", added)
    return await advance(ctx, step)


async def title(ctx: RunContext, options: RunOptions) -> Outcome:
    return await fill_then_advance(
        ctx,
        StepName.TITLE,
        [lambda: fill_and_verify(ctx, "title.input", ctx.content.job_title(), "title", stage="title")],
    )


async def languages(ctx: RunContext, options: RunOptions) -> Outcome:
    return await fill_then_advance(
        ctx,
        StepName.LANGUAGES,
        [
            lambda: select_dropdown(
                ctx, "languages.dropdown", stage="languages", code="LANGUAGE_PROFICIENCY"
            )
        ],
        selectors="languages.next",
    )


async def overview(ctx: RunContext, options: RunOptions) -> Outcome:
    return await fill_then_advance(
        ctx,
        StepName.OVERVIEW,
        [lambda: fill_and_verify(ctx, "overview.textarea", ctx.content.overview(), "overview", stage="overview")],
    )


async def rate(ctx: RunContext, options: RunOptions) -> Outcome:
    # The input reformats to "$15.00", so only non-emptiness is checked.
    return await fill_then_advance(
        ctx,
        StepName.RATE,
        [
            lambda: fill_and_verify(
                ctx, "rate.input", str(ctx.content.hourly_rate()), "rate", stage="rate", check_first_char=False
            )
        ],
    )


async def general(ctx: RunContext, options: RunOptions) -> Outcome:
    await wait_for_settle(ctx)
    return await simple_advance(ctx, StepName.GENERAL)
