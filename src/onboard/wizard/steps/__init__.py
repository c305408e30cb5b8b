"""Per-screen handlers and the registry the orchestrator dispatches on."""

from __future__ import annotations

from typing import TYPE_CHECKING

from onboard.models.steps import StepName
from onboard.wizard.steps.history import education, employment
from onboard.wizard.steps.intro import experience, goal, welcome, work_preference
from onboard.wizard.steps.location import location
from onboard.wizard.steps.profile import categories, general, languages, overview, rate, skills, title
from onboard.wizard.steps.resume import resume_import
from onboard.wizard.steps.submit import submit
from onboard.wizard.templates import StepHandler, StepRun

if TYPE_CHECKING:
    from onboard.wizard.context import RunContext

HANDLERS: dict[StepName, StepRun] = {
    StepName.WELCOME: welcome,
    StepName.EXPERIENCE: experience,
    StepName.GOAL: goal,
    StepName.WORK_PREFERENCE: work_preference,
    StepName.RESUME_IMPORT: resume_import,
    StepName.CATEGORIES: categories,
    StepName.SKILLS: skills,
    StepName.TITLE: title,
    StepName.EMPLOYMENT: employment,
    StepName.EDUCATION: education,
    StepName.LANGUAGES: languages,
    StepName.OVERVIEW: overview,
    StepName.RATE: rate,
    StepName.GENERAL: general,
    StepName.LOCATION: location,
    StepName.SUBMIT: submit,
}


def build_registry(ctx: RunContext) -> dict[StepName, StepHandler]:
    """Bind every step handler to *ctx*; built once per run."""
    return {name: StepHandler(name, ctx, run) for name, run in HANDLERS.items()}
