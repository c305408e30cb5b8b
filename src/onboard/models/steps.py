"""Declared wizard step order and URL-based step detection.

The declared order is only the default plan.  The live page URL is
ground truth: :func:`detect_step` maps a URL onto a known step (or one of
the :class:`PageMarker` values) and the orchestrator realigns from there.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlsplit

DEFAULT_NAMESPACE = "/nx/create-profile/"


class StepName(str, Enum):
    """Wizard screens in declared execution order."""

    WELCOME = "welcome"
    EXPERIENCE = "experience"
    GOAL = "goal"
    WORK_PREFERENCE = "work_preference"
    RESUME_IMPORT = "resume_import"
    CATEGORIES = "categories"
    SKILLS = "skills"
    TITLE = "title"
    EMPLOYMENT = "employment"
    EDUCATION = "education"
    LANGUAGES = "languages"
    OVERVIEW = "overview"
    RATE = "rate"
    GENERAL = "general"
    LOCATION = "location"
    SUBMIT = "submit"

    @property
    def code(self) -> str:
        """Upper-case prefix used in error codes, e.g. ``WORK_PREFERENCE``."""
        return self.value.upper()


class PageMarker(str, Enum):
    """Detection results that are not a known step."""

    INITIAL = "initial"  # inside the wizard namespace, no recognised segment
    UNKNOWN = "unknown"  # outside the wizard entirely


DetectedStep = StepName | PageMarker


@dataclass(frozen=True)
class StepDescriptor:
    """A named phase of the wizard with its URL-fragment matcher."""

    name: StepName
    position: int
    fragment: str

    def matches(self, url: str, namespace: str = DEFAULT_NAMESPACE) -> bool:
        return _segment(url, namespace) == self.fragment

    def url(self, base_url: str, namespace: str = DEFAULT_NAMESPACE) -> str:
        """Absolute URL of this step."""
        return base_url.rstrip("/") + _normalise(namespace) + self.fragment


STEP_ORDER: tuple[StepDescriptor, ...] = tuple(
    StepDescriptor(name=name, position=i, fragment=name.value.replace("_", "-"))
    for i, name in enumerate(StepName)
)

_BY_NAME: dict[StepName, StepDescriptor] = {d.name: d for d in STEP_ORDER}
_BY_FRAGMENT: dict[str, StepDescriptor] = {d.fragment: d for d in STEP_ORDER}

# Static sequence used by the direct-navigate fallback.
_DIRECT_SEQUENCE: tuple[StepName, ...] = (
    StepName.EXPERIENCE,
    StepName.GOAL,
    StepName.WORK_PREFERENCE,
    StepName.RESUME_IMPORT,
    StepName.CATEGORIES,
    StepName.SKILLS,
    StepName.TITLE,
    StepName.EMPLOYMENT,
    StepName.EDUCATION,
    StepName.LANGUAGES,
    StepName.LOCATION,
)

FINISH_FRAGMENT = "finish"
_COMPLETION_PATHS = ("/profile", "/dashboard", "/welcome")
_LOGGED_IN_PATHS = ("/dashboard", "/welcome")


def _normalise(namespace: str) -> str:
    return "/" + namespace.strip("/") + "/"


def _segment(url: str, namespace: str) -> str | None:
    """Return the first path segment after *namespace*, or ``None`` if outside it."""
    path = urlsplit(url).path
    ns = _normalise(namespace)
    if not (path + "/").startswith(ns):
        return None
    rest = path[len(ns):]
    return rest.split("/", 1)[0]


def descriptor(name: StepName) -> StepDescriptor:
    return _BY_NAME[name]


def in_namespace(url: str, namespace: str = DEFAULT_NAMESPACE) -> bool:
    """True when *url* is inside the wizard namespace."""
    return _segment(url, namespace) is not None


def detect_step(url: str, namespace: str = DEFAULT_NAMESPACE) -> DetectedStep:
    """Map a live page URL onto a declared step.

    Returns:
        The matching :class:`StepName`; :attr:`PageMarker.INITIAL` when the
        URL is inside the wizard namespace but names no known step; and
        :attr:`PageMarker.UNKNOWN` otherwise.
    """
    segment = _segment(url, namespace)
    if segment is None:
        return PageMarker.UNKNOWN
    found = _BY_FRAGMENT.get(segment)
    return found.name if found else PageMarker.INITIAL


def step_index(detected: DetectedStep) -> int:
    """Position of *detected* in the declared order; markers map to 0."""
    if isinstance(detected, StepName):
        return _BY_NAME[detected].position
    return 0


def is_later(detected: DetectedStep, than: StepName) -> bool:
    return isinstance(detected, StepName) and step_index(detected) > step_index(than)


def is_completion_page(url: str, namespace: str = DEFAULT_NAMESPACE) -> bool:
    """True once the wizard has handed off to the finished profile."""
    segment = _segment(url, namespace)
    if segment is not None:
        return segment == FINISH_FRAGMENT
    path = urlsplit(url).path
    return any(path.startswith(p) for p in _COMPLETION_PATHS)


def is_logged_in_page(url: str, namespace: str = DEFAULT_NAMESPACE) -> bool:
    """True when the page could only be reached with an authenticated session."""
    if in_namespace(url, namespace):
        return True
    path = urlsplit(url).path
    return any(path.startswith(p) for p in _LOGGED_IN_PATHS)


def next_step_url(current_url: str, namespace: str = DEFAULT_NAMESPACE) -> str | None:
    """Compute the direct-navigation target for the screen after *current_url*.

    Only the screens in the static fallback sequence have a successor;
    anything else returns ``None``.
    """
    detected = detect_step(current_url, namespace)
    if detected not in _DIRECT_SEQUENCE:
        return None
    idx = _DIRECT_SEQUENCE.index(detected)
    if idx + 1 >= len(_DIRECT_SEQUENCE):
        return None
    parts = urlsplit(current_url)
    base = f"{parts.scheme}://{parts.netloc}"
    return _BY_NAME[_DIRECT_SEQUENCE[idx + 1]].url(base, namespace)
