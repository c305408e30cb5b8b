"""Text and values typed into the wizard.

Catalogue entries (titles, overviews, skills) are drawn at random per
run.  Address, phone and date-of-birth fall back to Faker data seeded by
the user id when the stored record leaves them empty, so reruns for the
same user always type the same values.
"""

from __future__ import annotations

import random
import re
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from faker import Faker

if TYPE_CHECKING:
    from onboard.models.user import UserRecord

JOB_TITLES: tuple[str, ...] = (
    "Full-Stack Software Engineer",
    "Senior Software Developer",
    "Web Application Developer",
    "Frontend Developer",
    "Backend Developer",
    "Software Engineer",
    "Full-Stack Developer",
    "React Developer",
    "Node.js Developer",
    "Python Developer",
    "JavaScript Developer",
    "TypeScript Developer",
    "DevOps Engineer",
    "Cloud Engineer",
    "Data Engineer",
    "Machine Learning Engineer",
    "UI/UX Developer",
    "Mobile App Developer",
    "System Administrator",
    "Database Administrator",
)

OVERVIEWS: tuple[str, ...] = (
    "I'm a software engineer with strong experience creating professional websites for businesses of all "
    "sizes. Whether you need a polished company site, an e-commerce solution, or a portfolio to showcase your "
    "work, I can deliver. Skilled in HTML, CSS3, JavaScript, PHP, WordPress, and SEO. I manage the entire "
    "project lifecycle and keep communication clear at every step.",
    "As a web developer, I specialize in designing and coding responsive websites that help small and medium "
    "businesses grow online. From service listings to modern online stores, I create solutions tailored to your "
    "needs. My toolkit includes HTML5, CSS3, PHP, jQuery, WordPress, and SEO optimization. I provide full project "
    "oversight and prioritize transparent, regular communication with clients.",
    "I build clean, functional, and visually appealing websites for small and mid-sized companies. Whether it's "
    "promoting your services or selling products online, I provide custom solutions. Proficient in HTML, CSS3, "
    "PHP, WordPress, jQuery, and SEO strategies. I take care of everything from planning to deployment, with "
    "ongoing communication to keep you fully involved.",
    "I'm a developer who enjoys helping businesses establish and grow their online presence. From showcasing "
    "services to building e-commerce platforms, I create sites that work. Skilled in HTML, CSS3, PHP, jQuery, "
    "WordPress, and SEO optimization. I handle all project phases end-to-end and value consistent communication "
    "to make sure expectations are met.",
    "I create responsive, user-friendly websites for businesses that want to stand out. Whether you're aiming "
    "to showcase your portfolio, advertise services, or launch an online shop, I'll help you achieve it. "
    "Experienced in HTML, CSS3, PHP, jQuery, WordPress, and SEO. I guide projects from start to completion while "
    "sharing frequent updates with clients.",
    "I'm a professional web developer focused on helping businesses build their digital identity. From "
    "corporate sites to online stores, I craft modern solutions tailored to your goals. Expertise in HTML, CSS3, "
    "PHP, WordPress, SEO, and jQuery. I oversee the full project timeline and believe clear, ongoing "
    "communication is key to success.",
)

SUGGESTED_SKILLS: tuple[str, ...] = (
    "Coaching",
    "Business Coaching",
    "Career Coaching",
    "Continuing Professional Development",
    "Professional Tone",
    "Life Coaching",
)

HOURLY_RATE_RANGE = (10, 20)

_LOCALES = {
    "US": "en_US",
    "GB": "en_GB",
    "UK": "en_GB",
    "CA": "en_CA",
    "AU": "en_AU",
    "UA": "uk_UA",
    "ID": "id_ID",
    "DE": "de_DE",
    "FR": "fr_FR",
    "IT": "it_IT",
    "ES": "es_ES",
    "NL": "nl_NL",
}

# strftime patterns for the date-of-birth picker, keyed by country code.
_DOB_FORMATS = {
    "UK": "%Y-%m-%d",
    "GB": "%Y-%m-%d",
    "UA": "%Y-%m-%d",
    "ID": "%d/%m/%Y",
}
_DEFAULT_DOB_FORMAT = "%m/%d/%Y"


@dataclass(frozen=True)
class EmploymentEntry:
    title: str = "Senior Software Engineer"
    company: str = "Tech Solutions Inc"
    location: str = "Manchester"
    country: str = "United Kingdom"
    start_year: str = "2020"
    description: str = (
        "Developed full-stack web applications using modern technologies. "
        "Led a team of 5 developers and implemented CI/CD pipelines."
    )


@dataclass(frozen=True)
class EducationEntry:
    school: str = "University of Manchester"
    degree: str = "Bachelor of Science (BS)"
    field_of_study: str = "Computer Science"
    year_from: str = "2012"
    year_to: str = "2016"
    description: str = "Focused on software engineering, databases and web technologies."


@dataclass(frozen=True)
class LocationDetails:
    """Values typed on the location screen."""

    street: str
    city: str
    state: str
    post_code: str
    phone: str
    birth_date: date


def format_birth_date(value: date, country_code: str) -> str:
    """Render *value* in the order the date picker expects for *country_code*."""
    return value.strftime(_DOB_FORMATS.get(country_code.upper(), _DEFAULT_DOB_FORMAT))


def digits_only(value: str) -> str:
    return re.sub(r"\D", "", value)


class ProfileContent:
    """Source of every value a run types into the wizard.

    Args:
        rng: Random generator for catalogue draws.
    """

    employment = EmploymentEntry()
    education = EducationEntry()
    suggested_skills = SUGGESTED_SKILLS

    def __init__(self, rng: random.Random | None = None) -> None:
        self.rng = rng or random.Random()

    def job_title(self) -> str:
        return self.rng.choice(JOB_TITLES)

    def overview(self) -> str:
        return self.rng.choice(OVERVIEWS)

    def hourly_rate(self) -> int:
        return self.rng.randint(*HOURLY_RATE_RANGE)

    def location_for(self, user: UserRecord) -> LocationDetails:
        """Merge stored location fields with seeded Faker fallbacks."""
        fake = Faker(_LOCALES.get(user.country_code, "en_US"))
        fake.seed_instance(user.id)
        phone = digits_only(user.phone or "") or digits_only(fake.msisdn())[-10:]
        return LocationDetails(
            street=user.location_street_address or fake.street_address(),
            city=user.location_city or fake.city(),
            state=user.location_state or _state(fake),
            post_code=user.location_post_code or fake.postcode(),
            phone=phone,
            birth_date=user.birth_date or fake.date_of_birth(minimum_age=25, maximum_age=45),
        )


def _state(fake: Faker) -> str:
    # Not every locale provides administrative areas.
    for provider in ("state", "county", "administrative_unit", "region"):
        if hasattr(fake, provider):
            return getattr(fake, provider)()
    return fake.city()
