"""cvbot/hybrid.py

Local rule engine tried before the language model.

Greetings and common section questions ("what are your skills?", "how can
I contact you?") are answered straight from the profile: no model call, no
cost, and the same answer every time for the same profile and message.
"""

from __future__ import annotations

# Standard Library
import logging
import re
from typing import Final

# Local Modules
from cvbot.blocks import render_block
from cvbot.models import BlockType, Profile

logger = logging.getLogger(__name__)

GREETINGS: Final[frozenset[str]] = frozenset(
    {"hi", "hello", "hey", "greetings", "hola", "sup"}
)

# Ordered: the first section with any substring hit wins.
SECTION_KEYWORDS: Final[dict[str, tuple[str, ...]]] = {
    "skills": (
        "skill", "stack", "technology", "technologies", "language",
        "program", "coding", "framework",
    ),
    "experience": (
        "experience", "work", "job", "career", "history", "role",
        "position", "resume",
    ),
    "projects": (
        "project", "portfolio", "app", "site", "website", "build",
        "created", "demo",
    ),
    "articles": (
        "article", "blog", "writing", "publication", "post", "read", "medium",
    ),
    "education": (
        "education", "school", "degree", "university", "college", "study",
        "bachelor", "master",
    ),
    "contact": (
        "contact", "email", "phone", "reach", "connect", "social",
        "linkedin", "github", "twitter", "x",
    ),
    "about": (
        "about", "who are you", "who is", "bio", "summary", "profile",
        "story", "tell me about",
    ),
}

MAX_EXPERIENCE_ENTRIES = 3

_PUNCTUATION = re.compile(r"[^\w\s]")


def normalize(message: str) -> str:
    return _PUNCTUATION.sub("", message.lower()).strip()


def match_section(message: str) -> str | None:
    """Return the first section whose keywords occur in ``message``."""
    lowered = message.lower()
    for section, terms in SECTION_KEYWORDS.items():
        if any(term in lowered for term in terms):
            return section
    return None


def greeting_for(profile: Profile) -> str:
    name = profile.name or "the site owner"
    return (
        f"Hello! I'm an AI assistant for **{name}**. \n\n"
        "I can tell you about my **Experience** 💼, **Skills** 🛠️, or how to "
        "**Contact** me 📬. What would you like to know?"
    )


def format_skills(profile: Profile) -> str:
    groups: dict[str, list[str]] = {}
    for skill in profile.skills:
        groups.setdefault(skill.category or "Other", []).append(skill.name)
    lines = [f"**{category}**: {', '.join(names)}" for category, names in groups.items()]
    return "### 🛠️ Technical Skills\n\n" + "\n\n".join(lines)


def format_experience(profile: Profile) -> str:
    jobs = profile.experience
    shown = [
        f"**{job.role}** @ {job.company}\n_{job.period}_\n{job.description}"
        for job in jobs[:MAX_EXPERIENCE_ENTRIES]
    ]
    text = "### 💼 Work Experience\n\n" + "\n\n".join(shown)
    remaining = len(jobs) - MAX_EXPERIENCE_ENTRIES
    if remaining > 0:
        text += f"\n\n_(And {remaining} more roles...)_"
    return text


def format_projects(profile: Profile) -> str:
    if not profile.projects:
        return "I don't have any projects listed yet."
    items = []
    for project in profile.projects:
        item: dict[str, object] = {"title": project.name}
        if project.description:
            item["description"] = project.description
        if project.link:
            item["link"] = project.link
        if project.technologies:
            item["tags"] = list(project.technologies)
        items.append(item)
    return "Here are some featured projects:\n\n" + render_block(BlockType.PROJECTS, items)


def format_contact(profile: Profile) -> str:
    links = " | ".join(
        f"[{platform[:1].upper() + platform[1:]}]({url})"
        for platform, url in profile.social.items()
    )
    return (
        "### 📬 Contact Info\n\n"
        f"You can reach {profile.name} at: **{profile.email}**\n\n"
        f"**Links**: {links}"
    )


def format_about(profile: Profile) -> str:
    return (
        f"### 👋 About {profile.name}\n\n"
        f"**{profile.title}**\n\n"
        f"{profile.bio}\n\n"
        f"*{profile.tagline}*"
    )


_FORMATTERS = {
    "skills": format_skills,
    "experience": format_experience,
    "projects": format_projects,
    "contact": format_contact,
    "about": format_about,
}


def try_local(message: str, profile: Profile) -> str | None:
    """Answer ``message`` from the profile without the model, if possible.

    Args:
        message: The visitor's validated message.
        profile: Current profile data.

    Returns:
        A formatted markdown answer, or ``None`` to fall through to the
        model. Sections without a local formatter (articles, education)
        fall through too.
    """
    if normalize(message) in GREETINGS:
        logger.info("Served local response for: greeting")
        return greeting_for(profile)

    section = match_section(message)
    if section is None:
        return None

    formatter = _FORMATTERS.get(section)
    if formatter is None:
        return None

    logger.info("Served local response for: %s", section)
    return formatter(profile)
