"""cvbot/models.py

Profile, bot configuration and chat data models.

Stored JSON uses camelCase keys (``funFacts``, ``fallbackMessage``); the
Python side is snake_case. Every list field defaults to an empty list and a
stored ``null`` is coerced to empty so prompt assembly never sees ``None``.
"""

from __future__ import annotations

# Standard Library
from enum import StrEnum
from typing import Any, Literal

# Third-Party Libraries
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model reading and writing camelCase JSON keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # A stored null falls back to the field default ([] / "" / {}).
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def _name_from_string(data: Any) -> Any:
    if isinstance(data, str):
        return {"name": data}
    return data


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


class Skill(CamelModel):
    name: str = ""
    category: str = ""
    level: int = Field(0, ge=0, le=100)

    @field_validator("level", mode="before")
    @classmethod
    def _clamp_level(cls, value: Any) -> Any:
        try:
            return max(0, min(100, int(value)))
        except (TypeError, ValueError):
            return 0


class Experience(CamelModel):
    company: str = ""
    role: str = ""
    period: str = ""
    location: str = ""
    description: str = ""
    highlights: list[str] = Field(default_factory=list)


class Education(CamelModel):
    institution: str = ""
    degree: str = ""
    period: str = ""
    description: str = ""
    achievements: list[str] = Field(default_factory=list)


class Project(CamelModel):
    name: str = ""
    description: str = ""
    technologies: list[str] = Field(default_factory=list)
    link: str = ""
    featured: bool = False


class Certification(CamelModel):
    name: str = ""
    issuer: str = ""
    date: str = ""
    link: str = ""

    @model_validator(mode="before")
    @classmethod
    def _from_string(cls, data: Any) -> Any:
        return _name_from_string(data)


class Language(CamelModel):
    name: str = ""
    proficiency: str = ""

    @model_validator(mode="before")
    @classmethod
    def _from_string(cls, data: Any) -> Any:
        return _name_from_string(data)


class Profile(CamelModel):
    """The profile owner's résumé data."""

    name: str = ""
    title: str = ""
    bio: str = ""
    tagline: str = ""
    location: str = ""
    email: str = ""
    avatar: str = ""
    social: dict[str, str] = Field(default_factory=dict)
    skills: list[Skill] = Field(default_factory=list)
    experience: list[Experience] = Field(default_factory=list)
    education: list[Education] = Field(default_factory=list)
    projects: list[Project] = Field(default_factory=list)
    certifications: list[Certification] = Field(default_factory=list)
    languages: list[Language] = Field(default_factory=list)
    interests: list[str] = Field(default_factory=list)
    fun_facts: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _about_is_bio(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("bio") and data.get("about"):
            data = {**data, "bio": data["about"]}
        return data

    @field_validator("social", mode="before")
    @classmethod
    def _clean_social(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(key): str(url) for key, url in value.items() if url}
        return value


# ---------------------------------------------------------------------------
# Bot configuration
# ---------------------------------------------------------------------------


class Personality(CamelModel):
    name: str = "AI Assistant"
    tone: str = "cheerful and professional"
    greeting: str = "Hello! How can I help you today?"
    fallback_message: str = "I can only answer questions about the profile owner."


class Playlist(CamelModel):
    name: str = ""
    platform: str = ""
    url: str = ""


class PlaylistsIntegration(CamelModel):
    enabled: bool = False
    items: list[Playlist] = Field(default_factory=list)


class LatestThoughtIntegration(CamelModel):
    enabled: bool = False
    username: str = ""
    latest_tweet: str = ""
    tweet_date: str = ""


class BlogIntegration(CamelModel):
    enabled: bool = False
    rss_url: str = ""
    blog_name: str = ""


class Integrations(CamelModel):
    playlists: PlaylistsIntegration = Field(default_factory=PlaylistsIntegration)
    twitter: LatestThoughtIntegration = Field(default_factory=LatestThoughtIntegration)
    blog: BlogIntegration = Field(default_factory=BlogIntegration)


class BotConfig(CamelModel):
    """Persona, behavior and integration settings for the bot."""

    personality: Personality = Field(default_factory=Personality)
    system_prompt: str = ""
    quick_replies: list[str] = Field(default_factory=list)
    allowed_topics: list[str] = Field(default_factory=list)
    blocked_topics: list[str] = Field(default_factory=list)
    integrations: Integrations = Field(default_factory=Integrations)

    def public_view(self) -> dict[str, Any]:
        """Visitor-safe subset: no system prompt, no topic lists."""
        return {
            "personality": {
                "name": self.personality.name,
                "greeting": self.personality.greeting,
            },
            "quickReplies": list(self.quick_replies),
            "integrations": {
                "playlists": {"enabled": self.integrations.playlists.enabled},
                "twitter": {"enabled": self.integrations.twitter.enabled},
                "blog": {"enabled": self.integrations.blog.enabled},
            },
        }


def merge_config(current: BotConfig, updates: dict[str, Any]) -> BotConfig:
    """Apply a partial camelCase update onto ``current``.

    Nested mappings merge key by key; lists and scalars are replaced
    wholesale. The merged document is validated again, so unknown keys are
    dropped and bad values raise ``pydantic.ValidationError``.

    Args:
        current: Stored configuration.
        updates: Partial document as sent by the dashboard.

    Returns:
        A new, validated :class:`BotConfig`.
    """
    return BotConfig.model_validate(deep_merge(current.to_json_dict(), updates))


def deep_merge(target: dict[str, Any], source: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``source`` into a copy of ``target``."""
    result = dict(target)
    for key, value in source.items():
        if isinstance(value, dict):
            base = result.get(key)
            result[key] = deep_merge(base if isinstance(base, dict) else {}, value)
        else:
            result[key] = value
    return result


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


class ChatTurn(BaseModel):
    """One prior message replayed from the visitor's browser."""

    role: Literal["user", "assistant"]
    content: str


class BlockType(StrEnum):
    """Structured content block kinds the chat page knows how to render."""

    PROJECTS = "projects"
    EDUCATION = "education"
    ARTICLES = "articles"
    EXPERIENCE = "experience"


class BlockItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str
    subtitle: str | None = None
    description: str | None = None
    link: str | None = None
    tags: list[str] = Field(default_factory=list)


class StructuredContentBlock(BaseModel):
    type: BlockType
    items: list[BlockItem] = Field(default_factory=list)
