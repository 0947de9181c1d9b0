"""tests/conftest.py

Pytest configuration and shared fixtures for the cvbot test suite.
"""

from __future__ import annotations

# Standard Library
from pathlib import Path
from typing import Any
from unittest.mock import Mock

# Third-Party Libraries
import pytest

# Local Modules
from cvbot.models import BotConfig, Profile
from cvbot.orchestrator import ModelOrchestrator
from cvbot.store import DataStore


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def profile_data() -> dict[str, Any]:
    """Stored-format (camelCase) profile document."""
    return {
        "name": "Ada Lovelace",
        "title": "Analytical Engineer",
        "bio": "I write programs for engines that do not exist yet.",
        "tagline": "Poetical science.",
        "location": "London",
        "email": "ada@example.com",
        "social": {"github": "https://github.com/ada", "linkedin": "https://linkedin.com/in/ada"},
        "skills": [
            {"name": "Python", "category": "Languages", "level": 90},
            {"name": "FastAPI", "category": "Frameworks", "level": 80},
            {"name": "Rust", "category": "Languages", "level": 60},
            {"name": "Mentoring"},
        ],
        "experience": [
            {"company": "Engine Co", "role": "Lead", "period": "1843-1850", "description": "Notes.",
             "highlights": ["Wrote the first algorithm"]},
            {"company": "Babbage Ltd", "role": "Analyst", "period": "1840-1843", "description": "Tables."},
            {"company": "Royal Society", "role": "Fellow", "period": "1835-1840", "description": "Talks."},
            {"company": "Home", "role": "Student", "period": "1830-1835", "description": "Maths."},
        ],
        "education": [
            {"institution": "Private tutors", "degree": "Mathematics", "period": "1820-1835"},
        ],
        "projects": [
            {"name": "Note G", "description": "Bernoulli numbers", "technologies": ["Engine"],
             "link": "https://example.com/note-g", "featured": True},
        ],
        "certifications": ["Royal Society Fellow"],
        "languages": [{"name": "English", "proficiency": "Native"}, "French"],
        "interests": ["Horses"],
        "funFacts": None,
    }


@pytest.fixture
def profile(profile_data: dict[str, Any]) -> Profile:
    return Profile.model_validate(profile_data)


@pytest.fixture
def bot_config() -> BotConfig:
    return BotConfig.model_validate(
        {
            "personality": {"name": "AdaBot", "tone": "witty", "greeting": "Hi, I'm AdaBot!"},
            "systemPrompt": "Mention the Analytical Engine when relevant.",
            "quickReplies": ["What are your skills?", "How can I contact you?"],
            "blockedTopics": ["politics"],
        }
    )


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def store(data_dir: Path, profile: Profile, bot_config: BotConfig) -> DataStore:
    """File store pre-seeded with the sample profile and config, cache off."""
    data_store = DataStore(data_dir, cache_ttl=0)
    data_store.write_profile(profile)
    data_store.write_bot_config(bot_config)
    return data_store


@pytest.fixture
def mock_model_client() -> Mock:
    """Model service client whose every call succeeds."""
    client = Mock()
    client.generate.return_value = "This is a test response from the mock model."
    return client


@pytest.fixture
def orchestrator(mock_model_client: Mock) -> ModelOrchestrator:
    return ModelOrchestrator(
        ["model-a", "model-b", "model-c"], client_factory=Mock(return_value=mock_model_client)
    )


@pytest.fixture
def sample_messages() -> list[dict[str, str]]:
    """Sample replayed chat history."""
    return [
        {"role": "user", "content": "Hello!"},
        {"role": "assistant", "content": "Hi there! How can I help you?"},
        {"role": "user", "content": "What does Ada do?"},
        {"role": "assistant", "content": "Ada writes programs for the Analytical Engine."},
    ]
