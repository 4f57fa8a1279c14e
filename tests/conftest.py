"""Pytest configuration and shared fixtures for question generation tests."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from unittest.mock import Mock

import pytest

from quizbooth.models import GameContext
from quizbooth.storage import InMemoryDocumentStore


FIXED_TIME = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def mock_deepseek_api_key() -> str:
    """Fixture providing a mock DeepSeek API key for testing."""
    return "sk-test-deepseek-key-12345"


@pytest.fixture
def mock_openai_api_key() -> str:
    """Fixture providing a mock OpenAI API key for testing."""
    return "sk-test-mock-api-key-12345"


@pytest.fixture
def sample_prompt() -> str:
    """Fixture providing a sample prompt for testing."""
    return "Generate exactly 2 multiple choice trivia questions about coffee."


@pytest.fixture
def fixed_clock():
    """Clock returning a constant timestamp."""
    return lambda: FIXED_TIME


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def game_data() -> Dict[str, Any]:
    """Game document as stored in the games collection."""
    return {
        "companyName": "Acme Roasters",
        "industry": "Coffee",
        "productDescription": "Specialty coffee beans",
        "difficulty": "medium",
        "categories": ["Company Facts", "Fun Facts"],
        "questionCount": 5,
        "userId": "user-1",
    }


@pytest.fixture
def game_context(game_data) -> GameContext:
    return GameContext.model_validate(game_data)


def _question(n: int = 1, correct: int = 0) -> Dict[str, Any]:
    return {
        "questionText": f"Question {n}?",
        "options": [f"A{n}", f"B{n}", f"C{n}", f"D{n}"],
        "correctAnswer": correct,
        "explanation": f"Because {n}",
    }


def _questions(count: int, start: int = 1) -> List[Dict[str, Any]]:
    return [_question(start + i) for i in range(count)]


@pytest.fixture
def make_question():
    """Factory for a raw question item as returned by a provider."""
    return _question


@pytest.fixture
def make_questions():
    """Factory for a list of distinct raw question items."""
    return _questions


@pytest.fixture
def make_provider():
    """Factory for mock provider adapters with a given identity and behavior."""

    def _make(
        name: str,
        priority: int,
        available: bool = True,
        questions: Optional[List[Dict[str, Any]]] = None,
        error: Optional[BaseException] = None,
    ) -> Mock:
        provider = Mock()
        provider.name = name
        provider.priority = priority
        provider.is_available.return_value = available
        if error is not None:
            provider.generate_questions.side_effect = error
            provider.generate_single_question.side_effect = error
            provider.generate_plain_text.side_effect = error
        else:
            provider.generate_questions.return_value = questions or _questions(1)
            provider.generate_single_question.return_value = _question()
            provider.generate_plain_text.return_value = f"{name} text"
        return provider

    return _make
