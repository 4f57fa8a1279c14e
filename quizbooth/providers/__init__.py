"""LLM provider integrations."""

from .base import BaseLLMProvider, normalize_question_payload
from .deepseek_provider import DeepSeekProvider
from .openai_provider import OpenAIProvider

__all__ = [
    "BaseLLMProvider",
    "DeepSeekProvider",
    "OpenAIProvider",
    "normalize_question_payload",
]
