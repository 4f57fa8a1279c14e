"""OpenAI LLM provider integration."""

from typing import Any, Dict

from .base import BaseLLMProvider

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2048
DEFAULT_TOP_P = 1.0
DEFAULT_FREQUENCY_PENALTY = 0.0
DEFAULT_PRESENCE_PENALTY = 0.0


class OpenAIProvider(BaseLLMProvider):
    """OpenAI API integration, used as fallback after DeepSeek."""

    name = "OpenAI"
    priority = 2
    api_key_env = "OPENAI_API_KEY"
    base_url = "https://api.openai.com/v1"
    default_model = "gpt-4o-mini"

    def structured_request_params(self) -> Dict[str, Any]:
        """Sampling parameters sent with JSON question requests."""
        return {
            "temperature": DEFAULT_TEMPERATURE,
            "max_tokens": DEFAULT_MAX_TOKENS,
            "top_p": DEFAULT_TOP_P,
            "frequency_penalty": DEFAULT_FREQUENCY_PENALTY,
            "presence_penalty": DEFAULT_PRESENCE_PENALTY,
        }
