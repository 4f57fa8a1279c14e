"""DeepSeek LLM provider integration.

The DeepSeek API is OpenAI-compatible, so the provider uses the OpenAI SDK
with the DeepSeek base URL.
"""

from .base import BaseLLMProvider


class DeepSeekProvider(BaseLLMProvider):
    """DeepSeek chat-completions integration. Preferred provider."""

    name = "DeepSeek"
    priority = 1
    api_key_env = "DEEPSEEK_API_KEY"
    base_url = "https://api.deepseek.com/v1"
    default_model = "deepseek-chat"
