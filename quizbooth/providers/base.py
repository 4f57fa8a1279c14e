"""Base class for LLM providers.

Every supported vendor exposes an OpenAI-compatible chat-completions
endpoint, so the transport lives here and concrete providers only declare
their identity, endpoint, default model and credential variable.
"""

import json
import logging
import os
from abc import ABC
from typing import Any, Dict, List, Optional

import httpx
import openai
from openai import OpenAI

from ..exceptions import (
    InvalidResponseError,
    LLMProviderError,
    ProviderConnectionError,
    ProviderHTTPError,
    ProviderTimeoutError,
    UnexpectedResponseShapeError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
PLAIN_TEXT_MAX_TOKENS = 100
PLAIN_TEXT_TEMPERATURE = 0.7


def normalize_question_payload(payload: Any, provider: str) -> List[Dict[str, Any]]:
    """Normalize a parsed JSON payload into a list of raw question items.

    Exactly three shapes are accepted:

    - a bare array of question objects
    - an object with a ``questions`` array
    - a single question object (``questionText`` or ``question`` present),
      returned as a one-element list

    Args:
        payload: Parsed JSON content from the completion
        provider: Provider name, used in the error message

    Returns:
        List of raw question dictionaries

    Raises:
        UnexpectedResponseShapeError: For any other shape
    """
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        if isinstance(payload.get("questions"), list):
            return payload["questions"]
        if payload.get("questionText") or payload.get("question"):
            return [payload]
    raise UnexpectedResponseShapeError(
        f"Unexpected response format from {provider}: {json.dumps(payload)[:200]}",
        provider=provider,
    )


def _error_body(error: openai.APIStatusError) -> str:
    try:
        text = error.response.text
    except httpx.ResponseNotRead:
        text = ""
    return text or error.message


class BaseLLMProvider(ABC):
    """Abstract base class for OpenAI-compatible LLM provider integrations.

    Subclasses set ``name``, ``priority`` (lower is tried first),
    ``api_key_env``, ``base_url`` and ``default_model``.
    """

    name: str = ""
    priority: int = 999
    api_key_env: str = ""
    base_url: str = ""
    default_model: str = ""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[OpenAI] = None,
    ):
        """
        Initialize the LLM provider.

        Args:
            api_key: API key; read from ``api_key_env`` on every use if omitted
            model: Model identifier (defaults to the vendor default)
            timeout: Request timeout in seconds
            client: Pre-built client, mainly for tests
        """
        self._api_key = api_key
        self.model = model or self.default_model
        self.timeout = timeout
        self._client = client

    def get_api_key(self) -> Optional[str]:
        """Return the configured API key, if any."""
        return self._api_key or os.environ.get(self.api_key_env) or None

    def is_available(self) -> bool:
        """Whether the provider's API credential is present."""
        return bool(self.get_api_key())

    @property
    def client(self) -> OpenAI:
        """Lazily built OpenAI SDK client pointed at the vendor base URL."""
        if self._client is None:
            api_key = self.get_api_key()
            if not api_key:
                raise LLMProviderError(
                    f"{self.name} API key not configured", provider=self.name
                )
            # SDK retries are off: retry and fallback belong to the LLM service
            self._client = OpenAI(
                api_key=api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    def structured_request_params(self) -> Dict[str, Any]:
        """Extra vendor parameters for structured (JSON) requests."""
        return {}

    def generate_questions(self, prompt: str, batch_size: int) -> List[Dict[str, Any]]:
        """
        Generate a batch of questions as raw dictionaries.

        Args:
            prompt: Full generation prompt (already states the question count)
            batch_size: Number of questions requested

        Returns:
            Raw question items in one of the accepted shapes, normalized to a list

        Raises:
            LLMProviderError: On HTTP, transport or parse failure
        """
        logger.debug(f"Requesting {batch_size} questions from {self.name} ({self.model})")
        content = self._complete(
            prompt,
            response_format={"type": "json_object"},
            **self.structured_request_params(),
        )
        try:
            payload = json.loads(content)
        except json.JSONDecodeError as e:
            raise InvalidResponseError(
                f"Invalid JSON response from {self.name} API: {e}", provider=self.name
            ) from e

        items = normalize_question_payload(payload, self.name)
        if len(items) != batch_size:
            logger.warning(
                f"{self.name} returned {len(items)} questions, {batch_size} requested"
            )
        return items

    def generate_single_question(self, prompt: str) -> Dict[str, Any]:
        """Generate one question as a raw dictionary."""
        items = self.generate_questions(prompt, 1)
        if not items:
            raise UnexpectedResponseShapeError(
                f"{self.name} returned no question", provider=self.name
            )
        return items[0]

    def generate_plain_text(self, prompt: str) -> str:
        """
        Generate a short free-text completion (used for game titles).

        Args:
            prompt: The prompt to send to the model

        Returns:
            The trimmed completion text
        """
        content = self._complete(
            prompt,
            max_tokens=PLAIN_TEXT_MAX_TOKENS,
            temperature=PLAIN_TEXT_TEMPERATURE,
        )
        return content.strip()

    def _complete(self, prompt: str, **params: Any) -> str:
        """Issue one chat-completions request and return the message content."""
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                **params,
            )
        except openai.APITimeoutError as e:
            raise ProviderTimeoutError(
                f"{self.name} request timed out after {self.timeout:.0f}s",
                provider=self.name,
            ) from e
        except openai.APIConnectionError as e:
            raise ProviderConnectionError(
                f"{self.name} connection error: {e}", provider=self.name
            ) from e
        except openai.APIStatusError as e:
            raise ProviderHTTPError(
                f"{self.name} API error: {e.status_code}",
                provider=self.name,
                status=e.status_code,
                body=_error_body(e),
            ) from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise InvalidResponseError(
                f"No content received from {self.name} API", provider=self.name
            )
        return content

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model={self.model!r}, priority={self.priority})"
