"""Exception hierarchy for the question generation core."""

from typing import Optional


class LLMProviderError(Exception):
    """Base exception raised by LLM provider adapters.

    Attributes:
        provider: Name of the provider that raised the error
        status: HTTP status code, when the vendor produced a response
        body: Raw response body text, when available
    """

    def __init__(
        self,
        message: str,
        provider: str,
        status: Optional[int] = None,
        body: str = "",
    ):
        """Initialize provider error.

        Args:
            message: Human-readable error message
            provider: Provider name (DeepSeek, OpenAI)
            status: HTTP status code if the request reached the vendor
            body: Response body text used for error sub-classification
        """
        self.provider = provider
        self.status = status
        self.body = body
        super().__init__(message)


class ProviderHTTPError(LLMProviderError):
    """The vendor answered with a non-2xx status code."""


class ProviderTimeoutError(LLMProviderError):
    """The request exceeded the adapter's timeout."""


class ProviderConnectionError(LLMProviderError):
    """The request never reached the vendor (DNS, refused, reset)."""


class InvalidResponseError(LLMProviderError):
    """The vendor returned empty content or content that is not valid JSON."""


class UnexpectedResponseShapeError(InvalidResponseError):
    """The JSON payload matched none of the accepted question shapes."""


class ProviderNotFoundError(Exception):
    """A provider name does not match any registered adapter."""


class ProviderUnavailableError(Exception):
    """A provider was requested explicitly but its credential is missing."""


class NoProvidersAvailableError(Exception):
    """No registered provider could be attempted."""


class ForcedProviderReadError(Exception):
    """The persisted forced-provider override could not be read."""


class InvalidQuestionError(ValueError):
    """A generated question violates the question invariants."""


class GameNotFoundError(LookupError):
    """The game document requested for generation does not exist."""


class GenerationFailedError(Exception):
    """A generation job failed; carries only user-safe information.

    Attributes:
        user_message: Message safe to show to end users
        error_type: Classifier category of the underlying failure
    """

    def __init__(self, user_message: str, error_type: str = "unknown"):
        self.user_message = user_message
        self.error_type = error_type
        super().__init__(user_message)
