"""Error classification for LLM API failures.

Maps a vendor's HTTP status code and response body to a normalized
classification that tells the LLM service whether to retry the same
provider, fall back to the next one, or give up. Every vendor-specific
substring lives in the lookup tables below so that wording changes on the
vendor side only touch data, never control flow.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

import openai

from .exceptions import (
    InvalidResponseError,
    ProviderConnectionError,
    ProviderTimeoutError,
)

logger = logging.getLogger(__name__)


class ErrorType(str, Enum):
    """Categories of LLM provider errors."""

    BAD_REQUEST = "bad_request"
    INVALID_FORMAT = "invalid_format"
    INVALID_PARAMETERS = "invalid_parameters"
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    INVALID_API_KEY = "invalid_api_key"
    ORGANIZATION_REQUIRED = "organization_required"
    IP_NOT_AUTHORIZED = "ip_not_authorized"
    NOT_FOUND = "not_found"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    QUOTA_EXCEEDED = "quota_exceeded"
    RATE_LIMIT = "rate_limit"
    SERVICE_OVERLOADED = "service_overloaded"
    SERVICE_UNAVAILABLE = "service_unavailable"
    SERVER_ERROR = "server_error"
    TIMEOUT = "timeout"
    GATEWAY_TIMEOUT = "gateway_timeout"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    REGION_NOT_SUPPORTED = "region_not_supported"
    ACCESS_DENIED = "access_denied"
    NETWORK = "network"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ErrorClassification:
    """Normalized verdict for a provider failure."""

    user_message: str
    should_retry: bool
    error_type: ErrorType
    fallback_possible: bool

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/serialization."""
        return {
            "user_message": self.user_message,
            "should_retry": self.should_retry,
            "error_type": self.error_type.value,
            "fallback_possible": self.fallback_possible,
        }


def _verdict(
    message: str, error_type: ErrorType, retry: bool, fallback: bool
) -> ErrorClassification:
    return ErrorClassification(
        user_message=message,
        should_retry=retry,
        error_type=error_type,
        fallback_possible=fallback,
    )


# A status rule is the default verdict for the status plus an ordered list of
# (body substring, verdict) refinements. The first matching substring wins.
StatusRule = Tuple[ErrorClassification, List[Tuple[str, ErrorClassification]]]

DEEPSEEK_RULES: Dict[int, StatusRule] = {
    400: (
        _verdict(
            "Invalid request format. Please check your input and try again.",
            ErrorType.BAD_REQUEST, retry=False, fallback=True,
        ),
        [
            ("Invalid Format", _verdict(
                "DeepSeek request format is invalid. Please check your input and try again.",
                ErrorType.INVALID_FORMAT, retry=False, fallback=True,
            )),
        ],
    ),
    401: (
        _verdict(
            "DeepSeek authentication failed. Please check your API configuration.",
            ErrorType.AUTHENTICATION, retry=False, fallback=False,
        ),
        [
            ("Authentication Fails", _verdict(
                "DeepSeek API key is invalid. Please check your API key configuration.",
                ErrorType.INVALID_API_KEY, retry=False, fallback=False,
            )),
        ],
    ),
    402: (
        _verdict(
            "DeepSeek account balance is insufficient. Please add funds to your account.",
            ErrorType.INSUFFICIENT_BALANCE, retry=False, fallback=True,
        ),
        [],
    ),
    422: (
        _verdict(
            "Invalid content format for DeepSeek. Please adjust your company "
            "information and try again.",
            ErrorType.VALIDATION, retry=False, fallback=True,
        ),
        [
            ("Invalid Parameters", _verdict(
                "DeepSeek request contains invalid parameters. Please adjust your "
                "settings and try again.",
                ErrorType.INVALID_PARAMETERS, retry=False, fallback=True,
            )),
        ],
    ),
    429: (
        _verdict(
            "DeepSeek is temporarily overloaded. Please try again in a few moments.",
            ErrorType.RATE_LIMIT, retry=True, fallback=True,
        ),
        [
            ("Rate Limit Reached", _verdict(
                "DeepSeek rate limit reached. Please try again in a few moments.",
                ErrorType.RATE_LIMIT, retry=True, fallback=True,
            )),
        ],
    ),
    500: (
        _verdict(
            "DeepSeek server error. Please try again later.",
            ErrorType.SERVER_ERROR, retry=True, fallback=True,
        ),
        [
            ("Server Error", _verdict(
                "DeepSeek is experiencing technical difficulties. Please try again later.",
                ErrorType.SERVER_ERROR, retry=True, fallback=True,
            )),
        ],
    ),
    503: (
        _verdict(
            "DeepSeek is temporarily unavailable. Please try again in a few minutes.",
            ErrorType.SERVICE_UNAVAILABLE, retry=True, fallback=True,
        ),
        [
            ("Server Overloaded", _verdict(
                "DeepSeek is currently overloaded. Please try again in a few minutes.",
                ErrorType.SERVICE_OVERLOADED, retry=True, fallback=True,
            )),
        ],
    ),
}

_OPENAI_OVERLOADED = _verdict(
    "OpenAI is currently overloaded. Please reduce your request rate and try again later.",
    ErrorType.SERVICE_OVERLOADED, retry=True, fallback=True,
)
_OPENAI_UNAVAILABLE = _verdict(
    "OpenAI is temporarily unavailable. Please try again in a few minutes.",
    ErrorType.SERVICE_UNAVAILABLE, retry=True, fallback=True,
)
_OPENAI_INVALID_KEY = _verdict(
    "OpenAI API key is invalid. Please check your API key configuration.",
    ErrorType.INVALID_API_KEY, retry=False, fallback=False,
)

OPENAI_RULES: Dict[int, StatusRule] = {
    400: (
        _verdict(
            "Invalid request format. Please check your input and try again.",
            ErrorType.BAD_REQUEST, retry=False, fallback=True,
        ),
        [],
    ),
    401: (
        _verdict(
            "OpenAI authentication failed. Please check your API configuration.",
            ErrorType.AUTHENTICATION, retry=False, fallback=False,
        ),
        [
            ("Invalid Authentication", _OPENAI_INVALID_KEY),
            ("Incorrect API key provided", _OPENAI_INVALID_KEY),
            ("You must be a member of an organization", _verdict(
                "OpenAI organization access required. Please contact support.",
                ErrorType.ORGANIZATION_REQUIRED, retry=False, fallback=False,
            )),
            ("IP not authorized", _verdict(
                "Your IP address is not authorized for OpenAI API access.",
                ErrorType.IP_NOT_AUTHORIZED, retry=False, fallback=False,
            )),
        ],
    ),
    403: (
        _verdict(
            "OpenAI access denied. Please check your permissions.",
            ErrorType.ACCESS_DENIED, retry=False, fallback=True,
        ),
        [
            ("Country, region, or territory not supported", _verdict(
                "OpenAI API is not available in your region. Please try a different "
                "AI provider.",
                ErrorType.REGION_NOT_SUPPORTED, retry=False, fallback=True,
            )),
        ],
    ),
    408: (
        _verdict(
            "OpenAI request timed out. Please try again with fewer questions.",
            ErrorType.TIMEOUT, retry=True, fallback=True,
        ),
        [],
    ),
    413: (
        _verdict(
            "Request too large for OpenAI. Please reduce the number of questions "
            "or simplify your prompt.",
            ErrorType.PAYLOAD_TOO_LARGE, retry=False, fallback=False,
        ),
        [],
    ),
    422: (
        _verdict(
            "Invalid content format for OpenAI. Please adjust your company "
            "information and try again.",
            ErrorType.VALIDATION, retry=False, fallback=True,
        ),
        [],
    ),
    429: (
        _verdict(
            "OpenAI is temporarily overloaded. Please try again in a few moments.",
            ErrorType.RATE_LIMIT, retry=True, fallback=True,
        ),
        [
            ("Rate limit reached for requests", _verdict(
                "OpenAI rate limit reached. Please try again in a few moments.",
                ErrorType.RATE_LIMIT, retry=True, fallback=True,
            )),
            ("You exceeded your current quota", _verdict(
                "OpenAI quota exceeded. Please check your billing and plan details.",
                ErrorType.QUOTA_EXCEEDED, retry=False, fallback=False,
            )),
        ],
    ),
    500: (
        _verdict(
            "OpenAI is experiencing technical difficulties. Please try again later.",
            ErrorType.SERVER_ERROR, retry=True, fallback=True,
        ),
        [],
    ),
    502: (
        _OPENAI_UNAVAILABLE,
        [
            ("The engine is currently overloaded", _OPENAI_OVERLOADED),
            ("Slow Down", _OPENAI_OVERLOADED),
        ],
    ),
    503: (
        _OPENAI_UNAVAILABLE,
        [
            ("The engine is currently overloaded", _OPENAI_OVERLOADED),
            ("Slow Down", _OPENAI_OVERLOADED),
        ],
    ),
    504: (
        _verdict(
            "OpenAI gateway timeout. Please try again with fewer questions.",
            ErrorType.GATEWAY_TIMEOUT, retry=True, fallback=True,
        ),
        [],
    ),
}

_GENERIC_AUTH = _verdict(
    "AI service authentication failed. Please contact support.",
    ErrorType.AUTHENTICATION, retry=False, fallback=False,
)
_GENERIC_UNAVAILABLE = _verdict(
    "AI service is temporarily unavailable. Please try again in a few minutes.",
    ErrorType.SERVICE_UNAVAILABLE, retry=True, fallback=True,
)

GENERIC_RULES: Dict[int, StatusRule] = {
    400: (
        _verdict(
            "Invalid request format. Please check your input and try again.",
            ErrorType.BAD_REQUEST, retry=False, fallback=True,
        ),
        [],
    ),
    401: (_GENERIC_AUTH, []),
    403: (_GENERIC_AUTH, []),
    404: (
        _verdict(
            "AI service endpoint not found. Please contact support.",
            ErrorType.NOT_FOUND, retry=False, fallback=False,
        ),
        [],
    ),
    408: (
        _verdict(
            "AI service request timed out. Please try again with fewer questions.",
            ErrorType.TIMEOUT, retry=True, fallback=True,
        ),
        [],
    ),
    413: (
        _verdict(
            "Request too large. Please reduce the number of questions or simplify "
            "your prompt.",
            ErrorType.PAYLOAD_TOO_LARGE, retry=False, fallback=False,
        ),
        [],
    ),
    422: (
        _verdict(
            "Invalid content format. Please adjust your company information and "
            "try again.",
            ErrorType.VALIDATION, retry=False, fallback=True,
        ),
        [],
    ),
    429: (
        _verdict(
            "AI service is temporarily overloaded. Please try again in a few moments.",
            ErrorType.RATE_LIMIT, retry=True, fallback=True,
        ),
        [],
    ),
    500: (
        _verdict(
            "AI service is experiencing technical difficulties. Please try again later.",
            ErrorType.SERVER_ERROR, retry=True, fallback=True,
        ),
        [],
    ),
    502: (_GENERIC_UNAVAILABLE, []),
    503: (_GENERIC_UNAVAILABLE, []),
    504: (_GENERIC_UNAVAILABLE, []),
}

PROVIDER_RULES: Dict[str, Dict[int, StatusRule]] = {
    "DeepSeek": DEEPSEEK_RULES,
    "OpenAI": OPENAI_RULES,
}

# Provider label used in the fallback message for statuses no table covers
_UNKNOWN_MESSAGES: Dict[str, str] = {
    "DeepSeek": "An unexpected error occurred with DeepSeek. Please try again.",
    "OpenAI": "An unexpected error occurred with OpenAI. Please try again.",
}

# Message fragments for errors that never produced an HTTP response
TIMEOUT_PATTERNS = ["AbortError", "timeout", "timed out", "deadline"]
NETWORK_PATTERNS = [
    "fetch",
    "network",
    "ECONNREFUSED",
    "ENOTFOUND",
    "ETIMEDOUT",
    "ECONNRESET",
    "connection",
]

NETWORK_ERROR = _verdict(
    "Network connection issue. Please check your internet connection and try again.",
    ErrorType.NETWORK, retry=True, fallback=True,
)
TIMEOUT_ERROR = _verdict(
    "AI service request timed out. Please try again with fewer questions.",
    ErrorType.TIMEOUT, retry=True, fallback=True,
)
UNEXPECTED_ERROR = _verdict(
    "An unexpected error occurred with the AI service. Please try again.",
    ErrorType.UNKNOWN, retry=False, fallback=True,
)


def classify_llm_error(
    status: int, body_text: str, provider_name: str
) -> ErrorClassification:
    """Classify an HTTP error response from an LLM provider.

    Args:
        status: HTTP status code
        body_text: Error response text, matched against vendor phrases
        provider_name: Provider name (DeepSeek, OpenAI); unrecognized names
            use the generic table

    Returns:
        ErrorClassification with user message and retry/fallback flags
    """
    rules = PROVIDER_RULES.get(provider_name, GENERIC_RULES)
    rule = rules.get(status)
    if rule is None:
        return _verdict(
            _UNKNOWN_MESSAGES.get(
                provider_name, "An unexpected error occurred. Please try again."
            ),
            ErrorType.UNKNOWN,
            retry=status >= 500,
            fallback=True,
        )

    default, refinements = rule
    body_text = body_text or ""
    for fragment, classification in refinements:
        if fragment in body_text:
            return classification
    return default


def _matches_any(text: str, patterns: List[str]) -> bool:
    lowered = text.lower()
    return any(pattern.lower() in lowered for pattern in patterns)


def classify_exception(
    error: BaseException, provider_name: Optional[str] = None
) -> ErrorClassification:
    """Classify any exception raised while calling an LLM provider.

    Errors carrying an HTTP status are classified by status and body.
    Errors without a response are matched on type and message.

    Args:
        error: The exception that was raised
        provider_name: Provider that raised it

    Returns:
        ErrorClassification for the failure
    """
    status = getattr(error, "status", None)
    if status is None:
        status = getattr(error, "status_code", None)
    if isinstance(status, int):
        body = getattr(error, "body", None)
        body_text = body if isinstance(body, str) and body else str(error)
        return classify_llm_error(status, body_text, provider_name or "")

    if isinstance(error, InvalidResponseError):
        return UNEXPECTED_ERROR

    error_text = f"{type(error).__name__}: {error}"
    timeout_types = (ProviderTimeoutError, TimeoutError, openai.APITimeoutError)
    network_types = (
        ProviderConnectionError,
        ConnectionError,
        openai.APIConnectionError,
    )

    # APITimeoutError subclasses APIConnectionError, so timeouts go first
    if isinstance(error, timeout_types) or _matches_any(error_text, TIMEOUT_PATTERNS):
        return TIMEOUT_ERROR
    if isinstance(error, network_types) or _matches_any(error_text, NETWORK_PATTERNS):
        return NETWORK_ERROR

    logger.debug(f"Unclassified error from {provider_name}: {error_text[:200]}")
    return UNEXPECTED_ERROR
