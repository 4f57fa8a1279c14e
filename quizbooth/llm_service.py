"""LLM service with prioritized providers and classified fallback.

Providers are tried in ascending priority. When one fails, the error
classifier decides whether the same provider may be retried, whether the
next provider may be tried, or whether the original error is re-raised.
An operator may pin every call to a single provider through the persisted
forced-provider override, which disables fallback entirely.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

from .config import Settings
from .error_classifier import classify_exception
from .exceptions import (
    ForcedProviderReadError,
    NoProvidersAvailableError,
    ProviderNotFoundError,
    ProviderUnavailableError,
)
from .providers import DeepSeekProvider, OpenAIProvider
from .providers.base import BaseLLMProvider
from .storage import ForcedProviderStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

ProviderSwitchCallback = Callable[[str, str], None]


class LLMService:
    """Routes generation calls across prioritized LLM providers."""

    def __init__(
        self,
        providers: List[BaseLLMProvider],
        forced_provider_store: Optional[ForcedProviderStore] = None,
        max_retries_per_provider: int = 0,
    ):
        """
        Args:
            providers: Provider adapters; sorted by priority here
            forced_provider_store: Persisted override; without it no override applies
            max_retries_per_provider: Extra attempts on the same provider for
                errors classified as retryable
        """
        self.providers: List[BaseLLMProvider] = sorted(providers, key=lambda p: p.priority)
        self.forced_provider_store = forced_provider_store
        self.max_retries_per_provider = max_retries_per_provider
        self.forced_provider: Optional[str] = None
        self.last_used_provider: Optional[str] = None

        logger.info(
            "Initialized LLM providers in priority order: "
            + " -> ".join(p.name for p in self.providers)
        )

    def _load_forced_provider(self) -> Optional[str]:
        """Reload the override from storage; never cached across calls.

        An unreadable store keeps the last known override.
        """
        if self.forced_provider_store is None:
            return self.forced_provider
        try:
            self.forced_provider = self.forced_provider_store.get()
        except ForcedProviderReadError as e:
            logger.error(f"{e}; keeping forced provider: {self.forced_provider}")
            return self.forced_provider
        if self.forced_provider:
            logger.info(f"Loaded forced provider: {self.forced_provider}")
        return self.forced_provider

    def force_provider(self, provider_name: str) -> None:
        """Pin all subsequent calls to one provider."""
        if self.forced_provider_store is not None:
            self.forced_provider_store.set(provider_name)
        self.forced_provider = provider_name
        logger.info(f"Forced provider set to: {provider_name}")

    def clear_forced_provider(self) -> None:
        if self.forced_provider_store is not None:
            self.forced_provider_store.set(None)
        self.forced_provider = None
        logger.info("Forced provider cleared")

    def add_provider(self, provider: BaseLLMProvider) -> None:
        """Register another provider, keeping priority order."""
        self.providers.append(provider)
        self.providers.sort(key=lambda p: p.priority)
        logger.info(f"Added provider {provider.name} with priority {provider.priority}")

    def get_provider_order(self) -> List[str]:
        return [f"{p.name} (priority: {p.priority})" for p in self.providers]

    def get_provider(self, name: str) -> Optional[BaseLLMProvider]:
        return next((p for p in self.providers if p.name == name), None)

    def get_last_used_provider(self) -> Optional[str]:
        return self.last_used_provider

    def generate_questions_with_fallback(
        self,
        prompt: str,
        batch_size: int,
        on_provider_switch: Optional[ProviderSwitchCallback] = None,
    ) -> List[Dict[str, Any]]:
        """Generate a batch of raw question items.

        Args:
            prompt: Generation prompt
            batch_size: Number of questions requested
            on_provider_switch: Called with (from, to) when falling back

        Returns:
            Raw question items from the first provider that succeeded
        """
        return self._run(
            "questions",
            lambda provider: provider.generate_questions(prompt, batch_size),
            on_provider_switch,
        )

    def generate_single_question_with_fallback(
        self,
        prompt: str,
        on_provider_switch: Optional[ProviderSwitchCallback] = None,
    ) -> Dict[str, Any]:
        """Generate one raw question item."""
        return self._run(
            "single question",
            lambda provider: provider.generate_single_question(prompt),
            on_provider_switch,
        )

    def generate_plain_text_with_fallback(
        self,
        prompt: str,
        on_provider_switch: Optional[ProviderSwitchCallback] = None,
    ) -> str:
        """Generate a short plain-text completion."""
        return self._run(
            "plain text",
            lambda provider: provider.generate_plain_text(prompt),
            on_provider_switch,
        )

    def _run(
        self,
        operation: str,
        call: Callable[[BaseLLMProvider], T],
        on_provider_switch: Optional[ProviderSwitchCallback],
    ) -> T:
        forced_name = self._load_forced_provider()
        if forced_name:
            return self._run_forced(forced_name, operation, call)
        return self._run_with_fallback(operation, call, on_provider_switch)

    def _run_forced(
        self,
        forced_name: str,
        operation: str,
        call: Callable[[BaseLLMProvider], T],
    ) -> T:
        provider = self.get_provider(forced_name)
        if provider is None:
            raise ProviderNotFoundError(f"Forced provider '{forced_name}' not found")
        if not provider.is_available():
            raise ProviderUnavailableError(
                f"Forced provider '{forced_name}' is not available"
            )

        logger.info(f"Using forced provider for {operation}: {provider.name}")
        # No fallback for a forced provider: its error propagates as-is
        result = call(provider)
        self.last_used_provider = provider.name
        return result

    def _run_with_fallback(
        self,
        operation: str,
        call: Callable[[BaseLLMProvider], T],
        on_provider_switch: Optional[ProviderSwitchCallback],
    ) -> T:
        index = 0
        while index < len(self.providers):
            provider = self.providers[index]
            if not provider.is_available():
                logger.info(f"Provider {provider.name} is not available, skipping")
                index += 1
                continue

            attempt = 0
            while True:
                try:
                    logger.info(
                        f"Attempting to generate {operation} with {provider.name} "
                        f"(priority: {provider.priority})"
                    )
                    result = call(provider)
                    logger.info(f"Successfully generated {operation} with {provider.name}")
                    self.last_used_provider = provider.name
                    return result
                except Exception as e:
                    classification = classify_exception(e, provider.name)
                    logger.error(
                        f"Provider {provider.name} failed for {operation}: {e} "
                        f"({classification.error_type.value})",
                        extra={
                            "provider": provider.name,
                            "error_type": classification.error_type.value,
                        },
                    )
                    if (
                        classification.should_retry
                        and attempt < self.max_retries_per_provider
                    ):
                        attempt += 1
                        logger.info(
                            f"Retrying {provider.name} "
                            f"(attempt {attempt + 1}/{self.max_retries_per_provider + 1})"
                        )
                        continue

                    next_provider = self._next_available(index + 1)
                    if classification.fallback_possible and next_provider is not None:
                        logger.warning(
                            f"Falling back to {next_provider.name} "
                            f"(priority: {next_provider.priority}) due to error: "
                            f"{classification.error_type.value}",
                            extra={"provider": next_provider.name},
                        )
                        if on_provider_switch is not None:
                            on_provider_switch(provider.name, next_provider.name)
                        index = self.providers.index(next_provider)
                        break
                    raise

        raise NoProvidersAvailableError(
            f"No LLM providers available for {operation} generation"
        )

    def _next_available(self, start: int) -> Optional[BaseLLMProvider]:
        for provider in self.providers[start:]:
            if provider.is_available():
                return provider
        return None


def create_llm_service(
    settings: Settings,
    forced_provider_store: Optional[ForcedProviderStore] = None,
) -> LLMService:
    """Build the service with the supported providers (DeepSeek, then OpenAI).

    Args:
        settings: Application settings (API keys, models, timeout, retries)
        forced_provider_store: Persisted override shared with the admin operation

    Returns:
        A configured LLMService
    """
    timeout = settings.llm_request_timeout_seconds
    return LLMService(
        providers=[
            DeepSeekProvider(
                api_key=settings.deepseek_api_key,
                model=settings.deepseek_model,
                timeout=timeout,
            ),
            OpenAIProvider(
                api_key=settings.openai_api_key,
                model=settings.openai_model,
                timeout=timeout,
            ),
        ],
        forced_provider_store=forced_provider_store,
        max_retries_per_provider=settings.max_retries_per_provider,
    )
