"""Question generation pipeline.

Top-level handlers for a game's generation job: title, batched questions,
persistence and progress reporting, plus the single-question and
forced-provider admin operations.
"""

import logging
import random
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from .batching import BatchOrchestrator
from .config import Settings
from .error_classifier import ErrorType, classify_exception
from .error_tracking import capture_error
from .exceptions import (
    GameNotFoundError,
    GenerationFailedError,
    NoProvidersAvailableError,
)
from .llm_service import LLMService, create_llm_service
from .logging_config import job_id_context
from .metrics import GenerationMetrics
from .models import GameContext, StoredQuestion, validate_question_batch
from .progress import ProgressTracker
from .prompts import build_single_question_prompt, build_title_prompt, clean_title
from .storage import DocumentStore, ForcedProviderStore, create_document_store

logger = logging.getLogger(__name__)

GAMES_COLLECTION = "games"
QUESTIONS_COLLECTION = "questions"

VALID_PROVIDERS = ["DeepSeek", "OpenAI"]
CLEAR_PROVIDER = "clear"

TIMEOUT_MESSAGE = (
    "Question generation timed out. The AI service is taking too long to "
    "respond. Please try again with fewer questions."
)
CONFIGURATION_MESSAGE = "AI service configuration error"
GENERIC_FAILURE_MESSAGE = "Failed to generate questions"


def shuffle_options(
    options: List[str],
    correct_index: int,
    rng: Any = random,
) -> Tuple[List[str], int]:
    """Shuffle answer options, tracking where the correct one lands.

    Args:
        options: Answer options; not modified
        correct_index: Index of the correct option in ``options``
        rng: Source of ``randrange``; the ``random`` module by default

    Returns:
        Tuple of (shuffled options, new index of the correct option)

    Raises:
        ValueError: If ``options`` is empty or the index is out of range
    """
    if not options:
        raise ValueError("Cannot shuffle an empty option list")
    if not 0 <= correct_index < len(options):
        raise ValueError(
            f"Correct index {correct_index} out of range for {len(options)} options"
        )

    shuffled = list(options)
    new_index = correct_index
    # Fisher-Yates, following the correct option's position through each swap
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randrange(i + 1)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
        if new_index == i:
            new_index = j
        elif new_index == j:
            new_index = i
    return shuffled, new_index


def _user_message(error: BaseException, provider: Optional[str]) -> Tuple[str, str]:
    """User-safe message and error type for a failed job."""
    if isinstance(error, NoProvidersAvailableError):
        return CONFIGURATION_MESSAGE, ErrorType.UNKNOWN.value

    classification = classify_exception(error, provider)
    if classification.error_type in (ErrorType.TIMEOUT, ErrorType.GATEWAY_TIMEOUT):
        return TIMEOUT_MESSAGE, classification.error_type.value
    return classification.user_message, classification.error_type.value


class QuestionGenerationPipeline:
    """Runs generation jobs for games stored in the document store."""

    def __init__(
        self,
        service: LLMService,
        store: DocumentStore,
        orchestrator: BatchOrchestrator,
        batch_size: int = 5,
        default_question_count: int = 5,
        cleanup_delay: float = 30.0,
        rng: Any = random,
    ):
        """
        Args:
            service: LLM service used for every provider call
            store: Document store holding games, questions and progress
            orchestrator: Batch orchestrator sharing ``service`` and ``store``
            batch_size: Questions per provider call
            default_question_count: Used when a game has no questionCount
            cleanup_delay: Seconds before a terminal progress record is deleted
            rng: Randomness source for option shuffling
        """
        self.service = service
        self.store = store
        self.orchestrator = orchestrator
        self.batch_size = batch_size
        self.default_question_count = default_question_count
        self.cleanup_delay = cleanup_delay
        self.rng = rng
        self._cleanup_timers: List[threading.Timer] = []

    def _load_game(self, game_id: str) -> GameContext:
        data = self.store.get(GAMES_COLLECTION, game_id)
        if data is None:
            raise GameNotFoundError(f"Game not found: {game_id}")
        if not data.get("questionCount"):
            data["questionCount"] = self.default_question_count
        return GameContext.model_validate(data)

    def _failed_provider(self, error: BaseException) -> Optional[str]:
        """Provider that raised ``error``, falling back to the last one used."""
        return getattr(error, "provider", None) or self.service.get_last_used_provider()

    def _schedule_cleanup(self, progress: ProgressTracker) -> None:
        self._cleanup_timers.append(progress.schedule_cleanup())

    def wait_for_cleanup(self, timeout: Optional[float] = None) -> None:
        """Block until every scheduled progress cleanup has run.

        Cleanup timers are daemon threads, so a short-lived process must call
        this before exiting or the progress records are never deleted.

        Args:
            timeout: Maximum seconds to wait for each timer; None waits indefinitely
        """
        while self._cleanup_timers:
            self._cleanup_timers.pop(0).join(timeout)

    def _ensure_title(self, game_id: str, context: GameContext, progress: ProgressTracker) -> None:
        if context.game_title:
            return

        logger.info(f"Generating game title for: {context.company_name}")
        progress.generating_title()

        def on_switch(from_provider: str, to_provider: str) -> None:
            logger.info(
                f"Provider switched from {from_provider} to {to_provider} for title generation"
            )

        try:
            title = clean_title(
                self.service.generate_plain_text_with_fallback(
                    build_title_prompt(context), on_switch
                )
            )
            if title:
                self.store.update(
                    GAMES_COLLECTION,
                    game_id,
                    {"gameTitle": title, "modifiedAt": datetime.now(timezone.utc)},
                )
                context.game_title = title
                logger.info(f"Generated game title: {title}")
        except Exception as e:
            # Title is optional; the job carries on without it
            logger.error(f"Failed to generate game title: {e}")

    def generate_game_questions(self, game_id: str) -> List[Dict[str, Any]]:
        """Run the full generation job for a game.

        Args:
            game_id: Game document id; also the progress job id

        Returns:
            The stored question documents, in order

        Raises:
            GameNotFoundError: If the game document does not exist
            GenerationFailedError: If generation failed for any other reason
        """
        token = job_id_context.set(game_id)
        self.orchestrator.metrics.reset()
        progress = ProgressTracker(game_id, self.store, cleanup_delay=self.cleanup_delay)
        try:
            progress.start_generation()
            try:
                context = self._load_game(game_id)
            except GameNotFoundError:
                progress.error("Game not found")
                self._schedule_cleanup(progress)
                raise

            try:
                return self._run_job(game_id, context, progress)
            except Exception as e:
                logger.error(f"Generate questions error for {game_id}: {e}", exc_info=True)
                message, error_type = _user_message(e, self._failed_provider(e))
                progress.error(message)
                capture_error(
                    e,
                    context={"game_id": game_id, "error_type": error_type},
                    tags={"operation": "generate_game_questions"},
                )
                self._schedule_cleanup(progress)
                raise GenerationFailedError(GENERIC_FAILURE_MESSAGE, error_type) from e
        finally:
            job_id_context.reset(token)

    def _run_job(
        self, game_id: str, context: GameContext, progress: ProgressTracker
    ) -> List[Dict[str, Any]]:
        if not any(p.is_available() for p in self.service.providers):
            raise NoProvidersAvailableError("No LLM provider has an API key configured")

        self._ensure_title(game_id, context, progress)

        requested = context.question_count
        generated = self.orchestrator.generate_in_batches(
            game_id, context, requested, self.batch_size, progress=progress
        )
        logger.info(f"Successfully generated {len(generated)} questions")

        progress.saving_questions()
        documents: Dict[str, Dict[str, Any]] = {}
        stored: List[Dict[str, Any]] = []
        for order, question in enumerate(generated, start=1):
            options, correct = shuffle_options(
                question.options, question.correct_answer, self.rng
            )
            record = StoredQuestion(
                id=str(uuid.uuid4()),
                gameId=game_id,
                questionText=question.question_text,
                options=options,
                correctAnswer=correct,
                explanation=question.explanation,
                order=order,
            ).to_dict()
            documents[record["id"]] = record
            stored.append(record)

        self.store.set_many(QUESTIONS_COLLECTION, documents)
        logger.info(f"Saved {len(stored)} questions to database")

        provider = self.service.get_last_used_provider() or "Unknown"
        self.store.update(
            GAMES_COLLECTION,
            game_id,
            {
                "actualQuestionCount": len(stored),
                "modifiedAt": datetime.now(timezone.utc),
                "llm": provider,
            },
        )
        logger.info(
            f"Updated actualQuestionCount to {len(stored)} for game {game_id}, LLM: {provider}"
        )

        outcome = self.orchestrator.last_outcome
        if outcome is not None and outcome.is_partial:
            logger.warning(
                f"Partial generation for {game_id}: {len(stored)} of {requested} "
                f"questions, failed batches {outcome.failed_batches}"
            )
            progress.completed(
                f"Question generation completed with {len(stored)} of {requested} questions"
            )
        else:
            progress.completed()
        self._schedule_cleanup(progress)
        self.orchestrator.metrics.log_summary()
        return stored

    def generate_single_question(self, game_id: str) -> Dict[str, Any]:
        """Generate one additional question for a game, with shuffled options.

        The question is returned, not stored.

        Raises:
            GameNotFoundError: If the game document does not exist
            GenerationFailedError: If the provider call or validation failed
        """
        context = self._load_game(game_id)
        prompt = build_single_question_prompt(context)

        try:
            item = self.service.generate_single_question_with_fallback(prompt)
            question = validate_question_batch([item])[0]
        except Exception as e:
            logger.error(f"Generate single question error for {game_id}: {e}")
            classification = classify_exception(e, self._failed_provider(e))
            raise GenerationFailedError(
                classification.user_message, classification.error_type.value
            ) from e

        options, correct = shuffle_options(
            question.options, question.correct_answer, self.rng
        )
        result = question.to_dict()
        result.update({"options": options, "correctAnswer": correct})
        return result

    def force_llm_provider(self, provider_name: str) -> Dict[str, Any]:
        """Set or clear the forced-provider override.

        Args:
            provider_name: "DeepSeek", "OpenAI", or "clear"

        Returns:
            Dictionary with success flag, message and provider order

        Raises:
            ValueError: If the name is missing or not a supported provider
        """
        if not provider_name:
            raise ValueError("providerName is required")

        if provider_name == CLEAR_PROVIDER:
            self.service.clear_forced_provider()
            return {
                "success": True,
                "message": "Forced provider cleared",
                "providerOrder": self.service.get_provider_order(),
            }

        if provider_name not in VALID_PROVIDERS:
            raise ValueError(
                f"Invalid provider name. Must be one of: {', '.join(VALID_PROVIDERS)}"
            )

        self.service.force_provider(provider_name)
        return {
            "success": True,
            "message": f"Forced provider set to: {provider_name}",
            "providerOrder": self.service.get_provider_order(),
        }


def create_pipeline(
    settings: Settings,
    store: Optional[DocumentStore] = None,
) -> QuestionGenerationPipeline:
    """Factory function to create a configured pipeline instance.

    Args:
        settings: Application settings
        store: Document store; built from ``settings.storage_backend`` if omitted

    Returns:
        Configured QuestionGenerationPipeline instance

    Raises:
        ValueError: If the configured storage backend is unknown
    """
    if store is None:
        store = create_document_store(
            settings.storage_backend, settings.google_cloud_project
        )

    service = create_llm_service(settings, ForcedProviderStore(store))
    orchestrator = BatchOrchestrator(
        service,
        store,
        inter_batch_delay=settings.inter_batch_delay_seconds,
        cleanup_delay=settings.progress_cleanup_delay_seconds,
        metrics=GenerationMetrics(),
    )

    logger.info("Pipeline created successfully")
    return QuestionGenerationPipeline(
        service,
        store,
        orchestrator,
        batch_size=settings.question_batch_size,
        default_question_count=settings.default_question_count,
        cleanup_delay=settings.progress_cleanup_delay_seconds,
    )
