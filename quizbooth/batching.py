"""Batched question generation.

Large requests are split into fixed-size batches so that each provider call
stays well within the serverless time limit. Batches run strictly in
order with a short pause between them, and a failed batch only aborts the
job when nothing has been generated yet.
"""

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .llm_service import LLMService
from .metrics import GenerationMetrics
from .models import GameContext, GeneratedQuestion, validate_question_batch
from .progress import ProgressTracker
from .prompts import build_batch_prompt
from .storage import DocumentStore

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5
DEFAULT_INTER_BATCH_DELAY_SECONDS = 1.0


@dataclass
class BatchOutcome:
    """Summary of one batched generation run."""

    requested: int
    batch_sizes: List[int]
    generated: int = 0
    failed_batches: List[int] = field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return self.generated < self.requested


def plan_batches(total_count: int, batch_size: int) -> List[int]:
    """Sizes of the batches needed to produce ``total_count`` items."""
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    batches = math.ceil(max(total_count, 0) / batch_size)
    return [min(batch_size, total_count - i * batch_size) for i in range(batches)]


class BatchOrchestrator:
    """Generates questions in sequential batches through the LLM service."""

    def __init__(
        self,
        llm_service: LLMService,
        store: DocumentStore,
        inter_batch_delay: float = DEFAULT_INTER_BATCH_DELAY_SECONDS,
        cleanup_delay: float = 30.0,
        metrics: Optional[GenerationMetrics] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.llm_service = llm_service
        self.store = store
        self.inter_batch_delay = inter_batch_delay
        self.cleanup_delay = cleanup_delay
        self.metrics = metrics or GenerationMetrics()
        self._sleep = sleep
        self.last_outcome: Optional[BatchOutcome] = None

    def generate_in_batches(
        self,
        job_id: str,
        context: GameContext,
        total_count: int,
        batch_size: int = DEFAULT_BATCH_SIZE,
        progress: Optional[ProgressTracker] = None,
    ) -> List[GeneratedQuestion]:
        """Generate ``total_count`` questions in batches of ``batch_size``.

        Args:
            job_id: Generation job identifier (game id)
            context: Game metadata used to build prompts
            total_count: Number of questions requested
            batch_size: Maximum questions per provider call
            progress: Tracker for the job; created for ``job_id`` if omitted

        Returns:
            Validated questions from every successful batch, in batch order.
            Fewer than requested when a later batch failed.

        Raises:
            Exception: The first batch's error when no batch has succeeded yet
        """
        if progress is None:
            progress = ProgressTracker(job_id, self.store, cleanup_delay=self.cleanup_delay)

        sizes = plan_batches(total_count, batch_size)
        outcome = BatchOutcome(requested=total_count, batch_sizes=sizes)
        self.last_outcome = outcome
        all_questions: List[GeneratedQuestion] = []

        logger.info(
            f"Generating {total_count} questions in {len(sizes)} batches "
            f"of {batch_size} questions each"
        )

        for index, current_size in enumerate(sizes):
            batch_number = index + 1
            progress.generating_questions(
                total_count,
                len(all_questions),
                current_batch=batch_number,
                total_batches=len(sizes),
            )
            self.metrics.record_batch_started(current_size)

            try:
                questions = self._generate_batch(context, current_size, batch_number, len(sizes))
            except Exception as e:
                logger.error(
                    f"Batch {batch_number}/{len(sizes)} failed: {e}",
                    extra={"batch": batch_number, "provider": getattr(e, "provider", None)},
                )
                self.metrics.record_batch_failed(e)
                outcome.failed_batches.append(batch_number)
                if not all_questions:
                    raise
                logger.info(f"Continuing with {len(all_questions)} questions generated so far")
                progress.generating_questions(total_count, len(all_questions))
                continue

            all_questions.extend(questions)
            outcome.generated = len(all_questions)
            self.metrics.record_batch_succeeded(len(questions))
            logger.info(
                f"Completed batch {batch_number}/{len(sizes)}, "
                f"generated {len(questions)} questions",
                extra={"batch": batch_number},
            )

            if batch_number < len(sizes):
                self._sleep(self.inter_batch_delay)

        if all_questions:
            progress.generating_questions(total_count, len(all_questions))
        return all_questions

    def _generate_batch(
        self,
        context: GameContext,
        batch_size: int,
        batch_number: int,
        total_batches: int,
    ) -> List[GeneratedQuestion]:
        prompt = build_batch_prompt(context, batch_size)
        logger.debug(
            f"Batch {batch_number}/{total_batches}: {batch_size} questions, "
            f"prompt length {len(prompt)} characters"
        )

        def on_switch(from_provider: str, to_provider: str) -> None:
            logger.info(
                f"Provider switched from {from_provider} to {to_provider} "
                f"for batch {batch_number}",
                extra={"batch": batch_number, "provider": to_provider},
            )
            self.metrics.record_provider_switch(from_provider, to_provider)

        items = self.llm_service.generate_questions_with_fallback(
            prompt, batch_size, on_switch
        )
        # One malformed item rejects the whole batch
        questions = validate_question_batch(items)
        if len(questions) > batch_size:
            logger.warning(
                f"Batch {batch_number} returned {len(questions)} questions, "
                f"keeping the first {batch_size}"
            )
            questions = questions[:batch_size]
        return questions
