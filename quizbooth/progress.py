"""Progress tracking for question generation jobs.

A generation job writes its lifecycle phase to a shared progress document
that a client polls. Writes are merge upserts keyed by the job id, and the
document is deleted a fixed delay after the job reaches a terminal state.
"""

import logging
import threading
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

from .storage import STORE_ERRORS, DocumentStore

logger = logging.getLogger(__name__)

PROGRESS_COLLECTION = "generationProgress"
DEFAULT_CLEANUP_DELAY_SECONDS = 30.0


class GenerationStatus(str, Enum):
    """Lifecycle states of a generation job."""

    STARTING = "starting"
    GENERATING_TITLE = "generating_title"
    GENERATING_QUESTIONS = "generating_questions"
    SAVING_QUESTIONS = "saving_questions"
    COMPLETED = "completed"
    ERROR = "error"


TERMINAL_STATUSES = {GenerationStatus.COMPLETED, GenerationStatus.ERROR}


def questions_progress(completed: int, total: int) -> int:
    """Progress percentage while generating questions, between 10 and 90."""
    if total <= 0:
        return 10
    return min(10 + (80 * completed) // total, 90)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProgressTracker:
    """Writes the progress record of one generation job."""

    def __init__(
        self,
        job_id: str,
        store: DocumentStore,
        cleanup_delay: float = DEFAULT_CLEANUP_DELAY_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Args:
            job_id: Generation job identifier (the game id)
            store: Document store holding progress records
            cleanup_delay: Seconds to keep a terminal record before deleting it
            clock: Timestamp source
        """
        self.job_id = job_id
        self.store = store
        self.cleanup_delay = cleanup_delay
        self._clock = clock
        self._cleanup_timer: Optional[threading.Timer] = None

    def update_progress(
        self,
        status: GenerationStatus,
        progress: int,
        message: str,
        error: Optional[str] = None,
    ) -> None:
        """Merge the given state into the progress record.

        Store failures are logged and never raised to the caller.
        """
        data: Dict[str, Any] = {
            "gameId": self.job_id,
            "status": status.value,
            "progress": progress,
            "message": message,
            "timestamp": self._clock(),
        }
        if error and error.strip():
            data["error"] = error

        try:
            self.store.set(PROGRESS_COLLECTION, self.job_id, data, merge=True)
        except STORE_ERRORS as e:
            logger.error(f"Failed to update progress for {self.job_id}: {e}")
            return
        logger.info(
            f"Progress update for {self.job_id}: {status.value} - {progress}% - {message}"
        )

    def start_generation(self) -> None:
        self.update_progress(
            GenerationStatus.STARTING, 5, "Starting question generation process..."
        )

    def generating_title(self) -> None:
        self.update_progress(
            GenerationStatus.GENERATING_TITLE, 10, "Generating game title..."
        )

    def generating_questions(
        self,
        total_questions: int,
        completed_questions: int = 0,
        current_batch: Optional[int] = None,
        total_batches: Optional[int] = None,
    ) -> None:
        """Report question progress, optionally with batch numbers."""
        message = "Generating questions..."
        if completed_questions > 0:
            message = f"Generating questions... ({completed_questions}/{total_questions})"
            if current_batch is not None and total_batches is not None:
                message += f" - Batch {current_batch}/{total_batches}"

        self.update_progress(
            GenerationStatus.GENERATING_QUESTIONS,
            questions_progress(completed_questions, total_questions),
            message,
        )

    def saving_questions(self) -> None:
        self.update_progress(
            GenerationStatus.SAVING_QUESTIONS, 95, "Saving questions to database..."
        )

    def completed(self, message: str = "Question generation completed successfully") -> None:
        self.update_progress(GenerationStatus.COMPLETED, 100, message)

    def error(self, error_message: str) -> None:
        self.update_progress(
            GenerationStatus.ERROR, 0, "Question generation failed", error_message
        )

    def schedule_cleanup(self) -> threading.Timer:
        """Delete the progress record after the cleanup delay.

        The deletion runs on a daemon timer thread, detached from the caller.
        """
        timer = threading.Timer(self.cleanup_delay, self._delete_record)
        timer.daemon = True
        timer.start()
        self._cleanup_timer = timer
        logger.debug(
            f"Scheduled progress cleanup for {self.job_id} in {self.cleanup_delay}s"
        )
        return timer

    def cancel_cleanup(self) -> None:
        """Cancel a pending cleanup, if any."""
        if self._cleanup_timer is not None:
            self._cleanup_timer.cancel()
            self._cleanup_timer = None

    def _delete_record(self) -> None:
        try:
            self.store.delete(PROGRESS_COLLECTION, self.job_id)
        except Exception:
            # Runs on a timer thread; nothing upstream can handle it
            logger.exception(f"Failed to cleanup progress document for {self.job_id}")
            return
        logger.debug(f"Deleted progress record for {self.job_id}")
