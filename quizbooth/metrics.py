"""Metrics tracking for question generation jobs.

Counts batches, generated questions and provider switches for one process
so a run can be summarized in logs or reported by the CLI.
"""

import logging
import threading
from collections import defaultdict
from typing import Any, Dict

logger = logging.getLogger(__name__)


class GenerationMetrics:
    """Tracks batch and provider-switch metrics for generation runs."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.reset()

    def reset(self) -> None:
        """Reset all metrics to initial state."""
        self.batches_requested = 0
        self.batches_succeeded = 0
        self.batches_failed = 0
        self.questions_requested = 0
        self.questions_generated = 0
        self.provider_switches: Dict[str, int] = defaultdict(int)
        self.batch_errors: Dict[str, int] = defaultdict(int)

    def record_batch_started(self, batch_size: int) -> None:
        with self._lock:
            self.batches_requested += 1
            self.questions_requested += batch_size

    def record_batch_succeeded(self, questions: int) -> None:
        with self._lock:
            self.batches_succeeded += 1
            self.questions_generated += questions

    def record_batch_failed(self, error: BaseException) -> None:
        with self._lock:
            self.batches_failed += 1
            self.batch_errors[type(error).__name__] += 1

    def record_provider_switch(self, from_provider: str, to_provider: str) -> None:
        with self._lock:
            self.provider_switches[f"{from_provider}->{to_provider}"] += 1

    def get_summary(self) -> Dict[str, Any]:
        """Snapshot of all counters."""
        with self._lock:
            success_rate = (
                self.batches_succeeded / self.batches_requested
                if self.batches_requested
                else 0.0
            )
            return {
                "batches": {
                    "requested": self.batches_requested,
                    "succeeded": self.batches_succeeded,
                    "failed": self.batches_failed,
                    "success_rate": round(success_rate, 3),
                },
                "questions": {
                    "requested": self.questions_requested,
                    "generated": self.questions_generated,
                },
                "provider_switches": dict(self.provider_switches),
                "batch_errors": dict(self.batch_errors),
            }

    def log_summary(self) -> None:
        summary = self.get_summary()
        logger.info(
            f"Generation metrics: {summary['batches']['succeeded']}/"
            f"{summary['batches']['requested']} batches succeeded, "
            f"{summary['questions']['generated']}/{summary['questions']['requested']} "
            f"questions generated, switches={summary['provider_switches']}"
        )
