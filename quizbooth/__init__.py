"""QuizBooth question generation core."""

from quizbooth.batching import BatchOrchestrator, BatchOutcome, plan_batches
from quizbooth.error_classifier import (
    ErrorClassification,
    ErrorType,
    classify_exception,
    classify_llm_error,
)
from quizbooth.llm_service import LLMService, create_llm_service
from quizbooth.pipeline import QuestionGenerationPipeline, create_pipeline
from quizbooth.progress import GenerationStatus, ProgressTracker

__version__ = "0.1.0"

__all__ = [
    "BatchOrchestrator",
    "BatchOutcome",
    "ErrorClassification",
    "ErrorType",
    "GenerationStatus",
    "LLMService",
    "ProgressTracker",
    "QuestionGenerationPipeline",
    "classify_exception",
    "classify_llm_error",
    "create_llm_service",
    "create_pipeline",
    "plan_batches",
]
