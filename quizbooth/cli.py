#!/usr/bin/env python3
"""Command-line entry point for question generation.

Usage:
    quizbooth generate GAME_ID
    quizbooth generate-single GAME_ID
    quizbooth force-provider {DeepSeek,OpenAI,clear}

Exit codes:
    0 - Success
    2 - Generation failed
    3 - Configuration error (storage backend, credentials, no providers)
"""

import argparse
import json
import logging
import sys
from typing import Any, List, Optional

from google.auth import exceptions as google_auth_exceptions

from .config import settings
from .error_tracking import error_tracker, init_error_tracking
from .exceptions import GameNotFoundError, GenerationFailedError
from .logging_config import setup_logging
from .pipeline import CLEAR_PROVIDER, VALID_PROVIDERS, create_pipeline

EXIT_SUCCESS = 0
EXIT_GENERATION_FAILURE = 2
EXIT_CONFIG_ERROR = 3

logger = logging.getLogger(__name__)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="quizbooth",
        description="Generate trivia questions for QuizBooth games",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Generate the full question set for a game
  quizbooth generate 3f1c9a

  # Generate one extra question (printed, not stored)
  quizbooth generate-single 3f1c9a

  # Pin all generation to OpenAI, then restore normal fallback
  quizbooth force-provider OpenAI
  quizbooth force-provider clear
        """,
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable DEBUG logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Generate all questions for a game")
    generate.add_argument("game_id", help="Game document id")

    single = subparsers.add_parser(
        "generate-single", help="Generate one additional question for a game"
    )
    single.add_argument("game_id", help="Game document id")

    force = subparsers.add_parser(
        "force-provider", help="Pin generation to one provider or clear the override"
    )
    force.add_argument(
        "provider_name",
        choices=VALID_PROVIDERS + [CLEAR_PROVIDER],
        help="Provider name, or 'clear'",
    )

    return parser.parse_args(argv)


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    args = parse_arguments(argv)

    log_level = "DEBUG" if args.verbose else settings.log_level
    setup_logging(log_level=log_level, env=settings.env)
    init_error_tracking(settings.sentry_dsn, settings.sentry_environment or settings.env)

    pipeline = None
    try:
        try:
            pipeline = create_pipeline(settings)
        except (ValueError, google_auth_exceptions.GoogleAuthError) as e:
            logger.error(f"Configuration error: {e}")
            return EXIT_CONFIG_ERROR

        if args.command == "force-provider":
            _print_json(pipeline.force_llm_provider(args.provider_name))
            return EXIT_SUCCESS

        if not any(p.is_available() for p in pipeline.service.providers):
            logger.error("No LLM provider API key configured (DEEPSEEK_API_KEY, OPENAI_API_KEY)")
            return EXIT_CONFIG_ERROR

        try:
            if args.command == "generate":
                questions = pipeline.generate_game_questions(args.game_id)
                logger.info(f"Generated {len(questions)} questions for game {args.game_id}")
                _print_json(questions)
            else:
                _print_json(pipeline.generate_single_question(args.game_id))
        except GameNotFoundError as e:
            logger.error(str(e))
            return EXIT_GENERATION_FAILURE
        except GenerationFailedError as e:
            logger.error(f"Generation failed ({e.error_type}): {e.user_message}")
            return EXIT_GENERATION_FAILURE

        return EXIT_SUCCESS
    finally:
        if pipeline is not None:
            # Progress records are deleted by timers that must outlive the job
            pipeline.wait_for_cleanup()
        error_tracker.flush()


if __name__ == "__main__":
    sys.exit(main())
