"""Error tracking via Sentry.

Generation failures that end a job are reported here in addition to the
logs. All functions are no-ops until ``init`` succeeds, so local runs and
tests work without a DSN.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, Optional

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration

logger = logging.getLogger(__name__)


def _serialize_value(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _serialize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_serialize_value(item) for item in value]
    return str(value)


class ErrorTracker:
    """Thin wrapper around the Sentry SDK."""

    def __init__(self) -> None:
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def init(
        self,
        dsn: Optional[str],
        environment: str = "development",
        release: Optional[str] = None,
    ) -> bool:
        """Initialize the Sentry SDK.

        Returns:
            True if Sentry was initialized, False if skipped (no DSN) or failed.
        """
        if not dsn:
            logger.debug("Sentry initialization skipped (DSN not configured)")
            return False

        try:
            sentry_sdk.init(
                dsn=dsn,
                environment=environment,
                release=release,
                integrations=[
                    # Breadcrumbs only; events are captured explicitly
                    LoggingIntegration(level=None, event_level=None),
                ],
                send_default_pii=False,
            )
        except Exception as e:
            logger.error(f"Failed to initialize Sentry: {e}", exc_info=True)
            return False

        self._initialized = True
        logger.info(f"Sentry initialized for environment '{environment}'")
        return True

    def capture_error(
        self,
        exception: BaseException,
        context: Optional[Dict[str, Any]] = None,
        tags: Optional[Dict[str, str]] = None,
    ) -> Optional[str]:
        """Capture an exception with optional context and tags.

        Returns:
            Event ID if captured, None if not initialized.
        """
        if not self._initialized:
            return None

        with sentry_sdk.new_scope() as scope:
            if context:
                scope.set_context("generation", _serialize_value(context))
            for key, value in (tags or {}).items():
                scope.set_tag(key, value)
            return sentry_sdk.capture_exception(exception)

    def flush(self, timeout: float = 2.0) -> None:
        if self._initialized:
            sentry_sdk.flush(timeout=timeout)


error_tracker = ErrorTracker()


def init_error_tracking(dsn: Optional[str], environment: str = "development") -> bool:
    """Initialize the process-wide error tracker."""
    return error_tracker.init(dsn, environment)


def capture_error(
    exception: BaseException,
    context: Optional[Dict[str, Any]] = None,
    tags: Optional[Dict[str, str]] = None,
) -> Optional[str]:
    """Report an exception through the process-wide error tracker."""
    return error_tracker.capture_error(exception, context=context, tags=tags)
