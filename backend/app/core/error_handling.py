"""Error handling utilities: domain errors, structured logging and error responses."""
from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)


class VocabularyError(RuntimeError):
    """Vocabulary file missing or malformed (configuration error, raised at load)."""


class StoryGenerationError(RuntimeError):
    """Generation backend returned a payload that cannot be turned into a story segment."""


class StoryBackendError(RuntimeError):
    """Transport, HTTP or JSON failure while calling the generation backend."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def log_error_with_context(
    error: Exception,
    node_name: str,
    segment_id: str | None = None,
    story_id: str | None = None,
    extra_context: dict[str, Any] | None = None,
) -> None:
    """
    Log an error with full context: segment_id, story_id, stage name, and stack trace.

    Args:
        error: The exception that occurred
        node_name: Pipeline stage or route (e.g., 'integration', 'segment_store', 'api.generate')
        segment_id: Story segment ID for context
        story_id: Story ID for context
        extra_context: Additional context dict to include in log
    """
    context_parts = []
    if segment_id:
        context_parts.append(f"segment_id={segment_id}")
    if story_id:
        context_parts.append(f"story_id={story_id}")
    context_str = ", ".join(context_parts) if context_parts else "no context"

    extra = {}
    if extra_context:
        extra.update(extra_context)
    if segment_id:
        extra["segment_id"] = segment_id
    if story_id:
        extra["story_id"] = story_id
    extra["node_name"] = node_name

    logger.error(
        f"[{node_name}] Error: {type(error).__name__}: {str(error)} ({context_str})",
        exc_info=True,
        extra=extra,
    )


def create_error_response(
    error_code: str,
    message: str,
    node: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Create a structured error response for API endpoints.

    Args:
        error_code: Error code (e.g., 'STORY_BACKEND_FAILED', 'STORY_PAYLOAD_INVALID')
        message: Human-readable error message
        node: Stage where the error occurred
        details: Additional error details

    Returns:
        Structured error dict
    """
    response: dict[str, Any] = {
        "error_code": error_code,
        "message": message,
    }
    if node:
        response["node"] = node
    if details:
        response["details"] = details
    return response
