"""Client for the remote story generation backend (generate-story-segment function)."""
from __future__ import annotations

import json as _json
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field

from backend.app.config import STORY_BACKEND_API_KEY, STORY_BACKEND_TIMEOUT, STORY_BACKEND_URL
from backend.app.core.error_handling import StoryBackendError

logger = logging.getLogger(__name__)

GENERATE_SEGMENT_PATH = "/functions/v1/generate-story-segment"


class StoryCharacter(BaseModel):
    id: str
    name: str
    role: str = "custom"  # protagonist | sidekick | companion | custom
    description: Optional[str] = None
    traits: List[str] = Field(default_factory=list)


class SegmentRequest(BaseModel):
    """Parameters for one generate-story-segment call."""
    prompt: str
    age: str
    genre: str
    story_id: Optional[str] = None
    parent_segment_id: Optional[str] = None
    choice_text: Optional[str] = None
    skip_image: bool = False
    characters: List[StoryCharacter] = Field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        """Wire payload (camelCase keys expected by the function)."""
        return {
            "prompt": self.prompt,
            "age": self.age,
            "genre": self.genre,
            "storyId": self.story_id,
            "parentSegmentId": self.parent_segment_id,
            "choiceText": self.choice_text,
            "skipImage": self.skip_image,
            "characters": [c.model_dump() for c in self.characters],
        }


class StorySegmentClient:
    """Client for the generate-story-segment endpoint."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = (base_url or STORY_BACKEND_URL).strip().rstrip("/")
        self._api_key = STORY_BACKEND_API_KEY if api_key is None else api_key
        self._timeout = timeout or STORY_BACKEND_TIMEOUT
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
            headers["apikey"] = self._api_key
        self.client = httpx.Client(timeout=self._timeout, headers=headers, transport=transport)

    def close(self) -> None:
        """Close the underlying HTTP client (optional, for clean shutdown)."""
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def generate_segment(self, request: SegmentRequest) -> Dict[str, Any]:
        """POST a generation request; return the raw JSON body.

        Raises :class:`StoryBackendError` on transport, HTTP or JSON failures so the
        caller can surface a structured error instead of a stack trace.
        """
        url = f"{self.base_url}{GENERATE_SEGMENT_PATH}"
        logger.info(
            "Calling generate-story-segment (prompt_len=%d, genre=%s, story_id=%s, choice=%s, characters=%d)",
            len(request.prompt or ""),
            request.genre,
            request.story_id,
            request.choice_text,
            len(request.characters),
        )
        try:
            response = self.client.post(url, json=request.to_payload())
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            logger.error("Story backend request timed out: %s", exc)
            raise StoryBackendError(f"Story backend timed out after {self._timeout}s") from exc
        except httpx.ConnectError as exc:
            logger.error("Cannot connect to story backend at %s: %s", self.base_url, exc)
            raise StoryBackendError(f"Cannot connect to story backend at {self.base_url}") from exc
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Story backend returned HTTP %d: %s",
                exc.response.status_code,
                exc.response.text[:500],
            )
            raise StoryBackendError(
                f"Story backend HTTP error {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Story backend network error: %s", exc)
            raise StoryBackendError(f"Story backend network error: {exc}") from exc

        try:
            body = response.json()
        except _json.JSONDecodeError as exc:
            logger.error(
                "Story backend response was not valid JSON (status %d, first 500 chars): %s",
                response.status_code,
                response.text[:500],
            )
            raise StoryBackendError("Story backend returned non-JSON response") from exc
        if not isinstance(body, dict):
            raise StoryBackendError("Story backend returned a non-object JSON body")
        return body
