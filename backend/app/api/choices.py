"""V2 choice API: generate choices, validate a choice set, normalize and generate story segments."""
from __future__ import annotations

import logging
import random
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from backend.app.config import CHOICE_ENGINE_VERSION, CHOICE_FLOW_CAPACITY, DEFAULT_DB_PATH
from backend.app.core.choices.flow_recorder import ChoiceFlowRecorder
from backend.app.core.choices.integration import ChoiceIntegrityService
from backend.app.core.choices.pipeline import generate_choices
from backend.app.core.choices.templates import resolve_genre_tone
from backend.app.core.choices.validator import validate_choice_set
from backend.app.core.error_handling import (
    StoryBackendError,
    StoryGenerationError,
    create_error_response,
    log_error_with_context,
)
from backend.app.db.segment_store import SegmentChoiceStore
from backend.app.models.choices import StorySegment
from backend.story_client import SegmentRequest, StorySegmentClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v2", tags=["v2-choices"])

_RECORDER = ChoiceFlowRecorder(capacity=CHOICE_FLOW_CAPACITY)


def get_flow_recorder() -> ChoiceFlowRecorder:
    return _RECORDER


def get_segment_store() -> SegmentChoiceStore:
    return SegmentChoiceStore(DEFAULT_DB_PATH)


def get_story_client() -> StorySegmentClient:
    return StorySegmentClient()


def get_integrity_service(
    recorder: ChoiceFlowRecorder = Depends(get_flow_recorder),
    store: SegmentChoiceStore = Depends(get_segment_store),
) -> ChoiceIntegrityService:
    return ChoiceIntegrityService(recorder, store=store)


class ChoiceRequest(BaseModel):
    text: str = ""
    genre: Optional[str] = None
    tone: Optional[str] = None
    seed: Optional[int] = None
    debug: bool = False


class ChoiceResponse(BaseModel):
    choices: list[str]
    engine_version: str
    diagnostics: Optional[dict[str, Any]] = None


class ValidateChoicesRequest(BaseModel):
    text: str = ""
    choices: Any = None
    genre: Optional[str] = None


class GenerateSegmentBody(SegmentRequest):
    """Same fields as the backend request; snake_case on our side of the wire."""


def _error(status_code: int, error_code: str, message: str, node: str, details: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=create_error_response(error_code=error_code, message=message, node=node, details=details),
    )


@router.post("/choices", response_model=ChoiceResponse, response_model_exclude_none=True)
def post_choices(body: ChoiceRequest):
    """Generate exactly three choices for a story passage."""
    rng = random.Random(body.seed) if body.seed is not None else None
    result = generate_choices(body.text, body.genre, body.tone, rng=rng, debug=body.debug)
    return ChoiceResponse(
        choices=result.choices,
        engine_version=CHOICE_ENGINE_VERSION,
        diagnostics=result.diagnostics.model_dump() if result.diagnostics else None,
    )


@router.post("/choices/validate")
def post_validate_choices(body: ValidateChoicesRequest):
    """Check a choice set against the set-level contract."""
    fantasy_mode = None
    if body.genre:
        fantasy_mode = resolve_genre_tone(body.text, body.genre)[0] == "fantasy"
    report = validate_choice_set(body.text, body.choices, fantasy_mode=fantasy_mode)
    return report.model_dump()


@router.post("/segments/normalize", response_model=StorySegment)
def post_normalize_segment(
    raw: dict[str, Any] = Body(...),
    service: ChoiceIntegrityService = Depends(get_integrity_service),
):
    """Normalize a raw backend payload and enforce the choice contract."""
    try:
        return service.process(raw)
    except StoryGenerationError as e:
        log_error_with_context(e, "api.normalize", segment_id=str(raw.get("id") or "") or None)
        return _error(422, "STORY_PAYLOAD_INVALID", str(e), "integration")


@router.post("/segments/generate", response_model=StorySegment)
def post_generate_segment(
    body: GenerateSegmentBody,
    service: ChoiceIntegrityService = Depends(get_integrity_service),
    client: StorySegmentClient = Depends(get_story_client),
):
    """Generate a segment through the remote backend, then enforce the choice contract."""
    try:
        raw = client.generate_segment(body)
    except StoryBackendError as e:
        log_error_with_context(e, "api.generate", story_id=body.story_id)
        details = {"upstream_status": e.status_code} if e.status_code else None
        return _error(502, "STORY_BACKEND_FAILED", str(e), "story_backend", details)
    finally:
        client.close()
    try:
        return service.process(raw, genre=body.genre)
    except StoryGenerationError as e:
        log_error_with_context(e, "api.generate", story_id=body.story_id)
        return _error(502, "STORY_PAYLOAD_INVALID", str(e), "integration")


@router.get("/debug/choice-flows")
def get_choice_flows(recorder: ChoiceFlowRecorder = Depends(get_flow_recorder)):
    """Recent choice flows (newest first) and per-segment choice metadata."""
    return recorder.snapshot()
