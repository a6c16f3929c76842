"""FastAPI main application (V2 choice engine)."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from backend.app.api import choices as choices_api
from backend.app.config import (
    CHOICE_ENGINE_VERSION,
    CORS_ALLOW_ORIGINS,
    DEFAULT_DB_PATH,
    STORY_BACKEND_URL,
    VOCABULARY_PATH,
)
from backend.app.core.choices.vocabulary import load_vocabulary
from backend.app.core.error_handling import VocabularyError, create_error_response, log_error_with_context
from backend.app.db.segment_store import SegmentChoiceStore

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

APP_VERSION = "0.1.0"


def _collect_environment_diagnostics() -> dict:
    """Collect structured environment diagnostics for /health/detail."""
    checks: dict[str, dict] = {}

    try:
        vocab = load_vocabulary()
        checks["vocabulary"] = {
            "ok": True,
            "path": str(VOCABULARY_PATH),
            "version": vocab.version,
            "template_genres": sorted(vocab.templates.keys()),
        }
    except VocabularyError as e:
        checks["vocabulary"] = {"ok": False, "path": str(VOCABULARY_PATH), "error": str(e)}

    try:
        SegmentChoiceStore(DEFAULT_DB_PATH).check()
        checks["segment_store"] = {"ok": True, "path": DEFAULT_DB_PATH}
    except Exception as e:
        checks["segment_store"] = {"ok": False, "path": DEFAULT_DB_PATH, "error": str(e)}

    # Reported, not probed: generation calls fail individually with 502 when it is down.
    checks["story_backend"] = {"ok": bool(STORY_BACKEND_URL), "url": STORY_BACKEND_URL}

    overall_ok = all(v.get("ok", False) for v in checks.values())
    return {"ok": overall_ok, "engine_version": CHOICE_ENGINE_VERSION, "checks": checks}


def _validate_environment() -> None:
    """Log environment health checks at startup. Never fails; the API degrades per check."""
    diag = _collect_environment_diagnostics()
    for name, check in diag["checks"].items():
        if check.get("ok"):
            logger.info("Startup check %s: ok", name)
        else:
            logger.warning("Startup check %s failed: %s", name, check.get("error", check))


@asynccontextmanager
async def lifespan(app: FastAPI):
    _validate_environment()
    logger.info("API startup complete (engine=%s, db=%s)", CHOICE_ENGINE_VERSION, DEFAULT_DB_PATH)
    yield


app = FastAPI(title="Storyteller Choice Engine API", version=APP_VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _node_for_path(path: str) -> str:
    if "/segments" in path:
        return "segments"
    if "/choices" in path:
        return "choices"
    return "api"


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTPExceptions with structured error responses."""
    node = _node_for_path(request.url.path)
    error_response = create_error_response(
        error_code=f"{node.upper()}_HTTP_{exc.status_code}",
        message=exc.detail,
        node=node,
        details={
            "status_code": exc.status_code,
            "path": request.url.path,
        },
    )
    return JSONResponse(status_code=exc.status_code, content=error_response)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler: return structured error responses with logging."""
    node = _node_for_path(request.url.path)
    log_error_with_context(
        error=exc,
        node_name=node,
        extra_context={
            "method": request.method,
            "path": request.url.path,
            "query_params": dict(request.query_params),
        },
    )
    message = f"An error occurred: {type(exc).__name__}"
    if str(exc):
        message = str(exc)
    error_response = create_error_response(
        error_code="INTERNAL_ERROR",
        message=message,
        node=node,
        details={
            "exception_type": type(exc).__name__,
            "path": request.url.path,
        },
    )
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=error_response)


app.include_router(choices_api.router)


@app.get("/")
async def root():
    return {"message": "Storyteller Choice Engine API", "version": APP_VERSION}


@app.get("/health")
async def health():
    return {"status": "healthy"}


@app.get("/health/detail")
async def health_detail():
    """Structured readiness diagnostics for deployment checks."""
    diag = _collect_environment_diagnostics()
    return {"status": "healthy" if diag.get("ok") else "degraded", **diag}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
