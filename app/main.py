"""Storyboard frame generator FastAPI application.

Endpoints
---------
========  ================================  ====================================
Method    Path                              Purpose
========  ================================  ====================================
POST      ``/api/generate-storyboards``     Sketch + scene + style -> frame
POST      ``/api/vary``                     Re-generate from a previous frame
POST      ``/api/edit-image``               Apply an edit instruction to a frame
POST      ``/api/generate-description``     Describe a sketch (scene pre-fill)
GET       ``/api/styles``                   Built-in style presets
GET       ``/api/health``                   Service health and counters
========  ================================  ====================================

Usage::

    storyboard-server

or::

    uvicorn app.main:app
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.schemas import DescribeBody, EditImageBody, GenerateStoryboardsBody, VaryBody
from storyboard.core.adapter_factory import AdapterFactory
from storyboard.core.errors import InvalidRequest, StoryboardError
from storyboard.core.orchestrator import StoryboardOrchestrator, validate_image
from storyboard.providers.huggingface import HuggingFaceDescriber
from storyboard.utils.health import HealthChecker, get_health_checker
from storyboard.utils.image_codec import to_data_uri
from storyboard.utils.prompt_composer import StyleLibrary

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

API_VERSION = "v3.0-qwen-image-edit"

HTTP_ERROR_KINDS = {
    404: "not_found",
    405: "method_not_allowed",
    503: "service_unavailable",
}


def create_orchestrator() -> StoryboardOrchestrator:
    """Create the orchestrator with the adapter selected in settings.

    Returns:
        Initialized StoryboardOrchestrator

    Raises:
        ValueError: If required configuration is missing
    """
    try:
        settings.validate_required_keys()
        adapter = AdapterFactory.create_adapter(
            settings.image_provider,
            settings.provider_config()
        )
        return StoryboardOrchestrator(adapter)
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        raise


def create_describer() -> Optional[HuggingFaceDescriber]:
    """Create the image describer if a HuggingFace token is configured."""
    if not settings.huggingface_token:
        logger.warning("HUGGINGFACE_TOKEN not set; /api/generate-description is disabled")
        return None
    return HuggingFaceDescriber(
        settings.huggingface_token,
        model=settings.describe_model,
        timeout=settings.request_timeout
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the provider stack once at startup.

    A missing credential raises here and aborts startup.
    """
    app.state.orchestrator = create_orchestrator()
    app.state.describer = create_describer()
    logger.info(f"Storyboard service {API_VERSION} ready (provider: {settings.image_provider})")
    yield
    logger.info("Storyboard service shutting down")


app = FastAPI(
    title="Storyboard Frame Generator",
    description="Turns rough sketches into monochrome storyboard frames.",
    version=API_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Dependencies.
# ---------------------------------------------------------------------------


def get_orchestrator(request: Request) -> StoryboardOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Image provider is not configured")
    return orchestrator


def get_describer(request: Request) -> HuggingFaceDescriber:
    describer = getattr(request.app.state, "describer", None)
    if describer is None:
        raise HTTPException(status_code=503, detail="Image description is not configured")
    return describer


def get_health() -> HealthChecker:
    return get_health_checker()


# ---------------------------------------------------------------------------
# Error rendering.
# ---------------------------------------------------------------------------


def _error_response(
    status_code: int,
    error: str,
    kind: str,
    details: Optional[str] = None,
    headers: Optional[dict] = None
) -> JSONResponse:
    content = {"error": error, "kind": kind}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _failure(
    operation: str,
    message: str,
    error: StoryboardError,
    health: HealthChecker
) -> JSONResponse:
    """Translate a StoryboardError into the uniform error response."""
    health.record_request(operation, success=False, error_kind=error.kind)
    if isinstance(error, InvalidRequest):
        logger.info(f"[{operation}] Rejected: {error.message}")
        details = error.details if error.details != error.message else None
        return _error_response(400, error.message, error.kind, details)

    logger.error(f"[{operation}] Error [{error.kind}]: {error.details}")
    return _error_response(500, message, error.kind, error.details)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(
        exc.status_code,
        str(exc.detail),
        HTTP_ERROR_KINDS.get(exc.status_code, "http_error"),
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(f"Malformed request body for {request.url.path}")
    # Drop the echoed input so image payloads are not sent back
    errors = [{key: value for key, value in error.items() if key != "input"} for error in exc.errors()]
    return _error_response(400, "Invalid request body", InvalidRequest.kind, str(errors))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error for {request.url.path}: {exc}")
    return _error_response(500, "Internal server error", StoryboardError.kind)


def _resolve_style(style_prompt: Optional[str], style_id: Optional[str]) -> Optional[str]:
    """Pick the explicit style text, falling back to a named preset."""
    if style_prompt and style_prompt.strip():
        return style_prompt
    if style_id:
        preset = StyleLibrary.get(style_id)
        if preset is None:
            raise InvalidRequest(f"Unknown style: {style_id}")
        return preset.prompt
    return style_prompt


def _image_size(image) -> int:
    if isinstance(image, str):
        return len(image)
    return len(getattr(image, "base64", None) or "")


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.post("/api/generate-storyboards")
def generate_storyboards(
    body: GenerateStoryboardsBody,
    orchestrator: StoryboardOrchestrator = Depends(get_orchestrator),
    health: HealthChecker = Depends(get_health)
):
    """Generate one storyboard frame from a sketch, scene text and style."""
    logger.info(f"[generate-storyboards {API_VERSION}] Request received")
    logger.info(
        f"[generate-storyboards] Params: hasPrompt={bool(body.prompt)}, hasImage={body.image is not None}, "
        f"hasStylePrompt={bool(body.stylePrompt or body.styleId)}, imageSize={_image_size(body.image)}"
    )

    try:
        style = _resolve_style(body.stylePrompt, body.styleId)
        image = orchestrator.generate(body.prompt, body.image, style)
    except StoryboardError as e:
        return _failure("generate", "Failed to generate storyboards.", e, health)

    health.record_request("generate")
    return {"images": [to_data_uri(image)], "version": API_VERSION}


@app.post("/api/vary")
def vary_storyboard(
    body: VaryBody,
    orchestrator: StoryboardOrchestrator = Depends(get_orchestrator),
    health: HealthChecker = Depends(get_health)
):
    """Generate a variation of a previously returned frame."""
    logger.info(f"[vary {API_VERSION}] Request received (imageSize={_image_size(body.image)})")

    try:
        style = _resolve_style(body.stylePrompt, body.styleId)
        image = orchestrator.vary(body.prompt, body.image, style)
    except StoryboardError as e:
        return _failure("vary", "Failed to create variations.", e, health)

    health.record_request("vary")
    return {"images": [to_data_uri(image)], "version": API_VERSION}


@app.post("/api/edit-image")
def edit_image(
    body: EditImageBody,
    orchestrator: StoryboardOrchestrator = Depends(get_orchestrator),
    health: HealthChecker = Depends(get_health)
):
    """Apply an edit instruction to a frame."""
    logger.info(f"[edit-image {API_VERSION}] Request received")
    logger.info(
        f"[edit-image] Params: hasImage={body.originalImage is not None}, "
        f"hasEditInstruction={bool(body.editInstruction)}, "
        f"hasStylePrompt={bool(body.stylePrompt or body.styleId)}, imageSize={_image_size(body.originalImage)}"
    )

    try:
        style = _resolve_style(body.stylePrompt, body.styleId)
        image = orchestrator.edit(body.originalImage, body.editInstruction, style)
    except StoryboardError as e:
        return _failure("edit", "Failed to edit the image.", e, health)

    health.record_request("edit")
    return {"editedImage": to_data_uri(image), "version": API_VERSION}


@app.post("/api/generate-description")
def generate_description(
    body: DescribeBody,
    describer: HuggingFaceDescriber = Depends(get_describer),
    health: HealthChecker = Depends(get_health)
):
    """Describe a sketch so the scene text can be pre-filled."""
    logger.info("[generate-description] Request received")

    try:
        if body.image is None:
            raise InvalidRequest("Missing required fields: image")
        description = describer.describe(validate_image(body.image))
    except StoryboardError as e:
        return _failure("describe", "Failed to generate description.", e, health)

    health.record_request("describe")
    return {"description": description}


@app.get("/api/styles")
def list_styles() -> dict:
    """Return the built-in style presets."""
    return {"styles": [style.to_dict() for style in StyleLibrary.list_styles()]}


@app.get("/api/health")
def health_status(request: Request, health: HealthChecker = Depends(get_health)) -> dict:
    """Report service health."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    adapter = orchestrator.adapter if orchestrator is not None else None
    result = health.check_health(adapter)
    return {**result.to_dict(), "version": API_VERSION}


def main() -> None:
    """Launch the API server with uvicorn."""
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
