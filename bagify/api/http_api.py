"""
HTTP API adapter for the Bagify image gateway.

Architectural role:
- Expose health, diagnostic, and generation endpoints.
- Enforce adapter-level input validation and body-size limits.
- Delegate generation to `bagify.core.orchestrator.GenerationOrchestrator`.
- Normalize orchestrator results to the JSON response contract.

Endpoint responsibilities:
- `GET /health`: readiness flags for storage and providers.
- `GET /diag`: credential presence flags (booleans only, never secret values).
- `POST /api/generate-image`: decode images, run the provider chain, return
  the image with the provider slot that produced it.
- `POST /api/generate-carousel`: run the four-frame carousel pipeline.

API request lifecycle (`POST /api/generate-image`):
1. Parse JSON body (`primaryImageBase64`, optional `secondaryImageBase64`, `prompt`).
2. Decode base64 fields; invalid or missing required fields -> HTTP 400.
3. Run the orchestrator (Provider A, then Provider B on failure).
4. Map the result to 200 / 500 / 502.

Error handling strategy:
- `GatewayError` subclasses map to their own status code.
- Request schema failures map to HTTP 400.
- Anything else is caught by `UnhandledErrorMiddleware` -> HTTP 500 `{error}`.
- Bodies over `MAX_BODY_MB` (declared or streamed) -> HTTP 413.

Side effects:
- Builds providers and storage clients once per `create_app` call; the
  module itself builds nothing at import (uvicorn runs it as a factory).
- Emits request/fallback logs through the standard logging module.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.datastructures import Headers

from bagify.carousel.drive import DriveStorage
from bagify.carousel.pipeline import CarouselPipeline
from bagify.core.errors import ConfigurationError, GatewayError
from bagify.core.orchestrator import GenerationOrchestrator
from bagify.image.encoding import decode_image, encode_image
from bagify.image.provider_config import GatewayConfig
from bagify.image.service import build_orchestrator


logger = logging.getLogger(__name__)

_UNSET = object()


# ============================================================
# Request Schema
# ============================================================

class GenerateImageRequest(BaseModel):
    """
    Generation payload.

    Note:
    - Fields are optional at the schema level so that missing values are
      reported as HTTP 400 by the orchestrator's validation, not as 422.
    """
    primaryImageBase64: Optional[str] = None
    secondaryImageBase64: Optional[str] = None
    prompt: Optional[str] = None


# ============================================================
# ASGI Guards
# ============================================================

class RequestBodyTooLarge(HTTPException):
    def __init__(self) -> None:
        super().__init__(status_code=413, detail="Request body too large")


class BodySizeLimitMiddleware:
    """
    Reject request bodies larger than `max_body_bytes`.

    Behavior:
    - A declared `Content-Length` over the limit is refused before reading.
    - Chunked bodies are counted while they are received; crossing the limit
      raises `RequestBodyTooLarge` so the endpoint never runs.
    """

    def __init__(self, app, max_body_bytes: int) -> None:
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        length = Headers(scope=scope).get("content-length")
        if length and length.isdigit() and int(length) > self.max_body_bytes:
            await _too_large(scope, receive, send)
            return

        received = 0
        response_started = False

        async def limited_receive():
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_bytes:
                    raise RequestBodyTooLarge()
            return message

        async def tracking_send(message):
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, tracking_send)
        except RequestBodyTooLarge:
            if response_started:
                raise
            await _too_large(scope, receive, send)


class UnhandledErrorMiddleware:
    """Turn escaping exceptions into HTTP 500 `{error}` inside the CORS layer."""

    def __init__(self, app) -> None:
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def tracking_send(message):
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, tracking_send)
        except Exception as exc:
            logger.exception("Unhandled error on %s %s", scope.get("method"), scope.get("path"))
            if response_started:
                raise
            response = JSONResponse(status_code=500, content={"error": str(exc)})
            await response(scope, receive, send)


async def _too_large(scope, receive, send):
    response = JSONResponse(status_code=413, content={"error": "Request body too large"})
    await response(scope, receive, send)


# ============================================================
# Startup Assembly
# ============================================================

def build_storage(config: GatewayConfig):
    """Return Drive storage when service-account material exists, else `None`."""
    if config.service_account is None:
        logger.warning("Service-account credentials not set; Google Drive disabled")
        return None
    try:
        storage = DriveStorage.from_service_account(config.service_account)
    except ConfigurationError as exc:
        logger.error("Google Drive auth failed: %s", exc.message)
        return None
    logger.info("Google Drive authenticated")
    return storage


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def create_app(
    config: GatewayConfig | None = None,
    orchestrator: GenerationOrchestrator | None = None,
    storage=_UNSET,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
    - `config`: gateway configuration; read from the environment when omitted.
    - `orchestrator`: provider chain; built from `config` when omitted.
    - `storage`: carousel storage; built from `config` when omitted, `None`
      disables the carousel endpoint.
    """
    config = config or GatewayConfig.from_env()
    if orchestrator is None:
        orchestrator = build_orchestrator(config)
    if storage is _UNSET:
        storage = build_storage(config)

    app = FastAPI(title="Bagify Image Gateway")
    app.state.config = config
    app.state.orchestrator = orchestrator
    app.state.storage = storage

    # Added first so CORS wraps them; 413 and 500 carry CORS headers.
    app.add_middleware(UnhandledErrorMiddleware)
    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=config.max_body_bytes)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        allow_credentials=True,
    )

    # ============================================================
    # Error Handlers
    # ============================================================

    @app.exception_handler(RequestBodyTooLarge)
    async def handle_body_too_large(request: Request, exc: RequestBodyTooLarge):
        return JSONResponse(status_code=413, content={"error": "Request body too large"})

    @app.exception_handler(GatewayError)
    async def handle_gateway_error(request: Request, exc: GatewayError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return _error_response(400, "Invalid request body")

    # ============================================================
    # Health & Diagnostics
    # ============================================================

    @app.get("/health")
    async def health():
        return {
            "status": "Bagify gateway running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "google_drive_ready": app.state.storage is not None,
            "openai_ready": app.state.orchestrator.primary is not None,
            "gemini_ready": app.state.orchestrator.secondary is not None,
        }

    @app.get("/diag")
    async def diag():
        return {
            "openai_key_configured": bool(config.openai_api_key),
            "gemini_api_key_configured": bool(config.gemini_api_key),
            "service_account_configured": config.service_account is not None,
            "gemini_uses_service_account": config.gemini_uses_service_account,
            "google_project_configured": bool(
                config.service_account and config.service_account.project_id
            ),
            "drive_configured": app.state.storage is not None,
        }

    # ============================================================
    # Image Generation
    # ============================================================

    @app.post("/api/generate-image")
    async def generate_image(req: GenerateImageRequest):
        """
        Run the provider chain for one image.

        Input validation behavior:
        - Missing/blank `primaryImageBase64` or `prompt` -> HTTP 400.
        - Undecodable base64 -> HTTP 400.
        - No provider is invoked for invalid requests.

        Response formatting:
        - 200 `{success: true, image, method}`.
        - 500/502 `{success: false, error}` with the last provider's error.
        """
        primary_image = decode_image(req.primaryImageBase64, "primaryImageBase64")
        secondary_image = decode_image(req.secondaryImageBase64, "secondaryImageBase64")

        result = await app.state.orchestrator.generate(primary_image, secondary_image, req.prompt)

        if not result.success:
            return _error_response(result.status_code, result.error_message)

        logger.info("Image generated via %s", result.method_used.value)
        return {
            "success": True,
            "image": encode_image(result.image),
            "method": result.method_used.value,
        }

    # ============================================================
    # Carousel
    # ============================================================

    @app.post("/api/generate-carousel")
    async def generate_carousel():
        if app.state.storage is None:
            raise ConfigurationError("Google Drive not authenticated")

        pipeline = CarouselPipeline(
            orchestrator=app.state.orchestrator,
            storage=app.state.storage,
            folder_ids=config.folder_ids,
        )
        carousel = await pipeline.run()

        return {
            "success": True,
            "carousel_id": carousel.carousel_id,
            "target_bag": carousel.target_bag,
            "hashtags": carousel.hashtags,
            "frames_count": carousel.frames_count,
        }

    return app
