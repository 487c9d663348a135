import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .api.routes import PAYLOAD_TOO_LARGE_ERROR, router
from .config import Settings
from .core.face_detection import FaceModel
from .core.image_loader import build_http_client
from .core.matcher import FaceMatchService
from .errors import PayloadTooLargeError

logger = logging.getLogger(__name__)


class BodySizeLimitMiddleware:
    """Reject request bodies larger than ``max_body_bytes``.

    A declared Content-Length over the limit is answered with 413 straight
    away. Bodies without one (chunked uploads) are counted as they are
    received, and ``PayloadTooLargeError`` is raised to the handler reading
    them once the limit is crossed.
    """

    def __init__(self, app: ASGIApp, max_body_bytes: int):
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        length = Headers(scope=scope).get("content-length")
        if length is not None and length.isdigit() and int(length) > self.max_body_bytes:
            logger.warning(f"Rejected {scope['path']}: body of {length} bytes exceeds {self.max_body_bytes}")
            response = JSONResponse(status_code=413, content=PAYLOAD_TOO_LARGE_ERROR)
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_bytes:
                    raise PayloadTooLargeError(f"Request body exceeds {self.max_body_bytes} bytes")
            return message

        await self.app(scope, limited_receive, send)


def setup_logging(level: str = "INFO") -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


async def load_models(app: FastAPI) -> None:
    """Load the face models off the event loop and record the outcome."""
    app.state.model_status = "loading"
    try:
        await run_in_threadpool(app.state.matcher.model.load)
    except Exception as e:
        logger.error(f"Error loading models: {str(e)}", exc_info=True)
        app.state.model_status = "error"
        return
    app.state.model_status = "ok"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    load_task = None
    # The transport listens right away; /health and the compare routes
    # report 503 until the models are in memory.
    if app.state.matcher.model.is_loaded:
        app.state.model_status = "ok"
    else:
        load_task = asyncio.create_task(load_models(app))

    logger.info(f"Server is running on http://localhost:{settings.port}")
    try:
        yield
    finally:
        if load_task is not None and not load_task.done():
            load_task.cancel()
        await app.state.matcher.http_client.aclose()


def create_app(
    settings: Optional[Settings] = None,
    model: Optional[FaceModel] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Service settings, read from the environment when omitted.
        model: Face model, built from ``settings`` when omitted.
        http_client: Client for fetching remote images, built from
            ``settings`` when omitted.
    """
    settings = settings or Settings.from_env()
    if model is None:
        model = FaceModel(
            models_dir=settings.models_dir,
            detector=settings.detector,
            upsample_times=settings.upsample_times,
            num_jitters=settings.num_jitters,
        )
    if http_client is None:
        http_client = build_http_client(settings)

    # Initialize FastAPI app
    app = FastAPI(title="facematch", lifespan=lifespan)
    app.state.settings = settings
    app.state.model_status = "loading"
    app.state.matcher = FaceMatchService.from_settings(settings, model, http_client)

    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=settings.max_body_bytes)

    # Enable CORS; added last so 413 responses carry CORS headers too
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Mount routes
    app.include_router(router)

    return app


def run() -> None:
    settings = Settings.from_env()
    setup_logging(settings.log_level)

    import uvicorn
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
