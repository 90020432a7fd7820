import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from .config import Settings, get_settings

# API routers
from .api.chat import router as chat_router
from .api.models import router as models_router
from .core.errors import ChatRelayError, MAX_ERROR_MESSAGE
from .core.logging import setup_logging
from .providers.router import ProviderRegistry
from .schemas.chat import ErrorResponse

logger = logging.getLogger(__name__)


def _describe(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "invalid request body"
    first = errors[0]
    loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    msg = first.get("msg", "invalid value")
    text = f"{loc}: {msg}" if loc else msg
    return text[:MAX_ERROR_MESSAGE]


def create_app(
    settings: Optional[Settings] = None, registry: Optional[ProviderRegistry] = None
) -> FastAPI:
    settings = settings or get_settings()
    # Setup logging early
    setup_logging(settings.log_level)
    app = FastAPI(title="Chat Relay", version="0.1.0")
    app.state.settings = settings
    app.state.registry = registry or ProviderRegistry.from_settings(settings)

    origins = settings.origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Served both at the root and under /api for browser clients
    for prefix in ("", "/api"):
        app.include_router(chat_router, prefix=prefix)
        app.include_router(models_router, prefix=prefix)

    @app.exception_handler(ChatRelayError)
    async def _relay_error(request: Request, exc: ChatRelayError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=ErrorResponse(error=exc.public_message()).model_dump())

    @app.exception_handler(RequestValidationError)
    async def _bad_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("%s %s invalid body: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(status_code=400, content=ErrorResponse(error=_describe(exc)).model_dump())

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    @app.get("/", response_class=PlainTextResponse)
    def root():
        return "Chat relay running. POST /chat to stream or /chat-sync for a full reply."

    return app


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)
