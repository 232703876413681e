"""FastAPI application exposing the ledger document over REST."""

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from maintup_ledger.api.auth import bearer_token_guard
from maintup_ledger.api.routes import collection_router, sync_router
from maintup_ledger.config import FlatSettings, get_settings
from maintup_ledger.models import COLLECTIONS
from maintup_ledger.storage import JsonDocumentStore, StoreCorruptedError

logger = structlog.get_logger(__name__)


def create_app(
    settings: FlatSettings | None = None,
    store: JsonDocumentStore | None = None,
) -> FastAPI:
    """Build the API around a document store.

    Args:
        settings: Server settings. Defaults to the cached environment settings.
        store: Document store. Defaults to ``settings.data_file``.
    """
    settings = settings or get_settings()
    store = store or JsonDocumentStore(settings.data_file)

    app = FastAPI(title="Maintup Ledger API")
    app.state.store = store

    origins = [origin.strip() for origin in settings.cors_origin.split(",") if origin.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    guard = bearer_token_guard(settings)
    for collection in COLLECTIONS:
        app.include_router(collection_router(collection, guard))
    app.include_router(sync_router(guard))

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.exception_handler(StoreCorruptedError)
    async def store_corrupted(request: Request, exc: StoreCorruptedError) -> JSONResponse:
        logger.error("store_corrupted", path=str(exc.path), error=str(exc))
        return JSONResponse(status_code=500, content={"detail": "Stored document is corrupted"})

    @app.middleware("http")
    async def log_requests(request: Request, call_next) -> Response:  # type: ignore[no-untyped-def]
        started = time.perf_counter()
        response: Response = await call_next(request)
        logger.info(
            "request_handled",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return response

    logger.info(
        "app_created",
        data_file=str(store.path),
        auth_enabled=settings.token_value() is not None,
        cors_origins=origins,
    )
    return app
