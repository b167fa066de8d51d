"""FastAPI application setup for the media library."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from media_library.api.dependencies import (
    get_app_settings,
    get_database,
    get_embedding_provider,
    get_query_service,
    get_synchronizer,
    get_vector_index,
    reset_dependencies,
)
from media_library.api.routes_admin import router as admin_router
from media_library.api.routes_items import router as items_router
from media_library.api.routes_search import router as search_router
from media_library.core.errors import VectorIndexError
from media_library.core.logging import configure_logging, get_logger
from media_library.core.metrics import REQUEST_COUNT

configure_logging()
logger = get_logger(__name__)

app = FastAPI(
    title="Media Library",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://127.0.0.1:3000",
        "http://localhost:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(items_router, prefix="", tags=["items"])
app.include_router(search_router, prefix="", tags=["search"])
app.include_router(admin_router, prefix="", tags=["admin"])


@app.middleware("http")
async def count_requests(request: Request, call_next):
    response = await call_next(request)
    route = request.scope.get("route")
    endpoint = getattr(route, "path", "unmatched")
    REQUEST_COUNT.labels(endpoint=endpoint, method=request.method, status=str(response.status_code)).inc()
    return response


@app.on_event("startup")
async def startup() -> None:
    """Warm up core singletons and refill an empty index from stored items."""
    get_app_settings()
    get_database()
    get_embedding_provider()
    get_vector_index()
    get_query_service()
    try:
        get_synchronizer().rebuild_if_empty()
    except VectorIndexError as exc:
        logger.error("Vector index unavailable at startup: %s", exc)


@app.on_event("shutdown")
async def shutdown() -> None:
    reset_dependencies()


@app.get("/health", tags=["admin"])
def health() -> dict[str, bool]:
    """Simple liveness check."""
    return {"ok": True}
