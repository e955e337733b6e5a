from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import ORJSONResponse

from sessionlog.api.routes.logs import router as logs_router
from sessionlog.core.config import Settings, settings
from sessionlog.core.logging import configure_logging
from sessionlog.services.log_store import create_log_store

logger = logging.getLogger("sessionlog")


# -------------------------
# Response helpers
# -------------------------
def ok(data: Any = None, meta: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {"success": True, "data": data, "error": None, "meta": meta or {}}


def fail(
    code: str,
    message: str,
    details: Optional[Any] = None,
    meta: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    return {
        "success": False,
        "data": None,
        "error": {"code": code, "message": message, "details": details},
        "meta": meta or {},
    }


# -------------------------
# App factory
# -------------------------
def create_app(cfg: Settings = settings) -> FastAPI:
    app = FastAPI(
        title="Session Log API",
        version="0.1.0",
        default_response_class=ORJSONResponse,
    )
    app.state.settings = cfg
    app.state.log_store = None
    app.state.log_handler = None

    # -------------------------
    # Middleware
    # -------------------------
    app.add_middleware(GZipMiddleware, minimum_size=1024)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request-id + timing
    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        start = time.perf_counter()

        response = await call_next(request)

        response.headers["x-request-id"] = request_id
        response.headers["x-response-ms"] = f"{(time.perf_counter() - start) * 1000:.2f}"
        return response

    # -------------------------
    # Routes
    # -------------------------
    @app.get("/health", response_class=ORJSONResponse)
    async def health():
        return ok({"status": "ok", "env": cfg.ENV, "session_log": cfg.SESSION_LOG_ENABLED})

    # Debug builds only: without the flag the store is never created.
    if cfg.SESSION_LOG_ENABLED:
        app.include_router(logs_router, prefix="", tags=["logs"])

    # -------------------------
    # Error handling
    # -------------------------
    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

        details = None
        if cfg.ENV == "dev":
            details = {"type": exc.__class__.__name__, "message": str(exc)}

        return ORJSONResponse(
            status_code=500,
            content=fail(
                code="INTERNAL_ERROR",
                message="An unexpected error occurred.",
                details=details,
            ),
        )

    # -------------------------
    # Startup / shutdown
    # -------------------------
    @app.on_event("startup")
    async def on_startup():
        if not cfg.SESSION_LOG_ENABLED:
            configure_logging(cfg)
            logger.info("Session log disabled; set SESSION_LOG_ENABLED to enable it.")
            return

        store = create_log_store(cfg)
        app.state.log_store = store
        app.state.log_handler = configure_logging(cfg, store)

        logger.info(
            "Session log enabled (max_items=%d, page_size=%d)",
            cfg.MAX_ITEMS_COUNT,
            cfg.PAGE_SIZE,
        )

    @app.on_event("shutdown")
    async def on_shutdown():
        handler = app.state.log_handler
        if handler is not None:
            logging.getLogger().removeHandler(handler)
            app.state.log_handler = None

        store = app.state.log_store
        if store is not None:
            store.close()
            app.state.log_store = None

    return app


app = create_app()
