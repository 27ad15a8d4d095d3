"""
Store Orchestrator — HTTP entrypoint

Sets up FastAPI with:
  - CORS for dashboard access
  - Store lifecycle routes (/api/stores, /api/metrics, /api/audit)
  - Prometheus metrics (/metrics)
  - Health check (/health)
  - JSON error bodies of the form {"error": "..."}
"""

import logging
import uvicorn
from datetime import datetime, timezone
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.exceptions import HTTPException as StarletteHTTPException

from store_orchestrator import __version__
from store_orchestrator.config import settings
from store_orchestrator.models import AuditAction
from store_orchestrator.routers.stores import router as stores_router
from store_orchestrator.services.lifecycle import LifecycleController

logger = logging.getLogger("orchestrator")


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_app(controller: Optional[LifecycleController] = None) -> FastAPI:
    """Build the API. A controller may be injected; otherwise one is built from settings."""

    # --- Lifespan ---
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "controller", None) is None:
            app.state.controller = LifecycleController.from_settings(settings)
        ctrl = app.state.controller
        ctrl.audit.record(
            AuditAction.ORCHESTRATOR_START,
            version=__version__,
            max_stores=ctrl.capacity.max_stores,
            rate_limit=f"{ctrl.rate_limiter.max_requests}/{ctrl.rate_limiter.window_seconds}s",
        )
        logger.info("Store Orchestrator starting...")
        yield
        logger.info("Store Orchestrator shutting down...")
        ctrl.audit.close()

    app = FastAPI(
        title="Store Orchestrator API",
        description="Provisions and tears down per-tenant stores on Kubernetes",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.controller = controller

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.CORS_ORIGINS),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(stores_router, prefix="/api")

    # --- Health check ---
    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "version": __version__,
        }

    # --- Prometheus metrics endpoint ---
    @app.get("/metrics", response_class=PlainTextResponse)
    async def metrics(request: Request):
        """Expose Prometheus metrics."""
        registry = request.app.state.controller.stats.registry
        return PlainTextResponse(
            content=generate_latest(registry).decode("utf-8"),
            media_type=CONTENT_TYPE_LATEST,
        )

    # --- Error handlers ---
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return JSONResponse(status_code=400, content={"error": f"Invalid request: {message}"})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return app


configure_logging(settings.LOG_LEVEL)
app = create_app()


# --- Entry point ---
def run():
    uvicorn.run(
        "store_orchestrator.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level=settings.LOG_LEVEL.lower(),
        reload=False,
    )


if __name__ == "__main__":
    run()
