"""
MiniCloneSet Conversion Webhook

Sets up FastAPI with:
  - CRD conversion endpoint (/convert)
  - Health check (/health)
  - Prometheus metrics (/metrics)
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .config import settings
from .conversion import Scheme, build_scheme
from .routers.conversion import router as conversion_router

logger = logging.getLogger("conversion-webhook")

VERSION = "1.0.0"


# --- Lifespan ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Conversion webhook starting (versions={','.join(app.state.scheme.versions)})")
    yield
    logger.info("Conversion webhook shutting down...")


def create_app(scheme: Optional[Scheme] = None) -> FastAPI:
    app = FastAPI(
        title="MiniCloneSet Conversion Webhook",
        description="CRD version conversion for apps.example.com MiniCloneSets",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.scheme = scheme or build_scheme()
    app.include_router(conversion_router)

    # --- Health check ---
    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "hub": app.state.scheme.hub_version,
            "version": VERSION,
        }

    # --- Prometheus metrics endpoint ---
    @app.get("/metrics", response_class=PlainTextResponse)
    async def metrics():
        """Expose Prometheus metrics."""
        return PlainTextResponse(
            content=generate_latest().decode("utf-8"),
            media_type=CONTENT_TYPE_LATEST,
        )

    # --- Global exception handler ---
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    return app


app = create_app()


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    uvicorn.run(
        app,
        host=settings.WEBHOOK_HOST,
        port=settings.WEBHOOK_PORT,
        ssl_certfile=settings.WEBHOOK_CERT_FILE or None,
        ssl_keyfile=settings.WEBHOOK_KEY_FILE or None,
        log_level="info",
    )


# --- Entry point ---
if __name__ == "__main__":
    main()
