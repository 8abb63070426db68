"""
FastAPI application entry point.
Challenge: Mount routes, middleware (Prometheus), public storage, session listeners.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.responses import FileResponse
from prometheus_client import make_asgi_app

from app.config import get_settings
from app.api.v1.router import api_router
from app.core.errors import BarterError, barter_error_handler, unhandled_error_handler
from app.core.session_store import get_session_store
from app.realtime.changes import close_change_channel
from app.services.provisioning import get_provisioner


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Shutdown: stop the Redis listener and release subscriptions."""
    yield
    await close_change_channel()


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(
        title=settings.app_name,
        description="Barter marketplace: list items, propose item-for-item trades, negotiate over chat.",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS for frontend/API consumers
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(BarterError, barter_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Every sign-in/sign-up/refresh makes sure the identity has a profile
    get_session_store().subscribe(get_provisioner().on_session_change)

    # Prometheus metrics at /metrics
    metrics_app = make_asgi_app()
    app.mount("/metrics", metrics_app)

    app.include_router(api_router, prefix="/api")

    # Public object storage (listing images, avatars)
    storage_dir = Path(settings.storage_root)
    storage_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/storage", StaticFiles(directory=str(storage_dir)), name="storage")

    # Built browser client, when deployed alongside the API
    static_dir = Path(__file__).resolve().parent.parent / "static"
    if static_dir.exists():
        app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

        @app.get("/")
        async def root():
            return FileResponse(static_dir / "index.html")

    return app


app = create_app()
