from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskhub.config import get_settings
from taskhub.infrastructure.database import SessionLocal, engine, initialize_database
from taskhub.infrastructure.notifications import build_notification_hub
from taskhub.interfaces.api.routes import register_routes
from taskhub.logging_config import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup, flush pending pushes and release the pool on shutdown."""

    initialize_database()
    yield
    await app.state.notification_hub.router.drain()
    engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="TaskHub", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.notification_hub = build_notification_hub(SessionLocal)
    register_routes(app)
    return app
