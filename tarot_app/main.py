# tarot_app/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tarot_app.api.routes import interpretation_routes, root_routes, session_routes, tarot_routes
from tarot_app.config import Settings, get_settings
from tarot_app.core.startup import shutdown_event, startup_event


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await startup_event(app, settings)
        yield
        await shutdown_event(app)

    app = FastAPI(title="Tarot 2026", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(root_routes.router)
    app.include_router(interpretation_routes.router, prefix="/api", tags=["Interpretation"])
    app.include_router(tarot_routes.router, prefix="/api/tarot", tags=["Tarot"])
    app.include_router(session_routes.router, prefix="/api/tarot/sessions", tags=["Sessions"])
    return app


app = create_app()
