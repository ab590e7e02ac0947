import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.router import api_router
from .core.logging_config import configure_logging
from .request_logging import RequestLoggingMiddleware
from .settings import settings
from .storage.base import Storage
from .storage.factory import build_storage

configure_logging()
logger = logging.getLogger(__name__)

DISCLAIMER = (
    "Heuristic risk scores from public prediction-market data. "
    "A high score is a pattern worth reviewing, not evidence of insider trading."
)


def create_app(storage: Storage | None = None) -> FastAPI:
    app = FastAPI(title="Insider Monitor", description=DISCLAIMER)
    app.state.storage = storage or build_storage(settings)
    app.state.storage_mode = app.state.storage.mode

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.include_router(api_router)
    logger.info("app_started env=%s storage=%s", settings.ENV, app.state.storage_mode)
    return app


app = create_app()
