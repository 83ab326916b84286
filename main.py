import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncEngine

from api.cors import AllowListCORSMiddleware
from api.documents import router as documents_router
from api.submissions import router as submissions_router
from config import Settings, settings
from database import build_session_factory, engine, init_db
from services.errors import IngestionError
from services.ingestion import IngestionPipeline
from services.rate_limit import CounterStore, build_counter_store

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


async def ingestion_error_handler(request: Request, exc: IngestionError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Submission failed: %s", exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.public_message},
    )


def create_app(
    app_settings: Settings = settings,
    bind: Optional[AsyncEngine] = None,
    counter_store: Optional[CounterStore] = None,
) -> FastAPI:
    bind = bind or engine

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await init_db(bind)
        session_factory = build_session_factory(bind)
        app.state.session_factory = session_factory
        app.state.pipeline = IngestionPipeline(
            app_settings,
            session_factory,
            counter_store or build_counter_store(app_settings.rate_limit_backend, app_settings.redis_url),
        )
        logger.info("Ingestion ready (origins: %d, rate limit: %d/%ss)",
                    len(app_settings.origin_list),
                    app_settings.rate_limit_max_requests,
                    app_settings.rate_limit_window_seconds)
        yield

    app = FastAPI(
        title=app_settings.app_name,
        description="Investor onboarding submission ingestion API",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(AllowListCORSMiddleware, allow_origins=app_settings.origin_list)
    app.add_exception_handler(IngestionError, ingestion_error_handler)

    app.include_router(submissions_router)
    app.include_router(documents_router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
