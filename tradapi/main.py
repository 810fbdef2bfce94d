import logging
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from mangum import Mangum
from starlette.middleware.cors import CORSMiddleware

from tradapi import containers
from tradapi.core.exception_handlers import register_exception_handlers
from tradapi.core.logging_middleware import LoggingMiddleware
from tradapi.logging_config import setup_logging
from tradapi.routers import (
    admin_router,
    discovery_router,
    health_router,
    points_router,
    review_router,
    shortlink_router,
)

load_dotenv("tradapi/.env")

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    container: containers.Container = app.container  # type: ignore[attr-defined]
    settings = container.core.config()
    database = container.core.database()

    if settings.AUTO_CREATE_TABLES and database.available:
        database.create_all()
        logger.info("Database tables ensured")

    yield

    dispatcher = container.core.dispatcher()
    dispatcher.shutdown(wait_for_tasks=True)
    database.dispose()


def create_app(container: Optional[containers.Container] = None) -> FastAPI:
    container = container or containers.Container()
    settings = container.core.config()
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG, lifespan=lifespan)
    app.container = container  # type: ignore

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)
    register_exception_handlers(app)

    app.include_router(health_router.router)
    app.include_router(points_router.router)
    app.include_router(review_router.router)
    app.include_router(discovery_router.router)
    app.include_router(shortlink_router.router)
    app.include_router(admin_router.router)

    @app.get("/")
    def hello() -> dict:
        return {"message": settings.APP_NAME}

    return app


app = create_app()

handler = Mangum(app)
