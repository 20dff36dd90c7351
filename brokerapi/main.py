import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from mangum import Mangum
from starlette.middleware.cors import CORSMiddleware

from brokerapi.config import settings
from brokerapi.core.exception_handlers import register_exception_handlers
from brokerapi.core.logging_middleware import LoggingMiddleware
from brokerapi.logging_config import setup_logging
from brokerapi.routers import (
    balance_router,
    distribution_router,
    health_router,
    position_router,
)

load_dotenv("brokerapi/.env")
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)

    register_exception_handlers(app)

    app.include_router(health_router.router)
    app.include_router(balance_router.router)
    app.include_router(balance_router.admin_router)
    app.include_router(position_router.router)
    app.include_router(distribution_router.router)

    logger.info(f"{settings.APP_NAME} started ({settings.ENVIRONMENT})")
    return app


app = create_app()

handler = Mangum(app)
