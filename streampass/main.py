import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException

# Load env from the working directory .env
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

from streampass.core.config import settings, validate_config
from streampass.core.logging import configure_logging
from streampass.core.middleware.request_id import RequestIdMiddleware
from streampass.core.validation import validate_env
from streampass.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from streampass.api import health, passes, streams, tiers

configure_logging(settings.ENV)
validate_env()
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("streampass")
    logger.info("Starting StreamPass service...")
    try:
        yield
    finally:
        logging.getLogger("streampass").info("Stopping StreamPass service...")


app = FastAPI(title="StreamPass", lifespan=lifespan)

app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.include_router(health.router, tags=["health"])
app.include_router(streams.router, tags=["streams"])
app.include_router(passes.router, tags=["passes"])
app.include_router(tiers.router, tags=["tiers"])
