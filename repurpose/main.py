import logging
import os
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

# Load .env before settings are read (tests configure env in conftest)
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

from repurpose.core.config import settings, validate_config
from repurpose.core.database import create_all_tables
from repurpose.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from repurpose.core.logging import LOGGER_NAME, configure_logging
from repurpose.core.middleware.request_id import RequestIdMiddleware
from repurpose.core.validation import validate_env
from repurpose.api import jobs, scrape, billing, admin, health

configure_logging(settings.ENV)
validate_env()
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger(LOGGER_NAME)
    logger.info("Starting Repurpose API...")
    app.state.startup_time = time.time()
    if settings.DATABASE_URL or os.getenv("TEST_DATABASE_URL"):
        create_all_tables()
    try:
        yield
    finally:
        logger.info("Stopping Repurpose API...")


app = FastAPI(title="Repurpose API", lifespan=lifespan)

app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(jobs.router)
app.include_router(scrape.router)
app.include_router(billing.router)
app.include_router(admin.router)
app.include_router(health.router)
