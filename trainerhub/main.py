import logging
import os
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException

# Load env before settings are read
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

from trainerhub.api import auth, feed, health, navigation, plans, trainers
from trainerhub.core.config import settings, validate_config
from trainerhub.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from trainerhub.core.logging import configure_logging
from trainerhub.core.middleware.request_id import RequestIdMiddleware
from trainerhub.core.validation import validate_env
from trainerhub.gateway.factory import build_gateway
from trainerhub.identity.backends import build_auth_backend

configure_logging(settings.ENV)
validate_env()
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("trainerhub")
    logger.info("Starting TrainerHub backend...")
    app.state.startup_time = time.time()
    if getattr(app.state, "gateway", None) is None:
        app.state.gateway = build_gateway()
    if getattr(app.state, "auth_backend", None) is None:
        app.state.auth_backend = build_auth_backend()
    try:
        yield
    finally:
        await app.state.gateway.aclose()
        await app.state.auth_backend.aclose()
        logger.info("Stopping TrainerHub backend...")


app = FastAPI(title="TrainerHub - Backend", lifespan=lifespan)

app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(feed.feed_router, prefix="/api/feed", tags=["feed"])
app.include_router(feed.posts_router, prefix="/api/posts", tags=["posts"])
app.include_router(plans.router, prefix="/api/plans", tags=["plans"])
app.include_router(plans.me_router, prefix="/api/me", tags=["plans"])
app.include_router(plans.dashboard_router, prefix="/api/dashboard", tags=["dashboard"])
app.include_router(trainers.router, prefix="/api/trainers", tags=["trainers"])
app.include_router(navigation.router, prefix="/api/navigation", tags=["navigation"])
app.include_router(health.router)
