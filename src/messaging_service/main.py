"""
Messaging Service main application entry point.

Direct and group conversations, read-state tracking, the notification feed
and the real-time propagation channel.
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config import settings
from .db import dispose_engine
from .exceptions import MessagingError, NotAuthenticated
from .logging_config import setup_logging, setup_middleware
from .rate_limiting import setup_rate_limiting
from .routers import (
    conversations_router,
    health_router,
    internal_router,
    notifications_router,
    ws_router,
)
from .services.realtime import close_realtime_channel, get_realtime_channel


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.logger.info(f"'{settings.PROJECT_NAME}' startup sequence initiated.")
    app.startup_time = time.time()
    get_realtime_channel()
    app.logger.info("Application startup complete.")
    yield
    app.logger.info(f"'{settings.PROJECT_NAME}' shutdown sequence initiated.")
    await close_realtime_channel()
    await dispose_engine()
    app.logger.info(f"'{settings.PROJECT_NAME}' shutdown sequence complete.")


# Configure logging before app initialization
setup_logging()

app = FastAPI(
    title=settings.PROJECT_NAME,
    description=(
        "Direct and group messaging with read tracking, notification feed "
        "and real-time change signals."
    ),
    version="0.1.0",
    root_path=settings.ROOT_PATH,
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Health", "description": "Service health endpoints"},
        {"name": "Conversations", "description": "Conversations, messages and read state"},
        {"name": "Notifications", "description": "Notification feed and badge counts"},
        {"name": "Internal", "description": "Service-to-service endpoints"},
        {"name": "WebSocket", "description": "Real-time change signals"},
    ],
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    swagger_ui_parameters={"persistAuthorization": True},
)

# Initialize application logger
app.logger = logging.getLogger("messaging_service")

# Setup middleware
setup_middleware(app)
setup_rate_limiting(app)


# Exception handlers
@app.exception_handler(MessagingError)
async def messaging_exception_handler(request: Request, exc: MessagingError):
    if exc.status_code >= 500:
        app.logger.error(f"{exc.code} on {request.url.path}: {exc.detail}")
    else:
        app.logger.info(f"{exc.code} on {request.url.path}: {exc.detail}")
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, NotAuthenticated) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
        headers=headers,
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    app.logger.error(f"HTTPException: {exc.status_code} - {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    app.logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})


# Routers
app.include_router(health_router)
app.include_router(conversations_router)
app.include_router(notifications_router)
app.include_router(internal_router)
app.include_router(ws_router)


@app.get("/", tags=["Health"])
async def root():
    return {"service": settings.PROJECT_NAME, "docs": f"{settings.ROOT_PATH}/docs"}
