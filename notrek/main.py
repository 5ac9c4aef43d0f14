# Copyright 2025 John Brosnihan
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""FastAPI application factory and configuration."""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pythonjsonlogger.json import JsonFormatter

from notrek.api import calls, chat, cite, coach, geo, health, plans
from notrek.api import status as status_api
from notrek.config import get_settings
from notrek.services.call_store import InMemoryCallStore
from notrek.services.plan_store import PlanStore, create_plan_store

API_PREFIX = "/api/no-trek"


def setup_logging() -> None:
    """
    Configure JSON-structured logging for the application.

    Sets up a JSON formatter that includes timestamp, level, message,
    and service name for all log entries.
    """
    settings = get_settings()

    class CustomJsonFormatter(JsonFormatter):
        """Custom JSON formatter that adds service name and handles encoding issues."""

        def add_fields(self, log_record, record, message_dict):
            super().add_fields(log_record, record, message_dict)
            log_record["service"] = settings.SERVICE_NAME

        def format(self, record):
            """Format log record, handling unicode and binary payloads gracefully."""
            try:
                return super().format(record)
            except (UnicodeDecodeError, UnicodeEncodeError, TypeError) as e:
                safe_record = {
                    "service": settings.SERVICE_NAME,
                    "timestamp": self.formatTime(record, self.datefmt),
                    "level": record.levelname,
                    "message": f"[Encoding error: {str(e)}] {repr(record.msg)}",
                    "error": str(e),
                }
                return self.serialize_log_record(safe_record)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.INFO)
    handler.setFormatter(
        CustomJsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
            rename_fields={"asctime": "timestamp"},
        )
    )
    root_logger.addHandler(handler)

    root_logger.info(f"Logging configured for service: {settings.SERVICE_NAME}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events.
    """
    logger = logging.getLogger(__name__)
    logger.info(
        "Application starting up",
        extra={"plan_store": type(app.state.plan_store).__name__},
    )
    yield
    logger.info("Application shutting down")


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed request bodies and parameters as 400 Bad Request."""
    logging.getLogger(__name__).info(
        "Request validation failed",
        extra={"path": request.url.path, "error_count": len(exc.errors())},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


def create_app(plan_store: PlanStore | None = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        plan_store: Plan store to use instead of the one selected by
            PLAN_STORE_BACKEND

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    setup_logging()

    settings = get_settings()
    logger = logging.getLogger(__name__)

    app = FastAPI(
        title="No Trek Care Concierge API",
        description="Triage chat, care plans, citations and clinic calling for No Trek",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.state.plan_store = plan_store if plan_store is not None else create_plan_store(settings)
    app.state.call_store = InMemoryCallStore()

    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.include_router(health.router)
    for module in (chat, cite, coach, plans, calls, status_api, geo):
        app.include_router(module.router, prefix=API_PREFIX)

    logger.info(
        f"Application created: service={settings.SERVICE_NAME}, "
        f"port={settings.PORT}"
    )

    return app


def get_app() -> FastAPI:
    """
    Get or create the application instance.

    This function is used by the ASGI server to import the app.
    """
    return create_app()


# Required for uvicorn to find the app with "notrek.main:app"
app = get_app()
