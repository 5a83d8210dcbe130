"""CTO portal gateway FastAPI application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cto_portal.app.applications.drafts import DraftNotFoundError
from cto_portal.app.applications.form import (
    AlreadySubmittedError,
    FormClosedError,
    FormLockedError,
    SubmissionInProgressError,
)
from cto_portal.app.applications.router import router as applications_router
from cto_portal.app.applications.validation import InputError
from cto_portal.app.common.session import SessionExpiredError
from cto_portal.app.core.config import get_settings
from cto_portal.app.credits.router import router as credits_router
from cto_portal.app.utils.cto_api import CtoAPIError, SubmissionError

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(title=settings.app_name, version="0.1.0")

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    api_prefix = settings.api_prefix.rstrip("/")
    app.include_router(credits_router, prefix=api_prefix)
    app.include_router(applications_router, prefix=api_prefix)

    # Exception Handlers
    @app.exception_handler(InputError)
    async def input_error_handler(request: Request, exc: InputError):
        return JSONResponse(
            status_code=422,
            content={"detail": exc.message, "rule": exc.rule},
        )

    @app.exception_handler(SessionExpiredError)
    async def session_expired_handler(request: Request, exc: SessionExpiredError):
        return JSONResponse(
            status_code=401,
            content={"detail": str(exc)},
        )

    @app.exception_handler(SubmissionError)
    async def submission_error_handler(request: Request, exc: SubmissionError):
        return JSONResponse(
            status_code=400,
            content={"detail": str(exc)},
        )

    @app.exception_handler(CtoAPIError)
    async def upstream_error_handler(request: Request, exc: CtoAPIError):
        logger.error("CTO service error on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=502,
            content={"detail": str(exc)},
        )

    @app.exception_handler(DraftNotFoundError)
    async def draft_not_found_handler(request: Request, exc: DraftNotFoundError):
        return JSONResponse(
            status_code=404,
            content={"detail": str(exc)},
        )

    async def conflict_handler(request: Request, exc: Exception):
        return JSONResponse(
            status_code=409,
            content={"detail": str(exc)},
        )

    for exc_class in (FormLockedError, SubmissionInProgressError, AlreadySubmittedError, FormClosedError):
        app.add_exception_handler(exc_class, conflict_handler)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
