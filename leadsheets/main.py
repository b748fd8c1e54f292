# leadsheets/main.py
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from leadsheets.config import GOOGLE_CREDENTIAL_VARS, Settings
from leadsheets.logging_config import setup_logging
from leadsheets.routers.health import router as health_router
from leadsheets.routers.leads import error_message
from leadsheets.routers.leads import router as leads_router
from leadsheets.routers.oauth_google import router as google_oauth_router
from leadsheets.services.submission import SubmissionService

log = logging.getLogger(__name__)

MAX_LOG_LINE = 80


def log_credential_status(settings: Settings) -> None:
    values = dict(zip(GOOGLE_CREDENTIAL_VARS, (
        settings.google_client_id, settings.google_client_secret, settings.google_refresh_token,
    )))
    for name, val in values.items():
        log.info("  %s: %s", name, f"Set ({len(val)} chars)" if val else "NOT SET")

    missing = settings.missing_google_credentials()
    if missing:
        log.warning(
            "Config missing: %s. Spreadsheet and Gmail calls will fail until they are set in %s",
            ", ".join(missing), settings.env_file,
        )
    if not settings.slack_webhook_url:
        log.info("SLACK_WEBHOOK_URL not set; Slack notifications will be logged only")
    log.info("Destination spreadsheet title: %s", settings.spreadsheet_title)


def create_app(
    settings: Optional[Settings] = None,
    *,
    submission_service: Optional[SubmissionService] = None,
    configure_logging: bool = True,
) -> FastAPI:
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if configure_logging:
            setup_logging(settings)
        log_credential_status(settings)
        yield

    app = FastAPI(title="Lead Capture API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.submission_service = submission_service or SubmissionService.from_settings(settings)
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials="*" not in settings.allowed_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # ---------- API request logging ----------
    @app.middleware("http")
    async def log_api_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        path = request.url.path
        if path.startswith("/api"):
            line = f"{request.method} {path} {response.status_code} in {int((time.perf_counter() - start) * 1000)}ms"
            if len(line) > MAX_LOG_LINE:
                line = line[:MAX_LOG_LINE - 1] + "…"
            log.info(line)
        return response

    # ---------- Unhandled errors ----------
    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        log.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            {"success": False, "message": error_message(settings, exc, fallback="Internal Server Error")},
            status_code=500,
        )

    # ---------- Routers ----------
    app.include_router(leads_router)
    app.include_router(health_router)
    app.include_router(google_oauth_router)

    return app


app = create_app()
