# leadsheets/routers/leads.py
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from leadsheets.config import Settings
from leadsheets.deps import get_settings, get_submission_service
from leadsheets.errors import CredentialsNotConfigured, LeadSheetsError, ValidationError
from leadsheets.schemas import LeadOut
from leadsheets.services.submission import SubmissionService

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["leads"])

GENERIC_ERROR = "Internal Server Error"


def error_message(settings: Settings, exc: Exception, fallback: str = "Failed to submit lead") -> str:
    """Detailed text outside production; a generic string in production."""
    if settings.is_production:
        return GENERIC_ERROR
    return str(exc) or fallback


async def _read_body(request: Request):
    # --- Parse body (support JSON + form) ---
    ct = (request.headers.get("content-type") or "").lower()
    if ct.startswith("application/x-www-form-urlencoded") or ct.startswith("multipart/form-data"):
        try:
            return dict(await request.form())
        except Exception:
            return None
    try:
        return await request.json()
    except Exception:
        return None


@router.post("/submit-lead", response_model=LeadOut)
async def submit_lead(
    request: Request,
    background_tasks: BackgroundTasks,
    service: SubmissionService = Depends(get_submission_service),
    settings: Settings = Depends(get_settings),
):
    raw = await _read_body(request)

    try:
        outcome = await run_in_threadpool(service.submit, raw, background_tasks.add_task)
    except ValidationError as e:
        log.info("Rejected lead: %s", e.message)
        body = LeadOut(success=False, message=f"Validation error: {e.message}")
        return JSONResponse(body.body(), status_code=400)
    except CredentialsNotConfigured as e:
        log.error("Error submitting lead (config missing: %s): %s", ", ".join(e.missing), e.message)
        body = LeadOut(success=False, message=error_message(settings, e))
        return JSONResponse(body.body(), status_code=500)
    except LeadSheetsError as e:
        log.error("Error submitting lead: %s", e.message, exc_info=e)
        body = LeadOut(success=False, message=error_message(settings, e))
        return JSONResponse(body.body(), status_code=500)

    return JSONResponse(outcome.response().body())
