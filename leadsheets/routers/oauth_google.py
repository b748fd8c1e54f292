import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse

from leadsheets.config import Settings
from leadsheets.deps import get_settings
from leadsheets.services.env_store import save_env_value
from leadsheets.services.google_auth import build_flow

log = logging.getLogger(__name__)

router = APIRouter(prefix="/oauth/google", tags=["oauth"])


def _dev_only(settings: Settings = Depends(get_settings)) -> Settings:
    # one-time setup helper; never exposed in production
    if settings.is_production:
        raise HTTPException(404, "Not Found")
    return settings


def _flow(settings: Settings):
    try:
        return build_flow(settings)
    except RuntimeError as e:
        log.warning("Google OAuth bootstrap unavailable (config missing): %s", e)
        raise HTTPException(500, str(e))


@router.get("/start")
def oauth_google_start(settings: Settings = Depends(_dev_only)):
    flow = _flow(settings)
    url, _ = flow.authorization_url(
        access_type="offline",
        include_granted_scopes="true",
        prompt="consent",
    )
    return RedirectResponse(url)


@router.get("/callback")
def oauth_google_callback(request: Request, settings: Settings = Depends(_dev_only)):
    code = request.query_params.get("code")
    if not code:
        raise HTTPException(400, "Missing code")
    flow = _flow(settings)
    flow.fetch_token(code=code)

    refresh_token = flow.credentials.refresh_token
    if not refresh_token:
        raise HTTPException(400, "Google returned no refresh token; revoke app access and start again")

    saved = save_env_value(settings.env_file, "GOOGLE_REFRESH_TOKEN", refresh_token, overwrite=True, create=True)
    return {
        "ok": True,
        "msg": "Google authorized. Restart the server to pick up GOOGLE_REFRESH_TOKEN.",
        "env_file": str(settings.env_file),
        "saved": saved,
    }
